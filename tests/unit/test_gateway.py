# pylint: disable=missing-module-docstring,missing-function-docstring

import asyncio
from typing import Any, AsyncIterator

from config import AppConfig
from constants import TWILIO_LEG_FORMAT
from orchestrator.enums.backend import LLMBackend
from orchestrator.enums.mode import SessionMode
from orchestrator.enums.state import SessionState
from orchestrator.events import AgentEvent, LegEvent, LegMedia, LegStarted, LegStopped
from session.delegated_session import DelegatedCallSession
from session.gateway import SessionGateway, resolve_backend


class ScriptedLeg:
    """Leg that replays a fixed list of events, then disconnects."""

    provider = "fake"
    audio_format = TWILIO_LEG_FORMAT

    def __init__(self, script: list[LegEvent], *, fail_with: Exception | None = None) -> None:
        self._script = script
        self._fail_with = fail_with
        self.stream_id: str | None = None
        self.frames: list[bytes] = []
        self.closed = 0

    async def events(self) -> AsyncIterator[LegEvent]:
        for event in self._script:
            await asyncio.sleep(0)
            if isinstance(event, LegStarted):
                self.stream_id = event.stream_id
            yield event
        if self._fail_with is not None:
            raise self._fail_with

    async def send_audio(self, frame: bytes) -> None:
        self.frames.append(frame)

    async def clear(self) -> None:
        return None

    def is_open(self) -> bool:
        return self.closed == 0

    async def close(self) -> None:
        self.closed += 1


class QuietAgent:
    audio_format = TWILIO_LEG_FORMAT

    def __init__(self) -> None:
        self.sent: list[bytes] = []
        self.closed = False
        self._done = asyncio.Event()

    async def connect(self) -> None:
        return None

    async def send_audio(self, audio: bytes) -> None:
        self.sent.append(audio)

    async def send_pong(self, event_id: Any) -> None:
        return None

    async def events(self) -> AsyncIterator[AgentEvent]:
        await self._done.wait()
        return
        yield  # pragma: no cover

    async def close(self) -> None:
        self.closed = True
        self._done.set()


class FakeFactory:
    def __init__(self, *, missing_agent: bool = False) -> None:
        self.config = AppConfig()
        self.missing_agent = missing_agent
        self.agents: list[QuietAgent] = []
        self.session_ids: list[str | None] = []

    def agent(self, *, session_id: str | None = None) -> QuietAgent:
        self.session_ids.append(session_id)
        if self.missing_agent:
            raise RuntimeError("ELEVENLABS_AGENT_ID environment variable not set")
        agent = QuietAgent()
        self.agents.append(agent)
        return agent


def _gateway(leg: ScriptedLeg, factory: FakeFactory) -> SessionGateway:
    return SessionGateway(
        leg=leg,  # type: ignore[arg-type]
        mode=SessionMode.DELEGATED,
        factory=factory,  # type: ignore[arg-type]
    )


def test_delegated_call_lifecycle():
    leg = ScriptedLeg([
        LegMedia(payload=b"\x00" * 160),  # before start
        LegStarted(stream_id="MZ42", params={}),
        LegMedia(payload=b"\x01" * 160),
        LegMedia(payload=b"\x02" * 160),
        LegStopped(),
        LegMedia(payload=b"\x03" * 160),  # after stop: never read
    ])
    factory = FakeFactory()
    gateway = _gateway(leg, factory)

    asyncio.run(gateway.run())

    assert factory.session_ids == ["MZ42"]
    assert isinstance(gateway.session, DelegatedCallSession)
    assert gateway.session.session_id == "MZ42"
    assert gateway.session.state is SessionState.STOPPED
    assert factory.agents[0].sent == [b"\x01" * 160, b"\x02" * 160]
    assert factory.agents[0].closed
    assert leg.closed >= 1


def test_duplicate_start_keeps_first_session():
    leg = ScriptedLeg([
        LegStarted(stream_id="MZ1", params={}),
        LegStarted(stream_id="MZ2", params={}),
        LegStopped(),
    ])
    factory = FakeFactory()
    gateway = _gateway(leg, factory)

    asyncio.run(gateway.run())

    assert factory.session_ids == ["MZ1"]
    assert gateway.session is not None
    assert gateway.session.session_id == "MZ1"


def test_leg_without_stream_id_gets_generated_session_id():
    leg = ScriptedLeg([LegStarted(stream_id=None, params={}), LegStopped()])
    factory = FakeFactory()
    gateway = _gateway(leg, factory)

    asyncio.run(gateway.run())

    assert gateway.session is not None
    assert gateway.session.session_id.startswith("sess_")


def test_missing_credentials_close_the_leg_without_a_session():
    leg = ScriptedLeg([LegStarted(stream_id="MZ9", params={}), LegMedia(payload=b"\x00")])
    gateway = _gateway(leg, FakeFactory(missing_agent=True))

    asyncio.run(gateway.run())

    assert gateway.session is None
    assert leg.closed >= 1


def test_leg_error_still_tears_down_session():
    leg = ScriptedLeg(
        [LegStarted(stream_id="MZ5", params={})],
        fail_with=ConnectionResetError("socket gone"),
    )
    factory = FakeFactory()
    gateway = _gateway(leg, factory)

    asyncio.run(gateway.run())

    assert gateway.session is not None
    assert gateway.session.state is SessionState.STOPPED
    assert factory.agents[0].closed


def test_resolve_backend():
    assert resolve_backend({"llm": "openai"}) is LLMBackend.OPENAI
    assert resolve_backend({"llm": " OpenAI "}) is LLMBackend.OPENAI
    assert resolve_backend({"llm": "claude"}) is LLMBackend.default()
    assert resolve_backend({}) is LLMBackend.MISTRAL
