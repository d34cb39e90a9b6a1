"""
Delegated relay session.

A hosted conversational agent does recognition, generation and synthesis.
The session only:
- forwards caller audio, transcoded to the agent's format
- plays agent audio through the playback sequencer (transcoded + paced)
- on interruption: drops queued agent audio and clears the leg
- answers keepalive pings with a pong carrying the same event id

When the agent socket ends, the leg is closed so the gateway tears the
session down.
"""

from __future__ import annotations

import asyncio

from adapters.agent.base import ConversationalAgentAdapter
from audio.telephony_codec import FrameTranscoder
from observability.logger import log_event
from orchestrator.enums.backend import LLMBackend
from orchestrator.enums.mode import SessionMode
from orchestrator.enums.state import SessionState
from orchestrator.events import AgentAudio, AgentInterruption, AgentPing, PlaybackOutcome
from orchestrator.sequencer import PlaybackSequencer
from session.call_session import CallSession
from session.legs import TelephonyLeg


class DelegatedCallSession(CallSession):
    """Relay between a telephony leg and a hosted agent socket."""

    mode = SessionMode.DELEGATED

    def __init__(
        self,
        *,
        session_id: str,
        leg: TelephonyLeg,
        agent: ConversationalAgentAdapter,
        backend: LLMBackend = LLMBackend.MISTRAL,
        transcoder: FrameTranscoder | None = None,
    ) -> None:
        super().__init__(session_id=session_id, leg=leg, backend=backend, transcoder=transcoder)
        self._agent = agent
        self._agent_ready = False
        self._sequencer: PlaybackSequencer[bytes] = PlaybackSequencer(
            render=self._render_agent_audio,
            pacer=self._pacer,
            session_id=session_id,
            label="agent_audio",
        )

    @property
    def sequencer(self) -> PlaybackSequencer[bytes]:
        return self._sequencer

    async def start(self) -> None:
        if self.state is not SessionState.IDLE:
            log_event({
                "event_type": "SESSION_DUPLICATE_START",
                "session_id": self.session_id,
                "state": self.state.value,
            })
            return

        self._transition(SessionState.STARTED, reason="leg_started")
        self._sequencer.start()

        try:
            await self._agent.connect()
        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "event_type": "AGENT_CONNECT_FAILED",
                "level": "ERROR",
                "session_id": self.session_id,
                "exception": type(exc).__name__,
                "message": str(exc),
            })
            return

        self._agent_ready = True
        self._spawn(self._consume_agent(), "agent")

    async def on_audio(self, payload: bytes) -> None:
        if not self._accepting("media") or not self._agent_ready:
            return

        audio = self._transcoder.convert(payload, self.leg.audio_format, self._agent.audio_format)
        await self._agent.send_audio(audio)

    async def _release(self) -> None:
        await self._sequencer.close()
        try:
            await self._agent.close()
        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "event_type": "AGENT_CLOSE_FAILED",
                "level": "WARNING",
                "session_id": self.session_id,
                "exception": type(exc).__name__,
                "message": str(exc),
            })

    # ------------------------------------------------------------------
    # Agent events
    # ------------------------------------------------------------------

    async def _consume_agent(self) -> None:
        async for event in self._agent.events():
            if isinstance(event, AgentAudio):
                self._play(event.audio)

            elif isinstance(event, AgentInterruption):
                self._sequencer.interrupt()
                await self.leg.clear()
                log_event({
                    "event_type": "AGENT_INTERRUPTION",
                    "session_id": self.session_id,
                })

            elif isinstance(event, AgentPing):
                await self._agent.send_pong(event.event_id)

        log_event({
            "event_type": "AGENT_STREAM_ENDED",
            "session_id": self.session_id,
        })
        if self.state is not SessionState.STOPPED:
            await self.leg.close()

    def _play(self, audio: bytes) -> None:
        handle = self._sequencer.enqueue(audio)
        handle.add_done_callback(self._on_playback_done)
        self._transition(SessionState.RESPONDING, reason="agent_audio")

    def _on_playback_done(self, _: asyncio.Future[PlaybackOutcome]) -> None:
        if self.state is SessionState.RESPONDING and not self._sequencer.is_busy:
            self._transition(SessionState.LISTENING, reason="agent_audio_drained")

    async def _render_agent_audio(self, audio: bytes) -> bytes:
        return self._transcoder.convert(audio, self._agent.audio_format, self.leg.audio_format)
