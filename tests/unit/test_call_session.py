# pylint: disable=missing-module-docstring,missing-function-docstring

import asyncio
from typing import Any, AsyncIterator, Callable

from adapters.asr.deepgram_streaming import parse_deepgram_message
from adapters.tts.base import SynthesizedAudio
from constants import GREETING_TEXT, TWILIO_LEG_FORMAT, AudioFormat
from orchestrator.enums.state import SessionState
from orchestrator.events import SpeechStarted, STTEvent, TranscriptFragment
from session.call_session import ManagedCallSession


# ------------------------------------------------------------------
# Fakes
# ------------------------------------------------------------------

class FakeLeg:
    provider = "fake"

    def __init__(self, audio_format: AudioFormat = TWILIO_LEG_FORMAT) -> None:
        self.audio_format = audio_format
        self.stream_id = "MZ-test"
        self.frames: list[bytes] = []
        self.clears = 0
        self.open = True

    async def send_audio(self, frame: bytes) -> None:
        self.frames.append(frame)

    async def clear(self) -> None:
        self.clears += 1

    def is_open(self) -> bool:
        return self.open

    async def close(self) -> None:
        self.open = False


class FakeSTT:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.audio: list[bytes] = []
        self.closed = False
        self._queue: asyncio.Queue[STTEvent | None] = asyncio.Queue()

    async def connect(self) -> None:
        if self.fail:
            raise ConnectionError("deepgram unreachable")

    async def send_audio(self, audio: bytes) -> None:
        self.audio.append(audio)

    def push(self, event: STTEvent) -> None:
        self._queue.put_nowait(event)

    async def events(self) -> AsyncIterator[STTEvent]:
        while True:
            item = await self._queue.get()
            if item is None:
                return
            yield item

    async def close(self) -> None:
        self.closed = True
        self._queue.put_nowait(None)


class FakeLLM:
    def __init__(self, tokens: list[str]) -> None:
        self.tokens = tokens
        self.prompts: list[str] = []

    async def stream_reply(self, text: str) -> AsyncIterator[str]:
        self.prompts.append(text)
        for token in self.tokens:
            await asyncio.sleep(0)
            yield token


class FakeTTS:
    """20ms of 16kHz PCM per sentence -> exactly one Twilio frame."""

    def __init__(self, delay_s: float = 0.0) -> None:
        self.delay_s = delay_s
        self.texts: list[str] = []

    async def synthesize(self, text: str) -> SynthesizedAudio:
        self.texts.append(text)
        await asyncio.sleep(self.delay_s)
        return SynthesizedAudio(pcm=b"\x10\x00" * 320, sample_rate_hz=16_000)


async def _wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.01)


def _session(leg: FakeLeg, stt: FakeSTT, llm: FakeLLM, tts: FakeTTS, **kwargs) -> ManagedCallSession:
    return ManagedCallSession(
        session_id="sess_test",
        leg=leg,  # type: ignore[arg-type]
        stt=stt,  # type: ignore[arg-type]
        llm=llm,  # type: ignore[arg-type]
        tts=tts,  # type: ignore[arg-type]
        debounce_s=0.05,
        **kwargs,
    )


# ------------------------------------------------------------------
# Tests
# ------------------------------------------------------------------

def test_greets_then_speaks_reply_sentence_by_sentence():
    leg, tts = FakeLeg(), FakeTTS()
    llm = FakeLLM(["Hi", " there", "!", " How", " are", " you", "?"])
    states: list[SessionState] = []

    async def run() -> None:
        stt = FakeSTT()
        session = _session(leg, stt, llm, tts)
        await session.start()
        states.append(session.state)

        await session.on_audio(b"\xff" * 160)
        assert stt.audio == [b"\xff" * 160]

        stt.push(TranscriptFragment(text="hello", is_final=True))
        stt.push(TranscriptFragment(text="Julie", is_final=True))
        await _wait_until(lambda: len(leg.frames) == 3 and not session.sequencer.is_busy)
        states.append(session.state)

        await session.stop("test_done")
        states.append(session.state)
        assert stt.closed

    asyncio.run(run())

    assert llm.prompts == ["hello Julie"]
    assert tts.texts == [GREETING_TEXT, "Hi there!", "How are you?"]
    assert all(len(frame) == 160 for frame in leg.frames)
    assert states == [SessionState.STARTED, SessionState.LISTENING, SessionState.STOPPED]


def test_stt_connect_failure_still_plays_greeting():
    leg, tts, stt = FakeLeg(), FakeTTS(), FakeSTT(fail=True)

    async def run() -> None:
        session = _session(leg, stt, FakeLLM([]), tts)
        await session.start()
        await session.on_audio(b"\x00" * 160)
        await _wait_until(lambda: len(leg.frames) == 1)
        assert session.state is SessionState.STARTED
        await session.stop("test_done")

    asyncio.run(run())

    assert tts.texts == [GREETING_TEXT]
    assert stt.audio == []


def test_media_before_start_is_ignored_and_stop_is_idempotent():
    leg, stt = FakeLeg(), FakeSTT()

    async def run() -> SessionState:
        session = _session(leg, stt, FakeLLM([]), FakeTTS())
        await session.on_audio(b"\x00" * 160)
        await session.stop("early")
        await session.stop("again")
        await session.start()
        return session.state

    assert asyncio.run(run()) is SessionState.STOPPED
    assert stt.audio == []
    assert leg.frames == []


def test_barge_in_interrupts_playback_and_clears_leg():
    leg, stt = FakeLeg(), FakeSTT()
    tts = FakeTTS(delay_s=0.3)

    async def run() -> None:
        session = _session(leg, stt, FakeLLM([]), tts, barge_in_enabled=True)
        await session.start()
        await asyncio.sleep(0.05)

        stt.push(SpeechStarted())
        await _wait_until(lambda: leg.clears == 1)
        await _wait_until(lambda: not session.sequencer.is_busy)
        await session.stop("test_done")

    asyncio.run(run())

    assert leg.frames == []


def test_speech_started_ignored_when_barge_in_disabled():
    leg, stt = FakeLeg(), FakeSTT()

    async def run() -> None:
        session = _session(leg, stt, FakeLLM([]), FakeTTS(delay_s=0.1))
        await session.start()
        stt.push(SpeechStarted())
        await _wait_until(lambda: len(leg.frames) == 1)
        await session.stop("test_done")

    asyncio.run(run())

    assert leg.clears == 0


# ------------------------------------------------------------------
# Reply pipeline edge cases
# ------------------------------------------------------------------

class ScriptedLLM:
    """Per-prompt token scripts; an Exception in the script is raised at that point."""

    def __init__(self, replies: dict[str, list[Any]]) -> None:
        self.replies = replies
        self.prompts: list[str] = []

    async def stream_reply(self, text: str) -> AsyncIterator[str]:
        self.prompts.append(text)
        for token in self.replies[text]:
            await asyncio.sleep(0)
            if isinstance(token, Exception):
                raise token
            yield token


class HangingLLM:
    """Yields one sentence, then streams forever."""

    def __init__(self) -> None:
        self.prompts: list[str] = []
        self.cancelled = False

    async def stream_reply(self, text: str) -> AsyncIterator[str]:
        self.prompts.append(text)
        yield "First."
        try:
            await asyncio.sleep(10)
            yield " Second."
        except asyncio.CancelledError:
            self.cancelled = True
            raise


class TracingTTS(FakeTTS):
    def __init__(self, log: list[str], delay_s: float = 0.0) -> None:
        super().__init__(delay_s=delay_s)
        self.log = log

    async def synthesize(self, text: str) -> SynthesizedAudio:
        self.log.append("render")
        audio = await super().synthesize(text)
        self.log.append("rendered")
        return audio


class TracingLeg(FakeLeg):
    def __init__(self, log: list[str]) -> None:
        super().__init__()
        self.log = log

    async def send_audio(self, frame: bytes) -> None:
        self.log.append("frame")
        await super().send_audio(frame)


class FlakyTTS(FakeTTS):
    def __init__(self, fail: set[str]) -> None:
        super().__init__()
        self.fail = fail

    async def synthesize(self, text: str) -> SynthesizedAudio:
        if text in self.fail:
            self.texts.append(text)
            raise RuntimeError("synthesis rejected")
        return await super().synthesize(text)


def _results(text: str, is_final: bool) -> STTEvent:
    event = parse_deepgram_message({
        "type": "Results",
        "is_final": is_final,
        "channel": {"alternatives": [{"transcript": text}]},
    })
    assert event is not None
    return event


def test_interim_results_do_not_repeat_words_in_utterance():
    stt = FakeSTT()
    llm = FakeLLM([])

    async def run() -> None:
        session = _session(FakeLeg(), stt, llm, FakeTTS(), barge_in_enabled=True)
        await session.start()
        stt.push(_results("hi", is_final=False))
        stt.push(_results("hi there", is_final=False))
        stt.push(_results("hi there", is_final=True))
        await _wait_until(lambda: bool(llm.prompts))
        await session.stop("test_done")

    asyncio.run(run())

    assert llm.prompts == ["hi there"]


def test_overlapping_replies_play_in_arrival_order_one_at_a_time():
    log: list[str] = []
    leg, stt = TracingLeg(log), FakeSTT()
    tts = TracingTTS(log, delay_s=0.05)
    llm = ScriptedLLM({
        "first": ["One.", " Two.", " Three."],
        "second": ["Four.", " Five."],
    })
    draining: list[bool] = []

    async def run() -> None:
        session = _session(leg, stt, llm, tts)  # type: ignore[arg-type]
        await session.start()

        stt.push(TranscriptFragment(text="first", is_final=True))
        await _wait_until(lambda: "One." in tts.texts)
        stt.push(TranscriptFragment(text="second", is_final=True))
        await _wait_until(lambda: "second" in llm.prompts)
        draining.append(session.sequencer.is_busy)

        await _wait_until(lambda: len(leg.frames) == 6 and not session.sequencer.is_busy)
        await session.stop("test_done")

    asyncio.run(run())

    assert draining == [True]
    assert tts.texts == [GREETING_TEXT, "One.", "Two.", "Three.", "Four.", "Five."]
    # each unit is rendered and sent before the next one starts
    assert log == ["render", "rendered", "frame"] * 6


def test_llm_failure_ends_only_that_reply():
    leg, stt, tts = FakeLeg(), FakeSTT(), FakeTTS()
    llm = ScriptedLLM({
        "boom": ["Partial.", RuntimeError("stream dropped")],
        "ok": ["Fine."],
    })

    async def run() -> SessionState:
        session = _session(leg, stt, llm, tts)  # type: ignore[arg-type]
        await session.start()

        stt.push(TranscriptFragment(text="boom", is_final=True))
        await _wait_until(lambda: "Partial." in tts.texts and not session.sequencer.is_busy)
        await _wait_until(lambda: session.state is SessionState.LISTENING)

        stt.push(TranscriptFragment(text="ok", is_final=True))
        await _wait_until(lambda: len(leg.frames) == 3 and not session.sequencer.is_busy)
        await _wait_until(lambda: session.state is SessionState.LISTENING)
        state = session.state
        await session.stop("test_done")
        return state

    assert asyncio.run(run()) is SessionState.LISTENING
    assert llm.prompts == ["boom", "ok"]
    assert tts.texts == [GREETING_TEXT, "Partial.", "Fine."]


def test_failed_sentence_is_skipped_and_next_one_plays():
    leg, stt = FakeLeg(), FakeSTT()
    tts = FlakyTTS(fail={"Bad."})

    async def run() -> None:
        session = _session(leg, stt, FakeLLM(["Good.", " Bad.", " Fine."]), tts)
        await session.start()
        stt.push(TranscriptFragment(text="hi", is_final=True))
        await _wait_until(lambda: len(tts.texts) == 4 and not session.sequencer.is_busy)
        assert session.state is not SessionState.STOPPED
        await session.stop("test_done")

    asyncio.run(run())

    assert tts.texts == [GREETING_TEXT, "Good.", "Bad.", "Fine."]
    assert len(leg.frames) == 3


def test_barge_in_cancels_streaming_reply():
    leg, stt, tts = FakeLeg(), FakeSTT(), FakeTTS()
    llm = HangingLLM()

    async def run() -> None:
        session = _session(leg, stt, llm, tts, barge_in_enabled=True)  # type: ignore[arg-type]
        await session.start()

        stt.push(TranscriptFragment(text="hello", is_final=True))
        await _wait_until(lambda: "First." in tts.texts and not session.sequencer.is_busy)
        assert session.state is SessionState.RESPONDING

        stt.push(SpeechStarted())
        await _wait_until(lambda: leg.clears == 1)
        await _wait_until(lambda: llm.cancelled)
        await _wait_until(lambda: session.state is SessionState.LISTENING)
        await session.stop("test_done")

    asyncio.run(run())

    assert llm.prompts == ["hello"]
    assert tts.texts == [GREETING_TEXT, "First."]
