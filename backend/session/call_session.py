"""
Per-call session state machine.

    IDLE -> STARTED -> (LISTENING <-> RESPONDING) -> STOPPED

CallSession owns everything that lives for one call: the leg's egress pacer,
the playback sequencer, vendor adapters and every background task. Nothing
is shared across sessions. stop() is idempotent and reachable from any
state; it cancels all tasks and closes every vendor stream.

ManagedCallSession runs the managed pipeline:
    leg audio -> STT -> transcript aggregator -> one LLM reply per utterance
    -> reply segmenter -> playback sequencer (TTS + transcode + pacer) -> leg
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Coroutine

from adapters.asr.base import STTAdapter
from adapters.llm.base import LLMAdapter
from adapters.tts.base import TTSAdapter
from audio.pacer import AudioPacer
from audio.telephony_codec import FrameTranscoder
from constants import AudioFormat, Encoding, GREETING_TEXT, TRANSCRIPT_DEBOUNCE_S
from observability.logger import log_event
from observability.metrics import timed
from orchestrator.aggregator import TranscriptAggregator
from orchestrator.enums.backend import LLMBackend
from orchestrator.enums.mode import SessionMode
from orchestrator.enums.state import SessionState
from orchestrator.events import SpeechStarted, SpeechUnit, TranscriptFragment, Utterance
from orchestrator.segmenter import segment_reply
from orchestrator.sequencer import PlaybackSequencer
from session.legs import TelephonyLeg


class CallSession(ABC):
    """Lifecycle, task ownership and teardown shared by both modes."""

    mode: SessionMode

    def __init__(
        self,
        *,
        session_id: str,
        leg: TelephonyLeg,
        backend: LLMBackend = LLMBackend.MISTRAL,
        transcoder: FrameTranscoder | None = None,
    ) -> None:
        self.session_id = session_id
        self.leg = leg
        self.backend = backend
        self.state = SessionState.IDLE

        self._transcoder = transcoder or FrameTranscoder()
        self._pacer = AudioPacer(
            send=leg.send_audio,
            is_open=leg.is_open,
            audio_format=leg.audio_format,
            session_id=session_id,
        )
        self._tasks: set[asyncio.Task[None]] = set()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @abstractmethod
    async def start(self) -> None:
        raise NotImplementedError

    @abstractmethod
    async def on_audio(self, payload: bytes) -> None:
        """Leg-encoded caller audio."""
        raise NotImplementedError

    @abstractmethod
    async def _release(self) -> None:
        """Close mode-specific resources. Called once, from stop()."""
        raise NotImplementedError

    async def stop(self, reason: str) -> None:
        if self.state is SessionState.STOPPED:
            return
        self._transition(SessionState.STOPPED, reason=reason)

        current = asyncio.current_task()
        tasks = [t for t in self._tasks if t is not current]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()

        await self._release()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _transition(self, new_state: SessionState, *, reason: str) -> None:
        if new_state is self.state:
            return
        log_event({
            "event_type": "SESSION_STATE_CHANGED",
            "session_id": self.session_id,
            "mode": self.mode.value,
            "from": self.state.value,
            "to": new_state.value,
            "reason": reason,
        })
        self.state = new_state

    def _accepting(self, what: str) -> bool:
        if self.state in (SessionState.IDLE, SessionState.STOPPED):
            log_event({
                "event_type": "SESSION_EVENT_IGNORED",
                "level": "DEBUG",
                "session_id": self.session_id,
                "state": self.state.value,
                "event": what,
            })
            return False
        return True

    def _spawn(self, coro: Coroutine[Any, Any, None], name: str) -> asyncio.Task[None]:
        task = asyncio.create_task(self._guard(coro, name), name=f"{self.session_id}:{name}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _guard(self, coro: Coroutine[Any, Any, None], name: str) -> None:
        try:
            await coro
        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "event_type": "SESSION_TASK_FAILED",
                "level": "ERROR",
                "session_id": self.session_id,
                "task": name,
                "exception": type(exc).__name__,
                "message": str(exc),
            })


class ManagedCallSession(CallSession):
    """Orchestrator-driven STT -> LLM -> TTS conversation."""

    mode = SessionMode.MANAGED

    def __init__(
        self,
        *,
        session_id: str,
        leg: TelephonyLeg,
        stt: STTAdapter,
        llm: LLMAdapter,
        tts: TTSAdapter,
        backend: LLMBackend = LLMBackend.MISTRAL,
        greeting_text: str = GREETING_TEXT,
        barge_in_enabled: bool = False,
        debounce_s: float = TRANSCRIPT_DEBOUNCE_S,
        transcoder: FrameTranscoder | None = None,
    ) -> None:
        super().__init__(session_id=session_id, leg=leg, backend=backend, transcoder=transcoder)
        self._stt = stt
        self._llm = llm
        self._tts = tts
        self._greeting_text = greeting_text
        self._barge_in_enabled = barge_in_enabled

        self._aggregator = TranscriptAggregator(debounce_s=debounce_s, session_id=session_id)
        self._sequencer: PlaybackSequencer[SpeechUnit] = PlaybackSequencer(
            render=self._render_sentence,
            pacer=self._pacer,
            session_id=session_id,
            label="tts",
        )
        self._reply_tasks: set[asyncio.Task[None]] = set()
        self._reply_seq = 0
        self._stt_ready = False

    @property
    def sequencer(self) -> PlaybackSequencer[SpeechUnit]:
        return self._sequencer

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

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
        self._sequencer.enqueue(SpeechUnit(text=self._greeting_text, reply_id=0))
        self._spawn(self._consume_utterances(), "utterances")

        try:
            await self._stt.connect()
        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "event_type": "STT_CONNECT_FAILED",
                "level": "ERROR",
                "session_id": self.session_id,
                "exception": type(exc).__name__,
                "message": str(exc),
            })
            return

        self._stt_ready = True
        self._spawn(self._consume_stt(), "stt")

    async def on_audio(self, payload: bytes) -> None:
        if not self._accepting("media") or not self._stt_ready:
            return
        await self._stt.send_audio(payload)

    async def _release(self) -> None:
        self._aggregator.close()
        await self._sequencer.close()
        try:
            await self._stt.close()
        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "event_type": "STT_CLOSE_FAILED",
                "level": "WARNING",
                "session_id": self.session_id,
                "exception": type(exc).__name__,
                "message": str(exc),
            })

    # ------------------------------------------------------------------
    # Pipeline tasks
    # ------------------------------------------------------------------

    async def _consume_stt(self) -> None:
        async for event in self._stt.events():
            if isinstance(event, TranscriptFragment):
                log_event({
                    "event_type": "TRANSCRIPT_FRAGMENT",
                    "level": "DEBUG",
                    "session_id": self.session_id,
                    "text": event.text,
                    "is_final": event.is_final,
                })
                # interim results repeat the text so far
                if event.is_final:
                    self._aggregator.on_fragment(event.text)
            elif isinstance(event, SpeechStarted) and self._barge_in_enabled:
                await self.barge_in()

    async def _consume_utterances(self) -> None:
        async for utterance in self._aggregator.utterances():
            self._start_reply(utterance)

    def _start_reply(self, utterance: Utterance) -> None:
        if self.state is SessionState.STOPPED:
            return

        self._reply_seq += 1
        reply_id = self._reply_seq
        task = self._spawn(self._run_reply(utterance, reply_id), f"reply-{reply_id}")
        self._reply_tasks.add(task)
        task.add_done_callback(self._on_reply_done)
        self._transition(SessionState.RESPONDING, reason="utterance_finalized")

    async def _run_reply(self, utterance: Utterance, reply_id: int) -> None:
        with timed(
            "llm_reply_stream",
            session_id=self.session_id,
            details={"reply_id": reply_id, "backend": self.backend.value},
        ) as extra:
            units = 0
            try:
                async for sentence in segment_reply(self._llm.stream_reply(utterance.text)):
                    self._sequencer.enqueue(SpeechUnit(text=sentence, reply_id=reply_id))
                    units += 1
            except Exception as exc:  # pylint: disable=broad-exception-caught
                extra["failed"] = True
                log_event({
                    "event_type": "LLM_REPLY_FAILED",
                    "level": "ERROR",
                    "session_id": self.session_id,
                    "reply_id": reply_id,
                    "backend": self.backend.value,
                    "exception": type(exc).__name__,
                    "message": str(exc),
                })
            finally:
                extra["units"] = units

    def _on_reply_done(self, task: asyncio.Task[None]) -> None:
        self._reply_tasks.discard(task)
        if not self._reply_tasks and self.state is SessionState.RESPONDING:
            self._transition(SessionState.LISTENING, reason="reply_stream_ended")

    async def _render_sentence(self, unit: SpeechUnit) -> bytes:
        audio = await self._tts.synthesize(unit.text)

        pcm, rate = audio.pcm, audio.sample_rate_hz
        if FrameTranscoder.is_wav(pcm):
            pcm, rate = FrameTranscoder.unwrap_wav(pcm)

        return self._transcoder.convert(
            pcm,
            AudioFormat(Encoding.LINEAR16, rate),
            self.leg.audio_format,
        )

    # ------------------------------------------------------------------
    # Barge-in
    # ------------------------------------------------------------------

    async def barge_in(self) -> None:
        """Caller started talking over the agent: drop queued and active speech."""
        if self.state is SessionState.STOPPED:
            return
        if not self._sequencer.is_busy and not self._reply_tasks:
            return

        dropped = self._sequencer.interrupt()
        replies = list(self._reply_tasks)
        for task in replies:
            task.cancel()

        await self.leg.clear()
        log_event({
            "event_type": "BARGE_IN",
            "session_id": self.session_id,
            "dropped_units": dropped,
            "cancelled_replies": len(replies),
        })
