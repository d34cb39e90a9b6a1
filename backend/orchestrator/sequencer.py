"""
Playback sequencer.

Serializes render + playback of queued units so exactly one spoken unit
streams to the caller at a time.

Model:
- enqueue(item) appends to a FIFO and returns a completion handle
  (asyncio.Future resolving to a PlaybackOutcome)
- a single worker task pops the head, renders it to leg-encoded audio,
  streams it through the pacer, resolves the handle, and moves on
- interrupt() drops everything queued and abandons the unit in flight;
  the worker keeps serving new items afterwards

Each unit runs in its own task so that abandoning it never cancels the
worker itself. Every handle is resolved exactly once, even on close.
"""

from __future__ import annotations

import asyncio
from collections import deque
from typing import Awaitable, Callable, Generic, TypeVar

from audio.pacer import AudioPacer
from observability.logger import log_event
from observability.metrics import timed
from orchestrator.events import PlaybackOutcome

T = TypeVar("T")

RenderFn = Callable[[T], Awaitable[bytes | None]]


def _resolve(handle: asyncio.Future[PlaybackOutcome], outcome: PlaybackOutcome) -> None:
    if not handle.done():
        handle.set_result(outcome)


class PlaybackSequencer(Generic[T]):
    """FIFO playback with at most one unit in flight."""

    def __init__(
        self,
        *,
        render: RenderFn[T],
        pacer: AudioPacer,
        session_id: str | None = None,
        label: str = "playback",
    ) -> None:
        self._render = render
        self._pacer = pacer
        self._session_id = session_id
        self._label = label

        self._queue: deque[tuple[T, asyncio.Future[PlaybackOutcome]]] = deque()
        self._wakeup = asyncio.Event()
        self._worker: asyncio.Task[None] | None = None
        self._current: asyncio.Task[PlaybackOutcome] | None = None
        self._closed = False

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def pending(self) -> int:
        return len(self._queue)

    @property
    def is_busy(self) -> bool:
        return self._current is not None or bool(self._queue)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def start(self) -> None:
        if self._worker is None and not self._closed:
            self._worker = asyncio.create_task(self._run())

    def enqueue(self, item: T) -> asyncio.Future[PlaybackOutcome]:
        handle: asyncio.Future[PlaybackOutcome] = asyncio.get_running_loop().create_future()
        if self._closed:
            _resolve(handle, PlaybackOutcome.INTERRUPTED)
            return handle

        self._queue.append((item, handle))
        self._wakeup.set()
        return handle

    def interrupt(self) -> int:
        """
        Clear the queue and abandon the unit in flight.

        Returns the number of queued (not yet started) units dropped.
        """
        dropped = 0
        while self._queue:
            _, handle = self._queue.popleft()
            _resolve(handle, PlaybackOutcome.INTERRUPTED)
            dropped += 1

        abandoned = self._current is not None and not self._current.done()
        if abandoned:
            self._current.cancel()

        if dropped or abandoned:
            log_event({
                "event_type": "PLAYBACK_INTERRUPTED",
                "session_id": self._session_id,
                "label": self._label,
                "dropped": dropped,
                "abandoned_in_flight": abandoned,
            })
        return dropped

    async def close(self) -> None:
        """Interrupt and stop the worker. Idempotent."""
        if self._closed:
            return
        self._closed = True
        self.interrupt()

        worker = self._worker
        self._worker = None
        if worker is not None and not worker.done():
            worker.cancel()
            try:
                await worker
            except asyncio.CancelledError:
                pass

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _run(self) -> None:
        while True:
            while not self._queue:
                self._wakeup.clear()
                await self._wakeup.wait()

            item, handle = self._queue.popleft()
            task = asyncio.create_task(self._play(item))
            self._current = task
            try:
                await asyncio.wait({task})
            finally:
                self._current = None
                if not task.done():
                    task.cancel()
                _resolve(handle, self._outcome_of(task))

    async def _play(self, item: T) -> PlaybackOutcome:
        with timed(
            f"{self._label}_render_latency",
            session_id=self._session_id,
        ) as extra:
            try:
                audio = await self._render(item)
            except Exception as exc:  # pylint: disable=broad-exception-caught
                extra["failed"] = True
                log_event({
                    "event_type": "PLAYBACK_RENDER_FAILED",
                    "level": "ERROR",
                    "session_id": self._session_id,
                    "label": self._label,
                    "exception": type(exc).__name__,
                    "message": str(exc),
                })
                return PlaybackOutcome.SKIPPED
            extra["bytes"] = len(audio) if audio else 0

        if not audio:
            return PlaybackOutcome.SKIPPED

        await self._pacer.stream(audio)
        return PlaybackOutcome.PLAYED

    def _outcome_of(self, task: asyncio.Task[PlaybackOutcome]) -> PlaybackOutcome:
        if not task.done() or task.cancelled():
            return PlaybackOutcome.INTERRUPTED

        exc = task.exception()
        if exc is not None:
            log_event({
                "event_type": "PLAYBACK_FAILED",
                "level": "ERROR",
                "session_id": self._session_id,
                "label": self._label,
                "exception": type(exc).__name__,
                "message": str(exc),
            })
            return PlaybackOutcome.SKIPPED

        return task.result()
