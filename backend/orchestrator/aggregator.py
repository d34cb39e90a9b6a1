"""
Transcript aggregator (silence debounce).

Collects streaming transcript fragments into one utterance per caller pause:
- every fragment is appended (plus a separating space) and restarts the
  debounce task
- when the debounce elapses with no newer fragment, the trimmed buffer is
  emitted once and cleared
- whitespace-only buffers are never emitted

Only the most recent debounce task can fire: scheduling a new one cancels
the previous one.
"""

from __future__ import annotations

import asyncio
import time
from typing import AsyncIterator

from constants import TRANSCRIPT_DEBOUNCE_S
from observability.logger import log_event
from orchestrator.events import Utterance


class TranscriptAggregator:
    """Per-session debounce over transcript fragments."""

    def __init__(
        self,
        *,
        debounce_s: float = TRANSCRIPT_DEBOUNCE_S,
        session_id: str | None = None,
    ) -> None:
        self._debounce_s = debounce_s
        self._session_id = session_id

        self._buffer = ""
        self._timer: asyncio.Task[None] | None = None
        self._out: asyncio.Queue[Utterance | None] = asyncio.Queue()
        self._closed = False

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def on_fragment(self, text: str) -> None:
        """Append a fragment and (re)start the debounce window."""
        if self._closed:
            return

        self._buffer += text + " "
        self._cancel_timer()
        self._timer = asyncio.create_task(self._debounce())

    async def utterances(self) -> AsyncIterator[Utterance]:
        """Yield finalized utterances until close()."""
        while True:
            item = await self._out.get()
            if item is None:
                return
            yield item

    def close(self) -> None:
        """Cancel the pending window and end the utterance stream. Idempotent."""
        if self._closed:
            return
        self._closed = True
        self._cancel_timer()
        self._buffer = ""
        self._out.put_nowait(None)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _cancel_timer(self) -> None:
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    async def _debounce(self) -> None:
        await asyncio.sleep(self._debounce_s)

        text = self._buffer.strip()
        self._buffer = ""
        self._timer = None

        if not text:
            return

        log_event({
            "event_type": "UTTERANCE_FINALIZED",
            "session_id": self._session_id,
            "chars": len(text),
        })
        self._out.put_nowait(Utterance(text=text, finalized_at=time.time()))
