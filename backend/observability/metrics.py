"""
Timing helpers for observability.

- Durations use monotonic time
- One metric = one METRIC_TIMER log event, never aggregated
- timed() always stops its timer, even when the block raises
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Any, Iterator

from observability.logger import log_event


@contextmanager
def timed(
    name: str,
    *,
    session_id: str | None = None,
    details: dict[str, Any] | None = None,
) -> Iterator[dict[str, Any]]:
    """
    Measure the wrapped block and emit exactly one METRIC_TIMER event.

    The yielded dict is merged into the event's details, so the block can
    attach outcome fields it only learns while running:

        with timed("tts_synthesis_latency", session_id=sid) as extra:
            audio = await tts.synthesize(text)
            extra["bytes"] = len(audio.pcm)
    """
    extra: dict[str, Any] = {}
    start_ns = time.monotonic_ns()
    try:
        yield extra
    finally:
        duration_ms = (time.monotonic_ns() - start_ns) // 1_000_000
        log_event({
            "event_type": "METRIC_TIMER",
            "metric": name,
            "value_ms": duration_ms,
            "session_id": session_id,
            "details": {**(details or {}), **extra},
        })
