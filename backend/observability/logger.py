"""
JSONL event logger.

- Write one JSON object per line
- Output to stdout
- No buffering, no batching
- No side effects beyond logging
"""

from __future__ import annotations

import json
import sys
import time
from typing import Any, Mapping, Callable


_LEVELS: dict[str, int] = {
    "DEBUG": 10,
    "INFO": 20,
    "WARNING": 30,
    "ERROR": 40,
}

_threshold: int = _LEVELS["DEBUG"]


# ------------------------------------------------------------------
# Explicit output sink (patchable in tests)
# ------------------------------------------------------------------

def _stdout_print(line: str) -> None:
    sys.stdout.write(line + "\n")
    sys.stdout.flush()

_print: Callable[[str], None] = _stdout_print


def configure_logging(*, level: str) -> None:
    """
    Set the minimum level for events that carry a "level" field.

    Events without a level are always written. Unknown level names
    leave the threshold unchanged.
    """
    global _threshold  # pylint: disable=global-statement
    resolved = _LEVELS.get(level.upper())
    if resolved is not None:
        _threshold = resolved


def now_ms() -> int:
    """Wall-clock timestamp in milliseconds."""
    return int(time.time() * 1000)


def log_event(event: Mapping[str, Any]) -> None:
    """
    Write a single JSONL event to stdout.

    The caller supplies event_type and, where known, session_id.

    This function:
    - Fills ts_ms when the caller did not
    - Drops events below the configured level
    - Writes exactly one line and flushes immediately
    - Never raises
    """
    level = event.get("level")
    if isinstance(level, str) and _LEVELS.get(level.upper(), _threshold) < _threshold:
        return

    payload = dict(event)
    payload.setdefault("ts_ms", now_ms())

    try:
        line = json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
    except (TypeError, ValueError) as e:
        # Last-resort fallback, logging must never crash the runtime
        fallback: dict[str, Any] = {
            "ts_ms": payload.get("ts_ms"),
            "event_type": "LOGGER_SERIALIZATION_ERROR",
            "error": str(e),
            "original_event_repr": repr(event),
        }
        line = json.dumps(fallback, ensure_ascii=False, separators=(",", ":"))

    _print(line)
