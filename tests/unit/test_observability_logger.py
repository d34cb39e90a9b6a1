# pylint: disable=missing-module-docstring,missing-function-docstring

import json
from typing import Any

import pytest

from observability import logger
from observability.metrics import timed


@pytest.fixture
def captured(monkeypatch: pytest.MonkeyPatch) -> list[str]:
    lines: list[str] = []
    # Patch the explicit output sink used by logger
    monkeypatch.setattr(logger, "_print", lines.append)
    monkeypatch.setattr(logger, "_threshold", logger._LEVELS["DEBUG"])  # pylint: disable=protected-access
    return lines


def test_log_event_emits_valid_jsonl(captured: list[str]) -> None:
    payload: dict[str, Any] = {
        "event_type": "TEST",
        "ts_ms": 1,
        "value": 123,
    }

    logger.log_event(payload)

    # Exactly one line emitted, payload preserved
    assert len(captured) == 1
    assert json.loads(captured[0]) == payload


def test_log_event_fills_missing_timestamp(captured: list[str]) -> None:
    logger.log_event({"event_type": "TEST"})

    decoded = json.loads(captured[0])
    assert isinstance(decoded["ts_ms"], int)
    assert decoded["ts_ms"] > 0


def test_unserializable_event_falls_back_instead_of_raising(captured: list[str]) -> None:
    logger.log_event({"event_type": "TEST", "ts_ms": 5, "bad": object()})

    decoded = json.loads(captured[0])
    assert decoded["event_type"] == "LOGGER_SERIALIZATION_ERROR"
    assert decoded["ts_ms"] == 5
    assert "object" in decoded["original_event_repr"]


def test_events_below_configured_level_are_dropped(captured: list[str]) -> None:
    logger.configure_logging(level="warning")

    logger.log_event({"event_type": "NOISY", "level": "DEBUG"})
    logger.log_event({"event_type": "IMPORTANT", "level": "ERROR"})
    logger.log_event({"event_type": "UNLEVELLED"})

    types = [json.loads(line)["event_type"] for line in captured]
    assert types == ["IMPORTANT", "UNLEVELLED"]


def test_timed_emits_one_metric_even_when_block_raises(captured: list[str]) -> None:
    with pytest.raises(RuntimeError):
        with timed("unit_latency", session_id="s1", details={"k": "v"}) as extra:
            extra["bytes"] = 10
            raise RuntimeError("boom")

    assert len(captured) == 1
    decoded = json.loads(captured[0])
    assert decoded["event_type"] == "METRIC_TIMER"
    assert decoded["metric"] == "unit_latency"
    assert decoded["session_id"] == "s1"
    assert decoded["details"] == {"k": "v", "bytes": 10}
    assert decoded["value_ms"] >= 0
