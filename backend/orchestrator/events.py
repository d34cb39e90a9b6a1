"""
Event and value definitions flowing between call components.

Rules:
- Events describe facts that have occurred.
- Events carry data only (no behavior).
- No clocks, no timers, no async, no side effects.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union


# =============================================================================
# Speech-to-text
# =============================================================================

@dataclass(frozen=True)
class TranscriptFragment:
    """One transcript message from the STT service."""

    text: str
    is_final: bool = False


@dataclass(frozen=True)
class SpeechStarted:
    """VAD signal: the caller started talking."""


STTEvent = Union[TranscriptFragment, SpeechStarted]


# =============================================================================
# Orchestrator values
# =============================================================================

@dataclass(frozen=True)
class Utterance:
    """Finalized caller turn, produced once per pause by the aggregator."""

    text: str
    finalized_at: float


class PlaybackOutcome(str, Enum):
    """How a queued playback unit ended."""

    PLAYED = "PLAYED"
    SKIPPED = "SKIPPED"
    INTERRUPTED = "INTERRUPTED"


@dataclass(frozen=True)
class SpeechUnit:
    """Sentence queued for synthesis; reply_id is for log correlation only."""

    text: str
    reply_id: int


# =============================================================================
# Telephony leg
# =============================================================================

@dataclass(frozen=True)
class LegStarted:
    stream_id: str | None
    params: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class LegMedia:
    """Leg-encoded caller audio (already base64-decoded)."""

    payload: bytes


@dataclass(frozen=True)
class LegStopped:
    pass


LegEvent = Union[LegStarted, LegMedia, LegStopped]


# =============================================================================
# Delegated agent
# =============================================================================

@dataclass(frozen=True)
class AgentAudio:
    """Agent speech in the agent's audio format."""

    audio: bytes


@dataclass(frozen=True)
class AgentInterruption:
    pass


@dataclass(frozen=True)
class AgentPing:
    event_id: Any


AgentEvent = Union[AgentAudio, AgentInterruption, AgentPing]
