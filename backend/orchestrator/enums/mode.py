"""
Session mode enumeration.

Modes are orthogonal to lifecycle states:
- State answers: "Where is the call in its lifecycle?"
- Mode answers:  "Who produces the agent's speech?"
"""

from __future__ import annotations

from enum import Enum


class SessionMode(str, Enum):
    """
    MANAGED:
        The orchestrator runs STT, text generation and TTS itself.

    DELEGATED:
        Audio is relayed to a hosted conversational agent that does all three.
    """

    MANAGED = "MANAGED"
    DELEGATED = "DELEGATED"
