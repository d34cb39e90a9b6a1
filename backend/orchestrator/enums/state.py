"""
Call session lifecycle states.

Rules:
- This enum defines ONLY the lifecycle states.
- No behavior, no helper methods, no side effects.
- Transitions are owned by the call session.
"""

from __future__ import annotations

from enum import Enum


class SessionState(str, Enum):
    """
    IDLE -> STARTED -> (LISTENING <-> RESPONDING) -> STOPPED

    STOPPED is terminal and reachable from every other state.
    """

    IDLE = "IDLE"
    STARTED = "STARTED"
    LISTENING = "LISTENING"
    RESPONDING = "RESPONDING"
    STOPPED = "STOPPED"
