"""
Text-generation adapter contract.

Purpose:
- Define the interface for streaming one reply per caller utterance.
- Keep segmentation, playback and cancellation policy OUT of the adapter.

Rules:
- No retries.
- No sentence splitting.
- No knowledge of TTS, legs, or the session state machine.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import AsyncIterator


class LLMAdapter(ABC):
    """
    Abstract base class for streaming text-generation adapters.

    The adapter is a dumb pipe: utterance text -> vendor -> token deltas.
    """

    @abstractmethod
    def stream_reply(self, text: str) -> AsyncIterator[str]:
        """
        Stream the reply to one caller utterance.

        Contract:
        - Yields incremental non-empty deltas, not full-text snapshots.
        - Malformed vendor chunks are logged and skipped, never raised.
        - Transport failures propagate to the caller.
        - Cancelling the consuming task stops the request.
        """
        raise NotImplementedError
