"""
Speech-to-text adapter contract.

The adapter is a dumb pipe: leg audio in, transcript events out.
Debounce, utterance boundaries and barge-in policy live in the session.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import AsyncIterator

from orchestrator.events import STTEvent


class STTAdapter(ABC):
    """Abstract base class for streaming speech-to-text adapters."""

    @abstractmethod
    async def connect(self) -> None:
        """
        Open the vendor stream.

        Raises on transport failure; the caller decides whether the
        session continues without transcription.
        """
        raise NotImplementedError

    @abstractmethod
    async def send_audio(self, audio: bytes) -> None:
        """Forward leg-encoded audio. Dropped silently when not connected."""
        raise NotImplementedError

    @abstractmethod
    def events(self) -> AsyncIterator[STTEvent]:
        """Transcript fragments and VAD signals, until close()."""
        raise NotImplementedError

    @abstractmethod
    async def close(self) -> None:
        """Close the stream and end events(). Idempotent."""
        raise NotImplementedError
