"""
TTS adapter contract.

This module defines the interface only: no segmentation policy, no frame
splitting, no pacing.

Key rules:
- Segmentation is owned by the reply segmenter; adapters receive one
  complete sentence per call.
- One synthesis request per sentence, returning one complete buffer.
- No internal retries. Transport errors propagate; the playback sequencer
  logs them and skips the sentence.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class SynthesizedAudio:
    """Raw mono PCM16 (or a WAV container) plus its sample rate."""

    pcm: bytes
    sample_rate_hz: int


class TTSAdapter(ABC):
    """Abstract interface for a per-sentence (non-streaming) TTS adapter."""

    @abstractmethod
    async def synthesize(self, text: str) -> SynthesizedAudio:
        """
        Synthesize one sentence.

        Args:
            text: Sentence to speak (non-empty, already trimmed).

        Returns:
            The complete audio for the sentence.
        """
        raise NotImplementedError
