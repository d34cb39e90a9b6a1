"""
Reply segmenter.

Turns a token-streamed reply into sentence units as tokens arrive. A unit is
emitted as soon as a token containing a sentence terminator is appended; the
remaining text is flushed when the stream ends.
"""

from __future__ import annotations

from typing import AsyncIterator

from constants import SENTENCE_TERMINATORS


class ReplySegmenter:
    """Incremental sentence splitter for one reply."""

    def __init__(self, terminators: tuple[str, ...] = SENTENCE_TERMINATORS) -> None:
        self._terminators = terminators
        self._buffer = ""

    def feed(self, token: str) -> str | None:
        """Append a token; return a trimmed sentence if the token closed one."""
        self._buffer += token
        if not any(t in token for t in self._terminators):
            return None

        sentence = self._buffer.strip()
        self._buffer = ""
        return sentence or None

    def flush(self) -> str | None:
        """End of stream: return the trimmed remainder, if any."""
        remainder = self._buffer.strip()
        self._buffer = ""
        return remainder or None


async def segment_reply(tokens: AsyncIterator[str]) -> AsyncIterator[str]:
    """Yield sentence units from a token stream, in arrival order."""
    segmenter = ReplySegmenter()
    async for token in tokens:
        sentence = segmenter.feed(token)
        if sentence is not None:
            yield sentence

    remainder = segmenter.flush()
    if remainder is not None:
        yield remainder
