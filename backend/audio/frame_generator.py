"""
Frame splitting utilities (pure).

Purpose:
- Cut an encoded audio buffer into fixed-size frames for paced egress.

Design:
- Pure functions only (no queues, no timing, no IO).
- Keeps a trailing short frame, so a buffer of L bytes yields ceil(L / F)
  frames and no audio is lost at the end of a sentence.
"""

from __future__ import annotations


def split_into_frames(buffer: bytes, frame_bytes: int) -> list[bytes]:
    """
    Split encoded audio into frames of frame_bytes.

    Returns:
        List of frames, all exactly frame_bytes long except possibly the last.

    Raises:
        ValueError if frame_bytes is not positive.
    """
    if frame_bytes <= 0:
        raise ValueError("frame_bytes must be > 0")

    return [
        buffer[offset: offset + frame_bytes]
        for offset in range(0, len(buffer), frame_bytes)
    ]


def frame_count(buffer_len: int, frame_bytes: int) -> int:
    """Number of frames split_into_frames would produce."""
    if frame_bytes <= 0:
        raise ValueError("frame_bytes must be > 0")
    return -(-buffer_len // frame_bytes)
