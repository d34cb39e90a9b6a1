"""
Real-time audio pacer.

Sends an encoded buffer to an egress sink one frame at a time, at the
wall-clock cadence of the leg's frame duration. Frames are scheduled against
a monotonic deadline so per-frame sleep jitter does not accumulate.

Abort semantics:
- Cancelling the task running stream() stops playback between frames.
- A sink reporting not-writable stops playback before the next frame.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

from audio.frame_generator import frame_count, split_into_frames
from constants import AudioFormat
from observability.logger import log_event


class AudioPacer:
    """Egress pacing for one leg."""

    def __init__(
        self,
        *,
        send: Callable[[bytes], Awaitable[None]],
        is_open: Callable[[], bool],
        audio_format: AudioFormat,
        session_id: str | None = None,
    ) -> None:
        self._send = send
        self._is_open = is_open
        self._format = audio_format
        self._session_id = session_id

    @property
    def audio_format(self) -> AudioFormat:
        return self._format

    async def stream(self, buffer: bytes) -> int:
        """
        Play buffer to completion.

        Returns the number of frames handed to the sink. Returns only after
        the last frame's interval has elapsed, or early if the sink closed.
        """
        total = frame_count(len(buffer), self._format.bytes_per_frame)
        if total == 0:
            return 0

        loop = asyncio.get_running_loop()
        frame_s = self._format.frame_duration_s
        deadline = loop.time()
        sent = 0

        for frame in split_into_frames(buffer, self._format.bytes_per_frame):
            if not self._is_open():
                log_event({
                    "event_type": "PACER_SINK_CLOSED",
                    "session_id": self._session_id,
                    "frames_sent": sent,
                    "frames_total": total,
                })
                break

            await self._send(frame)
            sent += 1

            deadline += frame_s
            delay = deadline - loop.time()
            if delay > 0:
                await asyncio.sleep(delay)

        return sent
