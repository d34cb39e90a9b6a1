# pylint: disable=missing-module-docstring,missing-function-docstring

import asyncio
import time

from audio.pacer import AudioPacer
from constants import TWILIO_LEG_FORMAT


class Sink:
    def __init__(self, close_after: int | None = None) -> None:
        self.frames: list[bytes] = []
        self.sent_at: list[float] = []
        self._close_after = close_after

    async def send(self, frame: bytes) -> None:
        self.frames.append(frame)
        self.sent_at.append(time.monotonic())

    def is_open(self) -> bool:
        return self._close_after is None or len(self.frames) < self._close_after


def _pacer(sink: Sink) -> AudioPacer:
    return AudioPacer(send=sink.send, is_open=sink.is_open, audio_format=TWILIO_LEG_FORMAT)


def test_paces_frames_at_real_time():
    sink = Sink()
    buffer = b"\xff" * (160 * 5 + 40)  # 6 frames, last one short

    async def run() -> tuple[int, float]:
        start = time.monotonic()
        sent = await _pacer(sink).stream(buffer)
        return sent, time.monotonic() - start

    sent, elapsed = asyncio.run(run())

    assert sent == 6
    assert [len(f) for f in sink.frames] == [160] * 5 + [40]
    # ceil(L/F) * 20ms, returned only after the last interval
    assert 0.11 <= elapsed < 0.6
    gaps = [b - a for a, b in zip(sink.sent_at, sink.sent_at[1:])]
    assert min(gaps) >= 0.01


def test_stops_when_sink_closes():
    sink = Sink(close_after=2)

    sent = asyncio.run(_pacer(sink).stream(b"\x00" * 160 * 10))

    assert sent == 2
    assert len(sink.frames) == 2


def test_cancellation_aborts_playback():
    sink = Sink()

    async def run() -> None:
        task = asyncio.create_task(_pacer(sink).stream(b"\x00" * 160 * 50))
        await asyncio.sleep(0.07)
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    asyncio.run(run())

    assert 1 <= len(sink.frames) < 50


def test_empty_buffer_sends_nothing():
    sink = Sink()
    assert asyncio.run(_pacer(sink).stream(b"")) == 0
    assert not sink.frames
