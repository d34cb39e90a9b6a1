"""
Frame transcoder between telephony, agent and TTS audio formats.

Pure and stateless per call:
- μ-law <-> linear PCM16 (audioop)
- integer-ratio polyphase resampling (scipy.signal.resample_poly)
- RIFF/WAV container unwrapping for provider payloads
"""

from __future__ import annotations

import audioop
import io
import wave
from math import gcd

import numpy as np
from scipy import signal

from constants import (
    AudioFormat,
    Encoding,
    PCM_SAMPLE_WIDTH_BYTES,
    WAV_RIFF_MAGIC,
    WAV_WAVE_MAGIC,
)


class AudioCodecError(ValueError):
    """Raised when a payload cannot be interpreted in the declared format."""


class FrameTranscoder:
    """Handles conversion between any two AudioFormats."""

    def convert(self, data: bytes, src: AudioFormat, dst: AudioFormat) -> bytes:
        """
        Convert raw audio from src to dst.

        Identity when the formats match. Returns b"" for empty input.
        """
        if not data:
            return b""
        if src == dst:
            return data

        samples = self.decode(data, src)
        samples = self.resample(samples, src.sample_rate_hz, dst.sample_rate_hz)
        return self.encode(samples, dst)

    def decode(self, data: bytes, fmt: AudioFormat) -> np.ndarray:
        """Leg-encoded bytes -> int16 samples at fmt's sample rate."""
        if fmt.encoding is Encoding.MULAW:
            pcm = audioop.ulaw2lin(data, PCM_SAMPLE_WIDTH_BYTES)
        else:
            # Odd trailing byte cannot be a PCM16 sample
            pcm = data[: len(data) - (len(data) % PCM_SAMPLE_WIDTH_BYTES)]

        return np.frombuffer(pcm, dtype=np.int16)

    def encode(self, samples: np.ndarray, fmt: AudioFormat) -> bytes:
        """int16 samples -> bytes in fmt's encoding."""
        pcm = samples.astype(np.int16).tobytes()
        if fmt.encoding is Encoding.MULAW:
            return audioop.lin2ulaw(pcm, PCM_SAMPLE_WIDTH_BYTES)
        return pcm

    @staticmethod
    def resample(samples: np.ndarray, src_rate_hz: int, dst_rate_hz: int) -> np.ndarray:
        if src_rate_hz == dst_rate_hz or samples.size == 0:
            return samples

        divisor = gcd(src_rate_hz, dst_rate_hz)
        resampled = signal.resample_poly(
            samples.astype(np.float64),
            dst_rate_hz // divisor,
            src_rate_hz // divisor,
        )

        # Clip and convert back to int16
        return np.clip(np.round(resampled), -32768, 32767).astype(np.int16)

    @staticmethod
    def is_wav(data: bytes) -> bool:
        return len(data) >= 12 and data[:4] == WAV_RIFF_MAGIC and data[8:12] == WAV_WAVE_MAGIC

    @staticmethod
    def unwrap_wav(data: bytes) -> tuple[bytes, int]:
        """
        Strip a RIFF/WAV container.

        Returns (mono PCM16 bytes, sample_rate_hz).

        Raises:
            AudioCodecError if the container is malformed.
        """
        try:
            with wave.open(io.BytesIO(data), "rb") as wav:
                channels = wav.getnchannels()
                width = wav.getsampwidth()
                rate = wav.getframerate()
                frames = wav.readframes(wav.getnframes())
        except (wave.Error, EOFError) as exc:
            raise AudioCodecError(f"invalid wav container: {exc}") from exc

        if width == 1:
            # 8-bit WAV is unsigned
            frames = audioop.bias(frames, 1, -128)
        if width != PCM_SAMPLE_WIDTH_BYTES:
            frames = audioop.lin2lin(frames, width, PCM_SAMPLE_WIDTH_BYTES)
        if channels == 2:
            frames = audioop.tomono(frames, PCM_SAMPLE_WIDTH_BYTES, 0.5, 0.5)
        elif channels != 1:
            raise AudioCodecError(f"unsupported wav channel count: {channels}")

        return frames, rate
