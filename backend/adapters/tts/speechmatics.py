"""
Speechmatics TTS adapter.

One synthesis call per sentence against the Speechmatics async TTS API,
requesting raw PCM16 16kHz. The response body is drained in provider-sized
chunks; an odd trailing byte is carried into the next chunk so sample
boundaries never split.
"""
from __future__ import annotations

from speechmatics.tts import AsyncClient, OutputFormat, Voice # pyright: ignore[reportMissingTypeStubs] # pylint: disable=no-name-in-module, import-error

from adapters.tts.base import SynthesizedAudio, TTSAdapter
from constants import PROVIDER_CHUNK_SIZE, TTS_OUTPUT_FORMAT


class SpeechmaticsTTSAdapter(TTSAdapter):
    """Speechmatics per-sentence TTS."""

    _VOICE_MAP: dict[str, Voice] = {
        "sarah": Voice.SARAH,
        "theo": Voice.THEO,
        "megan": Voice.MEGAN,
    }

    def __init__(self, *, api_key: str, voice: str = "sarah") -> None:
        self._api_key = api_key
        self._voice = self._resolve_voice(voice)

    async def synthesize(self, text: str) -> SynthesizedAudio:
        pcm = bytearray()
        carry = b""

        async with AsyncClient(api_key=self._api_key) as client:
            async with await client.generate(
                text=text,
                voice=self._voice,
                output_format=OutputFormat.RAW_PCM_16000,
            ) as response:
                async for chunk in response.content.iter_chunked(PROVIDER_CHUNK_SIZE):
                    data = carry + chunk

                    if len(data) % 2 == 1:
                        carry = data[-1:]
                        data = data[:-1]
                    else:
                        carry = b""

                    pcm.extend(data)

        return SynthesizedAudio(pcm=bytes(pcm), sample_rate_hz=TTS_OUTPUT_FORMAT.sample_rate_hz)

    @classmethod
    def _resolve_voice(cls, voice: str) -> Voice:
        """
        Convert user-facing voice string to Speechmatics Voice enum.

        Defaults to SARAH if unknown.
        """
        return cls._VOICE_MAP.get(voice.lower(), Voice.SARAH)
