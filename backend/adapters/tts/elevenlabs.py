"""ElevenLabs TTS adapter (pcm_16000 streaming endpoint, drained per sentence)."""
from __future__ import annotations

from elevenlabs.client import AsyncElevenLabs

from adapters.tts.base import SynthesizedAudio, TTSAdapter
from constants import ELEVENLABS_TTS_OUTPUT_FORMAT, TTS_OUTPUT_FORMAT


class ElevenLabsTTSAdapter(TTSAdapter):

    def __init__(
        self,
        *,
        api_key: str,
        voice_id: str,
        model_id: str,
        client: AsyncElevenLabs | None = None,
    ) -> None:
        self._client = client or AsyncElevenLabs(api_key=api_key)
        self._voice_id = voice_id
        self._model_id = model_id

    async def synthesize(self, text: str) -> SynthesizedAudio:
        pcm = bytearray()

        audio_stream = self._client.text_to_speech.stream(
            voice_id=self._voice_id,
            model_id=self._model_id,
            text=text,
            output_format=ELEVENLABS_TTS_OUTPUT_FORMAT,
        )

        async for chunk in audio_stream:
            if chunk:
                pcm.extend(chunk)

        # Keep whole samples only
        if len(pcm) % 2 == 1:
            del pcm[-1]

        return SynthesizedAudio(pcm=bytes(pcm), sample_rate_hz=TTS_OUTPUT_FORMAT.sample_rate_hz)
