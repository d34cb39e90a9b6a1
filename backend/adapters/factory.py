"""
Adapter construction from AppConfig.

Sessions ask the factory for vendor adapters and only ever see the abstract
contracts. Missing credentials raise RuntimeError naming the variable when
the adapter is built, not at process start.
"""

from __future__ import annotations

from openai import AsyncOpenAI

from adapters.agent.base import ConversationalAgentAdapter
from adapters.agent.elevenlabs_agent import ElevenLabsAgentAdapter
from adapters.asr.base import STTAdapter
from adapters.asr.deepgram_streaming import DeepgramStreamingSTTAdapter
from adapters.llm.base import LLMAdapter
from adapters.llm.ollama_chat import OllamaChatAdapter
from adapters.llm.openai_chat import OpenAIChatAdapter
from adapters.llm.prompts import MISTRAL_SYSTEM_PROMPT, OPENAI_SYSTEM_PROMPT
from adapters.tts.base import TTSAdapter
from config import AppConfig, require
from constants import AudioFormat
from orchestrator.enums.backend import LLMBackend


class AdapterFactory:
    """Builds per-session vendor adapters. One instance per process."""

    def __init__(self, config: AppConfig) -> None:
        self._config = config
        self._openai_client: AsyncOpenAI | None = None

    @property
    def config(self) -> AppConfig:
        return self._config

    def stt(self, *, audio_format: AudioFormat, session_id: str | None = None) -> STTAdapter:
        return DeepgramStreamingSTTAdapter(
            api_key=require(self._config.deepgram_api_key, "DEEPGRAM_API_KEY"),
            audio_format=audio_format,
            session_id=session_id,
            vad_events=self._config.barge_in_enabled,
        )

    def llm(self, backend: LLMBackend, *, session_id: str | None = None) -> LLMAdapter:
        if backend is LLMBackend.OPENAI:
            return OpenAIChatAdapter(
                client=self._shared_openai_client(),
                model=self._config.openai_model,
                system_prompt=OPENAI_SYSTEM_PROMPT,
                session_id=session_id,
            )

        return OllamaChatAdapter(
            base_url=self._config.ollama_url,
            model=self._config.mistral_model,
            system_prompt=MISTRAL_SYSTEM_PROMPT,
            session_id=session_id,
        )

    def tts(self) -> TTSAdapter:
        provider = self._config.tts_provider.lower()

        if provider == "elevenlabs":
            from adapters.tts.elevenlabs import ElevenLabsTTSAdapter  # pylint: disable=import-outside-toplevel

            return ElevenLabsTTSAdapter(
                api_key=require(self._config.elevenlabs_api_key, "ELEVENLABS_API_KEY"),
                voice_id=self._config.elevenlabs_voice_id,
                model_id=self._config.elevenlabs_model_id,
            )

        if provider == "speechmatics":
            from adapters.tts.speechmatics import SpeechmaticsTTSAdapter  # pylint: disable=import-outside-toplevel

            return SpeechmaticsTTSAdapter(
                api_key=require(self._config.speechmatics_api_key, "SPEECHMATICS_API_KEY"),
                voice=self._config.speechmatics_voice,
            )

        raise RuntimeError(f"unknown TTS_PROVIDER: {self._config.tts_provider}")

    def agent(self, *, session_id: str | None = None) -> ConversationalAgentAdapter:
        return ElevenLabsAgentAdapter(
            api_key=require(self._config.elevenlabs_api_key, "ELEVENLABS_API_KEY"),
            agent_id=require(self._config.elevenlabs_agent_id, "ELEVENLABS_AGENT_ID"),
            session_id=session_id,
        )

    def _shared_openai_client(self) -> AsyncOpenAI:
        # Create OpenAI client ONCE per process
        if self._openai_client is None:
            self._openai_client = AsyncOpenAI(
                api_key=require(self._config.openai_api_key, "OPENAI_API_KEY"),
            )
        return self._openai_client
