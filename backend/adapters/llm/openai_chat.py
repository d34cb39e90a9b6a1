"""OpenAI chat-completions streaming adapter."""
from __future__ import annotations

from typing import Any, AsyncIterator

from openai import AsyncOpenAI

from adapters.llm.base import LLMAdapter
from observability.logger import log_event


class OpenAIChatAdapter(LLMAdapter):
    """
    Streams gpt-style chat completions.

    One request per utterance: fixed system persona + the caller's text.
    The AsyncOpenAI client is process-wide and shared between sessions.
    """

    def __init__(
        self,
        *,
        client: AsyncOpenAI,
        model: str,
        system_prompt: str,
        session_id: str | None = None,
    ) -> None:
        self._client = client
        self._model = model
        self._system_prompt = system_prompt
        self._session_id = session_id

    async def stream_reply(self, text: str) -> AsyncIterator[str]:
        stream = await self._client.chat.completions.create(
            model=self._model,
            messages=[
                {"role": "system", "content": self._system_prompt},
                {"role": "user", "content": text},
            ],
            stream=True,
        )

        async for chunk in stream:
            delta = self._extract_delta(chunk)
            if delta:
                yield delta

    def _extract_delta(self, chunk: Any) -> str:
        """
        Extract token delta from an OpenAI stream chunk.

        Chunks without choices (usage trailers) carry no text.
        """
        try:
            if not chunk.choices:
                return ""
            return chunk.choices[0].delta.content or ""
        except (AttributeError, IndexError, TypeError) as exc:
            log_event({
                "event_type": "LLM_STREAM_PARSE_ERROR",
                "level": "WARNING",
                "session_id": self._session_id,
                "backend": "openai",
                "exception": type(exc).__name__,
                "message": str(exc),
            })
            return ""
