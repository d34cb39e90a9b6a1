"""
Local Mistral adapter (Ollama /api/chat).

Ollama streams newline-delimited JSON objects:
    {"message": {"role": "assistant", "content": "..."}, "done": false}
    ...
    {"done": true, ...}

`done: true` is the explicit end marker. Lines that fail to parse are
logged and skipped.
"""

from __future__ import annotations

import json
from typing import Any, AsyncIterator

import httpx

from adapters.llm.base import LLMAdapter
from constants import OLLAMA_CHAT_PATH
from observability.logger import log_event


class OllamaChatAdapter(LLMAdapter):
    """Streams replies from a local Ollama server."""

    def __init__(
        self,
        *,
        base_url: str,
        model: str,
        system_prompt: str,
        session_id: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._system_prompt = system_prompt
        self._session_id = session_id
        self._transport = transport

    def _payload(self, text: str) -> dict[str, Any]:
        return {
            "model": self._model,
            "stream": True,
            "messages": [
                {"role": "system", "content": self._system_prompt},
                {"role": "user", "content": text},
            ],
        }

    async def stream_reply(self, text: str) -> AsyncIterator[str]:
        # No read timeout: generation time is unbounded beyond the transport
        timeout = httpx.Timeout(10.0, read=None)

        async with httpx.AsyncClient(
            base_url=self._base_url,
            timeout=timeout,
            transport=self._transport,
        ) as client:
            async with client.stream("POST", OLLAMA_CHAT_PATH, json=self._payload(text)) as response:
                response.raise_for_status()

                async for line in response.aiter_lines():
                    if not line.strip():
                        continue

                    data = self._parse_line(line)
                    if data is None:
                        continue

                    message = data.get("message")
                    content = message.get("content") if isinstance(message, dict) else None
                    if isinstance(content, str) and content:
                        yield content

                    if data.get("done"):
                        return

    def _parse_line(self, line: str) -> dict[str, Any] | None:
        try:
            data = json.loads(line)
        except json.JSONDecodeError as exc:
            log_event({
                "event_type": "LLM_STREAM_PARSE_ERROR",
                "level": "WARNING",
                "session_id": self._session_id,
                "backend": "mistral",
                "message": str(exc),
            })
            return None

        if not isinstance(data, dict):
            return None
        return data
