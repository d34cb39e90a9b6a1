"""
ElevenLabs Conversational AI agent socket.

Connection:
- GET a signed URL for the agent (xi-api-key header)
- open the websocket and send conversation_initiation_client_data, declaring
  ulaw_8000 for both directions so Twilio audio needs no transcoding

Messages are decoded by protocol.agent; malformed ones are logged and
skipped. events() ends when the socket closes.
"""

from __future__ import annotations

import json
from typing import Any, AsyncIterator

import httpx
from websockets.asyncio.client import ClientConnection, connect as ws_connect
from websockets.exceptions import ConnectionClosed

from adapters.agent.base import ConversationalAgentAdapter
from constants import (
    AGENT_AUDIO_FORMAT,
    AudioFormat,
    ELEVENLABS_API_BASE,
    ELEVENLABS_HTTP_TIMEOUT_S,
    ELEVENLABS_SIGNED_URL_PATH,
)
from observability.logger import log_event
from orchestrator.events import AgentEvent
from protocol.agent import (
    AgentProtocolError,
    build_initiation_message,
    build_pong,
    build_user_audio_chunk,
    parse_agent_message,
)


class AgentConnectError(RuntimeError):
    """Signed URL could not be obtained or the socket did not open."""


class ElevenLabsAgentAdapter(ConversationalAgentAdapter):
    """Relay socket to one ElevenLabs agent conversation."""

    def __init__(
        self,
        *,
        api_key: str,
        agent_id: str,
        session_id: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._agent_id = agent_id
        self._session_id = session_id
        self._transport = transport

        self._ws: ClientConnection | None = None
        self._closed = False

    @property
    def audio_format(self) -> AudioFormat:
        return AGENT_AUDIO_FORMAT

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    async def fetch_signed_url(self) -> str:
        async with httpx.AsyncClient(
            base_url=ELEVENLABS_API_BASE,
            timeout=ELEVENLABS_HTTP_TIMEOUT_S,
            transport=self._transport,
        ) as client:
            response = await client.get(
                ELEVENLABS_SIGNED_URL_PATH,
                params={"agent_id": self._agent_id},
                headers={"xi-api-key": self._api_key},
            )

        if response.status_code != 200:
            raise AgentConnectError(
                f"signed url request failed: {response.status_code} {response.text}"
            )

        signed_url = response.json().get("signed_url")
        if not signed_url:
            raise AgentConnectError("no signed_url in response")
        return signed_url

    async def connect(self) -> None:
        signed_url = await self.fetch_signed_url()
        self._ws = await ws_connect(signed_url)
        await self._send(build_initiation_message())

        log_event({
            "event_type": "AGENT_CONNECTED",
            "session_id": self._session_id,
            "agent_id": self._agent_id,
        })

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True

        ws = self._ws
        self._ws = None
        if ws is not None:
            await ws.close()

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    async def send_audio(self, audio: bytes) -> None:
        if audio:
            await self._send(build_user_audio_chunk(audio))

    async def send_pong(self, event_id: Any) -> None:
        await self._send(build_pong(event_id))

    async def _send(self, message: dict[str, Any]) -> None:
        ws = self._ws
        if ws is None:
            return
        try:
            await ws.send(json.dumps(message))
        except ConnectionClosed as exc:
            log_event({
                "event_type": "AGENT_SEND_FAILED",
                "level": "WARNING",
                "session_id": self._session_id,
                "exception": type(exc).__name__,
                "message": str(exc),
            })

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    async def events(self) -> AsyncIterator[AgentEvent]:
        ws = self._ws
        if ws is None:
            return

        try:
            async for raw in ws:
                try:
                    event = parse_agent_message(raw)
                except AgentProtocolError as exc:
                    log_event({
                        "event_type": "AGENT_MESSAGE_PARSE_ERROR",
                        "level": "WARNING",
                        "session_id": self._session_id,
                        "message": str(exc),
                    })
                    continue

                if event is not None:
                    yield event
        except ConnectionClosed as exc:
            log_event({
                "event_type": "AGENT_CONNECTION_LOST",
                "level": "WARNING",
                "session_id": self._session_id,
                "exception": type(exc).__name__,
                "message": str(exc),
            })
