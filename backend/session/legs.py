"""
Telephony legs over a FastAPI websocket.

A leg owns the socket to the telephony provider and hides its wire format:
- events(): LegStarted / LegMedia / LegStopped decoded from the socket,
  ending when the provider disconnects
- send_audio(frame): one leg-encoded frame of agent speech
- clear(): ask the provider to drop audio it has buffered but not played
- is_open(): whether egress is still writable

Malformed messages are logged and dropped; they never end the leg.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import AsyncIterator, Mapping

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from constants import AudioFormat, TWILIO_LEG_FORMAT, VONAGE_LEG_FORMAT
from observability.logger import log_event
from orchestrator.events import LegEvent, LegMedia, LegStarted
from protocol.media_stream import (
    LegProtocolError,
    encode_twilio_clear,
    encode_twilio_media,
    parse_twilio_message,
    parse_vonage_text,
)


class TelephonyLeg(ABC):
    """Duplex audio/event stream to one phone call."""

    provider: str = "unknown"

    def __init__(self, ws: WebSocket) -> None:
        self._ws = ws
        self._closed = False
        self.stream_id: str | None = None

    @property
    @abstractmethod
    def audio_format(self) -> AudioFormat:
        raise NotImplementedError

    @abstractmethod
    def _decode(self, message: Mapping[str, object]) -> LegEvent | None:
        """Decode one ASGI websocket.receive message. May raise LegProtocolError."""
        raise NotImplementedError

    @abstractmethod
    async def send_audio(self, frame: bytes) -> None:
        raise NotImplementedError

    @abstractmethod
    async def clear(self) -> None:
        raise NotImplementedError

    def is_open(self) -> bool:
        return (
            not self._closed
            and self._ws.client_state == WebSocketState.CONNECTED
            and self._ws.application_state == WebSocketState.CONNECTED
        )

    async def events(self) -> AsyncIterator[LegEvent]:
        while not self._closed:
            message = await self._ws.receive()
            if message.get("type") == "websocket.disconnect":
                self._closed = True
                return

            try:
                event = self._decode(message)
            except LegProtocolError as exc:
                log_event({
                    "event_type": "LEG_MESSAGE_PARSE_ERROR",
                    "level": "WARNING",
                    "session_id": self.stream_id,
                    "provider": self.provider,
                    "message": str(exc),
                })
                continue

            if event is None:
                continue
            if isinstance(event, LegStarted) and event.stream_id:
                self.stream_id = event.stream_id
            yield event

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._ws.application_state == WebSocketState.CONNECTED:
            await self._ws.close()


class TwilioLeg(TelephonyLeg):
    """Twilio media stream: JSON frames, base64 μ-law 8kHz."""

    provider = "twilio"

    @property
    def audio_format(self) -> AudioFormat:
        return TWILIO_LEG_FORMAT

    def _decode(self, message: Mapping[str, object]) -> LegEvent | None:
        text = message.get("text")
        if text is None:
            raise LegProtocolError("unexpected binary frame on twilio leg")
        return parse_twilio_message(text)  # type: ignore[arg-type]

    async def send_audio(self, frame: bytes) -> None:
        if self.stream_id is None or not self.is_open():
            return
        await self._ws.send_text(encode_twilio_media(self.stream_id, frame))

    async def clear(self) -> None:
        if self.stream_id is None or not self.is_open():
            return
        await self._ws.send_text(encode_twilio_clear(self.stream_id))


class VonageLeg(TelephonyLeg):
    """
    Vonage websocket: one JSON connected frame, then binary PCM16 8kHz.

    Vonage has no clear command; clear() is a no-op and barge-in only
    drops local playback.
    """

    provider = "vonage"

    def __init__(self, ws: WebSocket, query_params: Mapping[str, str]) -> None:
        super().__init__(ws)
        self._query_params = dict(query_params)

    @property
    def audio_format(self) -> AudioFormat:
        return VONAGE_LEG_FORMAT

    def _decode(self, message: Mapping[str, object]) -> LegEvent | None:
        data = message.get("bytes")
        if data is not None:
            return LegMedia(payload=data)  # type: ignore[arg-type]

        text = message.get("text")
        if text is None:
            return None
        return parse_vonage_text(text, self._query_params)  # type: ignore[arg-type]

    async def send_audio(self, frame: bytes) -> None:
        if not self.is_open():
            return
        await self._ws.send_bytes(frame)

    async def clear(self) -> None:
        return None
