"""
Deepgram live streaming STT adapter.

Core model:
- One Deepgram websocket per call, opened at session start and closed at stop.
- Leg audio is forwarded unchanged; the URL declares the leg's encoding and
  rate (mulaw or linear16, 8kHz) so no transcoding is needed.
- A receive task parses Deepgram messages into TranscriptFragment /
  SpeechStarted events on an internal queue, read through events().

Failure handling:
- Malformed messages are logged and skipped.
- A dead connection is logged, dropped, and ends events(); audio sent
  afterwards is discarded.
"""

from __future__ import annotations

import asyncio
import json
import urllib.parse
from typing import Any, AsyncIterator

from websockets.asyncio.client import ClientConnection, connect as ws_connect
from websockets.exceptions import ConnectionClosed

from adapters.asr.base import STTAdapter
from constants import (
    AudioFormat,
    DEEPGRAM_LISTEN_URL,
    DEEPGRAM_MAX_MESSAGE_BYTES,
    DEEPGRAM_MODEL,
)
from observability.logger import log_event
from orchestrator.events import SpeechStarted, STTEvent, TranscriptFragment


def parse_deepgram_message(data: dict[str, Any]) -> STTEvent | None:
    """
    Map one decoded Deepgram message to an STT event.

    Results with an empty transcript and message types we do not use
    (Metadata, UtteranceEnd, ...) map to None.
    """
    msg_type = data.get("type")

    if msg_type == "SpeechStarted":
        return SpeechStarted()

    if msg_type != "Results":
        return None

    try:
        transcript = data["channel"]["alternatives"][0]["transcript"]
    except (KeyError, IndexError, TypeError):
        return None

    if not isinstance(transcript, str) or not transcript.strip():
        return None

    return TranscriptFragment(text=transcript, is_final=bool(data.get("is_final", False)))


class DeepgramStreamingSTTAdapter(STTAdapter):
    """
    Deepgram live (`/v1/listen`) adapter.

    Public interface:
    - connect(): open the socket and start the receive task
    - send_audio(audio): forward leg audio
    - events(): async iterator of STT events
    - close(): CloseStream + socket close, ends events()
    """

    def __init__(
        self,
        *,
        api_key: str,
        audio_format: AudioFormat,
        session_id: str | None = None,
        model: str = DEEPGRAM_MODEL,
        vad_events: bool = False,
    ) -> None:
        self._api_key = api_key
        self._format = audio_format
        self._session_id = session_id
        self._model = model
        self._vad_events = vad_events

        self._ws: ClientConnection | None = None
        self._recv_task: asyncio.Task[None] | None = None
        self._events: asyncio.Queue[STTEvent | None] = asyncio.Queue()
        self._lock = asyncio.Lock()
        self._closed = False

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def build_url(self) -> str:
        params: dict[str, str] = {
            "model": self._model,
            "encoding": self._format.encoding.value,
            "sample_rate": str(self._format.sample_rate_hz),
            "channels": str(self._format.channels),
        }
        if self._vad_events:
            params["vad_events"] = "true"

        return f"{DEEPGRAM_LISTEN_URL}?{urllib.parse.urlencode(params)}"

    async def connect(self) -> None:
        async with self._lock:
            if self._ws is not None or self._closed:
                return

            self._ws = await ws_connect(
                self.build_url(),
                additional_headers={"Authorization": f"Token {self._api_key}"},
                max_size=DEEPGRAM_MAX_MESSAGE_BYTES,
            )
            self._recv_task = asyncio.create_task(self._recv_loop(self._ws))

        log_event({
            "event_type": "STT_CONNECTED",
            "session_id": self._session_id,
            "model": self._model,
            "encoding": self._format.encoding.value,
        })

    async def send_audio(self, audio: bytes) -> None:
        ws = self._ws
        if ws is None or not audio:
            return

        try:
            await ws.send(audio)
        except ConnectionClosed as exc:
            log_event({
                "event_type": "STT_SEND_FAILED",
                "level": "WARNING",
                "session_id": self._session_id,
                "exception": type(exc).__name__,
                "message": str(exc),
            })
            await self._drop_connection()

    async def events(self) -> AsyncIterator[STTEvent]:
        while True:
            item = await self._events.get()
            if item is None:
                return
            yield item

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True

        ws = self._ws
        if ws is not None:
            try:
                await ws.send(json.dumps({"type": "CloseStream"}))
            except ConnectionClosed:
                pass
        await self._drop_connection()

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    async def _drop_connection(self) -> None:
        async with self._lock:
            ws = self._ws
            self._ws = None

            task = self._recv_task
            self._recv_task = None

        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

        if ws is not None:
            await ws.close()

        self._events.put_nowait(None)

    async def _recv_loop(self, ws: ClientConnection) -> None:
        try:
            async for raw in ws:
                try:
                    data = json.loads(raw)
                except (json.JSONDecodeError, UnicodeDecodeError) as exc:
                    log_event({
                        "event_type": "STT_MESSAGE_PARSE_ERROR",
                        "level": "WARNING",
                        "session_id": self._session_id,
                        "message": str(exc),
                    })
                    continue

                if not isinstance(data, dict):
                    continue

                event = parse_deepgram_message(data)
                if event is not None:
                    self._events.put_nowait(event)

        except ConnectionClosed as exc:
            log_event({
                "event_type": "STT_CONNECTION_LOST",
                "level": "WARNING",
                "session_id": self._session_id,
                "exception": type(exc).__name__,
                "message": str(exc),
            })

        # Server closed the stream (or it died): end events()
        if not self._closed:
            async with self._lock:
                if self._ws is ws:
                    self._ws = None
                    self._recv_task = None
            self._events.put_nowait(None)
