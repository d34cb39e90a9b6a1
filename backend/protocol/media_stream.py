"""
Telephony leg wire formats.

Twilio media streams (JSON text frames):
- inbound:  connected | start{streamSid, customParameters} | media{payload} | stop
- outbound: {"event": "media", "streamSid", "media": {"payload"}}
            {"event": "clear", "streamSid"}
  Payloads are base64 μ-law 8kHz.

Vonage websockets:
- first text frame: {"event": "websocket:connected", "content-type": ...}
- then raw binary linear PCM16 8kHz frames in both directions

Decoders raise LegProtocolError on malformed input; callers log and drop
the single message.
"""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any, Mapping

from orchestrator.events import LegEvent, LegMedia, LegStarted, LegStopped


class LegProtocolError(ValueError):
    """Malformed telephony leg message."""


def _load_json(raw: str | bytes) -> dict[str, Any]:
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise LegProtocolError(f"invalid json: {exc}") from exc

    if not isinstance(data, dict):
        raise LegProtocolError("message must be a JSON object")
    return data


# -------------------------
# Twilio
# -------------------------

def parse_twilio_message(raw: str | bytes) -> LegEvent | None:
    """
    Decode one Twilio media-stream message.

    Returns None for messages with no orchestrator meaning
    (connected, mark, dtmf, unknown events).
    """
    data = _load_json(raw)
    event = data.get("event")

    if event == "start":
        start = data.get("start")
        if not isinstance(start, dict):
            raise LegProtocolError("start event without start object")

        stream_sid = start.get("streamSid") or data.get("streamSid")
        params = start.get("customParameters") or {}
        if not isinstance(params, dict):
            raise LegProtocolError("customParameters must be an object")
        return LegStarted(stream_id=stream_sid, params=dict(params))

    if event == "media":
        media = data.get("media")
        payload = media.get("payload") if isinstance(media, dict) else None
        if not isinstance(payload, str):
            raise LegProtocolError("media event without payload")
        try:
            audio = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise LegProtocolError(f"invalid base64 payload: {exc}") from exc
        return LegMedia(payload=audio)

    if event == "stop":
        return LegStopped()

    return None


def encode_twilio_media(stream_sid: str, audio: bytes) -> str:
    return json.dumps({
        "event": "media",
        "streamSid": stream_sid,
        "media": {"payload": base64.b64encode(audio).decode("ascii")},
    })


def encode_twilio_clear(stream_sid: str) -> str:
    return json.dumps({"event": "clear", "streamSid": stream_sid})


# -------------------------
# Vonage
# -------------------------

VONAGE_CONNECTED_EVENT = "websocket:connected"


def parse_vonage_text(raw: str, query_params: Mapping[str, str]) -> LegEvent | None:
    """
    Decode a Vonage text frame.

    The connected event starts the call. Vonage carries custom values as
    query parameters on the websocket URL, so those become the start params.
    """
    data = _load_json(raw)
    if data.get("event") != VONAGE_CONNECTED_EVENT:
        return None

    params: dict[str, Any] = dict(query_params)
    content_type = data.get("content-type")
    if content_type is not None:
        params["content-type"] = content_type
    return LegStarted(stream_id=None, params=params)
