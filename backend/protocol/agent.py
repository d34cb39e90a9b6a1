"""
ElevenLabs conversational agent message formats.

Outbound:
    conversation_initiation_client_data (declares ulaw_8000 in and out)
    {"user_audio_chunk": <base64 μ-law>}
    {"type": "pong", "event_id": <id>}

Inbound (everything else is ignored):
    audio         -> audio_event.audio_base_64
    interruption
    ping          -> ping_event.event_id
"""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any

from constants import ELEVENLABS_AGENT_AUDIO_FORMAT
from orchestrator.events import AgentAudio, AgentEvent, AgentInterruption, AgentPing


class AgentProtocolError(ValueError):
    """Malformed agent socket message."""


def build_initiation_message() -> dict[str, Any]:
    return {
        "type": "conversation_initiation_client_data",
        "conversation_config_override": {
            "agent": {
                "agent_output_audio_format": ELEVENLABS_AGENT_AUDIO_FORMAT,
                "user_input_audio_format": ELEVENLABS_AGENT_AUDIO_FORMAT,
            },
        },
    }


def build_user_audio_chunk(audio: bytes) -> dict[str, Any]:
    return {"user_audio_chunk": base64.b64encode(audio).decode("ascii")}


def build_pong(event_id: Any) -> dict[str, Any]:
    return {"type": "pong", "event_id": event_id}


def parse_agent_message(raw: str | bytes) -> AgentEvent | None:
    """Decode one inbound agent message; None for types we do not act on."""
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise AgentProtocolError(f"invalid json: {exc}") from exc
    if not isinstance(data, dict):
        raise AgentProtocolError("message must be a JSON object")

    audio_event = data.get("audio_event")
    if isinstance(audio_event, dict) and audio_event.get("audio_base_64"):
        try:
            audio = base64.b64decode(audio_event["audio_base_64"], validate=True)
        except (binascii.Error, ValueError, TypeError) as exc:
            raise AgentProtocolError(f"invalid audio payload: {exc}") from exc
        return AgentAudio(audio=audio)

    msg_type = data.get("type")

    if msg_type == "interruption":
        return AgentInterruption()

    if msg_type == "ping":
        ping_event = data.get("ping_event")
        event_id = ping_event.get("event_id") if isinstance(ping_event, dict) else None
        if event_id is None:
            raise AgentProtocolError("ping without event_id")
        return AgentPing(event_id=event_id)

    return None
