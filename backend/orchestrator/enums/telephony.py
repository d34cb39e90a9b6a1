"""Session-creation API enumerations."""

from __future__ import annotations

from enum import Enum


class CallerService(str, Enum):
    """Telephony provider that places the outbound call."""

    TWILIO = "twilio"
    VONAGE = "vonage"


class Pipeline(str, Enum):
    """
    NEW_CUSTOM:
        Managed pipeline (Deepgram -> LLM backend -> TTS).

    ELEVENLABS:
        Delegated ElevenLabs conversational agent.
    """

    NEW_CUSTOM = "new_custom"
    ELEVENLABS = "elevenlabs"
