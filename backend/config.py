"""
Application configuration.

Responsibilities:
- Load deployment-specific configuration
- Read environment variables
- Provide a typed, immutable config object

Non-responsibilities:
- No orchestration logic
- No protocol constants (see constants.py)
- No runtime mutation
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from constants import (
    GREETING_TEXT,
    MISTRAL_DEFAULT_MODEL,
    OLLAMA_DEFAULT_URL,
    OPENAI_DEFAULT_MODEL,
)


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class AppConfig:
    """
    Immutable application configuration.

    Constructed once at process startup and stored on app.state.
    Passed downward to the adapter factory, call initiators and gateways.
    """

    # ------------------------------------------------------------------
    # Environment
    # ------------------------------------------------------------------

    env: str = "dev"
    log_level: str = "INFO"
    server_url: str | None = None
    port: int = 8080

    # ------------------------------------------------------------------
    # Speech-to-text
    # ------------------------------------------------------------------

    deepgram_api_key: str | None = None

    # ------------------------------------------------------------------
    # Text generation
    # ------------------------------------------------------------------

    openai_api_key: str | None = None
    openai_model: str = OPENAI_DEFAULT_MODEL
    ollama_url: str = OLLAMA_DEFAULT_URL
    mistral_model: str = MISTRAL_DEFAULT_MODEL

    # ------------------------------------------------------------------
    # Speech synthesis
    # ------------------------------------------------------------------

    tts_provider: str = "speechmatics"
    speechmatics_api_key: str | None = None
    speechmatics_voice: str = "sarah"
    elevenlabs_api_key: str | None = None
    elevenlabs_voice_id: str = "21m00Tcm4TlvDq8ikWAM"
    elevenlabs_model_id: str = "eleven_turbo_v2"

    # ------------------------------------------------------------------
    # Delegated agent
    # ------------------------------------------------------------------

    elevenlabs_agent_id: str | None = None

    # ------------------------------------------------------------------
    # Telephony providers
    # ------------------------------------------------------------------

    twilio_account_sid: str | None = None
    twilio_auth_token: str | None = None
    twilio_from_number: str | None = None

    vonage_application_id: str | None = None
    vonage_private_key_path: str | None = None
    vonage_number: str | None = None

    # ------------------------------------------------------------------
    # Conversation behaviour
    # ------------------------------------------------------------------

    greeting_text: str = GREETING_TEXT
    barge_in_enabled: bool = False

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @staticmethod
    def load_from_env() -> AppConfig:
        """
        Load configuration from environment variables.

        Credentials are optional here; whichever adapter or call initiator
        needs a missing one raises when it is built.
        """
        return AppConfig(
            env=os.environ.get("ENV", "dev"),
            log_level=os.environ.get("LOG_LEVEL", "INFO"),
            server_url=os.environ.get("SERVER_URL"),
            port=int(os.environ.get("PORT", "8080")),

            deepgram_api_key=os.environ.get("DEEPGRAM_API_KEY"),

            openai_api_key=os.environ.get("OPENAI_API_KEY"),
            openai_model=os.environ.get("OPENAI_MODEL", OPENAI_DEFAULT_MODEL),
            ollama_url=os.environ.get("OLLAMA_URL", OLLAMA_DEFAULT_URL),
            mistral_model=os.environ.get("MISTRAL_MODEL", MISTRAL_DEFAULT_MODEL),

            tts_provider=os.environ.get("TTS_PROVIDER", "speechmatics"),
            speechmatics_api_key=os.environ.get("SPEECHMATICS_API_KEY"),
            speechmatics_voice=os.environ.get("SPEECHMATICS_VOICE", "sarah"),
            elevenlabs_api_key=os.environ.get("ELEVENLABS_API_KEY"),
            elevenlabs_voice_id=os.environ.get("ELEVENLABS_VOICE_ID", "21m00Tcm4TlvDq8ikWAM"),
            elevenlabs_model_id=os.environ.get("ELEVENLABS_MODEL_ID", "eleven_turbo_v2"),

            elevenlabs_agent_id=os.environ.get("ELEVENLABS_AGENT_ID"),

            twilio_account_sid=os.environ.get("TWILIO_ACC"),
            twilio_auth_token=os.environ.get("TWILIO_KEY"),
            twilio_from_number=os.environ.get("FROM_NUMBER"),

            vonage_application_id=os.environ.get("VONAGE_APPLICATION_ID"),
            vonage_private_key_path=os.environ.get("VONAGE_PRIVATE_KEY_PATH"),
            vonage_number=os.environ.get("VONAGE_NUMBER"),

            greeting_text=os.environ.get("GREETING_TEXT", GREETING_TEXT),
            barge_in_enabled=_env_flag("BARGE_IN_ENABLED", False),
        )


def require(value: str | None, env_name: str) -> str:
    """Return a credential or raise naming the missing environment variable."""
    if not value:
        raise RuntimeError(f"{env_name} environment variable not set")
    return value
