"""
BEHAVIOUR-AS-CONSTANTS
----------------------
Single source of truth for the timing, framing and vendor constants of the
call orchestrator.

Rules:
- If changing a value changes runtime behavior, it belongs here.
- No magic numbers elsewhere in the codebase.
- Deployment-specific values (keys, hosts) live in config.py instead.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Final, Tuple


# =============================================================================
# Audio formats
# =============================================================================

class Encoding(str, Enum):
    """Sample encodings understood by the frame transcoder."""

    MULAW = "mulaw"
    LINEAR16 = "linear16"


AUDIO_FRAME_MS: Final[int] = 20
AUDIO_CHANNELS: Final[int] = 1
PCM_SAMPLE_WIDTH_BYTES: Final[int] = 2  # PCM16 (signed, little-endian)
MULAW_SAMPLE_WIDTH_BYTES: Final[int] = 1


@dataclass(frozen=True)
class AudioFormat:
    """Encoding + rate of one audio leg. Frames are always mono, AUDIO_FRAME_MS long."""

    encoding: Encoding
    sample_rate_hz: int
    frame_ms: int = AUDIO_FRAME_MS
    channels: int = AUDIO_CHANNELS

    @property
    def sample_width_bytes(self) -> int:
        if self.encoding is Encoding.MULAW:
            return MULAW_SAMPLE_WIDTH_BYTES
        return PCM_SAMPLE_WIDTH_BYTES

    @property
    def samples_per_frame(self) -> int:
        return (self.sample_rate_hz * self.frame_ms) // 1000

    @property
    def bytes_per_frame(self) -> int:
        return self.samples_per_frame * self.sample_width_bytes * self.channels

    @property
    def frame_duration_s(self) -> float:
        return self.frame_ms / 1000.0


# Twilio media streams: μ-law 8kHz, 160 bytes per 20ms frame
TWILIO_LEG_FORMAT: Final[AudioFormat] = AudioFormat(Encoding.MULAW, 8_000)

# Vonage websocket: linear PCM16 8kHz, 320 bytes per 20ms frame
VONAGE_LEG_FORMAT: Final[AudioFormat] = AudioFormat(Encoding.LINEAR16, 8_000)

# ElevenLabs conversational agent in/out (ulaw_8000)
AGENT_AUDIO_FORMAT: Final[AudioFormat] = AudioFormat(Encoding.MULAW, 8_000)

# TTS providers are asked for raw PCM16 16kHz
TTS_OUTPUT_FORMAT: Final[AudioFormat] = AudioFormat(Encoding.LINEAR16, 16_000)

PROVIDER_CHUNK_SIZE: Final[int] = 4096

# RIFF container detection for TTS payloads that arrive wrapped
WAV_RIFF_MAGIC: Final[bytes] = b"RIFF"
WAV_WAVE_MAGIC: Final[bytes] = b"WAVE"

# =============================================================================
# Transcript aggregation
# =============================================================================

# Silence window after the last transcript fragment before an utterance is final
TRANSCRIPT_DEBOUNCE_S: Final[float] = 1.2

# =============================================================================
# Reply segmentation
# =============================================================================

SENTENCE_TERMINATORS: Final[Tuple[str, ...]] = (".", "!", "?")

# =============================================================================
# Conversation
# =============================================================================

GREETING_TEXT: Final[str] = (
    "Hi, this is Julie calling from Eagermind Agency. How's everything going today?"
)

# =============================================================================
# Speech-to-text (Deepgram live)
# =============================================================================

DEEPGRAM_LISTEN_URL: Final[str] = "wss://api.deepgram.com/v1/listen"
DEEPGRAM_MODEL: Final[str] = "nova-2-phonecall"
DEEPGRAM_MAX_MESSAGE_BYTES: Final[int] = 2**22

# =============================================================================
# Text generation
# =============================================================================

OPENAI_DEFAULT_MODEL: Final[str] = "gpt-4o-mini"
OLLAMA_DEFAULT_URL: Final[str] = "http://localhost:11434"
OLLAMA_CHAT_PATH: Final[str] = "/api/chat"
MISTRAL_DEFAULT_MODEL: Final[str] = "mistral"

# =============================================================================
# ElevenLabs
# =============================================================================

ELEVENLABS_API_BASE: Final[str] = "https://api.elevenlabs.io"
ELEVENLABS_SIGNED_URL_PATH: Final[str] = "/v1/convai/conversation/get_signed_url"
ELEVENLABS_AGENT_AUDIO_FORMAT: Final[str] = "ulaw_8000"
ELEVENLABS_TTS_OUTPUT_FORMAT: Final[str] = "pcm_16000"
ELEVENLABS_HTTP_TIMEOUT_S: Final[float] = 10.0

# =============================================================================
# Session ids
# =============================================================================

SESSION_ID_PREFIX: Final[str] = "sess_"
SESSION_ID_HEX_CHARS: Final[int] = 12
