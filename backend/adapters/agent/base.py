"""
Hosted conversational agent contract.

The agent owns speech recognition, turn-taking, reply generation and
synthesis. The session only relays audio and reacts to control events.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, AsyncIterator

from constants import AudioFormat
from orchestrator.events import AgentEvent


class ConversationalAgentAdapter(ABC):
    """Abstract base class for delegated-agent sockets."""

    @property
    @abstractmethod
    def audio_format(self) -> AudioFormat:
        """Format of audio in both directions on the agent socket."""
        raise NotImplementedError

    @abstractmethod
    async def connect(self) -> None:
        """Open the agent socket and send the initiation message."""
        raise NotImplementedError

    @abstractmethod
    async def send_audio(self, audio: bytes) -> None:
        """Forward caller audio, already in audio_format."""
        raise NotImplementedError

    @abstractmethod
    async def send_pong(self, event_id: Any) -> None:
        raise NotImplementedError

    @abstractmethod
    def events(self) -> AsyncIterator[AgentEvent]:
        """Agent audio and control events, until the socket closes."""
        raise NotImplementedError

    @abstractmethod
    async def close(self) -> None:
        """Idempotent."""
        raise NotImplementedError
