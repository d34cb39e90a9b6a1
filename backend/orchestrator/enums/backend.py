"""Text-generation backend selector."""

from __future__ import annotations

from enum import Enum


class LLMBackend(str, Enum):
    """Chosen once per call, at session start."""

    MISTRAL = "mistral"
    OPENAI = "openai"

    @classmethod
    def default(cls) -> LLMBackend:
        return cls.MISTRAL
