"""Closed sets of provider identities used across the dashboard."""

from enum import Enum


class CredentialProvider(str, Enum):
    """Vendors an owner can store an API key for."""

    OPENAI = "openai"
    GEMINI = "gemini"
    GROQ = "groq"


class SpeechProvider(str, Enum):
    """Selectable speech-to-text providers.

    GROQ has no transcription endpoint of its own and is served by the
    OPENAI endpoint, so it needs both vendors' keys.
    """

    OPENAI = "openai"
    GROQ = "groq"


class TextProvider(str, Enum):
    """Selectable text-generation providers."""

    OPENAI = "openai"
    GEMINI = "gemini"
    GROQ = "groq"
