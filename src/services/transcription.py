"""Speech-to-text adapter for the Salon Conversation Insights dashboard.

Each SpeechProvider maps to one implementation in TRANSCRIBERS. The secondary
provider (Groq) has no transcription endpoint of its own, so its
implementation sends the same request to the OpenAI Whisper endpoint with
the OpenAI key. The Groq key is still accepted so the signature stays the
same if Groq ships its own endpoint.
"""

import logging
import mimetypes
from collections.abc import Callable, Mapping
from dataclasses import dataclass

from src.config import get_settings
from src.models import CredentialProvider, SpeechProvider
from src.services.http import missing_field_error, post_json, require_credential

logger = logging.getLogger(__name__)

Transcriber = Callable[["AudioFile", Mapping[str, str]], str]

# Credentials each speech provider needs, checked in this order
REQUIRED_CREDENTIALS: dict[SpeechProvider, tuple[CredentialProvider, ...]] = {
    SpeechProvider.OPENAI: (CredentialProvider.OPENAI,),
    SpeechProvider.GROQ: (CredentialProvider.GROQ, CredentialProvider.OPENAI),
}


@dataclass(frozen=True)
class AudioFile:
    """An uploaded audio file held in memory.

    Attributes:
        filename: Original file name as selected by the user.
        data: Raw file bytes.
    """

    filename: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def content_type(self) -> str:
        guessed, _ = mimetypes.guess_type(self.filename)
        return guessed or "application/octet-stream"


def _request_whisper(audio: AudioFile, api_key: str, provider_label: str) -> str:
    """Send audio to the OpenAI transcription endpoint.

    Args:
        audio: The audio file to transcribe.
        api_key: OpenAI API key used for the request.
        provider_label: Provider name used in error messages.

    Returns:
        The transcript text.
    """
    settings = get_settings()
    body = post_json(
        provider_label,
        f"{settings.OPENAI_BASE_URL}/audio/transcriptions",
        headers={"Authorization": f"Bearer {api_key}"},
        data={
            "model": settings.TRANSCRIPTION_MODEL,
            "language": settings.TRANSCRIPTION_LANGUAGE,
        },
        files={"file": (audio.filename, audio.data, audio.content_type)},
    )
    text = body.get("text")
    if not isinstance(text, str):
        raise missing_field_error(provider_label, "text")
    logger.info(f"{provider_label} transcription returned {len(text)} chars")
    return text


def transcribe_with_whisper(audio: AudioFile, credentials: Mapping[str, str]) -> str:
    """Transcribe with OpenAI Whisper using the OpenAI key."""
    api_key = require_credential("OpenAI", credentials.get(CredentialProvider.OPENAI.value))
    return _request_whisper(audio, api_key, "Whisper")


def transcribe_with_groq(audio: AudioFile, credentials: Mapping[str, str]) -> str:
    """Transcribe for the Groq selection through the OpenAI Whisper endpoint.

    The Groq key in credentials is not sent; the request is authenticated
    with the OpenAI key.
    """
    api_key = require_credential("OpenAI", credentials.get(CredentialProvider.OPENAI.value))
    return _request_whisper(audio, api_key, "Speech recognition")


TRANSCRIBERS: dict[SpeechProvider, Transcriber] = {
    SpeechProvider.OPENAI: transcribe_with_whisper,
    SpeechProvider.GROQ: transcribe_with_groq,
}


def transcribe(
    audio: AudioFile,
    provider: SpeechProvider,
    credentials: Mapping[str, str],
) -> str:
    """Transcribe audio with the selected speech provider.

    Args:
        audio: The audio file to transcribe.
        provider: The selected speech provider.
        credentials: Owner's API keys keyed by vendor name.

    Returns:
        The plain transcript text.

    Raises:
        MissingCredentialError: If a required key is absent.
        ProviderRejectedError: If the provider returned an error payload.
        ProviderTransportError: If the request failed in transit.
    """
    provider = SpeechProvider(provider)
    logger.info(f"Transcribing {audio.filename} ({audio.size} bytes) with {provider.value}")
    return TRANSCRIBERS[provider](audio, credentials)
