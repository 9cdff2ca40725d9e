"""Text-generation adapter for the Salon Conversation Insights dashboard.

Every TextProvider maps to one implementation in COMPLETERS, and all of them
share the signature (transcript, prompt, credential) -> text. Each sends the
prompt as the system instruction and the transcript as the user content.
"""

import logging
from collections.abc import Callable
from typing import Any

from src.config import get_settings
from src.models import CredentialProvider, TextProvider
from src.services.http import missing_field_error, post_json, require_credential

logger = logging.getLogger(__name__)

Completer = Callable[[str, str, str | None], str]

# Vendor whose key each text provider uses
CREDENTIAL_FOR: dict[TextProvider, CredentialProvider] = {
    TextProvider.OPENAI: CredentialProvider.OPENAI,
    TextProvider.GEMINI: CredentialProvider.GEMINI,
    TextProvider.GROQ: CredentialProvider.GROQ,
}


def _chat_messages(transcript: str, prompt: str) -> list[dict[str, str]]:
    return [
        {"role": "system", "content": prompt},
        {"role": "user", "content": transcript},
    ]


def _first_chat_choice(provider: str, body: dict[str, Any]) -> str:
    """Extract choices[0].message.content from an OpenAI-style response."""
    try:
        content = body["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as e:
        raise missing_field_error(provider, "choices") from e
    # Refusals and tool calls come back with a null content
    if not isinstance(content, str):
        raise missing_field_error(provider, "content")
    return content


def complete_with_openai(transcript: str, prompt: str, credential: str | None) -> str:
    """Generate text with the OpenAI chat completions API."""
    api_key = require_credential("OpenAI", credential)
    settings = get_settings()
    body = post_json(
        "OpenAI",
        f"{settings.OPENAI_BASE_URL}/chat/completions",
        headers={"Authorization": f"Bearer {api_key}"},
        json={
            "model": settings.OPENAI_CHAT_MODEL,
            "messages": _chat_messages(transcript, prompt),
            "temperature": settings.COMPLETION_TEMPERATURE,
        },
    )
    return _first_chat_choice("OpenAI", body)


def complete_with_gemini(transcript: str, prompt: str, credential: str | None) -> str:
    """Generate text with the Gemini generateContent API.

    The prompt goes in systemInstruction and the transcript is the single
    user turn. Authentication uses the x-goog-api-key header.
    """
    api_key = require_credential("Gemini", credential)
    settings = get_settings()
    body = post_json(
        "Gemini",
        f"{settings.GEMINI_BASE_URL}/models/{settings.GEMINI_MODEL}:generateContent",
        headers={"x-goog-api-key": api_key},
        json={
            "systemInstruction": {"parts": [{"text": prompt}]},
            "contents": [{"role": "user", "parts": [{"text": transcript}]}],
            "generationConfig": {"temperature": settings.COMPLETION_TEMPERATURE},
        },
    )
    try:
        text = body["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError) as e:
        raise missing_field_error("Gemini", "candidates") from e
    if not isinstance(text, str):
        raise missing_field_error("Gemini", "text")
    return text


def complete_with_groq(transcript: str, prompt: str, credential: str | None) -> str:
    """Generate text with Groq's OpenAI-compatible chat completions API."""
    api_key = require_credential("Groq", credential)
    settings = get_settings()
    body = post_json(
        "Groq",
        f"{settings.GROQ_BASE_URL}/chat/completions",
        headers={"Authorization": f"Bearer {api_key}"},
        json={
            "model": settings.GROQ_CHAT_MODEL,
            "messages": _chat_messages(transcript, prompt),
            "temperature": settings.COMPLETION_TEMPERATURE,
        },
    )
    return _first_chat_choice("Groq", body)


COMPLETERS: dict[TextProvider, Completer] = {
    TextProvider.OPENAI: complete_with_openai,
    TextProvider.GEMINI: complete_with_gemini,
    TextProvider.GROQ: complete_with_groq,
}


def complete(
    transcript: str,
    prompt: str,
    provider: TextProvider,
    credential: str | None,
) -> str:
    """Run one analysis prompt over a transcript with the selected provider.

    Args:
        transcript: Conversation transcript (user content).
        prompt: Prompt template text (system instruction).
        provider: The selected text provider.
        credential: API key for the provider's vendor.

    Returns:
        The text of the first generated choice.

    Raises:
        MissingCredentialError: If the credential is blank.
        ProviderRejectedError: If the provider returned an error payload.
        ProviderTransportError: If the request failed in transit.
    """
    provider = TextProvider(provider)
    logger.info(f"Requesting completion from {provider.value} ({len(transcript)} chars)")
    return COMPLETERS[provider](transcript, prompt, credential)
