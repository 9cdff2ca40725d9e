"""HTTP helper shared by the speech and text provider adapters.

Every provider call goes through post_json so that all adapters surface the
same three failure kinds: a missing credential, a request the provider
rejected, and a transport failure.
"""

import logging
from typing import Any

import requests

from src.config import get_settings

logger = logging.getLogger(__name__)


class ProviderError(Exception):
    """Base exception for failures talking to an external AI provider.

    Attributes:
        provider: Human-readable provider name (e.g. "OpenAI").
    """

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(message)
        self.provider = provider


class MissingCredentialError(ProviderError):
    """Raised when no API key is available for the provider."""

    def __init__(self, provider: str) -> None:
        super().__init__(
            provider,
            f"{provider} API key is not configured. Add it on the Settings tab.",
        )


class ProviderRejectedError(ProviderError):
    """Raised when the provider answered with an error payload."""

    pass


class ProviderTransportError(ProviderError):
    """Raised when the request never produced a usable HTTP response."""

    pass


def require_credential(provider: str, credential: str | None) -> str:
    """Return the credential or raise MissingCredentialError if it is blank."""
    if not credential or not credential.strip():
        raise MissingCredentialError(provider)
    return credential


def post_json(
    provider: str,
    url: str,
    *,
    headers: dict[str, str],
    json: dict[str, Any] | None = None,
    data: dict[str, str] | None = None,
    files: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """POST to a provider endpoint and return the decoded JSON body.

    Args:
        provider: Human-readable provider name used in error messages.
        url: Endpoint URL.
        headers: Request headers, including authentication.
        json: JSON body for JSON endpoints.
        data: Form fields for multipart endpoints.
        files: Multipart file parts.

    Returns:
        The decoded JSON response.

    Raises:
        ProviderTransportError: If the request fails before a response is
            received or the body is not a JSON object.
        ProviderRejectedError: If the response carries an "error" object or
            a non-2xx status.
    """
    settings = get_settings()
    try:
        response = requests.post(
            url,
            headers=headers,
            json=json,
            data=data,
            files=files,
            timeout=settings.PROVIDER_TIMEOUT_SECONDS,
        )
    except requests.RequestException as e:
        logger.error(f"{provider} request to {url} failed: {e}", exc_info=True)
        raise ProviderTransportError(provider, f"{provider} API request failed: {e}") from e

    try:
        body = response.json()
    except ValueError as e:
        logger.error(
            f"{provider} returned a non-JSON response (HTTP {response.status_code})"
        )
        raise ProviderTransportError(
            provider,
            f"{provider} API returned an unreadable response (HTTP {response.status_code})",
        ) from e

    if isinstance(body, dict) and body.get("error"):
        error = body["error"]
        message = error.get("message") if isinstance(error, dict) else str(error)
        logger.warning(f"{provider} rejected request: {message}")
        raise ProviderRejectedError(provider, f"{provider} API error: {message}")

    if not response.ok:
        logger.warning(f"{provider} returned HTTP {response.status_code}")
        raise ProviderRejectedError(
            provider, f"{provider} API error: HTTP {response.status_code}"
        )

    if not isinstance(body, dict):
        logger.error(f"{provider} returned a {type(body).__name__} instead of a JSON object")
        raise ProviderTransportError(
            provider,
            f"{provider} API returned an unreadable response (HTTP {response.status_code})",
        )

    return body


def missing_field_error(provider: str, field: str) -> ProviderRejectedError:
    """Build the error raised when a response lacks an expected field."""
    return ProviderRejectedError(
        provider, f"{provider} API error: response has no '{field}' field"
    )
