"""Credential store for per-owner provider API keys."""

import logging

from sqlalchemy.orm import Session

from src.models import ApiKey, CredentialProvider

logger = logging.getLogger(__name__)


def _validate_provider(provider: str) -> str:
    try:
        return CredentialProvider(provider).value
    except ValueError:
        valid = ", ".join(p.value for p in CredentialProvider)
        raise ValueError(f"Unknown provider: {provider}. Must be one of: {valid}") from None


def list_api_keys(session: Session, owner_id: str) -> dict[str, str]:
    """Return the owner's API keys keyed by vendor name.

    Args:
        session: SQLAlchemy database session.
        owner_id: Identifier of the owning user.

    Returns:
        Mapping of provider name (e.g. "openai") to secret.
    """
    rows = session.query(ApiKey).filter_by(created_by=owner_id).all()
    return {row.provider: row.key_hash for row in rows}


def save_api_key(session: Session, owner_id: str, provider: str, secret: str) -> ApiKey:
    """Create or replace the owner's API key for a provider.

    Args:
        session: SQLAlchemy database session.
        owner_id: Identifier of the owning user.
        provider: Vendor name, one of CredentialProvider.
        secret: The API key as entered.

    Returns:
        ApiKey: The persisted row.

    Raises:
        ValueError: If the provider is unknown or the secret is blank.
    """
    provider = _validate_provider(provider)
    secret = secret.strip() if secret else ""
    if not secret:
        raise ValueError("API key cannot be empty")

    api_key = session.query(ApiKey).filter_by(created_by=owner_id, provider=provider).first()
    if api_key is None:
        api_key = ApiKey(created_by=owner_id, provider=provider, key_hash=secret)
        session.add(api_key)
        logger.info(f"Added {provider} API key for {owner_id}")
    else:
        api_key.key_hash = secret
        logger.info(f"Updated {provider} API key for {owner_id}")

    session.commit()
    session.refresh(api_key)
    return api_key


def delete_api_key(session: Session, owner_id: str, provider: str) -> bool:
    """Delete the owner's API key for a provider.

    Returns:
        True if a key was deleted, False if none existed.
    """
    provider = _validate_provider(provider)
    deleted = (
        session.query(ApiKey)
        .filter_by(created_by=owner_id, provider=provider)
        .delete()
    )
    session.commit()
    if deleted:
        logger.info(f"Deleted {provider} API key for {owner_id}")
    return deleted > 0
