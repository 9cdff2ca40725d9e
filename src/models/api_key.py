"""ApiKey model for per-owner provider credentials."""

from uuid import uuid4

from sqlalchemy import String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from . import Base


class ApiKey(Base):
    """SQLAlchemy model for a provider API key.

    key_hash holds the secret exactly as the owner entered it; it is passed
    through to the provider adapters unmodified.
    """

    __tablename__ = "api_keys"
    __table_args__ = (UniqueConstraint("created_by", "provider", name="uq_api_keys_owner_provider"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    provider: Mapped[str] = mapped_column(String(50), nullable=False)
    key_hash: Mapped[str] = mapped_column(Text, nullable=False)
    created_by: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    def __repr__(self) -> str:
        """Return string representation of the ApiKey without the secret."""
        return f"<ApiKey(provider={self.provider!r}, created_by={self.created_by!r})>"
