"""InsightReport SQLAlchemy model."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import uuid4

from sqlalchemy import DateTime, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from . import Base

if TYPE_CHECKING:
    from .audio_upload import AudioUpload


class InsightReport(Base):
    """Markdown report produced by one completed pipeline run."""

    __tablename__ = "insight_reports"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    audio_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("audio_uploads.id"),
        nullable=False,
        index=True,
    )
    report_md: Mapped[str] = mapped_column(Text, nullable=False)
    provider: Mapped[str] = mapped_column(String(50), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )

    audio_upload: Mapped[AudioUpload] = relationship("AudioUpload", back_populates="reports")

    def __repr__(self) -> str:
        """Return string representation of the InsightReport."""
        return (
            f"<InsightReport(id={self.id!r}, audio_id={self.audio_id!r}, "
            f"provider={self.provider!r})>"
        )
