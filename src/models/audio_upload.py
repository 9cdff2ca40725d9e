"""AudioUpload model for storing uploaded audio metadata."""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import uuid4

from sqlalchemy import DateTime, Float, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from . import Base

if TYPE_CHECKING:
    from .insight_report import InsightReport


class AudioUpload(Base):
    """SQLAlchemy model for an uploaded conversation recording.

    Rows are written once, right after the raw bytes are stored, and are
    never updated afterwards.
    """

    __tablename__ = "audio_uploads"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    file_path: Mapped[str] = mapped_column(String(500), nullable=False)
    duration_sec: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )

    reports: Mapped[list["InsightReport"]] = relationship(
        "InsightReport",
        back_populates="audio_upload",
    )

    def __repr__(self) -> str:
        """Return string representation of the AudioUpload."""
        return f"<AudioUpload(id={self.id!r}, file_path={self.file_path!r})>"
