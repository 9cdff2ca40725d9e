"""SystemPrompt model for the operator-edited analysis prompts."""

from datetime import datetime
from enum import Enum
from uuid import uuid4

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from . import Base


class PromptType(str, Enum):
    """The two analyses every report contains, in report order."""

    SERVICE_EVALUATION = "service_evaluation"
    CUSTOMER_INSIGHT = "customer_insight"


class SystemPrompt(Base):
    """SQLAlchemy model for a prompt template.

    At most one row exists per prompt_type.
    """

    __tablename__ = "system_prompts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    prompt_type: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    prompt_text: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )

    def __repr__(self) -> str:
        """Return string representation of the SystemPrompt."""
        return f"<SystemPrompt(prompt_type={self.prompt_type!r})>"
