"""SQLAlchemy models for the Salon Conversation Insights dashboard."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


from .api_key import ApiKey
from .audio_upload import AudioUpload
from .insight_report import InsightReport
from .provider import CredentialProvider, SpeechProvider, TextProvider
from .system_prompt import PromptType, SystemPrompt

__all__ = [
    "Base",
    "ApiKey",
    "AudioUpload",
    "CredentialProvider",
    "InsightReport",
    "PromptType",
    "SpeechProvider",
    "SystemPrompt",
    "TextProvider",
]
