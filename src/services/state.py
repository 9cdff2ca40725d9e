"""Explicit application state for one browser session.

AppState is an immutable value kept in a dcc.Store. Callbacks read it with
from_dict, derive a new state with one of the update functions below, and
write it back with to_dict.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any

from src.models import AudioUpload, InsightReport, SpeechProvider, TextProvider
from src.services.reports import display_filename


@dataclass(frozen=True)
class UploadSummary:
    """Audio upload as shown in the session's history."""

    id: str
    file_name: str
    duration: float
    created_at: str


@dataclass(frozen=True)
class ReportSummary:
    """Report as shown in the session's history."""

    id: str
    audio_id: str
    provider: str
    created_at: str


@dataclass(frozen=True)
class AppState:
    """Session state: who is signed in, selected providers and run history.

    audio_uploads and reports are ordered newest first.
    """

    user_id: str | None = None
    speech_provider: SpeechProvider = SpeechProvider.OPENAI
    text_provider: TextProvider = TextProvider.OPENAI
    audio_uploads: tuple[UploadSummary, ...] = ()
    reports: tuple[ReportSummary, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "speech_provider": self.speech_provider.value,
            "text_provider": self.text_provider.value,
            "audio_uploads": [vars(upload) for upload in self.audio_uploads],
            "reports": [vars(report) for report in self.reports],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "AppState":
        """Rebuild state from a dcc.Store payload; None gives the defaults."""
        if not data:
            return cls()
        return cls(
            user_id=data.get("user_id"),
            speech_provider=SpeechProvider(data.get("speech_provider", SpeechProvider.OPENAI)),
            text_provider=TextProvider(data.get("text_provider", TextProvider.OPENAI)),
            audio_uploads=tuple(UploadSummary(**item) for item in data.get("audio_uploads", [])),
            reports=tuple(ReportSummary(**item) for item in data.get("reports", [])),
        )


def _isoformat(value: datetime | None) -> str:
    return (value or datetime.now()).isoformat()


def with_user(state: AppState, user_id: str | None) -> AppState:
    """Return state for a (possibly different) signed-in user.

    Switching users clears the session history.
    """
    if user_id == state.user_id:
        return state
    return replace(state, user_id=user_id, audio_uploads=(), reports=())


def with_speech_provider(state: AppState, provider: SpeechProvider | str) -> AppState:
    return replace(state, speech_provider=SpeechProvider(provider))


def with_text_provider(state: AppState, provider: TextProvider | str) -> AppState:
    return replace(state, text_provider=TextProvider(provider))


def record_run(
    state: AppState,
    audio_upload: AudioUpload,
    report: InsightReport,
) -> AppState:
    """Prepend a completed run's upload and report to the history."""
    upload_summary = UploadSummary(
        id=audio_upload.id,
        file_name=display_filename(audio_upload.file_path),
        duration=audio_upload.duration_sec,
        created_at=_isoformat(audio_upload.created_at),
    )
    report_summary = ReportSummary(
        id=report.id,
        audio_id=report.audio_id,
        provider=report.provider,
        created_at=_isoformat(report.created_at),
    )
    return replace(
        state,
        audio_uploads=(upload_summary, *state.audio_uploads),
        reports=(report_summary, *state.reports),
    )
