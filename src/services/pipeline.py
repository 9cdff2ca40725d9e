"""Upload-to-report pipeline for the Salon Conversation Insights dashboard.

run_pipeline validates the request, stores the raw audio, records its
metadata, transcribes it, runs the service evaluation and customer insight
prompts over the transcript one after the other, and persists the combined
report. Every failure is raised as a PipelineError subclass carrying a
message fit for display; nothing is retried and nothing already stored is
rolled back.
"""

import logging
import re
import time
from collections.abc import Callable
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError

from src.config import get_settings
from src.models import (
    CredentialProvider,
    InsightReport,
    PromptType,
    SpeechProvider,
    TextProvider,
)
from src.services.completion import CREDENTIAL_FOR, complete
from src.services.credentials import list_api_keys
from src.services.environment import Environment, StorageError
from src.services.http import MissingCredentialError, ProviderError
from src.services.prompts import get_prompt_texts
from src.services.reports import build_report_content, create_audio_upload, create_report
from src.services.transcription import REQUIRED_CREDENTIALS, AudioFile, transcribe

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, str], None]

# Progress checkpoints (percent)
STORAGE_PROGRESS_CEILING = 50
STORED_PROGRESS = 30
TRANSCRIBED_PROGRESS = 60
FIRST_ANALYSIS_PROGRESS = 70
SAVING_PROGRESS = 80
COMPLETE_PROGRESS = 100

# Stage labels shown next to the progress bar
STAGE_UPLOADING = "Uploading file..."
STAGE_TRANSCRIBING = "Converting speech to text..."
STAGE_ANALYZING_SERVICE = "Analyzing the conversation..."
STAGE_ANALYZING_CUSTOMER = "Analyzing customer insight..."
STAGE_SAVING = "Saving report..."
STAGE_DONE = "Done! Open the Reports tab to view it."

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9.-]")

# Display names used in credential error messages
_VENDOR_NAMES = {"openai": "OpenAI", "gemini": "Gemini", "groq": "Groq"}

# Names used in analysis failure messages
_ANALYSIS_NAMES = {
    PromptType.SERVICE_EVALUATION: "Service evaluation",
    PromptType.CUSTOMER_INSIGHT: "Customer insight",
}


class PipelineError(Exception):
    """Base exception for a pipeline run that stopped before completion."""

    pass


class Unauthenticated(PipelineError):
    """Raised when the run has no owning user."""

    def __init__(self) -> None:
        super().__init__("Could not identify the current user. Please sign in again.")


class MissingConfiguration(PipelineError):
    """Raised when either analysis prompt is not configured."""

    def __init__(self, missing: list[PromptType]) -> None:
        names = ", ".join(prompt_type.value for prompt_type in missing)
        super().__init__(
            f"System prompts are not configured ({names}). "
            "Add them on the Prompts tab."
        )
        self.missing = missing


class NoFileSelected(PipelineError):
    """Raised when no audio file was provided."""

    def __init__(self) -> None:
        super().__init__("Select an audio file to upload.")


class FileTooLarge(PipelineError):
    """Raised when the audio file exceeds the upload size limit."""

    def __init__(self, size: int, limit: int) -> None:
        super().__init__(
            f"File size ({size} bytes) exceeds the {limit // (1024 * 1024)}MB limit."
        )
        self.size = size
        self.limit = limit


class MissingCredential(PipelineError):
    """Raised when an API key needed by the run is absent.

    Attributes:
        provider: Vendor name of the missing key (e.g. "openai").
    """

    def __init__(self, provider: str, reason: str | None = None) -> None:
        vendor = _VENDOR_NAMES.get(provider, provider)
        message = f"{vendor} API key is not configured. Add it on the Settings tab."
        if reason:
            message = f"{reason} {message}"
        super().__init__(message)
        self.provider = provider


class StorageFailure(PipelineError):
    """Raised when the raw audio could not be stored."""

    pass


class TranscriptionFailure(PipelineError):
    """Raised when the speech provider call failed."""

    pass


class CompletionFailure(PipelineError):
    """Raised when one of the two analysis calls failed.

    Attributes:
        analysis: The PromptType of the analysis that failed.
    """

    def __init__(self, analysis: PromptType, message: str) -> None:
        super().__init__(message)
        self.analysis = analysis


class PersistenceFailure(PipelineError):
    """Raised when upload metadata or the report could not be saved."""

    pass


@dataclass(frozen=True)
class PipelineConfig:
    """Per-run options.

    Attributes:
        owner_id: Identifier of the uploading user (None if unauthenticated).
        speech_provider: Selected speech-to-text provider.
        text_provider: Selected text-generation provider.
        on_progress: Callback receiving (percent, stage_label).
    """

    owner_id: str | None
    speech_provider: SpeechProvider
    text_provider: TextProvider
    on_progress: ProgressCallback | None = None


class ProgressReporter:
    """Forwards progress to a callback, never reporting a lower percentage."""

    def __init__(self, callback: ProgressCallback | None) -> None:
        self._callback = callback
        self.percent = 0
        self.stage = ""

    def report(self, percent: int, stage: str) -> None:
        self.percent = max(self.percent, percent)
        self.stage = stage
        if self._callback is not None:
            self._callback(self.percent, stage)

    def on_transfer(self, sent: int, total: int) -> None:
        """Map a byte transfer onto 0..STORAGE_PROGRESS_CEILING."""
        fraction = sent / total if total else 1.0
        self.report(round(fraction * STORAGE_PROGRESS_CEILING), STAGE_UPLOADING)


def sanitize_filename(filename: str) -> str:
    """Replace every character outside [A-Za-z0-9.-] with an underscore."""
    return _UNSAFE_FILENAME_CHARS.sub("_", filename)


def build_storage_path(owner_id: str, filename: str, now_ms: int | None = None) -> str:
    """Build the storage path <owner>/<epochMillis>_<sanitizedName>.

    Args:
        owner_id: Identifier of the uploading user.
        filename: Original file name.
        now_ms: Epoch milliseconds; defaults to the current time.

    Returns:
        The storage path for the upload.
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"{owner_id}/{now_ms}_{sanitize_filename(filename)}"


def _check_credentials(
    credentials: dict[str, str],
    speech_provider: SpeechProvider,
    text_provider: TextProvider,
) -> None:
    """Raise MissingCredential for the first key the run cannot proceed without."""
    required = REQUIRED_CREDENTIALS[speech_provider]
    for index, vendor in enumerate(required):
        if not credentials.get(vendor.value):
            reason = None
            if index > 0:
                reason = (
                    f"{_VENDOR_NAMES[speech_provider.value]} speech recognition "
                    f"runs on the {_VENDOR_NAMES[vendor.value]} transcription endpoint."
                )
            raise MissingCredential(vendor.value, reason)

    text_vendor = CREDENTIAL_FOR[text_provider]
    if not credentials.get(text_vendor.value):
        raise MissingCredential(text_vendor.value)


def run_pipeline(
    environment: Environment,
    audio: AudioFile | None,
    config: PipelineConfig,
) -> InsightReport:
    """Turn one uploaded conversation into a persisted insight report.

    Processing steps:
    1. Validate owner, prompts, file and credentials (no side effects)
    2. Store the raw bytes and record the audio upload (duration 0)
    3. Transcribe the audio
    4. Run the service evaluation prompt, then the customer insight prompt
    5. Assemble the two-section markdown report
    6. Persist and return the report

    Args:
        environment: Storage and database capabilities to run against.
        audio: The uploaded file, or None if nothing was selected.
        config: Owner, provider selection and progress callback.

    Returns:
        InsightReport: The persisted report.

    Raises:
        PipelineError: A subclass describing the first failure. Steps that
            completed before the failure are not undone.
    """
    settings = get_settings()
    progress = ProgressReporter(config.on_progress)
    speech_provider = SpeechProvider(config.speech_provider)
    text_provider = TextProvider(config.text_provider)

    if not config.owner_id:
        logger.warning("Pipeline rejected: no authenticated user")
        raise Unauthenticated()
    owner_id = config.owner_id

    session = environment.session_factory()
    try:
        # Step 1: Validate before any storage or network call
        prompts = get_prompt_texts(session)
        missing = [t for t in PromptType if not prompts[t].strip()]
        if missing:
            logger.warning(f"Pipeline rejected for {owner_id}: missing prompts {missing}")
            raise MissingConfiguration(missing)

        if audio is None or not audio.filename:
            raise NoFileSelected()
        if audio.size > settings.MAX_UPLOAD_BYTES:
            logger.warning(f"Pipeline rejected {audio.filename}: {audio.size} bytes")
            raise FileTooLarge(audio.size, settings.MAX_UPLOAD_BYTES)

        credentials = list_api_keys(session, owner_id)
        _check_credentials(credentials, speech_provider, text_provider)

        logger.info(
            f"Starting pipeline for {owner_id}: {audio.filename} "
            f"(speech={speech_provider.value}, text={text_provider.value})"
        )
        progress.report(0, STAGE_UPLOADING)

        # Step 2: Store raw bytes, then record metadata
        storage_path = build_storage_path(owner_id, audio.filename)
        try:
            environment.storage.put(storage_path, audio.data, progress.on_transfer)
        except StorageError as e:
            raise StorageFailure(f"Failed to upload the file: {e}") from e

        try:
            audio_upload = create_audio_upload(session, owner_id, storage_path, duration_sec=0)
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Failed to record upload {storage_path}: {e}", exc_info=True)
            raise PersistenceFailure(f"Failed to save the upload: {e}") from e
        logger.debug(f"Recorded audio upload {audio_upload.id} at {storage_path}")

        progress.report(STORED_PROGRESS, STAGE_TRANSCRIBING)

        # Step 3: Transcribe
        try:
            transcript = transcribe(audio, speech_provider, credentials)
        except MissingCredentialError as e:
            raise MissingCredential(CredentialProvider.OPENAI.value) from e
        except ProviderError as e:
            raise TranscriptionFailure(str(e)) from e

        progress.report(TRANSCRIBED_PROGRESS, STAGE_ANALYZING_SERVICE)

        # Step 4: Two analyses, sequentially
        credential = credentials.get(CREDENTIAL_FOR[text_provider].value)
        results: dict[PromptType, str] = {}
        for prompt_type in PromptType:
            try:
                results[prompt_type] = complete(
                    transcript, prompts[prompt_type], text_provider, credential
                )
            except MissingCredentialError as e:
                raise MissingCredential(CREDENTIAL_FOR[text_provider].value) from e
            except ProviderError as e:
                raise CompletionFailure(
                    prompt_type,
                    f"{_ANALYSIS_NAMES[prompt_type]} analysis failed: {e}",
                ) from e

            if prompt_type is PromptType.SERVICE_EVALUATION:
                progress.report(FIRST_ANALYSIS_PROGRESS, STAGE_ANALYZING_CUSTOMER)

        # Step 5: Assemble
        content = build_report_content(
            results[PromptType.SERVICE_EVALUATION],
            results[PromptType.CUSTOMER_INSIGHT],
        )
        progress.report(SAVING_PROGRESS, STAGE_SAVING)

        # Step 6: Persist
        try:
            report = create_report(session, audio_upload.id, content, text_provider.value)
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Failed to save report for {audio_upload.id}: {e}", exc_info=True)
            raise PersistenceFailure(f"Failed to save the report: {e}") from e

        progress.report(COMPLETE_PROGRESS, STAGE_DONE)
        logger.info(f"Pipeline completed for {owner_id}: report {report.id}")
        return report

    except PipelineError as e:
        logger.warning(f"Pipeline stopped at {progress.percent}%: {e}")
        raise
    finally:
        session.close()
