"""Report store for the Salon Conversation Insights dashboard.

This module persists audio upload metadata and insight reports, lists them
per owner, and builds and splits the two-section markdown report.
"""

import logging
import re

from sqlalchemy.orm import Session, joinedload

from src.models import AudioUpload, InsightReport, TextProvider

logger = logging.getLogger(__name__)

SERVICE_EVALUATION_HEADING = "Service Evaluation"
CUSTOMER_INSIGHT_HEADING = "Customer Insight"

# Badge text shown for each text provider
PROVIDER_LABELS = {
    TextProvider.OPENAI.value: "GPT-4o",
    TextProvider.GEMINI.value: "Gemini",
    TextProvider.GROQ.value: "Llama3",
}

# "<owner>/<epochMillis>_<name>" -> "<name>"
_STORED_NAME_PATTERN = re.compile(r"^\d+_(.+)$")

_SECTION_HEADING_LINES = (
    f"# {SERVICE_EVALUATION_HEADING}",
    f"# {CUSTOMER_INSIGHT_HEADING}",
)


def _normalize_section(body: str, heading: str) -> str:
    """Keep a section body from adding top-level report headings of its own.

    A leading line equal to the section's own heading is dropped, and any
    other report heading line in the body is demoted to "##".
    """
    lines = body.split("\n")
    if lines and lines[0].strip() == f"# {heading}":
        lines = lines[1:]
        while lines and not lines[0].strip():
            lines = lines[1:]
    return "\n".join(
        f"#{line.strip()}" if line.strip() in _SECTION_HEADING_LINES else line
        for line in lines
    )


def build_report_content(service_evaluation: str, customer_insight: str) -> str:
    """Combine the two analysis results into one markdown document.

    Each heading appears exactly once: headings the model wrote into its own
    answer are removed or demoted first.

    Args:
        service_evaluation: Result of the service evaluation prompt.
        customer_insight: Result of the customer insight prompt.

    Returns:
        Markdown with the service evaluation section first, then the
        customer insight section, separated by a blank line.
    """
    service_evaluation = _normalize_section(service_evaluation, SERVICE_EVALUATION_HEADING)
    customer_insight = _normalize_section(customer_insight, CUSTOMER_INSIGHT_HEADING)
    return (
        f"# {SERVICE_EVALUATION_HEADING}\n{service_evaluation}\n\n"
        f"# {CUSTOMER_INSIGHT_HEADING}\n{customer_insight}\n"
    )


def split_report_sections(content: str) -> tuple[str, str]:
    """Split a report into its service evaluation and customer insight bodies.

    Args:
        content: Report markdown built by build_report_content.

    Returns:
        Tuple of (service_evaluation, customer_insight), each stripped of its
        heading and surrounding whitespace. A missing section is "".
        Customer insight starts after the last customer heading line, so a
        repeated heading never shows up inside the body.
    """
    lines = content.split("\n")
    customer_heading = f"# {CUSTOMER_INSIGHT_HEADING}"
    heading_indexes = [i for i, line in enumerate(lines) if line.strip() == customer_heading]
    if not heading_indexes:
        return "\n".join(_drop_heading(lines, SERVICE_EVALUATION_HEADING)).strip(), ""

    last = heading_indexes[-1]
    service_lines = lines[:last]
    # Drop repeated customer headings left just above the last one
    while service_lines and service_lines[-1].strip() in ("", customer_heading):
        service_lines.pop()
    service_lines = _drop_heading(service_lines, SERVICE_EVALUATION_HEADING)
    return "\n".join(service_lines).strip(), "\n".join(lines[last + 1:]).strip()


def _drop_heading(lines: list[str], heading: str) -> list[str]:
    if lines and lines[0].strip() == f"# {heading}":
        return lines[1:]
    return lines


def display_filename(file_path: str) -> str:
    """Recover the user-facing file name from a storage path."""
    name = file_path.rsplit("/", 1)[-1]
    match = _STORED_NAME_PATTERN.match(name)
    return match.group(1) if match else name


def provider_label(provider: str) -> str:
    """Return the badge text for a text provider value."""
    return PROVIDER_LABELS.get(provider, provider)


def create_audio_upload(
    session: Session,
    user_id: str,
    file_path: str,
    duration_sec: float = 0,
) -> AudioUpload:
    """Create and persist an AudioUpload row.

    Args:
        session: SQLAlchemy database session.
        user_id: Identifier of the uploading user.
        file_path: Storage path of the raw audio.
        duration_sec: Audio duration. The pipeline always records 0.

    Returns:
        AudioUpload: The persisted row.
    """
    audio_upload = AudioUpload(
        user_id=user_id,
        file_path=file_path,
        duration_sec=duration_sec,
    )
    session.add(audio_upload)
    session.commit()
    session.refresh(audio_upload)
    return audio_upload


def create_report(
    session: Session,
    audio_id: str,
    report_md: str,
    provider: str,
) -> InsightReport:
    """Create and persist an InsightReport for an existing upload.

    Args:
        session: SQLAlchemy database session.
        audio_id: ID of the AudioUpload the report was produced from.
        report_md: Report markdown.
        provider: Text provider value used for the analyses.

    Returns:
        InsightReport: The persisted row.

    Raises:
        ValueError: If no audio upload is found with the given ID.
    """
    audio_upload = session.query(AudioUpload).filter_by(id=audio_id).first()
    if audio_upload is None:
        raise ValueError(f"Audio upload not found: {audio_id}")

    report = InsightReport(audio_id=audio_id, report_md=report_md, provider=provider)
    session.add(report)
    session.commit()
    session.refresh(report)
    return report


def list_reports(session: Session, owner_id: str, limit: int = 50) -> list[InsightReport]:
    """List the owner's reports, newest first.

    Args:
        session: SQLAlchemy database session.
        owner_id: Identifier of the owning user.
        limit: Maximum number of reports to return. Defaults to 50.

    Returns:
        list[InsightReport]: Reports whose audio upload belongs to the owner,
            with audio_upload eagerly loaded.
    """
    return (
        session.query(InsightReport)
        .join(AudioUpload, InsightReport.audio_id == AudioUpload.id)
        .filter(AudioUpload.user_id == owner_id)
        .options(joinedload(InsightReport.audio_upload))
        .order_by(InsightReport.created_at.desc(), InsightReport.id.desc())
        .limit(limit)
        .all()
    )


def get_report(session: Session, report_id: str, owner_id: str) -> InsightReport | None:
    """Retrieve one of the owner's reports by ID.

    Returns:
        InsightReport | None: The report, or None if it does not exist or
            belongs to another owner.
    """
    return (
        session.query(InsightReport)
        .join(AudioUpload, InsightReport.audio_id == AudioUpload.id)
        .filter(InsightReport.id == report_id, AudioUpload.user_id == owner_id)
        .options(joinedload(InsightReport.audio_upload))
        .first()
    )
