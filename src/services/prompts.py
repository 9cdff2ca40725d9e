"""Prompt store for the two operator-edited analysis prompts."""

import logging
from datetime import UTC, datetime

from sqlalchemy.orm import Session

from src.models import PromptType, SystemPrompt

logger = logging.getLogger(__name__)


def get_prompt_texts(session: Session) -> dict[PromptType, str]:
    """Read the current text of every prompt type.

    Always queries the database so edits apply to the next run immediately.

    Args:
        session: SQLAlchemy database session.

    Returns:
        Mapping of every PromptType to its text ("" when not yet configured).
    """
    texts = {prompt_type: "" for prompt_type in PromptType}
    for row in session.query(SystemPrompt).all():
        try:
            texts[PromptType(row.prompt_type)] = row.prompt_text
        except ValueError:
            logger.warning(f"Ignoring unknown prompt type: {row.prompt_type}")
    return texts


def save_prompt(session: Session, prompt_type: PromptType, text: str) -> SystemPrompt:
    """Create or update the prompt for a prompt type.

    Args:
        session: SQLAlchemy database session.
        prompt_type: Which analysis the prompt drives.
        text: New prompt text.

    Returns:
        SystemPrompt: The persisted row with a fresh updated_at.

    Raises:
        ValueError: If text is empty or whitespace-only.
    """
    prompt_type = PromptType(prompt_type)
    if not text or not text.strip():
        raise ValueError("Prompt text cannot be empty or whitespace-only")

    prompt = session.query(SystemPrompt).filter_by(prompt_type=prompt_type.value).first()
    if prompt is None:
        prompt = SystemPrompt(prompt_type=prompt_type.value, prompt_text=text)
        session.add(prompt)
    else:
        prompt.prompt_text = text
    prompt.updated_at = datetime.now(UTC)

    session.commit()
    session.refresh(prompt)
    logger.info(f"Saved {prompt_type.value} prompt ({len(text)} chars)")
    return prompt
