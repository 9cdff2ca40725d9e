"""Services module for the Salon Conversation Insights dashboard.

This module exports service modules that handle the core business logic:
provider adapters, the upload pipeline, and the prompt, credential and
report stores.
"""

from src.services import (
    auth,
    completion,
    credentials,
    environment,
    pipeline,
    progress,
    prompts,
    reports,
    state,
    transcription,
)

__all__ = [
    "auth",
    "completion",
    "credentials",
    "environment",
    "pipeline",
    "progress",
    "prompts",
    "reports",
    "state",
    "transcription",
]
