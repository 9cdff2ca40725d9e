"""Dash UI components for the Salon Conversation Insights dashboard.

This module exports the tab components of the web interface: audio upload,
report library, prompt editor and settings.
"""

from .prompts import create_prompts_component
from .reports import create_reports_component
from .settings import create_settings_component
from .upload import create_upload_component

__all__ = [
    "create_upload_component",
    "create_reports_component",
    "create_prompts_component",
    "create_settings_component",
]
