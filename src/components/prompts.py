"""Prompt editor component for the Salon Conversation Insights dashboard.

Operators edit the two system prompts used by every analysis run. Saved text
applies to the next upload.
"""

import logging
from typing import Any

import dash_bootstrap_components as dbc
from dash import Input, Output, State, callback, ctx, html, no_update

from src.db.session import get_session
from src.models import PromptType
from src.services.prompts import get_prompt_texts, save_prompt

logger = logging.getLogger(__name__)

PROMPT_LABELS = {
    PromptType.SERVICE_EVALUATION: "Service Evaluation Prompt",
    PromptType.CUSTOMER_INSIGHT: "Customer Insight Prompt",
}


def _create_prompt_editor(prompt_type: PromptType) -> dbc.Card:
    return dbc.Card(
        dbc.CardBody(
            [
                html.H5(PROMPT_LABELS[prompt_type], className="card-title"),
                dbc.Textarea(
                    id=f"prompt-text-{prompt_type.value}",
                    placeholder="Enter the instructions for this analysis...",
                    style={"height": "200px"},
                    className="mb-3",
                ),
                dbc.Button(
                    "Save",
                    id=f"save-prompt-{prompt_type.value}",
                    color="primary",
                ),
            ]
        ),
        className="mb-4",
    )


def create_prompts_component() -> dbc.Container:
    """Create the prompt editor layout.

    Returns:
        A Dash Bootstrap Container with one editor per prompt type.
    """
    return dbc.Container(
        [
            html.H3("System Prompts", className="mb-4"),
            html.P(
                "These prompts steer the two analyses included in every report.",
                className="text-muted mb-3",
            ),
            html.Div(id="prompt-status-message", className="mb-3"),
            *[_create_prompt_editor(prompt_type) for prompt_type in PromptType],
        ],
        fluid=True,
        className="p-4",
    )


@callback(
    Output(f"prompt-text-{PromptType.SERVICE_EVALUATION.value}", "value"),
    Output(f"prompt-text-{PromptType.CUSTOMER_INSIGHT.value}", "value"),
    Input("main-tabs", "active_tab"),
)
def load_prompts(active_tab: str | None) -> tuple[Any, Any]:
    """Load the saved prompt texts into the editors."""
    try:
        session = get_session()
        try:
            texts = get_prompt_texts(session)
        finally:
            session.close()
    except Exception as e:
        logger.error(f"Failed to load prompts: {e}", exc_info=True)
        return no_update, no_update

    return texts[PromptType.SERVICE_EVALUATION], texts[PromptType.CUSTOMER_INSIGHT]


@callback(
    Output("prompt-status-message", "children"),
    Input(f"save-prompt-{PromptType.SERVICE_EVALUATION.value}", "n_clicks"),
    Input(f"save-prompt-{PromptType.CUSTOMER_INSIGHT.value}", "n_clicks"),
    State(f"prompt-text-{PromptType.SERVICE_EVALUATION.value}", "value"),
    State(f"prompt-text-{PromptType.CUSTOMER_INSIGHT.value}", "value"),
    prevent_initial_call=True,
)
def handle_save_prompt(
    service_clicks: int | None,
    customer_clicks: int | None,
    service_text: str | None,
    customer_text: str | None,
) -> Any:
    """Save whichever prompt's Save button was clicked."""
    if ctx.triggered_id is None:
        return no_update

    prompt_type = PromptType(ctx.triggered_id.removeprefix("save-prompt-"))
    text = service_text if prompt_type is PromptType.SERVICE_EVALUATION else customer_text

    try:
        session = get_session()
        try:
            save_prompt(session, prompt_type, text or "")
        finally:
            session.close()
    except ValueError as e:
        return dbc.Alert(str(e), color="danger", dismissable=True)
    except Exception as e:
        logger.error(f"Failed to save {prompt_type.value} prompt: {e}", exc_info=True)
        return dbc.Alert("Failed to save the prompt. Please try again.", color="danger")

    return dbc.Alert(
        f"{PROMPT_LABELS[prompt_type]} saved.",
        color="success",
        dismissable=True,
        duration=4000,
    )
