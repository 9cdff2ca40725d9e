"""Settings component for the Salon Conversation Insights dashboard.

Lets the signed-in user store an API key per vendor and choose which speech
and text providers their uploads use.
"""

import logging
from typing import Any

import dash_bootstrap_components as dbc
from dash import ALL, Input, Output, State, callback, ctx, html, no_update
from flask import request

from src.db.session import get_session
from src.models import CredentialProvider, SpeechProvider, TextProvider
from src.services.auth import get_current_user_id
from src.services.credentials import delete_api_key, list_api_keys, save_api_key
from src.services.environment import get_environment
from src.services.state import AppState, with_speech_provider, with_text_provider, with_user

logger = logging.getLogger(__name__)

VENDOR_LABELS = {
    CredentialProvider.OPENAI.value: "OpenAI",
    CredentialProvider.GEMINI.value: "Google Gemini",
    CredentialProvider.GROQ.value: "Groq",
}

SPEECH_PROVIDER_OPTIONS = [
    {"label": "OpenAI Whisper", "value": SpeechProvider.OPENAI.value},
    {"label": "Groq (fast, also requires an OpenAI key)", "value": SpeechProvider.GROQ.value},
]

TEXT_PROVIDER_OPTIONS = [
    {"label": "OpenAI GPT-4o", "value": TextProvider.OPENAI.value},
    {"label": "Google Gemini", "value": TextProvider.GEMINI.value},
    {"label": "Groq Llama3", "value": TextProvider.GROQ.value},
]


def _create_api_key_row(provider: CredentialProvider) -> dbc.Row:
    return dbc.Row(
        [
            dbc.Col(
                [
                    html.Strong(VENDOR_LABELS[provider.value]),
                    html.Span(
                        id={"type": "api-key-status", "provider": provider.value},
                        className="ms-2",
                    ),
                ],
                md=3,
            ),
            dbc.Col(
                dbc.Input(
                    id={"type": "api-key-input", "provider": provider.value},
                    type="password",
                    placeholder="Enter API key...",
                ),
                md=5,
            ),
            dbc.Col(
                [
                    dbc.Button(
                        "Save",
                        id={"type": "api-key-save", "provider": provider.value},
                        color="primary",
                        className="me-2",
                    ),
                    dbc.Button(
                        "Delete",
                        id={"type": "api-key-delete", "provider": provider.value},
                        color="outline-danger",
                    ),
                ],
                md=4,
            ),
        ],
        className="mb-3",
        align="center",
    )


def create_settings_component() -> dbc.Container:
    """Create the settings layout.

    Returns:
        A Dash Bootstrap Container with API key management and provider
        selection.
    """
    return dbc.Container(
        [
            html.H3("Settings", className="mb-4"),
            dbc.Card(
                dbc.CardBody(
                    [
                        html.H5("API Keys", className="card-title"),
                        html.Div(id="api-key-status-message", className="mb-3"),
                        *[_create_api_key_row(provider) for provider in CredentialProvider],
                    ]
                ),
                className="mb-4",
            ),
            dbc.Card(
                dbc.CardBody(
                    [
                        html.H5("Providers", className="card-title"),
                        dbc.Label("Speech-to-text"),
                        dbc.RadioItems(
                            id="speech-provider-radio",
                            options=SPEECH_PROVIDER_OPTIONS,
                            value=SpeechProvider.OPENAI.value,
                            className="mb-3",
                        ),
                        dbc.Label("Text analysis"),
                        dbc.RadioItems(
                            id="text-provider-radio",
                            options=TEXT_PROVIDER_OPTIONS,
                            value=TextProvider.OPENAI.value,
                        ),
                    ]
                ),
            ),
        ],
        fluid=True,
        className="p-4",
    )


def _key_status_badges(configured: set[str]) -> list[dbc.Badge]:
    """Build one status badge per vendor, in CredentialProvider order."""
    return [
        dbc.Badge("Configured", color="success")
        if provider.value in configured
        else dbc.Badge("Not set", color="secondary")
        for provider in CredentialProvider
    ]


@callback(
    Output({"type": "api-key-status", "provider": ALL}, "children"),
    Output("api-key-status-message", "children"),
    Input("main-tabs", "active_tab"),
    Input({"type": "api-key-save", "provider": ALL}, "n_clicks"),
    Input({"type": "api-key-delete", "provider": ALL}, "n_clicks"),
    State({"type": "api-key-input", "provider": ALL}, "value"),
)
def manage_api_keys(
    active_tab: str | None,
    save_clicks: list[int | None],
    delete_clicks: list[int | None],
    key_values: list[str | None],
) -> tuple[list[Any], Any]:
    """Save or delete a key when a button is clicked, then refresh statuses.

    Returns:
        Tuple of (status_badges, status_message).
    """
    user_id = get_current_user_id(request.headers, get_environment())
    if not user_id:
        return (
            _key_status_badges(set()),
            dbc.Alert("Sign in to manage API keys.", color="warning"),
        )

    message = None
    triggered = ctx.triggered_id
    try:
        session = get_session()
        try:
            if isinstance(triggered, dict) and any((save_clicks or []) + (delete_clicks or [])):
                provider = triggered["provider"]
                label = VENDOR_LABELS[provider]
                if triggered["type"] == "api-key-save":
                    index = [p.value for p in CredentialProvider].index(provider)
                    try:
                        save_api_key(session, user_id, provider, key_values[index] or "")
                        message = dbc.Alert(f"{label} API key saved.", color="success", duration=4000)
                    except ValueError as e:
                        message = dbc.Alert(str(e), color="danger", dismissable=True)
                elif delete_api_key(session, user_id, provider):
                    message = dbc.Alert(f"{label} API key deleted.", color="success", duration=4000)

            configured = set(list_api_keys(session, user_id))
        finally:
            session.close()
    except Exception as e:
        logger.error(f"Failed to manage API keys: {e}", exc_info=True)
        return _key_status_badges(set()), dbc.Alert("Failed to update API keys.", color="danger")

    return _key_status_badges(configured), message


@callback(
    Output("speech-provider-radio", "value"),
    Output("text-provider-radio", "value"),
    Input("main-tabs", "active_tab"),
    State("app-state", "data"),
)
def load_provider_selection(active_tab: str | None, app_state: dict | None) -> tuple[str, str]:
    """Show the session's current provider selection."""
    state = AppState.from_dict(app_state)
    return state.speech_provider.value, state.text_provider.value


@callback(
    Output("app-state", "data", allow_duplicate=True),
    Input("speech-provider-radio", "value"),
    Input("text-provider-radio", "value"),
    State("app-state", "data"),
    prevent_initial_call=True,
)
def select_providers(
    speech_provider: str | None,
    text_provider: str | None,
    app_state: dict | None,
) -> Any:
    """Store the selected providers in the session state."""
    if not speech_provider or not text_provider:
        return no_update

    user_id = get_current_user_id(request.headers, get_environment())
    state = with_user(AppState.from_dict(app_state), user_id)
    state = with_speech_provider(state, speech_provider)
    state = with_text_provider(state, text_provider)
    return state.to_dict()
