"""Main Dash application for Salon Conversation Insights.

This module provides the entry point for the web application,
including the main layout with navigation tabs and health check endpoint.
"""

import json
import logging
from typing import Any

import dash_bootstrap_components as dbc
from dash import Dash, Input, Output, State, callback, dcc, html
from flask import Response, request

from src.config import get_settings
from src.services.auth import get_current_user_id
from src.services.environment import get_environment
from src.services.state import AppState, with_user

# Application version
__version__ = "0.1.0"

settings = get_settings()
logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

# Create Dash app with Bootstrap styling and icons
app = Dash(
    __name__,
    external_stylesheets=[
        dbc.themes.BOOTSTRAP,
        dbc.icons.BOOTSTRAP,  # Bootstrap icons for UI elements
    ],
    suppress_callback_exceptions=True,
)

# Expose the underlying Flask server for additional routes
server = app.server

# Import components and callbacks AFTER app creation
# This ensures callbacks are registered with the app
from src.components import (  # noqa: E402
    create_prompts_component,
    create_reports_component,
    create_settings_component,
    create_upload_component,
)


# Health check endpoint
@server.route("/health")
def health_check() -> Response:
    """Return health status of the application.

    Returns:
        JSON response with status "healthy" and the active environment.
    """
    return Response(
        json.dumps({"status": "healthy", "environment": settings.APP_ENVIRONMENT}),
        mimetype="application/json",
    )


# Navigation bar
navbar = dbc.Navbar(
    dbc.Container(
        [
            dbc.NavbarBrand("Salon Conversation Insights", className="ms-2"),
            html.Span(id="current-user-label", className="text-light small"),
        ],
        fluid=True,
    ),
    color="dark",
    dark=True,
    className="mb-4",
)

# Main tabs
tabs = dbc.Tabs(
    [
        dbc.Tab(create_upload_component(), label="Upload", tab_id="tab-upload"),
        dbc.Tab(create_reports_component(), label="Reports", tab_id="tab-reports"),
        dbc.Tab(create_prompts_component(), label="Prompts", tab_id="tab-prompts"),
        dbc.Tab(create_settings_component(), label="Settings", tab_id="tab-settings"),
    ],
    id="main-tabs",
    active_tab="tab-upload",
)

# Footer with version info
footer = dbc.Container(
    [
        html.Hr(),
        html.Footer(
            html.P(
                f"Salon Conversation Insights v{__version__}",
                className="text-muted text-center",
            ),
            className="py-3",
        ),
    ],
    fluid=True,
)

# Main application layout
app.layout = dbc.Container(
    [
        # Session state shared by every tab
        dcc.Store(id="app-state", storage_type="session"),
        navbar,
        dbc.Container([tabs], fluid=True),
        footer,
    ],
    fluid=True,
)


@callback(
    Output("app-state", "data"),
    Input("main-tabs", "active_tab"),
    State("app-state", "data"),
)
def sync_current_user(active_tab: str | None, app_state: dict | None) -> dict[str, Any]:
    """Keep the session state bound to the requesting user.

    Returns:
        Serialized AppState, with history cleared if the user changed.
    """
    user_id = get_current_user_id(request.headers, get_environment())
    return with_user(AppState.from_dict(app_state), user_id).to_dict()


@callback(
    Output("current-user-label", "children"),
    Input("app-state", "data"),
)
def display_current_user(app_state: dict | None) -> str:
    """Show who is signed in and how many uploads this session has run."""
    state = AppState.from_dict(app_state)
    if not state.user_id:
        return "Not signed in"
    return f"{state.user_id} ({len(state.audio_uploads)} uploads this session)"


if __name__ == "__main__":
    app.run(debug=settings.DEBUG, host="0.0.0.0", port=8000)
