"""Audio upload component for the Salon Conversation Insights dashboard.

This module provides a Dash component for uploading a recorded conversation
with drag-and-drop support, running the analysis pipeline in the background,
and displaying its progress, failures and completion.
"""

import base64
import logging
import threading
from functools import partial
from typing import Any

import dash_bootstrap_components as dbc
from dash import Input, Output, State, callback, dcc, html, no_update
from flask import request

from src.db.session import get_session
from src.services.auth import get_current_user_id
from src.services.environment import get_environment
from src.services.pipeline import PipelineConfig, PipelineError, run_pipeline
from src.services.progress import RunState, RunStatus, run_tracker
from src.services.reports import get_report
from src.services.state import AppState, record_run, with_user
from src.services.transcription import AudioFile

logger = logging.getLogger(__name__)

# Allowed file extensions for upload
ALLOWED_EXTENSIONS = ".mp3, .wav, .m4a, .aac"


def create_upload_component() -> dbc.Container:
    """Create the audio upload component layout.

    Returns:
        A Dash Bootstrap Container with the upload interface including
        drag-and-drop area, status display, polling interval and toast.
    """
    return dbc.Container(
        [
            html.H3("Upload Conversation Audio", className="mb-4"),
            html.P(
                "Upload a recording of a conversation with a customer. "
                f"Supported formats: {ALLOWED_EXTENSIONS} (max 25MB)",
                className="text-muted mb-3",
            ),
            # Upload area with drag-and-drop
            dcc.Upload(
                id="audio-upload",
                children=html.Div(
                    [
                        html.I(className="bi bi-cloud-upload fs-1 mb-3"),
                        html.Br(),
                        html.Span("Drag and drop an audio file here, or "),
                        html.A("click to select", className="text-primary"),
                    ],
                    className="text-center py-5",
                ),
                style={
                    "width": "100%",
                    "height": "200px",
                    "lineHeight": "60px",
                    "borderWidth": "2px",
                    "borderStyle": "dashed",
                    "borderRadius": "10px",
                    "borderColor": "#6c757d",
                    "textAlign": "center",
                    "cursor": "pointer",
                    "backgroundColor": "#f8f9fa",
                },
                multiple=False,
                accept=ALLOWED_EXTENSIONS,
            ),
            # Upload status message
            html.Div(id="upload-status-message", className="mt-3"),
            # Processing status display
            html.Div(id="processing-status-container", className="mt-3"),
            # Store for tracking the current run ID
            dcc.Store(id="current-run-id", storage_type="memory"),
            # Interval for polling run progress
            dcc.Interval(
                id="processing-status-interval",
                interval=1000,
                n_intervals=0,
                disabled=True,  # Disabled until a run starts
            ),
            dbc.Toast(
                "Open the Reports tab to view the results.",
                id="upload-success-toast",
                header="Audio analysis complete",
                icon="success",
                is_open=False,
                dismissable=True,
                duration=5000,
                style={"position": "fixed", "top": 20, "right": 20, "width": 350, "zIndex": 1050},
            ),
        ],
        fluid=True,
        className="p-4",
    )


def _run_pipeline_in_background(run_id: str, audio: AudioFile, config: PipelineConfig) -> None:
    """Run the pipeline in a background thread and record the outcome.

    Args:
        run_id: Run tracker ID for this upload.
        audio: The uploaded audio file.
        config: Owner, provider selection and progress callback.
    """
    try:
        report = run_pipeline(get_environment(), audio, config)
        run_tracker.complete(run_id, report.id, report.audio_id)
        logger.info(f"Background run {run_id} completed with report {report.id}")
    except PipelineError as e:
        run_tracker.fail(run_id, str(e))
    except Exception as e:
        logger.error(f"Background run {run_id} failed: {e}", exc_info=True)
        run_tracker.fail(run_id, "An error occurred during processing. Please try again.")


def _get_status_color(state: RunState) -> str:
    """Get Bootstrap color class for a run state."""
    status_colors = {
        RunState.RUNNING: "primary",
        RunState.COMPLETED: "success",
        RunState.FAILED: "danger",
    }
    return status_colors.get(state, "secondary")


def _create_progress_display(status: RunStatus) -> html.Div:
    """Build the progress bar and stage label for a running upload."""
    return html.Div(
        [
            html.Div(
                [
                    dbc.Spinner(size="sm", spinner_class_name="me-2"),
                    html.Span(status.stage or "Starting...", className="fw-medium"),
                ],
                className="d-flex align-items-center mb-2",
            ),
            dbc.Progress(
                value=status.percent,
                color=_get_status_color(status.state),
                striped=True,
                animated=True,
                className="mb-2",
                style={"height": "20px"},
            ),
            html.Span(f"{status.percent}% complete", className="text-muted small"),
        ],
        className="mb-3",
    )


@callback(
    Output("upload-status-message", "children"),
    Output("current-run-id", "data"),
    Output("processing-status-interval", "disabled"),
    Output("app-state", "data", allow_duplicate=True),
    Output("audio-upload", "contents"),
    Input("audio-upload", "contents"),
    State("audio-upload", "filename"),
    State("app-state", "data"),
    prevent_initial_call=True,
)
def handle_upload(
    contents: str | None,
    filename: str | None,
    app_state: dict | None,
) -> tuple[Any, Any, Any, Any, Any]:
    """Decode the uploaded file and start the pipeline in the background.

    Args:
        contents: Base64 encoded file contents from dcc.Upload.
        filename: Original filename of the uploaded file.
        app_state: Serialized AppState for this session.

    Returns:
        Tuple of (status_message, run_id, interval_disabled, app_state,
        upload_contents). The upload contents are cleared so the same file
        can be selected again.
    """
    if contents is None or filename is None:
        return no_update, no_update, no_update, no_update, no_update

    try:
        _, content_string = contents.split(",", 1)
        audio_bytes = base64.b64decode(content_string)
    except Exception as e:
        logger.error(f"Failed to decode uploaded file: {e}", exc_info=True)
        return (
            dbc.Alert(
                "Failed to process the uploaded file. Please try again.",
                color="danger",
            ),
            None,
            True,
            no_update,
            None,
        )

    user_id = get_current_user_id(request.headers, get_environment())
    state = with_user(AppState.from_dict(app_state), user_id)

    run_id = run_tracker.start(filename)
    config = PipelineConfig(
        owner_id=state.user_id,
        speech_provider=state.speech_provider,
        text_provider=state.text_provider,
        on_progress=partial(run_tracker.update, run_id),
    )

    thread = threading.Thread(
        target=_run_pipeline_in_background,
        args=(run_id, AudioFile(filename=filename, data=audio_bytes), config),
        daemon=True,
    )
    thread.start()

    return (
        dbc.Alert(f"Processing '{filename}'...", color="info"),
        run_id,
        False,  # Enable polling interval
        state.to_dict(),
        None,
    )


@callback(
    Output("processing-status-container", "children"),
    Output("processing-status-interval", "disabled", allow_duplicate=True),
    Output("app-state", "data", allow_duplicate=True),
    Output("upload-success-toast", "is_open"),
    Output("upload-status-message", "children", allow_duplicate=True),
    Input("processing-status-interval", "n_intervals"),
    State("current-run-id", "data"),
    State("app-state", "data"),
    prevent_initial_call=True,
)
def update_processing_status(
    n_intervals: int,
    run_id: str | None,
    app_state: dict | None,
) -> tuple[Any, bool, Any, bool, Any]:
    """Poll and display the progress of the current run.

    Args:
        n_intervals: Number of interval ticks (used to trigger update).
        run_id: Run tracker ID of the upload being processed.
        app_state: Serialized AppState for this session.

    Returns:
        Tuple of (status_display, interval_disabled, app_state, toast_open,
        status_message).
    """
    if not run_id:
        return None, True, no_update, False, no_update

    status = run_tracker.get(run_id)
    if status is None:
        return (
            dbc.Alert("Processing status is no longer available.", color="warning"),
            True,
            no_update,
            False,
            None,
        )

    if status.state == RunState.RUNNING:
        return _create_progress_display(status), False, no_update, False, no_update

    run_tracker.discard(run_id)

    if status.state == RunState.FAILED:
        return (
            dbc.Alert(
                [html.Strong("Error: "), status.error],
                color="danger",
                className="mb-3",
            ),
            True,
            no_update,
            False,
            None,
        )

    state = AppState.from_dict(app_state)
    try:
        session = get_session()
        try:
            report = get_report(session, status.report_id, state.user_id)
            if report is not None:
                state = record_run(state, report.audio_upload, report)
        finally:
            session.close()
    except Exception as e:
        logger.error(f"Failed to load report {status.report_id}: {e}", exc_info=True)

    return (
        dbc.Alert(
            [
                html.I(className="bi bi-check-circle me-2"),
                f"'{status.filename}' analyzed. Open the Reports tab to view the report.",
            ],
            color="success",
            className="mb-3",
        ),
        True,
        state.to_dict(),
        True,
        None,
    )
