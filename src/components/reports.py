"""Report library component for the Salon Conversation Insights dashboard.

This module provides a Dash component listing the current user's insight
reports and rendering the selected report's two sections as markdown tabs.
"""

import logging
from datetime import datetime
from typing import Any

import dash_bootstrap_components as dbc
from dash import ALL, Input, Output, State, callback, ctx, dcc, html, no_update
from flask import request

from src.db.session import get_session
from src.services.auth import get_current_user_id
from src.services.environment import get_environment
from src.services.reports import (
    CUSTOMER_INSIGHT_HEADING,
    SERVICE_EVALUATION_HEADING,
    display_filename,
    get_report,
    list_reports,
    provider_label,
    split_report_sections,
)

logger = logging.getLogger(__name__)


def create_reports_component() -> dbc.Container:
    """Create the report library component layout.

    Returns:
        A Dash Bootstrap Container with the report list and viewer.
    """
    return dbc.Container(
        [
            html.H3("Reports", className="mb-4"),
            html.P(
                "Service evaluation and customer insight reports for your uploads.",
                className="text-muted mb-3",
            ),
            dbc.Button(
                [
                    html.I(className="bi bi-arrow-clockwise me-2"),
                    "Refresh",
                ],
                id="refresh-reports-button",
                color="outline-primary",
                className="mb-3",
            ),
            dbc.Row(
                [
                    dbc.Col(html.Div(id="report-list-container"), md=4),
                    dbc.Col(html.Div(id="report-viewer-container"), md=8),
                ]
            ),
            dcc.Store(id="selected-report-id", storage_type="memory"),
        ],
        fluid=True,
        className="p-4",
    )


def _format_date(dt: datetime | None) -> str:
    """Format a datetime to a human-readable string.

    Args:
        dt: Datetime object or None.

    Returns:
        Formatted date string (e.g., "Dec 18, 2025 10:30 AM").
    """
    if dt is None:
        return "N/A"

    return dt.strftime("%b %d, %Y %I:%M %p")


def _create_report_item(report: Any, is_selected: bool = False) -> dbc.ListGroupItem:
    """Create a list entry for a single report.

    Args:
        report: InsightReport model instance with audio_upload loaded.
        is_selected: Whether this report is shown in the viewer.

    Returns:
        A clickable ListGroupItem.
    """
    return dbc.ListGroupItem(
        [
            html.Div(
                [
                    html.I(className="bi bi-file-earmark-text me-2"),
                    html.Strong(display_filename(report.audio_upload.file_path)),
                ]
            ),
            html.Small(
                [
                    _format_date(report.created_at),
                    dbc.Badge(
                        provider_label(report.provider),
                        color="secondary",
                        className="ms-2",
                    ),
                ],
                className="text-muted",
            ),
        ],
        id={"type": "report-item", "index": report.id},
        action=True,
        active=is_selected,
        n_clicks=0,
    )


def _create_report_viewer(report: Any) -> dbc.Card:
    """Create the tabbed markdown viewer for a report.

    Args:
        report: InsightReport model instance with audio_upload loaded.

    Returns:
        A Card with a tab per report section.
    """
    service_evaluation, customer_insight = split_report_sections(report.report_md)
    return dbc.Card(
        [
            dbc.CardHeader(
                html.Div(
                    [
                        html.Span(
                            f"{display_filename(report.audio_upload.file_path)} - "
                            f"{_format_date(report.created_at)}",
                            className="fw-medium",
                        ),
                        dbc.Badge(provider_label(report.provider), color="light", text_color="dark"),
                    ],
                    className="d-flex justify-content-between align-items-center",
                )
            ),
            dbc.CardBody(
                dbc.Tabs(
                    [
                        dbc.Tab(
                            dcc.Markdown(service_evaluation, className="pt-3"),
                            label=SERVICE_EVALUATION_HEADING,
                            tab_id="report-tab-service",
                        ),
                        dbc.Tab(
                            dcc.Markdown(customer_insight, className="pt-3"),
                            label=CUSTOMER_INSIGHT_HEADING,
                            tab_id="report-tab-customer",
                        ),
                    ],
                    active_tab="report-tab-service",
                )
            ),
        ]
    )


@callback(
    Output("report-list-container", "children"),
    Output("selected-report-id", "data"),
    Input("refresh-reports-button", "n_clicks"),
    Input("main-tabs", "active_tab"),
    Input("app-state", "data"),
    State("selected-report-id", "data"),
)
def load_report_list(
    n_clicks: int | None,
    active_tab: str | None,
    app_state: dict | None,
    selected_id: str | None,
) -> tuple[Any, str | None]:
    """Load the current user's reports.

    Returns:
        Tuple of (report_list, selected_report_id). The newest report is
        selected when the previous selection is no longer listed.
    """
    user_id = get_current_user_id(request.headers, get_environment())
    if not user_id:
        return dbc.Alert("Sign in to view reports.", color="warning"), None

    try:
        session = get_session()
        try:
            reports = list_reports(session, user_id)
            if not reports:
                return (
                    html.P(
                        "No reports yet. Upload a conversation to create one.",
                        className="text-muted",
                    ),
                    None,
                )

            report_ids = [report.id for report in reports]
            if selected_id not in report_ids:
                selected_id = report_ids[0]

            items = [
                _create_report_item(report, is_selected=report.id == selected_id)
                for report in reports
            ]
            return dbc.ListGroup(items), selected_id
        finally:
            session.close()

    except Exception as e:
        logger.error(f"Failed to load reports: {e}", exc_info=True)
        return dbc.Alert("Failed to load reports.", color="danger"), None


@callback(
    Output("selected-report-id", "data", allow_duplicate=True),
    Input({"type": "report-item", "index": ALL}, "n_clicks"),
    prevent_initial_call=True,
)
def select_report(n_clicks_list: list[int | None]) -> Any:
    """Select the clicked report."""
    if not ctx.triggered_id or not any(n_clicks_list):
        return no_update
    return ctx.triggered_id["index"]


@callback(
    Output("report-viewer-container", "children"),
    Input("selected-report-id", "data"),
)
def render_report(report_id: str | None) -> Any:
    """Render the selected report."""
    if not report_id:
        return None

    user_id = get_current_user_id(request.headers, get_environment())
    try:
        session = get_session()
        try:
            report = get_report(session, report_id, user_id)
            if report is None:
                return dbc.Alert("Report not found.", color="warning")
            return _create_report_viewer(report)
        finally:
            session.close()

    except Exception as e:
        logger.error(f"Failed to load report {report_id}: {e}", exc_info=True)
        return dbc.Alert("Failed to load the report.", color="danger")
