#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
"""
Activity report engine.

Resolves a reporting window from a TimeMode, walks the profile's projects
through the gateway to find files created or modified inside the window,
and renders the result as Markdown, plain text or JSON.

Fetch order per run:
1. project file lists (one call per selected project)
2. per file: metadata (lastModified) and version history (creation date)

A single file whose metadata or versions cannot be fetched is left out of
the report. Configuration problems (no profile, no token, no projects) and
authentication failures stop the run before per-file work begins.
"""

import json
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import List, Optional, Protocol

from beacon.debug_logger import get_logger
from beacon.models import (
    UNKNOWN_PROJECT,
    ActivityReport,
    Credentials,
    FileActivity,
    FileMetadata,
    FileVersion,
    GatewayError,
    OutputFormat,
    Profile,
    RemoteFile,
    ReportError,
    TimeMode,
    TimeWindow,
)

NO_ACTIVITY_TEXT = "No file activity found in the selected time period."


class ActivityGateway(Protocol):
    """The subset of the gateway the engine depends on."""

    def list_project_files(self, token: str, project_id: str) -> List[RemoteFile]: ...

    def get_file_metadata(self, token: str, file_key: str) -> FileMetadata: ...

    def get_file_versions(self, token: str, file_key: str) -> List[FileVersion]: ...


# -----------------------------------------------------------------------------
# Time windows
# -----------------------------------------------------------------------------


def _start_of_month(moment: datetime) -> datetime:
    return moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def resolve_window(mode: TimeMode, now: datetime) -> TimeWindow:
    """
    Resolve a time mode into a concrete window relative to ``now``.

    The tzinfo of ``now`` carries through to both boundaries.

    Args:
        mode: Reporting period
        now: Reference instant

    Returns:
        TimeWindow; only LAST_MONTH is open at its end.
    """
    mode = TimeMode(mode)
    if mode == TimeMode.LAST_WEEK:
        return TimeWindow(start=now - timedelta(days=7), end=now)
    if mode == TimeMode.LAST_MONTH:
        first_of_this_month = _start_of_month(now)
        first_of_last_month = _start_of_month(first_of_this_month - timedelta(days=1))
        return TimeWindow(
            start=first_of_last_month,
            end=first_of_this_month - timedelta(seconds=1),
            closed_end=False,
        )
    if mode == TimeMode.THIS_MONTH_TO_DATE:
        return TimeWindow(start=_start_of_month(now), end=now)
    if mode == TimeMode.LAST_4_WEEKS:
        return TimeWindow(start=now - timedelta(days=28), end=now)
    return TimeWindow(start=now - timedelta(days=30), end=now)


# -----------------------------------------------------------------------------
# Generation
# -----------------------------------------------------------------------------


def _file_activity(
    gateway: ActivityGateway,
    token: str,
    remote_file: RemoteFile,
    project_name: str,
    window: TimeWindow,
) -> Optional[FileActivity]:
    """Fetch one file's timestamps and classify it against the window.

    Returns None when the file has no activity in the window.

    Raises:
        GatewayError: If metadata or version history cannot be fetched.
    """
    metadata = gateway.get_file_metadata(token, remote_file.key)
    versions = gateway.get_file_versions(token, remote_file.key)

    # Versions arrive newest first; the oldest one marks creation
    created_at = versions[-1].created_at if versions else None

    created_in_window = window.contains(created_at)
    modified_in_window = window.contains(metadata.last_modified)
    if not (created_in_window or modified_in_window):
        return None

    return FileActivity(
        file_key=remote_file.key,
        file_name=metadata.name or remote_file.name,
        project_name=project_name or UNKNOWN_PROJECT,
        last_modified=metadata.last_modified,
        created_at=created_at,
        modified_in_window=modified_in_window,
        created_in_window=created_in_window,
    )


def generate_report(
    profile: Optional[Profile],
    window: TimeWindow,
    credentials: Credentials,
    gateway: ActivityGateway,
    now: Optional[datetime] = None,
) -> ActivityReport:
    """
    Build an activity report for every project in ``profile``.

    Args:
        profile: Profile whose projects are scanned
        window: Resolved reporting window
        credentials: API token plus the user shown in the report header
        gateway: Remote API access
        now: Generation instant recorded on the report (defaults to window end)

    Returns:
        ActivityReport, possibly with no files

    Raises:
        ReportError: On missing configuration, an authentication failure,
            or when no project could be listed at all.
    """
    if profile is None:
        raise ReportError("No profile selected. Please select a profile or create one in Manage Profiles.")
    if not credentials.token:
        raise ReportError("No Figma token set. Add one in Setup.")
    if not profile.selected_projects:
        raise ReportError(f"Profile '{profile.name}' has no projects selected.")

    files: List[FileActivity] = []
    listed_projects = 0
    skipped_files = 0
    last_error: Optional[GatewayError] = None

    for project in profile.selected_projects:
        try:
            remote_files = gateway.list_project_files(credentials.token, project.id)
        except GatewayError as e:
            if e.is_auth_failure:
                raise ReportError(f"Authentication failed: {e.message}") from e
            last_error = e
            continue
        listed_projects += 1

        for remote_file in remote_files:
            try:
                activity = _file_activity(gateway, credentials.token, remote_file, project.name, window)
            except GatewayError as e:
                skipped_files += 1
                get_logger().error("file_activity", f"{remote_file.key}: {e.message}")
                continue
            if activity is not None:
                files.append(activity)

    if listed_projects == 0 and last_error is not None:
        raise ReportError(f"Could not reach the Figma API: {last_error.message}")

    report = ActivityReport(
        window=window,
        user_id=credentials.user_id,
        user_handle=credentials.user_handle,
        files=tuple(files),
        generated_at=now or window.end,
    )
    get_logger().report_generated(
        profile=profile.name,
        files=report.total_files,
        changes=report.total_changes,
        skipped=skipped_files,
    )
    return report


# -----------------------------------------------------------------------------
# Formatting
# -----------------------------------------------------------------------------


def _format_markdown(report: ActivityReport) -> str:
    lines = [
        "# Status Report",
        f"## From {report.window.start:%Y-%m-%d} to {report.window.end:%Y-%m-%d}",
    ]
    if report.user_handle:
        lines.append(f"User: {report.user_handle}")
    lines.append("")

    if not report.files:
        lines.append(NO_ACTIVITY_TEXT)
        return "\n".join(lines) + "\n"

    for project_name, activities in report.by_project().items():
        lines.append("")
        lines.append(f"### {project_name}")
        lines.append("")
        for activity in activities:
            lines.append(f"- [{activity.file_name}]({activity.url}) ({activity.status})")
    return "\n".join(lines) + "\n"


def _format_text(report: ActivityReport) -> str:
    lines = [
        "Status Report",
        f"From {report.window.start:%Y-%m-%d} to {report.window.end:%Y-%m-%d}",
    ]
    if report.user_handle:
        lines.append(f"User: {report.user_handle}")
    lines.append(f"Files: {report.total_files}  Changes: {report.total_changes}")
    lines.append("")

    if not report.files:
        lines.append(NO_ACTIVITY_TEXT)
        return "\n".join(lines) + "\n"

    for project_name, activities in report.by_project().items():
        lines.append(project_name)
        for activity in activities:
            lines.append(f"  - {activity.file_name} ({activity.status}) {activity.url}")
        lines.append("")
    return "\n".join(lines)


def format_report(report: ActivityReport, fmt: OutputFormat = OutputFormat.MARKDOWN) -> str:
    """
    Render a report body.

    Pure: the same report and format always produce the same text.

    Args:
        report: Report to render
        fmt: Output format

    Returns:
        Rendered text
    """
    fmt = OutputFormat(fmt)
    if fmt == OutputFormat.JSON:
        return json.dumps(report.to_dict(), indent=2) + "\n"
    if fmt == OutputFormat.TEXT:
        return _format_text(report)
    return _format_markdown(report)


# -----------------------------------------------------------------------------
# Export
# -----------------------------------------------------------------------------


def report_filename(profile_name: str, fmt: OutputFormat, today: date) -> str:
    name = profile_name.strip() or "default"
    return f"{name}-{today.isoformat()}.{OutputFormat(fmt).extension}"


def export_report(
    content: str,
    profile_name: str,
    reports_dir: Path,
    fmt: OutputFormat = OutputFormat.MARKDOWN,
    today: Optional[date] = None,
) -> Path:
    """
    Write rendered report text to the reports directory.

    Args:
        content: Rendered report, written verbatim
        profile_name: Used as the filename prefix ("default" when blank)
        reports_dir: Target directory, created if missing
        fmt: Determines the file extension
        today: Date stamped into the filename (defaults to today)

    Returns:
        Path of the written file

    Raises:
        ReportError: If the directory or file cannot be written.
    """
    today = today or date.today()
    try:
        reports_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ReportError(f"Failed to create reports directory: {e}") from e

    path = reports_dir / report_filename(profile_name, fmt, today)
    try:
        path.write_text(content, encoding="utf-8")
    except OSError as e:
        raise ReportError(f"Failed to write report: {e}") from e

    get_logger().report_exported(str(path))
    return path
