#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
"""
Data models for figma-beacon.

Contains the constants, enums, exceptions and dataclasses shared by the
store, the gateway, the report engine and the TUI.
"""

from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


# =============================================================================
# Constants
# =============================================================================

DEFAULT_API_BASE = "https://api.figma.com/v1"
FILE_URL_TEMPLATE = "https://www.figma.com/file/{key}"
REQUEST_TIMEOUT_SECONDS = 30
PROFILE_SUFFIX = ".beacon"
UNKNOWN_PROJECT = "Unknown Project"


# =============================================================================
# Exceptions
# =============================================================================


class BeaconError(Exception):
    """Base class for all figma-beacon errors."""


class GatewayError(BeaconError):
    """A remote API call failed (transport, status or malformed body)."""

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status

    @property
    def is_auth_failure(self) -> bool:
        return self.status in (401, 403)


class StoreError(BeaconError):
    """Reading or writing config/profile files failed."""


class ProfileNotFoundError(StoreError):
    """The requested profile has no file in the profiles directory."""


class ReportError(BeaconError):
    """Report generation or export could not proceed."""


class ValidationError(BeaconError):
    """User-supplied input was rejected."""


# =============================================================================
# Enums
# =============================================================================


class TimeMode(str, Enum):
    """Symbolic reporting period, resolved to a TimeWindow at generation time."""
    LAST_WEEK = "last_week"
    LAST_MONTH = "last_month"
    THIS_MONTH_TO_DATE = "this_month_to_date"
    LAST_4_WEEKS = "last_4_weeks"
    LAST_30_DAYS = "last_30_days"

    @property
    def label(self) -> str:
        return _TIME_MODE_LABELS[self]

    @classmethod
    def parse(cls, token: str) -> "TimeMode":
        """Parse a time-mode token such as ``last_week`` or ``month-to-date``.

        Raises:
            ValueError: If the token names no known mode.
        """
        normalized = token.strip().lower().replace("-", "_")
        normalized = _TIME_MODE_ALIASES.get(normalized, normalized)
        try:
            return cls(normalized)
        except ValueError:
            valid = ", ".join(m.value for m in cls)
            raise ValueError(f"Unknown time mode '{token}' (expected one of: {valid})") from None


_TIME_MODE_LABELS = {
    TimeMode.LAST_WEEK: "Last Week",
    TimeMode.LAST_MONTH: "Last Month",
    TimeMode.THIS_MONTH_TO_DATE: "This Month to Date",
    TimeMode.LAST_4_WEEKS: "Last 4 Weeks",
    TimeMode.LAST_30_DAYS: "Last 30 Days",
}

_TIME_MODE_ALIASES = {
    "month_to_date": "this_month_to_date",
    "mtd": "this_month_to_date",
    "week": "last_week",
    "month": "last_month",
}


class OutputFormat(str, Enum):
    """Rendering format for reports (and the extension used on export)."""
    MARKDOWN = "markdown"
    TEXT = "text"
    JSON = "json"

    @property
    def extension(self) -> str:
        return {"markdown": "md", "text": "txt", "json": "json"}[self.value]

    @property
    def label(self) -> str:
        return {"markdown": "Markdown", "text": "Plain text", "json": "JSON"}[self.value]

    @classmethod
    def parse(cls, token: Optional[str]) -> "OutputFormat":
        """Parse a format token, falling back to Markdown for blank input.

        Raises:
            ValueError: If the token names no known format.
        """
        if not token:
            return cls.MARKDOWN
        normalized = token.strip().lower()
        if normalized in ("md", "markdown"):
            return cls.MARKDOWN
        if normalized in ("txt", "text", "plain"):
            return cls.TEXT
        if normalized == "json":
            return cls.JSON
        raise ValueError(f"Unknown output format '{token}' (expected markdown, text or json)")


# =============================================================================
# Timestamp helpers
# =============================================================================


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp from the API into an aware datetime.

    Accepts the trailing ``Z`` the API uses. Naive values are taken as UTC.

    Returns:
        The parsed datetime, or None for empty/unparseable input.
    """
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    return as_aware(parsed)


def as_aware(moment: datetime) -> datetime:
    """Return ``moment`` with UTC attached if it carries no tzinfo."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


# =============================================================================
# Persisted records
# =============================================================================


@dataclass(frozen=True)
class Config:
    """Process-wide configuration, persisted as config.json."""
    figma_token: str = ""
    user_id: str = ""
    user_handle: str = ""
    user_email: str = ""
    team_id: str = ""
    output_format: str = OutputFormat.MARKDOWN.value

    @property
    def format(self) -> OutputFormat:
        try:
            return OutputFormat.parse(self.output_format)
        except ValueError:
            return OutputFormat.MARKDOWN

    def to_dict(self) -> Dict[str, str]:
        return {
            "figma_token": self.figma_token,
            "user_id": self.user_id,
            "user_handle": self.user_handle,
            "user_email": self.user_email,
            "team_id": self.team_id,
            "output_format": self.output_format,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        return cls(
            figma_token=str(data.get("figma_token") or ""),
            user_id=str(data.get("user_id") or ""),
            user_handle=str(data.get("user_handle") or ""),
            user_email=str(data.get("user_email") or ""),
            team_id=str(data.get("team_id") or ""),
            output_format=str(data.get("output_format") or OutputFormat.MARKDOWN.value),
        )


@dataclass(frozen=True)
class ProfileProject:
    """A project selected into a profile (id plus display name)."""
    id: str
    name: str


@dataclass(frozen=True)
class Profile:
    """A named, persisted selection of a team and its projects to monitor."""
    name: str
    team_id: str
    selected_projects: Tuple[ProfileProject, ...] = ()
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    is_default: bool = False

    @property
    def project_ids(self) -> List[str]:
        return [p.id for p in self.selected_projects]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "team_id": self.team_id,
            "selected_projects": [{"id": p.id, "name": p.name} for p in self.selected_projects],
            "created_at": self.created_at.isoformat(),
            "is_default": self.is_default,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Profile":
        created = parse_timestamp(data.get("created_at")) or datetime.fromtimestamp(0, timezone.utc)
        projects = tuple(
            ProfileProject(id=str(p.get("id", "")), name=str(p.get("name", "")))
            for p in (data.get("selected_projects") or [])
        )
        return cls(
            name=str(data["name"]),
            team_id=str(data.get("team_id") or ""),
            selected_projects=projects,
            created_at=created,
            is_default=bool(data.get("is_default", False)),
        )


# =============================================================================
# Remote mirrors (never persisted)
# =============================================================================


@dataclass(frozen=True)
class RemoteUser:
    id: str
    handle: str
    email: str = ""


@dataclass(frozen=True)
class RemoteProject:
    id: str
    name: str


@dataclass(frozen=True)
class RemoteFile:
    key: str
    name: str
    project_id: str = ""


@dataclass(frozen=True)
class FileMetadata:
    key: str
    name: str
    last_modified: Optional[datetime]


@dataclass(frozen=True)
class FileVersion:
    id: str
    created_at: Optional[datetime]


# =============================================================================
# Report data
# =============================================================================


@dataclass(frozen=True)
class TimeWindow:
    """Concrete reporting window.

    ``closed_end`` is True for windows that end at "now": those accept an
    instant equal to ``end``. Calendar windows (last month) are open at
    both ends.
    """
    start: datetime
    end: datetime
    closed_end: bool = True

    def contains(self, instant: Optional[datetime]) -> bool:
        if instant is None:
            return False
        instant = as_aware(instant)
        start = as_aware(self.start)
        end = as_aware(self.end)
        if instant <= start:
            return False
        if self.closed_end:
            return instant <= end
        return instant < end


@dataclass(frozen=True)
class FileActivity:
    """One file's activity inside a report window."""
    file_key: str
    file_name: str
    project_name: str
    last_modified: Optional[datetime]
    created_at: Optional[datetime]
    modified_in_window: bool
    created_in_window: bool

    @property
    def url(self) -> str:
        return FILE_URL_TEMPLATE.format(key=self.file_key)

    @property
    def status(self) -> str:
        return "Created" if self.created_in_window else "Modified"


@dataclass(frozen=True)
class ActivityReport:
    """Aggregated result of one report run."""
    window: TimeWindow
    user_id: str
    user_handle: str
    files: Tuple[FileActivity, ...]
    generated_at: datetime

    @property
    def total_files(self) -> int:
        return len(self.files)

    @property
    def total_changes(self) -> int:
        return sum(1 for f in self.files if f.modified_in_window)

    def by_project(self) -> "OrderedDict[str, List[FileActivity]]":
        """Group files by project name in order of first occurrence."""
        groups: "OrderedDict[str, List[FileActivity]]" = OrderedDict()
        for activity in self.files:
            groups.setdefault(activity.project_name or UNKNOWN_PROJECT, []).append(activity)
        return groups

    def to_dict(self) -> Dict[str, Any]:
        def _iso(moment: Optional[datetime]) -> Optional[str]:
            return moment.isoformat() if moment else None

        return {
            "window": {"start": _iso(self.window.start), "end": _iso(self.window.end)},
            "user": {"id": self.user_id, "handle": self.user_handle},
            "total_files": self.total_files,
            "total_changes": self.total_changes,
            "generated_at": _iso(self.generated_at),
            "projects": [
                {
                    "name": name,
                    "files": [
                        {
                            "key": f.file_key,
                            "name": f.file_name,
                            "url": f.url,
                            "status": f.status,
                            "last_modified": _iso(f.last_modified),
                            "created_at": _iso(f.created_at),
                            "modified_in_window": f.modified_in_window,
                            "created_in_window": f.created_in_window,
                        }
                        for f in files
                    ],
                }
                for name, files in self.by_project().items()
            ],
        }


@dataclass(frozen=True)
class Credentials:
    """What the engine needs to talk to the API on the user's behalf."""
    token: str
    user_id: str = ""
    user_handle: str = ""

    @classmethod
    def from_config(cls, config: Config) -> "Credentials":
        return cls(token=config.figma_token, user_id=config.user_id, user_handle=config.user_handle)
