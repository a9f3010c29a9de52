# SPDX-License-Identifier: MIT
"""Events consumed and commands produced by the session controller.

Events are either key presses (``Key``) or the single result message a
previously dispatched command delivers. Commands are plain values; the
command runner executes them and turns each into exactly one event.
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from beacon.models import (
    ActivityReport,
    Config,
    Credentials,
    OutputFormat,
    Profile,
    RemoteProject,
    RemoteUser,
    TimeMode,
)


# -----------------------------------------------------------------------------
# Input
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class Key:
    """A key press.

    ``key`` uses Textual's key names ("up", "enter", "escape", "space",
    "backspace", "ctrl+c", "a", ...). ``character`` is the printable
    character for text entry, if any.
    """
    key: str
    character: Optional[str] = None

    @property
    def printable(self) -> Optional[str]:
        if self.character and self.character.isprintable() and len(self.character) == 1:
            return self.character
        return None


# -----------------------------------------------------------------------------
# Command results
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class UserInfoFetched:
    user: RemoteUser


@dataclass(frozen=True)
class UserInfoFailed:
    message: str


@dataclass(frozen=True)
class ProjectsFetched:
    team_id: str
    projects: Tuple[RemoteProject, ...]


@dataclass(frozen=True)
class ProjectsFailed:
    team_id: str
    message: str


@dataclass(frozen=True)
class ConfigSaved:
    config: Config


@dataclass(frozen=True)
class ProfileSaved:
    """The profile was written. ``warning`` is set when a rename left the
    old record behind."""
    profile: Profile
    profiles: Tuple[Profile, ...]
    replaced: Optional[str] = None
    warning: str = ""


@dataclass(frozen=True)
class ProfileDeleted:
    name: str
    profiles: Tuple[Profile, ...]


@dataclass(frozen=True)
class DefaultChanged:
    name: str
    profiles: Tuple[Profile, ...]


@dataclass(frozen=True)
class StoreFailed:
    """A config/profile write, delete or default change failed."""
    operation: str
    message: str


@dataclass(frozen=True)
class ReportGenerated:
    report: ActivityReport
    content: str
    request_id: int = 0


@dataclass(frozen=True)
class ReportFailed:
    message: str
    request_id: int = 0


@dataclass(frozen=True)
class ReportExported:
    path: Path
    request_id: int = 0


@dataclass(frozen=True)
class ReportExportFailed:
    message: str
    request_id: int = 0


@dataclass(frozen=True)
class Tick:
    """Spinner heartbeat for the report generation ``request_id``."""
    request_id: int = 0


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class FetchUserInfo:
    token: str


@dataclass(frozen=True)
class FetchProjects:
    token: str
    team_id: str


@dataclass(frozen=True)
class SaveConfig:
    config: Config


@dataclass(frozen=True)
class SaveProfile:
    """Write ``profile``; when ``replaces`` names another profile, delete it
    only after the write succeeded. ``stamp_created`` asks the runner to set
    the creation time of a brand-new profile."""
    profile: Profile
    replaces: Optional[str] = None
    stamp_created: bool = False


@dataclass(frozen=True)
class DeleteProfile:
    """Delete a profile. With ``reassign_default`` the first remaining
    profile becomes default when the deleted one held the flag."""
    name: str
    reassign_default: bool = True


@dataclass(frozen=True)
class SetDefault:
    name: str


@dataclass(frozen=True)
class GenerateReport:
    profile: Profile
    mode: TimeMode
    credentials: Credentials
    output_format: OutputFormat = OutputFormat.MARKDOWN
    request_id: int = 0


@dataclass(frozen=True)
class ExportReport:
    content: str
    profile_name: str
    output_format: OutputFormat = OutputFormat.MARKDOWN
    request_id: int = 0


@dataclass(frozen=True)
class ScheduleTick:
    request_id: int = 0
    delay: float = 0.1


@dataclass(frozen=True)
class Batch:
    """Several independent commands started together."""
    commands: Tuple[object, ...]


@dataclass(frozen=True)
class Quit:
    pass
