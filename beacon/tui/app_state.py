# SPDX-License-Identifier: MIT
"""State management dataclasses for the TUI app.

This module provides the immutable state values the session controller
threads through ``dispatch``. Exactly one screen state is current at a
time; each carries only what its screen needs:

- MainMenuScreen: derived menu entries and the cursor
- SetupScreen / FormatSelectionScreen: config editing
- ManageProfilesScreen / ProfilePreviewScreen: profile list and detail
- WizardState: the profile wizard (see wizard.py for its transitions)
- ReportConfigScreen / ReportGeneratingScreen / ReportViewScreen: reports
- Session: top-level container (config, profiles, active profile, screen)

Plus the pure helpers shared by list screens: menu derivation and
minimal-scroll cursor movement.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, List, Optional, Tuple, Union

from beacon.models import (
    ActivityReport,
    Config,
    OutputFormat,
    Profile,
    RemoteProject,
    TimeMode,
    TimeWindow,
)

PAGE_SIZE = 10
MAX_MENU_PROFILES = 3
SPINNER_FRAMES = ("⬖", "⬗", "⬘", "⬙")
STATUS_MARK = "⬥"

TIME_MODES: Tuple[TimeMode, ...] = tuple(TimeMode)
OUTPUT_FORMATS: Tuple[OutputFormat, ...] = tuple(OutputFormat)
SETUP_ITEMS: Tuple[str, ...] = ("API Token", "User Info", "Team ID", "Output Format", "Back")


# -----------------------------------------------------------------------------
# Shared pieces
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class EditBuffer:
    """In-progress inline edit: which field, and the text typed so far."""
    target: int
    text: str = ""

    def insert(self, char: str) -> "EditBuffer":
        return EditBuffer(self.target, self.text + char)

    def backspace(self) -> "EditBuffer":
        return EditBuffer(self.target, self.text[:-1])


class MenuAction(str, Enum):
    REPORT = "report"
    PROFILES = "profiles"
    ACTIVATE_PROFILE = "activate_profile"
    SETUP = "setup"
    EXIT = "exit"


@dataclass(frozen=True)
class MenuEntry:
    """One main-menu row. Spacers have no action and cannot be selected."""
    title: str = ""
    description: str = ""
    action: Optional[MenuAction] = None
    target: Optional[str] = None
    warning: str = ""

    @property
    def selectable(self) -> bool:
        return self.action is not None


SPACER = MenuEntry()


def derive_menu(config: Config, profiles: List[Profile]) -> Tuple[MenuEntry, ...]:
    """Build the main menu from config and the current profile list.

    The three most recently created profiles are listed under
    "Manage Profiles" as shortcuts that make the profile active.
    """
    report_warning = "" if config.figma_token else "Set your API token in Setup first"
    entries = [
        SPACER,
        MenuEntry(
            "Generate Activity Report",
            "View your recent activity",
            MenuAction.REPORT,
            warning=report_warning,
        ),
        MenuEntry("Manage Profiles", "Create, edit and manage your profiles", MenuAction.PROFILES),
    ]
    recent = sorted(profiles, key=lambda p: p.created_at, reverse=True)[:MAX_MENU_PROFILES]
    for profile in recent:
        title = f"  - {profile.name}" + (" (default)" if profile.is_default else "")
        entries.append(MenuEntry(title, "", MenuAction.ACTIVATE_PROFILE, target=profile.name))
    entries.extend([
        SPACER,
        MenuEntry("Setup", "Configure API token and more", MenuAction.SETUP),
        MenuEntry("Exit", "Quit the application", MenuAction.EXIT),
        SPACER,
    ])
    return tuple(entries)


def first_selectable(entries: Tuple[MenuEntry, ...]) -> int:
    return next((i for i, e in enumerate(entries) if e.selectable), 0)


def step_selectable(entries: Tuple[MenuEntry, ...], index: int, step: int) -> int:
    """Move from ``index`` by ``step`` to the next selectable entry.

    Spacers are skipped; if nothing selectable lies in that direction the
    cursor stays where it is.
    """
    candidate = index + step
    while 0 <= candidate < len(entries):
        if entries[candidate].selectable:
            return candidate
        candidate += step
    return index


def move_cursor(cursor: int, offset: int, count: int, step: int, page_size: int = PAGE_SIZE) -> Tuple[int, int]:
    """Move a list cursor and scroll just enough to keep it visible.

    Returns:
        (cursor, offset) after the move, clamped to ``count`` rows.
    """
    if count <= 0:
        return 0, 0
    cursor = max(0, min(count - 1, cursor + step))
    if cursor < offset:
        offset = cursor
    elif cursor >= offset + page_size:
        offset = cursor - page_size + 1
    return cursor, offset


def clamp_cursor(cursor: int, offset: int, count: int, page_size: int = PAGE_SIZE) -> Tuple[int, int]:
    return move_cursor(cursor, offset, count, 0, page_size)


# -----------------------------------------------------------------------------
# Screens
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class MainMenuScreen:
    """Main menu. ``busy`` is set while a profile shortcut is being applied."""
    entries: Tuple[MenuEntry, ...] = ()
    index: int = 0
    busy: bool = False
    error: str = ""


@dataclass(frozen=True)
class SetupScreen:
    index: int = 0
    edit: Optional[EditBuffer] = None
    fetching_user: bool = False
    saving: bool = False
    error: str = ""
    message: str = ""

    @property
    def busy(self) -> bool:
        return self.fetching_user or self.saving


@dataclass(frozen=True)
class FormatSelectionScreen:
    index: int = 0


@dataclass(frozen=True)
class ManageProfilesScreen:
    """Rows: "Create New Profile", one per profile, "Back"."""
    cursor: int = 0
    offset: int = 0
    confirm_delete: Optional[str] = None
    busy: bool = False
    error: str = ""


@dataclass(frozen=True)
class ProfilePreviewScreen:
    profile: Profile


class WizardStep(str, Enum):
    TEAM = "team"
    PROJECTS = "projects"
    NAME = "name"


@dataclass(frozen=True)
class WizardState:
    """Profile wizard: Team -> Projects -> Name.

    ``original`` is set when editing an existing profile; it supplies the
    name that may be re-used and the creation time/default flag to keep.
    """
    step: WizardStep = WizardStep.TEAM
    team_id: str = ""
    projects: Tuple[RemoteProject, ...] = ()
    selected: FrozenSet[str] = frozenset()
    name: str = ""
    original: Optional[Profile] = None
    edit: Optional[EditBuffer] = None
    loading: bool = False
    saving: bool = False
    error: str = ""
    progress: str = ""
    cursor: int = 0
    offset: int = 0

    @property
    def edit_mode(self) -> bool:
        return self.original is not None

    @property
    def selected_projects(self) -> List[RemoteProject]:
        """Selected projects among those fetched, in list order."""
        return [p for p in self.projects if p.id in self.selected]


@dataclass(frozen=True)
class ReportConfigScreen:
    profile_index: int = 0
    mode_index: int = 0
    error: str = ""


@dataclass(frozen=True)
class ReportGeneratingScreen:
    profile: Profile
    mode: TimeMode
    request_id: int = 0
    spinner_frame: int = 0
    generating: bool = True


@dataclass(frozen=True)
class ReportViewScreen:
    """Generated report. ``request_id`` identifies the export in flight."""
    profile_name: str = ""
    report: Optional[ActivityReport] = None
    content: str = ""
    error: str = ""
    output_format: OutputFormat = OutputFormat.MARKDOWN
    exporting: bool = False
    export_message: str = ""
    export_error: str = ""
    request_id: int = 0

    @property
    def window(self) -> Optional[TimeWindow]:
        return self.report.window if self.report else None


ScreenState = Union[
    MainMenuScreen,
    SetupScreen,
    FormatSelectionScreen,
    ManageProfilesScreen,
    ProfilePreviewScreen,
    WizardState,
    ReportConfigScreen,
    ReportGeneratingScreen,
    ReportViewScreen,
]


@dataclass(frozen=True)
class Session:
    """Top-level state container.

    ``profiles`` is the working copy of the store's profile list and
    ``active_profile`` is a value copy, re-resolved by name whenever the
    list is reloaded. ``next_request`` numbers report and export commands so
    their results can be matched to the screen that asked for them.
    """
    config: Config = field(default_factory=Config)
    profiles: Tuple[Profile, ...] = ()
    active_profile: Optional[Profile] = None
    screen: ScreenState = field(default_factory=lambda: main_menu(Config(), ()))
    quitting: bool = False
    next_request: int = 1

    @property
    def profile_status(self) -> str:
        screen = self.screen
        if isinstance(screen, ReportGeneratingScreen) and screen.generating:
            frame = SPINNER_FRAMES[screen.spinner_frame % len(SPINNER_FRAMES)]
            return f"{frame} Profile: {screen.profile.name}"
        if self.active_profile is not None:
            return f"{STATUS_MARK} Profile: {self.active_profile.name}"
        return f"{STATUS_MARK} No profile selected"

    def find_profile(self, name: str) -> Optional[Profile]:
        return next((p for p in self.profiles if p.name == name), None)


def main_menu(config: Config, profiles: Tuple[Profile, ...], index: Optional[int] = None) -> MainMenuScreen:
    """Main menu screen with freshly derived entries.

    The cursor keeps ``index`` when it still lands on a selectable entry,
    otherwise it moves to the first one.
    """
    entries = derive_menu(config, list(profiles))
    if index is None or not (0 <= index < len(entries)) or not entries[index].selectable:
        index = first_selectable(entries)
    return MainMenuScreen(entries=entries, index=index)


def initial_session(config: Config, profiles: List[Profile]) -> Session:
    """Session as the app starts: default profile active, main menu shown."""
    ordered = tuple(profiles)
    active = next((p for p in ordered if p.is_default), None)
    return Session(
        config=config,
        profiles=ordered,
        active_profile=active,
        screen=main_menu(config, ordered),
    )
