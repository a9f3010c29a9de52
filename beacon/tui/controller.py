# SPDX-License-Identifier: MIT
"""
Session controller: the TUI's state-transition function.

``dispatch(session, event) -> (session, command)`` is pure. It never
touches the network, the filesystem or the clock; anything with a side
effect is returned as a command for the runner, whose single result event
comes back through ``dispatch`` later.

Key handling is routed by the type of the current screen; result events
are routed by their own type and ignored when the screen that asked for
them is no longer current (e.g. the user pressed escape while loading).
Report generation, export and spinner ticks also carry the request id of
the command that started them; a result for any other id is dropped.
"""

from dataclasses import replace
from typing import Callable, Dict, Optional, Tuple, Type

from beacon.models import Credentials, OutputFormat, Profile
from beacon.tui import wizard
from beacon.tui.app_state import (
    OUTPUT_FORMATS,
    SETUP_ITEMS,
    TIME_MODES,
    EditBuffer,
    FormatSelectionScreen,
    MainMenuScreen,
    ManageProfilesScreen,
    MenuAction,
    ProfilePreviewScreen,
    ReportConfigScreen,
    ReportGeneratingScreen,
    ReportViewScreen,
    Session,
    SetupScreen,
    WizardState,
    clamp_cursor,
    first_selectable,
    main_menu,
    move_cursor,
    step_selectable,
)
from beacon.tui.events import (
    Batch,
    ConfigSaved,
    DefaultChanged,
    DeleteProfile,
    ExportReport,
    FetchUserInfo,
    GenerateReport,
    Key,
    ProfileDeleted,
    ProfileSaved,
    ProjectsFailed,
    ProjectsFetched,
    Quit,
    ReportExported,
    ReportExportFailed,
    ReportFailed,
    ReportGenerated,
    SaveConfig,
    ScheduleTick,
    SetDefault,
    StoreFailed,
    Tick,
    UserInfoFailed,
    UserInfoFetched,
)

Transition = Tuple[Session, Optional[object]]

NO_PROFILES_ERROR = "No profiles available. Please create a profile first."

# Setup rows
SETUP_TOKEN, SETUP_USER, SETUP_TEAM, SETUP_FORMAT, SETUP_BACK = range(len(SETUP_ITEMS))


def dispatch(session: Session, event: object) -> Transition:
    """
    Apply one event to the session.

    Args:
        session: Current session state
        event: A Key press or a command result event

    Returns:
        (new session, command to run or None)
    """
    if isinstance(event, Key):
        if event.key == "ctrl+c":
            return _quit(session)
        key_handler = _KEY_HANDLERS.get(type(session.screen))
        if key_handler is None:
            return session, None
        return key_handler(session, session.screen, event)

    result_handler = _RESULT_HANDLERS.get(type(event))
    if result_handler is None:
        return session, None
    return result_handler(session, event)


# -----------------------------------------------------------------------------
# Shared transitions
# -----------------------------------------------------------------------------


def _quit(session: Session) -> Transition:
    return replace(session, quitting=True), Quit()


def _to_main_menu(session: Session, index: Optional[int] = None) -> Session:
    return replace(session, screen=main_menu(session.config, session.profiles, index))


def _profile_row(session: Session, name: str) -> int:
    """Manage-list row of a profile (row 0 is "Create New Profile")."""
    for i, profile in enumerate(session.profiles):
        if profile.name == name:
            return i + 1
    return 0


def _to_manage(session: Session, cursor: int = 0, **changes) -> Session:
    cursor, offset = clamp_cursor(cursor, 0, len(session.profiles) + 2)
    return replace(session, screen=ManageProfilesScreen(cursor=cursor, offset=offset, **changes))


def _with_profiles(session: Session, profiles: Tuple[Profile, ...], active_name: Optional[str]) -> Session:
    """Swap in a reloaded profile list and re-resolve the active profile by name."""
    profiles = tuple(profiles)
    active = None
    if active_name is not None:
        active = next((p for p in profiles if p.name == active_name), None)
    session = replace(session, profiles=profiles, active_profile=active)
    screen = session.screen
    if isinstance(screen, MainMenuScreen):
        menu = main_menu(session.config, profiles, screen.index)
        session = replace(session, screen=replace(menu, busy=screen.busy))
    elif isinstance(screen, ManageProfilesScreen):
        cursor, offset = clamp_cursor(screen.cursor, screen.offset, len(profiles) + 2)
        session = replace(session, screen=replace(screen, cursor=cursor, offset=offset, busy=False))
    return session


def _active_name(session: Session) -> Optional[str]:
    return session.active_profile.name if session.active_profile else None


def _new_request(session: Session) -> Tuple[Session, int]:
    request_id = session.next_request
    return replace(session, next_request=request_id + 1), request_id


# -----------------------------------------------------------------------------
# Main menu
# -----------------------------------------------------------------------------


def _main_menu_key(session: Session, screen: MainMenuScreen, key: Key) -> Transition:
    entries = screen.entries
    if key.key == "q":
        return _quit(session)
    if key.key == "escape":
        return replace(session, screen=replace(screen, index=first_selectable(entries), error="")), None
    if key.key in ("up", "k"):
        return replace(session, screen=replace(screen, index=step_selectable(entries, screen.index, -1))), None
    if key.key in ("down", "j"):
        return replace(session, screen=replace(screen, index=step_selectable(entries, screen.index, 1))), None
    if key.key != "enter" or screen.busy or not (0 <= screen.index < len(entries)):
        return session, None

    entry = entries[screen.index]
    if entry.action == MenuAction.REPORT:
        profile_index = 0
        if session.active_profile is not None:
            names = [p.name for p in session.profiles]
            if session.active_profile.name in names:
                profile_index = names.index(session.active_profile.name)
        return replace(session, screen=ReportConfigScreen(profile_index=profile_index)), None
    if entry.action == MenuAction.PROFILES:
        return _to_manage(session), None
    if entry.action == MenuAction.ACTIVATE_PROFILE and entry.target:
        return replace(session, screen=replace(screen, busy=True, error="")), SetDefault(entry.target)
    if entry.action == MenuAction.SETUP:
        return replace(session, screen=SetupScreen()), None
    if entry.action == MenuAction.EXIT:
        return _quit(session)
    return session, None


# -----------------------------------------------------------------------------
# Setup and output format
# -----------------------------------------------------------------------------


def _setup_key(session: Session, screen: SetupScreen, key: Key) -> Transition:
    if screen.edit is not None:
        return _setup_edit_key(session, screen, key)

    if key.key == "q":
        return _quit(session)
    if key.key == "escape":
        return _to_main_menu(session), None
    if key.key in ("up", "k"):
        return replace(session, screen=replace(screen, index=max(0, screen.index - 1))), None
    if key.key in ("down", "j"):
        return replace(session, screen=replace(screen, index=min(len(SETUP_ITEMS) - 1, screen.index + 1))), None
    if key.key != "enter":
        return session, None

    if screen.index == SETUP_BACK:
        return _to_main_menu(session), None
    if screen.busy:
        return session, None

    config = session.config
    if screen.index == SETUP_TOKEN:
        return replace(session, screen=replace(screen, edit=EditBuffer(SETUP_TOKEN, config.figma_token))), None
    if screen.index == SETUP_USER:
        if not config.figma_token:
            return replace(session, screen=replace(screen, error="No Figma token set")), None
        fetching = replace(screen, fetching_user=True, error="", message="")
        return replace(session, screen=fetching), FetchUserInfo(config.figma_token)
    if screen.index == SETUP_TEAM:
        return replace(session, screen=replace(screen, edit=EditBuffer(SETUP_TEAM, config.team_id))), None
    if screen.index == SETUP_FORMAT:
        index = OUTPUT_FORMATS.index(config.format)
        return replace(session, screen=FormatSelectionScreen(index=index)), None
    return session, None


def _setup_edit_key(session: Session, screen: SetupScreen, key: Key) -> Transition:
    buffer = screen.edit
    if key.key == "escape":
        return replace(session, screen=replace(screen, edit=None)), None
    if key.key == "backspace":
        return replace(session, screen=replace(screen, edit=buffer.backspace())), None
    if key.key == "enter":
        value = buffer.text.strip()
        if buffer.target == SETUP_TOKEN:
            config = replace(session.config, figma_token=value)
        else:
            config = replace(session.config, team_id=value)
        saving = replace(screen, edit=None, saving=True, error="", message="")
        session = replace(session, config=config, screen=saving)
        return session, SaveConfig(config)
    char = key.printable
    if char is not None:
        return replace(session, screen=replace(screen, edit=buffer.insert(char))), None
    return session, None


def _format_key(session: Session, screen: FormatSelectionScreen, key: Key) -> Transition:
    if key.key == "escape":
        return replace(session, screen=SetupScreen(index=SETUP_FORMAT)), None
    if key.key in ("up", "k"):
        return replace(session, screen=FormatSelectionScreen(index=max(0, screen.index - 1))), None
    if key.key in ("down", "j"):
        return replace(session, screen=FormatSelectionScreen(index=min(len(OUTPUT_FORMATS) - 1, screen.index + 1))), None
    if key.key == "enter":
        fmt: OutputFormat = OUTPUT_FORMATS[screen.index]
        config = replace(session.config, output_format=fmt.value)
        setup = SetupScreen(index=SETUP_FORMAT, saving=True, message=f"Output format set to {fmt.label}")
        return replace(session, config=config, screen=setup), SaveConfig(config)
    return session, None


def _on_user_info_fetched(session: Session, event: UserInfoFetched) -> Transition:
    screen = session.screen
    if not (isinstance(screen, SetupScreen) and screen.fetching_user):
        return session, None
    config = replace(
        session.config,
        user_id=event.user.id,
        user_handle=event.user.handle,
        user_email=event.user.email,
    )
    screen = replace(
        screen,
        fetching_user=False,
        saving=True,
        error="",
        message=f"Signed in as {event.user.handle}",
    )
    return replace(session, config=config, screen=screen), SaveConfig(config)


def _on_user_info_failed(session: Session, event: UserInfoFailed) -> Transition:
    screen = session.screen
    if not (isinstance(screen, SetupScreen) and screen.fetching_user):
        return session, None
    return replace(session, screen=replace(screen, fetching_user=False, error=event.message)), None


def _on_config_saved(session: Session, event: ConfigSaved) -> Transition:
    screen = session.screen
    if isinstance(screen, MainMenuScreen):
        menu = main_menu(session.config, session.profiles, screen.index)
        return replace(session, screen=replace(menu, busy=screen.busy)), None
    if isinstance(screen, SetupScreen) and screen.saving:
        return replace(session, screen=replace(screen, saving=False)), None
    return session, None


# -----------------------------------------------------------------------------
# Profile management
# -----------------------------------------------------------------------------


def _manage_key(session: Session, screen: ManageProfilesScreen, key: Key) -> Transition:
    profiles = session.profiles
    if screen.busy:
        if key.key == "escape":
            return _to_main_menu(session), None
        return session, None

    if screen.confirm_delete is not None:
        if key.key in ("y", "Y"):
            name = screen.confirm_delete
            busy = replace(screen, confirm_delete=None, busy=True, error="")
            return replace(session, screen=busy), DeleteProfile(name)
        return replace(session, screen=replace(screen, confirm_delete=None)), None

    row_count = len(profiles) + 2
    back_row = row_count - 1
    selected_profile = profiles[screen.cursor - 1] if 0 < screen.cursor < back_row else None

    if key.key == "escape":
        return _to_main_menu(session), None
    if key.key in ("up", "k", "down", "j"):
        step = -1 if key.key in ("up", "k") else 1
        cursor, offset = move_cursor(screen.cursor, screen.offset, row_count, step)
        return replace(session, screen=replace(screen, cursor=cursor, offset=offset, error="")), None
    if key.key in ("backspace", "delete", "x"):
        if selected_profile is None:
            return session, None
        return replace(session, screen=replace(screen, confirm_delete=selected_profile.name)), None
    if key.key in ("d", "D"):
        if selected_profile is None:
            return session, None
        return replace(session, screen=replace(screen, busy=True, error="")), SetDefault(selected_profile.name)
    if key.key == "enter":
        if screen.cursor == 0:
            return replace(session, screen=wizard.start_new(session.config.team_id)), None
        if screen.cursor == back_row:
            return _to_main_menu(session), None
        return replace(session, screen=ProfilePreviewScreen(profile=selected_profile)), None
    return session, None


def _preview_key(session: Session, screen: ProfilePreviewScreen, key: Key) -> Transition:
    profile = screen.profile
    if key.key == "escape":
        return _to_manage(session, _profile_row(session, profile.name)), None
    if key.key in ("e", "E"):
        return replace(session, screen=wizard.start_edit(profile)), None
    if key.key in ("d", "D"):
        row = _profile_row(session, profile.name)
        return _to_manage(session, row, confirm_delete=profile.name), None
    return session, None


def _on_profile_deleted(session: Session, event: ProfileDeleted) -> Transition:
    active_name = _active_name(session)
    if active_name == event.name:
        default = next((p for p in event.profiles if p.is_default), None)
        active_name = default.name if default else None
    return _with_profiles(session, event.profiles, active_name), None


def _on_default_changed(session: Session, event: DefaultChanged) -> Transition:
    session = _with_profiles(session, event.profiles, event.name)
    if isinstance(session.screen, MainMenuScreen):
        session = replace(session, screen=replace(session.screen, busy=False))
    return session, None


def _on_store_failed(session: Session, event: StoreFailed) -> Transition:
    screen = session.screen
    if isinstance(screen, WizardState) and screen.saving:
        return replace(session, screen=wizard.apply_save_failed(screen, event.message)), None
    if isinstance(screen, ManageProfilesScreen):
        return replace(session, screen=replace(screen, busy=False, confirm_delete=None, error=event.message)), None
    if isinstance(screen, SetupScreen):
        return replace(session, screen=replace(screen, saving=False, error=event.message, message="")), None
    if isinstance(screen, MainMenuScreen):
        return replace(session, screen=replace(screen, busy=False, error=event.message)), None
    return session, None


# -----------------------------------------------------------------------------
# Wizard
# -----------------------------------------------------------------------------


def _wizard_key(session: Session, screen: WizardState, key: Key) -> Transition:
    names = [p.name for p in session.profiles]
    new_state, command = wizard.handle_key(screen, key, session.config.figma_token, names)
    if new_state is None:
        return _to_manage(session), None
    return replace(session, screen=new_state), command


def _on_projects_fetched(session: Session, event: ProjectsFetched) -> Transition:
    if not isinstance(session.screen, WizardState):
        return session, None
    return replace(session, screen=wizard.apply_projects_fetched(session.screen, event)), None


def _on_projects_failed(session: Session, event: ProjectsFailed) -> Transition:
    if not isinstance(session.screen, WizardState):
        return session, None
    return replace(session, screen=wizard.apply_projects_failed(session.screen, event)), None


def _on_profile_saved(session: Session, event: ProfileSaved) -> Transition:
    screen = session.screen
    active_name = _active_name(session)
    renamed_from = event.replaced
    if isinstance(screen, WizardState) and screen.original is not None:
        renamed_from = renamed_from or screen.original.name
    if active_name is not None and active_name == renamed_from:
        active_name = event.profile.name
    elif event.profile.is_default:
        active_name = event.profile.name

    session = _with_profiles(session, event.profiles, active_name)
    if isinstance(screen, WizardState) and screen.saving:
        return _to_manage(session, _profile_row(session, event.profile.name), error=event.warning), None
    if isinstance(session.screen, ManageProfilesScreen) and event.warning:
        return replace(session, screen=replace(session.screen, error=event.warning)), None
    return session, None


# -----------------------------------------------------------------------------
# Reports
# -----------------------------------------------------------------------------


def _report_config_key(session: Session, screen: ReportConfigScreen, key: Key) -> Transition:
    profiles = session.profiles
    if key.key == "escape":
        return _to_main_menu(session), None
    if key.key in ("left", "h"):
        return replace(session, screen=replace(screen, profile_index=max(0, screen.profile_index - 1))), None
    if key.key in ("right", "l"):
        last = max(0, len(profiles) - 1)
        return replace(session, screen=replace(screen, profile_index=min(last, screen.profile_index + 1))), None
    if key.key in ("up", "k"):
        return replace(session, screen=replace(screen, mode_index=max(0, screen.mode_index - 1))), None
    if key.key in ("down", "j"):
        last = len(TIME_MODES) - 1
        return replace(session, screen=replace(screen, mode_index=min(last, screen.mode_index + 1))), None
    if key.key != "enter":
        return session, None

    if not profiles:
        return replace(session, screen=replace(screen, error=NO_PROFILES_ERROR)), None
    profile = profiles[min(screen.profile_index, len(profiles) - 1)]
    mode = TIME_MODES[screen.mode_index]
    session, request_id = _new_request(session)
    generate = GenerateReport(
        profile=profile,
        mode=mode,
        credentials=Credentials.from_config(session.config),
        output_format=session.config.format,
        request_id=request_id,
    )
    generating = ReportGeneratingScreen(profile=profile, mode=mode, request_id=request_id)
    return replace(session, screen=generating), Batch((generate, ScheduleTick(request_id)))


def _generating_key(session: Session, screen: ReportGeneratingScreen, key: Key) -> Transition:
    if key.key == "escape":
        return _to_main_menu(session), None
    return session, None


def _export(session: Session, view: ReportViewScreen) -> Transition:
    """Start exporting the report shown in ``view``."""
    session, request_id = _new_request(session)
    exporting = replace(view, exporting=True, export_message="", export_error="", request_id=request_id)
    export = ExportReport(
        content=view.content,
        profile_name=view.profile_name,
        output_format=view.output_format,
        request_id=request_id,
    )
    return replace(session, screen=exporting), export


def _report_view_key(session: Session, screen: ReportViewScreen, key: Key) -> Transition:
    if key.key == "escape":
        return _to_main_menu(session), None
    if key.key in ("s", "S") and screen.content and not screen.exporting:
        return _export(session, screen)
    return session, None


def _generating(session: Session, request_id: int) -> Optional[ReportGeneratingScreen]:
    """The generating screen, if it is still waiting on ``request_id``."""
    screen = session.screen
    if isinstance(screen, ReportGeneratingScreen) and screen.generating and screen.request_id == request_id:
        return screen
    return None


def _exporting(session: Session, request_id: int) -> Optional[ReportViewScreen]:
    screen = session.screen
    if isinstance(screen, ReportViewScreen) and screen.exporting and screen.request_id == request_id:
        return screen
    return None


def _on_tick(session: Session, event: Tick) -> Transition:
    screen = _generating(session, event.request_id)
    if screen is None:
        return session, None
    spinning = replace(screen, spinner_frame=screen.spinner_frame + 1)
    return replace(session, screen=spinning), ScheduleTick(event.request_id)


def _on_report_generated(session: Session, event: ReportGenerated) -> Transition:
    screen = _generating(session, event.request_id)
    if screen is None:
        return session, None
    view = ReportViewScreen(
        profile_name=screen.profile.name,
        report=event.report,
        content=event.content,
        output_format=session.config.format,
    )
    return _export(session, view)


def _on_report_failed(session: Session, event: ReportFailed) -> Transition:
    screen = _generating(session, event.request_id)
    if screen is None:
        return session, None
    return replace(session, screen=ReportViewScreen(profile_name=screen.profile.name, error=event.message)), None


def _on_report_exported(session: Session, event: ReportExported) -> Transition:
    screen = _exporting(session, event.request_id)
    if screen is None:
        return session, None
    done = replace(screen, exporting=False, export_message=f"Report saved to: {event.path}", export_error="")
    return replace(session, screen=done), None


def _on_report_export_failed(session: Session, event: ReportExportFailed) -> Transition:
    screen = _exporting(session, event.request_id)
    if screen is None:
        return session, None
    return replace(session, screen=replace(screen, exporting=False, export_message="", export_error=event.message)), None


_KEY_HANDLERS: Dict[Type, Callable[..., Transition]] = {
    MainMenuScreen: _main_menu_key,
    SetupScreen: _setup_key,
    FormatSelectionScreen: _format_key,
    ManageProfilesScreen: _manage_key,
    ProfilePreviewScreen: _preview_key,
    WizardState: _wizard_key,
    ReportConfigScreen: _report_config_key,
    ReportGeneratingScreen: _generating_key,
    ReportViewScreen: _report_view_key,
}

_RESULT_HANDLERS: Dict[Type, Callable[..., Transition]] = {
    UserInfoFetched: _on_user_info_fetched,
    UserInfoFailed: _on_user_info_failed,
    ConfigSaved: _on_config_saved,
    ProjectsFetched: _on_projects_fetched,
    ProjectsFailed: _on_projects_failed,
    ProfileSaved: _on_profile_saved,
    ProfileDeleted: _on_profile_deleted,
    DefaultChanged: _on_default_changed,
    StoreFailed: _on_store_failed,
    Tick: _on_tick,
    ReportGenerated: _on_report_generated,
    ReportFailed: _on_report_failed,
    ReportExported: _on_report_exported,
    ReportExportFailed: _on_report_export_failed,
}
