#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
"""
Tests for the session controller.

dispatch() is pure, so every test builds a Session, feeds events and
checks the resulting state and command.
"""

from dataclasses import replace
from pathlib import Path

import pytest

from beacon.models import ActivityReport, Config, OutputFormat, RemoteUser, TimeMode, TimeWindow
from beacon.tui.app_state import (
    FormatSelectionScreen,
    MainMenuScreen,
    ManageProfilesScreen,
    MenuAction,
    ProfilePreviewScreen,
    ReportConfigScreen,
    ReportGeneratingScreen,
    ReportViewScreen,
    SetupScreen,
    WizardState,
    initial_session,
)
from beacon.tui.controller import NO_PROFILES_ERROR, dispatch
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
    Quit,
    ReportExported,
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
from conftest import make_profile, utc


def keys(session, *names):
    """Dispatch key presses in order; return the session and last command."""
    command = None
    for name in names:
        char = name if len(name) == 1 else None
        session, command = dispatch(session, Key(name, char))
    return session, command


def type_text(session, text):
    for char in text:
        session, _ = dispatch(session, Key(char, char))
    return session


def _report():
    window = TimeWindow(start=utc(2024, 6, 1), end=utc(2024, 6, 8))
    return ActivityReport(window=window, user_id="u1", user_handle="ada", files=(), generated_at=window.end)


@pytest.fixture
def session():
    profiles = [make_profile("alpha", is_default=True), make_profile("beta")]
    return initial_session(Config(figma_token="tok", team_id="team-1"), profiles)


def _menu_index(session, action, target=None):
    return next(
        i for i, e in enumerate(session.screen.entries)
        if e.action == action and (target is None or e.target == target)
    )


def _select(session, action, target=None):
    return replace(session, screen=replace(session.screen, index=_menu_index(session, action, target)))


class TestGlobalKeys:
    @pytest.mark.parametrize(
        "screen",
        [SetupScreen(), ManageProfilesScreen(), ReportConfigScreen(), WizardState()],
    )
    def test_ctrl_c_quits_everywhere(self, session, screen):
        session, command = dispatch(replace(session, screen=screen), Key("ctrl+c"))
        assert session.quitting
        assert isinstance(command, Quit)

    def test_unknown_result_is_ignored(self, session):
        assert dispatch(session, object()) == (session, None)


class TestMainMenu:
    def test_starts_on_report_entry(self, session):
        assert session.screen.entries[session.screen.index].action == MenuAction.REPORT

    def test_down_skips_spacers(self, session):
        session = _select(session, MenuAction.ACTIVATE_PROFILE, "beta")
        session, _ = keys(session, "down")
        assert session.screen.entries[session.screen.index].action == MenuAction.SETUP

    def test_escape_resets_cursor(self, session):
        session, _ = keys(session, "down", "down", "escape")
        assert session.screen.index == 1

    def test_q_and_exit_quit(self, session):
        assert isinstance(keys(session, "q")[1], Quit)
        assert isinstance(keys(_select(session, MenuAction.EXIT), "enter")[1], Quit)

    def test_enter_opens_screens(self, session):
        assert isinstance(keys(session, "enter")[0].screen, ReportConfigScreen)
        assert isinstance(keys(_select(session, MenuAction.PROFILES), "enter")[0].screen, ManageProfilesScreen)
        assert isinstance(keys(_select(session, MenuAction.SETUP), "enter")[0].screen, SetupScreen)

    def test_report_config_preselects_active_profile(self, session):
        session = replace(session, active_profile=session.profiles[1])
        session, _ = keys(session, "enter")
        assert session.screen.profile_index == 1

    def test_profile_shortcut_sets_default(self, session):
        session = _select(session, MenuAction.ACTIVATE_PROFILE, "beta")
        session, command = keys(session, "enter")
        assert command == SetDefault("beta")
        assert session.screen.busy

        reloaded = (make_profile("alpha"), make_profile("beta", is_default=True))
        session, command = dispatch(session, DefaultChanged("beta", reloaded))

        assert command is None
        assert session.active_profile.name == "beta"
        assert session.profile_status == "⬥ Profile: beta"
        assert isinstance(session.screen, MainMenuScreen)
        assert session.screen.entries[session.screen.index].target == "beta"
        assert not session.screen.busy

    def test_second_shortcut_waits_for_first(self, session):
        session = _select(session, MenuAction.ACTIVATE_PROFILE, "alpha")
        session, command = keys(session, "enter")
        assert command == SetDefault("alpha")

        session = _select(session, MenuAction.ACTIVATE_PROFILE, "beta")
        session, command = keys(session, "enter")
        assert command is None

        reloaded = (make_profile("alpha", is_default=True), make_profile("beta"))
        session, _ = dispatch(session, DefaultChanged("alpha", reloaded))
        session = _select(session, MenuAction.ACTIVATE_PROFILE, "beta")
        session, command = keys(session, "enter")
        assert command == SetDefault("beta")

    def test_busy_menu_still_navigates(self, session):
        busy = replace(session, screen=replace(session.screen, busy=True))
        moved, command = keys(busy, "down")
        assert moved.screen.index != busy.screen.index
        assert command is None

    def test_store_failure_shown_on_menu(self, session):
        session = replace(session, screen=replace(session.screen, busy=True))
        session, _ = dispatch(session, StoreFailed("set_default", "Profile not found: beta"))
        assert session.screen.error == "Profile not found: beta"
        assert not session.screen.busy


class TestSetup:
    @pytest.fixture
    def setup(self, session):
        return replace(session, screen=SetupScreen())

    def test_edit_token_saves_config(self, setup):
        session, _ = keys(setup, "enter")
        assert session.screen.edit.text == "tok"
        session, _ = keys(session, "backspace", "backspace", "backspace")
        session = type_text(session, "new-token")
        session, command = keys(session, "enter")

        assert session.config.figma_token == "new-token"
        assert command == SaveConfig(session.config)
        assert session.screen.edit is None
        assert session.screen.saving

        session, _ = dispatch(session, ConfigSaved(session.config))
        assert not session.screen.saving

    def test_edit_escape_discards(self, setup):
        session, _ = keys(setup, "enter")
        session = type_text(session, "zzz")
        session, command = keys(session, "escape")
        assert session.config.figma_token == "tok"
        assert command is None

    def test_edit_team_id(self, setup):
        session, _ = keys(setup, "down", "down", "enter")
        session = type_text(session, "7")
        session, command = keys(session, "enter")
        assert session.config.team_id == "team-17"
        assert isinstance(command, SaveConfig)

    def test_fetch_user_info(self, setup):
        session, command = keys(setup, "down", "enter")
        assert command == FetchUserInfo("tok")
        assert session.screen.fetching_user

        user = RemoteUser(id="u9", handle="grace", email="g@example.com")
        session, command = dispatch(session, UserInfoFetched(user))

        assert session.config.user_handle == "grace"
        assert session.config.user_id == "u9"
        assert command == SaveConfig(session.config)
        assert not session.screen.fetching_user
        assert session.screen.saving

    def test_fetch_user_without_token(self, setup):
        setup = replace(setup, config=Config())
        session, command = keys(setup, "down", "enter")
        assert command is None
        assert session.screen.error == "No Figma token set"

    def test_fetch_user_failure(self, setup):
        session, _ = keys(setup, "down", "enter")
        session, _ = dispatch(session, UserInfoFailed("Failed to fetch user info: 403"))
        assert session.screen.error.endswith("403")
        assert not session.screen.fetching_user

    def test_user_info_after_leaving_is_ignored(self, setup):
        session, _ = keys(setup, "down", "enter", "escape")
        user = RemoteUser(id="u9", handle="grace", email="")
        after, command = dispatch(session, UserInfoFetched(user))
        assert after == session
        assert command is None

    def test_output_format_selection(self, setup):
        session, _ = keys(setup, "down", "down", "down", "enter")
        assert isinstance(session.screen, FormatSelectionScreen)
        session, command = keys(session, "down", "down", "enter")

        assert session.config.format == OutputFormat.JSON
        assert command == SaveConfig(session.config)
        assert isinstance(session.screen, SetupScreen)

    def test_config_saved_is_quiet(self, setup):
        assert dispatch(setup, ConfigSaved(setup.config)) == (setup, None)

    def test_saving_blocks_new_commands(self, setup):
        session, _ = keys(setup, "enter", "x", "enter")
        assert session.screen.saving

        for row_keys in (["enter"], ["down", "enter"], ["down", "down", "down", "enter"]):
            after, command = keys(session, *row_keys)
            assert command is None
            assert isinstance(after.screen, SetupScreen)
            assert after.screen.edit is None

    def test_fetching_user_blocks_edit(self, setup):
        session, _ = keys(setup, "down", "enter")
        session, command = keys(session, "up", "enter")
        assert command is None
        assert session.screen.edit is None

    def test_save_failure_clears_saving(self, setup):
        session, _ = keys(setup, "enter", "x", "enter")
        session, _ = dispatch(session, StoreFailed("save_config", "Failed to write config: denied"))
        assert not session.screen.saving
        assert session.screen.error.endswith("denied")

    def test_back_row_works_while_saving(self, setup):
        saving = replace(setup, screen=SetupScreen(index=4, saving=True))
        assert isinstance(keys(saving, "enter")[0].screen, MainMenuScreen)

    def test_escape_returns_to_menu(self, setup):
        assert isinstance(keys(setup, "escape")[0].screen, MainMenuScreen)


class TestManageProfiles:
    @pytest.fixture
    def manage(self, session):
        return replace(session, screen=ManageProfilesScreen())

    def test_create_opens_wizard_with_team(self, manage):
        session, _ = keys(manage, "enter")
        assert isinstance(session.screen, WizardState)
        assert session.screen.team_id == "team-1"

    def test_preview_and_back(self, manage):
        session, _ = keys(manage, "down", "down", "enter")
        assert isinstance(session.screen, ProfilePreviewScreen)
        assert session.screen.profile.name == "beta"

        session, _ = keys(session, "escape")
        assert isinstance(session.screen, ManageProfilesScreen)
        assert session.screen.cursor == 2

    def test_preview_edit_opens_wizard(self, manage):
        session, _ = keys(manage, "down", "enter", "e")
        assert session.screen.original.name == "alpha"

    def test_back_row(self, manage):
        session, _ = keys(manage, "down", "down", "down", "enter")
        assert isinstance(session.screen, MainMenuScreen)

    def test_delete_requires_confirmation(self, manage):
        session, _ = keys(manage, "down", "x")
        assert session.screen.confirm_delete == "alpha"

        aborted, command = keys(session, "n")
        assert aborted.screen.confirm_delete is None
        assert command is None

        session, command = keys(session, "y")
        assert command == DeleteProfile("alpha")
        assert session.screen.busy

    def test_delete_ignored_on_create_row(self, manage):
        assert keys(manage, "x")[0].screen.confirm_delete is None

    def test_d_sets_default(self, manage):
        session, command = keys(manage, "down", "down", "d")
        assert command == SetDefault("beta")
        assert session.screen.busy

    def test_busy_ignores_keys(self, manage):
        busy = replace(manage, screen=ManageProfilesScreen(cursor=1, busy=True))
        assert keys(busy, "down") == (busy, None)

    def test_deleting_active_default_moves_to_new_default(self, manage):
        session, _ = keys(manage, "down", "x", "y")
        remaining = (make_profile("beta", is_default=True),)
        session, _ = dispatch(session, ProfileDeleted("alpha", remaining))

        assert session.profiles == remaining
        assert session.active_profile.name == "beta"
        assert not session.screen.busy

    def test_delete_only_profile(self):
        only = make_profile("solo", is_default=True)
        session = initial_session(Config(figma_token="tok"), [only])
        session = replace(session, screen=ManageProfilesScreen())

        session, _ = keys(session, "down", "x")
        session, command = keys(session, "y")
        assert command == DeleteProfile("solo")

        session, command = dispatch(session, ProfileDeleted("solo", ()))

        assert command is None
        assert session.profiles == ()
        assert session.active_profile is None
        assert session.profile_status == "⬥ No profile selected"
        assert session.screen.cursor == 1

        session, _ = keys(session, "escape", "enter")
        session, command = keys(session, "enter")
        assert command is None
        assert session.screen.error == NO_PROFILES_ERROR

    def test_store_failure_clears_busy(self, manage):
        session, _ = keys(manage, "down", "x", "y")
        session, _ = dispatch(session, StoreFailed("delete_profile", "Failed to delete profile: denied"))
        assert not session.screen.busy
        assert "denied" in session.screen.error


class TestWizardResults:
    def test_profile_saved_returns_to_manage(self, session):
        saving = replace(session, screen=WizardState(saving=True))
        created = make_profile("gamma")
        profiles = tuple(session.profiles) + (created,)

        after, _ = dispatch(saving, ProfileSaved(created, profiles))

        assert isinstance(after.screen, ManageProfilesScreen)
        assert after.screen.cursor == 3
        assert [p.name for p in after.profiles] == ["alpha", "beta", "gamma"]
        assert after.active_profile.name == "alpha"

    def test_first_profile_becomes_active(self):
        session = replace(initial_session(Config(), []), screen=WizardState(saving=True))
        created = make_profile("first", is_default=True)
        after, _ = dispatch(session, ProfileSaved(created, (created,)))
        assert after.active_profile == created

    def test_renaming_active_profile_follows_rename(self, session):
        original = session.profiles[0]
        renamed = replace(original, name="alpha2")
        editing = replace(session, screen=WizardState(original=original, saving=True))

        after, _ = dispatch(editing, ProfileSaved(renamed, (renamed, session.profiles[1]), replaced="alpha"))

        assert after.active_profile.name == "alpha2"

    def test_rename_with_leftover_old_profile_warns(self, session):
        original = session.profiles[1]
        renamed = replace(original, name="beta2")
        editing = replace(session, screen=WizardState(original=original, saving=True))
        on_disk = (session.profiles[0], original, renamed)
        warning = "Saved 'beta2', but could not remove 'beta': denied"

        after, command = dispatch(editing, ProfileSaved(renamed, on_disk, replaced="beta", warning=warning))

        assert command is None
        assert isinstance(after.screen, ManageProfilesScreen)
        assert after.screen.error == warning
        assert [p.name for p in after.profiles] == ["alpha", "beta", "beta2"]
        assert after.screen.cursor == 3

    def test_save_failure_stays_in_wizard(self, session):
        saving = replace(session, screen=WizardState(saving=True, name="x"))
        after, _ = dispatch(saving, StoreFailed("save_profile", "disk full"))
        assert isinstance(after.screen, WizardState)
        assert not after.screen.saving
        assert after.screen.error == "Failed to save profile: disk full"

    def test_wizard_escape_returns_to_manage(self, session):
        wizard_session = replace(session, screen=WizardState())
        after, _ = keys(wizard_session, "escape")
        assert isinstance(after.screen, ManageProfilesScreen)


def _generated(session, content="body"):
    """Result for the report the generating screen is waiting on."""
    return ReportGenerated(_report(), content, session.screen.request_id)


def _exported(session, path="x.md"):
    return ReportExported(Path(path), session.screen.request_id)


class TestReports:
    def test_generate_flow(self, session):
        session, _ = keys(session, "enter", "right", "down")
        assert session.screen.profile_index == 1
        assert session.screen.mode_index == 1

        session, command = keys(session, "enter")

        assert isinstance(session.screen, ReportGeneratingScreen)
        assert isinstance(command, Batch)
        generate, tick = command.commands
        assert isinstance(generate, GenerateReport)
        assert generate.profile.name == "beta"
        assert generate.mode == TimeMode.LAST_MONTH
        assert generate.credentials.token == "tok"
        assert generate.request_id == session.screen.request_id
        assert tick == ScheduleTick(generate.request_id)
        assert session.profile_status.endswith("Profile: beta")

    def test_selection_is_clamped(self, session):
        session, _ = keys(session, "enter", "left", "right", "right", "right")
        assert session.screen.profile_index == 1
        session, _ = keys(session, *(["down"] * 10))
        assert session.screen.mode_index == len(TimeMode) - 1

    def test_ticks_advance_spinner_until_done(self, session):
        session, _ = keys(session, "enter", "enter")
        request_id = session.screen.request_id
        session, command = dispatch(session, Tick(request_id))
        assert session.screen.spinner_frame == 1
        assert command == ScheduleTick(request_id)

        session, command = dispatch(session, _generated(session, "# Status Report\n"))
        assert isinstance(session.screen, ReportViewScreen)
        assert command == ExportReport(
            "# Status Report\n", "alpha", OutputFormat.MARKDOWN, request_id=session.screen.request_id
        )
        assert session.screen.exporting

        assert dispatch(session, Tick(request_id)) == (session, None)

    def test_export_result_shown(self, session):
        session, _ = keys(session, "enter", "enter")
        session, _ = dispatch(session, _generated(session))
        session, _ = dispatch(session, _exported(session, "reports/alpha-2024-06-08.md"))
        assert not session.screen.exporting
        assert session.screen.export_message == "Report saved to: reports/alpha-2024-06-08.md"

    def test_s_re_exports(self, session):
        session, _ = keys(session, "enter", "enter")
        session, _ = dispatch(session, _generated(session))
        first_export = session.screen.request_id
        session, _ = dispatch(session, _exported(session))
        session, command = keys(session, "s")
        assert isinstance(command, ExportReport)
        assert command.request_id != first_export
        assert command.request_id == session.screen.request_id

    def test_failure_shows_error(self, session):
        session, _ = keys(session, "enter", "enter")
        failed = ReportFailed("Authentication failed: 403", session.screen.request_id)
        session, command = dispatch(session, failed)
        assert isinstance(session.screen, ReportViewScreen)
        assert session.screen.error == "Authentication failed: 403"
        assert command is None
        assert keys(session, "s")[1] is None

    def test_escape_while_generating_discards_result(self, session):
        session, _ = keys(session, "enter", "enter")
        late = _generated(session, "late")
        session, _ = keys(session, "escape")
        assert isinstance(session.screen, MainMenuScreen)

        after, command = dispatch(session, late)
        assert after == session
        assert command is None

    def test_stale_result_after_restart_is_dropped(self, session):
        session, _ = keys(session, "enter", "enter")
        alpha_result = _generated(session, "ALPHA REPORT BODY")
        alpha_failure = ReportFailed("timed out", session.screen.request_id)

        session, _ = keys(session, "escape", "enter", "right", "enter")
        assert session.screen.profile.name == "beta"

        for stale in (alpha_result, alpha_failure):
            after, command = dispatch(session, stale)
            assert after == session
            assert command is None

        session, command = dispatch(session, _generated(session, "BETA REPORT BODY"))
        assert session.screen.content == "BETA REPORT BODY"
        assert command.profile_name == "beta"

    def test_stale_ticks_do_not_rearm(self, session):
        session, _ = keys(session, "enter", "enter")
        old_tick = Tick(session.screen.request_id)
        session, _ = keys(session, "escape", "enter", "enter")

        after, command = dispatch(session, old_tick)
        assert after == session
        assert command is None

        session, command = dispatch(session, Tick(session.screen.request_id))
        assert command == ScheduleTick(session.screen.request_id)

    def test_stale_export_result_is_dropped(self, session):
        session, _ = keys(session, "enter", "enter")
        session, _ = dispatch(session, _generated(session))
        old_export = _exported(session, "old.md")
        session, _ = keys(session, "escape", "enter", "enter")
        session, _ = dispatch(session, _generated(session, "second"))

        after, command = dispatch(session, old_export)
        assert after.screen.exporting
        assert after.screen.export_message == ""
        assert command is None

    def test_escape_from_view_returns_to_menu(self, session):
        session, _ = keys(session, "enter", "enter")
        session, _ = dispatch(session, ReportFailed("x", session.screen.request_id))
        assert isinstance(keys(session, "escape")[0].screen, MainMenuScreen)
