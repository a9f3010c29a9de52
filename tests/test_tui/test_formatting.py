#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
"""Tests for TUI rendering helpers."""

from dataclasses import replace

import pytest

from beacon.models import Config, RemoteProject, TimeMode
from beacon.tui.app_state import (
    FormatSelectionScreen,
    ManageProfilesScreen,
    PAGE_SIZE,
    ProfilePreviewScreen,
    ReportConfigScreen,
    ReportGeneratingScreen,
    ReportViewScreen,
    SetupScreen,
    WizardState,
    WizardStep,
    initial_session,
)
from beacon.tui.formatting import EDIT_HINT, mask_token, render_body, render_header, render_hints
from conftest import make_profile


@pytest.fixture
def session():
    return initial_session(Config(figma_token="abcdef123456"), [make_profile("web", is_default=True)])


class TestMaskToken:
    def test_shows_last_four(self):
        assert mask_token("abcdef123456") == "********3456"

    def test_short_and_empty(self):
        assert mask_token("abc") == "***"
        assert mask_token("") == "Not set"


class TestRender:
    def test_header_shows_profile(self, session):
        assert "Profile: web" in render_header(session)

    def test_main_menu_marks_cursor(self, session):
        body = render_body(session)
        assert "▸ Generate Activity Report" in body
        assert "web (default)" in body

    def test_setup_masks_token(self, session):
        body = render_body(replace(session, screen=SetupScreen()))
        assert "3456" in body
        assert "abcdef" not in body

    def test_setup_edit_hint(self, session):
        from beacon.tui.app_state import EditBuffer

        edited = replace(session, screen=SetupScreen(edit=EditBuffer(0, "x")))
        assert EDIT_HINT in render_hints(edited)

    def test_format_selection_marks_current(self, session):
        body = render_body(replace(session, screen=FormatSelectionScreen()))
        assert "Markdown (current)" in body

    def test_manage_profiles_pages(self):
        profiles = [make_profile(f"p{i:02d}") for i in range(15)]
        session = initial_session(Config(), profiles)
        body = render_body(replace(session, screen=ManageProfilesScreen()))
        assert "p00" in body
        assert f"p{PAGE_SIZE:02d}" not in body
        assert "↓ more" in body

    def test_delete_prompt(self, session):
        body = render_body(replace(session, screen=ManageProfilesScreen(cursor=1, confirm_delete="web")))
        assert "Delete profile 'web'? (y/N)" in body

    def test_user_text_is_escaped(self):
        session = initial_session(Config(), [make_profile("[bold]x")])
        body = render_body(replace(session, screen=ProfilePreviewScreen(profile=session.profiles[0])))
        assert "\\[bold]x" in body

    def test_wizard_project_checkboxes(self, session):
        wizard = WizardState(
            step=WizardStep.PROJECTS,
            team_id="t",
            projects=(RemoteProject("p1", "Web"), RemoteProject("p2", "Mobile")),
            selected=frozenset({"p2"}),
        )
        body = render_body(replace(session, screen=wizard))
        assert "Mobile" in body
        assert "1 selected" in body

    def test_report_config_without_profiles(self):
        session = initial_session(Config(), [])
        body = render_body(replace(session, screen=ReportConfigScreen(error="No profiles")))
        assert "none" in body
        assert "No profiles" in body

    def test_generating(self, session):
        screen = ReportGeneratingScreen(profile=session.profiles[0], mode=TimeMode.LAST_WEEK)
        assert "Generating report for web (Last Week)" in render_body(replace(session, screen=screen))

    def test_report_view_error(self, session):
        body = render_body(replace(session, screen=ReportViewScreen(error="Authentication failed")))
        assert "Authentication failed" in body

    def test_report_view_export_message(self, session):
        screen = ReportViewScreen(content="# Status Report\n", export_message="Report saved to: x.md")
        body = render_body(replace(session, screen=screen))
        assert "# Status Report" in body
        assert "Report saved to: x.md" in body

    def test_busy_indicators(self, session):
        busy_menu = replace(session, screen=replace(session.screen, busy=True))
        assert "Working..." in render_body(busy_menu)
        assert "Saving..." in render_body(replace(session, screen=SetupScreen(saving=True)))
        assert "Saving..." not in render_body(replace(session, screen=SetupScreen()))
