#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
"""
Rendering of session state as Rich markup.

Every function here is pure: it reads a Session (or one screen state) and
returns markup for the app's Static widgets. User-supplied text (profile
names, project names, report bodies) is escaped before it is embedded.
"""

from typing import List

from rich.markup import escape

from beacon.tui.app_state import (
    OUTPUT_FORMATS,
    PAGE_SIZE,
    SETUP_ITEMS,
    SPINNER_FRAMES,
    TIME_MODES,
    FormatSelectionScreen,
    MainMenuScreen,
    ManageProfilesScreen,
    ProfilePreviewScreen,
    ReportConfigScreen,
    ReportGeneratingScreen,
    ReportViewScreen,
    Session,
    SetupScreen,
    WizardState,
    WizardStep,
)

APP_TITLE = "Figma Beacon"
CURSOR = "▸"
EDIT_CARET = "█"

# Semantic colors used across screens
COLORS = {
    "selected": "bold cyan",
    "description": "dim",
    "warning": "yellow",
    "error": "bold red",
    "success": "green",
    "default": "magenta",
}

SCREEN_HINTS = {
    MainMenuScreen: "↑/↓ navigate • enter select • q quit",
    SetupScreen: "↑/↓ navigate • enter edit • esc back",
    FormatSelectionScreen: "↑/↓ navigate • enter select • esc back",
    ManageProfilesScreen: "↑/↓ navigate • enter open • d set default • x delete • esc back",
    ProfilePreviewScreen: "e edit • d delete • esc back",
    ReportConfigScreen: "←/→ profile • ↑/↓ period • enter generate • esc back",
    ReportGeneratingScreen: "esc cancel",
    ReportViewScreen: "s save • esc back",
}

EDIT_HINT = "type to edit • enter save • esc cancel"


def _styled(text: str, style: str) -> str:
    return f"[{style}]{text}[/{style}]"


def _error_line(message: str) -> List[str]:
    return ["", _styled(escape(message), COLORS["error"])] if message else []


def _row(label: str, selected: bool) -> str:
    if selected:
        return _styled(f"{CURSOR} {label}", COLORS["selected"])
    return f"  {label}"


def _edit_field(text: str) -> str:
    return f"{escape(text)}{EDIT_CARET}"


def mask_token(token: str) -> str:
    """Show only the last four characters of an API token."""
    if not token:
        return "Not set"
    if len(token) <= 4:
        return "*" * len(token)
    return "*" * 8 + token[-4:]


def render_header(session: Session) -> str:
    return f"[bold]{APP_TITLE}[/bold]  {escape(session.profile_status)}"


def render_hints(session: Session) -> str:
    screen = session.screen
    editing = getattr(screen, "edit", None) is not None
    if editing:
        return _styled(EDIT_HINT, COLORS["description"])
    if isinstance(screen, WizardState):
        return _styled(_wizard_hint(screen), COLORS["description"])
    if isinstance(screen, ManageProfilesScreen) and screen.confirm_delete:
        return _styled("y confirm • any other key cancels", COLORS["description"])
    return _styled(SCREEN_HINTS.get(type(screen), ""), COLORS["description"])


def render_body(session: Session) -> str:
    """Markup for the current screen."""
    screen = session.screen
    if isinstance(screen, MainMenuScreen):
        return _render_main_menu(screen)
    if isinstance(screen, SetupScreen):
        return _render_setup(session, screen)
    if isinstance(screen, FormatSelectionScreen):
        return _render_format_selection(session, screen)
    if isinstance(screen, ManageProfilesScreen):
        return _render_manage_profiles(session, screen)
    if isinstance(screen, ProfilePreviewScreen):
        return _render_preview(screen)
    if isinstance(screen, WizardState):
        return _render_wizard(screen)
    if isinstance(screen, ReportConfigScreen):
        return _render_report_config(session, screen)
    if isinstance(screen, ReportGeneratingScreen):
        return _render_generating(screen)
    if isinstance(screen, ReportViewScreen):
        return _render_report_view(screen)
    return ""


# -----------------------------------------------------------------------------
# Screens
# -----------------------------------------------------------------------------


def _render_main_menu(screen: MainMenuScreen) -> str:
    lines = []
    for i, entry in enumerate(screen.entries):
        if not entry.selectable:
            lines.append("")
            continue
        line = _row(escape(entry.title), i == screen.index)
        if entry.description:
            line += "  " + _styled(escape(entry.description), COLORS["description"])
        if entry.warning:
            line += "  " + _styled(escape(entry.warning), COLORS["warning"])
        lines.append(line)
    if screen.busy:
        lines.extend(["", _styled("Working...", COLORS["description"])])
    lines.extend(_error_line(screen.error))
    return "\n".join(lines)


def _render_setup(session: Session, screen: SetupScreen) -> str:
    config = session.config
    if config.user_handle:
        user = f"{config.user_handle} <{config.user_email}>" if config.user_email else config.user_handle
    else:
        user = "Not fetched"
    if screen.fetching_user:
        user = "Fetching..."
    values = [
        mask_token(config.figma_token),
        user,
        config.team_id or "Not set",
        config.format.label,
        "",
    ]
    lines = ["[bold]Setup[/bold]", ""]
    for i, (label, value) in enumerate(zip(SETUP_ITEMS, values)):
        if screen.edit is not None and screen.edit.target == i:
            shown = _edit_field(screen.edit.text)
        else:
            shown = _styled(escape(value), COLORS["description"]) if value else ""
        text = f"{label}: {shown}" if shown else label
        lines.append(_row(text, i == screen.index))
    if screen.saving:
        lines.extend(["", _styled("Saving...", COLORS["description"])])
    if screen.message:
        lines.extend(["", _styled(escape(screen.message), COLORS["success"])])
    lines.extend(_error_line(screen.error))
    return "\n".join(lines)


def _render_format_selection(session: Session, screen: FormatSelectionScreen) -> str:
    lines = ["[bold]Output Format[/bold]", ""]
    current = session.config.format
    for i, fmt in enumerate(OUTPUT_FORMATS):
        label = fmt.label + (" (current)" if fmt == current else "")
        lines.append(_row(label, i == screen.index))
    return "\n".join(lines)


def _render_manage_profiles(session: Session, screen: ManageProfilesScreen) -> str:
    labels = ["+ Create New Profile"]
    for profile in session.profiles:
        label = escape(profile.name)
        if profile.is_default:
            label += " " + _styled("(default)", COLORS["default"])
        count = len(profile.selected_projects)
        label += " " + _styled(f"{count} project{'s' if count != 1 else ''}", COLORS["description"])
        labels.append(label)
    labels.append("Back")

    lines = ["[bold]Manage Profiles[/bold]", ""]
    visible = range(screen.offset, min(len(labels), screen.offset + PAGE_SIZE))
    if screen.offset > 0:
        lines.append(_styled("  ↑ more", COLORS["description"]))
    for i in visible:
        lines.append(_row(labels[i], i == screen.cursor))
    if screen.offset + PAGE_SIZE < len(labels):
        lines.append(_styled("  ↓ more", COLORS["description"]))

    if screen.confirm_delete:
        prompt = f"Delete profile '{escape(screen.confirm_delete)}'? (y/N)"
        lines.extend(["", _styled(prompt, COLORS["warning"])])
    if screen.busy:
        lines.extend(["", _styled("Working...", COLORS["description"])])
    lines.extend(_error_line(screen.error))
    return "\n".join(lines)


def _render_preview(screen: ProfilePreviewScreen) -> str:
    profile = screen.profile
    lines = [
        f"[bold]Profile: {escape(profile.name)}[/bold]",
        "",
        f"Team ID: {escape(profile.team_id)}",
        f"Created: {profile.created_at:%Y-%m-%d %H:%M}",
        f"Default: {'yes' if profile.is_default else 'no'}",
        "",
        f"Projects ({len(profile.selected_projects)}):",
    ]
    for project in profile.selected_projects:
        lines.append(f"  - {escape(project.name)} " + _styled(escape(project.id), COLORS["description"]))
    return "\n".join(lines)


_WIZARD_TITLES = {
    WizardStep.TEAM: "Step 1/3: Team",
    WizardStep.PROJECTS: "Step 2/3: Projects",
    WizardStep.NAME: "Step 3/3: Name",
}


def _wizard_hint(wizard: WizardState) -> str:
    if wizard.step == WizardStep.PROJECTS:
        if wizard.loading:
            return "esc cancel"
        return "↑/↓ navigate • space toggle • enter next • r reload • esc cancel"
    return "enter edit • esc cancel"


def _render_wizard(wizard: WizardState) -> str:
    heading = "Edit Profile" if wizard.edit_mode else "New Profile"
    lines = [f"[bold]{heading}[/bold]  {_WIZARD_TITLES[wizard.step]}", ""]

    if wizard.step == WizardStep.TEAM:
        value = _edit_field(wizard.edit.text) if wizard.edit is not None else escape(wizard.team_id or "Not set")
        lines.append(f"Team ID: {value}")
    elif wizard.step == WizardStep.PROJECTS:
        lines.append(f"Team ID: {escape(wizard.team_id)}")
        lines.append("")
        if wizard.loading:
            frame = SPINNER_FRAMES[0]
            lines.append(f"{frame} {escape(wizard.progress)}")
        else:
            if wizard.progress:
                lines.append(_styled(escape(wizard.progress), COLORS["description"]))
            visible = range(wizard.offset, min(len(wizard.projects), wizard.offset + PAGE_SIZE))
            for i in visible:
                project = wizard.projects[i]
                mark = "[x]" if project.id in wizard.selected else "[ ]"
                lines.append(_row(f"{escape(mark)} {escape(project.name)}", i == wizard.cursor))
            lines.append("")
            lines.append(_styled(f"{len(wizard.selected_projects)} selected", COLORS["description"]))
    else:
        names = ", ".join(p.name for p in wizard.selected_projects)
        lines.append(f"Projects: {escape(names)}")
        value = _edit_field(wizard.edit.text) if wizard.edit is not None else escape(wizard.name or "Not set")
        lines.append(f"Name: {value}")
        if wizard.saving:
            lines.extend(["", _styled("Saving...", COLORS["description"])])

    lines.extend(_error_line(wizard.error))
    return "\n".join(lines)


def _render_report_config(session: Session, screen: ReportConfigScreen) -> str:
    lines = ["[bold]Generate Activity Report[/bold]", ""]
    if session.profiles:
        index = min(screen.profile_index, len(session.profiles) - 1)
        name = escape(session.profiles[index].name)
        lines.append(f"Profile: ◂ {_styled(name, COLORS['selected'])} ▸")
    else:
        lines.append("Profile: " + _styled("none", COLORS["warning"]))
    lines.extend(["", "Period:"])
    for i, mode in enumerate(TIME_MODES):
        lines.append(_row(mode.label, i == screen.mode_index))
    lines.extend(_error_line(screen.error))
    return "\n".join(lines)


def _render_generating(screen: ReportGeneratingScreen) -> str:
    frame = SPINNER_FRAMES[screen.spinner_frame % len(SPINNER_FRAMES)]
    return (
        f"{frame} Generating report for {escape(screen.profile.name)} "
        f"({screen.mode.label})..."
    )


def _render_report_view(screen: ReportViewScreen) -> str:
    if screen.error:
        return "\n".join(["[bold]Report[/bold]"] + _error_line(screen.error))

    lines = []
    report = screen.report
    if report is not None:
        lines.append(
            _styled(
                f"{report.total_files} files • {report.total_changes} changes",
                COLORS["description"],
            )
        )
        lines.append("")
    lines.append(escape(screen.content.rstrip("\n")))
    lines.append("")
    if screen.exporting:
        lines.append(_styled("Saving report...", COLORS["description"]))
    elif screen.export_message:
        lines.append(_styled(escape(screen.export_message), COLORS["success"]))
    if screen.export_error:
        lines.append(_styled(escape(screen.export_error), COLORS["error"]))
    return "\n".join(lines)
