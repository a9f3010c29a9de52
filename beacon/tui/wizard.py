# SPDX-License-Identifier: MIT
"""Profile wizard transitions.

The wizard walks Team -> Projects -> Name in strict forward order:

- Team: enter opens an inline edit of the team id; committing a non-empty
  id starts the project fetch and moves to Projects in a loading state.
- Projects: multi-select by project id (space toggles); enter advances
  once at least one project is selected; ``r`` retries a failed fetch.
- Name: enter opens an inline edit of the name; committing a valid name
  issues the SaveProfile command and waits for its result.

Escape cancels the inline edit if one is open, otherwise the whole wizard
(``handle_key`` then returns None as the new state).
"""
from dataclasses import replace
from datetime import datetime, timezone
from typing import Collection, Optional, Tuple

from beacon.models import Profile, ProfileProject, ValidationError
from beacon.store import validate_profile_name
from beacon.tui.app_state import EditBuffer, WizardState, WizardStep, move_cursor
from beacon.tui.events import FetchProjects, Key, ProjectsFailed, ProjectsFetched, SaveProfile

SELECT_PROJECT_ERROR = "Please select at least one project"


def start_new(team_id: str = "") -> WizardState:
    """Fresh wizard, pre-filled with the configured team id."""
    return WizardState(step=WizardStep.TEAM, team_id=team_id)


def start_edit(profile: Profile) -> WizardState:
    """Wizard re-entered on an existing profile."""
    return WizardState(
        step=WizardStep.TEAM,
        team_id=profile.team_id,
        selected=frozenset(profile.project_ids),
        name=profile.name,
        original=profile,
    )


def handle_key(
    wizard: WizardState,
    key: Key,
    token: str,
    existing_names: Collection[str],
) -> Tuple[Optional[WizardState], Optional[object]]:
    """Apply one key press to the wizard.

    Args:
        wizard: Current wizard state
        key: Key pressed
        token: API token used for the project fetch
        existing_names: Names of all stored profiles (uniqueness check)

    Returns:
        (new state or None when cancelled, command to run or None)
    """
    if wizard.edit is not None:
        return _handle_edit_key(wizard, key, token, existing_names)

    if key.key == "escape":
        return None, None

    if wizard.saving:
        return wizard, None

    if wizard.step == WizardStep.TEAM:
        if key.key == "enter":
            return replace(wizard, edit=EditBuffer(0, wizard.team_id), error=""), None
        return wizard, None

    if wizard.step == WizardStep.PROJECTS:
        return _handle_projects_key(wizard, key, token)

    if key.key == "enter":
        return replace(wizard, edit=EditBuffer(0, wizard.name), error=""), None
    return wizard, None


def _handle_projects_key(wizard: WizardState, key: Key, token: str) -> Tuple[WizardState, Optional[object]]:
    if wizard.loading:
        return wizard, None

    count = len(wizard.projects)
    if key.key in ("up", "k"):
        cursor, offset = move_cursor(wizard.cursor, wizard.offset, count, -1)
        return replace(wizard, cursor=cursor, offset=offset), None
    if key.key in ("down", "j"):
        cursor, offset = move_cursor(wizard.cursor, wizard.offset, count, 1)
        return replace(wizard, cursor=cursor, offset=offset), None
    if key.key == "space":
        if not (0 <= wizard.cursor < count):
            return wizard, None
        project_id = wizard.projects[wizard.cursor].id
        if project_id in wizard.selected:
            selected = wizard.selected - {project_id}
        else:
            selected = wizard.selected | {project_id}
        return replace(wizard, selected=selected, error=""), None
    if key.key == "r":
        return _begin_fetch(wizard, wizard.team_id, token)
    if key.key == "enter":
        if not wizard.selected_projects:
            return replace(wizard, error=SELECT_PROJECT_ERROR), None
        return replace(wizard, step=WizardStep.NAME, error="", progress=""), None
    return wizard, None


def _handle_edit_key(
    wizard: WizardState,
    key: Key,
    token: str,
    existing_names: Collection[str],
) -> Tuple[WizardState, Optional[object]]:
    buffer = wizard.edit
    if key.key == "escape":
        return replace(wizard, edit=None), None
    if key.key == "backspace":
        return replace(wizard, edit=buffer.backspace()), None
    if key.key == "enter":
        if wizard.step == WizardStep.TEAM:
            return _commit_team(replace(wizard, edit=None), buffer.text, token)
        return _commit_name(replace(wizard, edit=None), buffer.text, existing_names)
    char = key.printable
    if char is not None:
        return replace(wizard, edit=buffer.insert(char)), None
    return wizard, None


def _begin_fetch(wizard: WizardState, team_id: str, token: str) -> Tuple[WizardState, Optional[object]]:
    fetching = replace(
        wizard,
        step=WizardStep.PROJECTS,
        team_id=team_id,
        projects=(),
        loading=True,
        error="",
        progress="Loading projects...",
        cursor=0,
        offset=0,
    )
    return fetching, FetchProjects(token=token, team_id=team_id)


def _commit_team(wizard: WizardState, text: str, token: str) -> Tuple[WizardState, Optional[object]]:
    team_id = text.strip()
    if not team_id:
        return replace(wizard, team_id="", error="Team ID is required"), None
    return _begin_fetch(wizard, team_id, token)


def _commit_name(
    wizard: WizardState,
    text: str,
    existing_names: Collection[str],
) -> Tuple[WizardState, Optional[object]]:
    name = text.strip()
    try:
        validate_profile_name(name)
    except ValidationError as e:
        return replace(wizard, name=name, error=str(e)), None

    keeps_own_name = wizard.original is not None and name == wizard.original.name
    if name in existing_names and not keeps_own_name:
        return replace(wizard, name=name, error="Profile name already exists"), None

    projects = tuple(ProfileProject(id=p.id, name=p.name) for p in wizard.selected_projects)
    if wizard.original is not None:
        profile = Profile(
            name=name,
            team_id=wizard.team_id,
            selected_projects=projects,
            created_at=wizard.original.created_at,
            is_default=wizard.original.is_default,
        )
        replaces = None if keeps_own_name else wizard.original.name
        command = SaveProfile(profile=profile, replaces=replaces)
    else:
        profile = Profile(
            name=name,
            team_id=wizard.team_id,
            selected_projects=projects,
            created_at=datetime.fromtimestamp(0, timezone.utc),
            is_default=not existing_names,
        )
        command = SaveProfile(profile=profile, stamp_created=True)

    return replace(wizard, name=name, saving=True, error=""), command


def apply_projects_fetched(wizard: WizardState, event: ProjectsFetched) -> WizardState:
    """Fill the project list if the wizard is still waiting for this team."""
    if not (wizard.step == WizardStep.PROJECTS and wizard.loading and wizard.team_id == event.team_id):
        return wizard
    count = len(event.projects)
    return replace(
        wizard,
        projects=tuple(event.projects),
        loading=False,
        error="",
        progress=f"Found {count} project{'s' if count != 1 else ''}",
        cursor=0,
        offset=0,
    )


def apply_projects_failed(wizard: WizardState, event: ProjectsFailed) -> WizardState:
    if not (wizard.step == WizardStep.PROJECTS and wizard.loading and wizard.team_id == event.team_id):
        return wizard
    return replace(wizard, loading=False, error=event.message, progress="")


def apply_save_failed(wizard: WizardState, message: str) -> WizardState:
    return replace(wizard, saving=False, error=f"Failed to save profile: {message}")
