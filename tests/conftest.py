"""
Pytest configuration and fixtures for figma-beacon tests.
"""

import sys
from pathlib import Path

# Ensure project root is in sys.path for 'beacon' imports
_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

from datetime import datetime, timezone
from typing import Dict, List, Optional

import pytest

from beacon.models import (
    FileMetadata,
    FileVersion,
    GatewayError,
    Profile,
    ProfileProject,
    RemoteFile,
    RemoteProject,
    RemoteUser,
)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "tui: marks TUI tests")


@pytest.fixture(autouse=True)
def isolate_dirs(tmp_path: Path, monkeypatch) -> Dict[str, Path]:
    """Point config, state and reports directories at a temp tree.

    Also resets the debug logger so it picks up the new state dir.
    """
    dirs = {
        "config": tmp_path / "config",
        "state": tmp_path / "state",
        "reports": tmp_path / "reports",
    }
    monkeypatch.setenv("BEACON_CONFIG_DIR", str(dirs["config"]))
    monkeypatch.setenv("BEACON_STATE_DIR", str(dirs["state"]))
    monkeypatch.setenv("BEACON_REPORTS_DIR", str(dirs["reports"]))
    monkeypatch.delenv("BEACON_API_BASE", raising=False)
    monkeypatch.delenv("BEACON_DEBUG", raising=False)

    from beacon.debug_logger import reset_logger
    reset_logger()

    yield dirs

    reset_logger()


def utc(*args) -> datetime:
    """Shorthand for an aware UTC datetime."""
    return datetime(*args, tzinfo=timezone.utc)


def make_profile(
    name: str = "design-system",
    projects: Optional[List[tuple]] = None,
    team_id: str = "team-1",
    is_default: bool = False,
    created_at: Optional[datetime] = None,
) -> Profile:
    projects = projects if projects is not None else [("p1", "Components")]
    return Profile(
        name=name,
        team_id=team_id,
        selected_projects=tuple(ProfileProject(id=pid, name=pname) for pid, pname in projects),
        created_at=created_at or utc(2024, 1, 1),
        is_default=is_default,
    )


class FakeGateway:
    """In-memory stand-in for FigmaGateway.

    Attributes:
        files: project id -> list of RemoteFile
        metadata: file key -> FileMetadata
        versions: file key -> list of FileVersion, newest first
        failures: "<method>:<arg>" -> GatewayError to raise
    """

    def __init__(self) -> None:
        self.user = RemoteUser(id="u1", handle="ada", email="ada@example.com")
        self.projects: Dict[str, List[RemoteProject]] = {}
        self.files: Dict[str, List[RemoteFile]] = {}
        self.metadata: Dict[str, FileMetadata] = {}
        self.versions: Dict[str, List[FileVersion]] = {}
        self.failures: Dict[str, GatewayError] = {}
        self.calls: List[str] = []

    def _check(self, key: str) -> None:
        self.calls.append(key)
        if key in self.failures:
            raise self.failures[key]

    def add_file(
        self,
        project_id: str,
        key: str,
        name: str,
        last_modified: Optional[datetime],
        created_at: Optional[datetime],
    ) -> None:
        self.files.setdefault(project_id, []).append(RemoteFile(key=key, name=name, project_id=project_id))
        self.metadata[key] = FileMetadata(key=key, name=name, last_modified=last_modified)
        versions = [FileVersion(id=f"{key}-v1", created_at=created_at)] if created_at else []
        if last_modified and created_at and last_modified != created_at:
            versions.insert(0, FileVersion(id=f"{key}-v2", created_at=last_modified))
        self.versions[key] = versions

    def get_current_user(self, token: str) -> RemoteUser:
        self._check(f"me:{token}")
        return self.user

    def list_team_projects(self, token: str, team_id: str) -> List[RemoteProject]:
        self._check(f"projects:{team_id}")
        return list(self.projects.get(team_id, []))

    def list_project_files(self, token: str, project_id: str) -> List[RemoteFile]:
        self._check(f"files:{project_id}")
        return list(self.files.get(project_id, []))

    def get_file_metadata(self, token: str, file_key: str) -> FileMetadata:
        self._check(f"metadata:{file_key}")
        return self.metadata[file_key]

    def get_file_versions(self, token: str, file_key: str) -> List[FileVersion]:
        self._check(f"versions:{file_key}")
        return list(self.versions.get(file_key, []))


@pytest.fixture
def fake_gateway() -> FakeGateway:
    return FakeGateway()
