# SPDX-License-Identifier: MIT
"""
Command runner: performs the side effects the controller asks for.

Every command produces exactly one result event; failures become failure
events rather than exceptions so the controller sees them like any other
result. ``ScheduleTick``, ``Batch`` and ``Quit`` are scheduling concerns
handled by the app and never reach ``run``.
"""

import time
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from beacon.config import ConfigStore
from beacon.debug_logger import get_logger
from beacon.gateway import FigmaGateway
from beacon.models import BeaconError, StoreError
from beacon.paths import PathResolver
from beacon.report import export_report, format_report, generate_report, resolve_window
from beacon.store import ProfileStore
from beacon.tui.events import (
    ConfigSaved,
    DefaultChanged,
    DeleteProfile,
    ExportReport,
    FetchProjects,
    FetchUserInfo,
    GenerateReport,
    ProfileDeleted,
    ProfileSaved,
    ProjectsFailed,
    ProjectsFetched,
    ReportExported,
    ReportExportFailed,
    ReportFailed,
    ReportGenerated,
    SaveConfig,
    SaveProfile,
    SetDefault,
    StoreFailed,
    UserInfoFailed,
    UserInfoFetched,
)


def _local_now() -> datetime:
    """Current local time, so report windows and export dates follow the local calendar."""
    return datetime.now().astimezone()


class CommandRunner:
    """Executes controller commands against the gateway and the stores."""

    def __init__(
        self,
        gateway: Optional[FigmaGateway] = None,
        profile_store: Optional[ProfileStore] = None,
        config_store: Optional[ConfigStore] = None,
        reports_dir: Optional[Path] = None,
        clock: Callable[[], datetime] = _local_now,
    ) -> None:
        self.gateway = gateway or FigmaGateway()
        self.profile_store = profile_store or ProfileStore()
        self.config_store = config_store or ConfigStore()
        self.reports_dir = reports_dir or PathResolver.reports_dir()
        self.clock = clock

    def run(self, command: object) -> object:
        """Execute ``command`` and return its result event."""
        handler = getattr(self, f"_run_{type(command).__name__}", None)
        if handler is None:
            raise TypeError(f"Unsupported command: {type(command).__name__}")
        started = time.perf_counter()
        result = handler(command)
        get_logger().command_completed(
            type(command).__name__,
            type(result).__name__,
            (time.perf_counter() - started) * 1000,
        )
        return result

    # Remote

    def _run_FetchUserInfo(self, command: FetchUserInfo) -> object:
        try:
            return UserInfoFetched(self.gateway.get_current_user(command.token))
        except BeaconError as e:
            return UserInfoFailed(f"Failed to fetch user info: {e}")

    def _run_FetchProjects(self, command: FetchProjects) -> object:
        try:
            projects = self.gateway.list_team_projects(command.token, command.team_id)
        except BeaconError as e:
            return ProjectsFailed(command.team_id, f"Failed to load projects: {e}")
        return ProjectsFetched(command.team_id, tuple(projects))

    def _run_GenerateReport(self, command: GenerateReport) -> object:
        now = self.clock()
        try:
            window = resolve_window(command.mode, now)
            report = generate_report(command.profile, window, command.credentials, self.gateway, now=now)
        except BeaconError as e:
            return ReportFailed(str(e), command.request_id)
        return ReportGenerated(report, format_report(report, command.output_format), command.request_id)

    def _run_ExportReport(self, command: ExportReport) -> object:
        try:
            path = export_report(
                command.content,
                command.profile_name,
                self.reports_dir,
                command.output_format,
                today=self.clock().date(),
            )
        except BeaconError as e:
            return ReportExportFailed(f"Failed to save report: {e}", command.request_id)
        return ReportExported(path, command.request_id)

    # Local storage

    def _run_SaveConfig(self, command: SaveConfig) -> object:
        try:
            self.config_store.save(command.config)
        except StoreError as e:
            return StoreFailed("save_config", str(e))
        return ConfigSaved(command.config)

    def _run_SaveProfile(self, command: SaveProfile) -> object:
        profile = command.profile
        if command.stamp_created:
            profile = replace(profile, created_at=self.clock())
        try:
            self.profile_store.save_profile(profile)
        except BeaconError as e:
            return StoreFailed("save_profile", str(e))

        # The new record is on disk; a failed delete of the old one is only a warning
        warning = ""
        if command.replaces and command.replaces != profile.name:
            try:
                self.profile_store.delete_profile(command.replaces)
            except BeaconError as e:
                get_logger().error("delete_replaced_profile", e)
                warning = f"Saved '{profile.name}', but could not remove '{command.replaces}': {e}"
        try:
            profiles = tuple(self.profile_store.list_profiles())
        except BeaconError as e:
            return StoreFailed("save_profile", str(e))
        get_logger().profile_saved(profile.name, replaced=command.replaces)
        return ProfileSaved(profile, profiles, replaced=command.replaces, warning=warning)

    def _run_DeleteProfile(self, command: DeleteProfile) -> object:
        store = self.profile_store
        try:
            was_default = store.load_profile(command.name).is_default
            store.delete_profile(command.name)
            remaining = store.list_profiles()
            if command.reassign_default and was_default and remaining:
                store.set_default(remaining[0].name)
                remaining = store.list_profiles()
        except BeaconError as e:
            return StoreFailed("delete_profile", str(e))
        get_logger().profile_deleted(command.name)
        return ProfileDeleted(command.name, tuple(remaining))

    def _run_SetDefault(self, command: SetDefault) -> object:
        try:
            self.profile_store.set_default(command.name)
            profiles = tuple(self.profile_store.list_profiles())
        except BeaconError as e:
            return StoreFailed("set_default", str(e))
        return DefaultChanged(command.name, profiles)
