#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
"""
Command pattern implementation for the beacon CLI.

Each command is a class implementing ``execute(args, context) -> int``.
Commands are registered in COMMAND_REGISTRY and dispatched via
dispatch_command(). Results go to stdout; diagnostics go to stderr so a
report can be piped or redirected cleanly.
"""

import sys
from abc import ABC, abstractmethod
from argparse import Namespace
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Optional, Type

from beacon.config import ConfigStore
from beacon.gateway import FigmaGateway
from beacon.models import BeaconError, Credentials, OutputFormat, TimeMode
from beacon.paths import PathResolver
from beacon.report import export_report, format_report, generate_report, resolve_window
from beacon.store import ProfileStore

NO_PROFILE_MESSAGE = "No profile selected. Create one with the TUI (run 'beacon') or pass --profile."


def _local_now() -> datetime:
    return datetime.now().astimezone()


@dataclass
class CliContext:
    """Collaborators shared by CLI commands."""
    config_store: ConfigStore = field(default_factory=ConfigStore)
    profile_store: ProfileStore = field(default_factory=ProfileStore)
    gateway: FigmaGateway = field(default_factory=FigmaGateway)
    reports_dir: Path = field(default_factory=PathResolver.reports_dir)
    clock: Callable[[], datetime] = _local_now


class Command(ABC):
    """Abstract base class for all CLI commands."""

    @abstractmethod
    def execute(self, args: Namespace, context: CliContext) -> int:
        """Execute the command.

        Args:
            args: Parsed command-line arguments
            context: Stores, gateway and clock to run against

        Returns:
            Exit code (0 for success, non-zero for errors)
        """
        pass


# =============================================================================
# Report Commands
# =============================================================================


class ReportCommand(Command):
    """Generate an activity report for one profile."""

    def execute(self, args: Namespace, context: CliContext) -> int:
        try:
            mode = TimeMode.parse(getattr(args, "mode", None) or TimeMode.LAST_WEEK.value)
            config = context.config_store.load()
            fmt = OutputFormat.parse(args.format) if getattr(args, "format", None) else config.format
        except (ValueError, BeaconError) as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

        profile_name = getattr(args, "profile", None)
        try:
            if profile_name:
                profile = context.profile_store.load_profile(profile_name)
            else:
                profile = context.profile_store.get_default()
        except BeaconError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        if profile is None:
            print(NO_PROFILE_MESSAGE, file=sys.stderr)
            return 1

        now = context.clock()
        try:
            window = resolve_window(mode, now)
            report = generate_report(profile, window, Credentials.from_config(config), context.gateway, now=now)
            content = format_report(report, fmt)
            if getattr(args, "save", False):
                path = export_report(content, profile.name, context.reports_dir, fmt, today=now.date())
                print(path)
            else:
                sys.stdout.write(content)
        except BeaconError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        return 0


# =============================================================================
# Profile Commands
# =============================================================================


class ProfilesCommand(Command):
    """List stored profiles, marking the default."""

    def execute(self, args: Namespace, context: CliContext) -> int:
        try:
            profiles = context.profile_store.list_profiles()
        except BeaconError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

        if not profiles:
            print("(no profiles found)")
            return 0

        for profile in profiles:
            marker = "*" if profile.is_default else " "
            count = len(profile.selected_projects)
            print(f"{marker} {profile.name}  team={profile.team_id}  projects={count}")
        return 0


class TuiCommand(Command):
    """Launch the interactive terminal UI."""

    def execute(self, args: Namespace, context: CliContext) -> int:
        from beacon.tui.app import run_app
        from beacon.tui.runner import CommandRunner

        runner = CommandRunner(
            gateway=context.gateway,
            profile_store=context.profile_store,
            config_store=context.config_store,
            reports_dir=context.reports_dir,
            clock=context.clock,
        )
        run_app(runner=runner)
        return 0


# =============================================================================
# Command Registry
# =============================================================================


COMMAND_REGISTRY: Dict[str, Type[Command]] = {
    "report": ReportCommand,
    "profiles": ProfilesCommand,
    "tui": TuiCommand,
}


# =============================================================================
# Dispatch Function
# =============================================================================


def dispatch_command(args: Namespace, context: Optional[CliContext] = None) -> int:
    """Dispatch to appropriate command handler.

    Args:
        args: Parsed arguments with 'command' attribute
        context: Collaborators (defaults to the real stores and gateway)

    Returns:
        Exit code (0 for success, 1 for unknown command)
    """
    command_name = args.command
    if command_name not in COMMAND_REGISTRY:
        print(f"Unknown command: {command_name}", file=sys.stderr)
        return 1

    command = COMMAND_REGISTRY[command_name]()
    return command.execute(args, context or CliContext())
