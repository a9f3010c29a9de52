# SPDX-License-Identifier: MIT
"""Centralized path resolution for figma-beacon.

All path resolution should go through this module to ensure consistency.
"""
import os
from pathlib import Path

APP_DIR_NAME = "figma-beacon"


class PathResolver:
    """Resolves paths for figma-beacon components."""

    @staticmethod
    def config_dir() -> Path:
        """Get the directory holding config.json and the profiles folder.

        Resolution order:
        1. BEACON_CONFIG_DIR env var
        2. XDG_CONFIG_HOME/figma-beacon
        3. ~/.config/figma-beacon

        Raises:
            RuntimeError: If no home directory can be determined.
        """
        explicit = os.environ.get("BEACON_CONFIG_DIR")
        if explicit:
            return Path(explicit)
        xdg_config = os.environ.get("XDG_CONFIG_HOME")
        if xdg_config:
            return Path(xdg_config) / APP_DIR_NAME
        return Path.home() / ".config" / APP_DIR_NAME

    @staticmethod
    def config_file() -> Path:
        return PathResolver.config_dir() / "config.json"

    @staticmethod
    def profiles_dir() -> Path:
        return PathResolver.config_dir() / "profiles"

    @staticmethod
    def reports_dir() -> Path:
        """Get the directory exported reports are written to.

        Resolution order:
        1. BEACON_REPORTS_DIR env var
        2. ./reports (relative to the current working directory)
        """
        explicit = os.environ.get("BEACON_REPORTS_DIR")
        if explicit:
            return Path(explicit)
        return Path.cwd() / "reports"

    @staticmethod
    def state_dir() -> Path:
        """Get the state directory for the debug log.

        Resolution order:
        1. BEACON_STATE_DIR env var
        2. XDG_STATE_HOME/figma-beacon
        3. ~/.local/state/figma-beacon
        """
        state = os.environ.get("BEACON_STATE_DIR")
        if state:
            return Path(state)
        xdg_state = os.environ.get("XDG_STATE_HOME")
        if xdg_state:
            return Path(xdg_state) / APP_DIR_NAME
        return Path.home() / ".local" / "state" / APP_DIR_NAME
