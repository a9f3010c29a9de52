# SPDX-License-Identifier: MIT
"""Configuration for figma-beacon.

Holds the Config record persistence (config.json) and a dot-notation
reader for the optional tool settings that live in the same file, e.g.
``{"api": {"timeout": 10}}`` read as ``get_setting("api.timeout")``.
"""
import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

from beacon.models import DEFAULT_API_BASE, REQUEST_TIMEOUT_SECONDS, Config, StoreError
from beacon.paths import PathResolver

_CONFIG_KEYS = ("figma_token", "user_id", "user_handle", "user_email", "team_id", "output_format")


def get_config_path() -> Path:
    """Get path to config.json, respecting BEACON_CONFIG_DIR."""
    return PathResolver.config_file()


def _read_raw(path: Path) -> Dict[str, Any]:
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError("config root must be an object")
    return data


def get_setting(key: str, default: Any = None) -> Any:
    """Get a setting value by dot-notation key.

    Args:
        key: Dot-notation key like "api.timeout"
        default: Default value if key not found

    Returns:
        Setting value or default
    """
    try:
        settings_path = get_config_path()
    except RuntimeError:
        return default

    if not settings_path.exists():
        return default

    try:
        data = _read_raw(settings_path)
    except (ValueError, OSError):
        return default

    current: Any = data
    for part in key.split("."):
        if not isinstance(current, dict) or part not in current:
            return default
        current = current[part]

    return current


def get_int_setting(key: str, default: int = 0) -> int:
    """Get an integer setting, falling back to ``default`` if not convertible."""
    value = get_setting(key, default)
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def get_api_base() -> str:
    return os.environ.get("BEACON_API_BASE") or str(get_setting("api.baseUrl", DEFAULT_API_BASE))


def get_request_timeout() -> int:
    return get_int_setting("api.timeout", REQUEST_TIMEOUT_SECONDS)


class ConfigStore:
    """Loads and saves the Config record.

    Keys in config.json that are not part of Config (tool settings such as
    ``api``) are preserved across saves.
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = path or get_config_path()

    def load(self) -> Config:
        """Load the config; a missing file yields an empty Config.

        Raises:
            StoreError: If the file exists but cannot be read or parsed.
        """
        if not self.path.exists():
            return Config()
        try:
            return Config.from_dict(_read_raw(self.path))
        except (ValueError, OSError) as e:
            raise StoreError(f"Failed to read config {self.path}: {e}") from e

    def save(self, config: Config) -> None:
        """Write the config, keeping any extra settings already on disk.

        Raises:
            StoreError: If the file cannot be written.
        """
        extra: Dict[str, Any] = {}
        if self.path.exists():
            try:
                extra = {k: v for k, v in _read_raw(self.path).items() if k not in _CONFIG_KEYS}
            except (ValueError, OSError):
                extra = {}
        data = dict(extra)
        data.update(config.to_dict())
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
        except OSError as e:
            raise StoreError(f"Failed to save config: {e}") from e
