#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
"""
Profile storage for figma-beacon.

Each profile lives in its own ``<name>.beacon`` JSON file under the
profiles directory. Exactly one profile may carry ``is_default``; the
store enforces it in ``set_default`` by clearing every flag first.
"""

import json
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from beacon.debug_logger import get_logger
from beacon.models import PROFILE_SUFFIX, Profile, ProfileNotFoundError, StoreError, ValidationError
from beacon.paths import PathResolver


def validate_profile_name(name: str) -> str:
    """Check that ``name`` can be used as a profile file name.

    Returns:
        The name, unchanged.

    Raises:
        ValidationError: If the name is blank or contains path separators.
    """
    if not name or not name.strip():
        raise ValidationError("Profile name is required")
    if "/" in name or "\\" in name or name in (".", ".."):
        raise ValidationError("Profile name cannot contain path separators")
    return name


class ProfileStore:
    """List/load/save/delete profiles and manage the default flag."""

    def __init__(self, profiles_dir: Optional[Path] = None) -> None:
        self.profiles_dir = profiles_dir or PathResolver.profiles_dir()

    def _path_for(self, name: str) -> Path:
        return self.profiles_dir / f"{name}{PROFILE_SUFFIX}"

    def list_profiles(self) -> List[Profile]:
        """Load every readable profile, sorted by name.

        Files that fail to parse are skipped (and logged).

        Raises:
            StoreError: If the profiles directory cannot be listed.
        """
        if not self.profiles_dir.exists():
            return []
        try:
            paths = sorted(self.profiles_dir.glob(f"*{PROFILE_SUFFIX}"))
        except OSError as e:
            raise StoreError(f"Failed to list profiles: {e}") from e

        profiles = []
        for path in paths:
            if not path.is_file():
                continue
            try:
                profiles.append(self._read(path))
            except StoreError as e:
                get_logger().error("list_profiles", e)
        profiles.sort(key=lambda p: p.name)
        return profiles

    def _read(self, path: Path) -> Profile:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return Profile.from_dict(data)
        except FileNotFoundError:
            raise
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            raise StoreError(f"Failed to read profile {path.name}: {e}") from e

    def load_profile(self, name: str) -> Profile:
        """Load one profile by name.

        Raises:
            ProfileNotFoundError: If no file exists for ``name``.
            StoreError: If the file exists but cannot be parsed.
        """
        path = self._path_for(name)
        try:
            return self._read(path)
        except FileNotFoundError:
            raise ProfileNotFoundError(f"Profile not found: {name}") from None

    def save_profile(self, profile: Profile) -> None:
        """Write ``profile`` to its file, replacing any previous content.

        Raises:
            ValidationError: If the profile name is not a usable file name.
            StoreError: If the file cannot be written.
        """
        validate_profile_name(profile.name)
        try:
            self.profiles_dir.mkdir(parents=True, exist_ok=True)
            self._path_for(profile.name).write_text(
                json.dumps(profile.to_dict(), indent=2) + "\n", encoding="utf-8"
            )
        except OSError as e:
            raise StoreError(f"Failed to save profile: {e}") from e

    def delete_profile(self, name: str) -> None:
        """Remove a profile's file.

        Raises:
            ProfileNotFoundError: If no file exists for ``name``.
            StoreError: If the file cannot be removed.
        """
        try:
            self._path_for(name).unlink()
        except FileNotFoundError:
            raise ProfileNotFoundError(f"Profile not found: {name}") from None
        except OSError as e:
            raise StoreError(f"Failed to delete profile: {e}") from e

    def set_default(self, name: str) -> Profile:
        """Make ``name`` the only default profile.

        Clears every default flag, then sets the one requested.

        Returns:
            The updated default profile.

        Raises:
            ProfileNotFoundError: If ``name`` is not an existing profile.
        """
        profiles = self.list_profiles()
        target = next((p for p in profiles if p.name == name), None)
        if target is None:
            raise ProfileNotFoundError(f"Profile not found: {name}")

        for profile in profiles:
            if profile.is_default and profile.name != name:
                self.save_profile(replace(profile, is_default=False))

        updated = replace(target, is_default=True)
        self.save_profile(updated)
        return updated

    def get_default(self) -> Optional[Profile]:
        """Return the default profile, or None when none is flagged."""
        return next((p for p in self.list_profiles() if p.is_default), None)
