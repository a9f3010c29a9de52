#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
"""
JSON-lines debug logger for figma-beacon.

The TUI owns the terminal, so diagnostics go to ``<state_dir>/debug.log``
instead of stderr. Each line is one JSON object:

    {"event": "gateway_request", "level": "debug", "timestamp": "...",
     "pid": 1234, "path": "/teams/1/projects"}

Levels (from BEACON_DEBUG, else the ``debugLevel`` setting):
- 0: disabled
- 1: info and error events (default)
- 2: adds debug events (every gateway request and dispatched command)
"""

import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from beacon.config import get_int_setting
from beacon.paths import PathResolver

LEVEL_OFF = 0
LEVEL_INFO = 1
LEVEL_DEBUG = 2

_LEVEL_NUMBERS = {"info": LEVEL_INFO, "error": LEVEL_INFO, "debug": LEVEL_DEBUG}


def _resolve_level() -> int:
    raw = os.environ.get("BEACON_DEBUG")
    if raw is not None:
        try:
            return int(raw)
        except ValueError:
            return LEVEL_INFO if raw.lower() in ("true", "yes", "on") else LEVEL_OFF
    return get_int_setting("debugLevel", LEVEL_INFO)


class DebugLogger:
    """Appends structured events to the debug log."""

    def __init__(self, log_path: Optional[Path] = None, level: Optional[int] = None) -> None:
        self.log_path = log_path or PathResolver.state_dir() / "debug.log"
        self.level = _resolve_level() if level is None else level

    def _write(self, event: Dict[str, Any]) -> None:
        record = {
            "timestamp": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ"),
            "pid": os.getpid(),
        }
        record.update(event)
        try:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.log_path, "a", encoding="utf-8") as f:
                f.write(json.dumps(record, default=str) + "\n")
        except OSError:
            pass  # Logging must never break the app

    def log(self, event: str, level: str = "info", **fields: Any) -> None:
        if self.level < _LEVEL_NUMBERS.get(level, LEVEL_INFO):
            return
        payload: Dict[str, Any] = {"event": event, "level": level}
        payload.update(fields)
        self._write(payload)

    def debug(self, event: str, **fields: Any) -> None:
        self.log(event, level="debug", **fields)

    def error(self, op: str, err: Any) -> None:
        self.log("error", level="error", op=op, err=str(err))

    # Convenience wrappers for the events the app emits

    def command_dispatched(self, command: str, screen: str) -> None:
        self.debug("command_dispatched", command=command, screen=screen)

    def command_completed(self, command: str, result: str, ms: float) -> None:
        self.debug("command_completed", command=command, result=result, ms=round(ms, 2))

    def gateway_request(self, path: str) -> None:
        self.debug("gateway_request", path=path)

    def gateway_error(self, path: str, message: str, status: Optional[int]) -> None:
        self.log("gateway_error", level="error", path=path, message=message, status=status)

    def report_generated(self, profile: str, files: int, changes: int, skipped: int) -> None:
        self.log(
            "report_generated",
            profile=profile,
            files=files,
            changes=changes,
            skipped=skipped,
        )

    def report_exported(self, path: str) -> None:
        self.log("report_exported", path=path)

    def profile_saved(self, name: str, replaced: Optional[str] = None) -> None:
        self.log("profile_saved", name=name, replaced=replaced)

    def profile_deleted(self, name: str) -> None:
        self.log("profile_deleted", name=name)


_logger: Optional[DebugLogger] = None


def get_logger() -> DebugLogger:
    """Return the process-wide logger, creating it on first use."""
    global _logger
    if _logger is None:
        _logger = DebugLogger()
    return _logger


def reset_logger() -> None:
    """Drop the cached logger so the next call re-reads paths and level."""
    global _logger
    _logger = None
