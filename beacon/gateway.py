#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
"""
Remote API gateway for figma-beacon.

Wraps the five read-only endpoints the tool needs:
- GET /me                         current user
- GET /teams/{team_id}/projects   projects of a team
- GET /projects/{project_id}/files
- GET /files/{key}                file metadata (name, lastModified)
- GET /files/{key}/versions       version history, newest first

Every failure (transport error, timeout, non-2xx status, malformed body)
is raised as GatewayError so callers handle one type.
"""

import json
import socket
import urllib.error
import urllib.parse
import urllib.request
from typing import Any, Dict, List, Optional

from beacon._version import __version__
from beacon.config import get_api_base, get_request_timeout
from beacon.debug_logger import get_logger
from beacon.models import (
    FileMetadata,
    FileVersion,
    GatewayError,
    RemoteFile,
    RemoteProject,
    RemoteUser,
    parse_timestamp,
)


class FigmaGateway:
    """Authenticated GET requests against the Figma REST API.

    Attributes:
        base_url: API root, without trailing slash
        timeout: Per-request timeout in seconds
    """

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None) -> None:
        self.base_url = (base_url or get_api_base()).rstrip("/")
        self.timeout = timeout if timeout is not None else get_request_timeout()

    def _get(self, path: str, token: str) -> Dict[str, Any]:
        """Perform one GET and return the decoded JSON object."""
        if not token:
            raise GatewayError("No Figma token set")

        logger = get_logger()
        logger.gateway_request(path)
        request = urllib.request.Request(
            self.base_url + path,
            headers={
                "X-Figma-Token": token,
                "Accept": "application/json",
                "User-Agent": f"figma-beacon/{__version__}",
            },
        )
        try:
            with urllib.request.urlopen(request, timeout=self.timeout) as response:
                body = response.read()
        except urllib.error.HTTPError as e:
            detail = _read_error_body(e)
            error = GatewayError(f"API error ({e.code}): {detail}", status=e.code)
            logger.gateway_error(path, error.message, e.code)
            raise error from None
        except urllib.error.URLError as e:
            error = GatewayError(f"Request failed: {e.reason}")
            logger.gateway_error(path, error.message, None)
            raise error from None
        except (socket.timeout, TimeoutError):
            error = GatewayError(f"Request timed out after {self.timeout}s")
            logger.gateway_error(path, error.message, None)
            raise error from None
        except OSError as e:
            error = GatewayError(f"Request failed: {e}")
            logger.gateway_error(path, error.message, None)
            raise error from None

        try:
            data = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, ValueError):
            raise GatewayError(f"Malformed response from {path}") from None
        if not isinstance(data, dict):
            raise GatewayError(f"Malformed response from {path}")
        return data

    def get_current_user(self, token: str) -> RemoteUser:
        data = self._get("/me", token)
        return RemoteUser(
            id=str(data.get("id", "")),
            handle=str(data.get("handle", "")),
            email=str(data.get("email", "")),
        )

    def list_team_projects(self, token: str, team_id: str) -> List[RemoteProject]:
        if not team_id:
            raise GatewayError("No team ID set")
        data = self._get(f"/teams/{_quote(team_id)}/projects", token)
        return [
            RemoteProject(id=str(p.get("id", "")), name=str(p.get("name", "")))
            for p in _list_field(data, "projects")
        ]

    def list_project_files(self, token: str, project_id: str) -> List[RemoteFile]:
        data = self._get(f"/projects/{_quote(project_id)}/files", token)
        return [
            RemoteFile(key=str(f.get("key", "")), name=str(f.get("name", "")), project_id=project_id)
            for f in _list_field(data, "files")
        ]

    def get_file_metadata(self, token: str, file_key: str) -> FileMetadata:
        # depth=1 keeps the document tree out of the response
        data = self._get(f"/files/{_quote(file_key)}?depth=1", token)
        return FileMetadata(
            key=file_key,
            name=str(data.get("name", "")),
            last_modified=parse_timestamp(data.get("lastModified")),
        )

    def get_file_versions(self, token: str, file_key: str) -> List[FileVersion]:
        data = self._get(f"/files/{_quote(file_key)}/versions", token)
        return [
            FileVersion(id=str(v.get("id", "")), created_at=parse_timestamp(v.get("created_at")))
            for v in _list_field(data, "versions")
        ]


def _quote(segment: str) -> str:
    return urllib.parse.quote(segment, safe="")


def _list_field(data: Dict[str, Any], key: str) -> List[Dict[str, Any]]:
    items = data.get(key) or []
    if not isinstance(items, list):
        raise GatewayError(f"Malformed response: '{key}' is not a list")
    return [item for item in items if isinstance(item, dict)]


def _read_error_body(error: urllib.error.HTTPError) -> str:
    try:
        raw = error.read().decode("utf-8", errors="replace")
    except OSError:
        return error.reason or "unknown error"
    try:
        payload = json.loads(raw)
    except ValueError:
        return raw.strip() or str(error.reason)
    if isinstance(payload, dict):
        return str(payload.get("err") or payload.get("message") or raw.strip())
    return raw.strip()
