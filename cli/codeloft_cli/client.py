"""HTTP client for communicating with the Codeloft API."""

from __future__ import annotations

import logging
import os
from typing import Any, Iterable, Mapping

import requests

_LOGGER = logging.getLogger(__name__)


class ApiError(RuntimeError):
    """Raised when the API returns an error response."""


class ApiClient:
    """Simple HTTP client for the project and version-control endpoints."""

    def __init__(self, base_url: str | None = None, *, timeout: float = 30.0) -> None:
        self.base_url = base_url or os.environ.get(
            "CODELOFT_API_URL", "http://localhost:8000"
        )
        self.timeout = timeout

    def list_projects(self) -> list[Mapping[str, Any]]:
        return self._request("GET", "/api/projects")

    def create_project(self, name: str, description: str = "") -> Mapping[str, Any]:
        data = self._request(
            "POST", "/api/projects", {"name": name, "description": description}
        )
        _LOGGER.info("Created project %s (%s)", data.get("id"), name)
        return data

    def add_file(self, project_id: str, path: str, content: str) -> Mapping[str, Any]:
        return self._request(
            "POST", f"/api/projects/{project_id}/files", {"path": path, "content": content}
        )

    def init_repo(self, project_id: str) -> Mapping[str, Any]:
        return self._request("POST", f"/api/projects/{project_id}/git/init")

    def stage(self, project_id: str, paths: Iterable[str]) -> Mapping[str, Any]:
        return self._request(
            "POST", f"/api/projects/{project_id}/git/stage", {"paths": list(paths)}
        )

    def commit(
        self, project_id: str, message: str, author: str | None = None
    ) -> Mapping[str, Any]:
        data = self._request(
            "POST",
            f"/api/projects/{project_id}/git/commit",
            {"message": message, "author": author},
        )
        _LOGGER.info("Commit %s created in project %s", data.get("short_hash"), project_id)
        return data

    def _request(
        self, method: str, path: str, payload: Mapping[str, Any] | None = None
    ) -> Any:
        url = f"{self.base_url.rstrip('/')}{path}"
        _LOGGER.debug("%s %s with payload %s", method, url, payload)
        try:
            response = requests.request(method, url, json=payload, timeout=self.timeout)
        except requests.RequestException as exc:  # pragma: no cover - network errors
            raise ApiError(f"Failed to reach API at {url}") from exc

        if response.status_code >= 400:
            _LOGGER.error(
                "API returned error %s: %s", response.status_code, response.text
            )
            raise ApiError(
                f"API returned error {response.status_code}: {response.text}"
            )

        try:
            return response.json()
        except ValueError as exc:  # pragma: no cover - unexpected API payloads
            raise ApiError("API response was not valid JSON") from exc


__all__ = ["ApiClient", "ApiError"]
