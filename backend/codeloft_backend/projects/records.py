"""Records exchanged by the project tree manager."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping


def utc_now() -> str:
    """Return the current UTC time as an ISO-8601 string."""

    return datetime.now(timezone.utc).isoformat()


def byte_length(content: str) -> int:
    return len(content.encode("utf-8"))


def _as_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


@dataclass(slots=True)
class ProjectRecord:
    """Project metadata together with its file tree."""

    id: str
    name: str
    description: str
    created_at: str
    updated_at: str
    files: dict[str, Any] = field(default_factory=dict)
    settings: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> ProjectRecord:
        """Build a record from a stored document, raising ``KeyError`` if incomplete."""

        return cls(
            id=document["id"],
            name=document["name"],
            description=document.get("description") or "",
            created_at=document["created_at"],
            updated_at=document.get("updated_at") or document["created_at"],
            files=dict(document.get("files") or {}),
            settings=dict(document.get("settings") or {}),
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "files": self.files,
            "settings": self.settings,
        }


@dataclass(slots=True)
class FileRecord:
    """Authoritative content and metadata of a project file."""

    project_id: str
    path: str
    content: str
    size: int
    created_at: str
    updated_at: str

    @classmethod
    def from_hash(cls, project_id: str, path: str, data: Mapping[str, str]) -> FileRecord:
        content = data.get("content", "")
        return cls(
            project_id=data.get("project_id") or project_id,
            path=data.get("path") or path,
            content=content,
            size=_as_int(data.get("size", byte_length(content))),
            created_at=data.get("created_at", ""),
            updated_at=data.get("updated_at", ""),
        )

    def as_hash(self) -> dict[str, str]:
        return {
            "project_id": self.project_id,
            "path": self.path,
            "content": self.content,
            "size": str(self.size),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass(slots=True)
class FileSummary:
    """Listing entry for a file record."""

    key: str
    path: str
    size: int
    updated_at: str

    @classmethod
    def from_hash(cls, key: str, path: str, data: Mapping[str, str]) -> FileSummary:
        return cls(
            key=key,
            path=data.get("path") or path,
            size=_as_int(data.get("size")),
            updated_at=data.get("updated_at", ""),
        )


__all__ = [
    "ProjectRecord",
    "FileRecord",
    "FileSummary",
    "utc_now",
    "byte_length",
]
