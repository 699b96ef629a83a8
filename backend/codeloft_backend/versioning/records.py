"""Records produced by the version model."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

SHORT_HASH_LENGTH = 7


@dataclass(slots=True)
class CommitRecord:
    """Immutable commit with the paths it touched and their line stats."""

    id: str
    message: str
    author: str
    timestamp: str
    branch: str
    parent: str | None = None
    merge_parent: str | None = None
    files: list[str] = field(default_factory=list)
    stats: dict[str, dict[str, int]] = field(default_factory=dict)

    @property
    def short_hash(self) -> str:
        return self.id[-SHORT_HASH_LENGTH:]

    @property
    def is_merge(self) -> bool:
        return self.merge_parent is not None

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> CommitRecord:
        return cls(
            id=document["id"],
            message=document["message"],
            author=document.get("author") or "",
            timestamp=document["timestamp"],
            branch=document["branch"],
            parent=document.get("parent") or None,
            merge_parent=document.get("merge_parent") or None,
            files=list(document.get("files") or []),
            stats={
                path: {key: int(value) for key, value in counts.items()}
                for path, counts in (document.get("stats") or {}).items()
            },
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "message": self.message,
            "author": self.author,
            "timestamp": self.timestamp,
            "branch": self.branch,
            "parent": self.parent,
            "merge_parent": self.merge_parent,
            "files": list(self.files),
            "stats": self.stats,
        }


@dataclass(slots=True)
class BranchInfo:
    name: str
    is_current: bool
    head_commit: str | None
    commit_count: int


@dataclass(slots=True)
class FileStatus:
    """Working-copy state of a file relative to its last committed content."""

    path: str
    status: str
    staged: bool


@dataclass(slots=True)
class DiffResult:
    path: str
    current_content: str
    committed_content: str
    has_changes: bool
    line_delta: int


__all__ = ["CommitRecord", "BranchInfo", "FileStatus", "DiffResult", "SHORT_HASH_LENGTH"]
