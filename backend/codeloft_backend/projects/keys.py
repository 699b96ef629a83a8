"""Key layout definitions."""

from __future__ import annotations

from dataclasses import dataclass

PROJECT_INDEX_KEY = "projects:list"


@dataclass(slots=True, frozen=True)
class ProjectKeys:
    """Key namespace for a single project in the store."""

    project_id: str

    @property
    def project(self) -> str:
        return f"project:{self.project_id}"

    @property
    def file_prefix(self) -> str:
        return f"file:{self.project_id}:"

    @property
    def file_pattern(self) -> str:
        return f"{self.file_prefix}*"

    def file(self, path: str) -> str:
        return f"{self.file_prefix}{path}"

    def path_from_file_key(self, key: str) -> str:
        return key[len(self.file_prefix):]

    @property
    def lock(self) -> str:
        return f"lock:{self.project_id}"

    @property
    def current_branch(self) -> str:
        return f"git:{self.project_id}:branch"

    @property
    def staging(self) -> str:
        return f"git:{self.project_id}:staging"

    @property
    def tracked(self) -> str:
        return f"git:{self.project_id}:tracked"

    @property
    def branches(self) -> str:
        return f"branches:{self.project_id}"

    def branch(self, name: str) -> str:
        return f"branches:{self.project_id}:{name}"

    def branch_commits(self, name: str) -> str:
        return f"branches:{self.project_id}:{name}:commits"

    def commit(self, commit_id: str) -> str:
        return f"commit:{self.project_id}:{commit_id}"

    def commit_files(self, commit_id: str) -> str:
        return f"commit:{self.project_id}:{commit_id}:files"

    def version_patterns(self) -> list[str]:
        """Return key patterns covering all version-control state."""

        return [
            f"git:{self.project_id}:*",
            f"branches:{self.project_id}*",
            f"commit:{self.project_id}:*",
        ]


__all__ = ["PROJECT_INDEX_KEY", "ProjectKeys"]
