"""Configuration loading utilities for the Codeloft CLI."""

from __future__ import annotations

import fnmatch
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

DEFAULT_EXCLUDES = [".git/*", "node_modules/*", "__pycache__/*", "*.pyc"]


@dataclass(slots=True)
class PushConfig:
    """Describes which local files to push into which project."""

    source_dir: Path
    project_id: str | None = None
    project_name: str | None = None
    description: str = ""
    include: list[str] = field(default_factory=lambda: ["*"])
    exclude: list[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDES))
    commit_message: str | None = None
    commit_author: str | None = None

    def matches(self, relative_path: str) -> bool:
        """Return whether ``relative_path`` passes the include and exclude globs."""

        if any(fnmatch.fnmatch(relative_path, pattern) for pattern in self.exclude):
            return False
        return any(fnmatch.fnmatch(relative_path, pattern) for pattern in self.include)

    def collect_files(self) -> list[tuple[str, Path]]:
        """Return ``(project path, local path)`` pairs for every matching file."""

        files: list[tuple[str, Path]] = []
        for path in sorted(self.source_dir.rglob("*")):
            if not path.is_file():
                continue
            relative = path.relative_to(self.source_dir).as_posix()
            if self.matches(relative):
                files.append((relative, path))
        return files


def load_config(config_path: str | Path) -> PushConfig:
    """Load a push configuration file in JSON or YAML format.

    Args:
        config_path: Path to the configuration file.

    Raises:
        FileNotFoundError: If the file or its source directory does not exist.
        ValueError: If the file cannot be parsed or required keys are missing.

    Returns:
        PushConfig: The parsed configuration. Relative source directories are
        resolved against the configuration file's directory.
    """

    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:  # pragma: no cover - filesystem errors are rare
        raise ValueError(f"Failed to read configuration file: {path}") from exc

    suffix = path.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        data = yaml.safe_load(text) or {}
    elif suffix == ".json":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON in configuration file {path}: {exc}") from exc
    else:
        raise ValueError(
            f"Unsupported configuration format; expected JSON or YAML: {path}"
        )

    if not isinstance(data, Mapping):
        raise ValueError("Configuration payload must be a mapping of keys to values")

    project_id, project_name = _extract_project(data)
    source_dir = _extract_source_dir(data, path.parent)
    include = _extract_patterns(data, "include") or ["*"]
    exclude = _extract_patterns(data, "exclude")
    commit_message = _deep_get(data, ["commit", "message"], None)
    if commit_message is not None and not (
        isinstance(commit_message, str) and commit_message.strip()
    ):
        raise ValueError("commit.message must be a non-empty string if provided")
    commit_author = _deep_get(data, ["commit", "author"], None)

    return PushConfig(
        source_dir=source_dir,
        project_id=project_id,
        project_name=project_name,
        description=str(_deep_get(data, ["project", "description"], "") or ""),
        include=include,
        exclude=exclude if exclude is not None else list(DEFAULT_EXCLUDES),
        commit_message=commit_message.strip() if commit_message else None,
        commit_author=str(commit_author) if commit_author else None,
    )


def _deep_get(data: Mapping[str, Any], keys: list[str], default: Any) -> Any:
    current: Any = data
    for key in keys:
        if not isinstance(current, Mapping) or key not in current:
            return default
        current = current[key]
    return current


def _extract_project(data: Mapping[str, Any]) -> tuple[str | None, str | None]:
    project = data.get("project")
    if isinstance(project, str) and project.strip():
        return None, project.strip()
    if isinstance(project, Mapping):
        project_id = project.get("id")
        name = project.get("name")
        project_id = project_id.strip() if isinstance(project_id, str) else None
        name = name.strip() if isinstance(name, str) else None
        if project_id or name:
            return project_id or None, name or None
    raise ValueError("Configuration must define a project id or name")


def _extract_source_dir(data: Mapping[str, Any], base: Path) -> Path:
    source = data.get("source_dir", ".")
    if not isinstance(source, str) or not source.strip():
        raise ValueError("source_dir must be a path string")
    source_dir = Path(source).expanduser()
    if not source_dir.is_absolute():
        source_dir = base / source_dir
    source_dir = source_dir.resolve()
    if not source_dir.is_dir():
        raise FileNotFoundError(f"Source directory not found: {source_dir}")
    return source_dir


def _extract_patterns(data: Mapping[str, Any], key: str) -> list[str] | None:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, str):
        return [value]
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return list(value)
    raise ValueError(f"{key} must be a glob string or a list of glob strings")


__all__ = ["PushConfig", "load_config", "DEFAULT_EXCLUDES"]
