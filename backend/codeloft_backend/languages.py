"""Extension to language mapping for search results."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

CONFIG_PATH = Path(__file__).resolve().parents[2] / "configs" / "languages.yaml"

PLAINTEXT = "plaintext"

_FALLBACK_LANGUAGES = {
    "js": "javascript",
    "jsx": "javascript",
    "ts": "typescript",
    "tsx": "typescript",
    "py": "python",
    "html": "html",
    "css": "css",
    "json": "json",
    "md": "markdown",
}


def _load_yaml(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def load_language_map(path: Path | None = None) -> dict[str, str]:
    """Load the extension table, falling back to a built-in subset if the file is absent."""

    config_path = path or CONFIG_PATH
    if not config_path.exists():
        return dict(_FALLBACK_LANGUAGES)
    payload = _load_yaml(config_path)
    languages = payload.get("languages") or {}
    if not isinstance(languages, dict):
        raise ValueError(f"'languages' must be a mapping in {config_path}")
    return {str(ext).lower().lstrip("."): str(name) for ext, name in languages.items()}


@lru_cache(maxsize=1)
def default_language_map() -> dict[str, str]:
    return load_language_map()


def extension_of(path: str) -> str:
    filename = path.rsplit("/", 1)[-1]
    if "." not in filename.strip("."):
        return ""
    return filename.rsplit(".", 1)[-1].lower()


def language_for(path: str, languages: dict[str, str] | None = None) -> str:
    table = default_language_map() if languages is None else languages
    return table.get(extension_of(path), PLAINTEXT)


__all__ = [
    "CONFIG_PATH",
    "PLAINTEXT",
    "load_language_map",
    "default_language_map",
    "extension_of",
    "language_for",
]
