"""Basic code search over stored file records."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable

from .errors import InvalidArgument
from .languages import default_language_map, extension_of, language_for
from .projects import ProjectKeys
from .store import KeyValueStore

LOGGER = logging.getLogger(__name__)

SNIPPET_CONTEXT = 50
ALL_FILES_PATTERN = "file:*"


@dataclass(slots=True)
class SearchHit:
    """A file whose content matched the query."""

    key: str
    project_id: str
    path: str
    filename: str
    extension: str
    language: str
    snippet: str
    score: int


@dataclass(slots=True)
class SearchResults:
    query: str
    total: int
    offset: int
    limit: int
    documents: list[SearchHit] = field(default_factory=list)


def build_snippet(
    content: str, query: str, context: int = SNIPPET_CONTEXT, highlight: bool = True
) -> str:
    """Cut ``context`` characters around the first match.

    With ``highlight`` every match in the snippet is wrapped in ``<mark>``.
    """

    index = content.lower().find(query.lower())
    if index == -1:
        return ""
    start = max(0, index - context)
    end = min(len(content), index + len(query) + context)
    snippet = content[start:end]
    if start > 0:
        snippet = "..." + snippet
    if end < len(content):
        snippet = snippet + "..."
    if not highlight:
        return snippet
    return re.sub(
        re.escape(query),
        lambda match: f"<mark>{match.group(0)}</mark>",
        snippet,
        flags=re.IGNORECASE,
    )


class SearchManager:
    """Case-insensitive substring search across one project or all of them."""

    def __init__(
        self, store: KeyValueStore, languages: dict[str, str] | None = None
    ) -> None:
        self.store = store
        self.languages = languages if languages is not None else default_language_map()

    def search_code(
        self,
        query: str,
        *,
        project_id: str | None = None,
        limit: int = 20,
        offset: int = 0,
        extensions: Iterable[str] | None = None,
        highlight: bool = True,
    ) -> SearchResults:
        if not query or not query.strip():
            raise InvalidArgument("Search query is required")
        if limit < 1 or offset < 0:
            raise InvalidArgument("limit must be positive and offset non-negative")

        wanted = {ext.lower().lstrip(".") for ext in extensions or [] if ext.strip()}
        pattern = ProjectKeys(project_id).file_pattern if project_id else ALL_FILES_PATTERN
        needle = query.lower()
        hits: list[SearchHit] = []

        for key in self.store.keys(pattern):
            parts = key.split(":", 2)
            if len(parts) != 3 or not parts[2]:
                LOGGER.debug("Skipping unrecognised file key %s", key)
                continue
            _, owner, path = parts
            extension = extension_of(path)
            if wanted and extension not in wanted:
                continue
            content = self.store.hget(key, "content")
            if not content:
                continue
            score = content.lower().count(needle)
            if score == 0:
                continue
            hits.append(
                SearchHit(
                    key=key,
                    project_id=owner,
                    path=path,
                    filename=path.rsplit("/", 1)[-1],
                    extension=extension,
                    language=language_for(path, self.languages),
                    snippet=build_snippet(content, query, highlight=highlight),
                    score=score,
                )
            )

        hits.sort(key=lambda hit: (-hit.score, hit.project_id, hit.path))
        return SearchResults(
            query=query,
            total=len(hits),
            offset=offset,
            limit=limit,
            documents=hits[offset : offset + limit],
        )

    def search_in_project(self, project_id: str, query: str, **options) -> SearchResults:
        return self.search_code(query, project_id=project_id, **options)


__all__ = ["SearchHit", "SearchResults", "SearchManager", "build_snippet"]
