"""Operations on the nested file-tree projection stored with a project.

A tree is a mapping of child name to node. Folder nodes carry a
``children`` mapping of the same shape; file nodes carry the path, size and
update timestamp of the file record they mirror.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Iterator

from ..errors import InvalidArgument

LOGGER = logging.getLogger(__name__)

Tree = dict[str, dict[str, Any]]


def split_path(path: str) -> list[str]:
    """Split ``path`` into non-empty segments, rejecting traversal segments."""

    segments = [segment for segment in (path or "").split("/") if segment]
    if not segments:
        raise InvalidArgument("Path is required")
    for segment in segments:
        if segment in {".", ".."}:
            raise InvalidArgument(f"Invalid path segment '{segment}' in '{path}'")
    return segments


def normalize_path(path: str) -> str:
    return "/".join(split_path(path))


def folder_node(name: str) -> dict[str, Any]:
    return {"type": "folder", "name": name, "children": {}}


def file_node(path: str, size: int, updated_at: str) -> dict[str, Any]:
    return {
        "type": "file",
        "name": split_path(path)[-1],
        "path": path,
        "size": size,
        "updated_at": updated_at,
    }


def ensure_folders(tree: Tree, segments: Iterable[str]) -> Tree:
    """Create any missing folders along ``segments`` and return the last children map."""

    children = tree
    walked: list[str] = []
    for segment in segments:
        walked.append(segment)
        node = children.get(segment)
        if node is None:
            node = folder_node(segment)
            children[segment] = node
        elif node.get("type") != "folder":
            raise InvalidArgument(f"'{'/'.join(walked)}' is a file, not a folder")
        children = node.setdefault("children", {})
    return children


def insert_file(tree: Tree, path: str, size: int, updated_at: str) -> None:
    """Insert or replace the leaf for ``path``, creating intermediate folders."""

    segments = split_path(path)
    parent = ensure_folders(tree, segments[:-1])
    existing = parent.get(segments[-1])
    if existing is not None and existing.get("type") == "folder":
        raise InvalidArgument(f"'{path}' is a folder, not a file")
    parent[segments[-1]] = file_node("/".join(segments), size, updated_at)


def find_node(tree: Tree, path: str) -> dict[str, Any] | None:
    segments = split_path(path)
    children = tree
    node: dict[str, Any] | None = None
    for index, segment in enumerate(segments):
        node = children.get(segment)
        if node is None:
            return None
        if index < len(segments) - 1:
            if node.get("type") != "folder":
                return None
            children = node.get("children", {})
    return node


def remove_node(tree: Tree, path: str) -> bool:
    """Remove the node at ``path``; returns ``False`` when it was already absent."""

    segments = split_path(path)
    if len(segments) == 1:
        parent = tree
    else:
        parent_node = find_node(tree, "/".join(segments[:-1]))
        if parent_node is None or parent_node.get("type") != "folder":
            return False
        parent = parent_node.get("children", {})
    return parent.pop(segments[-1], None) is not None


def iter_file_paths(tree: Tree) -> Iterator[str]:
    """Yield the path of every file leaf in ``tree``."""

    for name, node in tree.items():
        if node.get("type") == "folder":
            yield from iter_file_paths(node.get("children", {}))
        else:
            yield node.get("path", name)


def build_tree(files: Iterable[Any]) -> Tree:
    """Build a fresh tree from file summaries (objects with ``path``, ``size``, ``updated_at``).

    A record whose path collides with a folder created by another record is
    skipped and logged.
    """

    tree: Tree = {}
    for summary in sorted(files, key=lambda item: item.path):
        try:
            insert_file(tree, summary.path, summary.size, summary.updated_at)
        except InvalidArgument as exc:
            LOGGER.warning("Skipping %s while rebuilding tree: %s", summary.path, exc)
    return tree


__all__ = [
    "Tree",
    "split_path",
    "normalize_path",
    "folder_node",
    "file_node",
    "ensure_folders",
    "insert_file",
    "find_node",
    "remove_node",
    "iter_file_paths",
    "build_tree",
]
