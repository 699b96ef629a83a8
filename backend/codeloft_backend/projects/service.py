"""Project management utilities."""

from __future__ import annotations

import logging
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator, Mapping

from ..errors import InvalidArgument, NotFound
from ..store import KeyValueStore
from .keys import PROJECT_INDEX_KEY, ProjectKeys
from .records import FileRecord, FileSummary, ProjectRecord, byte_length, utc_now
from .tree import (
    Tree,
    build_tree,
    ensure_folders,
    find_node,
    insert_file,
    normalize_path,
    remove_node,
    split_path,
)

LOGGER = logging.getLogger(__name__)

DEFAULT_PROJECT_SETTINGS = {"language": "javascript", "theme": "dark"}


def _updated_sort_key(project: ProjectRecord) -> datetime:
    try:
        parsed = datetime.fromisoformat(project.updated_at)
    except (TypeError, ValueError):
        return datetime.min.replace(tzinfo=timezone.utc)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class ProjectManager:
    """Responsible for project metadata, file records and the file tree.

    File records are the source of truth for content; the tree stored in the
    project document is a projection of them that :meth:`rebuild_tree` can
    regenerate at any time.
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        lock_timeout: float = 30.0,
        default_settings: Mapping[str, Any] | None = None,
    ) -> None:
        self.store = store
        self.lock_timeout = lock_timeout
        self.default_settings = dict(default_settings or DEFAULT_PROJECT_SETTINGS)
        self._held = threading.local()

    @contextmanager
    def project_lock(self, project_id: str) -> Iterator[None]:
        """Hold the per-project lock guarding every change to the project document.

        Nested calls from the same thread reuse the lock already held.
        """

        held: set[str] | None = getattr(self._held, "projects", None)
        if held is None:
            held = self._held.projects = set()
        if project_id in held:
            yield
            return
        with self.store.lock(ProjectKeys(project_id).lock, self.lock_timeout):
            held.add(project_id)
            try:
                yield
            finally:
                held.discard(project_id)

    # Projects

    def create_project(self, name: str, description: str = "") -> ProjectRecord:
        if not name or not name.strip():
            raise InvalidArgument("Project name is required")
        now = utc_now()
        project = ProjectRecord(
            id=uuid.uuid4().hex,
            name=name.strip(),
            description=description or "",
            created_at=now,
            updated_at=now,
            files={},
            settings=dict(self.default_settings),
        )
        self.store.set_document(ProjectKeys(project.id).project, project.as_dict())
        self.store.sadd(PROJECT_INDEX_KEY, project.id)
        LOGGER.info("Created project %s (%s)", project.id, project.name)
        return project

    def list_projects(self) -> list[ProjectRecord]:
        """Return registered projects, most recently updated first.

        Records that are missing or cannot be parsed are logged and skipped.
        """

        projects: list[ProjectRecord] = []
        for project_id in sorted(self.store.smembers(PROJECT_INDEX_KEY)):
            try:
                document = self.store.get_document(ProjectKeys(project_id).project)
                if document is None:
                    LOGGER.warning("Project %s is registered but has no record", project_id)
                    continue
                projects.append(ProjectRecord.from_document(document))
            except (KeyError, TypeError, ValueError):
                LOGGER.exception("Error loading project %s", project_id)
        return sorted(projects, key=_updated_sort_key, reverse=True)

    def get_project(self, project_id: str) -> ProjectRecord | None:
        document = self.store.get_document(ProjectKeys(project_id).project)
        if document is None:
            return None
        return ProjectRecord.from_document(document)

    def require_project(self, project_id: str) -> ProjectRecord:
        project = self.get_project(project_id)
        if project is None:
            raise NotFound(f"Project '{project_id}' not found")
        return project

    def rename_project(self, project_id: str, new_name: str) -> ProjectRecord:
        if not new_name or not new_name.strip():
            raise InvalidArgument("Project name is required")
        with self.project_lock(project_id):
            document = self._load_document(project_id)
            document["name"] = new_name.strip()
            self._save_document(project_id, document)
        return ProjectRecord.from_document(document)

    def delete_project(self, project_id: str) -> int:
        """Delete files, version history, metadata and the index entry, in that order."""

        keys = ProjectKeys(project_id)
        registered = self.store.sismember(PROJECT_INDEX_KEY, project_id)
        if not registered and not self.store.exists(keys.project):
            raise NotFound(f"Project '{project_id}' not found")

        files = self.list_project_files(project_id)
        self.store.delete(*[summary.key for summary in files])
        for pattern in keys.version_patterns():
            self.store.delete(*self.store.keys(pattern))
        self.store.delete(keys.project)
        self.store.srem(PROJECT_INDEX_KEY, project_id)
        LOGGER.info("Deleted project %s with %d files", project_id, len(files))
        return len(files)

    # Files and folders

    def add_file(self, project_id: str, path: str, content: str = "") -> FileRecord:
        """Write the file record for ``path`` and insert its leaf into the tree."""

        path = normalize_path(path)
        content = content or ""
        with self.project_lock(project_id):
            document = self._load_document(project_id)
            now = utc_now()
            record = FileRecord(
                project_id=project_id,
                path=path,
                content=content,
                size=byte_length(content),
                created_at=now,
                updated_at=now,
            )
            insert_file(document["files"], path, record.size, now)
            self.store.hset(ProjectKeys(project_id).file(path), record.as_hash())
            self._save_document(project_id, document, now)
        return record

    def create_folder(self, project_id: str, path: str) -> str:
        path = normalize_path(path)
        with self.project_lock(project_id):
            document = self._load_document(project_id)
            ensure_folders(document["files"], split_path(path))
            self._save_document(project_id, document)
        return path

    def get_file(self, project_id: str, path: str) -> FileRecord | None:
        path = normalize_path(path)
        data = self.store.hgetall(ProjectKeys(project_id).file(path))
        if not data:
            return None
        return FileRecord.from_hash(project_id, path, data)

    def update_file(self, project_id: str, path: str, content: str) -> FileRecord:
        """Overwrite the content of an existing file; the tree shape is unchanged."""

        path = normalize_path(path)
        key = ProjectKeys(project_id).file(path)
        with self.project_lock(project_id):
            data = self.store.hgetall(key)
            if not data:
                raise NotFound(f"File '{path}' not found in project '{project_id}'")
            document = self._load_document(project_id)
            now = utc_now()
            record = FileRecord.from_hash(project_id, path, data)
            record.content = content
            record.size = byte_length(content)
            record.updated_at = now
            self.store.hset(
                key,
                {"content": record.content, "size": str(record.size), "updated_at": now},
            )
            leaf = find_node(document["files"], path)
            if leaf is not None and leaf.get("type") == "file":
                leaf["size"] = record.size
                leaf["updated_at"] = now
            self._save_document(project_id, document, now)
        return record

    def write_file(self, project_id: str, path: str, content: str) -> FileRecord:
        """Update ``path`` if it exists, otherwise add it."""

        with self.project_lock(project_id):
            if self.store.exists(ProjectKeys(project_id).file(normalize_path(path))):
                return self.update_file(project_id, path, content)
            return self.add_file(project_id, path, content)

    def list_project_files(self, project_id: str) -> list[FileSummary]:
        """List file records straight from the store, ignoring the tree."""

        keys = ProjectKeys(project_id)
        files: list[FileSummary] = []
        for key in self.store.keys(keys.file_pattern):
            data = self.store.hgetall(key)
            if not data:
                continue
            files.append(FileSummary.from_hash(key, keys.path_from_file_key(key), data))
        return sorted(files, key=lambda summary: summary.path)

    def delete_file(self, project_id: str, path: str) -> bool:
        path = normalize_path(path)
        with self.project_lock(project_id):
            document = self._load_document(project_id)
            deleted = self.store.delete(ProjectKeys(project_id).file(path)) > 0
            if not remove_node(document["files"], path):
                LOGGER.debug("Tree node for %s was already absent", path)
            self._save_document(project_id, document)
        return deleted

    def delete_folder(self, project_id: str, path: str) -> int:
        """Delete every file at or below ``path`` and drop the folder node."""

        folder = normalize_path(path)
        with self.project_lock(project_id):
            document = self._load_document(project_id)
            doomed = [
                summary
                for summary in self.list_project_files(project_id)
                if summary.path == folder or summary.path.startswith(f"{folder}/")
            ]
            self.store.delete(*[summary.key for summary in doomed])
            remove_node(document["files"], folder)
            self._save_document(project_id, document)
        LOGGER.info("Deleted folder %s (%d files) from %s", folder, len(doomed), project_id)
        return len(doomed)

    def rename_item(
        self, project_id: str, old_path: str, new_path: str, is_folder: bool = False
    ) -> int:
        """Move a file or folder; returns the number of file records moved."""

        old_path = normalize_path(old_path)
        new_path = normalize_path(new_path)
        if old_path == new_path:
            raise InvalidArgument("Old and new paths are identical")
        with self.project_lock(project_id):
            if is_folder:
                return self._rename_folder(project_id, old_path, new_path)
            return self._rename_file(project_id, old_path, new_path)

    def rebuild_tree(self, project_id: str) -> Tree:
        """Replace the tree with one built from the authoritative file records."""

        with self.project_lock(project_id):
            document = self._load_document(project_id)
            document["files"] = build_tree(self.list_project_files(project_id))
            self._save_document(project_id, document)
        LOGGER.info("Rebuilt file tree for project %s", project_id)
        return document["files"]

    # Internals

    def _rename_file(self, project_id: str, old_path: str, new_path: str) -> int:
        keys = ProjectKeys(project_id)
        data = self.store.hgetall(keys.file(old_path))
        if not data:
            raise NotFound(f"File '{old_path}' not found in project '{project_id}'")
        if self.store.exists(keys.file(new_path)):
            raise InvalidArgument(f"'{new_path}' already exists")

        document = self._load_document(project_id)
        now = utc_now()
        record = FileRecord.from_hash(project_id, old_path, data)
        record.path = new_path
        record.updated_at = now
        remove_node(document["files"], old_path)
        insert_file(document["files"], new_path, record.size, now)

        self.store.hset(keys.file(new_path), record.as_hash())
        self.store.delete(keys.file(old_path))
        self._save_document(project_id, document, now)
        LOGGER.info("Renamed %s to %s in %s", old_path, new_path, project_id)
        return 1

    def _rename_folder(self, project_id: str, old_path: str, new_path: str) -> int:
        if new_path.startswith(f"{old_path}/"):
            raise InvalidArgument("Cannot move a folder into itself")
        keys = ProjectKeys(project_id)
        document = self._load_document(project_id)
        prefix = f"{old_path}/"
        moves = [
            (summary, new_path + summary.path[len(old_path):])
            for summary in self.list_project_files(project_id)
            if summary.path.startswith(prefix)
        ]
        if not moves and find_node(document["files"], old_path) is None:
            raise NotFound(f"Folder '{old_path}' not found in project '{project_id}'")
        segments = split_path(new_path)
        for index in range(1, len(segments) + 1):
            prefix = "/".join(segments[:index])
            node = find_node(document["files"], prefix)
            if (node is not None and node.get("type") == "file") or self.store.exists(
                keys.file(prefix)
            ):
                raise InvalidArgument(f"'{prefix}' is a file, not a folder")
        conflicts = [target for _, target in moves if self.store.exists(keys.file(target))]
        if conflicts:
            raise InvalidArgument(f"'{conflicts[0]}' already exists")

        now = utc_now()
        for summary, target in moves:
            data = self.store.hgetall(summary.key)
            if not data:
                continue
            record = FileRecord.from_hash(project_id, summary.path, data)
            record.path = target
            record.updated_at = now
            self.store.hset(keys.file(target), record.as_hash())
            self.store.delete(summary.key)

        document["files"] = build_tree(self.list_project_files(project_id))
        ensure_folders(document["files"], split_path(new_path))
        self._save_document(project_id, document, now)
        LOGGER.info(
            "Renamed folder %s to %s in %s (%d files)",
            old_path,
            new_path,
            project_id,
            len(moves),
        )
        return len(moves)

    def _load_document(self, project_id: str) -> dict[str, Any]:
        document = self.store.get_document(ProjectKeys(project_id).project)
        if document is None:
            raise NotFound(f"Project '{project_id}' not found")
        document.setdefault("files", {})
        return document

    def _save_document(
        self, project_id: str, document: dict[str, Any], now: str | None = None
    ) -> None:
        document["updated_at"] = now or utc_now()
        self.store.set_document(ProjectKeys(project_id).project, document)


__all__ = ["ProjectManager", "DEFAULT_PROJECT_SETTINGS"]
