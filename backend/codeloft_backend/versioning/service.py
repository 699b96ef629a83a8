"""Lightweight commit and branch history stored beside project files."""

from __future__ import annotations

import logging
import re
import time
from typing import Iterable

from ..errors import BranchNotFound, InvalidArgument, NoCommits, NoStagedChanges, NotFound
from ..projects import ProjectKeys, ProjectManager
from ..projects.records import utc_now
from ..projects.tree import normalize_path
from .records import BranchInfo, CommitRecord, DiffResult, FileStatus

LOGGER = logging.getLogger(__name__)

MAIN_BRANCH = "main"
INITIAL_COMMIT_MESSAGE = "Initial commit"
UNTRACKED = "??"
MODIFIED = "M"


def _line_count(text: str) -> int:
    return len(text.splitlines())


def _line_stats(previous: str, current: str) -> dict[str, int]:
    delta = _line_count(current) - _line_count(previous)
    return {"added": max(0, delta), "deleted": max(0, -delta)}


class VersionManager:
    """Stage, commit, branch and merge project files.

    Every commit stores the full content of the paths it touched, so a
    checkout never needs to replay history. Branches copy their source's
    commit list on creation and evolve independently afterwards.
    """

    _BRANCH_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._/-]*$")

    def __init__(
        self,
        projects: ProjectManager,
        *,
        default_author: str = "codeloft",
        log_limit: int = 10,
    ) -> None:
        self.projects = projects
        self.store = projects.store
        self.default_author = default_author
        self.log_limit = log_limit

    def init_repo(self, project_id: str) -> CommitRecord:
        """Create ``main`` and its empty initial commit.

        Calling this twice writes a second initial commit; callers are
        expected to initialise a project once.
        """

        self.projects.require_project(project_id)
        keys = ProjectKeys(project_id)
        with self.projects.project_lock(project_id):
            self._ensure_branch(keys, MAIN_BRANCH)
            self.store.set(keys.current_branch, MAIN_BRANCH)
            commit = self._record_commit(
                keys,
                branch=MAIN_BRANCH,
                message=INITIAL_COMMIT_MESSAGE,
                author=self.default_author,
                snapshot={},
                stats={},
            )
        LOGGER.info("Initialised repository for project %s", project_id)
        return commit

    def stage(self, project_id: str, paths: Iterable[str]) -> list[str]:
        self.projects.require_project(project_id)
        keys = ProjectKeys(project_id)
        self.store.sadd(keys.staging, *[normalize_path(path) for path in paths])
        return sorted(self.store.smembers(keys.staging))

    def unstage(self, project_id: str, paths: Iterable[str]) -> list[str]:
        self.projects.require_project(project_id)
        keys = ProjectKeys(project_id)
        self.store.srem(keys.staging, *[normalize_path(path) for path in paths])
        return sorted(self.store.smembers(keys.staging))

    def status(self, project_id: str) -> list[FileStatus]:
        """Report new and modified files; unchanged files are omitted."""

        self.projects.require_project(project_id)
        keys = ProjectKeys(project_id)
        staged = self.store.smembers(keys.staging)
        entries: list[FileStatus] = []
        for summary in self.projects.list_project_files(project_id):
            record = self.projects.get_file(project_id, summary.path)
            if record is None:
                continue
            tracked = self.store.hget(keys.tracked, summary.path)
            if tracked is None:
                code = UNTRACKED
            elif tracked != record.content:
                code = MODIFIED
            else:
                continue
            entries.append(
                FileStatus(path=summary.path, status=code, staged=summary.path in staged)
            )
        return entries

    def commit(
        self, project_id: str, message: str, author: str | None = None
    ) -> CommitRecord:
        if not message or not message.strip():
            raise InvalidArgument("Commit message is required")
        self.projects.require_project(project_id)
        keys = ProjectKeys(project_id)

        with self.projects.project_lock(project_id):
            staged = sorted(self.store.smembers(keys.staging))
            if not staged:
                raise NoStagedChanges()
            branch = self.current_branch(project_id)
            self._ensure_branch(keys, branch)

            snapshot: dict[str, str] = {}
            stats: dict[str, dict[str, int]] = {}
            for path in staged:
                record = self.projects.get_file(project_id, path)
                if record is None:
                    LOGGER.warning("Staged path %s has no file record; skipping", path)
                    continue
                previous = self.store.hget(keys.tracked, path) or ""
                snapshot[path] = record.content
                stats[path] = _line_stats(previous, record.content)

            commit = self._record_commit(
                keys,
                branch=branch,
                message=message.strip(),
                author=author or self.default_author,
                snapshot=snapshot,
                stats=stats,
            )
            self.store.delete(keys.staging)

        LOGGER.info(
            "Committed %s on %s (%d files) in %s",
            commit.short_hash,
            branch,
            len(commit.files),
            project_id,
        )
        return commit

    def current_branch(self, project_id: str) -> str:
        return self.store.get(ProjectKeys(project_id).current_branch) or MAIN_BRANCH

    def list_branches(self, project_id: str) -> list[BranchInfo]:
        self.projects.require_project(project_id)
        keys = ProjectKeys(project_id)
        names = self.store.smembers(keys.branches) | {MAIN_BRANCH}
        current = self.current_branch(project_id)
        return [
            self._branch_info(keys, name, current)
            for name in sorted(names, key=lambda name: (name != MAIN_BRANCH, name))
        ]

    def create_branch(
        self, project_id: str, name: str, from_branch: str | None = None
    ) -> BranchInfo:
        """Create ``name`` with a full copy of the source branch's history."""

        if not name or not self._BRANCH_PATTERN.fullmatch(name):
            raise InvalidArgument(
                "Branch names may only contain letters, numbers, '.', '_', '-' or '/'",
            )
        self.projects.require_project(project_id)
        keys = ProjectKeys(project_id)
        if self._branch_exists(keys, name):
            raise InvalidArgument(f"Branch '{name}' already exists")
        source = from_branch or self.current_branch(project_id)
        if not self._branch_exists(keys, source):
            raise BranchNotFound(f"Branch '{source}' not found")

        head = self._branch_head(keys, source)
        history = self.store.lrange(keys.branch_commits(source), 0, -1)
        self.store.hset(
            keys.branch(name),
            {"name": name, "head": head or "", "source": source, "created_at": utc_now()},
        )
        if history:
            self.store.lpush(keys.branch_commits(name), *reversed(history))
        self.store.sadd(keys.branches, name)
        LOGGER.info("Created branch %s from %s in %s", name, source, project_id)
        return self._branch_info(keys, name, self.current_branch(project_id))

    def checkout(self, project_id: str, branch: str) -> BranchInfo:
        """Switch branches and restore the files touched by the branch HEAD.

        Files the HEAD commit did not touch keep their live content.
        """

        self.projects.require_project(project_id)
        keys = ProjectKeys(project_id)
        if not self._branch_exists(keys, branch):
            raise BranchNotFound(f"Branch '{branch}' not found")

        with self.projects.project_lock(project_id):
            self.store.set(keys.current_branch, branch)
            head = self._branch_head(keys, branch)
            if head:
                snapshot = self.store.hgetall(keys.commit_files(head))
                for path, content in sorted(snapshot.items()):
                    self.projects.write_file(project_id, path, content)
                if snapshot:
                    self.store.hset(keys.tracked, snapshot)
                LOGGER.info(
                    "Checked out %s at %s (%d files restored)", branch, head, len(snapshot)
                )
        return self._branch_info(keys, branch, branch)

    def merge(self, project_id: str, source_branch: str) -> CommitRecord:
        """Overwrite live files with the source HEAD snapshot and record a merge commit.

        There is no conflict detection: the source content always wins.
        """

        self.projects.require_project(project_id)
        keys = ProjectKeys(project_id)
        if not self._branch_exists(keys, source_branch):
            raise BranchNotFound(f"Branch '{source_branch}' not found")
        target = self.current_branch(project_id)
        if source_branch == target:
            raise InvalidArgument("Cannot merge a branch into itself")

        with self.projects.project_lock(project_id):
            source_head = self._branch_head(keys, source_branch)
            if not source_head:
                raise NoCommits(f"Branch '{source_branch}' has no commits")
            snapshot = self.store.hgetall(keys.commit_files(source_head))
            stats: dict[str, dict[str, int]] = {}
            for path, content in sorted(snapshot.items()):
                live = self.projects.get_file(project_id, path)
                stats[path] = _line_stats(live.content if live else "", content)
                self.projects.write_file(project_id, path, content)

            self._ensure_branch(keys, target)
            commit = self._record_commit(
                keys,
                branch=target,
                message=f"Merge branch '{source_branch}' into {target}",
                author=self.default_author,
                snapshot=snapshot,
                stats=stats,
                merge_parent=source_head,
            )
        LOGGER.info("Merged %s into %s in %s", source_branch, target, project_id)
        return commit

    def log(self, project_id: str, limit: int | None = None) -> list[CommitRecord]:
        """Return the most recent commits on the current branch, newest first."""

        self.projects.require_project(project_id)
        keys = ProjectKeys(project_id)
        count = limit or self.log_limit
        commit_ids = self.store.lrange(
            keys.branch_commits(self.current_branch(project_id)), 0, count - 1
        )
        commits: list[CommitRecord] = []
        for commit_id in commit_ids:
            try:
                document = self.store.get_document(keys.commit(commit_id))
                if document is None:
                    LOGGER.warning("Commit %s is listed but has no record", commit_id)
                    continue
                commits.append(CommitRecord.from_document(document))
            except (KeyError, TypeError, ValueError):
                LOGGER.exception("Error loading commit %s", commit_id)
        return commits

    def get_commit(self, project_id: str, commit_id: str) -> CommitRecord:
        document = self.store.get_document(ProjectKeys(project_id).commit(commit_id))
        if document is None:
            raise NotFound(f"Commit '{commit_id}' not found")
        return CommitRecord.from_document(document)

    def commit_snapshot(self, project_id: str, commit_id: str) -> dict[str, str]:
        self.get_commit(project_id, commit_id)
        return self.store.hgetall(ProjectKeys(project_id).commit_files(commit_id))

    def diff(self, project_id: str, path: str) -> DiffResult:
        """Compare live content with the last committed content (line counts only)."""

        path = normalize_path(path)
        self.projects.require_project(project_id)
        record = self.projects.get_file(project_id, path)
        committed = self.store.hget(ProjectKeys(project_id).tracked, path)
        if record is None and committed is None:
            raise NotFound(f"File '{path}' not found in project '{project_id}'")
        current = record.content if record else ""
        committed = committed or ""
        return DiffResult(
            path=path,
            current_content=current,
            committed_content=committed,
            has_changes=current != committed,
            line_delta=_line_count(current) - _line_count(committed),
        )

    def _record_commit(
        self,
        keys: ProjectKeys,
        *,
        branch: str,
        message: str,
        author: str,
        snapshot: dict[str, str],
        stats: dict[str, dict[str, int]],
        merge_parent: str | None = None,
    ) -> CommitRecord:
        commit = CommitRecord(
            id=self._new_commit_id(keys),
            message=message,
            author=author,
            timestamp=utc_now(),
            branch=branch,
            parent=self._branch_head(keys, branch),
            merge_parent=merge_parent,
            files=sorted(snapshot),
            stats=stats,
        )
        self.store.set_document(keys.commit(commit.id), commit.as_dict())
        if snapshot:
            self.store.hset(keys.commit_files(commit.id), snapshot)
            self.store.hset(keys.tracked, snapshot)
        self.store.lpush(keys.branch_commits(branch), commit.id)
        self.store.hset(keys.branch(branch), {"name": branch, "head": commit.id})
        self.store.sadd(keys.branches, branch)
        return commit

    def _new_commit_id(self, keys: ProjectKeys) -> str:
        stamp = time.time_ns()
        while self.store.exists(keys.commit(f"{keys.project_id}-{stamp}")):
            stamp += 1
        return f"{keys.project_id}-{stamp}"

    def _ensure_branch(self, keys: ProjectKeys, name: str) -> None:
        if not self.store.exists(keys.branch(name)):
            self.store.hset(
                keys.branch(name), {"name": name, "head": "", "created_at": utc_now()}
            )
        self.store.sadd(keys.branches, name)

    def _branch_exists(self, keys: ProjectKeys, name: str) -> bool:
        return name == MAIN_BRANCH or self.store.sismember(keys.branches, name)

    def _branch_head(self, keys: ProjectKeys, name: str) -> str | None:
        return self.store.hget(keys.branch(name), "head") or None

    def _branch_info(self, keys: ProjectKeys, name: str, current: str) -> BranchInfo:
        return BranchInfo(
            name=name,
            is_current=name == current,
            head_commit=self._branch_head(keys, name),
            commit_count=self.store.llen(keys.branch_commits(name)),
        )


__all__ = ["VersionManager", "MAIN_BRANCH", "UNTRACKED", "MODIFIED"]
