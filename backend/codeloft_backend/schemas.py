"""Pydantic schemas for the Codeloft backend API."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ProjectCreateRequest(BaseModel):
    """Request body for creating a project."""

    name: str = Field(..., min_length=1)
    description: str = ""


class ProjectRenameRequest(BaseModel):
    name: str = Field(..., min_length=1)


class ProjectResponse(BaseModel):
    """Project metadata with its file tree."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: str = ""
    created_at: datetime
    updated_at: datetime
    files: dict[str, Any] = Field(default_factory=dict)
    settings: dict[str, Any] = Field(default_factory=dict)


class ProjectDeleteResponse(BaseModel):
    id: str
    deleted_files: int


class FileCreateRequest(BaseModel):
    path: str = Field(..., min_length=1)
    content: str = ""


class FileUpdateRequest(BaseModel):
    content: str


class FileModel(BaseModel):
    """A file record including its content."""

    model_config = ConfigDict(from_attributes=True)

    path: str
    content: str
    size: int
    created_at: str
    updated_at: str


class FileSummaryModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    path: str
    size: int
    updated_at: str


class FileDeleteResponse(BaseModel):
    path: str
    deleted: bool


class FolderCreateRequest(BaseModel):
    path: str = Field(..., min_length=1)


class FolderResponse(BaseModel):
    path: str


class FolderDeleteResponse(BaseModel):
    path: str
    deleted_files: int


class RenameRequest(BaseModel):
    """Rename or move a file or folder."""

    old_path: str = Field(..., min_length=1)
    new_path: str = Field(..., min_length=1)
    is_folder: bool = False


class RenameResponse(BaseModel):
    old_path: str
    new_path: str
    moved_files: int


class TreeResponse(BaseModel):
    files: dict[str, Any]


class TaskResponse(BaseModel):
    """Response describing an enqueued background task."""

    task_id: str
    status: str = "queued"


class SearchHitModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    key: str
    project_id: str
    path: str
    filename: str
    extension: str
    language: str
    snippet: str
    score: int


class SearchResponse(BaseModel):
    """Paged search results."""

    model_config = ConfigDict(from_attributes=True)

    query: str
    total: int
    offset: int
    limit: int
    documents: list[SearchHitModel]


class StageRequest(BaseModel):
    paths: list[str] = Field(..., min_length=1)


class StagingResponse(BaseModel):
    staged: list[str]


class StatusEntryModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    path: str
    status: str
    staged: bool


class CommitRequest(BaseModel):
    message: str = Field(..., min_length=1)
    author: str | None = None


class CommitModel(BaseModel):
    """A commit with its touched paths and line statistics."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    short_hash: str
    message: str
    author: str
    timestamp: datetime
    branch: str
    parent: str | None = None
    merge_parent: str | None = None
    files: list[str] = Field(default_factory=list)
    stats: dict[str, dict[str, int]] = Field(default_factory=dict)


class CommitDetailModel(CommitModel):
    snapshot: dict[str, str] = Field(default_factory=dict)


class LogEntryModel(BaseModel):
    hash: str
    message: str
    author: str
    timestamp: datetime
    branch: str


class BranchModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    is_current: bool
    head_commit: str | None
    commit_count: int


class BranchCreateRequest(BaseModel):
    name: str = Field(..., min_length=1)
    from_branch: str | None = None


class CheckoutRequest(BaseModel):
    branch: str = Field(..., min_length=1)


class MergeRequest(BaseModel):
    source_branch: str = Field(..., min_length=1)


class DiffModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    path: str
    current_content: str
    committed_content: str
    has_changes: bool
    line_delta: int


__all__ = [
    "ProjectCreateRequest",
    "ProjectRenameRequest",
    "ProjectResponse",
    "ProjectDeleteResponse",
    "FileCreateRequest",
    "FileUpdateRequest",
    "FileModel",
    "FileSummaryModel",
    "FileDeleteResponse",
    "FolderCreateRequest",
    "FolderResponse",
    "FolderDeleteResponse",
    "RenameRequest",
    "RenameResponse",
    "TreeResponse",
    "TaskResponse",
    "SearchHitModel",
    "SearchResponse",
    "StageRequest",
    "StagingResponse",
    "StatusEntryModel",
    "CommitRequest",
    "CommitModel",
    "CommitDetailModel",
    "LogEntryModel",
    "BranchModel",
    "BranchCreateRequest",
    "CheckoutRequest",
    "MergeRequest",
    "DiffModel",
]
