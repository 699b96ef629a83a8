"""FastAPI application for the Codeloft backend."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from .config import get_settings
from .errors import CodeloftError
from .projects import ProjectManager
from .schemas import (
    BranchCreateRequest,
    BranchModel,
    CheckoutRequest,
    CommitDetailModel,
    CommitModel,
    CommitRequest,
    DiffModel,
    FileCreateRequest,
    FileDeleteResponse,
    FileModel,
    FileSummaryModel,
    FileUpdateRequest,
    FolderCreateRequest,
    FolderDeleteResponse,
    FolderResponse,
    LogEntryModel,
    MergeRequest,
    ProjectCreateRequest,
    ProjectDeleteResponse,
    ProjectRenameRequest,
    ProjectResponse,
    RenameRequest,
    RenameResponse,
    SearchResponse,
    StageRequest,
    StagingResponse,
    StatusEntryModel,
    TaskResponse,
    TreeResponse,
)
from .search import SearchManager
from .store import KeyValueStore, RedisStore
from .tasks import enqueue_tree_repair
from .versioning import VersionManager

LOGGER = logging.getLogger(__name__)

settings = get_settings()

app = FastAPI(title="Codeloft API")


@lru_cache(maxsize=1)
def get_store() -> KeyValueStore:
    """Return the shared store client."""

    return RedisStore.from_settings(get_settings())


StoreDep = Annotated[KeyValueStore, Depends(get_store)]


def get_project_manager(store: StoreDep) -> ProjectManager:
    return ProjectManager(
        store,
        lock_timeout=settings.lock_timeout,
        default_settings={
            "language": settings.default_language,
            "theme": settings.default_theme,
        },
    )


ProjectsDep = Annotated[ProjectManager, Depends(get_project_manager)]


def get_version_manager(projects: ProjectsDep) -> VersionManager:
    return VersionManager(
        projects, default_author=settings.default_author, log_limit=settings.log_limit
    )


VersionsDep = Annotated[VersionManager, Depends(get_version_manager)]


def get_search_manager(store: StoreDep) -> SearchManager:
    return SearchManager(store)


SearchDep = Annotated[SearchManager, Depends(get_search_manager)]


def configure_logging(level: str) -> None:
    """Configure root logger for console output."""

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )


@app.on_event("startup")
def on_startup() -> None:
    configure_logging(settings.log_level)


@app.exception_handler(CodeloftError)
async def handle_codeloft_error(request: Request, exc: CodeloftError) -> JSONResponse:
    if exc.status_code >= 500:
        LOGGER.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content={"detail": str(exc)})


@app.get("/healthz")
async def healthcheck() -> dict[str, str]:
    """Health check endpoint."""

    return {"status": "ok"}


# Projects


@app.post("/api/projects", response_model=ProjectResponse, status_code=201)
def create_project(payload: ProjectCreateRequest, projects: ProjectsDep) -> ProjectResponse:
    project = projects.create_project(payload.name, payload.description)
    return ProjectResponse.model_validate(project)


@app.get("/api/projects", response_model=list[ProjectResponse])
def list_projects(projects: ProjectsDep) -> list[ProjectResponse]:
    return [ProjectResponse.model_validate(item) for item in projects.list_projects()]


@app.get("/api/projects/{project_id}", response_model=ProjectResponse)
def get_project(project_id: str, projects: ProjectsDep) -> ProjectResponse:
    return ProjectResponse.model_validate(projects.require_project(project_id))


@app.put("/api/projects/{project_id}", response_model=ProjectResponse)
def rename_project(
    project_id: str, payload: ProjectRenameRequest, projects: ProjectsDep
) -> ProjectResponse:
    return ProjectResponse.model_validate(
        projects.rename_project(project_id, payload.name)
    )


@app.delete("/api/projects/{project_id}", response_model=ProjectDeleteResponse)
def delete_project(project_id: str, projects: ProjectsDep) -> ProjectDeleteResponse:
    deleted = projects.delete_project(project_id)
    return ProjectDeleteResponse(id=project_id, deleted_files=deleted)


# Files and folders


@app.post("/api/projects/{project_id}/files", response_model=FileModel, status_code=201)
def add_file(
    project_id: str, payload: FileCreateRequest, projects: ProjectsDep
) -> FileModel:
    record = projects.add_file(project_id, payload.path, payload.content)
    return FileModel.model_validate(record)


@app.get("/api/projects/{project_id}/files", response_model=list[FileSummaryModel])
def list_files(project_id: str, projects: ProjectsDep) -> list[FileSummaryModel]:
    projects.require_project(project_id)
    return [
        FileSummaryModel.model_validate(summary)
        for summary in projects.list_project_files(project_id)
    ]


@app.get("/api/projects/{project_id}/files/{path:path}", response_model=FileModel)
def get_file(project_id: str, path: str, projects: ProjectsDep) -> FileModel:
    record = projects.get_file(project_id, path)
    if record is None:
        raise HTTPException(status_code=404, detail="File not found")
    return FileModel.model_validate(record)


@app.put("/api/projects/{project_id}/files/{path:path}", response_model=FileModel)
def update_file(
    project_id: str, path: str, payload: FileUpdateRequest, projects: ProjectsDep
) -> FileModel:
    return FileModel.model_validate(projects.update_file(project_id, path, payload.content))


@app.delete("/api/projects/{project_id}/files/{path:path}", response_model=FileDeleteResponse)
def delete_file(project_id: str, path: str, projects: ProjectsDep) -> FileDeleteResponse:
    deleted = projects.delete_file(project_id, path)
    return FileDeleteResponse(path=path, deleted=deleted)


@app.post(
    "/api/projects/{project_id}/folders", response_model=FolderResponse, status_code=201
)
def create_folder(
    project_id: str, payload: FolderCreateRequest, projects: ProjectsDep
) -> FolderResponse:
    return FolderResponse(path=projects.create_folder(project_id, payload.path))


@app.delete(
    "/api/projects/{project_id}/folders/{path:path}", response_model=FolderDeleteResponse
)
def delete_folder(
    project_id: str, path: str, projects: ProjectsDep
) -> FolderDeleteResponse:
    LOGGER.info("Deleting folder %s from project %s", path, project_id)
    deleted = projects.delete_folder(project_id, path)
    return FolderDeleteResponse(path=path, deleted_files=deleted)


@app.put("/api/projects/{project_id}/rename", response_model=RenameResponse)
def rename_item(
    project_id: str, payload: RenameRequest, projects: ProjectsDep
) -> RenameResponse:
    moved = projects.rename_item(
        project_id, payload.old_path, payload.new_path, payload.is_folder
    )
    return RenameResponse(
        old_path=payload.old_path, new_path=payload.new_path, moved_files=moved
    )


@app.post("/api/projects/{project_id}/tree/rebuild", response_model=TreeResponse)
def rebuild_tree(project_id: str, projects: ProjectsDep) -> TreeResponse:
    return TreeResponse(files=projects.rebuild_tree(project_id))


@app.post(
    "/api/projects/{project_id}/tree/repair", response_model=TaskResponse, status_code=202
)
def repair_tree(project_id: str, projects: ProjectsDep) -> TaskResponse:
    projects.require_project(project_id)
    task = enqueue_tree_repair(project_id)
    return TaskResponse(task_id=str(task.id))


# Search


@app.get("/api/search", response_model=SearchResponse)
def search_all(
    search: SearchDep,
    q: str = Query(..., min_length=1),
    limit: int = Query(settings.search_limit, ge=1, le=200),
    offset: int = Query(0, ge=0),
    extensions: str | None = None,
    highlight: bool = True,
) -> SearchResponse:
    results = search.search_code(
        q,
        limit=limit,
        offset=offset,
        extensions=_split_extensions(extensions),
        highlight=highlight,
    )
    return SearchResponse.model_validate(results)


@app.get("/api/projects/{project_id}/search", response_model=SearchResponse)
def search_project(
    project_id: str,
    search: SearchDep,
    projects: ProjectsDep,
    q: str = Query(..., min_length=1),
    limit: int = Query(settings.search_limit, ge=1, le=200),
    offset: int = Query(0, ge=0),
    extensions: str | None = None,
    highlight: bool = True,
) -> SearchResponse:
    projects.require_project(project_id)
    results = search.search_in_project(
        project_id,
        q,
        limit=limit,
        offset=offset,
        extensions=_split_extensions(extensions),
        highlight=highlight,
    )
    return SearchResponse.model_validate(results)


def _split_extensions(extensions: str | None) -> list[str] | None:
    if not extensions:
        return None
    return [item.strip() for item in extensions.split(",") if item.strip()]


# Version control


@app.post("/api/projects/{project_id}/git/init", response_model=CommitModel, status_code=201)
def init_repo(project_id: str, versions: VersionsDep) -> CommitModel:
    return CommitModel.model_validate(versions.init_repo(project_id))


@app.post("/api/projects/{project_id}/git/stage", response_model=StagingResponse)
def stage(project_id: str, payload: StageRequest, versions: VersionsDep) -> StagingResponse:
    return StagingResponse(staged=versions.stage(project_id, payload.paths))


@app.post("/api/projects/{project_id}/git/unstage", response_model=StagingResponse)
def unstage(
    project_id: str, payload: StageRequest, versions: VersionsDep
) -> StagingResponse:
    return StagingResponse(staged=versions.unstage(project_id, payload.paths))


@app.get("/api/projects/{project_id}/git/status", response_model=list[StatusEntryModel])
def status(project_id: str, versions: VersionsDep) -> list[StatusEntryModel]:
    return [StatusEntryModel.model_validate(entry) for entry in versions.status(project_id)]


@app.post("/api/projects/{project_id}/git/commit", response_model=CommitModel, status_code=201)
def commit(project_id: str, payload: CommitRequest, versions: VersionsDep) -> CommitModel:
    return CommitModel.model_validate(
        versions.commit(project_id, payload.message, payload.author)
    )


@app.get(
    "/api/projects/{project_id}/git/commits/{commit_id}", response_model=CommitDetailModel
)
def get_commit(project_id: str, commit_id: str, versions: VersionsDep) -> CommitDetailModel:
    record = versions.get_commit(project_id, commit_id)
    return CommitDetailModel(
        **CommitModel.model_validate(record).model_dump(),
        snapshot=versions.commit_snapshot(project_id, commit_id),
    )


@app.get("/api/projects/{project_id}/git/branches", response_model=list[BranchModel])
def list_branches(project_id: str, versions: VersionsDep) -> list[BranchModel]:
    return [BranchModel.model_validate(item) for item in versions.list_branches(project_id)]


@app.post(
    "/api/projects/{project_id}/git/branches", response_model=BranchModel, status_code=201
)
def create_branch(
    project_id: str, payload: BranchCreateRequest, versions: VersionsDep
) -> BranchModel:
    branch = versions.create_branch(project_id, payload.name, payload.from_branch)
    return BranchModel.model_validate(branch)


@app.post("/api/projects/{project_id}/git/checkout", response_model=BranchModel)
def checkout(project_id: str, payload: CheckoutRequest, versions: VersionsDep) -> BranchModel:
    return BranchModel.model_validate(versions.checkout(project_id, payload.branch))


@app.post("/api/projects/{project_id}/git/merge", response_model=CommitModel, status_code=201)
def merge(project_id: str, payload: MergeRequest, versions: VersionsDep) -> CommitModel:
    return CommitModel.model_validate(versions.merge(project_id, payload.source_branch))


@app.get("/api/projects/{project_id}/git/log", response_model=list[LogEntryModel])
def log(
    project_id: str,
    versions: VersionsDep,
    limit: int = Query(settings.log_limit, ge=1, le=100),
) -> list[LogEntryModel]:
    return [
        LogEntryModel(
            hash=entry.short_hash,
            message=entry.message,
            author=entry.author,
            timestamp=entry.timestamp,
            branch=entry.branch,
        )
        for entry in versions.log(project_id, limit)
    ]


@app.get("/api/projects/{project_id}/git/diff/{path:path}", response_model=DiffModel)
def diff(project_id: str, path: str, versions: VersionsDep) -> DiffModel:
    return DiffModel.model_validate(versions.diff(project_id, path))
