"""Celery tasks for background maintenance."""

from __future__ import annotations

import logging
from typing import Any

from celery import Celery

from .config import get_settings
from .errors import CodeloftError
from .projects import PROJECT_INDEX_KEY, ProjectManager
from .store import RedisStore

LOGGER = logging.getLogger(__name__)
SETTINGS = get_settings()

celery_app = Celery(
    "codeloft_backend", broker=SETTINGS.redis_url, backend=SETTINGS.redis_url
)
celery_app.conf.task_serializer = "json"
celery_app.conf.result_serializer = "json"
celery_app.conf.accept_content = ["json"]


def enqueue_tree_repair(project_id: str | None = None):
    """Enqueue a tree repair and return the Celery result handle."""

    return repair_trees.delay(project_id=project_id)


def run_tree_repair(
    manager: ProjectManager, project_id: str | None = None
) -> dict[str, Any]:
    """Rebuild the tree of one project, or of every registered project.

    A project that cannot be rebuilt is logged and reported as failed without
    stopping the others.
    """

    if project_id:
        project_ids = [project_id]
    else:
        project_ids = sorted(manager.store.smembers(PROJECT_INDEX_KEY))

    repaired: list[str] = []
    failed: list[str] = []
    for current in project_ids:
        try:
            with manager.project_lock(current):
                manager.rebuild_tree(current)
        except (CodeloftError, KeyError, TypeError, ValueError):
            LOGGER.exception("Tree repair failed for project %s", current)
            failed.append(current)
            continue
        repaired.append(current)

    return {
        "status": "failed" if failed and not repaired else "completed",
        "repaired": repaired,
        "failed": failed,
    }


@celery_app.task(name="codeloft_backend.repair_trees")
def repair_trees(*, project_id: str | None = None) -> dict[str, Any]:
    """Celery entry point for :func:`run_tree_repair`."""

    manager = ProjectManager(
        RedisStore.from_settings(SETTINGS), lock_timeout=SETTINGS.lock_timeout
    )
    return run_tree_repair(manager, project_id)
