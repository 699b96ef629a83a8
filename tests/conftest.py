"""Shared fixtures for Codeloft tests."""

from __future__ import annotations

import pytest

from codeloft_backend.projects import ProjectManager
from codeloft_backend.search import SearchManager
from codeloft_backend.versioning import VersionManager
from tests.fakes.store import InMemoryStore


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def projects(store: InMemoryStore) -> ProjectManager:
    return ProjectManager(store, lock_timeout=1.0)


@pytest.fixture
def versions(projects: ProjectManager) -> VersionManager:
    return VersionManager(projects, default_author="tester")


@pytest.fixture
def search(store: InMemoryStore) -> SearchManager:
    return SearchManager(store, languages={"js": "javascript", "py": "python"})


@pytest.fixture
def project_id(projects: ProjectManager) -> str:
    return projects.create_project("Demo", "demo project").id
