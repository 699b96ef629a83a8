from __future__ import annotations

from codeloft_backend.projects import PROJECT_INDEX_KEY, ProjectKeys
from codeloft_backend.projects.tree import iter_file_paths
from codeloft_backend.tasks import run_tree_repair


def test_repair_rebuilds_every_project_and_reports_failures(projects, store):
    first = projects.create_project("One").id
    second = projects.create_project("Two").id
    projects.add_file(first, "a/b.js", "x")
    projects.add_file(second, "c.js", "y")
    for project_id in (first, second):
        document = store.get_document(ProjectKeys(project_id).project)
        document["files"] = {}
        store.set_document(ProjectKeys(project_id).project, document)
    store.sadd(PROJECT_INDEX_KEY, "dangling")

    result = run_tree_repair(projects)

    assert result["status"] == "completed"
    assert sorted(result["repaired"]) == sorted([first, second])
    assert result["failed"] == ["dangling"]
    assert list(iter_file_paths(projects.require_project(first).files)) == ["a/b.js"]
    assert list(iter_file_paths(projects.require_project(second).files)) == ["c.js"]


def test_repair_single_project(projects, project_id):
    projects.add_file(project_id, "x.js", "1")

    result = run_tree_repair(projects, project_id)

    assert result == {"status": "completed", "repaired": [project_id], "failed": []}


def test_repair_skips_corrupt_project_documents(projects, project_id, store, monkeypatch):
    store.sadd(PROJECT_INDEX_KEY, "broken")
    load = store.get_document

    def get_document(key):
        if key == ProjectKeys("broken").project:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return load(key)

    monkeypatch.setattr(store, "get_document", get_document)

    result = run_tree_repair(projects)

    assert result["status"] == "completed"
    assert result["repaired"] == [project_id]
    assert result["failed"] == ["broken"]
