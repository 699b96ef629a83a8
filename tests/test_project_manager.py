from __future__ import annotations

import threading
import time

import pytest

from codeloft_backend.errors import InvalidArgument, NotFound, StoreUnavailable
from codeloft_backend.projects import PROJECT_INDEX_KEY, ProjectKeys, ProjectManager
from codeloft_backend.projects.tree import find_node, iter_file_paths
from tests.fakes.store import InMemoryStore


def _tree(projects, project_id):
    return projects.require_project(project_id).files


def test_create_project_registers_id_and_defaults(projects, store):
    project = projects.create_project("Demo", "first")

    assert store.sismember(PROJECT_INDEX_KEY, project.id)
    assert project.files == {}
    assert project.settings == {"language": "javascript", "theme": "dark"}
    assert projects.get_project(project.id).name == "Demo"


def test_create_project_requires_name(projects):
    with pytest.raises(InvalidArgument):
        projects.create_project("   ")


def test_get_project_missing_returns_none(projects):
    assert projects.get_project("nope") is None
    with pytest.raises(NotFound):
        projects.require_project("nope")


def test_list_projects_orders_by_update_and_skips_bad_records(projects, store):
    first = projects.create_project("First")
    second = projects.create_project("Second")
    projects.add_file(first.id, "a.js", "x")
    store.sadd(PROJECT_INDEX_KEY, "dangling", "corrupt")
    store.set_document(ProjectKeys("corrupt").project, {"id": "corrupt"})

    listed = projects.list_projects()

    assert [project.id for project in listed] == [first.id, second.id]


def test_add_file_then_get_file_round_trip(projects, project_id):
    projects.add_file(project_id, "a/b/c.js", "console.log(1)")

    record = projects.get_file(project_id, "a/b/c.js")
    assert record.content == "console.log(1)"
    assert record.size == len("console.log(1)")

    tree = _tree(projects, project_id)
    assert tree["a"]["type"] == "folder"
    assert tree["a"]["children"]["b"]["type"] == "folder"
    assert tree["a"]["children"]["b"]["children"]["c.js"]["type"] == "file"


def test_add_file_size_counts_utf8_bytes(projects, project_id):
    record = projects.add_file(project_id, "unicode.txt", "héllo")
    assert record.size == 6


def test_add_file_to_missing_project_fails(projects):
    with pytest.raises(NotFound):
        projects.add_file("missing", "a.js", "")


def test_add_file_overwrites_existing(projects, project_id):
    projects.add_file(project_id, "a.js", "one")
    projects.add_file(project_id, "a.js", "two")

    assert projects.get_file(project_id, "a.js").content == "two"
    assert [f.path for f in projects.list_project_files(project_id)] == ["a.js"]


def test_create_folder_is_idempotent_and_keeps_files(projects, project_id):
    projects.add_file(project_id, "src/app.js", "x")
    projects.create_folder(project_id, "src/components")
    projects.create_folder(project_id, "src/components")

    tree = _tree(projects, project_id)
    src = tree["src"]["children"]
    assert set(src) == {"app.js", "components"}
    assert src["components"] == {"type": "folder", "name": "components", "children": {}}


def test_update_file_changes_content_not_shape(projects, project_id):
    projects.add_file(project_id, "src/app.js", "a")
    before = _tree(projects, project_id)

    record = projects.update_file(project_id, "src/app.js", "abc")

    assert record.content == "abc"
    assert record.size == 3
    after = _tree(projects, project_id)
    assert list(iter_file_paths(after)) == list(iter_file_paths(before))
    assert find_node(after, "src/app.js")["size"] == 3


def test_update_missing_file_raises(projects, project_id):
    with pytest.raises(NotFound):
        projects.update_file(project_id, "ghost.js", "x")


def test_delete_file_removes_record_and_leaf(projects, project_id):
    projects.add_file(project_id, "a/b.js", "x")

    assert projects.delete_file(project_id, "a/b.js") is True
    assert projects.get_file(project_id, "a/b.js") is None
    assert find_node(_tree(projects, project_id), "a/b.js") is None
    assert projects.delete_file(project_id, "a/b.js") is False


def test_delete_folder_removes_nested_files(projects, project_id, store):
    projects.add_file(project_id, "a/b/c.js", "x")
    projects.add_file(project_id, "a/d.js", "y")
    projects.add_file(project_id, "ab.js", "z")
    store.lock_names.clear()

    deleted = projects.delete_folder(project_id, "a")

    assert deleted == 2
    paths = [f.path for f in projects.list_project_files(project_id)]
    assert paths == ["ab.js"]
    assert "a" not in _tree(projects, project_id)
    assert store.lock_names == [ProjectKeys(project_id).lock]


def test_delete_nested_folder_keeps_parent(projects, project_id):
    projects.add_file(project_id, "a/b/c.js", "x")
    projects.add_file(project_id, "a/keep.js", "y")

    assert projects.delete_folder(project_id, "a/b") == 1

    tree = _tree(projects, project_id)
    assert set(tree["a"]["children"]) == {"keep.js"}


def test_rename_file_moves_record_and_tree(projects, project_id):
    projects.add_file(project_id, "a/b/c.js", "content")

    moved = projects.rename_item(project_id, "a/b/c.js", "x/y/c.js", False)

    assert moved == 1
    assert projects.get_file(project_id, "a/b/c.js") is None
    record = projects.get_file(project_id, "x/y/c.js")
    assert record.content == "content"
    assert record.path == "x/y/c.js"
    assert [f.path for f in projects.list_project_files(project_id)] == ["x/y/c.js"]
    tree = _tree(projects, project_id)
    assert find_node(tree, "x/y/c.js")["path"] == "x/y/c.js"
    assert find_node(tree, "a/b/c.js") is None


def test_rename_file_refuses_existing_target(projects, project_id):
    projects.add_file(project_id, "a.js", "1")
    projects.add_file(project_id, "b.js", "2")

    with pytest.raises(InvalidArgument):
        projects.rename_item(project_id, "a.js", "b.js")
    assert projects.get_file(project_id, "a.js").content == "1"


def test_rename_missing_file_raises(projects, project_id):
    with pytest.raises(NotFound):
        projects.rename_item(project_id, "nope.js", "new.js")


def test_rename_folder_moves_all_nested_records(projects, project_id):
    projects.add_file(project_id, "src/a.js", "a")
    projects.add_file(project_id, "src/deep/b.js", "b")
    projects.add_file(project_id, "srcx/c.js", "c")

    moved = projects.rename_item(project_id, "src", "lib/core", True)

    assert moved == 2
    paths = [f.path for f in projects.list_project_files(project_id)]
    assert paths == ["lib/core/a.js", "lib/core/deep/b.js", "srcx/c.js"]
    assert projects.get_file(project_id, "lib/core/deep/b.js").content == "b"
    tree = _tree(projects, project_id)
    assert sorted(iter_file_paths(tree)) == paths
    assert "src" not in tree


def test_rename_empty_folder_keeps_folder_node(projects, project_id):
    projects.create_folder(project_id, "empty")

    assert projects.rename_item(project_id, "empty", "renamed", True) == 0
    assert _tree(projects, project_id)["renamed"]["type"] == "folder"


def test_rename_folder_into_itself_is_rejected(projects, project_id):
    projects.add_file(project_id, "src/a.js", "a")
    with pytest.raises(InvalidArgument):
        projects.rename_item(project_id, "src", "src/inner", True)


def test_rename_folder_onto_file_leaves_store_untouched(projects, project_id):
    projects.add_file(project_id, "a/b.js", "b")
    projects.add_file(project_id, "x", "file")

    with pytest.raises(InvalidArgument):
        projects.rename_item(project_id, "a", "x", True)
    with pytest.raises(InvalidArgument):
        projects.rename_item(project_id, "a", "x/y", True)

    assert [f.path for f in projects.list_project_files(project_id)] == ["a/b.js", "x"]
    assert sorted(iter_file_paths(_tree(projects, project_id))) == ["a/b.js", "x"]


def test_rebuild_tree_replaces_stale_tree(projects, project_id, store):
    projects.add_file(project_id, "a/b.js", "x")
    projects.add_file(project_id, "c.js", "y")
    document = store.get_document(ProjectKeys(project_id).project)
    document["files"]["stale"] = {"type": "file", "name": "stale", "path": "stale"}
    del document["files"]["c.js"]
    store.set_document(ProjectKeys(project_id).project, document)

    first = projects.rebuild_tree(project_id)
    second = projects.rebuild_tree(project_id)

    assert first == second
    leaves = sorted(iter_file_paths(_tree(projects, project_id)))
    assert leaves == [f.path for f in projects.list_project_files(project_id)]
    assert leaves == ["a/b.js", "c.js"]


def test_rename_project_updates_name(projects, project_id):
    renamed = projects.rename_project(project_id, "Renamed")
    assert renamed.name == "Renamed"
    assert projects.require_project(project_id).name == "Renamed"


def test_demo_scenario_create_list_delete(projects, store):
    project = projects.create_project("Demo")
    projects.add_file(project.id, "index.js", "console.log(1)")

    listed = projects.list_projects()
    assert [p.name for p in listed] == ["Demo"]
    assert len(projects.list_project_files(project.id)) == 1

    assert projects.delete_project(project.id) == 1
    assert projects.list_projects() == []
    assert projects.list_project_files(project.id) == []
    assert store.keys(f"*{project.id}*") == []


def test_delete_project_cleans_dangling_index_entry(projects, store):
    store.sadd(PROJECT_INDEX_KEY, "dangling")

    assert projects.delete_project("dangling") == 0
    assert not store.sismember(PROJECT_INDEX_KEY, "dangling")
    with pytest.raises(NotFound):
        projects.delete_project("dangling")


class _SlowReadStore(InMemoryStore):
    """Widens the window between reading and writing the project document."""

    def get_document(self, key):
        document = super().get_document(key)
        time.sleep(0.05)
        return document


def test_concurrent_sibling_writes_keep_tree_and_records_consistent():
    manager = ProjectManager(_SlowReadStore(), lock_timeout=5.0)
    project_id = manager.create_project("Race").id
    workers = [
        threading.Thread(target=manager.add_file, args=(project_id, f"a/{name}.js", name))
        for name in ("one", "two")
    ]

    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join()

    records = {summary.path for summary in manager.list_project_files(project_id)}
    tree = set(iter_file_paths(manager.require_project(project_id).files))
    assert records == tree == {"a/one.js", "a/two.js"}


def test_file_writes_wait_for_project_lock(store, project_id):
    manager = ProjectManager(store, lock_timeout=0.05)

    with store.lock(ProjectKeys(project_id).lock, 1.0):
        with pytest.raises(StoreUnavailable):
            manager.add_file(project_id, "blocked.js", "x")

    assert manager.get_file(project_id, "blocked.js") is None
