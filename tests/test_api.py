from __future__ import annotations

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from codeloft_backend import app as app_module
from codeloft_backend.app import app, get_project_manager, get_store
from codeloft_backend.projects import ProjectKeys, ProjectManager
from tests.fakes.store import InMemoryStore


@pytest.fixture
def client():
    store = InMemoryStore()
    app.dependency_overrides[get_store] = lambda: store
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def _create_project(client, name="Demo"):
    response = client.post("/api/projects", json={"name": name, "description": "d"})
    assert response.status_code == 201
    return response.json()["id"]


def test_healthcheck(client):
    assert client.get("/healthz").json() == {"status": "ok"}


def test_project_and_file_lifecycle(client):
    project_id = _create_project(client)

    created = client.post(
        f"/api/projects/{project_id}/files",
        json={"path": "src/index.js", "content": "console.log(1)"},
    )
    assert created.status_code == 201
    assert created.json()["size"] == 14

    fetched = client.get(f"/api/projects/{project_id}/files/src/index.js")
    assert fetched.status_code == 200
    assert fetched.json()["content"] == "console.log(1)"

    updated = client.put(
        f"/api/projects/{project_id}/files/src/index.js", json={"content": "x"}
    )
    assert updated.json()["size"] == 1

    listing = client.get("/api/projects").json()
    assert [item["name"] for item in listing] == ["Demo"]
    assert listing[0]["files"]["src"]["children"]["index.js"]["type"] == "file"

    files = client.get(f"/api/projects/{project_id}/files").json()
    assert [item["path"] for item in files] == ["src/index.js"]

    deleted = client.delete(f"/api/projects/{project_id}")
    assert deleted.json() == {"id": project_id, "deleted_files": 1}
    assert client.get("/api/projects").json() == []
    assert client.get(f"/api/projects/{project_id}").status_code == 404


def test_folder_and_rename_routes(client):
    project_id = _create_project(client)
    client.post(f"/api/projects/{project_id}/folders", json={"path": "lib/empty"})
    client.post(f"/api/projects/{project_id}/files", json={"path": "a/b/c.js", "content": "c"})

    renamed = client.put(
        f"/api/projects/{project_id}/rename",
        json={"old_path": "a", "new_path": "x", "is_folder": True},
    )
    assert renamed.json()["moved_files"] == 1
    assert client.get(f"/api/projects/{project_id}/files/x/b/c.js").status_code == 200

    removed = client.delete(f"/api/projects/{project_id}/folders/x")
    assert removed.json() == {"path": "x", "deleted_files": 1}

    tree = client.post(f"/api/projects/{project_id}/tree/rebuild").json()
    assert tree == {"files": {}}


def test_missing_resources_and_validation(client):
    assert client.get("/api/projects/nope").status_code == 404
    assert client.post("/api/projects", json={"name": ""}).status_code == 422

    project_id = _create_project(client)
    assert client.get(f"/api/projects/{project_id}/files/ghost.js").status_code == 404
    response = client.put(
        f"/api/projects/{project_id}/files/ghost.js", json={"content": "x"}
    )
    assert response.status_code == 404
    assert "ghost.js" in response.json()["detail"]
    bad = client.post(f"/api/projects/{project_id}/files", json={"path": "../x", "content": ""})
    assert bad.status_code == 400


def test_version_control_routes(client):
    project_id = _create_project(client)
    base = f"/api/projects/{project_id}/git"
    client.post(f"/api/projects/{project_id}/files", json={"path": "f.js", "content": "one"})

    assert client.post(f"{base}/init").status_code == 201
    assert client.post(f"{base}/commit", json={"message": "empty"}).status_code == 409

    assert client.get(f"{base}/status").json() == [
        {"path": "f.js", "status": "??", "staged": False}
    ]
    assert client.post(f"{base}/stage", json={"paths": ["f.js"]}).json() == {
        "staged": ["f.js"]
    }
    commit = client.post(f"{base}/commit", json={"message": "m1", "author": "ada"})
    assert commit.status_code == 201
    body = commit.json()
    assert body["short_hash"] == body["id"][-7:]

    log = client.get(f"{base}/log").json()
    assert [entry["message"] for entry in log] == ["m1", "Initial commit"]
    assert log[0]["hash"] == body["short_hash"]

    detail = client.get(f"{base}/commits/{body['id']}").json()
    assert detail["snapshot"] == {"f.js": "one"}

    diff = client.get(f"{base}/diff/f.js").json()
    assert diff["has_changes"] is False

    created = client.post(f"{base}/branches", json={"name": "feature"})
    assert created.status_code == 201
    assert created.json()["commit_count"] == 2
    names = [branch["name"] for branch in client.get(f"{base}/branches").json()]
    assert names == ["main", "feature"]

    assert client.post(f"{base}/checkout", json={"branch": "ghost"}).status_code == 404
    assert client.post(f"{base}/checkout", json={"branch": "feature"}).json()["is_current"]
    client.put(f"/api/projects/{project_id}/files/f.js", json={"content": "two"})
    client.post(f"{base}/stage", json={"paths": ["f.js"]})
    client.post(f"{base}/commit", json={"message": "on feature"})

    client.post(f"{base}/checkout", json={"branch": "main"})
    assert client.get(f"/api/projects/{project_id}/files/f.js").json()["content"] == "one"

    merged = client.post(f"{base}/merge", json={"source_branch": "feature"})
    assert merged.status_code == 201
    assert merged.json()["merge_parent"] is not None
    assert client.get(f"/api/projects/{project_id}/files/f.js").json()["content"] == "two"


def test_search_routes(client):
    project_id = _create_project(client)
    client.post(f"/api/projects/{project_id}/files", json={"path": "a.js", "content": "find me"})
    client.post(f"/api/projects/{project_id}/files", json={"path": "b.py", "content": "find me"})

    scoped = client.get(
        f"/api/projects/{project_id}/search", params={"q": "find", "extensions": "py"}
    ).json()
    assert [hit["path"] for hit in scoped["documents"]] == ["b.py"]

    everything = client.get("/api/search", params={"q": "FIND"}).json()
    assert everything["total"] == 2
    assert "<mark>find</mark>" in everything["documents"][0]["snippet"]

    plain = client.get("/api/search", params={"q": "find", "highlight": "false"}).json()
    assert plain["documents"][0]["snippet"] == "find me"

    assert client.get("/api/search").status_code == 422


def test_repair_route_enqueues_task(client, monkeypatch):
    calls = []

    def fake_enqueue(project_id):
        calls.append(project_id)
        return SimpleNamespace(id="task-1")

    monkeypatch.setattr(app_module, "enqueue_tree_repair", fake_enqueue)
    project_id = _create_project(client)

    response = client.post(f"/api/projects/{project_id}/tree/repair")

    assert response.status_code == 202
    assert response.json() == {"task_id": "task-1", "status": "queued"}
    assert calls == [project_id]


def test_locked_project_returns_service_unavailable():
    store = InMemoryStore()
    manager = ProjectManager(store, lock_timeout=0.05)
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_project_manager] = lambda: manager
    try:
        client = TestClient(app)
        project_id = _create_project(client)
        with store.lock(ProjectKeys(project_id).lock, 1.0):
            response = client.post(
                f"/api/projects/{project_id}/files", json={"path": "a.js", "content": "x"}
            )
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 503
    assert "lock" in response.json()["detail"]
