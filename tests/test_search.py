from __future__ import annotations

import pytest

from codeloft_backend.errors import InvalidArgument
from codeloft_backend.languages import extension_of, language_for, load_language_map
from codeloft_backend.search import build_snippet


def test_build_snippet_marks_and_trims():
    content = "x" * 80 + "needle" + "y" * 80

    snippet = build_snippet(content, "NEEDLE")

    assert snippet.startswith("...")
    assert snippet.endswith("...")
    assert "<mark>needle</mark>" in snippet
    assert len(snippet) == 3 + 50 + len("<mark>needle</mark>") + 50 + 3


def test_build_snippet_escapes_query():
    assert build_snippet("call(a)", "(a)") == "call<mark>(a)</mark>"


def test_search_within_project(search, projects, project_id):
    other = projects.create_project("Other").id
    projects.add_file(project_id, "src/app.js", "const todo = 1; // TODO todo")
    projects.add_file(project_id, "main.py", "print('todo')")
    projects.add_file(project_id, "notes.md", "nothing here")
    projects.add_file(other, "todo.js", "todo")

    results = search.search_in_project(project_id, "todo")

    assert results.total == 2
    assert [hit.path for hit in results.documents] == ["src/app.js", "main.py"]
    first = results.documents[0]
    assert first.score == 3
    assert first.language == "javascript"
    assert first.filename == "app.js"
    assert first.project_id == project_id


def test_search_across_projects_with_extension_filter(search, projects, project_id):
    other = projects.create_project("Other").id
    projects.add_file(project_id, "a.js", "hello")
    projects.add_file(other, "b.py", "hello")

    everything = search.search_code("hello")
    only_python = search.search_code("hello", extensions=[".py"])

    assert everything.total == 2
    assert [hit.path for hit in only_python.documents] == ["b.py"]
    assert only_python.documents[0].language == "python"


def test_search_paging_keeps_total(search, projects, project_id):
    for index in range(5):
        projects.add_file(project_id, f"f{index}.js", "match")

    page = search.search_code("match", limit=2, offset=4)

    assert page.total == 5
    assert [hit.path for hit in page.documents] == ["f4.js"]


def test_search_ignores_unscoped_legacy_keys(search, store):
    store.hset("file:legacy.js", {"content": "match"})

    assert search.search_code("match").total == 0


def test_search_requires_query(search):
    with pytest.raises(InvalidArgument):
        search.search_code(" ")


def test_language_helpers(tmp_path):
    config = tmp_path / "languages.yaml"
    config.write_text("languages:\n  .RS: rust\n", encoding="utf-8")

    table = load_language_map(config)

    assert table == {"rs": "rust"}
    assert language_for("src/main.rs", table) == "rust"
    assert language_for("Makefile", table) == "plaintext"
    assert extension_of(".bashrc") == ""
    assert load_language_map(tmp_path / "missing.yaml")["py"] == "python"


def test_search_without_highlight_returns_plain_snippet(search, projects, project_id):
    projects.add_file(project_id, "a.js", "let total = add(1, 2)")

    results = search.search_code("ADD", highlight=False)

    assert [hit.snippet for hit in results.documents] == ["let total = add(1, 2)"]
    assert build_snippet("x add y", "add", highlight=False) == "x add y"
