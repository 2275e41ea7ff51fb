import io
import json

import pytest

from backspace import main as cli

from conftest import FakeResponse


@pytest.fixture
def run_cli():
    """Run the CLI and capture what commands print."""

    def _run(*argv):
        out = io.StringIO()
        rc = cli.main(list(argv), out=out)
        return rc, out.getvalue()

    return _run


def test_collection_create_list_json(run_cli, tmp_path):
    path = str(tmp_path / "collections")
    rc, _ = run_cli("collection", "create", "scifi", "--name", "Sci-Fi", "--path", path)
    assert rc == 0
    rc, out = run_cli("collection", "list", "--json", "--path", path)
    assert rc == 0
    payload = json.loads(out)
    assert payload["collections"][0]["name"] == "Sci-Fi"


def test_duplicate_create_fails_with_exit_code(run_cli, tmp_path):
    path = str(tmp_path / "collections")
    run_cli("collection", "create", "scifi", "--path", path)
    rc, out = run_cli("collection", "create", "scifi", "--path", path, "--json")
    assert rc == 1
    assert "already exists" in json.loads(out)["error"]
    rc, _ = run_cli("collection", "create", "scifi", "--path", path, "--force")
    assert rc == 0


def test_update_without_changes(run_cli, tmp_path):
    path = str(tmp_path / "collections")
    run_cli("collection", "create", "scifi", "--name", "A", "--path", path)
    rc, out = run_cli("collection", "update", "scifi", "--name", "A", "--path", path)
    assert rc == 0
    assert "No changes to apply" in out


def test_item_create_and_list(run_cli, tmp_path):
    path = str(tmp_path / "collections")
    run_cli("collection", "create", "scifi", "--path", path)
    rc, _ = run_cli("item", "create", "scifi", "mine", "--title", "Mine", "--data", '{"mediatype": "texts"}', "--path", path)
    assert rc == 0
    rc, out = run_cli("item", "list", "scifi", "--json", "--path", path)
    payload = json.loads(out)
    assert payload["total"] == 1
    assert payload["items"][0]["mediatype"] == "texts"


def test_item_update_and_delete(run_cli, tmp_path):
    path = str(tmp_path / "collections")
    run_cli("collection", "create", "scifi", "--path", path)
    run_cli("item", "create", "scifi", "mine", "--title", "Mine", "--path", path)
    rc, out = run_cli("item", "update", "scifi", "mine", "--creator", "Me", "--data", '{"mediatype": "texts"}', "--json", "--path", path)
    assert rc == 0
    item = json.loads(out)
    assert item["title"] == "Mine"
    assert item["creator"] == "Me"
    assert item["mediatype"] == "texts"
    rc, _ = run_cli("item", "update", "scifi", "mine", "--path", path)
    assert rc == 1

    rc, _ = run_cli("item", "delete", "scifi", "mine", "--path", path)
    assert rc == 0
    rc, out = run_cli("item", "get", "scifi", "mine", "--json", "--path", path)
    assert rc == 1
    rc, out = run_cli("collection", "deletions", "--json", "--path", path)
    assert rc == 0
    assert "mine" in out


def test_item_create_rejects_non_object_data(run_cli, tmp_path):
    path = str(tmp_path / "collections")
    run_cli("collection", "create", "scifi", "--path", path)
    rc, _ = run_cli("item", "create", "scifi", "mine", "--data", "[1]", "--path", path)
    assert rc == 1


def test_exclude_check(run_cli, tmp_path):
    path = str(tmp_path / "collections")
    run_cli("collection", "create", "scifi", "--path", path)
    run_cli("item", "create", "scifi", "mine", "--path", path)
    rc, out = run_cli("exclude", "check", "scifi", "--json", "--path", path)
    assert rc == 0
    assert json.loads(out)["invalidItems"] == 0


def test_content_init_and_info(run_cli, tmp_path):
    root = str(tmp_path / "Content")
    rc, _ = run_cli("content", "init", "--content-dir", root)
    assert rc == 0
    rc, out = run_cli("content", "info", "--content-dir", root, "--json")
    info = json.loads(out)
    assert info["totalCollections"] == 1
    assert info["collections"][0]["id"] == "sample"


def test_pipeline_run_reports_error_status(run_cli, tmp_path):
    rc, out = run_cli(
        "pipeline", "run",
        "--config-path", str(tmp_path / "Configs"),
        "--content-cache", str(tmp_path / "collections"),
        "--export-path", str(tmp_path / "Unity"),
        "--json",
    )
    assert rc == 1
    assert json.loads(out)["status"] == "error"


def test_pipeline_bootstrap_then_run(run_cli, tmp_path, monkeypatch):
    monkeypatch.setattr("requests.Session.get", lambda self, url, **kw: FakeResponse(404, content=b"", reason="Not Found"))
    common = (
        "--config-path", str(tmp_path / "Configs"),
        "--content-cache", str(tmp_path / "collections"),
        "--export-path", str(tmp_path / "Unity"),
    )
    rc, _ = run_cli("pipeline", "bootstrap", *common)
    assert rc == 0
    rc, out = run_cli("pipeline", "run", *common, "--json")
    assert rc == 0
    assert json.loads(out)["status"] == "success"


def test_missing_action_is_a_usage_error():
    with pytest.raises(SystemExit):
        cli.main(["collection"])
