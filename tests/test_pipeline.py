import os

from backspace.app_services.pipeline import ContentPipeline
from backspace.project_paths import unity_content_dir

from conftest import FakeSession, cover_route, metadata_route, read_json


def _pipeline(content_root, session, **kwargs):
    return ContentPipeline(
        config_path=content_root["configs"],
        content_cache=content_root["collections"],
        unity_dir=content_root["unity"],
        session=session,
        downloader_info={"name": "tester"},
        **kwargs,
    )


def _routes():
    routes = {}
    for item_id in ("book_one", "book_two", "bad_scan"):
        routes.update(metadata_route(item_id, title=item_id, mediatype="texts", collection=["scifi", "fav-z"]))
        routes.update(cover_route(item_id))
    return routes


def test_run_imports_and_exports(content_root):
    session = FakeSession(_routes())
    outcome = _pipeline(content_root, session).run()

    assert outcome["status"] == "success"
    receipt = outcome["receipt"]
    assert receipt["download_name"] == "tester"
    # hidden/secret is imported (and fails) even though export skips it
    assert receipt["item_processed_count"] == 4
    assert receipt["item_exported_count"] == 2
    assert receipt["cover_download_count"] == 3
    assert "perf_importPhase_totalTime" in receipt
    assert "perf_exportPhase_totalTime" in receipt

    index = read_json(os.path.join(unity_content_dir(content_root["unity"]), "index-deep.json"))
    assert index["collections"]["scifi"]["itemsIndex"] == ["book_one", "book_two"]
    assert index["collections"]["scifi"]["items"]["book_two"]["item"]["favoriteCount"] == 1


def test_run_with_refine(content_root):
    outcome = _pipeline(content_root, FakeSession(_routes())).run(refine=True)
    assert outcome["status"] == "success"
    assert "perf_refinePhase_totalTime" in outcome["receipt"]


def test_refine_is_offline_and_fixes_hand_edits(content_root):
    pipeline = _pipeline(content_root, FakeSession(_routes()))
    assert pipeline.import_()["status"] == "success"
    path = pipeline.items.item_path("scifi", "book_one")
    item = read_json(path)
    item["subject"] = "a; b"
    pipeline.items.write("scifi", "book_one", item)

    offline = FakeSession()
    refined = _pipeline(content_root, offline).refine()

    assert refined["status"] == "success"
    assert offline.calls == []
    assert read_json(path)["subject"] == ["a", "b"]
    assert refined["receipt"]["item_refined_count"] == 1


def test_refine_reports_unreadable_items_and_continues(content_root):
    pipeline = _pipeline(content_root, FakeSession(_routes()))
    assert pipeline.import_()["status"] == "success"
    item = read_json(pipeline.items.item_path("scifi", "book_one"))
    item["subject"] = "a; b"
    pipeline.items.write("scifi", "book_one", item)
    with open(pipeline.items.item_path("scifi", "book_two"), "w", encoding="utf-8") as fh:
        fh.write("{not json")

    refined = _pipeline(content_root, FakeSession()).refine()

    assert refined["status"] == "success"
    receipt = refined["receipt"]
    assert receipt["item_refined_count"] == 1
    assert receipt["error_count"] == 1
    assert receipt["error_list"][0]["itemId"] == "book_two"


def test_missing_exporter_config_reports_error(content_root):
    outcome = _pipeline(content_root, FakeSession()).run(exporter="Nowhere")
    assert outcome["status"] == "error"
    assert "Nowhere" in outcome["error"]
    assert outcome["receipt"]["error_count"] == 1


def test_bootstrap_creates_default_layout(tmp_path):
    pipeline = ContentPipeline(
        config_path=str(tmp_path / "Configs"),
        content_cache=str(tmp_path / "collections"),
        unity_dir=str(tmp_path / "Unity"),
        session=FakeSession(),
    )
    created = pipeline.bootstrap()
    assert len(created) == 3
    assert os.path.isdir(tmp_path / "collections")
    assert pipeline.import_()["status"] == "success"
