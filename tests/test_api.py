import pytest

from backspace.api import create_app
from backspace.api.app import build_search_query
from backspace.app_services.collection_service import CollectionService

from conftest import BASE, FakeResponse


@pytest.fixture
def api(tmp_path, client):
    root = str(tmp_path / "collections")
    service = CollectionService(root)
    service.create("scifi", name="Sci-Fi")
    service.items.write("scifi", "a", {"id": "a", "title": "A"})
    service.items.write("scifi", "b", {"id": "b", "title": "B"})
    app = create_app(root, client=client)
    app.config["TESTING"] = True
    return app.test_client()


def test_list_and_get_collection(api):
    res = api.get("/api/collections")
    assert res.status_code == 200
    assert res.get_json()[0]["id"] == "scifi"
    assert api.get("/api/collections/scifi").get_json()["name"] == "Sci-Fi"
    missing = api.get("/api/collections/nope")
    assert missing.status_code == 404
    assert "nope" in missing.get_json()["error"]


def test_put_merges_fields(api):
    res = api.put("/api/collections/scifi", json={"description": "Rockets", "id": "ignored"})
    assert res.status_code == 200
    body = res.get_json()
    assert body["description"] == "Rockets"
    assert body["id"] == "scifi"
    assert api.put("/api/collections/scifi", data="nope").status_code == 400


def test_delete_collection(api):
    assert api.delete("/api/collections/scifi").get_json()["success"] is True
    assert api.get("/api/collections/scifi").status_code == 404


def test_put_accepts_any_field_name(api):
    res = api.put("/api/collections/scifi", json={"collection_id": "x"})
    assert res.status_code == 200
    assert res.get_json()["collection_id"] == "x"
    assert res.get_json()["id"] == "scifi"


def test_delete_rejects_ids_outside_the_cache(api, tmp_path):
    (tmp_path / "outside.txt").write_text("x")
    assert api.delete("/api/collections/.hidden").status_code == 400
    for url in ("/api/collections/..", "/api/collections/%2E%2E"):
        assert api.delete(url).status_code in (400, 404, 405)
    assert (tmp_path / "outside.txt").exists()
    assert api.get("/api/collections/scifi").status_code == 200


def test_items_paging(api):
    body = api.get("/api/collections/scifi/items?limit=1&skip=1").get_json()
    assert body["total"] == 2
    assert [i["id"] for i in body["items"]] == ["b"]
    assert body["limit"] == 1 and body["skip"] == 1


def test_create_item_statuses(api):
    assert api.post("/api/collections/scifi/items", json={"title": "x"}).status_code == 400
    assert api.post("/api/collections/nope/items", json={"id": "x"}).status_code == 404
    created = api.post("/api/collections/scifi/items", json={"id": "c", "title": "C"})
    assert created.status_code == 201
    assert created.get_json()["collectionId"] == "scifi"
    assert api.post("/api/collections/scifi/items", json={"id": "c"}).status_code == 409
    assert api.get("/api/collections/scifi/items/c").get_json()["title"] == "C"
    assert api.get("/api/collections/scifi/items/zzz").status_code == 404


def test_create_item_rejects_escaping_ids(api, tmp_path):
    res = api.post("/api/collections/scifi/items", json={"id": "../../../escaped", "title": "x"})
    assert res.status_code == 400
    assert not list(tmp_path.rglob("escaped"))


def test_update_and_delete_item(api):
    res = api.put("/api/collections/scifi/items/a", json={"title": "Better", "id": "zzz"})
    assert res.status_code == 200
    body = res.get_json()
    assert body["title"] == "Better"
    assert body["id"] == "a"
    assert body["collectionId"] == "scifi"
    assert api.put("/api/collections/scifi/items/a", data="nope").status_code == 400
    assert api.put("/api/collections/scifi/items/zzz", json={"title": "x"}).status_code == 404

    res = api.delete("/api/collections/scifi/items/a")
    assert res.status_code == 200
    assert res.get_json()["success"] is True
    assert api.get("/api/collections/scifi/items/a").status_code == 404
    assert api.delete("/api/collections/scifi/items/a").status_code == 404
    assert [i["id"] for i in api.get("/api/collections/scifi/items").get_json()["items"]] == ["b"]


def test_search(api, session):
    seen = {}

    def answer(url, params):
        seen.update(params)
        return FakeResponse(json_data={"response": {"numFound": 1, "docs": [{"identifier": "dune"}]}})

    session.routes[f"{BASE}/advancedsearch.php"] = answer
    body = api.get("/api/search?q=Dune&subject=Deserts&limit=5").get_json()
    assert body == {"results": [{"identifier": "dune"}], "total": 1, "page": 1, "limit": 5}
    assert 'subject:"Deserts"' in seen["q"]
    assert seen["rows"] == 5


def test_build_search_query():
    assert build_search_query() == "collection:openlibrary AND mediatype:texts"
    q = build_search_query("Dune", "")
    assert q.endswith('AND (title:"Dune" OR creator:"Dune")')
