import os

import pytest

from backspace.infra.archive_address import ArchiveAddress
from backspace.infra.http_client import HttpJsonError

from conftest import BASE, FakeResponse, cover_route, jpeg_bytes, metadata_route


def test_address_urls():
    addr = ArchiveAddress("archive.org/")
    assert addr.base_url() == "https://archive.org"
    assert addr.metadata_url("a b") == "https://archive.org/metadata/a%20b"
    assert addr.cover_url("x") == "https://archive.org/services/img/x"
    assert addr.search_url() == "https://archive.org/advancedsearch.php"


def test_fetch_metadata_returns_metadata_and_counts(client, session, receipt):
    session.routes.update(metadata_route("dune", title="Dune"))
    meta = client.fetch_metadata("dune")
    assert meta["title"] == "Dune"
    assert receipt.get("api_calls_total") == 1
    assert receipt.get("api_errors_count") == 0


def test_fetch_metadata_without_metadata_key_fails(client, session, receipt):
    session.routes[f"{BASE}/metadata/missing"] = FakeResponse(json_data={})
    with pytest.raises(HttpJsonError):
        client.fetch_metadata("missing")
    assert receipt.get("api_errors_count") == 1


def test_fetch_metadata_http_error(client, receipt):
    with pytest.raises(HttpJsonError) as exc:
        client.fetch_metadata("nowhere")
    assert exc.value.status_code == 404
    assert receipt.get("api_errors_count") == 1


def test_download_cover_by_id_writes_file(client, session, receipt, tmp_path):
    session.routes.update(cover_route("dune"))
    dest = str(tmp_path / "a" / "cover.jpg")
    size = client.download_cover("dune", dest)
    assert os.path.getsize(dest) == size > 0
    assert receipt.get("cover_download_count") == 1
    assert receipt.get("cover_download_totalBytes") == size
    assert session.calls[0]["stream"] is True


def test_download_cover_failure_leaves_no_file(client, tmp_path, receipt):
    dest = str(tmp_path / "cover.jpg")
    with pytest.raises(HttpJsonError):
        client.download_cover(f"{BASE}/services/img/none", dest)
    assert not os.path.exists(dest)
    assert receipt.get("cover_download_errors") == 1


def test_download_closes_the_response(client, session, tmp_path):
    failed = FakeResponse(503, content=b"busy", reason="Service Unavailable")
    ok = FakeResponse(content=jpeg_bytes())
    session.routes[f"{BASE}/services/img/busy"] = failed
    session.routes[f"{BASE}/services/img/fine"] = ok
    with pytest.raises(HttpJsonError):
        client.download_cover("busy", str(tmp_path / "busy.jpg"))
    client.download_cover("fine", str(tmp_path / "fine.jpg"))
    assert failed.closed
    assert ok.closed


def test_search_passes_query_and_parses_docs(client, session):
    def answer(url, params):
        assert params["q"] == "collection:scifi"
        assert params["rows"] == 5
        assert params["output"] == "json"
        return FakeResponse(json_data={"response": {"numFound": 12, "docs": [{"identifier": "a"}, {"identifier": "b"}]}})

    session.routes[f"{BASE}/advancedsearch.php"] = answer
    docs, total = client.search("collection:scifi", rows=5)
    assert [d["identifier"] for d in docs] == ["a", "b"]
    assert total == 12
