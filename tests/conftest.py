from __future__ import annotations

import io
import json
import os
from typing import Any, Callable, Dict, List, Optional, Union

import pytest
from PIL import Image

from backspace.app_services.receipt import PipelineReceipt
from backspace.infra.archive_address import ArchiveAddress
from backspace.infra.archive_client import ArchiveClient

BASE = "https://archive.test"


def jpeg_bytes(width: int = 40, height: int = 60, color: str = "navy") -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format="JPEG")
    return buf.getvalue()


def write_jpeg(path: str, width: int = 40, height: int = 60) -> str:
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "wb") as fh:
        fh.write(jpeg_bytes(width, height))
    return path


def write_json(path: str, payload: Any) -> str:
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(payload, fh)
    return path


def read_json(path: str) -> Any:
    with open(path, "r", encoding="utf-8") as fh:
        return json.load(fh)


class FakeResponse:
    def __init__(self, status_code: int = 200, json_data: Any = None, content: bytes = b"", reason: str = "OK") -> None:
        self.status_code = status_code
        self._json = json_data
        self.content = content
        self.reason = reason
        self.text = json.dumps(json_data) if json_data is not None else content.decode("latin-1")
        self.closed = False

    def json(self) -> Any:
        if self._json is None:
            raise ValueError("No JSON body")
        return self._json

    def iter_content(self, chunk_size: int = 1024):
        for i in range(0, len(self.content), chunk_size):
            yield self.content[i:i + chunk_size]

    def close(self) -> None:
        self.closed = True

    def __enter__(self) -> "FakeResponse":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()


Route = Union[FakeResponse, Callable[..., FakeResponse]]


class FakeSession:
    """Stands in for requests.Session; answers by exact URL and records every call."""

    def __init__(self, routes: Optional[Dict[str, Route]] = None) -> None:
        self.routes: Dict[str, Route] = dict(routes or {})
        self.calls: List[Dict[str, Any]] = []
        self.headers: Dict[str, str] = {}

    def get(self, url: str, params: Any = None, headers: Any = None, timeout: Any = None, stream: bool = False) -> FakeResponse:
        self.calls.append({"url": url, "params": params, "stream": stream})
        route = self.routes.get(url)
        if route is None:
            return FakeResponse(404, content=b"not found", reason="Not Found")
        return route(url, params) if callable(route) else route

    def urls(self) -> List[str]:
        return [c["url"] for c in self.calls]


def metadata_route(item_id: str, **metadata: Any) -> Dict[str, FakeResponse]:
    return {f"{BASE}/metadata/{item_id}": FakeResponse(json_data={"metadata": {"identifier": item_id, **metadata}})}


def cover_route(item_id: str, width: int = 40, height: int = 60) -> Dict[str, FakeResponse]:
    return {f"{BASE}/services/img/{item_id}": FakeResponse(content=jpeg_bytes(width, height))}


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def receipt() -> PipelineReceipt:
    return PipelineReceipt(run_id="test")


@pytest.fixture
def client(session: FakeSession, receipt: PipelineReceipt) -> ArchiveClient:
    return ArchiveClient(session=session, address=ArchiveAddress(BASE), timeout_s=1, receipt=receipt)


@pytest.fixture(autouse=True)
def archive_base_url(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("backspace.config.ARCHIVE_BASE_URL", BASE)


@pytest.fixture
def content_root(tmp_path) -> Dict[str, str]:
    """A content tree with an `ia` importer and a `Unity/SpaceCraft` exporter config."""
    configs = tmp_path / "Content" / "Configs"
    collections = tmp_path / "Content" / "collections"
    unity = tmp_path / "Unity" / "SpaceCraft"
    write_json(str(configs / "Importers" / "ia" / "importer-config.json"), {"name": "ia", "processCoverImage": True})
    exporter_dir = configs / "Exporters" / "Unity" / "SpaceCraft"
    write_json(str(exporter_dir / "exporter-config.json"), {
        "name": "SpaceCraft",
        "version": "2.0",
        "receiptFileName": "receipt.json",
        "collections": {
            "scifi": {"enabled": True, "exclude": ["bad_*"]},
            "hidden": {"enabled": False},
        },
    })
    write_json(str(exporter_dir / "index-deep.json"), {
        "collectionsIndex": ["scifi", "hidden", "ghost"],
        "collections": {
            "scifi": {"itemsIndex": ["book_one", "book_two", "bad_scan"]},
            "hidden": {"itemsIndex": ["secret"]},
        },
    })
    return {
        "configs": str(configs),
        "collections": str(collections),
        "unity": str(unity),
        "exporter_dir": str(exporter_dir),
    }
