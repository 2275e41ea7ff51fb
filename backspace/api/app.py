from __future__ import annotations

import logging
from typing import Any, Optional

from flask import Flask, jsonify, request

from .. import config
from ..app_services.collection_service import CollectionService
from ..app_services.item_service import ItemService
from ..errors import BackspaceError, DuplicateResourceError, NotFoundError, ValidationError
from ..infra.archive_client import ArchiveClient
from ..infra.http_client import HttpJsonError
from ..project_paths import collections_dir as default_collections_dir

logger = logging.getLogger(__name__)

SEARCH_FIELDS = (
    "identifier", "title", "creator", "description", "subject", "publisher",
    "date", "language", "isbn", "oclc", "lccn", "cover_image",
)
DEFAULT_SUBJECT = "Science fiction"

_STATUS = {NotFoundError: 404, ValidationError: 400, DuplicateResourceError: 409}


def _int_arg(name: str, default: int) -> int:
    try:
        return int(request.args.get(name, default))
    except (TypeError, ValueError):
        return default


def build_search_query(query: str = "", subject: str = "") -> str:
    q = config.ARCHIVE_SEARCH_BASE_QUERY
    if subject:
        q += f' AND subject:"{subject}"'
    if query:
        q += f' AND (title:"{query}" OR creator:"{query}")'
    return q


def create_app(collections_dir: Optional[str] = None, client: Optional[ArchiveClient] = None) -> Flask:
    """JSON API over the content cache, plus an archive.org search passthrough."""
    app = Flask(__name__)
    root = collections_dir or default_collections_dir()
    collections = CollectionService(root)
    items = ItemService(root)
    archive = client or ArchiveClient()

    @app.errorhandler(BackspaceError)
    def handle_backspace_error(e: BackspaceError) -> Any:
        status = next((code for cls, code in _STATUS.items() if isinstance(e, cls)), 500)
        if status == 500:
            logger.error(f"{request.method} {request.path} failed: {e}")
        return jsonify({"error": str(e)}), status

    @app.errorhandler(HttpJsonError)
    def handle_upstream_error(e: HttpJsonError) -> Any:
        logger.error(f"archive.org request failed: {e}")
        return jsonify({"error": "Upstream request failed", "detail": str(e)}), 502

    @app.get("/api/collections")
    def list_collections() -> Any:
        return jsonify(collections.list())

    @app.get("/api/collections/<collection_id>")
    def get_collection(collection_id: str) -> Any:
        return jsonify(collections.show(collection_id))

    @app.put("/api/collections/<collection_id>")
    def update_collection(collection_id: str) -> Any:
        updates = request.get_json(silent=True)
        if not isinstance(updates, dict):
            raise ValidationError("Request body must be a JSON object")
        doc = collections.update(collection_id, updates)
        return jsonify(doc if doc is not None else collections.show(collection_id))

    @app.delete("/api/collections/<collection_id>")
    def delete_collection(collection_id: str) -> Any:
        collections.delete(collection_id)
        return jsonify({"success": True, "message": f"Collection {collection_id} deleted"})

    @app.get("/api/collections/<collection_id>/items")
    def list_items(collection_id: str) -> Any:
        limit = _int_arg("limit", config.API_DEFAULT_PAGE_SIZE)
        skip = _int_arg("skip", 0)
        page, total = items.list(collection_id, limit=limit, skip=skip)
        return jsonify({"collectionId": collection_id, "items": page, "total": total, "limit": limit, "skip": skip})

    @app.post("/api/collections/<collection_id>/items")
    def create_item(collection_id: str) -> Any:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object")
        return jsonify(items.create(collection_id, data)), 201

    @app.get("/api/collections/<collection_id>/items/<item_id>")
    def get_item(collection_id: str, item_id: str) -> Any:
        return jsonify(items.get(collection_id, item_id))

    @app.put("/api/collections/<collection_id>/items/<item_id>")
    def update_item(collection_id: str, item_id: str) -> Any:
        updates = request.get_json(silent=True)
        if not isinstance(updates, dict):
            raise ValidationError("Request body must be a JSON object")
        return jsonify(items.update(collection_id, item_id, updates))

    @app.delete("/api/collections/<collection_id>/items/<item_id>")
    def delete_item(collection_id: str, item_id: str) -> Any:
        items.delete(collection_id, item_id)
        return jsonify({"success": True, "message": f"Item {item_id} deleted"})

    @app.get("/api/search")
    def search() -> Any:
        page = max(1, _int_arg("page", 1))
        limit = _int_arg("limit", config.API_DEFAULT_PAGE_SIZE)
        query = build_search_query(request.args.get("q", ""), request.args.get("subject", DEFAULT_SUBJECT))
        docs, total = archive.search(query, rows=limit, page=page, fields=SEARCH_FIELDS, sort=("title asc",))
        return jsonify({"results": docs, "total": total, "page": page, "limit": limit})

    return app
