from __future__ import annotations

import logging
import os
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..errors import DuplicateResourceError, NotFoundError, ValidationError
from .receipt import utc_now_iso
from .repositories import CollectionRepository, ItemRepository
from .repositories.json_files import safe_mkdir
from .repositories.safe_paths import check_id

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("name", "query", "description")


def format_bytes(size: float) -> str:
    size = float(size or 0)
    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024 or unit == "GB":
            return f"{int(size)} {unit}" if unit == "B" else f"{size:.2f} {unit}"
        size /= 1024
    return f"{size:.2f} GB"


class CollectionService:
    """Create, inspect and maintain collections in the content cache."""

    def __init__(self, collections_dir: str) -> None:
        self.collections = CollectionRepository(collections_dir)
        self.items = ItemRepository(collections_dir)

    def _require(self, collection_id: str) -> Dict[str, Any]:
        if not self.collections.exists(collection_id):
            raise NotFoundError(f"Collection not found: {collection_id}")
        return self.collections.read(collection_id)

    def item_ids(self, collection_id: str) -> List[str]:
        index = self.collections.read_items_index(collection_id)
        return index if index is not None else self.collections.list_item_ids(collection_id)

    def list(self) -> List[Dict[str, Any]]:
        out: List[Dict[str, Any]] = []
        for collection_id in self.collections.list_ids():
            try:
                doc = self.collections.read(collection_id)
            except ValueError as e:
                out.append({"id": collection_id, "error": f"Unreadable collection.json: {e}"})
                continue
            out.append({**doc, "id": collection_id, "itemCount": len(self.item_ids(collection_id))})
        return out

    def show(self, collection_id: str) -> Dict[str, Any]:
        doc = self._require(collection_id)
        return {**doc, "id": collection_id, "itemCount": len(self.item_ids(collection_id))}

    def create(
        self,
        collection_id: str,
        name: str = "",
        query: str = "",
        description: str = "",
        *,
        force: bool = False,
    ) -> Dict[str, Any]:
        collection_id = check_id(str(collection_id or "").strip(), "collection id")
        if self.collections.exists(collection_id) and not force:
            raise DuplicateResourceError(f"Collection {collection_id} already exists (use --force to overwrite)")

        now = utc_now_iso()
        doc = {
            "id": collection_id,
            "name": name or collection_id,
            "query": query,
            "description": description,
            "created": now,
            "lastUpdated": now,
            "totalItems": 0,
        }
        self.collections.write(collection_id, doc)
        logger.info(f"Created collection {collection_id}")
        return doc

    def update(self, collection_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Merge the given fields; returns None when nothing would change. The id is fixed."""
        doc = self._require(collection_id)
        changes = {k: v for k, v in (fields or {}).items() if k != "id" and v is not None and doc.get(k) != v}
        if not changes:
            logger.info("No changes to apply")
            return None
        doc.update(changes)
        doc["lastUpdated"] = utc_now_iso()
        self.collections.write(collection_id, doc)
        return doc

    def delete(self, collection_id: str) -> None:
        self.collections.delete(collection_id)

    def deletions(self, limit: int = 20) -> List[Dict[str, Any]]:
        entries = list(reversed(self.collections.read_deletions()))
        return entries[: max(0, int(limit))] if limit else entries

    def stats(self) -> Dict[str, Any]:
        by_media: Counter = Counter()
        total_items = 0
        ids = self.collections.list_ids()
        for collection_id in ids:
            for item_id in self.item_ids(collection_id):
                total_items += 1
                item = self.items.read_optional(collection_id, item_id) or {}
                by_media[str(item.get("mediatype") or "unknown")] += 1
        return {
            "totalCollections": len(ids),
            "totalItems": total_items,
            "averageItemsPerCollection": round(total_items / len(ids), 2) if ids else 0,
            "itemsByMediaType": dict(sorted(by_media.items())),
        }

    def recreate_items_index(self, collection_id: str) -> List[str]:
        doc = self._require(collection_id)
        ids = self.collections.list_item_ids(collection_id)
        self.collections.write_items_index(collection_id, ids)
        if doc.get("totalItems") != len(ids):
            doc["totalItems"] = len(ids)
            self.collections.write(collection_id, doc)
        logger.info(f"Rebuilt items-index.json for {collection_id} ({len(ids)} items)")
        return ids

    def recreate_all_indexes(self) -> Dict[str, int]:
        counts = {cid: len(self.recreate_items_index(cid)) for cid in self.collections.list_ids()}
        self.collections.write_collections_index(list(counts.keys()))
        return counts

    def process(self, collection_id: str, importer: Any, *, limit: Optional[int] = None) -> List[str]:
        """
        Populate a collection from its archive.org search `query`.

        `importer` is an ImportService; each search hit is fetched into the cache.
        """
        doc = self._require(collection_id)
        query = str(doc.get("query") or "").strip()
        if not query:
            raise ValidationError(f"Collection {collection_id} has no query to process")

        docs, found = importer.client.search(query, rows=limit)
        logger.info(f"Query for {collection_id} matched {found} items, processing {len(docs)}")

        fetched: List[str] = []
        for hit in docs:
            item_id = str(hit.get("identifier") or "").strip()
            if not item_id:
                continue
            if importer.fetch_item(collection_id, item_id) is not None:
                fetched.append(item_id)

        index = self.item_ids(collection_id)
        index.extend(i for i in fetched if i not in index)
        self.collections.write_items_index(collection_id, index)
        doc["totalItems"] = len(index)
        doc["lastUpdated"] = utc_now_iso()
        self.collections.write(collection_id, doc)
        return fetched

    def content_info(self) -> Dict[str, Any]:
        collections: List[Dict[str, Any]] = []
        total_items = 0
        total_size = 0
        for collection_id in self.collections.list_ids():
            size, _files, newest = self.collections.dir_stats(collection_id)
            count = len(self.item_ids(collection_id))
            total_items += count
            total_size += size
            collections.append({
                "id": collection_id,
                "itemCount": count,
                "size": size,
                "sizeFormatted": format_bytes(size),
                "lastUpdated": datetime.fromtimestamp(newest, tz=timezone.utc).isoformat() if newest else None,
            })
        return {
            "collectionsDir": self.collections.root,
            "totalCollections": len(collections),
            "totalItems": total_items,
            "totalSize": total_size,
            "totalSizeFormatted": format_bytes(total_size),
            "collections": collections,
        }

    def init_content(self) -> List[str]:
        """Create the cache folder layout (and a sample collection when there are none)."""
        created = []
        for path in (self.collections.root, os.path.join(self.collections.root, ".logs")):
            if not os.path.isdir(path):
                safe_mkdir(path)
                created.append(path)
        if not self.collections.list_ids():
            self.create("sample", name="Sample Collection", query="collection:sample", description="Example collection")
            created.append(self.collections.collection_dir("sample"))
        logger.info(f"Content cache ready at {self.collections.root}")
        return created
