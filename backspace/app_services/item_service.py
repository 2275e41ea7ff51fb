from __future__ import annotations

import logging
import os
import shutil
from typing import Any, Dict, List, Tuple

from ..errors import DuplicateResourceError, NotFoundError, ValidationError
from .receipt import utc_now_iso
from .repositories import CollectionRepository, ItemRepository

logger = logging.getLogger(__name__)


class ItemService:
    def __init__(self, collections_dir: str) -> None:
        self.collections = CollectionRepository(collections_dir)
        self.items = ItemRepository(collections_dir)

    def _require_collection(self, collection_id: str) -> None:
        if not self.collections.exists(collection_id):
            raise NotFoundError(f"Collection not found: {collection_id}")

    def item_ids(self, collection_id: str) -> List[str]:
        index = self.collections.read_items_index(collection_id)
        return index if index is not None else self.collections.list_item_ids(collection_id)

    def list(self, collection_id: str, limit: int = 50, skip: int = 0) -> Tuple[List[Dict[str, Any]], int]:
        """Return one page of items plus the total count; ids without item.json are skipped."""
        self._require_collection(collection_id)
        ids = self.item_ids(collection_id)
        skip = max(0, int(skip))
        page = ids[skip: skip + max(0, int(limit))]
        items: List[Dict[str, Any]] = []
        for item_id in page:
            item = self.items.read_optional(collection_id, item_id)
            if item is None:
                logger.debug(f"Indexed item {collection_id}/{item_id} has no item.json")
                continue
            items.append(item)
        return items, len(ids)

    def get(self, collection_id: str, item_id: str) -> Dict[str, Any]:
        self._require_collection(collection_id)
        return self.items.read(collection_id, item_id)

    def create(self, collection_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        item_id = str((data or {}).get("id") or "").strip()
        if not item_id:
            raise ValidationError("Item ID is required")
        self._require_collection(collection_id)
        if self.items.exists(collection_id, item_id):
            raise DuplicateResourceError(f"Item {item_id} already exists in collection {collection_id}")

        now = utc_now_iso()
        item = {**data, "id": item_id, "collectionId": collection_id, "created": now, "lastUpdated": now}
        # hand-made items must survive the next import untouched
        item.setdefault("custom_item", True)
        self.items.write(collection_id, item_id, item)

        index = self.collections.read_items_index(collection_id)
        if index is not None and item_id not in index:
            index.append(item_id)
            self.collections.write_items_index(collection_id, index)
        logger.info(f"Created item {collection_id}/{item_id}")
        return item

    def update(self, collection_id: str, item_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Merge `fields` into item.json; the id and collectionId stay fixed."""
        item = self.get(collection_id, item_id)
        item.update(fields or {})
        item["id"] = item_id
        item["collectionId"] = collection_id
        item["lastUpdated"] = utc_now_iso()
        self.items.write(collection_id, item_id, item)
        logger.info(f"Updated item {collection_id}/{item_id}")
        return item

    def delete(self, collection_id: str, item_id: str) -> None:
        self._require_collection(collection_id)
        path = self.items.item_dir(collection_id, item_id)
        if not os.path.isdir(path):
            raise NotFoundError(f"Item not found: {collection_id}/{item_id}")
        self.collections.log_deletion({"type": "item", "id": item_id, "collectionId": collection_id})
        shutil.rmtree(path)

        index = self.collections.read_items_index(collection_id)
        if index is not None and item_id in index:
            self.collections.write_items_index(collection_id, [i for i in index if i != item_id])
        logger.info(f"Deleted item {collection_id}/{item_id}")

    def customizations(self, collection_id: str) -> Dict[str, Dict[str, Any]]:
        """Map of item id -> item-custom.json overlay for a collection."""
        self._require_collection(collection_id)
        out: Dict[str, Dict[str, Any]] = {}
        for item_id in self.items.list_custom_overlays(collection_id):
            overlay = self.items.read_custom(collection_id, item_id)
            if overlay is not None:
                out[item_id] = overlay
        return out
