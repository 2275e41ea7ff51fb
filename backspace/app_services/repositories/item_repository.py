from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, List, Optional, Tuple

from ...errors import NotFoundError
from .json_files import read_json, write_json
from .safe_paths import check_id, join_under

logger = logging.getLogger(__name__)

ITEM_FILE = "item.json"
CUSTOM_ITEM_FILE = "item-custom.json"
COVER_FILE = "cover.jpg"
CUSTOM_COVER_FILE = "cover-custom.jpg"


class ItemRepository:
    """Cached items under `<collections>/<collectionId>/items/<itemId>/`."""

    def __init__(self, collections_dir: str) -> None:
        self.root = os.path.abspath(collections_dir)

    def item_dir(self, collection_id: str, item_id: str) -> str:
        return join_under(self.root, check_id(collection_id, "collection id"), "items", check_id(item_id, "item id"))

    def item_path(self, collection_id: str, item_id: str) -> str:
        return os.path.join(self.item_dir(collection_id, item_id), ITEM_FILE)

    def custom_item_path(self, collection_id: str, item_id: str) -> str:
        return os.path.join(self.item_dir(collection_id, item_id), CUSTOM_ITEM_FILE)

    def cover_path(self, collection_id: str, item_id: str) -> str:
        return os.path.join(self.item_dir(collection_id, item_id), COVER_FILE)

    def custom_cover_path(self, collection_id: str, item_id: str) -> str:
        return os.path.join(self.item_dir(collection_id, item_id), CUSTOM_COVER_FILE)

    def exists(self, collection_id: str, item_id: str) -> bool:
        return os.path.isfile(self.item_path(collection_id, item_id))

    def read(self, collection_id: str, item_id: str) -> Dict[str, Any]:
        path = self.item_path(collection_id, item_id)
        if not os.path.isfile(path):
            raise NotFoundError(f"Item not found: {collection_id}/{item_id}")
        data = read_json(path)
        return data if isinstance(data, dict) else {}

    def read_optional(self, collection_id: str, item_id: str) -> Optional[Dict[str, Any]]:
        try:
            return self.read(collection_id, item_id)
        except NotFoundError:
            return None

    def read_custom(self, collection_id: str, item_id: str) -> Optional[Dict[str, Any]]:
        path = self.custom_item_path(collection_id, item_id)
        if not os.path.isfile(path):
            return None
        try:
            data = read_json(path)
        except json.JSONDecodeError as e:
            logger.warning(f"Ignoring unreadable customization {path}: {e}")
            return None
        return data if isinstance(data, dict) else None

    def write(self, collection_id: str, item_id: str, doc: Dict[str, Any]) -> str:
        return write_json(self.item_path(collection_id, item_id), doc)

    def existing_cover(self, collection_id: str, item_id: str) -> Tuple[Optional[str], bool]:
        """Return (path, is_custom) of the cover to use; the custom cover wins."""
        custom = self.custom_cover_path(collection_id, item_id)
        if os.path.isfile(custom):
            return custom, True
        cover = self.cover_path(collection_id, item_id)
        if os.path.isfile(cover):
            return cover, False
        return None, False

    def list_custom_overlays(self, collection_id: str) -> List[str]:
        items_dir = join_under(self.root, check_id(collection_id, "collection id"), "items")
        if not os.path.isdir(items_dir):
            return []
        return sorted(
            name for name in os.listdir(items_dir)
            if not name.startswith(".") and os.path.isfile(os.path.join(items_dir, name, CUSTOM_ITEM_FILE))
        )
