from __future__ import annotations

import json
import logging
import os
import shutil
from typing import Any, Dict, List, Optional, Tuple

from ...errors import NotFoundError
from ..receipt import utc_now_iso
from .json_files import read_json, safe_mkdir, write_json
from .safe_paths import check_id, join_under

logger = logging.getLogger(__name__)


class CollectionRepository:
    """On-disk collections: `<root>/<collectionId>/collection.json`, `items-index.json`, `items/`."""

    def __init__(self, collections_dir: str) -> None:
        self.root = os.path.abspath(collections_dir)

    # Paths

    def collection_dir(self, collection_id: str) -> str:
        return join_under(self.root, check_id(collection_id, "collection id"))

    def collection_path(self, collection_id: str) -> str:
        return os.path.join(self.collection_dir(collection_id), "collection.json")

    def items_dir(self, collection_id: str) -> str:
        return os.path.join(self.collection_dir(collection_id), "items")

    def items_index_path(self, collection_id: str) -> str:
        return os.path.join(self.collection_dir(collection_id), "items-index.json")

    def deletions_log_path(self) -> str:
        return os.path.join(self.root, ".logs", "deletions.json")

    # Collections

    def exists(self, collection_id: str) -> bool:
        return os.path.isfile(self.collection_path(collection_id))

    def list_ids(self) -> List[str]:
        if not os.path.isdir(self.root):
            return []
        ids = []
        for name in os.listdir(self.root):
            if name.startswith("."):
                continue
            if os.path.isfile(self.collection_path(name)):
                ids.append(name)
        return sorted(ids)

    def read(self, collection_id: str) -> Dict[str, Any]:
        path = self.collection_path(collection_id)
        if not os.path.isfile(path):
            raise NotFoundError(f"Collection not found: {collection_id}")
        data = read_json(path)
        return data if isinstance(data, dict) else {}

    def write(self, collection_id: str, doc: Dict[str, Any]) -> str:
        safe_mkdir(self.items_dir(collection_id))
        return write_json(self.collection_path(collection_id), doc)

    def delete(self, collection_id: str) -> None:
        path = self.collection_dir(collection_id)
        if not os.path.isdir(path):
            raise NotFoundError(f"Collection not found: {collection_id}")
        self.log_deletion({"type": "collection", "id": collection_id})
        shutil.rmtree(path)
        logger.info(f"Deleted collection {collection_id}")

    # Items index

    def read_items_index(self, collection_id: str) -> Optional[List[str]]:
        path = self.items_index_path(collection_id)
        if not os.path.isfile(path):
            return None
        try:
            data = read_json(path)
        except json.JSONDecodeError as e:
            logger.warning(f"Ignoring unreadable {path}: {e}")
            return None
        return [str(i) for i in data] if isinstance(data, list) else None

    def write_items_index(self, collection_id: str, item_ids: List[str]) -> str:
        return write_json(self.items_index_path(collection_id), list(item_ids))

    def list_item_ids(self, collection_id: str) -> List[str]:
        items_dir = self.items_dir(collection_id)
        if not os.path.isdir(items_dir):
            return []
        return sorted(
            name for name in os.listdir(items_dir)
            if not name.startswith(".") and os.path.isdir(os.path.join(items_dir, name))
        )

    def write_collections_index(self, collection_ids: List[str]) -> str:
        return write_json(os.path.join(self.root, "collections-index.json"), list(collection_ids))

    # Deletion log

    def log_deletion(self, entry: Dict[str, Any]) -> None:
        log = self.read_deletions()
        log.append({"deleted_at": utc_now_iso(), **entry})
        write_json(self.deletions_log_path(), log)

    def read_deletions(self) -> List[Dict[str, Any]]:
        path = self.deletions_log_path()
        if not os.path.isfile(path):
            return []
        try:
            data = read_json(path)
        except json.JSONDecodeError as e:
            logger.warning(f"Deletion log {path} is unreadable, starting a new one: {e}")
            return []
        return [d for d in data if isinstance(d, dict)] if isinstance(data, list) else []

    # Stats

    def dir_stats(self, collection_id: str) -> Tuple[int, int, float]:
        """Return (size_bytes, file_count, newest_mtime) for a collection directory."""
        size = 0
        files = 0
        newest = 0.0
        for root, _dirs, names in os.walk(self.collection_dir(collection_id)):
            for name in names:
                p = os.path.join(root, name)
                try:
                    st = os.stat(p)
                except OSError:
                    continue
                size += int(st.st_size)
                files += 1
                newest = max(newest, float(st.st_mtime))
        return size, files, newest
