from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

from ..domain.converters import string_array_or_string_or_null_to_string
from ..domain.models import ValidationResult
from ..errors import NotFoundError
from .receipt import utc_now_iso
from .repositories import CollectionRepository, ItemRepository

logger = logging.getLogger(__name__)

EXCLUDED_KEY = "excludedItemIds"


def item_problem(item: Optional[Dict[str, Any]]) -> Optional[str]:
    """Return why an item cannot be shown, or None when it is fine."""
    if item is None:
        return "missing item.json"
    if not string_array_or_string_or_null_to_string(item.get("title")).strip():
        return "missing title"
    return None


class ExclusionService:
    """Keeps `excludedItemIds` in collection.json in sync with broken items."""

    def __init__(self, collections_dir: str) -> None:
        self.collections = CollectionRepository(collections_dir)
        self.items = ItemRepository(collections_dir)

    def _read(self, collection_id: str) -> Dict[str, Any]:
        if not self.collections.exists(collection_id):
            raise NotFoundError(f"Collection not found: {collection_id}")
        return self.collections.read(collection_id)

    def excluded(self, collection_id: str) -> List[str]:
        return list(self._read(collection_id).get(EXCLUDED_KEY) or [])

    def validate_collection_items(self, collection_id: str) -> ValidationResult:
        doc = self._read(collection_id)
        excluded: List[str] = list(doc.get(EXCLUDED_KEY) or [])
        item_ids = self.collections.list_item_ids(collection_id)

        invalid: List[str] = []
        for item_id in item_ids:
            try:
                item = self.items.read_optional(collection_id, item_id)
            except json.JSONDecodeError as e:
                logger.warning(f"{collection_id}/{item_id}: unreadable item.json ({e})")
                invalid.append(item_id)
                continue
            problem = item_problem(item)
            if problem:
                logger.info(f"{collection_id}/{item_id}: {problem}")
                invalid.append(item_id)

        newly = [i for i in invalid if i not in excluded]
        if newly:
            excluded.extend(newly)
            doc[EXCLUDED_KEY] = excluded
            doc["lastUpdated"] = utc_now_iso()
            self.collections.write(collection_id, doc)

        return ValidationResult(
            collection_id=collection_id,
            total_items=len(item_ids),
            valid_items=len(item_ids) - len(invalid),
            invalid_items=len(invalid),
            newly_excluded=len(newly),
            excluded_items=tuple(excluded),
        )

    def include_item(self, collection_id: str, item_id: str) -> bool:
        """Remove an id from the exclusion list; False when it was not excluded."""
        doc = self._read(collection_id)
        excluded = list(doc.get(EXCLUDED_KEY) or [])
        if item_id not in excluded:
            return False
        doc[EXCLUDED_KEY] = [i for i in excluded if i != item_id]
        doc["lastUpdated"] = utc_now_iso()
        self.collections.write(collection_id, doc)
        return True

    def clear_excluded(self, collection_id: str) -> int:
        doc = self._read(collection_id)
        count = len(doc.get(EXCLUDED_KEY) or [])
        doc[EXCLUDED_KEY] = []
        doc["lastUpdated"] = utc_now_iso()
        self.collections.write(collection_id, doc)
        return count
