from __future__ import annotations

import logging

from ..domain.models import Whitelist
from ..domain.normalize import normalize_item_data
from ..errors import ValidationError
from .images import get_image_dimensions
from .receipt import PipelineReceipt
from .repositories import ItemRepository

logger = logging.getLogger(__name__)


class RefineService:
    """Re-normalize cached items in place, without touching the network."""

    def __init__(self, items: ItemRepository, receipt: PipelineReceipt) -> None:
        self.items = items
        self.receipt = receipt

    def refine_item(self, collection_id: str, item_id: str) -> bool:
        try:
            item = self.items.read_optional(collection_id, item_id)
        except (ValueError, ValidationError) as e:
            self.receipt.error(f"Cannot refine {item_id}", e, function="refine", collection_id=collection_id, item_id=item_id)
            return False
        if item is None:
            return False

        refined = dict(item) if item.get("custom_item") is True else normalize_item_data(item)
        cover_path, _is_custom = self.items.existing_cover(collection_id, item_id)
        dims = get_image_dimensions(cover_path) if cover_path else None
        refined["coverWidth"] = dims.width if dims else 0
        refined["coverHeight"] = dims.height if dims else 0

        if refined == item:
            return False
        self.items.write(collection_id, item_id, refined)
        return True

    def refine(self, whitelist: Whitelist) -> int:
        changed = 0
        for collection_id in whitelist.collections_index:
            for item_id in whitelist.items_for(collection_id):
                if self.refine_item(collection_id, item_id):
                    changed += 1
        self.receipt.increment("item_refined_count", changed)
        logger.info(f"Refined {changed} cached items")
        return changed
