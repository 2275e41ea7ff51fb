from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from ..domain.models import Whitelist
from ..domain.normalize import deep_merge, normalize_item_data
from ..errors import ValidationError
from ..infra.archive_client import ArchiveClient
from ..infra.http_client import HttpJsonError
from .images import get_image_dimensions
from .receipt import PipelineReceipt, utc_now_iso
from .repositories import CollectionRepository, ItemRepository
from .repositories.safe_paths import check_id

logger = logging.getLogger(__name__)


def default_collection_doc(collection_id: str) -> Dict[str, Any]:
    return {
        "id": collection_id,
        "title": collection_id.replace("-", " "),
        "description": "",
        "updated": utc_now_iso(),
    }


class ImportService:
    """Fetch whitelisted items from archive.org into the local content cache."""

    def __init__(
        self,
        items: ItemRepository,
        collections: CollectionRepository,
        client: ArchiveClient,
        receipt: PipelineReceipt,
        *,
        force: bool = False,
    ) -> None:
        self.items = items
        self.collections = collections
        self.client = client
        self.receipt = receipt
        self.force = bool(force)

    def fetch_item(self, collection_id: str, item_id: str, *, process_cover_image: bool = True) -> Optional[Dict[str, Any]]:
        """
        Refresh one cached item and return it, or None when archive.org had nothing usable.

        Items whose cached item.json is marked `custom_item` are never fetched; they are
        hand-made and only get their cover measured.
        """
        ctx = {"collection_id": collection_id, "item_id": item_id}
        cached = self.items.read_optional(collection_id, item_id)

        if cached is not None and cached.get("custom_item") is True:
            logger.debug(f"Using custom item {collection_id}/{item_id}")
            item = cached
        else:
            try:
                metadata = self.client.fetch_metadata(item_id)
            except HttpJsonError as e:
                self.receipt.error(f"Error fetching item {item_id}", e, function="fetch_item", **ctx)
                return None
            item = normalize_item_data({"id": item_id, **metadata})

            overlay = self.items.read_custom(collection_id, item_id)
            if overlay:
                deep_merge(item, overlay)
                logger.debug(f"Applied item-custom.json to {item_id}")

        if not item.get("coverImage"):
            item["coverImage"] = self.client.cover_url(item_id)

        if process_cover_image:
            self._process_cover(collection_id, item_id, item)

        self.items.write(collection_id, item_id, item)
        self.receipt.increment("item_updated_count")
        return item

    def _process_cover(self, collection_id: str, item_id: str, item: Dict[str, Any]) -> None:
        ctx = {"collection_id": collection_id, "item_id": item_id}
        cover_path, is_custom = self.items.existing_cover(collection_id, item_id)
        if is_custom:
            self.receipt.increment("cover_custom_used")
        elif cover_path is None:
            dest = self.items.cover_path(collection_id, item_id)
            try:
                self.client.download_cover(str(item["coverImage"]), dest)
                cover_path = dest
            except (HttpJsonError, OSError) as e:
                self.receipt.warn(f"Could not download cover for {item_id}: {e}", function="fetch_item", **ctx)

        dims = get_image_dimensions(cover_path) if cover_path else None
        if dims is None:
            item["coverWidth"] = 0
            item["coverHeight"] = 0
            if cover_path:
                self.receipt.warn(f"Could not read cover dimensions for {item_id}", function="fetch_item", **ctx)
            return
        item["coverWidth"] = dims.width
        item["coverHeight"] = dims.height
        self.receipt.increment("cover_processed_count")

    def import_collection(self, whitelist: Whitelist, collection_id: str, *, process_cover_image: bool = True) -> None:
        ctx = {"collection_id": collection_id}
        self.receipt.info(f"Processing collection: {collection_id}", function="import", **ctx)

        collection_doc = whitelist.collection_for(collection_id)
        if not self.collections.exists(collection_id) or self.force or collection_doc:
            self.collections.write(collection_id, collection_doc or default_collection_doc(collection_id))

        item_ids = []
        for item_id in whitelist.items_for(collection_id):
            try:
                item_ids.append(check_id(item_id, "item id"))
            except ValidationError as e:
                self.receipt.error(f"Skipping item {item_id!r}", e, function="import", item_id=item_id, **ctx)

        for item_id in item_ids:
            try:
                item = self.fetch_item(collection_id, item_id, process_cover_image=process_cover_image)
            except (OSError, ValueError) as e:
                self.receipt.error(f"Error processing item {item_id}", e, function="import", item_id=item_id, **ctx)
                continue
            self.receipt.increment("item_processed_count")
            if item is None:
                self.receipt.increment("item_skipped_count")

        # items that failed to refresh still count when an older cache entry exists
        cached = [i for i in item_ids if self.items.exists(collection_id, i)]
        self.collections.write_items_index(collection_id, cached)
        self.receipt.increment("collection_processed_count")

    def import_whitelist(self, whitelist: Whitelist, *, process_cover_image: bool = True) -> None:
        for collection_id in whitelist.collections_index:
            if not whitelist.has(collection_id):
                self.receipt.warn(f"Collection {collection_id} not found in whitelist, skipping", function="import", collection_id=collection_id)
                continue
            self.import_collection(whitelist, collection_id, process_cover_image=process_cover_image)
