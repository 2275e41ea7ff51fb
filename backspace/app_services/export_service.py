from __future__ import annotations

import logging
import os
import shutil
from typing import Any, Dict, List

from ..domain.models import ExporterConfig, Whitelist
from ..domain.normalize import export_item_view
from ..errors import BackspaceError
from ..project_paths import streaming_assets_dir, unity_content_dir
from .receipt import PipelineReceipt, utc_now_iso
from .repositories import CollectionRepository, ItemRepository
from .repositories.item_repository import COVER_FILE, ITEM_FILE
from .repositories.json_files import safe_mkdir, write_json

logger = logging.getLogger(__name__)

INDEX_VERSION = "1.0"
EXPORTED_INDEX_COPY = "index-deep-exported.json"


class ExportService:
    """
    Copy cached content into the Unity project's StreamingAssets/Content tree.

    Only whitelisted collections enabled in the exporter config are exported, and only
    the items its include/exclude patterns allow. Everything the Unity app needs to
    browse the content without touching the network ends up in `index-deep.json`.
    """

    def __init__(
        self,
        items: ItemRepository,
        collections: CollectionRepository,
        receipt: PipelineReceipt,
        unity_dir: str,
        *,
        clean: bool = False,
    ) -> None:
        self.items = items
        self.collections = collections
        self.receipt = receipt
        self.unity_dir = os.path.abspath(unity_dir)
        self.clean = bool(clean)

    def export_dir(self) -> str:
        return unity_content_dir(self.unity_dir)

    def _prepare_export_dir(self) -> str:
        out = self.export_dir()
        if self.clean and os.path.isdir(out):
            logger.info(f"Cleaning export directory {out}")
            shutil.rmtree(out)
        safe_mkdir(out)
        return out

    def export(self, whitelist: Whitelist, exporter: ExporterConfig) -> Dict[str, Any]:
        out = self._prepare_export_dir()
        write_json(os.path.join(out, "collections-index.json"), list(whitelist.collections_index))

        index: Dict[str, Any] = {
            "version": INDEX_VERSION,
            "exportedAt": utc_now_iso(),
            "collections": {},
            "collectionsIndex": list(whitelist.collections_index),
        }

        for collection_id in whitelist.collections_index:
            entry = self.export_collection(whitelist, exporter, collection_id, out)
            if entry is not None:
                index["collections"][collection_id] = entry

        index_path = write_json(os.path.join(out, "index-deep.json"), index)
        write_json(os.path.join(streaming_assets_dir(self.unity_dir), "index-deep.json"), index)
        if exporter.config_dir and os.path.isdir(exporter.config_dir):
            write_json(os.path.join(exporter.config_dir, EXPORTED_INDEX_COPY), index)
        logger.info(f"Wrote {index_path}")

        if exporter.receipt_file_name:
            self.receipt.set("export_timestamp", utc_now_iso())
            self.receipt.set("export_version", exporter.version)
            self.receipt.set("export_name", exporter.name)
            write_json(os.path.join(out, exporter.receipt_file_name), self.receipt.finalize())
        return index

    def export_collection(
        self,
        whitelist: Whitelist,
        exporter: ExporterConfig,
        collection_id: str,
        out: str,
    ) -> Dict[str, Any] | None:
        ctx = {"collection_id": collection_id}
        collection_filter = exporter.filter_for(collection_id)
        if not collection_filter.enabled:
            logger.info(f"Collection {collection_id} is disabled for export, skipping")
            self.receipt.increment("collection_filtered_count")
            return None

        try:
            collection_doc = self.collections.read(collection_id)
        except (BackspaceError, OSError, ValueError) as e:
            self.receipt.warn(f"Collection {collection_id} is not in the cache, skipping ({e})", function="export", **ctx)
            return None

        dest_dir = os.path.join(out, "collections", collection_id)
        safe_mkdir(os.path.join(dest_dir, "items"))
        write_json(os.path.join(dest_dir, "collection.json"), collection_doc)

        exported: List[str] = []
        items: Dict[str, Any] = {}
        for item_id in whitelist.items_for(collection_id):
            if not collection_filter.allows(item_id):
                self.receipt.increment("item_filtered_count")
                continue
            view = self.export_item(collection_id, item_id, os.path.join(dest_dir, "items", item_id))
            if view is None:
                continue
            items[item_id] = {"item": view}
            exported.append(item_id)

        write_json(os.path.join(dest_dir, "items-index.json"), exported)
        self.receipt.increment("collection_exported_count")
        return {
            "id": collection_id,
            "collection": collection_doc,
            "itemsIndex": exported,
            "items": items,
        }

    def export_item(self, collection_id: str, item_id: str, dest_dir: str) -> Dict[str, Any] | None:
        ctx = {"collection_id": collection_id, "item_id": item_id}
        try:
            item = self.items.read(collection_id, item_id)
        except (BackspaceError, OSError, ValueError) as e:
            self.receipt.error(f"Error exporting item {item_id}", e, function="export_item", **ctx)
            return None

        view = export_item_view(item)
        safe_mkdir(dest_dir)
        write_json(os.path.join(dest_dir, ITEM_FILE), view)

        cover_path, _is_custom = self.items.existing_cover(collection_id, item_id)
        if cover_path:
            shutil.copyfile(cover_path, os.path.join(dest_dir, COVER_FILE))
        else:
            logger.debug(f"No cover to export for {collection_id}/{item_id}")

        self.receipt.increment("item_exported_count")
        return view

