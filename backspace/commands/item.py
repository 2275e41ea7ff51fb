from __future__ import annotations

import argparse
import json
from typing import Any, Dict

from ..app_services.import_service import ImportService
from ..app_services.item_service import ItemService
from ..app_services.receipt import PipelineReceipt
from ..errors import ValidationError
from ..infra.archive_client import ArchiveClient
from ..project_paths import collections_dir
from .base import BaseCommand


class ItemCommand(BaseCommand):
    name = "item"
    help = "Manage items in a collection."

    def add_actions(self, actions: Any) -> None:
        p = self.add_action(actions, "list", "List items of a collection.")
        p.add_argument("collection")
        p.add_argument("--limit", type=int, default=50)
        p.add_argument("--skip", type=int, default=0)

        for action, help_text in (("get", "Show one item."), ("fetch", "Fetch one item from archive.org into the cache.")):
            p = self.add_action(actions, action, help_text)
            p.add_argument("collection")
            p.add_argument("item")

        p = self.add_action(actions, "create", "Create a hand-made item.")
        p.add_argument("collection")
        p.add_argument("item")
        p.add_argument("--title", default="")
        p.add_argument("--creator", default="")
        p.add_argument("--description", default="")
        p.add_argument("--data", default=None, help="Extra fields as a JSON object.")

        p = self.add_action(actions, "update", "Update fields of an item.")
        p.add_argument("collection")
        p.add_argument("item")
        p.add_argument("--title", default="")
        p.add_argument("--creator", default="")
        p.add_argument("--description", default="")
        p.add_argument("--data", default=None, help="Fields to merge as a JSON object.")

        p = self.add_action(actions, "delete", "Delete an item from the cache.")
        p.add_argument("collection")
        p.add_argument("item")

        p = self.add_action(actions, "customizations", "List item-custom.json overlays.")
        p.add_argument("collection")

        for p in actions.choices.values():
            p.add_argument("--path", default=None, help="Collections folder (defaults to Content/collections).")

    def service(self, args: argparse.Namespace) -> ItemService:
        return ItemService(args.path or collections_dir())

    def do_list(self, args: argparse.Namespace) -> int:
        items, total = self.service(args).list(args.collection, limit=args.limit, skip=args.skip)
        payload = {"collectionId": args.collection, "items": items, "total": total, "limit": args.limit, "skip": args.skip}
        lines = [f"{i.get('id')}: {i.get('title', '')}" for i in items]
        lines.append(f"Showing {len(items)} of {total}")
        self.emit(args, payload, lines)
        return 0

    def do_get(self, args: argparse.Namespace) -> int:
        self.emit(args, self.service(args).get(args.collection, args.item))
        return 0

    def item_fields(self, args: argparse.Namespace) -> Dict[str, Any]:
        data = {}
        if args.data:
            data = json.loads(args.data)
            if not isinstance(data, dict):
                raise ValidationError("--data must be a JSON object")
        data.update({k: v for k, v in (("title", args.title), ("creator", args.creator), ("description", args.description)) if v})
        return data

    def do_create(self, args: argparse.Namespace) -> int:
        data = self.item_fields(args)
        data["id"] = args.item
        data.setdefault("title", args.item)
        item = self.service(args).create(args.collection, data)
        self.emit(args, item, [f"Created item {args.collection}/{item['id']}"])
        return 0

    def do_fetch(self, args: argparse.Namespace) -> int:
        service = self.service(args)
        receipt = PipelineReceipt()
        importer = ImportService(service.items, service.collections, ArchiveClient(receipt=receipt), receipt)
        item = importer.fetch_item(args.collection, args.item)
        if item is None:
            self.emit(args, {"error": f"Could not fetch {args.item}", "receipt": receipt.finalize()}, [f"Could not fetch {args.item}"])
            return 1
        self.emit(args, item, [f"Fetched {args.collection}/{args.item}: {item.get('title', '')}"])
        return 0

    def do_customizations(self, args: argparse.Namespace) -> int:
        overlays = self.service(args).customizations(args.collection)
        lines = [f"{item_id}: {', '.join(sorted(o.keys()))}" for item_id, o in overlays.items()]
        self.emit(args, {"collectionId": args.collection, "customizations": overlays}, lines or ["No customizations."])
        return 0

    def do_update(self, args: argparse.Namespace) -> int:
        fields = self.item_fields(args)
        if not fields:
            raise ValidationError("Nothing to update; pass --title, --creator, --description or --data")
        item = self.service(args).update(args.collection, args.item, fields)
        self.emit(args, item, [f"Updated item {args.collection}/{args.item}"])
        return 0

    def do_delete(self, args: argparse.Namespace) -> int:
        self.service(args).delete(args.collection, args.item)
        self.emit(args, {"success": True, "collectionId": args.collection, "id": args.item}, [f"Deleted item {args.collection}/{args.item}"])
        return 0
