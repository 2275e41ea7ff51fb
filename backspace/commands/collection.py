from __future__ import annotations

import argparse
from typing import Any

from ..app_services.collection_service import CollectionService
from ..app_services.import_service import ImportService
from ..app_services.receipt import PipelineReceipt
from ..app_services.validation import ExclusionService
from ..infra.archive_client import ArchiveClient
from ..project_paths import collections_dir
from .base import BaseCommand


def _add_path(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--path", default=None, help="Collections folder (defaults to Content/collections).")


class CollectionCommand(BaseCommand):
    name = "collection"
    help = "Manage collections in the content cache."

    def add_actions(self, actions: Any) -> None:
        _add_path(self.add_action(actions, "list", "List collections."))

        p = self.add_action(actions, "create", "Create a collection.")
        _add_path(p)
        p.add_argument("id")
        p.add_argument("--name", default="")
        p.add_argument("--query", default="", help="archive.org advancedsearch query.")
        p.add_argument("--description", default="")

        p = self.add_action(actions, "update", "Update collection name/query/description.")
        _add_path(p)
        p.add_argument("id")
        p.add_argument("--name", default=None)
        p.add_argument("--query", default=None)
        p.add_argument("--description", default=None)

        for action, help_text in (("show", "Show one collection."), ("delete", "Delete a collection.")):
            p = self.add_action(actions, action, help_text)
            _add_path(p)
            p.add_argument("id")

        _add_path(self.add_action(actions, "stats", "Collection and item totals."))

        p = self.add_action(actions, "recreate-indexes", "Rebuild items-index.json files from item folders.")
        _add_path(p)
        p.add_argument("id", nargs="?", default=None)

        p = self.add_action(actions, "deletions", "Show the deletion log.")
        _add_path(p)
        p.add_argument("--limit", type=int, default=20)

        p = self.add_action(actions, "process", "Populate a collection from its archive.org query.")
        _add_path(p)
        p.add_argument("id")
        p.add_argument("--limit", type=int, default=None, help="Max search results to fetch.")

    def service(self, args: argparse.Namespace) -> CollectionService:
        return CollectionService(args.path or collections_dir())

    def do_list(self, args: argparse.Namespace) -> int:
        collections = self.service(args).list()
        lines = [f"{c['id']}: {c.get('name') or c.get('title') or ''} ({c.get('itemCount', 0)} items)" for c in collections]
        self.emit(args, {"collections": collections}, lines or ["No collections found."])
        return 0

    def do_create(self, args: argparse.Namespace) -> int:
        doc = self.service(args).create(
            args.id, name=args.name, query=args.query, description=args.description, force=getattr(args, "force", False)
        )
        self.emit(args, doc, [f"Created collection {doc['id']}"])
        return 0

    def do_update(self, args: argparse.Namespace) -> int:
        doc = self.service(args).update(args.id, {"name": args.name, "query": args.query, "description": args.description})
        if doc is None:
            self.emit(args, {"id": args.id, "updated": False}, ["No changes to apply"])
        else:
            self.emit(args, doc, [f"Updated collection {args.id}"])
        return 0

    def do_show(self, args: argparse.Namespace) -> int:
        self.emit(args, self.service(args).show(args.id))
        return 0

    def do_delete(self, args: argparse.Namespace) -> int:
        self.service(args).delete(args.id)
        self.emit(args, {"id": args.id, "deleted": True}, [f"Deleted collection {args.id}"])
        return 0

    def do_stats(self, args: argparse.Namespace) -> int:
        stats = self.service(args).stats()
        lines = [
            f"Collections: {stats['totalCollections']}",
            f"Items: {stats['totalItems']}",
            f"Average items per collection: {stats['averageItemsPerCollection']}",
        ]
        lines.extend(f"  {media}: {count}" for media, count in stats["itemsByMediaType"].items())
        self.emit(args, stats, lines)
        return 0

    def do_recreate_indexes(self, args: argparse.Namespace) -> int:
        service = self.service(args)
        if args.id:
            counts = {args.id: len(service.recreate_items_index(args.id))}
        else:
            counts = service.recreate_all_indexes()
        self.emit(args, {"indexes": counts}, [f"{cid}: {n} items" for cid, n in counts.items()])
        return 0

    def do_deletions(self, args: argparse.Namespace) -> int:
        entries = self.service(args).deletions(args.limit)
        lines = [f"{e.get('deleted_at')} {e.get('type')} {e.get('id')}" for e in entries]
        self.emit(args, {"deletions": entries}, lines or ["No deletions recorded."])
        return 0

    def do_process(self, args: argparse.Namespace) -> int:
        service = self.service(args)
        receipt = PipelineReceipt()
        importer = ImportService(
            service.items, service.collections, ArchiveClient(receipt=receipt), receipt, force=getattr(args, "force", False)
        )
        fetched = service.process(args.id, importer, limit=args.limit)
        payload = {"id": args.id, "fetched": fetched, "receipt": receipt.finalize()}
        self.emit(args, payload, [f"Fetched {len(fetched)} items into {args.id}", f"errors: {receipt.get('error_count')}"])
        return 0


class ExcludeCommand(BaseCommand):
    name = "exclude"
    help = "Validate items and maintain a collection's excludedItemIds."

    def add_actions(self, actions: Any) -> None:
        for action, help_text in (
            ("check", "Validate items and exclude the broken ones."),
            ("list", "List excluded item ids."),
            ("clear", "Clear the exclusion list."),
        ):
            p = self.add_action(actions, action, help_text)
            _add_path(p)
            p.add_argument("collection")
        p = self.add_action(actions, "include", "Remove one item from the exclusion list.")
        _add_path(p)
        p.add_argument("collection")
        p.add_argument("item")

    def service(self, args: argparse.Namespace) -> ExclusionService:
        return ExclusionService(args.path or collections_dir())

    def do_check(self, args: argparse.Namespace) -> int:
        res = self.service(args).validate_collection_items(args.collection).to_dict()
        lines = [
            f"Total items: {res['totalItems']}",
            f"Valid items: {res['validItems']}",
            f"Invalid items: {res['invalidItems']}",
            f"Newly excluded: {res['newlyExcluded']}",
        ]
        self.emit(args, res, lines)
        return 0

    def do_list(self, args: argparse.Namespace) -> int:
        excluded = self.service(args).excluded(args.collection)
        self.emit(args, {"collectionId": args.collection, "excludedItemIds": excluded}, excluded or ["No excluded items."])
        return 0

    def do_include(self, args: argparse.Namespace) -> int:
        changed = self.service(args).include_item(args.collection, args.item)
        msg = f"Included {args.item}" if changed else f"{args.item} was not excluded"
        self.emit(args, {"collectionId": args.collection, "itemId": args.item, "changed": changed}, [msg])
        return 0

    def do_clear(self, args: argparse.Namespace) -> int:
        count = self.service(args).clear_excluded(args.collection)
        self.emit(args, {"collectionId": args.collection, "cleared": count}, [f"Cleared {count} excluded items"])
        return 0
