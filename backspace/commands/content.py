from __future__ import annotations

import argparse
import os
from typing import Any

from .. import config
from ..app_services.collection_service import CollectionService
from ..app_services.repositories import ConfigRepository
from ..project_paths import collections_dir, configs_dir, content_dir
from .base import BaseCommand, common_options


class ContentCommand(BaseCommand):
    name = "content"
    help = "Content cache overview and setup."

    def add_actions(self, actions: Any) -> None:
        for action, help_text in (
            ("info", "Per-collection item counts and disk usage."),
            ("init", "Create the content folders, default configs and a sample collection."),
        ):
            p = self.add_action(actions, action, help_text)
            p.add_argument("--content-dir", default=None, help="Content root (defaults to <repo>/Content).")

    def _root(self, args: argparse.Namespace) -> str:
        return os.path.abspath(args.content_dir) if args.content_dir else content_dir()

    def do_info(self, args: argparse.Namespace) -> int:
        info = CollectionService(collections_dir(self._root(args))).content_info()
        lines = [f"Collections folder: {info['collectionsDir']}"]
        for c in info["collections"]:
            lines.append(f"  {c['id']}: {c['itemCount']} items, {c['sizeFormatted']}, updated {c['lastUpdated'] or 'never'}")
        lines.append(f"Total: {info['totalCollections']} collections, {info['totalItems']} items, {info['totalSizeFormatted']}")
        self.emit(args, info, lines)
        return 0

    def do_init(self, args: argparse.Namespace) -> int:
        root = self._root(args)
        created = CollectionService(collections_dir(root)).init_content()
        created.extend(ConfigRepository(configs_dir(root)).write_default_configs())
        self.emit(args, {"contentDir": root, "created": created}, [f"created: {p}" for p in created] or ["Content already initialized."])
        return 0


class ServeCommand(BaseCommand):
    name = "serve"
    help = "Run the content HTTP API."

    def register(self, subparsers: Any) -> argparse.ArgumentParser:
        parser = subparsers.add_parser(self.name, help=self.help, description=self.help, parents=[common_options()])
        parser.set_defaults(command=self, action="serve")
        parser.add_argument("--host", default=config.API_HOST)
        parser.add_argument("--port", type=int, default=config.API_PORT)
        parser.add_argument("--path", default=None, help="Collections folder (defaults to Content/collections).")
        return parser

    def do_serve(self, args: argparse.Namespace) -> int:
        from ..api import create_app

        app = create_app(args.path or collections_dir())
        app.run(host=args.host, port=int(args.port), debug=bool(getattr(args, "verbose", False)))
        return 0
