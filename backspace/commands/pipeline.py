from __future__ import annotations

import argparse
from typing import Any, Dict

from .. import config
from ..app_services.pipeline import ContentPipeline
from .base import BaseCommand, key_values

SUMMARY_KEYS = (
    "collection_processed_count",
    "item_processed_count",
    "item_updated_count",
    "item_skipped_count",
    "cover_custom_used",
    "cover_download_count",
    "item_refined_count",
    "collection_exported_count",
    "item_exported_count",
    "item_filtered_count",
    "warning_count",
    "error_count",
)


class PipelineCommand(BaseCommand):
    name = "pipeline"
    help = "Import content from archive.org and export it to Unity."

    def add_actions(self, actions: Any) -> None:
        for action, help_text in (
            ("run", "Import, optionally refine, then export."),
            ("import", "Fetch whitelisted items into the content cache."),
            ("refine", "Re-normalize cached items offline."),
            ("export", "Export cached content to Unity StreamingAssets."),
            ("bootstrap", "Create the configs/cache layout with default configs."),
        ):
            p = self.add_action(actions, action, help_text)
            p.add_argument("--config-path", default=None, help="Configs folder (Importers/, Exporters/).")
            p.add_argument("--content-cache", default=None, help="Content cache collections folder.")
            p.add_argument("--export-path", default=None, help="Unity project folder.")
            p.add_argument("--importer", default=config.DEFAULT_IMPORTER, help="Importer config spec.")
            p.add_argument("--exporter", default=config.DEFAULT_EXPORTER, help="Exporter config spec.")
            p.add_argument("-c", "--clean", action="store_true", help="Empty the export folder first.")
            p.add_argument("--refine", action="store_true", help="Run the refine phase (run only).")
            p.add_argument("--download-name", default="", help="Name recorded in the receipt.")
            p.add_argument("--download-ip", default="", help="IP address recorded in the receipt.")
            p.add_argument("--download-geo", default="", help="Location recorded in the receipt.")

    def make_pipeline(self, args: argparse.Namespace) -> ContentPipeline:
        return ContentPipeline(
            config_path=args.config_path,
            content_cache=args.content_cache,
            unity_dir=args.export_path,
            force=getattr(args, "force", False),
            clean=args.clean,
            downloader_info={
                "name": args.download_name,
                "ip_address": args.download_ip,
                "geo_location": args.download_geo,
            },
        )

    def _report(self, args: argparse.Namespace, outcome: Dict[str, Any]) -> int:
        receipt = outcome.get("receipt") or {}
        lines = [f"status: {outcome.get('status')}"]
        if outcome.get("error"):
            lines.append(f"error: {outcome['error']}")
        lines.extend(key_values(receipt, SUMMARY_KEYS))
        self.emit(args, outcome, lines)
        return 0 if outcome.get("status") == "success" else 1

    def do_run(self, args: argparse.Namespace) -> int:
        return self._report(args, self.make_pipeline(args).run(args.importer, args.exporter, refine=args.refine))

    def do_import(self, args: argparse.Namespace) -> int:
        return self._report(args, self.make_pipeline(args).import_(args.importer, args.exporter))

    def do_refine(self, args: argparse.Namespace) -> int:
        return self._report(args, self.make_pipeline(args).refine(args.exporter))

    def do_export(self, args: argparse.Namespace) -> int:
        return self._report(args, self.make_pipeline(args).export(args.exporter))

    def do_bootstrap(self, args: argparse.Namespace) -> int:
        created = self.make_pipeline(args).bootstrap(args.importer, args.exporter)
        self.emit(args, {"created": created}, [f"created: {p}" for p in created] or ["nothing to create"])
        return 0
