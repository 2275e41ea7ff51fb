from __future__ import annotations

import logging
import os
import time
from typing import Any, Dict, Optional

from .. import config
from ..domain.models import ExporterConfig, ImporterConfig, Whitelist
from ..errors import BackspaceError
from ..infra.archive_client import ArchiveClient
from ..infra.http_client import HttpJsonError
from ..project_paths import collections_dir, configs_dir, unity_dir as default_unity_dir
from .export_service import ExportService
from .import_service import ImportService
from .receipt import PipelineReceipt, result
from .refine_service import RefineService
from .repositories import CollectionRepository, ConfigRepository, ItemRepository
from .repositories.json_files import safe_mkdir

logger = logging.getLogger(__name__)


class ContentPipeline:
    """
    Import -> (refine) -> export for the content whitelisted by an exporter config.

    Each phase returns `{"status": "success" | "error", "receipt": {...}}`; failures of a
    single item are counted in the receipt and do not abort the phase.
    """

    def __init__(
        self,
        *,
        config_path: Optional[str] = None,
        content_cache: Optional[str] = None,
        unity_dir: Optional[str] = None,
        force: bool = False,
        clean: bool = False,
        downloader_info: Optional[Dict[str, str]] = None,
        session: Any = None,
        receipt: Optional[PipelineReceipt] = None,
    ) -> None:
        self.config_path = os.path.abspath(config_path or configs_dir())
        self.content_cache = os.path.abspath(content_cache or collections_dir())
        self.unity_dir = os.path.abspath(unity_dir or default_unity_dir())
        self.force = bool(force)
        self.clean = bool(clean)

        self.receipt = receipt or PipelineReceipt()
        info = dict(downloader_info or {})
        self.receipt.set_download_info(info.get("name", ""), info.get("ip_address", ""), info.get("geo_location", ""))

        self.configs = ConfigRepository(self.config_path)
        self.collections = CollectionRepository(self.content_cache)
        self.items = ItemRepository(self.content_cache)
        self.client = ArchiveClient(session=session, receipt=self.receipt)

    # Config

    def load_importer_config(self, importer: Optional[str] = None) -> ImporterConfig:
        return self.configs.load_importer(importer or config.DEFAULT_IMPORTER)

    def load_exporter_config(self, exporter: Optional[str] = None) -> ExporterConfig:
        return self.configs.load_exporter(exporter or config.DEFAULT_EXPORTER)

    def load_whitelist(self, exporter_config: ExporterConfig) -> Whitelist:
        return self.configs.load_whitelist(exporter_config)

    # Phases

    def _timed(self, key: str, fn, *args, **kwargs) -> Dict[str, Any]:
        started = time.monotonic()
        try:
            fn(*args, **kwargs)
        except (BackspaceError, HttpJsonError, OSError, ValueError) as e:
            self.receipt.error(f"{key} phase failed", e, function=key)
            return result("error", self.receipt, error=str(e))
        finally:
            self.receipt.set(f"perf_{key}Phase_totalTime", round(time.monotonic() - started, 3))
        self.receipt.success(f"Content {key} phase completed", function=key)
        return result("success", self.receipt)

    def _do_import(self, importer: Optional[str], exporter: Optional[str]) -> None:
        importer_config = self.load_importer_config(importer)
        exporter_config = self.load_exporter_config(exporter)
        whitelist = self.load_whitelist(exporter_config)
        safe_mkdir(self.content_cache)
        service = ImportService(self.items, self.collections, self.client, self.receipt, force=self.force)
        service.import_whitelist(whitelist, process_cover_image=importer_config.process_cover_image)

    def _do_refine(self, exporter: Optional[str]) -> None:
        whitelist = self.load_whitelist(self.load_exporter_config(exporter))
        RefineService(self.items, self.receipt).refine(whitelist)

    def _do_export(self, exporter: Optional[str]) -> None:
        exporter_config = self.load_exporter_config(exporter)
        whitelist = self.load_whitelist(exporter_config)
        service = ExportService(self.items, self.collections, self.receipt, self.unity_dir, clean=self.clean)
        service.export(whitelist, exporter_config)

    def import_(self, importer: Optional[str] = None, exporter: Optional[str] = None) -> Dict[str, Any]:
        logger.info("Starting content import phase")
        return self._timed("import", self._do_import, importer, exporter)

    def refine(self, exporter: Optional[str] = None) -> Dict[str, Any]:
        logger.info("Starting content refine phase")
        return self._timed("refine", self._do_refine, exporter)

    def export(self, exporter: Optional[str] = None) -> Dict[str, Any]:
        logger.info("Starting content export phase")
        return self._timed("export", self._do_export, exporter)

    def run(self, importer: Optional[str] = None, exporter: Optional[str] = None, *, refine: bool = False) -> Dict[str, Any]:
        started = time.monotonic()
        outcome = self.import_(importer, exporter)
        if outcome["status"] == "success" and refine:
            outcome = self.refine(exporter)
        if outcome["status"] == "success":
            outcome = self.export(exporter)
        self.receipt.set("perf_total_duration", round(time.monotonic() - started, 3))
        outcome["receipt"] = self.receipt.snapshot()
        return outcome

    def bootstrap(self, importer: Optional[str] = None, exporter: Optional[str] = None) -> list[str]:
        """Create the configs and cache folders, plus default configs where none exist."""
        safe_mkdir(self.content_cache)
        return self.configs.write_default_configs(importer, exporter)
