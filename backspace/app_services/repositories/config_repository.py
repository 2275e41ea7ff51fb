from __future__ import annotations

import json
import logging
import os

from ... import config
from ...domain.models import ExporterConfig, ImporterConfig, Whitelist
from ...errors import ConfigError
from .json_files import read_json, safe_mkdir, write_json

logger = logging.getLogger(__name__)

DEFAULT_IMPORTER_CONFIG = {
    "name": "Internet Archive",
    "processCoverImage": True,
}


class ConfigRepository:
    """
    Importer/exporter configs under `Configs/Importers` and `Configs/Exporters`.

    A config spec is one of:
      - a path ending in `.json` (used as is)
      - a directory under the base folder, e.g. `Unity/SpaceCraft` -> `<dir>/exporter-config.json`
      - a variant, e.g. `ia/debug` -> `ia/importer-config-debug.json`
    """

    def __init__(self, configs_dir: str) -> None:
        self.configs_dir = os.path.abspath(configs_dir)

    def importers_dir(self) -> str:
        return os.path.join(self.configs_dir, "Importers")

    def exporters_dir(self) -> str:
        return os.path.join(self.configs_dir, "Exporters")

    def _resolve(self, spec: str, base_dir: str, stem: str) -> str:
        spec = str(spec or "").strip()
        if spec.endswith(".json"):
            return os.path.abspath(spec)
        candidate = os.path.join(base_dir, spec)
        if os.path.isdir(candidate):
            return os.path.join(candidate, f"{stem}.json")
        parent = os.path.dirname(candidate)
        variant = os.path.basename(candidate)
        if variant.startswith(stem):
            return os.path.join(parent, f"{variant}.json")
        sep = "" if variant.startswith("-") else "-"
        return os.path.join(parent, f"{stem}{sep}{variant}.json")

    def resolve_importer_path(self, spec: str) -> str:
        return self._resolve(spec, self.importers_dir(), "importer-config")

    def resolve_exporter_path(self, spec: str) -> str:
        return self._resolve(spec, self.exporters_dir(), "exporter-config")

    def _load(self, path: str, kind: str) -> dict:
        if not os.path.isfile(path):
            raise ConfigError(f"{kind} config not found: {path}")
        try:
            data = read_json(path)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Could not read {kind} config {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"{kind} config {path} is not a JSON object")
        logger.debug(f"Loaded {kind} config {path}")
        return data

    def load_importer(self, spec: str | None = None) -> ImporterConfig:
        path = self.resolve_importer_path(spec or config.DEFAULT_IMPORTER)
        return ImporterConfig.from_dict(self._load(path, "Importer"), config_dir=os.path.dirname(path))

    def load_exporter(self, spec: str | None = None) -> ExporterConfig:
        path = self.resolve_exporter_path(spec or config.DEFAULT_EXPORTER)
        return ExporterConfig.from_dict(
            self._load(path, "Exporter"),
            config_dir=os.path.dirname(path),
            default_index_file=config.INDEX_DEEP_FILE,
        )

    def whitelist_path(self, exporter: ExporterConfig) -> str:
        return os.path.join(exporter.config_dir, exporter.index_deep_file)

    def load_whitelist(self, exporter: ExporterConfig) -> Whitelist:
        path = self.whitelist_path(exporter)
        if not os.path.isfile(path):
            raise ConfigError(f"Whitelist index not found: {path}")
        try:
            data = read_json(path)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Could not read whitelist {path}: {e}") from e
        return Whitelist.from_dict(data if isinstance(data, dict) else {})

    def ensure_layout(self) -> None:
        safe_mkdir(self.importers_dir())
        safe_mkdir(self.exporters_dir())

    def write_default_configs(self, importer: str | None = None, exporter: str | None = None) -> list[str]:
        """Create a default importer config, exporter config and empty whitelist when absent."""
        self.ensure_layout()
        created: list[str] = []

        importer_dir = os.path.join(self.importers_dir(), importer or config.DEFAULT_IMPORTER)
        importer_path = os.path.join(importer_dir, "importer-config.json")
        if not os.path.exists(importer_path):
            write_json(importer_path, dict(DEFAULT_IMPORTER_CONFIG))
            created.append(importer_path)

        exporter_name = exporter or config.DEFAULT_EXPORTER
        exporter_dir = os.path.join(self.exporters_dir(), exporter_name)
        exporter_path = os.path.join(exporter_dir, "exporter-config.json")
        if not os.path.exists(exporter_path):
            write_json(exporter_path, {
                "name": exporter_name,
                "version": "1.0",
                "indexDeepFile": config.INDEX_DEEP_FILE,
                "receiptFileName": "export-receipt.json",
                "collections": {},
            })
            created.append(exporter_path)

        whitelist_path = os.path.join(exporter_dir, config.INDEX_DEEP_FILE)
        if not os.path.exists(whitelist_path):
            write_json(whitelist_path, {"collectionsIndex": [], "collections": {}})
            created.append(whitelist_path)

        for path in created:
            logger.info(f"Created {path}")
        return created
