import os

import pytest

from backspace.app_services.repositories import ConfigRepository
from backspace.errors import ConfigError


def test_resolve_json_path_is_absolute(tmp_path):
    repo = ConfigRepository(str(tmp_path))
    assert repo.resolve_importer_path("some/where.json") == os.path.abspath("some/where.json")


def test_resolve_directory_uses_default_name(content_root):
    repo = ConfigRepository(content_root["configs"])
    assert repo.resolve_exporter_path("Unity/SpaceCraft") == os.path.join(
        content_root["exporter_dir"], "exporter-config.json"
    )


def test_resolve_variants(tmp_path):
    repo = ConfigRepository(str(tmp_path))
    base = os.path.join(str(tmp_path), "Importers", "ia")
    assert repo.resolve_importer_path("ia/debug") == os.path.join(base, "importer-config-debug.json")
    assert repo.resolve_importer_path("ia/-debug") == os.path.join(base, "importer-config-debug.json")
    assert repo.resolve_importer_path("ia/importer-config-small") == os.path.join(base, "importer-config-small.json")


def test_load_exporter_and_whitelist(content_root):
    repo = ConfigRepository(content_root["configs"])
    exporter = repo.load_exporter("Unity/SpaceCraft")
    assert exporter.name == "SpaceCraft"
    assert exporter.config_dir == content_root["exporter_dir"]
    whitelist = repo.load_whitelist(exporter)
    assert whitelist.collections_index == ("scifi", "hidden", "ghost")


def test_missing_config_raises(tmp_path):
    with pytest.raises(ConfigError):
        ConfigRepository(str(tmp_path)).load_importer("nope")


def test_missing_whitelist_raises(content_root):
    repo = ConfigRepository(content_root["configs"])
    exporter = repo.load_exporter("Unity/SpaceCraft")
    os.remove(os.path.join(content_root["exporter_dir"], "index-deep.json"))
    with pytest.raises(ConfigError):
        repo.load_whitelist(exporter)


def test_write_default_configs_is_idempotent(tmp_path):
    repo = ConfigRepository(str(tmp_path))
    created = repo.write_default_configs()
    assert len(created) == 3
    assert repo.load_importer().process_cover_image
    assert repo.write_default_configs() == []
