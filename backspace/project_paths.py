from __future__ import annotations

import os
from functools import lru_cache

from . import config


@lru_cache(maxsize=1)
def project_root() -> str:
    """
    Return the repository root directory.

    Content and the Unity project live next to the package by default. Relying on the
    process working directory (CWD) breaks as soon as the CLI is run from elsewhere,
    so resolve it here.
    """
    # backspace/project_paths.py -> repo root is parent of backspace/
    return os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))


def data_dir(folder_name: str) -> str:
    """Return absolute path to a repo-root data folder (does not create it)."""
    return os.path.join(project_root(), str(folder_name or "").strip())


def content_dir() -> str:
    return os.path.abspath(config.CONTENT_DIR) if config.CONTENT_DIR else data_dir("Content")


def collections_dir(content_root: str | None = None) -> str:
    return os.path.join(content_root or content_dir(), "collections")


def configs_dir(content_root: str | None = None) -> str:
    return os.path.join(content_root or content_dir(), "Configs")


def unity_dir() -> str:
    return os.path.abspath(config.UNITY_DIR) if config.UNITY_DIR else data_dir(os.path.join("Unity", "SpaceCraft"))


def streaming_assets_dir(unity_root: str | None = None) -> str:
    return os.path.join(unity_root or unity_dir(), "Assets", "StreamingAssets")


def unity_content_dir(unity_root: str | None = None) -> str:
    """StreamingAssets/Content folder the Unity app reads at runtime."""
    return os.path.join(streaming_assets_dir(unity_root), "Content")
