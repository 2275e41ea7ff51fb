from __future__ import annotations

import copy
from typing import Any, Dict

from .converters import (
    semicolon_split_string_or_string_array_or_null_to_string_array,
    string_array_or_string_or_null_to_string,
    string_array_or_string_or_null_to_string_array,
    string_or_number_or_null_to_int,
)
from .models import EXPORT_ITEM_KEYS

FAVORITE_PREFIX = "fav-"


def normalize_item_data(item: Dict[str, Any]) -> Dict[str, Any]:
    """
    Coerce raw archive.org metadata into the shape the Unity app expects.

    archive.org lists the favorites lists an item belongs to ("fav-<user>") among its
    collections; those are stripped and counted into `favoriteCount`.
    """
    normalized = dict(item or {})
    normalized["title"] = string_array_or_string_or_null_to_string(normalized.get("title"))
    normalized["description"] = string_array_or_string_or_null_to_string(normalized.get("description"))
    normalized["creator"] = string_array_or_string_or_null_to_string(normalized.get("creator"))
    normalized["subject"] = semicolon_split_string_or_string_array_or_null_to_string_array(normalized.get("subject"))

    favorite_count = 0
    collections = normalized.get("collection")
    if isinstance(collections, list):
        kept = [c for c in collections if not str(c).startswith(FAVORITE_PREFIX)]
        favorite_count = len(collections) - len(kept)
        collections = kept
    normalized["collection"] = string_array_or_string_or_null_to_string_array(collections)
    # re-normalizing an already clean item keeps the count it had
    normalized["favoriteCount"] = favorite_count or string_or_number_or_null_to_int(normalized.get("favoriteCount"))
    return normalized


def deep_merge(base: Dict[str, Any], overlay: Dict[str, Any]) -> Dict[str, Any]:
    """Merge `overlay` into `base` in place; nested dicts merge, everything else is replaced."""
    for key, value in (overlay or {}).items():
        current = base.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            deep_merge(current, value)
        else:
            base[key] = copy.deepcopy(value)
    return base


def export_item_view(item: Dict[str, Any]) -> Dict[str, Any]:
    return {k: item[k] for k in EXPORT_ITEM_KEYS if k in item}
