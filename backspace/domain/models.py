from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple


# Keys copied from a cached item into the exported item.json
EXPORT_ITEM_KEYS: Tuple[str, ...] = (
    "id",
    "title",
    "description",
    "creator",
    "subject",
    "collection",
    "mediatype",
    "coverImage",
    "coverWidth",
    "coverHeight",
    "favoriteCount",
)


def match_pattern(value: str, pattern: str) -> bool:
    """
    Match an id against an include/exclude pattern.

    `*` alone matches everything, a pattern containing `*` is a glob where `*` spans any
    run of characters, anything else must match exactly.
    """
    if pattern == "*":
        return True
    if "*" in pattern:
        regex = "^" + ".*".join(re.escape(part) for part in pattern.split("*")) + "$"
        return re.match(regex, value, flags=re.DOTALL) is not None
    return value == pattern


@dataclass(frozen=True)
class CollectionFilter:
    enabled: bool = True
    include: Tuple[str, ...] = ()
    exclude: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "CollectionFilter":
        data = dict(data or {})
        return cls(
            enabled=data.get("enabled") is not False,
            include=tuple(str(p) for p in (data.get("include") or [])),
            exclude=tuple(str(p) for p in (data.get("exclude") or [])),
        )

    def allows(self, item_id: str) -> bool:
        if not self.enabled:
            return False
        if self.include and not any(match_pattern(item_id, p) for p in self.include):
            return False
        if any(match_pattern(item_id, p) for p in self.exclude):
            return False
        return True


@dataclass(frozen=True)
class ImporterConfig:
    config_dir: str
    process_cover_image: bool = True
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], config_dir: str) -> "ImporterConfig":
        data = dict(data or {})
        return cls(
            config_dir=str(config_dir),
            process_cover_image=data.get("processCoverImage") is not False,
            raw=data,
        )


@dataclass(frozen=True)
class ExporterConfig:
    config_dir: str
    name: str = ""
    version: str = ""
    index_deep_file: str = "index-deep.json"
    receipt_file_name: str = ""
    collections: Dict[str, CollectionFilter] = field(default_factory=dict)
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], config_dir: str, default_index_file: str = "index-deep.json") -> "ExporterConfig":
        data = dict(data or {})
        filters = {
            str(cid): CollectionFilter.from_dict(cfg)
            for cid, cfg in dict(data.get("collections") or {}).items()
            if isinstance(cfg, dict)
        }
        return cls(
            config_dir=str(config_dir),
            name=str(data.get("name") or ""),
            version=str(data.get("version") or ""),
            index_deep_file=str(data.get("indexDeepFile") or default_index_file),
            receipt_file_name=str(data.get("receiptFileName") or ""),
            collections=filters,
            raw=data,
        )

    def filter_for(self, collection_id: str) -> CollectionFilter:
        return self.collections.get(collection_id) or CollectionFilter()


@dataclass(frozen=True)
class Whitelist:
    """The index-deep.json an exporter config ships: which collections and items to import."""

    collections_index: Tuple[str, ...] = ()
    collections: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Whitelist":
        data = dict(data or {})
        collections = {
            str(cid): dict(entry)
            for cid, entry in dict(data.get("collections") or {}).items()
            if isinstance(entry, dict)
        }
        index = data.get("collectionsIndex")
        if index is None:
            index = list(collections.keys())
        return cls(collections_index=tuple(str(c) for c in index), collections=collections)

    def has(self, collection_id: str) -> bool:
        return collection_id in self.collections

    def items_for(self, collection_id: str) -> List[str]:
        entry = self.collections.get(collection_id) or {}
        return [str(i) for i in (entry.get("itemsIndex") or [])]

    def collection_for(self, collection_id: str) -> Optional[Dict[str, Any]]:
        entry = self.collections.get(collection_id) or {}
        doc = entry.get("collection")
        return dict(doc) if isinstance(doc, dict) and doc else None


@dataclass(frozen=True)
class CoverDimensions:
    width: int
    height: int
    format: str = ""


@dataclass(frozen=True)
class ValidationResult:
    collection_id: str
    total_items: int
    valid_items: int
    invalid_items: int
    newly_excluded: int
    excluded_items: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "collectionId": self.collection_id,
            "totalItems": self.total_items,
            "validItems": self.valid_items,
            "invalidItems": self.invalid_items,
            "newlyExcluded": self.newly_excluded,
            "excludedItems": list(self.excluded_items),
        }
