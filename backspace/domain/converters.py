from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)


# Coercions for the loosely typed metadata archive.org returns. The same field can
# come back as a string, a list of strings, a number or null depending on the item.


def _non_empty_strings(values: List[Any]) -> List[str]:
    out: List[str] = []
    for v in values:
        if v is None:
            continue
        s = str(v)
        if s.strip():
            out.append(s)
    return out


def string_array_or_string_or_null_to_string(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, list):
        return "\n".join(_non_empty_strings(value))
    if isinstance(value, str):
        return value
    return str(value)


def string_array_or_string_or_null_to_string_array(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, list):
        return _non_empty_strings(value)
    s = str(value)
    return [s] if s.strip() else []


def semicolon_split_string_or_string_array_or_null_to_string_array(value: Any) -> List[str]:
    """Subjects arrive either as a list or as one 'a; b; c' string."""
    if value is None:
        return []
    if isinstance(value, list):
        return _non_empty_strings(value)
    return [part.strip() for part in str(value).split(";") if part.strip()]


def string_or_number_or_null_to_int(value: Any, default: int = 0) -> int:
    if value is None or isinstance(value, bool):
        return int(default)
    try:
        return int(float(str(value).strip()))
    except (TypeError, ValueError):
        return int(default)


def string_or_number_or_null_to_float(value: Any, default: float = 0.0) -> float:
    if value is None or isinstance(value, bool):
        return float(default)
    try:
        return float(str(value).strip())
    except (TypeError, ValueError):
        return float(default)


CONVERTERS: Dict[str, Callable[[Any], Any]] = {
    "StringArrayOrStringOrNullToStringConverter": string_array_or_string_or_null_to_string,
    "StringArrayOrStringOrNullToStringArrayConverter": string_array_or_string_or_null_to_string_array,
    "SemicolonSplitStringOrStringArrayOrNullToStringArrayConverter": semicolon_split_string_or_string_array_or_null_to_string_array,
    "StringOrNumberOrNullToIntegerConverter": string_or_number_or_null_to_int,
    "StringOrNumberOrNullToFloatConverter": string_or_number_or_null_to_float,
}


def convert(value: Any, name: str) -> Any:
    """
    Apply a converter by its schema name, with or without the `Converter` suffix.

    Unknown names are logged and the value is passed through untouched.
    """
    key = str(name or "")
    if not key.endswith("Converter"):
        key = f"{key}Converter"
    fn = CONVERTERS.get(key)
    if fn is None:
        logger.warning(f"Converter not found: {key}")
        return value
    return fn(value)
