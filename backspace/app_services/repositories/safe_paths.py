from __future__ import annotations

import os

from ...errors import ValidationError


def check_id(value: object, kind: str = "id") -> str:
    """Return `value` as a single path segment, or raise ValidationError."""
    text = str(value if value is not None else "")
    if (
        not text.strip()
        or text.startswith(".")
        or "/" in text
        or os.sep in text
        or (os.altsep is not None and os.altsep in text)
        or "\x00" in text
    ):
        raise ValidationError(f"Invalid {kind}: {value!r}")
    return text


def join_under(root: str, *segments: str) -> str:
    """Join `segments` onto `root`; the resolved path must stay inside `root`."""
    path = os.path.join(root, *segments)
    real_root = os.path.realpath(root)
    real = os.path.realpath(path)
    if real != real_root and os.path.commonpath([real_root, real]) != real_root:
        raise ValidationError(f"Path escapes {root}: {os.path.join(*segments)}")
    return path
