from __future__ import annotations

import logging
from typing import Optional

from PIL import Image, UnidentifiedImageError

from ..domain.models import CoverDimensions

logger = logging.getLogger(__name__)


def get_image_dimensions(path: str) -> Optional[CoverDimensions]:
    """Read width/height from an image header; None when the file is missing or not an image."""
    try:
        with Image.open(path) as im:
            width, height = im.size
            return CoverDimensions(width=int(width), height=int(height), format=str(im.format or ""))
    except (OSError, UnidentifiedImageError) as e:
        logger.debug(f"Could not read image dimensions for {path}: {e}")
        return None
