"""Resolution of standalone media paths and image size probing."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from PIL import Image

from ..errors import MediaFileNotFoundError
from ..settings import get_output_dir

logger = logging.getLogger(__name__)

OUTPUT_PREFIX = "Output/"


def resolve_media_path(raw_path: str, kind: str, output_dir: Path | None = None) -> Path:
    """Turn a user-supplied media path into an existing absolute path.

    ``~/`` expands to the home directory and ``Output/...`` maps onto the
    output directory. Paths that escape the output directory are rejected.

    Raises:
        MediaFileNotFoundError: the resolved file does not exist
    """
    path_str = raw_path.strip()
    if path_str.startswith(OUTPUT_PREFIX):
        root = (output_dir or get_output_dir()).resolve()
        candidate = (root / path_str[len(OUTPUT_PREFIX) :]).resolve()
        if not candidate.is_relative_to(root):
            raise MediaFileNotFoundError(path_str, kind)
        path = candidate
    else:
        path = Path(os.path.expanduser(path_str)).resolve()

    if not path.is_file():
        raise MediaFileNotFoundError(str(path), kind)
    return path


def read_image_size(path: Path) -> tuple[int, int] | None:
    """Return (width, height) of an image file, or None if unreadable."""
    try:
        with Image.open(path) as image:
            width, height = image.size
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        logger.warning(f"SeedVR2 Image File: Could not read image dimensions: {e}")
        return None
    logger.info(f"SeedVR2 Image File: Source dimensions {width}x{height}")
    return width, height
