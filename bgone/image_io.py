# bgone/image_io.py
from __future__ import annotations

from pathlib import Path
from typing import Tuple

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from .core_types import U8Image, U8Mask

"""
Image I/O helpers: straight RGBA in, straight RGBA PNG out.
"""

OUTPUT_SUFFIX = "_bgone"


def _to_rgba(im: Image.Image) -> Image.Image:
    im = ImageOps.exif_transpose(im)
    return im.convert("RGBA")


def load_image_rgba(path: Path) -> Tuple[U8Image, U8Mask]:
    """Load any Pillow-readable image as (rgb uint8 [H,W,3], alpha uint8 [H,W])."""
    with Image.open(path) as im0:
        im = _to_rgba(im0)
    arr = np.array(im, dtype=np.uint8)
    rgb = np.ascontiguousarray(arr[..., :3])
    alpha = np.ascontiguousarray(arr[..., 3])
    return rgb, alpha


def save_image_rgba(path: Path, rgb: U8Image, alpha: U8Mask) -> Path:
    """Write an RGBA PNG; any other suffix is replaced by .png. Returns the path written."""
    path = Path(path)
    if path.suffix.lower() != ".png":
        path = path.with_suffix(".png")
    H, W = rgb.shape[0], rgb.shape[1]
    out = np.zeros((H, W, 4), dtype=np.uint8)
    out[..., :3] = rgb[..., :3]
    out[..., 3] = alpha
    Image.fromarray(out).save(path)
    return path


def default_output_path(src: Path) -> Path:
    """'<dir>/<stem>_bgone.png' next to the input."""
    src = Path(src)
    return src.with_name(f"{src.stem}{OUTPUT_SUFFIX}.png")


def is_image_file(path: Path) -> bool:
    try:
        with Image.open(path) as im:
            im.seek(0)
            im.load()
        return True
    except (UnidentifiedImageError, OSError):
        return False


__all__ = [
    "OUTPUT_SUFFIX",
    "load_image_rgba",
    "save_image_rgba",
    "default_output_path",
    "is_image_file",
]
