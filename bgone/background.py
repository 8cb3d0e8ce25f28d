# bgone/background.py
from __future__ import annotations

"""
Background colour detection from image borders.

Samples the four corners plus every N-th pixel along each edge, composites
translucent samples over black, and returns the most frequent colour.
"""

from typing import Dict, List, Optional, Tuple

import numpy as np

from .colour_convert import composite_over_black
from .constants import EDGE_SAMPLE_INTERVAL
from .core_types import (
    RGBTuple,
    U8Image,
    U8Mask,
    assert_u8_image_rgb,
    assert_u8_mask_2d,
    rgb_to_hex,
)
from .utils import debug_log


def edge_sample_points(
    width: int, height: int, interval: int = EDGE_SAMPLE_INTERVAL
) -> List[Tuple[int, int]]:
    """
    (x, y) sample points: corners first, then top/bottom rows, then left/right columns.

    Points may repeat (corners are also hit by the edge walk); repeats are
    counted, so corners weigh a little more than plain edge samples.
    """
    if interval < 1:
        raise ValueError("edge sample interval must be >= 1")
    if width <= 0 or height <= 0:
        return []
    right, bottom = width - 1, height - 1
    points = [(0, 0), (right, 0), (0, bottom), (right, bottom)]
    for x in range(0, width, interval):
        points.append((x, 0))
        points.append((x, bottom))
    for y in range(0, height, interval):
        points.append((0, y))
        points.append((right, y))
    return points


def detect_background(
    rgb: U8Image,
    alpha: Optional[U8Mask] = None,
    *,
    edge_sample_interval: int = EDGE_SAMPLE_INTERVAL,
    debug: bool = False,
) -> RGBTuple:
    """
    Most common border colour of an image.

    Args:
      rgb   : uint8 [H,W,3], or [H,W,4] carrying its own alpha
      alpha : uint8 [H,W]; None means the 4th channel of rgb if present,
              else fully opaque
      edge_sample_interval : stride along each edge

    Returns:
      RGB tuple. Ties go to the colour seen first in sample order.
    """
    assert_u8_image_rgb(rgb)
    if alpha is None and rgb.shape[-1] == 4:
        alpha = rgb[..., 3]
    height, width = rgb.shape[0], rgb.shape[1]
    points = edge_sample_points(width, height, edge_sample_interval)
    if not points:
        return (0, 0, 0)

    xs = np.array([p[0] for p in points], dtype=np.intp)
    ys = np.array([p[1] for p in points], dtype=np.intp)
    samples = rgb[ys, xs, :3]
    if alpha is not None:
        assert_u8_mask_2d(alpha)
        samples = composite_over_black(samples, alpha[ys, xs])

    counts: Dict[RGBTuple, int] = {}
    for row in samples.tolist():
        key = (int(row[0]), int(row[1]), int(row[2]))
        counts[key] = counts.get(key, 0) + 1

    # max() keeps the first maximum; dicts keep insertion order.
    best = max(counts, key=lambda c: counts[c])

    if debug:
        top = sorted(counts.items(), key=lambda kv: -kv[1])[:5]
        debug_log(
            f"background samples={len(points)} distinct={len(counts)} "
            + " ".join(f"{rgb_to_hex(c)}x{n}" for c, n in top)
        )
    return best


__all__ = ["edge_sample_points", "detect_background"]
