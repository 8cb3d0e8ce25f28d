# bgone/colour_convert.py
from __future__ import annotations

"""
Colour normalisation and compositing helpers.

Exports:
  normalize_colour(rgb) -> NormalizedRGB
  denormalize_colour(norm) -> RGBTuple
  normalize_rows(rgb_rows) -> float64 [N,3]
  round_half_up(values)
  colour_distance(a, b)
  composite_over(colour, alpha, background)
  composite_over_black(rgb, alpha)
"""

from typing import Sequence

import numpy as np
from numpy.typing import NDArray

from .core_types import NormalizedRGB, RGBTuple, clamp_value


def normalize_colour(rgb: Sequence[int]) -> NormalizedRGB:
    """8-bit RGB to floats in [0, 1]."""
    return (int(rgb[0]) / 255.0, int(rgb[1]) / 255.0, int(rgb[2]) / 255.0)


def denormalize_colour(norm: Sequence[float]) -> RGBTuple:
    """Floats in [0, 1] to 8-bit RGB. Rounds half away from zero, then clamps."""
    out = []
    for c in norm[:3]:
        v = float(c) * 255.0
        v = float(np.floor(v + 0.5)) if v >= 0.0 else float(np.ceil(v - 0.5))
        out.append(int(clamp_value(v, 0.0, 255.0)))
    return (out[0], out[1], out[2])


def normalize_rows(rgb_rows: np.ndarray) -> NDArray[np.float64]:
    """uint8-like [...,3] rows to float64 in [0, 1]."""
    return np.asarray(rgb_rows, dtype=np.float64) / 255.0


def round_half_up(values: np.ndarray) -> np.ndarray:
    """Round non-negative values half up (np.rint rounds half to even)."""
    return np.floor(np.asarray(values, dtype=np.float64) + 0.5)


def colour_distance(a: Sequence[float], b: Sequence[float]) -> float:
    """Euclidean distance between two colours in the same (normalised) space."""
    d = np.asarray(a, dtype=np.float64)[:3] - np.asarray(b, dtype=np.float64)[:3]
    return float(np.sqrt(np.dot(d, d)))


def composite_over(
    colour: Sequence[float], alpha: float, background: Sequence[float]
) -> NDArray[np.float64]:
    """observed = alpha * colour + (1 - alpha) * background, per channel."""
    fg = np.asarray(colour, dtype=np.float64)[:3]
    bg = np.asarray(background, dtype=np.float64)[:3]
    return alpha * fg + (1.0 - alpha) * bg


def composite_over_black(rgb: np.ndarray, alpha: np.ndarray) -> np.ndarray:
    """
    Composite 8-bit RGB rows over black using 8-bit alpha.

    Opaque rows are returned unchanged; translucent rows become
    round(channel * alpha / 255). Returns uint8 with the input shape.
    """
    rgb_u8 = np.asarray(rgb, dtype=np.uint8)
    a = np.asarray(alpha, dtype=np.float64)[..., None] / 255.0
    dimmed = round_half_up(rgb_u8.astype(np.float64) * a)
    out = np.where(a < 1.0, dimmed, rgb_u8.astype(np.float64))
    return np.clip(out, 0, 255).astype(np.uint8)


__all__ = [
    "normalize_colour",
    "denormalize_colour",
    "normalize_rows",
    "round_half_up",
    "colour_distance",
    "composite_over",
    "composite_over_black",
]
