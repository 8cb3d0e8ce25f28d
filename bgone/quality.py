# bgone/quality.py
from __future__ import annotations

"""
Round-trip quality checks for unmixed output.

Re-composites an RGBA result over a solid background and compares it with
the source image.

Exports:
  overlay_on_background(rgb, alpha, background) -> uint8 [H,W,3]
  mean_squared_error(a, b) -> float
  peak_signal_to_noise(a, b) -> float (dB, inf when identical)
  similarity_percentage(a, b) -> float in [0, 100]
"""

from typing import Sequence

import numpy as np

from .colour_convert import round_half_up
from .core_types import U8Image, U8Mask


def overlay_on_background(
    rgb: U8Image, alpha: U8Mask, background: Sequence[int]
) -> U8Image:
    """Composite straight RGBA over an opaque background colour."""
    a = np.asarray(alpha, dtype=np.float64)[..., None] / 255.0
    bg = np.asarray(background[:3], dtype=np.float64)
    out = round_half_up(rgb[..., :3].astype(np.float64) * a + bg * (1.0 - a))
    return np.clip(out, 0, 255).astype(np.uint8)


def mean_squared_error(a: U8Image, b: U8Image) -> float:
    """Mean squared per-channel difference of two RGB images of equal shape."""
    if a.shape[:2] != b.shape[:2]:
        raise ValueError(f"image shapes differ: {a.shape[:2]} vs {b.shape[:2]}")
    if a[..., :3].size == 0:
        return 0.0
    diff = a[..., :3].astype(np.float64) - b[..., :3].astype(np.float64)
    return float(np.mean(diff * diff))


def peak_signal_to_noise(a: U8Image, b: U8Image) -> float:
    mse = mean_squared_error(a, b)
    if mse == 0.0:
        return float("inf")
    return float(20.0 * np.log10(255.0 / np.sqrt(mse)))


def similarity_percentage(a: U8Image, b: U8Image) -> float:
    """100 * (1 - MSE / 255^2)."""
    return (1.0 - mean_squared_error(a, b) / (255.0 * 255.0)) * 100.0


__all__ = [
    "overlay_on_background",
    "mean_squared_error",
    "peak_signal_to_noise",
    "similarity_percentage",
]
