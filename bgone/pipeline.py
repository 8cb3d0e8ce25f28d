# bgone/pipeline.py
from __future__ import annotations

"""
Per-pixel background removal.

Exports:
  process_pixel(observed, foregrounds, background, *, strict, threshold, scan_steps)
  remove_background(rgb, foregrounds, background, *, strict, threshold, ...)

Output is straight (non-premultiplied) RGBA.
"""

import math
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .colour_convert import denormalize_colour, normalize_colour
from .constants import ALPHA_SCAN_STEPS, DEFAULT_THRESHOLD
from .core_types import (
    NormalizedRGB,
    ProgressCallback,
    ProgressEvent,
    RGBTuple,
    U8Image,
    U8Mask,
    assert_u8_image_rgb,
    coerce_to_rgb_tuple,
)
from .unmix import compute_result_colour, is_close_to_any, minimise_alpha, unmix
from .utils import split_into_parts, unique_colours_with_inverse

PixelOut = Tuple[RGBTuple, int]


def _quantise_alpha_up(alpha: float) -> int:
    """Smallest 8-bit alpha not below `alpha` (float noise tolerated)."""
    return int(min(255, max(1, math.ceil(alpha * 255.0 - 1e-6))))


def _strict_pixel(
    observed: Sequence[int],
    fg_norm: List[NormalizedRGB],
    bg_norm: NormalizedRGB,
) -> PixelOut:
    result = unmix(observed, fg_norm, bg_norm, mode="optimised")
    colour, alpha = compute_result_colour(result, fg_norm)
    alpha8 = int(math.floor(alpha * 255.0 + 0.5))
    return denormalize_colour(colour), alpha8


def _minimal_alpha_pixel(
    observed: Sequence[int], bg_norm: NormalizedRGB, scan_steps: int
) -> PixelOut:
    _fg, alpha = minimise_alpha(observed, bg_norm, scan_steps=scan_steps)
    if alpha <= 0.0:
        return (0, 0, 0), 0
    alpha8 = _quantise_alpha_up(alpha)
    a = alpha8 / 255.0
    obs = np.asarray(normalize_colour(observed), dtype=np.float64)
    bg = np.asarray(bg_norm, dtype=np.float64)
    fg = np.clip(bg + (obs - bg) / a, 0.0, 1.0)
    return denormalize_colour(fg), alpha8


def process_pixel(
    observed: Sequence[int],
    foregrounds: Sequence[Sequence[int]],
    background: Sequence[int],
    *,
    strict: bool = False,
    threshold: float = DEFAULT_THRESHOLD,
    scan_steps: int = ALPHA_SCAN_STEPS,
) -> PixelOut:
    """
    Unmix one observed 8-bit colour into (foreground RGB, 8-bit alpha).

    Args:
      observed    : 8-bit RGB
      foregrounds : resolved 8-bit foreground colours (may be empty unless strict)
      background  : 8-bit RGB
      strict      : restrict output to combinations of `foregrounds`
      threshold   : closeness distance for non-strict mode with foregrounds

    Non-strict pixels that no single foreground explains get the smallest
    alpha that reproduces them; compositing the result back over the
    background gives the observed colour within 1 unit per channel.
    """
    fg_norm = [normalize_colour(c) for c in foregrounds]
    bg_norm = normalize_colour(background)
    if strict:
        return _strict_pixel(observed, fg_norm, bg_norm)
    if fg_norm and is_close_to_any(observed, fg_norm, bg_norm, threshold):
        return _strict_pixel(observed, fg_norm, bg_norm)
    return _minimal_alpha_pixel(observed, bg_norm, scan_steps)


def remove_background(
    rgb: U8Image,
    foregrounds: Sequence[Sequence[int]],
    background: Sequence[int],
    *,
    strict: bool = False,
    threshold: float = DEFAULT_THRESHOLD,
    scan_steps: int = ALPHA_SCAN_STEPS,
    workers: int = 1,
    progress: Optional[ProgressCallback] = None,
) -> Tuple[U8Image, U8Mask]:
    """
    Run process_pixel over a whole image.

    Steps:
      1) distinct colours with inverse index
      2) unmix each distinct colour once (thread pool over spans)
      3) materialise per-pixel

    Only the stored RGB is read; callers holding an alpha channel decide
    what to do with it before calling.

    Returns:
      rgb_out   : uint8 [H,W,3]
      alpha_out : uint8 [H,W]
    """
    assert_u8_image_rgb(rgb)
    height, width = rgb.shape[0], rgb.shape[1]
    unique_rgb, _counts, inverse_idx = unique_colours_with_inverse(rgb)
    total = unique_rgb.shape[0]
    if total == 0:
        return (
            np.zeros((height, width, 3), dtype=np.uint8),
            np.zeros((height, width), dtype=np.uint8),
        )

    colours = [coerce_to_rgb_tuple(row) for row in unique_rgb]
    out_rgb = np.zeros((total, 3), dtype=np.uint8)
    out_alpha = np.zeros((total,), dtype=np.uint8)

    def run_span(span: Tuple[int, int]) -> int:
        for k in range(span[0], span[1]):
            colour, a8 = process_pixel(
                colours[k],
                foregrounds,
                background,
                strict=strict,
                threshold=threshold,
                scan_steps=scan_steps,
            )
            out_rgb[k] = colour
            out_alpha[k] = a8
        return span[1] - span[0]

    workers = max(1, int(workers))
    spans = split_into_parts(total, workers * 4)
    done = 0
    if progress is not None:
        progress(ProgressEvent("unmix", 0, total))
    with ThreadPoolExecutor(max_workers=workers) as ex:
        for n in ex.map(run_span, spans):
            done += n
            if progress is not None:
                progress(ProgressEvent("unmix", done, total))

    rgb_out = out_rgb[inverse_idx].reshape(height, width, 3)
    alpha_out = out_alpha[inverse_idx].reshape(height, width)
    return rgb_out, alpha_out


__all__ = ["process_pixel", "remove_background"]
