from __future__ import annotations

from pathlib import Path
from typing import Sequence, Tuple

import numpy as np
import pytest
from PIL import Image


def solid(height: int, width: int, colour: Sequence[int]) -> np.ndarray:
    """uint8 [H,W,3] filled with one colour."""
    out = np.zeros((height, width, 3), dtype=np.uint8)
    out[...] = np.asarray(colour, dtype=np.uint8)
    return out


def opaque(rgb: np.ndarray) -> np.ndarray:
    return np.full(rgb.shape[:2], 255, dtype=np.uint8)


def circle_gradients(
    width: int = 300, height: int = 100, radius: float = 40.0
) -> np.ndarray:
    """
    Red, green and blue radial gradients side by side on white.
    Fully saturated at each centre, fading to white at `radius`.
    """
    rgb = solid(height, width, (255, 255, 255))
    ys, xs = np.mgrid[0:height, 0:width].astype(np.float32)
    centres = ((50.0, 0), (150.0, 1), (250.0, 2))
    for cx, channel in centres:
        dist = np.sqrt((xs - cx) ** 2 + (ys - 50.0) ** 2)
        inside = dist < radius
        alpha = 1.0 - dist / radius
        faded = (255.0 * (1.0 - alpha)).astype(np.uint8)
        for c in range(3):
            if c == channel:
                continue
            rgb[..., c][inside] = faded[inside]
    return rgb


def write_png(path: Path, rgb: np.ndarray, alpha: np.ndarray | None = None) -> Path:
    if alpha is None:
        alpha = opaque(rgb)
    rgba = np.dstack([rgb, alpha]).astype(np.uint8)
    Image.fromarray(rgba).save(path)
    return path


@pytest.fixture
def red_square_on_black() -> np.ndarray:
    rgb = solid(100, 100, (0, 0, 0))
    rgb[25:75, 25:75] = (255, 0, 0)
    return rgb


@pytest.fixture
def red_square_on_white() -> np.ndarray:
    rgb = solid(40, 40, (255, 255, 255))
    rgb[10:30, 10:30] = (255, 0, 0)
    return rgb


@pytest.fixture
def red_and_blue_on_white() -> np.ndarray:
    rgb = solid(40, 60, (255, 255, 255))
    rgb[10:30, 5:25] = (255, 0, 0)
    rgb[10:30, 35:55] = (0, 0, 255)
    return rgb


@pytest.fixture
def gradients_on_white() -> np.ndarray:
    return circle_gradients()


def composite_u8(
    colour: Tuple[int, int, int], alpha8: int, background: Sequence[int]
) -> np.ndarray:
    """Float composite of an 8-bit RGBA pixel over an 8-bit background."""
    a = alpha8 / 255.0
    return a * np.asarray(colour, dtype=np.float64) + (1.0 - a) * np.asarray(
        background, dtype=np.float64
    )
