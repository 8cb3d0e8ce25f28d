# bgone/core_types.py
from __future__ import annotations

"""
Core type aliases, small value objects, errors, and lightweight helpers.
"""

from dataclasses import dataclass
from typing import Callable, Sequence, Tuple, Union

import numpy as np
from numpy.typing import NDArray

# Basic aliases

RGBTuple = Tuple[int, int, int]  # 0..255 per channel
NormalizedRGB = Tuple[float, float, float]  # 0..1 per channel
HexStr = str

U8Image = NDArray[np.uint8]  # (H, W, 3)
U8Mask = NDArray[np.uint8]  # (H, W)
F64Rows = NDArray[np.float64]  # (N, 3) normalised colours

# Errors


class InputError(ValueError):
    """User-facing input problem. Carries the offending value."""

    def __init__(self, message: str, value: object) -> None:
        super().__init__(message)
        self.value = value


class InvalidColourFormat(InputError):
    """Hex colour string of the wrong length or with non-hex digits."""


class InvalidThreshold(InputError):
    """Threshold outside [0, 1]."""


# Value objects


@dataclass(frozen=True)
class Known:
    """Foreground colour given by the caller."""

    rgb: RGBTuple


@dataclass(frozen=True)
class Unknown:
    """Foreground colour to be deduced from the image."""


ForegroundSpec = Union[Known, Unknown]


@dataclass(frozen=True)
class UnmixResult:
    """Per-foreground weights (aligned with the foreground list) and overall alpha."""

    weights: Tuple[float, ...]
    alpha: float


@dataclass(frozen=True)
class PixelObservation:
    """Distinct observed colour and how many pixels carry it."""

    rgb: RGBTuple
    count: int


@dataclass(frozen=True)
class ProgressEvent:
    """Progress notification: `done` of `total` units finished in `stage`."""

    stage: str
    done: int
    total: int

    @property
    def fraction(self) -> float:
        return 1.0 if self.total <= 0 else self.done / self.total


ProgressCallback = Callable[[ProgressEvent], None]

# Small helpers

_HEX_DIGITS = frozenset("0123456789abcdef")
HEX_SHORTHAND_MULTIPLIER = 17


def clamp_value(value: float, lo: float, hi: float) -> float:
    """Clamp value to [lo, hi]."""
    return lo if value < lo else hi if value > hi else value


def rgb_to_hex(rgb: Sequence[int]) -> HexStr:
    """RGB tuple to lowercase hex string '#rrggbb'."""
    return f"#{int(rgb[0]):02x}{int(rgb[1]):02x}{int(rgb[2]):02x}"


def parse_hex(hex_str: str) -> RGBTuple:
    """
    Parse 'rgb', 'rrggbb', '#rgb' or '#rrggbb' (case-insensitive) into an RGB tuple.

    Shorthand digits expand as d*17, so 'f' becomes 255.
    Raises InvalidColourFormat on a bad length or a non-hex digit.
    """
    s = hex_str.strip().lower()
    digits = s[1:] if s.startswith("#") else s
    if len(digits) not in (3, 6):
        raise InvalidColourFormat(
            f"hex colour must be 3 or 6 hex digits (got: {hex_str!r})", hex_str
        )
    if not set(digits) <= _HEX_DIGITS:
        raise InvalidColourFormat(f"invalid hex colour: {hex_str!r}", hex_str)
    if len(digits) == 3:
        r, g, b = (int(d, 16) * HEX_SHORTHAND_MULTIPLIER for d in digits)
        return (r, g, b)
    return (int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16))


def parse_foreground_spec(text: str) -> ForegroundSpec:
    """'auto' means Unknown, anything else must be a hex colour."""
    if text.strip().lower() == "auto":
        return Unknown()
    return Known(parse_hex(text))


def validate_threshold(value: float) -> float:
    """Return value as float if it lies in [0, 1], else raise InvalidThreshold."""
    v = float(value)
    if not (0.0 <= v <= 1.0):
        raise InvalidThreshold(f"threshold must be within [0, 1] (got: {value})", value)
    return v


def coerce_to_rgb_tuple(value: Union[Sequence[int], NDArray[np.generic]]) -> RGBTuple:
    """
    Coerce a 3-length sequence or array to an (int, int, int) RGB tuple.
    Helpful when extracting values from NumPy rows.
    """
    if isinstance(value, np.ndarray):
        if value.size < 3:
            raise ValueError("array too small for RGB")
        flat = value.reshape(-1)
        return (int(flat[0]), int(flat[1]), int(flat[2]))
    if len(value) < 3:
        raise ValueError("sequence too small for RGB")
    return (int(value[0]), int(value[1]), int(value[2]))


def assert_u8_image_rgb(image: np.ndarray) -> U8Image:
    """Validate a uint8 (H,W,3 or 4) image and return it typed as U8Image."""
    if image.dtype != np.uint8 or image.ndim != 3 or image.shape[-1] < 3:
        raise TypeError("expected uint8 (H,W,3/4) image")
    return image  # type: ignore[return-value]


def assert_u8_mask_2d(mask_array: np.ndarray) -> U8Mask:
    """Validate a uint8 (H,W) mask and return it typed as U8Mask."""
    if mask_array.dtype != np.uint8 or mask_array.ndim != 2:
        raise TypeError("expected uint8 (H,W) mask")
    return mask_array  # type: ignore[return-value]


__all__ = [
    # aliases / types
    "RGBTuple",
    "NormalizedRGB",
    "HexStr",
    "U8Image",
    "U8Mask",
    "F64Rows",
    # errors
    "InputError",
    "InvalidColourFormat",
    "InvalidThreshold",
    # value objects
    "Known",
    "Unknown",
    "ForegroundSpec",
    "UnmixResult",
    "PixelObservation",
    "ProgressEvent",
    "ProgressCallback",
    # helpers
    "HEX_SHORTHAND_MULTIPLIER",
    "clamp_value",
    "rgb_to_hex",
    "parse_hex",
    "parse_foreground_spec",
    "validate_threshold",
    "coerce_to_rgb_tuple",
    "assert_u8_image_rgb",
    "assert_u8_mask_2d",
]
