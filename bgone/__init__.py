# bgone/__init__.py
"""
bgone package.

Purpose:
  Remove a solid background colour from an image and recover the translucent
  foreground. See bgone.cli for the command line.

Public API:
  detect_background : most common border colour.
  deduce_colours    : resolve 'auto' foreground slots from the image.
  process_pixel     : unmix one observed colour into (RGB, alpha).
  remove_background : process_pixel over a whole image.
  unmix             : unmixing engine (weights + alpha, alpha minimisation).
  core_types        : shared aliases, value objects, errors, hex parsing.
  constants         : tunables.
  utils             : shared helpers (logging, progress, partitioning).

Quick start:
  from bgone import detect_background, remove_background
  from bgone.image_io import load_image_rgba, save_image_rgba
"""

__version__ = "0.1.0"

# Re-export namespaces for convenience.
from . import colour_convert
from . import constants
from . import core_types
from . import unmix
from . import utils

from .background import detect_background  # noqa: E402,F401
from .core_types import (  # noqa: E402,F401
    InputError,
    InvalidColourFormat,
    InvalidThreshold,
    Known,
    Unknown,
    parse_hex,
)
from .deduce import deduce_colours  # noqa: E402,F401
from .pipeline import process_pixel, remove_background  # noqa: E402,F401

__all__ = [
    "__version__",
    "colour_convert",
    "constants",
    "core_types",
    "unmix",
    "utils",
    "detect_background",
    "deduce_colours",
    "process_pixel",
    "remove_background",
    "InputError",
    "InvalidColourFormat",
    "InvalidThreshold",
    "Known",
    "Unknown",
    "parse_hex",
]
