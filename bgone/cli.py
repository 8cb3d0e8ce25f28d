# bgone/cli.py
"""
bgone command line.
Remove a solid background from an image, recovering straight RGBA.

Usage:
  bgone INPUT [OUTPUT] [--fg COLOR ...] [--bg COLOR] [--strict] --threshold T --debug

Modes:
  non-strict : default. Pixels close to a --fg colour are unmixed against the
               foreground colours; everything else gets the smallest alpha
               that reproduces it exactly.
  strict     : every pixel is a combination of the --fg colours. Needs --fg.

Colours:
  Hex 'rgb', 'rrggbb', '#rgb' or '#rrggbb'. '--fg auto' asks for a colour to
  be deduced from the image. Without --bg the background is the most common
  border colour.

Output:
  PNG. If OUTPUT is omitted, writes <stem>_bgone.png next to INPUT.
"""

from __future__ import annotations

import argparse
import os
import time
from pathlib import Path
from typing import List, Optional, Sequence

import numpy as np

from .background import detect_background
from .constants import ALPHA_SCAN_STEPS, DEFAULT_THRESHOLD
from .core_types import (
    InputError,
    Known,
    RGBTuple,
    Unknown,
    parse_foreground_spec,
    parse_hex,
    rgb_to_hex,
    validate_threshold,
)
from .deduce import deduce_colours
from .image_io import default_output_path, is_image_file, load_image_rgba, save_image_rgba
from .pipeline import remove_background
from .quality import overlay_on_background, peak_signal_to_noise, similarity_percentage
from .utils import (
    console_progress,
    debug_log,
    enable_line_buffered_stdout,
    error,
    format_seconds_compact,
    format_total_duration_compact,
    key_value_pairs_to_string,
    log,
    print_banner,
    print_config_line,
    warn,
)


def _default_workers() -> int:
    """Leave a few cores free for the system; returns a sensible worker count."""
    n = os.cpu_count() or 4
    reserve = 1 if n <= 6 else 2 if n <= 12 else 3 if n <= 18 else 4
    return max(1, n - reserve)


def parse_cli_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """
    Parse CLI arguments for background removal.

    Returns:
      argparse.Namespace with:
        input: Path to the source image
        output: optional Path for the result
        fg: list of colour strings ('auto' allowed)
        bg: optional background colour string
        strict: bool
        threshold: float
        scan_steps: int alpha scan resolution
        workers: internal threads
        debug: bool for verbose details
    """
    parser = argparse.ArgumentParser(
        prog="bgone",
        description="Remove a solid background colour and recover translucent foregrounds.",
    )
    parser.add_argument("input", type=Path, help="Input image")
    parser.add_argument(
        "output", type=Path, nargs="?", default=None, help="Output PNG (optional)"
    )
    parser.add_argument(
        "--fg",
        nargs="+",
        default=[],
        metavar="COLOR",
        help="Foreground colours as hex, or 'auto' to deduce one.",
    )
    parser.add_argument(
        "--bg", default=None, metavar="COLOR", help="Background colour. Omit to detect."
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Restrict output to the foreground colours.",
    )
    parser.add_argument(
        "--threshold",
        type=float,
        default=DEFAULT_THRESHOLD,
        help="Closeness / dedupe distance in normalised RGB, 0..1.",
    )
    parser.add_argument(
        "--scan-steps",
        type=int,
        default=ALPHA_SCAN_STEPS,
        help="Alpha scan resolution for non-strict mode.",
    )
    parser.add_argument(
        "--workers", type=int, default=_default_workers(), help="Internal workers"
    )
    parser.add_argument("--debug", action="store_true", help="Verbose details")
    return parser.parse_args(argv)


def _resolve_foregrounds(
    rgb: np.ndarray,
    specs: List,
    background: RGBTuple,
    threshold: float,
    workers: int,
    debug: bool,
) -> List[RGBTuple]:
    unknowns = sum(1 for s in specs if isinstance(s, Unknown))
    if unknowns == 0:
        return [s.rgb for s in specs if isinstance(s, Known)]

    colours = deduce_colours(
        rgb,
        specs,
        background,
        threshold,
        workers=workers,
        progress=console_progress("Deducing"),
        debug=debug,
    )
    deduced = [c for s, c in zip(specs, colours) if isinstance(s, Unknown)]
    log(
        f"Deduced {unknowns} unknown colour(s): "
        + " ".join(rgb_to_hex(c) for c in deduced)
    )
    return colours


def run(args: argparse.Namespace) -> int:
    """
    Process one image end-to-end:
      validate -> load -> background -> deduce -> unmix -> save -> report.

    Returns the process exit code. Raises InputError on bad user input.
    """
    t_start = time.perf_counter()
    threshold = validate_threshold(args.threshold)
    specs = [parse_foreground_spec(s) for s in args.fg]
    if args.strict and not specs:
        raise InputError("--strict needs at least one --fg colour", args.fg)
    bg_arg = parse_hex(args.bg) if args.bg is not None else None
    if args.scan_steps < 1:
        raise InputError(
            f"--scan-steps must be >= 1 (got: {args.scan_steps})", args.scan_steps
        )

    src: Path = args.input
    if not src.exists():
        error(f"not found: {src}")
        return 2
    if not src.is_file() or not is_image_file(src):
        error(f"not an image: {src}")
        return 2
    out_path = args.output if args.output is not None else default_output_path(src)
    workers = max(1, int(args.workers))

    print_config_line(
        "run",
        [
            ("Mode", "strict" if args.strict else "non-strict"),
            ("Threshold", threshold),
            ("Workers", workers),
        ],
        debug=False,
    )
    print_banner(src.name)

    rgb, alpha = load_image_rgba(src)
    height, width = rgb.shape[0], rgb.shape[1]
    t_loaded = time.perf_counter()
    if np.any(alpha < 255):
        warn("input alpha is ignored; stored colours are unmixed as if opaque")
    if args.debug:
        debug_log(
            key_value_pairs_to_string(
                [
                    ("Loaded", f"{width}x{height}"),
                    ("Alpha=255", int(np.count_nonzero(alpha == 255))),
                    ("Alpha=0", int(np.count_nonzero(alpha == 0))),
                ]
            )
        )

    if bg_arg is None:
        background = detect_background(rgb, alpha, debug=args.debug)
        log(f"Detected background: {rgb_to_hex(background)}")
    else:
        background = bg_arg
        log(f"Background: {rgb_to_hex(background)}")

    colours = _resolve_foregrounds(
        rgb, specs, background, threshold, workers, args.debug
    )
    if colours:
        log("Foreground: " + " ".join(rgb_to_hex(c) for c in colours))
    t_deduced = time.perf_counter()

    rgb_out, alpha_out = remove_background(
        rgb,
        colours,
        background,
        strict=args.strict,
        threshold=threshold,
        scan_steps=args.scan_steps,
        workers=workers,
        progress=console_progress("Unmixing"),
    )
    t_unmixed = time.perf_counter()

    written = save_image_rgba(out_path, rgb_out, alpha_out)
    t_saved = time.perf_counter()

    total_pixels = width * height
    transparent = int(np.count_nonzero(alpha_out == 0))
    opaque = int(np.count_nonzero(alpha_out == 255))
    log(f"Wrote {written.name} | size={width}x{height}")
    log(
        key_value_pairs_to_string(
            [
                ("Pixels", total_pixels),
                ("Transparent", transparent),
                ("Translucent", total_pixels - transparent - opaque),
                ("Opaque", opaque),
            ]
        )
    )

    if args.debug:
        recomposited = overlay_on_background(rgb_out, alpha_out, background)
        debug_log(
            key_value_pairs_to_string(
                [
                    ("Round-trip PSNR", peak_signal_to_noise(recomposited, rgb)),
                    ("Similarity", f"{similarity_percentage(recomposited, rgb):.3f}%"),
                ]
            )
        )
        debug_log(
            f"Total {format_total_duration_compact(t_saved - t_start)}  "
            f"(load={format_seconds_compact(t_loaded - t_start)}, "
            f"deduce={format_seconds_compact(t_deduced - t_loaded)}, "
            f"unmix={format_seconds_compact(t_unmixed - t_deduced)}, "
            f"save={format_seconds_compact(t_saved - t_unmixed)})"
        )
    else:
        log(f"Total time {format_total_duration_compact(t_saved - t_start)}")
    return 0


# Entry point


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI entry point. Returns 0 on success, 2 on bad input."""
    enable_line_buffered_stdout()
    args = parse_cli_args(argv)
    try:
        return run(args)
    except InputError as e:
        error(str(e))
        return 2


__all__ = ["parse_cli_args", "run", "main"]
