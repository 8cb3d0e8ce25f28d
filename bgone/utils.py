# bgone/utils.py
from __future__ import annotations

"""
Shared utilities for bgone.

Includes distinct-colour bookkeeping, work partitioning, progress formatting,
and tidy console logging.
"""

import sys
import time
from typing import Any, Iterable, List, Optional, Tuple

import numpy as np

from .core_types import ProgressCallback, ProgressEvent, U8Image


#  Time / size formatting


def format_seconds_compact(seconds: float) -> str:
    """Human-friendly seconds: '<ms>ms', '<s>s', or 'Mm Ss'."""
    if seconds < 1.0:
        return f"{seconds * 1000.0:.1f}ms"
    if seconds < 60.0:
        return f"{seconds:.3f}s"
    minutes = int(seconds // 60)
    return f"{minutes}m {seconds - 60 * minutes:.1f}s"


def format_eta(seconds: float | None) -> str:
    """Format an ETA in seconds as 'Hh Mm', 'Mm Ss', 'Ss', or '--:--' for unknown."""
    if seconds is None or not np.isfinite(seconds) or seconds < 0:
        return "--:--"
    total = int(round(seconds))
    if total >= 3600:
        return f"{total // 3600}h {(total % 3600) // 60}m"
    if total >= 60:
        return f"{total // 60}m {total % 60}s"
    return f"{total}s"


def format_total_duration_compact(seconds: float) -> str:
    """Compact total duration: 'Mm Ss', 'Ss.s', or 'ms'."""
    if seconds >= 60.0:
        minutes = int(seconds // 60)
        rem = int(round(seconds - 60 * minutes))
        return f"{minutes}m {rem}s"
    if seconds >= 1.0:
        return f"{seconds:.1f}s"
    return f"{seconds * 1000.0:.1f}ms"


# Distinct colours / partitioning


def unique_colours_with_inverse(
    rgb: U8Image,
) -> Tuple[U8Image, np.ndarray, np.ndarray]:
    """
    Distinct RGB rows of an image with counts and inverse index.

    Returns:
      unique_rgb: uint8 [U,3]
      counts: int64 [U]
      inverse_idx: int64 [H*W], where unique_rgb[inverse_idx] rebuilds the flattened pixels
    """
    flat = np.ascontiguousarray(rgb[..., :3]).reshape(-1, 3)
    if flat.shape[0] == 0:
        return (
            np.zeros((0, 3), dtype=np.uint8),
            np.zeros((0,), dtype=np.int64),
            np.zeros((0,), dtype=np.int64),
        )
    unique_rgb, inverse_idx, counts = np.unique(
        flat, axis=0, return_inverse=True, return_counts=True
    )
    return (
        unique_rgb.astype(np.uint8, copy=False),
        counts.astype(np.int64, copy=False),
        inverse_idx.reshape(-1).astype(np.int64, copy=False),
    )


def split_into_parts(length: int, parts: int) -> List[Tuple[int, int]]:
    """Partition range [0, length) into ~parts contiguous [start, end) spans."""
    if length <= 0:
        return []
    parts = max(1, int(parts))
    step = (length + parts - 1) // parts
    return [(start, min(start + step, length)) for start in range(0, length, step)]


#  CLI / progress logging


def print_progress_line(message: str, final: bool = False) -> None:
    """Print a single-line progress message that overwrites previous output."""
    sys.stdout.write("\r\033[K" + message)
    sys.stdout.flush()
    if final:
        sys.stdout.write("\n")
        sys.stdout.flush()


def console_progress(label: Optional[str] = None) -> ProgressCallback:
    """
    Progress observer that renders '<label> 42.0%  ETA 3s' on one line.
    Finishes the line once an event reports done == total.
    """
    started: dict[str, float] = {}

    def on_event(event: ProgressEvent) -> None:
        now = time.perf_counter()
        t0 = started.setdefault(event.stage, now)
        frac = event.fraction
        eta: Optional[float] = None
        if 0.0 < frac < 1.0:
            eta = (now - t0) * (1.0 - frac) / frac
        name = label or event.stage
        done = event.done >= event.total
        tail = format_seconds_compact(now - t0) if done else f"ETA {format_eta(eta)}"
        print_progress_line(
            f"{name} {format_percentage(frac)}  ({event.done:,}/{event.total:,})  {tail}",
            final=done,
        )

    return on_event


def enable_line_buffered_stdout() -> None:
    """
    Enable line-buffered stdout when supported.
    Helps live progress printing in terminals that expose .reconfigure().
    """
    reconfig = getattr(sys.stdout, "reconfigure", None)
    if callable(reconfig):
        try:
            reconfig(line_buffering=True, write_through=True)
        except (OSError, ValueError):
            pass


# Pretty logging


def format_bool_on_off(value: Any) -> str:
    """Pretty boolean: 'on'/'off' for bools; str(value) otherwise."""
    if isinstance(value, bool):
        return "on" if value else "off"
    return str(value)


def format_number_compact(value: Any) -> str:
    """Pretty number: 1_234 style for ints; compact for floats; passthrough otherwise."""
    if isinstance(value, int):
        return f"{value:,}"
    if isinstance(value, float):
        if not np.isfinite(value):
            return "-"
        if value != 0.0 and abs(value) < 0.001:
            return f"{value:.2e}"
        return f"{value:.3f}".rstrip("0").rstrip(".")
    return str(value)


def format_percentage(x: float, decimals: int = 1) -> str:
    """Format percentage; accepts 0..1 or 0..100 inputs."""
    val = x * 100.0 if 0.0 <= x <= 1.0 else x
    return f"{val:.{decimals}f}%"


def key_value_pairs_to_string(
    pairs: Iterable[Tuple[str, Any]], sep: str = "  ", eq: str = ": "
) -> str:
    """
    Format (name, value) pairs as 'Name: value' blocks separated by sep.
    Uses format_bool_on_off / format_number_compact for readability.
    """
    out: List[str] = []
    for name, value in pairs:
        display = (
            format_bool_on_off(value)
            if isinstance(value, bool)
            else format_number_compact(value)
        )
        out.append(f"{name}{eq}{display}")
    return sep.join(out)


def print_config_line(
    section: str, pairs: Iterable[Tuple[str, Any]], debug: bool
) -> None:
    """
    Emit a single human-readable config line, e.g.:
      [run] Mode: strict  Threshold: 0.05  Workers: 8
    Routes to debug() when debug=True, else to log().
    """
    line = f"[{section}] {key_value_pairs_to_string(pairs)}"
    (debug_log if debug else log)(line)


def print_banner(title: str) -> None:
    """Section banner."""
    print(f"\n=== {title} ===", flush=True)


def log(message: str) -> None:
    """Plain log line."""
    print(message, flush=True)


def debug_log(message: str) -> None:
    """Debug log line."""
    print(f"[debug] {message}", flush=True)


def warn(message: str) -> None:
    """Warning log line."""
    print(f"[warn] {message}", flush=True)


def error(message: str) -> None:
    """Error log line to stderr."""
    print(f"[error] {message}", file=sys.stderr, flush=True)


__all__ = [
    "format_seconds_compact",
    "format_eta",
    "format_total_duration_compact",
    "unique_colours_with_inverse",
    "split_into_parts",
    "print_progress_line",
    "console_progress",
    "enable_line_buffered_stdout",
    "format_bool_on_off",
    "format_number_compact",
    "format_percentage",
    "key_value_pairs_to_string",
    "print_config_line",
    "print_banner",
    "log",
    "debug_log",
    "warn",
    "error",
]
