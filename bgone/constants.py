# bgone/constants.py
"""
Tunables used across the project.

- Unmixing engine constants (tolerances, alpha scan resolution)
- Background detection sampling
- Colour deduction budgets, candidate generation and tie-break weights

Values are empirical. Every public function takes them as keyword
defaults so callers can override them.
"""
from __future__ import annotations

import math
from typing import List, Tuple

# =====================
# Shared / unmix engine
# =====================

# Numerical floor for vector norms and pseudo-inverse cut-off.
EPSILON: float = 1e-10

# Default closeness / deduplication threshold in normalised RGB distance.
DEFAULT_THRESHOLD: float = 0.05

# Max reconstruction error (normalised RGB) for single/pair solutions in the
# opacity-optimised engine.
RECONSTRUCTION_TOLERANCE: float = 0.01

# Pair search is skipped once the best alpha reaches this.
PAIR_SEARCH_SKIP_ALPHA: float = 0.99

# Resolution of the non-strict alpha scan (alpha = k / steps).
# Higher = finer alpha, slower per colour.
ALPHA_SCAN_STEPS: int = 1000

# Channels must agree on the implied alpha within this for an extreme corner.
ALPHA_AGREEMENT_TOL: float = 1e-6

# Slack allowed on [0, 1] when checking an implied foreground channel.
GAMUT_TOL: float = 1e-9

# Largest distance in the normalised RGB cube.
MAX_RGB_DISTANCE: float = math.sqrt(3.0)

# ====================
# Background detection
# ====================
EDGE_SAMPLE_INTERVAL: int = 10

# ===============
# Colour deduction
# ===============

# Only the most frequent observed colours seed candidates.
MAX_SOURCE_COLOURS: int = 100

# Plausible opacities used to invert the compositing equation.
CANDIDATE_ALPHAS: Tuple[float, ...] = (0.25, 0.5, 0.75, 0.9, 1.0)

# Max reconstruction error of a candidate, in 8-bit units.
CANDIDATE_MAX_ERROR: float = 5.0

# Observed colours this close to the background seed nothing.
BACKGROUND_SKIP_DISTANCE: float = 0.01

# Candidate pool size target per unknown slot.
CANDIDATES_PER_UNKNOWN: int = 10

# Exhaustive search caps.
MAX_CANDIDATES_PAIR_SEARCH: int = 20
MAX_CANDIDATES_TRIPLE_FULL: int = 25
MAX_CANDIDATES_TRIPLE_SELECTED: int = 20

# Tie-break penalty ceiling per trial colour (near-background colours pay most).
MAX_PENALTY_PER_COLOUR: float = 0.00001

# Saturated anchors appended to every candidate pool.
STANDARD_COLOURS: List[Tuple[Tuple[int, int, int], str]] = [
    ((255, 0, 0), "Red"),
    ((0, 255, 0), "Green"),
    ((0, 0, 255), "Blue"),
    ((255, 255, 0), "Yellow"),
    ((255, 0, 255), "Magenta"),
    ((0, 255, 255), "Cyan"),
    ((255, 128, 0), "Orange"),
    ((128, 0, 255), "Purple"),
]

# A standard colour is skipped when a candidate lies closer than this.
STANDARD_COLOUR_MIN_DISTANCE: float = 0.01

# Assigned to unknown slots the search could not fill.
FALLBACK_GREY: Tuple[int, int, int] = (128, 128, 128)

__all__ = [
    "EPSILON",
    "DEFAULT_THRESHOLD",
    "RECONSTRUCTION_TOLERANCE",
    "PAIR_SEARCH_SKIP_ALPHA",
    "ALPHA_SCAN_STEPS",
    "ALPHA_AGREEMENT_TOL",
    "GAMUT_TOL",
    "MAX_RGB_DISTANCE",
    "EDGE_SAMPLE_INTERVAL",
    "MAX_SOURCE_COLOURS",
    "CANDIDATE_ALPHAS",
    "CANDIDATE_MAX_ERROR",
    "BACKGROUND_SKIP_DISTANCE",
    "CANDIDATES_PER_UNKNOWN",
    "MAX_CANDIDATES_PAIR_SEARCH",
    "MAX_CANDIDATES_TRIPLE_FULL",
    "MAX_CANDIDATES_TRIPLE_SELECTED",
    "MAX_PENALTY_PER_COLOUR",
    "STANDARD_COLOURS",
    "STANDARD_COLOUR_MIN_DISTANCE",
    "FALLBACK_GREY",
]
