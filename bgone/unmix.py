# bgone/unmix.py
from __future__ import annotations

"""
Colour unmixing engine.

Inverts observed = alpha * foreground + (1 - alpha) * background for one
observed colour, either against a fixed list of foreground colours (weights
per colour plus overall alpha) or with an unconstrained foreground (smallest
alpha that reproduces the pixel exactly).

Modes for N >= 2 foregrounds:
  simple    : pseudo-inverse least squares, clamp, renormalise. Used to score
              trial palettes during colour deduction.
  optimised : least squares, every single colour, every pair; keep the highest
              alpha that still reconstructs the pixel. Used for final output.

Numerical degeneracies never raise; they fall back to fixed defaults.
"""

import itertools
from typing import List, Literal, Optional, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray

from .colour_convert import normalize_colour, normalize_rows
from .constants import (
    ALPHA_AGREEMENT_TOL,
    ALPHA_SCAN_STEPS,
    DEFAULT_THRESHOLD,
    EPSILON,
    GAMUT_TOL,
    PAIR_SEARCH_SKIP_ALPHA,
    RECONSTRUCTION_TOLERANCE,
)
from .core_types import F64Rows, NormalizedRGB, RGBTuple, UnmixResult, clamp_value

UnmixMode = Literal["simple", "optimised"]


def _foreground_rows(foregrounds: Sequence[Sequence[float]]) -> F64Rows:
    """Normalised foreground colours as a float64 [N,3] array."""
    if len(foregrounds) == 0:
        return np.zeros((0, 3), dtype=np.float64)
    return np.asarray(foregrounds, dtype=np.float64).reshape(-1, 3)


def _pseudo_inverse(columns: NDArray[np.float64]) -> Optional[NDArray[np.float64]]:
    """Moore-Penrose pseudo-inverse, or None if the SVD does not converge."""
    try:
        return np.linalg.pinv(columns, rcond=EPSILON)
    except np.linalg.LinAlgError:
        return None


def _projection_weight(
    target: NDArray[np.float64], direction: NDArray[np.float64]
) -> float:
    """Clamped 1-D projection of target onto direction; 0 for a zero direction."""
    norm_sq = float(np.dot(direction, direction))
    if np.sqrt(norm_sq) <= EPSILON:
        return 0.0
    return clamp_value(float(np.dot(target, direction)) / norm_sq, 0.0, 1.0)


def _reconstruction_error(
    weights: NDArray[np.float64],
    fg_rows: F64Rows,
    bg: NDArray[np.float64],
    observed: NDArray[np.float64],
) -> float:
    recon = weights @ fg_rows + (1.0 - float(weights.sum())) * bg
    return float(np.linalg.norm(recon - observed))


# Vectorised simple mode


def unmix_simple_batch(
    observed: F64Rows,
    foregrounds: Sequence[Sequence[float]],
    background: Sequence[float],
) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
    """
    Simple-mode unmix of many observed colours at once.

    Args:
      observed    : float64 [U,3] normalised observed colours
      foregrounds : N normalised foreground colours
      background  : normalised background colour

    Returns:
      weights : float64 [U,N]
      alpha   : float64 [U]
    """
    obs = np.asarray(observed, dtype=np.float64).reshape(-1, 3)
    fg_rows = _foreground_rows(foregrounds)
    bg = np.asarray(background, dtype=np.float64)[:3]
    num_obs, num_fg = obs.shape[0], fg_rows.shape[0]
    target = obs - bg

    if num_fg == 0:
        return np.zeros((num_obs, 0), dtype=np.float64), np.zeros(num_obs)

    if num_fg == 1:
        direction = fg_rows[0] - bg
        norm_sq = float(np.dot(direction, direction))
        if np.sqrt(norm_sq) <= EPSILON:
            weights = np.zeros((num_obs, 1), dtype=np.float64)
        else:
            weights = np.clip(target @ direction / norm_sq, 0.0, 1.0)[:, None]
        return weights, weights[:, 0].copy()

    pinv = _pseudo_inverse((fg_rows - bg).T)  # [N,3]
    if pinv is None:
        weights = np.zeros((num_obs, num_fg), dtype=np.float64)
        weights[:, 0] = 1.0
    else:
        weights = np.maximum(target @ pinv.T, 0.0)

    sums = weights.sum(axis=1)
    over = sums > 1.0
    weights[over] /= sums[over, None]
    alpha = np.where(over, 1.0, sums)
    return weights, alpha


# Opacity-optimised mode


def _unmix_optimised(
    obs: NDArray[np.float64],
    fg_rows: F64Rows,
    bg: NDArray[np.float64],
    tolerance: float,
    pair_skip_alpha: float,
) -> Tuple[NDArray[np.float64], float]:
    """
    Highest-alpha reconstruction among: full least squares (baseline), each
    single colour, each pair. Singles and pairs must reconstruct within tolerance.
    """
    num_fg = fg_rows.shape[0]
    target = obs - bg
    directions = fg_rows - bg
    best_weights = np.zeros(num_fg, dtype=np.float64)
    best_alpha = 0.0

    # 1) all colours
    pinv = _pseudo_inverse(directions.T)
    if pinv is not None:
        weights = np.maximum(pinv @ target, 0.0)
        total = float(weights.sum())
        if total > 0.0:
            alpha = min(total, 1.0)
            if alpha > best_alpha:
                best_weights = weights / total if total > 1.0 else weights
                best_alpha = alpha

    # 2) single colours
    for i in range(num_fg):
        if np.linalg.norm(directions[i]) <= EPSILON:
            continue
        weight = _projection_weight(target, directions[i])
        recon = weight * fg_rows[i] + (1.0 - weight) * bg
        error = float(np.linalg.norm(recon - obs))
        if weight > best_alpha and error < tolerance:
            best_weights = np.zeros(num_fg, dtype=np.float64)
            best_weights[i] = weight
            best_alpha = weight

    # 3) pairs
    if best_alpha < pair_skip_alpha:
        for i, j in itertools.combinations(range(num_fg), 2):
            pair_pinv = _pseudo_inverse(directions[[i, j]].T)
            if pair_pinv is None:
                continue
            pair = np.maximum(pair_pinv @ target, 0.0)
            total = float(pair.sum())
            if total <= 0.0:
                continue
            alpha = min(total, 1.0)
            if total > 1.0:
                pair = pair / total
            error = _reconstruction_error(pair, fg_rows[[i, j]], bg, obs)
            if alpha > best_alpha and error < tolerance:
                best_weights = np.zeros(num_fg, dtype=np.float64)
                best_weights[i], best_weights[j] = pair[0], pair[1]
                best_alpha = alpha

    return best_weights, best_alpha


def unmix(
    observed: Sequence[int],
    foregrounds: Sequence[Sequence[float]],
    background: Sequence[float],
    *,
    mode: UnmixMode = "optimised",
    tolerance: float = RECONSTRUCTION_TOLERANCE,
    pair_skip_alpha: float = PAIR_SEARCH_SKIP_ALPHA,
) -> UnmixResult:
    """
    Unmix one observed 8-bit colour against normalised foreground colours.

    N=0 gives alpha 0 and no weights. N=1 is a clamped projection onto
    (foreground - background). N>=2 depends on `mode`.
    """
    obs = np.asarray(normalize_colour(observed), dtype=np.float64)
    fg_rows = _foreground_rows(foregrounds)
    bg = np.asarray(background, dtype=np.float64)[:3]
    num_fg = fg_rows.shape[0]

    if num_fg == 0:
        return UnmixResult(weights=(), alpha=0.0)

    if num_fg == 1:
        weight = _projection_weight(obs - bg, fg_rows[0] - bg)
        return UnmixResult(weights=(weight,), alpha=weight)

    if mode == "simple":
        weights, alpha = unmix_simple_batch(obs[None, :], fg_rows, bg)
        return UnmixResult(
            weights=tuple(float(w) for w in weights[0]), alpha=float(alpha[0])
        )

    weights, alpha = _unmix_optimised(obs, fg_rows, bg, tolerance, pair_skip_alpha)
    return UnmixResult(weights=tuple(float(w) for w in weights), alpha=float(alpha))


def compute_result_colour(
    result: UnmixResult, foregrounds: Sequence[Sequence[float]]
) -> Tuple[NormalizedRGB, float]:
    """
    Weight-averaged foreground colour and alpha for an unmix result.
    Fully transparent results come back as black with alpha 0.
    """
    if result.alpha == 0.0:
        return (0.0, 0.0, 0.0), 0.0
    weights = np.asarray(result.weights, dtype=np.float64)
    total = float(weights.sum())
    if total <= 0.0:
        return (0.0, 0.0, 0.0), float(result.alpha)
    fg_rows = _foreground_rows(foregrounds)[: weights.size]
    colour = (weights[: fg_rows.shape[0]] @ fg_rows) / total
    return (float(colour[0]), float(colour[1]), float(colour[2])), float(result.alpha)


# Unconstrained foreground (non-strict)


def _corner_alpha(
    diff: NDArray[np.float64], bg: NDArray[np.float64]
) -> Optional[float]:
    """Smallest alpha reachable with an extreme (0/1 per channel) foreground."""
    best: Optional[float] = None
    for corner in itertools.product((0.0, 1.0), repeat=3):
        implied: List[float] = []
        feasible = True
        for c in range(3):
            denom = corner[c] - bg[c]
            if abs(denom) <= EPSILON:
                if abs(diff[c]) > EPSILON:
                    feasible = False
                    break
                continue
            implied.append(float(diff[c] / denom))
        if not feasible or not implied:
            continue
        if max(implied) - min(implied) > ALPHA_AGREEMENT_TOL:
            continue
        alpha = max(implied)
        if 0.0 < alpha <= 1.0 + ALPHA_AGREEMENT_TOL:
            alpha = min(alpha, 1.0)
            best = alpha if best is None else min(best, alpha)
    return best


def _scan_alpha(
    diff: NDArray[np.float64], bg: NDArray[np.float64], scan_steps: int
) -> Optional[float]:
    """First alpha on the k/scan_steps grid whose implied foreground is in gamut."""
    steps = max(1, int(scan_steps))
    alphas = np.arange(1, steps + 1, dtype=np.float64) / steps
    implied = bg[None, :] + diff[None, :] / alphas[:, None]
    in_gamut = np.all((implied >= -GAMUT_TOL) & (implied <= 1.0 + GAMUT_TOL), axis=1)
    if not np.any(in_gamut):
        return None
    return float(alphas[int(np.argmax(in_gamut))])


def minimise_alpha(
    observed: Sequence[int],
    background: Sequence[float],
    *,
    scan_steps: int = ALPHA_SCAN_STEPS,
) -> Tuple[NormalizedRGB, float]:
    """
    Smallest alpha, and its foreground, that reproduces `observed` exactly.

    Combines the extreme-corner solutions with a linear alpha scan of
    resolution 1/scan_steps; the smaller valid alpha wins. A pixel equal to
    the background is fully transparent (black, alpha 0). If nothing fits,
    the pixel is kept opaque as observed.
    """
    obs = np.asarray(normalize_colour(observed), dtype=np.float64)
    bg = np.asarray(background, dtype=np.float64)[:3]
    diff = obs - bg
    if np.all(np.abs(diff) <= EPSILON):
        return (0.0, 0.0, 0.0), 0.0

    found = [
        a
        for a in (_corner_alpha(diff, bg), _scan_alpha(diff, bg, scan_steps))
        if a is not None
    ]
    if not found:
        return (float(obs[0]), float(obs[1]), float(obs[2])), 1.0

    alpha = min(found)
    fg = np.clip(bg + diff / alpha, 0.0, 1.0)
    return (float(fg[0]), float(fg[1]), float(fg[2])), alpha


def is_close_to_any(
    observed: Sequence[int],
    foregrounds: Sequence[Sequence[float]],
    background: Sequence[float],
    threshold: float = DEFAULT_THRESHOLD,
) -> bool:
    """
    True if a single foreground colour blended over the background lands
    within `threshold` (normalised RGB distance) of the observed colour.
    """
    obs = np.asarray(normalize_colour(observed), dtype=np.float64)
    bg = np.asarray(background, dtype=np.float64)[:3]
    for fg in _foreground_rows(foregrounds):
        direction = fg - bg
        if np.linalg.norm(direction) <= EPSILON:
            continue
        weight = _projection_weight(obs - bg, direction)
        recon = weight * fg + (1.0 - weight) * bg
        if float(np.linalg.norm(recon - obs)) < threshold:
            return True
    return False


def observed_rows(observed: Sequence[RGBTuple]) -> F64Rows:
    """8-bit observed colours as normalised float64 [U,3] rows."""
    if len(observed) == 0:
        return np.zeros((0, 3), dtype=np.float64)
    return normalize_rows(np.asarray(observed, dtype=np.uint8).reshape(-1, 3))


__all__ = [
    "UnmixMode",
    "unmix",
    "unmix_simple_batch",
    "compute_result_colour",
    "minimise_alpha",
    "is_close_to_any",
    "observed_rows",
]
