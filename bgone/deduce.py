# bgone/deduce.py
from __future__ import annotations

"""
Deduction of unknown foreground colours.

Steps:
  1) count distinct observed colours
  2) invert the compositing equation at a few plausible alphas to build
     candidate foregrounds from the most frequent colours
  3) deduplicate, shrink by greedy diverse selection, append saturated anchors
  4) search assignments of candidates to the unknown slots, scoring each trial
     by sqrt(count)-weighted reconstruction error over every distinct colour
     plus a tiny penalty for colours close to the background
"""

import itertools
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray

from .colour_convert import colour_distance, denormalize_colour, normalize_colour
from .constants import (
    BACKGROUND_SKIP_DISTANCE,
    CANDIDATE_ALPHAS,
    CANDIDATE_MAX_ERROR,
    CANDIDATES_PER_UNKNOWN,
    DEFAULT_THRESHOLD,
    FALLBACK_GREY,
    MAX_CANDIDATES_PAIR_SEARCH,
    MAX_CANDIDATES_TRIPLE_FULL,
    MAX_CANDIDATES_TRIPLE_SELECTED,
    MAX_PENALTY_PER_COLOUR,
    MAX_RGB_DISTANCE,
    MAX_SOURCE_COLOURS,
    STANDARD_COLOUR_MIN_DISTANCE,
    STANDARD_COLOURS,
)
from .core_types import (
    F64Rows,
    ForegroundSpec,
    Known,
    PixelObservation,
    ProgressCallback,
    ProgressEvent,
    RGBTuple,
    U8Image,
    Unknown,
    assert_u8_image_rgb,
    coerce_to_rgb_tuple,
    rgb_to_hex,
)
from .unmix import observed_rows, unmix_simple_batch
from .utils import debug_log, key_value_pairs_to_string, split_into_parts

Trial = Tuple[RGBTuple, ...]


# Observations


def collect_observations(rgb: U8Image) -> List[PixelObservation]:
    """
    Distinct RGB colours of every pixel with their counts.

    Sorted by descending count, ties by ascending RGB. Alpha is not consulted.
    """
    assert_u8_image_rgb(rgb)
    flat = np.ascontiguousarray(rgb[..., :3]).reshape(-1, 3)
    if flat.shape[0] == 0:
        return []
    uniques, counts = np.unique(flat, axis=0, return_counts=True)
    order = np.argsort(-counts, kind="stable")
    return [
        PixelObservation(
            rgb=coerce_to_rgb_tuple(uniques[i]),
            count=int(counts[i]),
        )
        for i in order
    ]


# Candidate palette


def _is_near_any(
    colour: RGBTuple, others: Sequence[RGBTuple], threshold: float
) -> bool:
    norm = normalize_colour(colour)
    for other in others:
        if other == colour or colour_distance(norm, normalize_colour(other)) < threshold:
            return True
    return False


def _saturation(colour: RGBTuple) -> int:
    return max(colour) - min(colour)


def select_most_different(colours: Sequence[RGBTuple], n: int) -> List[RGBTuple]:
    """
    Greedy diverse selection of up to n colours.

    Starts from the most saturated colour (max - min channel), then keeps
    adding the colour whose nearest selected neighbour is farthest away.
    Ties go to the earlier colour.
    """
    if len(colours) <= n:
        return list(colours)

    selected: List[RGBTuple] = []
    selected_norm: List[Tuple[float, float, float]] = []
    while len(selected) < n:
        pool = [c for c in colours if c not in selected]
        if not pool:
            break
        if not selected:
            pick = max(pool, key=_saturation)
        else:

            def nearest_selected(c: RGBTuple) -> float:
                norm = normalize_colour(c)
                return min(colour_distance(norm, s) for s in selected_norm)

            pick = max(pool, key=nearest_selected)
        selected.append(pick)
        selected_norm.append(normalize_colour(pick))
    return selected


def find_candidate_colours(
    observations: Sequence[PixelObservation],
    background: RGBTuple,
    max_candidates: int,
    threshold: float,
    *,
    max_sources: int = MAX_SOURCE_COLOURS,
    candidate_alphas: Sequence[float] = CANDIDATE_ALPHAS,
    max_error: float = CANDIDATE_MAX_ERROR,
    skip_distance: float = BACKGROUND_SKIP_DISTANCE,
) -> List[RGBTuple]:
    """
    Foreground colours that could have produced the most frequent observed
    colours when blended over `background` at one of `candidate_alphas`.

    Returns a list deduplicated by `threshold`, shrunk to `max_candidates`
    by greedy diverse selection when longer.
    """
    bg = np.asarray(normalize_colour(background), dtype=np.float64)
    raw: List[RGBTuple] = []

    for obs in observations[:max_sources]:
        obs_norm = np.asarray(normalize_colour(obs.rgb), dtype=np.float64)
        if colour_distance(obs_norm, bg) < skip_distance:
            continue
        obs_u8 = np.asarray(obs.rgb, dtype=np.float64)
        for alpha in candidate_alphas:
            fg = (obs_norm - bg * (1.0 - alpha)) / alpha
            if np.any(fg < 0.0) or np.any(fg > 1.0):
                continue
            recon = (fg * alpha + bg * (1.0 - alpha)) * 255.0
            if float(np.linalg.norm(recon - obs_u8)) < max_error:
                raw.append(denormalize_colour(fg))

    unique: List[RGBTuple] = []
    for colour in raw:
        if not _is_near_any(colour, unique, threshold):
            unique.append(colour)

    if len(unique) > max_candidates:
        return select_most_different(unique, max_candidates)
    return unique


def add_standard_colours(
    candidates: Sequence[RGBTuple],
    background: RGBTuple,
    known: Sequence[RGBTuple],
    *,
    min_distance: float = STANDARD_COLOUR_MIN_DISTANCE,
) -> List[RGBTuple]:
    """Append saturated anchors not already present, known, or equal to the background."""
    pool = list(candidates)
    for colour, _name in STANDARD_COLOURS:
        if colour == tuple(background) or colour in known:
            continue
        if not _is_near_any(colour, pool, min_distance):
            pool.append(colour)
    return pool


# Trial scoring


def evaluate_colour_set(
    foregrounds: F64Rows,
    observed: F64Rows,
    weights: NDArray[np.float64],
    background: NDArray[np.float64],
    *,
    max_penalty: float = MAX_PENALTY_PER_COLOUR,
) -> float:
    """
    Weighted mean reconstruction error of a foreground set, plus a tie-break
    penalty that grows as the foregrounds approach the background.

    Args:
      foregrounds : float64 [N,3] normalised trial foregrounds (same order as the specs)
      observed    : float64 [U,3] normalised distinct observed colours
      weights     : float64 [U] per-colour weights (sqrt of counts)
      background  : float64 [3] normalised background
    """
    unmix_weights, alpha = unmix_simple_batch(observed, foregrounds, background)
    recon = unmix_weights @ foregrounds + (1.0 - alpha)[:, None] * background[None, :]
    errors = np.sqrt(np.sum((recon - observed) ** 2, axis=1))
    total_weight = float(weights.sum())
    reconstruction = float(errors @ weights) / total_weight if total_weight > 0 else 0.0

    dist_to_bg = np.sqrt(np.sum((foregrounds - background[None, :]) ** 2, axis=1))
    penalty = float(np.mean((1.0 - dist_to_bg / MAX_RGB_DISTANCE) * max_penalty))
    return reconstruction + penalty


def _trial_rows(
    specs: Sequence[ForegroundSpec], unknown_colours: Trial
) -> F64Rows:
    """Trial foregrounds in the order of the specs: known colours fixed, unknowns filled in turn."""
    fill = iter(unknown_colours)
    rows = []
    for spec in specs:
        if isinstance(spec, Known):
            rows.append(normalize_colour(spec.rgb))
        else:
            rows.append(normalize_colour(next(fill)))
    return np.asarray(rows, dtype=np.float64)


def _score_trials(
    trials: List[Trial],
    specs: Sequence[ForegroundSpec],
    observed: F64Rows,
    weights: NDArray[np.float64],
    background: NDArray[np.float64],
    *,
    max_penalty: float,
    workers: int,
    progress: Optional[ProgressCallback],
) -> List[float]:
    """Score every trial; order of the returned scores matches `trials`."""

    def score_span(span: Tuple[int, int]) -> List[float]:
        return [
            evaluate_colour_set(
                _trial_rows(specs, trials[k]),
                observed,
                weights,
                background,
                max_penalty=max_penalty,
            )
            for k in range(span[0], span[1])
        ]

    total = len(trials)
    spans = split_into_parts(total, max(1, workers) * 4)
    scores: List[float] = []
    if progress is not None:
        progress(ProgressEvent("deduce", 0, total))
    with ThreadPoolExecutor(max_workers=max(1, workers)) as ex:
        for span_scores in ex.map(score_span, spans):
            scores.extend(span_scores)
            if progress is not None:
                progress(ProgressEvent("deduce", len(scores), total))
    return scores


# Entry points


def deduce_from_observations(
    observations: Sequence[PixelObservation],
    specs: Sequence[ForegroundSpec],
    background: RGBTuple,
    threshold: float = DEFAULT_THRESHOLD,
    *,
    candidates_per_unknown: int = CANDIDATES_PER_UNKNOWN,
    max_pair_candidates: int = MAX_CANDIDATES_PAIR_SEARCH,
    max_triple_candidates: int = MAX_CANDIDATES_TRIPLE_FULL,
    triple_selected: int = MAX_CANDIDATES_TRIPLE_SELECTED,
    max_penalty: float = MAX_PENALTY_PER_COLOUR,
    workers: int = 1,
    progress: Optional[ProgressCallback] = None,
    debug: bool = False,
) -> List[RGBTuple]:
    """
    Resolve every foreground spec to a colour, keeping their order.

    Known specs pass through. Unknown slots get the best-scoring assignment
    from the candidate pool; slots the pool cannot fill get FALLBACK_GREY.
    """
    known = [tuple(spec.rgb) for spec in specs if isinstance(spec, Known)]
    unknown_count = sum(1 for spec in specs if isinstance(spec, Unknown))
    if unknown_count == 0:
        return list(known)

    candidates = find_candidate_colours(
        observations, background, unknown_count * candidates_per_unknown, threshold
    )
    pool = add_standard_colours(candidates, background, known)

    best: List[RGBTuple] = []
    trials: List[Trial] = []
    if len(pool) <= unknown_count:
        best = list(pool)
    elif unknown_count == 1:
        trials = [(c,) for c in pool]
    elif unknown_count == 2:
        pair_pool = (
            pool
            if len(pool) <= max_pair_candidates
            else select_most_different(pool, max_pair_candidates)
        )
        trials = list(itertools.combinations(pair_pool, 2))
    elif unknown_count == 3:
        triple_pool = (
            pool
            if len(pool) <= max_triple_candidates
            else select_most_different(pool, triple_selected)
        )
        trials = list(itertools.combinations(triple_pool, 3))
    else:
        best = select_most_different(pool, unknown_count)

    best_score = float("nan")
    if trials:
        observed = observed_rows([o.rgb for o in observations])
        weights = np.sqrt(np.asarray([o.count for o in observations], dtype=np.float64))
        bg = np.asarray(normalize_colour(background), dtype=np.float64)
        scores = _score_trials(
            trials,
            specs,
            observed,
            weights,
            bg,
            max_penalty=max_penalty,
            workers=workers,
            progress=progress,
        )
        best_idx = int(np.argmin(np.asarray(scores)))
        best = list(trials[best_idx])
        best_score = scores[best_idx]

    if debug:
        debug_log(
            key_value_pairs_to_string(
                [
                    ("Distinct colours", len(observations)),
                    ("Candidates", len(candidates)),
                    ("Pool", len(pool)),
                    ("Trials", len(trials)),
                    ("Best score", best_score),
                ]
            )
        )
        debug_log("pool: " + " ".join(rgb_to_hex(c) for c in pool))

    fill = iter(best)
    resolved: List[RGBTuple] = []
    for spec in specs:
        if isinstance(spec, Known):
            resolved.append(spec.rgb)
        else:
            resolved.append(next(fill, FALLBACK_GREY))
    return resolved


def deduce_colours(
    rgb: U8Image,
    specs: Sequence[ForegroundSpec],
    background: RGBTuple,
    threshold: float = DEFAULT_THRESHOLD,
    *,
    candidates_per_unknown: int = CANDIDATES_PER_UNKNOWN,
    max_pair_candidates: int = MAX_CANDIDATES_PAIR_SEARCH,
    max_triple_candidates: int = MAX_CANDIDATES_TRIPLE_FULL,
    triple_selected: int = MAX_CANDIDATES_TRIPLE_SELECTED,
    max_penalty: float = MAX_PENALTY_PER_COLOUR,
    workers: int = 1,
    progress: Optional[ProgressCallback] = None,
    debug: bool = False,
) -> List[RGBTuple]:
    """
    Resolve foreground specs against an image.

    Args:
      rgb        : uint8 [H,W,3]
      specs      : Known / Unknown entries
      background : RGB tuple
      threshold  : candidate deduplication distance (normalised RGB)
      remaining keywords are passed to deduce_from_observations unchanged

    Returns:
      One RGB tuple per foreground spec, in the same order. With no Unknown specs the image
      is not read at all.
    """
    if not any(isinstance(spec, Unknown) for spec in specs):
        return [spec.rgb for spec in specs if isinstance(spec, Known)]
    observations = collect_observations(rgb)
    return deduce_from_observations(
        observations,
        specs,
        background,
        threshold,
        candidates_per_unknown=candidates_per_unknown,
        max_pair_candidates=max_pair_candidates,
        max_triple_candidates=max_triple_candidates,
        triple_selected=triple_selected,
        max_penalty=max_penalty,
        workers=workers,
        progress=progress,
        debug=debug,
    )


__all__ = [
    "collect_observations",
    "select_most_different",
    "find_candidate_colours",
    "add_standard_colours",
    "evaluate_colour_set",
    "deduce_from_observations",
    "deduce_colours",
]
