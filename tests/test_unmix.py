import numpy as np
import pytest

from bgone.colour_convert import normalize_colour
from bgone.core_types import UnmixResult
from bgone.unmix import (
    compute_result_colour,
    is_close_to_any,
    minimise_alpha,
    observed_rows,
    unmix,
    unmix_simple_batch,
)

WHITE = (1.0, 1.0, 1.0)
BLACK = (0.0, 0.0, 0.0)
RED = (1.0, 0.0, 0.0)
BLUE = (0.0, 0.0, 1.0)


@pytest.mark.parametrize("mode", ["simple", "optimised"])
@pytest.mark.parametrize(
    "foregrounds", [[RED], [RED, BLUE], [RED, BLUE, (0.0, 1.0, 0.0)]]
)
def test_background_pixel_is_transparent(mode, foregrounds):
    result = unmix((255, 255, 255), foregrounds, WHITE, mode=mode)
    assert result.alpha == pytest.approx(0.0, abs=1e-9)
    assert len(result.weights) == len(foregrounds)


def test_no_foregrounds():
    assert unmix((10, 20, 30), [], WHITE) == UnmixResult(weights=(), alpha=0.0)


def test_single_foreground_equal_to_observed():
    result = unmix((255, 0, 0), [RED], WHITE)
    assert result.weights[0] == pytest.approx(1.0)
    assert result.alpha == pytest.approx(1.0)


def test_red_on_black():
    result = unmix((255, 0, 0), [RED], BLACK)
    assert result.weights[0] == pytest.approx(1.0)
    assert result.alpha == pytest.approx(1.0)


def test_foreground_equal_to_background_gets_nothing():
    result = unmix((128, 64, 0), [WHITE], WHITE)
    assert result == UnmixResult(weights=(0.0,), alpha=0.0)


def test_single_foreground_projection_is_clamped():
    # pink lies a quarter of the way from white to red
    result = unmix((255, 191, 191), [RED], WHITE)
    assert result.alpha == pytest.approx(64 / 255)
    # a colour "beyond" the background projects to a negative weight
    assert unmix((255, 255, 255), [(0.5, 0.5, 0.5)], (0.75, 0.75, 0.75)).alpha == 0.0


def test_optimised_prefers_the_opaque_single_colour():
    gray = (0.502, 0.502, 0.502)
    result = unmix((128, 128, 128), [WHITE, gray], BLACK, mode="optimised")
    assert result.weights[1] > 0.9
    assert result.alpha > 0.99


def test_optimised_pair_reconstructs_a_mix():
    observed = (128, 0, 127)  # half red, half blue, fully opaque on black
    result = unmix(observed, [RED, BLUE, WHITE], BLACK, mode="optimised")
    colour, alpha = compute_result_colour(result, [RED, BLUE, WHITE])
    assert alpha == pytest.approx(255 / 255, abs=0.01)
    recon = np.asarray(colour) * alpha
    assert np.linalg.norm(recon - np.asarray(normalize_colour(observed))) < 0.01


def test_simple_mode_weights_are_non_negative_and_bounded():
    rows = observed_rows([(255, 0, 0), (0, 0, 0), (255, 255, 255), (30, 200, 90)])
    weights, alpha = unmix_simple_batch(rows, [RED, BLUE, (0.0, 1.0, 0.0)], WHITE)
    assert weights.shape == (4, 3)
    assert np.all(weights >= 0.0)
    assert np.all(weights.sum(axis=1) <= 1.0 + 1e-9)
    assert np.all((alpha >= 0.0) & (alpha <= 1.0))
    # black is "more than opaque" against white: renormalised to alpha 1
    assert alpha[1] == 1.0


def test_simple_mode_matches_single_unmix():
    fgs = [RED, BLUE]
    batch_w, batch_a = unmix_simple_batch(observed_rows([(200, 100, 150)]), fgs, WHITE)
    single = unmix((200, 100, 150), fgs, WHITE, mode="simple")
    assert single.weights == pytest.approx(tuple(batch_w[0]))
    assert single.alpha == pytest.approx(batch_a[0])


def test_compute_result_colour():
    assert compute_result_colour(UnmixResult((0.0, 0.0), 0.0), [RED, BLUE]) == (
        (0.0, 0.0, 0.0),
        0.0,
    )
    colour, alpha = compute_result_colour(UnmixResult((0.25, 0.25), 0.5), [RED, BLUE])
    assert colour == pytest.approx((0.5, 0.0, 0.5))
    assert alpha == 0.5


def test_minimise_alpha_background_is_transparent():
    assert minimise_alpha((255, 255, 255), WHITE) == ((0.0, 0.0, 0.0), 0.0)


@pytest.mark.parametrize(
    "observed, expected_fg, expected_alpha",
    [
        ((255, 242, 242), (1.0, 0.0, 0.0), 13 / 255),
        ((254, 255, 255), (0.0, 1.0, 1.0), 1 / 255),
        ((128, 255, 255), (0.0, 1.0, 1.0), 127 / 255),
        ((0, 0, 0), (0.0, 0.0, 0.0), 1.0),
    ],
)
def test_minimise_alpha_on_white(observed, expected_fg, expected_alpha):
    fg, alpha = minimise_alpha(observed, WHITE)
    assert alpha == pytest.approx(expected_alpha, abs=1e-9)
    assert fg == pytest.approx(expected_fg, abs=1e-6)


def test_minimise_alpha_reproduces_observed():
    rng = np.random.default_rng(7)
    for bg8 in [(255, 255, 255), (0, 0, 0), (20, 25, 30), (90, 160, 210)]:
        bg = normalize_colour(bg8)
        for observed in rng.integers(0, 256, size=(50, 3)):
            fg, alpha = minimise_alpha(tuple(int(v) for v in observed), bg)
            assert 0.0 <= alpha <= 1.0
            assert all(0.0 <= c <= 1.0 for c in fg)
            recon = alpha * np.asarray(fg) + (1.0 - alpha) * np.asarray(bg)
            assert np.allclose(recon * 255.0, observed, atol=1e-4)


def test_minimise_alpha_scan_only_result():
    # mid-grey background: no corner solution exists, the scan lands just under 0.5
    bg = (0.5, 0.5, 0.5)
    fg, alpha = minimise_alpha((191, 128, 64), bg, scan_steps=1000)
    assert alpha <= 0.5 + 1e-9
    recon = alpha * np.asarray(fg) + (1.0 - alpha) * np.asarray(bg)
    assert np.allclose(recon, normalize_colour((191, 128, 64)), atol=1e-9)


def test_is_close_to_any():
    assert is_close_to_any((255, 128, 128), [RED], WHITE, 0.05)
    assert not is_close_to_any((0, 0, 255), [RED], WHITE, 0.05)
    assert is_close_to_any((0, 0, 255), [RED, BLUE], WHITE, 0.05)
    # a foreground equal to the background never matches
    assert not is_close_to_any((255, 255, 255), [WHITE], WHITE, 0.05)
