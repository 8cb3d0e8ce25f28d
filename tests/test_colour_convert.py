import numpy as np
import pytest

from bgone.colour_convert import (
    colour_distance,
    composite_over,
    composite_over_black,
    denormalize_colour,
    normalize_colour,
    round_half_up,
)


def test_normalize_and_denormalize():
    assert normalize_colour((255, 0, 51)) == (1.0, 0.0, 0.2)
    assert denormalize_colour((1.0, 0.0, 0.2)) == (255, 0, 51)


def test_denormalize_rounds_half_up_and_clamps():
    assert denormalize_colour((0.5, 1.2, -0.3)) == (128, 255, 0)


def test_round_half_up_differs_from_bankers_rounding():
    assert round_half_up(np.array([0.5, 1.5, 2.5, 2.4])).tolist() == [1.0, 2.0, 3.0, 2.0]


def test_colour_distance():
    assert colour_distance((0, 0, 0), (1, 1, 1)) == pytest.approx(np.sqrt(3.0))
    assert colour_distance((0.2, 0.3, 0.4), (0.2, 0.3, 0.4)) == 0.0


def test_composite_over():
    out = composite_over((1.0, 0.0, 0.0), 0.25, (1.0, 1.0, 1.0))
    assert out == pytest.approx([1.0, 0.75, 0.75])


def test_composite_over_black_leaves_opaque_rows_alone():
    rgb = np.array([[200, 100, 50], [200, 100, 50], [10, 20, 30]], dtype=np.uint8)
    alpha = np.array([255, 128, 0], dtype=np.uint8)
    out = composite_over_black(rgb, alpha)
    assert out.dtype == np.uint8
    assert out[0].tolist() == [200, 100, 50]
    assert out[1].tolist() == [100, 50, 25]
    assert out[2].tolist() == [0, 0, 0]
