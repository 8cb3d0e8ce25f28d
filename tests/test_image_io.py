from pathlib import Path

import numpy as np
from PIL import Image

from conftest import solid, write_png

from bgone.image_io import (
    default_output_path,
    is_image_file,
    load_image_rgba,
    save_image_rgba,
)
from bgone.quality import (
    mean_squared_error,
    overlay_on_background,
    peak_signal_to_noise,
    similarity_percentage,
)


def test_load_keeps_translucent_alpha(tmp_path):
    rgb = solid(3, 4, (10, 20, 30))
    alpha = np.array([[0, 1, 127, 128], [200, 254, 255, 64], [5, 6, 7, 8]], dtype=np.uint8)
    path = write_png(tmp_path / "in.png", rgb, alpha)
    rgb_in, alpha_in = load_image_rgba(path)
    assert rgb_in.shape == (3, 4, 3) and rgb_in.dtype == np.uint8
    assert np.array_equal(alpha_in, alpha)
    assert np.array_equal(rgb_in[alpha > 0], rgb[alpha > 0])


def test_load_rgb_without_alpha_is_opaque(tmp_path):
    path = tmp_path / "in.jpg"
    Image.new("RGB", (5, 2), (0, 0, 0)).save(path)
    rgb_in, alpha_in = load_image_rgba(path)
    assert rgb_in.shape == (2, 5, 3)
    assert np.all(alpha_in == 255)


def test_save_forces_png_suffix(tmp_path):
    rgb = solid(2, 2, (1, 2, 3))
    alpha = np.array([[0, 50], [100, 255]], dtype=np.uint8)
    written = save_image_rgba(tmp_path / "out.jpg", rgb, alpha)
    assert written == tmp_path / "out.png"
    with Image.open(written) as im:
        assert im.mode == "RGBA"
        arr = np.array(im)
    assert np.array_equal(arr[..., 3], alpha)
    assert np.array_equal(arr[1, 1, :3], [1, 2, 3])


def test_default_output_path():
    assert default_output_path(Path("/tmp/pics/logo.jpeg")) == Path(
        "/tmp/pics/logo_bgone.png"
    )


def test_is_image_file(tmp_path):
    good = write_png(tmp_path / "a.png", solid(1, 1, (0, 0, 0)))
    bad = tmp_path / "b.png"
    bad.write_text("not an image")
    assert is_image_file(good)
    assert not is_image_file(bad)
    assert not is_image_file(tmp_path / "missing.png")


def test_overlay_and_metrics():
    rgb = np.array([[[255, 0, 0], [0, 0, 255]]], dtype=np.uint8)
    alpha = np.array([[255, 0]], dtype=np.uint8)
    out = overlay_on_background(rgb, alpha, (255, 255, 255))
    assert out.tolist() == [[[255, 0, 0], [255, 255, 255]]]
    assert peak_signal_to_noise(out, out) == float("inf")
    assert similarity_percentage(out, out) == 100.0

    other = out.copy()
    other[0, 1] = (255, 255, 240)
    assert mean_squared_error(out, other) == (15 * 15) / 6
    assert similarity_percentage(out, other) < 100.0
    assert peak_signal_to_noise(out, other) > 20.0


def test_overlay_half_alpha():
    rgb = np.array([[[255, 0, 0]]], dtype=np.uint8)
    out = overlay_on_background(rgb, np.array([[128]], dtype=np.uint8), (0, 0, 255))
    assert out.tolist() == [[[128, 0, 127]]]
