import pytest

from bgone.core_types import (
    InputError,
    InvalidColourFormat,
    InvalidThreshold,
    Known,
    ProgressEvent,
    Unknown,
    parse_foreground_spec,
    parse_hex,
    rgb_to_hex,
    validate_threshold,
)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("ff0000", (255, 0, 0)),
        ("#00FF00", (0, 255, 0)),
        ("#0000ff", (0, 0, 255)),
        ("f00", (255, 0, 0)),
        ("#abc", (170, 187, 204)),
        ("  #102030 ", (16, 32, 48)),
    ],
)
def test_parse_hex_accepts_long_and_shorthand(text, expected):
    assert parse_hex(text) == expected


@pytest.mark.parametrize("text", ["", "#", "ff00", "#ff00000", "gg0000", "#12345z"])
def test_parse_hex_rejects_bad_input(text):
    with pytest.raises(InvalidColourFormat) as exc:
        parse_hex(text)
    assert exc.value.value == text
    assert isinstance(exc.value, InputError)
    assert isinstance(exc.value, ValueError)


def test_rgb_to_hex_round_trips_through_parse_hex():
    assert rgb_to_hex((255, 128, 0)) == "#ff8000"
    assert parse_hex(rgb_to_hex((1, 2, 3))) == (1, 2, 3)


def test_parse_foreground_spec():
    assert parse_foreground_spec("auto") == Unknown()
    assert parse_foreground_spec("AUTO") == Unknown()
    assert parse_foreground_spec("#f00") == Known((255, 0, 0))
    with pytest.raises(InvalidColourFormat):
        parse_foreground_spec("automatic")


def test_validate_threshold_bounds():
    assert validate_threshold(0) == 0.0
    assert validate_threshold(1) == 1.0
    assert validate_threshold("0.05") == 0.05
    for bad in (-0.01, 1.5):
        with pytest.raises(InvalidThreshold) as exc:
            validate_threshold(bad)
        assert exc.value.value == bad


def test_progress_event_fraction():
    assert ProgressEvent("unmix", 5, 10).fraction == 0.5
    assert ProgressEvent("unmix", 0, 0).fraction == 1.0
