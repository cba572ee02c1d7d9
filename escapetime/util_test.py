import numpy as np
import pytest

from escapetime.errors import ParseError
from escapetime.util import color_to_html, parse_color, parse_list, parse_stops, to_numpy_color


def test_to_numpy_color():
    np.testing.assert_equal(to_numpy_color("#ff8000"), [255, 128, 0])
    np.testing.assert_equal(to_numpy_color("white"), [255, 255, 255])
    np.testing.assert_equal(to_numpy_color([1, 2, 3]), [1, 2, 3])
    assert to_numpy_color("black").dtype == np.uint8
    with pytest.raises(ParseError):
        to_numpy_color("not a color")


@pytest.mark.parametrize("text", ["#000000", "#FFffFF", "#1a2b3c", " #102030 "])
def test_parse_color_round_trip(text):
    assert color_to_html(parse_color(text)) == text.strip().lower()


@pytest.mark.parametrize("text", ["", "red", "#fff", "#12345", "#1234567", "123456", "#gg0000"])
def test_parse_color_rejects_malformed_text(text):
    with pytest.raises(ParseError):
        parse_color(text)


def test_parse_list():
    assert parse_list("#000000, #ffffff,,") == ["#000000", "#ffffff"]
    assert parse_list("") == []


def test_parse_stops():
    assert parse_stops(["0", "0.25", "1"]) == [0.0, 0.25, 1.0]
    with pytest.raises(ParseError):
        parse_stops(["0", "half", "1"])
