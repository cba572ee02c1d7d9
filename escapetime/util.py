import re
from typing import List, Sequence

import matplotlib.colors
import numpy as np

from escapetime.errors import ParseError

HTML_COLOR_REGEX = re.compile(r"^#[0-9a-fA-F]{6}$")


def to_numpy_color(color) -> np.ndarray:
    """Converts `#rrggbb` string, color name or RGB list to numpy uint8 array representing RGB."""
    if isinstance(color, str):
        try:
            color = 255 * np.array(matplotlib.colors.to_rgb(color))
        except ValueError as e:
            raise ParseError(f"Invalid color: {color!r}") from e
        color = np.round(color)
    ans = np.array(color, dtype=np.uint8)
    if not ans.shape == (3,):
        raise ValueError("Wrong shape")
    return ans


def parse_color(text: str) -> np.ndarray:
    """Parses strictly `#rrggbb` web color."""
    text = text.strip()
    if not HTML_COLOR_REGEX.match(text):
        raise ParseError(f"Expected color like #rrggbb, got: {text!r}")
    return to_numpy_color(text)


def color_to_html(color) -> str:
    return '#{:02x}{:02x}{:02x}'.format(color[0], color[1], color[2])


def parse_list(text: str) -> List[str]:
    """Splits comma-separated list, dropping empty items."""
    return [item.strip() for item in text.split(",") if item.strip()]


def parse_stops(items: Sequence[str]) -> List[float]:
    try:
        return [float(item) for item in items]
    except ValueError as e:
        raise ParseError(f"Invalid stop: {e}") from e
