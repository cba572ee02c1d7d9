import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from typing import Callable, Optional, Sequence, Tuple

import matplotlib.colors
import numba
import numpy as np
from matplotlib import pyplot as plt

from escapetime.math.complex import Complex
from escapetime.util import to_numpy_color

logger = logging.getLogger(__name__)


@numba.jit("void(u4[:],u1[:,:],u1[:],u1[:,:])", nopython=True, nogil=True)
def _numba_remap_row(counts, colors, color_set, out):
    colors_num = colors.shape[0]
    for x in range(counts.shape[0]):
        idx = counts[x]
        for i in range(3):
            if idx < colors_num:
                out[x, i] = colors[idx, i]
            else:
                out[x, i] = color_set[i]


@numba.jit("u1[:,:,:](u4[:,:],u1[:,:],u1[:])", nopython=True, nogil=True)
def _numba_remap(pic, colors, color_set):
    h, w = pic.shape
    colors_num = colors.shape[0]
    ans = np.zeros((h, w, 3), dtype=np.ubyte)
    for y in range(h):
        for x in range(w):
            idx = pic[y, x]
            for i in range(3):
                if idx < colors_num:
                    ans[y, x, i] = colors[idx, i]
                else:
                    ans[y, x, i] = color_set[i]
    return ans


# Default red palette, sampled from these stops.
DEFAULT_COLORS = [[40, 0, 0], "#ff0000", "#ffffff", "#ff0000", [100, 0, 0], "#ff0000", [50, 0, 0]]
DEFAULT_STOPS = [0.0, 0.17, 0.25, 0.30, 0.5, 0.75, 1.0]


@dataclass(frozen=True)
class ColorPalette:
    """Maps iteration counts to colors.

    Count `i` gets `colors[i]` while `i < len(colors)`; larger counts (points that never escaped) get `color_set`.
    """
    colors: np.ndarray
    color_set: np.ndarray = None

    def __post_init__(self):
        color_set = "black" if self.color_set is None else self.color_set
        object.__setattr__(self, "color_set", to_numpy_color(color_set))
        assert self.colors.shape == (self.colors.shape[0], 3)
        assert self.colors.dtype == np.uint8

    def __len__(self):
        return self.colors.shape[0]

    def lookup(self, count: int) -> np.ndarray:
        if count < len(self):
            return self.colors[count]
        return self.color_set

    def remap(self, pic: np.ndarray) -> np.ndarray:
        return _numba_remap(pic, self.colors, self.color_set)

    def remap_row(self, counts: np.ndarray, out: np.ndarray):
        _numba_remap_row(counts, self.colors, self.color_set, out)

    @staticmethod
    def from_stops(length: int, colors: Sequence, stops: Sequence[float], color_set="black") -> 'ColorPalette':
        """Samples `length` colors of the piecewise-linear gradient through `colors` placed at `stops`.

        Stops must start at 0, end at 1 and be strictly increasing.
        """
        if length < 1:
            raise ValueError("Palette length must be positive")
        if len(colors) != len(stops):
            raise ValueError("Colors and stops must have the same length")
        if len(stops) < 2:
            raise ValueError("Need at least two stops")
        if stops[0] != 0 or stops[-1] != 1:
            raise ValueError("Stops must start at 0 and end at 1")
        if any(b <= a for a, b in zip(stops, stops[1:])):
            raise ValueError("Stops must be strictly increasing")

        rgb = np.array([to_numpy_color(c) for c in colors], dtype=np.float64)
        ans = np.empty((length, 3), dtype=np.uint8)
        j = 0
        for i in range(length):
            p = i / (length - 1) if length > 1 else 0.0
            while j < len(stops) - 2 and p > stops[j + 1]:
                j += 1
            a = (p - stops[j]) / (stops[j + 1] - stops[j])
            ans[i, :] = np.round((1 - a) * rgb[j] + a * rgb[j + 1])
        return ColorPalette(ans, color_set)

    @staticmethod
    def hue(length: int, color_set="black") -> 'ColorPalette':
        """Full turn of the hue wheel at maximal saturation and brightness."""
        if length < 1:
            raise ValueError("Palette length must be positive")
        hsv = np.ones((length, 3))
        hsv[:, 0] = np.arange(length) / (length - 1) if length > 1 else 0.0
        rgb = matplotlib.colors.hsv_to_rgb(hsv)
        return ColorPalette(np.array(np.round(255 * rgb), dtype=np.uint8), color_set)

    @staticmethod
    def default(length: int) -> 'ColorPalette':
        return ColorPalette.from_stops(length, DEFAULT_COLORS, DEFAULT_STOPS, "black")

    @staticmethod
    def gradient(start_color, end_color, size=256, color_set="black") -> 'ColorPalette':
        return ColorPalette.from_stops(size, [start_color, end_color], [0.0, 1.0], color_set)

    def __eq__(self, other: 'ColorPalette'):
        return np.array_equal(self.colors, other.colors) and np.array_equal(self.color_set, other.color_set)


class CartesianPlane:
    """Maps pixels of a `width` x `height` canvas to the complex plane and back.

    `scale` is in pixels per plane unit. Only the horizontal extent of the corners is kept as given: the vertical
    extent follows from `scale` and `height` and is centered on the center of the given corners.
    """

    def __init__(self, width: int, height: int, up_left: Complex, down_right: Complex):
        self.width = width
        self.height = height
        side_x = down_right.re - up_left.re
        side_y = up_left.im - down_right.im
        center_im = up_left.im - side_y / 2

        self.scale = width / side_x
        new_side_y = height / self.scale
        self.up_left = Complex(up_left.re, center_im + new_side_y / 2)
        self.down_right = Complex(down_right.re, center_im - new_side_y / 2)

    def center(self) -> Complex:
        side_x = self.down_right.re - self.up_left.re
        side_y = self.up_left.im - self.down_right.im
        return Complex(self.up_left.re + side_x / 2, self.up_left.im - side_y / 2)

    def copy(self) -> 'CartesianPlane':
        plane = CartesianPlane.__new__(CartesianPlane)
        plane.__dict__.update(self.__dict__)
        return plane

    def to_complex(self, x: float, y: float) -> Complex:
        return Complex(x / self.scale + self.up_left.re, self.up_left.im - y / self.scale)

    def to_pixel(self, re: float, im: float) -> Tuple[float, float]:
        return (re - self.up_left.re) * self.scale, (self.up_left.im - im) * self.scale

    def row_points(self, y: int) -> np.ndarray:
        """Plane coordinates of every pixel in row `y`."""
        points = np.empty(int(self.width), dtype=np.complex128)
        points.real = np.arange(int(self.width)) / self.scale + self.up_left.re
        points.imag = self.up_left.im - y / self.scale
        return points

    def pan(self, start: Complex, stop: Complex):
        """Drag and drop: the point under `start` moves to `stop`."""
        delta = start - stop
        self.up_left = self.up_left + delta
        self.down_right = self.down_right + delta

    def zoom_center(self, center: Complex, zoom: float):
        """Multiplies visible width by `zoom` and centers the view on `center`."""
        new_side_x = (self.down_right.re - self.up_left.re) * zoom
        self.scale = self.width / new_side_x
        new_side_y = self.height / self.scale
        self.up_left = Complex(center.re - new_side_x / 2, center.im + new_side_y / 2)
        self.down_right = Complex(center.re + new_side_x / 2, center.im - new_side_y / 2)

    def zoom_at_point(self, point: Complex, zoom: float):
        """Multiplies visible width by `zoom`, keeping `point` at the same pixel."""
        delta_x = (point.re - self.up_left.re) * zoom
        delta_y = (self.up_left.im - point.im) * zoom
        new_scale = self.scale / zoom
        new_up_left = Complex(point.re - delta_x, point.im + delta_y)
        side_x = self.width / new_scale
        side_y = self.height / new_scale
        self.zoom_center(Complex(new_up_left.re + side_x / 2, new_up_left.im - side_y / 2), zoom)

    def __str__(self):
        return "%dx%d %s..%s" % (self.width, self.height, self.up_left, self.down_right)


ZOOM_BASE = 2.0
ZOOM_BASE_FINE = 1.1
ZOOM_BASE_COARSE = 10.0


def wheel_zoom_factor(delta: float, fine=False, coarse=False) -> float:
    """Zoom factor for a mouse wheel step: scrolling up zooms in."""
    base = ZOOM_BASE_FINE if fine else ZOOM_BASE_COARSE if coarse else ZOOM_BASE
    return 1 / base if delta > 0 else base


DEFAULT_MAX_ITERATIONS = 100
DEFAULT_POWER = Complex(2, 0)
DEFAULT_CONSTANT = Complex(0.285, 0.013)
DEFAULT_UP_LEFT = Complex(-2, 2)
DEFAULT_DOWN_RIGHT = Complex(2, -2)


def allocate_image(plane: CartesianPlane) -> np.ndarray:
    return np.zeros((int(plane.height), int(plane.width), 3), dtype=np.uint8)


@dataclass(frozen=True)
class DataBox:
    """Parameters of one fractal evaluation. `image` may be None when only a preview of parameters is needed."""
    max_iterations: int
    power: Complex
    constant: Complex
    plane: CartesianPlane
    image: Optional[np.ndarray] = None

    def __post_init__(self):
        if self.max_iterations < 1:
            raise ValueError("max_iterations must be positive")
        if self.image is not None:
            expected_shape = (int(self.plane.height), int(self.plane.width), 3)
            if self.image.shape != expected_shape or self.image.dtype != np.uint8:
                raise ValueError(f"Image must be uint8 array of shape {expected_shape}")

    @staticmethod
    def create(width: int, height: int,
               max_iterations=DEFAULT_MAX_ITERATIONS,
               power=DEFAULT_POWER,
               constant=DEFAULT_CONSTANT,
               up_left=DEFAULT_UP_LEFT,
               down_right=DEFAULT_DOWN_RIGHT,
               with_image=True) -> 'DataBox':
        plane = CartesianPlane(width, height, up_left, down_right)
        return DataBox(max_iterations, power, constant, plane, allocate_image(plane) if with_image else None)

    def with_image(self, image: Optional[np.ndarray] = None) -> 'DataBox':
        """Same parameters on a private copy of the plane, painting into `image` (fresh one if not given)."""
        plane = self.plane.copy()
        return replace(self, plane=plane, image=allocate_image(plane) if image is None else image)


def default_workers() -> int:
    return os.cpu_count() or 1


def render_rows(rows: int, render_row: Callable[[int], None],
                max_workers: int = None,
                is_aborted: Callable[[], bool] = lambda: False,
                on_row_done: Callable[[], None] = None) -> bool:
    """Calls `render_row(y)` for every row on a pool of worker threads.

    Abort is checked before each row, so rows that have not started are skipped. Returns True if all rows were done.
    """

    def _task(y):
        if is_aborted():
            return False
        render_row(y)
        if on_row_done is not None:
            on_row_done()
        return True

    workers = max_workers or default_workers()
    if workers == 1:
        for y in range(rows):
            if not _task(y):
                return False
        return True
    with ThreadPoolExecutor(max_workers=workers) as pool:
        results = list(pool.map(_task, range(rows)))
    return all(results)


class GridRenderer:
    """Paints every pixel of an image with a painter, one row per task. Can be aborted between rows."""

    def __init__(self, painter, image: np.ndarray,
                 max_workers: int = None,
                 is_aborted: Callable[[], bool] = lambda: False,
                 on_progress: Callable[[float], None] = None,
                 on_finish: Callable[[], None] = None):
        assert image.shape == (int(painter.plane.height), int(painter.plane.width), 3)
        self.painter = painter
        self.image = image
        self.max_workers = max_workers
        self.is_aborted = is_aborted
        self.on_progress = on_progress
        self.on_finish = on_finish
        self.rows = image.shape[0]
        self.rows_done = 0
        self._lock = threading.Lock()

    def _row_done(self):
        with self._lock:
            self.rows_done += 1
            fraction = self.rows_done / self.rows
        if self.on_progress is not None:
            self.on_progress(fraction)

    def _render_row(self, y):
        self.painter.paint_row(y, self.image[y])

    def render(self) -> bool:
        """Returns True if the whole image was painted, False if aborted."""
        completed = render_rows(self.rows, self._render_row,
                                max_workers=self.max_workers,
                                is_aborted=self.is_aborted,
                                on_row_done=self._row_done)
        if not completed:
            logger.debug("Aborted after %d of %d rows", self.rows_done, self.rows)
            return False
        if self.on_finish is not None:
            self.on_finish()
        return True


def save_picture(image: np.ndarray, file_name: str):
    dir_name = os.path.dirname(file_name)
    if dir_name and not os.path.exists(dir_name):
        os.makedirs(dir_name)
    plt.imsave(file_name, image)
