"""Buddhabrot: density of escaping Mandelbrot trajectories.

Every pixel is split into `(supersampling + 1)²` sample points. Orbits of the points that escape are projected back
onto the canvas, and each visited cell is counted. The final picture maps `count / max_count` linearly from
`color_zero` to `color_max`.
"""
import logging
import threading
from typing import Callable

import numba
import numpy as np

from escapetime.graphics import DataBox, allocate_image, render_rows
from escapetime.math.complex import c_pow
from escapetime.painters.escape_time import ESCAPE_RADIUS, modulus
from escapetime.util import to_numpy_color

logger = logging.getLogger(__name__)


# Hit buffer capacity of one row task, in visited cells.
HIT_BUFFER_SIZE = 1 << 16


@numba.jit("i8(i8,i8,i8,f8,f8,f8,i8,i8,c16,i8,i8,i4[:],i4[:])", nopython=True, nogil=True, error_model="numpy")
def trace_row(y, x_start, x_stop, up_left_re, up_left_im, scale, supersampling, max_iter, power, rows, columns,
              hit_rows, hit_columns):
    """Records cells visited by escaping trajectories of samples in pixels `x_start..x_stop` of row `y`.

    Writes cell coordinates into `hit_rows`/`hit_columns` and returns their number. The buffers must hold
    `(supersampling + 1)² * max_iter` hits per pixel.
    """
    hits = 0
    inc = (1 / scale) / (supersampling + 1)
    base_im = up_left_im - y / scale
    for x in range(x_start, x_stop):
        base_re = x / scale + up_left_re
        for j in range(supersampling + 1):
            for i in range(supersampling + 1):
                c = complex(base_re + i * inc, base_im - j * inc)
                z = 0j
                count = 0
                while count < max_iter and modulus(z) < ESCAPE_RADIUS:
                    z = c_pow(z, power) + c
                    count += 1
                if modulus(z) < ESCAPE_RADIUS:
                    continue
                # Escaped, replay the orbit.
                z = 0j
                for _ in range(count):
                    z = c_pow(z, power) + c
                    px = (z.real - up_left_re) * scale
                    py = (up_left_im - z.imag) * scale
                    if 0 <= px < columns and 0 <= py < rows:
                        hit_rows[hits] = int(py)
                        hit_columns[hits] = int(px)
                        hits += 1
    return hits


@numba.jit("void(u4[:,:],f8,u1[:],u1[:],u1[:,:,:])", nopython=True, nogil=True)
def _numba_density_to_rgb(counts, max_count, color_zero, color_max, ans):
    h, w = counts.shape
    for y in range(h):
        for x in range(w):
            t = counts[y, x] / max_count if max_count > 0 else 0.0
            for i in range(3):
                ans[y, x, i] = np.uint8(round(color_zero[i] + (float(color_max[i]) - color_zero[i]) * t))


class DensityMap:
    """Hit counts per canvas cell. Each row has its own lock, so hits on different rows are added concurrently."""

    def __init__(self, rows: int, columns: int):
        self.rows = rows
        self.columns = columns
        self.counts = np.zeros((rows, columns), dtype=np.uint32)
        self._row_locks = [threading.Lock() for _ in range(rows)]

    def add_hits(self, hit_rows: np.ndarray, hit_columns: np.ndarray):
        """Counts one visit for each `(hit_rows[k], hit_columns[k])` cell, locking only the rows touched."""
        order = np.argsort(hit_rows, kind="stable")
        hit_rows = hit_rows[order]
        hit_columns = hit_columns[order]
        starts = np.flatnonzero(np.diff(hit_rows)) + 1
        for begin, end in zip(np.concatenate(([0], starts)), np.concatenate((starts, [len(hit_rows)]))):
            if begin == end:
                continue
            r = hit_rows[begin]
            with self._row_locks[r]:
                np.add.at(self.counts[r], hit_columns[begin:end], 1)

    def get(self, r: int, c: int) -> int:
        return int(self.counts[r, c])

    def get_max(self) -> int:
        if self.counts.size == 0:
            return 0
        return int(self.counts.max())


class BuddhabrotRenderer:

    def __init__(self, data_box: DataBox,
                 supersampling: int = 1,
                 color_zero="black",
                 color_max="white",
                 max_workers: int = None,
                 is_aborted: Callable[[], bool] = lambda: False,
                 on_progress: Callable[[float], None] = None,
                 on_finish: Callable[[], None] = None):
        if supersampling < 0:
            raise ValueError("supersampling must be non-negative")
        self.data_box = data_box
        self.plane = data_box.plane
        self.image = data_box.image if data_box.image is not None else allocate_image(self.plane)
        self.supersampling = supersampling
        self.color_zero = to_numpy_color(color_zero)
        self.color_max = to_numpy_color(color_max)
        self.max_workers = max_workers
        self.is_aborted = is_aborted
        self.on_progress = on_progress
        self.on_finish = on_finish
        self.power = data_box.power.to_complex()
        self.density = DensityMap(int(self.plane.height), int(self.plane.width))
        self.rows_done = 0
        self._lock = threading.Lock()

    def _trace_row(self, y):
        samples = (self.supersampling + 1) ** 2 * self.data_box.max_iterations
        chunk = max(1, HIT_BUFFER_SIZE // samples)
        hit_rows = np.empty(chunk * samples, dtype=np.int32)
        hit_columns = np.empty(chunk * samples, dtype=np.int32)
        for x_start in range(0, self.density.columns, chunk):
            x_stop = min(x_start + chunk, self.density.columns)
            hits = trace_row(y, x_start, x_stop, self.plane.up_left.re, self.plane.up_left.im, self.plane.scale,
                             self.supersampling, self.data_box.max_iterations, self.power, self.density.rows,
                             self.density.columns, hit_rows, hit_columns)
            if hits > 0:
                self.density.add_hits(hit_rows[:hits], hit_columns[:hits])

    def _row_done(self):
        with self._lock:
            self.rows_done += 1
            fraction = self.rows_done / self.density.rows
        if self.on_progress is not None:
            self.on_progress(fraction)

    def draw_image(self):
        _numba_density_to_rgb(self.density.counts, float(self.density.get_max()), self.color_zero, self.color_max,
                              self.image)

    def render(self) -> bool:
        """Returns True if the picture was drawn, False if aborted."""
        completed = render_rows(self.density.rows, self._trace_row,
                                max_workers=self.max_workers,
                                is_aborted=self.is_aborted,
                                on_row_done=self._row_done)
        if not completed:
            logger.debug("Buddhabrot aborted after %d of %d rows", self.rows_done, self.density.rows)
            return False
        self.draw_image()
        logger.debug("Buddhabrot done, max density %d", self.density.get_max())
        if self.on_finish is not None:
            self.on_finish()
        return True
