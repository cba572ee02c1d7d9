import enum
from typing import Dict, Optional, Tuple

import numba
import numpy as np

from escapetime.errors import UnknownFractalError
from escapetime.graphics import ColorPalette, DataBox
from escapetime.math.complex import Complex
from .escape_time import mandelbrot_count, julia_count, burning_ship_count, burning_julia_count
from .lyapunov import lyapunov_count, lyapunov_palette
from .periodic import periodic_count, buffer_length


class Formula(enum.IntEnum):
    MANDELBROT = 0
    JULIA = 1
    BURNING_SHIP = 2
    BURNING_JULIA = 3
    MANDELBROT_PERIODIC = 4
    LYAPUNOV = 5


class PaletteMode(enum.Enum):
    CUSTOM = "custom"
    DEFAULT = "default"
    HUE = "hue"


_MANDELBROT = int(Formula.MANDELBROT)
_JULIA = int(Formula.JULIA)
_BURNING_SHIP = int(Formula.BURNING_SHIP)
_BURNING_JULIA = int(Formula.BURNING_JULIA)
_MANDELBROT_PERIODIC = int(Formula.MANDELBROT_PERIODIC)


@numba.jit("void(i8,c16[:],c16,c16,i8,c16[:],u4[:])", nopython=True, nogil=True, error_model="numpy")
def count_row(formula, points, power, constant, max_iter, buffer, ans):
    for i in range(points.shape[0]):
        c = points[i]
        if formula == _MANDELBROT:
            ans[i] = mandelbrot_count(c, power, max_iter)
        elif formula == _JULIA:
            ans[i] = julia_count(c, power, constant, max_iter)
        elif formula == _BURNING_SHIP:
            ans[i] = burning_ship_count(c, power, max_iter)
        elif formula == _BURNING_JULIA:
            ans[i] = burning_julia_count(c, power, constant, max_iter)
        elif formula == _MANDELBROT_PERIODIC:
            ans[i] = periodic_count(c, power, max_iter, buffer)
        else:
            ans[i] = lyapunov_count(c, power, max_iter)


class EscapeTimePainter:
    """Colors points of the plane by the number of iterations of `formula` they survive.

    Counts go through `palette`; a count equal to `max_iterations` (the point never escaped) gets its set color.
    """

    def __init__(self, formula: Formula, data_box: DataBox, palette: ColorPalette):
        self.formula = formula
        self.data_box = data_box
        self.plane = data_box.plane
        self.palette = palette
        self.power = data_box.power.to_complex()
        self.constant = data_box.constant.to_complex()
        self.max_iter = data_box.max_iterations
        self.buffer_length = buffer_length(self.max_iter) if formula == Formula.MANDELBROT_PERIODIC else 0

    def paint(self, points: np.ndarray, ans: np.ndarray):
        """Writes iteration counts of `points` (1D complex128) into `ans` (1D uint32)."""
        buffer = np.empty(self.buffer_length, dtype=np.complex128)
        count_row(int(self.formula), points, self.power, self.constant, self.max_iter, buffer, ans)

    def count(self, c: Complex) -> int:
        ans = np.zeros(1, dtype=np.uint32)
        self.paint(np.array([c.to_complex()], dtype=np.complex128), ans)
        return int(ans[0])

    def color_at(self, c: Complex) -> np.ndarray:
        return self.palette.lookup(self.count(c))

    def paint_row(self, y: int, out_row: np.ndarray):
        points = self.plane.row_points(y)
        counts = np.zeros(points.shape[0], dtype=np.uint32)
        self.paint(points, counts)
        self.palette.remap_row(counts, out_row)


def _variants(title: str, formula: Formula) -> Dict[str, Tuple[Formula, PaletteMode]]:
    return {
        title: (formula, PaletteMode.CUSTOM),
        f"{title} (default color)": (formula, PaletteMode.DEFAULT),
        f"{title} (HUE color)": (formula, PaletteMode.HUE),
    }


# All supported fractals, in menu order.
FRACTALS = {
    **_variants("Mandelbrot Simple", Formula.MANDELBROT),
    **_variants("Julia Simple", Formula.JULIA),
    **_variants("Mandelbrot Periodic", Formula.MANDELBROT_PERIODIC),
    **_variants("Burning Ship Simple", Formula.BURNING_SHIP),
    **_variants("Burning Julia Simple", Formula.BURNING_JULIA),
    "Mandelbrot Lyapunov": (Formula.LYAPUNOV, PaletteMode.DEFAULT),
}
FRACTAL_LIST = list(FRACTALS.keys())


def lookup_fractal(name: str) -> Tuple[Formula, PaletteMode]:
    if name not in FRACTALS:
        raise UnknownFractalError(f"Unknown fractal: {name!r}")
    return FRACTALS[name]


def resolve_palette(formula: Formula, mode: PaletteMode, max_iterations: int,
                    palette: Optional[ColorPalette] = None) -> ColorPalette:
    if formula == Formula.LYAPUNOV:
        return lyapunov_palette()
    if mode == PaletteMode.HUE:
        return ColorPalette.hue(max_iterations)
    if mode == PaletteMode.CUSTOM and palette is not None:
        return palette
    return ColorPalette.default(max_iterations)


def build_painter(name: str, data_box: DataBox, palette: Optional[ColorPalette] = None) -> EscapeTimePainter:
    """Creates painter for a fractal from FRACTAL_LIST. `palette` is used only by the variants without fixed colors."""
    formula, mode = lookup_fractal(name)
    return EscapeTimePainter(formula, data_box, resolve_palette(formula, mode, data_box.max_iterations, palette))
