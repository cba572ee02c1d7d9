import math

import numba
import numpy as np

from escapetime.graphics import ColorPalette
from escapetime.math.complex import c_pow
from escapetime.painters.escape_time import modulus

IN_SET = 1
OUT_OF_SET = 0


@numba.jit("i8(c16,c16,i8)", nopython=True, nogil=True, error_model="numpy")
def lyapunov_count(c, power, max_iter):
    """Classifies `c` by the average of `ln|z|` along the first `max_iter` values of its orbit.

    Non-positive average means the orbit is stable and `c` belongs to the set. Returns IN_SET or OUT_OF_SET.
    """
    z = 0j
    total = 0.0
    for _ in range(max_iter):
        z = c_pow(z, power) + c
        total += math.log(modulus(z))
    if total / max_iter <= 0:
        return IN_SET
    return OUT_OF_SET


def lyapunov_palette() -> ColorPalette:
    """White outside the set, black inside."""
    return ColorPalette(np.array([[255, 255, 255]], dtype=np.uint8), "black")
