import numba

from escapetime.math.complex import c_pow
from escapetime.painters.escape_time import mandelbrot_count

PERIOD_DELTA = 0.01
MAX_BUFFER_LENGTH = 100


def buffer_length(max_iter: int) -> int:
    return min(MAX_BUFFER_LENGTH, max_iter // 10)


@numba.jit("b1(c16[:])", nopython=True, nogil=True)
def has_cycle(buffer):
    """Whether the newest `p` values repeat the `p` values before them, for some `2 <= p <= len(buffer) // 2`."""
    n = buffer.shape[0]
    for period in range(n // 2, 1, -1):
        matched = True
        for k in range(period):
            a = buffer[n - period + k]
            b = buffer[n - 2 * period + k]
            if not (abs(a.real - b.real) < PERIOD_DELTA and abs(a.imag - b.imag) < PERIOD_DELTA):
                matched = False
                break
        if matched:
            return True
    return False


@numba.jit("i8(c16,c16,i8,c16[:])", nopython=True, nogil=True, error_model="numpy")
def periodic_count(c, power, max_iter, buffer):
    """Mandelbrot iteration that stops once the orbit becomes periodic.

    Only used for powers with negative real part, where orbits rarely escape. `buffer` is scratch space; its length
    is the length of the sliding window of recent values.
    """
    if power.real >= 0:
        return mandelbrot_count(c, power, max_iter)
    n = buffer.shape[0]
    if n < 4:
        # Too short to hold two periods of length 2.
        return max_iter

    z = 0j
    filled = 0
    count = 0
    while count < max_iter:
        if filled < n:
            buffer[filled] = z
            filled += 1
        else:
            for k in range(n - 1):
                buffer[k] = buffer[k + 1]
            buffer[n - 1] = z
        if filled == n and has_cycle(buffer):
            break
        z = c_pow(z, power) + c
        count += 1
    return count
