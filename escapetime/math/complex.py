"""Double-precision complex numbers.

`Complex` is the immutable value type used at the configuration boundary (parsing, interpolation, DataBox fields).
The arithmetic itself lives in Numba kernels operating on `complex128`, so that the fractal painters and the value
type share exactly the same power function.

Non-finite results (division by zero, overflowing powers) are never raised: kernels are compiled with
`error_model="numpy"` and return `nan`/`inf` parts.
"""
import math
import re
from dataclasses import dataclass

import numba
import numpy as np

from escapetime.errors import ParseError

NUMBER_PATTERN = re.compile(r"-?\d+\.?\d*")


def _positional(x: float) -> str:
    return np.format_float_positional(x, unique=True, trim="0")


@numba.jit("c16(c16,c16)", nopython=True, nogil=True, error_model="numpy")
def c_pow(z, w):
    """Raises z to complex power w. Zero raised to anything is zero."""
    if z.real == 0.0 and z.imag == 0.0:
        return 0j
    mod2 = z.real * z.real + z.imag * z.imag
    arg = math.atan2(z.imag, z.real)
    new_mod = math.pow(mod2, w.real / 2) * math.exp(-w.imag * arg)
    new_arg = w.real * arg + 0.5 * w.imag * math.log(mod2)
    return complex(new_mod * math.cos(new_arg), new_mod * math.sin(new_arg))


@numba.jit("c16(c16,i8)", nopython=True, nogil=True, error_model="numpy")
def c_pow_int(z, n):
    """De Moivre's formula."""
    new_mod = math.pow(math.sqrt(z.real * z.real + z.imag * z.imag), float(n))
    new_arg = math.atan2(z.imag, z.real) * n
    return complex(new_mod * math.cos(new_arg), new_mod * math.sin(new_arg))


@numba.jit("c16(c16,c16)", nopython=True, nogil=True, error_model="numpy")
def c_div(z, w):
    den = w.real * w.real + w.imag * w.imag
    new_re = (z.real * w.real + z.imag * w.imag) / den
    new_im = (z.imag * w.real - z.real * w.imag) / den
    return complex(new_re, new_im)


@dataclass(frozen=True)
class Complex:
    re: float
    im: float

    def __post_init__(self):
        object.__setattr__(self, "re", float(self.re))
        object.__setattr__(self, "im", float(self.im))

    @staticmethod
    def from_number(x: int | float | complex | np.complex128) -> "Complex":
        x = complex(x)
        return Complex(x.real, x.imag)

    @staticmethod
    def parse(text: str) -> "Complex":
        """Reads the first two decimal numbers of a string like "(re, im)"."""
        tokens = NUMBER_PATTERN.findall(text)
        if len(tokens) < 2:
            raise ParseError(f"Expected a complex number like (re, im), got: {text!r}")
        return Complex(float(tokens[0]), float(tokens[1]))

    def to_complex(self) -> complex:
        return complex(self.re, self.im)

    def add(self, w: "Complex") -> "Complex":
        return Complex(self.re + w.re, self.im + w.im)

    def sub(self, w: "Complex") -> "Complex":
        return Complex(self.re - w.re, self.im - w.im)

    def mul(self, w: "Complex") -> "Complex":
        return Complex(self.re * w.re - self.im * w.im, self.im * w.re + self.re * w.im)

    def div(self, w: "Complex") -> "Complex":
        """Division. A zero divisor gives non-finite parts instead of an exception."""
        return Complex.from_number(c_div(self.to_complex(), w.to_complex()))

    def modulus(self) -> float:
        return math.sqrt(self.re * self.re + self.im * self.im)

    def argument(self) -> float:
        return math.atan2(self.im, self.re)

    def pow_int(self, n: int) -> "Complex":
        return Complex.from_number(c_pow_int(self.to_complex(), n))

    def pow(self, w: "Complex") -> "Complex":
        return Complex.from_number(c_pow(self.to_complex(), w.to_complex()))

    def interpolate(self, other: "Complex", t: float) -> "Complex":
        """Point at fraction `t` of the segment from self to other. Endpoints are exact."""
        if t == 0:
            return self
        if t == 1:
            return other
        return Complex(self.re + (other.re - self.re) * t, self.im + (other.im - self.im) * t)

    def is_close(self, other: "Complex", delta: float) -> bool:
        return abs(self.re - other.re) < delta and abs(self.im - other.im) < delta

    __add__ = add
    __sub__ = sub
    __mul__ = mul
    __truediv__ = div

    def __str__(self):
        # Positional notation, so that `parse` reads the text back exactly.
        return "(%s, %s)" % (_positional(self.re), _positional(self.im))
