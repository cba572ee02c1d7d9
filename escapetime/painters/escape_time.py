import math

import numba

from escapetime.math.complex import c_pow

ESCAPE_RADIUS = 2.0


@numba.jit("f8(c16)", nopython=True, nogil=True)
def modulus(z):
    return math.sqrt(z.real * z.real + z.imag * z.imag)


@numba.jit("i8(c16,c16,i8)", nopython=True, nogil=True, error_model="numpy")
def mandelbrot_count(c, power, max_iter):
    z = 0j
    count = 0
    while count < max_iter and modulus(z) < ESCAPE_RADIUS:
        z = c_pow(z, power) + c
        count += 1
    return count


@numba.jit("i8(c16,c16,c16,i8)", nopython=True, nogil=True, error_model="numpy")
def julia_count(c, power, constant, max_iter):
    radius = max(ESCAPE_RADIUS, modulus(c))
    z = c
    count = 0
    while count < max_iter and modulus(z) < radius:
        z = c_pow(z, power) + constant
        count += 1
    return count


@numba.jit("i8(c16,c16,i8)", nopython=True, nogil=True, error_model="numpy")
def burning_ship_count(c, power, max_iter):
    z = 0j
    count = 0
    while count < max_iter and modulus(z) < ESCAPE_RADIUS:
        z = c_pow(complex(abs(z.real), abs(z.imag)), power) - c
        count += 1
    return count


@numba.jit("i8(c16,c16,c16,i8)", nopython=True, nogil=True, error_model="numpy")
def burning_julia_count(c, power, constant, max_iter):
    radius = max(ESCAPE_RADIUS, modulus(c))
    z = c
    count = 0
    while count < max_iter and modulus(z) < radius:
        z = c_pow(complex(abs(z.real), abs(z.imag)), power) - constant
        count += 1
    return count
