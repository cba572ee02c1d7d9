import numpy as np
import pytest

from escapetime.errors import UnknownFractalError
from escapetime.graphics import ColorPalette, DataBox, GridRenderer
from escapetime.math.complex import Complex
from escapetime.painters import FRACTAL_LIST, Formula, PaletteMode, build_painter, lookup_fractal, resolve_palette
from escapetime.painters.periodic import buffer_length, has_cycle
from escapetime.presets import PRESETS
from escapetime.test_util import _small_box


def _box(**kwargs) -> DataBox:
    return DataBox.create(4, 4, with_image=False, **kwargs)


def test_registry_has_sixteen_fractals():
    assert len(FRACTAL_LIST) == 16
    assert FRACTAL_LIST[0] == "Mandelbrot Simple"
    assert FRACTAL_LIST[-1] == "Mandelbrot Lyapunov"
    assert lookup_fractal("Burning Julia Simple (HUE color)") == (Formula.BURNING_JULIA, PaletteMode.HUE)
    assert lookup_fractal("Julia Simple (default color)") == (Formula.JULIA, PaletteMode.DEFAULT)
    assert {lookup_fractal(name)[0] for name in FRACTAL_LIST} == set(Formula)


@pytest.mark.parametrize("name", ["", "Mandelbrot", "mandelbrot simple", "Julia Simple (hue color)"])
def test_unknown_fractal(name):
    with pytest.raises(UnknownFractalError):
        build_painter(name, _box())


def test_resolve_palette():
    custom = ColorPalette.gradient("red", "blue", size=7)
    assert resolve_palette(Formula.MANDELBROT, PaletteMode.CUSTOM, 50, custom) is custom
    assert resolve_palette(Formula.MANDELBROT, PaletteMode.CUSTOM, 50, None) == ColorPalette.default(50)
    assert resolve_palette(Formula.JULIA, PaletteMode.DEFAULT, 50, custom) == ColorPalette.default(50)
    assert resolve_palette(Formula.JULIA, PaletteMode.HUE, 50, custom) == ColorPalette.hue(50)
    assert len(resolve_palette(Formula.BURNING_SHIP, PaletteMode.HUE, 123)) == 123
    assert len(resolve_palette(Formula.BURNING_SHIP, PaletteMode.DEFAULT, 77)) == 77


def test_mandelbrot_escape_time():
    palette = ColorPalette.gradient("yellow", "blue", size=100, color_set="#00ff00")
    painter = build_painter("Mandelbrot Simple", _box(max_iterations=100, power=Complex(2, 0)), palette)
    assert painter.count(Complex(0, 0)) == 100
    np.testing.assert_equal(painter.color_at(Complex(0, 0)), palette.color_set)
    assert painter.count(Complex(2, 2)) == 1
    np.testing.assert_equal(painter.color_at(Complex(2, 2)), palette.lookup(1))
    assert painter.count(Complex(-1, 0)) == 100
    assert painter.count(Complex(1, 0)) == 2


def test_julia_escape_time():
    painter = build_painter("Julia Simple", _box(max_iterations=50, constant=Complex(0, 0)))
    assert painter.count(Complex(0, 0)) == 50
    assert painter.count(Complex(0.5, 0.5)) == 50
    # Escape radius grows with |c|.
    assert painter.count(Complex(3, 0)) == 0
    assert painter.count(Complex(1.5, 0)) == 1


def test_burning_ship_escape_time():
    painter = build_painter("Burning Ship Simple", _box(max_iterations=50))
    assert painter.count(Complex(0, 0)) == 50
    assert painter.count(Complex(2, 2)) == 1
    assert painter.count(Complex(-1, 0)) == 2


def test_burning_julia_escape_time():
    painter = build_painter("Burning Julia Simple", _box(max_iterations=50, constant=Complex(0, 0)))
    assert painter.count(Complex(0.5, -0.5)) == 50
    assert painter.count(Complex(3, 0)) == 0


def test_periodic_with_positive_power_is_mandelbrot():
    box = _box(max_iterations=60)
    periodic = build_painter("Mandelbrot Periodic", box)
    mandelbrot = build_painter("Mandelbrot Simple", box)
    for c in [Complex(0, 0), Complex(-1, 0.2), Complex(0.3, 0.5), Complex(0.26, 0), Complex(2, 2)]:
        assert periodic.count(c) == mandelbrot.count(c)


def test_periodic_detects_cycles():
    painter = build_painter("Mandelbrot Periodic", _box(max_iterations=100, power=Complex(-2, 0)))
    assert buffer_length(100) == 10
    # Orbit of 0 is constant: cycle is found as soon as the window is full.
    assert painter.count(Complex(0, 0)) == 9
    assert painter.count(Complex(1, 0)) < 100


def test_periodic_with_short_buffer_never_matches():
    assert buffer_length(30) == 3
    painter = build_painter("Mandelbrot Periodic", _box(max_iterations=30, power=Complex(-2, 0)))
    assert painter.count(Complex(0, 0)) == 30
    assert painter.count(Complex(1, 0)) == 30


def test_buffer_length():
    assert buffer_length(5) == 0
    assert buffer_length(1000) == 100
    assert buffer_length(5000) == 100


def test_has_cycle():
    assert has_cycle(np.array([5, 1, 2, 1, 2], dtype=np.complex128))
    assert has_cycle(np.array([1, 2, 3, 1.001, 2.001, 3.001], dtype=np.complex128))
    assert has_cycle(np.array([7, 7, 7, 7], dtype=np.complex128))
    assert not has_cycle(np.array([1, 2, 3, 4, 5, 6], dtype=np.complex128))
    assert not has_cycle(np.array([1, 2, 1.1, 2.1], dtype=np.complex128))
    assert not has_cycle(np.array([1, 1, 1], dtype=np.complex128))
    assert not has_cycle(np.array([np.nan, np.nan, np.nan, np.nan], dtype=np.complex128))


def test_lyapunov():
    painter = build_painter("Mandelbrot Lyapunov", _box(max_iterations=50))
    np.testing.assert_equal(painter.color_at(Complex(0, 0)), [0, 0, 0])
    np.testing.assert_equal(painter.color_at(Complex(-1, 0)), [0, 0, 0])
    np.testing.assert_equal(painter.color_at(Complex(2, 2)), [255, 255, 255])


def test_lyapunov_ignores_custom_palette():
    custom = ColorPalette.gradient("red", "blue", size=50)
    painter = build_painter("Mandelbrot Lyapunov", _box(max_iterations=50), custom)
    np.testing.assert_equal(painter.color_at(Complex(2, 2)), [255, 255, 255])


def test_paint_row_matches_color_at():
    box = _small_box(width=12, height=6)
    for name in FRACTAL_LIST:
        painter = build_painter(name, box)
        row = np.zeros((12, 3), dtype=np.uint8)
        painter.paint_row(4, row)
        for x in range(12):
            np.testing.assert_equal(row[x], painter.color_at(box.plane.to_complex(x, 4)))


def test_non_finite_values_do_not_raise():
    box = _small_box(width=16, height=16, power=Complex(-1.5, 0.7), up_left=Complex(-1e-3, 1e-3),
                     down_right=Complex(1e-3, -1e-3))
    for name in FRACTAL_LIST:
        assert GridRenderer(build_painter(name, box), box.image).render()


# Fractal each preset view was made for.
_PRESET_KINDS = {
    "mandelbrot": "Mandelbrot Simple (default color)",
    "julia": "Julia Simple (HUE color)",
    "burning_ship": "Burning Ship Simple (default color)",
    "burning_julia": "Burning Julia Simple (HUE color)",
    "periodic": "Mandelbrot Periodic (default color)",
    "lyapunov": "Mandelbrot Lyapunov",
}


def test_every_preset_has_a_fractal():
    assert sorted(_PRESET_KINDS.keys()) == sorted(PRESETS.keys())


@pytest.mark.parametrize("preset_name", sorted(PRESETS.keys()))
def test_presets_render(preset_name):
    box = PRESETS[preset_name].make_data_box(32, 24)
    assert GridRenderer(build_painter(_PRESET_KINDS[preset_name], box), box.image).render()
    assert np.any(box.image != 0)
