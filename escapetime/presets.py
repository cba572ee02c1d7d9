from dataclasses import dataclass

from escapetime.graphics import DataBox, DEFAULT_CONSTANT, DEFAULT_POWER
from escapetime.math.complex import Complex


@dataclass(frozen=True)
class Preset:
    up_left: Complex
    down_right: Complex
    max_iterations: int = 100
    power: Complex = DEFAULT_POWER
    constant: Complex = DEFAULT_CONSTANT

    def make_data_box(self, width: int, height: int, with_image=True) -> DataBox:
        return DataBox.create(width, height,
                              max_iterations=self.max_iterations,
                              power=self.power,
                              constant=self.constant,
                              up_left=self.up_left,
                              down_right=self.down_right,
                              with_image=with_image)


PRESETS = {
    "mandelbrot": Preset(Complex(-2.5, 1.5), Complex(1, -1.5)),
    "julia": Preset(Complex(-1.6, 1.2), Complex(1.6, -1.2), max_iterations=200, constant=Complex(0.285, 0.013)),
    "burning_ship": Preset(Complex(-1.8, 2.0), Complex(2.2, -1.0)),
    "burning_julia": Preset(Complex(-2, 2), Complex(2, -2), constant=Complex(-0.5, -0.5)),
    "periodic": Preset(Complex(-2, 2), Complex(2, -2), power=Complex(-2, 0)),
    "lyapunov": Preset(Complex(-2, 2), Complex(2, -2), power=Complex(-2, 0)),
}  # type: dict[str, Preset]
