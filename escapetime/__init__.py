from escapetime.graphics import CartesianPlane, ColorPalette, DataBox, GridRenderer
from escapetime.math.complex import Complex
from escapetime.painters import FRACTAL_LIST, build_painter
