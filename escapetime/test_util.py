import numpy as np

from escapetime.graphics import DataBox
from escapetime.math.complex import Complex


def _match_pictures(x: np.ndarray, y: np.ndarray, max_mismatched_pixels: int = 0):
    if x is None or y is None or x.shape != y.shape:
        return False
    mismatch_count = np.sum(np.any(x != y, axis=-1))
    if mismatch_count > max_mismatched_pixels:
        print(f"Mismatched pixels: {mismatch_count}")
        return False
    return True


def _assert_same_pictures(x: np.ndarray, y: np.ndarray, max_mismatched_pixels: int = 0):
    if not _match_pictures(x, y, max_mismatched_pixels):
        raise AssertionError("Pictures differ")


def _small_box(width=40, height=30, max_iterations=50, power=Complex(2, 0), constant=Complex(0.285, 0.013),
               up_left=Complex(-2, 1.5), down_right=Complex(1, -1.5)) -> DataBox:
    return DataBox.create(width, height, max_iterations=max_iterations, power=power, constant=constant,
                          up_left=up_left, down_right=down_right)


class FakeSink:
    def __init__(self):
        self.calls = []

    def write(self, frames, delay_ms, file_name):
        self.calls.append((frames.copy(), delay_ms, file_name))


class FailingSink:
    def write(self, frames, delay_ms, file_name):
        raise OSError("Disk is full")
