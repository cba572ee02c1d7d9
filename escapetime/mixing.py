from typing import List, Optional

import numpy as np

from escapetime.graphics import CartesianPlane, DataBox


def mix_data_boxes(start: DataBox, end: DataBox, f: float, image: Optional[np.ndarray] = None) -> DataBox:
    """Parameters at fraction `f` of the way from `start` to `end`.

    Complex parameters and both corners move linearly; iteration limit and canvas size are taken from `start`. The
    result gets its own plane.
    """
    plane = CartesianPlane(start.plane.width, start.plane.height,
                           start.plane.up_left.interpolate(end.plane.up_left, f),
                           start.plane.down_right.interpolate(end.plane.down_right, f))
    return DataBox(max_iterations=start.max_iterations,
                   power=start.power.interpolate(end.power, f),
                   constant=start.constant.interpolate(end.constant, f),
                   plane=plane,
                   image=image)


def make_animation(start: DataBox, end: DataBox, frame_count: int,
                   images: Optional[np.ndarray] = None) -> List[DataBox]:
    """Continuously transforms `start` to `end`.

    Returns `frame_count` boxes, where frame `k` is taken at `k / (frame_count - 1)`. If `images` is given (array of
    shape `(frame_count, H, W, 3)`), frame `k` paints into `images[k]`.
    """
    if frame_count < 2:
        raise ValueError("Animation needs at least 2 frames")
    if images is not None:
        assert images.shape[0] == frame_count
    return [mix_data_boxes(start, end, k / (frame_count - 1), None if images is None else images[k])
            for k in range(frame_count)]
