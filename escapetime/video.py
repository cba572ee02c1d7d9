import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from time import time
from typing import Callable, Optional

import numpy as np

from escapetime.errors import EncodingError
from escapetime.graphics import ColorPalette, DataBox, GridRenderer, default_workers
from escapetime.mixing import make_animation
from escapetime.painters import build_painter, lookup_fractal

logger = logging.getLogger(__name__)

DEFAULT_ANIMATION_PATH = "anime.gif"
DEFAULT_FRAME_DELAY_MS = 1000


class MoviepyGifSink:
    """Writes frames as a looping animated GIF."""

    def write(self, frames: np.ndarray, delay_ms: int, file_name: str):
        from moviepy.video.io.ImageSequenceClip import ImageSequenceClip

        dir_name = os.path.dirname(file_name)
        if dir_name and not os.path.exists(dir_name):
            os.makedirs(dir_name)
        clip = ImageSequenceClip(list(frames), durations=[delay_ms / 1000] * len(frames))
        clip.write_gif(file_name, fps=1000 / delay_ms, loop=0, logger=None)


class AnimationRenderer:
    """Renders frames between two parameter sets in parallel and passes them to a sink.

    Progress counts `frame_count + 5` steps: allocation, pool creation, dispatch, one per frame, all frames done and
    encoding done.
    """
    PHASES = 5

    def __init__(self, kind: str, frame_count: int, start: DataBox, end: DataBox,
                 palette: Optional[ColorPalette] = None,
                 file_name: str = DEFAULT_ANIMATION_PATH,
                 delay_ms: int = DEFAULT_FRAME_DELAY_MS,
                 sink=None,
                 max_workers: int = None,
                 is_aborted: Callable[[], bool] = lambda: False,
                 on_progress: Callable[[float], None] = None):
        if frame_count < 2:
            raise ValueError("Animation needs at least 2 frames")
        lookup_fractal(kind)
        self.kind = kind
        self.frame_count = frame_count
        self.start = start
        self.end = end
        self.palette = palette
        self.file_name = file_name
        self.delay_ms = delay_ms
        self.sink = sink or MoviepyGifSink()
        self.max_workers = max_workers
        self.is_aborted = is_aborted
        self.on_progress = on_progress
        self.frames = None  # type: Optional[np.ndarray]
        self.frames_done = 0
        self.steps_done = 0
        self.steps_total = frame_count + self.PHASES
        self.status_string = "Ready"
        self._frames_cancelled = threading.Event()
        self._lock = threading.Lock()

    def cancel_frame_threads(self):
        """Stops all frames being rendered, without cancelling the request they belong to."""
        self._frames_cancelled.set()

    def _frame_aborted(self) -> bool:
        return self._frames_cancelled.is_set() or self.is_aborted()

    def _step(self):
        with self._lock:
            self.steps_done += 1
            fraction = self.steps_done / self.steps_total
        if self.on_progress is not None:
            self.on_progress(fraction)

    def _render_frame(self, data_box: DataBox) -> bool:
        painter = build_painter(self.kind, data_box, self.palette)
        if not GridRenderer(painter, data_box.image, max_workers=1, is_aborted=self._frame_aborted).render():
            return False
        with self._lock:
            self.frames_done += 1
            frames_done = self.frames_done
        self.log("%d/%d frames" % (frames_done, self.frame_count))
        self._step()
        return True

    def render(self) -> bool:
        """Returns True if the animation was written, False if cancelled. Raises EncodingError if the sink fails."""
        time_start = time()
        plane = self.start.plane
        self.log("Allocating")
        self.frames = np.zeros((self.frame_count, int(plane.height), int(plane.width), 3), dtype=np.uint8)
        self._step()

        with ThreadPoolExecutor(max_workers=self.max_workers or default_workers()) as pool:
            self._step()
            self.log("Dispatching")
            boxes = make_animation(self.start, self.end, self.frame_count, self.frames)
            futures = [pool.submit(self._render_frame, box) for box in boxes]
            self._step()
            self.log("Awaiting frames")
            completed = [future.result() for future in futures]

        if not all(completed) or self.is_aborted():
            self.log("Cancelled")
            return False
        self._step()

        self.log(f"Saving {self.file_name}...")
        try:
            self.sink.write(self.frames, self.delay_ms, self.file_name)
        except Exception as e:
            self.log("Encoding failed")
            raise EncodingError(f"Could not write animation to {self.file_name}: {e}") from e
        self._step()
        self.log("Done in %.1f s" % (time() - time_start))
        return True

    def log(self, text):
        self.status_string = text
        logger.info(text)
