"""Background requests: each render runs as a QRunnable on the global QThreadPool and is observed through a handle.

Callbacks (`on_progress`, `on_finish`) are invoked from worker threads.
"""
import enum
import logging
import threading
from dataclasses import replace
from time import time
from typing import Callable, Optional

import numpy as np
from PyQt5.QtCore import QRunnable, QThreadPool

from escapetime.buddhabrot import BuddhabrotRenderer
from escapetime.graphics import ColorPalette, DataBox, GridRenderer, allocate_image
from escapetime.painters import build_painter
from escapetime.video import AnimationRenderer, DEFAULT_ANIMATION_PATH, DEFAULT_FRAME_DELAY_MS

logger = logging.getLogger(__name__)


class TaskState(enum.Enum):
    READY = "ready"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    CANCELLED = "cancelled"
    FAILED = "failed"


class TaskHandle:
    """Controls one request: cancellation, progress and completion."""

    def __init__(self, on_progress: Callable[[float], None] = None, on_finish: Callable[[int], None] = None):
        self.on_progress = on_progress
        self.on_finish = on_finish
        self.state = TaskState.READY
        self.error = None  # type: Optional[Exception]
        self.elapsed_ms = None  # type: Optional[int]
        self.image = None  # type: Optional[np.ndarray]
        self._progress = 0.0
        self._cancelled = threading.Event()
        self._done = threading.Event()
        self._lock = threading.Lock()

    def cancel(self):
        self._cancelled.set()

    def is_cancelled(self) -> bool:
        return self._cancelled.is_set()

    def progress(self) -> float:
        return self._progress

    def report_progress(self, fraction: float):
        with self._lock:
            if fraction <= self._progress:
                return
            self._progress = min(1.0, fraction)
            value = self._progress
        if self.on_progress is not None:
            self.on_progress(value)

    def is_done(self) -> bool:
        return self._done.is_set()

    def wait(self, timeout: float = None) -> bool:
        """Blocks until the request ends. Returns False on timeout."""
        return self._done.wait(timeout)

    def _finish(self, state: TaskState, elapsed_ms: int = None, error: Exception = None):
        self.state = state
        self.elapsed_ms = elapsed_ms
        self.error = error
        self._done.set()


class AnimationHandle(TaskHandle):

    def __init__(self, on_progress: Callable[[float], None] = None, on_finish: Callable[[int], None] = None):
        super().__init__(on_progress, on_finish)
        self.renderer = None  # type: Optional[AnimationRenderer]

    def cancel_frame_threads(self):
        if self.renderer is not None:
            self.renderer.cancel_frame_threads()

    def cancel(self):
        self.cancel_frame_threads()
        super().cancel()

    @property
    def frames(self) -> Optional[np.ndarray]:
        return None if self.renderer is None else self.renderer.frames

    @property
    def status_string(self) -> str:
        return "Ready" if self.renderer is None else self.renderer.status_string


class RequestRunnable(QRunnable):
    """Runs `job` and records how it ended on `handle`. `job` returns False if it was cancelled.

    The request is CANCELLED whenever the handle was cancelled before `on_finish`, even if `job` completed.
    """

    def __init__(self, handle: TaskHandle, job: Callable[[], bool]):
        super().__init__()
        self.handle = handle
        self.job = job

    def run(self):
        handle = self.handle
        if handle.is_cancelled():
            handle._finish(TaskState.CANCELLED, elapsed_ms=0)
            return
        handle.state = TaskState.RUNNING
        time_start = time()
        try:
            completed = self.job()
            elapsed_ms = int(1000 * (time() - time_start))
            if not completed or handle.is_cancelled():
                handle._finish(TaskState.CANCELLED, elapsed_ms=elapsed_ms)
                return
            if handle.on_finish is not None:
                handle.on_finish(elapsed_ms)
            handle._finish(TaskState.SUCCEEDED, elapsed_ms=elapsed_ms)
        except Exception as e:
            logger.exception("Request failed")
            handle._finish(TaskState.FAILED, elapsed_ms=int(1000 * (time() - time_start)), error=e)


def _start(handle: TaskHandle, job: Callable[[], bool]):
    task = RequestRunnable(handle, job)
    task.setAutoDelete(True)
    QThreadPool.globalInstance().start(task)


def render(kind: str, data_box: DataBox, palette: Optional[ColorPalette] = None,
           on_progress: Callable[[float], None] = None,
           on_finish: Callable[[int], None] = None,
           max_workers: int = None) -> TaskHandle:
    """Starts rendering fractal `kind` into `data_box.image` (a new image if the box has none)."""
    painter = build_painter(kind, data_box, palette)
    handle = TaskHandle(on_progress, on_finish)
    handle.image = data_box.image if data_box.image is not None else allocate_image(data_box.plane)
    renderer = GridRenderer(painter, handle.image, max_workers=max_workers,
                            is_aborted=handle.is_cancelled,
                            on_progress=handle.report_progress)
    _start(handle, renderer.render)
    return handle


def animate(kind: str, frame_count: int, start: DataBox, end: DataBox, palette: Optional[ColorPalette] = None,
            file_name: str = DEFAULT_ANIMATION_PATH,
            delay_ms: int = DEFAULT_FRAME_DELAY_MS,
            sink=None,
            on_progress: Callable[[float], None] = None,
            on_finish: Callable[[int], None] = None,
            max_workers: int = None) -> AnimationHandle:
    handle = AnimationHandle(on_progress, on_finish)
    handle.renderer = AnimationRenderer(kind, frame_count, start, end, palette,
                                        file_name=file_name,
                                        delay_ms=delay_ms,
                                        sink=sink,
                                        max_workers=max_workers,
                                        is_aborted=handle.is_cancelled,
                                        on_progress=handle.report_progress)
    _start(handle, handle.renderer.render)
    return handle


def render_buddhabrot(data_box: DataBox, supersampling: int = 1, color_zero="black", color_max="white",
                      on_progress: Callable[[float], None] = None,
                      on_finish: Callable[[int], None] = None,
                      max_workers: int = None) -> TaskHandle:
    handle = TaskHandle(on_progress, on_finish)
    renderer = BuddhabrotRenderer(data_box, supersampling, color_zero, color_max,
                                  max_workers=max_workers,
                                  is_aborted=handle.is_cancelled,
                                  on_progress=handle.report_progress)
    handle.image = renderer.image
    _start(handle, renderer.render)
    return handle


class RenderSurface:
    """Visible picture. A new request cancels the previous one and replaces the picture once it is complete."""

    def __init__(self, width: int, height: int):
        self.image = np.zeros((height, width, 3), dtype=np.uint8)
        self.handle = None  # type: Optional[TaskHandle]

    def cancel(self):
        if self.handle is not None:
            self.handle.cancel()
            self.handle.wait()

    def render(self, kind: str, data_box: DataBox, palette: Optional[ColorPalette] = None,
               on_progress: Callable[[float], None] = None,
               on_finish: Callable[[int], None] = None,
               max_workers: int = None) -> TaskHandle:
        self.cancel()
        data_box = replace(data_box, image=allocate_image(data_box.plane))

        def _flip(elapsed_ms):
            self.image = data_box.image
            if on_finish is not None:
                on_finish(elapsed_ms)

        self.handle = render(kind, data_box, palette, on_progress=on_progress, on_finish=_flip,
                             max_workers=max_workers)
        return self.handle
