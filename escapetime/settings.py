import os

from PyQt5.QtCore import QSettings

from escapetime.graphics import DEFAULT_MAX_ITERATIONS, default_workers
from escapetime.video import DEFAULT_ANIMATION_PATH, DEFAULT_FRAME_DELAY_MS


class RenderSettings:
    """Persisted defaults for rendering. Stored in the native settings store, or in an INI file if `path` is given."""

    def __init__(self, path: str = None):
        if path is None:
            self.qsettings = QSettings("escapetime", "escapetime")
        else:
            self.qsettings = QSettings(os.fspath(path), QSettings.IniFormat)

        def _load_int(name):
            val = self.qsettings.value(name)
            return int(val) if val is not None else None

        self.width = _load_int("width") or 800
        self.height = _load_int("height") or 600
        self.max_iterations = _load_int("max_iterations") or DEFAULT_MAX_ITERATIONS
        self.frame_count = _load_int("frame_count") or 10
        self.frame_delay_ms = _load_int("frame_delay_ms") or DEFAULT_FRAME_DELAY_MS
        self.animation_path = self.qsettings.value("animation_path") or DEFAULT_ANIMATION_PATH
        self.supersampling = _load_int("supersampling")
        if self.supersampling is None:
            self.supersampling = 1
        self.worker_count = _load_int("worker_count") or default_workers()

    def save(self):
        self.qsettings.setValue("width", self.width)
        self.qsettings.setValue("height", self.height)
        self.qsettings.setValue("max_iterations", self.max_iterations)
        self.qsettings.setValue("frame_count", self.frame_count)
        self.qsettings.setValue("frame_delay_ms", self.frame_delay_ms)
        self.qsettings.setValue("animation_path", self.animation_path)
        self.qsettings.setValue("supersampling", self.supersampling)
        self.qsettings.setValue("worker_count", self.worker_count)
        self.qsettings.sync()
