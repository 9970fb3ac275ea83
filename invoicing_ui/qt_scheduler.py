from __future__ import annotations
from typing import Callable, Optional

from PySide6.QtCore import QObject, QTimer


class _QtTask:
    def __init__(self, timer: QTimer, callback: Callable[[], None]):
        self._timer = timer
        self._callback = callback
        self._done = False
        timer.timeout.connect(self._fire)

    def _fire(self) -> None:
        if self._done:
            return
        self._done = True
        self._timer.deleteLater()
        self._callback()

    def cancel(self) -> None:
        if self._done:
            return
        self._done = True
        self._timer.stop()
        self._timer.deleteLater()


class QtScheduler:
    """Debounce timers on the Qt event loop (single-shot QTimer)."""

    def __init__(self, parent: Optional[QObject] = None):
        self.parent = parent

    def call_later(self, delay: float, callback: Callable[[], None]) -> _QtTask:
        t = QTimer(self.parent)
        t.setSingleShot(True)
        task = _QtTask(t, callback)
        t.start(int(max(0.0, delay) * 1000))
        return task
