"""QTimer-backed implementation of the core ``Scheduler`` protocol."""

from __future__ import annotations

from typing import Callable

from PySide6.QtCore import QObject, QTimer


class QtTimerHandle:
    def __init__(self, timer: QTimer) -> None:
        self._timer = timer
        self._done = False

    def cancel(self) -> None:
        if self._done:
            return
        self._done = True
        self._timer.stop()
        self._timer.deleteLater()

    def _fire(self, callback: Callable[[], None]) -> None:
        if self._done:
            return
        self._done = True
        self._timer.deleteLater()
        callback()


class QtScheduler:
    """Single-shot timers parented to ``owner`` so they die with the window.

    A zero delay runs the callback on the next event-loop pass, after the
    current input event has been fully handled.
    """

    def __init__(self, owner: QObject) -> None:
        self._owner = owner

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> QtTimerHandle:
        timer = QTimer(self._owner)
        timer.setSingleShot(True)
        handle = QtTimerHandle(timer)
        timer.timeout.connect(lambda: handle._fire(callback))
        timer.start(max(0, int(delay_ms)))
        return handle
