"""
Tick schedulers for the capture loop. A task runs once per tick and re-submits
itself for the next one.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import deque
from typing import Callable, Deque

from PySide6.QtCore import QCoreApplication, QTimer
from PySide6.QtGui import QGuiApplication

Task = Callable[[], None]

DEFAULT_REFRESH_HZ = 60.0


class Scheduler(ABC):
    @abstractmethod
    def schedule(self, task: Task) -> None:
        """Run task once on the next tick."""
        ...


class ManualScheduler(Scheduler):
    """Ticks only when told to. Used by tests and scripted runs."""

    def __init__(self) -> None:
        self._queue: Deque[Task] = deque()

    def schedule(self, task: Task) -> None:
        self._queue.append(task)

    @property
    def pending(self) -> int:
        return len(self._queue)

    def tick(self) -> int:
        """Run the tasks queued before this call. Returns how many ran."""
        due = len(self._queue)
        for _ in range(due):
            self._queue.popleft()()
        return due

    def run(self, max_ticks: int) -> int:
        """Tick until nothing is queued or max_ticks is reached. Returns ticks run."""
        ticks = 0
        while self._queue and ticks < max_ticks:
            self.tick()
            ticks += 1
        return ticks


def display_refresh_hz() -> float:
    """Primary screen refresh rate, or 60 Hz without a GUI application/screen."""
    app = QCoreApplication.instance()
    if isinstance(app, QGuiApplication):
        screen = app.primaryScreen()
        if screen is not None and screen.refreshRate() > 0:
            return float(screen.refreshRate())
    return DEFAULT_REFRESH_HZ


class QtFrameScheduler(Scheduler):
    """Runs each task on the Qt event loop, one display refresh interval later."""

    def __init__(self, refresh_hz: float | None = None) -> None:
        hz = refresh_hz if refresh_hz else display_refresh_hz()
        self.interval_ms = max(1, int(round(1000.0 / hz)))

    def schedule(self, task: Task) -> None:
        QTimer.singleShot(self.interval_ms, task)
