"""
Timing helpers and the default status sink.
"""

import logging
import time
from collections import deque
from typing import Callable, Deque

StatusFn = Callable[[str], None]

_status_logger = logging.getLogger("core.status")


def log_status(message: str) -> None:
    """Default status sink: the 'core.status' logger."""
    if message:
        _status_logger.info(message)


class RollingAverage:
    """Rolling average over the last N values."""

    def __init__(self, maxlen: int = 30) -> None:
        self._values: Deque[float] = deque(maxlen=maxlen)

    def add(self, value: float) -> None:
        self._values.append(value)

    @property
    def average(self) -> float:
        if not self._values:
            return 0.0
        return sum(self._values) / len(self._values)

    @property
    def count(self) -> int:
        return len(self._values)

    def clear(self) -> None:
        self._values.clear()


class FPSCounter:
    """Frame rate from tick-to-tick spacing, plus a rolling average of inference time."""

    def __init__(self, rolling_size: int = 30) -> None:
        self._last_time: float | None = None
        self._intervals = RollingAverage(maxlen=rolling_size)
        self._inference_ms = RollingAverage(maxlen=rolling_size)
        self.last_inference_ms = 0.0

    def tick(self, inference_ms: float) -> float:
        """Call once per delivered result. Returns the current fps."""
        now = time.perf_counter()
        if self._last_time is not None:
            self._intervals.add(now - self._last_time)
        self._last_time = now
        self._inference_ms.add(inference_ms)
        self.last_inference_ms = inference_ms
        return self.fps

    @property
    def fps(self) -> float:
        avg = self._intervals.average
        return 1.0 / avg if avg > 0 else 0.0

    @property
    def rolling_average_ms(self) -> float:
        return self._inference_ms.average

    def reset(self) -> None:
        self._last_time = None
        self._intervals.clear()
        self._inference_ms.clear()
        self.last_inference_ms = 0.0
