"""
Capture loop: frame -> tensor -> scores -> top-K -> sink, once per scheduler tick.

Runs on a single thread. A tick does one whole iteration and then, if the loop is
still running, schedules the next tick, so iterations never overlap and results
reach the sink in the order frames were pulled.
"""

from __future__ import annotations

import enum
import logging
import time
from contextlib import ExitStack
from dataclasses import dataclass
from typing import Callable

from core.capture import CameraStream
from core.errors import FatalPipelineError, InvalidArgument, TransientFrameError
from core.models import Frame, RankedResult, ScoreVector, Tensor
from core.ranking import ScoreRanker
from core.scheduler import Scheduler
from core.utils import FPSCounter, StatusFn, log_status

logger = logging.getLogger(__name__)

Sink = Callable[[RankedResult, Frame], None]

DEFAULT_MAX_CONSECUTIVE_FAILURES = 10


class LoopState(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    CANCELLED = "cancelled"


@dataclass
class PipelineContext:
    """Everything one loop run needs: the open stream, the stages and K."""

    stream: CameraStream
    preprocess: Callable[[Frame], Tensor]
    classify: Callable[[Tensor], ScoreVector]
    ranker: ScoreRanker
    top_k: int = 5

    def close(self) -> None:
        self.stream.close()


class LoopHandle:
    """Returned by CaptureLoop.run(). cancel() stops the loop after the current iteration."""

    def __init__(self, loop: CaptureLoop) -> None:
        self._loop = loop

    def cancel(self) -> None:
        self._loop.cancel()

    @property
    def state(self) -> LoopState:
        return self._loop.state

    @property
    def cancelled(self) -> bool:
        return self._loop.state is LoopState.CANCELLED

    @property
    def error(self) -> FatalPipelineError | None:
        """Set when the loop stopped on a fatal error."""
        return self._loop.error

    @property
    def iterations(self) -> int:
        return self._loop.iterations

    @property
    def skipped(self) -> int:
        return self._loop.skipped

    @property
    def stats(self) -> FPSCounter:
        return self._loop.stats


class CaptureLoop:
    """
    Pulls one frame per tick and pushes its ranked result to the sink.

    Failures reading, preprocessing or classifying a frame skip that frame.
    After max_consecutive_failures skipped frames in a row the loop stops with
    FatalPipelineError. Ranking errors, sink errors and FatalPipelineError
    raised by a stage stop it at once.
    """

    def __init__(
        self,
        context: PipelineContext,
        scheduler: Scheduler,
        status: StatusFn = log_status,
        max_consecutive_failures: int = DEFAULT_MAX_CONSECUTIVE_FAILURES,
        on_fatal: Callable[[FatalPipelineError], None] | None = None,
    ) -> None:
        if max_consecutive_failures < 1:
            raise InvalidArgument("max_consecutive_failures must be >= 1")
        self._ctx = context
        self._scheduler = scheduler
        self._status = status
        self._max_failures = max_consecutive_failures
        self._on_fatal = on_fatal
        self._sink: Sink | None = None
        self._state = LoopState.IDLE
        self._consecutive_failures = 0
        self.error: FatalPipelineError | None = None
        self.iterations = 0
        self.skipped = 0
        self.stats = FPSCounter()

    @property
    def state(self) -> LoopState:
        return self._state

    def run(self, sink: Sink) -> LoopHandle:
        if self._state is not LoopState.IDLE:
            raise RuntimeError(f"CaptureLoop cannot start from state {self._state.value}")
        self._sink = sink
        self._state = LoopState.RUNNING
        self.stats.reset()
        self._scheduler.schedule(self._tick)
        return LoopHandle(self)

    def cancel(self) -> None:
        """No new iteration starts after this; one in flight still finishes."""
        if self._state is not LoopState.CANCELLED:
            logger.debug("Capture loop cancelled after %d iterations", self.iterations)
        self._state = LoopState.CANCELLED

    def _tick(self) -> None:
        if self._state is not LoopState.RUNNING:
            return
        try:
            self._iterate()
        except FatalPipelineError as e:
            self._fail(e)
            return
        except Exception as e:
            self._fail(FatalPipelineError(f"iteration failed: {e}"), cause=e)
            return
        if self._state is LoopState.RUNNING:
            self._scheduler.schedule(self._tick)

    def _iterate(self) -> None:
        self._status("Predicting...")
        # The first timer includes capture and preprocessing, the second only predict + rank
        start_total = time.perf_counter()
        with ExitStack() as scope:
            try:
                frame = scope.enter_context(self._ctx.stream.read_frame())
                tensor = scope.enter_context(self._ctx.preprocess(frame))
                start_predict = time.perf_counter()
                scores = self._ctx.classify(tensor)
            except FatalPipelineError:
                raise
            except Exception as e:
                self._skip(e)
                return
            self._consecutive_failures = 0
            try:
                result = self._ctx.ranker.rank(scores, self._ctx.top_k)
            except InvalidArgument as e:
                raise FatalPipelineError(f"cannot rank classifier output: {e}") from e
            total_ms = (time.perf_counter() - start_total) * 1000.0
            predict_ms = (time.perf_counter() - start_predict) * 1000.0
            self.iterations += 1
            self.stats.tick(predict_ms)
            self._status(
                f"Done in {int(total_ms)} ms (not including preprocessing: {int(predict_ms)} ms)"
            )
            self._sink(result, frame)

    def _skip(self, error: Exception) -> None:
        if not isinstance(error, TransientFrameError):
            error = TransientFrameError(f"{type(error).__name__}: {error}")
        self.skipped += 1
        self._consecutive_failures += 1
        logger.warning(
            "Skipped frame (%d/%d in a row): %s",
            self._consecutive_failures,
            self._max_failures,
            error,
        )
        self._status(f"Skipped frame: {error}")
        if self._consecutive_failures >= self._max_failures:
            raise FatalPipelineError(
                f"{self._consecutive_failures} consecutive frames failed, last error: {error}"
            ) from error

    def _fail(self, error: FatalPipelineError, cause: Exception | None = None) -> None:
        if cause is not None:
            error.__cause__ = cause
        self._state = LoopState.CANCELLED
        self.error = error
        logger.error("Capture loop stopped: %s", error)
        self._status(f"Error: {error}")
        if self._on_fatal is not None:
            self._on_fatal(error)
