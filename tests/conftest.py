"""
Shared fixtures: fake capture devices, a scripted frame stream and a tiny pipeline.
"""

from __future__ import annotations

import os

import numpy as np
import pytest

from classifiers.base import ClassifierBase
from core.errors import TransientFrameError
from core.loop import PipelineContext
from core.models import ClassLabels, Frame, Tensor
from core.ranking import ScoreRanker


class FakeCaptureDevice:
    """Capture backend whose open/ready outcome is fixed up front."""

    def __init__(self, log: list, opens: bool = True, ready: bool = True) -> None:
        self._log = log
        self._opens = opens
        self._ready = ready
        self.constraints = None
        self.closed = False

    def open_camera(self, constraints) -> bool:
        self.constraints = constraints
        self._log.append(self)
        return self._opens

    def wait_ready(self, timeout_s: float) -> bool:
        return self._ready

    def read(self):
        return True, np.zeros((4, 4, 3), dtype=np.uint8)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def device_factory():
    """Returns (factory, opened_devices) where outcomes is a list of (opens, ready) per attempt."""

    def make(outcomes):
        devices: list[FakeCaptureDevice] = []
        pending = list(outcomes)

        def factory() -> FakeCaptureDevice:
            opens, ready = pending.pop(0)
            return FakeCaptureDevice(devices, opens=opens, ready=ready)

        return factory, devices

    return make


class ScriptedStream:
    """Stream yielding numbered 2x2 frames; remembers every frame it handed out."""

    def __init__(self, fail_reads: set[int] | None = None) -> None:
        self.frames: list[Frame] = []
        self.fail_reads = fail_reads or set()
        self.closed = False
        self._next = 0

    def read_frame(self) -> Frame:
        frame_id = self._next
        self._next += 1
        if frame_id in self.fail_reads:
            raise TransientFrameError(f"no frame {frame_id}")
        frame = Frame(frame_id, float(frame_id), np.full((2, 2, 3), frame_id, dtype=np.uint8))
        self.frames.append(frame)
        return frame

    def close(self) -> None:
        self.closed = True


class RecordingPreprocess:
    """Preprocess stage that can fail on chosen frame ids and keeps every Tensor it made."""

    def __init__(self, fail_on: set[int] | None = None, error: type[Exception] = TransientFrameError):
        self.fail_on = fail_on or set()
        self.error = error
        self.tensors: list[Tensor] = []

    def __call__(self, frame: Frame) -> Tensor:
        if frame.frame_id in self.fail_on:
            raise self.error(f"corrupt frame {frame.frame_id}")
        tensor = Tensor(np.full((1, 2, 2, 3), float(frame.frame_id), dtype=np.float32))
        self.tensors.append(tensor)
        return tensor


LABELS = ClassLabels.from_names(["cat", "dog", "bird"])


def frame_scores(tensor: Tensor) -> np.ndarray:
    """Scores that make class (frame_id % 3) the winner."""
    winner = int(tensor.data[0, 0, 0, 0]) % 3
    scores = np.full(3, 0.1, dtype=np.float32)
    scores[winner] = 0.8
    return scores


@pytest.fixture
def labels() -> ClassLabels:
    return LABELS


@pytest.fixture
def stream() -> ScriptedStream:
    return ScriptedStream()


@pytest.fixture
def preprocess() -> RecordingPreprocess:
    return RecordingPreprocess()


@pytest.fixture
def context(stream, preprocess) -> PipelineContext:
    return PipelineContext(
        stream=stream,
        preprocess=preprocess,
        classify=frame_scores,
        ranker=ScoreRanker(LABELS),
        top_k=2,
    )


class FixedClassifier(ClassifierBase):
    """Backend returning the same scores for every tensor; records input shapes."""

    classifier_id = "fixed"
    display_name = "Fixed"

    def __init__(self, scores):
        super().__init__()
        self._fixed = np.asarray(scores, dtype=np.float32)
        self._loaded = False
        self.inputs = []

    @staticmethod
    def default_settings():
        return {"normalize": "none"}

    @staticmethod
    def build_settings_widget(parent):
        return None

    @property
    def ready(self):
        return self._loaded

    def _load(self, settings):
        self._loaded = True

    def _scores(self, tensor):
        self.inputs.append(tensor.shape)
        return self._fixed

    def class_labels(self):
        return ClassLabels.from_names(str(i) for i in range(len(self._fixed)))

    def close(self):
        self._loaded = False


@pytest.fixture(scope="session")
def qapp():
    """One offscreen QApplication for every Qt test."""
    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
    QtWidgets = pytest.importorskip("PySide6.QtWidgets")
    return QtWidgets.QApplication.instance() or QtWidgets.QApplication([])
