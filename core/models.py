"""
Shared data models: frames, tensors, predictions and class labels.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

import numpy as np

# Raw per-class likelihoods, index i = class i
ScoreVector = np.ndarray


class _ReleasableBuffer:
    """Array holder whose buffer is dropped on release(). Usable as a context manager."""

    __slots__ = ("_data",)

    def __init__(self, data: np.ndarray) -> None:
        self._data: np.ndarray | None = data

    @property
    def data(self) -> np.ndarray:
        if self._data is None:
            raise ValueError(f"{type(self).__name__} already released")
        return self._data

    @property
    def released(self) -> bool:
        return self._data is None

    def release(self) -> None:
        self._data = None

    def __enter__(self):
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.release()


class Frame(_ReleasableBuffer):
    """One captured BGR uint8 image (H, W, 3). The pixel array is read-only."""

    __slots__ = ("frame_id", "timestamp_s")

    def __init__(self, frame_id: int, timestamp_s: float, pixels: np.ndarray) -> None:
        # Read-only view; the caller's array keeps its own flags
        pixels = np.asarray(pixels).view()
        pixels.setflags(write=False)
        super().__init__(pixels)
        self.frame_id = frame_id
        self.timestamp_s = timestamp_s

    @property
    def pixels(self) -> np.ndarray:
        return self.data

    @property
    def size(self) -> tuple[int, int]:
        """(width, height) of the frame."""
        h, w = self.data.shape[:2]
        return w, h

    def __repr__(self) -> str:
        state = "released" if self.released else "x".join(map(str, self.size))
        return f"Frame(frame_id={self.frame_id}, timestamp_s={self.timestamp_s:.3f}, {state})"


class Tensor(_ReleasableBuffer):
    """Normalized float32 batch of one image, shape (1, H, W, 3), values in [-1, 1]."""

    __slots__ = ()

    @property
    def shape(self) -> tuple[int, ...]:
        return self.data.shape


@dataclass(frozen=True)
class Prediction:
    label: str
    probability: float

    def to_dict(self) -> dict[str, Any]:
        return {"label": self.label, "probability": self.probability}


# Top-K predictions, probability descending
RankedResult = list[Prediction]


@dataclass(frozen=True)
class ClassLabels:
    """Static index -> name mapping, aligned with ScoreVector positions."""

    names: tuple[str, ...]

    @classmethod
    def from_names(cls, names: Iterable[str]) -> ClassLabels:
        return cls(tuple(str(n) for n in names))

    @classmethod
    def from_file(cls, path: str | Path) -> ClassLabels:
        """Load one label per line; blank lines are skipped."""
        text = Path(path).read_text(encoding="utf-8")
        return cls.from_names(line.strip() for line in text.splitlines() if line.strip())

    def __len__(self) -> int:
        return len(self.names)

    def __getitem__(self, index: int) -> str:
        return self.names[index]


def results_to_dict(
    result: RankedResult,
    frame_id: int,
    timestamp_s: float = 0.0,
    metadata: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build the JSON-ready payload for one classified frame."""
    return {
        "frame_id": frame_id,
        "timestamp_s": timestamp_s,
        "predictions": [p.to_dict() for p in result],
        "metadata": metadata if metadata is not None else {},
    }
