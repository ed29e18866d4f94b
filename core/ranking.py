"""
Top-K ranking: turns a raw score vector into labelled predictions.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from core.errors import InvalidArgument
from core.models import ClassLabels, Prediction, RankedResult


def softmax(scores: Sequence[float] | np.ndarray) -> np.ndarray:
    """Numerically stable softmax over a 1-D score vector."""
    values = np.asarray(scores, dtype=np.float64).ravel()
    if values.size == 0:
        raise InvalidArgument("softmax of an empty score vector")
    shifted = np.exp(values - np.max(values))
    return (shifted / shifted.sum()).astype(np.float32)


def rank(
    scores: Sequence[float] | np.ndarray,
    k: int,
    labels: ClassLabels | Sequence[str],
) -> RankedResult:
    """
    Return the k highest scores as (label, probability), highest first.
    Ties keep ascending index order; NaN scores sort after every number.
    Scores are passed through unchanged, normalization is the caller's job.
    """
    values = np.asarray(scores, dtype=np.float64).ravel()
    if values.size == 0:
        raise InvalidArgument("scores must be non-empty")
    if k < 0 or k > values.size:
        raise InvalidArgument(f"k must be in [0, {values.size}], got {k}")
    if len(labels) != values.size:
        raise InvalidArgument(
            f"{len(labels)} labels for a score vector of length {values.size}"
        )
    # Stable sort on the negated scores keeps equal scores in index order
    order = np.argsort(-values, kind="stable")[:k]
    return [Prediction(label=labels[int(i)], probability=float(values[i])) for i in order]


class ScoreRanker:
    """rank() bound to a fixed ClassLabels mapping."""

    def __init__(self, labels: ClassLabels) -> None:
        self._labels = labels

    @property
    def labels(self) -> ClassLabels:
        return self._labels

    @property
    def num_classes(self) -> int:
        return len(self._labels)

    def rank(self, scores: Sequence[float] | np.ndarray, k: int) -> RankedResult:
        return rank(scores, k, self._labels)
