"""
Base interface every classifier backend implements.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

import numpy as np

from core.errors import FatalPipelineError, InvalidArgument
from core.models import ClassLabels, ScoreVector, Tensor
from core.ranking import softmax

if TYPE_CHECKING:
    from PySide6.QtWidgets import QWidget

NORMALIZE_MODES = ("none", "softmax")


class ClassifierBase(ABC):
    """
    Opaque image classifier: Tensor (1, H, W, 3) in [-1, 1] -> ScoreVector of length N.
    Subclasses implement _load() and _scores(); init/predict/warmup are shared.
    """

    classifier_id: str = ""
    display_name: str = ""

    def __init__(self) -> None:
        self._normalize = "none"

    @staticmethod
    @abstractmethod
    def default_settings() -> dict[str, Any]:
        ...

    @staticmethod
    @abstractmethod
    def build_settings_widget(parent: QWidget | None) -> QWidget:
        """Build and return a Qt widget for editing settings."""
        ...

    @property
    @abstractmethod
    def ready(self) -> bool:
        ...

    @abstractmethod
    def _load(self, settings: dict[str, Any]) -> None:
        """Load the model. Called by init() after the previous model was closed."""
        ...

    @abstractmethod
    def _scores(self, tensor: Tensor) -> np.ndarray:
        """Raw per-class scores for one tensor."""
        ...

    @abstractmethod
    def class_labels(self) -> ClassLabels:
        ...

    @abstractmethod
    def close(self) -> None:
        """Release the model."""
        ...

    def init(self, settings: dict[str, Any]) -> None:
        """Load the model with the given settings (missing keys fall back to defaults)."""
        self.close()
        merged = {**self.default_settings(), **settings}
        normalize = str(merged.get("normalize", "none"))
        if normalize not in NORMALIZE_MODES:
            raise InvalidArgument(f"normalize must be one of {NORMALIZE_MODES}, got {normalize!r}")
        self._normalize = normalize
        self._load(merged)

    def predict(self, tensor: Tensor) -> ScoreVector:
        if not self.ready:
            raise FatalPipelineError(f"{self.display_name or type(self).__name__} is not initialized")
        scores = np.asarray(self._scores(tensor), dtype=np.float32).ravel()
        if self._normalize == "softmax":
            scores = softmax(scores)
        return scores

    def warmup(self, width: int, height: int) -> None:
        """One discarded prediction on a zero tensor to prime the model."""
        with Tensor(np.zeros((1, height, width, 3), dtype=np.float32)) as tensor:
            self.predict(tensor)
