"""
MediaPipe Image Classifier backend (EfficientNet-Lite, ImageNet classes).
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable, Protocol

import mediapipe as mp
import numpy as np

from classifiers.base import NORMALIZE_MODES, ClassifierBase
from core.errors import FatalPipelineError, TransientFrameError
from core.model_loader import get_model_path, known_models
from core.models import ClassLabels, Tensor

from PySide6.QtWidgets import QComboBox, QFormLayout, QWidget


class _Category(Protocol):
    index: int
    score: float
    category_name: str | None
    display_name: str | None


def tensor_to_rgb(data: np.ndarray) -> np.ndarray:
    """(1, H, W, 3) float in [-1, 1] -> contiguous (H, W, 3) uint8 RGB."""
    rgb = np.clip(np.rint((data[0] + 1.0) * 127.5), 0, 255).astype(np.uint8)
    return np.ascontiguousarray(rgb)


def labels_from_categories(categories: Iterable[_Category]) -> ClassLabels:
    """Index-aligned label list from a full (max_results=-1) classification."""
    categories = list(categories)
    if not categories:
        raise FatalPipelineError("model reported no categories")
    names = [f"class_{i}" for i in range(max(c.index for c in categories) + 1)]
    for c in categories:
        names[c.index] = c.category_name or c.display_name or names[c.index]
    return ClassLabels.from_names(names)


def scores_from_categories(categories: Iterable[_Category], num_classes: int) -> np.ndarray:
    """Scatter category scores into a dense vector; absent classes score 0."""
    scores = np.zeros(num_classes, dtype=np.float32)
    for c in categories:
        if 0 <= c.index < num_classes:
            scores[c.index] = c.score or 0.0
    return scores


class MediaPipeClassifier(ClassifierBase):
    classifier_id = "mediapipe"
    display_name = "MediaPipe Image Classifier"

    def __init__(self) -> None:
        super().__init__()
        self._classifier: mp.tasks.vision.ImageClassifier | None = None
        self._labels: ClassLabels | None = None

    @staticmethod
    def default_settings() -> dict[str, Any]:
        return {
            "model": "efficientnet_lite0.tflite",
            "normalize": "none",
        }

    @staticmethod
    def build_settings_widget(parent: QWidget | None) -> QWidget:
        widget = QWidget(parent)
        layout = QFormLayout(widget)
        model = QComboBox()
        for name in known_models():
            model.addItem(name, name)
        model.setObjectName("model")
        layout.addRow("Model:", model)
        normalize = QComboBox()
        for mode in NORMALIZE_MODES:
            normalize.addItem(mode, mode)
        normalize.setObjectName("normalize")
        normalize.setToolTip("Scores from these models are already probabilities.")
        layout.addRow("Normalize scores:", normalize)
        return widget

    @property
    def ready(self) -> bool:
        return self._classifier is not None

    def _load(self, settings: dict[str, Any]) -> None:
        model = str(settings["model"])
        model_path = Path(model) if Path(model).is_file() else get_model_path(model)
        base_options = mp.tasks.BaseOptions(model_asset_path=str(model_path))
        options = mp.tasks.vision.ImageClassifierOptions(
            base_options=base_options,
            running_mode=mp.tasks.vision.RunningMode.IMAGE,
            max_results=-1,
        )
        self._classifier = mp.tasks.vision.ImageClassifier.create_from_options(options)

    def _scores(self, tensor: Tensor) -> np.ndarray:
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=tensor_to_rgb(tensor.data))
        result = self._classifier.classify(mp_image)
        if not result.classifications:
            raise TransientFrameError("classifier returned no classifications")
        categories = result.classifications[0].categories
        if self._labels is None:
            # Label names live in the model metadata; the first full result carries all of them
            self._labels = labels_from_categories(categories)
        return scores_from_categories(categories, len(self._labels))

    def class_labels(self) -> ClassLabels:
        if self._labels is None:
            raise FatalPipelineError("class labels are read during warmup(); call it first")
        return self._labels

    def close(self) -> None:
        if self._classifier is not None:
            self._classifier.close()
            self._classifier = None
        self._labels = None


Classifier = MediaPipeClassifier
