"""
Ensures MediaPipe image classifier model files exist; downloads from Google storage if missing.
"""

from __future__ import annotations

import logging
import urllib.request
from pathlib import Path

logger = logging.getLogger(__name__)

# Directory for cached models (next to project root)
_MODELS_DIR = Path(__file__).resolve().parent.parent / "models"

# Official MediaPipe image classifier models (Google storage)
_MODEL_URLS = {
    "efficientnet_lite0.tflite": "https://storage.googleapis.com/mediapipe-models/image_classifier/efficientnet_lite0/float32/latest/efficientnet_lite0.tflite",
    "efficientnet_lite2.tflite": "https://storage.googleapis.com/mediapipe-models/image_classifier/efficientnet_lite2/float32/latest/efficientnet_lite2.tflite",
}


def known_models() -> list[str]:
    return sorted(_MODEL_URLS)


def get_model_path(filename: str, models_dir: Path | None = None) -> Path:
    """Return path to the model file; download if not present."""
    directory = models_dir if models_dir is not None else _MODELS_DIR
    path = directory / filename
    if path.is_file():
        return path
    url = _MODEL_URLS.get(filename)
    if not url:
        raise FileNotFoundError(f"Unknown model: {filename}. Known: {known_models()}")
    directory.mkdir(parents=True, exist_ok=True)
    logger.info("Downloading %s", url)
    urllib.request.urlretrieve(url, path)
    return path
