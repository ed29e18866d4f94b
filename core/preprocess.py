"""
Frame -> Tensor conversion for the classifier input.
"""

from __future__ import annotations

import cv2
import numpy as np

from core.errors import TransientFrameError
from core.models import Frame, Tensor


class Preprocessor:
    """Resize a BGR frame to (width, height), convert to RGB and scale [0, 255] to [-1, 1]."""

    def __init__(self, width: int, height: int) -> None:
        self.width = width
        self.height = height

    def __call__(self, frame: Frame) -> Tensor:
        pixels = frame.pixels
        if pixels.dtype != np.uint8 or pixels.ndim != 3 or pixels.shape[2] != 3:
            raise TransientFrameError(
                f"frame {frame.frame_id}: expected HxWx3 uint8, got {pixels.shape} {pixels.dtype}"
            )
        if pixels.shape[:2] != (self.height, self.width):
            pixels = cv2.resize(pixels, (self.width, self.height), interpolation=cv2.INTER_AREA)
        rgb = cv2.cvtColor(pixels, cv2.COLOR_BGR2RGB)
        normalized = rgb.astype(np.float32) / 127.5 - 1.0
        return Tensor(normalized.reshape(1, self.height, self.width, 3))
