"""
Enumerate cameras for the camera selector. On Windows uses DirectShow (pygrabber)
for device names, in the same order as OpenCV with CAP_DSHOW.
"""

from __future__ import annotations

import logging
import sys
from typing import NamedTuple

import cv2

logger = logging.getLogger(__name__)


class CameraDevice(NamedTuple):
    index: int
    name: str


def _probe_opencv(max_cameras: int = 8) -> list[CameraDevice]:
    """Probe indices 0..max_cameras-1 and keep the ones that open."""
    found: list[CameraDevice] = []
    for i in range(max_cameras):
        cap = cv2.VideoCapture(i)
        try:
            if cap.isOpened():
                found.append(CameraDevice(i, f"Camera {i}"))
        finally:
            cap.release()
    return found


def list_cameras(max_cameras: int = 8) -> list[CameraDevice]:
    """Available cameras, index-aligned with cv2.VideoCapture."""
    if sys.platform == "win32":
        try:
            from pygrabber.dshow_graph import FilterGraph
        except ImportError:
            logger.debug("pygrabber not installed, probing cameras with OpenCV")
        else:
            devices = FilterGraph().get_input_devices()
            if devices:
                return [CameraDevice(i, name) for i, name in enumerate(devices)]
    return _probe_opencv(max_cameras)
