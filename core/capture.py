"""
Camera capture: opens a webcam under an ordered list of size constraints and
hands out one frame at a time.
"""

from __future__ import annotations

import logging
import sys
import time
from dataclasses import dataclass
from typing import Callable, Protocol

import cv2
import numpy as np

from core.errors import DeviceUnavailable, TransientFrameError
from core.models import Frame

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SizeConstraint:
    """Requested frame dimension: exact value, or the range [minimum, maximum]."""

    maximum: int
    minimum: int | None = None

    @property
    def exact(self) -> bool:
        return self.minimum is None

    def accepts(self, actual: int) -> bool:
        if self.exact:
            return actual == self.maximum
        return self.minimum <= actual <= self.maximum and actual > 0

    def __str__(self) -> str:
        if self.exact:
            return str(self.maximum)
        return f"{self.minimum}..{self.maximum}"


@dataclass(frozen=True)
class StreamConstraints:
    """One acquisition attempt: which camera, and optional width/height requirements."""

    camera_index: int = 0
    width: SizeConstraint | None = None
    height: SizeConstraint | None = None

    def describe(self) -> str:
        if self.width is None and self.height is None:
            return f"camera {self.camera_index}, any size"
        return f"camera {self.camera_index}, {self.width}x{self.height}"


def fallback_constraints(
    camera_index: int, preferred_width: int, preferred_height: int
) -> list[StreamConstraints]:
    """Exact size first, then 'up to' the preferred size, then no size at all."""
    return [
        StreamConstraints(
            camera_index,
            SizeConstraint(preferred_width),
            SizeConstraint(preferred_height),
        ),
        StreamConstraints(
            camera_index,
            SizeConstraint(preferred_width, minimum=0),
            SizeConstraint(preferred_height, minimum=0),
        ),
        StreamConstraints(camera_index),
    ]


class CaptureDevice(Protocol):
    """What FrameSource needs from a capture backend."""

    def open_camera(self, constraints: StreamConstraints) -> bool: ...

    def wait_ready(self, timeout_s: float) -> bool: ...

    def read(self) -> tuple[bool, np.ndarray | None]: ...

    def close(self) -> None: ...


class VideoCaptureSource:
    """OpenCV webcam wrapper that applies StreamConstraints on open."""

    def __init__(self) -> None:
        self._cap: cv2.VideoCapture | None = None

    def open_camera(self, constraints: StreamConstraints) -> bool:
        """Open the camera and apply size constraints. False if the device refuses them."""
        self.close()
        index = constraints.camera_index
        # On Windows, use DirectShow so index order matches enumerated camera list (pygrabber)
        if sys.platform == "win32":
            self._cap = cv2.VideoCapture(index, cv2.CAP_DSHOW)
        else:
            self._cap = cv2.VideoCapture(index)
        if not self._cap.isOpened():
            return False
        if constraints.width is not None:
            self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, constraints.width.maximum)
        if constraints.height is not None:
            self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, constraints.height.maximum)
        w, h = self.get_size()
        if constraints.width is not None and not constraints.width.accepts(w):
            logger.debug("Camera %d gave width %d, wanted %s", index, w, constraints.width)
            return False
        if constraints.height is not None and not constraints.height.accepts(h):
            logger.debug("Camera %d gave height %d, wanted %s", index, h, constraints.height)
            return False
        return True

    def wait_ready(self, timeout_s: float) -> bool:
        """Block until the device delivers its first frame (metadata loaded)."""
        if self._cap is None:
            return False
        deadline = time.monotonic() + timeout_s
        while time.monotonic() < deadline:
            if self._cap.grab() and self.get_size() != (0, 0):
                return True
            time.sleep(0.01)
        return False

    def close(self) -> None:
        """Release the current device."""
        if self._cap is not None:
            self._cap.release()
            self._cap = None

    def read(self) -> tuple[bool, np.ndarray | None]:
        """Read next frame. Returns (success, frame_bgr)."""
        if self._cap is None:
            return False, None
        ok, frame = self._cap.read()
        return ok, frame

    def get_size(self) -> tuple[int, int]:
        """(width, height) of the stream."""
        if self._cap is None:
            return 0, 0
        w = int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        h = int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        return w, h


class CameraStream:
    """An opened, ready device. Frames are pulled with read_frame(), never pushed."""

    def __init__(self, device: CaptureDevice, constraints: StreamConstraints) -> None:
        self._device = device
        self._next_id = 0
        self.constraints = constraints

    def read_frame(self) -> Frame:
        """Pull exactly one frame. Raises TransientFrameError when the device yields nothing."""
        if self._device is None:
            raise TransientFrameError("stream is closed")
        ok, pixels = self._device.read()
        if not ok or pixels is None:
            raise TransientFrameError(f"camera returned no frame (frame {self._next_id})")
        frame = Frame(self._next_id, time.perf_counter(), pixels)
        self._next_id += 1
        return frame

    @property
    def closed(self) -> bool:
        return self._device is None

    def close(self) -> None:
        if self._device is not None:
            self._device.close()
            self._device = None

    def __enter__(self) -> CameraStream:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class FrameSource:
    """Acquires a CameraStream, falling back through progressively looser constraints."""

    def __init__(
        self,
        camera_index: int = 0,
        capture_factory: Callable[[], CaptureDevice] = VideoCaptureSource,
        ready_timeout_s: float = 5.0,
    ) -> None:
        self._camera_index = camera_index
        self._capture_factory = capture_factory
        self._ready_timeout_s = ready_timeout_s

    def open(self, preferred_width: int, preferred_height: int) -> CameraStream:
        """
        Try exact size, then size range, then no size. Raises DeviceUnavailable
        when all three attempts fail. A partially opened device is always
        released before the next attempt.
        """
        attempts = fallback_constraints(self._camera_index, preferred_width, preferred_height)
        for attempt, constraints in enumerate(attempts, start=1):
            device = self._capture_factory()
            try:
                if not device.open_camera(constraints):
                    raise DeviceUnavailable(f"device refused {constraints.describe()}")
                if not device.wait_ready(self._ready_timeout_s):
                    raise DeviceUnavailable(
                        f"no frame within {self._ready_timeout_s:.1f}s for {constraints.describe()}"
                    )
            except Exception as e:
                device.close()
                logger.info("Camera attempt %d/%d failed: %s", attempt, len(attempts), e)
                continue
            logger.info("Camera ready (%s)", constraints.describe())
            return CameraStream(device, constraints)
        raise DeviceUnavailable(
            f"camera {self._camera_index} unavailable after {len(attempts)} attempts"
        )
