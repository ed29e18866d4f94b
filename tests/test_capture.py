"""
Tests for camera acquisition fallback and the pull-based stream.
"""

import numpy as np
import pytest

from core.capture import (
    CameraStream,
    FrameSource,
    SizeConstraint,
    StreamConstraints,
    fallback_constraints,
)
from core.errors import DeviceUnavailable, TransientFrameError


class TestSizeConstraint:
    def test_exact(self):
        c = SizeConstraint(224)
        assert c.exact
        assert c.accepts(224)
        assert not c.accepts(223)

    def test_range(self):
        c = SizeConstraint(224, minimum=0)
        assert not c.exact
        assert c.accepts(160)
        assert c.accepts(224)
        assert not c.accepts(640)
        assert not c.accepts(0)


class TestFallbackConstraints:
    def test_order(self):
        exact, ranged, free = fallback_constraints(1, 150, 120)
        assert exact == StreamConstraints(1, SizeConstraint(150), SizeConstraint(120))
        assert ranged == StreamConstraints(
            1, SizeConstraint(150, minimum=0), SizeConstraint(120, minimum=0)
        )
        assert free == StreamConstraints(1)


class TestFrameSource:
    def test_third_attempt_succeeds(self, device_factory):
        factory, devices = device_factory([(False, True), (False, True), (True, True)])
        stream = FrameSource(0, capture_factory=factory).open(150, 150)

        assert len(devices) == 3
        assert [d.constraints for d in devices] == fallback_constraints(0, 150, 150)
        assert devices[0].closed and devices[1].closed
        assert not devices[2].closed
        assert stream.constraints == StreamConstraints(0)

    def test_first_attempt_succeeds(self, device_factory):
        factory, devices = device_factory([(True, True)])
        stream = FrameSource(0, capture_factory=factory).open(224, 224)
        assert len(devices) == 1
        assert stream.constraints.width == SizeConstraint(224)

    def test_not_ready_counts_as_failure(self, device_factory):
        factory, devices = device_factory([(True, False), (True, True)])
        stream = FrameSource(0, capture_factory=factory).open(224, 224)
        assert len(devices) == 2
        assert devices[0].closed
        assert stream.constraints.width == SizeConstraint(224, minimum=0)

    def test_all_attempts_fail(self, device_factory):
        factory, devices = device_factory([(False, True), (True, False), (False, False)])
        with pytest.raises(DeviceUnavailable):
            FrameSource(3, capture_factory=factory).open(224, 224)
        assert len(devices) == 3
        assert all(d.closed for d in devices)

    def test_open_error_is_released_and_retried(self, device_factory):
        factory, devices = device_factory([(True, True)])

        class Broken:
            closed = False

            def open_camera(self, constraints):
                raise OSError("device busy")

            def wait_ready(self, timeout_s):
                return False

            def close(self):
                self.closed = True

        broken = []

        def flaky_factory():
            if not broken:
                broken.append(Broken())
                return broken[0]
            return factory()

        stream = FrameSource(0, capture_factory=flaky_factory).open(224, 224)
        assert broken[0].closed
        assert stream.constraints.width == SizeConstraint(224, minimum=0)


class _Device:
    def __init__(self, frames):
        self._frames = list(frames)
        self.closed = False

    def read(self):
        if not self._frames:
            return False, None
        return True, self._frames.pop(0)

    def close(self):
        self.closed = True


class TestCameraStream:
    def test_frames_are_numbered_and_read_only(self):
        pixels = np.zeros((3, 5, 3), dtype=np.uint8)
        stream = CameraStream(_Device([pixels, pixels.copy()]), StreamConstraints())
        first = stream.read_frame()
        second = stream.read_frame()
        assert (first.frame_id, second.frame_id) == (0, 1)
        assert first.size == (5, 3)
        with pytest.raises(ValueError):
            first.pixels[0, 0, 0] = 1

    def test_failed_read_is_transient(self):
        stream = CameraStream(_Device([]), StreamConstraints())
        with pytest.raises(TransientFrameError):
            stream.read_frame()

    def test_close_releases_device(self):
        device = _Device([])
        with CameraStream(device, StreamConstraints()) as stream:
            pass
        assert device.closed
        assert stream.closed
        with pytest.raises(TransientFrameError):
            stream.read_frame()
