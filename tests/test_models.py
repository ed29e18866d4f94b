"""
Tests for frames, tensors, labels and result payloads.
"""

import numpy as np
import pytest

from core.models import ClassLabels, Frame, Prediction, Tensor, results_to_dict


class TestReleasableBuffers:
    def test_frame_release(self):
        frame = Frame(7, 1.5, np.zeros((2, 3, 3), dtype=np.uint8))
        assert frame.size == (3, 2)
        frame.release()
        assert frame.released
        with pytest.raises(ValueError):
            frame.pixels
        assert "released" in repr(frame)

    def test_frame_leaves_caller_array_writeable(self):
        pixels = np.zeros((2, 2, 3), dtype=np.uint8)
        frame = Frame(0, 0.0, pixels)
        assert pixels.flags.writeable
        assert not frame.pixels.flags.writeable
        pixels[0, 0, 0] = 9
        assert frame.pixels[0, 0, 0] == 9

    def test_tensor_context_manager(self):
        with Tensor(np.zeros((1, 2, 2, 3), dtype=np.float32)) as tensor:
            assert tensor.shape == (1, 2, 2, 3)
        assert tensor.released


class TestClassLabels:
    def test_from_file_skips_blank_lines(self, tmp_path):
        path = tmp_path / "labels.txt"
        path.write_text("tench\n\ngoldfish \n  great white shark\n", encoding="utf-8")
        labels = ClassLabels.from_file(path)
        assert labels.names == ("tench", "goldfish", "great white shark")
        assert len(labels) == 3
        assert labels[1] == "goldfish"

    def test_is_immutable(self):
        labels = ClassLabels.from_names(["a"])
        with pytest.raises(AttributeError):
            labels.names = ("b",)


class TestResultsToDict:
    def test_payload(self):
        payload = results_to_dict([Prediction("dog", 0.7)], frame_id=4, timestamp_s=2.0)
        assert payload == {
            "frame_id": 4,
            "timestamp_s": 2.0,
            "predictions": [{"label": "dog", "probability": 0.7}],
            "metadata": {},
        }
