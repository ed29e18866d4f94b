"""
Tests for settings and command-line parsing.
"""

import pytest
from pydantic import ValidationError

from core.config import PipelineSettings, settings_from_args
from core.errors import InvalidArgument


class TestSettingsFromArgs:
    def test_defaults(self):
        settings = settings_from_args([])
        assert settings == PipelineSettings()
        assert settings.top_k == 5
        assert settings.image_size == 224
        assert settings.classifier_settings == {}

    def test_overrides(self):
        settings = settings_from_args([
            "--camera", "2", "--top-k", "3", "--image-size", "150",
            "--model", "efficientnet_lite2.tflite", "--softmax",
            "--headless", "--max-frames", "10", "--max-failures", "4",
        ])
        assert settings.camera_index == 2
        assert settings.top_k == 3
        assert settings.image_size == 150
        assert settings.classifier_settings == {
            "model": "efficientnet_lite2.tflite",
            "normalize": "softmax",
        }
        assert settings.headless
        assert settings.max_frames == 10
        assert settings.max_consecutive_failures == 4

    @pytest.mark.parametrize(
        "argv",
        [["--top-k", "0"], ["--image-size", "-1"], ["--max-failures", "0"],
         ["--max-frames", "-2"], ["--ready-timeout", "0"]],
    )
    def test_bad_flags_raise_invalid_argument(self, argv):
        with pytest.raises(InvalidArgument) as excinfo:
            settings_from_args(argv)
        assert isinstance(excinfo.value.__cause__, ValidationError)


class TestValidation:
    @pytest.mark.parametrize(
        "kwargs",
        [{"top_k": 0}, {"image_size": -1}, {"max_consecutive_failures": 0},
         {"max_frames": -2}, {"ready_timeout_s": 0.0}],
    )
    def test_rejects_bad_values(self, kwargs):
        with pytest.raises(ValidationError):
            PipelineSettings(**kwargs)

    def test_classifier_settings_not_shared(self):
        a, b = PipelineSettings(), PipelineSettings()
        a.classifier_settings["model"] = "x.tflite"
        assert b.classifier_settings == {}

    def test_copy_with_update(self):
        base = PipelineSettings(top_k=3, classifier_settings={"normalize": "softmax"})
        copy = base.model_copy(update={"camera_index": 1})
        assert copy.camera_index == 1
        assert copy.top_k == 3
        assert copy.classifier_settings == {"normalize": "softmax"}
