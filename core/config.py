"""
Pipeline settings and command-line parsing.
"""

from __future__ import annotations

import argparse
from typing import Any, Optional, Sequence

from pydantic import BaseModel, Field, ValidationError

from core.errors import InvalidArgument

DEFAULT_IMAGE_SIZE = 224
DEFAULT_TOP_K = 5


class PipelineSettings(BaseModel):
    """Everything needed to assemble and run one classification pipeline."""

    camera_index: int = Field(default=0, description="Camera index")
    image_size: int = Field(
        default=DEFAULT_IMAGE_SIZE,
        gt=0,
        description="Square classifier input size in pixels",
    )
    top_k: int = Field(default=DEFAULT_TOP_K, gt=0, description="Number of labels to show")
    classifier: str = Field(default="mediapipe", description="Classifier backend id")
    classifier_settings: dict[str, Any] = Field(
        default_factory=dict,
        description="Backend settings; overrides the backend's defaults",
    )
    max_consecutive_failures: int = Field(
        default=10,
        gt=0,
        description="Consecutive failed frames before the loop stops",
    )
    ready_timeout_s: float = Field(
        default=5.0,
        gt=0,
        description="Seconds to wait for the camera's first frame",
    )
    labels_path: Optional[str] = Field(default=None, description="Labels file, one name per line")
    headless: bool = False
    max_frames: int = Field(
        default=0,
        ge=0,
        description="Results before a headless run stops (0 = unlimited)",
    )
    log_level: str = "INFO"


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Classify webcam frames and show the top-K labels.")
    p.add_argument("--camera", type=int, default=0, help="Camera index")
    p.add_argument("--image-size", type=int, default=DEFAULT_IMAGE_SIZE,
                   help="Square classifier input size in pixels")
    p.add_argument("--top-k", type=int, default=DEFAULT_TOP_K, help="Number of labels to show")
    p.add_argument("--classifier", default="mediapipe", help="Classifier backend id")
    p.add_argument("--model", default=None, help="Model file name or path for the backend")
    p.add_argument("--softmax", action="store_true",
                   help="Apply softmax to raw classifier scores before ranking")
    p.add_argument("--labels", default=None, help="Labels file, one class name per line")
    p.add_argument("--max-failures", type=int, default=10,
                   help="Consecutive failed frames before the loop stops")
    p.add_argument("--ready-timeout", type=float, default=5.0,
                   help="Seconds to wait for the camera's first frame")
    p.add_argument("--headless", action="store_true", help="Log predictions instead of opening a window")
    p.add_argument("--max-frames", type=int, default=0,
                   help="Stop a headless run after this many results (0 = run until interrupted)")
    p.add_argument("--log-level", default="INFO", help="Logging level")
    return p


def settings_from_args(argv: Sequence[str] | None = None) -> PipelineSettings:
    args = build_arg_parser().parse_args(argv)
    classifier_settings: dict[str, Any] = {}
    if args.model:
        classifier_settings["model"] = args.model
    if args.softmax:
        classifier_settings["normalize"] = "softmax"
    try:
        return PipelineSettings(
            camera_index=args.camera,
            image_size=args.image_size,
            top_k=args.top_k,
            classifier=args.classifier,
            classifier_settings=classifier_settings,
            max_consecutive_failures=args.max_failures,
            ready_timeout_s=args.ready_timeout,
            labels_path=args.labels,
            headless=args.headless,
            max_frames=args.max_frames,
            log_level=args.log_level,
        )
    except ValidationError as e:
        raise InvalidArgument(f"Invalid settings: {e}") from e
