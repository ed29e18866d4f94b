# Core: capture, preprocessing, ranking, capture loop

from core.capture import CameraStream, FrameSource
from core.loop import CaptureLoop, LoopHandle, LoopState, PipelineContext
from core.ranking import ScoreRanker, rank

__all__ = [
    "CameraStream",
    "CaptureLoop",
    "FrameSource",
    "LoopHandle",
    "LoopState",
    "PipelineContext",
    "ScoreRanker",
    "rank",
]
