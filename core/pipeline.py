"""
Assembles a ready PipelineContext: loaded classifier, class labels, open camera.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from core.capture import FrameSource
from core.config import PipelineSettings
from core.loop import PipelineContext
from core.models import ClassLabels
from core.preprocess import Preprocessor
from core.ranking import ScoreRanker
from core.utils import StatusFn, log_status

if TYPE_CHECKING:
    from classifiers.base import ClassifierBase

logger = logging.getLogger(__name__)


def build_pipeline(
    settings: PipelineSettings,
    classifier: ClassifierBase,
    status: StatusFn = log_status,
    frame_source: FrameSource | None = None,
) -> PipelineContext:
    """
    Load and warm up the classifier, resolve class labels and open the camera.
    The classifier is closed again if anything after loading fails.
    """
    size = settings.image_size
    status("Loading model...")
    classifier.init(settings.classifier_settings)
    try:
        # Warmup also lets backends read their label metadata
        classifier.warmup(size, size)
        if settings.labels_path:
            labels = ClassLabels.from_file(settings.labels_path)
        else:
            labels = classifier.class_labels()
        logger.info("%s ready with %d classes", classifier.display_name, len(labels))
        status("Opening camera...")
        source = frame_source or FrameSource(
            settings.camera_index, ready_timeout_s=settings.ready_timeout_s
        )
        stream = source.open(size, size)
    except Exception:
        classifier.close()
        raise
    status("")
    return PipelineContext(
        stream=stream,
        preprocess=Preprocessor(size, size),
        classify=classifier.predict,
        ranker=ScoreRanker(labels),
        top_k=min(settings.top_k, len(labels)),
    )
