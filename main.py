"""
Webcam classifier — entry point.
Run: python main.py            (window)
     python main.py --headless (log the top-K labels of each frame)
"""

from __future__ import annotations

import logging
import os
import signal
import sys
from typing import Sequence

# Reduce TensorFlow Lite/MediaPipe console noise (INFO and WARNING)
os.environ.setdefault("TF_CPP_MIN_LOG_LEVEL", "2")
os.environ.setdefault("GLOG_minloglevel", "2")

from PySide6.QtCore import QCoreApplication

from classifiers import get_classifier
from core.config import PipelineSettings, settings_from_args
from core.errors import FatalPipelineError, InvalidArgument, PipelineError
from core.loop import CaptureLoop, LoopHandle
from core.models import Frame, RankedResult
from core.pipeline import build_pipeline
from core.scheduler import QtFrameScheduler

logger = logging.getLogger("main")


def format_result(result: RankedResult) -> str:
    return ", ".join(f"{p.label} {p.probability:.3f}" for p in result)


def run_headless(settings: PipelineSettings) -> int:
    """Classify frames on a Qt event loop without a window. Returns the exit code."""
    app = QCoreApplication.instance() or QCoreApplication(sys.argv)
    try:
        classifier = get_classifier(settings.classifier)
        context = build_pipeline(settings, classifier)
    except (PipelineError, OSError) as e:
        # Unknown backend, model download or lookup, camera
        logger.error("Error: %s", e)
        return 2
    handle: LoopHandle | None = None

    def sink(result: RankedResult, frame: Frame) -> None:
        logger.info("frame %d: %s", frame.frame_id, format_result(result))
        if settings.max_frames and handle is not None and handle.iterations >= settings.max_frames:
            handle.cancel()
            app.quit()

    def on_fatal(error: FatalPipelineError) -> None:
        app.exit(1)

    loop = CaptureLoop(
        context,
        QtFrameScheduler(),
        max_consecutive_failures=settings.max_consecutive_failures,
        on_fatal=on_fatal,
    )
    handle = loop.run(sink)
    # Delivered between ticks
    signal.signal(signal.SIGINT, lambda *_: (handle.cancel(), app.quit()))
    try:
        return app.exec()
    finally:
        context.close()
        classifier.close()


def main(argv: Sequence[str] | None = None) -> int:
    try:
        settings = settings_from_args(argv)
    except InvalidArgument as e:
        logging.basicConfig()
        logger.error("%s", e)
        return 2
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    if settings.headless:
        return run_headless(settings)

    from PySide6.QtWidgets import QApplication
    from ui.main_window import MainWindow

    app = QApplication(sys.argv)
    window = MainWindow(settings)
    window.show()
    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
