"""
Main window: left sidebar (camera, classifier, top-K, start/stop), center preview,
right tabs (Predictions, Results, Logs, Performance).
"""

from __future__ import annotations

import logging
from typing import Any

from PySide6.QtCore import QObject, Qt, QThread, Signal, Slot
from PySide6.QtGui import QImage, QPixmap
from PySide6.QtWidgets import (
    QComboBox,
    QDoubleSpinBox,
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QPushButton,
    QScrollArea,
    QSpinBox,
    QStackedWidget,
    QTabWidget,
    QVBoxLayout,
    QWidget,
)

from classifiers import available_classifiers
from classifiers.base import ClassifierBase
from core.camera_list import list_cameras
from core.config import PipelineSettings
from core.errors import FatalPipelineError
from core.loop import CaptureLoop, LoopHandle, PipelineContext
from core.models import Frame, RankedResult, results_to_dict
from core.pipeline import build_pipeline
from core.scheduler import QtFrameScheduler
from ui.panels import LogsPanel, PerformancePanel, PredictionsPanel, QtLogHandler, ResultsPanel

logger = logging.getLogger(__name__)


class PipelineInitWorker(QObject):
    """Loads the classifier and opens the camera in a background thread so the UI stays responsive."""

    status = Signal(str)
    init_done = Signal(bool, str, object)  # success, error_message, context

    def __init__(self, settings: PipelineSettings, classifier: ClassifierBase) -> None:
        super().__init__()
        self._settings = settings
        self._classifier = classifier

    def run(self) -> None:
        try:
            context = build_pipeline(self._settings, self._classifier, status=self.status.emit)
        except Exception as e:
            logger.exception("Pipeline setup failed")
            self.init_done.emit(False, str(e), None)
            return
        self.init_done.emit(True, "", context)


def get_settings_from_widget(widget: QWidget) -> dict[str, Any]:
    """Collect current settings from a classifier's settings widget (inputs by objectName)."""
    out: dict[str, Any] = {}
    for spin in widget.findChildren(QSpinBox):
        if spin.objectName():
            out[spin.objectName()] = int(spin.value())
    for spin in widget.findChildren(QDoubleSpinBox):
        if spin.objectName():
            out[spin.objectName()] = float(spin.value())
    for combo in widget.findChildren(QComboBox):
        if combo.objectName():
            data = combo.currentData()
            out[combo.objectName()] = data if data is not None else combo.currentText()
    return out


def apply_settings_to_widget(widget: QWidget, settings: dict[str, Any]) -> None:
    """Set a classifier's settings widget from a settings dict (inputs by objectName)."""
    for spin in widget.findChildren(QSpinBox):
        if spin.objectName() in settings:
            spin.setValue(int(settings[spin.objectName()]))
    for spin in widget.findChildren(QDoubleSpinBox):
        if spin.objectName() in settings:
            spin.setValue(float(settings[spin.objectName()]))
    for combo in widget.findChildren(QComboBox):
        if combo.objectName() not in settings:
            continue
        value = settings[combo.objectName()]
        pos = combo.findData(value)
        if pos < 0:
            # e.g. a model path given on the command line
            combo.addItem(str(value), value)
            pos = combo.count() - 1
        combo.setCurrentIndex(pos)


class MainWindow(QWidget):
    """Main application window; also the sink and status display of the capture loop."""

    def __init__(self, settings: PipelineSettings) -> None:
        super().__init__()
        self.setWindowTitle("Webcam Classifier")
        self._settings = settings
        self._classifiers: list[ClassifierBase] = []
        self._current_classifier: ClassifierBase | None = None
        self._active_classifier: ClassifierBase | None = None
        self._context: PipelineContext | None = None
        self._handle: LoopHandle | None = None
        self._init_thread: QThread | None = None
        self._init_worker: PipelineInitWorker | None = None

        layout = QHBoxLayout(self)
        # --- Left sidebar ---
        sidebar = QWidget()
        sidebar_layout = QVBoxLayout(sidebar)
        sidebar_layout.addWidget(QLabel("Camera"))
        self._camera_combo = QComboBox()
        sidebar_layout.addWidget(self._camera_combo)
        refresh_cam_btn = QPushButton("Refresh cameras")
        refresh_cam_btn.setToolTip("Re-detect connected cameras.")
        refresh_cam_btn.clicked.connect(self._refresh_cameras)
        sidebar_layout.addWidget(refresh_cam_btn)
        sidebar_layout.addWidget(QLabel("Classifier"))
        self._classifier_combo = QComboBox()
        self._classifier_combo.currentIndexChanged.connect(self._on_classifier_changed)
        sidebar_layout.addWidget(self._classifier_combo)
        self._settings_stack = QStackedWidget()
        settings_group = QGroupBox("Settings")
        settings_scroll = QScrollArea()
        settings_scroll.setWidgetResizable(True)
        settings_scroll.setWidget(self._settings_stack)
        settings_inner = QVBoxLayout()
        settings_inner.addWidget(settings_scroll)
        settings_group.setLayout(settings_inner)
        sidebar_layout.addWidget(settings_group)
        sidebar_layout.addWidget(QLabel("Top K"))
        self._top_k_spin = QSpinBox()
        self._top_k_spin.setRange(1, 20)
        self._top_k_spin.setValue(settings.top_k)
        sidebar_layout.addWidget(self._top_k_spin)
        self._start_stop_btn = QPushButton("Start")
        self._start_stop_btn.clicked.connect(self._on_start_stop)
        sidebar_layout.addWidget(self._start_stop_btn)
        self._status_label = QLabel()
        self._status_label.setWordWrap(True)
        self._status_label.setStyleSheet("color: #666; font-size: 11px;")
        sidebar_layout.addWidget(self._status_label)
        sidebar_layout.addStretch()
        layout.addWidget(sidebar)

        # --- Center: classified frame ---
        self._video_label = QLabel()
        self._video_label.setMinimumSize(448, 448)
        self._video_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._video_label.setStyleSheet("background-color: #1e1e1e; color: #888;")
        self._video_label.setText("No video")
        layout.addWidget(self._video_label, stretch=1)

        # --- Right: tabs ---
        tabs = QTabWidget()
        self._predictions_panel = PredictionsPanel()
        tabs.addTab(self._predictions_panel, "Predictions")
        self._results_panel = ResultsPanel()
        tabs.addTab(self._results_panel, "Results")
        self._logs_panel = LogsPanel()
        tabs.addTab(self._logs_panel, "Logs")
        self._performance_panel = PerformancePanel()
        tabs.addTab(self._performance_panel, "Performance")
        layout.addWidget(tabs)

        self._log_handler = QtLogHandler(self._logs_panel)
        logging.getLogger().addHandler(self._log_handler)

        self._refresh_cameras()
        self._load_classifiers()
        self._logs_panel.append("Select a camera and classifier, then Start.")
        self.resize(1100, 600)

    def _refresh_cameras(self) -> None:
        cameras = list_cameras()
        self._camera_combo.clear()
        for index, name in cameras:
            self._camera_combo.addItem(name, index)
        if not cameras:
            self._camera_combo.addItem("No cameras found", self._settings.camera_index)
            self._logs_panel.append("No cameras detected. Connect a camera and click Refresh cameras.")
            return
        pos = self._camera_combo.findData(self._settings.camera_index)
        if pos >= 0:
            self._camera_combo.setCurrentIndex(pos)

    def _load_classifiers(self) -> None:
        self._classifiers = available_classifiers()
        self._classifier_combo.clear()
        for c in self._classifiers:
            self._classifier_combo.addItem(c.display_name, c)
            widget = c.build_settings_widget(self._settings_stack)
            if c.classifier_id == self._settings.classifier:
                apply_settings_to_widget(widget, self._settings.classifier_settings)
            self._settings_stack.addWidget(widget)
        for i, c in enumerate(self._classifiers):
            if c.classifier_id == self._settings.classifier:
                self._classifier_combo.setCurrentIndex(i)
                break
        self._on_classifier_changed(self._classifier_combo.currentIndex())

    def _on_classifier_changed(self, index: int) -> None:
        if index < 0 or index >= len(self._classifiers):
            return
        self._current_classifier = self._classifiers[index]
        self._settings_stack.setCurrentIndex(index)

    @Slot(str)
    def _set_status(self, message: str) -> None:
        self._status_label.setText(message)

    def _on_start_stop(self) -> None:
        if self._handle is not None:
            self._stop_processing()
            self._logs_panel.append("Processing stopped.")
            return
        classifier = self._current_classifier
        if classifier is None:
            self._logs_panel.append("No classifier available.")
            return
        settings = self._start_settings(classifier)
        self._start_stop_btn.setEnabled(False)
        self._start_stop_btn.setText("Loading...")
        self._active_classifier = classifier
        self._init_worker = PipelineInitWorker(settings, classifier)
        self._init_thread = QThread()
        self._init_worker.moveToThread(self._init_thread)
        self._init_thread.started.connect(self._init_worker.run)
        self._init_worker.status.connect(self._set_status)
        self._init_worker.init_done.connect(self._on_pipeline_ready)
        self._init_thread.start()

    def _start_settings(self, classifier: ClassifierBase) -> PipelineSettings:
        """Settings for the next run: the launch settings updated from the sidebar."""
        cam_index = self._camera_combo.currentData()
        return self._settings.model_copy(update={
            "camera_index": cam_index if cam_index is not None else self._settings.camera_index,
            "top_k": int(self._top_k_spin.value()),
            "classifier": classifier.classifier_id,
            "classifier_settings": {
                **self._settings.classifier_settings,
                **get_settings_from_widget(self._settings_stack.currentWidget()),
            },
        })

    @Slot(bool, str, object)
    def _on_pipeline_ready(self, success: bool, error_msg: str, context: PipelineContext | None) -> None:
        self._start_stop_btn.setEnabled(True)
        self._start_stop_btn.setText("Start")
        self._finish_init_thread()
        if not success or context is None:
            self._set_status(f"Error: {error_msg}")
            self._logs_panel.append(f"Setup error: {error_msg}")
            return
        self._context = context
        loop = CaptureLoop(
            context,
            QtFrameScheduler(),
            status=self._set_status,
            max_consecutive_failures=self._settings.max_consecutive_failures,
            on_fatal=self._on_fatal,
        )
        self._handle = loop.run(self._on_result)
        self._start_stop_btn.setText("Stop")
        self._performance_panel.reset()
        self._predictions_panel.clear()
        self._logs_panel.append("Processing started.")

    def _on_result(self, result: RankedResult, frame: Frame) -> None:
        # QImage wraps the frame buffer, which is released after this call; copy it
        h, w = frame.pixels.shape[:2]
        qimg = QImage(frame.pixels.tobytes(), w, h, 3 * w, QImage.Format.Format_BGR888).copy()
        self._video_label.setPixmap(QPixmap.fromImage(qimg).scaled(
            self._video_label.size(),
            Qt.AspectRatioMode.KeepAspectRatio,
            Qt.TransformationMode.SmoothTransformation,
        ))
        self._predictions_panel.update_predictions(result)
        self._results_panel.update_results(results_to_dict(result, frame.frame_id, frame.timestamp_s))
        if self._handle is not None:
            stats = self._handle.stats
            self._performance_panel.update_metrics(
                stats.fps, stats.last_inference_ms, stats.rolling_average_ms, self._handle.skipped
            )

    def _on_fatal(self, error: FatalPipelineError) -> None:
        self._logs_panel.append(f"Error: {error}")
        self._stop_processing()

    def _finish_init_thread(self, timeout_ms: int | None = 2000) -> None:
        """Stop the init thread. With timeout_ms=None, block until a running setup returns."""
        if self._init_thread is not None:
            self._init_thread.quit()
            if timeout_ms is None:
                self._init_thread.wait()
            else:
                self._init_thread.wait(timeout_ms)
            self._init_thread = None
        self._init_worker = None

    def _stop_processing(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        if self._context is not None:
            self._context.close()
            self._context = None
        if self._active_classifier is not None:
            self._active_classifier.close()
            self._active_classifier = None
        self._start_stop_btn.setText("Start")
        self._performance_panel.reset()

    def closeEvent(self, event) -> None:
        # The classifier may still be loading on the init thread; it is closed below
        self._finish_init_thread(timeout_ms=None)
        self._stop_processing()
        logging.getLogger().removeHandler(self._log_handler)
        event.accept()
