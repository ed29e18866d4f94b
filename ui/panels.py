"""
Right-side panels: Predictions, Results (JSON), Logs, Performance.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from PySide6.QtCore import QObject, Signal
from PySide6.QtWidgets import (
    QHeaderView,
    QLabel,
    QPlainTextEdit,
    QTableWidget,
    QTableWidgetItem,
    QVBoxLayout,
    QWidget,
)

from core.models import RankedResult


def _pretty_json(obj: Any) -> str:
    """Pretty-print dict/list for display."""
    try:
        return json.dumps(obj, indent=2, default=str)
    except (TypeError, ValueError):
        return str(obj)


class PredictionsPanel(QWidget):
    """Top-K table: label and probability (3 decimals)."""

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        self._table = QTableWidget(0, 2, self)
        self._table.setHorizontalHeaderLabels(["Label", "Probability"])
        self._table.horizontalHeader().setSectionResizeMode(0, QHeaderView.ResizeMode.Stretch)
        self._table.verticalHeader().setVisible(False)
        self._table.setEditTriggers(QTableWidget.EditTrigger.NoEditTriggers)
        layout.addWidget(self._table, stretch=1)

    def update_predictions(self, result: RankedResult) -> None:
        self._table.setRowCount(len(result))
        for row, prediction in enumerate(result):
            self._table.setItem(row, 0, QTableWidgetItem(prediction.label))
            self._table.setItem(row, 1, QTableWidgetItem(f"{prediction.probability:.3f}"))

    def clear(self) -> None:
        self._table.setRowCount(0)


class ResultsPanel(QWidget):
    """Shows the latest result payload as pretty-printed JSON."""

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        self._text = QPlainTextEdit(self)
        self._text.setReadOnly(True)
        self._text.setPlaceholderText("Results will appear here while the classifier is running.")
        layout.addWidget(self._text, stretch=1)

    def update_results(self, results: dict[str, Any] | None) -> None:
        if results is None:
            self._text.setPlainText("")
            return
        self._text.setPlainText(_pretty_json(results))


class LogsPanel(QWidget):
    """Shows application log messages and errors."""

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        layout = QVBoxLayout(self)
        self._text = QPlainTextEdit(self)
        self._text.setReadOnly(True)
        self._text.setMaximumBlockCount(2000)
        layout.addWidget(self._text)

    def append(self, message: str) -> None:
        self._text.appendPlainText(message)
        # Auto-scroll to bottom
        scrollbar = self._text.verticalScrollBar()
        scrollbar.setValue(scrollbar.maximum())

    def clear(self) -> None:
        self._text.clear()


class _LogBridge(QObject):
    message = Signal(str)


class QtLogHandler(logging.Handler):
    """Forwards log records to a LogsPanel; safe to use from worker threads."""

    def __init__(self, panel: LogsPanel, level: int = logging.INFO) -> None:
        super().__init__(level)
        self._bridge = _LogBridge()
        self._bridge.message.connect(panel.append)
        self.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self._bridge.message.emit(self.format(record))
        except RuntimeError:
            # Panel already destroyed during shutdown
            self.handleError(record)


class PerformancePanel(QWidget):
    """Shows FPS, inference time (ms), rolling average and skipped frames."""

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        layout = QVBoxLayout(self)
        self._fps_label = QLabel()
        self._latency_label = QLabel()
        self._rolling_label = QLabel()
        self._skipped_label = QLabel()
        for w in (self._fps_label, self._latency_label, self._rolling_label, self._skipped_label):
            layout.addWidget(w)
        layout.addStretch()
        self.reset()

    def update_metrics(
        self, fps: float, inference_ms: float, rolling_avg_ms: float, skipped: int
    ) -> None:
        self._fps_label.setText(f"FPS: {fps:.1f}")
        self._latency_label.setText(f"Inference (ms): {inference_ms:.1f}")
        self._rolling_label.setText(f"Rolling avg (ms): {rolling_avg_ms:.1f}")
        self._skipped_label.setText(f"Skipped frames: {skipped}")

    def reset(self) -> None:
        self._fps_label.setText("FPS: -")
        self._latency_label.setText("Inference (ms): -")
        self._rolling_label.setText("Rolling avg (ms): -")
        self._skipped_label.setText("Skipped frames: 0")
