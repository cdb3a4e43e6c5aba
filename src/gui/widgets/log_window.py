"""
Log Window - Live scrcpy console output for one device

Polls the session registry and appends whatever lines arrived since the
last refresh.
"""

import logging
from typing import Tuple

from PySide6.QtCore import QTimer, Signal, Slot
from PySide6.QtGui import QFont, QTextCursor
from PySide6.QtWidgets import QLabel, QPlainTextEdit, QVBoxLayout, QWidget

from core.mirror_engine import MirrorSessionSupervisor, SessionStatus
from core.session_registry import SessionRegistry

logger = logging.getLogger(__name__)


class LogWindow(QWidget):
    """Top-level window showing one device's mirroring log"""

    closed = Signal(str)  # serial

    def __init__(
        self,
        serial: str,
        title: str,
        registry: SessionRegistry,
        supervisor: MirrorSessionSupervisor,
        refresh_ms: int = 200
    ):
        """
        Initialize Log Window

        Args:
            serial: Device serial whose buffer is shown
            title: Window title
            registry: Registry holding the log buffer
            supervisor: Supervisor owning the session, used for its status
            refresh_ms: Polling interval in milliseconds
        """
        super().__init__()
        self.serial = serial
        self.registry = registry
        self.supervisor = supervisor
        self._lines: Tuple[str, ...] = ()

        self._setup_ui(title)

        self._refresh_timer = QTimer(self)
        self._refresh_timer.setInterval(refresh_ms)
        self._refresh_timer.timeout.connect(self.refresh)
        self._refresh_timer.start()

    def _setup_ui(self, title: str):
        """Setup user interface"""
        self.setWindowTitle(title)
        self.resize(700, 450)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(4, 4, 4, 4)

        self.status_label = QLabel("Starting")
        self.status_label.setObjectName("statusLabel")
        layout.addWidget(self.status_label)

        self.log_display = QPlainTextEdit()
        self.log_display.setReadOnly(True)
        self.log_display.setLineWrapMode(QPlainTextEdit.LineWrapMode.NoWrap)
        font = QFont("Consolas", 9)
        font.setStyleHint(QFont.StyleHint.Monospace)
        self.log_display.setFont(font)
        layout.addWidget(self.log_display)

    @Slot()
    def refresh(self):
        """Append new lines and update the session status"""
        lines = self.registry.snapshot(self.serial) or ()

        if lines[:len(self._lines)] != self._lines:
            # The session was restarted with a fresh buffer
            self.log_display.clear()
            self._lines = ()

        if len(lines) > len(self._lines):
            self.log_display.appendPlainText("\n".join(lines[len(self._lines):]))
            self.log_display.moveCursor(QTextCursor.MoveOperation.End)
        self._lines = lines

        session = self.supervisor.session(self.serial)
        if session is None:
            return

        failed = session.status is SessionStatus.FAILED
        self.status_label.setText(session.status_text)
        if self.status_label.property("failed") != failed:
            self.status_label.setProperty("failed", failed)
            self.status_label.style().unpolish(self.status_label)
            self.status_label.style().polish(self.status_label)

    @property
    def line_count(self) -> int:
        return len(self._lines)

    def closeEvent(self, event):
        """Stop polling and report the dismissal"""
        self._refresh_timer.stop()
        logger.debug(f"Log window closed for {self.serial}")
        self.closed.emit(self.serial)
        super().closeEvent(event)
