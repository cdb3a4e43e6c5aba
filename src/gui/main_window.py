"""
Main Window - Device grid

Shows one card per ready device and opens a mirroring log window per card.
"""

import logging
from typing import Dict, List, Optional

from PySide6.QtCore import Qt, Slot
from PySide6.QtWidgets import (
    QGridLayout, QLabel, QMainWindow, QScrollArea, QStackedWidget,
    QStatusBar, QVBoxLayout, QWidget
)

from config import ConfigManager
from core.device_info import DeviceRecord
from core.device_manager import DeviceDiscoveryStream
from core.mirror_engine import MirrorSessionSupervisor
from core.session_registry import SessionRegistry
from gui.themes import ThemeManager
from gui.widgets import DeviceCard, LogWindow
from utils.adb_wrapper import BridgeStartError
from utils.async_helper import safe_ensure_future

logger = logging.getLogger(__name__)


class MainWindow(QMainWindow):
    """Main application window"""

    COLUMNS = 5

    def __init__(
        self,
        discovery: DeviceDiscoveryStream,
        supervisor: MirrorSessionSupervisor,
        registry: SessionRegistry,
        config: Optional[ConfigManager] = None
    ):
        """
        Initialize Main Window

        Args:
            discovery: Device discovery stream feeding the grid
            supervisor: Supervisor launching scrcpy sessions
            registry: Registry read by the log windows
            config: Configuration manager used for window geometry
        """
        super().__init__()
        self.discovery = discovery
        self.supervisor = supervisor
        self.registry = registry
        self.config = config
        self._log_windows: Dict[str, LogWindow] = {}
        self._discovery_task = None

        self._setup_ui()
        self.setStyleSheet(ThemeManager.get_stylesheet())

        if self.config is not None:
            geometry = self.config.load_window_geometry()
            if geometry:
                self.restoreGeometry(geometry)

        logger.info("Main window initialized")

    def _setup_ui(self):
        """Setup user interface"""
        self.setWindowTitle("Scrcpy Viewer")
        self.setMinimumSize(800, 500)

        self.stack = QStackedWidget()
        self.setCentralWidget(self.stack)

        self.grid_container = QWidget()
        self.grid_layout = QGridLayout(self.grid_container)
        self.grid_layout.setSpacing(4)
        self.grid_layout.setAlignment(Qt.AlignTop)

        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        scroll.setWidget(self.grid_container)
        self.stack.addWidget(scroll)

        error_page = QWidget()
        error_layout = QVBoxLayout(error_page)
        self.error_label = QLabel()
        self.error_label.setObjectName("errorLabel")
        self.error_label.setAlignment(Qt.AlignCenter)
        self.error_label.setWordWrap(True)
        error_layout.addWidget(self.error_label)
        self.stack.addWidget(error_page)

        self.status_bar = QStatusBar()
        self.setStatusBar(self.status_bar)
        self.status_bar.showMessage("Ready")

    def start_discovery(self):
        """Begin consuming device snapshots in the background"""
        self._discovery_task = safe_ensure_future(self._watch_devices(), name="device-discovery")

    async def _watch_devices(self):
        self.status_bar.showMessage("Starting debug bridge...")
        try:
            async for snapshot in self.discovery.snapshots():
                self.show_devices(snapshot)
        except BridgeStartError as e:
            self.show_error(str(e))
            return
        self.status_bar.showMessage("Device feed ended")

    def show_devices(self, records: List[DeviceRecord]):
        """Rebuild the grid from a snapshot"""
        while self.grid_layout.count():
            item = self.grid_layout.takeAt(0)
            if item.widget() is not None:
                item.widget().deleteLater()

        for index, record in enumerate(records):
            card = DeviceCard(record)
            card.mirror_requested.connect(self._open_mirror)
            self.grid_layout.addWidget(card, index // self.COLUMNS, index % self.COLUMNS)

        self.stack.setCurrentIndex(0)
        self.status_bar.showMessage(f"{len(records)} device(s) connected")

    def show_error(self, message: str):
        """Replace the grid with a failure message"""
        self.error_label.setText(message)
        self.stack.setCurrentIndex(1)
        self.status_bar.showMessage(message)

    @Slot(str)
    def _open_mirror(self, serial: str):
        """Start mirroring a device and show its log window"""
        record = self.discovery.find(serial)
        self.supervisor.open(serial)

        window = self._log_windows.get(serial)
        if window is None:
            title = record.device_info if record is not None else serial
            window = LogWindow(serial, title, self.registry, self.supervisor)
            window.setStyleSheet(ThemeManager.get_stylesheet())
            window.closed.connect(self._on_log_closed)
            self._log_windows[serial] = window

        window.show()
        window.raise_()
        window.activateWindow()

    @Slot(str)
    def _on_log_closed(self, serial: str):
        """Dismissing a log window ends its session"""
        window = self._log_windows.pop(serial, None)
        if window is not None:
            window.deleteLater()
        safe_ensure_future(self.supervisor.close(serial), name=f"close-{serial}")

    def closeEvent(self, event):
        """Handle window close event"""
        if self.config is not None:
            self.config.save_window_geometry(self.saveGeometry())

        if self._discovery_task is not None:
            self._discovery_task.cancel()

        for window in list(self._log_windows.values()):
            window.close()

        super().closeEvent(event)
