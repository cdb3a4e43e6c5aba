"""
Device Card - One clickable tile in the device grid
"""

from PySide6.QtCore import Signal, Slot
from PySide6.QtWidgets import QPushButton

from core.device_info import DeviceRecord


class DeviceCard(QPushButton):
    """Shows a DeviceRecord and emits its serial when clicked"""

    mirror_requested = Signal(str)  # serial

    def __init__(self, record: DeviceRecord, parent=None):
        super().__init__(parent)
        self.record = record
        self.setObjectName("deviceCard")
        self.setText("\n".join([
            record.name,
            record.model,
            record.manufacturer,
            record.api_label,
            record.sdk_label,
            record.state,
        ]))
        self.setToolTip(str(record))
        self.setMinimumHeight(120)
        self.clicked.connect(self._on_clicked)

    @Slot()
    def _on_clicked(self):
        self.mirror_requested.emit(self.record.serial)
