"""Widget tests for the device grid and log windows (offscreen)."""

from conftest import FakeADB, FakeBootstrap
from core.device_info import DeviceRecord
from core.device_manager import DeviceDiscoveryStream
from core.mirror_engine import LaunchError, MirrorSession, MirrorSessionSupervisor, SessionStatus
from core.session_registry import SessionRegistry
from gui.main_window import MainWindow
from gui.widgets import DeviceCard, LogWindow


class StubSupervisor:
    def __init__(self, session=None):
        self._session = session
        self.opened = []

    def session(self, serial):
        return self._session

    def open(self, serial):
        self.opened.append(serial)
        return self._session

    async def close(self, serial):
        pass


def test_log_window_appends_only_new_lines(qtbot):
    registry = SessionRegistry()
    registry.create("A")
    registry.append("A", "line1")
    running = MirrorSession("A", status=SessionStatus.RUNNING)
    window = LogWindow("A", "Acme device", registry, StubSupervisor(running), refresh_ms=10_000)
    qtbot.addWidget(window)

    window.refresh()
    registry.append("A", "line2")
    window.refresh()
    window.refresh()

    assert window.log_display.toPlainText() == "line1\nline2"
    assert window.line_count == 2
    assert window.status_label.text() == "Running"
    assert window.windowTitle() == "Acme device"


def test_log_window_shows_launch_failure(qtbot):
    registry = SessionRegistry()
    registry.create("A")
    failed = MirrorSession("A", status=SessionStatus.FAILED, error=LaunchError("scrcpy not found"))
    window = LogWindow("A", "A", registry, StubSupervisor(failed), refresh_ms=10_000)
    qtbot.addWidget(window)

    window.refresh()

    assert window.log_display.toPlainText() == ""
    assert window.status_label.text() == "Failed to start: scrcpy not found"
    assert window.status_label.property("failed") is True


def test_log_window_resets_after_fresh_buffer(qtbot):
    registry = SessionRegistry()
    registry.create("A")
    registry.append("A", "old")
    window = LogWindow("A", "A", registry, StubSupervisor(), refresh_ms=10_000)
    qtbot.addWidget(window)
    window.refresh()

    registry.create("A")
    registry.append("A", "new")
    window.refresh()

    assert window.log_display.toPlainText() == "new"


def test_log_window_close_reports_serial(qtbot):
    window = LogWindow("A", "A", SessionRegistry(), StubSupervisor(), refresh_ms=10_000)
    qtbot.addWidget(window)
    window.show()

    with qtbot.waitSignal(window.closed) as blocker:
        window.close()

    assert blocker.args == ["A"]


def make_main_window(qtbot, supervisor=None):
    registry = SessionRegistry()
    discovery = DeviceDiscoveryStream(FakeADB(), FakeBootstrap())
    window = MainWindow(discovery, supervisor or MirrorSessionSupervisor(registry), registry)
    qtbot.addWidget(window)
    return window


def test_device_grid_uses_five_columns(qtbot):
    window = make_main_window(qtbot)
    records = [DeviceRecord(serial=f"serial-{i}", model=f"Model {i}") for i in range(7)]

    window.show_devices(records)

    cards = [window.grid_layout.itemAt(i).widget() for i in range(window.grid_layout.count())]
    assert len(cards) == 7
    assert all(isinstance(card, DeviceCard) for card in cards)
    row, column, _, _ = window.grid_layout.getItemPosition(5)
    assert (row, column) == (1, 0)
    assert "Model 0" in cards[0].text()
    assert window.stack.currentIndex() == 0


def test_error_replaces_device_grid(qtbot):
    window = make_main_window(qtbot)

    window.show_error("Failed to start debug bridge")

    assert window.stack.currentIndex() == 1
    assert window.error_label.text() == "Failed to start debug bridge"


def test_clicking_card_opens_session_and_log_window(qtbot):
    supervisor = StubSupervisor(MirrorSession("A"))
    window = make_main_window(qtbot, supervisor)
    window.show_devices([DeviceRecord(serial="A", manufacturer="Acme")])

    card = window.grid_layout.itemAt(0).widget()
    card.click()

    assert supervisor.opened == ["A"]
    assert "A" in window._log_windows

    window._log_windows["A"].close()
    assert "A" not in window._log_windows
