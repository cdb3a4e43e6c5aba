"""
Main application entry point

Launches the Scrcpy Viewer GUI application.
"""

import asyncio
import logging
import sys
from pathlib import Path

import qasync
from PySide6.QtCore import Qt
from PySide6.QtWidgets import QApplication

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent))

from config import ConfigManager
from core.device_manager import DeviceDiscoveryStream
from core.mirror_engine import MirrorSessionSupervisor, find_scrcpy, is_scrcpy_available
from core.session_registry import SessionRegistry
from gui.main_window import MainWindow
from utils.adb_wrapper import ADBWrapper
from utils.logger import setup_logger
from utils.platform_tools import BridgeBootstrap

__version__ = "0.1.0"

logger = logging.getLogger(__name__)


def main():
    """Main application entry point"""
    setup_logger(level=logging.DEBUG if "--debug" in sys.argv else logging.INFO)
    logger.info("Starting Scrcpy Viewer...")

    QApplication.setHighDpiScaleFactorRoundingPolicy(
        Qt.HighDpiScaleFactorRoundingPolicy.PassThrough
    )
    app = QApplication(sys.argv)
    app.setApplicationName("Scrcpy Viewer")
    app.setOrganizationName("ScrcpyViewer")
    app.setApplicationVersion(__version__)

    loop = qasync.QEventLoop(app)
    asyncio.set_event_loop(loop)

    config = ConfigManager()
    adb = ADBWrapper(config.load_adb_path() or None)
    bootstrap = BridgeBootstrap(
        adb,
        configured_path=config.load_adb_path(),
        auto_download=config.load_auto_download()
    )
    registry = SessionRegistry()
    supervisor = MirrorSessionSupervisor(
        registry,
        executable=find_scrcpy(config.load_scrcpy_path()),
        options=config.mirror_options(),
        grace_period=config.load_grace_period()
    )
    discovery = DeviceDiscoveryStream(adb, bootstrap)

    if not is_scrcpy_available(config.load_scrcpy_path()):
        logger.warning("scrcpy not found; mirroring sessions will fail to start")

    window = MainWindow(discovery, supervisor, registry, config)
    window.show()
    window.start_discovery()
    logger.info("Application started successfully")

    with loop:
        try:
            loop.run_forever()
        except KeyboardInterrupt:
            pass
        finally:
            logger.info("Shutting down mirror sessions...")
            loop.run_until_complete(supervisor.shutdown())
            pending = [task for task in asyncio.all_tasks(loop) if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))


if __name__ == "__main__":
    main()
