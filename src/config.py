"""
Configuration Manager - Application settings and preferences

This module handles loading, saving, and managing application configuration.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from PySide6.QtCore import QSettings

logger = logging.getLogger(__name__)

APP_DIR = Path.home() / ".scrcpyviewer"

DEFAULT_GRACE_PERIOD = 2.0


class ConfigManager:
    """Manages application configuration and user preferences"""

    def __init__(self, settings: Optional[QSettings] = None):
        """
        Initialize configuration manager

        Args:
            settings: Settings store to use. Defaults to the per-user
                ScrcpyViewer store.
        """
        self.settings = settings if settings is not None else QSettings("ScrcpyViewer", "ScrcpyViewer")
        logger.info("Config Manager initialized")

    def save_window_geometry(self, geometry: bytes):
        """Save main window geometry"""
        self.settings.setValue("window/geometry", geometry)

    def load_window_geometry(self) -> bytes:
        """Load main window geometry"""
        return self.settings.value("window/geometry", b"")

    def save_adb_path(self, path: str):
        """Save custom ADB binary path"""
        self.settings.setValue("adb/custom_path", path)

    def load_adb_path(self) -> str:
        """Load custom ADB binary path"""
        return self.settings.value("adb/custom_path", "")

    def save_auto_download(self, enabled: bool):
        self.settings.setValue("adb/auto_download", enabled)

    def load_auto_download(self) -> bool:
        """Whether platform-tools may be downloaded when no adb is found"""
        return self.settings.value("adb/auto_download", True, type=bool)

    def save_scrcpy_path(self, path: str):
        """Save directory containing the scrcpy executable"""
        self.settings.setValue("scrcpy/path", path)

    def load_scrcpy_path(self) -> str:
        """Load directory containing the scrcpy executable"""
        return self.settings.value("scrcpy/path", "")

    def save_grace_period(self, seconds: float):
        self.settings.setValue("mirror/terminate_grace_period", seconds)

    def load_grace_period(self) -> float:
        """Seconds to wait for scrcpy to exit before killing it"""
        return self.settings.value("mirror/terminate_grace_period", DEFAULT_GRACE_PERIOD, type=float)

    def save_mirror_options(self, options: Dict[str, Any]):
        """
        Save scrcpy launch options

        Args:
            options: Mapping with any of max_size, bitrate, max_fps,
                always_on_top, fullscreen
        """
        for key, value in options.items():
            self.settings.setValue(f"mirror/{key}", value)

    def mirror_options(self) -> Dict[str, Any]:
        """
        Load scrcpy launch options

        Returns:
            Options dictionary understood by ``build_scrcpy_args``
        """
        return {
            "max_size": self.settings.value("mirror/max_size", 0, type=int),
            "bitrate": self.settings.value("mirror/bitrate", 0, type=int),
            "max_fps": self.settings.value("mirror/max_fps", 0, type=int),
            "always_on_top": self.settings.value("mirror/always_on_top", False, type=bool),
            "fullscreen": self.settings.value("mirror/fullscreen", False, type=bool),
        }
