"""
GUI Widgets Package

This package contains the widgets of the Scrcpy Viewer application.
"""

from .device_card import DeviceCard
from .log_window import LogWindow

__all__ = [
    'DeviceCard',
    'LogWindow',
]
