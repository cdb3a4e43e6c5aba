"""
Session Registry - Per-device log buffers shared between supervisor and UI

The mirror supervisor is the only writer; windows read immutable snapshots.
A single lock guards the whole map, which is plenty for a handful of devices.
"""

import logging
import threading
from typing import Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

RegistryListener = Callable[[str], None]


class SessionRegistry:
    """Thread-safe mapping of device serial to its ordered log lines"""

    def __init__(self):
        self._buffers: Dict[str, List[str]] = {}
        self._lock = threading.RLock()
        self._listeners: List[RegistryListener] = []

    def add_listener(self, listener: RegistryListener):
        """Register a callback invoked with the serial after every change"""
        self._listeners.append(listener)

    def remove_listener(self, listener: RegistryListener):
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, serial: str):
        for listener in list(self._listeners):
            try:
                listener(serial)
            except Exception:
                logger.exception(f"Session registry listener failed for {serial}")

    def create(self, serial: str):
        """Insert an empty buffer for serial, discarding any previous one"""
        with self._lock:
            self._buffers[serial] = []
        self._notify(serial)

    def append(self, serial: str, line: str) -> bool:
        """
        Append one line to a buffer

        Returns:
            False if serial has no buffer (already closed)
        """
        with self._lock:
            buffer = self._buffers.get(serial)
            if buffer is None:
                return False
            buffer.append(line)
        self._notify(serial)
        return True

    def snapshot(self, serial: str) -> Optional[Tuple[str, ...]]:
        """
        Read the current lines of a buffer

        Returns:
            Immutable copy of the lines, or None if serial is not registered
        """
        with self._lock:
            buffer = self._buffers.get(serial)
            return None if buffer is None else tuple(buffer)

    def remove(self, serial: str) -> bool:
        """Drop a buffer; returns False if there was none"""
        with self._lock:
            removed = self._buffers.pop(serial, None) is not None
        if removed:
            self._notify(serial)
        return removed

    def identities(self) -> List[str]:
        with self._lock:
            return list(self._buffers)

    def __contains__(self, serial: str) -> bool:
        with self._lock:
            return serial in self._buffers

    def __len__(self) -> int:
        with self._lock:
            return len(self._buffers)
