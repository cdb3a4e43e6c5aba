"""
Device Manager - Live view of connected devices

This module follows the adb device-event feed and republishes it as
snapshots of enriched DeviceRecord lists, one per received batch.
"""

import asyncio
import logging
from enum import Enum
from typing import AsyncIterator, Callable, Dict, List, Optional

from core.device_info import DeviceInfoFetcher, DeviceRecord, PropertyFetchError
from utils.adb_wrapper import ADBError, ADBWrapper, BridgeStartError, STATE_READY

logger = logging.getLogger(__name__)

SnapshotListener = Callable[[List[DeviceRecord]], None]


class DiscoveryState(Enum):
    """Lifecycle of the discovery subscription"""
    IDLE = "idle"
    STARTING = "starting"
    SUBSCRIBED = "subscribed"
    FAILED = "failed"
    STOPPED = "stopped"


class DeviceDiscoveryStream:
    """
    Turns the push-based adb device feed into DeviceRecord snapshots

    Each batch of raw device states is filtered down to ready devices, every
    one of them is re-fetched, and the resulting list replaces the previous
    snapshot wholesale. Batches are processed one at a time in arrival order.
    """

    def __init__(self, adb: ADBWrapper, bootstrap, fetcher: Optional[DeviceInfoFetcher] = None):
        """
        Initialize the discovery stream

        Args:
            adb: ADB wrapper providing get_devices and track_devices
            bootstrap: Object whose ``ensure_running()`` coroutine starts the
                adb server and returns True on success
            fetcher: Property fetcher, defaults to one built on ``adb``
        """
        self.adb = adb
        self.bootstrap = bootstrap
        self.fetcher = fetcher or DeviceInfoFetcher(adb)
        self._state = DiscoveryState.IDLE
        self._error: Optional[BridgeStartError] = None
        self._snapshot: List[DeviceRecord] = []
        self._listeners: List[SnapshotListener] = []

    @property
    def state(self) -> DiscoveryState:
        return self._state

    @property
    def error(self) -> Optional[BridgeStartError]:
        """The failure that ended the stream, if any"""
        return self._error

    @property
    def current_snapshot(self) -> List[DeviceRecord]:
        """Copy of the last published snapshot"""
        return list(self._snapshot)

    def find(self, serial: str) -> Optional[DeviceRecord]:
        """Resolve a serial to its record in the current snapshot"""
        for record in self._snapshot:
            if record.serial == serial:
                return record
        return None

    def add_listener(self, listener: SnapshotListener):
        self._listeners.append(listener)

    def remove_listener(self, listener: SnapshotListener):
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _set_state(self, state: DiscoveryState):
        if state is not self._state:
            logger.info(f"Device discovery: {self._state.value} -> {state.value}")
            self._state = state

    def _fail(self, cause: Optional[BaseException] = None) -> BridgeStartError:
        self._error = BridgeStartError("Failed to start debug bridge")
        self._set_state(DiscoveryState.FAILED)
        if cause is not None:
            logger.error(f"{self._error}: {cause}")
        else:
            logger.error(str(self._error))
        return self._error

    async def _fetch_or_skip(self, serial: str, state: str) -> Optional[DeviceRecord]:
        try:
            return await self.fetcher.fetch(serial, state)
        except PropertyFetchError as e:
            logger.warning(f"Skipping {serial} for this update: {e}")
            return None

    async def build_snapshot(self, batch: Dict[str, str]) -> List[DeviceRecord]:
        """
        Build the record list for one raw batch

        Args:
            batch: Ordered mapping of serial to adb state

        Returns:
            Records for the ready devices whose properties could be fetched
        """
        ready = [(serial, state) for serial, state in batch.items() if state == STATE_READY]
        results = await asyncio.gather(*(self._fetch_or_skip(serial, state) for serial, state in ready))
        return [record for record in results if record is not None]

    async def _publish(self, batch: Dict[str, str]) -> List[DeviceRecord]:
        snapshot = await self.build_snapshot(batch)
        self._snapshot = snapshot
        logger.debug(f"Publishing {len(snapshot)} device(s): {[r.serial for r in snapshot]}")

        for listener in list(self._listeners):
            try:
                listener(list(snapshot))
            except Exception:
                logger.exception("Device snapshot listener failed")

        return list(snapshot)

    async def _initial_batch(self) -> Optional[Dict[str, str]]:
        try:
            devices = await self.adb.get_devices()
        except (ADBError, asyncio.TimeoutError) as e:
            logger.warning(f"Initial device listing failed: {e}")
            return None
        return {device["serial"]: device["state"] for device in devices}

    async def snapshots(self) -> AsyncIterator[List[DeviceRecord]]:
        """
        Start the bridge and yield a DeviceRecord snapshot per device batch

        The first snapshot comes from an explicit device listing so the
        consumer does not wait for the first change event.

        Raises:
            BridgeStartError: If the adb server could not be started
            RuntimeError: If the stream is already running
        """
        if self._state in (DiscoveryState.STARTING, DiscoveryState.SUBSCRIBED):
            raise RuntimeError("Device discovery is already running")

        self._error = None
        self._set_state(DiscoveryState.STARTING)

        try:
            started = await self.bootstrap.ensure_running()
        except (ADBError, OSError) as e:
            raise self._fail(e) from e
        except asyncio.CancelledError:
            self._set_state(DiscoveryState.STOPPED)
            raise
        if not started:
            raise self._fail()

        tracker = self.adb.track_devices()
        self._set_state(DiscoveryState.SUBSCRIBED)
        try:
            initial = await self._initial_batch()
            if initial is not None:
                yield await self._publish(initial)

            try:
                async for batch in tracker:
                    yield await self._publish(batch)
            except ADBError as e:
                raise self._fail(e) from e

            logger.warning("Device event feed ended")
        finally:
            await tracker.aclose()
            if self._state is DiscoveryState.SUBSCRIBED:
                self._set_state(DiscoveryState.STOPPED)
