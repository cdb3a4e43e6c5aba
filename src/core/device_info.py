"""
Device Info - Property lookup for connected devices

Turns a batch getprop query into the immutable record shown on a device card.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict

from utils.adb_wrapper import ADBError, ADBWrapper, STATE_READY

logger = logging.getLogger(__name__)

UNKNOWN = "Unknown"

PROP_MANUFACTURER = "ro.product.manufacturer"
PROP_NAME = "ro.product.name"
PROP_MODEL = "ro.product.model"
PROP_RELEASE = "ro.build.version.release"
PROP_SDK = "ro.build.version.sdk"


class PropertyFetchError(ADBError):
    """Raised when a device could not be queried for its properties"""
    pass


def single_line(value: str) -> str:
    """Strip embedded line breaks from a property value"""
    return value.replace("\r", "").replace("\n", "")


@dataclass(frozen=True)
class DeviceRecord:
    """Represents a connected, ready Android device"""
    serial: str
    manufacturer: str = UNKNOWN
    name: str = UNKNOWN
    model: str = UNKNOWN
    api: str = UNKNOWN
    sdk: str = UNKNOWN
    state: str = STATE_READY

    @property
    def api_label(self) -> str:
        return f"Api: {self.api}"

    @property
    def sdk_label(self) -> str:
        return f"Sdk: {self.sdk}"

    @property
    def device_info(self) -> str:
        """One-line summary used as a window title"""
        return f"{self.manufacturer} {self.name} {self.model} {self.sdk_label} {self.api_label}"

    @property
    def display_name(self) -> str:
        """Get user-friendly display name"""
        if self.model != UNKNOWN and self.manufacturer != UNKNOWN:
            return f"{self.manufacturer} {self.model}"
        if self.model != UNKNOWN:
            return self.model

        # mDNS serials look like "adb-XXXXX-YYYYY._adb-tls-connect._tcp."
        if "._adb-tls-" in self.serial:
            return self.serial.split("._adb-")[0]
        return self.serial

    def __str__(self) -> str:
        return f"{self.display_name} ({self.serial})"


def record_from_properties(serial: str, props: Dict[str, str], state: str = STATE_READY) -> DeviceRecord:
    """
    Build a DeviceRecord from a property mapping

    Missing keys map to UNKNOWN; multi-line values are flattened.
    """
    def lookup(key: str) -> str:
        value = props.get(key)
        return UNKNOWN if value is None else single_line(value)

    return DeviceRecord(
        serial=serial,
        manufacturer=lookup(PROP_MANUFACTURER),
        name=lookup(PROP_NAME),
        model=lookup(PROP_MODEL),
        api=lookup(PROP_RELEASE),
        sdk=lookup(PROP_SDK),
        state=state,
    )


class DeviceInfoFetcher:
    """Queries device properties and maps them to DeviceRecord"""

    def __init__(self, adb: ADBWrapper, timeout: float = 10):
        """
        Args:
            adb: ADB wrapper instance
            timeout: Per-device property query timeout in seconds
        """
        self.adb = adb
        self.timeout = timeout

    async def fetch(self, serial: str, state: str = STATE_READY) -> DeviceRecord:
        """
        Fetch a fresh record for a device

        Args:
            serial: Device serial number
            state: Connection state reported by the bridge

        Returns:
            DeviceRecord for the device

        Raises:
            PropertyFetchError: If the device vanished or did not answer
        """
        try:
            props = await self.adb.get_properties(serial, timeout=self.timeout)
        except (ADBError, asyncio.TimeoutError) as e:
            raise PropertyFetchError(f"Failed to get device info for {serial}: {e}") from e

        return record_from_properties(serial, props, state)
