"""
ADB Wrapper - Asynchronous interface for Android Debug Bridge commands

This module provides a clean, async interface for the few ADB commands the
viewer needs: server start, device listing, batch property queries and the
push-based ``track-devices`` feed.
"""

import asyncio
import logging
import re
import sys
from collections import OrderedDict
from pathlib import Path
from typing import AsyncIterator, Dict, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)

STATE_READY = "device"

_GETPROP_LINE = re.compile(r"^\[([^\]]+)\]: \[(.*?)\]$", re.MULTILINE | re.DOTALL)


class ADBError(Exception):
    """Base exception for ADB-related errors"""
    pass


class BridgeStartError(ADBError):
    """Raised when the ADB server could not be started"""
    pass


def parse_getprop(output: str) -> Dict[str, str]:
    """
    Parse the listing printed by ``adb shell getprop``

    Each entry looks like ``[key]: [value]``; a value may span several lines,
    in which case the embedded line breaks are kept as-is.

    Args:
        output: Raw stdout of getprop

    Returns:
        Mapping of property key to value
    """
    text = output.replace("\r\n", "\n").replace("\r", "\n")
    return {key: value for key, value in _GETPROP_LINE.findall(text)}


def parse_track_payload(payload: str) -> "OrderedDict[str, str]":
    """
    Convert one track-devices payload into an ordered serial->state mapping

    Args:
        payload: Decoded payload, one ``serial<TAB>state`` entry per line

    Returns:
        Ordered mapping of serial to state
    """
    batch: "OrderedDict[str, str]" = OrderedDict()
    for raw_line in payload.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("List of devices attached"):
            continue

        parts = line.split()
        serial = parts[0]
        state = parts[1] if len(parts) > 1 else ""

        if serial in batch:
            batch.pop(serial)
        batch[serial] = state

    return batch


async def read_track_stream(stream: asyncio.StreamReader) -> AsyncIterator["OrderedDict[str, str]"]:
    """
    Yield device batches from a length-prefixed track-devices byte stream

    Every message is a 4 hex digit length followed by that many bytes of
    payload. The generator ends when the stream is exhausted.

    Args:
        stream: Reader attached to the track-devices stdout
    """
    while True:
        try:
            header = await stream.readexactly(4)
        except asyncio.IncompleteReadError:
            return

        try:
            length = int(header.decode("ascii"), 16)
        except ValueError:
            logger.debug(f"Unexpected track-devices header: {header!r}")
            continue

        if length == 0:
            yield OrderedDict()
            continue

        try:
            payload = await stream.readexactly(length)
        except asyncio.IncompleteReadError:
            return

        yield parse_track_payload(payload.decode("utf-8", errors="replace"))


class ADBWrapper:
    """
    Asynchronous wrapper for ADB commands

    Handles command execution, output parsing, and error management.
    """

    def __init__(self, adb_path: Optional[Union[str, Path]] = None):
        """
        Initialize ADB wrapper

        Args:
            adb_path: Path to ADB binary. If None, uses ``adb`` from PATH.
        """
        self.adb_path = Path(adb_path) if adb_path else Path("adb")
        logger.info(f"ADB wrapper initialized with binary: {self.adb_path}")

    def _command(self, args: List[str], device: Optional[str] = None) -> List[str]:
        cmd = [str(self.adb_path)]
        if device:
            cmd.extend(["-s", device])
        cmd.extend(args)
        return cmd

    @staticmethod
    def _creationflags() -> int:
        if sys.platform == "win32":
            import subprocess
            return subprocess.CREATE_NO_WINDOW
        return 0

    async def execute(
        self,
        args: List[str],
        timeout: float = 30,
        device: Optional[str] = None
    ) -> Tuple[str, str, int]:
        """
        Execute an ADB command asynchronously

        Args:
            args: Command arguments (without 'adb' prefix)
            timeout: Command timeout in seconds
            device: Device serial number (optional)

        Returns:
            Tuple of (stdout, stderr, return_code)

        Raises:
            ADBError: If command execution fails
            asyncio.TimeoutError: If command times out
        """
        cmd = self._command(args, device)
        logger.debug(f"Executing ADB command: {' '.join(cmd)}")

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                creationflags=self._creationflags()
            )
        except OSError as e:
            logger.error(f"ADB command failed: {e}")
            raise ADBError(f"Command execution failed: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.error(f"ADB command timed out after {timeout}s: {' '.join(args)}")
            if process.returncode is None:
                process.kill()
                await process.wait()
            raise

        stdout_str = stdout.decode("utf-8", errors="replace")
        stderr_str = stderr.decode("utf-8", errors="replace")
        logger.debug(f"Command output: {stdout_str[:200]}")

        return stdout_str, stderr_str, process.returncode

    async def start_server(self) -> bool:
        """
        Start ADB server if not already running

        Returns:
            True if the server is up
        """
        try:
            _, stderr, code = await self.execute(["start-server"], timeout=15)
        except (ADBError, asyncio.TimeoutError) as e:
            logger.error(f"Failed to start ADB server: {e}")
            return False

        if code != 0:
            logger.error(f"adb start-server exited with {code}: {stderr.strip()}")
            return False

        logger.info("ADB server started successfully")
        return True

    async def get_devices(self) -> List[Dict[str, str]]:
        """
        Get list of connected devices

        Returns:
            List of device dictionaries with 'serial' and 'state' keys
        """
        stdout, _, _ = await self.execute(["devices", "-l"])

        devices = []
        for line in stdout.strip().split("\n")[1:]:  # Skip header
            parts = line.split()
            if len(parts) < 2:
                continue

            info = {}
            for part in parts[2:]:
                if ":" in part:
                    key, value = part.split(":", 1)
                    info[key] = value

            devices.append({
                **info,
                "serial": parts[0],
                "state": parts[1],
            })

        logger.info(f"Found {len(devices)} device(s)")
        return devices

    async def get_properties(self, device: str, timeout: float = 10) -> Dict[str, str]:
        """
        Fetch every system property of a device in one round trip

        Args:
            device: Device serial number
            timeout: Command timeout in seconds

        Returns:
            Dictionary with device properties

        Raises:
            ADBError: If the device could not be queried
        """
        stdout, stderr, code = await self.execute(["shell", "getprop"], timeout=timeout, device=device)
        if code != 0:
            raise ADBError(f"getprop failed on {device}: {stderr.strip() or code}")
        return parse_getprop(stdout)

    async def track_devices(self) -> AsyncIterator["OrderedDict[str, str]"]:
        """
        Follow ``adb track-devices`` and yield each device batch it pushes

        The adb process is terminated when the consumer stops iterating.

        Raises:
            ADBError: If the tracker process cannot be started
        """
        cmd = self._command(["track-devices"])
        logger.info(f"Starting adb track-devices listener: {' '.join(cmd)}")

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
                creationflags=self._creationflags()
            )
        except OSError as e:
            raise ADBError(f"Failed to start track-devices: {e}") from e

        try:
            async for batch in read_track_stream(process.stdout):
                logger.debug(f"track-devices batch: {list(batch.items())}")
                yield batch
        finally:
            if process.returncode is None:
                try:
                    process.terminate()
                    await asyncio.wait_for(process.wait(), timeout=2.0)
                except ProcessLookupError:
                    pass
                except asyncio.TimeoutError:
                    process.kill()
                    await process.wait()
            logger.info("adb track-devices listener stopped")
