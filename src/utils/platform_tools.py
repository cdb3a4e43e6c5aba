"""
Platform Tools - Locate, fetch and start the adb binary

Makes sure an adb server is running before device discovery subscribes to
it. The binary is looked up in the configured path, then in the app-private
directory, then on PATH; as a last resort the official platform-tools zip is
downloaded and adb is extracted next to the app data.
"""

import asyncio
import io
import logging
import platform
import shutil
import stat
import zipfile
from pathlib import Path
from typing import List, Optional

import requests

from config import APP_DIR
from utils.adb_wrapper import ADBWrapper

logger = logging.getLogger(__name__)

PLATFORM_TOOLS_URLS = {
    "linux": "https://dl.google.com/android/repository/platform-tools-latest-linux.zip",
    "windows": "https://dl.google.com/android/repository/platform-tools-latest-windows.zip",
    "darwin": "https://dl.google.com/android/repository/platform-tools-latest-darwin.zip",
}

_WINDOWS_DLLS = ["platform-tools/AdbWinApi.dll", "platform-tools/AdbWinUsbApi.dll"]


def _system() -> str:
    return platform.system().lower()


def adb_filename(system: Optional[str] = None) -> str:
    return "adb.exe" if (system or _system()) == "windows" else "adb"


def locate_adb(configured_path: str = "", app_dir: Path = APP_DIR) -> Optional[Path]:
    """
    Find an adb executable

    Args:
        configured_path: User configured adb binary (may be empty)
        app_dir: Directory holding a previously downloaded adb

    Returns:
        Path to adb, or None if nothing was found
    """
    if configured_path:
        path = Path(configured_path)
        if path.is_file():
            return path
        logger.warning(f"Configured adb path does not exist: {configured_path}")

    bundled = app_dir / adb_filename()
    if bundled.is_file():
        return bundled

    found = shutil.which("adb")
    if found:
        return Path(found)

    return None


def download_platform_tools(app_dir: Path = APP_DIR, system: Optional[str] = None, timeout: float = 60) -> Path:
    """
    Download platform-tools for this OS and extract adb into app_dir

    Args:
        app_dir: Destination directory
        system: OS name as reported by platform.system().lower()
        timeout: HTTP timeout in seconds

    Returns:
        Path to the extracted adb binary

    Raises:
        requests.RequestException: If the download fails
        KeyError: If the OS is unsupported or the archive lacks adb
    """
    system = system or _system()
    url = PLATFORM_TOOLS_URLS[system]
    logger.info(f"Downloading platform-tools from {url}")

    response = requests.get(url, timeout=timeout)
    response.raise_for_status()

    entries: List[str] = [f"platform-tools/{adb_filename(system)}"]
    if system == "windows":
        entries.extend(_WINDOWS_DLLS)

    app_dir.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(io.BytesIO(response.content)) as archive:
        for entry in entries:
            target = app_dir / entry.split("/")[-1]
            target.write_bytes(archive.read(entry))

    adb_path = app_dir / adb_filename(system)
    adb_path.chmod(adb_path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    logger.info(f"adb extracted to {adb_path}")
    return adb_path


class BridgeBootstrap:
    """Ensures the adb server backing device discovery is running"""

    def __init__(
        self,
        adb: ADBWrapper,
        configured_path: str = "",
        auto_download: bool = True,
        app_dir: Path = APP_DIR
    ):
        self.adb = adb
        self.configured_path = configured_path
        self.auto_download = auto_download
        self.app_dir = app_dir

    async def _resolve(self) -> Optional[Path]:
        path = locate_adb(self.configured_path, self.app_dir)
        if path is not None or not self.auto_download:
            return path

        try:
            return await asyncio.to_thread(download_platform_tools, self.app_dir)
        except (requests.RequestException, KeyError, OSError, zipfile.BadZipFile) as e:
            logger.error(f"Failed to fetch platform-tools: {e}")
            return None

    async def ensure_running(self) -> bool:
        """
        Locate adb (fetching it if allowed) and start its server

        Returns:
            True if the server is running
        """
        path = await self._resolve()
        if path is None:
            logger.error("No adb binary available")
            return False

        self.adb.adb_path = path
        logger.info(f"Using adb binary: {path}")
        return await self.adb.start_server()
