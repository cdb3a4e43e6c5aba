"""
Mirror Engine - Screen mirroring integration with scrcpy

Supervises one scrcpy subprocess per device and streams each process' console
output into the device's log buffer in the session registry.
"""

import asyncio
import logging
import shutil
import sys
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

from core.session_registry import SessionRegistry

logger = logging.getLogger(__name__)

DEFAULT_GRACE_PERIOD = 2.0

# scrcpy may print long lines (e.g. encoder lists); asyncio's default is 64 KiB
_STREAM_LIMIT = 1024 * 1024


class LaunchError(Exception):
    """Raised when the scrcpy process could not be started"""
    pass


class SessionStatus(Enum):
    """Lifecycle of a mirroring session"""
    STARTING = "starting"
    RUNNING = "running"
    EXITED = "exited"
    FAILED = "failed"


@dataclass
class MirrorSession:
    """One scrcpy process tied to one device"""
    serial: str
    status: SessionStatus = SessionStatus.STARTING
    process: Optional[asyncio.subprocess.Process] = field(default=None, repr=False)
    return_code: Optional[int] = None
    error: Optional[LaunchError] = None
    task: Optional[asyncio.Task] = field(default=None, repr=False)

    @property
    def is_active(self) -> bool:
        return self.status in (SessionStatus.STARTING, SessionStatus.RUNNING)

    @property
    def status_text(self) -> str:
        if self.status is SessionStatus.EXITED:
            return f"Exited ({self.return_code})"
        if self.status is SessionStatus.FAILED:
            return f"Failed to start: {self.error}"
        return self.status.value.capitalize()


def find_scrcpy(custom_dir: str = "") -> str:
    """
    Get scrcpy executable path

    Args:
        custom_dir: Directory configured by the user (may be empty)

    Returns:
        Path to scrcpy inside custom_dir if present, otherwise the PATH entry
    """
    if custom_dir:
        name = "scrcpy.exe" if sys.platform == "win32" else "scrcpy"
        candidate = Path(custom_dir) / name
        if candidate.exists():
            logger.info(f"Using scrcpy: {candidate}")
            return str(candidate)
        logger.warning(f"scrcpy not found in configured directory: {custom_dir}")

    return shutil.which("scrcpy") or "scrcpy"


def is_scrcpy_available(custom_dir: str = "") -> bool:
    """Check if scrcpy is available in the custom directory or PATH"""
    return shutil.which(find_scrcpy(custom_dir)) is not None


def build_scrcpy_args(options: Optional[Dict[str, Any]]) -> List[str]:
    """
    Translate mirroring options into scrcpy arguments

    Args:
        options: Optional mirroring options
            - max_size: int (longest side in pixels, 0 = unlimited)
            - bitrate: int (Mbps, 0 = scrcpy default)
            - max_fps: int (0 = unlimited)
            - always_on_top: bool
            - fullscreen: bool

    Returns:
        Extra arguments to append after ``-s <serial>``
    """
    args: List[str] = []
    if not options:
        return args

    if options.get("max_size"):
        args.extend(["-m", str(options["max_size"])])
    if options.get("bitrate"):
        args.extend(["-b", f"{options['bitrate']}M"])
    if options.get("max_fps"):
        args.extend(["--max-fps", str(options["max_fps"])])
    if options.get("always_on_top", False):
        args.append("--always-on-top")
    if options.get("fullscreen", False):
        args.append("--fullscreen")

    return args


async def read_line(stream: asyncio.StreamReader) -> bytes:
    """
    Read one newline-terminated line regardless of the stream limit

    Lines longer than the reader's limit are collected in limit-sized pieces
    instead of raising.

    Returns:
        The line including its newline, the unterminated tail at EOF, or
        b"" once the stream is exhausted
    """
    chunks = []
    while True:
        try:
            chunks.append(await stream.readuntil(b"\n"))
            break
        except asyncio.IncompleteReadError as e:
            chunks.append(e.partial)
            break
        except asyncio.LimitOverrunError as e:
            chunks.append(await stream.read(e.consumed))
    return b"".join(chunks)


class MirrorSessionSupervisor:
    """
    Starts, tracks and tears down scrcpy processes, one per device

    Sessions for different devices run concurrently; the registry is the only
    state they share.
    """

    def __init__(
        self,
        registry: SessionRegistry,
        executable: str = "scrcpy",
        options: Optional[Dict[str, Any]] = None,
        grace_period: float = DEFAULT_GRACE_PERIOD
    ):
        """
        Initialize the supervisor

        Args:
            registry: Registry receiving each session's output lines
            executable: scrcpy executable, invoked as ``<executable> -s <serial>``
            options: Mirroring options passed to build_scrcpy_args
            grace_period: Seconds to wait after terminate before killing
        """
        self.registry = registry
        self.executable = executable
        self.options = options or {}
        self.grace_period = grace_period
        self._sessions: Dict[str, MirrorSession] = {}
        self._closing: Set[asyncio.Task] = set()

    def session(self, serial: str) -> Optional[MirrorSession]:
        return self._sessions.get(serial)

    def sessions(self) -> List[MirrorSession]:
        return list(self._sessions.values())

    def is_active(self, serial: str) -> bool:
        session = self._sessions.get(serial)
        return session is not None and session.is_active

    def open(self, serial: str) -> MirrorSession:
        """
        Start mirroring a device unless it is already being mirrored

        Must be called from a running event loop. Returns immediately; the
        process is launched in the background.

        Args:
            serial: Device serial number

        Returns:
            The active session for serial
        """
        current = self._sessions.get(serial)
        if current is not None and current.is_active:
            logger.debug(f"Mirroring already active for {serial}")
            return current

        self.registry.create(serial)
        session = MirrorSession(serial)
        self._sessions[serial] = session
        session.task = asyncio.get_running_loop().create_task(self._run(session), name=f"scrcpy-{serial}")
        return session

    async def _launch(self, serial: str) -> asyncio.subprocess.Process:
        cmd = [self.executable, "-s", serial] + build_scrcpy_args(self.options)
        logger.info(f"Starting scrcpy: {' '.join(cmd)}")

        kwargs = {}
        if sys.platform == "win32":
            import subprocess
            kwargs["creationflags"] = subprocess.CREATE_NO_WINDOW

        try:
            return await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                limit=_STREAM_LIMIT,
                **kwargs
            )
        except (OSError, ValueError) as e:
            raise LaunchError(f"Failed to start mirroring: {e}") from e

    async def _run(self, session: MirrorSession):
        serial = session.serial
        try:
            process = await self._launch(serial)
        except LaunchError as e:
            session.error = e
            session.status = SessionStatus.FAILED
            logger.error(f"{e} ({serial})")
            return

        session.process = process
        session.status = SessionStatus.RUNNING
        logger.info(f"Screen mirroring started for {serial} (pid {process.pid})")

        try:
            while True:
                line = await read_line(process.stdout)
                if not line:
                    break
                # A closed and reopened session owns a fresh buffer
                if self._sessions.get(serial) is not session:
                    break
                self.registry.append(serial, line.decode("utf-8", errors="replace").rstrip("\r\n"))
        except (OSError, ValueError) as e:
            logger.error(f"Lost scrcpy output for {serial}: {e}")
            await self._terminate(session)

        session.return_code = await process.wait()
        session.status = SessionStatus.EXITED
        if session.return_code != 0:
            logger.warning(f"scrcpy for {serial} exited with code: {session.return_code}")
        else:
            logger.info(f"Screen mirroring stopped for {serial}")

    async def _terminate(self, session: MirrorSession):
        process = session.process
        if process is None or process.returncode is not None:
            return

        try:
            process.terminate()
            await asyncio.wait_for(process.wait(), timeout=self.grace_period)
        except ProcessLookupError:
            pass
        except asyncio.TimeoutError:
            logger.warning(f"scrcpy for {session.serial} ignored terminate; killing")
            try:
                process.kill()
            except ProcessLookupError:
                pass

    async def close(self, serial: str):
        """
        Stop mirroring a device and discard its log

        Args:
            serial: Device serial number
        """
        session = self._sessions.pop(serial, None)
        self.registry.remove(serial)
        if session is None:
            return

        closing = asyncio.current_task()
        self._closing.add(closing)
        try:
            await self._terminate(session)

            if session.task is not None and not session.task.done():
                session.task.cancel()
                await asyncio.gather(session.task, return_exceptions=True)
        finally:
            self._closing.discard(closing)
        logger.info(f"Mirror session closed for {serial}")

    async def shutdown(self):
        """
        Close every session, tolerating processes that do not exit

        Closes already in progress (e.g. from dismissed log windows) are
        awaited too, so their kill fallback still runs.
        """
        serials = list(self._sessions)
        in_progress = [task for task in self._closing if task is not asyncio.current_task()]
        if not serials and not in_progress:
            return

        logger.info(f"Closing {len(serials) + len(in_progress)} mirror session(s)")
        results = await asyncio.gather(*(self.close(serial) for serial in serials), return_exceptions=True)
        for serial, result in zip(serials, results):
            if isinstance(result, BaseException):
                logger.error(f"Error closing mirror session for {serial}: {result!r}")

        for result in await asyncio.gather(*in_progress, return_exceptions=True):
            if isinstance(result, BaseException):
                logger.error(f"Error finishing mirror session close: {result!r}")
