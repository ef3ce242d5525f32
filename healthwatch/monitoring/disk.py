# healthwatch/monitoring/disk.py

import asyncio
import ntpath
import os
import re
import shutil
import stat
import sys
from abc import ABC, abstractmethod
from typing import Optional

import psutil

from ..core.enums import DiskStrategy
from ..core.exceptions import DeadlineExceededError, ProbeDegradedError
from ..core.models import DiskSnapshot
from ..utils.logger import LoggerSetup
from ..utils.time import Deadline, from_timestamp
from ..utils.units import percentage

logger = LoggerSetup.setup(__name__)

# Data line of POSIX `df -kP`: filesystem, 1024-blocks, used, available, capacity, mount point
DF_LINE_PATTERN = re.compile(r'^(?P<fs>.*?)\s+(?P<total>\d+)\s+(?P<used>\d+)\s+(?P<free>\d+)\s+\d+%\s+(?P<mount>.+)$')
WINDOWS_LINE_PATTERN = re.compile(r'(\d+)\s+(\d+)')
WINDOWS_DRIVE_PATTERN = re.compile(r"^[A-Za-z]:$")


def _usage_snapshot(path: str, total: int, free: int, used: int, strategy: str) -> DiskSnapshot:
    return DiskSnapshot(
        path=path,
        total_bytes=total,
        free_bytes=free,
        used_bytes=used,
        usage_percent=min(percentage(used, total), 100.0),
        accessible=True,
        degraded=False,
        strategy=strategy
    )


class DiskQuery(ABC):
    """One way of measuring filesystem usage for a path"""
    name: str = "unknown"

    @abstractmethod
    async def measure(self, path: str, deadline: Optional[Deadline] = None) -> DiskSnapshot:
        """
        Measure usage of the filesystem holding ``path``.

        Raises:
            ProbeDegradedError: if this query cannot produce real usage figures
            DeadlineExceededError: if the deadline expired while waiting
        """
        pass


class NativeCommandQuery(DiskQuery):
    """Runs the platform disk usage utility (df or PowerShell) and parses its output"""
    name = "command"

    def __init__(self, timeout: float = 5.0, platform: str = sys.platform):
        self.timeout = timeout
        self.platform = platform

    @property
    def is_windows(self) -> bool:
        return self.platform.startswith('win')

    @classmethod
    def available(cls, platform: str = sys.platform) -> bool:
        """Check if the utility this query needs is installed"""
        if platform.startswith('win'):
            return shutil.which('powershell') is not None
        return shutil.which('df') is not None

    def build_command(self, path: str) -> list[str]:
        if self.is_windows:
            drive = ntpath.splitdrive(path)[0] or ntpath.splitdrive(os.getcwd())[0] or 'C:'
            if not WINDOWS_DRIVE_PATTERN.match(drive):
                # UNC shares have no Win32_LogicalDisk entry
                raise ProbeDegradedError(f"Unsupported drive {drive!r} for {path}")
            script = (
                f"Get-CimInstance -ClassName Win32_LogicalDisk -Filter \"DeviceID='{drive}'\" | "
                "ForEach-Object { \"$($_.Size) $($_.FreeSpace)\" }"
            )
            return ['powershell', '-NoProfile', '-NonInteractive', '-Command', script]
        return ['df', '-kP', path]

    async def run(self, command: list[str], deadline: Optional[Deadline] = None) -> str:
        """Run command and return its stdout, killing it when the timeout expires"""
        if deadline is not None:
            deadline.check(f"Disk usage query for {command[-1]}")
        timeout = deadline.bounded(self.timeout) if deadline else self.timeout
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE
            )
        except OSError as e:
            raise ProbeDegradedError(f"Could not run {command[0]}: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            raise DeadlineExceededError(f"{command[0]} did not finish within {timeout:.1f}s")
        finally:
            # Also reached when an enclosing check is cancelled
            if process.returncode is None:
                try:
                    process.kill()
                except ProcessLookupError:
                    pass
                await process.wait()

        if process.returncode != 0:
            message = stderr.decode(errors='replace').strip()
            raise ProbeDegradedError(f"{command[0]} exited with {process.returncode}: {message}")
        return stdout.decode(errors='replace')

    def parse_df(self, path: str, output: str) -> DiskSnapshot:
        lines = [line for line in output.strip().splitlines() if line.strip()]
        if len(lines) < 2:
            raise ProbeDegradedError("Invalid df output format")

        data_line = lines[1]
        match = DF_LINE_PATTERN.match(data_line.strip())
        if not match:
            raise ProbeDegradedError(f"Could not parse df output: {data_line!r}")

        total = int(match['total']) * 1024
        used = int(match['used']) * 1024
        free = int(match['free']) * 1024
        if total <= 0:
            raise ProbeDegradedError("df reported a zero-sized filesystem")
        return _usage_snapshot(path, total, free, used, self.name)

    def parse_windows(self, path: str, output: str) -> DiskSnapshot:
        for line in output.strip().splitlines():
            match = WINDOWS_LINE_PATTERN.search(line)
            if match:
                total = int(match.group(1))
                free = int(match.group(2))
                if total <= 0 or free > total:
                    break
                return _usage_snapshot(path, total, free, total - free, self.name)
        raise ProbeDegradedError("Could not parse disk usage information")

    async def measure(self, path: str, deadline: Optional[Deadline] = None) -> DiskSnapshot:
        if not self.is_windows and not os.path.exists(path):
            raise ProbeDegradedError(f"Path {path} does not exist")

        output = await self.run(self.build_command(path), deadline)
        if self.is_windows:
            return self.parse_windows(path, output)
        return self.parse_df(path, output)


class PsutilQuery(DiskQuery):
    """Uses psutil.disk_usage (statvfs / GetDiskFreeSpaceEx)"""
    name = "psutil"

    async def measure(self, path: str, deadline: Optional[Deadline] = None) -> DiskSnapshot:
        try:
            usage = psutil.disk_usage(path)
        except OSError as e:
            raise ProbeDegradedError(f"disk_usage failed for {path}: {e}") from e
        if usage.total <= 0:
            raise ProbeDegradedError(f"disk_usage reported a zero-sized filesystem for {path}")
        return _usage_snapshot(path, int(usage.total), int(usage.free), int(usage.used), self.name)


class FilesystemStatQuery(DiskQuery):
    """Basic accessibility check; usage is unknown so results are always degraded"""
    name = "stat"

    async def measure(self, path: str, deadline: Optional[Deadline] = None) -> DiskSnapshot:
        try:
            path_stat = os.stat(path)
        except OSError as e:
            return DiskSnapshot(
                path=path,
                usage_percent=0.0,
                accessible=False,
                degraded=True,
                strategy=self.name,
                error=str(e)
            )

        return DiskSnapshot(
            path=path,
            usage_percent=0.0,
            accessible=True,
            degraded=True,
            strategy=self.name,
            is_directory=stat.S_ISDIR(path_stat.st_mode),
            last_modified=from_timestamp(path_stat.st_mtime)
        )


class DiskUsageProbe:
    """
    Measures filesystem usage with a primary query and a stat fallback.

    The primary query is chosen once, at construction, from the configured
    strategy and what the host provides. ``probe`` never raises.
    """

    def __init__(self,
                 strategy: DiskStrategy = DiskStrategy.AUTO,
                 command_timeout: float = 5.0,
                 platform: str = sys.platform):
        self.query = self._select_query(strategy, command_timeout, platform)
        self.fallback = FilesystemStatQuery()
        logger.debug(f"Disk usage probe using '{self.query.name}' query")

    @staticmethod
    def _select_query(strategy: DiskStrategy, command_timeout: float, platform: str) -> DiskQuery:
        if strategy == DiskStrategy.COMMAND:
            return NativeCommandQuery(command_timeout, platform)
        elif strategy == DiskStrategy.PSUTIL:
            return PsutilQuery()
        elif strategy == DiskStrategy.STAT:
            return FilesystemStatQuery()

        if NativeCommandQuery.available(platform):
            return NativeCommandQuery(command_timeout, platform)
        return PsutilQuery()

    async def probe(self, path: str, deadline: Optional[Deadline] = None) -> DiskSnapshot:
        """
        Measure disk usage for ``path``.

        Returns a degraded snapshot from the stat fallback when the primary
        query fails, and an inaccessible snapshot with ``error`` set when the
        deadline expires or anything else goes wrong.
        """
        try:
            try:
                return await self.query.measure(path, deadline)
            except ProbeDegradedError as e:
                logger.warning(f"Disk usage for {path} degraded to stat: {e}")
                return await self.fallback.measure(path, deadline)
        except DeadlineExceededError as e:
            logger.error(f"Disk usage probe for {path} timed out: {e}")
            return DiskSnapshot(
                path=path,
                usage_percent=0.0,
                accessible=False,
                degraded=True,
                strategy=self.query.name,
                timed_out=True,
                error=str(e)
            )
        except Exception as e:
            logger.error(f"Disk usage probe for {path} failed: {e}")
            return DiskSnapshot(
                path=path,
                usage_percent=0.0,
                accessible=False,
                degraded=True,
                strategy=self.query.name,
                error=str(e)
            )
