# healthwatch/monitoring/system.py

import ipaddress
import os
import platform
import socket
from typing import Dict, Optional, Tuple

import psutil

from ..core.models import (
    CpuUsage,
    DurationInfo,
    MemorySummary,
    NetworkAddress,
    ProcessInfo,
    ReadinessReport,
    SystemInfo,
    UptimeReport
)
from ..core.protocols import Clock
from ..utils.logger import LoggerSetup
from ..utils.time import format_duration, from_timestamp
from ..utils.units import format_bytes, format_percentage, percentage

logger = LoggerSetup.setup(__name__)

# Readiness fails above these limits
READINESS_MEMORY_PERCENT = 90
READINESS_LOAD_PER_CPU = 2

_FAMILY_NAMES = {
    socket.AF_INET: 'IPv4',
    socket.AF_INET6: 'IPv6'
}


def _is_loopback(address: str) -> bool:
    try:
        # Strip IPv6 zone index (fe80::1%eth0)
        return ipaddress.ip_address(address.split('%', 1)[0]).is_loopback
    except ValueError:
        return False


class SystemInspector:
    """Reports uptime and host facts"""

    def __init__(self, clock: Clock):
        self.clock = clock

    def uptime(self) -> UptimeReport:
        """Get application, process and system uptime"""
        now = self.clock.now()
        application_seconds = max((now - self.clock.start_time).total_seconds(), 0.0)

        return UptimeReport(
            application=DurationInfo(
                seconds=application_seconds,
                human=format_duration(application_seconds),
                started_at=self.clock.start_time
            ),
            process=self._uptime_since(self._process_start_time(), now),
            system=self._uptime_since(self._boot_time(), now)
        )

    @staticmethod
    def _uptime_since(timestamp: Optional[float], now) -> DurationInfo:
        if timestamp is None:
            return DurationInfo(seconds=0.0, human=format_duration(0))
        started_at = from_timestamp(timestamp)
        seconds = max((now - started_at).total_seconds(), 0.0)
        return DurationInfo(seconds=seconds, human=format_duration(seconds), started_at=started_at)

    @staticmethod
    def _process_start_time() -> Optional[float]:
        try:
            return psutil.Process().create_time()
        except Exception as e:
            logger.warning(f"Could not read process start time: {e}")
            return None

    @staticmethod
    def _boot_time() -> Optional[float]:
        try:
            return psutil.boot_time()
        except Exception as e:
            logger.warning(f"Could not read system boot time: {e}")
            return None

    def system_info(self) -> SystemInfo:
        """Get platform, CPU, load and network details of the host"""
        return SystemInfo(
            platform=platform.system().lower() or 'unknown',
            release=platform.release(),
            arch=platform.machine() or 'unknown',
            hostname=socket.gethostname(),
            python_version=platform.python_version(),
            cpu_count=psutil.cpu_count() or 0,
            cpu_model=self._cpu_model(),
            load_average=self._load_average(),
            cpu_usage=self._cpu_usage(),
            memory=self.memory_summary(),
            network_interfaces=self.network_interfaces(),
            process=self._process_info()
        )

    @staticmethod
    def _cpu_model() -> str:
        """Get CPU model name, reading /proc/cpuinfo where platform has none"""
        try:
            with open('/proc/cpuinfo', encoding='utf-8') as cpuinfo:
                for line in cpuinfo:
                    if line.lower().startswith('model name'):
                        return line.split(':', 1)[1].strip()
        except OSError:
            pass
        return platform.processor() or 'Unknown'

    @staticmethod
    def _load_average() -> Tuple[float, float, float]:
        try:
            one, five, fifteen = psutil.getloadavg()
            return (round(one, 2), round(five, 2), round(fifteen, 2))
        except (AttributeError, OSError) as e:
            logger.debug(f"Load average not available: {e}")
            return (0.0, 0.0, 0.0)

    @staticmethod
    def _cpu_usage() -> CpuUsage:
        try:
            times = psutil.Process().cpu_times()
            return CpuUsage(user_seconds=times.user, system_seconds=times.system)
        except (psutil.Error, OSError) as e:
            logger.debug(f"Process CPU times not available: {e}")
            return CpuUsage()

    @staticmethod
    def memory_summary() -> MemorySummary:
        """Get host memory totals and process RSS with a one-line summary"""
        memory = psutil.virtual_memory()
        total = int(memory.total)
        free = min(int(memory.available), total)
        used = total - free
        usage = percentage(used, total)
        try:
            rss = int(psutil.Process().memory_info().rss)
        except (psutil.Error, OSError) as e:
            logger.debug(f"Process memory not available: {e}")
            rss = 0

        return MemorySummary(
            total_bytes=total,
            free_bytes=free,
            used_bytes=used,
            usage_percent=usage,
            process_rss_bytes=rss,
            summary=(
                f"{format_bytes(used)} of {format_bytes(total)} used "
                f"({format_percentage(usage)}), process {format_bytes(rss)}"
            )
        )

    def readiness(self) -> ReadinessReport:
        """
        Decide whether the application can take traffic.

        Not ready when the process holds more than 90% of host memory, when
        host memory usage exceeds 90%, or when the 1-minute load average
        exceeds twice the CPU count.
        """
        memory = self.memory_summary()
        process_percent = percentage(memory.process_rss_bytes, memory.total_bytes)
        load_1m = self._load_average()[0]
        cpu_count = psutil.cpu_count() or 1

        reasons = []
        if process_percent > READINESS_MEMORY_PERCENT:
            reasons.append(f"Process uses {format_percentage(process_percent)} of host memory")
        if memory.usage_percent > READINESS_MEMORY_PERCENT:
            reasons.append(f"Host memory usage is {format_percentage(memory.usage_percent)}")
        if load_1m > cpu_count * READINESS_LOAD_PER_CPU:
            reasons.append(f"Load average {load_1m:g} exceeds {cpu_count * READINESS_LOAD_PER_CPU} ({cpu_count} CPUs)")

        if reasons:
            logger.warning(f"Application not ready: {'; '.join(reasons)}")

        return ReadinessReport(
            ready=not reasons,
            reasons=tuple(reasons),
            process_memory_percent=process_percent,
            system_memory_percent=memory.usage_percent,
            load_average_1m=load_1m,
            cpu_count=cpu_count,
            timestamp=self.clock.now()
        )

    @staticmethod
    def network_interfaces() -> Dict[str, Tuple[NetworkAddress, ...]]:
        """Get IPv4/IPv6 addresses per interface, excluding loopback addresses"""
        result: Dict[str, Tuple[NetworkAddress, ...]] = {}
        try:
            interfaces = psutil.net_if_addrs()
        except Exception as e:
            logger.warning(f"Could not list network interfaces: {e}")
            return result

        for name, addresses in interfaces.items():
            external = tuple(
                NetworkAddress(
                    address=addr.address,
                    family=_FAMILY_NAMES[addr.family],
                    netmask=addr.netmask
                )
                for addr in addresses
                if addr.family in _FAMILY_NAMES and not _is_loopback(addr.address)
            )
            if external:
                result[name] = external
        return result

    @staticmethod
    def _process_info() -> ProcessInfo:
        process = psutil.Process()
        try:
            executable = process.exe()
        except (psutil.AccessDenied, psutil.ZombieProcess, OSError):
            executable = None
        return ProcessInfo(
            pid=process.pid,
            ppid=process.ppid(),
            cwd=os.getcwd(),
            executable=executable
        )
