# healthwatch/monitoring/aggregator.py

import asyncio
from typing import Awaitable, Callable, Dict, List, Optional

from ..core.config import HealthConfig
from ..core.enums import IndicatorKey, Status, Unit
from ..core.exceptions import DeadlineExceededError, UnknownIndicatorError
from ..core.models import (
    AggregatedReport,
    DirectoryDetails,
    DiskDetails,
    ErrorDetails,
    Finding,
    IndicatorResult,
    MemoryDetails,
    ReadinessReport,
    SystemInfo,
    UptimeReport
)
from ..core.protocols import Clock, SystemClock
from ..utils.logger import LoggerSetup
from ..utils.time import Deadline
from .diagnostics import (
    build_recommendations,
    directory_findings,
    disk_findings,
    error_findings,
    memory_findings
)
from .disk import DiskUsageProbe
from .sampler import ResourceSampler
from .scanner import DirectoryScanner
from .system import SystemInspector
from .thresholds import classify, worst

IndicatorCheck = Callable[[Deadline, bool], Awaitable[IndicatorResult]]


class HealthAggregator:
    """
    Builds indicator results and aggregated health reports on demand.

    Features:
    - Memory indicator (system, process and heap usage)
    - Disk usage indicators for the root and temporary paths
    - Log directory size indicator
    - Overall status, critical issues, warnings and recommendations
    - Uptime and system information

    The aggregator holds no mutable state: every call samples the host
    afresh. A failing indicator is reported with ERROR status and never
    aborts the rest of the report. Only malformed configuration raises, at
    construction.
    """

    def __init__(self,
                 config: Optional[HealthConfig] = None,
                 clock: Optional[Clock] = None,
                 sampler: Optional[ResourceSampler] = None,
                 probe: Optional[DiskUsageProbe] = None,
                 scanner: Optional[DirectoryScanner] = None,
                 inspector: Optional[SystemInspector] = None):
        self.config = config or HealthConfig()
        if not isinstance(self.config, HealthConfig):
            raise TypeError("config must be a HealthConfig instance")

        self.clock = clock or SystemClock()
        self.sampler = sampler or ResourceSampler(self.config.heap_limit_fallback)
        self.probe = probe or DiskUsageProbe(self.config.disk_strategy, self.config.command_timeout)
        self.scanner = scanner or DirectoryScanner(self.config.scan)
        self.inspector = inspector or SystemInspector(self.clock)

        self._checks: Dict[IndicatorKey, IndicatorCheck] = {
            IndicatorKey.MEMORY: self._check_memory,
            IndicatorKey.DISK_ROOT: self._check_root_disk,
            IndicatorKey.DISK_TEMP: self._check_temp_disk,
            IndicatorKey.DISK_LOGS: self._check_log_directory
        }
        self.logger = LoggerSetup.setup(__class__.__name__)

    @property
    def indicator_keys(self) -> List[str]:
        return [key.value for key in self._checks]

    def _resolve_key(self, key: str | IndicatorKey) -> IndicatorKey:
        try:
            indicator = IndicatorKey(key)
        except ValueError:
            raise UnknownIndicatorError(
                f"Unknown indicator '{key}'. Available: {', '.join(self.indicator_keys)}"
            )
        if indicator not in self._checks:
            raise UnknownIndicatorError(f"Indicator '{key}' is not configured")
        return indicator

    def _deadline(self, timeout: Optional[float]) -> Deadline:
        seconds = timeout if timeout is not None else self.config.check_timeout
        return Deadline.after(seconds, clock=self.clock.monotonic)

    def _result(self,
                key: IndicatorKey,
                status: Status,
                details,
                findings: List[Finding]) -> IndicatorResult:
        return IndicatorResult(
            key=key.value,
            status=status,
            details=details,
            findings=tuple(findings),
            timestamp=self.clock.now()
        )

    async def _check_memory(self, deadline: Deadline, detailed: bool) -> IndicatorResult:
        """Classify system usage, process RSS and heap limit usage"""
        thresholds = self.config.thresholds
        snapshot = self.sampler.sample()

        details = MemoryDetails(
            snapshot=snapshot,
            system_status=classify(snapshot.system_usage_percent, thresholds.memory, Unit.PERCENT),
            process_status=classify(snapshot.process_rss_bytes, thresholds.process, Unit.BYTES),
            heap_status=classify(snapshot.heap_limit_usage_percent, thresholds.heap, Unit.PERCENT),
            garbage_collection=self.sampler.garbage_collection() if detailed else None
        )
        findings = memory_findings(details)

        if snapshot.errors:
            status = Status.ERROR
        else:
            status = worst([details.system_status, details.process_status, details.heap_status])
        return self._result(IndicatorKey.MEMORY, status, details, findings)

    def _disk_status(self, details: DiskDetails) -> Status:
        disk = details.disk
        if disk.timed_out or not disk.accessible:
            return Status.ERROR
        if disk.degraded:
            # Usage unknown: never report it as a healthy zero
            return Status.WARNING
        return classify(disk.usage_percent, self.config.thresholds.disk, Unit.PERCENT)

    async def _check_disk(self,
                          key: IndicatorKey,
                          path: str,
                          deadline: Deadline,
                          scan_directory: bool) -> IndicatorResult:
        snapshot = await self.probe.probe(path, deadline)

        directory = None
        if scan_directory and snapshot.accessible:
            directory = await asyncio.to_thread(self.scanner.scan_size, path, deadline)

        details = DiskDetails(disk=snapshot, directory=directory)
        status = self._disk_status(details)
        return self._result(key, status, details, disk_findings(key, status, details))

    async def _check_root_disk(self, deadline: Deadline, detailed: bool) -> IndicatorResult:
        return await self._check_disk(IndicatorKey.DISK_ROOT, self.config.paths.root, deadline, False)

    async def _check_temp_disk(self, deadline: Deadline, detailed: bool) -> IndicatorResult:
        return await self._check_disk(IndicatorKey.DISK_TEMP, self.config.paths.temp, deadline, True)

    async def _check_log_directory(self, deadline: Deadline, detailed: bool) -> IndicatorResult:
        """Classify the total size of the log directory; a missing directory is healthy"""
        directory = await asyncio.to_thread(self.scanner.scan_size, self.config.paths.logs, deadline)

        if directory.exists:
            status = classify(directory.size_bytes, self.config.thresholds.logs, Unit.BYTES)
        else:
            status = Status.HEALTHY

        details = DirectoryDetails(directory=directory)
        key = IndicatorKey.DISK_LOGS
        return self._result(key, status, details, directory_findings(key, status, details))

    async def _run_check(self, key: IndicatorKey, deadline: Deadline, detailed: bool) -> IndicatorResult:
        """Run one indicator check, converting any failure into an ERROR result"""
        try:
            return await asyncio.wait_for(self._checks[key](deadline, detailed), timeout=deadline.remaining())
        except (asyncio.TimeoutError, DeadlineExceededError) as e:
            message = str(e) or "deadline exceeded"
            self.logger.error(f"Health check '{key.value}' timed out: {message}")
            details = ErrorDetails(error=message, timed_out=True)
        except Exception as e:
            self.logger.error(f"Health check '{key.value}' failed: {e}")
            details = ErrorDetails(error=str(e) or e.__class__.__name__)
        return self._result(key, Status.ERROR, details, error_findings(key, details))

    async def check_indicator(self, key: str | IndicatorKey, timeout: Optional[float] = None) -> IndicatorResult:
        """
        Check a single indicator.

        Args:
            key: Indicator key, e.g. 'memory' or 'disk@root'
            timeout: Seconds before the check gives up (default from configuration)

        Raises:
            UnknownIndicatorError: if the key is not configured
        """
        indicator = self._resolve_key(key)
        return await self._run_check(indicator, self._deadline(timeout), detailed=False)

    async def _check_indicators(self, deadline: Deadline, detailed: bool) -> List[IndicatorResult]:
        return list(await asyncio.gather(
            *(self._run_check(key, deadline, detailed) for key in self._checks)
        ))

    def aggregate(self,
                  indicators: List[IndicatorResult],
                  recommendations: tuple[str, ...] = (),
                  uptime: Optional[UptimeReport] = None,
                  system: Optional[SystemInfo] = None) -> AggregatedReport:
        """Fold indicator results into a report"""
        # Messages are listed under the status of their indicator
        critical_issues = tuple(
            message for result in indicators if result.status.is_failing()
            for message in result.messages
        )
        warnings = tuple(
            message for result in indicators if result.status == Status.WARNING
            for message in result.messages
        )
        report = AggregatedReport(
            indicators=tuple(indicators),
            overall_status=worst(result.status for result in indicators),
            recommendations=recommendations,
            critical_issues=critical_issues,
            warnings=warnings,
            timestamp=self.clock.now(),
            uptime=uptime,
            system=system
        )

        if report.overall_status != Status.HEALTHY:
            self.logger.warning(
                f"Health status: {report.overall_status.value}\n"
                + "\n".join(report.critical_issues + report.warnings)
            )
        return report

    async def check_all(self, timeout: Optional[float] = None) -> AggregatedReport:
        """Check every configured indicator"""
        indicators = await self._check_indicators(self._deadline(timeout), detailed=False)
        return self.aggregate(indicators)

    async def detailed_analysis(self, timeout: Optional[float] = None) -> AggregatedReport:
        """Check every indicator and add recommendations, uptime and system information"""
        indicators = await self._check_indicators(self._deadline(timeout), detailed=True)
        recommendations = build_recommendations(
            {result.key: result for result in indicators},
            self.config.thresholds
        )
        try:
            system = self.system_info()
        except Exception as e:
            self.logger.error(f"Could not collect system information: {e}")
            system = None

        return self.aggregate(
            indicators,
            recommendations=recommendations,
            uptime=self.uptime(),
            system=system
        )

    def uptime(self) -> UptimeReport:
        return self.inspector.uptime()

    def system_info(self) -> SystemInfo:
        return self.inspector.system_info()

    def readiness(self) -> ReadinessReport:
        return self.inspector.readiness()
