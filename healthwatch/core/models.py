from datetime import datetime
from typing import Annotated, Literal, Union
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator
)

from .enums import Status


class SnapshotModel(BaseModel):
    """Base for all immutable snapshot and report models"""

    model_config = ConfigDict(frozen=True, extra='forbid')


class MemorySnapshot(SnapshotModel):
    """
    Point-in-time memory figures for the host and the current process.

    The Python runtime has no managed heap with a hard limit, so the heap
    section models the process' resident memory against its address space
    limit. Parts that could not be sampled are zeroed and described in
    ``errors``.
    """

    system_total_bytes: int = Field(0, ge=0)
    system_free_bytes: int = Field(0, ge=0)
    system_used_bytes: int = Field(0, ge=0)
    system_usage_percent: float = Field(0.0, ge=0, le=100)

    process_rss_bytes: int = Field(0, ge=0)
    process_vms_bytes: int = Field(0, ge=0)
    process_shared_bytes: int = Field(0, ge=0, description="Memory shared with other processes")

    heap_used_bytes: int = Field(0, ge=0)
    heap_total_bytes: int = Field(0, ge=0)
    heap_limit_bytes: int = Field(0, ge=0)
    heap_usage_percent: float = Field(0.0, ge=0)
    heap_limit_usage_percent: float = Field(0.0, ge=0)
    heap_limit_estimated: bool = False

    errors: tuple[str, ...] = ()

    @model_validator(mode='after')
    def validate_system_memory(self) -> 'MemorySnapshot':
        if self.system_free_bytes > self.system_total_bytes:
            raise ValueError("system_free_bytes cannot exceed system_total_bytes")
        return self


class DiskSnapshot(SnapshotModel):
    """Filesystem usage for a path, possibly degraded to a plain stat"""

    path: str
    total_bytes: int | None = Field(None, ge=0)
    free_bytes: int | None = Field(None, ge=0)
    used_bytes: int | None = Field(None, ge=0)
    usage_percent: float = Field(0.0, ge=0, le=100)
    accessible: bool = True
    degraded: bool = False
    strategy: str = "unknown"
    is_directory: bool | None = None
    last_modified: datetime | None = None
    timed_out: bool = False
    error: str | None = None

    @model_validator(mode='after')
    def validate_degraded_usage(self) -> 'DiskSnapshot':
        if self.degraded and self.usage_percent != 0:
            raise ValueError("Degraded snapshots must report usage_percent=0")
        return self

    @property
    def usage_known(self) -> bool:
        """Whether usage_percent reflects a real measurement"""
        return self.accessible and not self.degraded


class DirectoryUsage(SnapshotModel):
    """Recursive size of a directory tree; a lower bound under concurrent mutation"""

    path: str
    size_bytes: int = Field(0, ge=0)
    file_count: int = Field(0, ge=0)
    exists: bool = True
    truncated: bool = False
    skipped_entries: int = Field(0, ge=0)


# Indicator details, tagged by kind
class MemoryDetails(SnapshotModel):
    kind: Literal['memory'] = 'memory'
    snapshot: MemorySnapshot
    system_status: Status
    process_status: Status
    heap_status: Status
    garbage_collection: dict | None = None


class DiskDetails(SnapshotModel):
    kind: Literal['disk'] = 'disk'
    disk: DiskSnapshot
    directory: DirectoryUsage | None = None


class DirectoryDetails(SnapshotModel):
    kind: Literal['directory'] = 'directory'
    directory: DirectoryUsage


class ErrorDetails(SnapshotModel):
    kind: Literal['error'] = 'error'
    error: str
    timed_out: bool = False


IndicatorDetails = Annotated[
    Union[MemoryDetails, DiskDetails, DirectoryDetails, ErrorDetails],
    Field(discriminator='kind')
]


class Finding(SnapshotModel):
    """Non-healthy measurement within an indicator, with its formatted message"""

    status: Status
    message: str


class IndicatorResult(SnapshotModel):
    """Status of one monitored resource at one point in time"""

    key: str
    status: Status
    details: IndicatorDetails
    findings: tuple[Finding, ...] = ()
    timestamp: datetime

    @property
    def messages(self) -> list[str]:
        return [finding.message for finding in self.findings]


class DurationInfo(SnapshotModel):
    seconds: float = Field(..., ge=0)
    human: str
    started_at: datetime | None = None


class UptimeReport(SnapshotModel):
    """Application, process and host uptime"""

    application: DurationInfo
    process: DurationInfo
    system: DurationInfo


class NetworkAddress(SnapshotModel):
    address: str
    family: str
    netmask: str | None = None


class ProcessInfo(SnapshotModel):
    pid: int
    ppid: int | None = None
    cwd: str | None = None
    executable: str | None = None


class CpuUsage(SnapshotModel):
    """CPU time consumed by the current process"""

    user_seconds: float = Field(0.0, ge=0)
    system_seconds: float = Field(0.0, ge=0)


class MemorySummary(SnapshotModel):
    total_bytes: int = Field(0, ge=0)
    free_bytes: int = Field(0, ge=0)
    used_bytes: int = Field(0, ge=0)
    usage_percent: float = Field(0.0, ge=0, le=100)
    process_rss_bytes: int = Field(0, ge=0)
    summary: str


class ReadinessReport(SnapshotModel):
    """
    Coarse readiness verdict.

    ``reasons`` names every check that failed; it is empty when ready.
    """

    ready: bool
    reasons: tuple[str, ...] = ()
    process_memory_percent: float = Field(0.0, ge=0)
    system_memory_percent: float = Field(0.0, ge=0)
    load_average_1m: float = Field(0.0, ge=0)
    cpu_count: int = Field(0, ge=0)
    timestamp: datetime


class SystemInfo(SnapshotModel):
    """Static and slowly changing facts about the host"""

    platform: str
    release: str
    arch: str
    hostname: str
    python_version: str
    cpu_count: int = Field(..., ge=0)
    cpu_model: str
    load_average: tuple[float, float, float]
    cpu_usage: CpuUsage
    memory: MemorySummary
    network_interfaces: dict[str, tuple[NetworkAddress, ...]]
    process: ProcessInfo


class AggregatedReport(SnapshotModel):
    """
    Combined result of all indicators.

    ``recommendations`` is only populated by detailed analysis, as are
    ``uptime`` and ``system``.
    """

    indicators: tuple[IndicatorResult, ...]
    overall_status: Status
    recommendations: tuple[str, ...] = ()
    critical_issues: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()
    timestamp: datetime
    uptime: UptimeReport | None = None
    system: SystemInfo | None = None

    def get_indicator(self, key: str) -> IndicatorResult | None:
        """Get indicator result by key"""
        return next((result for result in self.indicators if result.key == key), None)
