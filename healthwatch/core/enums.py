from enum import Enum


class Status(str, Enum):
    """
    Health status of a single indicator or of an aggregated report.

    Severity is ordered healthy < warning < critical. ERROR means the
    measurement itself failed and ranks alongside CRITICAL when statuses
    are folded together.
    """
    HEALTHY = "healthy"
    WARNING = "warning"
    CRITICAL = "critical"
    ERROR = "error"

    @property
    def severity(self) -> int:
        """Numeric severity used for aggregation"""
        severity_mapping = {
            Status.HEALTHY: 0,
            Status.WARNING: 1,
            Status.CRITICAL: 2,
            Status.ERROR: 2
        }
        return severity_mapping[self]

    def is_failing(self) -> bool:
        """Check if status counts as a critical issue"""
        return self in (Status.CRITICAL, Status.ERROR)


class Unit(str, Enum):
    """Unit a measurement and its thresholds are expressed in"""
    PERCENT = "percent"
    BYTES = "bytes"


class DiskStrategy(str, Enum):
    """Disk usage query variants"""
    AUTO = "auto"
    COMMAND = "command"
    PSUTIL = "psutil"
    STAT = "stat"


class IndicatorKey(str, Enum):
    """Configured health indicators"""
    MEMORY = "memory"
    DISK_ROOT = "disk@root"
    DISK_TEMP = "disk@temp"
    DISK_LOGS = "disk@logs"

    @property
    def label(self) -> str:
        """Human readable resource name used in diagnostics"""
        label_mapping = {
            IndicatorKey.MEMORY: "Memory",
            IndicatorKey.DISK_ROOT: "Root disk",
            IndicatorKey.DISK_TEMP: "Temporary directory",
            IndicatorKey.DISK_LOGS: "Log directory"
        }
        return label_mapping[self]

    @classmethod
    def disk_keys(cls) -> list['IndicatorKey']:
        """Get all disk-backed indicator keys"""
        return [cls.DISK_ROOT, cls.DISK_TEMP, cls.DISK_LOGS]
