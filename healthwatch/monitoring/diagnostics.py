# healthwatch/monitoring/diagnostics.py

from typing import Callable, List, Mapping, Optional

from ..core.config import HealthThresholds
from ..core.enums import IndicatorKey, Status
from ..core.models import (
    DirectoryDetails,
    DiskDetails,
    ErrorDetails,
    Finding,
    IndicatorResult,
    MemoryDetails
)
from ..utils.units import format_bytes, format_percentage

HEALTHY_RECOMMENDATION = "Resource usage is within healthy limits."

# Fixed triggers, independent of the status thresholds
SYSTEM_MEMORY_RECOMMENDATION_PERCENT = 85
HEAP_LIMIT_RECOMMENDATION_PERCENT = 70
HEAP_USAGE_RECOMMENDATION_PERCENT = 80
ROOT_DISK_RECOMMENDATION_PERCENT = 85
TEMP_DISK_RECOMMENDATION_PERCENT = 80


def _severity_word(status: Status) -> str:
    return "critical" if status.is_failing() else "high"


def memory_findings(details: MemoryDetails) -> List[Finding]:
    """Findings for the memory indicator, one per non-healthy measurement"""
    snapshot = details.snapshot
    findings = [
        Finding(status=Status.ERROR, message=f"Memory sampling failed: {error}")
        for error in snapshot.errors
    ]

    if details.system_status != Status.HEALTHY:
        findings.append(Finding(
            status=details.system_status,
            message=(
                f"System memory usage is {_severity_word(details.system_status)}: "
                f"{format_percentage(snapshot.system_usage_percent)}"
            )
        ))
    if details.process_status != Status.HEALTHY:
        findings.append(Finding(
            status=details.process_status,
            message=(
                f"Process memory usage is {_severity_word(details.process_status)}: "
                f"{format_bytes(snapshot.process_rss_bytes)}"
            )
        ))
    if details.heap_status != Status.HEALTHY:
        findings.append(Finding(
            status=details.heap_status,
            message=(
                f"Heap memory usage is {_severity_word(details.heap_status)}: "
                f"{format_percentage(snapshot.heap_limit_usage_percent)} of limit"
            )
        ))
    return findings


def disk_findings(key: IndicatorKey, status: Status, details: DiskDetails) -> List[Finding]:
    """Findings for a disk usage indicator"""
    disk = details.disk
    label = key.label

    if status == Status.HEALTHY:
        return []
    if disk.timed_out:
        message = f"{label} check timed out: {disk.error} ({disk.path})"
    elif not disk.accessible:
        message = f"{label} check failed: {disk.error or 'path not accessible'} ({disk.path})"
    elif disk.degraded:
        message = f"{label} usage is unknown: disk usage query degraded to stat ({disk.path})"
    else:
        message = (
            f"{label} usage is {_severity_word(status)}: "
            f"{format_percentage(disk.usage_percent)} ({disk.path})"
        )
    return [Finding(status=status, message=message)]


def directory_findings(key: IndicatorKey, status: Status, details: DirectoryDetails) -> List[Finding]:
    """Findings for a directory size indicator"""
    if status == Status.HEALTHY:
        return []
    directory = details.directory
    return [Finding(
        status=status,
        message=(
            f"{key.label} size is {_severity_word(status)}: "
            f"{format_bytes(directory.size_bytes)} ({directory.path})"
        )
    )]


def error_findings(key: IndicatorKey, details: ErrorDetails) -> List[Finding]:
    verb = "timed out" if details.timed_out else "failed"
    return [Finding(status=Status.ERROR, message=f"{key.label} check {verb}: {details.error}")]


# Recommendation rules
IndicatorMap = Mapping[str, IndicatorResult]
RecommendationRule = Callable[[IndicatorMap, HealthThresholds], Optional[str]]


def _details(indicators: IndicatorMap, key: IndicatorKey, kind: type):
    result = indicators.get(key.value)
    if result is not None and isinstance(result.details, kind):
        return result.details
    return None


def system_memory_rule(indicators: IndicatorMap, thresholds: HealthThresholds) -> Optional[str]:
    details = _details(indicators, IndicatorKey.MEMORY, MemoryDetails)
    if details and details.snapshot.system_usage_percent > SYSTEM_MEMORY_RECOMMENDATION_PERCENT:
        return "System memory usage is high. Consider adding more RAM or optimizing memory usage."
    return None


def process_memory_rule(indicators: IndicatorMap, thresholds: HealthThresholds) -> Optional[str]:
    details = _details(indicators, IndicatorKey.MEMORY, MemoryDetails)
    if details and details.process_status in (Status.WARNING, Status.CRITICAL):
        return "Process memory usage is high. Consider optimizing application memory usage."
    return None


def heap_limit_rule(indicators: IndicatorMap, thresholds: HealthThresholds) -> Optional[str]:
    details = _details(indicators, IndicatorKey.MEMORY, MemoryDetails)
    if details and details.snapshot.heap_limit_usage_percent > HEAP_LIMIT_RECOMMENDATION_PERCENT:
        return (
            "Heap usage is approaching the process memory limit. "
            "Consider raising the limit or optimizing memory allocation."
        )
    return None


def heap_usage_rule(indicators: IndicatorMap, thresholds: HealthThresholds) -> Optional[str]:
    details = _details(indicators, IndicatorKey.MEMORY, MemoryDetails)
    if details and details.snapshot.heap_usage_percent > HEAP_USAGE_RECOMMENDATION_PERCENT:
        return (
            "High heap usage detected. Consider releasing long-lived objects "
            "or running garbage collection."
        )
    return None


def root_disk_rule(indicators: IndicatorMap, thresholds: HealthThresholds) -> Optional[str]:
    details = _details(indicators, IndicatorKey.DISK_ROOT, DiskDetails)
    if details and details.disk.usage_known and details.disk.usage_percent > ROOT_DISK_RECOMMENDATION_PERCENT:
        return "Root disk usage is high. Consider cleaning up unnecessary files or expanding disk space."
    return None


def temp_disk_rule(indicators: IndicatorMap, thresholds: HealthThresholds) -> Optional[str]:
    details = _details(indicators, IndicatorKey.DISK_TEMP, DiskDetails)
    if details and details.disk.usage_known and details.disk.usage_percent > TEMP_DISK_RECOMMENDATION_PERCENT:
        return "Temporary directory usage is high. Consider cleaning up temp files."
    return None


def log_rotation_rule(indicators: IndicatorMap, thresholds: HealthThresholds) -> Optional[str]:
    details = _details(indicators, IndicatorKey.DISK_LOGS, DirectoryDetails)
    if details and details.directory.exists and details.directory.size_bytes > thresholds.logs.warning:
        return "Log directory is large. Consider implementing log rotation or cleanup."
    return None


def degraded_disk_rule(indicators: IndicatorMap, thresholds: HealthThresholds) -> Optional[str]:
    degraded = [
        details.disk.path
        for key in (IndicatorKey.DISK_ROOT, IndicatorKey.DISK_TEMP)
        if (details := _details(indicators, key, DiskDetails))
        and details.disk.accessible and details.disk.degraded
    ]
    if degraded:
        return (
            f"Disk usage could not be measured for {', '.join(degraded)}. "
            "Check that the disk usage utility is installed and permitted to run."
        )
    return None


def truncated_scan_rule(indicators: IndicatorMap, thresholds: HealthThresholds) -> Optional[str]:
    truncated = []
    for result in indicators.values():
        directory = getattr(result.details, 'directory', None)
        if directory is not None and directory.truncated:
            truncated.append(directory.path)
    if truncated:
        return (
            f"Directory scan of {', '.join(truncated)} stopped at its configured bound; "
            "reported sizes are lower bounds."
        )
    return None


RECOMMENDATION_RULES: List[RecommendationRule] = [
    system_memory_rule,
    process_memory_rule,
    heap_limit_rule,
    heap_usage_rule,
    root_disk_rule,
    temp_disk_rule,
    log_rotation_rule,
    degraded_disk_rule,
    truncated_scan_rule
]


def build_recommendations(indicators: IndicatorMap,
                          thresholds: HealthThresholds,
                          rules: Optional[List[RecommendationRule]] = None) -> tuple[str, ...]:
    """
    Evaluate the rule table against indicator results.

    Returns the message of every rule that fires, or a single healthy
    message when none does.
    """
    recommendations = []
    for rule in rules if rules is not None else RECOMMENDATION_RULES:
        message = rule(indicators, thresholds)
        if message:
            recommendations.append(message)

    if not recommendations:
        recommendations.append(HEALTHY_RECOMMENDATION)
    return tuple(recommendations)
