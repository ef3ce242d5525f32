# tests/monitoring/test_diagnostics.py
from datetime import datetime, timezone

from healthwatch.core.config import HealthThresholds
from healthwatch.core.enums import IndicatorKey, Status
from healthwatch.core.models import (
    DirectoryDetails,
    DirectoryUsage,
    DiskDetails,
    ErrorDetails,
    IndicatorResult,
    MemoryDetails
)
from healthwatch.monitoring.diagnostics import (
    HEALTHY_RECOMMENDATION,
    build_recommendations,
    disk_findings,
    error_findings,
    memory_findings,
    root_disk_rule,
    temp_disk_rule,
    truncated_scan_rule
)

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


def result(key, status, details):
    return IndicatorResult(key=key.value, status=status, details=details, timestamp=NOW)


def test_disk_finding_message(make_disk_snapshot):
    details = DiskDetails(disk=make_disk_snapshot('/data', 95.0))

    findings = disk_findings(IndicatorKey.DISK_ROOT, Status.CRITICAL, details)

    assert len(findings) == 1
    assert findings[0].status == Status.CRITICAL
    assert findings[0].message == 'Root disk usage is critical: 95% (/data)'


def test_healthy_disk_has_no_findings(make_disk_snapshot):
    details = DiskDetails(disk=make_disk_snapshot('/data', 10.0))

    assert disk_findings(IndicatorKey.DISK_ROOT, Status.HEALTHY, details) == []


def test_memory_findings_per_measurement(make_memory_snapshot):
    details = MemoryDetails(
        snapshot=make_memory_snapshot(heap_limit_percent=95.0),
        system_status=Status.HEALTHY,
        process_status=Status.WARNING,
        heap_status=Status.CRITICAL
    )

    findings = memory_findings(details)

    assert [finding.status for finding in findings] == [Status.WARNING, Status.CRITICAL]
    assert findings[0].message == 'Process memory usage is high: 100 MB'
    assert findings[1].message == 'Heap memory usage is critical: 95% of limit'


def test_error_findings():
    findings = error_findings(IndicatorKey.DISK_TEMP, ErrorDetails(error='took too long', timed_out=True))

    assert findings[0].status == Status.ERROR
    assert findings[0].message == 'Temporary directory check timed out: took too long'


def test_no_rules_fire():
    assert build_recommendations({}, HealthThresholds()) == (HEALTHY_RECOMMENDATION,)


def test_root_disk_rule_uses_fixed_trigger(make_disk_snapshot):
    thresholds = HealthThresholds()
    below = {'disk@root': result(IndicatorKey.DISK_ROOT, Status.WARNING,
                                 DiskDetails(disk=make_disk_snapshot('/', 85.0)))}
    above = {'disk@root': result(IndicatorKey.DISK_ROOT, Status.WARNING,
                                 DiskDetails(disk=make_disk_snapshot('/', 85.5)))}

    assert root_disk_rule(below, thresholds) is None
    assert 'Root disk usage is high' in root_disk_rule(above, thresholds)


def test_temp_disk_rule(make_disk_snapshot):
    indicators = {'disk@temp': result(IndicatorKey.DISK_TEMP, Status.WARNING,
                                      DiskDetails(disk=make_disk_snapshot('/tmp', 81.0)))}

    assert 'temp files' in temp_disk_rule(indicators, HealthThresholds())


def test_truncated_scan_rule():
    directory = DirectoryUsage(path='/var/log/app', size_bytes=10, file_count=1, truncated=True)
    indicators = {'disk@logs': result(IndicatorKey.DISK_LOGS, Status.HEALTHY,
                                      DirectoryDetails(directory=directory))}

    assert '/var/log/app' in truncated_scan_rule(indicators, HealthThresholds())


def test_custom_rules():
    rules = [lambda indicators, thresholds: None, lambda indicators, thresholds: 'Restart the worker.']

    assert build_recommendations({}, HealthThresholds(), rules) == ('Restart the worker.',)
