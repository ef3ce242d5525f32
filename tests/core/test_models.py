# tests/core/test_models.py
import pytest
from datetime import datetime, timezone
from pydantic import ValidationError

from healthwatch.core.enums import Status
from healthwatch.core.models import DiskSnapshot, ErrorDetails, IndicatorResult, MemorySnapshot
from healthwatch.core.protocols import SystemClock


def test_degraded_snapshot_reports_zero_usage():
    with pytest.raises(ValidationError):
        DiskSnapshot(path='/', usage_percent=40.0, degraded=True)


def test_usage_known():
    assert DiskSnapshot(path='/', usage_percent=40.0).usage_known is True
    assert DiskSnapshot(path='/', degraded=True).usage_known is False


def test_free_memory_cannot_exceed_total():
    with pytest.raises(ValidationError):
        MemorySnapshot(system_total_bytes=10, system_free_bytes=20)


def test_snapshots_are_immutable():
    snapshot = DiskSnapshot(path='/', usage_percent=40.0)

    with pytest.raises(ValidationError):
        snapshot.usage_percent = 50.0


def test_indicator_details_are_tagged():
    result = IndicatorResult.model_validate({
        'key': 'memory',
        'status': 'error',
        'details': {'kind': 'error', 'error': 'boom'},
        'timestamp': '2024-01-01T00:00:00Z'
    })

    assert isinstance(result.details, ErrorDetails)
    assert result.status == Status.ERROR
    assert result.status.is_failing()


def test_system_clock_start_time_is_fixed():
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    clock = SystemClock(start)

    assert clock.start_time == start
    assert clock.now() > start
    assert clock.monotonic() <= clock.monotonic()
