# tests/monitoring/test_thresholds.py
import pytest

from healthwatch.core.config import MIB, ThresholdConfig
from healthwatch.core.enums import Status, Unit
from healthwatch.monitoring.thresholds import classify, worst


@pytest.fixture
def percent_thresholds():
    return ThresholdConfig(80, 90)


@pytest.mark.parametrize("value,expected", [
    (0.0, Status.HEALTHY),
    (79.9, Status.HEALTHY),
    (80.0, Status.WARNING),
    (89.9, Status.WARNING),
    (90.0, Status.CRITICAL),
    (100.0, Status.CRITICAL),
])
def test_classify_boundaries(percent_thresholds, value, expected):
    assert classify(value, percent_thresholds) == expected


def test_classify_bytes():
    thresholds = ThresholdConfig(100 * MIB, 1024 * MIB, Unit.BYTES)

    assert classify(50 * MIB, thresholds, Unit.BYTES) == Status.HEALTHY
    assert classify(100 * MIB, thresholds, Unit.BYTES) == Status.WARNING
    assert classify(2048 * MIB, thresholds, Unit.BYTES) == Status.CRITICAL


def test_classify_rejects_unit_mismatch(percent_thresholds):
    with pytest.raises(ValueError):
        classify(50 * MIB, percent_thresholds, Unit.BYTES)


def test_worst_status():
    assert worst([Status.HEALTHY, Status.WARNING, Status.CRITICAL]) == Status.CRITICAL
    assert worst([Status.HEALTHY, Status.WARNING]) == Status.WARNING
    assert worst([Status.HEALTHY, Status.HEALTHY]) == Status.HEALTHY


def test_worst_treats_error_as_critical():
    assert worst([Status.HEALTHY, Status.ERROR]) == Status.CRITICAL


def test_worst_of_nothing_is_healthy():
    assert worst([]) == Status.HEALTHY
