# healthwatch/monitoring/thresholds.py

from typing import Iterable

from ..core.config import ThresholdConfig
from ..core.enums import Status, Unit


def classify(value: float, thresholds: ThresholdConfig, unit: Unit | None = None) -> Status:
    """
    Classify a measurement against a warning/critical pair.

    Boundaries are inclusive: a value equal to the critical threshold is
    critical, a value equal to the warning threshold is a warning.

    Args:
        value: Measured value, in the same unit as the thresholds
        thresholds: Warning/critical pair
        unit: Unit of ``value``; must match the unit of ``thresholds``

    Returns:
        Status: HEALTHY, WARNING or CRITICAL
    """
    if unit is not None and unit != thresholds.unit:
        raise ValueError(
            f"Cannot compare a value in {unit.value} against thresholds in {thresholds.unit.value}"
        )

    if value >= thresholds.critical:
        return Status.CRITICAL
    elif value >= thresholds.warning:
        return Status.WARNING
    else:
        return Status.HEALTHY


def worst(statuses: Iterable[Status]) -> Status:
    """
    Fold statuses into an overall status.

    Any CRITICAL or ERROR yields CRITICAL, otherwise any WARNING yields
    WARNING, otherwise HEALTHY (also for an empty input).
    """
    overall = Status.HEALTHY
    for status in statuses:
        if status.is_failing():
            return Status.CRITICAL
        if status.severity > overall.severity:
            overall = status
    return overall
