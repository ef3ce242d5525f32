from datetime import datetime, timezone
from typing import Protocol
import time


class Clock(Protocol):
    """
    Source of wall-clock and monotonic time.

    The start time is captured once when the clock is created and never
    changes afterwards; uptime is measured against it.
    """

    @property
    def start_time(self) -> datetime:
        """UTC time at which the application started"""
        ...

    def now(self) -> datetime:
        """Current UTC time"""
        ...

    def monotonic(self) -> float:
        """Monotonic seconds, used for deadlines"""
        ...


class SystemClock:
    """Clock backed by the host time"""

    def __init__(self, start_time: datetime | None = None):
        self._start_time = start_time or datetime.now(timezone.utc)

    @property
    def start_time(self) -> datetime:
        return self._start_time

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def monotonic(self) -> float:
        return time.monotonic()
