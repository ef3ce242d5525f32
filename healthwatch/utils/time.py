from datetime import datetime, timezone
import time

from ..core.exceptions import DeadlineExceededError


def get_current_datetime() -> datetime:
    """Get current time as UTC datetime"""
    return datetime.now(timezone.utc)

def from_timestamp(timestamp: float) -> datetime:
    """Convert POSIX seconds to UTC datetime"""
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)

def format_duration(seconds: float) -> str:
    """
    Format a duration to a human-readable string.

    Units are shown largest non-zero unit first and at most three units
    are included, e.g. ``2d 3h 4m``, ``3h 0m 12s``, ``45s``.

    Args:
        seconds (float): Duration in seconds. Negative values count as zero.

    Returns:
        str: Formatted duration string.
    """
    total = max(int(seconds), 0)
    minutes, secs = divmod(total, 60)
    hours, minutes = divmod(minutes, 60)
    days, hours = divmod(hours, 24)

    if days > 0:
        return f"{days}d {hours}h {minutes}m"
    elif hours > 0:
        return f"{hours}h {minutes}m {secs}s"
    elif minutes > 0:
        return f"{minutes}m {secs}s"
    else:
        return f"{secs}s"


class Deadline:
    """
    Point on the monotonic clock after which a check must give up.

    A deadline without a limit never expires.
    """

    def __init__(self, expires_at: float | None, clock=time.monotonic):
        self._expires_at = expires_at
        self._clock = clock

    @classmethod
    def after(cls, seconds: float | None, clock=time.monotonic) -> 'Deadline':
        """Create deadline ``seconds`` from now (None for no limit)"""
        if seconds is None:
            return cls(None, clock)
        return cls(clock() + seconds, clock)

    @property
    def expired(self) -> bool:
        return self._expires_at is not None and self._clock() >= self._expires_at

    def remaining(self) -> float | None:
        """Seconds left, never negative; None when unbounded"""
        if self._expires_at is None:
            return None
        return max(self._expires_at - self._clock(), 0.0)

    def bounded(self, seconds: float) -> float:
        """Limit a timeout so it does not outlive the deadline"""
        remaining = self.remaining()
        return seconds if remaining is None else min(seconds, remaining)

    def check(self, what: str = "operation") -> None:
        """Raise DeadlineExceededError if the deadline has passed"""
        if self.expired:
            raise DeadlineExceededError(f"{what} exceeded its deadline")
