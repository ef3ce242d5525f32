import pytest
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from healthwatch.core.config import HealthConfig, PathsConfig
from healthwatch.core.models import DirectoryUsage, DiskSnapshot, MemorySnapshot

GB = 1_000_000_000


class FixedClock:
    """Clock frozen at a given instant"""

    def __init__(self, start_time: datetime, elapsed: timedelta = timedelta(0)):
        self._start_time = start_time
        self._now = start_time + elapsed
        self._monotonic = 1000.0

    @property
    def start_time(self) -> datetime:
        return self._start_time

    def now(self) -> datetime:
        return self._now

    def monotonic(self) -> float:
        return self._monotonic

    def advance(self, seconds: float) -> None:
        self._now += timedelta(seconds=seconds)
        self._monotonic += seconds


class StubSampler:
    def __init__(self, snapshot: MemorySnapshot):
        self.snapshot = snapshot

    def sample(self) -> MemorySnapshot:
        return self.snapshot

    def garbage_collection(self) -> dict:
        return {'enabled': True, 'counts': [1, 2, 3]}


class StubProbe:
    def __init__(self, snapshots: dict[str, DiskSnapshot]):
        self.snapshots = snapshots
        self.calls = []

    async def probe(self, path, deadline=None) -> DiskSnapshot:
        self.calls.append(path)
        return self.snapshots[path]


class StubScanner:
    def __init__(self, usages: dict[str, DirectoryUsage]):
        self.usages = usages

    def scan_size(self, path, deadline=None) -> DirectoryUsage:
        return self.usages.get(path, DirectoryUsage(path=path, exists=False))


def memory_snapshot(total=16 * GB, free=8 * GB, rss=100 * 1024 * 1024, heap_limit_percent=10.0, **kwargs):
    used = total - free
    values = dict(
        system_total_bytes=total,
        system_free_bytes=free,
        system_used_bytes=used,
        system_usage_percent=round(used / total * 100, 2) if total else 0.0,
        process_rss_bytes=rss,
        process_vms_bytes=rss * 4,
        heap_used_bytes=rss,
        heap_total_bytes=rss * 2,
        heap_limit_bytes=10 * GB,
        heap_usage_percent=50.0,
        heap_limit_usage_percent=heap_limit_percent
    )
    values.update(kwargs)
    return MemorySnapshot(**values)


def disk_snapshot(path, usage_percent, **kwargs):
    total = 100 * GB
    used = int(total * usage_percent / 100)
    values = dict(
        path=path,
        total_bytes=total,
        used_bytes=used,
        free_bytes=total - used,
        usage_percent=usage_percent,
        strategy='command'
    )
    values.update(kwargs)
    return DiskSnapshot(**values)


@pytest.fixture
def clock():
    return FixedClock(datetime(2024, 1, 1, tzinfo=timezone.utc), elapsed=timedelta(hours=2, minutes=5))


@pytest.fixture
def paths():
    return PathsConfig(root='/srv/app', temp='/tmp', logs='/srv/app/logs')


@pytest.fixture
def health_config(paths):
    return HealthConfig(paths=paths)


@pytest.fixture
def make_memory_snapshot():
    return memory_snapshot


@pytest.fixture
def make_disk_snapshot():
    return disk_snapshot


@pytest.fixture
def make_aggregator(health_config, clock):
    """Build an aggregator around stubbed samplers"""
    from healthwatch.monitoring.aggregator import HealthAggregator

    def factory(memory=None, disks=None, directories=None, probe=None, config=None):
        config = config or health_config
        paths = config.paths
        if probe is None:
            probe = StubProbe(disks or {
                paths.root: disk_snapshot(paths.root, 40.0),
                paths.temp: disk_snapshot(paths.temp, 20.0)
            })
        return HealthAggregator(
            config,
            clock=clock,
            sampler=StubSampler(memory or memory_snapshot()),
            probe=probe,
            scanner=StubScanner(directories or {})
        )

    return factory
