# tests/monitoring/test_sampler.py
import pytest
from unittest.mock import patch, MagicMock

from healthwatch.core.config import MIB
from healthwatch.monitoring.sampler import ResourceSampler

GB = 1_000_000_000
HEAP_FALLBACK = 1000 * MIB


@pytest.fixture
def mock_process():
    process = MagicMock()
    process.memory_info.return_value = MagicMock(
        rss=200 * MIB,
        vms=800 * MIB,
        shared=20 * MIB,
        data=400 * MIB
    )
    return process


@pytest.fixture
def sampler(mock_process):
    return ResourceSampler(heap_limit_fallback=HEAP_FALLBACK, process=mock_process)


@pytest.fixture
def mock_psutil():
    with patch('healthwatch.monitoring.sampler.psutil') as mock:
        mock.virtual_memory.return_value = MagicMock(
            total=16 * GB,
            available=2 * GB
        )
        yield mock


@pytest.fixture
def no_rlimit():
    with patch('healthwatch.monitoring.sampler.resource', None):
        yield


def test_sample_system_memory(sampler, mock_psutil):
    memory = sampler.sample_system_memory()

    assert memory['total'] == 16 * GB
    assert memory['free'] == 2 * GB
    assert memory['used'] == 14 * GB
    assert memory['usage_percent'] == 87.5
    assert 'error' not in memory


def test_sample_system_memory_failure(sampler, mock_psutil):
    mock_psutil.virtual_memory.side_effect = OSError("no /proc")

    memory = sampler.sample_system_memory()

    assert memory['total'] == 0
    assert memory['usage_percent'] == 0.0
    assert 'no /proc' in memory['error']


def test_sample_process_memory(sampler):
    memory = sampler.sample_process_memory()

    assert memory['rss'] == 200 * MIB
    assert memory['vms'] == 800 * MIB
    assert memory['shared'] == 20 * MIB


def test_sample_heap_uses_fallback_limit(sampler, no_rlimit):
    heap = sampler.sample_heap()

    assert heap['used'] == 200 * MIB
    assert heap['total'] == 400 * MIB
    assert heap['limit'] == HEAP_FALLBACK
    assert heap['limit_estimated'] is True
    assert heap['usage_percent'] == 50.0
    assert heap['limit_usage_percent'] == 20.0


def test_sample_heap_reads_rlimit(sampler):
    mock_resource = MagicMock()
    mock_resource.RLIM_INFINITY = -1
    mock_resource.getrlimit.side_effect = lambda limit: (
        (2000 * MIB, -1) if limit == mock_resource.RLIMIT_AS else (-1, -1)
    )

    with patch('healthwatch.monitoring.sampler.resource', mock_resource):
        heap = sampler.sample_heap()

    assert heap['limit'] == 2000 * MIB
    assert heap['limit_estimated'] is False
    assert heap['limit_usage_percent'] == 10.0


def test_sample_builds_snapshot(sampler, mock_psutil, no_rlimit):
    snapshot = sampler.sample()

    assert snapshot.system_usage_percent == 87.5
    assert snapshot.system_free_bytes == 2 * GB
    assert snapshot.process_rss_bytes == 200 * MIB
    assert snapshot.heap_limit_bytes == HEAP_FALLBACK
    assert snapshot.heap_limit_estimated is True
    assert snapshot.errors == ()


def test_sample_reports_errors_once(sampler, mock_psutil, mock_process, no_rlimit):
    mock_process.memory_info.side_effect = OSError("process gone")

    snapshot = sampler.sample()

    assert snapshot.process_rss_bytes == 0
    assert snapshot.heap_used_bytes == 0
    assert snapshot.system_usage_percent == 87.5
    assert len(snapshot.errors) == 1
    assert 'process gone' in snapshot.errors[0]


def test_garbage_collection(sampler):
    stats = sampler.garbage_collection()

    assert isinstance(stats['enabled'], bool)
    assert len(stats['counts']) == 3
    assert isinstance(stats['generations'], list)
