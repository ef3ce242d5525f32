# healthwatch/monitoring/sampler.py

import gc
import psutil
from typing import Any, Dict, Optional

try:
    import resource
except ImportError:  # Windows
    resource = None

from ..core.config import DEFAULT_HEAP_LIMIT_BYTES
from ..core.models import MemorySnapshot
from ..utils.logger import LoggerSetup
from ..utils.units import percentage

logger = LoggerSetup.setup(__name__)


class ResourceSampler:
    """
    Reads instantaneous host and process memory figures.

    Every sampling method is independent and never raises: a failed OS call
    yields zeroed fields plus an ``error`` entry describing the failure.
    """

    def __init__(self,
                 heap_limit_fallback: int = DEFAULT_HEAP_LIMIT_BYTES,
                 process: Optional[psutil.Process] = None):
        self._heap_limit_fallback = heap_limit_fallback
        self._process = process

    def _get_process(self) -> psutil.Process:
        if self._process is None:
            self._process = psutil.Process()
        return self._process

    def sample_system_memory(self) -> Dict[str, Any]:
        """Get total, free and used host memory"""
        try:
            memory = psutil.virtual_memory()
            total = int(memory.total)
            free = min(int(memory.available), total)
            used = total - free
            return {
                'total': total,
                'free': free,
                'used': used,
                'usage_percent': percentage(used, total)
            }
        except Exception as e:
            logger.error(f"Error sampling system memory: {e}")
            return {
                'total': 0,
                'free': 0,
                'used': 0,
                'usage_percent': 0.0,
                'error': f"system memory unavailable: {e}"
            }

    def sample_process_memory(self) -> Dict[str, Any]:
        """Get resident, virtual and shared memory of the current process"""
        try:
            info = self._get_process().memory_info()
            return {
                'rss': int(info.rss),
                'vms': int(info.vms),
                'shared': int(getattr(info, 'shared', 0)),
                'data': int(getattr(info, 'data', info.vms))
            }
        except Exception as e:
            logger.error(f"Error sampling process memory: {e}")
            return {
                'rss': 0,
                'vms': 0,
                'shared': 0,
                'data': 0,
                'error': f"process memory unavailable: {e}"
            }

    def _get_heap_limit(self) -> tuple[int, bool]:
        """
        Get the address space limit of the process.

        Returns:
            (limit, estimated): estimated is True when no finite limit is
            set and the configured fallback is used
        """
        if resource is None:
            return self._heap_limit_fallback, True

        limits = []
        for name in ('RLIMIT_AS', 'RLIMIT_DATA'):
            rlimit = getattr(resource, name, None)
            if rlimit is None:
                continue
            try:
                soft, _ = resource.getrlimit(rlimit)
            except (ValueError, OSError) as e:
                logger.debug(f"Could not read {name}: {e}")
                continue
            if soft != resource.RLIM_INFINITY and soft > 0:
                limits.append(int(soft))

        if limits:
            return min(limits), False
        return self._heap_limit_fallback, True

    def sample_heap(self, process_memory: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Get heap figures.

        The heap is the process' resident memory (used) within its reserved
        data segment (total), bounded by the address space limit.
        """
        if process_memory is None:
            process_memory = self.sample_process_memory()

        used = process_memory['rss']
        total = process_memory['data'] or process_memory['vms']
        limit, estimated = self._get_heap_limit()

        heap = {
            'used': used,
            'total': total,
            'limit': limit,
            'usage_percent': percentage(used, total),
            'limit_usage_percent': percentage(used, limit),
            'limit_estimated': estimated
        }
        if 'error' in process_memory:
            heap['error'] = process_memory['error']
        return heap

    def sample(self) -> MemorySnapshot:
        """Take a full memory snapshot"""
        system = self.sample_system_memory()
        process = self.sample_process_memory()
        heap = self.sample_heap(process)

        errors = tuple(dict.fromkeys(
            part['error'] for part in (system, process, heap) if 'error' in part
        ))

        return MemorySnapshot(
            system_total_bytes=system['total'],
            system_free_bytes=system['free'],
            system_used_bytes=system['used'],
            system_usage_percent=system['usage_percent'],
            process_rss_bytes=process['rss'],
            process_vms_bytes=process['vms'],
            process_shared_bytes=process['shared'],
            heap_used_bytes=heap['used'],
            heap_total_bytes=heap['total'],
            heap_limit_bytes=heap['limit'],
            heap_usage_percent=heap['usage_percent'],
            heap_limit_usage_percent=heap['limit_usage_percent'],
            heap_limit_estimated=heap['limit_estimated'],
            errors=errors
        )

    def garbage_collection(self) -> Dict[str, Any]:
        """Get garbage collector counters and per-generation statistics"""
        try:
            return {
                'enabled': gc.isenabled(),
                'counts': list(gc.get_count()),
                'thresholds': list(gc.get_threshold()),
                'generations': gc.get_stats()
            }
        except Exception as e:
            logger.warning(f"Garbage collection statistics not available: {e}")
            return {'error': 'garbage collection statistics not available'}
