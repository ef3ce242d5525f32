from .thresholds import classify, worst
from .sampler import ResourceSampler
from .scanner import DirectoryScanner
from .disk import DiskUsageProbe
from .system import SystemInspector
from .aggregator import HealthAggregator

__all__ = [
  'classify',
  'worst',
  'ResourceSampler',
  'DirectoryScanner',
  'DiskUsageProbe',
  'SystemInspector',
  'HealthAggregator'
]
