from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, generate_latest

from ..core.enums import Status
from ..core.models import AggregatedReport, DirectoryDetails, DiskDetails, MemoryDetails


class HealthMetrics:
    """
    Prometheus metrics definitions for health checks.

    Metrics:
    - Indicator and overall status (0 healthy, 1 warning, 2 critical, 3 error)
    - Memory usage (system percentage, process RSS)
    - Disk usage per indicator
    - Directory sizes
    - Check duration and error counts
    """

    STATUS_VALUES = {
        Status.HEALTHY: 0,
        Status.WARNING: 1,
        Status.CRITICAL: 2,
        Status.ERROR: 3
    }

    def __init__(self):
        self.registry = CollectorRegistry()

        self.indicator_status = Gauge(
            'health_indicator_status',
            'Indicator status (0 = healthy, 1 = warning, 2 = critical, 3 = error)',
            ['indicator'],
            registry=self.registry
        )

        self.overall_status = Gauge(
            'health_overall_status',
            'Overall health status (0 = healthy, 1 = warning, 2 = critical)',
            registry=self.registry
        )

        self.memory_usage = Gauge(
            'health_system_memory_usage_percent',
            'System memory usage percentage',
            registry=self.registry
        )

        self.process_rss = Gauge(
            'health_process_rss_bytes',
            'Resident set size of the application process in bytes',
            registry=self.registry
        )

        self.disk_usage = Gauge(
            'health_disk_usage_percent',
            'Disk usage percentage by indicator (0 when unknown)',
            ['indicator'],
            registry=self.registry
        )

        self.directory_size = Gauge(
            'health_directory_size_bytes',
            'Scanned directory size in bytes by indicator',
            ['indicator'],
            registry=self.registry
        )

        self.check_errors = Counter(
            'health_check_errors_total',
            'Total number of indicator checks that ended in error',
            ['indicator'],
            registry=self.registry
        )

        self.check_duration = Histogram(
            'health_check_duration_seconds',
            'Duration of aggregated health checks in seconds',
            registry=self.registry
        )

    def update(self, report: AggregatedReport, duration: float | None = None) -> None:
        """Refresh gauges from an aggregated report"""
        self.overall_status.set(self.STATUS_VALUES[report.overall_status])

        for result in report.indicators:
            self.indicator_status.labels(indicator=result.key).set(self.STATUS_VALUES[result.status])
            if result.status == Status.ERROR:
                self.check_errors.labels(indicator=result.key).inc()

            details = result.details
            if isinstance(details, MemoryDetails):
                self.memory_usage.set(details.snapshot.system_usage_percent)
                self.process_rss.set(details.snapshot.process_rss_bytes)
            elif isinstance(details, DiskDetails):
                self.disk_usage.labels(indicator=result.key).set(details.disk.usage_percent)
                if details.directory is not None:
                    self.directory_size.labels(indicator=result.key).set(details.directory.size_bytes)
            elif isinstance(details, DirectoryDetails):
                self.directory_size.labels(indicator=result.key).set(details.directory.size_bytes)

        if duration is not None:
            self.check_duration.observe(duration)

    def generate(self) -> bytes:
        """Generate Prometheus exposition output"""
        return generate_latest(self.registry)
