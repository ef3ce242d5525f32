from typing import Optional
from dataclasses import dataclass, field
import os
import tempfile
from dotenv import load_dotenv

from .exceptions import ConfigurationError
from .enums import DiskStrategy, Unit

MIB = 1024 * 1024
GIB = 1024 * MIB

# Heap limit used when the process has no finite address space limit
DEFAULT_HEAP_LIMIT_BYTES = int(1.4 * GIB)

@dataclass(frozen=True)
class ThresholdConfig:
    """Two-level threshold pair expressed in the unit of the measurement"""
    warning: float
    critical: float
    unit: Unit = Unit.PERCENT

    def __post_init__(self) -> None:
        """Validate threshold pair"""
        if self.warning < 0 or self.critical < 0:
            raise ConfigurationError("Thresholds must not be negative")
        if self.unit == Unit.PERCENT and self.critical > 100:
            raise ConfigurationError("Percentage thresholds must be at most 100")
        if self.warning >= self.critical:
            raise ConfigurationError(
                f"Warning threshold ({self.warning}) must be less than critical ({self.critical})"
            )

@dataclass(frozen=True)
class HealthThresholds:
    """Thresholds per resource kind"""
    memory: ThresholdConfig = field(default_factory=lambda: ThresholdConfig(80, 90))
    process: ThresholdConfig = field(
        default_factory=lambda: ThresholdConfig(512 * MIB, 1 * GIB, Unit.BYTES)
    )
    heap: ThresholdConfig = field(default_factory=lambda: ThresholdConfig(80, 90))
    disk: ThresholdConfig = field(default_factory=lambda: ThresholdConfig(80, 90))
    logs: ThresholdConfig = field(
        default_factory=lambda: ThresholdConfig(100 * MIB, 1 * GIB, Unit.BYTES)
    )

    def __post_init__(self) -> None:
        """Validate units of each pair"""
        for name in ('memory', 'heap', 'disk'):
            if getattr(self, name).unit != Unit.PERCENT:
                raise ConfigurationError(f"{name} thresholds must be percentages")
        for name in ('process', 'logs'):
            if getattr(self, name).unit != Unit.BYTES:
                raise ConfigurationError(f"{name} thresholds must be in bytes")

@dataclass(frozen=True)
class PathsConfig:
    """Filesystem paths monitored by the disk indicators"""
    root: str = field(default_factory=os.getcwd)
    temp: str = field(default_factory=tempfile.gettempdir)
    logs: str = field(default_factory=lambda: os.path.join(os.getcwd(), 'logs'))

    def __post_init__(self) -> None:
        """Validate paths"""
        for name in ('root', 'temp', 'logs'):
            if not getattr(self, name):
                raise ConfigurationError(f"{name} path must be specified")

@dataclass(frozen=True)
class ScanConfig:
    """Bounds for recursive directory scans"""
    max_depth: Optional[int] = None
    max_entries: Optional[int] = 200_000
    follow_symlinks: bool = False

    def __post_init__(self) -> None:
        """Validate scan bounds"""
        if self.max_depth is not None and self.max_depth < 0:
            raise ConfigurationError("Scan max depth must not be negative")
        if self.max_entries is not None and self.max_entries <= 0:
            raise ConfigurationError("Scan max entries must be positive")

@dataclass(frozen=True)
class HealthConfig:
    """Health monitoring configuration"""
    thresholds: HealthThresholds = field(default_factory=HealthThresholds)
    paths: PathsConfig = field(default_factory=PathsConfig)
    scan: ScanConfig = field(default_factory=ScanConfig)
    disk_strategy: DiskStrategy = DiskStrategy.AUTO
    command_timeout: float = 5.0    # seconds
    check_timeout: float = 30.0     # seconds
    heap_limit_fallback: int = DEFAULT_HEAP_LIMIT_BYTES

    def __post_init__(self) -> None:
        """Validate health configuration"""
        if self.command_timeout <= 0:
            raise ConfigurationError("Command timeout must be positive")
        if self.check_timeout <= 0:
            raise ConfigurationError("Check timeout must be positive")
        if self.heap_limit_fallback <= 0:
            raise ConfigurationError("Heap limit fallback must be positive")

@dataclass
class APIConfig:
    """HTTP service configuration"""
    host: str = "0.0.0.0"
    port: int = 8000

    def __post_init__(self) -> None:
        """Validate API configuration"""
        if not 0 < self.port < 65536:
            raise ConfigurationError("API port must be between 1 and 65535")

@dataclass
class LogConfig:
    """Logging configuration"""
    level: str = "INFO"
    directory: str = "logs"
    max_size: int = 10 * MIB
    backup_count: int = 5

class Config:
    """Application configuration"""

    def __init__(self):
        # Load environment variables
        load_dotenv()

        self.health = self._init_health_config()
        self.api = self._init_api_config()
        self.logging = self._init_log_config()

    @staticmethod
    def _optional_int(name: str, default: Optional[str]) -> Optional[int]:
        value = os.getenv(name, default)
        if value is None or value.strip().lower() in ('', 'none'):
            return None
        return int(value)

    def _init_threshold_config(self, prefix: str, default: ThresholdConfig) -> ThresholdConfig:
        """Read a threshold pair from HEALTH_<PREFIX>_WARNING / _CRITICAL"""
        return ThresholdConfig(
            warning=float(os.getenv(f'HEALTH_{prefix}_WARNING', str(default.warning))),
            critical=float(os.getenv(f'HEALTH_{prefix}_CRITICAL', str(default.critical))),
            unit=default.unit
        )

    def _init_health_config(self) -> HealthConfig:
        """Initialize health monitoring configuration"""
        try:
            defaults = HealthThresholds()
            thresholds = HealthThresholds(
                memory=self._init_threshold_config('MEMORY', defaults.memory),
                process=self._init_threshold_config('PROCESS', defaults.process),
                heap=self._init_threshold_config('HEAP', defaults.heap),
                disk=self._init_threshold_config('DISK', defaults.disk),
                logs=self._init_threshold_config('LOGS', defaults.logs)
            )
            cwd = os.getcwd()
            paths = PathsConfig(
                root=os.getenv('HEALTH_ROOT_PATH', cwd),
                temp=os.getenv('HEALTH_TEMP_PATH', tempfile.gettempdir()),
                logs=os.getenv('HEALTH_LOGS_PATH', os.path.join(cwd, os.getenv('LOG_DIR', 'logs')))
            )
            scan = ScanConfig(
                max_depth=self._optional_int('HEALTH_SCAN_MAX_DEPTH', None),
                max_entries=self._optional_int('HEALTH_SCAN_MAX_ENTRIES', '200000'),
                follow_symlinks=os.getenv('HEALTH_SCAN_FOLLOW_SYMLINKS', 'false').lower() == 'true'
            )
            return HealthConfig(
                thresholds=thresholds,
                paths=paths,
                scan=scan,
                disk_strategy=DiskStrategy(os.getenv('HEALTH_DISK_STRATEGY', 'auto').lower()),
                command_timeout=float(os.getenv('HEALTH_COMMAND_TIMEOUT', '5')),
                check_timeout=float(os.getenv('HEALTH_CHECK_TIMEOUT', '30')),
                heap_limit_fallback=int(os.getenv('HEALTH_HEAP_LIMIT_FALLBACK', str(DEFAULT_HEAP_LIMIT_BYTES)))
            )
        except ConfigurationError:
            raise
        except Exception as e:
            raise ConfigurationError(f"Invalid health configuration: {e}")

    def _init_api_config(self) -> APIConfig:
        """Initialize API configuration"""
        try:
            return APIConfig(
                host=os.getenv('API_HOST', '0.0.0.0'),
                port=int(os.getenv('API_PORT', '8000'))
            )
        except ConfigurationError:
            raise
        except Exception as e:
            raise ConfigurationError(f"Invalid API configuration: {e}")

    def _init_log_config(self) -> LogConfig:
        """Initialize logging configuration"""
        try:
            return LogConfig(
                level=os.getenv('LOG_LEVEL', 'INFO').upper(),
                directory=os.getenv('LOG_DIR', 'logs')
            )
        except Exception as e:
            raise ConfigurationError(f"Invalid logging configuration: {e}")
