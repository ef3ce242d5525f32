# tests/core/test_config.py
import pytest

from healthwatch.core.config import (
    GIB,
    MIB,
    Config,
    HealthConfig,
    HealthThresholds,
    ScanConfig,
    ThresholdConfig
)
from healthwatch.core.enums import DiskStrategy, Unit
from healthwatch.core.exceptions import ConfigurationError


def test_default_thresholds():
    thresholds = HealthThresholds()

    assert (thresholds.memory.warning, thresholds.memory.critical) == (80, 90)
    assert (thresholds.disk.warning, thresholds.disk.critical) == (80, 90)
    assert thresholds.process.unit == Unit.BYTES
    assert thresholds.process.critical == 1 * GIB
    assert thresholds.logs.warning == 100 * MIB


@pytest.mark.parametrize("warning,critical", [(90, 80), (80, 80)])
def test_warning_must_be_below_critical(warning, critical):
    with pytest.raises(ConfigurationError):
        ThresholdConfig(warning, critical)


def test_percent_thresholds_are_bounded():
    with pytest.raises(ConfigurationError):
        ThresholdConfig(90, 120)
    with pytest.raises(ConfigurationError):
        ThresholdConfig(-1, 50)


def test_threshold_units_are_checked():
    with pytest.raises(ConfigurationError):
        HealthThresholds(disk=ThresholdConfig(100, 200, Unit.BYTES))


def test_scan_bounds_are_validated():
    with pytest.raises(ConfigurationError):
        ScanConfig(max_entries=0)
    with pytest.raises(ConfigurationError):
        ScanConfig(max_depth=-1)


def test_health_config_rejects_non_positive_timeouts():
    with pytest.raises(ConfigurationError):
        HealthConfig(command_timeout=0)
    with pytest.raises(ConfigurationError):
        HealthConfig(check_timeout=-5)


def test_config_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv('HEALTH_DISK_WARNING', '70')
    monkeypatch.setenv('HEALTH_DISK_CRITICAL', '95')
    monkeypatch.setenv('HEALTH_ROOT_PATH', str(tmp_path))
    monkeypatch.setenv('HEALTH_DISK_STRATEGY', 'PSUTIL')
    monkeypatch.setenv('HEALTH_SCAN_MAX_DEPTH', '3')
    monkeypatch.setenv('HEALTH_SCAN_MAX_ENTRIES', 'none')
    monkeypatch.setenv('API_PORT', '9100')
    monkeypatch.setenv('LOG_LEVEL', 'debug')

    config = Config()

    assert config.health.thresholds.disk.warning == 70
    assert config.health.thresholds.disk.critical == 95
    assert config.health.paths.root == str(tmp_path)
    assert config.health.disk_strategy == DiskStrategy.PSUTIL
    assert config.health.scan.max_depth == 3
    assert config.health.scan.max_entries is None
    assert config.api.port == 9100
    assert config.logging.level == 'DEBUG'


def test_invalid_environment_raises_configuration_error(monkeypatch):
    monkeypatch.setenv('HEALTH_MEMORY_WARNING', '95')
    monkeypatch.setenv('HEALTH_MEMORY_CRITICAL', '90')

    with pytest.raises(ConfigurationError):
        Config()


def test_unparsable_environment_is_wrapped(monkeypatch):
    monkeypatch.setenv('HEALTH_COMMAND_TIMEOUT', 'soon')

    with pytest.raises(ConfigurationError, match="Invalid health configuration"):
        Config()


def test_invalid_api_port(monkeypatch):
    monkeypatch.setenv('API_PORT', '70000')

    with pytest.raises(ConfigurationError):
        Config()
