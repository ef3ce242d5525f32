# healthwatch/core/exceptions.py

class HealthwatchError(Exception):
    """Base exception for all application errors"""
    pass

class ConfigurationError(HealthwatchError):
    """Raised for malformed configuration such as inverted threshold pairs"""
    pass

class ProbeDegradedError(HealthwatchError):
    """Native disk usage query was unavailable or returned unusable output"""
    pass

class DeadlineExceededError(HealthwatchError):
    """A check ran past its deadline"""
    pass

class ScanTimeoutError(DeadlineExceededError):
    """Directory scan was interrupted by its deadline"""
    pass

class UnknownIndicatorError(HealthwatchError):
    """Requested indicator key is not configured"""
    pass
