import os
import logging
import sys
from logging.handlers import RotatingFileHandler

from ..core.config import LogConfig

class LoggerSetup:
    """
    Centralized logging configuration for the Healthwatch application.
    Provides consistent logging across all modules with both console and file output.
    """
    _initialized = False
    _loggers: set[str] = set()
    _logs_dir = os.getenv('LOG_DIR', 'logs')
    _console_level = logging.INFO
    _max_bytes = 10 * 1024 * 1024
    _backup_count = 5

    @classmethod
    def configure(cls, config: LogConfig) -> None:
        """
        Apply logging configuration to every logger set up so far and to
        those created from now on.

        Args:
            config: Logging configuration (level, directory, rotation)
        """
        cls._logs_dir = config.directory
        cls._console_level = logging.getLevelName(config.level)
        if not isinstance(cls._console_level, int):
            cls._console_level = logging.INFO
        cls._max_bytes = config.max_size
        cls._backup_count = config.backup_count

        for name in cls._loggers:
            cls.update_log_level(name, console_level=cls._console_level)
            cls._relocate_file_handler(name)

    @classmethod
    def _get_log_path(cls, name: str) -> str:
        """
        Generate a log file path based on the name.
        For module paths (contains dots), uses the last part.
        For class names (no dots), creates direct log file.

        Args:
            name: Name to create log file for (module path or class name)
        Returns:
            str: Path for the log file
        """
        if '.' in name:
            filename = f"{name.split('.')[-1]}.log"
        else:
            filename = f"{name}.log"

        return os.path.join(cls._logs_dir, filename)

    @classmethod
    def _add_file_handler(cls, logger: logging.Logger, name: str) -> None:
        """Attach a rotating DEBUG file handler in the current log directory"""
        debug_log_file = cls._get_log_path(name)
        os.makedirs(os.path.dirname(debug_log_file) or '.', exist_ok=True)

        file_handler = RotatingFileHandler(
            debug_log_file,
            maxBytes=cls._max_bytes,
            backupCount=cls._backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(logging.DEBUG)
        file_formatter = logging.Formatter(
            '%(asctime)s - %(threadName)s - %(levelname)s - [%(name)s] - %(message)s'
        )
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)

    @classmethod
    def _relocate_file_handler(cls, name: str) -> None:
        """Reopen file handlers that point outside the configured log directory"""
        logger = logging.getLogger(name)
        target = os.path.abspath(cls._get_log_path(name))

        for handler in list(logger.handlers):
            if isinstance(handler, RotatingFileHandler) and handler.baseFilename != target:
                logger.removeHandler(handler)
                handler.close()
                try:
                    cls._add_file_handler(logger, name)
                except (PermissionError, OSError) as e:
                    logger.warning(f"Could not move file logging to {target}: {str(e)}")

    @classmethod
    def update_log_level(cls, name: str,
                         console_level: int | None = None,
                         file_level: int | None = None) -> None:
        """
        Update log levels for an existing logger.
        Args:
            name: Name of the logger
            console_level: New console handler log level (if None, level remains unchanged)
            file_level: New file handler log level (if None, level remains unchanged)
        """
        logger = logging.getLogger(name)
        for handler in logger.handlers:
            if isinstance(handler, RotatingFileHandler):
                if file_level is not None:
                    handler.setLevel(file_level)
            elif isinstance(handler, logging.StreamHandler):
                if console_level is not None:
                    handler.setLevel(console_level)

    @classmethod
    def setup(cls, name: str) -> logging.Logger:
        """
        Set up and return a logger.
        Automatically handles both module paths and class names.

        Args:
            name: Logger name (__name__ for modules or __class__.__name__ for classes)
        Returns:
            logging.Logger: Configured logger instance
        Example:
            logger = LoggerSetup.setup(__name__)
            # Creates aggregator.log from healthwatch.monitoring.aggregator
        """
        logger = logging.getLogger(name)
        logger.setLevel(logging.DEBUG)

        # Avoid adding handlers multiple times
        if not logger.handlers:
            console_handler = logging.StreamHandler()
            console_handler.setLevel(cls._console_level)
            console_formatter = logging.Formatter(
                '%(asctime)s - %(levelname)s - %(message)s'
            )
            console_handler.setFormatter(console_formatter)
            logger.addHandler(console_handler)

            # Only add file handler if not in test environment
            if "pytest" not in sys.modules:
                try:
                    cls._add_file_handler(logger, name)
                except (PermissionError, OSError) as e:
                    # Log to console if file logging fails
                    console_handler.setLevel(logging.DEBUG)
                    logger.warning(f"Could not set up file logging: {str(e)}")

        cls._loggers.add(name)

        if not cls._initialized:
            # Quiet noisy loggers
            logging.getLogger('asyncio').setLevel(logging.WARNING)
            logging.getLogger('uvicorn.access').setLevel(logging.WARNING)
            cls._initialized = True

        return logger
