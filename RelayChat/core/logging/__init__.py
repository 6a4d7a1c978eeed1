"""
Unified logging system for RelayChat application.

Usage:
    from RelayChat.core.logging import get_logger

    logger = get_logger(__name__)
    logger.info("Relay started")

Configuration:
    from RelayChat.core.logging import configure_logging, LogConfig

    configure_logging(LogConfig(level="DEBUG", file_output=False))

or pick a profile from the RELAYCHAT_ENV variable:

    from RelayChat.core.logging import auto_configure
    auto_configure()
"""

import logging
import logging.handlers
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional


@dataclass
class LogConfig:
    """
    Settings applied by LoggingManager.configure().

    ``level`` is the root threshold; ``component_levels`` raises or lowers
    individual loggers (e.g. quiet ``websockets`` in production). The
    rotating file ``relaychat.log`` is written under ``log_dir`` only when
    ``file_output`` is set, and rolls over at ``max_bytes``.
    """
    level: str = "INFO"
    log_dir: str = "./logs"
    console_output: bool = True
    file_output: bool = False
    max_bytes: int = 10 * 1024 * 1024  # 10MB
    backup_count: int = 5
    format_string: Optional[str] = None
    date_format: str = "%Y-%m-%d %H:%M:%S"
    component_levels: Dict[str, str] = field(default_factory=dict)


class ColoredFormatter(logging.Formatter):
    """
    Formatter that adds color to console output.
    """

    # ANSI color codes
    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[35m',   # Magenta
        'RESET': '\033[0m'
    }

    def __init__(self, fmt: str, datefmt: str = None, use_colors: bool = True):
        super().__init__(fmt, datefmt)
        self.use_colors = use_colors and sys.platform != 'win32'

    def format(self, record: logging.LogRecord) -> str:
        if not self.use_colors or record.levelname not in self.COLORS:
            return super().format(record)

        # Other handlers format the same record after this one
        original = record.levelname
        record.levelname = f"{self.COLORS[original]}{original}{self.COLORS['RESET']}"
        try:
            return super().format(record)
        finally:
            record.levelname = original


def get_default_format() -> str:
    """Get the default log format string."""
    return "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def get_detailed_format() -> str:
    """Get a detailed log format string with more context."""
    return (
        "%(asctime)s - %(name)s - %(levelname)s - "
        "[%(filename)s:%(lineno)d - %(funcName)s] - %(message)s"
    )


class LoggingManager:
    """
    Centralized logging manager for the application.

    Owns the handlers it installs on the root logger so that
    reconfiguring replaces them instead of stacking duplicates.
    """

    _instance: Optional['LoggingManager'] = None
    _initialized: bool = False

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self._config: Optional[LogConfig] = None
        self._handlers: List[logging.Handler] = []
        self._initialized = True

    @property
    def config(self) -> Optional[LogConfig]:
        return self._config

    def configure(self, config: LogConfig) -> None:
        """
        Configure the logging system.

        Args:
            config: Logging configuration
        """
        self._config = config
        level = getattr(logging, config.level.upper())

        root_logger = logging.getLogger()
        root_logger.setLevel(level)

        for handler in self._handlers:
            root_logger.removeHandler(handler)
            handler.close()
        self._handlers = []

        if config.console_output:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(level)
            fmt = config.format_string or get_default_format()
            console_handler.setFormatter(ColoredFormatter(fmt, config.date_format))
            self._add(root_logger, console_handler)

        if config.file_output:
            Path(config.log_dir).mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                os.path.join(config.log_dir, "relaychat.log"),
                maxBytes=config.max_bytes,
                backupCount=config.backup_count,
                encoding='utf-8'
            )
            file_handler.setLevel(level)
            fmt = config.format_string or get_detailed_format()
            file_handler.setFormatter(logging.Formatter(fmt, config.date_format))
            self._add(root_logger, file_handler)

        for component, component_level in config.component_levels.items():
            logging.getLogger(component).setLevel(getattr(logging, component_level.upper()))

        logging.getLogger(__name__).debug("Logging system configured with level: %s", config.level)

    def _add(self, root_logger: logging.Logger, handler: logging.Handler) -> None:
        root_logger.addHandler(handler)
        self._handlers.append(handler)

    def get_logger(self, name: str) -> logging.Logger:
        return logging.getLogger(name)


# Global logging manager instance
_logging_manager = LoggingManager()


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    return _logging_manager.get_logger(name)


def configure_logging(config: LogConfig) -> None:
    _logging_manager.configure(config)


# Loggers that are chatty below WARNING in every profile
_NOISY_LOGGERS = ("websockets", "aiohttp", "multipart")


def _quiet(level: str, **overrides: str) -> Dict[str, str]:
    levels = {name: level for name in _NOISY_LOGGERS}
    levels.update(overrides)
    return levels


def create_development_config() -> LogConfig:
    """Everything to the console, with file and line of each record."""
    return LogConfig(
        level="DEBUG",
        format_string=get_detailed_format(),
        component_levels=_quiet("WARNING", **{"uvicorn.access": "INFO"}),
    )


def create_production_config() -> LogConfig:
    """INFO and up, mirrored to ./logs/relaychat.log."""
    return LogConfig(
        level="INFO",
        file_output=True,
        max_bytes=50 * 1024 * 1024,
        backup_count=10,
        component_levels=_quiet("ERROR", **{"uvicorn.access": "WARNING"}),
    )


def create_testing_config() -> LogConfig:
    return LogConfig(
        level="DEBUG",
        format_string="%(levelname)s - %(name)s - %(message)s",
        component_levels=_quiet("ERROR"),
    )


_PROFILES = {
    "development": create_development_config,
    "dev": create_development_config,
    "production": create_production_config,
    "prod": create_production_config,
    "testing": create_testing_config,
    "test": create_testing_config,
}


def auto_configure(env: Optional[str] = None) -> LogConfig:
    """
    Configure logging from an environment profile.

    Args:
        env: Profile name (development, production, testing).
             Read from RELAYCHAT_ENV when omitted; unknown names
             fall back to development.

    Returns:
        The LogConfig that was applied
    """
    env = (env or os.environ.get("RELAYCHAT_ENV", "development")).lower()
    config = _PROFILES.get(env, create_development_config)()
    configure_logging(config)
    get_logger(__name__).info("Logging auto-configured for environment: %s", env)
    return config


__all__ = [
    'LogConfig',
    'LoggingManager',
    'ColoredFormatter',
    'get_logger',
    'configure_logging',
    'create_development_config',
    'create_production_config',
    'create_testing_config',
    'auto_configure',
    'get_default_format',
    'get_detailed_format',
]
