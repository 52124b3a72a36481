"""Logging setup and configuration."""

import logging
import sys
from pathlib import Path
from typing import TextIO

from usps_client.logging.formatters import ConsoleFormatter, JSONFormatter

DEFAULT_CONSOLE_LEVEL = logging.INFO
DEFAULT_FILE_LEVEL = logging.DEBUG

# Noisy loggers to suppress
NOISY_LOGGERS = [
    "aiohttp",
    "aiohttp.access",
    "asyncio",
    "urllib3",
]


def _coerce_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return resolved


def setup_logging(
    level: int | str = DEFAULT_CONSOLE_LEVEL,
    json_format: bool = False,
    log_file: Path | None = None,
    file_level: int | str = DEFAULT_FILE_LEVEL,
    suppress_noisy: bool = True,
    stream: TextIO | None = None,
) -> logging.Logger:
    """
    Configure root logging with a console handler and an optional JSON file handler.

    Console output goes to stderr so command output on stdout stays clean.

    Args:
        level: Console handler level (default: INFO)
        json_format: Use JSON lines on the console instead of the colored format
        log_file: Optional path for a JSON-formatted log file
        file_level: File handler level (default: DEBUG)
        suppress_noisy: Quiet down HTTP client and asyncio loggers
        stream: Console stream override (default: sys.stderr)

    Returns:
        Configured package logger
    """
    console_level = _coerce_level(level)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # Capture all, handlers filter
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(stream or sys.stderr)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(JSONFormatter() if json_format else ConsoleFormatter())
    root_logger.addHandler(console_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(_coerce_level(file_level))
        file_handler.setFormatter(JSONFormatter())
        root_logger.addHandler(file_handler)

    if suppress_noisy:
        for logger_name in NOISY_LOGGERS:
            logging.getLogger(logger_name).setLevel(logging.WARNING)

    logger = logging.getLogger("usps_client")
    logger.debug(
        "Logging configured",
        extra={"json_format": json_format, "log_file": str(log_file) if log_file else None},
    )
    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


__all__ = [
    "DEFAULT_CONSOLE_LEVEL",
    "NOISY_LOGGERS",
    "get_logger",
    "setup_logging",
]
