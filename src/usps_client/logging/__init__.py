"""
Structured logging: JSON and console formatters, contextvars-based log context.

Usage:
    from usps_client.logging import setup_logging, LogContext

    setup_logging(level="DEBUG", json_format=True)
"""

from usps_client.logging.context import (
    LogContext,
    clear_log_context,
    get_log_context,
    set_log_context,
)
from usps_client.logging.formatters import ConsoleFormatter, JSONFormatter
from usps_client.logging.setup import NOISY_LOGGERS, get_logger, setup_logging

__all__ = [
    "ConsoleFormatter",
    "JSONFormatter",
    "LogContext",
    "NOISY_LOGGERS",
    "clear_log_context",
    "get_log_context",
    "get_logger",
    "set_log_context",
    "setup_logging",
]
