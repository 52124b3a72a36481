"""JSON-lines and terminal formatters for client logs."""

import json
import logging
import re
import sys
from datetime import UTC, date, datetime
from enum import Enum
from typing import Any

from usps_client.logging.context import get_log_context


def json_serializer(obj: Any) -> Any:
    """Serialize datetimes as ISO 8601 and enums by value; everything else as str."""
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    return str(obj)


class JSONFormatter(logging.Formatter):
    """
    One JSON object per record.

    Batch context from contextvars is merged in, known extras are promoted to
    top-level keys with stable types, and credentials in URL query strings
    are redacted.
    """

    # extra= keys promoted to top-level JSON keys
    EXTRA_FIELDS = [
        # Requests
        "http_status",
        "api_endpoint",
        "api_method",
        "base_url",
        "token_url",
        "url",
        "duration_seconds",
        "timeout_seconds",
        # Failures
        "error_category",
        "error_message",
        "error_type",
        "is_retryable",
        "response_body",
        "oauth_error",
        # OAuth
        "grant_type",
        "expires_in",
        "has_refresh_token",
        "token_type_hint",
        "refresh_buffer_seconds",
        "use_refresh_tokens",
        # Retry and rate limiting
        "attempt",
        "max_attempts",
        "delay_seconds",
        "rate_limiter",
        "requests_per_second",
        "burst_capacity",
        "callback_error",
        "reason",
        # Bulk
        "operation",
        "request_index",
        "total_requests",
        "succeeded",
        "failed",
        "max_concurrency",
        "max_retries",
    ]

    # Coerced so downstream queries can compare numerically
    NUMERIC_FIELDS = {
        "http_status": int,
        "attempt": int,
        "max_attempts": int,
        "expires_in": int,
        "request_index": int,
        "total_requests": int,
        "succeeded": int,
        "failed": int,
        "max_concurrency": int,
        "max_retries": int,
        "requests_per_second": int,
        "burst_capacity": int,
        "duration_seconds": float,
        "timeout_seconds": float,
        "delay_seconds": float,
        "refresh_buffer_seconds": float,
    }

    # Redacted with SENSITIVE_PARAMS_PATTERN
    URL_FIELDS = ["url", "base_url", "token_url"]

    SENSITIVE_PARAMS_PATTERN = re.compile(
        r"([?&])(token|access_token|refresh_token|client_secret|secret|password|key)=[^&]*",
        re.IGNORECASE,
    )

    def _sanitize_url(self, url: str) -> str:
        return self.SENSITIVE_PARAMS_PATTERN.sub(r"\1\2=[REDACTED]", url)

    def _sanitize_value(self, key: str, value: Any) -> Any:
        if key in self.URL_FIELDS and isinstance(value, str):
            return self._sanitize_url(value)
        return value

    def _ensure_type(self, field: str, value: Any) -> Any:
        """Convert numeric fields to their expected type, None if conversion fails."""
        if field not in self.NUMERIC_FIELDS or value is None:
            return value

        expected_type = self.NUMERIC_FIELDS[field]
        try:
            return expected_type(value)
        except (ValueError, TypeError):
            return None

    @staticmethod
    def _base_log_entry(record: logging.LogRecord) -> dict[str, Any]:
        return {
            "ts": datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

    @staticmethod
    def _inject_context(log_entry: dict[str, Any], log_context: dict[str, str]) -> None:
        for field, value in log_context.items():
            if value:
                log_entry[field] = value

    def _inject_extra_fields(self, log_entry: dict[str, Any], record: logging.LogRecord) -> None:
        for field in self.EXTRA_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                typed_value = self._ensure_type(field, value)
                log_entry[field] = self._sanitize_value(field, typed_value)

    def _inject_exception(self, log_entry: dict[str, Any], record: logging.LogRecord) -> None:
        if not record.exc_info:
            return

        exc_type, exc_value, _ = record.exc_info
        log_entry["exception"] = {
            "type": exc_type.__name__ if exc_type else None,
            "message": str(exc_value) if exc_value else None,
            "stacktrace": self.formatException(record.exc_info),
        }

    def format(self, record: logging.LogRecord) -> str:
        log_entry = self._base_log_entry(record)
        self._inject_context(log_entry, get_log_context())

        if record.levelno in (logging.DEBUG, logging.ERROR, logging.CRITICAL):
            log_entry["file"] = f"{record.filename}:{record.lineno}"

        # Type conversion before sanitization
        self._inject_extra_fields(log_entry, record)
        self._inject_exception(log_entry, record)

        return json.dumps(log_entry, default=json_serializer, ensure_ascii=False)


class ConsoleFormatter(logging.Formatter):
    """
    Single-line terminal output: time, level, batch tags, message.

    Level names are colored only when stderr is a terminal, unless
    use_colors says otherwise.
    """

    COLORS = {
        logging.DEBUG: "\033[36m",  # Cyan
        logging.INFO: "\033[32m",  # Green
        logging.WARNING: "\033[33m",  # Yellow
        logging.ERROR: "\033[31m",  # Red
        logging.CRITICAL: "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def __init__(self, *args, use_colors: bool | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self._use_colors = sys.stderr.isatty() if use_colors is None else use_colors

    def _format_level_name(self, record: logging.LogRecord) -> str:
        level_name = record.levelname
        if not self._use_colors:
            return level_name

        color = self.COLORS.get(record.levelno, "")
        if not color:
            return level_name

        return f"{color}{level_name}{self.RESET}"

    @staticmethod
    def _build_tags(record: logging.LogRecord, log_context: dict[str, str]) -> list[str]:
        batch_id = getattr(record, "batch_id", None) or log_context.get("batch_id")
        operation = getattr(record, "operation", None) or log_context.get("operation")
        request_index = log_context.get("request_index")
        if getattr(record, "request_index", None) is not None:
            request_index = str(record.request_index)

        tags = []
        if batch_id:
            tags.append(f"[batch:{batch_id[:8]}]")
        if operation:
            tags.append(f"[{operation}]")
        if request_index:
            tags.append(f"[#{request_index}]")
        return tags

    def format(self, record: logging.LogRecord) -> str:
        log_context = get_log_context()

        level_name = self._format_level_name(record)
        prefix = " - ".join([datetime.now().strftime("%Y-%m-%d %H:%M:%S"), level_name])
        tags = self._build_tags(record, log_context)

        message = record.getMessage()
        if tags:
            message = f"{' '.join(tags)} {message}"
        line = f"{prefix} - {message}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


__all__ = [
    "ConsoleFormatter",
    "JSONFormatter",
    "json_serializer",
]
