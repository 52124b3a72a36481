"""
Error classification and exception hierarchy.

Provides:
- USPSError hierarchy for typed exceptions
- Classification utilities for retry decisions
"""

from usps_client.errors.exceptions import (
    # Status errors
    APIError,
    # Terminal errors
    CancellationError,
    ConfigError,
    OAuthError,
    ParseError,
    # Transient errors
    TransportError,
    # Base class
    USPSError,
    ValidationError,
    # Classification utilities
    classify_exception,
    classify_http_status,
    is_retryable_error,
)
from usps_client.types import ErrorCategory

__all__ = [
    "APIError",
    "CancellationError",
    "ConfigError",
    "ErrorCategory",
    "OAuthError",
    "ParseError",
    "TransportError",
    "USPSError",
    "ValidationError",
    "classify_exception",
    "classify_http_status",
    "is_retryable_error",
]
