"""
Unified exception hierarchy for usps_client.

Provides typed exceptions with retry classification so the bulk executor
and resource callers can decide between retrying and surfacing an error.
"""

from typing import TYPE_CHECKING

from usps_client.types import ErrorCategory

if TYPE_CHECKING:
    from usps_client.models.errors import ErrorMessage


class USPSError(Exception):
    """
    Base exception for all client errors.

    Attributes:
        message: Human-readable error description
        category: Error classification for retry decisions
        cause: Original exception if wrapping
        context: Additional context dict for debugging
    """

    category: ErrorCategory = ErrorCategory.UNKNOWN

    def __init__(
        self,
        message: str,
        cause: Exception | None = None,
        context: dict | None = None,
    ):
        self.message = message
        self.cause = cause
        self.context = context or {}
        super().__init__(message)

    @property
    def is_retryable(self) -> bool:
        return self.category == ErrorCategory.TRANSIENT

    def __str__(self) -> str:
        parts = [self.message]
        if self.cause:
            parts.append(f"Caused by: {self.cause}")
        return " | ".join(parts)


# =============================================================================
# Network/Connection Errors (Transient)
# =============================================================================


class TransportError(USPSError):
    """Network failure: DNS, TLS, connection reset, read/write or timeout."""

    category = ErrorCategory.TRANSIENT


# =============================================================================
# HTTP Status Errors
# =============================================================================


class APIError(USPSError):
    """
    HTTP >= 400 from a resource endpoint.

    Carries the status code and the decoded error envelope, if the body
    could be decoded.
    """

    def __init__(
        self,
        status_code: int,
        envelope: "ErrorMessage | None" = None,
        body: str = "",
        context: dict | None = None,
    ):
        self.status_code = status_code
        self.envelope = envelope
        self.body = body

        detail = envelope.error.message if envelope and envelope.error else None
        if not detail and envelope is None and body:
            detail = body.strip()[:200]
        if detail:
            message = f"USPS API error (status {status_code}): {detail}"
        else:
            message = f"USPS API error (status {status_code})"
        super().__init__(message, context=context)

    @property
    def category(self) -> ErrorCategory:  # type: ignore[override]
        return classify_http_status(self.status_code)


class OAuthError(USPSError):
    """HTTP >= 400 from the authorization server."""

    category = ErrorCategory.AUTH

    def __init__(
        self,
        status_code: int,
        error: str = "",
        error_description: str = "",
        error_uri: str = "",
        body: str = "",
    ):
        self.status_code = status_code
        self.error = error
        self.error_description = error_description
        self.error_uri = error_uri
        self.body = body

        if error and error_description:
            message = f"OAuth error (status {status_code}): {error}: {error_description}"
        elif error:
            message = f"OAuth error (status {status_code}): {error}"
        elif body:
            message = f"OAuth error (status {status_code}): {body.strip()[:200]}"
        else:
            message = f"OAuth error (status {status_code})"
        super().__init__(message, context={"http_status": status_code})


# =============================================================================
# Non-Retryable Errors
# =============================================================================


class CancellationError(USPSError):
    """The enclosing cancellation scope terminated (cancelled or deadline exceeded)."""

    category = ErrorCategory.CANCELLED

    def __init__(self, reason: str = "cancelled", cause: Exception | None = None):
        self.reason = reason
        super().__init__(f"operation {reason}", cause=cause)

    @property
    def deadline_exceeded(self) -> bool:
        return self.reason == "deadline exceeded"


class ParseError(USPSError):
    """HTTP body could not be decoded as the expected JSON payload."""

    category = ErrorCategory.PERMANENT


class ValidationError(USPSError):
    """Request rejected locally before any I/O."""

    category = ErrorCategory.PERMANENT


class ConfigError(USPSError):
    """Invalid or incomplete client configuration."""

    category = ErrorCategory.PERMANENT


# =============================================================================
# Error Classification Utilities
# =============================================================================


def classify_http_status(status_code: int) -> ErrorCategory:
    """Classify HTTP status code into error category."""
    if 200 <= status_code < 300:
        return ErrorCategory.UNKNOWN  # Not an error

    if status_code == 429:
        return ErrorCategory.TRANSIENT  # Rate limited

    if status_code in (401, 403):
        return ErrorCategory.AUTH

    if 400 <= status_code < 500:
        return ErrorCategory.PERMANENT  # Client errors, won't fix with retry

    if status_code >= 500:
        return ErrorCategory.TRANSIENT  # Server errors, may recover

    return ErrorCategory.UNKNOWN


def classify_exception(exc: BaseException) -> ErrorCategory:
    """Classify an exception into error category."""
    if isinstance(exc, USPSError):
        return exc.category
    return ErrorCategory.UNKNOWN


def is_retryable_error(exc: BaseException) -> bool:
    """
    Check if exception should be retried.

    Retryable:
    - Transport errors
    - Resource API errors with status 429 or >= 500

    Everything else is terminal, cancellation included.
    """
    if isinstance(exc, TransportError):
        return True
    if isinstance(exc, APIError):
        return exc.status_code == 429 or exc.status_code >= 500
    return False


__all__ = [
    "APIError",
    "CancellationError",
    "ConfigError",
    "OAuthError",
    "ParseError",
    "TransportError",
    "USPSError",
    "ValidationError",
    "classify_exception",
    "classify_http_status",
    "is_retryable_error",
]
