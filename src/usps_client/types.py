"""
Core types and protocols used across modules.

This module provides base types, enums, and protocol definitions that are
shared across the client library to ensure consistency and type safety.
"""

from enum import Enum
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from usps_client.cancellation import CancelScope
    from usps_client.transport import HTTPRequest, HTTPResponse


class ErrorCategory(Enum):
    """
    Classification of error types for handling decisions.

    Categories:
        TRANSIENT: Temporary failures that should retry with backoff
                   (e.g., network failures, 429/5xx responses)
        AUTH: Authentication or authorization failures
              (e.g., 401/403 responses, rejected client credentials)
        PERMANENT: Non-retriable failures that won't succeed on retry
                   (e.g., 400/404, malformed payloads, validation errors)
        CANCELLED: The enclosing cancellation scope terminated
        UNKNOWN: Unclassified errors
    """

    TRANSIENT = "transient"
    AUTH = "auth"
    PERMANENT = "permanent"
    CANCELLED = "cancelled"
    UNKNOWN = "unknown"


class TokenProvider(Protocol):
    """
    Protocol for bearer token providers.

    Implementations return a token that is valid at the instant of return.
    Callers ask again before every use.
    """

    async def get_token(self, scope: "CancelScope | None" = None) -> str:
        """
        Get a bearer token usable now.

        Args:
            scope: Cancellation scope bounding the acquisition

        Returns:
            Access token string

        Raises:
            OAuthError: If the authorization server rejects the request
            TransportError: If the authorization server is unreachable
            CancellationError: If the scope terminates first
        """
        ...


class HTTPTransport(Protocol):
    """
    Protocol for the HTTP capability the client depends on.

    One operation: send a request and receive a fully read response, or raise
    TransportError. Non-2xx statuses are returned, not raised.
    """

    async def send(self, request: "HTTPRequest") -> "HTTPResponse": ...

    async def close(self) -> None: ...


__all__ = [
    "ErrorCategory",
    "HTTPTransport",
    "TokenProvider",
]
