"""
USPS Addresses API client.

Modules:
    parser      - Free-form address parsing into canonical form with diagnostics
    oauth2      - OAuth 2.0 token acquisition, caching and refresh
    client      - Async client for the address, city/state and ZIP Code endpoints
    bulk        - Concurrent, rate-limited, retrying batch execution
    resilience  - Token-bucket rate limiting, retry with backoff
    errors      - Error classification and exception hierarchy
    logging     - Structured JSON and console logging with context fields
    config      - YAML and environment configuration
"""

from usps_client.bulk import BulkConfig, BulkProcessor, BulkResult
from usps_client.cancellation import CancelScope
from usps_client.client import USPSClient
from usps_client.environment import Environment
from usps_client.errors import (
    APIError,
    CancellationError,
    ConfigError,
    OAuthError,
    ParseError,
    TransportError,
    USPSError,
    ValidationError,
)
from usps_client.models import AddressRequest, CityStateRequest, ZIPCodeRequest
from usps_client.oauth2 import OAuthTokenProvider, StaticTokenProvider
from usps_client.parser import CanonicalAddress, Diagnostic, ParsedAddress, parse
from usps_client.types import ErrorCategory, HTTPTransport, TokenProvider

__version__ = "0.1.0"

__all__ = [
    "APIError",
    "AddressRequest",
    "BulkConfig",
    "BulkProcessor",
    "BulkResult",
    "CancelScope",
    "CancellationError",
    "CanonicalAddress",
    "CityStateRequest",
    "ConfigError",
    "Diagnostic",
    "Environment",
    "ErrorCategory",
    "HTTPTransport",
    "OAuthError",
    "OAuthTokenProvider",
    "ParseError",
    "ParsedAddress",
    "StaticTokenProvider",
    "TokenProvider",
    "TransportError",
    "USPSClient",
    "USPSError",
    "ValidationError",
    "ZIPCodeRequest",
    "parse",
]
