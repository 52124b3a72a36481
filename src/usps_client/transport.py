"""
HTTP transport used by the OAuth and resource clients.

The client depends only on the HTTPTransport protocol (send a request,
receive a fully read response or a TransportError). AiohttpTransport is the
default implementation; tests and callers may supply their own.
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any

import aiohttp

from usps_client.errors import ParseError, TransportError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
DEFAULT_CONNECTION_LIMIT = 100
USER_AGENT = "usps-client/1.0"


@dataclass
class HTTPRequest:
    """Outgoing request. url already carries any query string."""

    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes | None = None


@dataclass
class HTTPResponse:
    """Response with its body fully read."""

    status: int
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def json(self) -> Any:
        """
        Decode the body as JSON.

        Raises:
            ParseError: If the body is not valid JSON
        """
        try:
            return json.loads(self.body)
        except (ValueError, UnicodeDecodeError) as e:
            raise ParseError(
                f"Invalid JSON response (status {self.status})",
                cause=e,
                context={"http_status": self.status},
            ) from e


class AiohttpTransport:
    """
    HTTPTransport backed by a pooled aiohttp ClientSession.

    The session is created lazily and owned by the transport unless one is
    passed in, in which case the caller manages its lifecycle.

    Usage:
        async with AiohttpTransport(timeout=10) as transport:
            response = await transport.send(HTTPRequest("GET", url))
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        session: aiohttp.ClientSession | None = None,
        connection_limit: int = DEFAULT_CONNECTION_LIMIT,
    ):
        self.timeout = timeout
        self.connection_limit = connection_limit
        self._session = session
        self._owns_session = session is None
        self._closed = False

    async def __aenter__(self) -> "AiohttpTransport":
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._closed:
            raise RuntimeError("AiohttpTransport is closed, cannot create new session")
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=self.connection_limit,
                limit_per_host=self.connection_limit,
                ttl_dns_cache=300,
            )
            self._session = aiohttp.ClientSession(
                connector=connector,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers={"User-Agent": USER_AGENT},
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        self._closed = True
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
            await asyncio.sleep(0)
        self._session = None

    async def send(self, request: HTTPRequest) -> HTTPResponse:
        session = await self._ensure_session()
        try:
            async with session.request(
                request.method,
                request.url,
                headers=request.headers,
                data=request.body,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as response:
                body = await response.read()
                return HTTPResponse(
                    status=response.status,
                    headers=dict(response.headers),
                    body=body,
                )

        except TimeoutError as e:
            raise TransportError(
                f"Timeout after {self.timeout}s",
                cause=e,
                context={"api_method": request.method},
            ) from e

        except aiohttp.ClientError as e:
            raise TransportError(
                f"Connection error: {e}",
                cause=e,
                context={"api_method": request.method},
            ) from e


__all__ = [
    "AiohttpTransport",
    "DEFAULT_TIMEOUT",
    "HTTPRequest",
    "HTTPResponse",
]
