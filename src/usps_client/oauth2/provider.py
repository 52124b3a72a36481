"""Bearer token providers with caching and refresh."""

import asyncio
import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from usps_client.cancellation import CancelScope, ensure_scope
from usps_client.environment import Environment
from usps_client.errors import CancellationError, ParseError, USPSError
from usps_client.oauth2.client import OAuthClient
from usps_client.oauth2.models import (
    ClientCredentialsGrant,
    RefreshTokenGrant,
    TokenResponse,
    TokenRevokeRequest,
    TokensResponse,
    TokenTypeHint,
)
from usps_client.transport import DEFAULT_TIMEOUT
from usps_client.types import HTTPTransport

logger = logging.getLogger(__name__)

# Default token refresh buffer (5 minutes before expiry)
DEFAULT_TOKEN_REFRESH_BUFFER = 300.0

# Floor applied when the buffer swallows the whole token lifetime
MIN_TOKEN_LIFETIME = 1.0


def calculate_expiration(now: float, expires_in: float, buffer: float) -> float:
    """
    Instant after which a token must no longer be served.

    The refresh buffer is already subtracted, so callers compare now < result.

    Args:
        now: Current monotonic time
        expires_in: Lifetime in seconds reported by the server
        buffer: Refresh buffer in seconds

    Returns:
        now when expires_in <= 0 (refresh on next call), now + 1s when the
        buffer covers the whole lifetime, otherwise now + expires_in - buffer.
    """
    if expires_in <= 0:
        return now
    if buffer >= expires_in:
        return now + MIN_TOKEN_LIFETIME
    return now + (expires_in - buffer)


def join_scopes(scopes: str | list[str] | None) -> str:
    """Get scopes as a space-separated string."""
    if not scopes:
        return ""
    if isinstance(scopes, list):
        return " ".join(s for s in scopes if s)
    return scopes.strip()


@dataclass
class CachedToken:
    """
    Current bearer token.

    Attributes:
        access_token: The bearer token string
        expires_at: Monotonic instant (refresh buffer applied) after which it is not served
        refresh_token: Refresh credential, kept only when refresh tokens are enabled
    """

    access_token: str
    expires_at: float
    refresh_token: str | None = None

    def is_valid(self, now: float) -> bool:
        return bool(self.access_token) and now < self.expires_at


class OAuthTokenProvider:
    """
    Serves a bearer token that is valid now, acquiring and refreshing as needed.

    Double-checked caching: the fast path reads the cached token under a
    short threading lock; misses serialize on an asyncio lock and re-check
    before talking to the authorization server, so concurrent expirations
    trigger a single acquisition. No lock is held across an HTTP call except
    the acquisition lock, which only other acquirers wait on.

    Usage:
        provider = OAuthTokenProvider(client_id, client_secret, scopes="addresses")
        token = await provider.get_token()
        headers = {"Authorization": f"Bearer {token}"}
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        *,
        scopes: str | list[str] | None = None,
        refresh_buffer: float = DEFAULT_TOKEN_REFRESH_BUFFER,
        use_refresh_tokens: bool = False,
        environment: Environment | str = Environment.PRODUCTION,
        base_url: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: HTTPTransport | None = None,
        oauth_client: OAuthClient | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if not client_id or not client_secret:
            raise ValueError("OAuthTokenProvider requires client_id and client_secret")
        if refresh_buffer < 0:
            raise ValueError(f"refresh_buffer must be >= 0, got {refresh_buffer}")

        self.client_id = client_id
        self._client_secret = client_secret
        self.scopes = join_scopes(scopes)
        self.refresh_buffer = refresh_buffer
        self.use_refresh_tokens = use_refresh_tokens
        self._clock = clock

        self._owns_client = oauth_client is None
        self._oauth = oauth_client or OAuthClient(
            base_url=base_url,
            environment=environment,
            timeout=timeout,
            transport=transport,
        )

        self._token: CachedToken | None = None
        self._state_lock = threading.Lock()
        self._acquire_lock = asyncio.Lock()

        logger.debug(
            "Initialized OAuthTokenProvider",
            extra={
                "token_url": f"{self._oauth.base_url}/token",
                "refresh_buffer_seconds": refresh_buffer,
                "use_refresh_tokens": use_refresh_tokens,
            },
        )

    async def __aenter__(self) -> "OAuthTokenProvider":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_client:
            await self._oauth.close()

    @property
    def oauth_client(self) -> OAuthClient:
        return self._oauth

    def _cached_access_token(self) -> str | None:
        with self._state_lock:
            token = self._token
        if token and token.is_valid(self._clock()):
            return token.access_token
        return None

    async def get_token(self, scope: CancelScope | None = None) -> str:
        """
        Get a bearer token usable now.

        Returns the cached token while it is inside its validity window;
        otherwise tries the refresh grant (when enabled and a refresh token is
        stored) and falls back to client credentials.

        Raises:
            OAuthError: Client-credentials grant rejected
            TransportError: Authorization server unreachable
            ParseError: Malformed token response
            CancellationError: Scope terminated first
        """
        scope = ensure_scope(scope)
        scope.check()

        cached = self._cached_access_token()
        if cached:
            return cached

        await scope.acquire(self._acquire_lock)
        try:
            # Another coroutine may have refreshed while we waited
            cached = self._cached_access_token()
            if cached:
                logger.debug("Token was refreshed by another coroutine")
                return cached
            return await self._obtain_token(scope)
        finally:
            self._acquire_lock.release()

    async def _obtain_token(self, scope: CancelScope) -> str:
        with self._state_lock:
            refresh_token = self._token.refresh_token if self._token else None

        if self.use_refresh_tokens and refresh_token:
            try:
                response = await self._oauth.post_token(
                    RefreshTokenGrant(
                        client_id=self.client_id,
                        client_secret=self._client_secret,
                        refresh_token=refresh_token,
                        scope=self.scopes,
                    ),
                    scope,
                )
                if not isinstance(response, TokensResponse):
                    raise ParseError("Refresh grant response did not include a refresh token")
                return self._store(response, grant_type="refresh_token")
            except CancellationError:
                raise
            except USPSError as e:
                logger.warning(
                    "Token refresh failed, falling back to client credentials",
                    extra={"error_category": e.category.value, "error_message": str(e)},
                )

        response = await self._oauth.post_token(
            ClientCredentialsGrant(
                client_id=self.client_id,
                client_secret=self._client_secret,
                scope=self.scopes,
            ),
            scope,
        )
        return self._store(response, grant_type="client_credentials")

    def _store(self, response: TokenResponse, grant_type: str) -> str:
        now = self._clock()
        refresh_token = None
        if self.use_refresh_tokens and isinstance(response, TokensResponse):
            refresh_token = response.refresh_token

        token = CachedToken(
            access_token=response.access_token,
            expires_at=calculate_expiration(now, response.expires_in, self.refresh_buffer),
            refresh_token=refresh_token,
        )
        with self._state_lock:
            self._token = token

        logger.info(
            "Acquired access token",
            extra={
                "grant_type": grant_type,
                "expires_in": response.expires_in,
                "has_refresh_token": refresh_token is not None,
            },
        )
        return token.access_token

    def invalidate(self) -> None:
        """Drop cached credentials so the next call acquires fresh ones."""
        with self._state_lock:
            self._token = None

    @property
    def has_refresh_token(self) -> bool:
        with self._state_lock:
            return bool(self._token and self._token.refresh_token)

    async def revoke(self, scope: CancelScope | None = None) -> None:
        """
        Revoke the stored refresh token, or the access token if there is none,
        then clear local state.
        """
        with self._state_lock:
            token = self._token
        if token is None:
            return

        if token.refresh_token:
            request = TokenRevokeRequest(token.refresh_token, TokenTypeHint.REFRESH_TOKEN)
        else:
            request = TokenRevokeRequest(token.access_token, TokenTypeHint.ACCESS_TOKEN)

        await self._oauth.post_revoke(self.client_id, self._client_secret, request, scope)
        self.invalidate()
        logger.info("Revoked token", extra={"token_type_hint": str(request.token_type_hint)})


class StaticTokenProvider:
    """Serves a fixed, externally managed bearer token."""

    def __init__(self, token: str):
        if not token:
            raise ValueError("StaticTokenProvider requires a non-empty token")
        self._token = token

    async def get_token(self, scope: CancelScope | None = None) -> str:
        if scope is not None:
            scope.check()
        return self._token

    async def close(self) -> None:
        return None


__all__ = [
    "CachedToken",
    "DEFAULT_TOKEN_REFRESH_BUFFER",
    "OAuthTokenProvider",
    "StaticTokenProvider",
    "calculate_expiration",
    "join_scopes",
]
