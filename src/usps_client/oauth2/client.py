"""Client for the OAuth 2.0 token and revocation endpoints."""

import base64
import json
import logging
import time
from urllib.parse import urlencode

from usps_client.cancellation import CancelScope, ensure_scope
from usps_client.environment import OAUTH_BASE_URLS, Environment, resolve_base_url
from usps_client.errors import OAuthError, ParseError
from usps_client.oauth2.models import (
    GrantRequest,
    GrantType,
    OAuthErrorResponse,
    TokenResponse,
    TokenRevokeRequest,
    parse_token_response,
)
from usps_client.transport import DEFAULT_TIMEOUT, AiohttpTransport, HTTPRequest, HTTPResponse
from usps_client.types import HTTPTransport

logger = logging.getLogger(__name__)

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
JSON_CONTENT_TYPE = "application/json"

# Grants the authorization server expects form-urlencoded; the rest go as JSON
_FORM_ENCODED_GRANTS = frozenset({GrantType.CLIENT_CREDENTIALS})


def encode_grant(grant: GrantRequest) -> tuple[str, bytes]:
    """Return (content type, body) for a grant, chosen by its grant type."""
    payload = grant.to_payload()
    if grant.grant_type in _FORM_ENCODED_GRANTS:
        return FORM_CONTENT_TYPE, urlencode(payload).encode()
    return JSON_CONTENT_TYPE, json.dumps(payload).encode()


def basic_auth_header(client_id: str, client_secret: str) -> str:
    credentials = base64.b64encode(f"{client_id}:{client_secret}".encode()).decode()
    return f"Basic {credentials}"


class OAuthClient:
    """
    Async client for POST /token and POST /revoke.

    Usage:
        async with OAuthClient(environment="testing") as oauth:
            tokens = await oauth.post_token(ClientCredentialsGrant(client_id, client_secret))
    """

    def __init__(
        self,
        base_url: str | None = None,
        environment: Environment | str = Environment.PRODUCTION,
        timeout: float = DEFAULT_TIMEOUT,
        transport: HTTPTransport | None = None,
    ):
        self.base_url = resolve_base_url(OAUTH_BASE_URLS, environment, base_url)
        self.timeout = timeout
        self._owns_transport = transport is None
        self._transport: HTTPTransport = transport or AiohttpTransport(timeout=timeout)

        logger.debug("OAuthClient initialized", extra={"base_url": self.base_url})

    async def __aenter__(self) -> "OAuthClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_transport:
            await self._transport.close()

    async def post_token(
        self, grant: GrantRequest, scope: CancelScope | None = None
    ) -> TokenResponse:
        """
        Request tokens with any supported grant.

        Raises:
            OAuthError: HTTP >= 400 from the authorization server
            ParseError: Response body is not a valid token response
            TransportError: Network failure
            CancellationError: Scope terminated first
        """
        content_type, body = encode_grant(grant)
        request = HTTPRequest(
            method="POST",
            url=f"{self.base_url}/token",
            headers={"Content-Type": content_type, "Accept": JSON_CONTENT_TYPE},
            body=body,
        )
        response = await self._send(request, "/token", scope, grant_type=grant.grant_type.value)
        return parse_token_response(response.json())

    async def post_revoke(
        self,
        client_id: str,
        client_secret: str,
        revoke: TokenRevokeRequest,
        scope: CancelScope | None = None,
    ) -> None:
        """Revoke an access or refresh token. Authenticated with HTTP Basic."""
        request = HTTPRequest(
            method="POST",
            url=f"{self.base_url}/revoke",
            headers={
                "Content-Type": FORM_CONTENT_TYPE,
                "Accept": JSON_CONTENT_TYPE,
                "Authorization": basic_auth_header(client_id, client_secret),
            },
            body=urlencode(revoke.to_payload()).encode(),
        )
        await self._send(request, "/revoke", scope)

    async def _send(
        self,
        request: HTTPRequest,
        endpoint: str,
        scope: CancelScope | None,
        grant_type: str | None = None,
    ) -> HTTPResponse:
        scope = ensure_scope(scope)
        start_time = time.perf_counter()
        response = await scope.run(self._transport.send(request))
        duration = time.perf_counter() - start_time

        if not response.ok:
            error = self._error_from_response(response)
            logger.warning(
                "OAuth request failed",
                extra={
                    "api_endpoint": endpoint,
                    "grant_type": grant_type,
                    "http_status": response.status,
                    "oauth_error": error.error,
                    "duration_seconds": round(duration, 3),
                },
            )
            raise error

        logger.debug(
            "OAuth request succeeded",
            extra={
                "api_endpoint": endpoint,
                "grant_type": grant_type,
                "http_status": response.status,
                "duration_seconds": round(duration, 3),
            },
        )
        return response

    @staticmethod
    def _error_from_response(response: HTTPResponse) -> OAuthError:
        try:
            data = response.json()
            envelope = OAuthErrorResponse.model_validate(data)
        except (ParseError, ValueError):
            return OAuthError(response.status, body=response.text())
        if not envelope.error:
            return OAuthError(response.status, body=response.text())
        return OAuthError(
            response.status,
            error=envelope.error,
            error_description=envelope.error_description,
            error_uri=envelope.error_uri,
        )


__all__ = [
    "FORM_CONTENT_TYPE",
    "JSON_CONTENT_TYPE",
    "OAuthClient",
    "basic_auth_header",
    "encode_grant",
]
