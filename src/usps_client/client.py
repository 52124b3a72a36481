"""Async client for the USPS Addresses API (standardize, city/state, ZIP lookup)."""

import logging
import time
from typing import TypeVar
from urllib.parse import urlencode

from pydantic import BaseModel

from usps_client.cancellation import CancelScope, ensure_scope
from usps_client.environment import ADDRESSES_BASE_URLS, Environment, resolve_base_url
from usps_client.errors import APIError, ParseError
from usps_client.logging.context import get_log_context
from usps_client.models import (
    AddressRequest,
    AddressResponse,
    CityStateRequest,
    CityStateResponse,
    ErrorMessage,
    ZIPCodeRequest,
    ZIPCodeResponse,
)
from usps_client.oauth2.provider import DEFAULT_TOKEN_REFRESH_BUFFER, OAuthTokenProvider
from usps_client.transport import DEFAULT_TIMEOUT, AiohttpTransport, HTTPRequest, HTTPResponse
from usps_client.types import HTTPTransport, TokenProvider

logger = logging.getLogger(__name__)

ResponseT = TypeVar("ResponseT", bound=BaseModel)

# Requests slower than this are logged at INFO
SLOW_REQUEST_SECONDS = 2.0


class USPSClient:
    """
    Async client for the three address endpoints.

    A token is requested from the provider before every call; providers cache,
    so this is normally free.

    Usage:
        async with USPSClient.with_oauth(client_id, client_secret) as client:
            response = await client.get_address(
                AddressRequest(street_address="123 Main St", state="NY")
            )
    """

    def __init__(
        self,
        token_provider: TokenProvider,
        *,
        base_url: str | None = None,
        environment: Environment | str = Environment.PRODUCTION,
        timeout: float = DEFAULT_TIMEOUT,
        transport: HTTPTransport | None = None,
    ):
        self.base_url = resolve_base_url(ADDRESSES_BASE_URLS, environment, base_url)
        self.timeout = timeout
        self.token_provider = token_provider
        self._owns_transport = transport is None
        self._transport: HTTPTransport = transport or AiohttpTransport(timeout=timeout)

        logger.info(
            "USPSClient initialized",
            extra={"base_url": self.base_url, "timeout_seconds": timeout},
        )

    @classmethod
    def with_oauth(
        cls,
        client_id: str,
        client_secret: str,
        *,
        base_url: str | None = None,
        oauth_base_url: str | None = None,
        environment: Environment | str = Environment.PRODUCTION,
        timeout: float = DEFAULT_TIMEOUT,
        transport: HTTPTransport | None = None,
        scopes: str | list[str] | None = None,
        refresh_buffer: float = DEFAULT_TOKEN_REFRESH_BUFFER,
        use_refresh_tokens: bool = False,
    ) -> "USPSClient":
        """Build a client whose tokens come from an OAuthTokenProvider sharing the transport."""
        owns_transport = transport is None
        transport = transport or AiohttpTransport(timeout=timeout)
        provider = OAuthTokenProvider(
            client_id,
            client_secret,
            scopes=scopes,
            refresh_buffer=refresh_buffer,
            use_refresh_tokens=use_refresh_tokens,
            environment=environment,
            base_url=oauth_base_url,
            timeout=timeout,
            transport=transport,
        )
        client = cls(
            provider,
            base_url=base_url,
            environment=environment,
            timeout=timeout,
            transport=transport,
        )
        client._owns_transport = owns_transport
        return client

    async def __aenter__(self) -> "USPSClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_transport:
            await self._transport.close()

    async def get_address(
        self, request: AddressRequest, scope: CancelScope | None = None
    ) -> AddressResponse:
        """Standardize an address. GET /address."""
        request.validate_required()
        return await self._get("/address", request.to_params(), AddressResponse, scope)

    async def get_city_state(
        self, request: CityStateRequest, scope: CancelScope | None = None
    ) -> CityStateResponse:
        """Look up city and state for a ZIP Code. GET /city-state."""
        request.validate_required()
        return await self._get("/city-state", request.to_params(), CityStateResponse, scope)

    async def get_zip_code(
        self, request: ZIPCodeRequest, scope: CancelScope | None = None
    ) -> ZIPCodeResponse:
        """Look up the ZIP Code for an address. GET /zipcode."""
        request.validate_required()
        return await self._get("/zipcode", request.to_params(), ZIPCodeResponse, scope)

    async def _get(
        self,
        endpoint: str,
        params: dict[str, str],
        response_model: type[ResponseT],
        scope: CancelScope | None,
    ) -> ResponseT:
        scope = ensure_scope(scope)
        token = await self.token_provider.get_token(scope)

        url = f"{self.base_url}{endpoint}"
        if params:
            url = f"{url}?{urlencode(params)}"
        request = HTTPRequest(
            method="GET",
            url=url,
            headers={"Authorization": f"Bearer {token}", "Accept": "application/json"},
        )

        ctx = {k: v for k, v in get_log_context().items() if v}
        logger.debug("API request starting", extra={**ctx, "api_endpoint": endpoint})

        start_time = time.perf_counter()
        response = await scope.run(self._transport.send(request))
        duration = time.perf_counter() - start_time

        if not response.ok:
            raise self._handle_error_response(response, endpoint, duration, ctx)

        try:
            result = response_model.model_validate(response.json())
        except ValueError as e:
            raise ParseError(
                f"Invalid {endpoint} response: {e}",
                cause=e,
                context={"api_endpoint": endpoint, "http_status": response.status},
            ) from e

        log_level = logging.INFO if duration > SLOW_REQUEST_SECONDS else logging.DEBUG
        log_msg = "Slow API request" if duration > SLOW_REQUEST_SECONDS else "API request succeeded"
        logger.log(
            log_level,
            log_msg,
            extra={
                **ctx,
                "api_endpoint": endpoint,
                "http_status": response.status,
                "duration_seconds": round(duration, 3),
            },
        )
        return result

    @staticmethod
    def _handle_error_response(
        response: HTTPResponse, endpoint: str, duration: float, ctx: dict
    ) -> APIError:
        """Decode the error envelope, log, and return the APIError to raise."""
        body = response.text()
        try:
            envelope = ErrorMessage.model_validate(response.json())
        except (ParseError, ValueError) as e:
            logger.debug(
                "Error body is not a standard envelope",
                extra={"api_endpoint": endpoint, "error_message": str(e)[:200]},
            )
            envelope = None

        error = APIError(
            response.status,
            envelope=envelope,
            body=body,
            context={"api_endpoint": endpoint},
        )
        logger.warning(
            "API request failed",
            extra={
                **ctx,
                "api_endpoint": endpoint,
                "http_status": response.status,
                "error_category": error.category.value,
                "is_retryable": error.is_retryable,
                "response_body": body[:500] + "..." if len(body) > 500 else body,
                "duration_seconds": round(duration, 3),
            },
        )
        return error


__all__ = [
    "USPSClient",
]
