"""
OAuth 2.0 wire models.

Grant requests are a tagged variant: each grant carries its GrantType and the
client dispatches on that tag to pick the body encoding. Token responses are
likewise one of two shapes, tagged by whether a refresh token was issued.
"""

from dataclasses import dataclass
from enum import StrEnum
from typing import Any, ClassVar

from pydantic import BaseModel, Field

from usps_client.errors import ParseError


class GrantType(StrEnum):
    CLIENT_CREDENTIALS = "client_credentials"
    REFRESH_TOKEN = "refresh_token"
    AUTHORIZATION_CODE = "authorization_code"


class TokenTypeHint(StrEnum):
    ACCESS_TOKEN = "access_token"
    REFRESH_TOKEN = "refresh_token"


@dataclass(frozen=True)
class ClientCredentialsGrant:
    """Machine-to-machine grant. Sent form-urlencoded."""

    grant_type: ClassVar[GrantType] = GrantType.CLIENT_CREDENTIALS

    client_id: str
    client_secret: str
    scope: str = ""

    def to_payload(self) -> dict[str, str]:
        payload = {
            "grant_type": self.grant_type.value,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
        }
        if self.scope:
            payload["scope"] = self.scope
        return payload


@dataclass(frozen=True)
class RefreshTokenGrant:
    """Exchange a refresh token for new tokens. Sent as JSON."""

    grant_type: ClassVar[GrantType] = GrantType.REFRESH_TOKEN

    client_id: str
    client_secret: str
    refresh_token: str
    scope: str = ""

    def to_payload(self) -> dict[str, str]:
        payload = {
            "grant_type": self.grant_type.value,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "refresh_token": self.refresh_token,
        }
        if self.scope:
            payload["scope"] = self.scope
        return payload


@dataclass(frozen=True)
class AuthorizationCodeGrant:
    """Exchange an authorization code. Sent as JSON."""

    grant_type: ClassVar[GrantType] = GrantType.AUTHORIZATION_CODE

    client_id: str
    client_secret: str
    code: str
    redirect_uri: str
    scope: str = ""

    def to_payload(self) -> dict[str, str]:
        payload = {
            "grant_type": self.grant_type.value,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "code": self.code,
            "redirect_uri": self.redirect_uri,
        }
        if self.scope:
            payload["scope"] = self.scope
        return payload


GrantRequest = ClientCredentialsGrant | RefreshTokenGrant | AuthorizationCodeGrant


@dataclass(frozen=True)
class TokenRevokeRequest:
    token: str
    token_type_hint: TokenTypeHint | str = ""

    def to_payload(self) -> dict[str, str]:
        payload = {"token": self.token}
        if self.token_type_hint:
            payload["token_type_hint"] = str(self.token_type_hint)
        return payload


class AccessTokenResponse(BaseModel):
    """Token endpoint response without a refresh token."""

    model_config = {"extra": "allow"}

    access_token: str = Field(..., min_length=1)
    token_type: str = Field(default="Bearer")
    expires_in: int = Field(default=0, description="Lifetime in seconds")
    scope: str = Field(default="")
    issued_at: int | str | None = None
    status: str | None = None
    issuer: str | None = None
    client_id: str | None = None
    application_name: str | None = None
    api_products: str | list[str] | None = None
    public_key: str | None = None

    @property
    def has_refresh_token(self) -> bool:
        return False


class TokensResponse(AccessTokenResponse):
    """Token endpoint response carrying both an access and a refresh token."""

    refresh_token: str = Field(..., min_length=1)
    refresh_token_issued_at: int | str | None = None
    refresh_token_expires_in: int | None = None
    refresh_count: int | None = None
    refresh_token_status: str | None = None

    @property
    def has_refresh_token(self) -> bool:
        return True


TokenResponse = AccessTokenResponse | TokensResponse


class OAuthErrorResponse(BaseModel):
    model_config = {"extra": "allow"}

    error: str = ""
    error_description: str = ""
    error_uri: str = ""


def parse_token_response(data: Any) -> TokenResponse:
    """
    Pick the response shape: TokensResponse when a non-empty refresh_token is present.

    Raises:
        ParseError: If the payload is not a valid token response
    """
    if not isinstance(data, dict):
        raise ParseError("Token response is not a JSON object")
    try:
        if data.get("refresh_token"):
            return TokensResponse.model_validate(data)
        return AccessTokenResponse.model_validate(data)
    except ValueError as e:
        raise ParseError(f"Invalid token response: {e}", cause=e) from e


__all__ = [
    "AccessTokenResponse",
    "AuthorizationCodeGrant",
    "ClientCredentialsGrant",
    "GrantRequest",
    "GrantType",
    "OAuthErrorResponse",
    "RefreshTokenGrant",
    "TokenResponse",
    "TokenRevokeRequest",
    "TokenTypeHint",
    "TokensResponse",
    "parse_token_response",
]
