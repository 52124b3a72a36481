"""
OAuth 2.0 support: wire models, token/revoke client, and token providers.

Usage:
    from usps_client.oauth2 import OAuthTokenProvider

    provider = OAuthTokenProvider(client_id, client_secret, environment="testing")
    token = await provider.get_token()
"""

from usps_client.oauth2.client import OAuthClient, basic_auth_header, encode_grant
from usps_client.oauth2.models import (
    AccessTokenResponse,
    AuthorizationCodeGrant,
    ClientCredentialsGrant,
    GrantRequest,
    GrantType,
    OAuthErrorResponse,
    RefreshTokenGrant,
    TokenResponse,
    TokenRevokeRequest,
    TokensResponse,
    TokenTypeHint,
    parse_token_response,
)
from usps_client.oauth2.provider import (
    DEFAULT_TOKEN_REFRESH_BUFFER,
    CachedToken,
    OAuthTokenProvider,
    StaticTokenProvider,
    calculate_expiration,
)

__all__ = [
    "AccessTokenResponse",
    "AuthorizationCodeGrant",
    "CachedToken",
    "ClientCredentialsGrant",
    "DEFAULT_TOKEN_REFRESH_BUFFER",
    "GrantRequest",
    "GrantType",
    "OAuthClient",
    "OAuthErrorResponse",
    "OAuthTokenProvider",
    "RefreshTokenGrant",
    "StaticTokenProvider",
    "TokenResponse",
    "TokenRevokeRequest",
    "TokenTypeHint",
    "TokensResponse",
    "basic_auth_header",
    "calculate_expiration",
    "encode_grant",
    "parse_token_response",
]
