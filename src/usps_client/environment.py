"""Service environments and their base URLs."""

from enum import StrEnum

from usps_client.errors import ConfigError


class Environment(StrEnum):
    PRODUCTION = "production"
    TESTING = "testing"


ADDRESSES_BASE_URLS: dict[Environment, str] = {
    Environment.PRODUCTION: "https://apis.usps.com/addresses/v3",
    Environment.TESTING: "https://apis-tem.usps.com/addresses/v3",
}

OAUTH_BASE_URLS: dict[Environment, str] = {
    Environment.PRODUCTION: "https://apis.usps.com/oauth2/v3",
    Environment.TESTING: "https://apis-tem.usps.com/oauth2/v3",
}


def resolve_environment(value: "Environment | str") -> Environment:
    try:
        return Environment(str(value).strip().lower())
    except ValueError as e:
        raise ConfigError(
            f"Unknown environment {value!r}, expected one of: "
            f"{', '.join(env.value for env in Environment)}",
            cause=e,
        ) from e


def resolve_base_url(
    urls: dict[Environment, str], environment: "Environment | str", override: str | None
) -> str:
    """Explicit override wins; otherwise the environment's URL. Trailing slash removed."""
    if override:
        if not override.startswith(("http://", "https://")):
            raise ConfigError(f"base_url must start with http:// or https://, got: {override!r}")
        return override.rstrip("/")
    return urls[resolve_environment(environment)]


__all__ = [
    "ADDRESSES_BASE_URLS",
    "Environment",
    "OAUTH_BASE_URLS",
    "resolve_base_url",
    "resolve_environment",
]
