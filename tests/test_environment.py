"""Tests for environment and base URL resolution."""

import pytest

from usps_client.environment import (
    ADDRESSES_BASE_URLS,
    OAUTH_BASE_URLS,
    Environment,
    resolve_base_url,
    resolve_environment,
)
from usps_client.errors import ConfigError


class TestResolveEnvironment:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("production", Environment.PRODUCTION),
            (" Testing ", Environment.TESTING),
            (Environment.TESTING, Environment.TESTING),
        ],
    )
    def test_known(self, value, expected):
        assert resolve_environment(value) == expected

    def test_unknown(self):
        with pytest.raises(ConfigError, match="production, testing"):
            resolve_environment("staging")


class TestResolveBaseUrl:
    def test_environment_defaults(self):
        assert resolve_base_url(ADDRESSES_BASE_URLS, "production", None) == "https://apis.usps.com/addresses/v3"
        assert resolve_base_url(OAUTH_BASE_URLS, "testing", None) == "https://apis-tem.usps.com/oauth2/v3"

    def test_override_wins(self):
        assert resolve_base_url(ADDRESSES_BASE_URLS, "production", "http://localhost:8080/") == (
            "http://localhost:8080"
        )

    def test_override_needs_scheme(self):
        with pytest.raises(ConfigError):
            resolve_base_url(ADDRESSES_BASE_URLS, "production", "localhost:8080")
