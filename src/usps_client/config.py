"""USPS client configuration from YAML file and environment.

Loads from config.yaml (or the path given) with all settings in one place:
- OAuth credentials and scopes
- Environment and base URL overrides
- Bulk execution settings

Environment variables ARE supported using ${VAR_NAME} and ${VAR_NAME:-default}
syntax in YAML files, and USPS_* variables override file values. A .env file
in the working directory is loaded first.
"""

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from usps_client.bulk import (
    DEFAULT_MAX_CONCURRENCY,
    DEFAULT_MAX_RETRIES,
    DEFAULT_REQUESTS_PER_SECOND,
    DEFAULT_RETRY_BACKOFF,
    BulkConfig,
    ProgressCallback,
)
from usps_client.client import USPSClient
from usps_client.environment import (
    ADDRESSES_BASE_URLS,
    OAUTH_BASE_URLS,
    Environment,
    resolve_base_url,
    resolve_environment,
)
from usps_client.errors import ConfigError
from usps_client.oauth2.provider import DEFAULT_TOKEN_REFRESH_BUFFER
from usps_client.transport import DEFAULT_TIMEOUT

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = Path("config.yaml")
CONFIG_FILE_ENV_VAR = "USPS_CONFIG_FILE"

_ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+)(?::-(([^}]*))?)?\}")
_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


def load_yaml(path: Path) -> dict[str, Any]:
    """Load YAML file and return dict."""
    if not path.exists():
        return {}
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}", cause=e) from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping at the top level")
    return data


def _expand_env_vars(data: Any) -> Any:
    """Recursively expand ${VAR_NAME} and ${VAR_NAME:-default} environment variables in config data."""
    if isinstance(data, dict):
        return {key: _expand_env_vars(value) for key, value in data.items()}
    elif isinstance(data, list):
        return [_expand_env_vars(item) for item in data]
    elif isinstance(data, str):

        def replacer(match):
            var_name = match.group(1)
            default_value = match.group(2) if match.group(2) is not None else match.group(0)
            return os.getenv(var_name, default_value)

        return _ENV_VAR_PATTERN.sub(replacer, data)
    else:
        return data


def _to_int(name: str, value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{name} must be an integer, got {value!r}", cause=e) from e


def _to_float(name: str, value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{name} must be a number, got {value!r}", cause=e) from e


def _to_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be a boolean, got {value!r}")


def _to_scopes(value: Any) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        return value.split()
    if isinstance(value, list):
        return [str(s) for s in value if s]
    raise ConfigError(f"scopes must be a string or list, got {value!r}")


@dataclass
class BulkSettings:
    """Bulk executor settings as they appear in config.yaml under usps.bulk."""

    max_concurrency: int = DEFAULT_MAX_CONCURRENCY
    requests_per_second: int = DEFAULT_REQUESTS_PER_SECOND
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_backoff: float = DEFAULT_RETRY_BACKOFF

    def to_bulk_config(self, progress_callback: ProgressCallback | None = None) -> BulkConfig:
        try:
            return BulkConfig(
                max_concurrency=self.max_concurrency,
                requests_per_second=self.requests_per_second,
                max_retries=self.max_retries,
                retry_backoff=self.retry_backoff,
                progress_callback=progress_callback,
            )
        except ValueError as e:
            raise ConfigError(f"Invalid bulk settings: {e}", cause=e) from e


@dataclass
class ClientConfig:
    """USPS client configuration.

    Configuration structure:
        usps:
          client_id: ${USPS_CLIENT_ID}
          client_secret: ${USPS_CLIENT_SECRET}
          environment: production        # or testing
          base_url: ""                   # overrides the environment's Addresses URL
          oauth_base_url: ""             # overrides the environment's OAuth URL
          timeout_seconds: 30
          scopes: addresses
          token_refresh_buffer_seconds: 300
          use_refresh_tokens: false
          bulk:
            max_concurrency: 10
            requests_per_second: 10
            max_retries: 3
            retry_backoff_seconds: 1.0
    """

    client_id: str = ""
    client_secret: str = ""
    environment: Environment = Environment.PRODUCTION
    base_url: str = ""
    oauth_base_url: str = ""
    timeout: float = DEFAULT_TIMEOUT
    scopes: list[str] = field(default_factory=list)
    token_refresh_buffer: float = DEFAULT_TOKEN_REFRESH_BUFFER
    use_refresh_tokens: bool = False
    bulk: BulkSettings = field(default_factory=BulkSettings)

    def validate(self) -> None:
        """Validate value ranges and URL overrides. Credentials are checked separately."""
        if self.timeout <= 0:
            raise ConfigError(f"timeout_seconds must be positive, got {self.timeout}")
        if self.token_refresh_buffer < 0:
            raise ConfigError(
                f"token_refresh_buffer_seconds must be >= 0, got {self.token_refresh_buffer}"
            )
        resolve_base_url(ADDRESSES_BASE_URLS, self.environment, self.base_url or None)
        resolve_base_url(OAUTH_BASE_URLS, self.environment, self.oauth_base_url or None)
        self.bulk.to_bulk_config()

    def require_credentials(self) -> None:
        missing = [
            name
            for name, value in (("client_id", self.client_id), ("client_secret", self.client_secret))
            if not value
        ]
        if missing:
            raise ConfigError(
                f"Missing credentials: {', '.join(missing)} "
                "(set USPS_CLIENT_ID and USPS_CLIENT_SECRET or the usps section of config.yaml)"
            )

    def create_client(self) -> USPSClient:
        """Build an OAuth-backed USPSClient from this configuration."""
        self.require_credentials()
        return USPSClient.with_oauth(
            self.client_id,
            self.client_secret,
            base_url=self.base_url or None,
            oauth_base_url=self.oauth_base_url or None,
            environment=self.environment,
            timeout=self.timeout,
            scopes=self.scopes,
            refresh_buffer=self.token_refresh_buffer,
            use_refresh_tokens=self.use_refresh_tokens,
        )


def _first(*values: Any, default: Any = None) -> Any:
    """First value that is set (env var or YAML key), else default.

    An unresolved ${VAR} placeholder counts as unset.
    """
    for value in values:
        if value is None or value == "":
            continue
        if isinstance(value, str) and _ENV_VAR_PATTERN.fullmatch(value):
            continue
        return value
    return default


def load_config(path: Path | str | None = None, load_env_file: bool = True) -> ClientConfig:
    """Load client configuration.

    Priority (highest to lowest):
    1. USPS_* environment variables
    2. YAML file (after ${VAR} expansion)
    3. Defaults

    Args:
        path: Config file; defaults to $USPS_CONFIG_FILE or ./config.yaml.
            An explicit path that does not exist is an error, a missing
            default file is not.
        load_env_file: Load ./.env before reading the environment

    Raises:
        ConfigError: Unreadable file or invalid values
    """
    if load_env_file:
        load_dotenv(Path.cwd() / ".env")

    if path is None:
        env_path = os.getenv(CONFIG_FILE_ENV_VAR)
        config_path = Path(env_path) if env_path else DEFAULT_CONFIG_FILE
        explicit = bool(env_path)
    else:
        config_path = Path(path)
        explicit = True

    if explicit and not config_path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    logger.debug("Loading configuration", extra={"config_path": str(config_path)})
    config_data = _expand_env_vars(load_yaml(config_path))
    usps = config_data.get("usps", config_data) or {}
    if not isinstance(usps, dict):
        raise ConfigError("usps section must be a mapping")
    bulk_data = usps.get("bulk") or {}

    bulk = BulkSettings(
        max_concurrency=_to_int(
            "bulk.max_concurrency",
            _first(
                os.getenv("USPS_BULK_MAX_CONCURRENCY"),
                bulk_data.get("max_concurrency"),
                default=DEFAULT_MAX_CONCURRENCY,
            ),
        ),
        requests_per_second=_to_int(
            "bulk.requests_per_second",
            _first(
                os.getenv("USPS_BULK_REQUESTS_PER_SECOND"),
                bulk_data.get("requests_per_second"),
                default=DEFAULT_REQUESTS_PER_SECOND,
            ),
        ),
        max_retries=_to_int(
            "bulk.max_retries",
            _first(
                os.getenv("USPS_BULK_MAX_RETRIES"),
                bulk_data.get("max_retries"),
                default=DEFAULT_MAX_RETRIES,
            ),
        ),
        retry_backoff=_to_float(
            "bulk.retry_backoff_seconds",
            _first(
                os.getenv("USPS_BULK_RETRY_BACKOFF"),
                bulk_data.get("retry_backoff_seconds"),
                default=DEFAULT_RETRY_BACKOFF,
            ),
        ),
    )

    config = ClientConfig(
        client_id=str(_first(os.getenv("USPS_CLIENT_ID"), usps.get("client_id"), default="")),
        client_secret=str(
            _first(os.getenv("USPS_CLIENT_SECRET"), usps.get("client_secret"), default="")
        ),
        environment=resolve_environment(
            _first(os.getenv("USPS_ENVIRONMENT"), usps.get("environment"), default="production")
        ),
        base_url=str(_first(os.getenv("USPS_BASE_URL"), usps.get("base_url"), default="")),
        oauth_base_url=str(
            _first(os.getenv("USPS_OAUTH_BASE_URL"), usps.get("oauth_base_url"), default="")
        ),
        timeout=_to_float(
            "timeout_seconds",
            _first(os.getenv("USPS_TIMEOUT"), usps.get("timeout_seconds"), default=DEFAULT_TIMEOUT),
        ),
        scopes=_to_scopes(_first(os.getenv("USPS_SCOPES"), usps.get("scopes"), default="")),
        token_refresh_buffer=_to_float(
            "token_refresh_buffer_seconds",
            _first(
                os.getenv("USPS_TOKEN_REFRESH_BUFFER"),
                usps.get("token_refresh_buffer_seconds"),
                default=DEFAULT_TOKEN_REFRESH_BUFFER,
            ),
        ),
        use_refresh_tokens=_to_bool(
            "use_refresh_tokens",
            _first(
                os.getenv("USPS_USE_REFRESH_TOKENS"),
                usps.get("use_refresh_tokens"),
                default=False,
            ),
        ),
        bulk=bulk,
    )

    config.validate()
    logger.debug(
        "Configuration loaded",
        extra={
            "environment": config.environment.value,
            "has_credentials": bool(config.client_id and config.client_secret),
        },
    )
    return config


__all__ = [
    "BulkSettings",
    "ClientConfig",
    "DEFAULT_CONFIG_FILE",
    "load_config",
    "load_yaml",
]
