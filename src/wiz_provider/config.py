"""
Configuration management for the Wiz provider.

Provider settings are loaded from environment variables using Pydantic
settings with validation. Invalid or missing values raise
ConfigurationError naming the offending key.

Environment Variables:
    WIZ_URL: Wiz GraphQL API endpoint (required)
    WIZ_AUTH_URL: OAuth token endpoint (default: https://auth.app.wiz.io/oauth/token)
    WIZ_AUTH_CLIENT_ID: Service account client ID (required)
    WIZ_AUTH_CLIENT_SECRET: Service account client secret (required)
    WIZ_AUTH_GRANT_TYPE: OAuth grant type (default: client_credentials)
    WIZ_AUTH_AUDIENCE: OAuth audience (default: wiz-api)
    PROXY: Route requests through PROXY_SERVER (default: false)
    PROXY_SERVER: Proxy URL, required when PROXY is true
    CA_CHAIN: PEM encoded CA certificates to trust (optional)
    HTTP_CLIENT_RETRY_MAX: Retries for transient failures (default: 3)
    HTTP_CLIENT_RETRY_WAIT_MIN: Minimum backoff in seconds (default: 1)
    HTTP_CLIENT_RETRY_WAIT_MAX: Maximum backoff in seconds (default: 10)
    HTTP_TIMEOUT_SECONDS: Per-request timeout in seconds (default: 30)
    LOG_LEVEL: Logging level (default: INFO)

Usage:
    from wiz_provider.config import get_settings

    settings = get_settings()
    print(settings.wiz_url)
"""

from functools import lru_cache
from urllib.parse import urlparse

from pydantic import Field, ValidationInfo, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from wiz_provider.errors import ConfigurationError


def _require_http_url(value: str, config_key: str) -> str:
    value = value.strip() if value else ""
    if not value:
        raise ConfigurationError(
            f"{config_key} is required but not set",
            config_key=config_key,
            reason="URL is empty or missing",
        )
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigurationError(
            f"{config_key} '{value}' is not a valid http(s) URL",
            config_key=config_key,
            reason="Expected format: https://api.<region>.app.wiz.io/graphql",
        )
    return value


class Settings(BaseSettings):
    """
    Wiz provider configuration settings.

    Attributes:
        wiz_url: GraphQL endpoint all requests are posted to
        wiz_auth_url: OAuth token endpoint
        wiz_auth_client_id: Service account client ID
        wiz_auth_client_secret: Service account client secret
        wiz_auth_grant_type: OAuth grant type
        wiz_auth_audience: OAuth audience
        proxy: Whether to use proxy_server for all requests
        proxy_server: Proxy URL
        ca_chain: PEM encoded CA bundle used to verify TLS connections
        http_client_retry_max: Maximum retries for transient failures
        http_client_retry_wait_min: Minimum backoff between retries (seconds)
        http_client_retry_wait_max: Maximum backoff between retries (seconds)
        http_timeout_seconds: Timeout for a single HTTP request
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Wiz API
    wiz_url: str = Field(
        ...,
        description="Wiz GraphQL API endpoint",
    )

    # Authentication
    wiz_auth_url: str = Field(
        default="https://auth.app.wiz.io/oauth/token",
        description="Wiz OAuth token endpoint",
    )
    wiz_auth_client_id: str = Field(
        ...,
        description="Wiz service account client ID",
    )
    wiz_auth_client_secret: str = Field(
        ...,
        description="Wiz service account client secret",
    )
    wiz_auth_grant_type: str = Field(
        default="client_credentials",
        description="OAuth grant type",
    )
    wiz_auth_audience: str = Field(
        default="wiz-api",
        description="OAuth audience",
    )

    # Transport
    proxy: bool = Field(
        default=False,
        description="Route requests through proxy_server",
    )
    proxy_server: str = Field(
        default="",
        description="Proxy URL",
    )
    ca_chain: str = Field(
        default="",
        description="PEM encoded CA certificates to trust",
    )
    http_client_retry_max: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Maximum retries for transient failures",
    )
    http_client_retry_wait_min: float = Field(
        default=1.0,
        ge=0,
        description="Minimum backoff between retries in seconds",
    )
    http_client_retry_wait_max: float = Field(
        default=10.0,
        ge=0,
        description="Maximum backoff between retries in seconds",
    )
    http_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout for a single HTTP request in seconds",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )

    @field_validator("wiz_url")
    @classmethod
    def validate_wiz_url(cls, v: str) -> str:
        """
        Validate the GraphQL endpoint is an http(s) URL.

        Raises:
            ConfigurationError: If the URL is empty or malformed
        """
        return _require_http_url(v, "WIZ_URL")

    @field_validator("wiz_auth_url")
    @classmethod
    def validate_wiz_auth_url(cls, v: str) -> str:
        """Validate the token endpoint is an http(s) URL."""
        return _require_http_url(v, "WIZ_AUTH_URL")

    @field_validator("wiz_auth_client_id", "wiz_auth_client_secret")
    @classmethod
    def validate_credentials(cls, v: str, info: ValidationInfo) -> str:
        """
        Validate service account credentials are not empty.

        Raises:
            ConfigurationError: If a credential is empty
        """
        if not v or not v.strip():
            config_key = str(info.field_name).upper()
            raise ConfigurationError(
                f"{config_key} is required but not set",
                config_key=config_key,
                reason="Credential is empty or missing",
            )
        return v.strip()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """
        Validate log level is recognized.

        Raises:
            ConfigurationError: If log level is invalid
        """
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ConfigurationError(
                f"LOG_LEVEL '{v}' is not valid. Must be one of: {', '.join(sorted(valid_levels))}",
                config_key="LOG_LEVEL",
                reason=f"Invalid log level: {v}",
            )
        return v_upper

    @model_validator(mode="after")
    def validate_transport(self) -> "Settings":
        """
        Validate settings that depend on each other.

        Raises:
            ConfigurationError: If the proxy is enabled without a server,
                or the retry backoff bounds are inverted
        """
        if self.proxy and not self.proxy_server.strip():
            raise ConfigurationError(
                "PROXY is enabled but PROXY_SERVER is not set",
                config_key="PROXY_SERVER",
                reason="Proxy server is required when proxy is enabled",
            )
        if self.http_client_retry_wait_max < self.http_client_retry_wait_min:
            raise ConfigurationError(
                "HTTP_CLIENT_RETRY_WAIT_MAX must not be lower than HTTP_CLIENT_RETRY_WAIT_MIN",
                config_key="HTTP_CLIENT_RETRY_WAIT_MAX",
                reason=(
                    f"{self.http_client_retry_wait_max} < {self.http_client_retry_wait_min}"
                ),
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Validated Settings instance

    Raises:
        ConfigurationError: If configuration is invalid
    """
    try:
        return Settings()  # pyright: ignore[reportCallIssue]
    except ConfigurationError:
        raise
    except Exception as e:
        raise ConfigurationError(
            f"Failed to load configuration: {e}",
            reason=str(e),
        ) from e
