"""
Provider session: authenticated HTTP transport for the request engine.

A ProviderSession bundles the settings, the OAuth token and a pooled
``requests.Session``. It is created once when the provider is configured
and shared by every resource and data source. The engine only reads from
it, so one session may serve concurrent callers; the connection pool is
the only shared resource.

Authentication Flow:
    1. POST client_id/client_secret/audience as a form to WIZ_AUTH_URL
    2. Use "<token_type> <access_token>" as the Authorization header of
       every GraphQL request

Usage:
    from wiz_provider.config import get_settings
    from wiz_provider.session import new_provider_session

    session = new_provider_session(get_settings())
"""

import atexit
import os
import stat
import tempfile
from dataclasses import dataclass
from typing import Any

import requests
from requests.adapters import HTTPAdapter

from wiz_provider import __version__
from wiz_provider.config import Settings
from wiz_provider.errors import AuthenticationError
from wiz_provider.logging_config import get_logger, log_with_context

logger = get_logger(__name__)

DEFAULT_USER_AGENT = f"terraform-provider-wiz/{__version__} (python)"

# Connections kept per host; matches the provider's MaxConnsPerHost
POOL_CONNECTIONS_PER_HOST = 10


@dataclass(frozen=True)
class ProviderSession:
    """
    Handle passed to every engine call.

    Attributes:
        settings: Validated provider settings
        token_type: OAuth token type (usually "Bearer")
        token: OAuth access token
        http: Pooled HTTP session used for GraphQL requests
        user_agent: User-Agent header value
    """

    settings: Settings
    token_type: str
    token: str
    http: requests.Session
    user_agent: str = DEFAULT_USER_AGENT

    @property
    def authorization(self) -> str:
        return f"{self.token_type} {self.token}"

    def __repr__(self) -> str:
        return (
            f"ProviderSession(url={self.settings.wiz_url!r}, "
            f"token_type={self.token_type!r}, user_agent={self.user_agent!r})"
        )


def _write_ca_bundle(ca_chain: str) -> str:
    """
    Write the configured CA chain to an owner-only temporary file.

    requests verifies TLS against a file path, not PEM text. The file is
    removed when the interpreter exits.

    Args:
        ca_chain: PEM encoded certificates

    Returns:
        Path to the bundle
    """
    fd, bundle_path = tempfile.mkstemp(suffix=".pem", prefix="wiz_ca_")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            _ = f.write(ca_chain)
        os.chmod(bundle_path, stat.S_IRUSR | stat.S_IWUSR)
    except OSError:
        os.unlink(bundle_path)
        raise
    atexit.register(_remove_quietly, bundle_path)
    return bundle_path


def _remove_quietly(path: str) -> None:
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass


def build_http_session(settings: Settings) -> requests.Session:
    """
    Create the pooled HTTP session used for all provider traffic.

    Args:
        settings: Provider settings (CA chain, proxy)

    Returns:
        Configured requests.Session
    """
    http = requests.Session()
    adapter = HTTPAdapter(
        pool_connections=POOL_CONNECTIONS_PER_HOST,
        pool_maxsize=POOL_CONNECTIONS_PER_HOST,
    )
    http.mount("https://", adapter)
    http.mount("http://", adapter)

    if settings.ca_chain.strip():
        http.verify = _write_ca_bundle(settings.ca_chain)

    if settings.proxy:
        http.proxies = {
            "http": settings.proxy_server,
            "https": settings.proxy_server,
        }
        # Explicit proxy settings win over HTTP(S)_PROXY from the environment
        http.trust_env = False

    log_with_context(
        logger,
        "debug",
        "Built HTTP session",
        proxy=settings.proxy,
        custom_ca=bool(settings.ca_chain.strip()),
    )
    return http


def get_session_token(settings: Settings, http: requests.Session) -> tuple[str, str]:
    """
    Exchange service account credentials for an access token.

    Args:
        settings: Provider settings with auth URL and credentials
        http: HTTP session to send the token request with

    Returns:
        Tuple of (token_type, access_token)

    Raises:
        AuthenticationError: If the token request fails or the response
            does not contain a token
    """
    log_with_context(
        logger,
        "info",
        "Requesting session token",
        auth_url=settings.wiz_auth_url,
        audience=settings.wiz_auth_audience,
    )

    try:
        response = http.post(
            settings.wiz_auth_url,
            data={
                "grant_type": settings.wiz_auth_grant_type,
                "client_id": settings.wiz_auth_client_id,
                "client_secret": settings.wiz_auth_client_secret,
                "audience": settings.wiz_auth_audience,
            },
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            timeout=settings.http_timeout_seconds,
        )
    except requests.RequestException as e:
        raise AuthenticationError(
            f"Wiz authentication request failed: {e}",
            auth_url=settings.wiz_auth_url,
            retryable=True,
        ) from e

    if response.status_code != 200:
        log_with_context(
            logger,
            "error",
            "Wiz authentication failed",
            status_code=response.status_code,
            response_body=response.text[:500],
        )
        raise AuthenticationError(
            f"Wiz authentication failed with HTTP {response.status_code}",
            status_code=response.status_code,
            auth_url=settings.wiz_auth_url,
            retryable=response.status_code >= 500,
        )

    try:
        token_data: dict[str, Any] = response.json()
    except ValueError as e:
        raise AuthenticationError(
            "Wiz authentication response is not valid JSON",
            status_code=response.status_code,
            auth_url=settings.wiz_auth_url,
        ) from e

    access_token = token_data.get("access_token") if isinstance(token_data, dict) else None
    if not access_token:
        raise AuthenticationError(
            "No access token in authentication response",
            status_code=response.status_code,
            auth_url=settings.wiz_auth_url,
        )

    token_type = str(token_data.get("token_type") or "Bearer")

    log_with_context(
        logger,
        "info",
        "Obtained session token",
        token_type=token_type,
        expires_in=token_data.get("expires_in"),
    )
    return token_type, str(access_token)


def new_provider_session(
    settings: Settings,
    user_agent: str = DEFAULT_USER_AGENT,
) -> ProviderSession:
    """
    Build the HTTP transport and authenticate.

    Args:
        settings: Provider settings
        user_agent: User-Agent header for GraphQL requests

    Returns:
        Ready-to-use ProviderSession

    Raises:
        AuthenticationError: If authentication fails
    """
    http = build_http_session(settings)
    token_type, token = get_session_token(settings, http)
    return ProviderSession(
        settings=settings,
        token_type=token_type,
        token=token,
        http=http,
        user_agent=user_agent,
    )
