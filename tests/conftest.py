"""
Shared pytest fixtures for wiz_provider tests.

Fixtures provide fake provider settings, a pre-authenticated session that
skips the OAuth exchange, a request context, and builders for GraphQL
response payloads.

Usage:
    def test_something(provider_session, request_context):
        diags = execute(request_context, provider_session, ...)
"""

from collections.abc import Callable

import pytest
import requests
from _pytest.monkeypatch import MonkeyPatch

from wiz_provider.config import Settings, get_settings
from wiz_provider.context import RequestContext
from wiz_provider.session import ProviderSession

WIZ_URL = "https://api.us17.app.wiz.io/graphql"
WIZ_AUTH_URL = "https://auth.app.wiz.io/oauth/token"


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def mock_env_vars(monkeypatch: MonkeyPatch) -> dict[str, str]:
    """
    Set up provider environment variables for testing.

    Retry backoff is zero so retry tests do not sleep.

    Returns:
        Dictionary of environment variable names and values
    """
    env_vars = {
        "WIZ_URL": WIZ_URL,
        "WIZ_AUTH_URL": WIZ_AUTH_URL,
        "WIZ_AUTH_CLIENT_ID": "test_client_id",
        "WIZ_AUTH_CLIENT_SECRET": "test_client_secret",
        "WIZ_AUTH_AUDIENCE": "wiz-api",
        "HTTP_CLIENT_RETRY_MAX": "2",
        "HTTP_CLIENT_RETRY_WAIT_MIN": "0",
        "HTTP_CLIENT_RETRY_WAIT_MAX": "0",
        "HTTP_TIMEOUT_SECONDS": "5",
        "LOG_LEVEL": "DEBUG",
    }

    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    for key in ("PROXY", "PROXY_SERVER", "CA_CHAIN"):
        monkeypatch.delenv(key, raising=False)

    get_settings.cache_clear()
    return env_vars


@pytest.fixture
def mock_settings(mock_env_vars: dict[str, str]) -> Settings:
    """Provide a Settings instance built from mock_env_vars."""
    _ = mock_env_vars
    return Settings()  # pyright: ignore[reportCallIssue]


@pytest.fixture
def provider_session(mock_settings: Settings) -> ProviderSession:
    """Provide an already-authenticated session (no OAuth request is made)."""
    return ProviderSession(
        settings=mock_settings,
        token_type="Bearer",
        token="test_token",
        http=requests.Session(),
        user_agent="terraform-provider-wiz/test",
    )


@pytest.fixture
def request_context() -> RequestContext:
    """Provide a live request context with a generous deadline."""
    return RequestContext(timeout=60, correlation_id="test-correlation-id")


# =============================================================================
# Payload Builders
# =============================================================================


def user_node(user_id: str, name: str | None = None) -> dict[str, object]:
    """Build a user node as returned by the users query."""
    return {
        "id": user_id,
        "name": name or f"User {user_id}",
        "email": f"{user_id.lower()}@example.com",
        "isSuspended": False,
        "identityProvider": {"name": "Wiz"},
        "identityProviderType": "WIZ",
        "effectiveRole": {"id": "GLOBAL_READER", "name": "GlobalReader", "scopes": ["read:all"]},
    }


def users_page(
    user_ids: list[str],
    end_cursor: str | None,
    has_next_page: bool,
) -> dict[str, object]:
    """Build one page of the users connection wrapped in a GraphQL envelope."""
    return {
        "data": {
            "users": {
                "nodes": [user_node(user_id) for user_id in user_ids],
                "pageInfo": {"endCursor": end_cursor, "hasNextPage": has_next_page},
                "totalCount": len(user_ids),
            }
        }
    }


@pytest.fixture
def make_users_page() -> Callable[[list[str], str | None, bool], dict[str, object]]:
    """Expose users_page as a fixture."""
    return users_page
