"""
wiz_provider: GraphQL request engine for a Terraform provider for Wiz.

Every resource and data source of the provider reaches the Wiz GraphQL API
through the same engine: build a query document and variables, hand them
to the executor together with a destination model, and check the returned
diagnostics before trusting the decoded data.

Key Components:
    - client.execute: single GraphQL request with bounded retries
    - client.execute_paged: cursor pagination over list queries
    - diagnostics: severity-tagged failure reports instead of exceptions
    - session: OAuth token exchange and pooled HTTP transport
    - config: environment driven provider settings
    - users, automation_actions: data source and resource readers

Architecture:
    Resource/data source → execute / execute_paged → Wiz GraphQL API
                                   ↓
                          Diagnostics + destination model

Environment Variables:
    WIZ_URL: Wiz GraphQL API endpoint (required)
    WIZ_AUTH_CLIENT_ID: Service account client ID (required)
    WIZ_AUTH_CLIENT_SECRET: Service account client secret (required)
    WIZ_AUTH_URL: OAuth token endpoint (default: https://auth.app.wiz.io/oauth/token)
    HTTP_CLIENT_RETRY_MAX: Retries for transient failures (default: 3)

Version: 0.1.0
License: MIT
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
