"""
Custom exception classes for the Wiz provider.

The request engine reports ordinary failures (network errors, HTTP status
errors, GraphQL errors) as diagnostics rather than exceptions. Exceptions
are reserved for session setup, configuration problems and programming
errors in calling modules.

Exception Hierarchy:
    WizProviderError (base)
    ├── TransportError (network failures, usually transient)
    ├── AuthenticationError (token exchange failures)
    ├── ConfigurationError (invalid provider settings)
    ├── PageInfoNotFoundError (destination without pageInfo)
    └── DestinationDecodeError (payload does not fit destination)

Retry Semantics:
    - Connection failures, timeouts and 5xx responses are transient
    - Authentication and configuration errors are permanent
    - Programming errors are never retried
"""


class WizProviderError(Exception):
    """
    Base exception for all Wiz provider errors.

    Attributes:
        message: Human-readable error description
        retryable: Whether this error should be retried
        context: Additional context dictionary for structured logging
    """

    def __init__(
        self,
        message: str,
        retryable: bool = False,
        context: dict[str, object] | None = None,
    ) -> None:
        """
        Initialize provider error.

        Args:
            message: Human-readable error description
            retryable: Whether this error should be retried
            context: Additional context for structured logging
        """
        super().__init__(message)
        self.message = message
        self.retryable = retryable
        self.context = context or {}

    def __str__(self) -> str:
        """Return string representation of error."""
        return self.message


class TransportError(WizProviderError):
    """
    Failure before any usable HTTP response was obtained.

    Covers refused connections, timeouts, TLS failures and cancelled
    request contexts.

    Attributes:
        url: Endpoint that was being called
        attempts: Number of attempts made before giving up
    """

    def __init__(
        self,
        message: str,
        url: str | None = None,
        attempts: int | None = None,
        retryable: bool = True,
    ) -> None:
        context = {
            "url": url,
            "attempts": attempts,
        }
        super().__init__(message, retryable=retryable, context=context)
        self.url = url
        self.attempts = attempts


class AuthenticationError(WizProviderError):
    """
    Error obtaining a session token from the Wiz auth endpoint.

    Attributes:
        status_code: HTTP status code from the auth endpoint
        auth_url: Token endpoint that was called
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        auth_url: str | None = None,
        retryable: bool = False,
    ) -> None:
        """
        Initialize authentication error.

        Args:
            message: Human-readable error description
            status_code: HTTP status code returned by the auth endpoint
            auth_url: Token endpoint URL
            retryable: Whether to retry (network failures are retryable)
        """
        context = {
            "status_code": status_code,
            "auth_url": auth_url,
        }
        super().__init__(message, retryable=retryable, context=context)
        self.status_code = status_code
        self.auth_url = auth_url


class ConfigurationError(WizProviderError):
    """
    Error in provider configuration.

    Raised during startup when required configuration is missing or invalid.
    These are permanent errors that require user intervention.

    Attributes:
        config_key: Configuration key that is invalid
        reason: Specific validation failure reason
    """

    def __init__(
        self,
        message: str,
        config_key: str | None = None,
        reason: str | None = None,
    ) -> None:
        """
        Initialize configuration error.

        Args:
            message: Human-readable error description
            config_key: Configuration key that failed validation
            reason: Why the configuration is invalid
        """
        context = {
            "config_key": config_key,
            "reason": reason,
        }
        super().__init__(message, retryable=False, context=context)
        self.config_key = config_key
        self.reason = reason


class PageInfoNotFoundError(WizProviderError):
    """
    Paged destination object does not expose a pageInfo field.

    Indicates a defect in the calling module: every list query must
    select ``pageInfo { endCursor hasNextPage }`` and the destination
    model must declare it.
    """

    def __init__(self, message: str, destination_type: str | None = None) -> None:
        super().__init__(
            message,
            retryable=False,
            context={"destination_type": destination_type},
        )
        self.destination_type = destination_type


class DestinationDecodeError(WizProviderError):
    """
    Response payload could not be decoded into the destination object.

    Indicates a destination model that does not match the shape of the
    query it is used with.

    Attributes:
        destination_type: Name of the destination model class
        errors: Validation error details from pydantic
    """

    def __init__(
        self,
        message: str,
        destination_type: str | None = None,
        errors: list[str] | None = None,
    ) -> None:
        context = {
            "destination_type": destination_type,
            "errors": errors or [],
        }
        super().__init__(message, retryable=False, context=context)
        self.destination_type = destination_type
        self.errors = errors or []
