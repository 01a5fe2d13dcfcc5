"""
Structured logging configuration for the Wiz provider.

All logs are emitted as single-line JSON objects with standard fields
(timestamp, level, logger, correlation_id) plus context-specific fields
such as the resource and operation a GraphQL request belongs to.

Log Format:
    {
        "timestamp": "2025-11-14T10:30:00.123Z",
        "level": "DEBUG",
        "logger": "wiz_provider.client",
        "correlation_id": "abc123...",
        "message": "GraphQL request completed",
        "resource_name": "users",
        "operation_name": "read",
        "status_code": 200,
        ...additional context...
    }

Usage:
    from wiz_provider.logging_config import setup_logging, get_logger, bind_logger

    setup_logging(log_level="DEBUG")
    logger = get_logger(__name__)

    log = bind_logger(logger, resource_name="users", operation_name="read")
    log("debug", "Processing page", page=2)
"""

import json
import logging
import sys
import uuid
from collections.abc import Callable
from contextvars import ContextVar, Token
from datetime import UTC, datetime
from types import TracebackType
from typing_extensions import override

# Context variable for correlation ID that propagates through request calls
_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)

# Context keys whose values must never reach the log stream
SENSITIVE_KEYS = frozenset(
    {
        "authorization",
        "client_secret",
        "password",
        "secret",
        "token",
        "access_token",
    }
)

REDACTED = "***"

_STANDARD_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "message",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "thread",
        "threadName",
        "exc_info",
        "exc_text",
        "stack_info",
        "taskName",
    }
)


def _redact(value: object) -> object:
    """Replace sensitive values at any depth of nested dicts and lists."""
    if isinstance(value, dict):
        return {
            key: REDACTED if str(key).lower() in SENSITIVE_KEYS else _redact(item)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [_redact(item) for item in value]
    return value


class StructuredFormatter(logging.Formatter):
    """
    Formatter that outputs structured JSON logs.

    Each log record is formatted as a JSON object with standard fields
    plus any extra fields from the LogRecord. Values of sensitive keys,
    including keys nested in dict values, are replaced with a redaction
    marker. Values that are not JSON serializable are rendered with
    ``str()``.
    """

    @override
    def format(self, record: logging.LogRecord) -> str:
        """
        Format log record as JSON.

        Args:
            record: Log record to format

        Returns:
            JSON string representation of log record
        """
        log_entry: dict[str, object] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "correlation_id": _correlation_id.get(),
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_entry["exc_info"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key in _STANDARD_ATTRS or key.startswith("_"):
                continue
            log_entry[key] = REDACTED if key.lower() in SENSITIVE_KEYS else _redact(value)

        return json.dumps(log_entry, default=str)


def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure structured logging for the provider.

    Sets up JSON logging to stdout with the specified log level.
    Should be called once when the provider starts.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(StructuredFormatter())
    root_logger.addHandler(console_handler)

    # Connection pool chatter would otherwise drown out request logs
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get logger for a module.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)


def generate_correlation_id() -> str:
    """Generate a new correlation ID."""
    return str(uuid.uuid4())


def set_correlation_id(correlation_id: str | None) -> Token[str | None]:
    """
    Set correlation ID for current context.

    Args:
        correlation_id: Correlation ID to set

    Returns:
        Token that restores the previous value when passed to
        ``reset_correlation_id``
    """
    return _correlation_id.set(correlation_id)


def reset_correlation_id(token: Token[str | None]) -> None:
    """Restore the correlation ID that was active before ``set_correlation_id``."""
    _correlation_id.reset(token)


def get_correlation_id() -> str | None:
    """Get current correlation ID, or None if not set."""
    return _correlation_id.get()


def log_with_context(
    logger: logging.Logger,
    level: str,
    message: str,
    **context: object,
) -> None:
    """
    Log message with additional structured context.

    Context fields are added to the log entry as top-level JSON fields.

    Args:
        logger: Logger instance
        level: Log level (debug, info, warning, error, critical)
        message: Human-readable log message
        **context: Additional context fields as keyword arguments

    Example:
        >>> log_with_context(
        ...     logger,
        ...     "debug",
        ...     "Received variables",
        ...     resource_name="users",
        ...     variables={"first": 50},
        ... )
    """
    log_func: Callable[..., None] = getattr(logger, level.lower())
    log_func(message, extra=dict(context))


def bind_logger(logger: logging.Logger, **bound: object) -> Callable[..., None]:
    """
    Bind fixed context fields to a logger.

    Returns a callable with the signature ``log(level, message, **context)``
    that emits every entry with the bound fields included. Used to attach
    resource and operation labels to all logs of one request.

    Args:
        logger: Logger instance
        **bound: Context fields included in every entry

    Returns:
        Logging callable
    """

    def _log(level: str, message: str, **context: object) -> None:
        log_with_context(logger, level, message, **bound, **context)

    return _log


class LogContext:
    """
    Context manager for correlation IDs.

    Sets a correlation ID for a block of code and restores whatever was
    active before on exit, so contexts may be nested (a paged request
    wrapping its per-page requests).

    Example:
        >>> with LogContext() as correlation_id:
        ...     logger.info("This has correlation_id")
    """

    def __init__(self, correlation_id: str | None = None) -> None:
        """
        Initialize log context.

        Args:
            correlation_id: Correlation ID to use. When None, the active
                ID is kept if there is one, otherwise a new one is generated.
        """
        self.correlation_id: str = (
            correlation_id or get_correlation_id() or generate_correlation_id()
        )
        self._token: Token[str | None] | None = None

    def __enter__(self) -> str:
        self._token = set_correlation_id(self.correlation_id)
        return self.correlation_id

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self._token is not None:
            reset_correlation_id(self._token)
            self._token = None
