"""
Cancellable request context.

A RequestContext travels with every engine call. It carries an optional
deadline and a cancellation flag that another thread may set. The
executor checks it before each attempt and while a request is in flight,
bounds every HTTP timeout by the time remaining, and sleeps between
retries through ``wait`` so that a cancelled or expired context stops the
call promptly.

Usage:
    ctx = RequestContext(timeout=120)
    diags = execute(ctx, session, vars, destination, QUERY, "users", "read")

    # from another thread
    ctx.cancel()
"""

import threading
import time

from wiz_provider.logging_config import generate_correlation_id


class RequestContext:
    """
    Deadline and cancellation handle for one logical provider operation.

    Thread-safe: ``cancel`` may be called from any thread while a request
    is in flight.

    Attributes:
        deadline: Monotonic time after which the context is expired, or None
        correlation_id: ID attached to every log entry of the operation
    """

    def __init__(
        self,
        timeout: float | None = None,
        correlation_id: str | None = None,
    ) -> None:
        """
        Initialize request context.

        Args:
            timeout: Seconds until the context expires (None for no deadline)
            correlation_id: Correlation ID for logs (generated if None)
        """
        self.deadline: float | None = (
            time.monotonic() + timeout if timeout is not None else None
        )
        self.correlation_id: str = correlation_id or generate_correlation_id()
        self._cancelled: threading.Event = threading.Event()

    def cancel(self) -> None:
        """Cancel the context; an in-flight request is abandoned and retries stop."""
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def remaining(self) -> float | None:
        """
        Seconds left before the deadline.

        Returns:
            Remaining seconds (never negative), or None without a deadline
        """
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def done(self) -> bool:
        """Return True once the context is cancelled or past its deadline."""
        if self.cancelled:
            return True
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def reason(self) -> str | None:
        """Describe why the context is done, or None while it is live."""
        if self.cancelled:
            return "context cancelled"
        if self.done():
            return "context deadline exceeded"
        return None

    def wait(self, seconds: float) -> bool:
        """
        Sleep for up to ``seconds``, waking early on cancellation.

        The sleep is also cut short at the deadline.

        Args:
            seconds: Desired sleep duration

        Returns:
            True if the context is done after waiting, False otherwise
        """
        remaining = self.remaining()
        if remaining is not None:
            seconds = min(seconds, remaining)
        if seconds > 0:
            _ = self._cancelled.wait(seconds)
        return self.done()

    def request_timeout(self, default: float) -> float:
        """
        HTTP timeout for the next attempt.

        Args:
            default: Configured per-request timeout

        Returns:
            The smaller of the configured timeout and the time remaining
        """
        remaining = self.remaining()
        if remaining is None:
            return default
        return min(default, remaining)


def background() -> RequestContext:
    """Return a context with no deadline, for callers that have none."""
    return RequestContext()
