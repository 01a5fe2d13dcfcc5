"""
GraphQL request execution and pagination for the Wiz provider.

Every resource and data source talks to the Wiz API through two calls:

    execute()        single request (create/read/update/delete)
    execute_paged()  list query walked page by page via endCursor/hasNextPage

Neither raises for ordinary failures. The outcome is a list of diagnostics
(empty on success) and a destination object decoded from the response
``data``. The destination is populated even when the API returned errors
alongside partial data, so callers can recognise an object that was
deleted outside Terraform by its empty identifier.

Retry Policy:
    Connection failures, timeouts, HTTP 429 and 5xx responses are retried
    up to HTTP_CLIENT_RETRY_MAX times with exponential backoff between
    HTTP_CLIENT_RETRY_WAIT_MIN and HTTP_CLIENT_RETRY_WAIT_MAX seconds.
    GraphQL errors are deterministic and returned immediately.

Cancellation:
    The context is checked before every attempt, while a request is in
    flight and during backoff. A cancelled or expired context returns a
    transport diagnostic at once; an abandoned request finishes in the
    background and its response is discarded.

Usage:
    from wiz_provider.client import execute_paged
    from wiz_provider.context import RequestContext

    diags, pages = execute_paged(
        RequestContext(timeout=300),
        session,
        QueryVariables(first=50),
        ReadUsers,
        READ_USERS_QUERY,
        "users",
        "read",
        max_pages=0,
    )
"""

import json
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Any, TypeVar

import requests
from pydantic import BaseModel

from wiz_provider.context import RequestContext
from wiz_provider.diagnostics import (
    Diagnostic,
    Diagnostics,
    Severity,
    format_errors,
    from_exception,
    map_errors,
)
from wiz_provider.errors import TransportError
from wiz_provider.logging_config import LogContext, bind_logger, get_logger
from wiz_provider.models import (
    GraphQLRequest,
    ResponseEnvelope,
    cursor_of,
    find_page_info,
    populate,
    variables_payload,
    with_cursor,
)
from wiz_provider.session import ProviderSession

logger = get_logger(__name__)

T = TypeVar("T", bound=BaseModel)

RETRYABLE_STATUS_CODES = frozenset({429})

# Requests run on worker threads so a cancelled context can return while a
# POST is still blocked on the network
MAX_IN_FLIGHT_REQUESTS = 32
IN_FLIGHT_POLL_SECONDS = 0.05

_http_workers = ThreadPoolExecutor(
    max_workers=MAX_IN_FLIGHT_REQUESTS,
    thread_name_prefix="wiz-http",
)


@dataclass
class _Response:
    """Outcome of the last HTTP attempt of a request."""

    status_code: int | None = None
    body: str | None = None
    envelope: ResponseEnvelope | None = None
    transport_error: TransportError | None = None
    attempts: int = 0

    @property
    def transient(self) -> bool:
        if self.transport_error is not None:
            return self.transport_error.retryable
        if self.status_code is None:
            return False
        return self.status_code in RETRYABLE_STATUS_CODES or self.status_code >= 500


def _decode_envelope(body: str) -> ResponseEnvelope | None:
    try:
        return ResponseEnvelope.model_validate(json.loads(body))
    except ValueError:
        # ValidationError and JSONDecodeError both land here
        return None


def _wait_for_response(
    ctx: RequestContext,
    future: Future[requests.Response],
) -> requests.Response | None:
    """
    Wait for an in-flight request, giving up as soon as the context is done.

    Returns:
        The HTTP response, or None if the context finished first. An
        abandoned request keeps running in the worker pool until its own
        timeout and its result is discarded.

    Raises:
        requests.RequestException: Whatever the request itself raised
    """
    while not future.done():
        if ctx.done():
            _ = future.cancel()
            return None
        _ = wait([future], timeout=IN_FLIGHT_POLL_SECONDS)
    return future.result()


def _post_once(
    ctx: RequestContext,
    session: ProviderSession,
    body: str,
) -> _Response:
    settings = session.settings
    url = settings.wiz_url

    timeout = ctx.request_timeout(settings.http_timeout_seconds)
    if timeout <= 0:
        # urllib3 rejects a zero timeout, and the deadline has passed anyway
        return _Response(
            transport_error=TransportError("context deadline exceeded", url=url, retryable=False)
        )

    try:
        future = _http_workers.submit(
            session.http.post,
            url,
            data=body.encode("utf-8"),
            headers={
                "Authorization": session.authorization,
                "User-Agent": session.user_agent,
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
            timeout=timeout,
        )
        response = _wait_for_response(ctx, future)
    except requests.exceptions.SSLError as e:
        return _Response(
            transport_error=TransportError(f"TLS error calling {url}: {e}", url=url, retryable=False)
        )
    except (requests.ConnectionError, requests.Timeout) as e:
        return _Response(transport_error=TransportError(f"Error calling {url}: {e}", url=url))
    except requests.RequestException as e:
        return _Response(
            transport_error=TransportError(f"Error calling {url}: {e}", url=url, retryable=False)
        )

    if response is None:
        return _Response(
            transport_error=TransportError(
                f"{ctx.reason()} while calling {url}", url=url, retryable=False
            )
        )

    text = response.text
    envelope = _decode_envelope(text)
    result = _Response(status_code=response.status_code, body=text, envelope=envelope)

    if envelope is None and response.ok:
        result.transport_error = TransportError(
            f"Unable to decode response from {url} as a GraphQL envelope",
            url=url,
            retryable=False,
        )
    return result


def _send(
    ctx: RequestContext,
    session: ProviderSession,
    body: str,
    log: Callable[..., None],
) -> _Response:
    """
    Post ``body`` with bounded retries for transient failures.

    Returns:
        The last attempt's outcome
    """
    settings = session.settings
    max_attempts = settings.http_client_retry_max + 1
    result = _Response()

    for attempt in range(max_attempts):
        if ctx.done():
            return _Response(
                status_code=result.status_code,
                transport_error=TransportError(
                    str(ctx.reason()), url=settings.wiz_url, attempts=attempt, retryable=False
                ),
                attempts=attempt,
            )

        result = _post_once(ctx, session, body)
        result.attempts = attempt + 1

        if not result.transient or attempt >= max_attempts - 1:
            return result

        backoff = min(
            settings.http_client_retry_wait_min * (2**attempt),
            settings.http_client_retry_wait_max,
        )
        log(
            "warning",
            "Transient failure, retrying",
            attempt=attempt + 1,
            max_retries=settings.http_client_retry_max,
            backoff_seconds=backoff,
            status_code=result.status_code,
            error=str(result.transport_error) if result.transport_error else None,
        )

        if ctx.wait(backoff):
            return _Response(
                status_code=result.status_code,
                transport_error=TransportError(
                    f"{ctx.reason()} while waiting to retry",
                    url=settings.wiz_url,
                    attempts=attempt + 1,
                    retryable=False,
                ),
                attempts=attempt + 1,
            )

    return result


def execute(
    ctx: RequestContext,
    session: ProviderSession,
    variables: Any,
    destination: BaseModel,
    query: str,
    resource_name: str,
    operation_name: str,
) -> Diagnostics:
    """
    Execute one GraphQL query or mutation.

    Args:
        ctx: Deadline and cancellation for the call
        session: Authenticated provider session
        variables: Operation variables (Pydantic model or mapping)
        destination: Model instance populated in place from ``data``
        query: GraphQL document
        resource_name: Resource label used in logs and diagnostics
        operation_name: Operation label used in logs and diagnostics

    Returns:
        Diagnostics, empty on full success

    Raises:
        DestinationDecodeError: If ``data`` does not fit the destination model
    """
    log = bind_logger(logger, resource_name=resource_name, operation_name=operation_name)

    with LogContext(ctx.correlation_id):
        log("info", "Executing GraphQL request")

        try:
            payload = variables_payload(variables)
            body = GraphQLRequest(query=query, variables=payload).model_dump_json(by_alias=True)
        except (TypeError, ValueError) as e:
            return from_exception(e, summary=f"{resource_name} {operation_name} variables could not be encoded")

        log("debug", "Request variables", variables=payload, query=query)

        response = _send(ctx, session, body, log)

        envelope_errors = response.envelope.errors if response.envelope else []
        diags = map_errors(
            response.transport_error,
            response.status_code,
            envelope_errors,
            resource_name,
            operation_name,
            response_body=response.body,
        )

        if response.envelope is not None:
            populate(destination, response.envelope.data)

        if envelope_errors:
            log(
                "debug",
                "Errors returned from API",
                error_count=len(envelope_errors),
                errors=format_errors(envelope_errors),
            )

        log(
            "debug",
            "GraphQL request completed",
            status_code=response.status_code,
            attempts=response.attempts,
            diagnostics=len(diags),
            data=destination.model_dump(mode="json"),
        )
        return diags


def execute_paged(
    ctx: RequestContext,
    session: ProviderSession,
    variables: Any,
    destination_factory: Callable[[], T],
    query: str,
    resource_name: str,
    operation_name: str,
    max_pages: int = 0,
) -> tuple[Diagnostics, list[T]]:
    """
    Execute a list query and collect every page.

    Each page is requested with a copy of ``variables`` whose ``after``
    cursor is set to the previous page's ``endCursor``; the caller's
    variables are never modified. Walking starts at the caller's own
    ``after`` value when one is set.

    Walking stops when:
        - a page returns diagnostics (that page is still included)
        - ``hasNextPage`` is false
        - ``max_pages`` pages were fetched (0 means no limit)
        - the API repeats a cursor or returns an empty one while claiming
          more pages exist (reported as an error)

    Args:
        ctx: Deadline and cancellation for the whole walk
        session: Authenticated provider session
        variables: Operation variables with an ``after`` field
        destination_factory: Returns a fresh destination per page
        query: GraphQL document selecting ``pageInfo``
        resource_name: Resource label used in logs and diagnostics
        operation_name: Operation label used in logs and diagnostics
        max_pages: Page budget, 0 for all pages

    Returns:
        Tuple of (diagnostics, pages in request order)

    Raises:
        PageInfoNotFoundError: If a page has no pageInfo field
        DestinationDecodeError: If ``data`` does not fit the destination model
    """
    log = bind_logger(logger, resource_name=resource_name, operation_name=operation_name)
    pages: list[T] = []

    with LogContext(ctx.correlation_id):
        log("info", "Executing paged GraphQL request", max_pages=max_pages)

        if max_pages < 0:
            log("warning", "Negative page budget, nothing fetched", max_pages=max_pages)
            return [], pages

        cursor = cursor_of(variables)
        requested: set[str] = set()

        while True:
            requested.add(cursor)
            log(
                "debug",
                "Requesting page",
                page=len(pages) + 1,
                max_pages=max_pages,
                after=cursor or None,
            )

            page = destination_factory()
            diags = execute(
                ctx,
                session,
                with_cursor(variables, cursor),
                page,
                query,
                resource_name,
                operation_name,
            )
            pages.append(page)

            if diags:
                log("debug", "Page returned diagnostics, stopping", page=len(pages))
                return diags, pages

            page_info = find_page_info(page)
            if not page_info.has_next_page:
                break

            if max_pages > 0 and len(pages) >= max_pages:
                log("debug", "Page budget reached", pages=len(pages))
                break

            next_cursor = page_info.end_cursor
            if not next_cursor or next_cursor in requested:
                log(
                    "error",
                    "Pagination cursor did not advance",
                    page=len(pages),
                    end_cursor=next_cursor,
                )
                return [
                    Diagnostic(
                        severity=Severity.ERROR,
                        summary=f"{resource_name} {operation_name} pagination cursor did not advance",
                        detail=(
                            f"Page {len(pages)} reported hasNextPage with "
                            + (
                                f"endCursor {next_cursor!r}, which was already requested"
                                if next_cursor
                                else "an empty endCursor"
                            )
                        ),
                    )
                ], pages

            cursor = next_cursor

        log("info", "Paged GraphQL request completed", pages=len(pages))
        return [], pages
