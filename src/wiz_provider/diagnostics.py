"""
Diagnostics returned by the request engine.

The engine never raises for ordinary failures. Transport failures, HTTP
status failures and GraphQL errors are all converted into an ordered list
of severity-tagged Diagnostic records, which calling modules inspect
before trusting the destination object.

Mapping rules (map_errors):
    - Transport failure without a response envelope: exactly one ERROR
    - Non-2xx status: one ERROR for the status, then one per GraphQL error
    - Each GraphQL error: one diagnostic, WARNING when the API marks it
      informational, ERROR otherwise
    - 2xx without GraphQL errors: no diagnostics
"""

import json
from dataclasses import dataclass
from enum import Enum

from wiz_provider.models import GraphQLError

# extensions.severity values the API uses for non-fatal messages
INFORMATIONAL_SEVERITIES = frozenset({"INFO", "INFORMATIONAL", "WARNING"})

MAX_DETAIL_BODY_CHARS = 500


class Severity(Enum):
    """Diagnostic severity."""

    ERROR = "error"
    WARNING = "warning"


class DiagnosticSource(Enum):
    """Where in the request a diagnostic originated."""

    TRANSPORT = "transport"
    HTTP = "http"
    GRAPHQL = "graphql"
    CLIENT = "client"


@dataclass(frozen=True)
class Diagnostic:
    """
    A single error or warning reported by an engine call.

    Attributes:
        severity: ERROR or WARNING
        summary: Short description, includes the resource and operation
        detail: Longer description (error code, path, response excerpt)
        source: Failure category; callers only treat GRAPHQL errors as
            possible "object not found" signals
    """

    severity: Severity
    summary: str
    detail: str = ""
    source: DiagnosticSource = DiagnosticSource.CLIENT

    def __str__(self) -> str:
        if self.detail:
            return f"{self.severity.value}: {self.summary} ({self.detail})"
        return f"{self.severity.value}: {self.summary}"


Diagnostics = list[Diagnostic]


def has_errors(diags: Diagnostics) -> bool:
    """Return True if any diagnostic has ERROR severity."""
    return any(d.severity is Severity.ERROR for d in diags)


def only_graphql_errors(diags: Diagnostics) -> bool:
    """
    Return True if every diagnostic came from the GraphQL errors array.

    Readers use this before treating an empty identifier as "deleted
    outside Terraform": a transport or HTTP failure also leaves the
    destination empty but says nothing about the object.
    """
    return all(d.source is DiagnosticSource.GRAPHQL for d in diags)


def from_exception(exc: BaseException, summary: str | None = None) -> Diagnostics:
    """
    Wrap an exception as a single ERROR diagnostic.

    Args:
        exc: Exception to report
        summary: Summary to use instead of the exception text

    Returns:
        List containing one diagnostic
    """
    return [
        Diagnostic(
            severity=Severity.ERROR,
            summary=summary or str(exc),
            detail=str(exc) if summary else "",
        )
    ]


def _error_detail(error: GraphQLError) -> str:
    parts: list[str] = []
    if error.code:
        parts.append(f"code: {error.code}")
    if error.path:
        parts.append("path: " + ".".join(str(p) for p in error.path))
    if error.exception_message and error.exception_message != error.message:
        parts.append(f"exception: {error.exception_message}")
    return ", ".join(parts)


def _error_severity(error: GraphQLError) -> Severity:
    severity = str(error.extensions.get("severity") or "").upper()
    if severity in INFORMATIONAL_SEVERITIES:
        return Severity.WARNING
    return Severity.ERROR


def map_errors(
    transport_error: BaseException | None,
    http_status: int | None,
    envelope_errors: list[GraphQLError] | None,
    resource_name: str,
    operation_name: str,
    response_body: str | None = None,
) -> Diagnostics:
    """
    Convert the outcome of one request into diagnostics.

    Args:
        transport_error: Exception raised before a response was obtained
        http_status: HTTP status code, None if no response was obtained
        envelope_errors: Decoded GraphQL ``errors`` entries
        resource_name: Resource label for attribution
        operation_name: Operation label for attribution
        response_body: Raw body, used for non-2xx detail when no envelope
            errors could be decoded

    Returns:
        Ordered diagnostics, empty on success
    """
    errors = envelope_errors or []
    label = f"{resource_name} {operation_name}"

    if transport_error is not None and not errors:
        return [
            Diagnostic(
                severity=Severity.ERROR,
                summary=f"{label} request failed",
                detail=str(transport_error),
                source=DiagnosticSource.TRANSPORT,
            )
        ]

    diags: Diagnostics = []

    if http_status is not None and not 200 <= http_status < 300:
        detail = ""
        if not errors and response_body:
            detail = f"Response: {response_body[:MAX_DETAIL_BODY_CHARS]}"
        diags.append(
            Diagnostic(
                severity=Severity.ERROR,
                summary=f"HTTP Response ({http_status})",
                detail=detail,
                source=DiagnosticSource.HTTP,
            )
        )

    for error in errors:
        diags.append(
            Diagnostic(
                severity=_error_severity(error),
                summary=f"{label} reported an error: {error.message}",
                detail=_error_detail(error),
                source=DiagnosticSource.GRAPHQL,
            )
        )

    return diags


def format_errors(errors: list[GraphQLError]) -> str:
    """Render GraphQL errors as indented JSON for debug logs."""
    return json.dumps([e.model_dump(exclude_none=True) for e in errors], indent=2)
