"""
GraphQL wire types and destination model helpers.

Destination objects are Pydantic models derived from GraphQLModel. The API
reports missing objects as ``null`` (``{"user": null}``), which GraphQLModel
decodes to the field's zero value so callers can test for an empty
identifier instead of handling None everywhere.

List queries must select ``pageInfo { endCursor hasNextPage }`` next to
their ``nodes``; ``find_page_info`` locates it on a decoded page.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from wiz_provider.errors import DestinationDecodeError, PageInfoNotFoundError


class GraphQLModel(BaseModel):
    """
    Base model for GraphQL payloads.

    Fields use snake_case names with camelCase aliases. JSON null values
    are dropped before validation so every field falls back to its default.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    @model_validator(mode="before")
    @classmethod
    def _null_as_zero_value(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data

    def to_variables(self) -> dict[str, Any]:
        """Serialize for the GraphQL ``variables`` field (aliases, no empty fields)."""
        return self.model_dump(by_alias=True, exclude_none=True, exclude_defaults=True)


class PageInfo(GraphQLModel):
    """Cursor state of one page of a connection."""

    end_cursor: str = ""
    has_next_page: bool = False


class QueryVariables(GraphQLModel):
    """
    Operation variables for list and read queries.

    ``after`` is managed by the pagination walker; every other field is
    owned by the caller.
    """

    query: Any = None
    id: str = ""
    filter_by: Any = None
    after: str = ""
    first: int = 0


class MutationInput(GraphQLModel):
    """Variables wrapper for mutations: ``{"input": {...}}``."""

    input: Any = None

    def to_variables(self) -> dict[str, Any]:
        payload = self.input
        if isinstance(payload, BaseModel):
            payload = payload.model_dump(by_alias=True, exclude_none=True)
        return {"input": payload}


class GraphQLRequest(BaseModel):
    """Request body posted to the GraphQL endpoint."""

    query: str
    variables: dict[str, Any] = Field(default_factory=dict)


class GraphQLError(BaseModel):
    """One entry of the envelope's ``errors`` array."""

    model_config = ConfigDict(extra="allow")

    message: str = ""
    path: list[str | int] | None = None
    extensions: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _coerce(cls, data: Any) -> Any:
        # Some gateways return bare strings instead of error objects
        if isinstance(data, str):
            return {"message": data}
        if isinstance(data, dict) and data.get("extensions") is None:
            return {**data, "extensions": {}}
        return data

    @property
    def code(self) -> str:
        return str(self.extensions.get("code") or "")

    @property
    def exception_message(self) -> str:
        exception = self.extensions.get("exception")
        if isinstance(exception, dict):
            return str(exception.get("message") or "")
        return ""


class ResponseEnvelope(BaseModel):
    """Decoded ``{data, errors}`` response body."""

    data: dict[str, Any] | None = None
    errors: list[GraphQLError] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _null_errors(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("errors") is None:
            return {**data, "errors": []}
        return data


def variables_payload(variables: Any) -> dict[str, Any]:
    """
    Convert caller variables to the JSON object sent as ``variables``.

    Args:
        variables: GraphQLModel, any Pydantic model, mapping, or None

    Returns:
        JSON-serializable dictionary
    """
    if variables is None:
        return {}
    if isinstance(variables, GraphQLModel):
        return variables.to_variables()
    if isinstance(variables, BaseModel):
        return variables.model_dump(by_alias=True, exclude_none=True)
    return dict(variables)


def with_cursor(variables: Any, cursor: str) -> Any:
    """
    Return a copy of ``variables`` with the ``after`` cursor replaced.

    The original value is left untouched.

    Args:
        variables: Pydantic model with an ``after`` field, or a mapping
        cursor: Cursor to request; empty string requests the first page

    Returns:
        New variables value of the same kind
    """
    if isinstance(variables, BaseModel):
        return variables.model_copy(update={"after": cursor})
    updated = dict(variables or {})
    if cursor:
        updated["after"] = cursor
    else:
        updated.pop("after", None)
    return updated


def cursor_of(variables: Any) -> str:
    """Return the ``after`` cursor a caller's variables already carry."""
    if isinstance(variables, BaseModel):
        return str(getattr(variables, "after", "") or "")
    if variables:
        return str(variables.get("after") or "")
    return ""


def populate(destination: BaseModel, data: dict[str, Any] | None) -> None:
    """
    Decode ``data`` into ``destination`` in place.

    Args:
        destination: Destination model instance
        data: Envelope ``data`` payload; None leaves the destination as is

    Raises:
        DestinationDecodeError: If the payload does not fit the destination
    """
    if data is None:
        return
    model_type = type(destination)
    try:
        decoded = model_type.model_validate(data)
    except ValidationError as e:
        raise DestinationDecodeError(
            f"Response payload does not match {model_type.__name__}",
            destination_type=model_type.__name__,
            errors=[str(err["msg"]) for err in e.errors()],
        ) from e
    for name in model_type.model_fields:
        setattr(destination, name, getattr(decoded, name))


def find_page_info(destination: BaseModel) -> PageInfo:
    """
    Locate the PageInfo of a decoded page.

    Looks at the destination's own fields first, then one level down
    under the top-level key the query used (``{"users": {"pageInfo": ...}}``).

    Args:
        destination: Decoded page

    Returns:
        The page's PageInfo

    Raises:
        PageInfoNotFoundError: If no PageInfo field exists
    """
    for name in type(destination).model_fields:
        value = getattr(destination, name)
        if isinstance(value, PageInfo):
            return value

    for name in type(destination).model_fields:
        value = getattr(destination, name)
        if not isinstance(value, BaseModel):
            continue
        for nested_name in type(value).model_fields:
            nested = getattr(value, nested_name)
            if isinstance(nested, PageInfo):
                return nested

    raise PageInfoNotFoundError(
        f"{type(destination).__name__} has no pageInfo field",
        destination_type=type(destination).__name__,
    )
