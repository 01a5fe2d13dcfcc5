"""
Unit tests for GraphQL wire types and destination helpers.

Tests cover null handling, variables serialization, cursor copies,
in-place population and pageInfo discovery.
"""

import pytest
from pydantic import Field

from wiz_provider.errors import DestinationDecodeError, PageInfoNotFoundError
from wiz_provider.models import (
    GraphQLError,
    GraphQLModel,
    MutationInput,
    PageInfo,
    QueryVariables,
    ResponseEnvelope,
    cursor_of,
    find_page_info,
    populate,
    variables_payload,
    with_cursor,
)
from wiz_provider.users import ReadUser, ReadUsers, UserFilters


class Counter(GraphQLModel):
    total_count: int = 0


class FlatPage(GraphQLModel):
    nodes: list[Counter] = Field(default_factory=list)
    page_info: PageInfo = Field(default_factory=PageInfo)


class TestGraphQLModel:
    """Tests for GraphQLModel decoding."""

    def test_camel_case_aliases(self) -> None:
        counter = Counter.model_validate({"totalCount": 7})

        assert counter.total_count == 7

    def test_null_decodes_to_zero_value(self) -> None:
        data = ReadUser.model_validate({"user": None})

        assert data.user.id == ""
        assert data.user.effective_assigned_projects == []

    def test_null_nested_fields(self) -> None:
        data = ReadUser.model_validate(
            {"user": {"id": "u-1", "name": None, "effectiveRole": None}}
        )

        assert data.user.id == "u-1"
        assert data.user.name == ""
        assert data.user.effective_role.id == ""

    def test_unknown_fields_are_ignored(self) -> None:
        counter = Counter.model_validate({"totalCount": 1, "somethingNew": True})

        assert counter.total_count == 1


class TestVariables:
    """Tests for variables serialization."""

    def test_query_variables_omit_unset_fields(self) -> None:
        assert QueryVariables(first=50).to_variables() == {"first": 50}

    def test_query_variables_nested_filter(self) -> None:
        variables = QueryVariables(
            first=10,
            filter_by=UserFilters(search="alice", roles=["GLOBAL_ADMIN"]),
        )

        assert variables.to_variables() == {
            "first": 10,
            "filterBy": {"search": "alice", "role": ["GLOBAL_ADMIN"]},
        }

    def test_mutation_input_wrapping(self) -> None:
        payload = MutationInput(input=UserFilters(search="bob")).to_variables()

        assert payload == {"input": {"search": "bob", "role": [], "source": ""}}

    def test_variables_payload_kinds(self) -> None:
        assert variables_payload(None) == {}
        assert variables_payload({"id": "x"}) == {"id": "x"}
        assert variables_payload(QueryVariables(id="x")) == {"id": "x"}


class TestCursor:
    """Tests for cursor helpers."""

    def test_with_cursor_copies_model(self) -> None:
        original = QueryVariables(first=5)

        updated = with_cursor(original, "c1")

        assert updated.after == "c1"
        assert updated.first == 5
        assert original.after == ""
        assert updated is not original

    def test_with_cursor_copies_mapping(self) -> None:
        original: dict[str, object] = {"first": 5, "after": "old"}

        assert with_cursor(original, "c1") == {"first": 5, "after": "c1"}
        assert with_cursor(original, "") == {"first": 5}
        assert original == {"first": 5, "after": "old"}

    def test_cursor_of(self) -> None:
        assert cursor_of(QueryVariables(after="c3")) == "c3"
        assert cursor_of({"after": "c4"}) == "c4"
        assert cursor_of({}) == ""
        assert cursor_of(None) == ""


class TestEnvelope:
    """Tests for envelope decoding."""

    def test_null_errors(self) -> None:
        envelope = ResponseEnvelope.model_validate({"data": {"a": 1}, "errors": None})

        assert envelope.errors == []
        assert envelope.data == {"a": 1}

    def test_string_errors(self) -> None:
        envelope = ResponseEnvelope.model_validate({"errors": ["plain failure"]})

        assert envelope.data is None
        assert envelope.errors[0].message == "plain failure"

    def test_error_properties(self) -> None:
        error = GraphQLError.model_validate(
            {
                "message": "nope",
                "extensions": {"code": "FORBIDDEN", "exception": {"message": "denied"}},
                "locations": [{"line": 1, "column": 2}],
            }
        )

        assert error.code == "FORBIDDEN"
        assert error.exception_message == "denied"

    def test_error_null_extensions(self) -> None:
        error = GraphQLError.model_validate({"message": "nope", "extensions": None})

        assert error.code == ""
        assert error.exception_message == ""


class TestPopulate:
    """Tests for populate()."""

    def test_populates_in_place(self) -> None:
        destination = ReadUser()

        populate(destination, {"user": {"id": "u-1", "email": "a@example.com"}})

        assert destination.user.id == "u-1"
        assert destination.user.email == "a@example.com"

    def test_none_leaves_destination_untouched(self) -> None:
        destination = ReadUser()

        populate(destination, None)

        assert destination == ReadUser()

    def test_mismatched_payload_raises(self) -> None:
        destination = Counter()

        with pytest.raises(DestinationDecodeError) as exc_info:
            populate(destination, {"totalCount": "not a number"})

        assert exc_info.value.destination_type == "Counter"
        assert exc_info.value.errors


class TestFindPageInfo:
    """Tests for find_page_info()."""

    def test_top_level(self) -> None:
        page = FlatPage.model_validate({"pageInfo": {"endCursor": "c1", "hasNextPage": True}})

        info = find_page_info(page)

        assert info.end_cursor == "c1"
        assert info.has_next_page is True

    def test_nested_under_query_field(self) -> None:
        page = ReadUsers.model_validate(
            {"users": {"nodes": [], "pageInfo": {"endCursor": "c2", "hasNextPage": False}}}
        )

        info = find_page_info(page)

        assert info.end_cursor == "c2"
        assert info.has_next_page is False

    def test_missing_raises(self) -> None:
        with pytest.raises(PageInfoNotFoundError) as exc_info:
            _ = find_page_info(Counter())

        assert exc_info.value.destination_type == "Counter"
