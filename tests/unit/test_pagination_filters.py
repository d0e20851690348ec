"""Unit tests for the keyset seek predicate."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

import pytest
from sqlalchemy import Column, Float, Numeric, Uuid, select

from pagewise.core.database.dialects import NullOrdering
from pagewise.core.exceptions import MalformedCursorError, UnsupportedBackendError
from pagewise.core.pagination.filters import KeysetField, KeysetFilter, convert_cursor_value
from pagewise.core.pagination.order import SortDirection
from tests.models import Article, Status, Ticket


def _sql(clause) -> str:
    return str(clause.compile(compile_kwargs={"literal_binds": True}))


def _id(direction=SortDirection.ASC) -> KeysetField:
    return KeysetField("id", Article.id, direction)


def _rating(direction) -> KeysetField:
    return KeysetField("rating", Article.rating, direction)


SQLITE = NullOrdering("sqlite")
POSTGRES = NullOrdering("postgresql")


@pytest.mark.unit
class TestKeysetFilter:
    """Tests for KeysetFilter branch construction."""

    def test_single_ascending_field(self):
        """One field seeks strictly past the cursor value."""
        condition = KeysetFilter([_id()], {"id": 3}, SQLITE).condition()

        assert _sql(condition) == "articles.id > 3"

    def test_descending_uses_less_than(self):
        """Descending fields seek below the cursor value."""
        condition = KeysetFilter([_id(SortDirection.DESC)], {"id": 3}, POSTGRES).condition()

        assert _sql(condition) == "articles.id < 3"

    def test_previous_fields_pinned_by_equality(self):
        """Later branches require equality on every earlier field."""
        fields = [
            KeysetField("title", Article.title, SortDirection.DESC_NULLS_FIRST),
            _id(SortDirection.ASC_NULLS_FIRST),
        ]

        sql = _sql(KeysetFilter(fields, {"title": "Echo", "id": 5}, SQLITE).condition())

        assert "articles.title < 'Echo'" in sql
        assert "articles.title = 'Echo' AND articles.id > 5" in sql
        assert sql.count(" OR ") == 1

    def test_null_cursor_value_with_nulls_first(self):
        """NULLs sort first: every non-NULL row is past a NULL cursor value."""
        fields = [_rating(SortDirection.ASC), _id()]

        sql = _sql(KeysetFilter(fields, {"rating": None, "id": 4}, SQLITE).condition())

        assert "articles.rating IS NOT NULL" in sql
        assert "articles.rating IS NULL AND articles.id > 4" in sql
        assert sql.count(" OR ") == 1

    def test_null_cursor_value_with_nulls_last(self):
        """NULLs sort last: nothing non-NULL is past a NULL cursor value."""
        fields = [_rating(SortDirection.ASC_NULLS_LAST), _id()]

        sql = _sql(KeysetFilter(fields, {"rating": None, "id": 4}, SQLITE).condition())

        assert sql == "articles.rating IS NULL AND articles.id > 4"

    def test_value_with_nulls_last_adds_null_branch(self):
        """NULL rows come after any non-NULL value when NULLs sort last."""
        fields = [_rating(SortDirection.ASC_NULLS_LAST), _id()]

        sql = _sql(KeysetFilter(fields, {"rating": 3, "id": 7}, SQLITE).condition())

        assert "articles.rating > 3" in sql
        assert "articles.rating IS NULL" in sql
        assert "articles.rating = 3 AND articles.id > 7" in sql
        assert sql.count(" OR ") == 2

    def test_backend_default_decides_null_branch(self):
        """Plain ``asc`` puts NULLs last on PostgreSQL, first on SQLite."""
        fields = [_rating(SortDirection.ASC), _id()]
        cursor = {"rating": 3, "id": 7}

        postgres_sql = _sql(KeysetFilter(fields, cursor, POSTGRES).condition())
        sqlite_sql = _sql(KeysetFilter(fields, cursor, SQLITE).condition())

        assert "articles.rating IS NULL" in postgres_sql
        assert "articles.rating IS NULL" not in sqlite_sql

    def test_no_branches_is_false(self):
        """A cursor at the very end matches nothing."""
        condition = KeysetFilter(
            [_rating(SortDirection.ASC_NULLS_LAST)], {"rating": None}, SQLITE
        ).condition()

        assert str(condition) == "false"

    def test_branch_count_bounded(self):
        """At most two branches per field."""
        fields = [_rating(SortDirection.DESC_NULLS_LAST), KeysetField("title", Article.title, SortDirection.ASC), _id()]

        sql = _sql(KeysetFilter(fields, {"rating": 1, "title": "A", "id": 1}, POSTGRES).condition())

        assert sql.count(" OR ") + 1 <= 2 * len(fields)

    def test_unknown_backend_requires_explicit_nulls(self):
        """Implicit NULL placement on an unknown backend is an error."""
        with pytest.raises(UnsupportedBackendError):
            KeysetFilter([_id()], {"id": 1}, NullOrdering("firebird")).condition()

    def test_unknown_backend_with_explicit_nulls(self):
        """Explicit NULL placement works on any backend."""
        condition = KeysetFilter(
            [_id(SortDirection.ASC_NULLS_FIRST)], {"id": 1}, NullOrdering("firebird")
        ).condition()

        assert _sql(condition) == "articles.id > 1"

    def test_apply_adds_where(self):
        """apply() adds the predicate to the statement."""
        statement = KeysetFilter([_id()], {"id": 2}, SQLITE).apply(select(Article))

        assert "WHERE articles.id > :id_1" in str(statement)

    def test_bad_datetime_is_malformed_cursor(self):
        """Values that do not fit the column type are cursor errors."""
        field = KeysetField("published_at", Article.published_at, SortDirection.ASC)

        with pytest.raises(MalformedCursorError):
            KeysetFilter([field], {"published_at": "yesterday"}, SQLITE).condition()


@pytest.mark.unit
class TestConvertCursorValue:
    """Tests for JSON value conversion by column type."""

    def test_datetime_string(self):
        """ISO strings become datetimes for DateTime columns."""
        assert convert_cursor_value(Article.published_at, "2025-01-03T12:00:00") == datetime(2025, 1, 3, 12)

    def test_plain_values_unchanged(self):
        """Other values pass through."""
        assert convert_cursor_value(Article.title, "Alpha") == "Alpha"
        assert convert_cursor_value(Article.id, 3) == 3
        assert convert_cursor_value(Article.rating, None) is None

    def test_enum_value_becomes_member(self):
        """Enum columns get the member back from its value."""
        assert convert_cursor_value(Ticket.status, "blocked") is Status.BLOCKED
        assert convert_cursor_value(Ticket.status, Status.CLOSED) is Status.CLOSED

    def test_unknown_enum_value(self):
        """A member name is not a member value."""
        with pytest.raises(ValueError):
            convert_cursor_value(Ticket.status, "BLOCKED")

    def test_numeric_and_uuid_columns(self):
        """Decimal and UUID columns convert from their JSON forms."""
        uid = "12345678-1234-5678-1234-567812345678"

        assert convert_cursor_value(Column("price", Numeric(10, 2)), "9.50") == Decimal("9.50")
        assert convert_cursor_value(Column("price", Numeric(10, 2)), 3) == Decimal(3)
        assert convert_cursor_value(Column("ratio", Float()), 2) == 2
        assert convert_cursor_value(Column("uid", Uuid()), uid) == UUID(uid)
        assert convert_cursor_value(Column("ref", Uuid(as_uuid=False)), uid) == uid

    @pytest.mark.parametrize(
        ("column", "value"),
        [
            (Article.published_at, 5),
            (Article.title, 5),
            (Article.id, "3"),
            (Article.id, 1.5),
            (Article.id, True),
            (Column("price", Numeric(10, 2)), "cheap"),
            (Column("ratio", Float()), "2"),
        ],
    )
    def test_value_must_fit_column_type(self, column, value):
        """Values of the wrong type are rejected."""
        with pytest.raises(ValueError):
            convert_cursor_value(column, value)

    def test_wrong_type_is_malformed_cursor(self):
        """KeysetFilter reports type mismatches as cursor errors."""
        field = KeysetField("title", Article.title, SortDirection.ASC)

        with pytest.raises(MalformedCursorError) as exc_info:
            KeysetFilter([field, _id()], {"title": 5, "id": 1}, SQLITE).condition()

        assert exc_info.value.details == {"token": "title", "reason": "expected str, got int"}
