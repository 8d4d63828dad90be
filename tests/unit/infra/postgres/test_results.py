"""Unit tests for typed result reduction."""

from datetime import date, datetime
from decimal import Decimal

import psycopg2
import pytest

from src.infra.postgres.errors import (
    CardinalityError,
    DecodeError,
    QueryError,
    ShapeError,
)
from src.infra.postgres.results import (
    INTEGER,
    STRING,
    decode_int,
    decode_str,
    query_int_column,
    query_int_scalar,
    query_str_matrix,
    query_str_row,
    query_str_scalar,
)


class TestQueryMatrix:
    def test_preserves_row_and_column_order(self, fake_connection):
        conn, _ = fake_connection(
            columns=["name", "owner"],
            rows=[("b", "bob"), ("a", "alice"), ("c", "carol")],
        )

        assert query_str_matrix(conn, "SELECT name, owner FROM t") == [
            ["b", "bob"],
            ["a", "alice"],
            ["c", "carol"],
        ]

    def test_passes_positional_args(self, fake_connection):
        conn, cur = fake_connection(columns=["n"], rows=[(5,)])

        INTEGER.query_matrix(conn, "SELECT %s + %s", 2, 3)

        cur.execute.assert_called_once_with("SELECT %s + %s", (2, 3))

    def test_no_args_does_not_format_query(self, fake_connection):
        conn, cur = fake_connection(columns=["n"], rows=[])

        STRING.query_matrix(conn, "SELECT 'a%'")

        cur.execute.assert_called_once_with("SELECT 'a%'", None)

    def test_decodes_integers(self, fake_connection):
        conn, _ = fake_connection(columns=["a", "b"], rows=[(1, "2"), (Decimal(3), 4.0)])

        assert INTEGER.query_matrix(conn, "SELECT a, b") == [[1, 2], [3, 4]]

    def test_statement_without_result_yields_empty_matrix(self, fake_connection):
        conn, _ = fake_connection(columns=None)

        assert STRING.query_matrix(conn, "SET search_path TO public") == []

    def test_query_failure_raises_query_error(self, fake_connection):
        conn, _ = fake_connection(
            error=psycopg2.ProgrammingError('relation "missing" does not exist')
        )

        with pytest.raises(QueryError) as exc_info:
            STRING.query_matrix(conn, "SELECT * FROM missing")

        assert exc_info.value.details == "SELECT * FROM missing"
        assert "does not exist" in exc_info.value.message

    def test_decode_failure_names_column_and_releases_cursor(self, fake_connection):
        conn, _ = fake_connection(columns=["id", "nickname"], rows=[(1, None)])

        with pytest.raises(DecodeError, match="nickname") as exc_info:
            STRING.query_matrix(conn, "SELECT id, nickname FROM users")

        assert exc_info.value.column == "nickname"
        conn.cursor.return_value.__exit__.assert_called_once()

    def test_cursor_released_after_success(self, fake_connection):
        conn, _ = fake_connection(columns=["n"], rows=[(1,)])

        INTEGER.query_matrix(conn, "SELECT 1")

        conn.cursor.return_value.__exit__.assert_called_once()


class TestQueryRow:
    def test_zero_rows_yields_empty_row(self, fake_connection):
        conn, _ = fake_connection(columns=["a", "b"], rows=[])
        assert query_str_row(conn, "SELECT a, b FROM t WHERE false") == []

    def test_single_row(self, fake_connection):
        conn, _ = fake_connection(columns=["a", "b"], rows=[("x", 1)])
        assert query_str_row(conn, "SELECT a, b FROM t") == ["x", "1"]

    def test_many_rows_reports_count(self, fake_connection):
        conn, _ = fake_connection(columns=["a"], rows=[("x",), ("y",), ("z",)])

        with pytest.raises(CardinalityError) as exc_info:
            query_str_row(conn, "SELECT a FROM t")

        assert exc_info.value.observed == 3
        assert exc_info.value.expected == "0 or 1"
        assert "got 3" in str(exc_info.value)


class TestQueryColumn:
    def test_zero_rows_yields_empty_column(self, fake_connection):
        conn, _ = fake_connection(columns=["a", "b"], rows=[])
        assert query_int_column(conn, "SELECT a, b FROM t WHERE false") == []

    def test_single_column(self, fake_connection):
        conn, _ = fake_connection(columns=["n"], rows=[(3,), (1,), (2,)])
        assert query_int_column(conn, "SELECT n FROM t") == [3, 1, 2]

    def test_two_columns_is_shape_error(self, fake_connection):
        conn, _ = fake_connection(columns=["a", "b"], rows=[(1, 2)])

        with pytest.raises(ShapeError) as exc_info:
            query_int_column(conn, "SELECT 1, 2")

        assert exc_info.value.observed == 2
        assert exc_info.value.expected == 1
        assert str(exc_info.value) == "Expected 1 column, got 2"


class TestQueryScalar:
    def test_string_scalar(self, fake_connection):
        conn, _ = fake_connection(columns=["?column?"], rows=[(42,)])
        assert query_str_scalar(conn, "SELECT 42") == "42"

    def test_int_scalar(self, fake_connection):
        conn, _ = fake_connection(columns=["?column?"], rows=[(42,)])
        assert query_int_scalar(conn, "SELECT 42") == 42

    def test_two_values_fails(self, fake_connection):
        conn, _ = fake_connection(columns=["a", "b"], rows=[(1, 2)])

        with pytest.raises(CardinalityError) as exc_info:
            query_int_scalar(conn, "SELECT 1, 2")

        assert exc_info.value.observed == 2

    def test_no_rows_fails(self, fake_connection):
        conn, _ = fake_connection(columns=["a"], rows=[])

        with pytest.raises(CardinalityError) as exc_info:
            query_str_scalar(conn, "SELECT a FROM t WHERE false")

        assert exc_info.value.observed == 0

    def test_many_rows_fails_before_value_check(self, fake_connection):
        conn, _ = fake_connection(columns=["a"], rows=[(1,), (2,)])

        with pytest.raises(CardinalityError, match="rows"):
            query_int_scalar(conn, "SELECT a FROM t")


class TestDecodeStr:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("text", "text"),
            (7, "7"),
            (True, "true"),
            (False, "false"),
            (b"bytes", "bytes"),
            (memoryview(b"view"), "view"),
            (Decimal("1.50"), "1.50"),
            (date(2024, 1, 2), "2024-01-02"),
            (datetime(2024, 1, 2, 3, 4, 5), "2024-01-02T03:04:05"),
        ],
    )
    def test_conversions(self, value, expected):
        assert decode_str("c", value) == expected

    def test_null_fails(self):
        with pytest.raises(DecodeError):
            decode_str("c", None)


class TestDecodeInt:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [(5, 5), ("-12", -12), (b"8", 8), (2.0, 2), (Decimal("10"), 10)],
    )
    def test_conversions(self, value, expected):
        assert decode_int("c", value) == expected

    @pytest.mark.parametrize(
        "value", [None, True, "abc", "1.5", 1.5, Decimal("2.5"), float("nan"), [1]]
    )
    def test_invalid_values_fail(self, value):
        with pytest.raises(DecodeError):
            decode_int("c", value)
