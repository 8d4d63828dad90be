"""Typed reduction of query results.

Executes a query and flattens its rows into a matrix of one scalar type,
then narrows the matrix to a row, a column or a single value, checking the
result shape at each step.

Example:
    >>> conn = descriptor.open()
    >>> query_int_scalar(conn, "SELECT count(*) FROM pg_database")
    4
    >>> query_str_column(conn, "SELECT datname FROM pg_database ORDER BY 1")
    ['postgres', 'template0', 'template1', 'test']
"""

from __future__ import annotations

import math
from collections.abc import Callable
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Generic, TypeVar

import psycopg2
from loguru import logger

from .errors import CardinalityError, DecodeError, QueryError, ShapeError

T = TypeVar("T")

Decoder = Callable[[str, Any], T]


def decode_str(column: str, value: Any) -> str:
    """Convert a column value to text.

    Raises:
        DecodeError: If the value is NULL
    """
    if value is None:
        raise DecodeError(column, value, "str")
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, memoryview):
        value = value.tobytes()
    if isinstance(value, bytes):
        try:
            return value.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodeError(column, value, "str") from e
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return str(value)


def decode_int(column: str, value: Any) -> int:
    """Convert a column value to an integer.

    Integral floats and decimals are accepted; text must be a base-10
    integer literal.

    Raises:
        DecodeError: If the value is NULL, boolean or not integral
    """
    if value is None or isinstance(value, bool):
        raise DecodeError(column, value, "int")
    if isinstance(value, int):
        return value
    if isinstance(value, (float, Decimal)):
        if not math.isfinite(value) or value != int(value):
            raise DecodeError(column, value, "int")
        return int(value)
    if isinstance(value, memoryview):
        value = value.tobytes()
    if isinstance(value, (str, bytes)):
        try:
            return int(value, 10)
        except ValueError as e:
            raise DecodeError(column, value, "int") from e
    raise DecodeError(column, value, "int")


class ResultReducer(Generic[T]):
    """Reduces query results to values of a single scalar type.

    Each method builds on the previous one: query_matrix decodes every
    value, query_row and query_column narrow the matrix, and query_scalar
    narrows a row to one value.
    """

    def __init__(self, decode: Decoder[T], type_name: str) -> None:
        self._decode = decode
        self.type_name = type_name

    def query_matrix(self, conn: Any, query: str, *args: Any) -> list[list[T]]:
        """Execute a query and decode every value of every row.

        Args:
            conn: Open psycopg2 connection
            query: SQL with %s placeholders
            *args: Positional query parameters

        Returns:
            Rows in query order, each a list of decoded values in column order

        Raises:
            QueryError: If the query fails
            DecodeError: If a value cannot be converted
        """
        logger.debug(f"query_{self.type_name}_matrix: {query}")
        try:
            with conn.cursor() as cur:
                cur.execute(query, args or None)
                if cur.description is None:
                    return []
                columns = [col[0] for col in cur.description]
                return [
                    [
                        self._decode(column, value)
                        for column, value in zip(columns, row, strict=True)
                    ]
                    for row in cur
                ]
        except psycopg2.Error as e:
            raise QueryError(f"Query failed: {e}".strip(), details=query) from e

    def query_row(self, conn: Any, query: str, *args: Any) -> list[T]:
        """Return the single row of a query, or [] when there is none.

        Raises:
            CardinalityError: If the query returns more than one row
        """
        matrix = self.query_matrix(conn, query, *args)
        if not matrix:
            return []
        if len(matrix) > 1:
            raise CardinalityError("rows", len(matrix), "0 or 1", query)
        return matrix[0]

    def query_column(self, conn: Any, query: str, *args: Any) -> list[T]:
        """Return the values of a single-column query, or [] when empty.

        Raises:
            ShapeError: If rows do not have exactly one column
        """
        matrix = self.query_matrix(conn, query, *args)
        if not matrix:
            return []
        width = len(matrix[0])
        if width != 1:
            raise ShapeError(width, 1, query)
        return [row[0] for row in matrix]

    def query_scalar(self, conn: Any, query: str, *args: Any) -> T:
        """Return the single value of a single-row, single-column query.

        Raises:
            CardinalityError: If the result is not exactly one value
        """
        row = self.query_row(conn, query, *args)
        if len(row) != 1:
            raise CardinalityError("value", len(row), "1", query)
        return row[0]


STRING: ResultReducer[str] = ResultReducer(decode_str, "str")
INTEGER: ResultReducer[int] = ResultReducer(decode_int, "int")

query_str_matrix = STRING.query_matrix
query_str_row = STRING.query_row
query_str_column = STRING.query_column
query_str_scalar = STRING.query_scalar

query_int_matrix = INTEGER.query_matrix
query_int_row = INTEGER.query_row
query_int_column = INTEGER.query_column
query_int_scalar = INTEGER.query_scalar
