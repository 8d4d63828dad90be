"""Exception types for PostgreSQL connection and query helpers."""

from __future__ import annotations


class DbUriError(Exception):
    """Base exception for connection descriptor and result reduction errors.

    Attributes:
        message: Human-readable summary
        details: Optional extra context (query text, tool output)
    """

    def __init__(self, message: str, details: str | None = None) -> None:
        self.message = message
        self.details = details
        super().__init__(message)


class MissingCredentialError(DbUriError):
    """Raised when no password was supplied or discoverable."""


class MalformedUriError(DbUriError):
    """Raised when a connection URI cannot be parsed into DSN parameters."""


class DbConnectionError(DbUriError):
    """Raised when opening or pinging a connection fails."""


class QueryError(DbUriError):
    """Raised when a query fails to execute."""


class StatementError(DbUriError):
    """Raised when a DDL or administrative statement fails."""


class DecodeError(DbUriError):
    """Raised when a column value cannot be converted to the requested type."""

    def __init__(self, column: str, value: object, target: str) -> None:
        self.column = column
        self.value = value
        super().__init__(
            f"Cannot decode column {column!r} value {value!r} as {target}"
        )


class CardinalityError(DbUriError):
    """Raised when a result has more rows or values than a single one."""

    def __init__(self, what: str, observed: int, expected: str, query: str) -> None:
        self.observed = observed
        self.expected = expected
        super().__init__(
            f"Expected {expected} {what}, got {observed}", details=query
        )


class ShapeError(DbUriError):
    """Raised when a result does not have exactly one column."""

    def __init__(self, observed: int, expected: int, query: str) -> None:
        self.observed = observed
        self.expected = expected
        super().__init__(
            f"Expected {expected} column, got {observed}", details=query
        )


class ExternalToolError(DbUriError):
    """Raised when an external command fails to launch or exits non-zero."""

    def __init__(
        self, message: str, returncode: int | None = None, stderr: str = ""
    ) -> None:
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(message, details=stderr or None)
