"""PostgreSQL connection and query helpers.

This module builds and holds connection parameters, runs the administrative
operations that need a maintenance connection (create/drop database,
terminate pglogical backends, dump the public schema), and reduces query
results to typed matrices, rows, columns and scalars.
"""

from .connection import (
    MAINTENANCE_DATABASE,
    PASSWORD_ENV_VAR,
    ConnectionDescriptor,
    env_password,
)
from .dump import CommandResult, CommandRunner, PgDump
from .errors import (
    CardinalityError,
    DbConnectionError,
    DbUriError,
    DecodeError,
    ExternalToolError,
    MalformedUriError,
    MissingCredentialError,
    QueryError,
    ShapeError,
    StatementError,
)
from .results import (
    INTEGER,
    STRING,
    ResultReducer,
    query_int_column,
    query_int_matrix,
    query_int_row,
    query_int_scalar,
    query_str_column,
    query_str_matrix,
    query_str_row,
    query_str_scalar,
)

__all__ = [
    "MAINTENANCE_DATABASE",
    "PASSWORD_ENV_VAR",
    "ConnectionDescriptor",
    "env_password",
    "CommandResult",
    "CommandRunner",
    "PgDump",
    "DbUriError",
    "MissingCredentialError",
    "MalformedUriError",
    "DbConnectionError",
    "QueryError",
    "StatementError",
    "DecodeError",
    "CardinalityError",
    "ShapeError",
    "ExternalToolError",
    "ResultReducer",
    "STRING",
    "INTEGER",
    "query_str_matrix",
    "query_str_row",
    "query_str_column",
    "query_str_scalar",
    "query_int_matrix",
    "query_int_row",
    "query_int_column",
    "query_int_scalar",
]
