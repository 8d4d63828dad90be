from collections.abc import Iterable, Sequence
from typing import Any
from unittest.mock import MagicMock

import pytest

from src.infra.postgres.connection import ConnectionDescriptor

# libpq and the CLI read these; tests must not depend on the caller's shell
PG_ENV_VARS = ("PGHOST", "PGPORT", "PGDATABASE", "PGUSER", "PGPASSWORD", "DBURI_CONFIG")


@pytest.fixture(autouse=True)
def clean_pg_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove PostgreSQL environment variables for every test."""
    for var in PG_ENV_VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def descriptor() -> ConnectionDescriptor:
    """A descriptor for a local server."""
    return ConnectionDescriptor(
        host="localhost",
        port="5432",
        user="alice",
        password="secret",
        database="app",
    )


def make_connection(
    columns: Sequence[str] | None = None,
    rows: Iterable[Sequence[Any]] = (),
    error: Exception | None = None,
) -> tuple[MagicMock, MagicMock]:
    """Build a fake psycopg2 connection whose cursor yields the given rows.

    Returns:
        Tuple of (connection, cursor)
    """
    conn = MagicMock(name="connection")
    cur = conn.cursor.return_value.__enter__.return_value
    cur.description = None if columns is None else [(name,) for name in columns]
    rows = [tuple(row) for row in rows]
    cur.__iter__.return_value = iter(rows)
    cur.fetchall.return_value = rows
    if error is not None:
        cur.execute.side_effect = error
    return conn, cur


@pytest.fixture
def fake_connection():
    """Factory fixture for fake psycopg2 connections."""
    return make_connection
