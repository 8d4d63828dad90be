"""PostgreSQL connection descriptor.

Holds connection parameters, renders them as a URI or libpq DSN, opens
connections and runs the administrative operations that must execute from
the maintenance database.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any, Self
from urllib.parse import parse_qsl, urlparse

import psycopg2
import psycopg2.extensions
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .dump import PgDump
from .errors import (
    DbConnectionError,
    MalformedUriError,
    MissingCredentialError,
    StatementError,
)

PASSWORD_ENV_VAR = "PGPASSWORD"
MAINTENANCE_DATABASE = "postgres"
LOCAL_HOSTS = ("127.0.0.1", "localhost")
URI_SCHEMES = ("postgresql", "postgres")
# Unescaped credentials containing these would be split at the wrong place
USER_RESERVED = ":@/?#"
PASSWORD_RESERVED = "/?#"

TERMINATE_PGLOGICAL_SQL = (
    "SELECT pg_terminate_backend(pid) FROM pg_stat_activity "
    "WHERE application_name LIKE 'pglogical%';"
)

PasswordResolver = Callable[[], str | None]


def env_password(env_var: str = PASSWORD_ENV_VAR) -> PasswordResolver:
    """Return a resolver that reads a password from an environment variable.

    The variable is read each time the resolver is called, not when it is
    created.
    """

    def resolve() -> str | None:
        return os.environ.get(env_var)

    return resolve


class ConnectionDescriptor(BaseModel):
    """Immutable PostgreSQL connection parameters.

    Direct construction accepts an empty password and leaves the check to
    the server at connection time. Use create() for the strict variant that
    falls back to PGPASSWORD and fails when no password can be found.
    """

    model_config = ConfigDict(frozen=True)

    host: str
    port: str
    user: str
    password: str = Field(default="", repr=False)
    database: str

    @field_validator("port", mode="before")
    @classmethod
    def _port_as_text(cls, value: Any) -> Any:
        if isinstance(value, int):
            return str(value)
        return value

    @classmethod
    def create(
        cls,
        host: str,
        port: str | int,
        database: str,
        user: str,
        password: str = "",
        *,
        resolve_password: PasswordResolver | None = None,
    ) -> Self:
        """Build a descriptor, resolving the password when not supplied.

        Args:
            host: Server host name or address
            port: Server port
            database: Target database name
            user: Login role
            password: Password; when empty, resolve_password is consulted
            resolve_password: Credential source (default: PGPASSWORD)

        Raises:
            MissingCredentialError: If no password is supplied or resolvable
        """
        if not password:
            resolver = resolve_password or env_password()
            password = resolver() or ""
            if not password:
                raise MissingCredentialError(
                    f"{PASSWORD_ENV_VAR} not present in env vars"
                    if resolve_password is None
                    else "No password supplied and none could be resolved"
                )
            source = PASSWORD_ENV_VAR if resolve_password is None else "resolver"
            logger.warning(f"No password given for {user}@{host}:{port}, using {source}")

        return cls(
            host=host, port=port, user=user, password=password, database=database
        )

    @property
    def ssl_mode(self) -> str:
        """SSL mode used in the URI: disabled only for loopback hosts."""
        return "disable" if self.host in LOCAL_HOSTS else "require"

    def to_uri(self) -> str:
        """Render the descriptor as a postgresql:// URI.

        Credentials are embedded as-is, without percent-encoding, and the
        query string always ends with a trailing '&'.
        """
        return (
            f"postgresql://{self.user}:{self.password}@{self.host}:{self.port}"
            f"/{self.database}?sslmode={self.ssl_mode}&"
        )

    def masked_uri(self) -> str:
        """URI with the password replaced, for log and console output."""
        return self.model_copy(update={"password": "****"}).to_uri()

    def __str__(self) -> str:
        return self.to_uri()

    def to_dsn(self) -> dict[str, str]:
        """Parse to_uri() into libpq keyword/value connection parameters.

        Credentials are embedded unescaped, so they must not contain URI
        delimiters that would move the host or path boundary.

        Raises:
            MalformedUriError: If the URI cannot be parsed
        """
        for field, value, reserved in (
            ("user", self.user, USER_RESERVED),
            ("password", self.password, PASSWORD_RESERVED),
        ):
            if any(c in value for c in reserved):
                raise MalformedUriError(
                    f"Connection URI {field} contains one of {reserved!r}",
                    details=self.masked_uri(),
                )

        uri = self.to_uri()
        try:
            parsed = urlparse(uri)
            # Validates the port; raises ValueError when non-numeric
            parsed.port
        except ValueError as e:
            raise MalformedUriError(
                f"Cannot parse connection URI: {e}", details=self.masked_uri()
            ) from e

        if parsed.scheme not in URI_SCHEMES:
            raise MalformedUriError(
                f"Invalid connection scheme: {parsed.scheme!r}",
                details=self.masked_uri(),
            )

        userinfo, _, hostport = parsed.netloc.rpartition("@")
        user, _, password = userinfo.partition(":")
        host, _, port = hostport.rpartition(":")
        if not host:
            raise MalformedUriError(
                "Connection URI has no host", details=self.masked_uri()
            )

        dsn: dict[str, str] = {
            "host": host,
            "port": port,
            "user": user,
            "password": password,
            "dbname": parsed.path[1:],
        }
        for key, value in parse_qsl(parsed.query, keep_blank_values=True):
            dsn[key] = value

        return {key: dsn[key] for key in sorted(dsn) if dsn[key] != ""}

    def to_dsn_string(self) -> str:
        """Render to_dsn() as a libpq 'key=value' connection string."""
        return psycopg2.extensions.make_dsn(**self.to_dsn())

    def with_database(self, database: str) -> Self:
        """Return a copy targeting another database on the same server."""
        return self.model_copy(update={"database": database})

    def maintenance(self) -> Self:
        """Return a copy targeting the administrative default database."""
        return self.with_database(MAINTENANCE_DATABASE)

    def open(self) -> psycopg2.extensions.connection:
        """Open an autocommit connection and verify it with a round trip.

        The caller owns the returned connection and must close it.

        Raises:
            DbConnectionError: If connecting or pinging fails
        """
        dsn = self.to_dsn()
        target = f"{self.host}:{self.port}/{self.database}"
        logger.debug(f"Connecting to {self.masked_uri()}")

        try:
            conn = psycopg2.connect(**dsn)
        except psycopg2.Error as e:
            raise DbConnectionError(
                f"Cannot connect to {target}", details=str(e).strip()
            ) from e

        try:
            conn.autocommit = True
            with conn.cursor() as cur:
                cur.execute("SELECT 1")
                cur.fetchone()
        except psycopg2.Error as e:
            conn.close()
            raise DbConnectionError(
                f"Ping failed for {target}", details=str(e).strip()
            ) from e

        return conn

    def open_maintenance_connection(self) -> psycopg2.extensions.connection:
        """Open a connection to the maintenance database on the same server.

        Raises:
            DbConnectionError: If connecting or pinging fails
        """
        return self.maintenance().open()

    @contextmanager
    def maintenance_connection(self) -> Iterator[psycopg2.extensions.connection]:
        """Context manager yielding a maintenance connection.

        The connection is opened before the release scope is entered, so a
        failed open propagates without any close attempt; once open, it is
        closed on every exit path.
        """
        conn = self.open_maintenance_connection()
        try:
            yield conn
        finally:
            conn.close()

    def _execute_maintenance(self, sql: str) -> list[tuple[Any, ...]]:
        with self.maintenance_connection() as conn:
            try:
                with conn.cursor() as cur:
                    cur.execute(sql)
                    return cur.fetchall() if cur.description else []
            except psycopg2.Error as e:
                raise StatementError(
                    f"Statement failed: {sql}", details=str(e).strip()
                ) from e

    def create_database(self, name: str) -> None:
        """Create a database. The name is not quoted or validated.

        Raises:
            DbConnectionError: If the maintenance connection cannot be opened
            StatementError: If CREATE DATABASE fails
        """
        self._execute_maintenance(f"create database {name}")
        logger.info(f"Created database {name} on {self.host}:{self.port}")

    def drop_database(self, name: str) -> None:
        """Drop a database if it exists. The name is not quoted or validated.

        Raises:
            DbConnectionError: If the maintenance connection cannot be opened
            StatementError: If DROP DATABASE fails
        """
        self._execute_maintenance(f"drop database if exists {name}")
        logger.info(f"Dropped database {name} on {self.host}:{self.port}")

    def terminate_replication_backends(self) -> int:
        """Terminate every backend whose application name starts with pglogical.

        Backends that exit before they are signalled are skipped silently.

        Returns:
            Number of backends that were signalled

        Raises:
            DbConnectionError: If the maintenance connection cannot be opened
            StatementError: If the termination query fails
        """
        rows = self._execute_maintenance(TERMINATE_PGLOGICAL_SQL)
        terminated = sum(1 for (signalled,) in rows if signalled)
        logger.info(
            f"Terminated {terminated} of {len(rows)} pglogical backend(s) "
            f"on {self.host}:{self.port}"
        )
        return terminated

    def dump_schema(self, pg_dump: PgDump | None = None) -> str:
        """Dump the DDL of the public schema using pg_dump.

        Raises:
            ExternalToolError: If pg_dump cannot be launched or fails
        """
        dumper = pg_dump or PgDump()
        logger.info(f"Dumping public schema of {self.database}")
        return dumper.dump_schema(self.to_uri())
