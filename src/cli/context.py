"""CLI context and dependency container."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import click
import typer

from src.cli.shared.console import CLIConsole, console
from src.cli.shared.secrets import password_resolver
from src.infra.config import DatabaseConfig, load_config
from src.infra.postgres.connection import ConnectionDescriptor
from src.infra.postgres.dump import PgDump


@dataclass(frozen=True)
class ConnectionOptions:
    """Connection settings given on the command line.

    None means "not given": the value then comes from the config file, or
    from the built-in default when no config file is used.
    """

    host: str | None = None
    port: str | None = None
    dbname: str | None = None
    user: str | None = None
    password: str | None = None
    config_path: Path | None = None
    interactive: bool = True


@dataclass(frozen=True)
class CLIContext:
    """Runtime dependencies for CLI commands."""

    console: CLIConsole
    options: ConnectionOptions
    pg_dump: PgDump

    def database_config(self) -> DatabaseConfig:
        """Merge command line options over the config file (if any)."""
        opts = self.options
        if opts.config_path is not None:
            base = load_config(opts.config_path).database
        else:
            base = DatabaseConfig(name="postgres", user="postgres")

        overrides = {
            "host": opts.host,
            "port": opts.port,
            "name": opts.dbname,
            "user": opts.user,
            "password": opts.password,
        }
        return base.model_copy(
            update={k: v for k, v in overrides.items() if v is not None}
        )

    def descriptor(self) -> ConnectionDescriptor:
        """Build the connection descriptor, resolving the password if needed.

        Raises:
            MissingCredentialError: If no password is given, set or entered
        """
        db = self.database_config()
        return ConnectionDescriptor.create(
            db.host,
            db.port,
            db.name,
            db.user,
            db.password,
            resolve_password=password_resolver(
                f"Password for {db.user}@{db.host}: ",
                interactive=self.options.interactive,
            ),
        )


def build_cli_context(options: ConnectionOptions | None = None) -> CLIContext:
    """Build a fresh CLIContext."""
    return CLIContext(
        console=console,
        options=options or ConnectionOptions(),
        pg_dump=PgDump(),
    )


def get_cli_context(ctx: typer.Context | None = None) -> CLIContext:
    """Return the CLIContext from Typer, falling back to a new instance."""
    context = ctx or click.get_current_context(silent=True)
    if context and isinstance(context.obj, CLIContext):
        return context.obj
    return build_cli_context()
