"""PostgreSQL database commands.

Connection options are given once on the group and shared by every
subcommand:

    dburi db --host db.example.com --dbname app --user app uri
    dburi db --config config.yaml drop-db scratch --force
"""

from enum import Enum
from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table

from src.cli.context import ConnectionOptions, build_cli_context, get_cli_context
from src.cli.shared.console import with_error_handling
from src.infra.postgres.results import INTEGER, STRING

db_app = typer.Typer(
    help="PostgreSQL connection and administration commands",
    no_args_is_help=True,
)


class Shape(str, Enum):
    """Result shape for the query command."""

    matrix = "matrix"
    row = "row"
    column = "column"
    scalar = "scalar"


@db_app.callback()
def db_callback(
    ctx: typer.Context,
    host: Annotated[
        str | None,
        typer.Option("--host", "-H", envvar="PGHOST", help="Database host"),
    ] = None,
    port: Annotated[
        str | None,
        typer.Option("--port", "-P", envvar="PGPORT", help="Database port"),
    ] = None,
    dbname: Annotated[
        str | None,
        typer.Option("--dbname", "-d", envvar="PGDATABASE", help="Database name"),
    ] = None,
    user: Annotated[
        str | None,
        typer.Option("--user", "-u", envvar="PGUSER", help="Database user"),
    ] = None,
    password: Annotated[
        str | None,
        typer.Option(
            "--password",
            help="Database password (default: PGPASSWORD, then prompt)",
        ),
    ] = None,
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            envvar="DBURI_CONFIG",
            help="YAML config file with a config.database section",
        ),
    ] = None,
    no_input: Annotated[
        bool,
        typer.Option("--no-input", help="Never prompt for a password"),
    ] = False,
) -> None:
    """Collect connection options for the subcommands."""
    ctx.obj = build_cli_context(
        ConnectionOptions(
            host=host,
            port=port,
            dbname=dbname,
            user=user,
            password=password,
            config_path=config,
            interactive=not no_input,
        )
    )


@db_app.command("uri")
@with_error_handling
def uri_cmd(
    ctx: typer.Context,
    mask: Annotated[
        bool, typer.Option("--mask", help="Replace the password with ****")
    ] = False,
) -> None:
    """Print the connection URI."""
    descriptor = get_cli_context(ctx).descriptor()
    typer.echo(descriptor.masked_uri() if mask else descriptor.to_uri())


@db_app.command("dsn")
@with_error_handling
def dsn_cmd(ctx: typer.Context) -> None:
    """Print the libpq keyword/value connection string."""
    typer.echo(get_cli_context(ctx).descriptor().to_dsn_string())


@db_app.command("ping")
@with_error_handling
def ping_cmd(ctx: typer.Context) -> None:
    """Open a connection and check that the server answers."""
    cli = get_cli_context(ctx)
    descriptor = cli.descriptor()
    conn = descriptor.open()
    try:
        version = STRING.query_scalar(conn, "SHOW server_version")
    finally:
        conn.close()
    cli.console.ok(
        f"Connected to {descriptor.host}:{descriptor.port}/{descriptor.database} "
        f"(PostgreSQL {version})"
    )


@db_app.command("create-db")
@with_error_handling
def create_db_cmd(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Database to create")],
) -> None:
    """Create a database from the maintenance connection."""
    cli = get_cli_context(ctx)
    cli.descriptor().create_database(name)
    cli.console.ok(f"Created database: {name}")


@db_app.command("drop-db")
@with_error_handling
def drop_db_cmd(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Database to drop")],
    force: Annotated[
        bool, typer.Option("--force", "-f", help="Skip confirmation")
    ] = False,
) -> None:
    """Drop a database if it exists."""
    cli = get_cli_context(ctx)
    descriptor = cli.descriptor()
    if not cli.console.confirm_action(
        f"Drop database {name}",
        details=f"Server: {descriptor.host}:{descriptor.port}",
        extra_warning="All data in this database will be lost.",
        force=force,
    ):
        raise typer.Exit(1)
    descriptor.drop_database(name)
    cli.console.ok(f"Dropped database: {name}")


@db_app.command("kill-pglogical")
@with_error_handling
def kill_pglogical_cmd(
    ctx: typer.Context,
    force: Annotated[
        bool, typer.Option("--force", "-f", help="Skip confirmation")
    ] = False,
) -> None:
    """Terminate all pglogical replication backends."""
    cli = get_cli_context(ctx)
    descriptor = cli.descriptor()
    if not cli.console.confirm_action(
        "Terminate pglogical backends",
        details=f"Server: {descriptor.host}:{descriptor.port}",
        force=force,
    ):
        raise typer.Exit(1)
    terminated = descriptor.terminate_replication_backends()
    cli.console.ok(f"Terminated {terminated} pglogical backend(s)")


@db_app.command("dump-schema")
@with_error_handling
def dump_schema_cmd(
    ctx: typer.Context,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write the dump to a file"),
    ] = None,
) -> None:
    """Dump the DDL of the public schema with pg_dump."""
    cli = get_cli_context(ctx)
    schema = cli.descriptor().dump_schema(cli.pg_dump)
    if output is None:
        typer.echo(schema, nl=False)
        return
    output.write_text(schema)
    cli.console.ok(f"Schema written to {output}")


@db_app.command("query")
@with_error_handling
def query_cmd(
    ctx: typer.Context,
    sql: Annotated[str, typer.Argument(help="Query to run")],
    shape: Annotated[
        Shape, typer.Option("--shape", "-s", help="Expected result shape")
    ] = Shape.matrix,
    as_int: Annotated[
        bool, typer.Option("--int", help="Decode values as integers")
    ] = False,
) -> None:
    """Run a query and print the result reduced to the given shape."""
    cli = get_cli_context(ctx)
    reducer = INTEGER if as_int else STRING
    conn = cli.descriptor().open()
    try:
        if shape is Shape.scalar:
            typer.echo(reducer.query_scalar(conn, sql))
            return
        if shape is Shape.row:
            rows = [reducer.query_row(conn, sql)]
        elif shape is Shape.column:
            rows = [[value] for value in reducer.query_column(conn, sql)]
        else:
            rows = reducer.query_matrix(conn, sql)
    finally:
        conn.close()

    table = Table(show_header=False)
    for row in rows:
        if row:
            table.add_row(*(str(value) for value in row))
    cli.console.print(table)
