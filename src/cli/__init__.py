"""Main CLI application module.

This module provides the main entry point for the dburi CLI.

Command Groups:
- db: PostgreSQL connection and administration commands
"""

import typer

from .commands import db_app

# Create the main CLI application
app = typer.Typer(
    help="🐘 dburi - PostgreSQL connection descriptor and query tool",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.add_typer(db_app, name="db")


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
