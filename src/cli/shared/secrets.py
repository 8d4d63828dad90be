"""Password resolution for CLI commands."""

import getpass
import os

import typer
from loguru import logger

from src.cli.shared.console import console
from src.infra.postgres.connection import PASSWORD_ENV_VAR, PasswordResolver


def password_resolver(
    prompt: str, env_var: str = PASSWORD_ENV_VAR, interactive: bool = True
) -> PasswordResolver:
    """Build a resolver that reads env_var and optionally prompts as a fallback.

    Non-interactive resolvers return None when the variable is unset, which
    makes ConnectionDescriptor.create() raise MissingCredentialError.
    """

    def resolve() -> str | None:
        password = os.environ.get(env_var)
        if password:
            # stdout carries uri/dsn/dump-schema output
            logger.debug(f"Using password from {env_var}")
            return password
        logger.debug(f"Environment variable {env_var} not set")
        if not interactive:
            return None

        try:
            password = getpass.getpass(prompt)
        except (EOFError, KeyboardInterrupt):
            console.print("\n[dim]Password input cancelled[/dim]")
            raise typer.Exit(1) from None
        return password or None

    return resolve
