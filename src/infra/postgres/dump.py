"""PostgreSQL schema dump via pg_dump.

Provides a thin command runner and the schema-only dump used by
ConnectionDescriptor.dump_schema().
"""

from __future__ import annotations

import subprocess
from collections.abc import Sequence
from dataclasses import dataclass

from loguru import logger

from .errors import ExternalToolError

PG_DUMP = "pg_dump"


@dataclass
class CommandResult:
    """Result of a command execution."""

    success: bool
    stdout: str = ""
    stderr: str = ""
    returncode: int = 0


class CommandRunner:
    """Low-level command executor with consistent result handling."""

    def run(self, cmd: Sequence[str]) -> CommandResult:
        """Execute a command and return structured result.

        Args:
            cmd: Command and arguments as a sequence

        Returns:
            CommandResult with success status, output, and return code

        Raises:
            OSError: If the executable cannot be launched
        """
        result = subprocess.run(
            list(cmd),
            capture_output=True,
            text=True,
            check=False,
        )
        return CommandResult(
            success=result.returncode == 0,
            stdout=result.stdout or "",
            stderr=result.stderr or "",
            returncode=result.returncode,
        )


class PgDump:
    """Runs pg_dump against a connection URI."""

    def __init__(
        self, runner: CommandRunner | None = None, executable: str = PG_DUMP
    ) -> None:
        self._runner = runner or CommandRunner()
        self._executable = executable

    def schema_command(self, uri: str) -> list[str]:
        """Build the argument vector for a public-schema-only dump."""
        return [self._executable, "-s", f"--dbname={uri}", "--schema=public"]

    def dump_schema(self, uri: str) -> str:
        """Dump the DDL of the public schema.

        Args:
            uri: Connection URI passed to pg_dump verbatim

        Returns:
            pg_dump standard output

        Raises:
            ExternalToolError: If pg_dump cannot be launched or exits non-zero
        """
        cmd = self.schema_command(uri)
        try:
            result = self._runner.run(cmd)
        except OSError as e:
            raise ExternalToolError(
                f"Failed to launch {self._executable}: {e}"
            ) from e

        if not result.success:
            raise ExternalToolError(
                f"{self._executable} exited with status {result.returncode}",
                returncode=result.returncode,
                stderr=result.stderr,
            )

        logger.debug(f"{self._executable} produced {len(result.stdout)} bytes")
        return result.stdout
