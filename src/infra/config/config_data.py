"""Configuration models."""

from typing import Any

from pydantic import BaseModel, field_validator

from src.infra.postgres.connection import ConnectionDescriptor


class DatabaseConfig(BaseModel):
    """Connection settings for the target database."""

    host: str = "localhost"
    port: str = "5432"
    name: str
    user: str
    password: str = ""

    @field_validator("port", mode="before")
    @classmethod
    def _port_as_text(cls, value: Any) -> Any:
        if isinstance(value, int):
            return str(value)
        return value

    def to_descriptor(self, strict: bool = True) -> ConnectionDescriptor:
        """Build a connection descriptor from these settings.

        Args:
            strict: Fall back to PGPASSWORD and fail when no password is found.
                    When False, an empty password is passed through unchanged.

        Raises:
            MissingCredentialError: If strict and no password is available
        """
        if strict:
            return ConnectionDescriptor.create(
                self.host, self.port, self.name, self.user, self.password
            )
        return ConnectionDescriptor(
            host=self.host,
            port=self.port,
            database=self.name,
            user=self.user,
            password=self.password,
        )


class ConfigData(BaseModel):
    """Top-level configuration."""

    database: DatabaseConfig
