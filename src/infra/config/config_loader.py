"""Configuration loading from YAML with environment variable substitution."""

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from loguru import logger
from pydantic_core import ValidationError

from .config_data import ConfigData
from .config_utils import substitute_env_vars

CONFIG_PATH = Path("config.yaml")
CONFIG_ENV_VAR = "DBURI_CONFIG"


def default_config_path() -> Path:
    """Return the config path from DBURI_CONFIG, or config.yaml."""
    return Path(os.getenv(CONFIG_ENV_VAR, str(CONFIG_PATH)))


def load_config(file_path: Path | None = None) -> ConfigData:
    """
    Load a YAML file with environment variable substitution.

    Args:
        file_path: Path to the YAML file (default: $DBURI_CONFIG or config.yaml)

    Returns:
        Validated ConfigData

    Raises:
        ValueError: If required environment variables are missing, validation fails,
                   or YAML structure is invalid (missing 'config' key)
        FileNotFoundError: If the YAML file doesn't exist

    YAML Structure Requirements:
        The YAML file must have a top-level 'config:' key containing configuration data:

            config:
              database:
                host: ${PGHOST:-localhost}
                port: 5432
                name: app
                user: app
                password: "${PGPASSWORD:-}"

    Side Effects:
        - Loads the nearest .env file into os.environ (existing variables
          are not overridden)
    """
    file_path = file_path or default_config_path()
    load_dotenv()

    with open(file_path) as f:
        content = f.read()

    logger.info(f"Loading configuration from {file_path}")
    content = substitute_env_vars(content)

    try:
        loaded: dict[str, Any] = yaml.safe_load(content)
        if not loaded:
            raise ValueError("Failed to parse YAML")
    except yaml.YAMLError as e:
        raise ValueError(f"Error parsing YAML: {e}") from e

    try:
        if "config" not in loaded:
            raise ValueError("Invalid YAML structure: missing 'config' key")
        config = ConfigData(**loaded["config"])
    except ValidationError as e:
        raise ValueError(f"Invalid configuration: {e}") from e

    logger.debug(
        f"Database target: {config.database.host}:{config.database.port}/{config.database.name}"
    )
    return config
