"""Configuration loading for database targets."""

from .config_data import ConfigData, DatabaseConfig
from .config_loader import load_config
from .config_utils import substitute_env_vars

__all__ = ["ConfigData", "DatabaseConfig", "load_config", "substitute_env_vars"]
