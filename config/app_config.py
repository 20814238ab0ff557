"""
Application Configuration - Composes domain configs.

Exports:
    AppConfig: Main configuration class
"""

import os
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from exceptions import ConfigurationError
from .database_config import DatabaseConfig
from .indexer_config import IndexerConfig


class AppConfig(BaseModel):
    """
    Application configuration - composition of domain configs.

    Each domain config manages its own validation and defaults. The whole
    tree is frozen: nothing toggles a flag on a running indexer.
    """

    model_config = ConfigDict(frozen=True)

    log_level: str = Field(
        default="INFO",
        description="Log level for every component logger",
        examples=["DEBUG", "INFO", "WARNING"]
    )

    database: DatabaseConfig
    indexer: IndexerConfig = Field(default_factory=IndexerConfig)

    @classmethod
    def from_environment(cls):
        """
        Load all configs from environment.

        Raises:
            ConfigurationError: required variable missing or a value is invalid
        """
        try:
            return cls(
                log_level=os.environ.get("LOG_LEVEL", "INFO"),
                database=DatabaseConfig.from_environment(),
                indexer=IndexerConfig.from_environment(),
            )
        except KeyError as e:
            raise ConfigurationError(f"Missing required environment variable: {e.args[0]}") from e
        except (ValueError, ValidationError) as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e
