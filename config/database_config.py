"""
PostgreSQL/PostGIS Database Configuration.

Provides configuration for the store the indexer writes into: connection
settings, the session pool size and the target table.

Exports:
    DatabaseConfig: Store configuration
    get_postgres_connection_string: Connection string factory
"""

import os
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .defaults import DatabaseDefaults


# ============================================================================
# DATABASE CONFIGURATION
# ============================================================================

class DatabaseConfig(BaseModel):
    """
    PostgreSQL/PostGIS configuration with password authentication.

    Immutable: built once at startup, read by the session pool.
    """

    model_config = ConfigDict(frozen=True)

    host: str = Field(
        ...,
        description="PostgreSQL server hostname",
        examples=["localhost"]
    )

    port: int = Field(
        default=DatabaseDefaults.PORT,
        description="PostgreSQL server port number"
    )

    user: str = Field(
        default=DatabaseDefaults.USER,
        description="PostgreSQL username"
    )

    password: Optional[str] = Field(
        default=None,
        repr=False,
        description="PostgreSQL password from POSTGIS_PASSWORD environment variable"
    )

    database: str = Field(
        ...,
        description="PostgreSQL database name",
        examples=["whosonfirst"]
    )

    table: str = Field(
        default=DatabaseDefaults.TABLE,
        description="Table receiving one row per WOF id"
    )

    sslmode: str = Field(
        default=DatabaseDefaults.SSLMODE,
        description="libpq sslmode"
    )

    max_connections: int = Field(
        default=DatabaseDefaults.MAX_CONNECTIONS,
        description="""Maximum concurrent database sessions.

        This is the size of the session pool: a worker that cannot get a
        session blocks until another worker returns one.
        """
    )

    connection_timeout_seconds: int = Field(
        default=DatabaseDefaults.CONNECTION_TIMEOUT_SECONDS,
        description="Connect timeout for opening new sessions"
    )

    @field_validator('max_connections')
    @classmethod
    def validate_max_connections(cls, v):
        if v < 1:
            raise ValueError(f"max_connections must be >= 1, got {v}")
        return v

    @property
    def connection_string(self) -> str:
        """
        Build libpq connection string.
        """
        password_part = f" password={self.password}" if self.password else ""
        return (
            f"host={self.host} port={self.port} dbname={self.database} "
            f"user={self.user}{password_part} sslmode={self.sslmode} "
            f"connect_timeout={self.connection_timeout_seconds}"
        )

    def debug_dict(self) -> dict:
        """Debug output with masked password."""
        return {
            "host": self.host,
            "port": self.port,
            "user": self.user,
            "database": self.database,
            "password": "***MASKED***" if self.password else None,
            "table": self.table,
            "sslmode": self.sslmode,
            "max_connections": self.max_connections,
            "connection_timeout_seconds": self.connection_timeout_seconds,
        }

    @classmethod
    def from_environment(cls):
        """Load from environment variables.

        POSTGIS_HOST and POSTGIS_DATABASE are required.
        """
        return cls(
            host=os.environ["POSTGIS_HOST"],
            port=int(os.environ.get("POSTGIS_PORT", str(DatabaseDefaults.PORT))),
            user=os.environ.get("POSTGIS_USER", DatabaseDefaults.USER),
            password=os.environ.get("POSTGIS_PASSWORD"),
            database=os.environ["POSTGIS_DATABASE"],
            table=os.environ.get("WOF_TABLE", DatabaseDefaults.TABLE),
            sslmode=os.environ.get("POSTGIS_SSLMODE", DatabaseDefaults.SSLMODE),
            max_connections=int(os.environ.get(
                "POSTGIS_MAX_CONNECTIONS", str(DatabaseDefaults.MAX_CONNECTIONS)
            )),
            connection_timeout_seconds=int(os.environ.get(
                "DB_CONNECTION_TIMEOUT", str(DatabaseDefaults.CONNECTION_TIMEOUT_SECONDS)
            )),
        )


def get_postgres_connection_string(config: Optional[DatabaseConfig] = None) -> str:
    """
    Connection string for the configured store.

    Args:
        config: Explicit config, or None to load from the environment

    Returns:
        libpq key/value connection string
    """
    if config is None:
        config = DatabaseConfig.from_environment()
    return config.connection_string
