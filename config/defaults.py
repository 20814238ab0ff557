"""
Configuration Defaults - Single source of truth for all default values.

Organization:
    - DatabaseDefaults: PostGIS connection and table settings
    - IndexerDefaults: Geometry mode, worker pool and run flags

Usage:
    from config.defaults import DatabaseDefaults, IndexerDefaults

    # In Pydantic Field definitions:
    port: int = Field(default=DatabaseDefaults.PORT, ...)
"""

import os


# =============================================================================
# DATABASE DEFAULTS
# =============================================================================

class DatabaseDefaults:
    """
    PostGIS connection defaults.

    Host and database name have no default - POSTGIS_HOST and
    POSTGIS_DATABASE are required.
    """

    PORT = 5432
    USER = "postgres"
    TABLE = "whosonfirst"
    SRID = 4326
    CONNECTION_TIMEOUT_SECONDS = 30
    MAX_CONNECTIONS = 10
    SSLMODE = "disable"


# =============================================================================
# INDEXER DEFAULTS
# =============================================================================

class IndexerDefaults:
    """
    Indexing engine defaults.

    GEOMETRY_MODE "" stores each feature's own GeoJSON geometry.
    """

    GEOMETRY_MODE = ""
    DEBUG = False
    VERBOSE = False
    # Worker fan-out is bounded by processing units unless overridden
    MAX_WORKERS = os.cpu_count() or 1

    # wof:id reserved for Earth; never indexed
    ROOT_FEATURE_ID = 0
    UNKNOWN_PARENT_ID = -1
    UNKNOWN_COUNTRY = "XX"

    # Filenames the directory crawl indexes (alt files never match)
    FEATURE_FILENAME_PATTERN = r"(\d+)\.geojson$"


__all__ = [
    'DatabaseDefaults',
    'IndexerDefaults',
]
