# ============================================================================
# CONFIG PACKAGE INIT
# ============================================================================
# STATUS: Configuration package exports
# PURPOSE: Single entry point for indexer configuration
# EXPORTS: AppConfig, DatabaseConfig, IndexerConfig, get_config, debug_config
# DEPENDENCIES: pydantic
# ============================================================================

"""
Configuration Package - Domain-Specific Configuration Modules

Structure:
    config/
    ├── __init__.py              # This file - exports and singleton
    ├── app_config.py            # Main config (composes domain configs)
    ├── database_config.py       # PostgreSQL/PostGIS and session pool size
    ├── indexer_config.py        # Geometry mode, workers, dry-run/verbose
    └── defaults.py              # Default values

Usage:
    # Singleton pattern (preferred)
    from config import get_config
    config = get_config()
    mode = config.indexer.geometry_mode

    # Debug output
    from config import debug_config
    info = debug_config()  # Passwords masked
"""

from typing import Optional

from .defaults import DatabaseDefaults, IndexerDefaults
from .database_config import DatabaseConfig, get_postgres_connection_string
from .indexer_config import IndexerConfig
from .app_config import AppConfig


# ============================================================================
# SINGLETON PATTERN
# ============================================================================

_config_instance: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """
    Get global configuration singleton.

    Returns:
        AppConfig instance loaded from environment
    """
    global _config_instance
    if _config_instance is None:
        _config_instance = AppConfig.from_environment()
    return _config_instance


def reset_config() -> None:
    """Drop the cached singleton (tests and the CLI use this)."""
    global _config_instance
    _config_instance = None


def debug_config() -> dict:
    """
    Get sanitized configuration for debugging (masks sensitive values).

    Returns:
        Dictionary with configuration values, passwords masked
    """
    try:
        config = get_config()
        return {
            'database': config.database.debug_dict(),
            'indexer': config.indexer.model_dump(),
            'log_level': config.log_level,
        }
    except Exception as e:
        return {'error': f'Configuration validation failed: {e}'}


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    # Main config
    'AppConfig',
    'get_config',
    'reset_config',
    'debug_config',

    # Database
    'DatabaseConfig',
    'DatabaseDefaults',
    'get_postgres_connection_string',

    # Indexer
    'IndexerConfig',
    'IndexerDefaults',
]
