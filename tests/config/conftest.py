"""
Config test fixtures: clean environment via monkeypatch.
"""

import pytest


@pytest.fixture
def clean_env(monkeypatch):
    """Remove all env vars that config modules might read, for isolation."""
    env_vars_to_clear = [
        "POSTGIS_HOST", "POSTGIS_PORT", "POSTGIS_USER", "POSTGIS_PASSWORD",
        "POSTGIS_DATABASE", "POSTGIS_SSLMODE", "POSTGIS_MAX_CONNECTIONS",
        "DB_CONNECTION_TIMEOUT", "WOF_TABLE",
        "WOF_GEOMETRY_MODE", "WOF_DEBUG", "WOF_VERBOSE", "WOF_MAX_WORKERS",
        "LOG_LEVEL",
    ]
    for var in env_vars_to_clear:
        monkeypatch.delenv(var, raising=False)

    import config
    config.reset_config()
    yield monkeypatch
    config.reset_config()
