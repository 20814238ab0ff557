"""
Unit test fixtures: configs, a session pool over fakes, indexers.
"""

import pytest

from config import DatabaseConfig, IndexerConfig


@pytest.fixture
def db_config():
    """DatabaseConfig with a small session pool."""
    return DatabaseConfig(host="localhost", database="testdb", max_connections=2)


@pytest.fixture
def session_pool(db_config, fake_pool):
    """SessionPool over a FakeConnectionPool."""
    from infrastructure.connection_pool import SessionPool
    pool = SessionPool(db_config, pool=fake_pool)
    yield pool
    pool.close()


@pytest.fixture
def make_indexer(session_pool):
    """Factory fixture: WhosOnFirstIndexer with IndexerConfig overrides."""
    from services.indexer import WhosOnFirstIndexer

    def _make(pool=session_pool, **config_overrides):
        config = IndexerConfig(**config_overrides)
        return WhosOnFirstIndexer(config, pool=pool)
    return _make

