# ============================================================================
# SESSION POOL
# ============================================================================
# STATUS: Infrastructure - bounded database sessions for the indexer
# PURPOSE: Cap concurrent PostGIS sessions with a fixed set of tokens
# EXPORTS: SessionPool
# DEPENDENCIES: psycopg, psycopg_pool, config.database_config
# ============================================================================
"""
Session Pool for the Indexer.

================================================================================
ARCHITECTURE
================================================================================

Two bounds protect a batch run:

    Worker pool (services/batch.py)  - how many files are read/parsed at once
    Session pool (this module)       - how many database sessions are open at once

The session pool holds exactly N tokens (N = DatabaseConfig.max_connections).
acquire() takes a token and a reusable connection; release() hands both
back. A worker that finds no free token blocks until another worker
releases one. There is no timeout at this layer: a stuck statement holds
its token until the server (or connect_timeout) gives up.

Connections come from a psycopg_pool.ConnectionPool sized to the token
count, so a token holder never waits on the underlying pool.

================================================================================
USAGE
================================================================================

    pool = SessionPool(config.database)

    with pool.session() as conn:
        repository.upsert(conn, row)

    pool.close()

session() releases the token on every exit path, including exceptions.
"""

import threading
from contextlib import contextmanager
from typing import Any, Dict, Optional

import psycopg
from psycopg_pool import ConnectionPool, PoolTimeout

from config.database_config import DatabaseConfig
from exceptions import DatabaseConnectionError, DatabaseError
from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.POOL, "SessionPool")


# =============================================================================
# POOL CONFIGURATION
# =============================================================================

# Timeout for draining connections on pool close (seconds)
POOL_CLOSE_TIMEOUT = 30.0

# Connections kept open while idle
POOL_MIN_SIZE = 1


class SessionPool:
    """
    Fixed-capacity pool of database sessions.

    Tokens in circulation stay constant for the pool's lifetime:
    available + outstanding == size.

    Usage:
        with SessionPool(db_config) as pool:
            with pool.session() as conn:
                conn.execute("SELECT 1")
    """

    def __init__(self, config: DatabaseConfig, pool: Optional[ConnectionPool] = None):
        """
        Open the underlying pool and verify the store is reachable.

        Args:
            config: Database configuration (max_connections = token count)
            pool: Pre-built connection pool (tests inject fakes here)

        Raises:
            DatabaseConnectionError: store unreachable; no tokens are issued
        """
        self._size = config.max_connections
        self._close_timeout = POOL_CLOSE_TIMEOUT

        if pool is None:
            pool = self._create_pool(config)
        self._pool = pool

        self._ping()

        self._tokens = threading.BoundedSemaphore(self._size)
        self._lock = threading.Lock()
        self._outstanding: Dict[int, Any] = {}
        self._closed = False

        logger.info(
            f"Session pool ready: host={config.host}, database={config.database}, "
            f"max_connections={self._size}"
        )

    @staticmethod
    def _create_pool(config: DatabaseConfig) -> ConnectionPool:
        logger.info(
            f"Creating connection pool: min={min(POOL_MIN_SIZE, config.max_connections)}, "
            f"max={config.max_connections}"
        )

        pool = ConnectionPool(
            conninfo=config.connection_string,
            min_size=min(POOL_MIN_SIZE, config.max_connections),
            max_size=config.max_connections,
            timeout=float(config.connection_timeout_seconds),
            name="wof-session-pool",
            open=False,
        )

        try:
            pool.open(wait=True, timeout=float(config.connection_timeout_seconds))
        except (PoolTimeout, psycopg.Error) as e:
            pool.close(timeout=0)
            raise DatabaseConnectionError(
                f"Cannot connect to {config.host}:{config.port}/{config.database}: {e}"
            ) from e

        return pool

    def _ping(self) -> None:
        try:
            conn = self._pool.getconn()
        except (PoolTimeout, psycopg.Error) as e:
            self._pool.close(timeout=0)
            raise DatabaseConnectionError(f"Connectivity check failed: {e}") from e

        try:
            conn.execute("SELECT 1")
        except psycopg.Error as e:
            self._pool.putconn(conn)
            self._pool.close(timeout=0)
            raise DatabaseConnectionError(f"Connectivity check failed: {e}") from e

        conn.rollback()
        self._pool.putconn(conn)

    # =========================================================================
    # ACQUIRE / RELEASE
    # =========================================================================

    def acquire(self):
        """
        Take one token and a connection. Blocks until a token is free.

        Every acquire() must be paired with release(); prefer session().

        Raises:
            DatabaseError: pool closed, or the connection could not be opened
        """
        if self._closed:
            raise DatabaseError("Session pool is closed. Cannot get new connections.")

        self._tokens.acquire()
        try:
            conn = self._pool.getconn()
        except (PoolTimeout, psycopg.Error) as e:
            self._tokens.release()
            raise DatabaseError(f"Failed to get a database session: {e}") from e
        except BaseException:
            self._tokens.release()
            raise

        with self._lock:
            self._outstanding[id(conn)] = conn
        return conn

    def release(self, conn) -> None:
        """
        Return a connection and exactly one token.

        Raises:
            ValueError: conn was not handed out by this pool (or already released)
        """
        with self._lock:
            if self._outstanding.pop(id(conn), None) is None:
                raise ValueError("connection was not acquired from this pool")

        try:
            self._pool.putconn(conn)
        finally:
            self._tokens.release()

    @contextmanager
    def session(self):
        """
        Scoped session: the token is returned however the block exits.

        An exception inside the block rolls the transaction back before the
        connection goes back to the pool.
        """
        conn = self.acquire()
        try:
            yield conn
        except BaseException:
            try:
                conn.rollback()
            except psycopg.Error as e:
                logger.warning(f"Rollback failed while releasing session: {e}")
            raise
        finally:
            self.release(conn)

    # =========================================================================
    # STATS / LIFECYCLE
    # =========================================================================

    @property
    def size(self) -> int:
        return self._size

    @property
    def outstanding(self) -> int:
        with self._lock:
            return len(self._outstanding)

    @property
    def available(self) -> int:
        return self._size - self.outstanding

    def get_pool_stats(self) -> Dict[str, Any]:
        """
        Pool statistics for logging and diagnostics.

        Returns:
            dict with keys size, available, outstanding, closed and, when the
            underlying pool exposes them, pool_size/pool_available/requests_waiting
        """
        stats: Dict[str, Any] = {
            'size': self._size,
            'available': self.available,
            'outstanding': self.outstanding,
            'closed': self._closed,
        }

        get_stats = getattr(self._pool, 'get_stats', None)
        if callable(get_stats):
            pool_stats = get_stats()
            for key in ('pool_size', 'pool_available', 'requests_waiting'):
                if key in pool_stats:
                    stats[key] = pool_stats[key]

        return stats

    def close(self) -> None:
        """
        Close the underlying pool.

        Sessions still checked out are not waited for; their connections are
        closed when released. The close timeout only bounds the pool's own
        background workers.
        """
        if self._closed:
            return
        self._closed = True
        logger.info("Shutting down session pool...")
        self._pool.close(timeout=self._close_timeout)
        logger.info("Session pool shutdown complete")

    def __enter__(self) -> "SessionPool":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = [
    'SessionPool',
]
