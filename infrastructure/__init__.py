"""
Infrastructure Package - Lazy Loading Implementation.

Provides the database and filesystem adapters with lazy loading so that
importing the package does not import psycopg or open anything.

    SessionPool            - bounded database sessions (connection_pool.py)
    WhosOnFirstRepository  - upsert/read of the whosonfirst table
    crawl                  - file-tree walker

HOW THIS LAZY LOADING WORKS:
    - __getattr__ intercepts access to the names below
    - The actual import happens only when the name is first used
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .connection_pool import SessionPool as _SessionPool
    from .whosonfirst_repository import WhosOnFirstRepository as _WhosOnFirstRepository
    from .crawl import crawl as _crawl


def __getattr__(name: str):
    """
    Lazy import mechanism - only imports when actually accessed.
    """
    if name == "SessionPool":
        from .connection_pool import SessionPool
        return SessionPool
    elif name == "WhosOnFirstRepository":
        from .whosonfirst_repository import WhosOnFirstRepository
        return WhosOnFirstRepository
    elif name == "crawl":
        from .crawl import crawl
        return crawl
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "SessionPool",
    "WhosOnFirstRepository",
    "crawl",
]
