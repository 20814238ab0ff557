"""
File-tree Crawler.

Depth-first walk of a data directory, calling visit(path, stat_result) for
every regular file in name order. An exception raised by visit stops the
crawl and propagates to the caller.

nfs_kludge: some NFS mounts report unknown entry types from readdir, so
directory entries are lstat'ed one by one instead of trusting
os.scandir's cached type information.

Exports:
    crawl: Walk a tree and visit every file
"""

import os
import stat
from typing import Callable, Iterator, Tuple

from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.ADAPTER, "Crawler")

Visitor = Callable[[str, os.stat_result], None]


def _walk_scandir(directory: str) -> Iterator[Tuple[str, os.stat_result]]:
    with os.scandir(directory) as it:
        entries = sorted(it, key=lambda e: e.name)

    for entry in entries:
        if entry.is_dir(follow_symlinks=False):
            yield from _walk_scandir(entry.path)
        elif entry.is_file(follow_symlinks=False):
            yield entry.path, entry.stat(follow_symlinks=False)


def _walk_listdir(directory: str) -> Iterator[Tuple[str, os.stat_result]]:
    for name in sorted(os.listdir(directory)):
        path = os.path.join(directory, name)
        info = os.lstat(path)
        if stat.S_ISDIR(info.st_mode):
            yield from _walk_listdir(path)
        elif stat.S_ISREG(info.st_mode):
            yield path, info


def crawl(root: str, visit: Visitor, nfs_kludge: bool = False) -> int:
    """
    Visit every regular file under root.

    Args:
        root: Directory (or single file) to walk
        visit: Callback; raise to abort the crawl
        nfs_kludge: lstat each entry instead of trusting readdir types

    Returns:
        Number of files visited

    Raises:
        FileNotFoundError: root does not exist
        Exception: whatever visit raised
    """
    if not os.path.exists(root):
        raise FileNotFoundError(f"Crawl root does not exist: {root}")

    if os.path.isfile(root):
        visit(root, os.stat(root))
        return 1

    walker = _walk_listdir if nfs_kludge else _walk_scandir
    logger.info(f"Crawling {root} (nfs_kludge={nfs_kludge})")

    visited = 0
    for path, info in walker(root):
        visit(path, info)
        visited += 1

    logger.info(f"Crawled {visited} files under {root}")
    return visited
