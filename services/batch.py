# ============================================================================
# BATCH DRIVERS
# ============================================================================
# STATUS: Service - fan-out over many source files
# PURPOSE: Directory crawl, file list and CSV manifest indexing with bounded workers
# EXPORTS: BatchIndexer
# DEPENDENCIES: services.indexer, infrastructure.crawl, core.models.results
# ============================================================================
"""
Batch Drivers.

Three ways to find source files, one way to index them:

    index_directory  - crawl a data tree; files named <digits>.geojson are
                       indexed one after another and the first failure stops
                       the crawl (IndexingError)
    index_file_list  - newline-delimited paths; bounded concurrent fan-out
    index_meta_file  - CSV manifest with a 'path' column relative to a data
                       root; bounded concurrent fan-out

Concurrent fan-out:
    A slot semaphore of max_workers is acquired before each submit and
    released when the task finishes, so at most max_workers files are in
    flight and the manifest is never read far ahead of the workers. Each
    task indexes exactly one file. The driver returns only after every task
    has finished.

    Per-record failures are collected, not raised: the returned BatchResult
    lists every failed path. Call raise_for_failures() to turn them into a
    BatchIndexError. Errors reading the manifest itself are raised after the
    in-flight tasks finish.

Exports:
    BatchIndexer
"""

import csv
import os
import re
import threading
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from typing import IO, Iterable, Iterator, List, Optional

from config.defaults import IndexerDefaults
from core.models.enums import RecordOutcome
from core.models.results import BatchResult, IndexFailure
from exceptions import IndexingError, ManifestError
from infrastructure.crawl import crawl
from services.indexer import WhosOnFirstIndexer
from util_logger import LoggerFactory, ComponentType, LogContext, log_exceptions

logger = LoggerFactory.create_logger(ComponentType.DRIVER, "BatchIndexer")

FEATURE_FILENAME_RE = re.compile(IndexerDefaults.FEATURE_FILENAME_PATTERN)


class _BatchCollector:
    """
    Thread-safe tally of record outcomes for one batch run.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._total = 0
        self._indexed = 0
        self._skipped = 0
        self._failures: List[IndexFailure] = []

    def dispatched(self) -> None:
        with self._lock:
            self._total += 1

    def record(self, outcome: RecordOutcome, path: str = "", error: Optional[BaseException] = None) -> None:
        with self._lock:
            if outcome is RecordOutcome.INDEXED:
                self._indexed += 1
            elif outcome is RecordOutcome.SKIPPED:
                self._skipped += 1
            else:
                self._failures.append(IndexFailure(
                    path=path,
                    error_type=type(error).__name__,
                    error_message=str(error),
                ))

    def result(self) -> BatchResult:
        with self._lock:
            return BatchResult(
                total=self._total,
                indexed=self._indexed,
                skipped=self._skipped,
                failures=list(self._failures),
            )


class BatchIndexer:
    """
    Drives a WhosOnFirstIndexer over many files.

    Usage:
        batch = BatchIndexer(indexer)
        result = batch.index_meta_file("meta/wof-locality-latest.csv", "whosonfirst-data", "/data")
        result.raise_for_failures()
    """

    def __init__(self, indexer: WhosOnFirstIndexer, max_workers: Optional[int] = None):
        """
        Args:
            indexer: Single-record indexer shared by all workers
            max_workers: Concurrent tasks; defaults to IndexerConfig.max_workers
        """
        self.indexer = indexer
        self.max_workers = max_workers or indexer.config.max_workers
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")

    # =========================================================================
    # DIRECTORY CRAWL (synchronous)
    # =========================================================================

    @log_exceptions(ComponentType.DRIVER, "BatchIndexer")
    def index_directory(self, root: str, collection: str, nfs_kludge: bool = False) -> BatchResult:
        """
        Index every <digits>.geojson file under root, one at a time.

        Raises:
            IndexingError: first record that failed; the crawl stops there
            FileNotFoundError: root does not exist
        """
        collector = _BatchCollector()
        run_id = _new_run_id()
        started = time.monotonic()

        def visit(path: str, info: os.stat_result) -> None:
            if not FEATURE_FILENAME_RE.search(os.path.basename(path)):
                return

            collector.dispatched()
            try:
                row = self.indexer.index_file(path, collection)
            except Exception as e:
                raise IndexingError(f"failed to index {path}, because {e}") from e

            collector.record(RecordOutcome.SKIPPED if row is None else RecordOutcome.INDEXED)

        crawl(root, visit, nfs_kludge=nfs_kludge)

        result = collector.result()
        self._log_complete(f"directory {root}", result, started, run_id, collection)
        return result

    # =========================================================================
    # CONCURRENT FAN-OUT
    # =========================================================================

    def index_paths(self, paths: Iterable[str], collection: str) -> BatchResult:
        """
        Index each path on the worker pool and wait for all of them.

        Errors raised while iterating `paths` propagate after the tasks
        already dispatched have finished.
        """
        collector = _BatchCollector()
        slots = threading.BoundedSemaphore(self.max_workers)
        run_id = _new_run_id()
        started = time.monotonic()

        def release_slot(_future) -> None:
            slots.release()

        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="wof-index") as executor:
            for path in paths:
                slots.acquire()
                try:
                    future = executor.submit(self._index_one, path, collection, collector, run_id)
                except BaseException:
                    slots.release()
                    raise
                collector.dispatched()
                future.add_done_callback(release_slot)

        result = collector.result()
        self._log_complete(f"{result.total} paths", result, started, run_id, collection)
        return result

    def _index_one(self, path: str, collection: str, collector: _BatchCollector, run_id: str) -> None:
        try:
            row = self.indexer.index_file(path, collection)
        except Exception as e:
            dims = LogContext(path=path, collection=collection, run_id=run_id).to_dict()
            dims['error_type'] = type(e).__name__
            logger.error(f"failed to index {path}, because {e}", extra={'custom_dimensions': dims})
            collector.record(RecordOutcome.FAILED, path=path, error=e)
            return

        collector.record(RecordOutcome.SKIPPED if row is None else RecordOutcome.INDEXED)

    # =========================================================================
    # MANIFEST DRIVERS
    # =========================================================================

    @log_exceptions(ComponentType.DRIVER, "BatchIndexer")
    def index_file_list(self, list_path: str, collection: str) -> BatchResult:
        """
        Index every path listed (one per line) in list_path.

        Raises:
            ManifestError: list cannot be opened or read
        """
        try:
            f = open(list_path, "r", encoding="utf-8-sig")
        except OSError as e:
            raise ManifestError(f"failed to open file list {list_path}: {e}") from e

        logger.info(f"Indexing file list {list_path} with {self.max_workers} workers")
        with f:
            return self.index_paths(_read_file_list(f, list_path), collection)

    @log_exceptions(ComponentType.DRIVER, "BatchIndexer")
    def index_meta_file(self, csv_path: str, collection: str, data_root: str) -> BatchResult:
        """
        Index every row of a CSV manifest; 'path' is relative to data_root.

        Raises:
            ManifestError: file unreadable, no 'path' column, or an empty path
        """
        try:
            f = open(csv_path, "r", encoding="utf-8-sig", newline="")
        except OSError as e:
            raise ManifestError(f"failed to open meta file {csv_path}: {e}") from e

        logger.info(f"Indexing meta file {csv_path} with {self.max_workers} workers")
        with f:
            reader = csv.DictReader(f)
            try:
                fieldnames = reader.fieldnames
            except (csv.Error, UnicodeDecodeError) as e:
                raise ManifestError(f"failed to read meta file {csv_path}: {e}") from e

            if not fieldnames or "path" not in fieldnames:
                raise ManifestError(f"missing 'path' column in meta file {csv_path}")

            return self.index_paths(_read_meta_rows(reader, csv_path, data_root), collection)

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _log_complete(self, source: str, result: BatchResult, started: float,
                      run_id: str, collection: str) -> None:
        elapsed = time.monotonic() - started
        message = (
            f"Batch complete for {source}: {result.indexed} indexed, "
            f"{result.skipped} skipped, {result.failed} failed "
            f"of {result.total} in {elapsed:.1f}s"
        )
        extra = {'custom_dimensions': LogContext(collection=collection, run_id=run_id).to_dict()}
        if result.ok:
            logger.info(message, extra=extra)
        else:
            logger.warning(message, extra=extra)


def _new_run_id() -> str:
    """Short id shared by every log record of one batch run."""
    return uuid.uuid4().hex[:12]


def _read_file_list(f: IO[str], list_path: str) -> Iterator[str]:
    try:
        for line in f:
            path = line.strip()
            if path:
                yield path
    except (OSError, UnicodeDecodeError) as e:
        raise ManifestError(f"failed to read file list {list_path}: {e}") from e


def _read_meta_rows(reader: csv.DictReader, csv_path: str, data_root: str) -> Iterator[str]:
    try:
        for row in reader:
            rel_path = row.get("path")
            if not rel_path:
                raise ManifestError(f"empty 'path' at line {reader.line_num} of {csv_path}")
            yield os.path.join(data_root, rel_path)
    except (csv.Error, OSError, UnicodeDecodeError) as e:
        raise ManifestError(f"failed to read meta file {csv_path}: {e}") from e
