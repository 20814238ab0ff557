# ============================================================================
# WOF-PGIS-INDEX COMMAND LINE
# ============================================================================
# STATUS: Entry point - console script wof-pgis-index
# PURPOSE: Index Who's On First records into PostGIS from the shell
# EXPORTS: main, build_parser, build_config
# DEPENDENCIES: config, services.indexer, services.batch
# ============================================================================
"""
Index Who's On First features into a PostGIS whosonfirst table.

Examples:
  # Every <id>.geojson under a data tree (stops at the first failure)
  wof-pgis-index --mode directory --collection whosonfirst-data /usr/local/data/whosonfirst-data/data

  # CSV manifests; 'path' is relative to --data-root
  wof-pgis-index --mode meta --data-root /usr/local/data/whosonfirst-data/data \\
      --collection whosonfirst-data /usr/local/data/whosonfirst-data/meta/wof-locality-latest.csv

  # Newline-delimited list of files, store centroids only
  wof-pgis-index --mode filelist --geometry centroid --workers 8 --collection venues files.txt

  # Build statements without touching the database
  wof-pgis-index --debug --verbose --collection test 101736545.geojson

Database options default to the POSTGIS_* environment variables.
Exit status is 1 when any record failed to index.
"""

import argparse
import os
import sys
from typing import List, Optional

from pydantic import ValidationError as PydanticValidationError

from config import AppConfig, DatabaseConfig, IndexerConfig
from config.defaults import DatabaseDefaults, IndexerDefaults
from core.models.enums import GeometryMode
from core.models.results import BatchResult
from exceptions import BusinessLogicError, ConfigurationError
from services.batch import BatchIndexer
from services.geometry import resolve_geometry_mode
from services.indexer import WhosOnFirstIndexer
from util_logger import LoggerFactory, ComponentType, LogLevel

logger = LoggerFactory.create_logger(ComponentType.CLI, "wof-pgis-index")

MODES = ("files", "directory", "filelist", "meta")


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in ("1", "true", "yes", "on")


def build_parser() -> argparse.ArgumentParser:
    env = os.environ
    parser = argparse.ArgumentParser(
        prog="wof-pgis-index",
        description="Index Who's On First records into PostGIS",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__.split("\n", 2)[2],
    )
    parser.add_argument(
        "paths", nargs="+",
        help="Feature files, directories, file lists or CSV manifests (see --mode)",
    )
    parser.add_argument(
        "--mode", choices=MODES, default="files",
        help="How to read PATHS (default: files)",
    )
    parser.add_argument(
        "--collection", required=True,
        help="Collection tag for this run (e.g. the repo name)",
    )
    parser.add_argument(
        "--data-root", default=None,
        help="Directory that manifest 'path' values are relative to (meta mode)",
    )
    parser.add_argument(
        "--nfs-kludge", action="store_true",
        help="lstat every directory entry while crawling (directory mode)",
    )

    db = parser.add_argument_group("database")
    db.add_argument("--host", default=env.get("POSTGIS_HOST", "localhost"))
    db.add_argument("--port", type=int, default=env.get("POSTGIS_PORT", str(DatabaseDefaults.PORT)))
    db.add_argument("--user", default=env.get("POSTGIS_USER", DatabaseDefaults.USER))
    db.add_argument("--password", default=env.get("POSTGIS_PASSWORD"))
    db.add_argument("--database", default=env.get("POSTGIS_DATABASE", "whosonfirst"))
    db.add_argument("--table", default=env.get("WOF_TABLE", DatabaseDefaults.TABLE))
    db.add_argument("--sslmode", default=env.get("POSTGIS_SSLMODE", DatabaseDefaults.SSLMODE))
    db.add_argument(
        "--max-conns", type=int,
        default=env.get("POSTGIS_MAX_CONNECTIONS", str(DatabaseDefaults.MAX_CONNECTIONS)),
        help="Maximum concurrent database sessions",
    )
    db.add_argument(
        "--connect-timeout", type=int,
        default=env.get("DB_CONNECTION_TIMEOUT", str(DatabaseDefaults.CONNECTION_TIMEOUT_SECONDS)),
        help="Seconds to wait when opening a session",
    )
    db.add_argument(
        "--create-table", action="store_true",
        help="Create the table and its spatial index if missing",
    )

    idx = parser.add_argument_group("indexing")
    idx.add_argument(
        "--geometry", default=env.get("WOF_GEOMETRY_MODE", IndexerDefaults.GEOMETRY_MODE),
        help="Geometry to store: '' (feature geometry), "
             + ", ".join(repr(m.value) for m in GeometryMode if m.value),
    )
    idx.add_argument(
        "--workers", type=int,
        default=env.get("WOF_MAX_WORKERS", str(IndexerDefaults.MAX_WORKERS)),
        help="Concurrent indexing tasks (filelist and meta modes)",
    )
    idx.add_argument(
        "--debug", action="store_true", default=_env_flag("WOF_DEBUG"),
        help="Build statements but do not execute them",
    )
    idx.add_argument(
        "--verbose", action="store_true", default=_env_flag("WOF_VERBOSE"),
        help="Log every statement",
    )
    parser.add_argument(
        "--log-level", choices=[level.value for level in LogLevel],
        default=env.get("LOG_LEVEL", "INFO").upper(),
    )
    return parser


def build_config(args: argparse.Namespace) -> AppConfig:
    """
    Application config from parsed arguments.

    Raises:
        ConfigurationError: a value failed validation
    """
    try:
        return AppConfig(
            log_level=args.log_level,
            database=DatabaseConfig(
                host=args.host,
                port=args.port,
                user=args.user,
                password=args.password,
                database=args.database,
                table=args.table,
                sslmode=args.sslmode,
                max_connections=args.max_conns,
                connection_timeout_seconds=args.connect_timeout,
            ),
            indexer=IndexerConfig(
                geometry_mode=args.geometry,
                debug=args.debug,
                verbose=args.verbose,
                max_workers=args.workers,
            ),
        )
    except PydanticValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def _run_mode(batch: BatchIndexer, args: argparse.Namespace) -> BatchResult:
    if args.mode == "files":
        return batch.index_paths(args.paths, args.collection)

    result = BatchResult()
    for path in args.paths:
        if args.mode == "directory":
            result = result.merge(batch.index_directory(path, args.collection, nfs_kludge=args.nfs_kludge))
        elif args.mode == "filelist":
            result = result.merge(batch.index_file_list(path, args.collection))
        else:
            result = result.merge(batch.index_meta_file(path, args.collection, args.data_root))
    return result


def run(args: argparse.Namespace) -> int:
    config = build_config(args)
    try:
        LoggerFactory.set_level(LogLevel.from_string(config.log_level))
    except KeyError as e:
        raise ConfigurationError(f"Unknown log level: {config.log_level}") from e

    # Unknown modes would otherwise fail once per record
    resolve_geometry_mode(config.indexer.geometry_mode)

    logger.info(
        f"Indexing {len(args.paths)} {args.mode} input(s) into {config.database.table}",
        extra={'custom_dimensions': {
            'mode': args.mode,
            'collection': args.collection,
            'geometry_mode': config.indexer.geometry_mode,
            'dry_run': config.indexer.debug,
            'database': config.database.debug_dict(),
        }}
    )

    indexer = WhosOnFirstIndexer.from_config(config, connect=not config.indexer.debug)
    try:
        if args.create_table:
            if indexer.pool is None:
                logger.warning("--create-table ignored in dry run")
            else:
                with indexer.pool.session() as conn:
                    indexer.repository.ensure_table(conn)

        result = _run_mode(BatchIndexer(indexer), args)
    finally:
        indexer.close()

    logger.info(
        f"Indexed {result.indexed}, skipped {result.skipped}, failed {result.failed} of {result.total}"
    )
    for line in result.error_summary():
        logger.error(line)

    return 0 if result.ok else 1


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.mode == "meta" and not args.data_root:
        parser.error("--data-root is required with --mode meta")

    try:
        return run(args)
    except ConfigurationError as e:
        logger.error(str(e))
        return 2
    except (BusinessLogicError, OSError) as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
