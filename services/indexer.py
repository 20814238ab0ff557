# ============================================================================
# WHO'S ON FIRST INDEXER
# ============================================================================
# STATUS: Service - single-record indexing
# PURPOSE: Feature -> RecordRow -> upsert on a pooled session
# EXPORTS: WhosOnFirstIndexer
# DEPENDENCIES: services.geometry, services.metadata, infrastructure.connection_pool,
#               infrastructure.whosonfirst_repository, core.placetypes
# ============================================================================
"""
Who's On First Indexer.

Indexes one feature at a time. Owns no concurrency: batch drivers call
index_file from as many worker threads as they like, and the session pool
bounds how many of those reach the database at once.

Steps for one feature:
    1. wof:id 0 (Earth) is skipped - logged, not an error
    2. geometry per the configured mode
    3. placetype name -> placetype id
    4. wof:repo must be present and non-empty
    5. wof:parent_id, -1 when missing (warning)
    6. deprecated / superseded as 0/1
    7. metadata summary -> JSON
    8. upsert on a pooled session (skipped in dry run)

Exports:
    WhosOnFirstIndexer
"""

from pathlib import Path
from typing import Optional, Union

from config import AppConfig, IndexerConfig
from config.defaults import IndexerDefaults
from core.models.enums import GeometryMode
from core.models.feature import WOFFeature
from core.models.record import RecordRow
from core.placetypes import PlacetypeRegistry, get_registry
from exceptions import ConfigurationError, MissingPropertyError, ValidationError
from infrastructure.connection_pool import SessionPool
from infrastructure.whosonfirst_repository import WhosOnFirstRepository
from services.geometry import derive_geometry
from services.metadata import derive_metadata, encode_metadata
from util_logger import LoggerFactory, ComponentType, LogContext

logger = LoggerFactory.create_logger(ComponentType.SERVICE, "WhosOnFirstIndexer")


class WhosOnFirstIndexer:
    """
    Turns WOF features into whosonfirst rows.

    Configuration is fixed at construction. Dry run can be requested per
    call; it defaults to IndexerConfig.debug.

    Usage:
        indexer = WhosOnFirstIndexer.from_config(get_config())
        indexer.index_file("/data/101/736/545/101736545.geojson", "whosonfirst-data")
    """

    def __init__(
        self,
        config: IndexerConfig,
        pool: Optional[SessionPool] = None,
        repository: Optional[WhosOnFirstRepository] = None,
        placetypes: Optional[PlacetypeRegistry] = None,
    ):
        """
        Args:
            config: Indexer configuration
            pool: Session pool; may be None only for dry runs
            repository: Upserter (defaults to the whosonfirst table)
            placetypes: Placetype vocabulary (defaults to the WOF placetypes)
        """
        self.config = config
        self.pool = pool
        self.repository = repository or WhosOnFirstRepository()
        self.placetypes = placetypes or get_registry()

    @classmethod
    def from_config(cls, app_config: AppConfig, connect: bool = True) -> "WhosOnFirstIndexer":
        """
        Build an indexer and its session pool.

        Args:
            app_config: Full application config
            connect: False builds a dry-run-only indexer with no pool

        Raises:
            DatabaseConnectionError: store unreachable
        """
        pool = SessionPool(app_config.database) if connect else None
        repository = WhosOnFirstRepository(table=app_config.database.table)
        return cls(app_config.indexer, pool=pool, repository=repository)

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def index_file(
        self,
        path: Union[str, Path],
        collection: str,
        dry_run: Optional[bool] = None,
    ) -> Optional[RecordRow]:
        """
        Parse a feature file and index it.

        Returns:
            The row written (or built, in dry run); None for the root feature

        Raises:
            FeatureParseError: file unreadable or not a WOF feature
            ValidationError: any per-record input failure
            DatabaseError: upsert failed
        """
        feature = WOFFeature.from_file(path)
        return self.index_feature(feature, collection, dry_run=dry_run)

    def index_feature(
        self,
        feature: WOFFeature,
        collection: str,
        dry_run: Optional[bool] = None,
    ) -> Optional[RecordRow]:
        """
        Index one feature.

        Args:
            feature: Parsed feature
            collection: Caller's collection tag (must be non-empty)
            dry_run: Build but do not execute; None uses config.debug

        Returns:
            The row written (or built, in dry run); None for the root feature

        Raises:
            ValidationError: any per-record input failure
            DatabaseError: upsert failed
        """
        if feature.id == IndexerDefaults.ROOT_FEATURE_ID:
            logger.info("skipping Earth because it confused PostGIS")
            return None

        if not isinstance(collection, str) or not collection.strip():
            raise ValidationError(f"collection is required to index {feature.id}")

        row = self.build_row(feature)

        if dry_run is None:
            dry_run = self.config.debug

        if self.config.verbose:
            abbreviate = self.config.geometry_mode == GeometryMode.DEFAULT.value
            logger.info(
                self.repository.describe_upsert(row, abbreviate_geom=abbreviate),
                extra={'custom_dimensions': LogContext(
                    feature_id=row.id, path=feature.path, collection=collection
                ).to_dict()}
            )

        if dry_run:
            logger.debug(f"Dry run: not writing {row.id}")
            return row

        if self.pool is None:
            raise ConfigurationError(
                f"No session pool configured; cannot write {row.id} outside a dry run"
            )

        with self.pool.session() as conn:
            self.repository.upsert(conn, row)

        return row

    def build_row(self, feature: WOFFeature) -> RecordRow:
        """
        Derive every column for a (non-root) feature.

        Raises:
            ValidationError: geometry, placetype, wof:repo or metadata problems
        """
        wofid = feature.id

        geom = derive_geometry(feature, self.config.geometry_mode)

        placetype = self.placetypes.get_placetype_by_name(feature.placetype)

        repo = feature.string_property("wof:repo")
        if repo is None:
            raise MissingPropertyError(f"can't find wof:repo for {wofid}")
        if repo == "":
            raise MissingPropertyError(f"missing wof:repo for {wofid}")

        key = f"{wofid}#{repo}"

        parent_id = feature.int_property("wof:parent_id")
        if parent_id is None:
            logger.warning(f"FAILED to determine parent ID for {key}")
            parent_id = IndexerDefaults.UNKNOWN_PARENT_ID

        is_deprecated = 1 if feature.is_deprecated else 0
        is_superseded = 1 if feature.is_superseded else 0

        meta = encode_metadata(derive_metadata(feature))

        return RecordRow(
            id=wofid,
            parent_id=parent_id,
            placetype_id=placetype.id,
            is_superseded=is_superseded,
            is_deprecated=is_deprecated,
            meta=meta,
            geom=geom,
        )

    def close(self) -> None:
        if self.pool is not None:
            self.pool.close()
