# ============================================================================
# WHOSONFIRST REPOSITORY
# ============================================================================
# STATUS: Repository - upsert/read for the whosonfirst table
# PURPOSE: One atomic INSERT ... ON CONFLICT per WOF id
# EXPORTS: WhosOnFirstRepository
# DEPENDENCIES: psycopg, core.models.record
# ============================================================================
"""
Who's On First Repository.

Table: whosonfirst
Primary Key: id

    CREATE TABLE whosonfirst (
        id BIGINT PRIMARY KEY,
        parent_id BIGINT,
        placetype_id BIGINT,
        is_superseded SMALLINT,
        is_deprecated SMALLINT,
        meta JSON,
        geom GEOGRAPHY(GEOMETRY, 4326)
    )

Methods:
    build_upsert(row) - Composed statement + params, nothing executed
    upsert(conn, row) - Insert or overwrite every non-key column, then commit
    get(conn, id)     - Read a row back (geom as GeoJSON)
    ensure_table(conn)- CREATE TABLE / GIST index if missing

The geometry is bound as GeoJSON text and built server-side with
ST_GeomFromGeoJSON, so PostGIS validates it. A rejected geometry fails the
whole statement; no column is partially updated.

Transactions: upsert() commits on success. On failure the caller's
session scope rolls back (see SessionPool.session).

Exports:
    WhosOnFirstRepository
"""

from typing import Optional, Tuple

import psycopg
from psycopg import sql
from psycopg.rows import dict_row

from config.defaults import DatabaseDefaults
from core.models.record import RecordRow
from exceptions import DatabaseError
from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.REPOSITORY, "WhosOnFirstRepository")

COLUMNS = (
    "id",
    "parent_id",
    "placetype_id",
    "is_superseded",
    "is_deprecated",
    "meta",
    "geom",
)


class WhosOnFirstRepository:
    """
    Upsert and read rows of the whosonfirst table.

    Stateless apart from the table name: safe to share between workers,
    each of which passes its own pooled connection.
    """

    def __init__(self, table: str = DatabaseDefaults.TABLE, srid: int = DatabaseDefaults.SRID):
        self.table = table
        self.srid = srid
        # "schema.table" is quoted part by part
        self._table_ident = sql.Identifier(*table.split("."))

    # =========================================================================
    # STATEMENTS
    # =========================================================================

    def build_upsert(self, row: RecordRow) -> Tuple[sql.Composed, tuple]:
        """
        Statement and parameters for one upsert; does not execute.
        """
        query = sql.SQL("""
            INSERT INTO {table} (
                id, parent_id, placetype_id,
                is_superseded, is_deprecated, meta, geom
            ) VALUES (
                %s, %s, %s,
                %s, %s, %s, ST_SetSRID(ST_GeomFromGeoJSON(%s), {srid})
            )
            ON CONFLICT (id) DO UPDATE SET
                parent_id = EXCLUDED.parent_id,
                placetype_id = EXCLUDED.placetype_id,
                is_superseded = EXCLUDED.is_superseded,
                is_deprecated = EXCLUDED.is_deprecated,
                meta = EXCLUDED.meta,
                geom = EXCLUDED.geom
        """).format(
            table=self._table_ident,
            srid=sql.Literal(self.srid),
        )

        params = (
            row.id,
            row.parent_id,
            row.placetype_id,
            row.is_superseded,
            row.is_deprecated,
            row.meta,
            row.geom,
        )

        return query, params

    def describe_upsert(self, row: RecordRow, abbreviate_geom: bool = False) -> str:
        """
        Human-readable form of the upsert for verbose logging.

        abbreviate_geom replaces the GeoJSON with '...' (full geometries
        can be megabytes).
        """
        geom = "..." if abbreviate_geom else row.geom
        return (
            f"INSERT INTO {self.table} ({', '.join(COLUMNS)}) VALUES "
            f"({row.id}, {row.parent_id}, {row.placetype_id}, {row.is_superseded}, "
            f"{row.is_deprecated}, {row.meta}, ST_GeomFromGeoJSON('{geom}'))"
        )

    # =========================================================================
    # WRITE
    # =========================================================================

    def upsert(self, conn, row: RecordRow) -> None:
        """
        Insert the row, or overwrite every non-key column if the id exists.

        Raises:
            DatabaseError: statement failed (constraint, geometry, connection)
        """
        query, params = self.build_upsert(row)

        try:
            with conn.cursor() as cur:
                cur.execute(query, params)
            conn.commit()
        except psycopg.Error as e:
            raise DatabaseError(f"Failed to upsert {row.id}: {e}") from e

        logger.debug(f"Upserted {self.table} row {row.id}")

    def ensure_table(self, conn) -> None:
        """
        Create the table and its spatial index if they do not exist.

        Raises:
            DatabaseError: DDL failed (e.g. PostGIS extension missing)
        """
        index_name = sql.Identifier(f"{self.table.split('.')[-1]}_geom_idx")

        statements = [
            sql.SQL("""
                CREATE TABLE IF NOT EXISTS {table} (
                    id BIGINT PRIMARY KEY,
                    parent_id BIGINT,
                    placetype_id BIGINT,
                    is_superseded SMALLINT,
                    is_deprecated SMALLINT,
                    meta JSON,
                    geom GEOGRAPHY(GEOMETRY, {srid})
                )
            """).format(table=self._table_ident, srid=sql.Literal(self.srid)),
            sql.SQL("CREATE INDEX IF NOT EXISTS {index} ON {table} USING GIST (geom)").format(
                index=index_name,
                table=self._table_ident,
            ),
        ]

        try:
            with conn.cursor() as cur:
                for statement in statements:
                    cur.execute(statement)
            conn.commit()
        except psycopg.Error as e:
            raise DatabaseError(f"Failed to create table {self.table}: {e}") from e

        logger.info(f"Ensured table {self.table} exists")

    # =========================================================================
    # READ
    # =========================================================================

    def get(self, conn, wof_id: int) -> Optional[RecordRow]:
        """
        Read one row back; geom is returned as GeoJSON text.

        Raises:
            DatabaseError: query failed
        """
        query = sql.SQL("""
            SELECT id, parent_id, placetype_id, is_superseded, is_deprecated,
                   meta::text AS meta, ST_AsGeoJSON(geom) AS geom
            FROM {table}
            WHERE id = %s
        """).format(table=self._table_ident)

        try:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(query, (wof_id,))
                row = cur.fetchone()
        except psycopg.Error as e:
            raise DatabaseError(f"Failed to read {wof_id}: {e}") from e

        if row is None:
            return None
        return RecordRow(**row)

    def count(self, conn, wof_id: Optional[int] = None) -> int:
        """Number of rows, or rows with the given id (0 or 1)."""
        if wof_id is None:
            query = sql.SQL("SELECT COUNT(*) FROM {table}").format(table=self._table_ident)
            params: tuple = ()
        else:
            query = sql.SQL("SELECT COUNT(*) FROM {table} WHERE id = %s").format(table=self._table_ident)
            params = (wof_id,)

        try:
            with conn.cursor() as cur:
                cur.execute(query, params)
                return cur.fetchone()[0]
        except psycopg.Error as e:
            raise DatabaseError(f"Failed to count {self.table}: {e}") from e


__all__ = ['WhosOnFirstRepository']
