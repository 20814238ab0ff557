# ============================================================================
# EXCEPTIONS
# ============================================================================
# STATUS: Shared - used by every layer of the indexer
# PURPOSE: Exception hierarchy separating per-record input failures from store failures
# EXPORTS: BusinessLogicError, DatabaseError, DatabaseConnectionError, ValidationError,
#          FeatureParseError, MissingPropertyError, UnknownPlacetypeError,
#          UnsupportedGeometryModeError, CentroidNotFoundError, MetadataEncodingError,
#          ManifestError, IndexingError, BatchIndexError, ConfigurationError
# DEPENDENCIES: None (standard library only)
# ============================================================================

"""
Custom Exception Hierarchy

Distinguishes between:
1. Configuration errors (the indexer cannot run at all)
2. Business Logic Failures (one record, or one batch, failed)

Per-record failures never abort a concurrent batch; they are collected
into a BatchResult and surfaced through BatchIndexError.
"""


class BusinessLogicError(Exception):
    """
    Base class for expected runtime failures while indexing.

    These are normal failures that occur during a run and are reported
    per record without crashing the process.
    """
    pass


class DatabaseError(BusinessLogicError):
    """
    Store operation failures.

    Examples:
        - Connection lost mid-statement
        - Constraint violation
        - ST_GeomFromGeoJSON rejected the geometry text
    """
    pass


class DatabaseConnectionError(DatabaseError):
    """
    Store unreachable while building the session pool.

    Fatal: raised before any pool token is issued.
    """
    pass


class ValidationError(BusinessLogicError):
    """
    Malformed input for a single record.

    Aborts that record only.
    """
    pass


class FeatureParseError(ValidationError):
    """Source file is not a readable Who's On First feature."""
    pass


class MissingPropertyError(ValidationError):
    """A property required to build the row is absent or empty (e.g. wof:repo, bbox)."""
    pass


class UnknownPlacetypeError(ValidationError):
    """Placetype name has no entry in the vocabulary."""
    pass


class UnsupportedGeometryModeError(ValidationError):
    """Configured geometry mode is not one of the known strategies."""
    pass


class CentroidNotFoundError(ValidationError):
    """Neither label nor geom latitude/longitude pairs are present."""
    pass


class MetadataEncodingError(ValidationError):
    """Metadata summary could not be validated or serialized."""
    pass


class ManifestError(ValidationError):
    """
    A batch manifest (file list or CSV) is structurally invalid.

    Examples:
        - CSV has no 'path' column
        - Manifest row has an empty path
    """
    pass


class IndexingError(BusinessLogicError):
    """
    A record failed during a synchronous directory crawl.

    The crawl stops at the first failure; the original error is chained.
    """
    pass


class BatchIndexError(BusinessLogicError):
    """
    One or more records failed during a concurrent batch run.

    Carries the BatchResult so callers can inspect every failure.
    """

    def __init__(self, message: str, result=None):
        super().__init__(message)
        self.result = result


class ConfigurationError(Exception):
    """
    System configuration error.

    These are fatal and indicate misconfiguration that prevents the
    indexer from operating.

    Examples:
        - Missing required environment variables
        - Non-positive connection or worker counts
    """
    pass
