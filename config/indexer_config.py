"""
Indexing Engine Configuration.

Per-run settings for the indexer: which geometry strategy to store, the
size of the worker pool used by the batch drivers, and the dry-run and
verbose flags.

The geometry mode is kept as a plain string. An unknown mode is not a
startup failure: every indexing call reports it as an unsupported mode.

Exports:
    IndexerConfig: Indexer run configuration
"""

import os
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .defaults import IndexerDefaults


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class IndexerConfig(BaseModel):
    """
    Immutable indexer configuration.

    Dry-run can still be requested per call; debug is only the default.
    """

    model_config = ConfigDict(frozen=True)

    geometry_mode: str = Field(
        default=IndexerDefaults.GEOMETRY_MODE,
        description="Geometry strategy: '' (feature geometry), 'bbox', 'bbox-rings' or 'centroid'"
    )

    debug: bool = Field(
        default=IndexerDefaults.DEBUG,
        description="Build statements but never execute them (dry run)"
    )

    verbose: bool = Field(
        default=IndexerDefaults.VERBOSE,
        description="Log every statement before it is executed"
    )

    max_workers: int = Field(
        default=IndexerDefaults.MAX_WORKERS,
        description="Concurrent indexing tasks in the file-list and CSV drivers"
    )

    @field_validator('max_workers')
    @classmethod
    def validate_max_workers(cls, v):
        if v < 1:
            raise ValueError(f"max_workers must be >= 1, got {v}")
        return v

    @classmethod
    def from_environment(cls):
        """Load from environment variables."""
        return cls(
            geometry_mode=os.environ.get("WOF_GEOMETRY_MODE", IndexerDefaults.GEOMETRY_MODE),
            debug=_env_flag("WOF_DEBUG", IndexerDefaults.DEBUG),
            verbose=_env_flag("WOF_VERBOSE", IndexerDefaults.VERBOSE),
            max_workers=int(os.environ.get("WOF_MAX_WORKERS", str(IndexerDefaults.MAX_WORKERS))),
        )
