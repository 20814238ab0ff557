"""
Pure Enumeration Types for the Indexer.

No business logic - pure type definitions only.

Exports:
    GeometryMode: Geometry strategy selection
    RecordOutcome: Result of indexing one record
"""

from enum import Enum


class GeometryMode(Enum):
    """
    Which spatial value is stored for each feature.

    BBOX stores one box for the whole feature, which oversizes features
    made of distant parts (islands, exclaves). BBOX_RINGS stores one box
    per polygon instead.
    """

    DEFAULT = ""
    BBOX = "bbox"
    BBOX_RINGS = "bbox-rings"
    CENTROID = "centroid"


class RecordOutcome(Enum):
    """
    Outcome of indexing one source file in a batch run.
    """

    INDEXED = "indexed"
    SKIPPED = "skipped"
    FAILED = "failed"
