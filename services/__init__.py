"""
Indexer Services - Lazy Loading.

    geometry   - derive_geometry: feature + mode -> GeoJSON text
    metadata   - derive_metadata / encode_metadata: meta column
    indexer    - WhosOnFirstIndexer: one record, one upsert
    batch      - BatchIndexer: directory, file list and CSV manifest drivers

Names are imported on first access so `import services.geometry` does not
pull in the database stack.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .geometry import derive_geometry as _derive_geometry
    from .metadata import derive_metadata as _derive_metadata
    from .metadata import encode_metadata as _encode_metadata
    from .indexer import WhosOnFirstIndexer as _WhosOnFirstIndexer
    from .batch import BatchIndexer as _BatchIndexer


def __getattr__(name: str):
    """
    Lazy import mechanism - only imports when actually accessed.
    """
    if name == "derive_geometry":
        from .geometry import derive_geometry
        return derive_geometry
    elif name == "derive_metadata":
        from .metadata import derive_metadata
        return derive_metadata
    elif name == "encode_metadata":
        from .metadata import encode_metadata
        return encode_metadata
    elif name == "WhosOnFirstIndexer":
        from .indexer import WhosOnFirstIndexer
        return WhosOnFirstIndexer
    elif name == "BatchIndexer":
        from .batch import BatchIndexer
        return BatchIndexer
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "derive_geometry",
    "derive_metadata",
    "encode_metadata",
    "WhosOnFirstIndexer",
    "BatchIndexer",
]
