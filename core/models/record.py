"""
Stored Record Data Models.

One RecordRow per WOF id in the whosonfirst table, plus the metadata
summary serialized into its meta column.

Exports:
    MetadataSummary: Compact name/country/hierarchy summary
    RecordRow: Column values for one upsert
"""

from typing import Dict, List
from pydantic import BaseModel, ConfigDict, Field


class MetadataSummary(BaseModel):
    """
    Summary stored in the meta column.

    Serialized with the WOF property names as keys:
        {"wof:name": ..., "wof:country": ..., "wof:hierarchy": [...]}
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(..., alias="wof:name", description="Feature name")
    country: str = Field(..., alias="wof:country", description="ISO country code or XX")
    hierarchy: List[Dict[str, int]] = Field(
        default_factory=list,
        alias="wof:hierarchy",
        description="Ancestor ids keyed by '<placetype>_id'"
    )

    def to_json(self) -> str:
        """Compact JSON with WOF keys."""
        return self.model_dump_json(by_alias=True)


class RecordRow(BaseModel):
    """
    Column values for one row of the whosonfirst table.

    meta and geom are already serialized text; geom is GeoJSON handed to
    ST_GeomFromGeoJSON by the repository.
    """

    model_config = ConfigDict(frozen=True)

    id: int = Field(..., ge=1, description="WOF id (primary key)")
    parent_id: int = Field(..., description="wof:parent_id, -1 when unknown")
    placetype_id: int = Field(..., description="Numeric placetype code")
    is_superseded: int = Field(..., ge=0, le=1, description="1 if superseded")
    is_deprecated: int = Field(..., ge=0, le=1, description="1 if deprecated")
    meta: str = Field(..., description="Serialized MetadataSummary")
    geom: str = Field(..., description="GeoJSON geometry text")
