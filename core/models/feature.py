# ============================================================================
# WHO'S ON FIRST FEATURE
# ============================================================================
# STATUS: Core model - read-only view over one parsed GeoJSON document
# PURPOSE: Typed accessors for the WOF properties the indexer needs
# EXPORTS: WOFFeature
# DEPENDENCIES: json (stdlib)
# ============================================================================
"""
Who's On First Feature.

A WOFFeature wraps the decoded GeoJSON body of one WOF record. It is loaded
fresh for every indexing call and never mutated.

Property lookups follow the WOF conventions:
    wof:id, wof:name, wof:placetype  - required
    wof:parent_id, wof:country       - optional (callers substitute defaults)
    wof:repo                         - required by the indexer, checked there
    edtf:deprecated                  - deprecated unless "" or "uuuu"
    wof:superseded_by                - superseded when non-empty

Exports:
    WOFFeature
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from exceptions import FeatureParseError

# EDTF placeholders meaning "not deprecated"
_EDTF_UNSET = ("", "uuuu")


class WOFFeature:
    """
    Read-only view over a WOF GeoJSON Feature.

    Usage:
        feature = WOFFeature.from_file("/data/101/736/545/101736545.geojson")
        feature.id          # 101736545
        feature.placetype   # "locality"
    """

    def __init__(self, body: Dict[str, Any], path: Optional[str] = None):
        if not isinstance(body, dict):
            raise FeatureParseError(f"feature body must be a JSON object, got {type(body).__name__}")

        label = path or "<memory>"

        properties = body.get("properties")
        if not isinstance(properties, dict):
            raise FeatureParseError(f"feature {label} has no properties object")

        wofid = properties.get("wof:id")
        if not _is_number(wofid) or not float(wofid).is_integer():
            raise FeatureParseError(f"feature {label} has no integer wof:id")
        if wofid < 0:
            raise FeatureParseError(f"feature has negative wof:id {wofid}")

        self._body = body
        self._properties = properties
        self._id = int(wofid)
        self.path = path

    # ========================================================================
    # CONSTRUCTORS
    # ========================================================================

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "WOFFeature":
        """
        Parse a WOF GeoJSON file.

        Raises:
            FeatureParseError: unreadable file or invalid JSON/feature
        """
        path = str(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                body = json.load(f)
        except OSError as e:
            raise FeatureParseError(f"failed to read {path}: {e}") from e
        except json.JSONDecodeError as e:
            raise FeatureParseError(f"failed to parse {path}: {e}") from e

        return cls(body, path=path)

    @classmethod
    def from_dict(cls, body: Dict[str, Any]) -> "WOFFeature":
        return cls(body)

    # ========================================================================
    # ACCESSORS
    # ========================================================================

    @property
    def id(self) -> int:
        return self._id

    @property
    def body(self) -> Dict[str, Any]:
        return self._body

    @property
    def properties(self) -> Dict[str, Any]:
        return self._properties

    @property
    def name(self) -> str:
        name = self._properties.get("wof:name")
        return name if isinstance(name, str) else ""

    @property
    def placetype(self) -> str:
        placetype = self._properties.get("wof:placetype")
        return placetype if isinstance(placetype, str) else ""

    @property
    def geometry(self) -> Optional[Dict[str, Any]]:
        geometry = self._body.get("geometry")
        return geometry if isinstance(geometry, dict) else None

    @property
    def bbox(self) -> Optional[List[float]]:
        """Top-level GeoJSON bbox as [swlon, swlat, nelon, nelat], or None."""
        bbox = self._body.get("bbox")
        if not isinstance(bbox, list) or len(bbox) < 4:
            return None
        if not all(_is_number(v) for v in bbox[:4]):
            return None
        return [float(v) for v in bbox[:4]]

    @property
    def hierarchy(self) -> List[Dict[str, int]]:
        hierarchy = self._properties.get("wof:hierarchy")
        return hierarchy if isinstance(hierarchy, list) else []

    @property
    def is_deprecated(self) -> bool:
        deprecated = self._properties.get("edtf:deprecated")
        if deprecated is None:
            return False
        return str(deprecated) not in _EDTF_UNSET

    @property
    def is_superseded(self) -> bool:
        superseded_by = self._properties.get("wof:superseded_by")
        return isinstance(superseded_by, list) and len(superseded_by) > 0

    # ========================================================================
    # PROPERTY LOOKUPS
    # ========================================================================

    def string_property(self, key: str) -> Optional[str]:
        """Property value if it is a string, else None."""
        value = self._properties.get(key)
        return value if isinstance(value, str) else None

    def int_property(self, key: str) -> Optional[int]:
        """Property value if it is an integral number, else None."""
        value = self._properties.get(key)
        if not _is_number(value) or not float(value).is_integer():
            return None
        return int(value)

    def float_property(self, key: str) -> Optional[float]:
        """Property value if it is a number, else None."""
        value = self._properties.get(key)
        return float(value) if _is_number(value) else None

    def __repr__(self) -> str:
        return f"WOFFeature(id={self._id}, placetype={self.placetype!r}, name={self.name!r})"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)
