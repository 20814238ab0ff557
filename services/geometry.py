# ============================================================================
# GEOMETRY STRATEGIES
# ============================================================================
# STATUS: Service - pure transformation, no I/O
# PURPOSE: Derive the GeoJSON text stored in whosonfirst.geom for one feature
# EXPORTS: derive_geometry, resolve_geometry_mode, bbox_polygon
# DEPENDENCIES: shapely
# ============================================================================
"""
Geometry Strategies.

Each strategy turns a WOFFeature into GeoJSON text that PostGIS reads with
ST_GeomFromGeoJSON:

    ""            the feature's own geometry, unchanged
    "bbox"        one rectangle from the feature's bbox (SW, NW, NE, SE, SW)
    "bbox-rings"  one rectangle per polygon of the geometry (MultiPolygon);
                  points and lines have no polygons and are rejected
    "centroid"    a Point at lbl:latitude/longitude, else geom:latitude/longitude

"bbox" is an approximation: a feature with far-apart parts gets one
oversized box. "bbox-rings" keeps the parts apart at the cost of a
MultiPolygon per feature.

Exports:
    derive_geometry: Feature + mode -> GeoJSON text
    resolve_geometry_mode: Mode string -> GeometryMode
    bbox_polygon: Rectangle polygon from SW/NE corners
"""

import json
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from shapely.errors import ShapelyError
from shapely.geometry import MultiPolygon, Point, Polygon, mapping, shape
from shapely.geometry.base import BaseGeometry, BaseMultipartGeometry

from core.models.enums import GeometryMode
from core.models.feature import WOFFeature
from exceptions import (
    CentroidNotFoundError,
    MissingPropertyError,
    UnsupportedGeometryModeError,
    ValidationError,
)

# Property pairs searched for a centroid, in priority order
CENTROID_SOURCES = (
    ("lbl:latitude", "lbl:longitude"),
    ("geom:latitude", "geom:longitude"),
)


def resolve_geometry_mode(mode: Union[str, GeometryMode, None]) -> GeometryMode:
    """
    Raises:
        UnsupportedGeometryModeError: mode is not a known strategy
    """
    if isinstance(mode, GeometryMode):
        return mode
    if mode is None:
        return GeometryMode.DEFAULT
    try:
        return GeometryMode(mode)
    except ValueError:
        raise UnsupportedGeometryModeError(f"unsupported geometry mode '{mode}'") from None


def bbox_polygon(swlon: float, swlat: float, nelon: float, nelat: float) -> Polygon:
    """Closed 5-vertex ring SW -> NW -> NE -> SE -> SW."""
    return Polygon([
        (swlon, swlat),
        (swlon, nelat),
        (nelon, nelat),
        (nelon, swlat),
        (swlon, swlat),
    ])


def _to_geojson(geom: Any) -> str:
    return json.dumps(mapping(geom))


# ============================================================================
# STRATEGIES
# ============================================================================

def _default_geometry(feature: WOFFeature) -> str:
    geometry = feature.geometry
    if geometry is None:
        raise MissingPropertyError(f"can't find geometry for {feature.id}")
    return json.dumps(geometry)


def _bbox_geometry(feature: WOFFeature) -> str:
    bbox = feature.bbox
    if bbox is None:
        raise MissingPropertyError(f"can't find bbox for {feature.id}")
    swlon, swlat, nelon, nelat = bbox
    return _to_geojson(bbox_polygon(swlon, swlat, nelon, nelat))


def _polygon_parts(geom: BaseGeometry) -> List[Polygon]:
    """Non-empty polygons of geom, descending into multi-part geometries and collections."""
    if geom.is_empty:
        return []
    if isinstance(geom, Polygon):
        return [geom]
    if isinstance(geom, BaseMultipartGeometry):
        parts = []
        for part in geom.geoms:
            parts.extend(_polygon_parts(part))
        return parts
    return []


def _bbox_rings_geometry(feature: WOFFeature) -> str:
    geometry = feature.geometry
    if geometry is None:
        raise MissingPropertyError(f"can't find geometry for {feature.id}")

    try:
        geom = shape(geometry)
    except (ShapelyError, ValueError, TypeError, KeyError, IndexError, AttributeError) as e:
        raise ValidationError(f"invalid geometry for {feature.id}: {e}") from e

    if geom.is_empty:
        raise ValidationError(f"empty geometry for {feature.id}")

    parts = _polygon_parts(geom)
    if not parts:
        raise ValidationError(f"no polygons to box for {feature.id} ({geom.geom_type})")

    boxes = []
    for part in parts:
        minx, miny, maxx, maxy = part.bounds
        boxes.append(bbox_polygon(minx, miny, maxx, maxy))

    return _to_geojson(MultiPolygon(boxes))


def _find_centroid(feature: WOFFeature) -> Optional[Tuple[float, float]]:
    for lat_key, lon_key in CENTROID_SOURCES:
        lat = feature.float_property(lat_key)
        lon = feature.float_property(lon_key)
        if lat is not None and lon is not None:
            return lat, lon
    return None


def _centroid_geometry(feature: WOFFeature) -> str:
    centroid = _find_centroid(feature)
    if centroid is None:
        raise CentroidNotFoundError(f"can't find centroid for {feature.id}")
    lat, lon = centroid
    return _to_geojson(Point(lon, lat))


_STRATEGIES: Dict[GeometryMode, Callable[[WOFFeature], str]] = {
    GeometryMode.DEFAULT: _default_geometry,
    GeometryMode.BBOX: _bbox_geometry,
    GeometryMode.BBOX_RINGS: _bbox_rings_geometry,
    GeometryMode.CENTROID: _centroid_geometry,
}


def derive_geometry(feature: WOFFeature, mode: Union[str, GeometryMode, None]) -> str:
    """
    GeoJSON text for the geom column.

    Args:
        feature: Source feature
        mode: Geometry mode ('' / 'bbox' / 'bbox-rings' / 'centroid')

    Raises:
        UnsupportedGeometryModeError: unknown mode
        MissingPropertyError: bbox or geometry absent
        CentroidNotFoundError: no lat/lon pair for centroid mode
        ValidationError: geometry shapely cannot read
    """
    strategy = _STRATEGIES[resolve_geometry_mode(mode)]
    return strategy(feature)
