from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Tuple

from shapely.geometry import Point, shape
from shapely.geometry.base import BaseGeometry

from texas_parcel_viewer.errors import GeometryError


BBox = Tuple[float, float, float, float]
Bounds = Tuple[Tuple[float, float], Tuple[float, float]]


def _walk_coords(obj: Any) -> Iterable[Tuple[float, float]]:
    if isinstance(obj, (list, tuple)) and len(obj) >= 2 and all(
        isinstance(x, (int, float)) for x in obj[:2]
    ):
        yield float(obj[0]), float(obj[1])
        return
    if isinstance(obj, (list, tuple)):
        for it in obj:
            yield from _walk_coords(it)


def geometry_of(obj: Any) -> Dict[str, Any]:
    """Accept a GeoJSON Feature or a bare geometry and return the geometry."""

    if not isinstance(obj, dict):
        raise GeometryError("geometry must be a GeoJSON mapping")
    if obj.get("type") == "Feature":
        geom = obj.get("geometry")
    else:
        geom = obj
    if not isinstance(geom, dict) or not geom.get("type"):
        raise GeometryError("missing geometry")
    return geom


def geometry_bbox(geometry: Dict[str, Any]) -> Optional[BBox]:
    coords = (geometry or {}).get("coordinates")
    if coords is None:
        return None
    xs: List[float] = []
    ys: List[float] = []
    for x, y in _walk_coords(coords):
        xs.append(x)
        ys.append(y)
    if not xs or not ys:
        return None
    return (min(xs), min(ys), max(xs), max(ys))


def bounds_of(geometry: Optional[Dict[str, Any]]) -> Bounds:
    """Return [[minX, minY], [maxX, maxY]] as fit-bounds input."""

    if not geometry:
        raise GeometryError("feature has no geometry")
    bb = geometry_bbox(geometry)
    if bb is None:
        raise GeometryError(f"cannot compute bbox for {geometry.get('type')!r}")
    return ((bb[0], bb[1]), (bb[2], bb[3]))


def to_shape(geometry: Optional[Dict[str, Any]]) -> BaseGeometry:
    if not geometry:
        raise GeometryError("feature has no geometry")
    try:
        geom = shape(geometry)
    except Exception as exc:
        raise GeometryError(f"malformed geometry: {exc}") from exc
    if geom.is_empty:
        raise GeometryError("empty geometry")
    return geom


def contains_point(geometry: Dict[str, Any], point: Tuple[float, float]) -> bool:
    """True when the point falls inside or on the boundary of geometry."""

    return to_shape(geometry).intersects(Point(float(point[0]), float(point[1])))


def selected_by_polygon(polygon: Dict[str, Any], geometry: Dict[str, Any]) -> bool:
    """Draw-selection rule: geometry intersects polygon or its centroid is inside."""

    poly = to_shape(geometry_of(polygon))
    geom = to_shape(geometry)
    if poly.intersects(geom):
        return True
    return bool(poly.contains(geom.centroid))
