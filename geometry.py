"""
Geometry helpers for property footprints returned by Lantmäteriet.

Upstream geometries are GeoJSON in SWEREF99 TM. Tool output is WGS84, and
areas are measured in the projected system where units are metres.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from pyproj import Transformer
from shapely.errors import ShapelyError
from shapely.geometry import mapping, shape
from shapely.geometry.base import BaseGeometry
from shapely.ops import transform

from coordinates import CRS_SWEREF99TM, CRS_WGS84, is_valid_sweref99_coordinate
from errors import ValidationError


_SWEREF99_TO_WGS84 = Transformer.from_crs(CRS_SWEREF99TM, CRS_WGS84, always_xy=True)


def load_geometry(geojson: Optional[Dict[str, Any]]) -> BaseGeometry:
    if not geojson:
        raise ValidationError("No geometry supplied.", "geometry")
    try:
        geom = shape(geojson)
    except (ShapelyError, KeyError, TypeError, ValueError, AttributeError) as exc:
        raise ValidationError(f"Unreadable GeoJSON geometry: {exc}", "geometry") from exc
    if geom.is_empty:
        raise ValidationError("Geometry is empty.", "geometry")

    min_x, min_y, max_x, max_y = geom.bounds
    if not (is_valid_sweref99_coordinate(min_x, min_y) and is_valid_sweref99_coordinate(max_x, max_y)):
        raise ValidationError(
            f"Geometry bounds ({min_x}, {min_y}, {max_x}, {max_y}) are outside valid SWEREF99TM range for Sweden",
            "geometry",
        )
    return geom


def geometry_to_wgs84(geojson: Dict[str, Any]) -> Dict[str, Any]:
    """Reproject a SWEREF99 TM GeoJSON geometry to WGS84 (lon, lat order)."""
    geom = load_geometry(geojson)
    reprojected = transform(_SWEREF99_TO_WGS84.transform, geom)
    return mapping(reprojected)


def geometry_area(geojson: Dict[str, Any]) -> float:
    """Planar area in square metres."""
    return load_geometry(geojson).area
