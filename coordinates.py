"""
Coordinate conversion and validation for the Swedish coverage region.

Lantmäteriet works in SWEREF99 TM (EPSG:3006, UTM zone 33 on GRS80) while tool
callers usually speak WGS84 latitude/longitude. Both systems are modelled as
separate immutable point types so a caller always states which one it means.

Every conversion path applies the same strict range check: a coordinate
outside Sweden's coverage region raises ValidationError.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Union

from pyproj import Transformer

from errors import ValidationError


logger = logging.getLogger(__name__)

CRS_SWEREF99TM = "EPSG:3006"
CRS_WGS84 = "EPSG:4326"

SWEREF99TM_BOUNDS = {
    "min_x": 200000.0,
    "max_x": 1000000.0,
    "min_y": 6100000.0,
    "max_y": 7700000.0,
}

WGS84_BOUNDS = {
    "min_lat": 55.0,
    "max_lat": 69.0,
    "min_lon": 11.0,
    "max_lon": 24.0,
}

# always_xy: (lon, lat) in, (easting, northing) out
_TO_SWEREF99 = Transformer.from_crs(CRS_WGS84, CRS_SWEREF99TM, always_xy=True)
_TO_WGS84 = Transformer.from_crs(CRS_SWEREF99TM, CRS_WGS84, always_xy=True)


@dataclass(frozen=True)
class Sweref99Point:
    """Easting (x) / northing (y) in metres, EPSG:3006."""

    x: float
    y: float

    def to_dict(self) -> Dict[str, Any]:
        return {"x": self.x, "y": self.y, "crs": CRS_SWEREF99TM}


@dataclass(frozen=True)
class Wgs84Point:
    """Latitude / longitude in decimal degrees, EPSG:4326."""

    latitude: float
    longitude: float

    def to_dict(self) -> Dict[str, Any]:
        return {"latitude": self.latitude, "longitude": self.longitude, "crs": CRS_WGS84}


Point = Union[Sweref99Point, Wgs84Point]


@dataclass(frozen=True)
class BoundingBox:
    """SWEREF99 TM bounding box."""

    min_x: float
    min_y: float
    max_x: float
    max_y: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "min_x": self.min_x,
            "min_y": self.min_y,
            "max_x": self.max_x,
            "max_y": self.max_y,
            "crs": CRS_SWEREF99TM,
        }


@dataclass(frozen=True)
class Wgs84BoundingBox:
    min_lat: float
    min_lon: float
    max_lat: float
    max_lon: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "min_lat": self.min_lat,
            "min_lon": self.min_lon,
            "max_lat": self.max_lat,
            "max_lon": self.max_lon,
            "crs": CRS_WGS84,
        }


def require_number(value: Any, field: str) -> float:
    """Coerce a tool argument to a finite float or raise ValidationError."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{field} must be a number, got {value!r}", field)
    if not math.isfinite(value):
        raise ValidationError(f"{field} must be a finite number, got {value!r}", field)
    return float(value)


def is_valid_sweref99_coordinate(x: float, y: float) -> bool:
    return (
        SWEREF99TM_BOUNDS["min_x"] <= x <= SWEREF99TM_BOUNDS["max_x"]
        and SWEREF99TM_BOUNDS["min_y"] <= y <= SWEREF99TM_BOUNDS["max_y"]
    )


def is_valid_wgs84_coordinate(latitude: float, longitude: float) -> bool:
    return (
        WGS84_BOUNDS["min_lat"] <= latitude <= WGS84_BOUNDS["max_lat"]
        and WGS84_BOUNDS["min_lon"] <= longitude <= WGS84_BOUNDS["max_lon"]
    )


def _check_wgs84(latitude: float, longitude: float, field: str) -> None:
    if not is_valid_wgs84_coordinate(latitude, longitude):
        raise ValidationError(
            f"WGS84 coordinates ({latitude}, {longitude}) are outside valid range for Sweden (55-69°N, 11-24°E)",
            field,
        )


def _check_sweref99(x: float, y: float, field: str) -> None:
    if not is_valid_sweref99_coordinate(x, y):
        raise ValidationError(
            f"SWEREF99TM coordinates ({x}, {y}) are outside valid range for Sweden "
            "(x 200000-1000000, y 6100000-7700000)",
            field,
        )


def wgs84_to_sweref99(point: Wgs84Point) -> Sweref99Point:
    """Project a WGS84 point to SWEREF99 TM."""
    latitude = require_number(point.latitude, "latitude")
    longitude = require_number(point.longitude, "longitude")
    _check_wgs84(latitude, longitude, "coordinates")

    x, y = _TO_SWEREF99.transform(longitude, latitude)
    logger.debug("WGS84(%s, %s) -> SWEREF99TM(%.1f, %.1f)", latitude, longitude, x, y)
    return Sweref99Point(x=x, y=y)


def sweref99_to_wgs84(point: Sweref99Point) -> Wgs84Point:
    """Inverse of wgs84_to_sweref99."""
    x = require_number(point.x, "x")
    y = require_number(point.y, "y")
    _check_sweref99(x, y, "coordinates")

    longitude, latitude = _TO_WGS84.transform(x, y)
    logger.debug("SWEREF99TM(%s, %s) -> WGS84(%.6f, %.6f)", x, y, latitude, longitude)
    return Wgs84Point(latitude=latitude, longitude=longitude)


def validate_bbox(bbox: BoundingBox) -> None:
    """Check ordering first, then that both corners are inside the SWEREF99 TM range."""
    min_x = require_number(bbox.min_x, "min_x")
    min_y = require_number(bbox.min_y, "min_y")
    max_x = require_number(bbox.max_x, "max_x")
    max_y = require_number(bbox.max_y, "max_y")

    if min_x >= max_x:
        raise ValidationError("min_x must be less than max_x", "bbox")
    if min_y >= max_y:
        raise ValidationError("min_y must be less than max_y", "bbox")
    _check_sweref99(min_x, min_y, "bbox")
    _check_sweref99(max_x, max_y, "bbox")


def validate_wgs84_bbox(bbox: Wgs84BoundingBox) -> None:
    min_lat = require_number(bbox.min_lat, "min_lat")
    min_lon = require_number(bbox.min_lon, "min_lon")
    max_lat = require_number(bbox.max_lat, "max_lat")
    max_lon = require_number(bbox.max_lon, "max_lon")

    if min_lat >= max_lat:
        raise ValidationError("min_lat must be less than max_lat", "bbox")
    if min_lon >= max_lon:
        raise ValidationError("min_lon must be less than max_lon", "bbox")
    _check_wgs84(min_lat, min_lon, "bbox")
    _check_wgs84(max_lat, max_lon, "bbox")


def wgs84_bbox_to_sweref99(bbox: Wgs84BoundingBox) -> BoundingBox:
    """
    Convert both corners of a WGS84 box to SWEREF99 TM.

    Only the two corners are projected. Grid north diverges from true north
    away from 15°E, so a tall, narrow box near the eastern or western edge of
    Sweden can come out with min_x > max_x and is then rejected by
    validate_bbox. Widen such a box or pass it in SWEREF99 TM directly.
    """
    validate_wgs84_bbox(bbox)

    min_corner = wgs84_to_sweref99(Wgs84Point(latitude=bbox.min_lat, longitude=bbox.min_lon))
    max_corner = wgs84_to_sweref99(Wgs84Point(latitude=bbox.max_lat, longitude=bbox.max_lon))

    return BoundingBox(
        min_x=min_corner.x,
        min_y=min_corner.y,
        max_x=max_corner.x,
        max_y=max_corner.y,
    )


def sweref99_bbox_to_wgs84(bbox: BoundingBox) -> Wgs84BoundingBox:
    """Convert both corners of a SWEREF99 TM box to WGS84."""
    validate_bbox(bbox)

    min_corner = sweref99_to_wgs84(Sweref99Point(x=bbox.min_x, y=bbox.min_y))
    max_corner = sweref99_to_wgs84(Sweref99Point(x=bbox.max_x, y=bbox.max_y))

    return Wgs84BoundingBox(
        min_lat=min_corner.latitude,
        min_lon=min_corner.longitude,
        max_lat=max_corner.latitude,
        max_lon=max_corner.longitude,
    )


def bbox_around(center: Sweref99Point, half_width: float, half_height: float) -> BoundingBox:
    """Box of 2*half_width x 2*half_height metres centred on a SWEREF99 TM point."""
    half_width = require_number(half_width, "half_width")
    half_height = require_number(half_height, "half_height")
    if half_width <= 0 or half_height <= 0:
        raise ValidationError("Box dimensions must be positive", "bbox")

    bbox = BoundingBox(
        min_x=center.x - half_width,
        min_y=center.y - half_height,
        max_x=center.x + half_width,
        max_y=center.y + half_height,
    )
    validate_bbox(bbox)
    return bbox


def normalize_to_sweref99(point: Point) -> Sweref99Point:
    """Return a validated SWEREF99 TM point for either point variant."""
    if isinstance(point, Wgs84Point):
        return wgs84_to_sweref99(point)
    if isinstance(point, Sweref99Point):
        x = require_number(point.x, "x")
        y = require_number(point.y, "y")
        _check_sweref99(x, y, "coordinates")
        return Sweref99Point(x=x, y=y)
    raise ValidationError(f"Unsupported point type: {type(point).__name__}", "coordinates")


def point_from_arguments(arguments: Mapping[str, Any]) -> Point:
    """
    Build exactly one point variant from tool arguments.

    latitude/longitude gives a Wgs84Point, x/y gives a Sweref99Point. Both
    pairs at once, half a pair, or nothing at all is rejected.
    """
    has_lat = arguments.get("latitude") is not None
    has_lon = arguments.get("longitude") is not None
    has_x = arguments.get("x") is not None
    has_y = arguments.get("y") is not None

    if has_lat != has_lon:
        raise ValidationError("latitude and longitude must be given together", "coordinates")
    if has_x != has_y:
        raise ValidationError("x and y must be given together", "coordinates")
    if has_lat and has_x:
        raise ValidationError(
            "Provide either WGS84 (latitude/longitude) or SWEREF99TM (x/y) coordinates, not both",
            "coordinates",
        )

    if has_lat:
        return Wgs84Point(
            latitude=require_number(arguments["latitude"], "latitude"),
            longitude=require_number(arguments["longitude"], "longitude"),
        )
    if has_x:
        return Sweref99Point(
            x=require_number(arguments["x"], "x"),
            y=require_number(arguments["y"], "y"),
        )
    raise ValidationError(
        "A point is required: latitude/longitude (WGS84) or x/y (SWEREF99TM)",
        "coordinates",
    )


_SWEREF99_BBOX_KEYS = ("min_x", "min_y", "max_x", "max_y")
_WGS84_BBOX_KEYS = ("min_lat", "min_lon", "max_lat", "max_lon")


def bbox_from_arguments(arguments: Mapping[str, Any]) -> Optional[Union[BoundingBox, Wgs84BoundingBox]]:
    """
    Build a bounding box from tool arguments, or None when no bbox key is given.

    min_x/min_y/max_x/max_y gives a SWEREF99 TM box, min_lat/min_lon/max_lat/max_lon
    a WGS84 box. Each set must be complete and the two are mutually exclusive.
    """
    sweref_given = [k for k in _SWEREF99_BBOX_KEYS if arguments.get(k) is not None]
    wgs84_given = [k for k in _WGS84_BBOX_KEYS if arguments.get(k) is not None]

    if sweref_given and wgs84_given:
        raise ValidationError(
            "Provide either a WGS84 bbox (min_lat/min_lon/max_lat/max_lon) "
            "or a SWEREF99TM bbox (min_x/min_y/max_x/max_y), not both",
            "bbox",
        )
    if sweref_given:
        if len(sweref_given) != len(_SWEREF99_BBOX_KEYS):
            raise ValidationError("A SWEREF99TM bbox needs min_x, min_y, max_x and max_y", "bbox")
        return BoundingBox(**{k: require_number(arguments[k], k) for k in _SWEREF99_BBOX_KEYS})
    if wgs84_given:
        if len(wgs84_given) != len(_WGS84_BBOX_KEYS):
            raise ValidationError("A WGS84 bbox needs min_lat, min_lon, max_lat and max_lon", "bbox")
        return Wgs84BoundingBox(**{k: require_number(arguments[k], k) for k in _WGS84_BBOX_KEYS})
    return None
