import math

import pytest

from coordinates import (
    BoundingBox,
    Sweref99Point,
    Wgs84BoundingBox,
    Wgs84Point,
    bbox_around,
    bbox_from_arguments,
    is_valid_sweref99_coordinate,
    is_valid_wgs84_coordinate,
    normalize_to_sweref99,
    point_from_arguments,
    sweref99_bbox_to_wgs84,
    sweref99_to_wgs84,
    validate_bbox,
    wgs84_bbox_to_sweref99,
    wgs84_to_sweref99,
)
from errors import ValidationError


STOCKHOLM = Wgs84Point(latitude=59.33, longitude=18.07)

# one metre is about 9e-6 degrees of latitude
SUB_METRE_DEGREES = 1e-6


def test_stockholm_to_sweref99():
    point = wgs84_to_sweref99(STOCKHOLM)
    assert point.x == pytest.approx(674000, abs=1000)
    assert point.y == pytest.approx(6580000, abs=2000)


def test_stockholm_back_to_wgs84():
    back = sweref99_to_wgs84(wgs84_to_sweref99(STOCKHOLM))
    assert back.latitude == pytest.approx(59.33, abs=SUB_METRE_DEGREES)
    assert back.longitude == pytest.approx(18.07, abs=SUB_METRE_DEGREES)


@pytest.mark.parametrize(
    "latitude,longitude",
    [
        (55.35, 12.5),
        (55.61, 13.0),
        (57.71, 11.97),
        (63.83, 20.26),
        (67.86, 20.22),
        (68.35, 23.0),
    ],
)
def test_round_trip_is_sub_metre(latitude, longitude):
    projected = wgs84_to_sweref99(Wgs84Point(latitude=latitude, longitude=longitude))
    back = sweref99_to_wgs84(projected)

    # compare in metres along the meridian and the parallel
    dlat_m = (back.latitude - latitude) * 111_320
    dlon_m = (back.longitude - longitude) * 111_320 * math.cos(math.radians(latitude))
    assert abs(dlat_m) < 1.0
    assert abs(dlon_m) < 1.0


def test_central_meridian_has_false_easting():
    # SWEREF99 TM is UTM zone 33: central meridian 15°E maps to x = 500000
    point = wgs84_to_sweref99(Wgs84Point(latitude=62.0, longitude=15.0))
    assert point.x == pytest.approx(500000, abs=0.01)


@pytest.mark.parametrize(
    "latitude,longitude",
    [
        (54.99, 15.0),
        (69.01, 15.0),
        (60.0, 10.99),
        (60.0, 24.01),
        (48.85, 2.35),
        (-59.33, 18.07),
    ],
)
def test_outside_sweden_rejected(latitude, longitude):
    with pytest.raises(ValidationError) as exc_info:
        wgs84_to_sweref99(Wgs84Point(latitude=latitude, longitude=longitude))
    assert exc_info.value.field == "coordinates"


@pytest.mark.parametrize(
    "x,y",
    [
        (199_999, 6_580_000),
        (1_000_001, 6_580_000),
        (674_000, 6_099_999),
        (674_000, 7_700_001),
        (0, 0),
    ],
)
def test_projected_outside_bounds_rejected(x, y):
    with pytest.raises(ValidationError):
        sweref99_to_wgs84(Sweref99Point(x=x, y=y))


def test_bounds_are_inclusive():
    assert is_valid_wgs84_coordinate(55.0, 11.0)
    assert is_valid_wgs84_coordinate(69.0, 24.0)
    assert is_valid_sweref99_coordinate(200000, 6100000)
    assert is_valid_sweref99_coordinate(1000000, 7700000)


@pytest.mark.parametrize("value", [float("nan"), float("inf"), "59.33", None, True])
def test_malformed_numbers_rejected(value):
    with pytest.raises(ValidationError):
        wgs84_to_sweref99(Wgs84Point(latitude=value, longitude=18.07))


@pytest.mark.parametrize(
    "bbox",
    [
        BoundingBox(min_x=680000, min_y=6575000, max_x=670000, max_y=6585000),
        BoundingBox(min_x=670000, min_y=6585000, max_x=680000, max_y=6575000),
        BoundingBox(min_x=670000, min_y=6575000, max_x=670000, max_y=6585000),
        # out of range and inverted: ordering is reported
        BoundingBox(min_x=5, min_y=2, max_x=1, max_y=1),
    ],
)
def test_inverted_bbox_rejected(bbox):
    with pytest.raises(ValidationError, match="must be less than"):
        validate_bbox(bbox)


def test_bbox_outside_range_rejected():
    with pytest.raises(ValidationError, match="outside valid range"):
        validate_bbox(BoundingBox(min_x=100000, min_y=6575000, max_x=680000, max_y=6585000))


@pytest.mark.parametrize(
    "bbox",
    [
        Wgs84BoundingBox(min_lat=59.4, min_lon=18.0, max_lat=59.3, max_lon=18.1),
        Wgs84BoundingBox(min_lat=59.3, min_lon=18.1, max_lat=59.4, max_lon=18.0),
        Wgs84BoundingBox(min_lat=10.0, min_lon=18.1, max_lat=5.0, max_lon=18.0),
    ],
)
def test_inverted_wgs84_bbox_rejected(bbox):
    with pytest.raises(ValidationError, match="must be less than"):
        wgs84_bbox_to_sweref99(bbox)


def test_wgs84_bbox_to_sweref99_converts_corners():
    bbox = Wgs84BoundingBox(min_lat=59.30, min_lon=18.00, max_lat=59.36, max_lon=18.12)
    result = wgs84_bbox_to_sweref99(bbox)

    min_corner = wgs84_to_sweref99(Wgs84Point(latitude=59.30, longitude=18.00))
    max_corner = wgs84_to_sweref99(Wgs84Point(latitude=59.36, longitude=18.12))
    assert result == BoundingBox(
        min_x=min_corner.x, min_y=min_corner.y, max_x=max_corner.x, max_y=max_corner.y
    )
    assert result.min_x < result.max_x
    assert result.min_y < result.max_y


def test_sweref99_bbox_to_wgs84_validates():
    with pytest.raises(ValidationError):
        sweref99_bbox_to_wgs84(BoundingBox(min_x=670000, min_y=6575000, max_x=670000, max_y=6585000))

    result = sweref99_bbox_to_wgs84(BoundingBox(min_x=670000, min_y=6575000, max_x=680000, max_y=6585000))
    assert 59.2 < result.min_lat < result.max_lat < 59.4
    assert 17.9 < result.min_lon < result.max_lon < 18.3


def test_bbox_around():
    bbox = bbox_around(Sweref99Point(x=674000, y=6580000), 500, 250)
    assert bbox == BoundingBox(min_x=673500, min_y=6579750, max_x=674500, max_y=6580250)


def test_bbox_around_rejects_zero_size():
    with pytest.raises(ValidationError):
        bbox_around(Sweref99Point(x=674000, y=6580000), 0, 250)


def test_normalize_accepts_both_variants():
    from_wgs84 = normalize_to_sweref99(STOCKHOLM)
    from_sweref = normalize_to_sweref99(Sweref99Point(x=674000, y=6580000))
    assert isinstance(from_wgs84, Sweref99Point)
    assert from_sweref == Sweref99Point(x=674000.0, y=6580000.0)


def test_normalize_validates_sweref_points():
    with pytest.raises(ValidationError):
        normalize_to_sweref99(Sweref99Point(x=59.33, y=18.07))


def test_point_from_arguments_variants():
    assert point_from_arguments({"latitude": 59.33, "longitude": 18.07}) == STOCKHOLM
    assert point_from_arguments({"x": 674000, "y": 6580000}) == Sweref99Point(x=674000.0, y=6580000.0)


def test_point_from_arguments_does_not_guess_from_magnitude():
    # SWEREF-sized numbers given as latitude/longitude stay WGS84 and are rejected
    point = point_from_arguments({"latitude": 6580000, "longitude": 674000})
    assert isinstance(point, Wgs84Point)
    with pytest.raises(ValidationError):
        normalize_to_sweref99(point)


@pytest.mark.parametrize(
    "arguments",
    [
        {},
        {"latitude": 59.33},
        {"x": 674000},
        {"latitude": 59.33, "longitude": 18.07, "x": 674000, "y": 6580000},
        {"latitude": "north", "longitude": 18.07},
    ],
)
def test_point_from_arguments_rejects(arguments):
    with pytest.raises(ValidationError):
        point_from_arguments(arguments)


def test_bbox_from_arguments():
    assert bbox_from_arguments({"latitude": 59.33}) is None
    assert bbox_from_arguments(
        {"min_x": 670000, "min_y": 6575000, "max_x": 680000, "max_y": 6585000}
    ) == BoundingBox(min_x=670000, min_y=6575000, max_x=680000, max_y=6585000)
    assert isinstance(
        bbox_from_arguments({"min_lat": 59.3, "min_lon": 18.0, "max_lat": 59.4, "max_lon": 18.1}),
        Wgs84BoundingBox,
    )


@pytest.mark.parametrize(
    "arguments",
    [
        {"min_x": 670000, "min_y": 6575000, "max_x": 680000},
        {"min_lat": 59.3, "min_lon": 18.0},
        {"min_x": 670000, "min_y": 6575000, "max_x": 680000, "max_y": 6585000, "min_lat": 59.3},
    ],
)
def test_bbox_from_arguments_rejects(arguments):
    with pytest.raises(ValidationError):
        bbox_from_arguments(arguments)


def test_tall_narrow_box_far_from_central_meridian_is_inverted():
    # grid convergence near 23.5°E turns the upper corner west of the lower one
    bbox = Wgs84BoundingBox(min_lat=65.8, min_lon=23.5, max_lat=65.9, max_lon=23.52)
    with pytest.raises(ValidationError, match="min_x must be less than max_x"):
        wgs84_bbox_to_sweref99(bbox)
