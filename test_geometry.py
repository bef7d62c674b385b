import pytest
from shapely.geometry import MultiPolygon, Polygon, mapping

from conftest import PROPERTY_POLYGON
from errors import ValidationError
from geometry import geometry_area, geometry_to_wgs84, load_geometry


@pytest.fixture(scope="module")
def two_plots() -> dict:
    first = Polygon([(674000, 6580000), (674100, 6580000), (674100, 6580050), (674000, 6580050)])
    second = Polygon([(675000, 6581000), (675020, 6581000), (675020, 6581020), (675000, 6581020)])
    return mapping(MultiPolygon([first, second]))


def test_area_of_square():
    assert geometry_area(PROPERTY_POLYGON) == pytest.approx(10000.0)


def test_area_of_multipolygon(two_plots):
    assert geometry_area(two_plots) == pytest.approx(5000.0 + 400.0)


def test_to_wgs84_keeps_type_and_shape():
    result = geometry_to_wgs84(PROPERTY_POLYGON)

    assert result["type"] == "Polygon"
    ring = result["coordinates"][0]
    assert len(ring) == 5
    assert ring[0] == ring[-1]
    for lon, lat in ring:
        assert 18.0 < lon < 18.2
        assert 59.3 < lat < 59.4


def test_to_wgs84_point():
    result = geometry_to_wgs84({"type": "Point", "coordinates": [500000.0, 6876000.0]})
    lon, lat = result["coordinates"]
    # central meridian of SWEREF99 TM
    assert lon == pytest.approx(15.0, abs=1e-6)
    assert 61.9 < lat < 62.1


@pytest.mark.parametrize(
    "geojson",
    [
        None,
        {},
        {"type": "Polygon"},
        {"type": "Hexagon", "coordinates": []},
        {"type": "Polygon", "coordinates": []},
    ],
)
def test_unreadable_geometry_rejected(geojson):
    with pytest.raises(ValidationError) as exc_info:
        load_geometry(geojson)
    assert exc_info.value.field == "geometry"


def test_geometry_outside_sweden_rejected():
    # already in WGS84, not SWEREF99 TM
    wgs84_square = {
        "type": "Polygon",
        "coordinates": [[[18.0, 59.3], [18.1, 59.3], [18.1, 59.4], [18.0, 59.4], [18.0, 59.3]]],
    }
    with pytest.raises(ValidationError, match="outside valid SWEREF99TM range"):
        geometry_area(wgs84_square)
