from readyset.services.geo import (
    geojson_to_lat_lng,
    join_address,
    lat_lng_pair,
    parse_geojson,
    point_geojson,
)


def test_point_geojson_uses_lng_lat_order():
    assert point_geojson(37.79, -122.39) == {"type": "Point", "coordinates": [-122.39, 37.79]}


def test_geojson_to_lat_lng_reverses_coordinates():
    assert geojson_to_lat_lng({"type": "Point", "coordinates": [-122.39, 37.79]}) == [
        37.79,
        -122.39,
    ]


def test_geojson_to_lat_lng_accepts_json_strings():
    assert geojson_to_lat_lng('{"type": "Point", "coordinates": [3.4, 6.5]}') == [6.5, 3.4]


def test_geojson_to_lat_lng_returns_none_for_unusable_values():
    assert geojson_to_lat_lng(None) is None
    assert geojson_to_lat_lng("not json") is None
    assert geojson_to_lat_lng({"type": "Point"}) is None
    assert geojson_to_lat_lng({"type": "Point", "coordinates": [1.0]}) is None


def test_parse_geojson_rejects_non_objects():
    assert parse_geojson("[1, 2]") is None


def test_lat_lng_pair_requires_both_values():
    assert lat_lng_pair(1.5, 2.5) == [1.5, 2.5]
    assert lat_lng_pair(None, 2.5) is None
    assert lat_lng_pair(1.5, None) is None


def test_join_address_skips_blank_parts():
    assert join_address("1 Market St", None, "CA", "") == "1 Market St, CA"
    assert join_address(None, None) == ""
