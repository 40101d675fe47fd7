import pytest

from storemap.common.constants import REASON_NON_FINITE_COORDINATE, REASON_UNPARSEABLE_COORDINATE
from storemap.pipeline.coordinates import Bounds, CoordinateError, disambiguate, resolve_coordinate_source

FIELD_CONFIG = {
    "location_field": "门店定位",
    "latitude_pattern": "纬度|latitude|lat",
    "longitude_pattern": "经度|longitude|lng",
}


@pytest.mark.parametrize("raw", ["34.76,113.65", "113.65,34.76", "113.65，34.76", "34.76 113.65", "113.65 ,  34.76"])
def test_disambiguate_orders_axes_by_plausible_range(raw):
    result = disambiguate(raw)

    assert (result.lng, result.lat) == (113.65, 34.76)
    assert result.ambiguous is False


def test_disambiguate_keeps_order_and_flags_out_of_range_pairs():
    result = disambiguate("10.5,20.25")

    assert (result.lng, result.lat) == (10.5, 20.25)
    assert result.ambiguous is True


def test_disambiguate_accepts_negative_values():
    result = disambiguate("-73.9,40.7", Bounds(lat_range=(24.0, 50.0), lng_range=(-125.0, -66.0)))

    assert (result.lng, result.lat) == (-73.9, 40.7)
    assert result.ambiguous is False


def test_disambiguate_rejects_single_number():
    with pytest.raises(CoordinateError) as excinfo:
        disambiguate("113.65")
    assert excinfo.value.reason == REASON_UNPARSEABLE_COORDINATE


def test_disambiguate_rejects_overflowing_number():
    with pytest.raises(CoordinateError) as excinfo:
        disambiguate("9" * 400 + ",34.5")
    assert excinfo.value.reason == REASON_NON_FINITE_COORDINATE


def test_resolver_prefers_poi_location_and_reads_address():
    fields = {
        "门店定位": {
            "locations": [
                {"poiInfo": {"location": "113.6,34.7", "fullAddress": "河南省郑州市金水区", "address": "金水路"}}
            ]
        },
        "纬度": "1",
        "经度": "2",
    }

    source = resolve_coordinate_source(fields, FIELD_CONFIG)

    assert source.raw == "113.6,34.7"
    assert source.address == "河南省郑州市金水区"


def test_resolver_falls_back_to_address_keys_in_order():
    fields = {"门店定位": {"locations": [{"poiInfo": {"location": "113.6,34.7", "full_address": "郑州"}}]}}

    assert resolve_coordinate_source(fields, FIELD_CONFIG).address == "郑州"


@pytest.mark.parametrize(
    "cell, expected",
    [
        ("113.6,34.7", "113.6,34.7"),
        ([113.6, 34.7], "113.6,34.7"),
        ({"location": "113.6,34.7"}, "113.6,34.7"),
        ({"lng": 113.6, "lat": 34.7}, "113.6,34.7"),
        ({"longitude": "113.6", "latitude": "34.7"}, "113.6,34.7"),
    ],
)
def test_resolver_reads_flat_location_cell_shapes(cell, expected):
    assert resolve_coordinate_source({"门店定位": cell}, FIELD_CONFIG).raw == expected


def test_resolver_uses_split_latitude_longitude_columns():
    fields = {"门店": "x", "纬度": [{"text": "34.7"}], "Longitude": 113.6}

    assert resolve_coordinate_source(fields, FIELD_CONFIG).raw == "113.6,34.7"


def test_resolver_requires_both_split_columns_to_be_numbers():
    fields = {"纬度": "unknown", "经度": "113.6"}

    assert resolve_coordinate_source(fields, FIELD_CONFIG).raw is None


def test_resolver_keeps_poi_address_when_location_blank():
    fields = {"门店定位": {"locations": [{"poiInfo": {"location": "  ", "address": "金水路"}}]}}

    source = resolve_coordinate_source(fields, FIELD_CONFIG)

    assert source.raw is None
    assert source.address == "金水路"
