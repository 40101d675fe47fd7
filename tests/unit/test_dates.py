import pytest

from storemap.pipeline.dates import normalize_date


def test_seconds_and_milliseconds_normalise_to_same_day():
    assert normalize_date(1700000000) == "2023-11-14"
    assert normalize_date(1700000000000) == "2023-11-14"


@pytest.mark.parametrize("value", [[1700000000000], ["1700000000"], 1700000000000.0, " 1700000000 "])
def test_array_string_and_float_epochs(value):
    assert normalize_date(value) == "2023-11-14"


def test_date_like_strings_are_parsed():
    assert normalize_date("2024-03-05") == "2024-03-05"
    assert normalize_date("2024/03/05 10:30") == "2024-03-05"


@pytest.mark.parametrize("value", [None, "", [], "not a date", {"x": 1}, 10**30, True])
def test_unusable_values_degrade_to_none(value):
    assert normalize_date(value) is None
