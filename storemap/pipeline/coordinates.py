"""Coordinate extraction and axis-order disambiguation."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any

from storemap.common.constants import REASON_NON_FINITE_COORDINATE, REASON_UNPARSEABLE_COORDINATE
from storemap.pipeline.fields import read_text

COORDINATE_PAIR_RE = re.compile(r"(-?\d+\.?\d*)[,，\s]+(-?\d+\.?\d*)")
ADDRESS_KEYS = ("fullAddress", "full_address", "address")


class CoordinateError(ValueError):
    """Raised when a raw coordinate string cannot become a (lng, lat) pair."""

    def __init__(self, reason: str, raw: str) -> None:
        super().__init__(f"{reason}: {raw}")
        self.reason = reason
        self.raw = raw


@dataclass(frozen=True)
class CoordinateSource:
    raw: str | None
    address: str = ""


@dataclass(frozen=True)
class Bounds:
    lat_range: tuple[float, float] = (18.0, 54.0)
    lng_range: tuple[float, float] = (73.0, 135.0)

    @classmethod
    def from_config(cls, coordinates_config: dict) -> "Bounds":
        lat_min, lat_max = coordinates_config["lat_range"]
        lng_min, lng_max = coordinates_config["lng_range"]
        return cls(lat_range=(float(lat_min), float(lat_max)), lng_range=(float(lng_min), float(lng_max)))

    def lat_plausible(self, value: float) -> bool:
        return self.lat_range[0] <= value <= self.lat_range[1]

    def lng_plausible(self, value: float) -> bool:
        return self.lng_range[0] <= value <= self.lng_range[1]


@dataclass(frozen=True)
class Disambiguation:
    lng: float
    lat: float
    ambiguous: bool = False


def _safe_float(value: Any) -> float | None:
    if value is None:
        return None
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    return parsed if math.isfinite(parsed) else None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _poi_info(location_cell: Any) -> dict | None:
    if not isinstance(location_cell, dict):
        return None
    locations = location_cell.get("locations")
    if not isinstance(locations, list) or not locations or not isinstance(locations[0], dict):
        return None
    poi = locations[0].get("poiInfo")
    return poi if isinstance(poi, dict) else None


def _first_present(mapping: dict, keys: tuple[str, ...]) -> str:
    for key in keys:
        value = mapping.get(key)
        if value:
            return str(value)
    return ""


def _from_location_cell(cell: Any) -> str | None:
    if isinstance(cell, str):
        return cell or None
    if isinstance(cell, list):
        if len(cell) == 2 and _is_number(cell[0]):
            return f"{cell[0]},{cell[1]}"
        return None
    if isinstance(cell, dict):
        if cell.get("location"):
            return str(cell["location"])
        if cell.get("lng") and cell.get("lat"):
            return f"{cell['lng']},{cell['lat']}"
        if cell.get("longitude") and cell.get("latitude"):
            return f"{cell['longitude']},{cell['latitude']}"
    return None


def _from_split_columns(fields: dict[str, Any], lat_pattern: re.Pattern, lng_pattern: re.Pattern) -> str | None:
    lat_key = next((key for key in fields if lat_pattern.search(key)), None)
    lng_key = next((key for key in fields if lng_pattern.search(key)), None)
    if lat_key is None or lng_key is None:
        return None
    lat = _safe_float(read_text(fields[lat_key]).strip())
    lng = _safe_float(read_text(fields[lng_key]).strip())
    if lat is None or lng is None:
        return None
    return f"{lng},{lat}"


def resolve_coordinate_source(fields: dict[str, Any], field_config: dict) -> CoordinateSource:
    location_cell = fields.get(field_config["location_field"])
    raw: str | None = None
    address = ""

    poi = _poi_info(location_cell)
    if poi is not None:
        location = poi.get("location")
        if isinstance(location, str) and location.strip():
            raw = location
        address = _first_present(poi, ADDRESS_KEYS)

    if raw is None and location_cell:
        raw = _from_location_cell(location_cell)

    if raw is None:
        raw = _from_split_columns(
            fields,
            re.compile(field_config["latitude_pattern"], re.IGNORECASE),
            re.compile(field_config["longitude_pattern"], re.IGNORECASE),
        )

    return CoordinateSource(raw=raw, address=address)


def disambiguate(raw: str, bounds: Bounds | None = None) -> Disambiguation:
    """Split a "number, number" string into (lng, lat).

    Upstream location cells do not document their axis order, so the pair is
    ordered by which value falls in the configured latitude and longitude
    ranges. When neither order fits, the original order is kept and the
    result is flagged ``ambiguous`` for the caller to report.
    """
    bounds = bounds or Bounds()
    match = COORDINATE_PAIR_RE.search(str(raw))
    if match is None:
        raise CoordinateError(REASON_UNPARSEABLE_COORDINATE, str(raw))

    a = float(match.group(1))
    b = float(match.group(2))

    if bounds.lat_plausible(a) and bounds.lng_plausible(b):
        lng, lat, ambiguous = b, a, False
    elif bounds.lng_plausible(a) and bounds.lat_plausible(b):
        lng, lat, ambiguous = a, b, False
    else:
        lng, lat, ambiguous = a, b, True

    if not math.isfinite(lng) or not math.isfinite(lat):
        raise CoordinateError(REASON_NON_FINITE_COORDINATE, str(raw))

    return Disambiguation(lng=lng, lat=lat, ambiguous=ambiguous)
