"""Data models shared by the fetch, transform and map-session layers."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

from storemap.pipeline.fields import read_text


def _wire_coordinates(value: Any) -> tuple[float, float]:
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        return (0.0, 0.0)
    try:
        lng, lat = float(value[0]), float(value[1])
    except (TypeError, ValueError):
        return (0.0, 0.0)
    if not math.isfinite(lng) or not math.isfinite(lat):
        return (0.0, 0.0)
    return (lng, lat)


@dataclass(frozen=True)
class CustomerRecord:
    id: str
    name: str
    coordinates: tuple[float, float]
    product_name: str
    brand: str
    discount_price: str
    distributor: str
    region: str
    district: str
    address: str
    record_date: str | None

    @property
    def lng(self) -> float:
        return self.coordinates[0]

    @property
    def lat(self) -> float:
        return self.coordinates[1]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "coordinates": [self.coordinates[0], self.coordinates[1]],
            "productName": self.product_name,
            "brand": self.brand,
            "discountPrice": self.discount_price,
            "distributor": self.distributor,
            "region": self.region,
            "district": self.district,
            "address": self.address,
            "recordDate": self.record_date,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any], *, unknown_label: str = "") -> "CustomerRecord":
        """Rebuild a record from its wire form, tolerating older snake_case keys.

        Posted records come from the map client, so every text field goes
        through ``read_text`` and unusable coordinates fall back to ``(0, 0)``.
        """

        def text(*keys: str) -> str:
            for key in keys:
                value = read_text(payload.get(key))
                if value:
                    return value
            return ""

        return cls(
            id=text("id"),
            name=text("name"),
            coordinates=_wire_coordinates(payload.get("coordinates")),
            product_name=text("productName", "product_name") or unknown_label,
            brand=text("brand"),
            discount_price=text("discountPrice", "discountprice"),
            distributor=text("distributor"),
            region=text("region"),
            district=text("district"),
            address=text("address"),
            record_date=text("recordDate", "record_date") or None,
        )


@dataclass(frozen=True)
class Rejection:
    index: int
    reason: str
    upstream_id: str | None = None
    raw_preview: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"index": self.index, "id": self.upstream_id, "reason": self.reason}
        if self.raw_preview is not None:
            out.update(self.raw_preview)
        return out


@dataclass(frozen=True)
class TransformResult:
    """Outcome of transforming one raw record: exactly one of record/reason is set."""

    record: CustomerRecord | None = None
    reason: str | None = None
    notes: tuple[str, ...] = field(default_factory=tuple)

    @property
    def accepted(self) -> bool:
        return self.record is not None
