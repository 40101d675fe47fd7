"""Map one raw table record onto a canonical customer record."""

from __future__ import annotations

from typing import Any

from storemap.common.constants import (
    NOTE_AMBIGUOUS_AXIS_ORDER,
    REASON_AMBIGUOUS_COORDINATE,
    REASON_MISSING_COORDINATE,
    REASON_MISSING_NAME,
)
from storemap.common.models import CustomerRecord, TransformResult
from storemap.pipeline.coordinates import Bounds, CoordinateError, disambiguate, resolve_coordinate_source
from storemap.pipeline.dates import normalize_date
from storemap.pipeline.fields import read_first_text, read_text

RECORD_ID_KEYS = ("record_id", "id", "recordId")


def upstream_id(raw: dict[str, Any]) -> str | None:
    for key in RECORD_ID_KEYS:
        value = raw.get(key)
        if value:
            return str(value)
    return None


def _text(fields: dict[str, Any], field_config: dict, key: str) -> str:
    column = field_config.get(key)
    if not column:
        return ""
    return read_text(fields.get(column))


def transform_record(raw: dict[str, Any], index: int, app_config: dict) -> TransformResult:
    """Pure mapping of ``raw`` to a record or a rejection reason; never raises on bad data."""
    field_config = app_config["fields"]
    fields = raw.get("fields") or {}
    if not isinstance(fields, dict):
        fields = {}

    name = read_first_text(fields, field_config["name_candidates"])
    if not name:
        return TransformResult(reason=REASON_MISSING_NAME)

    source = resolve_coordinate_source(fields, field_config)
    if not source.raw:
        return TransformResult(reason=REASON_MISSING_COORDINATE)

    try:
        position = disambiguate(source.raw, Bounds.from_config(app_config["coordinates"]))
    except CoordinateError as exc:
        return TransformResult(reason=exc.reason)

    notes: tuple[str, ...] = ()
    if position.ambiguous:
        if app_config["coordinates"].get("reject_ambiguous", False):
            return TransformResult(reason=REASON_AMBIGUOUS_COORDINATE)
        notes = (NOTE_AMBIGUOUS_AXIS_ORDER,)

    date_column = field_config.get("record_date")
    record = CustomerRecord(
        id=upstream_id(raw) or f"customer-{index}",
        name=name,
        coordinates=(position.lng, position.lat),
        product_name=_text(fields, field_config, "product_name") or app_config["transform"]["unknown_label"],
        brand=_text(fields, field_config, "brand"),
        discount_price=_text(fields, field_config, "discount_price"),
        distributor=_text(fields, field_config, "distributor"),
        region=_text(fields, field_config, "region"),
        district=_text(fields, field_config, "district"),
        address=source.address,
        record_date=normalize_date(fields.get(date_column)) if date_column else None,
    )
    return TransformResult(record=record, notes=notes)
