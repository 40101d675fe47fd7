"""Customer export to JSON and CSV run artefacts."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from storemap.common.fs import write_csv, write_json
from storemap.common.models import CustomerRecord

CUSTOMER_CSV_HEADERS = [
    "id",
    "name",
    "lng",
    "lat",
    "productName",
    "brand",
    "discountPrice",
    "distributor",
    "region",
    "district",
    "address",
    "recordDate",
]


def _serialize_row(record: CustomerRecord) -> dict[str, Any]:
    row = record.to_dict()
    row["lng"], row["lat"] = row.pop("coordinates")
    return {key: "" if row.get(key) is None else row[key] for key in CUSTOMER_CSV_HEADERS}


def write_customer_exports(data_dir: Path, payload: dict[str, Any], records: list[CustomerRecord]) -> tuple[Path, Path]:
    json_path = data_dir / "out" / "customers.json"
    csv_path = data_dir / "out" / "customers.csv"
    # Rows keep fetch order.
    write_json(json_path, payload)
    write_csv(csv_path, CUSTOMER_CSV_HEADERS, (_serialize_row(record) for record in records))
    return json_path, csv_path
