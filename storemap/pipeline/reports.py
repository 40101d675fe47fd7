"""Run report generation."""

from __future__ import annotations

from pathlib import Path

from storemap.common.fs import write_json
from storemap.pipeline.aggregate import Summary
from storemap.pipeline.driver import DriverResult


def _fill_rates(result: DriverResult) -> dict[str, float]:
    total = len(result.accepted)
    columns = ("product_name", "brand", "discount_price", "distributor", "region", "district", "address", "record_date")
    rates = {}
    for column in columns:
        filled = sum(1 for record in result.accepted if getattr(record, column))
        rates[column] = 0.0 if total == 0 else round(filled / total * 100, 2)
    return rates


def write_transform_report(data_dir: Path, run_id: str, result: DriverResult) -> Path:
    warnings: list[str] = []
    if result.rejected:
        warnings.append("RECORDS_REJECTED")
    if result.ambiguous:
        warnings.append("AMBIGUOUS_AXIS_ORDER_PRESENT")

    status = "partial" if warnings else "success"
    payload = {
        "run_id": run_id,
        "status": status,
        "counts": {
            "raw_records": result.raw_count,
            "accepted": len(result.accepted),
            "rejected": len(result.rejected),
            "ambiguous_axis_order": len(result.ambiguous),
        },
        "rejections_by_reason": dict(sorted(result.rejection_counts().items())),
        "fill_percent": _fill_rates(result),
        "warnings": warnings,
    }
    report_path = data_dir / "out" / "reports" / "transform_report.json"
    write_json(report_path, payload)
    return report_path


def write_summary_report(data_dir: Path, run_id: str, summary: Summary, filters: dict, ai_summary: str | None = None) -> Path:
    payload = {
        "run_id": run_id,
        "filters": filters,
        "summary": summary.to_dict(),
        "ai_summary": ai_summary,
    }
    report_path = data_dir / "out" / "reports" / "summary_report.json"
    write_json(report_path, payload, sort_keys=False)
    return report_path
