"""Run the record transformer over a fetched batch and assemble the response payload."""

from __future__ import annotations

import json
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any

from storemap.common.constants import NOTE_AMBIGUOUS_AXIS_ORDER
from storemap.common.logging import get_logger, log_event
from storemap.common.models import CustomerRecord, Rejection, TransformResult
from storemap.pipeline.transform import transform_record, upstream_id

_LOGGER = get_logger("driver")


@dataclass
class DriverResult:
    accepted: list[CustomerRecord] = field(default_factory=list)
    rejected: list[Rejection] = field(default_factory=list)
    ambiguous: list[dict[str, Any]] = field(default_factory=list)
    raw_count: int = 0

    @property
    def stats(self) -> dict[str, int]:
        # No volume column exists in the canonical record; kept for client compatibility.
        return {"total": len(self.accepted), "totalVolume": 0}

    def rejection_counts(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for rejection in self.rejected:
            counts[rejection.reason] = counts.get(rejection.reason, 0) + 1
        return counts


def _preview_value(value: Any, max_chars: int) -> str:
    if isinstance(value, (str, int, float)) and not isinstance(value, bool):
        text = str(value)
    else:
        try:
            text = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError):
            text = type(value).__name__
    if len(text) > max_chars:
        return text[:max_chars] + "..."
    return text


def build_raw_preview(raw: dict[str, Any], *, max_fields: int = 8, max_chars: int = 200) -> dict[str, Any]:
    fields = raw.get("fields") or {}
    if not isinstance(fields, dict):
        fields = {}
    keys = list(fields)
    return {
        "keys": keys,
        "preview": {key: _preview_value(fields[key], max_chars) for key in keys[:max_fields]},
    }


def _transform_all(raw_records: list[dict], app_config: dict, workers: int) -> list[TransformResult]:
    if workers <= 1 or len(raw_records) < 2:
        return [transform_record(raw, index, app_config) for index, raw in enumerate(raw_records)]
    with ThreadPoolExecutor(max_workers=workers) as pool:
        # map() yields in submission order, so output order matches fetch order.
        return list(
            pool.map(
                lambda pair: transform_record(pair[1], pair[0], app_config),
                enumerate(raw_records),
            )
        )


def run_transformation(
    raw_records: list[dict],
    app_config: dict,
    *,
    debug: bool = False,
    workers: int | None = None,
    logger: logging.Logger | None = None,
) -> DriverResult:
    logger = logger or _LOGGER
    transform_cfg = app_config["transform"]
    worker_count = int(workers if workers is not None else transform_cfg.get("workers", 1))

    outcomes = _transform_all(raw_records, app_config, worker_count)
    result = DriverResult(raw_count=len(raw_records))

    for index, (raw, outcome) in enumerate(zip(raw_records, outcomes)):
        if outcome.record is not None:
            result.accepted.append(outcome.record)
            if NOTE_AMBIGUOUS_AXIS_ORDER in outcome.notes:
                result.ambiguous.append(
                    {"index": index, "id": outcome.record.id, "coordinates": list(outcome.record.coordinates)}
                )
                log_event(
                    logger,
                    f"coordinate axis order could not be verified for record {outcome.record.id}",
                    level=logging.WARNING,
                    stage="transform",
                    event=NOTE_AMBIGUOUS_AXIS_ORDER,
                    status="warning",
                )
            continue

        preview = None
        if debug:
            preview = build_raw_preview(
                raw,
                max_fields=int(transform_cfg.get("preview_fields", 8)),
                max_chars=int(transform_cfg.get("preview_chars", 200)),
            )
        rejection = Rejection(
            index=index,
            reason=outcome.reason or "unknown",
            upstream_id=upstream_id(raw),
            raw_preview=preview,
        )
        result.rejected.append(rejection)
        log_event(
            logger,
            f"record {index} rejected: {rejection.reason}",
            level=logging.DEBUG,
            stage="transform",
            event="RECORD_REJECTED",
            status="rejected",
        )

    log_event(
        logger,
        f"transformed {len(result.accepted)} records, rejected {len(result.rejected)}",
        stage="transform",
        event="TRANSFORM_END",
        status="ok",
        rows_in=result.raw_count,
        rows_out=len(result.accepted),
    )
    return result


def build_customer_payload(result: DriverResult, *, debug: bool = False) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "customers": [record.to_dict() for record in result.accepted],
        "stats": result.stats,
    }
    if debug:
        payload["debug"] = {
            "failed": [rejection.to_dict() for rejection in result.rejected],
            "ambiguous": list(result.ambiguous),
        }
    return payload


def empty_customer_payload(error: str) -> dict[str, Any]:
    return {"error": error, "customers": [], "stats": {"total": 0, "totalVolume": 0}}
