"""HTTP endpoints serving customer data and filtered-view summaries to the map client."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from storemap.common.config_loader import Credentials, load_app_config
from storemap.common.errors import StoremapError
from storemap.common.http import HttpClient, build_http_client
from storemap.common.logging import build_logger, log_event
from storemap.common.models import CustomerRecord
from storemap.completion.client import request_completion
from storemap.completion.prompt import FilterContext, build_summary_prompt
from storemap.harvest.bitable_harvest import fetch_all_records
from storemap.pipeline.aggregate import summarize
from storemap.pipeline.driver import build_customer_payload, empty_customer_payload, run_transformation


class SummaryRequest(BaseModel):
    customers: list[dict[str, Any]]
    stats: dict[str, Any] | None = None
    filters: dict[str, Any] | None = None
    searchQuery: str | None = None


def create_app(
    app_config: dict | None = None,
    *,
    config_dir: Path = Path("config"),
    credentials_provider: Callable[[], Credentials] = Credentials.from_env,
    http_client_factory: Callable[[], HttpClient] | None = None,
    logger: logging.Logger | None = None,
) -> FastAPI:
    cfg = app_config if app_config is not None else load_app_config(config_dir)
    make_client = http_client_factory or (lambda: build_http_client(cfg))
    log = logger or build_logger("api")

    app = FastAPI(title="storemap")

    @app.exception_handler(RequestValidationError)
    async def _invalid_body(_request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse({"error": f"Invalid request body: {exc.errors()[:1]}"}, status_code=400)

    @app.get("/healthz")
    def healthz() -> dict:
        return {"status": "ok"}

    @app.get("/api/customer-data")
    def customer_data() -> JSONResponse:
        credentials = credentials_provider()
        missing = credentials.missing_bitable()
        if missing:
            message = f"Missing environment variables: {', '.join(missing)}. Copy .env.local.example to .env.local and fill them in."
            log_event(log, message, level=logging.ERROR, stage="fetch", event="STAGE_FAIL", status="error", error_code="CONFIG_ERROR")
            return JSONResponse(empty_customer_payload(message), status_code=400)

        client = make_client()
        try:
            raw_records = fetch_all_records(client, credentials, cfg["bitable"], logger=log)
        except StoremapError as exc:
            log_event(
                log,
                f"customer data fetch failed: {exc}",
                level=logging.ERROR,
                stage="fetch",
                event="STAGE_FAIL",
                status="error",
                error_code=exc.error_code,
            )
            return JSONResponse(empty_customer_payload(str(exc)), status_code=500)
        finally:
            client.close()

        debug = credentials.debug_transform
        result = run_transformation(raw_records, cfg, debug=debug, logger=log)
        return JSONResponse(build_customer_payload(result, debug=debug))

    @app.post("/api/feishu/send-filtered")
    def send_filtered(body: SummaryRequest) -> JSONResponse:
        credentials = credentials_provider()
        missing = credentials.missing_completion()
        if missing:
            return JSONResponse({"error": f"Missing environment variables: {', '.join(missing)}"}, status_code=500)

        unknown_label = cfg["transform"]["unknown_label"]
        records = [
            CustomerRecord.from_dict(customer, unknown_label=unknown_label)
            for customer in body.customers
            if isinstance(customer, dict)
        ]
        summary = summarize(
            records,
            unknown_label=unknown_label,
            sample_limit=int(cfg["completion"].get("discount_samples", 5)),
        )
        total = (body.stats or {}).get("total")
        prompt = build_summary_prompt(
            summary,
            FilterContext.from_request(body.filters, body.searchQuery),
            total=int(total) if isinstance(total, (int, float)) and total > 0 else len(records),
            top_products=int(cfg["completion"].get("top_products", 5)),
        )

        client = make_client()
        try:
            text = request_completion(client, credentials, cfg["completion"], prompt, logger=log)
        except StoremapError as exc:
            return JSONResponse({"error": str(exc) or "summary failed"}, status_code=500)
        finally:
            client.close()

        return JSONResponse({"ok": True, "data": {"data": {"summary": text}}})

    return app
