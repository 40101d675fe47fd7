"""Bitable harvest: tenant token handshake and paged record listing."""

from __future__ import annotations

import logging
import time

from storemap.common.config_loader import Credentials
from storemap.common.errors import ConfigError, UpstreamError
from storemap.common.http import HttpClient, TimeoutConfig
from storemap.common.logging import get_logger, log_event

_LOGGER = get_logger("harvest")


def _api_base(bitable_config: dict) -> str:
    return str(bitable_config["api_base"]).rstrip("/")


def _timeout(bitable_config: dict) -> TimeoutConfig:
    return TimeoutConfig(connect=10, read=float(bitable_config.get("timeout_seconds", 30)))


def fetch_tenant_token(client: HttpClient, credentials: Credentials, bitable_config: dict) -> str:
    payload = client.post_json(
        f"{_api_base(bitable_config)}/auth/v3/tenant_access_token/internal",
        source_type="bitable",
        body={"app_id": credentials.app_id, "app_secret": credentials.app_secret},
        timeout=_timeout(bitable_config),
    )
    if payload.get("code") != 0:
        raise UpstreamError(f"Tenant token request failed: {payload.get('msg')}")
    token = payload.get("tenant_access_token")
    if not token:
        raise UpstreamError("Tenant token response carried no tenant_access_token")
    return str(token)


def fetch_all_records(
    client: HttpClient,
    credentials: Credentials,
    bitable_config: dict,
    *,
    token: str | None = None,
    logger: logging.Logger | None = None,
) -> list[dict]:
    """Fetch every record of the configured table, following page tokens.

    Pages are requested one at a time because each continuation token is only
    known once the previous page has returned. Any failed page aborts the whole
    fetch so callers never see a truncated table presented as complete.
    """
    logger = logger or _LOGGER
    missing = credentials.missing_bitable()
    if missing:
        raise ConfigError(f"Missing environment variables: {', '.join(missing)}")

    access_token = token or fetch_tenant_token(client, credentials, bitable_config)
    url = f"{_api_base(bitable_config)}/bitable/v1/apps/{credentials.app_token}/tables/{credentials.table_id}/records"
    page_size = int(bitable_config["page_size"])
    max_pages = int(bitable_config["max_pages"])
    headers = {"Authorization": f"Bearer {access_token}"}

    log_event(logger, "fetching table records", stage="fetch", source="bitable", event="FETCH_START", status="ok")
    started = time.monotonic()

    records: list[dict] = []
    page_token = ""
    pages = 0
    while True:
        if pages >= max_pages:
            raise UpstreamError(f"Record listing did not terminate within {max_pages} pages")

        params: dict[str, object] = {"page_size": page_size}
        if page_token:
            params["page_token"] = page_token

        payload = client.get_json(url, source_type="bitable", params=params, headers=headers, timeout=_timeout(bitable_config))
        pages += 1
        if payload.get("code") != 0:
            raise UpstreamError(f"Record listing failed: {payload.get('msg')}")

        data = payload.get("data") or {}
        items = data.get("items") or []
        records.extend(items)
        log_event(
            logger,
            f"page {pages} returned {len(items)} records",
            level=logging.DEBUG,
            stage="fetch",
            source="bitable",
            event="PAGE_FETCHED",
            status="ok",
            attempt=pages,
            rows_out=len(items),
        )

        page_token = data.get("page_token") or ""
        if not page_token or data.get("has_more") is False:
            break

    log_event(
        logger,
        f"fetched {len(records)} records in {pages} pages",
        stage="fetch",
        source="bitable",
        event="FETCH_END",
        status="ok",
        duration_ms=int((time.monotonic() - started) * 1000),
        rows_out=len(records),
    )
    return records
