"""Chat-completions call used for filtered-view summaries."""

from __future__ import annotations

import logging

from storemap.common.config_loader import Credentials
from storemap.common.errors import CompletionError, ConfigError
from storemap.common.http import HttpClient, HttpRequestError, TimeoutConfig
from storemap.common.logging import get_logger, log_event

_LOGGER = get_logger("completion")


def extract_completion_text(payload: dict) -> str:
    choices = payload.get("choices") or []
    if not choices or not isinstance(choices[0], dict):
        return ""
    message = choices[0].get("message") or {}
    content = message.get("content") if isinstance(message, dict) else None
    return content.strip() if isinstance(content, str) else ""


def request_completion(
    client: HttpClient,
    credentials: Credentials,
    completion_config: dict,
    prompt: str,
    *,
    logger: logging.Logger | None = None,
) -> str:
    logger = logger or _LOGGER
    missing = credentials.missing_completion()
    if missing:
        raise ConfigError(f"Missing environment variables: {', '.join(missing)}")

    body = {
        # The Ark API takes the endpoint id in place of a model name.
        "model": credentials.completion_endpoint,
        "messages": [{"role": "user", "content": prompt}],
        "temperature": float(completion_config.get("temperature", 0.7)),
    }
    log_event(logger, "requesting completion", stage="summary", source="completion", event="SUMMARY_REQUEST", status="ok")
    try:
        payload = client.post_json(
            completion_config["api_url"],
            source_type="completion",
            body=body,
            headers={"Authorization": f"Bearer {credentials.completion_api_key}"},
            timeout=TimeoutConfig(connect=10, read=float(completion_config.get("timeout_seconds", 120))),
        )
    except HttpRequestError as exc:
        log_event(
            logger,
            f"completion call failed: {exc}",
            level=logging.ERROR,
            stage="summary",
            source="completion",
            event="SUMMARY_FAIL",
            status="error",
            error_code=exc.error_code,
        )
        raise CompletionError(f"Completion API call failed: {exc}") from exc

    summary = extract_completion_text(payload)
    if not summary:
        raise CompletionError("Completion API returned no summary content")
    return summary
