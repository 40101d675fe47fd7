"""Cancellable summary requests for the current visible set.

At most one request is active. Starting a new one or closing the summary view
cancels the previous token, and a cancelled token's result is never applied.
"""

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, replace
from typing import Any, Callable

from storemap.common.errors import StoremapError, SummaryCancelled
from storemap.common.http import HttpClient, TimeoutConfig
from storemap.common.time_utils import utc_timestamp_iso


class CancellationToken:
    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise SummaryCancelled("summary request cancelled")


@dataclass(frozen=True)
class SummaryState:
    status: str = "idle"
    text: str = ""
    error: str = ""
    total: int | None = None
    updated_at: str | None = None


SummaryTransport = Callable[[dict, CancellationToken], str]


def extract_summary(response: Any) -> str:
    """Pull the summary text out of the endpoint's nested response envelope."""
    if not isinstance(response, dict):
        return ""
    data = response.get("data")
    if isinstance(data, str):
        return data
    node: Any = data
    for _ in range(3):
        if not isinstance(node, dict):
            return ""
        if isinstance(node.get("summary"), str):
            return node["summary"]
        node = node.get("data")
    return ""


def http_summary_transport(client: HttpClient, endpoint_url: str, *, read_timeout: float = 120.0) -> SummaryTransport:
    def _send(payload: dict, token: CancellationToken) -> str:
        token.raise_if_cancelled()
        response = client.post_json(
            endpoint_url,
            source_type="summary",
            body=payload,
            timeout=TimeoutConfig(connect=10, read=read_timeout),
        )
        token.raise_if_cancelled()
        summary = extract_summary(response)
        if not summary:
            raise StoremapError("No summary in response")
        return summary

    return _send


class SummaryRequester:
    def __init__(
        self,
        transport: SummaryTransport,
        *,
        executor: ThreadPoolExecutor | None = None,
        on_change: Callable[[SummaryState], None] | None = None,
    ) -> None:
        self.transport = transport
        self.on_change = on_change
        self._executor = executor or ThreadPoolExecutor(max_workers=2, thread_name_prefix="storemap-summary")
        self._owns_executor = executor is None
        self._lock = threading.RLock()
        self._active: CancellationToken | None = None
        self._state = SummaryState()

    @property
    def state(self) -> SummaryState:
        with self._lock:
            return self._state

    @property
    def in_flight(self) -> bool:
        with self._lock:
            return self._active is not None

    def _set_state(self, state: SummaryState) -> None:
        self._state = state
        if self.on_change is not None:
            self.on_change(state)

    def _apply(self, token: CancellationToken, **changes: Any) -> bool:
        with self._lock:
            if token.cancelled or token is not self._active:
                return False
            self._active = None
            self._set_state(replace(self._state, **changes))
            return True

    def request(self, payload: dict) -> Future:
        token = CancellationToken()
        with self._lock:
            if self._active is not None:
                self._active.cancel()
            self._active = token
            self._set_state(replace(self._state, status="loading", error=""))
        total = (payload.get("stats") or {}).get("total", len(payload.get("customers", [])))
        return self._executor.submit(self._run, token, payload, total)

    def _run(self, token: CancellationToken, payload: dict, total: int) -> bool:
        try:
            text = self.transport(payload, token)
        except SummaryCancelled:
            return False
        except StoremapError as exc:
            return self._apply(token, status="error", error=str(exc) or "summary failed")
        except Exception as exc:
            # Unexpected transport failures still end the request.
            return self._apply(token, status="error", error=str(exc) or type(exc).__name__)
        return self._apply(token, status="ready", text=text, total=total, updated_at=utc_timestamp_iso())

    def cancel(self) -> None:
        with self._lock:
            if self._active is not None:
                self._active.cancel()
                self._active = None
            self._set_state(replace(self._state, status="idle"))

    def close(self) -> None:
        self.cancel()
        if self._owns_executor:
            self._executor.shutdown(wait=False)
