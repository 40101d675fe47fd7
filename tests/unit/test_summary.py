import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from storemap.common.errors import StoremapError, SummaryCancelled
from storemap.client.summary import CancellationToken, SummaryRequester, extract_summary, http_summary_transport


class BlockingTransport:
    """Returns a canned reply per call once its gate is released."""

    def __init__(self, replies):
        self.replies = list(replies)
        self.gates = []
        self.started = []

    def __call__(self, payload, token):
        gate = threading.Event()
        started = threading.Event()
        self.gates.append(gate)
        self.started.append(started)
        reply = self.replies.pop(0)
        started.set()
        gate.wait(5)
        return reply


def _payload(total=3):
    return {"customers": [], "stats": {"total": total}, "filters": {}, "searchQuery": ""}


def _wait_started(transport, count):
    for _ in range(500):
        if len(transport.started) >= count:
            transport.started[count - 1].wait(5)
            return
        time.sleep(0.01)
    raise AssertionError("transport was not called")


def test_request_applies_result():
    requester = SummaryRequester(lambda payload, token: "总结")

    assert requester.request(_payload()).result(timeout=5) is True
    assert requester.state.status == "ready"
    assert requester.state.text == "总结"
    assert requester.state.total == 3
    assert requester.in_flight is False
    requester.close()


def test_cancel_discards_late_result():
    transport = BlockingTransport(["late"])
    requester = SummaryRequester(transport)

    future = requester.request(_payload())
    _wait_started(transport, 1)
    requester.cancel()
    transport.gates[0].set()

    assert future.result(timeout=5) is False
    assert requester.state.status == "idle"
    assert requester.state.text == ""
    requester.close()


def test_newer_request_supersedes_older():
    transport = BlockingTransport(["first", "second"])
    executor = ThreadPoolExecutor(max_workers=2)
    requester = SummaryRequester(transport, executor=executor)

    first = requester.request(_payload())
    _wait_started(transport, 1)
    second = requester.request(_payload(total=7))
    _wait_started(transport, 2)
    transport.gates[1].set()
    assert second.result(timeout=5) is True
    transport.gates[0].set()

    assert first.result(timeout=5) is False
    assert requester.state.text == "second"
    assert requester.state.total == 7
    executor.shutdown(wait=True)


def test_transport_error_sets_error_state():
    def _failing(payload, token):
        raise StoremapError("upstream down")

    states = []
    requester = SummaryRequester(_failing, on_change=states.append)

    assert requester.request(_payload()).result(timeout=5) is True
    assert requester.state.status == "error"
    assert requester.state.error == "upstream down"
    assert [state.status for state in states] == ["loading", "error"]
    requester.close()


def test_cancellation_token():
    token = CancellationToken()
    token.raise_if_cancelled()
    token.cancel()

    with pytest.raises(SummaryCancelled):
        token.raise_if_cancelled()


@pytest.mark.parametrize(
    "response,expected",
    [
        ({"data": {"data": {"summary": "a"}}}, "a"),
        ({"data": {"summary": "b"}}, "b"),
        ({"data": "c"}, "c"),
        ({"data": {"data": {"data": {"summary": "d"}}}}, "d"),
        ({"data": {}}, ""),
        ([], ""),
    ],
)
def test_extract_summary_envelopes(response, expected):
    assert extract_summary(response) == expected


class FakeClient:
    def __init__(self, payload):
        self.payload = payload
        self.calls = []

    def post_json(self, url, *, source_type, body, headers=None, timeout=None):
        self.calls.append((url, body))
        return self.payload


def test_http_transport_checks_token_before_sending():
    client = FakeClient({"ok": True, "data": {"data": {"summary": "s"}}})
    send = http_summary_transport(client, "http://localhost/api/feishu/send-filtered")
    token = CancellationToken()

    assert send(_payload(), token) == "s"
    token.cancel()
    with pytest.raises(SummaryCancelled):
        send(_payload(), token)
    assert len(client.calls) == 1


def test_http_transport_requires_summary_text():
    send = http_summary_transport(FakeClient({"ok": True, "data": {}}), "http://localhost/x")

    with pytest.raises(StoremapError):
        send(_payload(), CancellationToken())


def test_unexpected_transport_error_ends_request():
    def _broken(payload, token):
        raise KeyError("boom")

    requester = SummaryRequester(_broken)

    assert requester.request(_payload()).result(timeout=5) is True
    assert requester.state.status == "error"
    assert "boom" in requester.state.error
    assert requester.in_flight is False
    requester.close()


def test_total_falls_back_to_customer_count_when_stats_missing():
    requester = SummaryRequester(lambda payload, token: "ok")

    payload = {"customers": [{"id": "a"}, {"id": "b"}], "stats": None}
    assert requester.request(payload).result(timeout=5) is True
    assert requester.state.total == 2
    requester.close()
