import pytest

from storemap.common.config_loader import Credentials
from storemap.common.errors import ConfigError, UpstreamError
from storemap.harvest.bitable_harvest import fetch_all_records, fetch_tenant_token

BITABLE_CONFIG = {"api_base": "https://open.example/open-apis/", "page_size": 2, "max_pages": 10, "timeout_seconds": 5}
CREDS = Credentials(app_id="id", app_secret="secret", app_token="app1", table_id="tbl1")


class FakeClient:
    def __init__(self, pages, token_payload=None):
        self.pages = list(pages)
        self.token_payload = token_payload or {"code": 0, "tenant_access_token": "t-123"}
        self.get_calls = []
        self.post_calls = []

    def post_json(self, url, *, source_type, body, headers=None, timeout=None):
        self.post_calls.append((url, body))
        return self.token_payload

    def get_json(self, url, *, source_type, params=None, headers=None, timeout=None):
        self.get_calls.append({"url": url, "params": dict(params or {}), "headers": headers})
        return self.pages.pop(0)


def _page(ids, token="", has_more=None):
    data = {"items": [{"record_id": i, "fields": {}} for i in ids], "page_token": token}
    if has_more is not None:
        data["has_more"] = has_more
    return {"code": 0, "data": data}


@pytest.mark.integration
def test_fetch_follows_page_tokens_in_order():
    client = FakeClient([_page(["a", "b"], "p2", True), _page(["c", "d"], "p3", True), _page(["e"], "", False)])

    records = fetch_all_records(client, CREDS, BITABLE_CONFIG)

    assert [r["record_id"] for r in records] == ["a", "b", "c", "d", "e"]
    assert len(client.get_calls) == 3
    assert client.get_calls[0]["params"] == {"page_size": 2}
    assert client.get_calls[1]["params"] == {"page_size": 2, "page_token": "p2"}
    assert client.get_calls[2]["params"] == {"page_size": 2, "page_token": "p3"}
    assert client.get_calls[0]["url"] == "https://open.example/open-apis/bitable/v1/apps/app1/tables/tbl1/records"
    assert client.get_calls[0]["headers"] == {"Authorization": "Bearer t-123"}
    assert client.post_calls[0] == (
        "https://open.example/open-apis/auth/v3/tenant_access_token/internal",
        {"app_id": "id", "app_secret": "secret"},
    )


@pytest.mark.integration
def test_fetch_stops_when_has_more_is_false():
    client = FakeClient([_page(["a"], "stale", False)])

    assert len(fetch_all_records(client, CREDS, BITABLE_CONFIG)) == 1
    assert len(client.get_calls) == 1


@pytest.mark.integration
def test_fetch_aborts_on_error_page():
    client = FakeClient([_page(["a"], "p2", True), {"code": 1254302, "msg": "no permission"}])

    with pytest.raises(UpstreamError, match="no permission"):
        fetch_all_records(client, CREDS, BITABLE_CONFIG)


@pytest.mark.integration
def test_fetch_caps_page_count():
    client = FakeClient([_page([str(i)], f"p{i + 1}", True) for i in range(3)])

    with pytest.raises(UpstreamError, match="2 pages"):
        fetch_all_records(client, CREDS, dict(BITABLE_CONFIG, max_pages=2))
    assert len(client.get_calls) == 2


@pytest.mark.integration
def test_fetch_requires_credentials():
    client = FakeClient([])

    with pytest.raises(ConfigError, match="FEISHU_TABLE_ID"):
        fetch_all_records(client, Credentials(app_id="id", app_secret="s", app_token="a"), BITABLE_CONFIG)
    assert client.post_calls == []


@pytest.mark.integration
def test_token_failure_raises():
    client = FakeClient([], token_payload={"code": 10003, "msg": "invalid app_secret"})

    with pytest.raises(UpstreamError, match="invalid app_secret"):
        fetch_tenant_token(client, CREDS, BITABLE_CONFIG)
