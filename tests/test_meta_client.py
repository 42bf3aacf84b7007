"""
Meta client and sync tests (no network: httpx.MockTransport).

Guards against:
1. Retry loop giving up too early, or retrying non-retryable 4xx errors
2. Pagination stopping after the first page
3. A failed sync wiping the previously stored campaigns
"""
import asyncio

import httpx
import pytest

from mia.connectors.meta import client as client_module
from mia.connectors.meta.client import MetaAPIError, MetaClient
from mia.scheduler.jobs import scheduled_sync_job, sync_meta
from mia.store import CampaignStore


def _run(coro):
    """Run an async coroutine in a sync test."""
    return asyncio.run(coro)


@pytest.fixture(autouse=True)
def no_backoff(monkeypatch):
    monkeypatch.setattr(client_module, "RETRY_BASE_DELAY", 0)


def _client(handler) -> MetaClient:
    return MetaClient(
        access_token="tok",
        ad_account_id="act_1",
        transport=httpx.MockTransport(handler),
    )


CAMPAIGN = {
    "id": "c1",
    "name": "Prospecting",
    "status": "ACTIVE",
    "daily_budget": "20000",
    "start_time": "2026-03-01T00:00:00+0000",
    "insights": {
        "data": [
            {
                "impressions": "5000",
                "clicks": "100",
                "spend": "250",
                "actions": [{"action_type": "purchase", "value": "5"}],
                "conversion_values": [{"action_type": "purchase", "value": "750"}],
            }
        ]
    },
}


def _graph_handler(calls):
    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        assert request.url.params["access_token"] == "tok"
        path = request.url.path
        if path.endswith("/act_1/campaigns"):
            if request.url.params.get("after") == "page2":
                return httpx.Response(200, json={"data": [{**CAMPAIGN, "id": "c2"}]})
            return httpx.Response(
                200,
                json={
                    "data": [CAMPAIGN],
                    "paging": {"next": str(request.url.copy_set_param("after", "page2"))},
                },
            )
        if path.endswith("/act_1"):
            return httpx.Response(200, json={"id": "act_1", "currency": "USD"})
        return httpx.Response(404, json={"error": {"message": "unknown", "code": 803}})

    return handler


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

def test_validate_token():
    def handler(request):
        assert request.url.path.endswith("/debug_token")
        assert request.url.params["input_token"] == "tok"
        return httpx.Response(
            200, json={"data": {"is_valid": True, "expires_at": 0, "scopes": ["ads_read"]}}
        )

    result = _run(_client(handler).validate_token())
    assert result["valid"] is True
    assert result["scopes"] == ["ads_read"]


def test_rate_limit_exhausts_retries():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(429)

    with pytest.raises(MetaAPIError) as exc:
        _run(_client(handler).get_account_info())
    assert exc.value.status_code == 429
    assert len(calls) == client_module.MAX_RETRIES


def test_server_error_is_retried():
    responses = iter([httpx.Response(500), httpx.Response(200, json={"id": "act_1"})])
    result = _run(_client(lambda request: next(responses)).get_account_info())
    assert result == {"id": "act_1"}


def test_client_error_is_not_retried():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(
            400, json={"error": {"message": "Invalid OAuth access token", "code": 190}}
        )

    with pytest.raises(MetaAPIError) as exc:
        _run(_client(handler).get_account_info())
    assert str(exc.value) == "Invalid OAuth access token"
    assert exc.value.error_code == 190
    assert len(calls) == 1


def test_transport_errors_become_meta_errors():
    def handler(request):
        raise httpx.ConnectError("boom", request=request)

    with pytest.raises(MetaAPIError, match="Connection failed"):
        _run(_client(handler).get_account_info())


def test_campaigns_are_paginated():
    calls = []
    raw = _run(_client(_graph_handler(calls)).fetch_campaigns_with_insights("last_30d"))

    assert [c["id"] for c in raw["campaigns"]] == ["c1", "c2"]
    assert raw["account"]["currency"] == "USD"
    assert "date_preset(last_30d)" in calls[0].url.params["fields"]
    # two campaign pages, then the account
    assert len(calls) == 3
    assert calls[1].url.params["after"] == "page2"
    assert calls[1].url.params.get_list("access_token") == ["tok"]


CAMPAIGNS_URL = "https://graph.example/v21.0/act_1/campaigns"


def test_next_link_without_token_is_signed():
    calls = []

    def handler(request):
        calls.append(request)
        if request.url.params.get("after") == "cur2":
            return httpx.Response(200, json={"data": [{"id": "b"}]})
        return httpx.Response(
            200,
            json={
                "data": [{"id": "a"}],
                "paging": {"next": f"{CAMPAIGNS_URL}?limit=100&after=cur2"},
            },
        )

    records = _run(_client(handler)._paginated_get(CAMPAIGNS_URL, {"limit": 100}))

    assert [r["id"] for r in records] == ["a", "b"]
    second = calls[1].url
    assert second.params["after"] == "cur2"
    assert second.params["limit"] == "100"
    assert second.params.get_list("access_token") == ["tok"]


def test_pagination_stops_at_page_limit():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(
            200, json={"data": [{"id": "x"}], "paging": {"next": str(request.url)}}
        )

    records = _run(_client(handler)._paginated_get("https://graph.example/loop", max_pages=4))
    assert len(records) == 4
    assert len(calls) == 4


# ---------------------------------------------------------------------------
# Sync
# ---------------------------------------------------------------------------

def test_sync_meta_fills_store():
    store = CampaignStore()
    status = _run(sync_meta(client=_client(_graph_handler([])), target=store))

    assert status.status == "success"
    assert status.campaigns == 2
    assert [c.id for c in store.campaigns()] == ["c1", "c2"]
    assert store.campaigns()[0].budget == 200.0
    assert store.snapshots()[0].roas == 3.0
    assert store.previous_snapshots() == []
    assert store.budgets() == {"c1": 200.0, "c2": 200.0}


def test_second_sync_keeps_previous_period():
    store = CampaignStore()
    _run(sync_meta(client=_client(_graph_handler([])), target=store))
    _run(sync_meta(client=_client(_graph_handler([])), target=store))
    assert len(store.previous_snapshots()) == 2


def test_failed_sync_keeps_data_and_records_error():
    store = CampaignStore()
    _run(sync_meta(client=_client(_graph_handler([])), target=store))

    failing = _client(lambda request: httpx.Response(400, json={"error": {"message": "expired"}}))
    with pytest.raises(MetaAPIError):
        _run(sync_meta(client=failing, target=store))

    status = store.status("meta")
    assert status.status == "failed"
    assert status.error == "expired"
    assert status.campaigns == 2
    assert len(store.campaigns()) == 2


def test_scheduled_job_never_raises(monkeypatch):
    async def broken_sync():
        raise MetaAPIError("down", status_code=503)

    monkeypatch.setattr("mia.scheduler.jobs.sync_meta", broken_sync)
    _run(scheduled_sync_job())
