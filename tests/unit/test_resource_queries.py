import httpx
import pytest

from tezeus.client.api import ApiError, TezeusApiClient
from tezeus.client.config import ClientConfig
from tezeus.client.dashboard import DashboardStats
from tezeus.client.notifications import Notifier
from tezeus.client.queries import (
    FALLBACK_CUSTOMIZATION,
    ResourceQuery,
    channels_query,
    dashboard_query,
    instances_query,
    system_customization_query,
)
from tezeus.client.session import CachedUser, ClientSession, SelectedWorkspace


def _session(with_workspace=True):
    return ClientSession(
        user=CachedUser(id="u1", email="ana@acme.test"),
        workspace=SelectedWorkspace(workspace_id="w1") if with_workspace else None,
    )


def _api(handler, session=None):
    return TezeusApiClient(ClientConfig(base_url="http://api.test"), session or _session(), transport=httpx.MockTransport(handler))


async def test_failed_fetch_degrades_to_default_and_notifies():
    notifier = Notifier()

    async def boom():
        raise RuntimeError("store unavailable")

    query = ResourceQuery("queues", boom, default=list, notifier=notifier, error_title="Failed to load queues")
    query.data = ["stale"]

    assert await query.refetch() == []
    assert query.error == "store unavailable"
    assert query.loading is False
    assert notifier.last.title == "Failed to load queues"
    assert notifier.last.is_error


async def test_success_clears_previous_error():
    notifier = Notifier()
    calls = []

    async def fetch():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("flaky")
        return ["ok"]

    query = ResourceQuery("channels", fetch, default=list, notifier=notifier, error_title="x")
    await query.refetch()
    assert await query.refetch() == ["ok"]
    assert query.error is None


async def test_disabled_query_does_not_fetch():
    calls = []

    async def fetch():
        calls.append(1)
        return ["x"]

    query = ResourceQuery("channels", fetch, default=list, notifier=Notifier(), error_title="x", enabled=lambda: False)
    assert await query.refetch() == []
    assert calls == []


async def test_ensure_refetches_only_when_dependencies_change():
    calls = []

    async def fetch():
        calls.append(1)
        return len(calls)

    query = ResourceQuery("n", fetch, default=int, notifier=Notifier(), error_title="x")
    await query.ensure("w1")
    await query.ensure("w1")
    assert calls == [1]
    assert await query.ensure("w2") == 2


async def test_channels_query_sends_workspace_headers():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"data": [{"name": "Vendas"}]})

    api = _api(handler)
    query = channels_query(api, Notifier())
    assert await query.refetch() == [{"name": "Vendas"}]
    assert seen[0].url.path == "/api/v1/channels"
    assert seen[0].headers["x-workspace-id"] == "w1"
    assert seen[0].headers["x-system-user-id"] == "u1"
    await api.aclose()


async def test_query_without_workspace_stays_idle():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"data": []})

    api = _api(handler, _session(with_workspace=False))
    notifier = Notifier()
    assert await instances_query(api, notifier).refetch() == []
    assert seen == []
    assert notifier.history == []
    await api.aclose()


async def test_server_error_becomes_notification():
    api = _api(lambda request: httpx.Response(500, json={"success": False, "error": "boom", "code": "upstream_error"}))
    notifier = Notifier()
    query = channels_query(api, notifier)
    assert await query.refetch() == []
    assert query.error == "boom"
    assert notifier.last.description == "boom"
    await api.aclose()


async def test_dashboard_query_uses_server_aggregate():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"data": {"totalConnections": 3, "activeConnections": 2}})

    api = _api(handler)
    stats = await dashboard_query(api, Notifier()).refetch()
    assert stats == DashboardStats(total_connections=3, active_connections=2)
    assert "since" in seen[0].url.params
    await api.aclose()


async def test_dashboard_query_falls_back_to_local_aggregation():
    api = _api(lambda request: httpx.Response(500, json={"success": False, "error": "down"}))

    async def rows():
        return ([{"status": "connected"}], [{"status": "open"}], [], [{"is_completed": False}])

    notifier = Notifier()
    stats = await dashboard_query(api, notifier, fallback_rows=rows).refetch()
    assert stats.active_connections == 1
    assert stats.active_conversations == 1
    assert stats.pending_tasks == 1
    assert notifier.history == []
    await api.aclose()


async def test_dashboard_query_without_fallback_zeroes_stats():
    api = _api(lambda request: httpx.Response(500, json={"success": False, "error": "down"}))
    notifier = Notifier()
    assert await dashboard_query(api, notifier).refetch() == DashboardStats()
    assert notifier.last.title == "Failed to load dashboard"
    await api.aclose()


async def test_api_error_carries_envelope():
    api = _api(lambda request: httpx.Response(403, json={"success": False, "error": "nope", "code": "not_workspace_member"}))
    with pytest.raises(ApiError) as exc:
        await api.get("/channels")
    assert exc.value.status_code == 403
    assert exc.value.code == "not_workspace_member"
    assert exc.value.message == "nope"
    await api.aclose()


async def test_customization_loads_signed_out_without_identity_headers():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"data": {"logo_url": "https://cdn.test/logo.png", "primary_color": "#ff0000"}})

    query = system_customization_query(_api(handler, ClientSession()), Notifier())
    data = await query.refetch()

    assert seen[0].url.path == "/api/v1/functions/get-system-customization"
    assert "x-system-user-id" not in seen[0].headers
    assert data["logo_url"] == "https://cdn.test/logo.png"
    assert data["primary_color"] == "#ff0000"
    assert data["sidebar_color"] == FALLBACK_CUSTOMIZATION["sidebar_color"]


async def test_customization_failure_keeps_fallback_branding():
    notifier = Notifier()
    query = system_customization_query(_api(lambda r: httpx.Response(500, json={"error": "down"})), notifier)

    assert await query.refetch() == FALLBACK_CUSTOMIZATION
    assert notifier.last.title == "Failed to load customization"
