from conftest import headers_for
from tezeus.messaging.infrastructure.models import Channel, Connection, InstanceUserAssignment, Queue


async def test_channels_lists_connected_channels_by_name(client, add, tenancy):
    ws = tenancy.workspace.id
    await add(
        Channel(workspace_id=ws, name="Vendas", instance="acme-vendas", status="connected"),
        Channel(workspace_id=ws, name="Atendimento", instance="acme-main", status="connected"),
        Channel(workspace_id=ws, name="Antigo", instance="acme-old", status="disconnected"),
        Channel(workspace_id=tenancy.other_workspace.id, name="Alheio", instance="x", status="connected"),
    )
    r = await client.get("/api/v1/channels", headers=headers_for(tenancy.agent, tenancy.workspace))
    assert r.status_code == 200
    assert [c["name"] for c in r.json()["data"]] == ["Atendimento", "Vendas"]


async def test_queues_lists_active_queues_by_position(client, add, tenancy):
    ws = tenancy.workspace.id
    await add(
        Queue(workspace_id=ws, name="Suporte", order_position=2),
        Queue(workspace_id=ws, name="Comercial", order_position=1, color="#00ff00"),
        Queue(workspace_id=ws, name="Desativada", order_position=0, is_active=False),
    )
    r = await client.get("/api/v1/queues", headers=headers_for(tenancy.agent, tenancy.workspace))
    data = r.json()["data"]
    assert [q["name"] for q in data] == ["Comercial", "Suporte"]
    assert data[0]["color"] == "#00ff00"
    assert data[0]["workspace_id"] == str(ws)


async def test_instances_merge_channels_and_assignments(client, add, tenancy):
    ws = tenancy.workspace.id
    await add(
        Channel(workspace_id=ws, name="Beta", instance="inst-b", status="connected"),
        Channel(workspace_id=ws, name="Alpha", instance="inst-a", status="disconnected"),
        InstanceUserAssignment(workspace_id=ws, instance="inst-b", user_id=tenancy.agent.id),
        InstanceUserAssignment(workspace_id=ws, instance="inst-z"),
    )
    r = await client.get("/api/v1/instances", headers=headers_for(tenancy.agent, tenancy.workspace))
    assert r.json()["data"] == [
        {"instance": "inst-a", "displayName": "Alpha"},
        {"instance": "inst-b", "displayName": "Beta"},
        {"instance": "inst-z", "displayName": "inst-z"},
    ]


async def test_connections_list(client, add, tenancy):
    await add(
        Connection(workspace_id=tenancy.workspace.id, instance_name="acme-main", phone_number="551130000000", status="connected"),
        Connection(workspace_id=tenancy.other_workspace.id, instance_name="other", status="connected"),
    )
    r = await client.get("/api/v1/connections", headers=headers_for(tenancy.agent, tenancy.workspace))
    [row] = r.json()["data"]
    assert row["instance_name"] == "acme-main"
    assert row["status"] == "connected"


async def test_reference_lists_require_a_workspace(client, tenancy):
    r = await client.get("/api/v1/channels", headers=headers_for(tenancy.agent))
    assert r.status_code == 400
    assert r.json()["code"] == "no_workspace_selected"

    r = await client.get("/api/v1/queues")
    assert r.status_code == 401


async def test_reference_lists_reject_other_tenants(client, tenancy):
    r = await client.get("/api/v1/instances", headers=headers_for(tenancy.outsider, tenancy.workspace))
    assert r.status_code == 403


async def test_empty_workspace_returns_empty_lists(client, tenancy):
    hdrs = headers_for(tenancy.agent, tenancy.workspace)
    for path in ("/api/v1/channels", "/api/v1/queues", "/api/v1/instances", "/api/v1/connections"):
        r = await client.get(path, headers=hdrs)
        assert r.status_code == 200
        assert r.json() == {"data": []}
