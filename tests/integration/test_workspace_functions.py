from conftest import headers_for
from tezeus.conversation.infrastructure.models import Contact
from tezeus.dependencies import get_media_storage
from tezeus.messaging.infrastructure.models import Channel, Connection
from tezeus.workspace.infrastructure.media_storage import LocalMediaStorage
from tezeus.workspace.infrastructure.models import Org, OrgMember, SystemUser, Workspace, WorkspaceLimit, WorkspaceMember

FN = "/api/v1/functions"


async def test_orgs_create_requires_master(client, tenancy):
    r = await client.post(f"{FN}/orgs-create", json={"name": "  Nova Org "}, headers=headers_for(tenancy.master))
    assert r.status_code == 200
    assert r.json()["success"] is True
    assert r.json()["data"]["name"] == "Nova Org"

    r = await client.post(f"{FN}/orgs-create", json={"name": "Outra"}, headers=headers_for(tenancy.agent))
    assert r.status_code == 403
    assert r.json()["code"] == "forbidden"


async def test_orgs_create_validates_name(client, tenancy):
    r = await client.post(f"{FN}/orgs-create", json={}, headers=headers_for(tenancy.master))
    assert r.status_code == 400
    assert r.json()["code"] == "missing_field"


async def test_orgs_list_with_counts(client, add, tenancy):
    org = await add(Org(name="Grupo Acme"))
    ws = await add(Workspace(name="Acme Filial", org_id=org.id))
    await add(
        OrgMember(org_id=org.id, user_id=tenancy.agent.id),
        OrgMember(org_id=org.id, user_id=tenancy.colleague.id),
        Channel(workspace_id=ws.id, name="Principal", instance="filial"),
        Contact(workspace_id=ws.id, name="Lead 1"),
        Contact(workspace_id=ws.id, name="Lead 2"),
        Contact(workspace_id=ws.id, name="Lead 3"),
    )
    await add(Org(name="Vazia"))

    r = await client.post(f"{FN}/orgs-list", headers=headers_for(tenancy.agent))
    assert r.status_code == 200
    rows = {o["name"]: o for o in r.json()["data"]}
    assert rows["Grupo Acme"]["members_count"] == 2
    assert rows["Grupo Acme"]["channels_count"] == 1
    assert rows["Grupo Acme"]["leads_count"] == 3
    assert rows["Vazia"]["members_count"] == 0


async def test_list_user_workspaces_for_member(client, add, tenancy):
    await add(Connection(workspace_id=tenancy.workspace.id, instance_name="acme-main"))
    r = await client.post(f"{FN}/list-user-workspaces", headers=headers_for(tenancy.agent))
    assert r.status_code == 200
    body = r.json()
    assert body["userRole"] == "user"
    [ws] = body["workspaces"]
    assert ws["workspace_id"] == str(tenancy.workspace.id)
    assert ws["role"] == "user"
    assert ws["connections_count"] == 1


async def test_list_user_workspaces_for_master_sees_all(client, tenancy):
    r = await client.post(f"{FN}/list-user-workspaces", headers=headers_for(tenancy.master))
    body = r.json()
    assert body["userRole"] == "master"
    assert [w["name"] for w in body["workspaces"]] == ["Acme Support", "Other Co"]
    assert "role" not in body["workspaces"][0]


async def test_list_user_workspaces_unknown_or_inactive_user(client, add, tenancy):
    inactive = await add(SystemUser(name="Ex", email="ex@acme.test", status="inactive"))
    r = await client.post(f"{FN}/list-user-workspaces", headers=headers_for(inactive))
    assert r.status_code == 404
    assert r.json()["code"] == "user_not_found"


async def test_list_user_workspaces_needs_only_user_headers(client):
    r = await client.post(f"{FN}/list-user-workspaces")
    assert r.status_code == 401


async def test_workspace_limits_default_and_override(client, add, tenancy):
    body = {"workspaceId": str(tenancy.workspace.id)}
    r = await client.post(f"{FN}/get-workspace-limits", json=body, headers=headers_for(tenancy.agent))
    assert r.json() == {"success": True, "connection_limit": 1}

    await add(WorkspaceLimit(workspace_id=tenancy.workspace.id, connection_limit=3))
    r = await client.post(f"{FN}/get-workspace-limits", json=body, headers=headers_for(tenancy.agent))
    assert r.json()["connection_limit"] == 3


async def test_workspace_limits_checks_membership_of_body_workspace(client, tenancy):
    r = await client.post(
        f"{FN}/get-workspace-limits",
        json={"workspaceId": str(tenancy.other_workspace.id)},
        headers=headers_for(tenancy.agent),
    )
    assert r.status_code == 403


async def test_workspace_users_hides_hidden_members(client, add, tenancy):
    ghost = await add(SystemUser(name="Suporte Tezeus", email="support@tezeus.test"))
    await add(WorkspaceMember(workspace_id=tenancy.workspace.id, user_id=ghost.id, is_hidden=True))

    r = await client.post(
        f"{FN}/workspace-users",
        json={"workspaceId": str(tenancy.workspace.id)},
        headers=headers_for(tenancy.agent),
    )
    assert r.status_code == 200
    users = {u["email"]: u for u in r.json()["data"]}
    assert set(users) == {"ana@acme.test", "caio@acme.test"}
    assert users["caio@acme.test"]["workspace_role"] == "admin"
    assert users["ana@acme.test"]["member_id"]


async def test_upload_workspace_media(app, client, tenancy, tmp_path):
    storage = LocalMediaStorage(str(tmp_path / "media"), "http://media.test", bucket="workspace-media")
    app.dependency_overrides[get_media_storage] = lambda: storage
    ws = str(tenancy.workspace.id)

    r = await client.post(
        f"{FN}/upload-workspace-media",
        files={"file": ("Logo.PNG", b"\x89PNG fake", "image/png")},
        data={"type": "logo", "workspaceId": ws},
        headers=headers_for(tenancy.agent),
    )
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["path"].startswith(f"{ws}/logo-{ws}-")
    assert body["path"].endswith(".png")
    assert body["url"] == f"http://media.test/workspace-media/{body['path']}"
    assert (tmp_path / "media" / "workspace-media" / body["path"]).read_bytes() == b"\x89PNG fake"


async def test_upload_rejects_bad_media_type(app, client, tenancy, tmp_path):
    app.dependency_overrides[get_media_storage] = lambda: LocalMediaStorage(str(tmp_path), "http://media.test")
    r = await client.post(
        f"{FN}/upload-workspace-media",
        files={"file": ("a.png", b"x", "image/png")},
        data={"type": "../etc", "workspaceId": str(tenancy.workspace.id)},
        headers=headers_for(tenancy.agent),
    )
    assert r.status_code == 400
    assert r.json()["code"] == "validation_error"


async def test_blank_user_header_counts_as_signed_out(client, tenancy):
    r = await client.post(f"{FN}/list-user-workspaces", headers={"x-system-user-id": "   "})
    assert r.status_code == 401
    assert r.json()["code"] == "unauthenticated"

    r = await client.post(f"{FN}/list-user-workspaces", headers={"X-System-User-Id": str(tenancy.agent.id)})
    assert r.status_code == 200
