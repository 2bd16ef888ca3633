import json

import httpx

from tezeus.client.api import TezeusApiClient
from tezeus.client.config import ClientConfig
from tezeus.client.lifecycle import ConversationActions
from tezeus.client.notifications import Notifier
from tezeus.client.session import CachedUser, ClientSession, SelectedWorkspace


class Server:
    def __init__(self, status_code=200, body=None):
        self.status_code = status_code
        self.body = body or {"success": True, "conversation": {"id": "c1"}}
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        return httpx.Response(self.status_code, json=self.body)


def _actions(server, session=None):
    session = session or ClientSession(
        user=CachedUser(id="u1", email="ana@acme.test"), workspace=SelectedWorkspace(workspace_id="w1")
    )
    api = TezeusApiClient(ClientConfig(base_url="http://api.test"), session, transport=httpx.MockTransport(server))
    notifier = Notifier()
    return ConversationActions(api, notifier), notifier


async def test_accept_success_notifies_and_refreshes():
    server = Server()
    actions, notifier = _actions(server)
    refreshed = []

    body = await actions.accept("c1", on_refresh=lambda: refreshed.append(True))

    assert body["success"] is True
    assert refreshed == [True]
    assert notifier.last.title == "Conversation accepted"
    assert not notifier.last.is_error

    request = server.requests[0]
    assert request.url.path == "/api/v1/functions/accept-conversation"
    assert json.loads(request.content) == {"conversation_id": "c1"}
    assert request.headers["x-workspace-id"] == "w1"


async def test_accept_lost_race_notifies_and_refreshes():
    server = Server(body={"success": False, "error": "Conversation already assigned to another user", "alreadyAssigned": True})
    actions, notifier = _actions(server)
    refreshed = []

    async def refresh():
        refreshed.append(True)

    await actions.accept("c1", on_refresh=refresh)

    assert refreshed == [True]
    assert notifier.last.title == "Conversation already assigned"
    assert notifier.last.is_error


async def test_accept_server_error_is_a_notification():
    server = Server(status_code=409, body={"success": False, "error": "Conversation is already closed", "code": "conversation_closed"})
    actions, notifier = _actions(server)
    refreshed = []

    body = await actions.accept("c1", on_refresh=lambda: refreshed.append(True))

    assert body == {"success": False, "error": "Conversation is already closed", "code": "conversation_closed"}
    assert refreshed == []
    assert notifier.last.description == "Conversation is already closed"


async def test_accept_without_workspace_sends_nothing():
    server = Server()
    actions, notifier = _actions(server, ClientSession(user=CachedUser(id="u1")))

    assert await actions.accept("c1") == {"success": False, "error": "No workspace selected"}
    assert server.requests == []
    assert notifier.last.is_error
    assert notifier.last.description == "No workspace selected"


async def test_end_success():
    server = Server(body={"success": True, "conversation": {"id": "c1", "status": "closed"}})
    actions, notifier = _actions(server)
    refreshed = []

    body = await actions.end("c1", on_refresh=lambda: refreshed.append(True))

    assert body["conversation"]["status"] == "closed"
    assert server.requests[0].url.path == "/api/v1/functions/end-conversation"
    assert notifier.last.title == "Conversation ended"
    assert refreshed == [True]


async def test_end_failure():
    server = Server(status_code=409, body={"success": False, "error": "not accepted", "code": "conversation_not_assigned"})
    actions, notifier = _actions(server)

    body = await actions.end("c1")

    assert body["success"] is False
    assert body["code"] == "conversation_not_assigned"
    assert body["error"] == "not accepted"
    assert notifier.last.title == "Could not end conversation"
    assert actions.in_flight == set()


async def test_end_already_closed_is_a_distinct_notice():
    server = Server(body={"success": True, "alreadyClosed": True, "conversation": {"id": "c1", "status": "closed"}})
    actions, notifier = _actions(server)
    refreshed = []

    body = await actions.end("c1", on_refresh=lambda: refreshed.append(True))

    assert body["alreadyClosed"] is True
    assert notifier.last.title == "Conversation already closed"
    assert not notifier.last.is_error
    assert refreshed == [True]


async def test_transport_failure_returns_failure_shape():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    actions, notifier = _actions(handler)

    body = await actions.accept("c1")

    assert body == {"success": False, "error": "connection refused"}
    assert notifier.last.title == "Could not accept conversation"
    assert actions.in_flight == set()
