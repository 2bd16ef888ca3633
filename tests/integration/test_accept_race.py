import asyncio

from conftest import ctx_for, headers_for
from tezeus.conversation.application.services import ConversationLifecycleService
from tezeus.conversation.domain.entities import LifecycleOutcome
from tezeus.conversation.infrastructure.models import Conversation
from tezeus.workspace.infrastructure.models import SystemUser, WorkspaceMember


async def _agents(add, tenancy, n):
    users = []
    for i in range(n):
        user = await add(SystemUser(name=f"Agent {i}", email=f"agent{i}@acme.test"))
        await add(WorkspaceMember(workspace_id=tenancy.workspace.id, user_id=user.id))
        users.append(user)
    return users


async def test_concurrent_accepts_have_exactly_one_winner(database, add, tenancy, fetch, history):
    agents = await _agents(add, tenancy, 5)

    async def attempt(user):
        async with database() as session:
            return await ConversationLifecycleService(session).accept(
                ctx_for(user, tenancy.workspace), str(tenancy.conversation.id)
            )

    results = await asyncio.gather(*(attempt(u) for u in agents))

    winners = [r for r in results if r.outcome is LifecycleOutcome.ACCEPTED]
    losers = [r for r in results if r.outcome is LifecycleOutcome.ALREADY_ASSIGNED]
    assert len(winners) == 1
    assert len(losers) == 4

    winner_id = winners[0].conversation.assigned_user_id
    assert all(r.extra["assignedUserId"] == str(winner_id) for r in losers)

    [row] = await fetch(Conversation, Conversation.id == tenancy.conversation.id)
    assert row.assigned_user_id == winner_id
    assert len(await history(tenancy.conversation.id, "accept")) == 1


async def test_concurrent_accepts_over_http(client, add, tenancy, history):
    agents = await _agents(add, tenancy, 3)
    body = {"conversation_id": str(tenancy.conversation.id)}

    responses = await asyncio.gather(
        *(client.post("/api/v1/functions/accept-conversation", json=body, headers=headers_for(u, tenancy.workspace))
          for u in agents)
    )

    assert all(r.status_code == 200 for r in responses)
    payloads = [r.json() for r in responses]
    assert sum(1 for p in payloads if p["success"]) == 1
    assert sum(1 for p in payloads if p.get("alreadyAssigned")) == 2
    assert len(await history(tenancy.conversation.id, "accept")) == 1
