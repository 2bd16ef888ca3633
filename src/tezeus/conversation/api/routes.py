from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tezeus.dependencies import get_db_session, require_workspace_member
from tezeus.shared.http.responses import failure, ok
from tezeus.shared.request_context import RequestContext

from ..application.services import ConversationLifecycleService
from ..domain.entities import LifecycleOutcome
from .schemas import ConversationActionRequest

router = APIRouter(prefix="/api/v1/functions", tags=["conversation:lifecycle"])


def _service(session: AsyncSession = Depends(get_db_session)) -> ConversationLifecycleService:
    return ConversationLifecycleService(session)


@router.post("/accept-conversation")
async def accept_conversation(
    payload: ConversationActionRequest,
    ctx: RequestContext = Depends(require_workspace_member),
    svc: ConversationLifecycleService = Depends(_service),
):
    result = await svc.accept(ctx, payload.conversation_id)
    if result.outcome is LifecycleOutcome.ACCEPTED:
        return ok(conversation=result.conversation.to_dict())
    return failure(
        "Conversation already assigned to another user",
        alreadyAssigned=True,
        **result.extra,
    )


@router.post("/end-conversation")
async def end_conversation(
    payload: ConversationActionRequest,
    ctx: RequestContext = Depends(require_workspace_member),
    svc: ConversationLifecycleService = Depends(_service),
):
    result = await svc.end(ctx, payload.conversation_id)
    return ok(conversation=result.conversation.to_dict(), **result.extra)
