from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from tezeus.shared.exceptions import ConflictError, NotFoundError
from tezeus.shared.logging import get_logger
from tezeus.shared.request_context import RequestContext
from tezeus.shared.utils.ids import parse_uuid

from ..domain.entities import AssignmentAction, ConversationView, LifecycleOutcome, LifecycleResult
from ..infrastructure.repositories import ConversationRepository

logger = get_logger(__name__)


def _not_found(conversation_id: UUID) -> NotFoundError:
    return NotFoundError(
        "Conversation not found",
        code="conversation_not_found",
        details={"conversation_id": str(conversation_id)},
    )


class ConversationLifecycleService:
    """
    Accept / End.

    Each operation is one conditional UPDATE. On a lost race (rowcount 0) the
    transaction is rolled back before the conversation is re-read to classify
    the outcome, so the losing caller never holds a write lock.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.repo = ConversationRepository(session)

    async def _reload(self, workspace_id: UUID, conversation_id: UUID) -> ConversationView:
        view = await self.repo.get(workspace_id, conversation_id)
        if view is None:
            raise _not_found(conversation_id)
        return view

    async def accept(self, ctx: RequestContext, conversation_id: Any) -> LifecycleResult:
        ws_id = parse_uuid(ctx.workspace_id, "x-workspace-id")
        user_id = parse_uuid(ctx.user_id, "x-system-user-id")
        conv_id = parse_uuid(conversation_id, "conversation_id")

        won = await self.repo.try_assign(ws_id, conv_id, user_id)
        if won:
            await self.repo.record_assignment(
                conv_id, AssignmentAction.ACCEPT, changed_by=user_id, from_user=None, to_user=user_id
            )
            view = await self._reload(ws_id, conv_id)
            await self.session.commit()
            logger.info("Conversation accepted", conversation_id=str(conv_id), user_id=str(user_id))
            return LifecycleResult(LifecycleOutcome.ACCEPTED, view)

        await self.session.rollback()
        view = await self._reload(ws_id, conv_id)
        if view.is_assigned:
            logger.info(
                "Conversation already assigned",
                conversation_id=str(conv_id),
                user_id=str(user_id),
                assigned_user_id=str(view.assigned_user_id),
            )
            return LifecycleResult(
                LifecycleOutcome.ALREADY_ASSIGNED,
                view,
                extra={"assignedUserId": str(view.assigned_user_id)},
            )
        if view.is_closed:
            raise ConflictError("Conversation is already closed", code="conversation_closed")
        # unassigned and open again: it changed between the UPDATE and the re-read
        raise ConflictError("Conversation changed concurrently, try again")

    async def end(self, ctx: RequestContext, conversation_id: Any) -> LifecycleResult:
        ws_id = parse_uuid(ctx.workspace_id, "x-workspace-id")
        user_id = parse_uuid(ctx.user_id, "x-system-user-id")
        conv_id = parse_uuid(conversation_id, "conversation_id")

        closed = await self.repo.try_close(ws_id, conv_id)
        if closed:
            view = await self._reload(ws_id, conv_id)
            await self.repo.record_assignment(
                conv_id,
                AssignmentAction.END,
                changed_by=user_id,
                from_user=view.assigned_user_id,
                to_user=view.assigned_user_id,
            )
            await self.session.commit()
            logger.info("Conversation ended", conversation_id=str(conv_id), user_id=str(user_id))
            return LifecycleResult(LifecycleOutcome.CLOSED, view)

        await self.session.rollback()
        view = await self._reload(ws_id, conv_id)
        if view.is_closed:
            return LifecycleResult(LifecycleOutcome.ALREADY_CLOSED, view, extra={"alreadyClosed": True})
        raise ConflictError(
            "Conversation has not been accepted by any user",
            code="conversation_not_assigned",
        )
