from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from tezeus.shared.database.base import utcnow

from ..domain.entities import AssignmentAction, ConversationStatus, ConversationView
from .models import Conversation, ConversationAssignment, Message


def _to_view(row: Conversation) -> ConversationView:
    return ConversationView(
        id=row.id,
        workspace_id=row.workspace_id,
        contact_id=row.contact_id,
        assigned_user_id=row.assigned_user_id,
        assigned_at=row.assigned_at,
        status=row.status,
        agente_ativo=bool(row.agente_ativo),
        evolution_instance=row.evolution_instance,
        updated_at=row.updated_at,
    )


class ConversationRepository:
    """
    Conversation reads plus the two lifecycle writes.

    Both writes are single conditional UPDATEs; the rowcount says whether this
    caller won. Concurrent callers are serialized by the store, never here.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, workspace_id: UUID, conversation_id: UUID) -> Optional[ConversationView]:
        stmt = (
            select(Conversation)
            .where(Conversation.id == conversation_id)
            .where(Conversation.workspace_id == workspace_id)
            .execution_options(populate_existing=True)
        )
        row = (await self.db.execute(stmt)).scalar_one_or_none()
        return _to_view(row) if row else None

    async def try_assign(self, workspace_id: UUID, conversation_id: UUID, user_id: UUID, now: Optional[datetime] = None) -> bool:
        now = now or utcnow()
        stmt = (
            update(Conversation)
            .where(Conversation.id == conversation_id)
            .where(Conversation.workspace_id == workspace_id)
            .where(Conversation.assigned_user_id.is_(None))
            .where(Conversation.status != ConversationStatus.CLOSED.value)
            .values(
                assigned_user_id=user_id,
                assigned_at=now,
                status=ConversationStatus.OPEN.value,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount == 1

    async def try_close(self, workspace_id: UUID, conversation_id: UUID, now: Optional[datetime] = None) -> bool:
        now = now or utcnow()
        stmt = (
            update(Conversation)
            .where(Conversation.id == conversation_id)
            .where(Conversation.workspace_id == workspace_id)
            .where(Conversation.assigned_user_id.is_not(None))
            .where(Conversation.status != ConversationStatus.CLOSED.value)
            .values(status=ConversationStatus.CLOSED.value, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount == 1

    async def record_assignment(
        self,
        conversation_id: UUID,
        action: AssignmentAction,
        *,
        changed_by: UUID,
        from_user: Optional[UUID],
        to_user: Optional[UUID],
    ) -> None:
        self.db.add(
            ConversationAssignment(
                conversation_id=conversation_id,
                action=action.value,
                from_assigned_user_id=from_user,
                to_assigned_user_id=to_user,
                changed_by=changed_by,
            )
        )
        await self.db.flush()


class MessageRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def add(self, **values) -> Message:
        message = Message(**values)
        self.db.add(message)
        await self.db.flush()
        return message

    async def set_status(self, message_id: UUID, status: str, external_id: Optional[str] = None) -> None:
        values = {"status": status}
        if external_id:
            values["external_id"] = external_id
        await self.db.execute(
            update(Message).where(Message.id == message_id).values(**values).execution_options(synchronize_session=False)
        )
