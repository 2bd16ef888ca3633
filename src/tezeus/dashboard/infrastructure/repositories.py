from __future__ import annotations

from datetime import datetime
from typing import Dict
from uuid import UUID

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tezeus.conversation.infrastructure.models import Conversation, Message
from tezeus.messaging.infrastructure.models import Activity, Connection


def _count_where(condition):
    return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)


class DashboardRepository:
    """Dashboard counters as four aggregate queries (no rows shipped to the client)."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def stats(self, workspace_id: UUID, since: datetime) -> Dict[str, int]:
        conn_total, conn_active = (
            await self.db.execute(
                select(func.count(Connection.id), _count_where(Connection.status == "connected"))
                .where(Connection.workspace_id == workspace_id)
            )
        ).one()
        conv_total, conv_active = (
            await self.db.execute(
                select(func.count(Conversation.id), _count_where(Conversation.status == "open"))
                .where(Conversation.workspace_id == workspace_id)
            )
        ).one()
        today_messages = (
            await self.db.execute(
                select(func.count(Message.id))
                .where(Message.workspace_id == workspace_id)
                .where(Message.created_at >= since)
            )
        ).scalar_one()
        pending_tasks = (
            await self.db.execute(
                select(func.count(Activity.id))
                .where(Activity.workspace_id == workspace_id)
                .where(Activity.is_completed == False)  # noqa: E712
            )
        ).scalar_one()

        return {
            "totalConnections": int(conn_total),
            "activeConnections": int(conn_active),
            "totalConversations": int(conv_total),
            "activeConversations": int(conv_active),
            "todayMessages": int(today_messages),
            "pendingTasks": int(pending_tasks),
            "activePipelineDeals": 0,
            "todayRevenue": 0,
        }
