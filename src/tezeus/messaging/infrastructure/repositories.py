from __future__ import annotations

from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import Row, select
from sqlalchemy.ext.asyncio import AsyncSession

from tezeus.shared.database.base import dialect_insert, utcnow

from .models import (
    MASTER_CONFIG_INSTANCE,
    Channel,
    Connection,
    EvolutionInstanceToken,
    InstanceUserAssignment,
    Queue,
    WorkspaceMessagingSettings,
)


class ReferenceDataRepository:
    """Read-only lists behind the client resource queries; all workspace-scoped."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def connected_channels(self, workspace_id: UUID) -> List[Channel]:
        stmt = (
            select(Channel)
            .where(Channel.workspace_id == workspace_id)
            .where(Channel.status == "connected")
            .order_by(Channel.name)
        )
        return list((await self.db.execute(stmt)).scalars())

    async def active_queues(self, workspace_id: UUID) -> List[Queue]:
        stmt = (
            select(Queue)
            .where(Queue.workspace_id == workspace_id)
            .where(Queue.is_active == True)  # noqa: E712
            .order_by(Queue.order_position)
        )
        return list((await self.db.execute(stmt)).scalars())

    async def instances(self, workspace_id: UUID) -> List[Dict[str, str]]:
        """Channel instances (by channel name) then assigned instances, de-duplicated."""
        channel_rows = (
            await self.db.execute(
                select(Channel.instance, Channel.name)
                .where(Channel.workspace_id == workspace_id)
                .order_by(Channel.name)
            )
        ).all()
        assignment_rows = (
            await self.db.execute(
                select(InstanceUserAssignment.instance)
                .where(InstanceUserAssignment.workspace_id == workspace_id)
                .order_by(InstanceUserAssignment.instance)
            )
        ).scalars().all()

        names: Dict[str, str] = {}
        for instance, name in channel_rows:
            if instance and instance not in names:
                names[instance] = name or instance
        for instance in assignment_rows:
            if instance and instance not in names:
                names[instance] = instance
        return [{"instance": inst, "displayName": display} for inst, display in names.items()]

    async def connections(self, workspace_id: UUID) -> List[Dict[str, Any]]:
        stmt = (
            select(Connection.id, Connection.instance_name, Connection.phone_number, Connection.status)
            .where(Connection.workspace_id == workspace_id)
            .order_by(Connection.instance_name)
        )
        return [dict(row._mapping) for row in (await self.db.execute(stmt)).all()]


class MessagingSettingsRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, workspace_id: UUID) -> Optional[WorkspaceMessagingSettings]:
        return await self.db.get(WorkspaceMessagingSettings, workspace_id)

    async def set_default_instance(self, workspace_id: UUID, instance: Optional[str]) -> Row:
        """Single-statement upsert on the workspace_id primary key."""
        now = utcnow()
        table = WorkspaceMessagingSettings.__table__
        stmt = (
            dialect_insert(self.db, WorkspaceMessagingSettings)
            .values(workspace_id=workspace_id, default_instance=instance, updated_at=now)
            .on_conflict_do_update(
                index_elements=[WorkspaceMessagingSettings.workspace_id],
                set_={"default_instance": instance, "updated_at": now},
            )
            .returning(*table.c)
        )
        return (await self.db.execute(stmt)).one()


class EvolutionTokenRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, workspace_id: UUID, instance_name: str = MASTER_CONFIG_INSTANCE) -> Optional[EvolutionInstanceToken]:
        stmt = (
            select(EvolutionInstanceToken)
            .where(EvolutionInstanceToken.workspace_id == workspace_id)
            .where(EvolutionInstanceToken.instance_name == instance_name)
        )
        return (await self.db.execute(stmt)).scalar_one_or_none()

    async def upsert(
        self,
        workspace_id: UUID,
        *,
        evolution_url: str,
        token: Dict[str, Any],
        instance_name: str = MASTER_CONFIG_INSTANCE,
    ) -> Row:
        """Single-statement upsert on (workspace_id, instance_name)."""
        now = utcnow()
        table = EvolutionInstanceToken.__table__
        stmt = (
            dialect_insert(self.db, EvolutionInstanceToken)
            .values(
                workspace_id=workspace_id,
                instance_name=instance_name,
                evolution_url=evolution_url,
                token=token,
                created_at=now,
                updated_at=now,
            )
            .on_conflict_do_update(
                index_elements=[EvolutionInstanceToken.workspace_id, EvolutionInstanceToken.instance_name],
                set_={"evolution_url": evolution_url, "token": token, "updated_at": now},
            )
            .returning(*table.c)
        )
        return (await self.db.execute(stmt)).one()
