from __future__ import annotations

from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import Row, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tezeus.conversation.infrastructure.models import Contact
from tezeus.messaging.infrastructure.models import Channel, Connection
from tezeus.shared.database.base import dialect_insert, utcnow

from .models import Org, OrgMember, SystemCustomization, SystemUser, Workspace, WorkspaceLimit, WorkspaceMember


class UserRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, user_id: UUID) -> Optional[SystemUser]:
        return await self.session.get(SystemUser, user_id)


class WorkspaceRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, workspace_id: UUID) -> Optional[Workspace]:
        return await self.session.get(Workspace, workspace_id)

    async def is_member(self, workspace_id: UUID, user_id: UUID) -> bool:
        stmt = (
            select(WorkspaceMember.id)
            .where(WorkspaceMember.workspace_id == workspace_id)
            .where(WorkspaceMember.user_id == user_id)
            .limit(1)
        )
        return (await self.session.execute(stmt)).scalar_one_or_none() is not None

    async def list_all(self) -> List[Workspace]:
        stmt = select(Workspace).order_by(Workspace.name)
        return list((await self.session.execute(stmt)).scalars())

    async def list_for_user(self, user_id: UUID) -> List[Dict[str, Any]]:
        stmt = (
            select(Workspace, WorkspaceMember.role)
            .join(WorkspaceMember, WorkspaceMember.workspace_id == Workspace.id)
            .where(WorkspaceMember.user_id == user_id)
            .order_by(Workspace.name)
        )
        rows = (await self.session.execute(stmt)).all()
        return [{"workspace": ws, "role": role} for ws, role in rows]

    async def list_visible_members(self, workspace_id: UUID) -> List[Dict[str, Any]]:
        """Non-hidden members joined with their user rows, newest membership first."""
        stmt = (
            select(WorkspaceMember, SystemUser)
            .join(SystemUser, SystemUser.id == WorkspaceMember.user_id)
            .where(WorkspaceMember.workspace_id == workspace_id)
            .where(WorkspaceMember.is_hidden == False)  # noqa: E712
            .order_by(WorkspaceMember.created_at.desc())
        )
        rows = (await self.session.execute(stmt)).all()
        return [{"member": m, "user": u} for m, u in rows]

    async def connection_counts(self) -> Dict[UUID, int]:
        stmt = select(Connection.workspace_id, func.count(Connection.id)).group_by(Connection.workspace_id)
        return {ws_id: int(n) for ws_id, n in (await self.session.execute(stmt)).all()}

    async def get_limit(self, workspace_id: UUID) -> Optional[WorkspaceLimit]:
        return await self.session.get(WorkspaceLimit, workspace_id)

    async def create(self, name: str, cnpj: Optional[str], connection_limit: int) -> Workspace:
        ws = Workspace(name=name, cnpj=cnpj)
        self.session.add(ws)
        await self.session.flush()
        self.session.add(WorkspaceLimit(workspace_id=ws.id, connection_limit=connection_limit))
        await self.session.flush()
        return ws

    async def member_role(self, workspace_id: UUID, user_id: UUID) -> Optional[str]:
        stmt = (
            select(WorkspaceMember.role)
            .where(WorkspaceMember.workspace_id == workspace_id)
            .where(WorkspaceMember.user_id == user_id)
        )
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def list_members(self, workspace_id: UUID) -> List[Dict[str, Any]]:
        """Every member, hidden ones included, newest membership first."""
        stmt = (
            select(WorkspaceMember, SystemUser)
            .join(SystemUser, SystemUser.id == WorkspaceMember.user_id)
            .where(WorkspaceMember.workspace_id == workspace_id)
            .order_by(WorkspaceMember.created_at.desc())
        )
        rows = (await self.session.execute(stmt)).all()
        return [{"member": m, "user": u} for m, u in rows]

    async def get_member(self, workspace_id: UUID, member_id: UUID) -> Optional[WorkspaceMember]:
        stmt = (
            select(WorkspaceMember)
            .where(WorkspaceMember.id == member_id)
            .where(WorkspaceMember.workspace_id == workspace_id)
        )
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def add_member(self, workspace_id: UUID, user_id: UUID, role: str) -> WorkspaceMember:
        member = WorkspaceMember(workspace_id=workspace_id, user_id=user_id, role=role)
        self.session.add(member)
        await self.session.flush()
        return member

    async def remove_member(self, member: WorkspaceMember) -> None:
        await self.session.delete(member)
        await self.session.flush()


class OrgRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, name: str) -> Org:
        org = Org(name=name)
        self.session.add(org)
        await self.session.flush()
        return org

    async def list_with_counts(self) -> List[Dict[str, Any]]:
        """Orgs newest first with member / channel / lead counts (correlated subqueries)."""
        members = (
            select(func.count(OrgMember.id))
            .where(OrgMember.org_id == Org.id)
            .correlate(Org)
            .scalar_subquery()
        )
        channels = (
            select(func.count(Channel.id))
            .join(Workspace, Workspace.id == Channel.workspace_id)
            .where(Workspace.org_id == Org.id)
            .correlate(Org)
            .scalar_subquery()
        )
        leads = (
            select(func.count(Contact.id))
            .join(Workspace, Workspace.id == Contact.workspace_id)
            .where(Workspace.org_id == Org.id)
            .correlate(Org)
            .scalar_subquery()
        )
        stmt = (
            select(Org, members.label("members_count"), channels.label("channels_count"), leads.label("leads_count"))
            .order_by(Org.created_at.desc())
        )
        rows = (await self.session.execute(stmt)).all()
        return [
            {
                "id": org.id,
                "name": org.name,
                "created_at": org.created_at,
                "members_count": int(m or 0),
                "channels_count": int(c or 0),
                "leads_count": int(l or 0),
            }
            for org, m, c, l in rows
        ]


class SystemCustomizationRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self) -> Optional[SystemCustomization]:
        return await self.session.get(SystemCustomization, SystemCustomization.SINGLETON_ID)

    async def upsert(self, values: Dict[str, Any]) -> Row:
        """Writes the singleton row in one statement; `values` must carry every color column."""
        table = SystemCustomization.__table__
        now = utcnow()
        stmt = (
            dialect_insert(self.session, table)
            .values(id=SystemCustomization.SINGLETON_ID, updated_at=now, **values)
            .on_conflict_do_update(index_elements=[table.c.id], set_={**values, "updated_at": now})
            .returning(*table.c)
        )
        return (await self.session.execute(stmt)).one()
