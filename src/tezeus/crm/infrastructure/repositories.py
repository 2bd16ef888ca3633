from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from tezeus.conversation.infrastructure.models import Contact

from .models import ContactTag, Tag


class TagRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list(self, workspace_id: UUID) -> List[Tag]:
        stmt = select(Tag).where(Tag.workspace_id == workspace_id).order_by(Tag.name)
        return list((await self.db.execute(stmt)).scalars())

    async def get(self, workspace_id: UUID, tag_id: UUID) -> Optional[Tag]:
        stmt = select(Tag).where(Tag.id == tag_id).where(Tag.workspace_id == workspace_id)
        return (await self.db.execute(stmt)).scalar_one_or_none()

    async def find_by_name(self, workspace_id: UUID, name: str) -> Optional[Tag]:
        stmt = select(Tag).where(Tag.workspace_id == workspace_id).where(Tag.name == name)
        return (await self.db.execute(stmt)).scalars().first()

    async def create(self, workspace_id: UUID, name: str, color: str) -> Tag:
        tag = Tag(workspace_id=workspace_id, name=name, color=color)
        self.db.add(tag)
        await self.db.flush()
        return tag

    async def contact_in_workspace(self, workspace_id: UUID, contact_id: UUID) -> bool:
        stmt = select(Contact.id).where(Contact.id == contact_id).where(Contact.workspace_id == workspace_id)
        return (await self.db.execute(stmt)).scalar_one_or_none() is not None

    async def get_link(self, contact_id: UUID, tag_id: UUID) -> Optional[ContactTag]:
        stmt = select(ContactTag).where(ContactTag.contact_id == contact_id).where(ContactTag.tag_id == tag_id)
        return (await self.db.execute(stmt)).scalar_one_or_none()

    async def attach(self, contact_id: UUID, tag_id: UUID) -> ContactTag:
        link = ContactTag(contact_id=contact_id, tag_id=tag_id)
        self.db.add(link)
        await self.db.flush()
        return link

    async def detach(self, contact_id: UUID, tag_id: UUID) -> int:
        result = await self.db.execute(
            delete(ContactTag).where(ContactTag.contact_id == contact_id).where(ContactTag.tag_id == tag_id)
        )
        return result.rowcount
