from __future__ import annotations

from typing import Any, Dict, List
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from tezeus.shared.exceptions import ConflictError, NotFoundError
from tezeus.shared.logging import get_logger

from ..infrastructure.models import Tag
from ..infrastructure.repositories import TagRepository

logger = get_logger(__name__)


def _tag_dict(tag: Tag) -> Dict[str, Any]:
    return {
        "id": str(tag.id),
        "workspace_id": str(tag.workspace_id),
        "name": tag.name,
        "color": tag.color,
        "created_at": tag.created_at.isoformat() if tag.created_at else None,
    }


class TagService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.repo = TagRepository(session)

    async def list(self, workspace_id: UUID) -> List[Dict[str, Any]]:
        return [_tag_dict(t) for t in await self.repo.list(workspace_id)]

    async def create(self, workspace_id: UUID, name: str, color: str) -> Dict[str, Any]:
        name = name.strip()
        if await self.repo.find_by_name(workspace_id, name):
            raise ConflictError("A tag with this name already exists", details={"name": name})
        tag = await self.repo.create(workspace_id, name, color)
        await self.session.commit()
        logger.info("Tag created", tag_id=str(tag.id))
        return _tag_dict(tag)

    async def _check(self, workspace_id: UUID, contact_id: UUID, tag_id: UUID) -> None:
        if not await self.repo.contact_in_workspace(workspace_id, contact_id):
            raise NotFoundError("Contact not found")
        if await self.repo.get(workspace_id, tag_id) is None:
            raise NotFoundError("Tag not found")

    async def attach(self, workspace_id: UUID, contact_id: UUID, tag_id: UUID) -> Dict[str, Any]:
        """Idempotent: attaching an already attached tag returns the existing link."""
        await self._check(workspace_id, contact_id, tag_id)
        link = await self.repo.get_link(contact_id, tag_id)
        created = link is None
        if created:
            link = await self.repo.attach(contact_id, tag_id)
            await self.session.commit()
        return {"id": str(link.id), "contact_id": str(contact_id), "tag_id": str(tag_id), "created": created}

    async def detach(self, workspace_id: UUID, contact_id: UUID, tag_id: UUID) -> bool:
        await self._check(workspace_id, contact_id, tag_id)
        removed = await self.repo.detach(contact_id, tag_id)
        await self.session.commit()
        return removed > 0
