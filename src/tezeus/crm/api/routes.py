from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from tezeus.dependencies import get_db_session, require_workspace_member
from tezeus.shared.http.responses import ok, ok_data
from tezeus.shared.request_context import RequestContext
from tezeus.shared.utils.ids import parse_uuid

from ..application.services import TagService

router = APIRouter(prefix="/api/v1", tags=["crm:tags"])


class TagCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    color: str = Field(default="#808080", pattern=r"^#[0-9A-Fa-f]{6}$")


def _service(session: AsyncSession = Depends(get_db_session)) -> TagService:
    return TagService(session)


@router.get("/tags")
async def list_tags(ctx: RequestContext = Depends(require_workspace_member), svc: TagService = Depends(_service)):
    return ok_data(await svc.list(parse_uuid(ctx.workspace_id, "x-workspace-id")))


@router.post("/tags", status_code=201)
async def create_tag(
    payload: TagCreateRequest,
    ctx: RequestContext = Depends(require_workspace_member),
    svc: TagService = Depends(_service),
):
    tag = await svc.create(parse_uuid(ctx.workspace_id, "x-workspace-id"), payload.name, payload.color)
    return ok(status=201, data=tag)


@router.post("/contacts/{contact_id}/tags/{tag_id}")
async def attach_tag(
    contact_id: str,
    tag_id: str,
    ctx: RequestContext = Depends(require_workspace_member),
    svc: TagService = Depends(_service),
):
    link = await svc.attach(
        parse_uuid(ctx.workspace_id, "x-workspace-id"),
        parse_uuid(contact_id, "contact_id"),
        parse_uuid(tag_id, "tag_id"),
    )
    return ok(data=link)


@router.delete("/contacts/{contact_id}/tags/{tag_id}")
async def detach_tag(
    contact_id: str,
    tag_id: str,
    ctx: RequestContext = Depends(require_workspace_member),
    svc: TagService = Depends(_service),
):
    removed = await svc.detach(
        parse_uuid(ctx.workspace_id, "x-workspace-id"),
        parse_uuid(contact_id, "contact_id"),
        parse_uuid(tag_id, "tag_id"),
    )
    return ok(removed=removed)
