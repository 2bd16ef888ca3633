from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from tezeus.config import Settings, get_settings
from tezeus.dependencies import ensure_workspace_member, get_db_session, get_media_storage, require_user_context
from tezeus.shared.exceptions import MissingFieldError, ValidationError
from tezeus.shared.http.responses import ok, ok_data
from tezeus.shared.request_context import RequestContext
from tezeus.shared.utils.ids import parse_uuid

from ..application.services import (
    MediaUploadService,
    OrgService,
    SystemCustomizationService,
    WorkspaceAdminService,
    WorkspaceDirectoryService,
    WorkspaceMemberService,
)
from ..infrastructure.media_storage import MediaStorage
from .schemas import (
    CustomizationUpdateRequest,
    MemberManageRequest,
    OrgCreateRequest,
    WorkspaceManageRequest,
    WorkspaceRequest,
)

router = APIRouter(prefix="/api/v1/functions", tags=["workspace:functions"])


def _directory(
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_settings),
) -> WorkspaceDirectoryService:
    return WorkspaceDirectoryService(session, default_connection_limit=settings.DEFAULT_CONNECTION_LIMIT)


@router.post("/orgs-create")
async def orgs_create(
    payload: OrgCreateRequest,
    ctx: RequestContext = Depends(require_user_context),
    session: AsyncSession = Depends(get_db_session),
):
    org = await OrgService(session).create(ctx.user_id, payload.name)
    return ok(data=org)


@router.post("/orgs-list")
async def orgs_list(
    _: RequestContext = Depends(require_user_context),
    session: AsyncSession = Depends(get_db_session),
):
    return ok_data(await OrgService(session).list())


@router.post("/list-user-workspaces")
async def list_user_workspaces(
    ctx: RequestContext = Depends(require_user_context),
    svc: WorkspaceDirectoryService = Depends(_directory),
):
    return await svc.list_for_user(ctx.user_id)


@router.post("/get-workspace-limits")
async def get_workspace_limits(
    payload: WorkspaceRequest,
    ctx: RequestContext = Depends(require_user_context),
    session: AsyncSession = Depends(get_db_session),
    svc: WorkspaceDirectoryService = Depends(_directory),
):
    await ensure_workspace_member(session, ctx, payload.workspace_id)
    limit = await svc.connection_limit(parse_uuid(payload.workspace_id, "workspaceId"))
    return ok(connection_limit=limit)


@router.post("/workspace-users")
async def workspace_users(
    payload: WorkspaceRequest,
    ctx: RequestContext = Depends(require_user_context),
    session: AsyncSession = Depends(get_db_session),
    svc: WorkspaceDirectoryService = Depends(_directory),
):
    await ensure_workspace_member(session, ctx, payload.workspace_id)
    return ok_data(await svc.visible_users(parse_uuid(payload.workspace_id, "workspaceId")))


@router.post("/upload-workspace-media")
async def upload_workspace_media(
    file: UploadFile = File(...),
    type: str = Form(...),
    workspaceId: str = Form(...),
    ctx: RequestContext = Depends(require_user_context),
    session: AsyncSession = Depends(get_db_session),
    storage: MediaStorage = Depends(get_media_storage),
):
    await ensure_workspace_member(session, ctx, workspaceId)
    data = await file.read()
    return await MediaUploadService(storage).upload(
        parse_uuid(workspaceId, "workspaceId"),
        type,
        file.filename or "",
        data,
        file.content_type or "application/octet-stream",
    )


@router.post("/manage-workspaces")
async def manage_workspaces(
    payload: WorkspaceManageRequest,
    ctx: RequestContext = Depends(require_user_context),
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_settings),
):
    svc = WorkspaceAdminService(session, default_connection_limit=settings.DEFAULT_CONNECTION_LIMIT)
    if payload.action == "create":
        return ok_data(await svc.create(ctx.user_id, payload.name, payload.cnpj, payload.connection_limit))
    if payload.action == "update":
        if not payload.workspace_id:
            raise MissingFieldError("workspaceId")
        await svc.update(ctx.user_id, payload.workspace_id, payload.name, payload.cnpj)
        return ok()
    raise ValidationError("Invalid action", details={"field": "action", "allowed": ["create", "update"]})


@router.post("/manage-workspace-members")
async def manage_workspace_members(
    payload: MemberManageRequest,
    ctx: RequestContext = Depends(require_user_context),
    session: AsyncSession = Depends(get_db_session),
):
    svc = WorkspaceMemberService(session)
    if payload.action == "list":
        return ok(members=await svc.list(ctx.user_id, payload.workspace_id))
    if payload.action == "add":
        return ok(member=await svc.add(ctx.user_id, payload.workspace_id, payload.user_id, payload.role))
    if payload.action == "update":
        await svc.update(ctx.user_id, payload.workspace_id, payload.member_id, payload.updates)
        return ok()
    if payload.action == "remove":
        await svc.remove(ctx.user_id, payload.workspace_id, payload.member_id)
        return ok()
    raise ValidationError(
        "Invalid action", details={"field": "action", "allowed": ["list", "add", "update", "remove"]}
    )


@router.post("/get-system-customization")
async def get_system_customization(session: AsyncSession = Depends(get_db_session)):
    """Public: the login screen renders the branding before anyone signs in."""
    return ok_data(await SystemCustomizationService(session).get())


@router.post("/update-system-customization")
async def update_system_customization(
    payload: CustomizationUpdateRequest,
    ctx: RequestContext = Depends(require_user_context),
    session: AsyncSession = Depends(get_db_session),
):
    svc = SystemCustomizationService(session)
    if payload.reset:
        return ok_data(await svc.reset(ctx.user_id))
    changes = payload.model_dump(exclude_unset=True, exclude={"reset"})
    return ok_data(await svc.update(ctx.user_id, changes))
