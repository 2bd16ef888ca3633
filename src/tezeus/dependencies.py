# src/tezeus/dependencies.py
from __future__ import annotations

from typing import AsyncGenerator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from tezeus.config import Settings, get_settings
from tezeus.messaging.infrastructure.gateway.evolution import EvolutionGateway
from tezeus.shared.database.database import get_async_session
from tezeus.shared.exceptions import ForbiddenError, NoWorkspaceSelected, Unauthenticated
from tezeus.shared.logging import log_security_event
from tezeus.shared.request_context import RequestContext
from tezeus.shared.security.crypto import CryptoService
from tezeus.shared.utils.ids import parse_uuid
from tezeus.workspace.infrastructure.media_storage import LocalMediaStorage, MediaStorage
from tezeus.workspace.infrastructure.repositories import UserRepository, WorkspaceRepository


# --- DB session ---

async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """One AsyncSession per request; services commit explicitly."""
    async with get_async_session() as session:
        yield session


# --- Header context ---

def require_user_context(request: Request) -> RequestContext:
    """401 when the caller did not send x-system-user-id (parsed by ContextMiddleware)."""
    ctx = getattr(request.state, "context", None)
    if ctx is None:
        raise Unauthenticated()
    parse_uuid(ctx.user_id, "x-system-user-id")
    return ctx


def require_workspace_context(ctx: RequestContext = Depends(require_user_context)) -> RequestContext:
    """User check first, then workspace selection (400 when missing)."""
    if not ctx.workspace_id:
        raise NoWorkspaceSelected()
    parse_uuid(ctx.workspace_id, "x-workspace-id")
    return ctx


async def ensure_workspace_member(session: AsyncSession, ctx: RequestContext, workspace_id: str) -> None:
    """
    Membership check for a workspace named in the header or the body.
    Users with the master profile see every workspace.
    """
    user_id = parse_uuid(ctx.user_id, "x-system-user-id")
    ws_id = parse_uuid(workspace_id, "workspaceId")

    user = await UserRepository(session).get(user_id)
    if user is not None and user.profile == "master":
        return
    if await WorkspaceRepository(session).is_member(ws_id, user_id):
        return

    log_security_event(
        "workspace_access_denied",
        user_id=ctx.user_id,
        workspace_id=workspace_id,
    )
    raise ForbiddenError("User is not a member of this workspace", code="not_workspace_member")


async def require_workspace_member(
    ctx: RequestContext = Depends(require_workspace_context),
    session: AsyncSession = Depends(get_db_session),
) -> RequestContext:
    await ensure_workspace_member(session, ctx, ctx.workspace_id)
    return ctx


# --- Infrastructure ---

def get_crypto_service() -> CryptoService:
    return CryptoService()


async def get_gateway(settings: Settings = Depends(get_settings)) -> AsyncGenerator[EvolutionGateway, None]:
    gateway = EvolutionGateway.from_settings(settings)
    try:
        yield gateway
    finally:
        await gateway.aclose()


def get_media_storage(settings: Settings = Depends(get_settings)) -> MediaStorage:
    return LocalMediaStorage(settings.MEDIA_ROOT, settings.MEDIA_PUBLIC_BASE_URL, bucket=settings.MEDIA_BUCKET)
