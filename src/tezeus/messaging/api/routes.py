from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tezeus.config import Settings, get_settings
from tezeus.dependencies import (
    ensure_workspace_member,
    get_crypto_service,
    get_db_session,
    get_gateway,
    require_user_context,
    require_workspace_member,
)
from tezeus.shared.exceptions import MissingFieldError
from tezeus.shared.http.responses import ok, ok_data
from tezeus.shared.request_context import RequestContext
from tezeus.shared.security.crypto import CryptoService
from tezeus.shared.utils.ids import parse_uuid

from ..application.services import (
    AutoResponseService,
    DefaultInstanceService,
    EvolutionConfigService,
    ReferenceDataService,
    WebhookDiagnosticsService,
)
from ..infrastructure.gateway.evolution import EvolutionGateway
from .schemas import (
    AiChatRequest,
    InstanceRequest,
    OptionalWorkspaceRef,
    SaveEvolutionConfigRequest,
    SetDefaultInstanceRequest,
    TestWebhookRequest,
    WorkspaceRef,
)

# Workspace-scoped reference lists (GET)
router = APIRouter(prefix="/api/v1", tags=["messaging:reference"])
# Backend utility functions (POST /functions/<name>)
functions_router = APIRouter(prefix="/api/v1/functions", tags=["messaging:functions"])


# ------------------------------------------------------------------ reference lists

@router.get("/channels")
async def list_channels(
    ctx: RequestContext = Depends(require_workspace_member),
    session: AsyncSession = Depends(get_db_session),
):
    return ok_data(await ReferenceDataService(session).channels(parse_uuid(ctx.workspace_id, "x-workspace-id")))


@router.get("/queues")
async def list_queues(
    ctx: RequestContext = Depends(require_workspace_member),
    session: AsyncSession = Depends(get_db_session),
):
    return ok_data(await ReferenceDataService(session).queues(parse_uuid(ctx.workspace_id, "x-workspace-id")))


@router.get("/instances")
async def list_instances(
    ctx: RequestContext = Depends(require_workspace_member),
    session: AsyncSession = Depends(get_db_session),
):
    return ok_data(await ReferenceDataService(session).instances(parse_uuid(ctx.workspace_id, "x-workspace-id")))


@router.get("/connections")
async def list_connections(
    ctx: RequestContext = Depends(require_workspace_member),
    session: AsyncSession = Depends(get_db_session),
):
    return ok_data(await ReferenceDataService(session).connections(parse_uuid(ctx.workspace_id, "x-workspace-id")))


# ------------------------------------------------------------------ default instance

@functions_router.post("/get-default-instance")
async def get_default_instance(
    payload: WorkspaceRef,
    ctx: RequestContext = Depends(require_user_context),
    session: AsyncSession = Depends(get_db_session),
):
    await ensure_workspace_member(session, ctx, payload.workspace_id)
    instance = await DefaultInstanceService(session).get(parse_uuid(payload.workspace_id, "workspaceId"))
    return {"defaultInstance": instance}


@functions_router.post("/set-default-instance")
async def set_default_instance(
    payload: SetDefaultInstanceRequest,
    ctx: RequestContext = Depends(require_user_context),
    session: AsyncSession = Depends(get_db_session),
):
    await ensure_workspace_member(session, ctx, payload.workspace_id)
    data = await DefaultInstanceService(session).set(parse_uuid(payload.workspace_id, "workspaceId"), payload.instance)
    return ok(data=data)


# ------------------------------------------------------------------ gateway config

def _config_service(
    session: AsyncSession = Depends(get_db_session),
    crypto: CryptoService = Depends(get_crypto_service),
    settings: Settings = Depends(get_settings),
) -> EvolutionConfigService:
    return EvolutionConfigService(session, crypto, settings)


@functions_router.post("/get-evolution-config")
async def get_evolution_config(
    payload: Optional[OptionalWorkspaceRef] = Body(default=None),
    ctx: RequestContext = Depends(require_user_context),
    session: AsyncSession = Depends(get_db_session),
    svc: EvolutionConfigService = Depends(_config_service),
):
    workspace_id = ctx.workspace_id or (payload.workspace_id if payload else None)
    if not workspace_id:
        raise MissingFieldError("workspaceId")
    await ensure_workspace_member(session, ctx, workspace_id)
    cfg = await svc.resolve(parse_uuid(workspace_id, "workspaceId"))
    return ok(**cfg)


@functions_router.post("/save-evolution-config")
async def save_evolution_config(
    payload: SaveEvolutionConfigRequest,
    ctx: RequestContext = Depends(require_user_context),
    session: AsyncSession = Depends(get_db_session),
    svc: EvolutionConfigService = Depends(_config_service),
):
    await ensure_workspace_member(session, ctx, payload.workspace_id)
    data = await svc.save(parse_uuid(payload.workspace_id, "workspaceId"), payload.evolution_url, payload.evolution_api_key)
    return ok(message="Configuration saved", data=data)


# ------------------------------------------------------------------ diagnostics

def _diagnostics(
    gateway: EvolutionGateway = Depends(get_gateway),
    settings: Settings = Depends(get_settings),
) -> WebhookDiagnosticsService:
    return WebhookDiagnosticsService(gateway, settings)


@functions_router.post("/fix-webhook")
async def fix_webhook(
    payload: Optional[InstanceRequest] = Body(default=None),
    _: RequestContext = Depends(require_user_context),
    svc: WebhookDiagnosticsService = Depends(_diagnostics),
):
    return await svc.fix_webhook(payload.instance if payload else None)


@functions_router.post("/test-webhook")
async def test_webhook(
    payload: Optional[TestWebhookRequest] = Body(default=None),
    _: RequestContext = Depends(require_user_context),
    svc: WebhookDiagnosticsService = Depends(_diagnostics),
):
    payload = payload or TestWebhookRequest()
    return await svc.test_n8n_webhook(payload.phone_number, payload.workspace_id)


@functions_router.post("/test-webhook-config")
async def test_webhook_config(
    payload: Optional[InstanceRequest] = Body(default=None),
    _: RequestContext = Depends(require_user_context),
    svc: WebhookDiagnosticsService = Depends(_diagnostics),
):
    return await svc.test_webhook_config(payload.instance if payload else None)


# ------------------------------------------------------------------ automatic reply

@functions_router.post("/ai-chat-response")
async def ai_chat_response(
    payload: AiChatRequest,
    ctx: RequestContext = Depends(require_workspace_member),
    session: AsyncSession = Depends(get_db_session),
    gateway: EvolutionGateway = Depends(get_gateway),
    config: EvolutionConfigService = Depends(_config_service),
    settings: Settings = Depends(get_settings),
):
    svc = AutoResponseService(session, gateway, config, settings.AI_AUTO_RESPONSES)
    return await svc.respond(
        parse_uuid(ctx.workspace_id, "x-workspace-id"),
        parse_uuid(payload.conversation_id, "conversationId"),
        payload.message,
        payload.phone_number,
    )
