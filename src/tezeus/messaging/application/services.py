from __future__ import annotations

import random
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from tezeus.config import Settings
from tezeus.conversation.infrastructure.repositories import ConversationRepository, MessageRepository
from tezeus.shared.exceptions import ConfigurationError, DomainError, NotFoundError, UpstreamError
from tezeus.shared.logging import get_logger
from tezeus.shared.security.crypto import CryptoService

from ..infrastructure.gateway.evolution import EvolutionGateway
from ..infrastructure.models import EvolutionInstanceToken
from ..infrastructure.repositories import (
    EvolutionTokenRepository,
    MessagingSettingsRepository,
    ReferenceDataRepository,
)

logger = get_logger(__name__)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class ReferenceDataService:
    def __init__(self, session: AsyncSession):
        self.repo = ReferenceDataRepository(session)

    async def channels(self, workspace_id: UUID) -> List[Dict[str, Any]]:
        return [
            {
                "id": str(c.id),
                "name": c.name,
                "number": c.number,
                "instance": c.instance,
                "status": c.status,
                "created_at": _iso(c.created_at),
                "updated_at": _iso(c.updated_at),
            }
            for c in await self.repo.connected_channels(workspace_id)
        ]

    async def queues(self, workspace_id: UUID) -> List[Dict[str, Any]]:
        return [
            {
                "id": str(q.id),
                "name": q.name,
                "description": q.description,
                "color": q.color,
                "order_position": q.order_position,
                "distribution_type": q.distribution_type,
                "greeting_message": q.greeting_message,
                "workspace_id": str(q.workspace_id),
                "is_active": q.is_active,
                "created_at": _iso(q.created_at),
                "updated_at": _iso(q.updated_at),
            }
            for q in await self.repo.active_queues(workspace_id)
        ]

    async def instances(self, workspace_id: UUID) -> List[Dict[str, str]]:
        return await self.repo.instances(workspace_id)

    async def connections(self, workspace_id: UUID) -> List[Dict[str, Any]]:
        rows = await self.repo.connections(workspace_id)
        return [{**row, "id": str(row["id"])} for row in rows]


class DefaultInstanceService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.repo = MessagingSettingsRepository(session)

    async def get(self, workspace_id: UUID) -> Optional[str]:
        row = await self.repo.get(workspace_id)
        return row.default_instance if row else None

    async def set(self, workspace_id: UUID, instance: Optional[str]) -> Dict[str, Any]:
        row = await self.repo.set_default_instance(workspace_id, instance)
        await self.session.commit()
        logger.info("Default instance updated", workspace_id=str(workspace_id), instance=instance)
        return {
            "workspace_id": str(row.workspace_id),
            "default_instance": row.default_instance,
            "updated_at": _iso(row.updated_at),
        }


class EvolutionConfigService:
    """Workspace gateway configuration kept in the `_master_config` token row."""

    def __init__(self, session: AsyncSession, crypto: CryptoService, settings: Settings):
        self.session = session
        self.crypto = crypto
        self.settings = settings
        self.repo = EvolutionTokenRepository(session)

    def _decrypt_key(self, row: EvolutionInstanceToken) -> Optional[str]:
        value = self.crypto.decrypt(row.token)
        return value.get("api_key") if isinstance(value, dict) else None

    async def resolve(self, workspace_id: UUID) -> Dict[str, Optional[str]]:
        """{url, apiKey}: stored values first, configured defaults second."""
        row = await self.repo.get(workspace_id)
        url = row.evolution_url if row and row.evolution_url else self.settings.EVOLUTION_DEFAULT_URL
        api_key = (self._decrypt_key(row) if row else None) or self.settings.EVOLUTION_API_KEY
        if not url:
            raise ConfigurationError("Evolution URL is not configured", details={"missing": ["EVOLUTION_DEFAULT_URL"]})
        return {"url": url, "apiKey": api_key}

    async def save(self, workspace_id: UUID, evolution_url: str, api_key: str) -> Dict[str, Any]:
        envelope = self.crypto.encrypt({"api_key": api_key})
        row = await self.repo.upsert(workspace_id, evolution_url=evolution_url, token=envelope)
        await self.session.commit()
        logger.info("Evolution config saved", workspace_id=str(workspace_id))
        return {
            "id": str(row.id),
            "workspace_id": str(row.workspace_id),
            "instance_name": row.instance_name,
            "evolution_url": row.evolution_url,
            "token": CryptoService.redact_marker(),
            "updated_at": _iso(row.updated_at),
        }


class WebhookDiagnosticsService:
    """Operator diagnostics; every URL and credential comes from settings."""

    def __init__(self, gateway: EvolutionGateway, settings: Settings):
        self.gateway = gateway
        self.settings = settings

    def _instance(self, instance: Optional[str]) -> str:
        name = instance or self.settings.EVOLUTION_DIAGNOSTIC_INSTANCE
        if not name:
            raise ConfigurationError("No instance given and EVOLUTION_DIAGNOSTIC_INSTANCE is not set")
        return name

    def _webhook_target(self) -> str:
        if not self.settings.EVOLUTION_WEBHOOK_TARGET_URL:
            raise ConfigurationError("EVOLUTION_WEBHOOK_TARGET_URL is not set")
        return self.settings.EVOLUTION_WEBHOOK_TARGET_URL

    async def fix_webhook(self, instance: Optional[str] = None) -> Dict[str, Any]:
        resp = await self.gateway.set_webhook(
            self._instance(instance),
            self._webhook_target(),
            self.settings.EVOLUTION_WEBHOOK_EVENTS,
        )
        return {"status": resp.status_code, "result": resp.text}

    async def test_webhook_config(self, instance: Optional[str] = None) -> Dict[str, Any]:
        resp = await self.gateway.set_webhook(
            self._instance(instance),
            self._webhook_target(),
            self.settings.EVOLUTION_WEBHOOK_CONFIG_EVENTS,
            nested=True,
        )
        return {
            "success": resp.ok,
            "status": resp.status_code,
            "response": resp.text,
            "message": "Webhook configured" if resp.ok else "Failed to configure webhook",
        }

    async def test_n8n_webhook(self, phone_number: Optional[str] = None, workspace_id: Optional[str] = None) -> Dict[str, Any]:
        url = self.settings.N8N_TEST_WEBHOOK_URL
        if not url:
            raise ConfigurationError("N8N_TEST_WEBHOOK_URL is not set")
        payload = {
            "phone_number": phone_number or self.settings.DIAGNOSTIC_TEST_PHONE,
            "response_message": "Webhook test message",
            "workspace_id": workspace_id or self.settings.DIAGNOSTIC_TEST_WORKSPACE_ID,
            "test": True,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        resp = await self.gateway.post_json(url, payload)
        return {
            "success": True,
            "webhook_status": resp.status_code,
            "webhook_response": resp.text,
            "webhook_ok": resp.ok,
        }


class AutoResponseService:
    """
    Canned automatic reply for conversations whose agent flag is on.

    The reply is stored as an `ia` message; when a phone number is given it is
    also sent through the gateway. A failed send marks the message `failed`
    without failing the call.
    """

    def __init__(
        self,
        session: AsyncSession,
        gateway: EvolutionGateway,
        config: EvolutionConfigService,
        responses: Sequence[str],
        *,
        choose: Callable[[Sequence[str]], str] = random.choice,
    ):
        self.session = session
        self.gateway = gateway
        self.config = config
        self.responses = list(responses)
        self.choose = choose
        self.conversations = ConversationRepository(session)
        self.messages = MessageRepository(session)

    async def respond(
        self, workspace_id: UUID, conversation_id: UUID, message: str, phone_number: Optional[str] = None
    ) -> Dict[str, Any]:
        conversation = await self.conversations.get(workspace_id, conversation_id)
        if conversation is None:
            raise NotFoundError("Conversation not found", code="conversation_not_found")
        if not conversation.agente_ativo:
            logger.info("Agent disabled, no automatic reply", conversation_id=str(conversation_id))
            return {"success": True, "ai_active": False}

        reply = self.choose(self.responses)
        stored = await self.messages.add(
            workspace_id=conversation.workspace_id,
            conversation_id=conversation.id,
            content=reply,
            sender_type="ia",
            message_type="text",
            status="sending",
            origem_resposta="automatica",
        )
        await self.session.commit()
        logger.info("Automatic reply stored", conversation_id=str(conversation_id), incoming_length=len(message))

        if phone_number:
            await self._send(conversation.workspace_id, conversation.evolution_instance, stored.id, phone_number, reply)

        return {"success": True, "ai_response": reply, "ai_active": True}

    async def _send(self, workspace_id: UUID, instance: Optional[str], message_id: UUID, phone_number: str, text: str) -> None:
        try:
            if not instance:
                raise ConfigurationError("Conversation has no gateway instance")
            cfg = await self.config.resolve(workspace_id)
            resp = await self.gateway.with_credentials(cfg["url"], cfg["apiKey"]).send_text(instance, phone_number, text)
            if not resp.ok:
                raise UpstreamError(f"Gateway answered {resp.status_code}")
            body = resp.json() or {}
            external_id = (body.get("key") or {}).get("id") if isinstance(body, dict) else None
            await self.messages.set_status(message_id, "sent", external_id)
        except DomainError as exc:
            logger.warning("Automatic reply not delivered", message_id=str(message_id), error=exc.message)
            await self.messages.set_status(message_id, "failed")
        await self.session.commit()
