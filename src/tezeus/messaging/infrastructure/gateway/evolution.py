"""Evolution API (WhatsApp gateway) and n8n webhook adapter over httpx."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from tezeus.config import Settings
from tezeus.shared.exceptions import ConfigurationError, UpstreamError
from tezeus.shared.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class GatewayResponse:
    """Raw upstream answer; handlers pass status and body through."""
    status_code: int
    text: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self) -> Any:
        try:
            return json.loads(self.text) if self.text else None
        except ValueError:
            return None


class EvolutionGateway:
    """
    Opaque request/response client for the Evolution API.

    Auth is the `apikey` header. Transport failures (timeouts, refused
    connections) raise UpstreamError; non-2xx answers are returned as-is.
    """

    def __init__(
        self,
        base_url: Optional[str],
        api_key: Optional[str],
        *,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/") if base_url else None
        self.api_key = api_key
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=timeout)

    @classmethod
    def from_settings(cls, settings: Settings, *, client: Optional[httpx.AsyncClient] = None) -> "EvolutionGateway":
        return cls(
            settings.EVOLUTION_DEFAULT_URL,
            settings.EVOLUTION_API_KEY,
            timeout=settings.GATEWAY_TIMEOUT_SECONDS,
            client=client,
        )

    def with_credentials(self, base_url: Optional[str], api_key: Optional[str]) -> "EvolutionGateway":
        """Same HTTP client, workspace-specific gateway URL/key (falls back to current ones)."""
        return EvolutionGateway(base_url or self.base_url, api_key or self.api_key, client=self.client)

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    # ------------------------------------------------------------------ gateway

    def _require_credentials(self) -> None:
        missing = [name for name, value in (("EVOLUTION_DEFAULT_URL", self.base_url), ("EVOLUTION_API_KEY", self.api_key)) if not value]
        if missing:
            raise ConfigurationError("Evolution gateway is not configured", details={"missing": missing})

    async def _post(self, url: str, payload: Dict[str, Any], headers: Optional[Dict[str, str]] = None) -> GatewayResponse:
        try:
            response = await self.client.post(url, json=payload, headers=headers or {})
        except httpx.TimeoutException as exc:
            logger.error("Gateway timeout", url=url)
            raise UpstreamError("Gateway request timed out") from exc
        except httpx.HTTPError as exc:
            logger.error("Gateway transport error", url=url, error=str(exc))
            raise UpstreamError(str(exc) or exc.__class__.__name__) from exc

        logger.info("Gateway response", url=url, status=response.status_code)
        return GatewayResponse(status_code=response.status_code, text=response.text)

    async def set_webhook(self, instance: str, url: str, events: List[str], *, nested: bool = False) -> GatewayResponse:
        """
        POST {base}/webhook/set/{instance}.

        `nested=True` sends the `{"webhook": {...}}` body shape newer gateway
        versions expect; the flat shape also carries `webhook_base64`.
        """
        self._require_credentials()
        if nested:
            payload: Dict[str, Any] = {"webhook": {"url": url, "webhook_by_events": False, "events": list(events)}}
        else:
            payload = {"url": url, "webhook_by_events": False, "webhook_base64": False, "events": list(events)}
        return await self._post(f"{self.base_url}/webhook/set/{instance}", payload, {"apikey": self.api_key})

    async def send_text(self, instance: str, number: str, text: str) -> GatewayResponse:
        """POST {base}/message/sendText/{instance}."""
        self._require_credentials()
        return await self._post(
            f"{self.base_url}/message/sendText/{instance}",
            {"number": number, "text": text},
            {"apikey": self.api_key},
        )

    # ------------------------------------------------------------------ n8n

    async def post_json(self, url: str, payload: Dict[str, Any]) -> GatewayResponse:
        """Plain JSON POST (workflow engine webhooks); no gateway credentials."""
        return await self._post(url, payload)
