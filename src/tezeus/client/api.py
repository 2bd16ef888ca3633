"""httpx client for the Tezeus API; every call carries the session's header context."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

import httpx

from tezeus.shared.exceptions import DomainError
from tezeus.shared.logging import get_logger

from .config import ClientConfig
from .headers import build_user_headers, build_workspace_headers
from .session import ClientSession

logger = get_logger(__name__)


class ApiError(DomainError):
    """Non-2xx answer from the API, carrying the server's error envelope."""
    code = "api_error"

    def __init__(self, status_code: int, body: Any):
        envelope = body if isinstance(body, Mapping) else {}
        super().__init__(
            str(envelope.get("error") or f"HTTP {status_code}"),
            code=str(envelope.get("code") or self.code),
            status_code=status_code,
            details=dict(envelope),
        )
        self.body = body


class TezeusApiClient:
    def __init__(
        self,
        config: ClientConfig,
        session: ClientSession,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self.session = session
        self.http = httpx.AsyncClient(
            base_url=config.api_url,
            timeout=config.timeout_seconds,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self.http.aclose()

    async def __aenter__(self) -> "TezeusApiClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    def _headers(self, workspace_scoped: bool, authenticated: bool = True) -> Dict[str, str]:
        if not authenticated:
            return {}
        # raises synchronously (no request sent) when identity is missing
        return build_workspace_headers(self.session) if workspace_scoped else build_user_headers(self.session)

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        try:
            body = response.json()
        except ValueError:
            body = {"error": response.text}
        if response.is_error:
            logger.warning("API call failed", url=str(response.request.url), status=response.status_code)
            raise ApiError(response.status_code, body)
        return body

    async def invoke(
        self,
        name: str,
        body: Optional[Dict[str, Any]] = None,
        *,
        workspace_scoped: bool = True,
        authenticated: bool = True,
    ) -> Any:
        """POST /functions/{name}. `authenticated=False` sends no identity headers (public functions)."""
        headers = self._headers(workspace_scoped, authenticated)
        response = await self.http.post(f"/functions/{name}", json=body or {}, headers=headers)
        return self._decode(response)

    async def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        headers = self._headers(True)
        response = await self.http.get(path, params=params, headers=headers)
        return self._decode(response)
