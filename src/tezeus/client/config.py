from __future__ import annotations

from dataclasses import dataclass

from tezeus.config import Settings


@dataclass(frozen=True)
class ClientConfig:
    base_url: str = "http://localhost:8000"
    api_prefix: str = "/api/v1"
    timeout_seconds: float = 30.0
    session_poll_interval_seconds: float = 30.0

    @property
    def api_url(self) -> str:
        return f"{self.base_url.rstrip('/')}{self.api_prefix}"

    @classmethod
    def from_settings(cls, settings: Settings, base_url: str) -> "ClientConfig":
        return cls(
            base_url=base_url,
            api_prefix=settings.API_V1_STR,
            timeout_seconds=settings.CLIENT_API_TIMEOUT_SECONDS,
            session_poll_interval_seconds=settings.SESSION_POLL_INTERVAL_SECONDS,
        )
