"""
Resource queries: data / loading / error holders that never raise to the caller.

A failed fetch is logged, surfaced as a destructive notification and degrades
`data` to the query's default (an empty list, zeroed dashboard stats).
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, Generic, List, Optional, Sequence, Tuple, TypeVar

from tezeus.shared.logging import get_logger

from .api import TezeusApiClient
from .dashboard import DashboardStats, compute_dashboard_stats, local_midnight
from .notifications import Notifier

logger = get_logger(__name__)

T = TypeVar("T")

_UNSET = object()


class ResourceQuery(Generic[T]):
    def __init__(
        self,
        name: str,
        fetcher: Callable[[], Awaitable[T]],
        *,
        default: Callable[[], T],
        notifier: Notifier,
        error_title: str,
        enabled: Callable[[], bool] = lambda: True,
    ):
        self.name = name
        self.fetcher = fetcher
        self.default = default
        self.notifier = notifier
        self.error_title = error_title
        self.enabled = enabled

        self.data: T = default()
        self.loading = False
        self.error: Optional[str] = None
        self._deps: Any = _UNSET

    async def refetch(self) -> T:
        if not self.enabled():
            logger.debug("Query disabled, skipping fetch", query=self.name)
            return self.data

        self.loading = True
        try:
            self.data = await self.fetcher()
            self.error = None
        except Exception as exc:
            logger.error("Query failed", query=self.name, error=str(exc), error_type=exc.__class__.__name__)
            self.error = str(exc) or exc.__class__.__name__
            self.data = self.default()
            self.notifier.error(self.error_title, self.error)
        finally:
            self.loading = False
        return self.data

    async def ensure(self, *deps: Any) -> T:
        """Fetch on first use and whenever the dependency values change."""
        if self._deps is not _UNSET and deps == self._deps:
            return self.data
        self._deps = deps
        return await self.refetch()


def _data(body: Any) -> List[Any]:
    return list(body.get("data") or []) if isinstance(body, dict) else []


def _has_workspace(api: TezeusApiClient) -> Callable[[], bool]:
    return lambda: api.session.workspace_id is not None


def channels_query(api: TezeusApiClient, notifier: Notifier) -> ResourceQuery[List[Any]]:
    async def fetch() -> List[Any]:
        return _data(await api.get("/channels"))

    return ResourceQuery("channels", fetch, default=list, notifier=notifier,
                         error_title="Failed to load channels", enabled=_has_workspace(api))


def queues_query(api: TezeusApiClient, notifier: Notifier) -> ResourceQuery[List[Any]]:
    async def fetch() -> List[Any]:
        return _data(await api.get("/queues"))

    return ResourceQuery("queues", fetch, default=list, notifier=notifier,
                         error_title="Failed to load queues", enabled=_has_workspace(api))


def instances_query(api: TezeusApiClient, notifier: Notifier) -> ResourceQuery[List[Any]]:
    async def fetch() -> List[Any]:
        return _data(await api.get("/instances"))

    return ResourceQuery("instances", fetch, default=list, notifier=notifier,
                         error_title="Failed to load instances", enabled=_has_workspace(api))


def connections_query(api: TezeusApiClient, notifier: Notifier) -> ResourceQuery[List[Any]]:
    async def fetch() -> List[Any]:
        return _data(await api.get("/connections"))

    return ResourceQuery("connections", fetch, default=list, notifier=notifier,
                         error_title="Failed to load connections", enabled=_has_workspace(api))


# (connections, conversations, messages, activities) rows for client-side aggregation
FallbackRows = Tuple[Sequence[Any], Sequence[Any], Sequence[Any], Sequence[Any]]


def dashboard_query(
    api: TezeusApiClient,
    notifier: Notifier,
    *,
    fallback_rows: Optional[Callable[[], Awaitable[FallbackRows]]] = None,
) -> ResourceQuery[DashboardStats]:
    """Server aggregate first; when it fails and a row source is given, aggregate locally."""

    async def fetch() -> DashboardStats:
        try:
            body = await api.get("/dashboard/stats", params={"since": local_midnight().isoformat()})
            return DashboardStats.from_api(body.get("data") or {})
        except Exception as exc:
            if fallback_rows is None:
                raise
            logger.warning("Dashboard aggregate failed, aggregating locally", error=str(exc))
            return compute_dashboard_stats(*(await fallback_rows()))

    return ResourceQuery("dashboard_stats", fetch, default=DashboardStats, notifier=notifier,
                         error_title="Failed to load dashboard", enabled=_has_workspace(api))


# Branding shown until the server answers, and whenever it cannot.
FALLBACK_CUSTOMIZATION: Dict[str, Any] = {
    "logo_url": None,
    "background_color": "#0a0a0a",
    "primary_color": "#eab308",
    "header_color": "#1a1a1a",
    "sidebar_color": "#1a1a1a",
}


def system_customization_query(api: TezeusApiClient, notifier: Notifier) -> ResourceQuery[Dict[str, Any]]:
    """Platform branding; works signed out, so it is never disabled."""

    async def fetch() -> Dict[str, Any]:
        body = await api.invoke("get-system-customization", authenticated=False)
        data = body.get("data") if isinstance(body, dict) else None
        return {**FALLBACK_CUSTOMIZATION, **(data or {})}

    return ResourceQuery("system_customization", fetch, default=lambda: dict(FALLBACK_CUSTOMIZATION),
                         notifier=notifier, error_title="Failed to load customization")
