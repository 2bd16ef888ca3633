from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Mapping, Optional

_CAMEL = {
    "total_connections": "totalConnections",
    "active_connections": "activeConnections",
    "total_conversations": "totalConversations",
    "active_conversations": "activeConversations",
    "today_messages": "todayMessages",
    "pending_tasks": "pendingTasks",
    "active_pipeline_deals": "activePipelineDeals",
    "today_revenue": "todayRevenue",
}


@dataclass(frozen=True)
class DashboardStats:
    total_connections: int = 0
    active_connections: int = 0
    total_conversations: int = 0
    active_conversations: int = 0
    today_messages: int = 0
    pending_tasks: int = 0
    active_pipeline_deals: int = 0
    today_revenue: float = 0

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "DashboardStats":
        return cls(**{field: data.get(camel, 0) or 0 for field, camel in _CAMEL.items()})

    def to_api(self) -> Dict[str, Any]:
        return {_CAMEL[k]: v for k, v in asdict(self).items()}


def local_midnight(now: Optional[datetime] = None) -> datetime:
    now = (now or datetime.now()).astimezone()
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def _field(row: Any, name: str) -> Any:
    if isinstance(row, Mapping):
        return row.get(name)
    return getattr(row, name, None)


def _as_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value:
        try:
            dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    # naive timestamps from the store are UTC
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def compute_dashboard_stats(
    connections: Iterable[Any],
    conversations: Iterable[Any],
    messages: Iterable[Any],
    activities: Iterable[Any],
    *,
    now: Optional[datetime] = None,
) -> DashboardStats:
    """
    Client-side aggregation, used when the server aggregate is unavailable.
    Every count is the length of the filtered input.
    """
    connections = list(connections)
    conversations = list(conversations)
    midnight = local_midnight(now)

    def _today(row: Any) -> bool:
        created = _as_datetime(_field(row, "created_at"))
        return created is not None and created >= midnight

    return DashboardStats(
        total_connections=len(connections),
        active_connections=sum(1 for c in connections if _field(c, "status") == "connected"),
        total_conversations=len(conversations),
        active_conversations=sum(1 for c in conversations if _field(c, "status") == "open"),
        today_messages=sum(1 for m in messages if _today(m)),
        pending_tasks=sum(1 for a in activities if not _field(a, "is_completed")),
        active_pipeline_deals=0,
        today_revenue=0,
    )
