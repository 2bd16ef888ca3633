from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
from uuid import UUID


class ConversationStatus(str, Enum):
    OPEN = "open"
    PENDING = "pending"
    CLOSED = "closed"


class AssignmentAction(str, Enum):
    ACCEPT = "accept"
    END = "end"


@dataclass(frozen=True)
class ConversationView:
    id: UUID
    workspace_id: UUID
    contact_id: Optional[UUID]
    assigned_user_id: Optional[UUID]
    assigned_at: Optional[datetime]
    status: str
    agente_ativo: bool
    evolution_instance: Optional[str]
    updated_at: Optional[datetime]

    @property
    def is_closed(self) -> bool:
        return self.status == ConversationStatus.CLOSED.value

    @property
    def is_assigned(self) -> bool:
        return self.assigned_user_id is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": str(self.id),
            "workspace_id": str(self.workspace_id),
            "contact_id": str(self.contact_id) if self.contact_id else None,
            "assigned_user_id": str(self.assigned_user_id) if self.assigned_user_id else None,
            "assigned_at": self.assigned_at.isoformat() if self.assigned_at else None,
            "status": self.status,
            "agente_ativo": self.agente_ativo,
            "evolution_instance": self.evolution_instance,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class LifecycleOutcome(str, Enum):
    ACCEPTED = "accepted"
    ALREADY_ASSIGNED = "already_assigned"
    CLOSED = "closed"
    ALREADY_CLOSED = "already_closed"


@dataclass(frozen=True)
class LifecycleResult:
    """What an Accept/End attempt did; the HTTP layer maps it to the envelope."""
    outcome: LifecycleOutcome
    conversation: ConversationView
    extra: Dict[str, Any] = field(default_factory=dict)
