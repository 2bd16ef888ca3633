from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from tezeus.shared.database.base import Base, CreatedAtMixin, TimestampMixin, UUIDPkMixin, utcnow


class Contact(UUIDPkMixin, CreatedAtMixin, Base):
    __tablename__ = "contacts"

    workspace_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(sa.String(200), nullable=False, default="")
    phone: Mapped[Optional[str]] = mapped_column(sa.String(32), nullable=True)


class Conversation(UUIDPkMixin, TimestampMixin, Base):
    __tablename__ = "conversations"

    workspace_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True
    )
    contact_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        sa.Uuid, sa.ForeignKey("contacts.id", ondelete="SET NULL"), nullable=True
    )
    # NULL = unassigned/pending; set exactly once by a winning Accept
    assigned_user_id: Mapped[Optional[uuid.UUID]] = mapped_column(sa.Uuid, nullable=True)
    assigned_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True), nullable=True)
    status: Mapped[str] = mapped_column(sa.String(16), nullable=False, default="open")  # open|pending|closed
    agente_ativo: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)
    evolution_instance: Mapped[Optional[str]] = mapped_column(sa.String(120), nullable=True)
    connection_id: Mapped[Optional[uuid.UUID]] = mapped_column(sa.Uuid, nullable=True)
    queue_id: Mapped[Optional[uuid.UUID]] = mapped_column(sa.Uuid, nullable=True)


class ConversationAssignment(UUIDPkMixin, Base):
    """Append-only assignment history (accept / end)."""
    __tablename__ = "conversation_assignments"

    conversation_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    action: Mapped[str] = mapped_column(sa.String(16), nullable=False)
    from_assigned_user_id: Mapped[Optional[uuid.UUID]] = mapped_column(sa.Uuid, nullable=True)
    to_assigned_user_id: Mapped[Optional[uuid.UUID]] = mapped_column(sa.Uuid, nullable=True)
    changed_by: Mapped[uuid.UUID] = mapped_column(sa.Uuid, nullable=False)
    changed_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False, default=utcnow)


class Message(UUIDPkMixin, CreatedAtMixin, Base):
    __tablename__ = "messages"

    workspace_id: Mapped[Optional[uuid.UUID]] = mapped_column(sa.Uuid, nullable=True, index=True)
    conversation_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    content: Mapped[str] = mapped_column(sa.Text, nullable=False, default="")
    sender_type: Mapped[str] = mapped_column(sa.String(16), nullable=False)  # contact|agent|ia|system
    message_type: Mapped[str] = mapped_column(sa.String(16), nullable=False, default="text")
    status: Mapped[str] = mapped_column(sa.String(16), nullable=False, default="received")
    origem_resposta: Mapped[Optional[str]] = mapped_column(sa.String(32), nullable=True)
    external_id: Mapped[Optional[str]] = mapped_column(sa.String(128), nullable=True)
