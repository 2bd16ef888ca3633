from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Dict, Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from tezeus.shared.database.base import Base, CreatedAtMixin, TimestampMixin, UUIDPkMixin, utcnow

# Row of evolution_instance_tokens that stores the workspace-wide gateway config
MASTER_CONFIG_INSTANCE = "_master_config"


class Channel(UUIDPkMixin, TimestampMixin, Base):
    __tablename__ = "channels"

    workspace_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    number: Mapped[Optional[str]] = mapped_column(sa.String(32), nullable=True)
    instance: Mapped[str] = mapped_column(sa.String(120), nullable=False)
    status: Mapped[str] = mapped_column(sa.String(32), nullable=False, default="disconnected")


class Connection(UUIDPkMixin, CreatedAtMixin, Base):
    __tablename__ = "connections"

    workspace_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True
    )
    instance_name: Mapped[str] = mapped_column(sa.String(120), nullable=False)
    phone_number: Mapped[Optional[str]] = mapped_column(sa.String(32), nullable=True)
    status: Mapped[str] = mapped_column(sa.String(32), nullable=False, default="disconnected")


class InstanceUserAssignment(UUIDPkMixin, CreatedAtMixin, Base):
    __tablename__ = "instance_user_assignments"

    workspace_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True
    )
    instance: Mapped[str] = mapped_column(sa.String(120), nullable=False)
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(sa.Uuid, nullable=True)


class Queue(UUIDPkMixin, TimestampMixin, Base):
    __tablename__ = "queues"

    workspace_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(sa.Text, nullable=True)
    color: Mapped[Optional[str]] = mapped_column(sa.String(16), nullable=True)
    order_position: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    distribution_type: Mapped[Optional[str]] = mapped_column(sa.String(32), nullable=True)
    greeting_message: Mapped[Optional[str]] = mapped_column(sa.Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)


class Activity(UUIDPkMixin, CreatedAtMixin, Base):
    __tablename__ = "activities"

    workspace_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True
    )
    subject: Mapped[str] = mapped_column(sa.String(300), nullable=False, default="")
    is_completed: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)


class EvolutionInstanceToken(UUIDPkMixin, TimestampMixin, Base):
    __tablename__ = "evolution_instance_tokens"

    workspace_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False
    )
    instance_name: Mapped[str] = mapped_column(sa.String(120), nullable=False)
    evolution_url: Mapped[Optional[str]] = mapped_column(sa.Text, nullable=True)
    # AES-GCM envelope produced by CryptoService.encrypt
    token: Mapped[Dict[str, Any]] = mapped_column(sa.JSON, nullable=False)

    __table_args__ = (
        sa.UniqueConstraint("workspace_id", "instance_name", name="uq_evolution_tokens__ws_instance"),
    )


class WorkspaceMessagingSettings(Base):
    __tablename__ = "workspace_messaging_settings"

    workspace_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("workspaces.id", ondelete="CASCADE"), primary_key=True
    )
    default_instance: Mapped[Optional[str]] = mapped_column(sa.String(120), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )
