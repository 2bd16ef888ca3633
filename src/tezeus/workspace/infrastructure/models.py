from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from tezeus.shared.database.base import Base, CreatedAtMixin, TimestampMixin, UUIDPkMixin, utcnow


class Org(UUIDPkMixin, CreatedAtMixin, Base):
    __tablename__ = "orgs"

    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)


class OrgMember(UUIDPkMixin, CreatedAtMixin, Base):
    __tablename__ = "org_members"

    org_id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, sa.ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, nullable=False)
    role: Mapped[str] = mapped_column(sa.String(32), nullable=False, default="member")

    __table_args__ = (sa.UniqueConstraint("org_id", "user_id", name="uq_org_members__org_user"),)


class Workspace(UUIDPkMixin, TimestampMixin, Base):
    __tablename__ = "workspaces"

    org_id: Mapped[Optional[uuid.UUID]] = mapped_column(sa.Uuid, sa.ForeignKey("orgs.id", ondelete="SET NULL"), nullable=True)
    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    slug: Mapped[Optional[str]] = mapped_column(sa.String(120), nullable=True)
    cnpj: Mapped[Optional[str]] = mapped_column(sa.String(32), nullable=True)


class SystemUser(UUIDPkMixin, CreatedAtMixin, Base):
    __tablename__ = "system_users"

    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    email: Mapped[str] = mapped_column(sa.String(320), nullable=False, unique=True)
    profile: Mapped[str] = mapped_column(sa.String(16), nullable=False, default="user")  # master|admin|user
    status: Mapped[str] = mapped_column(sa.String(16), nullable=False, default="active")  # active|inactive
    avatar: Mapped[Optional[str]] = mapped_column(sa.Text, nullable=True)


class WorkspaceMember(UUIDPkMixin, CreatedAtMixin, Base):
    __tablename__ = "workspace_members"

    workspace_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("system_users.id", ondelete="CASCADE"), nullable=False
    )
    role: Mapped[str] = mapped_column(sa.String(32), nullable=False, default="user")
    is_hidden: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)

    __table_args__ = (sa.UniqueConstraint("workspace_id", "user_id", name="uq_workspace_members__ws_user"),)


class WorkspaceLimit(Base):
    __tablename__ = "workspace_limits"

    workspace_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("workspaces.id", ondelete="CASCADE"), primary_key=True
    )
    connection_limit: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=1)


class SystemCustomization(Base):
    """Platform-wide branding; a single row keyed by SINGLETON_ID."""

    __tablename__ = "system_customization"

    SINGLETON_ID = 1

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, default=SINGLETON_ID)
    logo_url: Mapped[Optional[str]] = mapped_column(sa.Text, nullable=True)
    background_color: Mapped[str] = mapped_column(sa.String(64), nullable=False)
    primary_color: Mapped[str] = mapped_column(sa.String(64), nullable=False)
    header_color: Mapped[str] = mapped_column(sa.String(64), nullable=False)
    sidebar_color: Mapped[str] = mapped_column(sa.String(64), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False, default=utcnow)
