from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Single metadata for every bounded context (Alembic target)."""


class UUIDPkMixin:
    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)


class CreatedAtMixin:
    created_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False, default=utcnow)


class TimestampMixin(CreatedAtMixin):
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )


def load_all_models() -> None:
    """Import every ORM module so Base.metadata is complete (Alembic, tests)."""
    from tezeus.workspace.infrastructure import models as _workspace  # noqa: F401
    from tezeus.conversation.infrastructure import models as _conversation  # noqa: F401
    from tezeus.messaging.infrastructure import models as _messaging  # noqa: F401
    from tezeus.crm.infrastructure import models as _crm  # noqa: F401


def dialect_insert(session: Any, model: Any):
    """INSERT supporting ON CONFLICT for the session's backend (Postgres in deployment, SQLite in tests)."""
    name = session.get_bind().dialect.name
    if name == "postgresql":
        return postgresql.insert(model)
    if name == "sqlite":
        return sqlite.insert(model)
    raise ValueError(f"upsert not supported for dialect {name!r}")
