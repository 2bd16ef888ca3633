from __future__ import annotations

import uuid

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from tezeus.shared.database.base import Base, CreatedAtMixin, UUIDPkMixin


class Tag(UUIDPkMixin, CreatedAtMixin, Base):
    __tablename__ = "tags"

    workspace_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    color: Mapped[str] = mapped_column(sa.String(16), nullable=False, default="#808080")


class ContactTag(UUIDPkMixin, CreatedAtMixin, Base):
    __tablename__ = "contact_tags"

    contact_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("contacts.id", ondelete="CASCADE"), nullable=False
    )
    tag_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("tags.id", ondelete="CASCADE"), nullable=False
    )

    __table_args__ = (sa.UniqueConstraint("contact_id", "tag_id", name="uq_contact_tags__contact_tag"),)
