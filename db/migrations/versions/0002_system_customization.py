"""Platform branding: single-row system_customization table."""

from __future__ import annotations
from alembic import op
import sqlalchemy as sa

revision = "0002_system_customization"
down_revision = "0001_initial_schema"
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "system_customization",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("logo_url", sa.Text, nullable=True),
        sa.Column("background_color", sa.String(64), nullable=False),
        sa.Column("primary_color", sa.String(64), nullable=False),
        sa.Column("header_color", sa.String(64), nullable=False),
        sa.Column("sidebar_color", sa.String(64), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )


def downgrade():
    op.drop_table("system_customization")
