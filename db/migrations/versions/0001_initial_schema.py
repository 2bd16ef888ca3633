"""Initial schema: tenancy, conversations, messaging config, CRM tags.

- orgs / workspaces / system_users / memberships / limits
- contacts, conversations, append-only conversation_assignments, messages
- channels, connections, queues, activities, instance assignments
- evolution_instance_tokens (encrypted envelope) + per-workspace messaging settings
- tags / contact_tags
"""

from __future__ import annotations
from alembic import op
import sqlalchemy as sa

revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def _id():
    return sa.Column("id", sa.Uuid, primary_key=True)


def _created_at():
    return sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())


def _updated_at():
    return sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())


def _workspace_fk(**kw):
    return sa.Column(
        "workspace_id", sa.Uuid, sa.ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, **kw
    )


def upgrade():
    # ---------- Tenancy ----------
    op.create_table(
        "orgs",
        _id(),
        sa.Column("name", sa.String(200), nullable=False),
        _created_at(),
    )
    op.create_table(
        "org_members",
        _id(),
        sa.Column("org_id", sa.Uuid, sa.ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Uuid, nullable=False),
        sa.Column("role", sa.String(32), nullable=False, server_default="member"),
        _created_at(),
        sa.UniqueConstraint("org_id", "user_id", name="uq_org_members__org_user"),
    )
    op.create_table(
        "workspaces",
        _id(),
        sa.Column("org_id", sa.Uuid, sa.ForeignKey("orgs.id", ondelete="SET NULL"), nullable=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("slug", sa.String(120), nullable=True),
        sa.Column("cnpj", sa.String(32), nullable=True),
        _created_at(),
        _updated_at(),
    )
    op.create_table(
        "system_users",
        _id(),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("email", sa.String(320), nullable=False, unique=True),
        sa.Column("profile", sa.String(16), nullable=False, server_default="user"),
        sa.Column("status", sa.String(16), nullable=False, server_default="active"),
        sa.Column("avatar", sa.Text, nullable=True),
        _created_at(),
    )
    op.create_table(
        "workspace_members",
        _id(),
        _workspace_fk(index=True),
        sa.Column("user_id", sa.Uuid, sa.ForeignKey("system_users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("role", sa.String(32), nullable=False, server_default="user"),
        sa.Column("is_hidden", sa.Boolean, nullable=False, server_default=sa.false()),
        _created_at(),
        sa.UniqueConstraint("workspace_id", "user_id", name="uq_workspace_members__ws_user"),
    )
    op.create_table(
        "workspace_limits",
        sa.Column(
            "workspace_id", sa.Uuid, sa.ForeignKey("workspaces.id", ondelete="CASCADE"), primary_key=True
        ),
        sa.Column("connection_limit", sa.Integer, nullable=False, server_default="1"),
    )

    # ---------- Conversations ----------
    op.create_table(
        "contacts",
        _id(),
        _workspace_fk(index=True),
        sa.Column("name", sa.String(200), nullable=False, server_default=""),
        sa.Column("phone", sa.String(32), nullable=True),
        _created_at(),
    )
    op.create_table(
        "conversations",
        _id(),
        _workspace_fk(index=True),
        sa.Column("contact_id", sa.Uuid, sa.ForeignKey("contacts.id", ondelete="SET NULL"), nullable=True),
        sa.Column("assigned_user_id", sa.Uuid, nullable=True),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="open"),
        sa.Column("agente_ativo", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("evolution_instance", sa.String(120), nullable=True),
        sa.Column("connection_id", sa.Uuid, nullable=True),
        sa.Column("queue_id", sa.Uuid, nullable=True),
        _created_at(),
        _updated_at(),
    )
    op.create_table(
        "conversation_assignments",
        _id(),
        sa.Column(
            "conversation_id", sa.Uuid, sa.ForeignKey("conversations.id", ondelete="CASCADE"),
            nullable=False, index=True,
        ),
        sa.Column("action", sa.String(16), nullable=False),
        sa.Column("from_assigned_user_id", sa.Uuid, nullable=True),
        sa.Column("to_assigned_user_id", sa.Uuid, nullable=True),
        sa.Column("changed_by", sa.Uuid, nullable=False),
        sa.Column("changed_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_table(
        "messages",
        _id(),
        sa.Column("workspace_id", sa.Uuid, nullable=True, index=True),
        sa.Column(
            "conversation_id", sa.Uuid, sa.ForeignKey("conversations.id", ondelete="CASCADE"),
            nullable=False, index=True,
        ),
        sa.Column("content", sa.Text, nullable=False, server_default=""),
        sa.Column("sender_type", sa.String(16), nullable=False),
        sa.Column("message_type", sa.String(16), nullable=False, server_default="text"),
        sa.Column("status", sa.String(16), nullable=False, server_default="received"),
        sa.Column("origem_resposta", sa.String(32), nullable=True),
        sa.Column("external_id", sa.String(128), nullable=True),
        _created_at(),
    )

    # ---------- Messaging ----------
    op.create_table(
        "channels",
        _id(),
        _workspace_fk(index=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("number", sa.String(32), nullable=True),
        sa.Column("instance", sa.String(120), nullable=False),
        sa.Column("status", sa.String(32), nullable=False, server_default="disconnected"),
        _created_at(),
        _updated_at(),
    )
    op.create_table(
        "connections",
        _id(),
        _workspace_fk(index=True),
        sa.Column("instance_name", sa.String(120), nullable=False),
        sa.Column("phone_number", sa.String(32), nullable=True),
        sa.Column("status", sa.String(32), nullable=False, server_default="disconnected"),
        _created_at(),
    )
    op.create_table(
        "instance_user_assignments",
        _id(),
        _workspace_fk(index=True),
        sa.Column("instance", sa.String(120), nullable=False),
        sa.Column("user_id", sa.Uuid, nullable=True),
        _created_at(),
    )
    op.create_table(
        "queues",
        _id(),
        _workspace_fk(index=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("color", sa.String(16), nullable=True),
        sa.Column("order_position", sa.Integer, nullable=False, server_default="0"),
        sa.Column("distribution_type", sa.String(32), nullable=True),
        sa.Column("greeting_message", sa.Text, nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        _created_at(),
        _updated_at(),
    )
    op.create_table(
        "activities",
        _id(),
        _workspace_fk(index=True),
        sa.Column("subject", sa.String(300), nullable=False, server_default=""),
        sa.Column("is_completed", sa.Boolean, nullable=False, server_default=sa.false()),
        _created_at(),
    )
    op.create_table(
        "evolution_instance_tokens",
        _id(),
        _workspace_fk(),
        sa.Column("instance_name", sa.String(120), nullable=False),
        sa.Column("evolution_url", sa.Text, nullable=True),
        sa.Column("token", sa.JSON, nullable=False),
        _created_at(),
        _updated_at(),
        sa.UniqueConstraint("workspace_id", "instance_name", name="uq_evolution_tokens__ws_instance"),
    )
    op.create_table(
        "workspace_messaging_settings",
        sa.Column(
            "workspace_id", sa.Uuid, sa.ForeignKey("workspaces.id", ondelete="CASCADE"), primary_key=True
        ),
        sa.Column("default_instance", sa.String(120), nullable=True),
        _updated_at(),
    )

    # ---------- CRM ----------
    op.create_table(
        "tags",
        _id(),
        _workspace_fk(index=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("color", sa.String(16), nullable=False, server_default="#808080"),
        _created_at(),
    )
    op.create_table(
        "contact_tags",
        _id(),
        sa.Column("contact_id", sa.Uuid, sa.ForeignKey("contacts.id", ondelete="CASCADE"), nullable=False),
        sa.Column("tag_id", sa.Uuid, sa.ForeignKey("tags.id", ondelete="CASCADE"), nullable=False),
        _created_at(),
        sa.UniqueConstraint("contact_id", "tag_id", name="uq_contact_tags__contact_tag"),
    )


def downgrade():
    for table in (
        "contact_tags",
        "tags",
        "workspace_messaging_settings",
        "evolution_instance_tokens",
        "activities",
        "queues",
        "instance_user_assignments",
        "connections",
        "channels",
        "messages",
        "conversation_assignments",
        "conversations",
        "contacts",
        "workspace_limits",
        "workspace_members",
        "system_users",
        "workspaces",
        "org_members",
        "orgs",
    ):
        op.drop_table(table)
