"""Initial migration

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
import sqlmodel
from sqlalchemy.dialects.postgresql import JSONB

from alembic import op

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

JSONType = sa.JSON().with_variant(JSONB(), "postgresql")


def upgrade() -> None:
    # 1. CRM tables the engine reads and updates
    op.create_table(
        "leads",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("owner_id", sa.Uuid(), nullable=False),
        sa.Column("business_name", sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
        sa.Column("email", sqlmodel.sql.sqltypes.AutoString(length=255), nullable=True),
        sa.Column("niche", sqlmodel.sql.sqltypes.AutoString(length=100), nullable=True),
        sa.Column(
            "contact_status",
            sqlmodel.sql.sqltypes.AutoString(length=50),
            nullable=False,
            server_default="new",
        ),
        sa.Column("last_contacted_at", sa.DateTime(), nullable=True),
        sa.Column("next_follow_up_at", sa.DateTime(), nullable=True),
        sa.Column("notes", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_leads_owner_id", "leads", ["owner_id"], unique=False)
    op.create_index("ix_leads_owner_status", "leads", ["owner_id", "contact_status"])
    op.create_index(
        "ix_leads_status_last_contacted", "leads", ["contact_status", "last_contacted_at"]
    )

    op.create_table(
        "owner_plans",
        sa.Column("owner_id", sa.Uuid(), nullable=False),
        sa.Column(
            "tier", sqlmodel.sql.sqltypes.AutoString(length=20), nullable=False, server_default="lite"
        ),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("owner_id"),
    )

    # 2. Workflow definitions
    op.create_table(
        "workflows",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("owner_id", sa.Uuid(), nullable=False),
        sa.Column("name", sqlmodel.sql.sqltypes.AutoString(length=200), nullable=False),
        sa.Column("trigger", JSONType, nullable=False),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="100"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_workflows_owner_id", "workflows", ["owner_id"], unique=False)
    op.create_index("ix_workflows_owner_active", "workflows", ["owner_id", "is_active"])

    op.create_table(
        "workflow_steps",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("workflow_id", sa.Uuid(), nullable=False),
        sa.Column("step_order", sa.Integer(), nullable=False),
        sa.Column("action", sqlmodel.sql.sqltypes.AutoString(length=30), nullable=False),
        sa.Column("delay_days", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("params", JSONType, nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["workflow_id"], ["workflows.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("workflow_id", "step_order", name="uq_workflow_steps_order"),
    )
    op.create_index("ix_workflow_steps_workflow_id", "workflow_steps", ["workflow_id"])

    # 3. Enrollments (one active row per lead and workflow)
    op.create_table(
        "enrollments",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("lead_id", sa.Uuid(), nullable=False),
        sa.Column("workflow_id", sa.Uuid(), nullable=False),
        sa.Column("owner_id", sa.Uuid(), nullable=False),
        sa.Column(
            "status",
            sqlmodel.sql.sqltypes.AutoString(length=20),
            nullable=False,
            server_default="active",
        ),
        sa.Column("current_step_order", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("next_action_at", sa.DateTime(), nullable=True),
        sa.Column("enrolled_at", sa.DateTime(), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("metadata", JSONType, nullable=False),
        sa.ForeignKeyConstraint(["lead_id"], ["leads.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["workflow_id"], ["workflows.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_enrollments_lead_id", "enrollments", ["lead_id"])
    op.create_index("ix_enrollments_workflow_id", "enrollments", ["workflow_id"])
    op.create_index("ix_enrollments_owner_id", "enrollments", ["owner_id"])
    op.create_index("ix_enrollments_status_next_action", "enrollments", ["status", "next_action_at"])
    op.create_index(
        "uq_enrollments_active_lead_workflow",
        "enrollments",
        ["lead_id", "workflow_id"],
        unique=True,
        postgresql_where=sa.text("status = 'active'"),
        sqlite_where=sa.text("status = 'active'"),
    )

    # 4. Action log (append-only)
    op.create_table(
        "action_logs",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("owner_id", sa.Uuid(), nullable=False),
        sa.Column("lead_id", sa.Uuid(), nullable=False),
        sa.Column("enrollment_id", sa.Uuid(), nullable=True),
        sa.Column("workflow_id", sa.Uuid(), nullable=True),
        sa.Column("step_order", sa.Integer(), nullable=True),
        sa.Column("action_type", sqlmodel.sql.sqltypes.AutoString(length=50), nullable=False),
        sa.Column("decision", JSONType, nullable=False),
        sa.Column("success", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("error_message", sqlmodel.sql.sqltypes.AutoString(length=1000), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_action_logs_owner_id", "action_logs", ["owner_id"])
    op.create_index("ix_action_logs_lead_id", "action_logs", ["lead_id"])
    op.create_index(
        "ix_action_logs_enrollment_action",
        "action_logs",
        ["enrollment_id", "action_type", "created_at"],
    )
    op.create_index("ix_action_logs_lead_created", "action_logs", ["lead_id", "created_at"])

    # 5. Outbound messages and provider signals
    op.create_table(
        "message_drafts",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("owner_id", sa.Uuid(), nullable=False),
        sa.Column("lead_id", sa.Uuid(), nullable=False),
        sa.Column("enrollment_id", sa.Uuid(), nullable=True),
        sa.Column("subject", sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
        sa.Column("body", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("tone", sqlmodel.sql.sqltypes.AutoString(length=50), nullable=False),
        sa.Column("message_type", sqlmodel.sql.sqltypes.AutoString(length=50), nullable=False),
        sa.Column("status", sqlmodel.sql.sqltypes.AutoString(length=20), nullable=False),
        sa.Column(
            "provider_message_id", sqlmodel.sql.sqltypes.AutoString(length=255), nullable=True
        ),
        sa.Column("sent_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["lead_id"], ["leads.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_message_drafts_owner_id", "message_drafts", ["owner_id"])
    op.create_index("ix_message_drafts_lead_id", "message_drafts", ["lead_id"])
    op.create_index("ix_message_drafts_enrollment_id", "message_drafts", ["enrollment_id"])
    op.create_index(
        "ix_message_drafts_provider_message_id", "message_drafts", ["provider_message_id"]
    )

    op.create_table(
        "message_signals",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("draft_id", sa.Uuid(), nullable=True),
        sa.Column(
            "provider_message_id", sqlmodel.sql.sqltypes.AutoString(length=255), nullable=True
        ),
        sa.Column("lead_id", sa.Uuid(), nullable=False),
        sa.Column("owner_id", sa.Uuid(), nullable=False),
        sa.Column("event_type", sqlmodel.sql.sqltypes.AutoString(length=20), nullable=False),
        sa.Column("payload", JSONType, nullable=False),
        sa.Column("occurred_at", sa.DateTime(), nullable=False),
        sa.Column("processed_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["draft_id"], ["message_drafts.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["lead_id"], ["leads.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_message_signals_owner_id", "message_signals", ["owner_id"])
    op.create_index("ix_message_signals_pending", "message_signals", ["processed_at", "occurred_at"])
    op.create_index("ix_message_signals_lead_event", "message_signals", ["lead_id", "event_type"])


def downgrade() -> None:
    op.drop_table("message_signals")
    op.drop_table("message_drafts")
    op.drop_table("action_logs")
    op.drop_index("uq_enrollments_active_lead_workflow", table_name="enrollments")
    op.drop_table("enrollments")
    op.drop_table("workflow_steps")
    op.drop_table("workflows")
    op.drop_table("owner_plans")
    op.drop_table("leads")
