"""initial_grievance_schema

Creates the grievance desk schema:
  - tenants, staff_members                 — offices and their staff
  - categories, workflow_templates,
    workflow_step_templates                — category registry and checklists
  - tasks, task_steps                      — grievances and materialized steps
  - events, event_approvals                — scheduled events and approval chains
  - notifications                          — in-app notification records

Tables created conditionally (IF NOT EXISTS semantics) to support idempotent
execution against databases that already received these tables via db.create_all()
in a development environment.

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None


def _tenant_fk():
    return sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE")


def upgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing = set(inspector.get_table_names())

    # ── Tenancy ───────────────────────────────────────────────────────────
    if "tenants" not in existing:
        op.create_table(
            "tenants",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("slug", sa.String(length=100), nullable=False),
            sa.Column("constituency", sa.String(length=200), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("slug"),
        )

    if "staff_members" not in existing:
        op.create_table(
            "staff_members",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("tenant_id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("email", sa.String(length=200), nullable=True),
            sa.Column("role", sa.String(length=30), nullable=True,
                      comment="admin | supervisor | staff | agent"),
            sa.Column("points", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("task_type_history", sa.JSON(), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            _tenant_fk(),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_staff_members_tenant_id", "staff_members", ["tenant_id"])

    # ── Category registry & workflow templates ────────────────────────────
    if "categories" not in existing:
        op.create_table(
            "categories",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("tenant_id", sa.Integer(), nullable=False),
            sa.Column("value", sa.String(length=60), nullable=False,
                      comment="Slug: ^[a-z][a-z0-9_]*$"),
            sa.Column("label", sa.String(length=120), nullable=False),
            sa.Column("subcategories", sa.JSON(), nullable=True,
                      comment="Ordered sub-category labels"),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            _tenant_fk(),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("tenant_id", "value", name="uq_category_tenant_value"),
        )
        op.create_index("ix_categories_tenant_id", "categories", ["tenant_id"])

    if "workflow_templates" not in existing:
        op.create_table(
            "workflow_templates",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("tenant_id", sa.Integer(), nullable=False),
            sa.Column("category_id", sa.Integer(), nullable=False),
            sa.Column("subcategory", sa.String(length=120), nullable=False,
                      comment="Specific sub-category label or 'all'"),
            sa.Column("name", sa.String(length=200), nullable=True),
            sa.Column("sla_days", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("sla_hours", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("warning_threshold", sa.Integer(), nullable=False, server_default="80",
                      comment="Percent of SLA window elapsed before a task is flagged"),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            _tenant_fk(),
            sa.ForeignKeyConstraint(["category_id"], ["categories.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("category_id", "subcategory", name="uq_workflow_category_scope"),
            sa.CheckConstraint(
                "warning_threshold >= 0 AND warning_threshold <= 100",
                name="ck_workflow_warning_threshold",
            ),
            sa.CheckConstraint("sla_days >= 0 AND sla_hours >= 0", name="ck_workflow_sla_positive"),
        )
        op.create_index("ix_workflow_templates_tenant_id", "workflow_templates", ["tenant_id"])
        op.create_index("ix_workflow_templates_category_id", "workflow_templates", ["category_id"])

    if "workflow_step_templates" not in existing:
        op.create_table(
            "workflow_step_templates",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("workflow_id", sa.Integer(), nullable=False),
            sa.Column("sequence", sa.Integer(), nullable=False,
                      comment="1-based, unique within template"),
            sa.Column("title", sa.String(length=300), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("required", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("duration_minutes", sa.Integer(), nullable=True),
            sa.ForeignKeyConstraint(["workflow_id"], ["workflow_templates.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("workflow_id", "sequence", name="uq_step_template_sequence"),
            sa.CheckConstraint("sequence >= 1", name="ck_step_template_sequence"),
        )
        op.create_index("ix_workflow_step_templates_workflow_id", "workflow_step_templates", ["workflow_id"])

    # ── Grievances ────────────────────────────────────────────────────────
    if "tasks" not in existing:
        op.create_table(
            "tasks",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("tenant_id", sa.Integer(), nullable=False),
            sa.Column("title", sa.String(length=300), nullable=False),
            sa.Column("description", sa.Text(), nullable=True, comment="Summary of the grievance"),
            sa.Column("category", sa.String(length=60), nullable=False, comment="Category slug"),
            sa.Column("sub_category", sa.String(length=120), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="open"),
            sa.Column("priority", sa.String(length=10), nullable=False, server_default="medium"),
            sa.Column("progress", sa.Integer(), nullable=False, server_default="0",
                      comment="0-100, derived from steps"),
            sa.Column("source", sa.String(length=20), nullable=True),
            sa.Column("filed_by", sa.String(length=200), nullable=True, comment="Citizen / voter name"),
            sa.Column("assigned_to", sa.Integer(), nullable=True),
            sa.Column("deadline", sa.DateTime(timezone=True), nullable=True),
            sa.Column("workflow_id", sa.Integer(), nullable=True,
                      comment="Template attached at creation (informational)"),
            sa.Column("points_awarded", sa.Integer(), nullable=True),
            sa.Column("completed_by", sa.String(length=100), nullable=True),
            sa.Column("version", sa.Integer(), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
            _tenant_fk(),
            sa.ForeignKeyConstraint(["assigned_to"], ["staff_members.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["workflow_id"], ["workflow_templates.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
            sa.CheckConstraint("status IN ('open','in_progress','completed')", name="ck_task_status"),
            sa.CheckConstraint("priority IN ('low','medium','high')", name="ck_task_priority"),
            sa.CheckConstraint("progress >= 0 AND progress <= 100", name="ck_task_progress"),
        )
        op.create_index("ix_tasks_tenant_id", "tasks", ["tenant_id"])
        op.create_index("ix_tasks_category", "tasks", ["category"])
        op.create_index("ix_tasks_deleted_at", "tasks", ["deleted_at"])
        op.create_index("ix_tasks_tenant_status", "tasks", ["tenant_id", "status"])

    if "task_steps" not in existing:
        op.create_table(
            "task_steps",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("task_id", sa.Integer(), nullable=False),
            sa.Column("template_step_id", sa.Integer(), nullable=True),
            sa.Column("sequence", sa.Integer(), nullable=False),
            sa.Column("title", sa.String(length=300), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("required", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("duration_minutes", sa.Integer(), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
            sa.Column("completed_by", sa.String(length=100), nullable=True),
            sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.ForeignKeyConstraint(["task_id"], ["tasks.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["template_step_id"], ["workflow_step_templates.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("task_id", "sequence", name="uq_task_step_sequence"),
            sa.CheckConstraint("status IN ('pending','completed')", name="ck_task_step_status"),
        )
        op.create_index("ix_task_steps_task_id", "task_steps", ["task_id"])

    # ── Events & approvals ────────────────────────────────────────────────
    if "events" not in existing:
        op.create_table(
            "events",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("tenant_id", sa.Integer(), nullable=False),
            sa.Column("title", sa.String(length=300), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("type", sa.String(length=30), nullable=False),
            sa.Column("scheduled_date", sa.Date(), nullable=False),
            sa.Column("scheduled_time", sa.Time(), nullable=False),
            sa.Column("duration_minutes", sa.Integer(), nullable=True),
            sa.Column("location", sa.String(length=300), nullable=False),
            sa.Column("expected_attendees", sa.Integer(), nullable=True),
            sa.Column("priority", sa.String(length=10), nullable=False, server_default="medium"),
            sa.Column("requires_approval", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
            sa.Column("current_level", sa.Integer(), nullable=True,
                      comment="1-based pointer into the approval chain; NULL once decided"),
            sa.Column("created_by", sa.String(length=100), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            _tenant_fk(),
            sa.PrimaryKeyConstraint("id"),
            sa.CheckConstraint("status IN ('pending','approved','rejected')", name="ck_event_status"),
            sa.CheckConstraint("priority IN ('low','medium','high','urgent')", name="ck_event_priority"),
        )
        op.create_index("ix_events_tenant_id", "events", ["tenant_id"])

    if "event_approvals" not in existing:
        op.create_table(
            "event_approvals",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("event_id", sa.Integer(), nullable=False),
            sa.Column("level", sa.Integer(), nullable=False),
            sa.Column("approver_role", sa.String(length=50), nullable=False),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
            sa.Column("required", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("decided_by", sa.String(length=100), nullable=True),
            sa.Column("decided_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("comments", sa.Text(), nullable=True),
            sa.ForeignKeyConstraint(["event_id"], ["events.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("event_id", "level", name="uq_event_approval_level"),
            sa.CheckConstraint(
                "status IN ('pending','approved','rejected','skipped')",
                name="ck_event_approval_status",
            ),
        )
        op.create_index("ix_event_approvals_event_id", "event_approvals", ["event_id"])

    if "notifications" not in existing:
        op.create_table(
            "notifications",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("tenant_id", sa.Integer(), nullable=False),
            sa.Column("recipient", sa.String(length=150), nullable=False,
                      comment="User id or approver role"),
            sa.Column("kind", sa.String(length=40), nullable=True,
                      comment="event_approval | approval_required | system"),
            sa.Column("title", sa.String(length=300), nullable=False),
            sa.Column("message", sa.Text(), nullable=True),
            sa.Column("entity_type", sa.String(length=30), nullable=True),
            sa.Column("entity_id", sa.Integer(), nullable=True),
            sa.Column("is_read", sa.Boolean(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            _tenant_fk(),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_notifications_tenant_id", "notifications", ["tenant_id"])
        op.create_index("ix_notifications_recipient", "notifications", ["recipient"])


def downgrade():
    op.drop_table("notifications")
    op.drop_table("event_approvals")
    op.drop_table("events")
    op.drop_table("task_steps")
    op.drop_table("tasks")
    op.drop_table("workflow_step_templates")
    op.drop_table("workflow_templates")
    op.drop_table("categories")
    op.drop_table("staff_members")
    op.drop_table("tenants")
