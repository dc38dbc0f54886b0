"""
Grievance Desk — task (grievance) models.

Models:
    - Task:      citizen grievance tracked to resolution
    - TaskStep:  per-task mutable copy of a workflow template step

Architecture:
    Task ──1:N──▶ TaskStep   (cascade; steps are only reachable through their task)
    Task ──N:1──▶ WorkflowTemplate  (informational; never a live reference)

Lifecycle states:
    Task:      open → in_progress → completed   (monotonic)
    TaskStep:  pending → completed

``Task.progress`` is a denormalized cache recomputed from the step set.
``Task.version`` is the optimistic-concurrency token: a flush against a
stale version raises ``StaleDataError``.
"""

from datetime import datetime, timezone

from grievance_desk.models import db
from grievance_desk.models.base import TenantModel
from grievance_desk.models.soft_delete import SoftDeleteMixin


# ── Constants ────────────────────────────────────────────────────────────────

TASK_STATUSES = {"open", "in_progress", "completed"}

TASK_TRANSITIONS = {
    "open":        ["in_progress", "completed"],
    "in_progress": ["completed"],
    "completed":   [],
}

TASK_PRIORITIES = {"low", "medium", "high"}

STEP_STATUSES = {"pending", "completed"}

TASK_SOURCES = {"qr_code", "voice", "whatsapp", "walk_in", "email", "manual_entry"}

PRIORITY_POINTS = {"low": 5, "medium": 10, "high": 20}

DEFAULT_DEADLINE_DAYS = {"high": 3, "medium": 7, "low": 14}


def validate_task_transition(current: str, target: str) -> bool:
    return target in TASK_TRANSITIONS.get(current, [])


# ═════════════════════════════════════════════════════════════════════════════
# 1. Task
# ═════════════════════════════════════════════════════════════════════════════


class Task(SoftDeleteMixin, TenantModel):
    """Citizen grievance."""

    __tablename__ = "tasks"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(300), nullable=False)
    description = db.Column(db.Text, default="", comment="Summary of the grievance")
    category = db.Column(db.String(60), nullable=False, index=True, comment="Category slug")
    sub_category = db.Column(db.String(120), nullable=True)
    status = db.Column(db.String(20), default="open", nullable=False)
    priority = db.Column(db.String(10), default="medium", nullable=False)
    progress = db.Column(db.Integer, default=0, nullable=False, comment="0-100, derived from steps")

    # Intake
    source = db.Column(db.String(20), default="manual_entry")
    filed_by = db.Column(db.String(200), default="", comment="Citizen / voter name")
    assigned_to = db.Column(
        db.Integer, db.ForeignKey("staff_members.id", ondelete="SET NULL"),
        nullable=True,
    )
    deadline = db.Column(db.DateTime(timezone=True), nullable=True)

    # Workflow linkage
    workflow_id = db.Column(
        db.Integer, db.ForeignKey("workflow_templates.id", ondelete="SET NULL"),
        nullable=True, comment="Template attached at creation (informational)",
    )
    points_awarded = db.Column(db.Integer, nullable=True)
    completed_by = db.Column(db.String(100), nullable=True)

    version = db.Column(db.Integer, nullable=False)

    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        db.CheckConstraint(
            "status IN ('open','in_progress','completed')",
            name="ck_task_status",
        ),
        db.CheckConstraint(
            "priority IN ('low','medium','high')",
            name="ck_task_priority",
        ),
        db.CheckConstraint("progress >= 0 AND progress <= 100", name="ck_task_progress"),
        db.Index("ix_tasks_tenant_status", "tenant_id", "status"),
    )

    steps = db.relationship(
        "TaskStep",
        back_populates="task",
        order_by="TaskStep.sequence",
        cascade="all, delete-orphan",
    )
    workflow = db.relationship("WorkflowTemplate")

    @property
    def is_completed(self) -> bool:
        return self.status == "completed"

    def to_dict(self, include_steps=False):
        result = {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "sub_category": self.sub_category,
            "status": self.status,
            "priority": self.priority,
            "progress": self.progress,
            "source": self.source,
            "filed_by": self.filed_by,
            "assigned_to": self.assigned_to,
            "deadline": self.deadline.isoformat() if self.deadline else None,
            "workflow_id": self.workflow_id,
            "points_awarded": self.points_awarded,
            "completed_by": self.completed_by,
            "version": self.version,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }
        if include_steps:
            result["steps"] = [s.to_dict() for s in self.steps]
        return result

    def __repr__(self):
        return f"<Task {self.id}: {self.status} {self.progress}% {self.title[:40]}>"


# ═════════════════════════════════════════════════════════════════════════════
# 2. TaskStep
# ═════════════════════════════════════════════════════════════════════════════


class TaskStep(db.Model):
    """
    Materialized workflow step. Sequence, title, description and the required
    flag are copied once at attachment and never rewritten.
    """

    __tablename__ = "task_steps"

    id = db.Column(db.Integer, primary_key=True)
    task_id = db.Column(
        db.Integer, db.ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    template_step_id = db.Column(
        db.Integer, db.ForeignKey("workflow_step_templates.id", ondelete="SET NULL"),
        nullable=True,
    )
    sequence = db.Column(db.Integer, nullable=False)
    title = db.Column(db.String(300), nullable=False)
    description = db.Column(db.Text, default="")
    required = db.Column(db.Boolean, default=True, nullable=False)
    duration_minutes = db.Column(db.Integer, default=0)

    status = db.Column(db.String(20), default="pending", nullable=False)
    completed_by = db.Column(db.String(100), nullable=True)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    __table_args__ = (
        db.UniqueConstraint("task_id", "sequence", name="uq_task_step_sequence"),
        db.CheckConstraint("status IN ('pending','completed')", name="ck_task_step_status"),
    )

    task = db.relationship("Task", back_populates="steps")

    @property
    def is_completed(self) -> bool:
        return self.status == "completed"

    def to_dict(self):
        return {
            "id": self.id,
            "task_id": self.task_id,
            "sequence": self.sequence,
            "title": self.title,
            "description": self.description,
            "required": self.required,
            "duration_minutes": self.duration_minutes,
            "status": self.status,
            "completed_by": self.completed_by,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "notes": self.notes,
        }

    def __repr__(self):
        return f"<TaskStep {self.task_id}#{self.sequence} {self.status}>"
