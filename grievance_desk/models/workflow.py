"""
Grievance Desk — workflow template models.

Models:
    - WorkflowTemplate:  ordered resolution checklist scoped to a category and
                         either one sub-category or the sentinel scope "all"
    - StepTemplate:      one checklist entry; 1-based sequence unique per template

Architecture:
    Category ──1:N──▶ WorkflowTemplate ──1:N──▶ StepTemplate

Templates are read-only inputs to the step attacher. Tasks receive a value
copy of the steps, so editing a template never alters in-flight tasks.
"""

from datetime import datetime, timezone

from grievance_desk.models import db
from grievance_desk.models.base import TenantModel


# ── Constants ────────────────────────────────────────────────────────────────

SCOPE_ALL = "all"

DEFAULT_WARNING_THRESHOLD = 80


# ═════════════════════════════════════════════════════════════════════════════
# 1. WorkflowTemplate
# ═════════════════════════════════════════════════════════════════════════════


class WorkflowTemplate(TenantModel):
    """
    Checklist template for a (category, sub-category) pair.
    At most one template per pair; the "all" scope is just another value of
    ``subcategory`` so the same constraint caps it at one per category.
    """

    __tablename__ = "workflow_templates"

    id = db.Column(db.Integer, primary_key=True)
    category_id = db.Column(
        db.Integer, db.ForeignKey("categories.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    subcategory = db.Column(
        db.String(120), nullable=False, default=SCOPE_ALL,
        comment="Specific sub-category label or 'all'",
    )
    name = db.Column(db.String(200), default="")

    # SLA
    sla_days = db.Column(db.Integer, default=0, nullable=False)
    sla_hours = db.Column(db.Integer, default=0, nullable=False)
    warning_threshold = db.Column(
        db.Integer, default=DEFAULT_WARNING_THRESHOLD, nullable=False,
        comment="Percent of SLA window elapsed before a task is flagged",
    )

    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.UniqueConstraint("category_id", "subcategory", name="uq_workflow_category_scope"),
        db.CheckConstraint(
            "warning_threshold >= 0 AND warning_threshold <= 100",
            name="ck_workflow_warning_threshold",
        ),
        db.CheckConstraint("sla_days >= 0 AND sla_hours >= 0", name="ck_workflow_sla_positive"),
    )

    category = db.relationship("Category", back_populates="workflows")
    steps = db.relationship(
        "StepTemplate",
        back_populates="workflow",
        order_by="StepTemplate.sequence",
        cascade="all, delete-orphan",
    )

    @property
    def is_catch_all(self) -> bool:
        return self.subcategory == SCOPE_ALL

    @property
    def sla_total_hours(self) -> int:
        return (self.sla_days or 0) * 24 + (self.sla_hours or 0)

    def to_dict(self, include_steps=True):
        result = {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "category_id": self.category_id,
            "category": self.category.value if self.category else None,
            "subcategory": self.subcategory,
            "name": self.name,
            "sla_days": self.sla_days,
            "sla_hours": self.sla_hours,
            "warning_threshold": self.warning_threshold,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
        if include_steps:
            result["steps"] = [s.to_dict() for s in self.steps]
        return result

    def __repr__(self):
        return f"<WorkflowTemplate {self.id}: category={self.category_id} scope={self.subcategory}>"


# ═════════════════════════════════════════════════════════════════════════════
# 2. StepTemplate
# ═════════════════════════════════════════════════════════════════════════════


class StepTemplate(db.Model):
    """One ordered entry of a workflow template."""

    __tablename__ = "workflow_step_templates"

    id = db.Column(db.Integer, primary_key=True)
    workflow_id = db.Column(
        db.Integer, db.ForeignKey("workflow_templates.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    sequence = db.Column(db.Integer, nullable=False, comment="1-based, unique within template")
    title = db.Column(db.String(300), nullable=False)
    description = db.Column(db.Text, default="")
    required = db.Column(db.Boolean, default=True, nullable=False)
    duration_minutes = db.Column(db.Integer, default=0)

    __table_args__ = (
        db.UniqueConstraint("workflow_id", "sequence", name="uq_step_template_sequence"),
        db.CheckConstraint("sequence >= 1", name="ck_step_template_sequence"),
    )

    workflow = db.relationship("WorkflowTemplate", back_populates="steps")

    def to_dict(self):
        return {
            "id": self.id,
            "workflow_id": self.workflow_id,
            "sequence": self.sequence,
            "title": self.title,
            "description": self.description,
            "required": self.required,
            "duration_minutes": self.duration_minutes,
        }

    def __repr__(self):
        return f"<StepTemplate {self.workflow_id}#{self.sequence} {self.title[:40]}>"
