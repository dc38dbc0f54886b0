"""
Grievance Desk — tenancy and staff models.

Models:
    - Tenant:       a political office; the unit of data isolation
    - StaffMember:  office staff who work grievances and earn completion points

Architecture:
    Tenant ──1:N──▶ StaffMember
    Tenant ──1:N──▶ Category / WorkflowTemplate / Task / Event  (via TenantModel)
"""

from datetime import datetime, timezone

from grievance_desk.models import db
from grievance_desk.models.base import TenantModel


# ── Constants ────────────────────────────────────────────────────────────────

STAFF_ROLES = {"admin", "supervisor", "staff", "agent"}


# ═════════════════════════════════════════════════════════════════════════════
# 1. Tenant
# ═════════════════════════════════════════════════════════════════════════════


class Tenant(db.Model):
    """Political office. Every scoped row carries its id."""

    __tablename__ = "tenants"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    slug = db.Column(db.String(100), unique=True, nullable=False)
    constituency = db.Column(db.String(200), default="")
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "constituency": self.constituency,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Tenant {self.id}: {self.slug}>"


# ═════════════════════════════════════════════════════════════════════════════
# 2. StaffMember
# ═════════════════════════════════════════════════════════════════════════════


class StaffMember(TenantModel):
    """
    Office staff member.
    ``points`` accumulates the priority-weighted award for completed tasks;
    ``task_type_history`` counts completions per category slug.
    """

    __tablename__ = "staff_members"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    email = db.Column(db.String(200), default="")
    role = db.Column(db.String(30), default="staff", comment="admin | supervisor | staff | agent")
    points = db.Column(db.Integer, default=0, nullable=False)
    task_type_history = db.Column(db.JSON, default=dict)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    def record_completion(self, category: str, points: int) -> None:
        """Add *points* and bump the per-category completion counter."""
        self.points = (self.points or 0) + points
        history = dict(self.task_type_history or {})
        history[category] = history.get(category, 0) + 1
        # reassign so the JSON column is flagged dirty
        self.task_type_history = history

    def to_dict(self):
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "points": self.points or 0,
            "task_type_history": self.task_type_history or {},
            "is_active": self.is_active,
        }

    def __repr__(self):
        return f"<StaffMember {self.id}: {self.name} ({self.points} pts)>"
