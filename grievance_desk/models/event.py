"""
Grievance Desk — scheduled event and approval models.

Models:
    - Event:           scheduled office event (town hall, rally, press conference …)
    - ApprovalRecord:  one level of an event's approval chain

Architecture:
    Event ──1:N──▶ ApprovalRecord   (ordered by level, 1-based)

Lifecycle states:
    Event:           pending → approved | rejected
    ApprovalRecord:  pending → approved | rejected | skipped
"""

from datetime import datetime, timezone

from grievance_desk.models import db
from grievance_desk.models.base import TenantModel


# ── Constants ────────────────────────────────────────────────────────────────

EVENT_TYPES = {
    "town_hall", "press_conference", "community_event", "rally",
    "meeting", "debate", "interview", "fundraiser", "workshop",
    "emergency_meeting",
}

EVENT_PRIORITIES = {"low", "medium", "high", "urgent"}

EVENT_STATUSES = {"pending", "approved", "rejected"}

APPROVAL_STATUSES = {"pending", "approved", "rejected", "skipped"}

APPROVAL_DECISIONS = {"approve": "approved", "reject": "rejected"}


# ═════════════════════════════════════════════════════════════════════════════
# 1. Event
# ═════════════════════════════════════════════════════════════════════════════


class Event(TenantModel):
    """Scheduled event subject to a multi-level approval chain."""

    __tablename__ = "events"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(300), nullable=False)
    description = db.Column(db.Text, nullable=True)
    type = db.Column(db.String(30), nullable=False)
    scheduled_date = db.Column(db.Date, nullable=False)
    scheduled_time = db.Column(db.Time, nullable=False)
    duration_minutes = db.Column(db.Integer, default=60)
    location = db.Column(db.String(300), nullable=False)
    expected_attendees = db.Column(db.Integer, nullable=True)
    priority = db.Column(db.String(10), default="medium", nullable=False)
    requires_approval = db.Column(db.Boolean, default=True, nullable=False)
    is_public = db.Column(db.Boolean, default=True, nullable=False)

    status = db.Column(db.String(20), default="pending", nullable=False)
    current_level = db.Column(
        db.Integer, nullable=True,
        comment="1-based pointer into the approval chain; NULL once decided",
    )
    created_by = db.Column(db.String(100), default="")

    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.CheckConstraint(
            "status IN ('pending','approved','rejected')",
            name="ck_event_status",
        ),
        db.CheckConstraint(
            "priority IN ('low','medium','high','urgent')",
            name="ck_event_priority",
        ),
    )

    approvals = db.relationship(
        "ApprovalRecord",
        back_populates="event",
        order_by="ApprovalRecord.level",
        cascade="all, delete-orphan",
    )

    @property
    def current_stage(self) -> str:
        """Approver role at the current level, or the terminal marker."""
        if self.status == "rejected":
            return "rejected"
        if self.status == "approved":
            return "completed"
        for record in self.approvals:
            if record.level == self.current_level:
                return record.approver_role
        return "completed"

    def to_dict(self, include_approvals=True):
        result = {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "title": self.title,
            "description": self.description,
            "type": self.type,
            "date": self.scheduled_date.isoformat() if self.scheduled_date else None,
            "time": self.scheduled_time.strftime("%H:%M") if self.scheduled_time else None,
            "duration_minutes": self.duration_minutes,
            "location": self.location,
            "expected_attendees": self.expected_attendees,
            "priority": self.priority,
            "requires_approval": self.requires_approval,
            "is_public": self.is_public,
            "status": self.status,
            "current_level": self.current_level,
            "current_stage": self.current_stage,
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_approvals:
            result["approvals"] = [a.to_dict() for a in self.approvals]
        return result

    def __repr__(self):
        return f"<Event {self.id}: {self.type} {self.status}>"


# ═════════════════════════════════════════════════════════════════════════════
# 2. ApprovalRecord
# ═════════════════════════════════════════════════════════════════════════════


class ApprovalRecord(db.Model):
    """Decision slot for one approver role at one level of an event's chain."""

    __tablename__ = "event_approvals"

    id = db.Column(db.Integer, primary_key=True)
    event_id = db.Column(
        db.Integer, db.ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    level = db.Column(db.Integer, nullable=False)
    approver_role = db.Column(db.String(50), nullable=False)
    status = db.Column(db.String(20), default="pending", nullable=False)
    required = db.Column(db.Boolean, default=True, nullable=False)
    decided_by = db.Column(db.String(100), nullable=True)
    decided_at = db.Column(db.DateTime(timezone=True), nullable=True)
    comments = db.Column(db.Text, nullable=True)

    __table_args__ = (
        db.UniqueConstraint("event_id", "level", name="uq_event_approval_level"),
        db.CheckConstraint(
            "status IN ('pending','approved','rejected','skipped')",
            name="ck_event_approval_status",
        ),
    )

    event = db.relationship("Event", back_populates="approvals")

    @property
    def is_pending(self) -> bool:
        return self.status == "pending"

    def to_dict(self):
        return {
            "id": self.id,
            "event_id": self.event_id,
            "level": self.level,
            "approver_role": self.approver_role,
            "status": self.status,
            "required": self.required,
            "decided_by": self.decided_by,
            "decided_at": self.decided_at.isoformat() if self.decided_at else None,
            "comments": self.comments,
        }

    def __repr__(self):
        return f"<ApprovalRecord event={self.event_id} L{self.level} {self.approver_role}: {self.status}>"
