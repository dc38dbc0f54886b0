"""
Event approval chains.

Each event type maps to an ordered chain of approver roles. Urgent events
are escalated to the chief of staff when the chain does not already end
there. Levels are decided strictly in order; a rejection at any level
short-circuits the chain.

    pending ──approve (last required level)──▶ approved
       │
       └──reject (any level)─────────────────▶ rejected   (remaining levels → skipped)

Like ``workflow_engine``, nothing here commits; ``event_service`` owns the
transaction and the follow-up notifications.
"""

import logging
from datetime import datetime, timezone

from grievance_desk.core.context import CallerContext
from grievance_desk.core.exceptions import (
    ApprovalChainExhaustedError,
    PermissionDeniedError,
    ValidationError,
)
from grievance_desk.models.event import (
    APPROVAL_DECISIONS,
    EVENT_TYPES,
    ApprovalRecord,
    Event,
)
from grievance_desk.services.repository import WorkflowRepository

logger = logging.getLogger(__name__)


# ── Chain definitions ────────────────────────────────────────────────────────

ESCALATION_ROLE = "chief_of_staff"

DEFAULT_CHAIN = ("event_manager",)

APPROVAL_CHAINS = {
    "emergency_meeting": ("chief_of_staff",),
    "press_conference":  ("event_manager", "campaign_director", "chief_of_staff"),
    "rally":             ("event_manager", "campaign_director", "chief_of_staff"),
    "town_hall":         ("event_manager", "campaign_director"),
    "meeting":           ("event_manager",),
    "community_event":   ("event_manager",),
}

# Staff role → approver role it may decide for.
ROLE_TO_APPROVER = {
    "admin": "event_manager",
    "supervisor": "campaign_director",
    "super_admin": "chief_of_staff",
}


def resolve_approval_chain(event_type: str, priority: str = "medium") -> list[str]:
    """Ordered approver roles for an event. Returns a fresh list every call."""
    if event_type not in EVENT_TYPES:
        raise ValidationError(
            f"Unknown event type: {event_type}",
            details={"type": event_type, "allowed": sorted(EVENT_TYPES)},
        )
    chain = list(APPROVAL_CHAINS.get(event_type, DEFAULT_CHAIN))
    if priority == "urgent" and (not chain or chain[-1] != ESCALATION_ROLE):
        chain.append(ESCALATION_ROLE)
    return chain


def approver_role_for(role: str) -> str:
    return ROLE_TO_APPROVER.get(role, role)


class ApprovalWorkflowEngine:
    """Create approval chains for new events and apply level decisions."""

    def __init__(self, repo: WorkflowRepository):
        self.repo = repo

    def open_chain(self, event: Event) -> list[ApprovalRecord]:
        """Create one pending record per chain position, or auto-approve."""
        if not event.requires_approval:
            event.status = "approved"
            event.current_level = None
            logger.info("Event %s needs no approval; auto-approved", event.id)
            return []

        chain = resolve_approval_chain(event.type, event.priority)
        records = [
            ApprovalRecord(level=level, approver_role=role, status="pending", required=True)
            for level, role in enumerate(chain, start=1)
        ]
        event.status = "pending"
        event.current_level = 1
        self.repo.add_approvals(event, records)
        logger.info("Event %s approval chain opened: %s", event.id, " → ".join(chain))
        return records

    def decide(self, event: Event, level: int, decision: str, ctx: CallerContext,
               comments: str | None = None, now: datetime | None = None):
        """Approve or reject *level* of *event*'s chain.

        Returns:
            (record, next_record) — *next_record* is the newly current level
            after an approval that did not finish the chain, else None.
        """
        if decision not in APPROVAL_DECISIONS:
            raise ValidationError(
                "decision must be 'approve' or 'reject'",
                details={"decision": decision},
            )
        if event.status != "pending":
            raise ApprovalChainExhaustedError(
                f"Event {event.id} is already {event.status}",
                details={"event_id": event.id, "status": event.status, "level": level},
            )

        records = self.repo.list_approvals(event)
        record = next((r for r in records if r.level == level), None)
        if record is None or not record.is_pending:
            raise ApprovalChainExhaustedError(
                f"No pending approval at level {level} for event {event.id}",
                details={
                    "event_id": event.id,
                    "level": level,
                    "status": record.status if record is not None else None,
                },
            )
        if level != event.current_level:
            raise ValidationError(
                f"Level {event.current_level} must be decided before level {level}",
                details={"event_id": event.id, "level": level, "current_level": event.current_level},
                status=422,
            )

        if not ctx.is_super_admin and approver_role_for(ctx.role) != record.approver_role:
            raise PermissionDeniedError(
                f"Role {ctx.role!r} cannot decide the {record.approver_role} stage",
                details={"required_role": record.approver_role, "role": ctx.role, "level": level},
            )

        now = now or datetime.now(timezone.utc)
        record.status = APPROVAL_DECISIONS[decision]
        record.decided_by = ctx.actor_id
        record.decided_at = now
        record.comments = comments or None
        event.updated_at = now

        next_record = None
        if decision == "reject":
            for other in records:
                if other is not record and other.is_pending:
                    other.status = "skipped"
                    other.decided_at = now
            event.status = "rejected"
            event.current_level = None
        else:
            required_done = all(r.status == "approved" for r in records if r.required)
            if required_done:
                event.status = "approved"
                event.current_level = None
            else:
                next_record = next(
                    (r for r in records if r.level > level and r.is_pending), None,
                )
                event.current_level = next_record.level if next_record else None

        logger.info(
            "Event %s level %s %s by %s → status=%s current_level=%s",
            event.id, level, record.status, ctx.actor_id, event.status, event.current_level,
        )
        return record, next_record
