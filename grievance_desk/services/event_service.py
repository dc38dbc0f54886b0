"""
Scheduled events — service layer.

Creating an event opens its approval chain in the same transaction.
Deciding a level commits the decision first; notifications to the creator
and to the next approver are best-effort follow-ups.
"""

import logging

from sqlalchemy import func, select

from grievance_desk.core.context import CallerContext
from grievance_desk.core.exceptions import ValidationError
from grievance_desk.models import db
from grievance_desk.models.event import EVENT_STATUSES, EVENT_TYPES, Event
from grievance_desk.schemas import CreateEventRequest, DecideApprovalRequest
from grievance_desk.services.approval_engine import ApprovalWorkflowEngine
from grievance_desk.services.helpers.scoped_queries import resolve_write_tenant, scope_statement
from grievance_desk.services.repository import SqlAlchemyWorkflowRepository, WorkflowRepository
from grievance_desk.services.results import ApprovalDecisionResult, EventCreationResult
from grievance_desk.services.side_effects import notify

logger = logging.getLogger(__name__)


def create_event(ctx: CallerContext, req: CreateEventRequest,
                 repo: WorkflowRepository | None = None) -> EventCreationResult:
    tenant_id = resolve_write_tenant(ctx, req.tenant_id)
    repo = repo or SqlAlchemyWorkflowRepository()

    event = Event(
        tenant_id=tenant_id,
        title=req.title,
        description=req.description,
        type=req.type,
        scheduled_date=req.scheduled_date,
        scheduled_time=req.scheduled_time,
        duration_minutes=req.duration_minutes,
        location=req.location,
        expected_attendees=req.expected_attendees,
        priority=req.priority,
        requires_approval=req.requires_approval,
        is_public=req.is_public,
        created_by=ctx.actor_id,
    )
    try:
        repo.add_event(event)
        records = ApprovalWorkflowEngine(repo).open_chain(event)
        repo.commit()
    except Exception:
        repo.rollback()
        raise
    logger.info("Event created id=%s type=%s status=%s", event.id, event.type, event.status,
                extra={"event_id": event.id})

    result = EventCreationResult(event=event)
    if records:
        failure = notify(
            repo,
            tenant_id=tenant_id,
            recipients=[records[0].approver_role],
            title=f"Approval required: {req.title}",
            message=f"Level 1 approval requested for {req.type.replace('_', ' ')} on {req.scheduled_date.isoformat()}",
            kind="approval_required",
            entity_type="event",
            entity_id=event.id,
        )
        if failure is not None:
            result.side_effect_failures.append(failure)
    return result


def list_events(ctx: CallerContext, *, status=None, event_type=None, limit=200, offset=0):
    """Return ``(events, total)`` ordered by scheduled date."""
    if status and status not in EVENT_STATUSES:
        raise ValidationError(f"status must be one of {sorted(EVENT_STATUSES)}")
    if event_type and event_type not in EVENT_TYPES:
        raise ValidationError(f"type must be one of {sorted(EVENT_TYPES)}")

    stmt = scope_statement(select(Event), Event, ctx)
    if status:
        stmt = stmt.where(Event.status == status)
    if event_type:
        stmt = stmt.where(Event.type == event_type)

    total = db.session.execute(
        select(func.count()).select_from(stmt.subquery())
    ).scalar() or 0
    items = db.session.execute(
        stmt.order_by(Event.scheduled_date, Event.scheduled_time, Event.id).limit(limit).offset(offset)
    ).scalars().all()
    return list(items), total


def get_event(ctx: CallerContext, event_id: int, repo: WorkflowRepository | None = None) -> Event:
    repo = repo or SqlAlchemyWorkflowRepository()
    return repo.get_event(ctx, event_id)


def decide_approval(ctx: CallerContext, event_id: int, level: int, req: DecideApprovalRequest,
                    repo: WorkflowRepository | None = None) -> ApprovalDecisionResult:
    """Approve or reject one level of an event's approval chain.

    Raises:
        NotFoundError (404), ValidationError (422), PermissionDeniedError (403),
        ApprovalChainExhaustedError (409).
    """
    repo = repo or SqlAlchemyWorkflowRepository()
    try:
        event = repo.get_event(ctx, event_id, for_update=True)
        record, next_record = ApprovalWorkflowEngine(repo).decide(
            event, level, req.decision, ctx, comments=req.comments,
        )
        repo.commit()
    except Exception:
        repo.rollback()
        raise

    result = ApprovalDecisionResult(event=event, record=record)
    label = event.title
    failure = notify(
        repo,
        tenant_id=event.tenant_id,
        recipients=[event.created_by],
        title=f"Event {record.status}: {label}" if event.status == "pending" else f"Event {event.status}: {label}",
        message=f"Level {level} ({record.approver_role}) {record.status} by {ctx.actor_id}",
        kind="event_approval",
        entity_type="event",
        entity_id=event.id,
    )
    if failure is not None:
        result.side_effect_failures.append(failure)

    if next_record is not None:
        failure = notify(
            repo,
            tenant_id=event.tenant_id,
            recipients=[next_record.approver_role],
            title=f"Approval required: {label}",
            message=f"Level {next_record.level} approval requested",
            kind="approval_required",
            entity_type="event",
            entity_id=event.id,
        )
        if failure is not None:
            result.side_effect_failures.append(failure)
    return result
