"""
Grievance (task) — service layer.

Business logic for:
    - Task intake:        category lookup → workflow match → step attachment,
                          one transaction
    - Step completion:    ordered, at-most-once, progress recompute, commit;
                          optimistic-lock failures surface as
                          ConcurrentModificationError (retryable)
    - Manual completion:  tasks without workflow steps
    - Points award:       best-effort, after the primary commit
    - Soft delete and SLA payload

Blueprint → Service (here) → engine classes → WorkflowRepository → DB
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from grievance_desk.core.context import CallerContext
from grievance_desk.core.exceptions import (
    CategoryNotFoundError,
    ConcurrentModificationError,
    ValidationError,
)
from grievance_desk.models import db
from grievance_desk.models.task import TASK_PRIORITIES, TASK_STATUSES, Task, TaskStep
from grievance_desk.schemas import CompleteStepRequest, CreateTaskRequest
from grievance_desk.services.helpers.scoped_queries import resolve_write_tenant, scope_statement
from grievance_desk.services.repository import SqlAlchemyWorkflowRepository, WorkflowRepository
from grievance_desk.services.results import StepCompletionResult, TaskCompletionResult
from grievance_desk.services.side_effects import award_points
from grievance_desk.services.sla import compute_deadline, sla_summary
from grievance_desk.services.workflow_engine import (
    ProgressCalculator,
    StepAttacher,
    TaskStateMachine,
    WorkflowMatcher,
)

logger = logging.getLogger(__name__)


def task_payload(task: Task, include_steps: bool = False, now: datetime | None = None) -> dict:
    """Task JSON with the computed SLA block."""
    data = task.to_dict(include_steps=include_steps)
    data["sla"] = sla_summary(task, now)
    return data


# ── Intake ───────────────────────────────────────────────────────────────────


def create_task(ctx: CallerContext, req: CreateTaskRequest,
                repo: WorkflowRepository | None = None) -> Task:
    """File a grievance and attach the matching workflow, atomically.

    Raises:
        CategoryNotFoundError: unknown category slug.
        ValidationError:       unknown sub-category or assignee (422).
    """
    tenant_id = resolve_write_tenant(ctx, req.tenant_id)
    repo = repo or SqlAlchemyWorkflowRepository()

    category = repo.get_category(tenant_id, req.category)
    if category is None:
        raise CategoryNotFoundError(req.category, tenant_id)
    if req.sub_category and category.subcategories and not category.has_subcategory(req.sub_category):
        raise ValidationError(
            f"Category {category.value!r} has no sub-category {req.sub_category!r}",
            details={"sub_category": req.sub_category, "allowed": list(category.subcategories)},
            status=422,
        )
    if req.assigned_to is not None and repo.get_staff(tenant_id, req.assigned_to) is None:
        raise ValidationError(
            f"Staff member {req.assigned_to} not found in this office",
            details={"assigned_to": req.assigned_to},
            status=422,
        )

    template = WorkflowMatcher(repo).resolve(tenant_id, req.category, req.sub_category)
    attacher = StepAttacher(repo)
    steps = attacher.materialize(template) if template is not None else []

    # workflow_id goes in with the INSERT so a new task starts at version 1
    now = datetime.now(timezone.utc)
    task = Task(
        tenant_id=tenant_id,
        title=req.title,
        description=req.description,
        category=req.category,
        sub_category=req.sub_category,
        status="open",
        priority=req.priority,
        progress=0,
        source=req.source,
        filed_by=req.filed_by,
        assigned_to=req.assigned_to,
        workflow_id=template.id if steps else None,
        deadline=compute_deadline(req.priority, now, template, req.deadline),
        created_at=now,
        updated_at=now,
    )
    try:
        repo.add_task(task)
        if steps:
            attacher.attach(task, template, steps)
        repo.commit()
    except SQLAlchemyError:
        repo.rollback()
        logger.exception("Task creation failed for tenant=%s category=%s", tenant_id, req.category)
        raise

    logger.info(
        "Task created id=%s tenant=%s category=%s sub=%s workflow=%s",
        task.id, tenant_id, task.category, task.sub_category, task.workflow_id,
        extra={"task_id": task.id, "tenant_id": tenant_id},
    )
    return task


# ── Reads ────────────────────────────────────────────────────────────────────


def list_tasks(ctx: CallerContext, *, status=None, category=None, priority=None,
               assigned_to=None, limit=200, offset=0):
    """Return ``(tasks, total)`` for the caller's scope, newest first."""
    if status and status not in TASK_STATUSES:
        raise ValidationError(f"status must be one of {sorted(TASK_STATUSES)}")
    if priority and priority not in TASK_PRIORITIES:
        raise ValidationError(f"priority must be one of {sorted(TASK_PRIORITIES)}")

    stmt = scope_statement(select(Task), Task, ctx)
    if status:
        stmt = stmt.where(Task.status == status)
    if category:
        stmt = stmt.where(Task.category == category)
    if priority:
        stmt = stmt.where(Task.priority == priority)
    if assigned_to:
        stmt = stmt.where(Task.assigned_to == assigned_to)

    total = db.session.execute(
        select(func.count()).select_from(stmt.order_by(None).subquery())
    ).scalar() or 0
    items = db.session.execute(
        stmt.order_by(Task.created_at.desc(), Task.id.desc()).limit(limit).offset(offset)
    ).scalars().all()
    return list(items), total


def get_task(ctx: CallerContext, task_id: int, repo: WorkflowRepository | None = None) -> Task:
    repo = repo or SqlAlchemyWorkflowRepository()
    return repo.get_task(ctx, task_id)


def list_task_steps(ctx: CallerContext, task_id: int,
                    repo: WorkflowRepository | None = None) -> list[TaskStep]:
    repo = repo or SqlAlchemyWorkflowRepository()
    return repo.list_steps(repo.get_task(ctx, task_id))


# ── Writes ───────────────────────────────────────────────────────────────────


def _commit_task_change(repo: WorkflowRepository, task_id: int, change):
    """Run *change* under a row lock and commit; map lost updates to 409."""
    try:
        result = change()
        repo.commit()
    except StaleDataError as exc:
        repo.rollback()
        logger.warning("Concurrent modification of task %s; change rolled back", task_id,
                       extra={"task_id": task_id})
        raise ConcurrentModificationError("Task", task_id) from exc
    except Exception:
        repo.rollback()
        raise
    return result


def complete_step(ctx: CallerContext, task_id: int, step_id: int,
                  req: CompleteStepRequest | None = None,
                  repo: WorkflowRepository | None = None) -> StepCompletionResult:
    """Complete one workflow step of a task.

    Raises:
        TaskNotFoundError / StepNotFoundError (404),
        SequenceViolationError / AlreadyCompletedError (409),
        ConcurrentModificationError (409, retryable).
    """
    repo = repo or SqlAlchemyWorkflowRepository()
    req = req or CompleteStepRequest()

    def _change():
        task = repo.get_task(ctx, task_id, for_update=True)
        step, completed = TaskStateMachine(repo).complete_step(
            task, step_id, ctx.actor_id, notes=req.notes,
        )
        return task, step, completed

    task, step, task_completed = _commit_task_change(repo, task_id, _change)

    result = StepCompletionResult(step=step, task=task, task_completed=task_completed)
    if task_completed:
        points, failure = award_points(repo, task, ctx.actor_id)
        result.points_awarded = points
        if failure is not None:
            result.side_effect_failures.append(failure)
    return result


def complete_task(ctx: CallerContext, task_id: int,
                  repo: WorkflowRepository | None = None) -> TaskCompletionResult:
    """Manually complete a task that has no workflow steps."""
    repo = repo or SqlAlchemyWorkflowRepository()

    def _change():
        task = repo.get_task(ctx, task_id, for_update=True)
        return TaskStateMachine(repo).complete_manually(task, ctx.actor_id)

    task = _commit_task_change(repo, task_id, _change)

    result = TaskCompletionResult(task=task)
    points, failure = award_points(repo, task, ctx.actor_id)
    result.points_awarded = points
    if failure is not None:
        result.side_effect_failures.append(failure)
    return result


def recompute_progress(ctx: CallerContext, task_id: int,
                       repo: WorkflowRepository | None = None) -> Task:
    """Re-derive ``progress`` from the step set. Idempotent."""
    repo = repo or SqlAlchemyWorkflowRepository()

    def _change():
        task = repo.get_task(ctx, task_id, for_update=True)
        ProgressCalculator(repo).recompute(task)
        return task

    return _commit_task_change(repo, task_id, _change)


def delete_task(ctx: CallerContext, task_id: int,
                repo: WorkflowRepository | None = None) -> None:
    """Soft-delete a task; it and its steps disappear from every read path."""
    repo = repo or SqlAlchemyWorkflowRepository()

    def _change():
        task = repo.get_task(ctx, task_id, for_update=True)
        task.soft_delete()
        task.updated_at = task.deleted_at

    _commit_task_change(repo, task_id, _change)
    logger.info("Task soft-deleted id=%s by %s", task_id, ctx.actor_id, extra={"task_id": task_id})
