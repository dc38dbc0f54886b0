"""
Workflow Attachment & Progress Engine.

Components (leaves first):
    - WorkflowMatcher:     (category slug, sub-category?) → WorkflowTemplate | None
    - StepAttacher:        template → materialized TaskStep rows (value copy)
    - ProgressCalculator:  TaskStep set → 0-100 percentage cached on Task.progress
    - TaskStateMachine:    open → in_progress → completed, driven by step completion

Rules enforced here:
    - An exact sub-category template always wins over the "all" template.
    - A step at sequence n may only be completed once every *required* step
      with a lower sequence is completed. Optional steps never block.
    - A step is completed at most once; a completed task accepts no more
      step completions.
    - The task completes as soon as every required step is completed;
      progress is then forced to 100.

No class in this module commits. Callers own the transaction (see
``task_service``), which makes validate → write → recompute a single
all-or-nothing unit.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from grievance_desk.core.exceptions import (
    AlreadyCompletedError,
    CategoryNotFoundError,
    SequenceViolationError,
    StepNotFoundError,
    ValidationError,
)
from grievance_desk.models.task import Task, TaskStep, validate_task_transition
from grievance_desk.models.workflow import SCOPE_ALL, WorkflowTemplate
from grievance_desk.services.repository import WorkflowRepository

logger = logging.getLogger(__name__)

_EMPTY_SUBCATEGORY_VALUES = {"", "none"}


def normalize_subcategory(value: str | None) -> str | None:
    """Return a trimmed sub-category label, or None when it means "no sub-category"."""
    if value is None:
        return None
    value = str(value).strip()
    if value.lower() in _EMPTY_SUBCATEGORY_VALUES:
        return None
    return value


# ═════════════════════════════════════════════════════════════════════════════
# WorkflowMatcher
# ═════════════════════════════════════════════════════════════════════════════


class WorkflowMatcher:
    """Resolve the single applicable template for a category/sub-category."""

    def __init__(self, repo: WorkflowRepository):
        self.repo = repo

    def resolve(self, tenant_id: int, category_slug: str,
                sub_category: str | None = None) -> WorkflowTemplate | None:
        """Return the matching template, or None when the category has none.

        Raises:
            CategoryNotFoundError: the slug is unknown in this office.
        """
        category = self.repo.get_category(tenant_id, category_slug)
        if category is None:
            raise CategoryNotFoundError(category_slug, tenant_id)

        sub_category = normalize_subcategory(sub_category)
        if sub_category:
            template = self.repo.find_template(category.id, sub_category)
            if template is not None:
                logger.debug("Workflow match: category=%s sub=%s → template %s",
                             category_slug, sub_category, template.id)
                return template

        template = self.repo.find_template(category.id, SCOPE_ALL)
        if template is None:
            logger.debug("No workflow for category=%s sub=%s", category_slug, sub_category)
        return template


# ═════════════════════════════════════════════════════════════════════════════
# StepAttacher
# ═════════════════════════════════════════════════════════════════════════════


class StepAttacher:
    """Copy a template's steps onto a task at creation time."""

    def __init__(self, repo: WorkflowRepository):
        self.repo = repo

    def materialize(self, template: WorkflowTemplate) -> list[TaskStep]:
        """Unsaved value copies of *template*'s steps, in sequence order."""
        return [
            TaskStep(
                template_step_id=tpl.id,
                sequence=tpl.sequence,
                title=tpl.title,
                description=tpl.description or "",
                required=bool(tpl.required),
                duration_minutes=tpl.duration_minutes or 0,
                status="pending",
            )
            for tpl in self.repo.template_steps(template)
        ]

    def attach(self, task: Task, template: WorkflowTemplate,
               steps: list[TaskStep] | None = None) -> list[TaskStep]:
        if steps is None:
            steps = self.materialize(template)
        if not steps:
            return []

        if task.workflow_id != template.id:
            task.workflow_id = template.id
        self.repo.add_steps(task, steps)
        logger.info("Attached %d workflow steps from template %s to task %s",
                    len(steps), template.id, task.id)
        return steps


# ═════════════════════════════════════════════════════════════════════════════
# ProgressCalculator
# ═════════════════════════════════════════════════════════════════════════════


class ProgressCalculator:
    """Derive the completion percentage from the step set (the source of truth)."""

    def __init__(self, repo: WorkflowRepository):
        self.repo = repo

    @staticmethod
    def percentage(completed: int, total: int) -> int:
        """Half-up rounded ``100 * completed / total`` in integer arithmetic."""
        if total <= 0:
            return 0
        return (200 * completed + total) // (2 * total)

    def compute(self, task: Task, steps: list[TaskStep]) -> int:
        if task.is_completed:
            return 100
        if not steps:
            # manual tasks: never auto-derived
            return task.progress or 0
        completed = sum(1 for s in steps if s.is_completed)
        return self.percentage(completed, len(steps))

    def recompute(self, task: Task) -> int:
        """Recompute and store ``task.progress``. Idempotent."""
        value = self.compute(task, self.repo.list_steps(task))
        if task.progress != value:
            task.progress = value
        return value


# ═════════════════════════════════════════════════════════════════════════════
# TaskStateMachine
# ═════════════════════════════════════════════════════════════════════════════


class TaskStateMachine:
    """Ordered, at-most-once step completion and the derived task status."""

    def __init__(self, repo: WorkflowRepository, progress: ProgressCalculator | None = None):
        self.repo = repo
        self.progress = progress or ProgressCalculator(repo)

    @staticmethod
    def first_blocking_step(steps: list[TaskStep], step: TaskStep) -> TaskStep | None:
        """First required, still-pending step with a lower sequence than *step*."""
        for other in steps:
            if other.sequence >= step.sequence:
                break
            if other.required and not other.is_completed:
                return other
        return None

    def check_step_completable(self, task: Task, steps: list[TaskStep], step: TaskStep) -> None:
        if task.is_completed:
            raise AlreadyCompletedError(
                f"Task {task.id} is already completed",
                details={"task_id": task.id, "step_id": step.id},
            )
        if step.is_completed:
            raise AlreadyCompletedError(
                f"Step {step.sequence} \"{step.title}\" is already completed",
                details={
                    "task_id": task.id,
                    "step_id": step.id,
                    "sequence": step.sequence,
                    "completed_by": step.completed_by,
                    "completed_at": step.completed_at.isoformat() if step.completed_at else None,
                },
            )
        blocking = self.first_blocking_step(steps, step)
        if blocking is not None:
            raise SequenceViolationError(step, blocking)

    def complete_step(self, task: Task, step_id: int, actor_id: str,
                      notes: str | None = None, now: datetime | None = None) -> tuple[TaskStep, bool]:
        """Complete one step and advance the task.

        Returns:
            (step, task_completed) — *task_completed* is True only when this
            call moved the task into ``completed``.

        Raises:
            StepNotFoundError, AlreadyCompletedError, SequenceViolationError.
            Nothing is mutated when an error is raised.
        """
        steps = sorted(self.repo.list_steps(task), key=lambda s: s.sequence)
        step = next((s for s in steps if s.id == step_id), None)
        if step is None:
            raise StepNotFoundError(step_id, task.id)

        self.check_step_completable(task, steps, step)

        now = now or datetime.now(timezone.utc)
        step.status = "completed"
        step.completed_by = actor_id
        step.completed_at = now
        step.notes = notes or None

        task_completed = all(s.is_completed for s in steps if s.required)
        if task_completed:
            self._transition(task, "completed")
            task.completed_at = now
            task.completed_by = actor_id
        elif task.status == "open":
            self._transition(task, "in_progress")
        task.updated_at = now

        self.progress.recompute(task)
        logger.info(
            "Task %s step %s completed by %s → status=%s progress=%s",
            task.id, step.sequence, actor_id, task.status, task.progress,
        )
        return step, task_completed

    def complete_manually(self, task: Task, actor_id: str, now: datetime | None = None) -> Task:
        """Mark a task without workflow steps as completed."""
        if task.is_completed:
            raise AlreadyCompletedError(
                f"Task {task.id} is already completed",
                details={"task_id": task.id},
            )
        steps = self.repo.list_steps(task)
        if steps:
            pending = [s.id for s in steps if s.required and not s.is_completed]
            raise ValidationError(
                "Task follows a workflow; complete its steps instead",
                details={"task_id": task.id, "pending_required_step_ids": pending},
                status=422,
            )

        now = now or datetime.now(timezone.utc)
        self._transition(task, "completed")
        task.completed_at = now
        task.completed_by = actor_id
        task.progress = 100
        task.updated_at = now
        logger.info("Task %s completed manually by %s", task.id, actor_id)
        return task

    @staticmethod
    def _transition(task: Task, target: str) -> None:
        if not validate_task_transition(task.status, target):
            raise AlreadyCompletedError(
                f"Invalid transition: {task.status} → {target}",
                details={"task_id": task.id, "from": task.status, "to": target},
            )
        task.status = target
