"""
Best-effort follow-up actions run after a primary commit.

Each helper commits its own unit of work. A failure is rolled back, logged
at WARNING and returned as a ``SideEffectFailure``; it never undoes the
primary state change that triggered it.
"""

import logging

from grievance_desk.models.notification import Notification
from grievance_desk.models.task import PRIORITY_POINTS, Task
from grievance_desk.services.repository import WorkflowRepository
from grievance_desk.services.results import SideEffectFailure

logger = logging.getLogger(__name__)


def points_for(priority: str) -> int:
    return PRIORITY_POINTS.get(priority, PRIORITY_POINTS["medium"])


def award_points(repo: WorkflowRepository, task: Task, actor_id: str):
    """Credit the completing staff member with the task's priority points.

    Returns:
        (points_awarded | None, SideEffectFailure | None)
    """
    points = points_for(task.priority)
    task_id = task.id
    try:
        try:
            staff_id = int(actor_id)
        except (TypeError, ValueError):
            staff_id = None
        staff = repo.get_staff(task.tenant_id, staff_id) if staff_id is not None else None
        if staff is None:
            raise LookupError(f"actor {actor_id!r} is not a staff member of tenant {task.tenant_id}")

        staff.record_completion(task.category, points)
        task.points_awarded = points
        repo.commit()
    except Exception as exc:
        repo.rollback()
        logger.warning(
            "Point award failed for task=%s actor=%s: %s",
            task_id, actor_id, exc,
            exc_info=not isinstance(exc, LookupError),
        )
        return None, SideEffectFailure(
            effect="award_points",
            message=str(exc),
            entity_type="task",
            entity_id=task_id,
        )

    logger.info("Awarded %d points to staff %s for task %s", points, actor_id, task_id)
    return points, None


def notify(repo: WorkflowRepository, *, tenant_id: int, recipients, title: str,
           message: str = "", kind: str = "system", entity_type: str = "",
           entity_id: int | None = None):
    """Write one notification record per recipient. Returns a failure or None."""
    targets = [r for r in dict.fromkeys(recipients) if r]
    if not targets:
        return None
    try:
        for recipient in targets:
            repo.add_notification(Notification(
                tenant_id=tenant_id,
                recipient=recipient,
                kind=kind,
                title=title,
                message=message,
                entity_type=entity_type,
                entity_id=entity_id,
            ))
        repo.commit()
    except Exception as exc:
        repo.rollback()
        logger.warning(
            "Notification '%s' to %s failed: %s", title, targets, exc, exc_info=True,
        )
        return SideEffectFailure(
            effect="notify",
            message=str(exc),
            entity_type=entity_type,
            entity_id=entity_id,
        )
    logger.debug("Notification '%s' queued for %s", title, targets)
    return None
