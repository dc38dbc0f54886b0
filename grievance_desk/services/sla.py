"""
Deadline and SLA evaluation for grievances.

Deadline precedence at creation:
    1. explicit ``deadline`` in the request
    2. ``created_at + sla_days/sla_hours`` of the attached workflow (when non-zero)
    3. priority default: high → 3 days, medium → 7, low → 14

SLA status:
    completed task   → met | breached      (completed_at vs deadline)
    open task        → overdue             (now past deadline)
                       approaching_sla     (warning threshold of the window
                                            elapsed, or < 2 days left)
                       within_sla
"""

from datetime import datetime, timedelta, timezone

from grievance_desk.models.task import DEFAULT_DEADLINE_DAYS
from grievance_desk.models.workflow import DEFAULT_WARNING_THRESHOLD

APPROACHING_WINDOW = timedelta(days=2)

SLA_STATUSES = {"met", "breached", "overdue", "approaching_sla", "within_sla"}


def _as_utc(dt):
    """SQLite hands back naive datetimes even for timezone-aware columns."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def compute_deadline(priority, created_at=None, template=None, explicit=None):
    if explicit is not None:
        return _as_utc(explicit)
    created_at = _as_utc(created_at) or datetime.now(timezone.utc)
    if template is not None and template.sla_total_hours > 0:
        return created_at + timedelta(hours=template.sla_total_hours)
    days = DEFAULT_DEADLINE_DAYS.get(priority, DEFAULT_DEADLINE_DAYS["medium"])
    return created_at + timedelta(days=days)


def sla_status(task, now=None, warning_threshold=None):
    """Classify *task* against its deadline. Returns None when it has none."""
    deadline = _as_utc(task.deadline)
    if deadline is None:
        return None

    if task.status == "completed":
        completed_at = _as_utc(task.completed_at) or _as_utc(task.updated_at)
        if completed_at is not None and completed_at > deadline:
            return "breached"
        return "met"

    now = _as_utc(now) or datetime.now(timezone.utc)
    if now > deadline:
        return "overdue"
    if deadline - now < APPROACHING_WINDOW:
        return "approaching_sla"

    threshold = DEFAULT_WARNING_THRESHOLD if warning_threshold is None else warning_threshold
    created_at = _as_utc(task.created_at)
    if created_at is not None and deadline > created_at:
        window = (deadline - created_at).total_seconds()
        elapsed = (now - created_at).total_seconds()
        if elapsed * 100 >= threshold * window:
            return "approaching_sla"
    return "within_sla"


def sla_summary(task, now=None):
    """SLA block embedded in task payloads."""
    threshold = task.workflow.warning_threshold if task.workflow is not None else None
    now = _as_utc(now) or datetime.now(timezone.utc)
    deadline = _as_utc(task.deadline)
    remaining_hours = None
    if deadline is not None and task.status != "completed":
        remaining_hours = round((deadline - now).total_seconds() / 3600, 1)
    return {
        "status": sla_status(task, now, threshold),
        "deadline": deadline.isoformat() if deadline else None,
        "remaining_hours": remaining_hours,
        "warning_threshold": threshold if threshold is not None else DEFAULT_WARNING_THRESHOLD,
    }
