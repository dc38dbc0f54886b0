"""
Request payload schemas.

Every write endpoint parses its JSON body into one of these frozen
dataclasses before calling the service layer. ``from_payload`` collects all
field errors and raises a single ``ValidationError`` (HTTP 400); nothing has
been written at that point.

Usage:
    req = CreateTaskRequest.from_payload(request.get_json(silent=True))
    result = task_service.create_task(ctx, req)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time

from grievance_desk.core.exceptions import ValidationError
from grievance_desk.models.category import is_valid_slug
from grievance_desk.models.event import APPROVAL_DECISIONS, EVENT_PRIORITIES, EVENT_TYPES
from grievance_desk.models.task import TASK_PRIORITIES, TASK_SOURCES
from grievance_desk.models.tenant import STAFF_ROLES
from grievance_desk.models.workflow import DEFAULT_WARNING_THRESHOLD, SCOPE_ALL
from grievance_desk.services.workflow_engine import normalize_subcategory
from grievance_desk.utils.helpers import parse_bool, parse_date, parse_datetime, parse_time

MAX_TITLE = 300
MAX_NOTES = 2000


# ── Field readers ────────────────────────────────────────────────────────────


class _Reader:
    """Pulls typed fields out of a payload and records every problem."""

    def __init__(self, payload):
        if payload is None:
            payload = {}
        if not isinstance(payload, dict):
            raise ValidationError("Request body must be a JSON object")
        self.data = payload
        self.errors: dict[str, str] = {}

    def text(self, key, *, required=False, max_len=None, default=""):
        raw = self.data.get(key)
        if raw is None:
            if required:
                self.errors[key] = f"{key} is required"
            return default
        if not isinstance(raw, str):
            self.errors[key] = f"{key} must be a string"
            return default
        value = raw.strip()
        if required and not value:
            self.errors[key] = f"{key} is required"
        elif max_len and len(value) > max_len:
            self.errors[key] = f"{key} must be ≤ {max_len} characters"
        return value

    def integer(self, key, *, default=None, minimum=None, maximum=None):
        raw = self.data.get(key)
        if raw is None or raw == "":
            return default
        if isinstance(raw, bool):
            self.errors[key] = f"{key} must be an integer"
            return default
        try:
            value = int(raw)
        except (TypeError, ValueError):
            self.errors[key] = f"{key} must be an integer"
            return default
        if minimum is not None and value < minimum:
            self.errors[key] = f"{key} must be ≥ {minimum}"
        elif maximum is not None and value > maximum:
            self.errors[key] = f"{key} must be ≤ {maximum}"
        return value

    def choice(self, key, allowed, *, default=None, required=False):
        raw = self.data.get(key)
        if raw is None or raw == "":
            if required:
                self.errors[key] = f"{key} is required"
            return default
        if not isinstance(raw, str) or raw not in allowed:
            self.errors[key] = f"{key} must be one of {sorted(allowed)}"
            return default
        return raw

    def flag(self, key, default):
        return parse_bool(self.data.get(key), default)

    def raise_if_invalid(self, message="Invalid request"):
        if self.errors:
            raise ValidationError(message, details={"fields": self.errors})


# ═════════════════════════════════════════════════════════════════════════════
# Categories
# ═════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class CreateCategoryRequest:
    value: str
    label: str
    subcategories: tuple[str, ...] = ()
    tenant_id: int | None = None

    @classmethod
    def from_payload(cls, payload):
        r = _Reader(payload)
        value = r.text("value", required=True, max_len=60)
        if value and "value" not in r.errors and not is_valid_slug(value):
            r.errors["value"] = "value must match ^[a-z][a-z0-9_]*$"
        label = r.text("label", required=True, max_len=120)
        subcategories = _subcategory_list(r)
        tenant_id = r.integer("tenant_id")
        r.raise_if_invalid("Invalid category")
        return cls(value=value, label=label, subcategories=subcategories, tenant_id=tenant_id)


@dataclass(frozen=True)
class UpdateCategoryRequest:
    """Partial update; ``None`` means "leave unchanged". The slug is immutable."""

    label: str | None = None
    subcategories: tuple[str, ...] | None = None

    @classmethod
    def from_payload(cls, payload):
        r = _Reader(payload)
        if "value" in r.data:
            r.errors["value"] = "value cannot be changed"
        label = r.text("label", required=True, max_len=120) if "label" in r.data else None
        subcategories = _subcategory_list(r) if "subcategories" in r.data else None
        r.raise_if_invalid("Invalid category update")
        return cls(label=label, subcategories=subcategories)


def _subcategory_list(r: _Reader) -> tuple[str, ...]:
    raw = r.data.get("subcategories") or []
    if not isinstance(raw, list) or not all(isinstance(s, str) for s in raw):
        r.errors["subcategories"] = "subcategories must be a list of strings"
        return ()
    labels = [s.strip() for s in raw if s.strip()]
    if SCOPE_ALL in labels or any(s.lower() == "none" for s in labels):
        r.errors["subcategories"] = f"'{SCOPE_ALL}' and 'none' are reserved"
    if len(set(labels)) != len(labels):
        r.errors["subcategories"] = "subcategories must be unique"
    return tuple(labels)


# ═════════════════════════════════════════════════════════════════════════════
# Workflow templates
# ═════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class StepSpec:
    sequence: int
    title: str
    description: str = ""
    required: bool = True
    duration_minutes: int = 0


@dataclass(frozen=True)
class CreateWorkflowTemplateRequest:
    category: str
    subcategory: str
    name: str
    steps: tuple[StepSpec, ...]
    sla_days: int = 0
    sla_hours: int = 0
    warning_threshold: int = DEFAULT_WARNING_THRESHOLD
    tenant_id: int | None = None

    @classmethod
    def from_payload(cls, payload):
        r = _Reader(payload)
        category = r.text("category", required=True, max_len=60)
        subcategory = normalize_subcategory(r.data.get("subcategory")) or SCOPE_ALL
        name = r.text("name", max_len=200)
        sla_days = r.integer("sla_days", default=0, minimum=0)
        sla_hours = r.integer("sla_hours", default=0, minimum=0)
        warning_threshold = r.integer(
            "warning_threshold", default=DEFAULT_WARNING_THRESHOLD, minimum=0, maximum=100,
        )
        tenant_id = r.integer("tenant_id")
        steps = _step_specs(r)
        r.raise_if_invalid("Invalid workflow template")
        return cls(
            category=category,
            subcategory=subcategory,
            name=name or f"{category} / {subcategory}",
            steps=steps,
            sla_days=sla_days,
            sla_hours=sla_hours,
            warning_threshold=warning_threshold,
            tenant_id=tenant_id,
        )


def _step_specs(r: _Reader) -> tuple[StepSpec, ...]:
    raw = r.data.get("steps")
    if not isinstance(raw, list) or not raw:
        r.errors["steps"] = "steps must be a non-empty array of {title, description?, required?}"
        return ()

    specs = []
    for i, item in enumerate(raw, start=1):
        if not isinstance(item, dict):
            r.errors[f"steps[{i}]"] = "step must be an object"
            continue
        title = (item.get("title") or "").strip() if isinstance(item.get("title"), str) else ""
        if not title:
            r.errors[f"steps[{i}].title"] = "title is required"
            continue
        if len(title) > MAX_TITLE:
            r.errors[f"steps[{i}].title"] = f"title must be ≤ {MAX_TITLE} characters"
            continue
        sequence = item.get("sequence", i)
        if isinstance(sequence, bool) or not isinstance(sequence, int) or sequence < 1:
            r.errors[f"steps[{i}].sequence"] = "sequence must be a positive integer"
            continue
        duration = item.get("duration_minutes") or 0
        if isinstance(duration, bool) or not isinstance(duration, int) or duration < 0:
            r.errors[f"steps[{i}].duration_minutes"] = "duration_minutes must be ≥ 0"
            continue
        specs.append(StepSpec(
            sequence=sequence,
            title=title,
            description=str(item.get("description") or ""),
            required=item.get("required") is not False,
            duration_minutes=duration,
        ))

    sequences = [s.sequence for s in specs]
    if len(set(sequences)) != len(sequences):
        r.errors["steps"] = "step sequences must be unique"
    return tuple(sorted(specs, key=lambda s: s.sequence))


# ═════════════════════════════════════════════════════════════════════════════
# Tasks
# ═════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class CreateTaskRequest:
    title: str
    category: str
    description: str = ""
    sub_category: str | None = None
    priority: str = "medium"
    source: str = "manual_entry"
    filed_by: str = ""
    assigned_to: int | None = None
    deadline: datetime | None = None
    tenant_id: int | None = None

    @classmethod
    def from_payload(cls, payload):
        r = _Reader(payload)
        title = r.text("title", required=True, max_len=MAX_TITLE)
        category = r.text("category", required=True, max_len=60)
        description = r.text("description")
        sub_category = normalize_subcategory(r.data.get("sub_category"))
        priority = r.choice("priority", TASK_PRIORITIES, default="medium")
        source = r.choice("source", TASK_SOURCES, default="manual_entry")
        filed_by = r.text("filed_by", max_len=200)
        assigned_to = r.integer("assigned_to", minimum=1)
        deadline = None
        if r.data.get("deadline"):
            deadline = parse_datetime(r.data["deadline"])
            if deadline is None:
                r.errors["deadline"] = "deadline must be an ISO 8601 date or datetime"
        tenant_id = r.integer("tenant_id")
        r.raise_if_invalid("Invalid task")
        return cls(
            title=title,
            category=category,
            description=description,
            sub_category=sub_category,
            priority=priority,
            source=source,
            filed_by=filed_by,
            assigned_to=assigned_to,
            deadline=deadline,
            tenant_id=tenant_id,
        )


@dataclass(frozen=True)
class CompleteStepRequest:
    notes: str | None = None

    @classmethod
    def from_payload(cls, payload):
        r = _Reader(payload)
        notes = r.text("notes", max_len=MAX_NOTES, default=None)
        r.raise_if_invalid("Invalid step completion")
        return cls(notes=notes or None)


# ═════════════════════════════════════════════════════════════════════════════
# Events
# ═════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class CreateEventRequest:
    title: str
    type: str
    scheduled_date: date
    scheduled_time: time
    location: str
    description: str = ""
    duration_minutes: int = 60
    expected_attendees: int | None = None
    priority: str = "medium"
    requires_approval: bool = True
    is_public: bool = True
    tenant_id: int | None = None

    @classmethod
    def from_payload(cls, payload):
        r = _Reader(payload)
        title = r.text("title", required=True, max_len=MAX_TITLE)
        event_type = r.choice("type", EVENT_TYPES, required=True)
        scheduled_date = parse_date(r.data.get("date"))
        if scheduled_date is None:
            r.errors["date"] = "date is required (YYYY-MM-DD)"
        scheduled_time = parse_time(r.data.get("time"))
        if scheduled_time is None:
            r.errors["time"] = "time is required (HH:MM)"
        location = r.text("location", required=True, max_len=300)
        description = r.text("description")
        duration = r.integer("duration_minutes", default=60, minimum=1)
        attendees = r.integer("expected_attendees", minimum=0)
        priority = r.choice("priority", EVENT_PRIORITIES, default="medium")
        tenant_id = r.integer("tenant_id")
        r.raise_if_invalid("Invalid event")
        return cls(
            title=title,
            type=event_type,
            scheduled_date=scheduled_date,
            scheduled_time=scheduled_time,
            location=location,
            description=description,
            duration_minutes=duration,
            expected_attendees=attendees,
            priority=priority,
            requires_approval=r.flag("requires_approval", True),
            is_public=r.flag("is_public", True),
            tenant_id=tenant_id,
        )


@dataclass(frozen=True)
class DecideApprovalRequest:
    decision: str
    comments: str | None = None

    @classmethod
    def from_payload(cls, payload):
        r = _Reader(payload)
        decision = r.choice("decision", APPROVAL_DECISIONS, required=True)
        comments = r.text("comments", max_len=MAX_NOTES, default=None)
        r.raise_if_invalid("Invalid approval decision")
        return cls(decision=decision, comments=comments or None)


@dataclass(frozen=True)
class CreateStaffRequest:
    name: str
    role: str = "staff"
    email: str = ""
    tenant_id: int | None = None

    @classmethod
    def from_payload(cls, payload):
        r = _Reader(payload)
        name = r.text("name", required=True, max_len=200)
        role = r.choice("role", STAFF_ROLES, default="staff")
        email = r.text("email", max_len=200)
        tenant_id = r.integer("tenant_id")
        r.raise_if_invalid("Invalid staff member")
        return cls(name=name, role=role, email=email, tenant_id=tenant_id)
