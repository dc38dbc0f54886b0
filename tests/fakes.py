"""
In-memory ``WorkflowRepository`` for engine unit tests.

Holds transient model instances in plain lists and hands out ids from a
counter, so the engine classes can be exercised without a database.
"""

from itertools import count

from grievance_desk.core.exceptions import NotFoundError, TaskNotFoundError
from grievance_desk.models.category import Category
from grievance_desk.models.event import Event
from grievance_desk.models.notification import Notification  # noqa: F401  (mapper registry)
from grievance_desk.models.task import Task
from grievance_desk.models.tenant import StaffMember
from grievance_desk.models.workflow import StepTemplate, WorkflowTemplate
from grievance_desk.services.repository import WorkflowRepository


class InMemoryWorkflowRepository(WorkflowRepository):
    def __init__(self):
        self._ids = count(1)
        self.categories: list[Category] = []
        self.templates: list[WorkflowTemplate] = []
        self.tasks: list[Task] = []
        self.staff: list[StaffMember] = []
        self.events: list[Event] = []
        self.notifications = []
        self.commits = 0
        self.rollbacks = 0
        self.fail_on_commit = False

    def _assign_id(self, obj):
        if obj.id is None:
            obj.id = next(self._ids)
        return obj

    # ── Builders used by tests ───────────────────────────────────────────

    def add_category(self, tenant_id, value, subcategories=(), label=None):
        category = self._assign_id(Category(
            tenant_id=tenant_id, value=value, label=label or value.title(),
            subcategories=list(subcategories),
        ))
        self.categories.append(category)
        return category

    def add_template(self, category, subcategory, steps, is_active=True, sla_days=0):
        """*steps*: list of (title, required) tuples, sequence = position."""
        template = self._assign_id(WorkflowTemplate(
            tenant_id=category.tenant_id,
            category_id=category.id,
            subcategory=subcategory,
            name=f"{category.value}/{subcategory}",
            sla_days=sla_days,
            sla_hours=0,
            warning_threshold=80,
            is_active=is_active,
        ))
        template.steps = [
            self._assign_id(StepTemplate(
                sequence=i, title=title, description=f"{title} description",
                required=required, duration_minutes=15 * i,
            ))
            for i, (title, required) in enumerate(steps, start=1)
        ]
        self.templates.append(template)
        return template

    def add_staff_member(self, tenant_id, name="Asha", role="staff"):
        staff = self._assign_id(StaffMember(
            tenant_id=tenant_id, name=name, role=role, points=0, task_type_history={},
        ))
        self.staff.append(staff)
        return staff

    def new_task(self, tenant_id, category="water", priority="medium", sub_category=None):
        task = Task(
            tenant_id=tenant_id, title="Leaking main", category=category,
            sub_category=sub_category, priority=priority, status="open", progress=0,
        )
        return self.add_task(task)

    # ── WorkflowRepository ───────────────────────────────────────────────

    def get_category(self, tenant_id, slug):
        return next(
            (c for c in self.categories if c.tenant_id == tenant_id and c.value == slug), None,
        )

    def find_template(self, category_id, subcategory):
        return next(
            (t for t in self.templates
             if t.category_id == category_id and t.subcategory == subcategory and t.is_active),
            None,
        )

    def template_steps(self, template):
        return sorted(template.steps, key=lambda s: s.sequence)

    def add_task(self, task):
        self._assign_id(task)
        self.tasks.append(task)
        return task

    def get_task(self, ctx, task_id, *, for_update=False):
        for task in self.tasks:
            if task.id != task_id or task.deleted_at is not None:
                continue
            if ctx.is_super_admin or task.tenant_id == ctx.tenant_id:
                return task
        raise TaskNotFoundError(task_id, ctx.tenant_id)

    def add_steps(self, task, steps):
        for step in steps:
            self._assign_id(step)
            step.task_id = task.id
        task.steps.extend(steps)
        return steps

    def list_steps(self, task):
        return sorted(task.steps, key=lambda s: s.sequence)

    def get_staff(self, tenant_id, staff_id):
        return next(
            (s for s in self.staff if s.id == staff_id and s.tenant_id == tenant_id), None,
        )

    def add_event(self, event):
        self._assign_id(event)
        self.events.append(event)
        return event

    def get_event(self, ctx, event_id, *, for_update=False):
        for event in self.events:
            if event.id == event_id and (ctx.is_super_admin or event.tenant_id == ctx.tenant_id):
                return event
        raise NotFoundError("Event", event_id, ctx.tenant_id)

    def add_approvals(self, event, records):
        for record in records:
            self._assign_id(record)
            record.event_id = event.id
        event.approvals.extend(records)
        return records

    def list_approvals(self, event):
        return sorted(event.approvals, key=lambda r: r.level)

    def add_notification(self, notification):
        self.notifications.append(notification)
        return notification

    def flush(self):
        pass

    def commit(self):
        if self.fail_on_commit:
            raise RuntimeError("storage unavailable")
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1
