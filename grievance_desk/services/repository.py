"""
Persistence port for the workflow engine.

The engine classes in ``workflow_engine`` and ``approval_engine`` never touch
``db.session`` directly; they are handed a ``WorkflowRepository``. Production
code uses ``SqlAlchemyWorkflowRepository``; unit tests inject an in-memory
implementation of the same port.

Architecture:
    blueprint ──▶ *_service (commit / rollback, side effects)
                     │
                     ▼
                 engine classes ──▶ WorkflowRepository (ABC)
                                         ▲
                           SqlAlchemyWorkflowRepository (db.session)
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from sqlalchemy import select

from grievance_desk.core.context import CallerContext
from grievance_desk.core.exceptions import NotFoundError, TaskNotFoundError
from grievance_desk.models import db
from grievance_desk.models.category import Category
from grievance_desk.models.event import ApprovalRecord, Event
from grievance_desk.models.notification import Notification
from grievance_desk.models.task import Task, TaskStep
from grievance_desk.models.tenant import StaffMember
from grievance_desk.models.workflow import StepTemplate, WorkflowTemplate
from grievance_desk.services.helpers.scoped_queries import get_scoped

logger = logging.getLogger(__name__)


class WorkflowRepository(ABC):
    """Everything the engine needs from storage. Implementations never commit
    on their own; the calling service owns the unit of work."""

    # ── Categories & templates (read-only) ───────────────────────────────

    @abstractmethod
    def get_category(self, tenant_id: int, slug: str) -> Category | None:
        """Category with *slug* in office *tenant_id*."""

    @abstractmethod
    def find_template(self, category_id: int, subcategory: str) -> WorkflowTemplate | None:
        """Active template scoped exactly to (category_id, subcategory)."""

    @abstractmethod
    def template_steps(self, template: WorkflowTemplate) -> list[StepTemplate]:
        """Template steps ordered by sequence."""

    # ── Tasks ────────────────────────────────────────────────────────────

    @abstractmethod
    def add_task(self, task: Task) -> Task:
        """Stage a new task and assign its id."""

    @abstractmethod
    def get_task(self, ctx: CallerContext, task_id: int, *, for_update: bool = False) -> Task:
        """Scoped task lookup. Raises TaskNotFoundError."""

    @abstractmethod
    def add_steps(self, task: Task, steps: list[TaskStep]) -> list[TaskStep]:
        """Stage materialized steps for *task* and assign their ids."""

    @abstractmethod
    def list_steps(self, task: Task) -> list[TaskStep]:
        """Steps of *task* ordered by sequence."""

    @abstractmethod
    def get_staff(self, tenant_id: int, staff_id: int) -> StaffMember | None:
        """Staff member in office *tenant_id*, or None."""

    # ── Events ───────────────────────────────────────────────────────────

    @abstractmethod
    def add_event(self, event: Event) -> Event:
        """Stage a new event and assign its id."""

    @abstractmethod
    def get_event(self, ctx: CallerContext, event_id: int, *, for_update: bool = False) -> Event:
        """Scoped event lookup. Raises NotFoundError."""

    @abstractmethod
    def add_approvals(self, event: Event, records: list[ApprovalRecord]) -> list[ApprovalRecord]:
        """Stage approval records for *event*."""

    @abstractmethod
    def list_approvals(self, event: Event) -> list[ApprovalRecord]:
        """Approval records of *event* ordered by level."""

    @abstractmethod
    def add_notification(self, notification: Notification) -> Notification:
        """Stage a notification record."""

    # ── Unit of work ─────────────────────────────────────────────────────

    @abstractmethod
    def flush(self) -> None: ...

    @abstractmethod
    def commit(self) -> None: ...

    @abstractmethod
    def rollback(self) -> None: ...


class SqlAlchemyWorkflowRepository(WorkflowRepository):
    """``WorkflowRepository`` backed by the Flask-SQLAlchemy session."""

    def __init__(self, session=None):
        self.session = session or db.session

    def get_category(self, tenant_id, slug):
        return self.session.execute(
            select(Category).where(Category.tenant_id == tenant_id, Category.value == slug)
        ).scalar_one_or_none()

    def find_template(self, category_id, subcategory):
        return self.session.execute(
            select(WorkflowTemplate).where(
                WorkflowTemplate.category_id == category_id,
                WorkflowTemplate.subcategory == subcategory,
                WorkflowTemplate.is_active.is_(True),
            )
        ).scalar_one_or_none()

    def template_steps(self, template):
        return list(
            self.session.execute(
                select(StepTemplate)
                .where(StepTemplate.workflow_id == template.id)
                .order_by(StepTemplate.sequence)
            ).scalars()
        )

    def add_task(self, task):
        self.session.add(task)
        self.session.flush()
        return task

    def get_task(self, ctx, task_id, *, for_update=False):
        return get_scoped(
            Task, task_id, ctx,
            for_update=for_update,
            not_found=TaskNotFoundError,
        )

    def add_steps(self, task, steps):
        task.steps.extend(steps)
        self.session.flush()
        return steps

    def list_steps(self, task):
        return list(
            self.session.execute(
                select(TaskStep)
                .where(TaskStep.task_id == task.id)
                .order_by(TaskStep.sequence)
            ).scalars()
        )

    def get_staff(self, tenant_id, staff_id):
        return self.session.execute(
            select(StaffMember).where(
                StaffMember.id == staff_id,
                StaffMember.tenant_id == tenant_id,
            )
        ).scalar_one_or_none()

    def add_event(self, event):
        self.session.add(event)
        self.session.flush()
        return event

    def get_event(self, ctx, event_id, *, for_update=False):
        return get_scoped(
            Event, event_id, ctx,
            for_update=for_update,
            not_found=lambda pk, tid: NotFoundError("Event", pk, tid),
        )

    def add_approvals(self, event, records):
        event.approvals.extend(records)
        self.session.flush()
        return records

    def list_approvals(self, event):
        return list(
            self.session.execute(
                select(ApprovalRecord)
                .where(ApprovalRecord.event_id == event.id)
                .order_by(ApprovalRecord.level)
            ).scalars()
        )

    def add_notification(self, notification):
        self.session.add(notification)
        return notification

    def flush(self):
        self.session.flush()

    def commit(self):
        self.session.commit()

    def rollback(self):
        self.session.rollback()
