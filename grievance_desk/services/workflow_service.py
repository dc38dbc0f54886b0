"""
Workflow template — service layer.

Templates are created once with their full ordered step list. Only one
template may exist per (category, scope) where scope is a sub-category
label or "all".
"""

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from grievance_desk.core.context import CallerContext
from grievance_desk.core.exceptions import (
    CategoryNotFoundError,
    TemplateConflictError,
    ValidationError,
)
from grievance_desk.models import db
from grievance_desk.models.category import Category
from grievance_desk.models.workflow import SCOPE_ALL, StepTemplate, WorkflowTemplate
from grievance_desk.schemas import CreateWorkflowTemplateRequest
from grievance_desk.services.helpers.scoped_queries import (
    get_scoped,
    resolve_write_tenant,
    scope_statement,
)
from grievance_desk.services.repository import SqlAlchemyWorkflowRepository
from grievance_desk.services.workflow_engine import WorkflowMatcher, normalize_subcategory

logger = logging.getLogger(__name__)


def create_workflow_template(ctx: CallerContext, req: CreateWorkflowTemplateRequest) -> WorkflowTemplate:
    """Create a template and its steps.

    Raises:
        CategoryNotFoundError: unknown category slug in the target office.
        ValidationError:       sub-category not offered by the category (422).
        TemplateConflictError: a template already covers this scope.
    """
    tenant_id = resolve_write_tenant(ctx, req.tenant_id)
    repo = SqlAlchemyWorkflowRepository()

    category = repo.get_category(tenant_id, req.category)
    if category is None:
        raise CategoryNotFoundError(req.category, tenant_id)
    if req.subcategory != SCOPE_ALL and category.subcategories and not category.has_subcategory(req.subcategory):
        raise ValidationError(
            f"Category {category.value!r} has no sub-category {req.subcategory!r}",
            details={"subcategory": req.subcategory, "allowed": list(category.subcategories)},
            status=422,
        )

    existing = db.session.execute(
        select(WorkflowTemplate.id).where(
            WorkflowTemplate.category_id == category.id,
            WorkflowTemplate.subcategory == req.subcategory,
        )
    ).first()
    if existing:
        raise TemplateConflictError(category.id, req.subcategory)

    template = WorkflowTemplate(
        tenant_id=tenant_id,
        category_id=category.id,
        subcategory=req.subcategory,
        name=req.name,
        sla_days=req.sla_days,
        sla_hours=req.sla_hours,
        warning_threshold=req.warning_threshold,
    )
    template.steps = [
        StepTemplate(
            sequence=spec.sequence,
            title=spec.title,
            description=spec.description,
            required=spec.required,
            duration_minutes=spec.duration_minutes,
        )
        for spec in req.steps
    ]
    db.session.add(template)
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise TemplateConflictError(category.id, req.subcategory) from exc

    logger.info(
        "WorkflowTemplate created id=%s category=%s scope=%s steps=%d",
        template.id, category.value, template.subcategory, len(template.steps),
    )
    return template


def list_workflow_templates(ctx: CallerContext, category: str | None = None) -> list[WorkflowTemplate]:
    stmt = scope_statement(select(WorkflowTemplate), WorkflowTemplate, ctx)
    if category:
        stmt = stmt.join(Category, Category.id == WorkflowTemplate.category_id).where(
            Category.value == category,
        )
    stmt = stmt.order_by(WorkflowTemplate.category_id, WorkflowTemplate.subcategory)
    return list(db.session.execute(stmt).scalars())


def get_workflow_template(ctx: CallerContext, template_id: int) -> WorkflowTemplate:
    return get_scoped(WorkflowTemplate, template_id, ctx)


def preview_workflow(ctx: CallerContext, category: str, sub_category: str | None = None,
                     tenant_id: int | None = None) -> dict:
    """Which template a new task with this classification would receive."""
    if not category:
        raise ValidationError("category is required", details={"fields": {"category": "required"}})
    target_tenant = resolve_write_tenant(ctx, tenant_id)
    template = WorkflowMatcher(SqlAlchemyWorkflowRepository()).resolve(target_tenant, category, sub_category)

    sub_category = normalize_subcategory(sub_category)
    matched = None
    if template is not None:
        matched = "all" if template.is_catch_all else "exact"
    return {
        "category": category,
        "sub_category": sub_category,
        "matched_scope": matched,
        "workflow": template.to_dict() if template is not None else None,
    }
