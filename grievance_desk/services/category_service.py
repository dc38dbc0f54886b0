"""
Category registry — service layer.

Categories are looked up by slug when a task is filed, so the slug is
immutable after creation and unique within an office. A category cannot be
deleted while any live (non-deleted) task still references its slug.
"""

import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from grievance_desk.core.context import CallerContext
from grievance_desk.core.exceptions import (
    CategoryInUseError,
    ConflictError,
)
from grievance_desk.models import db
from grievance_desk.models.category import Category
from grievance_desk.models.task import Task
from grievance_desk.schemas import CreateCategoryRequest, UpdateCategoryRequest
from grievance_desk.services.helpers.scoped_queries import (
    get_scoped,
    resolve_write_tenant,
    scope_statement,
)

logger = logging.getLogger(__name__)


def create_category(ctx: CallerContext, req: CreateCategoryRequest) -> Category:
    tenant_id = resolve_write_tenant(ctx, req.tenant_id)
    existing = db.session.execute(
        select(Category.id).where(Category.tenant_id == tenant_id, Category.value == req.value)
    ).first()
    if existing:
        raise ConflictError("Category", "value", req.value)

    category = Category(
        tenant_id=tenant_id,
        value=req.value,
        label=req.label,
        subcategories=list(req.subcategories),
    )
    db.session.add(category)
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise ConflictError("Category", "value", req.value) from exc
    logger.info("Category created id=%s value=%s tenant=%s", category.id, category.value, tenant_id)
    return category


def list_categories(ctx: CallerContext) -> list[Category]:
    stmt = scope_statement(select(Category), Category, ctx).order_by(Category.label)
    return list(db.session.execute(stmt).scalars())


def get_category(ctx: CallerContext, category_id: int) -> Category:
    return get_scoped(Category, category_id, ctx)


def update_category(ctx: CallerContext, category_id: int, req: UpdateCategoryRequest) -> Category:
    category = get_scoped(Category, category_id, ctx)
    if req.label is not None:
        category.label = req.label
    if req.subcategories is not None:
        category.subcategories = list(req.subcategories)
    db.session.commit()
    logger.info("Category updated id=%s", category.id)
    return category


def count_live_tasks(tenant_id: int, slug: str) -> int:
    return db.session.execute(
        select(func.count(Task.id)).where(
            Task.tenant_id == tenant_id,
            Task.category == slug,
            Task.deleted_at.is_(None),
        )
    ).scalar() or 0


def delete_category(ctx: CallerContext, category_id: int) -> None:
    """Delete a category and its workflow templates.

    Raises:
        CategoryInUseError: live tasks still reference the slug.
    """
    category = get_scoped(Category, category_id, ctx)
    in_use = count_live_tasks(category.tenant_id, category.value)
    if in_use:
        raise CategoryInUseError(category.value, in_use)

    slug = category.value
    db.session.delete(category)
    db.session.commit()
    logger.info("Category deleted id=%s value=%s", category_id, slug)

