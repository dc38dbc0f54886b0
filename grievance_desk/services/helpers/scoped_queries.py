"""
Tenant-scoped query helpers.

Every read in the platform goes through these helpers instead of
``Model.query.get(pk)`` or ``db.session.get(Model, pk)``. Direct ``.get()``
calls bypass tenant isolation between political offices.

Rules:
  1. Regular callers only ever see rows whose ``tenant_id`` matches their own.
  2. ``super_admin`` callers see every office.
  3. Soft-deleted rows are invisible unless explicitly requested.
  4. Cross-tenant access is indistinguishable from a missing record:
     both raise NotFoundError → HTTP 404.

Usage:
    task = get_scoped(Task, task_id, ctx)
    stmt = scope_statement(select(Event), Event, ctx)
"""

import logging

from sqlalchemy import select

from grievance_desk.core.context import CallerContext
from grievance_desk.core.exceptions import NotFoundError, ValidationError
from grievance_desk.models import db
from grievance_desk.models.tenant import Tenant

logger = logging.getLogger(__name__)


def scope_statement(stmt, model, ctx: CallerContext, *, include_deleted: bool = False):
    """Apply the caller's tenant filter (and the soft-delete filter) to *stmt*.

    Raises:
        ValueError: If the model has no ``tenant_id`` column, or a regular
                    caller has no tenant. Refusing is safer than returning an
                    unscoped result.
    """
    if not hasattr(model, "tenant_id"):
        raise ValueError(
            f"{model.__name__} has no tenant_id column. "
            "Refusing to perform an unscoped lookup."
        )
    if not ctx.is_super_admin:
        if ctx.tenant_id is None:
            raise ValueError("CallerContext without tenant_id may not read tenant data")
        stmt = stmt.where(model.tenant_id == ctx.tenant_id)
    if not include_deleted and hasattr(model, "deleted_at"):
        stmt = stmt.where(model.deleted_at.is_(None))
    return stmt


def get_scoped(model, pk: int, ctx: CallerContext, *, for_update: bool = False, not_found=None):
    """Fetch a single entity by PK within the caller's scope.

    Args:
        model: SQLAlchemy model class with ``id`` and ``tenant_id`` columns.
        pk: Primary key value to look up.
        ctx: The caller; determines the tenant filter.
        for_update: Take a row lock (``SELECT … FOR UPDATE``) where the
                    backend supports it.
        not_found: Optional callable ``(pk, tenant_id) -> Exception`` used
                   instead of the generic NotFoundError.

    Raises:
        NotFoundError: If the entity does not exist OR belongs to another office.
    """
    stmt = scope_statement(select(model).where(model.id == pk), model, ctx)
    if for_update:
        stmt = stmt.with_for_update()

    result = db.session.execute(stmt).scalar_one_or_none()

    if result is None:
        logger.debug(
            "get_scoped: %s id=%s not found for tenant=%s",
            model.__name__,
            pk,
            ctx.tenant_id,
        )
        if not_found is not None:
            raise not_found(pk, ctx.tenant_id)
        raise NotFoundError(resource=model.__name__, resource_id=pk, tenant_id=ctx.tenant_id)

    return result


def resolve_write_tenant(ctx: CallerContext, requested: int | None = None) -> int:
    """Tenant a new record is stamped with; verified to exist and be active.

    Raises:
        ValidationError: a cross-office caller did not name a tenant.
        NotFoundError:   the named tenant does not exist or is inactive.
    """
    tenant_id = ctx.write_tenant(requested)
    if tenant_id is None:
        raise ValidationError(
            "tenant_id is required for cross-office callers",
            details={"fields": {"tenant_id": "tenant_id is required"}},
        )
    tenant = db.session.get(Tenant, tenant_id)
    if tenant is None or not tenant.is_active:
        raise NotFoundError(resource="Tenant", resource_id=tenant_id)
    return tenant_id
