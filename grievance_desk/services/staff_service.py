"""Staff members and the points leaderboard."""

import logging

from sqlalchemy import select

from grievance_desk.core.context import CallerContext
from grievance_desk.models import db
from grievance_desk.models.tenant import StaffMember
from grievance_desk.schemas import CreateStaffRequest
from grievance_desk.services.helpers.scoped_queries import resolve_write_tenant, scope_statement

logger = logging.getLogger(__name__)


def create_staff(ctx: CallerContext, req: CreateStaffRequest) -> StaffMember:
    tenant_id = resolve_write_tenant(ctx, req.tenant_id)
    staff = StaffMember(
        tenant_id=tenant_id,
        name=req.name,
        role=req.role,
        email=req.email,
        points=0,
        task_type_history={},
    )
    db.session.add(staff)
    db.session.commit()
    logger.info("StaffMember created id=%s tenant=%s role=%s", staff.id, tenant_id, staff.role)
    return staff


def leaderboard(ctx: CallerContext, limit: int = 10) -> list[dict]:
    """Active staff ranked by points (ties broken by name)."""
    stmt = (
        scope_statement(select(StaffMember), StaffMember, ctx)
        .where(StaffMember.is_active.is_(True))
        .order_by(StaffMember.points.desc(), StaffMember.name)
        .limit(limit)
    )
    rows = db.session.execute(stmt).scalars().all()
    return [
        {"rank": rank, **staff.to_dict(), "tasks_completed": sum((staff.task_type_history or {}).values())}
        for rank, staff in enumerate(rows, start=1)
    ]
