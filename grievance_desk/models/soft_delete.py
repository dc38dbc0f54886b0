"""
Soft Delete Mixin.

Grievances are never physically removed: a deleted task keeps its row (and
its materialized steps) for audit, but disappears from every read path and
can no longer be worked.

Usage:
    class Task(SoftDeleteMixin, TenantModel):
        ...

    task.soft_delete()
    db.session.commit()

Read paths filter on ``deleted_at IS NULL`` (see ``scope_statement``).
"""

from datetime import datetime, timezone

from grievance_desk.models import db


class SoftDeleteMixin:
    """Adds a ``deleted_at`` tombstone column and a helper to set it."""

    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True, default=None, index=True)

    def soft_delete(self):
        self.deleted_at = datetime.now(timezone.utc)
