"""
Grievance Desk — category registry model.

Models:
    - Category: grievance classification with an ordered sub-category list

A category is referenced by tasks through its ``value`` slug and owns the
workflow templates scoped to it.
"""

import re
from datetime import datetime, timezone

from grievance_desk.models import db
from grievance_desk.models.base import TenantModel


# ── Constants ────────────────────────────────────────────────────────────────

CATEGORY_SLUG_PATTERN = re.compile(r"^[a-z][a-z0-9_]*$")


def is_valid_slug(value: str) -> bool:
    return bool(value) and CATEGORY_SLUG_PATTERN.match(value) is not None


class Category(TenantModel):
    """Grievance category, unique by slug within an office."""

    __tablename__ = "categories"

    id = db.Column(db.Integer, primary_key=True)
    value = db.Column(db.String(60), nullable=False, comment="Slug: ^[a-z][a-z0-9_]*$")
    label = db.Column(db.String(120), nullable=False)
    subcategories = db.Column(db.JSON, default=list, comment="Ordered sub-category labels")
    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.UniqueConstraint("tenant_id", "value", name="uq_category_tenant_value"),
    )

    workflows = db.relationship(
        "WorkflowTemplate",
        back_populates="category",
        cascade="all, delete-orphan",
        lazy="dynamic",
    )

    def has_subcategory(self, label: str) -> bool:
        return label in (self.subcategories or [])

    def to_dict(self):
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "value": self.value,
            "label": self.label,
            "subcategories": list(self.subcategories or []),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Category {self.id}: {self.value}>"
