"""
Grievance Desk — notification model.

Models:
    - Notification: in-app notification record. Delivery is handled outside
      this service; rows are written and left for a channel worker to pick up.
"""

from datetime import datetime, timezone

from grievance_desk.models import db
from grievance_desk.models.base import TenantModel


class Notification(TenantModel):
    """One record per recipient per event."""

    __tablename__ = "notifications"

    id = db.Column(db.Integer, primary_key=True)
    recipient = db.Column(db.String(150), nullable=False, index=True, comment="User id or approver role")
    kind = db.Column(db.String(40), default="system", comment="event_approval | approval_required | system")
    title = db.Column(db.String(300), nullable=False)
    message = db.Column(db.Text, default="")

    entity_type = db.Column(db.String(30), default="")
    entity_id = db.Column(db.Integer, nullable=True)

    is_read = db.Column(db.Boolean, default=False)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "recipient": self.recipient,
            "kind": self.kind,
            "title": self.title,
            "message": self.message,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "is_read": self.is_read,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
