"""
Demo data for local development (``flask seed-demo``).

Safe to run multiple times: existing rows (matched by slug / value /
scope) are left untouched.
"""

import logging

from grievance_desk.models import db
from grievance_desk.models.category import Category
from grievance_desk.models.tenant import StaffMember, Tenant
from grievance_desk.models.workflow import StepTemplate, WorkflowTemplate

logger = logging.getLogger(__name__)

DEMO_TENANT_SLUG = "demo-office"

DEFAULT_CATEGORIES = [
    ("general", "General Complaint", ["Information Request", "Complaint", "Suggestion", "Feedback"]),
    ("water", "Water Supply", ["Pipe Leak", "No Water Supply", "Poor Water Quality", "Billing Issues"]),
    ("electricity", "Electricity", ["Power Outage", "Street Light", "Meter Issues", "High Bills"]),
    ("roads", "Roads & Infrastructure", ["Potholes", "Road Construction", "Traffic Issues", "Signage"]),
    ("sanitation", "Sanitation", ["Garbage Collection", "Drain Cleaning", "Public Toilets", "Pest Control"]),
]

PIPE_LEAK_STEPS = [
    ("Inspect leak site", "Visit the location and assess the leak", 60),
    ("Repair pipe", "Coordinate with the water board to fix the pipe", 240),
    ("Verify supply restored", "Confirm with the resident that supply is normal", 30),
]


def seed_demo() -> dict:
    """Create the demo office, its categories, one staff admin and the Pipe Leak workflow."""
    created = {"tenant": 0, "categories": 0, "workflows": 0, "staff": 0}

    tenant = Tenant.query.filter_by(slug=DEMO_TENANT_SLUG).first()
    if tenant is None:
        tenant = Tenant(name="Demo Office", slug=DEMO_TENANT_SLUG, constituency="Demo Ward")
        db.session.add(tenant)
        db.session.flush()
        created["tenant"] = 1

    for value, label, subcategories in DEFAULT_CATEGORIES:
        if Category.query_for_tenant(tenant.id).filter_by(value=value).first() is None:
            db.session.add(Category(
                tenant_id=tenant.id, value=value, label=label, subcategories=subcategories,
            ))
            created["categories"] += 1
    db.session.flush()

    water = Category.query_for_tenant(tenant.id).filter_by(value="water").one()
    if water.workflows.filter_by(subcategory="Pipe Leak").first() is None:
        template = WorkflowTemplate(
            tenant_id=tenant.id,
            category_id=water.id,
            subcategory="Pipe Leak",
            name="Pipe Leak",
            sla_days=3,
        )
        template.steps = [
            StepTemplate(sequence=i, title=title, description=description, duration_minutes=minutes)
            for i, (title, description, minutes) in enumerate(PIPE_LEAK_STEPS, start=1)
        ]
        db.session.add(template)
        created["workflows"] += 1

    if StaffMember.query_for_tenant(tenant.id).first() is None:
        db.session.add(StaffMember(tenant_id=tenant.id, name="Demo Admin", role="admin"))
        created["staff"] += 1

    db.session.commit()
    logger.info("Demo seed complete for tenant %s: %s", tenant.id, created)
    return {"tenant_id": tenant.id, "created": created}
