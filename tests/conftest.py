"""
Shared pytest fixtures for the Grievance Desk test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - tenant / other_tenant: two offices for isolation checks
    - staff: admin staff member of ``tenant``
    - ctx / headers: caller context for service calls and API requests
    - make_headers: header factory for any other caller
    - water_category / pipe_leak_workflow: the canonical water grievance setup
"""

import pytest

from grievance_desk import create_app
from grievance_desk.core.context import CallerContext
from grievance_desk.models import db as _db
from grievance_desk.models.category import Category
from grievance_desk.models.tenant import StaffMember, Tenant
from grievance_desk.models.workflow import StepTemplate, WorkflowTemplate

PIPE_LEAK_STEPS = ["Inspect site", "Repair pipe", "Verify supply"]


def _caller_headers(tenant_id, actor_id="1", role="admin"):
    """Caller headers the upstream gateway would forward."""
    headers = {"X-User-ID": str(actor_id), "X-User-Role": role}
    if tenant_id is not None:
        headers["X-Tenant-ID"] = str(tenant_id)
    return headers


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Tenancy fixtures ─────────────────────────────────────────────────────


@pytest.fixture()
def tenant():
    t = Tenant(name="North Ward Office", slug="north-ward", constituency="North Ward")
    _db.session.add(t)
    _db.session.commit()
    return t


@pytest.fixture()
def other_tenant():
    t = Tenant(name="South Ward Office", slug="south-ward", constituency="South Ward")
    _db.session.add(t)
    _db.session.commit()
    return t


@pytest.fixture()
def staff(tenant):
    member = StaffMember(tenant_id=tenant.id, name="Meera Iyer", role="admin")
    _db.session.add(member)
    _db.session.commit()
    return member


@pytest.fixture()
def ctx(tenant, staff):
    """Service-layer caller: the admin staff member of ``tenant``."""
    return CallerContext(tenant_id=tenant.id, actor_id=str(staff.id), role="admin")


@pytest.fixture()
def make_headers():
    """Factory for headers of an arbitrary caller."""
    return _caller_headers


@pytest.fixture()
def headers(tenant, staff):
    """API caller headers matching ``ctx``."""
    return _caller_headers(tenant.id, staff.id, "admin")


# ── Workflow fixtures ────────────────────────────────────────────────────


@pytest.fixture()
def water_category(tenant):
    category = Category(
        tenant_id=tenant.id,
        value="water",
        label="Water Supply",
        subcategories=["Pipe Leak", "No Water Supply", "Billing Issues"],
    )
    _db.session.add(category)
    _db.session.commit()
    return category


@pytest.fixture()
def pipe_leak_workflow(water_category):
    """Three required steps scoped to water / Pipe Leak, 3 day SLA."""
    template = WorkflowTemplate(
        tenant_id=water_category.tenant_id,
        category_id=water_category.id,
        subcategory="Pipe Leak",
        name="Pipe Leak",
        sla_days=3,
    )
    template.steps = [
        StepTemplate(sequence=i, title=title, description=f"{title} for the reported leak")
        for i, title in enumerate(PIPE_LEAK_STEPS, start=1)
    ]
    _db.session.add(template)
    _db.session.commit()
    return template
