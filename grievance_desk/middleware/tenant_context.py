"""
Tenant Context Middleware — builds the CallerContext for API requests.

Authentication happens upstream (gateway / auth proxy), which forwards:
    X-User-ID    — actor id (required)
    X-Tenant-ID  — office id (required unless the role is super_admin)
    X-User-Role  — staff role, defaults to "staff"

This middleware:
  1. Rejects requests without caller headers (401)
  2. Verifies the tenant exists and is active (403)
  3. Stores the CallerContext on ``g.caller`` for the blueprints

Chain order:
  timing.py  →  tenant_context.py  →  route handler
"""

import logging

from flask import g, request

from grievance_desk.core.context import SUPER_ADMIN_ROLE, CallerContext
from grievance_desk.models import db
from grievance_desk.models.tenant import Tenant
from grievance_desk.utils.errors import E, api_error

logger = logging.getLogger(__name__)

# Paths that skip tenant context
TENANT_SKIP_PREFIXES = (
    "/api/v1/health",
)


def current_caller() -> CallerContext:
    """CallerContext of the current request (set by the before_request hook)."""
    caller = getattr(g, "caller", None)
    if caller is None:
        raise RuntimeError("No caller context on this request")
    return caller


def init_tenant_context(app):
    """Register tenant context middleware as a before_request hook."""

    @app.before_request
    def _tenant_context():
        g.caller = None
        g.tenant = None

        if not request.path.startswith("/api/v1/"):
            return None
        for prefix in TENANT_SKIP_PREFIXES:
            if request.path.startswith(prefix):
                return None

        actor_id = (request.headers.get("X-User-ID") or "").strip()
        role = (request.headers.get("X-User-Role") or "staff").strip() or "staff"
        raw_tenant = (request.headers.get("X-Tenant-ID") or "").strip()

        if not actor_id:
            return api_error(E.UNAUTHENTICATED, "X-User-ID header is required")

        tenant_id = None
        if raw_tenant:
            if not raw_tenant.isdigit():
                return api_error(E.VALIDATION_INVALID, "X-Tenant-ID must be an integer")
            tenant_id = int(raw_tenant)
        elif role != SUPER_ADMIN_ROLE:
            return api_error(E.UNAUTHENTICATED, "X-Tenant-ID header is required")

        if tenant_id is not None:
            tenant = db.session.get(Tenant, tenant_id)
            if tenant is None:
                logger.warning("Tenant %d not found (actor=%s)", tenant_id, actor_id)
                return api_error(E.FORBIDDEN, "Tenant not found")
            if not tenant.is_active:
                # super admins can still operate on a frozen office
                if role != SUPER_ADMIN_ROLE:
                    logger.warning("Tenant %d is deactivated (actor=%s)", tenant_id, actor_id)
                    return api_error(E.FORBIDDEN, "Tenant account is deactivated")
                logger.info("Frozen tenant %d — allowing super_admin bypass", tenant_id)
            g.tenant = tenant

        g.caller = CallerContext(tenant_id=tenant_id, actor_id=actor_id, role=role)
        return None

    logger.info("Tenant context middleware installed")
