"""
Caller context threaded through every service operation.

The tenant filter is not optional: services take a ``CallerContext`` as a
required argument and scope every read by ``tenant_id`` unless the caller
holds the cross-tenant ``super_admin`` role.
"""

from dataclasses import dataclass

SUPER_ADMIN_ROLE = "super_admin"


@dataclass(frozen=True)
class CallerContext:
    """Who is calling, and on behalf of which office."""

    tenant_id: int | None
    actor_id: str
    role: str = "staff"

    @property
    def is_super_admin(self) -> bool:
        return self.role == SUPER_ADMIN_ROLE

    def write_tenant(self, requested: int | None = None) -> int | None:
        """Tenant that a new record is stamped with.

        Regular callers always write into their own office. A super-admin
        names the target office explicitly and falls back to its own.
        """
        if self.is_super_admin:
            return requested if requested is not None else self.tenant_id
        return self.tenant_id
