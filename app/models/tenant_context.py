"""Tenant context for request authorization."""

from dataclasses import dataclass
from app.models.role import TenantRole


@dataclass(frozen=True)
class TenantContext:
    """
    Outcome of a successful authorization decision.

    Produced by the access control resolver after verifying an ACTIVE
    membership. Used throughout the application for permission checks and
    tenant isolation.

    Attributes:
        user_id: Internal user id the principal resolved to
        tenant_id: The tenant the user is acting within
        role: The user's role within this tenant
    """

    user_id: str
    tenant_id: int
    role: TenantRole

    def has_permission(self, required_role: TenantRole) -> bool:
        """
        Check if user's role meets or exceeds required role.

        Role hierarchy: OWNER (3) > ADMIN (2) > MEMBER (1)
        """
        role_hierarchy = {
            TenantRole.OWNER: 3,
            TenantRole.ADMIN: 2,
            TenantRole.MEMBER: 1,
        }
        return role_hierarchy[self.role] >= role_hierarchy[required_role]

    def is_owner(self) -> bool:
        """Check if user is a tenant owner."""
        return self.role == TenantRole.OWNER

    def is_admin_or_higher(self) -> bool:
        """Check if user is admin or owner."""
        return self.has_permission(TenantRole.ADMIN)

    def __repr__(self) -> str:
        return f"<TenantContext(tenant_id={self.tenant_id}, role={self.role.value})>"
