"""Repository for TenantMembership model operations (the membership store)."""

from sqlalchemy import func
from sqlalchemy.orm import Session
from app.models.tenant_membership import TenantMembership
from app.models.role import TenantRole, MembershipStatus


class TenantMembershipRepository:
    """Repository for TenantMembership model operations"""

    def __init__(self, db: Session):
        self.db = db

    def get_membership(self, user_id: str, tenant_id: int) -> TenantMembership | None:
        """
        Get membership for a specific user in a specific tenant, any status.

        Args:
            user_id: Internal user ID
            tenant_id: Tenant ID

        Returns:
            TenantMembership object or None if not found
        """
        return (
            self.db.query(TenantMembership)
            .filter(
                TenantMembership.user_id == user_id,
                TenantMembership.tenant_id == tenant_id,
            )
            .first()
        )

    def get_active_membership(self, user_id: str, tenant_id: int) -> TenantMembership | None:
        """
        Get the ACTIVE membership for a user in a tenant.

        This is the only lookup that may grant tenant access.
        """
        return (
            self.db.query(TenantMembership)
            .filter(
                TenantMembership.user_id == user_id,
                TenantMembership.tenant_id == tenant_id,
                TenantMembership.status == MembershipStatus.ACTIVE,
            )
            .first()
        )

    def get_tenant_members(self, tenant_id: int) -> list[TenantMembership]:
        """
        Get all memberships for a tenant.

        Args:
            tenant_id: Tenant ID

        Returns:
            List of TenantMembership objects for the tenant
        """
        return (
            self.db.query(TenantMembership)
            .filter(TenantMembership.tenant_id == tenant_id)
            .order_by(TenantMembership.id)
            .all()
        )

    def get_user_active_memberships(self, user_id: str) -> list[TenantMembership]:
        """
        Get the ACTIVE memberships of a user (all tenants they can enter).

        Args:
            user_id: Internal user ID

        Returns:
            List of TenantMembership objects for the user
        """
        return (
            self.db.query(TenantMembership)
            .filter(
                TenantMembership.user_id == user_id,
                TenantMembership.status == MembershipStatus.ACTIVE,
            )
            .order_by(TenantMembership.id)
            .all()
        )

    def count_active_owned(self, user_id: str) -> int:
        """Count tenants the user currently owns (role OWNER, status ACTIVE)"""
        return (
            self.db.query(func.count(TenantMembership.id))
            .filter(
                TenantMembership.user_id == user_id,
                TenantMembership.role == TenantRole.OWNER,
                TenantMembership.status == MembershipStatus.ACTIVE,
            )
            .scalar()
        )

    def create(self, membership: TenantMembership) -> TenantMembership:
        """
        Create a new tenant membership.

        Args:
            membership: TenantMembership object to create

        Returns:
            Created TenantMembership object with ID populated

        Raises:
            IntegrityError: If (tenant_id, user_id) already exists
        """
        self.db.add(membership)
        self.db.commit()
        self.db.refresh(membership)
        return membership

    def create_no_commit(self, membership: TenantMembership) -> TenantMembership:
        """Create membership without committing (for atomic ops)"""
        self.db.add(membership)
        self.db.flush()
        return membership

    def update(self, membership: TenantMembership) -> TenantMembership:
        """
        Update a tenant membership.

        Args:
            membership: TenantMembership object to update

        Returns:
            Updated TenantMembership object
        """
        self.db.commit()
        self.db.refresh(membership)
        return membership
