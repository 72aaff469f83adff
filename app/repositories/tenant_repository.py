"""Repository for Tenant model operations (the tenant directory)."""

from sqlalchemy.orm import Session
from app.models.tenant import Tenant


class TenantRepository:
    """Repository for Tenant model operations"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, tenant_id: int) -> Tenant | None:
        """
        Get tenant by ID.

        Args:
            tenant_id: Tenant ID

        Returns:
            Tenant object or None if not found
        """
        return self.db.query(Tenant).filter(Tenant.id == tenant_id).first()

    def get_by_ids(self, tenant_ids: list[int]) -> list[Tenant]:
        """Get several tenants at once (order not guaranteed)"""
        if not tenant_ids:
            return []
        return self.db.query(Tenant).filter(Tenant.id.in_(tenant_ids)).all()

    def get_by_invite_code(self, invite_code: str) -> Tenant | None:
        """
        Get tenant by its self-service invite code.

        Args:
            invite_code: Code shared by the tenant's owners

        Returns:
            Tenant object or None if no tenant uses this code
        """
        return self.db.query(Tenant).filter(Tenant.invite_code == invite_code).first()

    def invite_code_exists(self, invite_code: str) -> bool:
        """Check whether any tenant already uses the code"""
        return (
            self.db.query(Tenant.id).filter(Tenant.invite_code == invite_code).first()
            is not None
        )

    def create_no_commit(self, tenant: Tenant) -> Tenant:
        """
        Add a tenant without committing (for atomic ops).

        The caller commits once the owner membership is in place too.
        """
        self.db.add(tenant)
        self.db.flush()  # Assign ID without committing
        return tenant

    def update(self, tenant: Tenant) -> Tenant:
        """
        Update an existing tenant.

        Args:
            tenant: Tenant object with updated fields

        Returns:
            Updated Tenant object
        """
        self.db.commit()
        self.db.refresh(tenant)
        return tenant
