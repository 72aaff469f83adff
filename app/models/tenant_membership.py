"""Tenant membership model linking users to tenants with roles."""

from datetime import datetime
from sqlalchemy import Integer, String, ForeignKey, Enum, DateTime, UniqueConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import TYPE_CHECKING

from app.models.base import Base, TimestampMixin
from app.models.role import TenantRole, MembershipStatus

if TYPE_CHECKING:
    from app.models.user import User
    from app.models.tenant import Tenant


class TenantMembership(Base, TimestampMixin):
    """
    Join table linking users to tenants with a role and a status.

    An ACTIVE membership is the only thing that grants access to a tenant.

    Constraints:
    - Unique(tenant_id, user_id) - one membership per user per tenant
    - A user holds at most TENANT_OWNER_QUOTA ACTIVE OWNER memberships
      (enforced at application layer)
    """

    __tablename__ = "tenant_memberships"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tenant_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    role: Mapped[TenantRole] = mapped_column(
        Enum(TenantRole, native_enum=False, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=TenantRole.MEMBER,
    )
    status: Mapped[MembershipStatus] = mapped_column(
        Enum(MembershipStatus, native_enum=False, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=MembershipStatus.ACTIVE,
    )
    joined_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    left_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationships
    tenant: Mapped["Tenant"] = relationship("Tenant", back_populates="memberships")
    user: Mapped["User"] = relationship("User", back_populates="memberships")

    # Constraints
    __table_args__ = (
        UniqueConstraint("tenant_id", "user_id", name="uq_tenant_user"),
        Index("ix_tenant_memberships_user_role_status", "user_id", "role", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<TenantMembership(tenant_id={self.tenant_id}, user_id={self.user_id}, "
            f"role={self.role.value}, status={self.status.value})>"
        )
