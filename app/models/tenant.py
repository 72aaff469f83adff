"""Tenant (agency) model for multi-tenant isolation."""

from sqlalchemy import String, Integer, JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import TYPE_CHECKING, Optional

from app.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from app.models.tenant_membership import TenantMembership
    from app.models.subscription import Subscription


class Tenant(Base, TimestampMixin):
    """
    Multi-tenant isolation boundary: one real-estate agency.

    All leads, contracts and memberships belong to a tenant. Users reach
    tenant data only through an ACTIVE membership.

    invite_code is a short random token shared by owners so agents can
    join on their own. It is unique across tenants and can be regenerated.
    """

    __tablename__ = "tenants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    invite_code: Mapped[str] = mapped_column(String(16), unique=True, nullable=False, index=True)
    license_no: Mapped[str | None] = mapped_column(String(50), nullable=True)
    config: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    # Relationships
    memberships: Mapped[list["TenantMembership"]] = relationship(
        "TenantMembership",
        back_populates="tenant",
        cascade="all, delete-orphan",
    )
    subscription: Mapped[Optional["Subscription"]] = relationship(
        "Subscription",
        back_populates="tenant",
        cascade="all, delete-orphan",
        uselist=False,
    )

    def __repr__(self) -> str:
        return f"<Tenant(id={self.id}, name='{self.name}')>"
