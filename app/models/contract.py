from datetime import date
from enum import Enum as PyEnum
from sqlalchemy import String, Integer, ForeignKey, Enum, Date, UniqueConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import TYPE_CHECKING
from app.models.base import Base, TimestampMixin
from app.models.lead import TransactionType

if TYPE_CHECKING:
    from app.models.lead import Lead


class ContractStatus(str, PyEnum):
    """Contract status enumeration"""

    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    TERMINATED = "TERMINATED"
    CANCELLED = "CANCELLED"


class Contract(Base, TimestampMixin):
    """
    Finalized transaction derived from a lead at stage SUCCESS.

    Created and deleted only by the lead lifecycle engine. lead_id is
    unique, so a lead never has more than one contract.
    """

    __tablename__ = "contracts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tenant_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    lead_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("leads.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    custom_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    contract_date: Mapped[date] = mapped_column(Date, nullable=False)
    transaction_type: Mapped[TransactionType] = mapped_column(
        Enum(TransactionType, native_enum=False), nullable=False, default=TransactionType.SALE
    )
    price: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    deposit: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    rent: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[ContractStatus] = mapped_column(
        Enum(ContractStatus, native_enum=False), nullable=False, default=ContractStatus.DRAFT
    )

    # Read-only view of the originating lead (name/phone in list responses)
    lead: Mapped["Lead"] = relationship("Lead", lazy="joined", viewonly=True)

    __table_args__ = (
        UniqueConstraint("lead_id", name="uq_contract_lead"),
        Index("ix_contracts_tenant_lead", "tenant_id", "lead_id"),
    )

    @property
    def lead_name(self) -> str | None:
        return self.lead.name if self.lead else None

    @property
    def lead_phone(self) -> str | None:
        return self.lead.phone if self.lead else None

    def __repr__(self) -> str:
        return f"<Contract(id={self.id}, lead_id={self.lead_id}, status={self.status.value})>"
