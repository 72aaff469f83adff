from datetime import date
from enum import Enum as PyEnum
from sqlalchemy import String, Integer, ForeignKey, Enum, Date, Text, Index
from sqlalchemy.orm import Mapped, mapped_column
from app.models.base import Base, TimestampMixin


class LeadStage(str, PyEnum):
    """
    Pipeline stage of a lead.

    Any stage may move to any other. SUCCESS is the only stage with a
    side effect: a lead at SUCCESS owns exactly one contract.
    """

    NEW = "NEW"
    PENDING = "PENDING"
    TRYING = "TRYING"
    IN_PROGRESS = "IN_PROGRESS"
    MEETING_SOON = "MEETING_SOON"
    CONSULTING = "CONSULTING"
    PROVISIONAL_CONTRACT = "PROVISIONAL_CONTRACT"
    SUCCESS = "SUCCESS"
    TERMINATING = "TERMINATING"


class TransactionType(str, PyEnum):
    """Korean residential transaction types"""

    SALE = "SALE"  # 매매
    JEONSE = "JEONSE"  # lump-sum deposit lease
    WOLSE = "WOLSE"  # monthly rent


class PropertyType(str, PyEnum):
    OFFICETEL = "OFFICETEL"
    ONEROOM = "ONEROOM"
    TWOROOM = "TWOROOM"
    THREEROOM = "THREEROOM"
    APART = "APART"
    FACTORY = "FACTORY"
    MALL = "MALL"
    LAND = "LAND"


class Lead(Base, TimestampMixin):
    """
    Prospective customer moving through the agency pipeline.

    Budgets are stored in units of 10,000 KRW. Phone numbers are stored as
    digits only.
    """

    __tablename__ = "leads"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tenant_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,  # Critical for multi-tenant queries
    )
    assigned_user_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    stage: Mapped[LeadStage] = mapped_column(
        Enum(LeadStage, native_enum=False, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=LeadStage.NEW,
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    source: Mapped[str | None] = mapped_column(String(50), nullable=True)

    property_type: Mapped[PropertyType | None] = mapped_column(
        Enum(PropertyType, native_enum=False), nullable=True
    )
    transaction_type: Mapped[TransactionType | None] = mapped_column(
        Enum(TransactionType, native_enum=False), nullable=True
    )
    price_min: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    price_max: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    deposit_min: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    deposit_max: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    preferred_region: Mapped[str | None] = mapped_column(String(100), nullable=True)
    move_in_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    memo: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_leads_tenant_stage", "tenant_id", "stage"),
        Index("ix_leads_tenant_created", "tenant_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Lead(id={self.id}, tenant_id={self.tenant_id}, stage={self.stage.value})>"
