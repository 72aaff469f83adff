from enum import Enum as PyEnum
from sqlalchemy import String, Integer, Float, ForeignKey, Enum, Text, Index, UniqueConstraint, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime
from app.models.base import Base, TimestampMixin, utcnow
from app.models.lead import TransactionType


class ListingStatus(str, PyEnum):
    AVAILABLE = "AVAILABLE"
    CONTRACTED = "CONTRACTED"
    CANCELED = "CANCELED"


class ListingPropertyType(str, PyEnum):
    APARTMENT = "APARTMENT"
    VILLA = "VILLA"
    OFFICETEL = "OFFICETEL"
    ONEROOM = "ONEROOM"
    COMMERCIAL = "COMMERCIAL"
    LAND = "LAND"


class Listing(Base, TimestampMixin):
    """
    Property offered by an agency.

    Listings sharing an address form a group (one building, several units).
    Prices are stored in units of 10,000 KRW.
    """

    __tablename__ = "listings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tenant_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    assigned_user_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    address: Mapped[str] = mapped_column(String(255), nullable=False)
    address_detail: Mapped[str | None] = mapped_column(String(100), nullable=True)

    property_type: Mapped[ListingPropertyType] = mapped_column(
        Enum(ListingPropertyType, native_enum=False), nullable=False
    )
    transaction_type: Mapped[TransactionType] = mapped_column(
        Enum(TransactionType, native_enum=False), nullable=False
    )
    price_selling: Mapped[int | None] = mapped_column(Integer, nullable=True)
    deposit: Mapped[int | None] = mapped_column(Integer, nullable=True)
    rent: Mapped[int | None] = mapped_column(Integer, nullable=True)
    admin_fee: Mapped[int | None] = mapped_column(Integer, nullable=True)

    area_supply_m2: Mapped[float | None] = mapped_column(Float, nullable=True)
    area_private_m2: Mapped[float | None] = mapped_column(Float, nullable=True)
    floor: Mapped[int | None] = mapped_column(Integer, nullable=True)
    total_floors: Mapped[int | None] = mapped_column(Integer, nullable=True)
    room_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    bathroom_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    direction: Mapped[str | None] = mapped_column(String(20), nullable=True)

    status: Mapped[ListingStatus] = mapped_column(
        Enum(ListingStatus, native_enum=False), nullable=False, default=ListingStatus.AVAILABLE
    )
    owner_contact: Mapped[str | None] = mapped_column(String(20), nullable=True)
    memo: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_listings_tenant_address", "tenant_id", "address"),
        Index("ix_listings_tenant_created", "tenant_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Listing(id={self.id}, tenant_id={self.tenant_id}, status={self.status.value})>"


class LeadListing(Base):
    """A listing proposed to a lead. Each pair is recorded once."""

    __tablename__ = "lead_listings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tenant_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    lead_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("leads.id", ondelete="CASCADE"), nullable=False
    )
    listing_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("listings.id", ondelete="CASCADE"), nullable=False
    )
    proposed_by: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (UniqueConstraint("lead_id", "listing_id", name="uq_lead_listing"),)
