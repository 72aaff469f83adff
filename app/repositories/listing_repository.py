from sqlalchemy.orm import Session

from app.models.lead import TransactionType
from app.models.listing import LeadListing, Listing, ListingPropertyType, ListingStatus
from app.repositories.search import apply_in_filters, apply_text_search

# Columns a listing page may be ordered by
SORTABLE_COLUMNS = {
    "created_at": Listing.created_at,
    "updated_at": Listing.updated_at,
    "status": Listing.status,
    "name": Listing.name,
    "address": Listing.address,
    "price_selling": Listing.price_selling,
    "deposit": Listing.deposit,
    "rent": Listing.rent,
    "area_private_m2": Listing.area_private_m2,
    "area_supply_m2": Listing.area_supply_m2,
    "floor": Listing.floor,
    "total_floors": Listing.total_floors,
}


class ListingRepository:
    """Repository for Listing data access. Every query is filtered by tenant."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, listing: Listing) -> Listing:
        """Create a new listing"""
        self.db.add(listing)
        self.db.commit()
        self.db.refresh(listing)
        return listing

    def get_by_id_and_tenant(self, listing_id: int, tenant_id: int) -> Listing | None:
        """
        Get listing by ID, ensuring it belongs to the tenant.

        Returns:
            Listing object or None if not found or belongs to different tenant
        """
        return (
            self.db.query(Listing)
            .filter(Listing.id == listing_id, Listing.tenant_id == tenant_id)
            .first()
        )

    def get_by_tenant(
        self,
        tenant_id: int,
        address: str | None = None,
        search: str | None = None,
        statuses: list[ListingStatus] | None = None,
        transaction_types: list[TransactionType] | None = None,
        property_types: list[ListingPropertyType] | None = None,
        sort: str = "created_at",
        descending: bool = True,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Listing], int]:
        """
        Get a page of the tenant's listings with optional filters.

        Args:
            tenant_id: Tenant ID
            address: Only listings of this address group
            search: Substring matched against detail address, name, memo
                and owner contact
            statuses, transaction_types, property_types: Value filters
            sort: Column name from SORTABLE_COLUMNS (unknown names sort by
                created_at)
            descending: Sort direction
            limit: Max results
            offset: Pagination offset

        Returns:
            Tuple of (listings list, total count)
        """
        query = self.db.query(Listing).filter(Listing.tenant_id == tenant_id)
        if address:
            query = query.filter(Listing.address == address)
        query = apply_text_search(
            query,
            search,
            [Listing.address_detail, Listing.name, Listing.memo],
            phone_columns=[Listing.owner_contact],
        )
        query = apply_in_filters(
            query,
            {
                Listing.status: statuses,
                Listing.transaction_type: transaction_types,
                Listing.property_type: property_types,
            },
        )
        total = query.count()

        column = SORTABLE_COLUMNS.get(sort, Listing.created_at)
        order = column.desc() if descending else column.asc()
        tiebreak = Listing.id.desc() if descending else Listing.id.asc()
        listings = query.order_by(order, tiebreak).limit(limit).offset(offset).all()
        return listings, total

    def get_group_rows(self, tenant_id: int) -> list[Listing]:
        """All of the tenant's listings, newest first (input for address grouping)"""
        return (
            self.db.query(Listing)
            .filter(Listing.tenant_id == tenant_id)
            .order_by(Listing.created_at.desc(), Listing.id.desc())
            .all()
        )

    def rename_group(self, tenant_id: int, address: str, name: str) -> int:
        """Set the name of every listing at an address; returns rows changed"""
        changed = (
            self.db.query(Listing)
            .filter(Listing.tenant_id == tenant_id, Listing.address == address)
            .update({Listing.name: name}, synchronize_session=False)
        )
        self.db.commit()
        return changed

    def update(self, listing: Listing) -> Listing:
        """Update a listing"""
        self.db.commit()
        self.db.refresh(listing)
        return listing

    def delete_by_ids(self, listing_ids: list[int], tenant_id: int) -> int:
        """Delete the tenant's listings among listing_ids; returns rows removed"""
        if not listing_ids:
            return 0
        listings = (
            self.db.query(Listing)
            .filter(Listing.id.in_(listing_ids), Listing.tenant_id == tenant_id)
            .all()
        )
        for listing in listings:
            self.db.delete(listing)
        self.db.commit()
        return len(listings)


class LeadListingRepository:
    """Listings proposed to leads, scoped by tenant"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, lead_id: int, listing_id: int, tenant_id: int) -> LeadListing | None:
        return (
            self.db.query(LeadListing)
            .filter(
                LeadListing.lead_id == lead_id,
                LeadListing.listing_id == listing_id,
                LeadListing.tenant_id == tenant_id,
            )
            .first()
        )

    def create(self, proposal: LeadListing) -> LeadListing:
        """
        Record a proposal.

        Raises:
            IntegrityError: If the listing was already proposed to the lead
        """
        self.db.add(proposal)
        self.db.commit()
        self.db.refresh(proposal)
        return proposal

    def get_listings_for_lead(self, lead_id: int, tenant_id: int) -> list[Listing]:
        """Listings proposed to a lead, most recent proposal first"""
        return (
            self.db.query(Listing)
            .join(LeadListing, LeadListing.listing_id == Listing.id)
            .filter(LeadListing.lead_id == lead_id, LeadListing.tenant_id == tenant_id)
            .order_by(LeadListing.created_at.desc(), LeadListing.id.desc())
            .all()
        )
