import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.lead import TransactionType
from app.models.listing import LeadListing, Listing, ListingPropertyType, ListingStatus
from app.models.tenant_context import TenantContext
from app.repositories.lead_repository import LeadRepository
from app.repositories.listing_repository import LeadListingRepository, ListingRepository
from app.repositories.tenant_membership_repository import TenantMembershipRepository
from app.schemas.listing_schemas import ListingCreate, ListingGroupResponse, ListingUpdate
from app.core.exceptions import InternalErrorException, NotFoundException, ValidationException

logger = logging.getLogger(__name__)

# Columns that may not be cleared by an explicit null
NON_NULLABLE_FIELDS = {"name", "address", "property_type", "transaction_type", "status"}


class ListingService:
    """Service layer for an agency's listings and the listings proposed to its leads"""

    def __init__(self, db: Session):
        self.db = db
        self.listing_repo = ListingRepository(db)
        self.proposal_repo = LeadListingRepository(db)
        self.lead_repo = LeadRepository(db)
        self.membership_repo = TenantMembershipRepository(db)

    def get_listings(
        self,
        context: TenantContext,
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
        return self.listing_repo.get_by_tenant(
            context.tenant_id,
            address=address,
            search=search,
            statuses=statuses,
            transaction_types=transaction_types,
            property_types=property_types,
            sort=sort,
            descending=descending,
            limit=limit,
            offset=offset,
        )

    def get_listing(self, listing_id: int, context: TenantContext) -> Listing:
        """
        Get listing by ID within the tenant.

        Raises:
            NotFoundException: If listing doesn't exist or belongs to another tenant
        """
        listing = self.listing_repo.get_by_id_and_tenant(listing_id, context.tenant_id)
        if not listing:
            raise NotFoundException(f"Listing {listing_id} not found")
        return listing

    def create_listing(self, listing_data: ListingCreate, context: TenantContext) -> Listing:
        """Register a listing, assigned to the caller"""
        listing = Listing(
            tenant_id=context.tenant_id,
            assigned_user_id=context.user_id,
            **listing_data.model_dump(),
        )
        listing = self.listing_repo.create(listing)
        logger.info("Listing %s created in tenant %s", listing.id, context.tenant_id)
        return listing

    def update_listing(
        self, listing_id: int, listing_data: ListingUpdate, context: TenantContext
    ) -> Listing:
        """
        Apply the fields present in the request body.

        Raises:
            NotFoundException: If listing doesn't exist in the tenant
            ValidationException: If a required field is cleared or the
                assignee is not an active member
        """
        listing = self.get_listing(listing_id, context)
        changes = listing_data.model_dump(exclude_unset=True)

        cleared = sorted(field for field in NON_NULLABLE_FIELDS if field in changes and changes[field] is None)
        if cleared:
            raise ValidationException(f"Fields cannot be empty: {', '.join(cleared)}")

        assignee = changes.get("assigned_user_id")
        if assignee and not self.membership_repo.get_active_membership(assignee, context.tenant_id):
            raise ValidationException("Assigned agent is not a member of this agency")

        for field, value in changes.items():
            setattr(listing, field, value)
        return self.listing_repo.update(listing)

    def delete_listings(self, listing_ids: list[int], context: TenantContext) -> int:
        """
        Delete several listings of the tenant. Ids of other tenants are ignored.

        Raises:
            NotFoundException: If none of the ids belong to the tenant
        """
        try:
            deleted = self.listing_repo.delete_by_ids(listing_ids, context.tenant_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("Bulk listing delete failed in tenant %s", context.tenant_id)
            raise InternalErrorException("Failed to delete listings") from e

        if not deleted:
            raise NotFoundException("Listings not found")
        logger.info("Deleted %d listings in tenant %s", deleted, context.tenant_id)
        return deleted

    def get_groups(self, context: TenantContext) -> list[ListingGroupResponse]:
        """
        Group the tenant's listings by address.

        Each group carries the name and status of its newest listing; groups
        are ordered by their newest listing.
        """
        groups: dict[str, ListingGroupResponse] = {}
        for listing in self.listing_repo.get_group_rows(context.tenant_id):
            group = groups.get(listing.address)
            if group is None:
                groups[listing.address] = ListingGroupResponse(
                    address=listing.address,
                    name=listing.name,
                    count=1,
                    latest_status=listing.status,
                )
            else:
                group.count += 1
        return list(groups.values())

    def rename_group(self, address: str, name: str, context: TenantContext) -> int:
        """
        Rename every listing at an address.

        Raises:
            NotFoundException: If the tenant has no listing at the address
        """
        updated = self.listing_repo.rename_group(context.tenant_id, address, name)
        if not updated:
            raise NotFoundException("Listing group not found")
        return updated

    def propose_listing(self, lead_id: int, listing_id: int, context: TenantContext) -> Listing:
        """
        Record that a listing was proposed to a lead. Repeating it is a no-op.

        Raises:
            NotFoundException: If lead or listing doesn't exist in the tenant
        """
        if not self.lead_repo.get_by_id_and_tenant(lead_id, context.tenant_id):
            raise NotFoundException(f"Lead {lead_id} not found")
        listing = self.get_listing(listing_id, context)

        if self.proposal_repo.get(lead_id, listing_id, context.tenant_id):
            return listing

        try:
            self.proposal_repo.create(
                LeadListing(
                    tenant_id=context.tenant_id,
                    lead_id=lead_id,
                    listing_id=listing_id,
                    proposed_by=context.user_id,
                )
            )
        except IntegrityError:
            # Recorded concurrently by another request
            self.db.rollback()
        return listing

    def get_proposed_listings(self, lead_id: int, context: TenantContext) -> list[Listing]:
        """
        Raises:
            NotFoundException: If lead doesn't exist in the tenant
        """
        if not self.lead_repo.get_by_id_and_tenant(lead_id, context.tenant_id):
            raise NotFoundException(f"Lead {lead_id} not found")
        return self.proposal_repo.get_listings_for_lead(lead_id, context.tenant_id)
