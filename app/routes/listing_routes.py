from typing import Literal, Optional

from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_tenant_context
from app.models.lead import TransactionType
from app.models.listing import ListingPropertyType, ListingStatus
from app.models.tenant_context import TenantContext
from app.services.listing_service import ListingService
from app.schemas.listing_schemas import (
    ListingCreate,
    ListingUpdate,
    ListingResponse,
    ListingListResponse,
    ListingGroupResponse,
    ListingGroupRename,
    ListingGroupRenameResponse,
    ListingDeleteRequest,
    ListingDeleteResponse,
)

router = APIRouter()


@router.post("", response_model=ListingResponse, status_code=status.HTTP_201_CREATED)
def create_listing(
    listing_data: ListingCreate,
    context: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
):
    """
    Register a listing.

    - Assigned to the caller
    - Owner contact is stored as digits only
    """
    service = ListingService(db)
    return service.create_listing(listing_data, context)


@router.get("", response_model=ListingListResponse)
def list_listings(
    address: Optional[str] = Query(None, description="Only listings of this address group"),
    search: Optional[str] = Query(None, max_length=100, description="Detail address, name, memo or owner contact"),
    status_filter: Optional[list[ListingStatus]] = Query(None, alias="status"),
    transaction_type: Optional[list[TransactionType]] = Query(None),
    property_type: Optional[list[ListingPropertyType]] = Query(None),
    sort: str = Query("created_at", description="Unknown columns sort by created_at"),
    order: Literal["asc", "desc"] = Query("desc"),
    limit: int = Query(20, ge=1, le=100, description="Max results"),
    offset: int = Query(0, ge=0, description="Pagination offset"),
    context: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
):
    """
    List the agency's listings.
    """
    service = ListingService(db)
    listings, total = service.get_listings(
        context,
        address=address,
        search=search,
        statuses=status_filter,
        transaction_types=transaction_type,
        property_types=property_type,
        sort=sort,
        descending=order == "desc",
        limit=limit,
        offset=offset,
    )
    return ListingListResponse(listings=listings, total=total)


@router.delete("", response_model=ListingDeleteResponse)
def delete_listings(
    delete_request: ListingDeleteRequest,
    context: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
):
    """
    Delete several listings at once. Ids from other agencies are ignored.
    """
    service = ListingService(db)
    return {"deleted": service.delete_listings(delete_request.ids, context)}


@router.get("/groups", response_model=list[ListingGroupResponse])
def list_listing_groups(
    context: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
):
    """
    Listings grouped by address, newest group first.
    """
    service = ListingService(db)
    return service.get_groups(context)


@router.patch("/groups", response_model=ListingGroupRenameResponse)
def rename_listing_group(
    rename: ListingGroupRename,
    context: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
):
    """
    Rename every listing at an address.
    """
    service = ListingService(db)
    return {"updated": service.rename_group(rename.address, rename.name, context)}


@router.get("/{listing_id}", response_model=ListingResponse)
def get_listing(
    listing_id: int,
    context: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
):
    service = ListingService(db)
    return service.get_listing(listing_id, context)


@router.patch("/{listing_id}", response_model=ListingResponse)
def update_listing(
    listing_id: int,
    listing_data: ListingUpdate,
    context: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
):
    """
    Update a listing. Only fields present in the body are changed.
    """
    service = ListingService(db)
    return service.update_listing(listing_id, listing_data, context)
