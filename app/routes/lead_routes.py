from typing import Optional

from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_tenant_context, get_audit_service
from app.models.lead import LeadStage, PropertyType, TransactionType
from app.models.tenant_context import TenantContext
from app.services.audit_service import AuditService
from app.services.lead_service import LeadService
from app.services.listing_service import ListingService
from app.schemas.listing_schemas import ListingResponse
from app.schemas.lead_schemas import (
    LeadCreate,
    LeadUpdate,
    LeadResponse,
    LeadListResponse,
    LeadDeleteRequest,
    LeadDeleteResponse,
    ReconcileResponse,
)

router = APIRouter()


@router.post("", response_model=LeadResponse, status_code=status.HTTP_201_CREATED)
def create_lead(
    lead_data: LeadCreate,
    context: TenantContext = Depends(get_tenant_context),
    audit: AuditService = Depends(get_audit_service),
    db: Session = Depends(get_db),
):
    """
    Create a new lead.

    - Assigned to the caller unless another active member is given
    - Phone is stored as digits only
    - A lead created at SUCCESS gets a DRAFT contract
    """
    service = LeadService(db, audit)
    return service.create_lead(lead_data, context)


@router.get("", response_model=LeadListResponse)
def list_leads(
    limit: int = Query(20, ge=1, le=100, description="Max results"),
    offset: int = Query(0, ge=0, description="Pagination offset"),
    search: Optional[str] = Query(None, max_length=100, description="Name, phone, email, source or message"),
    stage: Optional[list[LeadStage]] = Query(None, description="Repeat to match several stages"),
    transaction_type: Optional[list[TransactionType]] = Query(None),
    property_type: Optional[list[PropertyType]] = Query(None),
    context: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
):
    """
    List the agency's leads, newest first.

    - **search**: case-insensitive substring; phone matches on digits
    - **stage**, **transaction_type**, **property_type**: value filters
    """
    service = LeadService(db)
    leads, total = service.get_leads(
        context,
        limit=limit,
        offset=offset,
        search=search,
        stages=stage,
        transaction_types=transaction_type,
        property_types=property_type,
    )
    return LeadListResponse(leads=leads, total=total)


@router.delete("", response_model=LeadDeleteResponse)
def delete_leads(
    delete_request: LeadDeleteRequest,
    context: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
):
    """
    Delete several leads at once.

    - Contracts of the deleted leads are removed first
    - Ids from other agencies are ignored
    """
    service = LeadService(db)
    return {"deleted": service.delete_leads(delete_request.ids, context)}


@router.post("/reconcile", response_model=ReconcileResponse)
def reconcile_contracts(
    context: TenantContext = Depends(get_tenant_context),
    audit: AuditService = Depends(get_audit_service),
    db: Session = Depends(get_db),
):
    """
    Re-create missing contracts for SUCCESS leads and drop stale ones.

    - **Requires ADMIN or OWNER permissions**
    """
    service = LeadService(db, audit)
    report = service.reconcile_contracts(context)
    return ReconcileResponse(
        contracts_created=report.contracts_created,
        contracts_deleted=report.contracts_deleted,
        failed_lead_ids=report.failed_lead_ids,
    )


@router.get("/{lead_id}", response_model=LeadResponse)
def get_lead(
    lead_id: int,
    context: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
):
    """
    Get a specific lead by ID.
    """
    service = LeadService(db)
    return service.get_lead(lead_id, context)


@router.patch("/{lead_id}", response_model=LeadResponse)
def update_lead(
    lead_id: int,
    lead_data: LeadUpdate,
    context: TenantContext = Depends(get_tenant_context),
    audit: AuditService = Depends(get_audit_service),
    db: Session = Depends(get_db),
):
    """
    Update a lead.

    - Only fields present in the body are changed
    - Moving to SUCCESS creates a DRAFT contract (custom_id and rent may be given)
    - Moving away from SUCCESS deletes the lead's contract
    - A failed contract update never fails the request
    """
    service = LeadService(db, audit)
    return service.update_lead(lead_id, lead_data, context)


@router.get("/{lead_id}/listings", response_model=list[ListingResponse])
def list_proposed_listings(
    lead_id: int,
    context: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
):
    """
    Listings proposed to a lead, most recent proposal first.
    """
    service = ListingService(db)
    return service.get_proposed_listings(lead_id, context)


@router.post(
    "/{lead_id}/listings/{listing_id}",
    response_model=ListingResponse,
    status_code=status.HTTP_201_CREATED,
)
def propose_listing(
    lead_id: int,
    listing_id: int,
    context: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
):
    """
    Propose a listing to a lead.

    - Lead and listing must both belong to the agency
    - Proposing the same listing twice is a no-op
    """
    service = ListingService(db)
    return service.propose_listing(lead_id, listing_id, context)
