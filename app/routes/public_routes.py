from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.services.lead_service import LeadService
from app.schemas.lead_schemas import PublicLeadSubmit, PublicLeadResponse

router = APIRouter()


@router.post("/leads", response_model=PublicLeadResponse, status_code=status.HTTP_201_CREATED)
def submit_public_lead(
    submission: PublicLeadSubmit,
    db: Session = Depends(get_db),
):
    """
    Submit an inquiry from an agency's public contact page.

    - No authentication
    - Phone must be a Korean mobile number (dashes allowed)
    - The optional agent must be an active member of the agency
    """
    service = LeadService(db)
    lead = service.submit_public_lead(submission)
    return PublicLeadResponse(id=lead.id, agency_id=lead.tenant_id)
