from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_tenant_context
from app.models.tenant_context import TenantContext
from app.services.contract_service import ContractService
from app.schemas.contract_schemas import (
    ContractUpdate,
    ContractResponse,
    ContractListResponse,
)

router = APIRouter()


@router.get("", response_model=ContractListResponse)
def list_contracts(
    limit: int = Query(20, ge=1, le=100, description="Max results"),
    offset: int = Query(0, ge=0, description="Pagination offset"),
    context: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
):
    """
    List the agency's contracts, newest first, with lead name and phone.
    """
    service = ContractService(db)
    contracts, total = service.get_contracts(context, limit=limit, offset=offset)
    return ContractListResponse(contracts=contracts, total=total)


@router.get("/{contract_id}", response_model=ContractResponse)
def get_contract(
    contract_id: int,
    context: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
):
    """
    Get a specific contract by ID.
    """
    service = ContractService(db)
    return service.get_contract(contract_id, context)


@router.patch("/{contract_id}", response_model=ContractResponse)
def update_contract(
    contract_id: int,
    contract_data: ContractUpdate,
    context: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
):
    """
    Edit a contract's id, date, type, amounts or status.

    Contracts are created and deleted through lead stage changes only.
    """
    service = ContractService(db)
    return service.update_contract(contract_id, contract_data, context)
