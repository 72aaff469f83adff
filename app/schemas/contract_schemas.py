from datetime import date, datetime
from pydantic import BaseModel, Field
from typing import Optional

from app.models.contract import ContractStatus
from app.models.lead import TransactionType


class ContractUpdate(BaseModel):
    """Schema for editing a contract. lead_id and tenant_id are fixed."""

    custom_id: Optional[str] = Field(None, max_length=50)
    contract_date: Optional[date] = None
    transaction_type: Optional[TransactionType] = None
    price: Optional[int] = Field(None, ge=0)
    deposit: Optional[int] = Field(None, ge=0)
    rent: Optional[int] = Field(None, ge=0)
    status: Optional[ContractStatus] = None


class ContractResponse(BaseModel):
    """Schema for contract response, including the originating lead's contact"""

    model_config = {"from_attributes": True}

    id: int
    tenant_id: int
    lead_id: int
    user_id: Optional[str]
    custom_id: Optional[str]
    contract_date: date
    transaction_type: TransactionType
    price: int
    deposit: int
    rent: int
    status: ContractStatus
    lead_name: Optional[str] = None
    lead_phone: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ContractListResponse(BaseModel):
    """Schema for a page of contracts"""

    contracts: list[ContractResponse]
    total: int
