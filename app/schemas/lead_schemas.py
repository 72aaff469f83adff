import re
from datetime import date, datetime
from pydantic import BaseModel, Field, field_validator
from typing import Optional

from app.models.lead import LeadStage, PropertyType, TransactionType

NON_DIGITS = re.compile(r"\D")


def normalize_phone(value: Optional[str]) -> Optional[str]:
    """Strip everything but digits; an empty result becomes None"""
    if value is None:
        return None
    digits = NON_DIGITS.sub("", value)
    return digits or None


def require_text(value: str) -> str:
    """Strip surrounding whitespace; a blank value is rejected"""
    cleaned = value.strip()
    if not cleaned:
        raise ValueError("must not be blank")
    return cleaned


class LeadCreate(BaseModel):
    """Schema for creating a lead inside an agency"""

    name: str = Field(..., min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=20)
    email: Optional[str] = Field(None, max_length=255)
    source: Optional[str] = Field(None, max_length=50)
    stage: LeadStage = LeadStage.NEW
    assigned_user_id: Optional[str] = None
    property_type: Optional[PropertyType] = None
    transaction_type: Optional[TransactionType] = None
    price_min: int = Field(0, ge=0)
    price_max: int = Field(0, ge=0)
    deposit_min: int = Field(0, ge=0)
    deposit_max: int = Field(0, ge=0)
    preferred_region: Optional[str] = Field(None, max_length=100)
    move_in_date: Optional[date] = None
    message: Optional[str] = Field(None, max_length=2000)
    memo: Optional[str] = Field(None, max_length=2000)
    custom_id: Optional[str] = Field(None, max_length=50, description="Contract id if created at SUCCESS")

    @field_validator("name")
    @classmethod
    def clean_name(cls, v: str) -> str:
        return require_text(v)

    @field_validator("phone")
    @classmethod
    def clean_phone(cls, v: Optional[str]) -> Optional[str]:
        return normalize_phone(v)


class LeadUpdate(BaseModel):
    """
    Partial lead update.

    Only fields present in the request body are applied. custom_id and rent
    never touch the lead: they feed the contract created when the stage
    moves to SUCCESS.
    """

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=20)
    email: Optional[str] = Field(None, max_length=255)
    source: Optional[str] = Field(None, max_length=50)
    stage: Optional[LeadStage] = None
    assigned_user_id: Optional[str] = None
    property_type: Optional[PropertyType] = None
    transaction_type: Optional[TransactionType] = None
    price_min: Optional[int] = Field(None, ge=0)
    price_max: Optional[int] = Field(None, ge=0)
    deposit_min: Optional[int] = Field(None, ge=0)
    deposit_max: Optional[int] = Field(None, ge=0)
    preferred_region: Optional[str] = Field(None, max_length=100)
    move_in_date: Optional[date] = None
    message: Optional[str] = Field(None, max_length=2000)
    memo: Optional[str] = Field(None, max_length=2000)
    custom_id: Optional[str] = Field(None, max_length=50)
    rent: Optional[int] = Field(None, ge=0)

    @field_validator("name")
    @classmethod
    def clean_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return require_text(v)

    @field_validator("phone")
    @classmethod
    def clean_phone(cls, v: Optional[str]) -> Optional[str]:
        return normalize_phone(v)


class LeadResponse(BaseModel):
    """Schema for lead response"""

    model_config = {"from_attributes": True}

    id: int
    tenant_id: int
    stage: LeadStage
    assigned_user_id: Optional[str]
    name: str
    phone: Optional[str]
    email: Optional[str]
    source: Optional[str]
    property_type: Optional[PropertyType]
    transaction_type: Optional[TransactionType]
    price_min: int
    price_max: int
    deposit_min: int
    deposit_max: int
    preferred_region: Optional[str]
    move_in_date: Optional[date]
    message: Optional[str]
    memo: Optional[str]
    created_at: datetime
    updated_at: datetime


class LeadListResponse(BaseModel):
    """Schema for a page of leads"""

    leads: list[LeadResponse]
    total: int


class LeadDeleteRequest(BaseModel):
    """Bulk delete by lead ids"""

    ids: list[int] = Field(..., min_length=1)


class LeadDeleteResponse(BaseModel):
    deleted: int


class PublicLeadSubmit(BaseModel):
    """Inquiry submitted from an agency's public contact page"""

    agency_id: int = Field(..., gt=0)
    assigned_user_id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=100)
    phone: str = Field(..., min_length=1, max_length=20)
    email: Optional[str] = Field(None, max_length=255)
    property_type: Optional[PropertyType] = None
    transaction_type: Optional[TransactionType] = None
    preferred_region: Optional[str] = Field(None, max_length=100)
    move_in_date: Optional[date] = None
    message: Optional[str] = Field(None, max_length=2000)

    @field_validator("name")
    @classmethod
    def clean_name(cls, v: str) -> str:
        return require_text(v)


class PublicLeadResponse(BaseModel):
    id: int
    agency_id: int
    message: str = "Inquiry received"


class ReconcileResponse(BaseModel):
    """Outcome of a contract reconciliation run"""

    contracts_created: int
    contracts_deleted: int
    failed_lead_ids: list[int]
