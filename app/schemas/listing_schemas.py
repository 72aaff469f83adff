from datetime import datetime
from pydantic import BaseModel, Field, field_validator
from typing import Optional

from app.models.lead import TransactionType
from app.models.listing import ListingPropertyType, ListingStatus
from app.schemas.lead_schemas import normalize_phone, require_text


class ListingCreate(BaseModel):
    """Schema for registering a listing. Prices are in units of 10,000 KRW."""

    name: str = Field(..., min_length=1, max_length=100)
    address: str = Field(..., min_length=1, max_length=255)
    address_detail: Optional[str] = Field(None, max_length=100)
    property_type: ListingPropertyType
    transaction_type: TransactionType
    price_selling: Optional[int] = Field(None, ge=0)
    deposit: Optional[int] = Field(None, ge=0)
    rent: Optional[int] = Field(None, ge=0)
    admin_fee: Optional[int] = Field(None, ge=0)
    area_supply_m2: Optional[float] = Field(None, ge=0)
    area_private_m2: Optional[float] = Field(None, ge=0)
    floor: Optional[int] = None
    total_floors: Optional[int] = Field(None, ge=0)
    room_count: Optional[int] = Field(None, ge=0)
    bathroom_count: Optional[int] = Field(None, ge=0)
    direction: Optional[str] = Field(None, max_length=20)
    status: ListingStatus = ListingStatus.AVAILABLE
    owner_contact: Optional[str] = Field(None, max_length=20)
    memo: Optional[str] = Field(None, max_length=2000)

    @field_validator("name", "address")
    @classmethod
    def clean_text(cls, v: str) -> str:
        return require_text(v)

    @field_validator("owner_contact")
    @classmethod
    def clean_owner_contact(cls, v: Optional[str]) -> Optional[str]:
        return normalize_phone(v)


class ListingUpdate(BaseModel):
    """Partial listing update; only fields present in the body are applied"""

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    address: Optional[str] = Field(None, min_length=1, max_length=255)
    address_detail: Optional[str] = Field(None, max_length=100)
    property_type: Optional[ListingPropertyType] = None
    transaction_type: Optional[TransactionType] = None
    price_selling: Optional[int] = Field(None, ge=0)
    deposit: Optional[int] = Field(None, ge=0)
    rent: Optional[int] = Field(None, ge=0)
    admin_fee: Optional[int] = Field(None, ge=0)
    area_supply_m2: Optional[float] = Field(None, ge=0)
    area_private_m2: Optional[float] = Field(None, ge=0)
    floor: Optional[int] = None
    total_floors: Optional[int] = Field(None, ge=0)
    room_count: Optional[int] = Field(None, ge=0)
    bathroom_count: Optional[int] = Field(None, ge=0)
    direction: Optional[str] = Field(None, max_length=20)
    status: Optional[ListingStatus] = None
    assigned_user_id: Optional[str] = None
    owner_contact: Optional[str] = Field(None, max_length=20)
    memo: Optional[str] = Field(None, max_length=2000)

    @field_validator("name", "address")
    @classmethod
    def clean_text(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return require_text(v)

    @field_validator("owner_contact")
    @classmethod
    def clean_owner_contact(cls, v: Optional[str]) -> Optional[str]:
        return normalize_phone(v)


class ListingResponse(BaseModel):
    """Schema for listing response"""

    model_config = {"from_attributes": True}

    id: int
    tenant_id: int
    assigned_user_id: Optional[str]
    name: str
    address: str
    address_detail: Optional[str]
    property_type: ListingPropertyType
    transaction_type: TransactionType
    price_selling: Optional[int]
    deposit: Optional[int]
    rent: Optional[int]
    admin_fee: Optional[int]
    area_supply_m2: Optional[float]
    area_private_m2: Optional[float]
    floor: Optional[int]
    total_floors: Optional[int]
    room_count: Optional[int]
    bathroom_count: Optional[int]
    direction: Optional[str]
    status: ListingStatus
    owner_contact: Optional[str]
    memo: Optional[str]
    created_at: datetime
    updated_at: datetime


class ListingListResponse(BaseModel):
    listings: list[ListingResponse]
    total: int


class ListingGroupResponse(BaseModel):
    """Listings sharing an address, summarized by the newest one"""

    address: str
    name: str
    count: int
    latest_status: ListingStatus


class ListingGroupRename(BaseModel):
    address: str = Field(..., min_length=1, max_length=255)
    name: str = Field(..., min_length=1, max_length=100)

    @field_validator("name")
    @classmethod
    def clean_name(cls, v: str) -> str:
        return require_text(v)


class ListingGroupRenameResponse(BaseModel):
    updated: int


class ListingDeleteRequest(BaseModel):
    ids: list[int] = Field(..., min_length=1)


class ListingDeleteResponse(BaseModel):
    deleted: int
