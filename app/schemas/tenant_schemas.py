from pydantic import BaseModel, Field
from datetime import datetime
from app.models.role import TenantRole, MembershipStatus


class TenantCreate(BaseModel):
    """Create a new agency (the caller becomes its OWNER)"""

    name: str = Field(..., min_length=1, max_length=50)
    license_no: str | None = Field(None, max_length=50)


class TenantResponse(BaseModel):
    """Tenant details response. invite_code is only filled in for owners."""

    id: int
    name: str
    license_no: str | None = None
    config: dict = Field(default_factory=dict)
    invite_code: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class UserTenantResponse(BaseModel):
    """A tenant the user belongs to, with the user's role in it"""

    id: int
    name: str
    role: TenantRole
    created_at: datetime
    updated_at: datetime


class TenantUpdate(BaseModel):
    """Update tenant details (OWNER only)"""

    name: str | None = Field(None, min_length=1, max_length=50)
    license_no: str | None = Field(None, max_length=50)
    config: dict | None = None


class TenantJoinRequest(BaseModel):
    """Join an agency with its invite code"""

    invite_code: str = Field(..., min_length=1, max_length=16)


class TenantJoinResponse(BaseModel):
    tenant_id: int
    tenant_name: str
    role: TenantRole


class InviteCodeResponse(BaseModel):
    invite_code: str


class TenantMemberResponse(BaseModel):
    """Tenant member details with user info"""

    id: int
    user_id: str
    name: str | None
    email: str | None
    role: TenantRole
    status: MembershipStatus
    joined_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}


class TenantRoleUpdate(BaseModel):
    """Update member's role (OWNER only)"""

    role: TenantRole = Field(..., description="New role to assign")


class TenantMemberRemoveResponse(BaseModel):
    """Response after removing member"""

    message: str
    removed_user_id: str
