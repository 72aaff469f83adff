from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_tenant_context, get_current_user, get_audit_service
from app.models.tenant_context import TenantContext
from app.models.user import User
from app.services.audit_service import AuditService
from app.services.tenant_service import TenantService
from app.schemas.tenant_schemas import (
    TenantCreate,
    TenantResponse,
    TenantUpdate,
    TenantJoinRequest,
    TenantJoinResponse,
    InviteCodeResponse,
    TenantMemberResponse,
    TenantRoleUpdate,
    TenantMemberRemoveResponse,
    UserTenantResponse,
)

router = APIRouter()


def _tenant_view(tenant, context_is_owner: bool) -> TenantResponse:
    response = TenantResponse.model_validate(tenant)
    if not context_is_owner:
        response.invite_code = None
    return response


@router.get("", response_model=list[UserTenantResponse])
async def list_user_tenants(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    List all agencies the authenticated user is an ACTIVE member of.

    This endpoint does not require a tenant context, which makes it useful
    for agency switching.
    """
    service = TenantService(db)
    return service.list_user_tenants(user)


@router.post("", response_model=TenantResponse, status_code=status.HTTP_201_CREATED)
async def create_tenant(
    tenant_data: TenantCreate,
    user: User = Depends(get_current_user),
    audit: AuditService = Depends(get_audit_service),
    db: Session = Depends(get_db),
):
    """
    Create a new agency.

    - The caller becomes its OWNER
    - Fails with 409 once the caller owns the maximum number of agencies
    """
    service = TenantService(db, audit)
    tenant = service.create_tenant(tenant_data, user)
    return _tenant_view(tenant, context_is_owner=True)


@router.post("/join", response_model=TenantJoinResponse)
async def join_tenant(
    join_request: TenantJoinRequest,
    user: User = Depends(get_current_user),
    audit: AuditService = Depends(get_audit_service),
    db: Session = Depends(get_db),
):
    """
    Join an agency as MEMBER using its invite code.
    """
    service = TenantService(db, audit)
    tenant, membership = service.join_by_invite_code(join_request.invite_code, user)
    return {"tenant_id": tenant.id, "tenant_name": tenant.name, "role": membership.role}


@router.get("/{agency_id}", response_model=TenantResponse)
async def get_tenant(
    context: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
):
    """
    Get agency details. The invite code is only shown to owners.
    """
    service = TenantService(db)
    return _tenant_view(service.get_tenant(context), context.is_owner())


@router.patch("/{agency_id}", response_model=TenantResponse)
async def update_tenant(
    tenant_update: TenantUpdate,
    context: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
):
    """
    Update agency details.

    - **Requires OWNER permissions**
    """
    service = TenantService(db)
    return _tenant_view(service.update_tenant(tenant_update, context), context.is_owner())


@router.post("/{agency_id}/invite-code", response_model=InviteCodeResponse)
async def refresh_invite_code(
    context: TenantContext = Depends(get_tenant_context),
    audit: AuditService = Depends(get_audit_service),
    db: Session = Depends(get_db),
):
    """
    Replace the agency's invite code; the old one stops working.

    - **Requires OWNER permissions**
    """
    service = TenantService(db, audit)
    return {"invite_code": service.refresh_invite_code(context)}


@router.get("/{agency_id}/members", response_model=list[TenantMemberResponse])
async def list_members(
    context: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
):
    """
    List all members of the agency with their roles and statuses.
    Available to all active members.
    """
    service = TenantService(db)
    return service.get_members(context)


@router.post("/{agency_id}/members/{user_id}/approve", response_model=TenantMemberResponse)
async def approve_member(
    user_id: str,
    context: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
):
    """
    Activate a pending (INVITED) member.

    - **Requires ADMIN or OWNER permissions**
    """
    service = TenantService(db)
    return service.approve_member(user_id, context)


@router.patch("/{agency_id}/members/{user_id}/role", response_model=TenantMemberResponse)
async def update_member_role(
    user_id: str,
    role_update: TenantRoleUpdate,
    context: TenantContext = Depends(get_tenant_context),
    audit: AuditService = Depends(get_audit_service),
    db: Session = Depends(get_db),
):
    """
    Update member's role.

    - **Requires OWNER permissions**
    - Cannot change an OWNER's role
    - Cannot change your own role
    """
    service = TenantService(db, audit)
    return service.update_member_role(user_id, role_update, context)


@router.delete(
    "/{agency_id}/members/{user_id}",
    response_model=TenantMemberRemoveResponse,
    status_code=status.HTTP_200_OK,
)
async def remove_member(
    user_id: str,
    context: TenantContext = Depends(get_tenant_context),
    audit: AuditService = Depends(get_audit_service),
    db: Session = Depends(get_db),
):
    """
    Remove member from agency.

    - **Requires ADMIN or OWNER permissions**
    - Cannot remove OWNER
    - Cannot remove yourself
    """
    service = TenantService(db, audit)
    service.remove_member(user_id, context)

    return {
        "message": "Member removed successfully",
        "removed_user_id": user_id,
    }
