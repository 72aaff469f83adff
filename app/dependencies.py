from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from app.core.security import extract_principal
from app.core.exceptions import UnauthorizedException
from app.database import get_db
from app.models.principal import Principal
from app.models.tenant_context import TenantContext
from app.models.user import User
from app.services.access_control import AccessControlResolver
from app.services.audit_service import AuditService, get_client_ip
from app.services.user_service import UserService

security = HTTPBearer()


async def get_principal(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> Principal:
    """
    FastAPI dependency to validate the JWT and build the Principal.

    Flow:
    1. Extract token from Authorization: Bearer <token>
    2. Validate JWT using shared SECRET_KEY
    3. Read subject id, email, name and linked identities from the claims

    Raises:
        HTTPException 401: If token invalid or expired
    """
    try:
        return extract_principal(credentials.credentials)
    except UnauthorizedException as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_current_user(
    principal: Principal = Depends(get_principal), db: Session = Depends(get_db)
) -> User:
    """
    Get or auto-create the internal User behind the principal.

    Used by endpoints that are not scoped to an agency yet.
    """
    return UserService(db).get_or_create_for_principal(principal)


async def get_tenant_context(
    agency_id: int,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> TenantContext:
    """
    Authorize the principal inside the agency from the path.

    A fresh AccessControlResolver per request, so membership changes apply
    to the next request.

    Raises:
        ForbiddenException: Access denied (also when the agency doesn't exist)
    """
    return AccessControlResolver(db).authorize(principal, agency_id)


async def get_audit_service(request: Request, db: Session = Depends(get_db)) -> AuditService:
    """Audit sink stamped with the caller's address"""
    return AuditService(db, source_address=get_client_ip(request))
