import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import ForbiddenException
from app.models.principal import Principal
from app.models.tenant_context import TenantContext
from app.repositories.tenant_membership_repository import TenantMembershipRepository
from app.repositories.user_identity_repository import UserIdentityRepository
from app.services.identity_resolver import (
    DirectSubjectStrategy,
    IdentityResolver,
    LinkedIdentityStrategy,
    MembershipLookup,
)

logger = logging.getLogger(__name__)

ACCESS_DENIED = "Access denied"


class AccessControlResolver:
    """
    Answers "can principal P act within tenant T, and with what role?"

    Read-only. One instance per request: membership lookups and decisions
    are memoised on the instance and never shared across requests.
    """

    def __init__(self, db: Session):
        self.db = db
        self.memberships = MembershipLookup(TenantMembershipRepository(db))
        self.identity_resolver = IdentityResolver(
            [
                DirectSubjectStrategy(self.memberships),
                LinkedIdentityStrategy(UserIdentityRepository(db)),
            ]
        )
        self._decisions: dict[tuple[str, int], TenantContext | None] = {}

    def check(self, principal: Principal, tenant_id: int) -> TenantContext | None:
        """
        Decide access without raising.

        Returns:
            TenantContext for an ACTIVE membership reachable from the
            principal, or None when denied. Store errors deny (fail closed).
        """
        key = (principal.subject_id, tenant_id)
        if key not in self._decisions:
            self._decisions[key] = self._decide(principal, tenant_id)
        return self._decisions[key]

    def authorize(self, principal: Principal, tenant_id: int) -> TenantContext:
        """
        Require access to the tenant.

        Raises:
            ForbiddenException: Generic denial, identical whether the tenant
                does not exist or the principal merely lacks a membership
        """
        context = self.check(principal, tenant_id)
        if context is None:
            raise ForbiddenException(ACCESS_DENIED)
        return context

    def _decide(self, principal: Principal, tenant_id: int) -> TenantContext | None:
        try:
            user_id = self.identity_resolver.resolve(principal, tenant_id)
            if user_id is None:
                return None

            # Cached for the direct path, a fresh lookup for a linked user
            membership = self.memberships.active(user_id, tenant_id)
            if membership is None:
                return None

            return TenantContext(user_id=user_id, tenant_id=tenant_id, role=membership.role)

        except SQLAlchemyError:
            self.db.rollback()
            logger.warning(
                "Membership lookup failed for tenant %s; denying access", tenant_id, exc_info=True
            )
            return None
