"""
Identity resolution for tenant-scoped requests.

Maps an authenticated Principal to the internal user id that should be
checked against a tenant's memberships. Resolution is an ordered chain of
strategies; the first one to produce a user id wins:

1. DirectSubjectStrategy - the provider subject id is itself the internal
   user id and holds an ACTIVE membership in the tenant (common case).
2. LinkedIdentityStrategy - one hop through the legacy identity links of the
   principal's sub-identities, in the order the provider listed them.

A chain over k sub-identities performs at most 1 + k lookups. Subject and
provider ids are never logged.
"""

import logging
from typing import Protocol

from app.models.principal import Principal
from app.repositories.tenant_membership_repository import TenantMembershipRepository
from app.repositories.user_identity_repository import UserIdentityRepository
from app.models.tenant_membership import TenantMembership

logger = logging.getLogger(__name__)


class MembershipLookup:
    """
    Request-scoped memo over ACTIVE membership lookups.

    Built per request, so a membership change is visible to the next
    request at the latest.
    """

    def __init__(self, membership_repo: TenantMembershipRepository):
        self.membership_repo = membership_repo
        self._cache: dict[tuple[str, int], TenantMembership | None] = {}

    def active(self, user_id: str, tenant_id: int) -> TenantMembership | None:
        key = (user_id, tenant_id)
        if key not in self._cache:
            self._cache[key] = self.membership_repo.get_active_membership(user_id, tenant_id)
        return self._cache[key]


class ResolverStrategy(Protocol):
    """One way of turning a principal into an internal user id."""

    name: str

    def resolve(self, principal: Principal, tenant_id: int) -> str | None: ...


class DirectSubjectStrategy:
    """Treat the subject id as the internal user id if it is an ACTIVE member."""

    name = "direct"

    def __init__(self, memberships: MembershipLookup):
        self.memberships = memberships

    def resolve(self, principal: Principal, tenant_id: int) -> str | None:
        if self.memberships.active(principal.subject_id, tenant_id) is None:
            return None
        return principal.subject_id


class LinkedIdentityStrategy:
    """Follow the first linked sub-identity that maps to an internal user."""

    name = "linked_identity"

    def __init__(self, identity_repo: UserIdentityRepository):
        self.identity_repo = identity_repo

    def resolve(self, principal: Principal, tenant_id: int) -> str | None:
        for identity in principal.identities:
            link = self.identity_repo.get_by_provider_user_id(
                identity.provider_user_id, identity.provider
            )
            if link is None:
                continue
            # Same id as the subject means the direct path already said no
            if link.user_id == principal.subject_id:
                return None
            return link.user_id
        return None


class IdentityResolver:
    """Runs resolver strategies in order and returns the first hit."""

    def __init__(self, strategies: list[ResolverStrategy]):
        self.strategies = strategies

    def resolve(self, principal: Principal, tenant_id: int) -> str | None:
        """
        Resolve the internal user id for a principal acting in a tenant.

        Returns:
            Internal user id, or None if no strategy matched
        """
        for strategy in self.strategies:
            user_id = strategy.resolve(principal, tenant_id)
            if user_id is not None:
                logger.debug("Principal resolved via %s for tenant %s", strategy.name, tenant_id)
                return user_id
        return None
