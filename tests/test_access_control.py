import pytest
from sqlalchemy.exc import OperationalError

from app.core.exceptions import ForbiddenException
from app.models.principal import LinkedIdentity, Principal
from app.models.role import TenantRole, MembershipStatus
from app.models.user import User
from app.models.user_identity import UserIdentity
from app.repositories.tenant_membership_repository import TenantMembershipRepository
from app.services.access_control import AccessControlResolver, ACCESS_DENIED
from tests.conftest import add_member, bearer


@pytest.fixture
def legacy_member(db_session, shared_tenant):
    """Internal user U1 with an ACTIVE membership, reachable via link xyz"""
    user = User(id="U1", name="Legacy Agent")
    db_session.add(user)
    db_session.commit()
    db_session.add(UserIdentity(user_id="U1", provider="kakao", provider_user_id="xyz"))
    db_session.commit()
    return add_member(db_session, shared_tenant, user, TenantRole.ADMIN)


class TestAuthorize:
    """AccessControlResolver decisions"""

    def test_direct_membership_grants_role(self, db_session, shared_tenant, owner_membership):
        """The fast path returns the subject with its role"""
        context = AccessControlResolver(db_session).authorize(
            Principal(subject_id="test-user-123"), shared_tenant.id
        )

        assert context.user_id == "test-user-123"
        assert context.tenant_id == shared_tenant.id
        assert context.role == TenantRole.OWNER

    def test_linked_identity_grants_access(self, db_session, shared_tenant, legacy_member):
        """Subject abc without membership reaches U1 through link xyz"""
        principal = Principal(subject_id="abc", identities=(LinkedIdentity("kakao", "xyz"),))

        context = AccessControlResolver(db_session).authorize(principal, shared_tenant.id)

        assert context.user_id == "U1"
        assert context.role == TenantRole.ADMIN

    def test_linked_user_needs_active_membership(self, db_session, shared_tenant, legacy_member):
        """A link to a user who LEFT the tenant grants nothing"""
        legacy_member.status = MembershipStatus.LEFT
        db_session.commit()
        principal = Principal(subject_id="abc", identities=(LinkedIdentity("kakao", "xyz"),))

        assert AccessControlResolver(db_session).check(principal, shared_tenant.id) is None

    def test_linked_user_in_another_tenant_denied(self, db_session, shared_tenant, other_tenant, legacy_member):
        """Membership is per tenant even through a link"""
        principal = Principal(subject_id="abc", identities=(LinkedIdentity("kakao", "xyz"),))

        assert AccessControlResolver(db_session).check(principal, other_tenant.id) is None

    def test_unknown_principal_denied(self, db_session, shared_tenant):
        """No membership and no link is a generic denial"""
        with pytest.raises(ForbiddenException) as exc:
            AccessControlResolver(db_session).authorize(Principal(subject_id="nobody"), shared_tenant.id)

        assert str(exc.value) == ACCESS_DENIED

    def test_missing_tenant_denied_generically(self, db_session, owner_membership):
        """A tenant that does not exist produces the same denial"""
        with pytest.raises(ForbiddenException) as exc:
            AccessControlResolver(db_session).authorize(Principal(subject_id="test-user-123"), 424242)

        assert str(exc.value) == ACCESS_DENIED

    def test_store_failure_fails_closed(self, db_session, shared_tenant, owner_membership, monkeypatch):
        """A datastore error denies instead of raising"""

        def broken(self, user_id, tenant_id):
            raise OperationalError("SELECT 1", {}, Exception("database is down"))

        monkeypatch.setattr(TenantMembershipRepository, "get_active_membership", broken)

        resolver = AccessControlResolver(db_session)
        assert resolver.check(Principal(subject_id="test-user-123"), shared_tenant.id) is None
        with pytest.raises(ForbiddenException):
            resolver.authorize(Principal(subject_id="test-user-123"), shared_tenant.id)

    def test_decisions_memoised_per_resolver(self, db_session, shared_tenant, owner_membership, monkeypatch):
        """A second check on the same resolver does not touch the store"""
        resolver = AccessControlResolver(db_session)
        principal = Principal(subject_id="test-user-123")
        first = resolver.check(principal, shared_tenant.id)

        def unreachable(self, user_id, tenant_id):
            raise AssertionError("store consulted twice")

        monkeypatch.setattr(TenantMembershipRepository, "get_active_membership", unreachable)

        assert resolver.check(principal, shared_tenant.id) == first

    def test_new_resolver_sees_membership_changes(self, db_session, shared_tenant, member_membership):
        """Nothing is cached across resolver instances"""
        principal = Principal(subject_id="member-user-456")
        assert AccessControlResolver(db_session).check(principal, shared_tenant.id) is not None

        member_membership.status = MembershipStatus.LEFT
        db_session.commit()

        assert AccessControlResolver(db_session).check(principal, shared_tenant.id) is None


class TestTenantScopedEndpoints:
    """Access control as seen through the HTTP layer"""

    def test_linked_identity_token_can_list_leads(self, client, shared_tenant, legacy_member):
        """A token for subject abc with identity xyz acts as U1"""
        headers = bearer("abc", identities=[{"provider": "kakao", "id": "xyz"}])

        response = client.get(f"/api/agencies/{shared_tenant.id}/leads", headers=headers)

        assert response.status_code == 200

    def test_denied_before_any_mutation(self, client, db_session, shared_tenant, other_tenant, other_headers):
        """An outsider's create attempt is refused and writes nothing"""
        from app.models.lead import Lead

        response = client.post(
            f"/api/agencies/{shared_tenant.id}/leads", headers=other_headers, json={"name": "Intruder"}
        )

        assert response.status_code == 403
        assert db_session.query(Lead).count() == 0

    def test_invited_member_denied(self, client, db_session, shared_tenant, member_user):
        """INVITED memberships do not grant access"""
        add_member(db_session, shared_tenant, member_user, TenantRole.MEMBER, MembershipStatus.INVITED)

        response = client.get(f"/api/agencies/{shared_tenant.id}/leads", headers=bearer(member_user.id))

        assert response.status_code == 403
        assert response.json()["detail"] == ACCESS_DENIED
