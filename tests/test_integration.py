"""
Integration tests for Agency CRM API.

Tests complete workflows across multiple endpoints and the full stack
(routes → services → repositories → database).
"""

from app.models.audit_log import AuditAction, AuditLog
from tests.conftest import bearer


class TestCompleteAgencyWorkflow:
    """Integration tests for complete agency workflows"""

    def test_agency_from_signup_to_contract(self, client, db_session):
        """Owner creates an agency, an agent joins, a lead is won and then reopened"""
        owner = bearer("owner-1", email="boss@example.com")
        agent = bearer("agent-1", email="agent@example.com")

        # Step 1: Owner's first call auto-creates the user
        assert client.get("/api/agencies", headers=owner).json() == []

        # Step 2: Owner creates the agency and gets the invite code
        agency = client.post(
            "/api/agencies", headers=owner, json={"name": "Mapo Realty", "license_no": "11440-2026-0001"}
        ).json()
        agency_id = agency["id"]
        assert len(agency["invite_code"]) == 8

        # Step 3: Agent joins with the code
        client.get("/api/agencies", headers=agent)
        joined = client.post(
            "/api/agencies/join", headers=agent, json={"invite_code": agency["invite_code"].lower()}
        )
        assert joined.status_code == 200
        assert joined.json()["role"] == "MEMBER"

        members = client.get(f"/api/agencies/{agency_id}/members", headers=owner).json()
        assert {m["user_id"] for m in members} == {"owner-1", "agent-1"}

        # Step 4: A visitor leaves an inquiry for the agent
        inquiry = client.post(
            "/api/public/leads",
            json={"agency_id": agency_id, "assigned_user_id": "agent-1", "name": "Han Jisoo", "phone": "010-1111-2222"},
        )
        assert inquiry.status_code == 201
        lead_id = inquiry.json()["id"]

        # Step 5: Agent works the lead up to SUCCESS
        leads_url = f"/api/agencies/{agency_id}/leads"
        for stage in ("TRYING", "CONSULTING", "PROVISIONAL_CONTRACT"):
            response = client.patch(f"{leads_url}/{lead_id}", headers=agent, json={"stage": stage})
            assert response.status_code == 200
        assert client.get(f"/api/agencies/{agency_id}/contracts", headers=agent).json()["total"] == 0

        client.patch(
            f"{leads_url}/{lead_id}",
            headers=agent,
            json={"stage": "SUCCESS", "custom_id": "C-MAPO-1", "transaction_type": "WOLSE", "deposit_min": 1000, "rent": 65},
        )

        contracts = client.get(f"/api/agencies/{agency_id}/contracts", headers=owner).json()
        assert contracts["total"] == 1
        contract = contracts["contracts"][0]
        assert contract["custom_id"] == "C-MAPO-1"
        assert contract["transaction_type"] == "WOLSE"
        assert contract["deposit"] == 1000
        assert contract["rent"] == 65
        assert contract["user_id"] == "agent-1"
        assert contract["lead_name"] == "Han Jisoo"

        # Step 6: Deal falls through, the contract goes away
        client.patch(f"{leads_url}/{lead_id}", headers=agent, json={"stage": "TERMINATING"})
        assert client.get(f"/api/agencies/{agency_id}/contracts", headers=owner).json()["total"] == 0

        # Step 7: Audit trail holds the agency events without emails
        actions = [entry.action for entry in db_session.query(AuditLog).order_by(AuditLog.id).all()]
        assert actions[:2] == [AuditAction.TENANT_CREATED.value, AuditAction.TENANT_JOINED.value]
        for entry in db_session.query(AuditLog).all():
            assert "@" not in str(entry.details)


class TestMembershipLifecycleEndToEnd:
    """Access follows membership status across requests"""

    def test_removed_member_loses_access_immediately(
        self, client, shared_tenant, owner_membership, member_membership, auth_headers, member_headers
    ):
        leads_url = f"/api/agencies/{shared_tenant.id}/leads"
        assert client.get(leads_url, headers=member_headers).status_code == 200

        response = client.delete(f"/api/agencies/{shared_tenant.id}/members/member-user-456", headers=auth_headers)
        assert response.status_code == 200

        assert client.get(leads_url, headers=member_headers).status_code == 403

    def test_promoted_admin_can_reconcile(
        self, client, shared_tenant, owner_membership, member_membership, auth_headers, member_headers
    ):
        reconcile_url = f"/api/agencies/{shared_tenant.id}/leads/reconcile"
        assert client.post(reconcile_url, headers=member_headers).status_code == 403

        client.patch(
            f"/api/agencies/{shared_tenant.id}/members/member-user-456/role",
            headers=auth_headers,
            json={"role": "ADMIN"},
        )

        assert client.post(reconcile_url, headers=member_headers).status_code == 200


class TestMultiTenantEndToEnd:
    """Integration tests for multi-tenant isolation"""

    def test_complete_tenant_isolation(self, client, shared_tenant, other_tenant, owner_membership, auth_headers, other_headers):
        """Two agencies never see each other's leads or contracts"""
        mine = client.post(
            f"/api/agencies/{shared_tenant.id}/leads",
            headers=auth_headers,
            json={"name": "Mine", "stage": "SUCCESS"},
        ).json()
        theirs = client.post(
            f"/api/agencies/{other_tenant.id}/leads",
            headers=other_headers,
            json={"name": "Theirs", "stage": "SUCCESS"},
        ).json()

        # Cross-tenant reads through one's own agency are 404
        assert client.get(
            f"/api/agencies/{shared_tenant.id}/leads/{theirs['id']}", headers=auth_headers
        ).status_code == 404
        # Addressing the other agency directly is 403
        assert client.get(
            f"/api/agencies/{other_tenant.id}/leads/{theirs['id']}", headers=auth_headers
        ).status_code == 403

        # Bulk delete ignores foreign ids
        response = client.request(
            "DELETE",
            f"/api/agencies/{shared_tenant.id}/leads",
            headers=auth_headers,
            json={"ids": [mine["id"], theirs["id"]]},
        )
        assert response.json() == {"deleted": 1}

        other_contracts = client.get(f"/api/agencies/{other_tenant.id}/contracts", headers=other_headers).json()
        assert other_contracts["total"] == 1
        assert other_contracts["contracts"][0]["lead_id"] == theirs["id"]


class TestErrorHandlingEndToEnd:
    """Integration tests for error handling"""

    def test_unauthorized_access_to_protected_endpoints(self, client, shared_tenant):
        """All tenant endpoints require authentication"""
        endpoints = [
            ("GET", "/api/agencies"),
            ("POST", "/api/agencies"),
            ("GET", f"/api/agencies/{shared_tenant.id}"),
            ("GET", f"/api/agencies/{shared_tenant.id}/leads"),
            ("GET", f"/api/agencies/{shared_tenant.id}/contracts"),
            ("POST", f"/api/agencies/{shared_tenant.id}/leads/reconcile"),
        ]

        for method, url in endpoints:
            response = client.request(method, url)
            assert response.status_code == 401, f"{method} {url}"

    def test_error_bodies_are_generic(self, client, shared_tenant, owner_membership, other_headers):
        """Denials do not reveal whether the agency exists"""
        existing = client.get(f"/api/agencies/{shared_tenant.id}/leads", headers=other_headers)
        missing = client.get("/api/agencies/999999/leads", headers=other_headers)

        assert existing.status_code == missing.status_code == 403
        assert existing.json() == missing.json()
