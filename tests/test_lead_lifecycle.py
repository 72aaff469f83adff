import re
from datetime import date

import pytest
from sqlalchemy.exc import OperationalError

from app.core.exceptions import InternalErrorException, NotFoundException
from app.models.audit_log import AuditAction
from app.models.contract import Contract, ContractStatus
from app.models.lead import LeadStage, TransactionType
from app.repositories.audit_log_repository import AuditLogRepository
from app.repositories.contract_repository import ContractRepository
from app.repositories.lead_repository import LeadRepository
from app.schemas.lead_schemas import LeadUpdate
from app.services.lead_lifecycle import (
    ContractTerms,
    FieldUpdate,
    LeadLifecycleEngine,
    StageTransition,
    generate_contract_id,
    plan_lead_update,
)
from tests.conftest import create_lead


def store_down(*args, **kwargs):
    raise OperationalError("INSERT", {}, Exception("database is down"))


def contracts_for(db, lead) -> list[Contract]:
    return db.query(Contract).filter_by(lead_id=lead.id).all()


class TestPlanLeadUpdate:
    """Patch payloads resolved into intents"""

    def test_field_only_patch(self, db_session, shared_tenant):
        """Plain changes produce a single FieldUpdate"""
        lead = create_lead(db_session, shared_tenant)

        intents = plan_lead_update(lead, LeadUpdate(memo="called twice"))

        assert intents == [FieldUpdate(changes={"memo": "called twice"})]

    def test_stage_change_produces_transition(self, db_session, shared_tenant):
        """A different stage produces a StageTransition"""
        lead = create_lead(db_session, shared_tenant, stage=LeadStage.CONSULTING)

        intents = plan_lead_update(lead, LeadUpdate(stage=LeadStage.SUCCESS))

        assert len(intents) == 1
        transition = intents[0]
        assert isinstance(transition, StageTransition)
        assert transition.from_stage == LeadStage.CONSULTING
        assert transition.to_stage == LeadStage.SUCCESS

    def test_same_stage_is_not_a_transition(self, db_session, shared_tenant):
        """Re-sending the current stage plans nothing"""
        lead = create_lead(db_session, shared_tenant, stage=LeadStage.SUCCESS)

        assert plan_lead_update(lead, LeadUpdate(stage=LeadStage.SUCCESS)) == []

    def test_contract_fields_never_touch_lead(self, db_session, shared_tenant):
        """custom_id and rent feed the contract terms only"""
        lead = create_lead(db_session, shared_tenant)

        intents = plan_lead_update(
            lead, LeadUpdate(stage=LeadStage.SUCCESS, custom_id="C-X", rent=50)
        )

        assert not any(isinstance(intent, FieldUpdate) for intent in intents)
        assert intents[0].terms.custom_id == "C-X"
        assert intents[0].terms.rent == 50

    def test_terms_prefer_patch_over_lead(self, db_session, shared_tenant):
        """Patch values win, lead values fill the gaps"""
        lead = create_lead(
            db_session,
            shared_tenant,
            transaction_type=TransactionType.JEONSE,
            price_min=30000,
            deposit_min=5000,
        )

        intents = plan_lead_update(lead, LeadUpdate(stage=LeadStage.SUCCESS, price_min=32000))
        terms = intents[-1].terms

        assert terms.transaction_type == TransactionType.JEONSE
        assert terms.price == 32000
        assert terms.deposit == 5000
        assert terms.rent == 0
        assert terms.custom_id is None

    def test_terms_default_to_sale_and_zero(self, db_session, shared_tenant):
        """A bare lead gives SALE with zero amounts"""
        lead = create_lead(db_session, shared_tenant)

        terms = plan_lead_update(lead, LeadUpdate(stage=LeadStage.SUCCESS))[-1].terms

        assert terms == ContractTerms()

    def test_explicit_null_transaction_type_gives_sale(self, db_session, shared_tenant):
        """Clearing the type in the same patch does not reuse the lead's old type"""
        lead = create_lead(db_session, shared_tenant, transaction_type=TransactionType.JEONSE)

        intents = plan_lead_update(
            lead, LeadUpdate.model_validate({"stage": "SUCCESS", "transaction_type": None})
        )

        assert intents[0] == FieldUpdate(changes={"transaction_type": None})
        assert intents[-1].terms.transaction_type == TransactionType.SALE

    def test_explicit_null_on_required_column_ignored(self, db_session, shared_tenant):
        """A null for a required lead column is dropped from the changes"""
        lead = create_lead(db_session, shared_tenant)

        intents = plan_lead_update(lead, LeadUpdate.model_validate({"price_min": None, "memo": None}))

        assert intents == [FieldUpdate(changes={"memo": None})]


class TestGenerateContractId:
    def test_format(self):
        """C-YYYYMMDD-XXXXXX"""
        contract_id = generate_contract_id(date(2026, 3, 9))

        assert re.fullmatch(r"C-20260309-[A-Z0-9]{6}", contract_id)


class TestApplyLeadUpdate:
    """Lead updates and the contract side effect"""

    def test_success_then_back_to_in_progress(self, db_session, shared_tenant, owner_membership):
        """Entering SUCCESS creates contract C-X; leaving SUCCESS deletes it"""
        lead = create_lead(db_session, shared_tenant)
        engine = LeadLifecycleEngine(db_session)

        engine.apply_lead_update(
            shared_tenant.id, lead.id, LeadUpdate(stage=LeadStage.SUCCESS, custom_id="C-X"), "test-user-123"
        )

        [contract] = contracts_for(db_session, lead)
        assert contract.custom_id == "C-X"
        assert contract.status == ContractStatus.DRAFT
        assert contract.lead_id == lead.id
        assert contract.tenant_id == shared_tenant.id
        assert contract.user_id == "test-user-123"
        assert contract.contract_date == date.today()

        engine.apply_lead_update(
            shared_tenant.id, lead.id, LeadUpdate(stage=LeadStage.IN_PROGRESS), "test-user-123"
        )

        assert contracts_for(db_session, lead) == []

    def test_cleared_transaction_type_reaches_contract(self, db_session, shared_tenant, owner_membership):
        lead = create_lead(db_session, shared_tenant, transaction_type=TransactionType.WOLSE)
        engine = LeadLifecycleEngine(db_session)

        engine.apply_lead_update(
            shared_tenant.id,
            lead.id,
            LeadUpdate.model_validate({"stage": "SUCCESS", "transaction_type": None}),
            "test-user-123",
        )

        db_session.refresh(lead)
        assert lead.transaction_type is None
        [contract] = contracts_for(db_session, lead)
        assert contract.transaction_type == TransactionType.SALE

    def test_success_twice_creates_one_contract(self, db_session, shared_tenant, owner_membership):
        """Applying stage=SUCCESS again is a no-op for the contract"""
        lead = create_lead(db_session, shared_tenant)
        engine = LeadLifecycleEngine(db_session)
        patch = LeadUpdate(stage=LeadStage.SUCCESS)

        engine.apply_lead_update(shared_tenant.id, lead.id, patch, "test-user-123")
        engine.apply_lead_update(shared_tenant.id, lead.id, patch, "test-user-123")

        assert len(contracts_for(db_session, lead)) == 1

    def test_generated_custom_id(self, db_session, shared_tenant, owner_membership):
        """Without custom_id the contract gets a generated one"""
        lead = create_lead(db_session, shared_tenant)

        LeadLifecycleEngine(db_session).apply_lead_update(
            shared_tenant.id, lead.id, LeadUpdate(stage=LeadStage.SUCCESS), "test-user-123"
        )

        [contract] = contracts_for(db_session, lead)
        assert re.fullmatch(r"C-\d{8}-[A-Z0-9]{6}", contract.custom_id)

    def test_contract_agent_falls_back_to_assignee(self, db_session, shared_tenant, member_user):
        """Without an actor the lead's assignee is responsible"""
        lead = create_lead(db_session, shared_tenant, assigned_user_id=member_user.id)

        LeadLifecycleEngine(db_session).apply_lead_update(
            shared_tenant.id, lead.id, LeadUpdate(stage=LeadStage.SUCCESS), None
        )

        [contract] = contracts_for(db_session, lead)
        assert contract.user_id == member_user.id

    def test_non_success_transition_without_contract(self, db_session, shared_tenant):
        """Deleting a missing contract is fine"""
        lead = create_lead(db_session, shared_tenant)

        updated = LeadLifecycleEngine(db_session).apply_lead_update(
            shared_tenant.id, lead.id, LeadUpdate(stage=LeadStage.TRYING), None
        )

        assert updated.stage == LeadStage.TRYING
        assert contracts_for(db_session, lead) == []

    def test_lead_of_other_tenant_not_found(self, db_session, shared_tenant, other_tenant):
        """A lead from another tenant is NotFound and stays untouched"""
        foreign = create_lead(db_session, other_tenant)

        with pytest.raises(NotFoundException):
            LeadLifecycleEngine(db_session).apply_lead_update(
                shared_tenant.id, foreign.id, LeadUpdate(stage=LeadStage.SUCCESS), None
            )

        db_session.refresh(foreign)
        assert foreign.stage == LeadStage.NEW
        assert contracts_for(db_session, foreign) == []

    def test_lead_store_failure_raises_before_side_effect(self, db_session, shared_tenant, monkeypatch):
        """A failed lead write is an InternalError and creates no contract"""
        lead = create_lead(db_session, shared_tenant)
        monkeypatch.setattr(LeadRepository, "update", store_down)

        with pytest.raises(InternalErrorException):
            LeadLifecycleEngine(db_session).apply_lead_update(
                shared_tenant.id, lead.id, LeadUpdate(stage=LeadStage.SUCCESS), None
            )

        db_session.refresh(lead)
        assert lead.stage == LeadStage.NEW
        assert contracts_for(db_session, lead) == []

    def test_contract_failure_is_audited_not_raised(self, db_session, shared_tenant, owner_membership, monkeypatch):
        """The lead update stands; the failed side effect is audited"""
        lead = create_lead(db_session, shared_tenant)
        monkeypatch.setattr(ContractRepository, "create", store_down)

        updated = LeadLifecycleEngine(db_session).apply_lead_update(
            shared_tenant.id, lead.id, LeadUpdate(stage=LeadStage.SUCCESS), "test-user-123"
        )

        assert updated.stage == LeadStage.SUCCESS
        assert contracts_for(db_session, lead) == []
        [entry] = AuditLogRepository(db_session).get_by_action(AuditAction.CONTRACT_SYNC_FAILED.value)
        assert entry.details == {
            "tenant_id": shared_tenant.id,
            "lead_id": lead.id,
            "to_stage": "SUCCESS",
        }

    def test_field_changes_applied(self, db_session, shared_tenant):
        """Plain fields are written with the stage"""
        lead = create_lead(db_session, shared_tenant)

        updated = LeadLifecycleEngine(db_session).apply_lead_update(
            shared_tenant.id,
            lead.id,
            LeadUpdate(memo="second visit", price_max=45000, stage=LeadStage.MEETING_SOON),
            None,
        )

        assert updated.memo == "second visit"
        assert updated.price_max == 45000
        assert updated.stage == LeadStage.MEETING_SOON


class TestEnsureContract:
    def test_existing_contract_returned(self, db_session, shared_tenant):
        """Check-before-create keeps a single contract"""
        lead = create_lead(db_session, shared_tenant, stage=LeadStage.SUCCESS)
        engine = LeadLifecycleEngine(db_session)

        first, created = engine.ensure_contract(lead, ContractTerms(), None)
        second, created_again = engine.ensure_contract(lead, ContractTerms(custom_id="IGNORED"), None)

        assert created is True
        assert created_again is False
        assert first.id == second.id
        assert second.custom_id != "IGNORED"


class TestReconcileContracts:
    """Repair of the contract-iff-SUCCESS invariant"""

    def test_reconcile_creates_and_deletes(self, db_session, shared_tenant, other_tenant, member_user):
        """Missing contracts are created, stale ones removed, other tenants untouched"""
        missing = create_lead(db_session, shared_tenant, stage=LeadStage.SUCCESS, assigned_user_id=member_user.id)
        stale = create_lead(db_session, shared_tenant, stage=LeadStage.TERMINATING)
        healthy = create_lead(db_session, shared_tenant, stage=LeadStage.SUCCESS)
        foreign_stale = create_lead(db_session, other_tenant, stage=LeadStage.NEW)
        for lead in (stale, healthy, foreign_stale):
            db_session.add(
                Contract(tenant_id=lead.tenant_id, lead_id=lead.id, contract_date=date.today(), custom_id=f"OLD-{lead.id}")
            )
        db_session.commit()

        report = LeadLifecycleEngine(db_session).reconcile_contracts(shared_tenant.id, "test-user-123")

        assert report.contracts_created == 1
        assert report.contracts_deleted == 1
        assert report.failed_lead_ids == []
        [created] = contracts_for(db_session, missing)
        assert created.user_id == member_user.id
        assert contracts_for(db_session, stale) == []
        assert contracts_for(db_session, healthy)[0].custom_id == f"OLD-{healthy.id}"
        assert len(contracts_for(db_session, foreign_stale)) == 1

    def test_reconcile_repairs_failed_sync(self, db_session, shared_tenant, monkeypatch):
        """A contract lost to a failed side effect is restored"""
        lead = create_lead(db_session, shared_tenant)
        engine = LeadLifecycleEngine(db_session)
        with monkeypatch.context() as m:
            m.setattr(ContractRepository, "create", store_down)
            engine.apply_lead_update(shared_tenant.id, lead.id, LeadUpdate(stage=LeadStage.SUCCESS), None)
        assert contracts_for(db_session, lead) == []

        report = engine.reconcile_contracts(shared_tenant.id)

        assert report.contracts_created == 1
        assert len(contracts_for(db_session, lead)) == 1

    def test_reconcile_reports_failures(self, db_session, shared_tenant, monkeypatch):
        """Leads whose contract cannot be created are reported"""
        lead = create_lead(db_session, shared_tenant, stage=LeadStage.SUCCESS)
        monkeypatch.setattr(ContractRepository, "create", store_down)

        report = LeadLifecycleEngine(db_session).reconcile_contracts(shared_tenant.id)

        assert report.contracts_created == 0
        assert report.failed_lead_ids == [lead.id]
