"""
Lead lifecycle engine.

A lead at stage SUCCESS owns exactly one contract; a lead at any other stage
owns none. Updates are planned once into intents:

- FieldUpdate: plain column changes on the lead.
- StageTransition: the lead moves to another stage, carrying the terms a
  contract would be created with.

The lead row is committed first. The contract side effect runs afterwards
and its failures are logged and audited, never raised. A missed side effect
is repaired by reconcile_contracts.
"""

import logging
import secrets
import string
from dataclasses import dataclass, field
from datetime import date

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.core.exceptions import InternalErrorException, NotFoundException
from app.models.audit_log import AuditAction
from app.models.contract import Contract, ContractStatus
from app.models.lead import Lead, LeadStage, TransactionType
from app.repositories.contract_repository import ContractRepository
from app.repositories.lead_repository import LeadRepository
from app.schemas.lead_schemas import LeadUpdate
from app.services.audit_service import AuditService

logger = logging.getLogger(__name__)

CONTRACT_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits
CONTRACT_SUFFIX_LENGTH = 6

# Request fields that only feed the contract and never touch the lead row
CONTRACT_ONLY_FIELDS = {"custom_id", "rent"}

# Lead columns that cannot be cleared with an explicit null
REQUIRED_FIELDS = {"name", "price_min", "price_max", "deposit_min", "deposit_max"}


def generate_contract_id(today: date | None = None) -> str:
    """Contract id in the form C-YYYYMMDD-XXXXXX"""
    today = today or date.today()
    suffix = "".join(secrets.choice(CONTRACT_SUFFIX_ALPHABET) for _ in range(CONTRACT_SUFFIX_LENGTH))
    return f"{settings.CONTRACT_ID_PREFIX}-{today:%Y%m%d}-{suffix}"


@dataclass(frozen=True)
class ContractTerms:
    """Values a contract is created with when its lead reaches SUCCESS"""

    transaction_type: TransactionType = TransactionType.SALE
    price: int = 0
    deposit: int = 0
    rent: int = 0
    custom_id: str | None = None

    @classmethod
    def from_lead(cls, lead: Lead) -> "ContractTerms":
        return cls(
            transaction_type=lead.transaction_type or TransactionType.SALE,
            price=lead.price_min or 0,
            deposit=lead.deposit_min or 0,
        )


@dataclass(frozen=True)
class FieldUpdate:
    changes: dict = field(default_factory=dict)


@dataclass(frozen=True)
class StageTransition:
    from_stage: LeadStage
    to_stage: LeadStage
    terms: ContractTerms

    @property
    def enters_success(self) -> bool:
        return self.to_stage == LeadStage.SUCCESS


@dataclass
class ReconcileReport:
    contracts_created: int = 0
    contracts_deleted: int = 0
    failed_lead_ids: list[int] = field(default_factory=list)


def plan_lead_update(lead: Lead, patch: LeadUpdate) -> list[FieldUpdate | StageTransition]:
    """
    Turn a partial update into intents.

    Only fields present in the request are considered. A StageTransition is
    planned only when the requested stage differs from the current one.
    """
    data = patch.model_dump(exclude_unset=True)
    stage = data.pop("stage", None)
    changes = {
        key: value
        for key, value in data.items()
        if key not in CONTRACT_ONLY_FIELDS and not (value is None and key in REQUIRED_FIELDS)
    }

    intents: list[FieldUpdate | StageTransition] = []
    if changes:
        intents.append(FieldUpdate(changes=changes))

    if stage is not None and stage != lead.stage:
        base = ContractTerms.from_lead(lead)
        price = data.get("price_min")
        deposit = data.get("deposit_min")
        # An explicit null clears the lead's type, so the contract falls back to SALE
        transaction_type = (
            data["transaction_type"] if "transaction_type" in data else base.transaction_type
        )
        terms = ContractTerms(
            transaction_type=transaction_type or TransactionType.SALE,
            price=price if price is not None else base.price,
            deposit=deposit if deposit is not None else base.deposit,
            rent=data.get("rent") or 0,
            custom_id=data.get("custom_id"),
        )
        intents.append(StageTransition(from_stage=lead.stage, to_stage=stage, terms=terms))

    return intents


class LeadLifecycleEngine:
    """Applies lead updates and keeps each lead's contract in step with its stage"""

    def __init__(self, db: Session, audit: AuditService | None = None):
        self.db = db
        self.audit = audit or AuditService(db)
        self.lead_repo = LeadRepository(db)
        self.contract_repo = ContractRepository(db)

    def apply_lead_update(
        self, tenant_id: int, lead_id: int, patch: LeadUpdate, actor_id: str | None
    ) -> Lead:
        """
        Update a lead and synchronise its contract.

        Args:
            tenant_id: Tenant the caller is acting in
            lead_id: Lead to update
            patch: Partial update
            actor_id: Internal user id of the caller

        Returns:
            Updated lead

        Raises:
            NotFoundException: If the lead does not exist in this tenant
            InternalErrorException: If the lead could not be stored
        """
        lead = self.lead_repo.get_by_id_and_tenant(lead_id, tenant_id)
        if not lead:
            raise NotFoundException("Lead not found")

        transition = None
        for intent in plan_lead_update(lead, patch):
            if isinstance(intent, FieldUpdate):
                for key, value in intent.changes.items():
                    setattr(lead, key, value)
            elif isinstance(intent, StageTransition):
                lead.stage = intent.to_stage
                transition = intent

        try:
            lead = self.lead_repo.update(lead)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("Failed to update lead %s", lead_id)
            raise InternalErrorException("Failed to update lead") from e

        if transition is not None:
            logger.info(
                "Lead %s moved %s -> %s",
                lead_id,
                transition.from_stage.value,
                transition.to_stage.value,
            )
            self.sync_contract(lead, transition, actor_id)

        return lead

    def sync_contract(self, lead: Lead, transition: StageTransition, actor_id: str | None) -> None:
        """
        Create or remove the lead's contract after a committed stage change.

        Never raises: a store error is rolled back, logged and audited as
        CONTRACT_SYNC_FAILED. There is no automatic retry.
        """
        lead_id = lead.id
        tenant_id = lead.tenant_id
        try:
            if transition.enters_success:
                self.ensure_contract(lead, transition.terms, actor_id)
            else:
                removed = self.contract_repo.delete_by_leads([lead_id], tenant_id)
                if removed:
                    logger.info("Contract of lead %s removed", lead_id)
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Contract sync failed for lead %s", lead_id)
            self.audit.record(
                actor_id,
                AuditAction.CONTRACT_SYNC_FAILED,
                {
                    "tenant_id": tenant_id,
                    "lead_id": lead_id,
                    "to_stage": transition.to_stage.value,
                },
            )

    def ensure_contract(
        self, lead: Lead, terms: ContractTerms, actor_id: str | None
    ) -> tuple[Contract, bool]:
        """
        Make sure the lead has a contract.

        Returns:
            Tuple of (contract, created). An existing contract is returned
            untouched.

        Raises:
            SQLAlchemyError: On store failure (rolled back by the caller)
        """
        existing = self.contract_repo.get_by_lead(lead.id, lead.tenant_id)
        if existing:
            return existing, False

        lead_id = lead.id
        tenant_id = lead.tenant_id
        contract = Contract(
            tenant_id=tenant_id,
            lead_id=lead_id,
            user_id=actor_id or lead.assigned_user_id,
            custom_id=terms.custom_id or generate_contract_id(),
            contract_date=date.today(),
            transaction_type=terms.transaction_type,
            price=terms.price,
            deposit=terms.deposit,
            rent=terms.rent,
            status=ContractStatus.DRAFT,
        )
        try:
            contract = self.contract_repo.create(contract)
        except IntegrityError:
            # Created concurrently; lead_id is unique
            self.db.rollback()
            existing = self.contract_repo.get_by_lead(lead_id, tenant_id)
            if existing is None:
                raise
            return existing, False

        logger.info("Contract %s created for lead %s", contract.id, lead_id)
        return contract, True

    def reconcile_contracts(self, tenant_id: int, actor_id: str | None = None) -> ReconcileReport:
        """
        Restore "contract iff SUCCESS" for every lead of a tenant.

        Creates missing contracts for SUCCESS leads (responsible agent is the
        lead's assignee, else the caller) and deletes contracts whose lead
        is no longer at SUCCESS.

        Raises:
            InternalErrorException: If stale contracts could not be deleted
        """
        report = ReconcileReport()

        success_leads = self.lead_repo.get_by_stage(tenant_id, LeadStage.SUCCESS)
        success_ids = {lead.id for lead in success_leads}
        contracts = self.contract_repo.get_all_for_tenant(tenant_id)
        contracted_ids = {contract.lead_id for contract in contracts}
        stale_lead_ids = [c.lead_id for c in contracts if c.lead_id not in success_ids]

        for lead in success_leads:
            lead_id = lead.id
            if lead_id in contracted_ids:
                continue
            try:
                _, created = self.ensure_contract(
                    lead, ContractTerms.from_lead(lead), lead.assigned_user_id or actor_id
                )
            except SQLAlchemyError:
                self.db.rollback()
                logger.exception("Reconcile could not create contract for lead %s", lead_id)
                report.failed_lead_ids.append(lead_id)
                continue
            if created:
                report.contracts_created += 1

        try:
            report.contracts_deleted = self.contract_repo.delete_by_leads(stale_lead_ids, tenant_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("Reconcile could not delete stale contracts for tenant %s", tenant_id)
            raise InternalErrorException("Failed to reconcile contracts") from e

        logger.info(
            "Reconciled tenant %s: %d created, %d deleted, %d failed",
            tenant_id,
            report.contracts_created,
            report.contracts_deleted,
            len(report.failed_lead_ids),
        )
        return report
