import logging
import re
from dataclasses import replace

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.lead import Lead, LeadStage, PropertyType, TransactionType
from app.models.tenant_context import TenantContext
from app.repositories.contract_repository import ContractRepository
from app.repositories.lead_repository import LeadRepository
from app.repositories.tenant_membership_repository import TenantMembershipRepository
from app.repositories.tenant_repository import TenantRepository
from app.schemas.lead_schemas import LeadCreate, LeadUpdate, PublicLeadSubmit
from app.services.audit_service import AuditService
from app.services.lead_lifecycle import (
    ContractTerms,
    LeadLifecycleEngine,
    ReconcileReport,
    StageTransition,
)
from app.core.exceptions import (
    NotFoundException,
    ForbiddenException,
    ValidationException,
    InternalErrorException,
)

logger = logging.getLogger(__name__)

# Korean mobile number, dashes removed
MOBILE_PHONE_PATTERN = re.compile(r"^01[0-9]\d{3,4}\d{4}$")
PUBLIC_LEAD_SOURCE = "WEB_FORM"


class LeadService:
    """Service layer for lead business logic. Every operation is tenant-scoped."""

    def __init__(self, db: Session, audit: AuditService | None = None):
        self.db = db
        self.lead_repo = LeadRepository(db)
        self.contract_repo = ContractRepository(db)
        self.membership_repo = TenantMembershipRepository(db)
        self.tenant_repo = TenantRepository(db)
        self.engine = LeadLifecycleEngine(db, audit)

    def get_leads(
        self,
        context: TenantContext,
        limit: int = 20,
        offset: int = 0,
        search: str | None = None,
        stages: list[LeadStage] | None = None,
        transaction_types: list[TransactionType] | None = None,
        property_types: list[PropertyType] | None = None,
    ) -> tuple[list[Lead], int]:
        """Get a page of the tenant's leads, newest first, optionally filtered"""
        return self.lead_repo.get_by_tenant(
            context.tenant_id,
            limit=limit,
            offset=offset,
            search=search,
            stages=stages,
            transaction_types=transaction_types,
            property_types=property_types,
        )

    def get_lead(self, lead_id: int, context: TenantContext) -> Lead:
        """
        Get lead by ID within the tenant.

        Raises:
            NotFoundException: If lead doesn't exist or belongs to another tenant
        """
        lead = self.lead_repo.get_by_id_and_tenant(lead_id, context.tenant_id)
        if not lead:
            raise NotFoundException(f"Lead {lead_id} not found")
        return lead

    def create_lead(self, lead_data: LeadCreate, context: TenantContext) -> Lead:
        """
        Create a lead in the tenant.

        The assignee defaults to the caller and must otherwise be an ACTIVE
        member. A lead created directly at SUCCESS gets its contract.

        Raises:
            ValidationException: If the assignee is not an active member
        """
        assigned_user_id = lead_data.assigned_user_id or context.user_id
        if assigned_user_id != context.user_id and not self.membership_repo.get_active_membership(
            assigned_user_id, context.tenant_id
        ):
            raise ValidationException("Assigned agent is not a member of this agency")

        lead = Lead(
            tenant_id=context.tenant_id,
            assigned_user_id=assigned_user_id,
            stage=lead_data.stage,
            name=lead_data.name.strip(),
            phone=lead_data.phone,
            email=lead_data.email,
            source=lead_data.source,
            property_type=lead_data.property_type,
            transaction_type=lead_data.transaction_type,
            price_min=lead_data.price_min,
            price_max=lead_data.price_max,
            deposit_min=lead_data.deposit_min,
            deposit_max=lead_data.deposit_max,
            preferred_region=lead_data.preferred_region,
            move_in_date=lead_data.move_in_date,
            message=lead_data.message,
            memo=lead_data.memo,
        )
        lead = self.lead_repo.create(lead)
        logger.info("Lead %s created in tenant %s", lead.id, context.tenant_id)

        if lead.stage == LeadStage.SUCCESS:
            # A new lead implicitly starts at NEW
            transition = StageTransition(
                from_stage=LeadStage.NEW,
                to_stage=LeadStage.SUCCESS,
                terms=replace(ContractTerms.from_lead(lead), custom_id=lead_data.custom_id),
            )
            self.engine.sync_contract(lead, transition, context.user_id)

        return lead

    def update_lead(self, lead_id: int, lead_data: LeadUpdate, context: TenantContext) -> Lead:
        """Apply a partial update through the lifecycle engine"""
        if lead_data.assigned_user_id and not self.membership_repo.get_active_membership(
            lead_data.assigned_user_id, context.tenant_id
        ):
            raise ValidationException("Assigned agent is not a member of this agency")
        return self.engine.apply_lead_update(context.tenant_id, lead_id, lead_data, context.user_id)

    def delete_leads(self, lead_ids: list[int], context: TenantContext) -> int:
        """
        Delete several leads of the tenant along with their contracts.

        Ids that do not belong to the tenant are ignored.

        Returns:
            Number of leads deleted

        Raises:
            NotFoundException: If none of the ids belong to the tenant
        """
        leads = self.lead_repo.get_by_ids_and_tenant(lead_ids, context.tenant_id)
        if not leads:
            raise NotFoundException("Leads not found")

        found_ids = [lead.id for lead in leads]
        try:
            self.contract_repo.delete_by_leads(found_ids, context.tenant_id)
            self.lead_repo.delete_many(leads)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("Bulk lead delete failed in tenant %s", context.tenant_id)
            raise InternalErrorException("Failed to delete leads") from e

        logger.info("Deleted %d leads in tenant %s", len(found_ids), context.tenant_id)
        return len(found_ids)

    def reconcile_contracts(self, context: TenantContext) -> ReconcileReport:
        """
        Re-create missing contracts and drop stale ones (ADMIN or OWNER).

        Raises:
            ForbiddenException: If user lacks admin permissions
        """
        if not context.is_admin_or_higher():
            raise ForbiddenException("Only admins and owners can reconcile contracts")
        return self.engine.reconcile_contracts(context.tenant_id, context.user_id)

    def submit_public_lead(self, submission: PublicLeadSubmit) -> Lead:
        """
        Store an inquiry from an agency's public contact page.

        Raises:
            NotFoundException: If the agency doesn't exist
            ForbiddenException: If the chosen agent is not an active member
            ValidationException: If the phone is not a Korean mobile number
        """
        tenant = self.tenant_repo.get_by_id(submission.agency_id)
        if not tenant:
            raise NotFoundException("Agency not found")

        if submission.assigned_user_id and not self.membership_repo.get_active_membership(
            submission.assigned_user_id, tenant.id
        ):
            raise ForbiddenException("Agent is not a member of this agency")

        phone = submission.phone.replace("-", "").replace(" ", "")
        if not MOBILE_PHONE_PATTERN.match(phone):
            raise ValidationException("Invalid mobile phone number")

        lead = self.lead_repo.create(
            Lead(
                tenant_id=tenant.id,
                assigned_user_id=submission.assigned_user_id,
                stage=LeadStage.NEW,
                source=PUBLIC_LEAD_SOURCE,
                name=submission.name.strip(),
                phone=phone,
                email=submission.email,
                property_type=submission.property_type,
                transaction_type=submission.transaction_type,
                preferred_region=submission.preferred_region,
                move_in_date=submission.move_in_date,
                message=submission.message,
            )
        )
        logger.info("Public inquiry stored as lead %s in tenant %s", lead.id, tenant.id)
        return lead
