from sqlalchemy.orm import Session

from app.models.lead import Lead, LeadStage, PropertyType, TransactionType
from app.repositories.search import apply_in_filters, apply_text_search


class LeadRepository:
    """Repository for Lead data access. Every query is filtered by tenant."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, lead: Lead) -> Lead:
        """Create a new lead"""
        self.db.add(lead)
        self.db.commit()
        self.db.refresh(lead)
        return lead

    def get_by_id_and_tenant(self, lead_id: int, tenant_id: int) -> Lead | None:
        """
        Get lead by ID, ensuring it belongs to the tenant.

        Args:
            lead_id: Lead ID
            tenant_id: Tenant ID

        Returns:
            Lead object or None if not found or belongs to different tenant
        """
        return (
            self.db.query(Lead)
            .filter(Lead.id == lead_id, Lead.tenant_id == tenant_id)
            .first()
        )

    def get_by_ids_and_tenant(self, lead_ids: list[int], tenant_id: int) -> list[Lead]:
        """Get the subset of lead_ids that belong to the tenant"""
        if not lead_ids:
            return []
        return (
            self.db.query(Lead)
            .filter(Lead.id.in_(lead_ids), Lead.tenant_id == tenant_id)
            .all()
        )

    def get_by_tenant(
        self,
        tenant_id: int,
        limit: int = 20,
        offset: int = 0,
        search: str | None = None,
        stages: list[LeadStage] | None = None,
        transaction_types: list[TransactionType] | None = None,
        property_types: list[PropertyType] | None = None,
    ) -> tuple[list[Lead], int]:
        """
        Get a page of the tenant's leads, newest first.

        Args:
            tenant_id: Tenant ID
            limit: Max results
            offset: Pagination offset
            search: Substring matched against name, phone, email, source
                and message
            stages: Only leads at one of these stages
            transaction_types: Only leads with one of these transaction types
            property_types: Only leads with one of these property types

        Returns:
            Tuple of (leads list, total count)
        """
        query = self.db.query(Lead).filter(Lead.tenant_id == tenant_id)
        query = apply_text_search(
            query,
            search,
            [Lead.name, Lead.email, Lead.source, Lead.message],
            phone_columns=[Lead.phone],
        )
        query = apply_in_filters(
            query,
            {
                Lead.stage: stages,
                Lead.transaction_type: transaction_types,
                Lead.property_type: property_types,
            },
        )
        total = query.count()
        leads = (
            query.order_by(Lead.created_at.desc(), Lead.id.desc())
            .limit(limit)
            .offset(offset)
            .all()
        )
        return leads, total

    def get_by_stage(self, tenant_id: int, stage: LeadStage) -> list[Lead]:
        """Get all of the tenant's leads currently at a stage"""
        return (
            self.db.query(Lead)
            .filter(Lead.tenant_id == tenant_id, Lead.stage == stage)
            .all()
        )

    def update(self, lead: Lead) -> Lead:
        """Update a lead"""
        self.db.commit()
        self.db.refresh(lead)
        return lead

    def delete_many(self, leads: list[Lead]) -> None:
        """Delete several leads in one commit"""
        for lead in leads:
            self.db.delete(lead)
        self.db.commit()
