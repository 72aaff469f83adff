from sqlalchemy.orm import Session

from app.models.contract import Contract


class ContractRepository:
    """Repository for Contract data access. Every query is filtered by tenant."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, contract: Contract) -> Contract:
        """
        Create a new contract.

        Raises:
            IntegrityError: If the lead already has a contract
        """
        self.db.add(contract)
        self.db.commit()
        self.db.refresh(contract)
        return contract

    def get_by_id_and_tenant(self, contract_id: int, tenant_id: int) -> Contract | None:
        """
        Get contract by ID, ensuring it belongs to the tenant.

        Returns:
            Contract object or None if not found or belongs to different tenant
        """
        return (
            self.db.query(Contract)
            .filter(Contract.id == contract_id, Contract.tenant_id == tenant_id)
            .first()
        )

    def get_by_lead(self, lead_id: int, tenant_id: int) -> Contract | None:
        """Get the contract derived from a lead, scoped to the tenant"""
        return (
            self.db.query(Contract)
            .filter(Contract.lead_id == lead_id, Contract.tenant_id == tenant_id)
            .first()
        )

    def get_by_tenant(
        self, tenant_id: int, limit: int = 20, offset: int = 0
    ) -> tuple[list[Contract], int]:
        """
        Get a page of the tenant's contracts, newest first.

        Returns:
            Tuple of (contracts list, total count)
        """
        query = self.db.query(Contract).filter(Contract.tenant_id == tenant_id)
        total = query.count()
        contracts = (
            query.order_by(Contract.created_at.desc(), Contract.id.desc())
            .limit(limit)
            .offset(offset)
            .all()
        )
        return contracts, total

    def get_all_for_tenant(self, tenant_id: int) -> list[Contract]:
        """Get every contract of the tenant (used by reconciliation)"""
        return self.db.query(Contract).filter(Contract.tenant_id == tenant_id).all()

    def update(self, contract: Contract) -> Contract:
        """Update a contract"""
        self.db.commit()
        self.db.refresh(contract)
        return contract

    def delete_by_leads(self, lead_ids: list[int], tenant_id: int) -> int:
        """
        Delete the contracts of the given leads, if any.

        Safe to call for leads without a contract. Returns the number of
        contracts removed.
        """
        if not lead_ids:
            return 0
        removed = (
            self.db.query(Contract)
            .filter(Contract.lead_id.in_(lead_ids), Contract.tenant_id == tenant_id)
            .delete(synchronize_session=False)
        )
        self.db.commit()
        return removed
