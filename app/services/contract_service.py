from sqlalchemy.orm import Session

from app.models.contract import Contract
from app.models.tenant_context import TenantContext
from app.repositories.contract_repository import ContractRepository
from app.schemas.contract_schemas import ContractUpdate
from app.core.exceptions import NotFoundException

# Columns that cannot be cleared with an explicit null
REQUIRED_FIELDS = {"contract_date", "transaction_type", "price", "deposit", "rent", "status"}


class ContractService:
    """
    Service layer for contracts.

    Contracts are created and removed by the lead lifecycle engine only;
    clients may read and edit them.
    """

    def __init__(self, db: Session):
        self.db = db
        self.contract_repo = ContractRepository(db)

    def get_contracts(
        self, context: TenantContext, limit: int = 20, offset: int = 0
    ) -> tuple[list[Contract], int]:
        return self.contract_repo.get_by_tenant(context.tenant_id, limit=limit, offset=offset)

    def get_contract(self, contract_id: int, context: TenantContext) -> Contract:
        """
        Get contract by ID within the tenant.

        Raises:
            NotFoundException: If contract doesn't exist or belongs to another tenant
        """
        contract = self.contract_repo.get_by_id_and_tenant(contract_id, context.tenant_id)
        if not contract:
            raise NotFoundException(f"Contract {contract_id} not found")
        return contract

    def update_contract(
        self, contract_id: int, contract_data: ContractUpdate, context: TenantContext
    ) -> Contract:
        """Edit the contract's terms; lead and tenant stay fixed"""
        contract = self.get_contract(contract_id, context)

        for key, value in contract_data.model_dump(exclude_unset=True).items():
            if value is None and key in REQUIRED_FIELDS:
                continue
            setattr(contract, key, value)

        return self.contract_repo.update(contract)
