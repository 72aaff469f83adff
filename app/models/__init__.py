from app.models.base import Base
from app.models.user import User
from app.models.user_identity import UserIdentity
from app.models.tenant import Tenant
from app.models.tenant_membership import TenantMembership
from app.models.subscription import Subscription
from app.models.lead import Lead
from app.models.contract import Contract
from app.models.listing import Listing, LeadListing
from app.models.audit_log import AuditLog

__all__ = [
    "Base",
    "User",
    "UserIdentity",
    "Tenant",
    "TenantMembership",
    "Subscription",
    "Lead",
    "Contract",
    "Listing",
    "LeadListing",
    "AuditLog",
]
