import logging
import secrets
import string

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.models.audit_log import AuditAction
from app.models.base import utcnow
from app.models.role import TenantRole, MembershipStatus
from app.models.subscription import Subscription, SubscriptionStatus
from app.models.tenant import Tenant
from app.models.tenant_context import TenantContext
from app.models.tenant_membership import TenantMembership
from app.models.user import User
from app.repositories.subscription_repository import SubscriptionRepository
from app.repositories.tenant_membership_repository import TenantMembershipRepository
from app.repositories.tenant_repository import TenantRepository
from app.repositories.user_repository import UserRepository
from app.schemas.tenant_schemas import TenantCreate, TenantUpdate, TenantRoleUpdate
from app.services.audit_service import AuditService
from app.core.exceptions import (
    NotFoundException,
    ForbiddenException,
    ValidationException,
    QuotaExceededException,
    InternalErrorException,
)

logger = logging.getLogger(__name__)

INVITE_CODE_ALPHABET = string.ascii_uppercase + string.digits
TENANT_NAME_MAX_LENGTH = 50


def generate_invite_code(length: int) -> str:
    """Random invite code drawn from A-Z0-9 with a CSPRNG"""
    return "".join(secrets.choice(INVITE_CODE_ALPHABET) for _ in range(length))


class TenantService:
    """Service layer for tenant management business logic"""

    def __init__(self, db: Session, audit: AuditService | None = None):
        self.db = db
        self.audit = audit or AuditService(db)
        self.tenant_repo = TenantRepository(db)
        self.membership_repo = TenantMembershipRepository(db)
        self.subscription_repo = SubscriptionRepository(db)
        self.user_repo = UserRepository(db)

    def create_tenant(self, data: TenantCreate, user: User) -> Tenant:
        """
        Create an agency owned by the acting user.

        The quota check, the tenant and the OWNER membership share one
        transaction, with the user's row locked so concurrent requests by the
        same user are serialized. An invite code taken by a concurrent insert
        is replaced and the insert retried. The default subscription and the
        audit event are best-effort.

        Args:
            data: Agency name and optional license number
            user: Acting internal user

        Returns:
            Created tenant

        Raises:
            ValidationException: If the name is blank or longer than 50 chars
            QuotaExceededException: If the user already owns the maximum
                number of agencies
            InternalErrorException: If the tenant could not be stored
        """
        name = self._validate_name(data.name)
        user_id = user.id

        for _ in range(settings.INVITE_CODE_MAX_ATTEMPTS):
            self._lock_owner_quota(user_id)

            invite_code = generate_invite_code(settings.INVITE_CODE_LENGTH)
            if self.tenant_repo.invite_code_exists(invite_code):
                logger.warning("Invite code collision, regenerating")
                continue

            try:
                tenant = self.tenant_repo.create_no_commit(
                    Tenant(
                        name=name,
                        license_no=data.license_no,
                        invite_code=invite_code,
                        config={},
                    )
                )
                self.membership_repo.create_no_commit(
                    TenantMembership(
                        tenant_id=tenant.id,
                        user_id=user_id,
                        role=TenantRole.OWNER,
                        status=MembershipStatus.ACTIVE,
                        joined_at=utcnow(),
                    )
                )
                self.db.commit()
                break
            except IntegrityError as e:
                self.db.rollback()
                if not self.tenant_repo.invite_code_exists(invite_code):
                    logger.exception("Agency creation failed")
                    raise InternalErrorException("Failed to create agency") from e
                logger.warning("Invite code taken by a concurrent insert, regenerating")
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.exception("Agency creation failed")
                raise InternalErrorException("Failed to create agency") from e
        else:
            self.db.rollback()
            raise InternalErrorException("Could not allocate a unique invite code")

        self.db.refresh(tenant)
        tenant_id = tenant.id
        logger.info("Tenant %s created", tenant_id)

        self._provision_default_subscription(tenant_id)
        self.audit.record(
            user_id, AuditAction.TENANT_CREATED, {"tenant_id": tenant_id, "name": name}
        )
        return tenant

    def list_user_tenants(self, user: User) -> list[dict]:
        """
        List all tenants that a user can currently enter.

        Args:
            user: Authenticated user

        Returns:
            List of tenants with user's role in each tenant
        """
        memberships = self.membership_repo.get_user_active_memberships(user.id)
        tenants = {
            tenant.id: tenant
            for tenant in self.tenant_repo.get_by_ids([m.tenant_id for m in memberships])
        }

        result = []
        for membership in memberships:
            tenant = tenants.get(membership.tenant_id)
            if tenant:
                result.append(
                    {
                        "id": tenant.id,
                        "name": tenant.name,
                        "role": membership.role,
                        "created_at": tenant.created_at,
                        "updated_at": tenant.updated_at,
                    }
                )
        return result

    def get_tenant(self, context: TenantContext) -> Tenant:
        """Get current tenant details"""
        tenant = self.tenant_repo.get_by_id(context.tenant_id)
        if not tenant:
            raise NotFoundException("Agency not found")
        return tenant

    def update_tenant(self, tenant_update: TenantUpdate, context: TenantContext) -> Tenant:
        """
        Update tenant details (OWNER only).

        Raises:
            ForbiddenException: If user is not OWNER
        """
        if not context.is_owner():
            raise ForbiddenException("Only owner can update agency details")

        tenant = self.get_tenant(context)
        if tenant_update.name is not None:
            tenant.name = self._validate_name(tenant_update.name)
        if tenant_update.license_no is not None:
            tenant.license_no = tenant_update.license_no
        if tenant_update.config is not None:
            tenant.config = tenant_update.config
        return self.tenant_repo.update(tenant)

    def refresh_invite_code(self, context: TenantContext) -> str:
        """
        Replace the tenant's invite code (OWNER only).

        The previous code stops working immediately.
        """
        if not context.is_owner():
            raise ForbiddenException("Only owners can manage invite codes")

        tenant = self.get_tenant(context)
        tenant.invite_code = self._unique_invite_code()
        tenant = self.tenant_repo.update(tenant)

        self.audit.record(
            context.user_id, AuditAction.INVITE_CODE_REFRESHED, {"tenant_id": tenant.id}
        )
        return tenant.invite_code

    def join_by_invite_code(
        self, invite_code: str, user: User
    ) -> tuple[Tenant, TenantMembership]:
        """
        Join an agency as an ACTIVE MEMBER using its invite code.

        A membership the user previously LEFT is reactivated as MEMBER.

        Raises:
            NotFoundException: If no agency uses the code
            ValidationException: If the user is already ACTIVE or INVITED
        """
        tenant = self.tenant_repo.get_by_invite_code(invite_code.strip().upper())
        if not tenant:
            raise NotFoundException("Invalid invite code")

        membership = self.membership_repo.get_membership(user.id, tenant.id)
        if membership and membership.status != MembershipStatus.LEFT:
            raise ValidationException("Already a member of this agency")

        if membership:
            membership.role = TenantRole.MEMBER
            membership.status = MembershipStatus.ACTIVE
            membership.joined_at = utcnow()
            membership.left_at = None
            membership = self.membership_repo.update(membership)
        else:
            membership = self.membership_repo.create(
                TenantMembership(
                    tenant_id=tenant.id,
                    user_id=user.id,
                    role=TenantRole.MEMBER,
                    status=MembershipStatus.ACTIVE,
                    joined_at=utcnow(),
                )
            )

        self.audit.record(user.id, AuditAction.TENANT_JOINED, {"tenant_id": tenant.id})
        return tenant, membership

    def get_members(self, context: TenantContext) -> list[dict]:
        """
        Get all members of current tenant with user details.

        Args:
            context: Tenant context

        Returns:
            List of members with user info
        """
        memberships = self.membership_repo.get_tenant_members(context.tenant_id)
        users = {
            user.id: user for user in self.user_repo.get_by_ids([m.user_id for m in memberships])
        }
        return [self._member_view(membership, users.get(membership.user_id)) for membership in memberships]

    def approve_member(self, user_id: str, context: TenantContext) -> dict:
        """
        Activate an INVITED membership (ADMIN or OWNER).

        Raises:
            ForbiddenException: If user lacks admin permissions
            NotFoundException: If membership not found
            ValidationException: If the membership is not awaiting approval
        """
        if not context.is_admin_or_higher():
            raise ForbiddenException("Only admins and owners can approve members")

        membership = self.membership_repo.get_membership(user_id, context.tenant_id)
        if not membership:
            raise NotFoundException("Member not found in this agency")
        if membership.status != MembershipStatus.INVITED:
            raise ValidationException("Member is not awaiting approval")
        if membership.role == TenantRole.OWNER:
            self._lock_owner_quota(user_id)

        membership.status = MembershipStatus.ACTIVE
        membership.joined_at = utcnow()
        membership = self.membership_repo.update(membership)
        return self._member_view(membership, self.user_repo.get_by_id(user_id))

    def update_member_role(
        self, user_id: str, role_update: TenantRoleUpdate, context: TenantContext
    ) -> dict:
        """
        Update member's role (OWNER only).

        Args:
            user_id: User ID to update
            role_update: New role
            context: Tenant context

        Returns:
            Updated member view

        Raises:
            ForbiddenException: If user is not OWNER or trying to change an owner
            NotFoundException: If membership not found
            QuotaExceededException: If promoting a user who already owns
                the maximum number of agencies
        """
        if not context.is_owner():
            raise ForbiddenException("Only owner can change member roles")

        membership = self.membership_repo.get_membership(user_id, context.tenant_id)
        if not membership:
            raise NotFoundException("Member not found in this agency")

        # Cannot modify self (check first for better error message)
        if user_id == context.user_id:
            raise ForbiddenException("Cannot change your own role")

        if membership.role == TenantRole.OWNER:
            raise ForbiddenException("Cannot change another owner's role")

        if role_update.role == TenantRole.OWNER and membership.status == MembershipStatus.ACTIVE:
            self._lock_owner_quota(user_id)

        previous_role = membership.role
        membership.role = role_update.role
        membership = self.membership_repo.update(membership)

        self.audit.record(
            context.user_id,
            AuditAction.MEMBER_ROLE_CHANGED,
            {
                "tenant_id": context.tenant_id,
                "member_id": membership.id,
                "from": previous_role.value,
                "to": membership.role.value,
            },
        )
        return self._member_view(membership, self.user_repo.get_by_id(user_id))

    def remove_member(self, user_id: str, context: TenantContext) -> None:
        """
        Remove member from tenant (ADMIN or OWNER).

        The membership is kept with status LEFT so it can be reactivated.

        Raises:
            ForbiddenException: If user lacks permissions or trying to remove owner
            NotFoundException: If membership not found
        """
        if not context.is_admin_or_higher():
            raise ForbiddenException("Only admins and owners can remove members")

        membership = self.membership_repo.get_membership(user_id, context.tenant_id)
        if not membership or membership.status == MembershipStatus.LEFT:
            raise NotFoundException("Member not found in this agency")

        # Cannot remove self (check first for better error message)
        if user_id == context.user_id:
            raise ForbiddenException("Cannot remove yourself from agency")

        if membership.role == TenantRole.OWNER:
            raise ForbiddenException("Cannot remove owner from agency")

        membership.status = MembershipStatus.LEFT
        membership.left_at = utcnow()
        self.membership_repo.update(membership)

        self.audit.record(
            context.user_id,
            AuditAction.MEMBER_REMOVED,
            {"tenant_id": context.tenant_id, "member_id": membership.id},
        )

    def _validate_name(self, name: str) -> str:
        cleaned = name.strip()
        if not cleaned or len(cleaned) > TENANT_NAME_MAX_LENGTH:
            raise ValidationException(
                f"Agency name must be 1-{TENANT_NAME_MAX_LENGTH} characters"
            )
        return cleaned

    def _lock_owner_quota(self, user_id: str) -> None:
        """
        Lock the user's row, then check how many agencies they own.

        The lock lasts until the caller's commit, so the count stays valid
        for the write that grants ownership.
        """
        self.user_repo.get_for_update(user_id)
        if self.membership_repo.count_active_owned(user_id) >= settings.TENANT_OWNER_QUOTA:
            self.db.rollback()
            raise QuotaExceededException(
                f"Agency limit reached: an account may own at most "
                f"{settings.TENANT_OWNER_QUOTA} agencies"
            )

    def _unique_invite_code(self) -> str:
        for _ in range(settings.INVITE_CODE_MAX_ATTEMPTS):
            code = generate_invite_code(settings.INVITE_CODE_LENGTH)
            if not self.tenant_repo.invite_code_exists(code):
                return code
            logger.warning("Invite code collision, regenerating")
        raise InternalErrorException("Could not allocate a unique invite code")

    def _provision_default_subscription(self, tenant_id: int) -> None:
        try:
            if self.subscription_repo.get_by_tenant(tenant_id):
                return
            self.subscription_repo.create(
                Subscription(
                    tenant_id=tenant_id,
                    plan=settings.DEFAULT_SUBSCRIPTION_PLAN,
                    status=SubscriptionStatus.ACTIVE,
                )
            )
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Default subscription provisioning failed for tenant %s", tenant_id)

    @staticmethod
    def _member_view(membership: TenantMembership, user: User | None) -> dict:
        return {
            "id": membership.id,
            "user_id": membership.user_id,
            "name": user.name if user else None,
            "email": user.email if user else None,
            "role": membership.role,
            "status": membership.status,
            "joined_at": membership.joined_at,
            "created_at": membership.created_at,
        }
