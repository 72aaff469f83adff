import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.principal import Principal
from app.models.user import User
from app.models.user_identity import UserIdentity
from app.repositories.user_identity_repository import UserIdentityRepository
from app.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)


class UserService:
    """Maps principals to internal users outside of any tenant"""

    def __init__(self, db: Session):
        self.db = db
        self.user_repo = UserRepository(db)
        self.identity_repo = UserIdentityRepository(db)

    def get_or_create_for_principal(self, principal: Principal) -> User:
        """
        Get the internal user behind a principal, creating it if needed.

        Called for requests that are not scoped to a tenant yet (creating
        or joining an agency, listing one's agencies).

        Lookup order:
        1. User whose id is the subject id
        2. First linked sub-identity with an identity link
        3. User with the principal's email; the first sub-identity gets
           linked to it for future logins
        4. New user with id = subject id, first sub-identity linked

        Returns:
            User object (either existing or newly created)
        """
        user = self.user_repo.get_by_id(principal.subject_id)
        if user:
            return user

        for identity in principal.identities:
            link = self.identity_repo.get_by_provider_user_id(
                identity.provider_user_id, identity.provider
            )
            if link:
                linked_user = self.user_repo.get_by_id(link.user_id)
                if linked_user:
                    return linked_user

        if principal.email:
            user = self.user_repo.get_by_email(principal.email)
            if user:
                self._link_primary_identity(user, principal)
                return user

        user = self.user_repo.create(
            User(
                id=principal.subject_id,
                email=principal.email,
                name=principal.name or _default_name(principal.email),
            )
        )
        self._link_primary_identity(user, principal)
        return user

    def _link_primary_identity(self, user: User, principal: Principal) -> None:
        if not principal.identities:
            return
        primary = principal.identities[0]
        try:
            self.identity_repo.create(
                UserIdentity(
                    user_id=user.id,
                    provider=primary.provider or "unknown",
                    provider_user_id=primary.provider_user_id,
                )
            )
        except IntegrityError:
            # Linked concurrently by another request
            self.db.rollback()
            logger.info("Identity link already present; skipping")


def _default_name(email: str | None) -> str:
    if email and "@" in email:
        return email.split("@")[0][:100]
    return "User"
