"""Repository for identity links (provider sub-identity -> internal user)."""

from sqlalchemy.orm import Session
from app.models.user_identity import UserIdentity


class UserIdentityRepository:
    """Repository for UserIdentity model operations"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_provider_user_id(
        self, provider_user_id: str, provider: str | None = None
    ) -> UserIdentity | None:
        """
        Look up an identity link by the provider's user id.

        Args:
            provider_user_id: Sub-identity id as issued by the provider
            provider: Optional provider name to narrow the match

        Returns:
            UserIdentity or None if the sub-identity is not linked
        """
        query = self.db.query(UserIdentity).filter(
            UserIdentity.provider_user_id == provider_user_id
        )
        if provider:
            query = query.filter(UserIdentity.provider == provider)
        return query.order_by(UserIdentity.id).first()

    def create(self, identity: UserIdentity) -> UserIdentity:
        """
        Link a sub-identity to a user.

        Raises:
            IntegrityError: If (provider, provider_user_id) is already linked
        """
        self.db.add(identity)
        self.db.commit()
        self.db.refresh(identity)
        return identity
