from sqlalchemy.orm import Session
from app.models.user import User


class UserRepository:
    """Repository for User model operations"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, user_id: str) -> User | None:
        """Get user by internal ID"""
        return self.db.query(User).filter(User.id == user_id).first()

    def get_for_update(self, user_id: str) -> User | None:
        """
        Get user by ID and row-lock it until the current transaction ends.

        Serializes writes that check and then change what the user owns.
        """
        return self.db.query(User).filter(User.id == user_id).with_for_update().first()

    def get_by_ids(self, user_ids: list[str]) -> list[User]:
        """Get several users at once (order not guaranteed)"""
        if not user_ids:
            return []
        return self.db.query(User).filter(User.id.in_(user_ids)).all()

    def get_by_email(self, email: str) -> User | None:
        """Get user by email (used only for legacy account matching)"""
        return self.db.query(User).filter(User.email == email).first()

    def create(self, user: User) -> User:
        """Create new user"""
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user
