from sqlalchemy.orm import Session
from app.models.subscription import Subscription


class SubscriptionRepository:
    """Repository for Subscription model operations"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_tenant(self, tenant_id: int) -> Subscription | None:
        """Get the subscription of a tenant"""
        return self.db.query(Subscription).filter(Subscription.tenant_id == tenant_id).first()

    def create(self, subscription: Subscription) -> Subscription:
        """Create new subscription"""
        self.db.add(subscription)
        self.db.commit()
        self.db.refresh(subscription)
        return subscription
