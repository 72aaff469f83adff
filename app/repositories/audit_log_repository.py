from sqlalchemy.orm import Session
from app.models.audit_log import AuditLog


class AuditLogRepository:
    """Repository for AuditLog writes and reads"""

    def __init__(self, db: Session):
        self.db = db

    def create(self, entry: AuditLog) -> AuditLog:
        """Append an audit entry"""
        self.db.add(entry)
        self.db.commit()
        return entry

    def get_by_action(self, action: str) -> list[AuditLog]:
        """Get entries for an action, oldest first"""
        return (
            self.db.query(AuditLog)
            .filter(AuditLog.action == action)
            .order_by(AuditLog.id)
            .all()
        )
