"""Audit logging service - security and compliance event tracking.

Guidelines:
- NEVER record secrets (tokens) or raw emails in details
- Use IDs instead of raw data where possible
- Recording is best-effort: a failed write is logged and swallowed
"""

import logging

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.models.audit_log import AuditAction, AuditLog
from app.repositories.audit_log_repository import AuditLogRepository

logger = logging.getLogger(__name__)

UNKNOWN_ADDRESS = "unknown"


def get_client_ip(request: Request | None) -> str:
    """
    Extract client IP from request.

    Only trusts X-Forwarded-For when TRUST_PROXY_HEADERS=True (behind reverse proxy).
    """
    if request is None:
        return UNKNOWN_ADDRESS

    if settings.TRUST_PROXY_HEADERS:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            # X-Forwarded-For: client, proxy1, proxy2 - take first
            return forwarded.split(",")[0].strip()

    if request.client:
        return request.client.host

    return UNKNOWN_ADDRESS


class AuditService:
    """Fire-and-forget audit sink bound to one request's source address"""

    def __init__(self, db: Session, source_address: str = UNKNOWN_ADDRESS):
        self.db = db
        self.source_address = source_address
        self.repo = AuditLogRepository(db)

    def record(self, actor_id: str | None, action: AuditAction, details: dict | None = None) -> None:
        """
        Append an audit event. Never raises.

        Runs after the primary operation has committed, so rolling back a
        failed audit write cannot undo the operation being audited.
        """
        entry = AuditLog(
            user_id=actor_id,
            action=action.value,
            details=details or {},
            ip_address=self.source_address,
        )
        try:
            self.repo.create(entry)
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Audit log write failed for action %s", action.value)
