from datetime import datetime
from enum import Enum as PyEnum
from sqlalchemy import String, Integer, JSON, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from app.models.base import Base, utcnow


class AuditAction(str, PyEnum):
    TENANT_CREATED = "TENANT_CREATED"
    TENANT_JOINED = "TENANT_JOINED"
    INVITE_CODE_REFRESHED = "INVITE_CODE_REFRESHED"
    MEMBER_ROLE_CHANGED = "MEMBER_ROLE_CHANGED"
    MEMBER_REMOVED = "MEMBER_REMOVED"
    CONTRACT_SYNC_FAILED = "CONTRACT_SYNC_FAILED"


class AuditLog(Base):
    """Append-only security and compliance events. Never holds tokens or raw emails."""

    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    action: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    details: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    ip_address: Mapped[str] = mapped_column(String(64), nullable=False, default="unknown")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
