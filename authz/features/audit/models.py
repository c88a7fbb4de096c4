"""
Audit log model.
"""
import enum
from typing import Any, Dict
from sqlalchemy import String, JSON, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from authz.core.database.base import Base, TimestampMixin


# Column widths
ACTION_MAX_LENGTH = 100
RESOURCE_MAX_LENGTH = 100
IP_ADDRESS_MAX_LENGTH = 45
USER_AGENT_MAX_LENGTH = 255


class AuditStatus(str, enum.Enum):
    """Outcome of an audited action."""
    SUCCESS = "success"
    FAILURE = "failure"
    DENIED = "denied"


class AuditLog(Base, TimestampMixin):
    """
    Audit log for tracking authorization decisions.

    Tracks who did what, when, and from where. A null user_id is an
    anonymous (unauthenticated) caller.
    """
    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # Actor; no foreign key so entries outlive deleted users
    user_id: Mapped[int | None] = mapped_column(nullable=True, index=True)

    # Action details
    action: Mapped[str] = mapped_column(String(ACTION_MAX_LENGTH), nullable=False, index=True)
    resource: Mapped[str] = mapped_column(String(RESOURCE_MAX_LENGTH), nullable=False, index=True)
    status: Mapped[AuditStatus] = mapped_column(
        SQLEnum(AuditStatus),
        default=AuditStatus.SUCCESS,
        nullable=False,
        index=True
    )

    # Context
    details: Mapped[Dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(IP_ADDRESS_MAX_LENGTH), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(USER_AGENT_MAX_LENGTH), nullable=True)

    def __repr__(self) -> str:
        return f"<AuditLog(id={self.id}, user_id={self.user_id}, action={self.action}, status={self.status})>"
