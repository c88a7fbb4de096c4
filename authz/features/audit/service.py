"""
Audit trail helpers.

Builds audit events from access decisions and scoped data access, and
persists them.
"""
from typing import Any, Dict, Optional
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from authz.core import config
from authz.features.audit.models import (
    ACTION_MAX_LENGTH,
    IP_ADDRESS_MAX_LENGTH,
    RESOURCE_MAX_LENGTH,
    USER_AGENT_MAX_LENGTH,
    AuditLog,
    AuditStatus,
)
from authz.features.audit.schemas import AuditEventCreate, AuditLogRead
from authz.features.permissions.schemas import AccessDecision, DenyReason
from authz.features.permissions.scopes import Scope
from authz.utils import get_logger


log = get_logger(__name__)


def _clip(value: Optional[str], limit: int) -> Optional[str]:
    if value is None or len(value) <= limit:
        return value
    return value[:limit]


def _event(
    user_id: Optional[int],
    action: str,
    resource: str,
    status: AuditStatus,
    details: Optional[Dict[str, Any]],
    ip_address: Optional[str],
    user_agent: Optional[str],
) -> AuditEventCreate:
    # Request data is clipped to the column widths
    return AuditEventCreate(
        user_id=user_id,
        action=_clip(action, ACTION_MAX_LENGTH),
        resource=_clip(resource, RESOURCE_MAX_LENGTH),
        status=status,
        details=details or None,
        ip_address=_clip(ip_address, IP_ADDRESS_MAX_LENGTH),
        user_agent=_clip(user_agent, USER_AGENT_MAX_LENGTH),
    )


def build_audit_event(
    decision: AccessDecision,
    user_id: Optional[int],
    action: str,
    resource: str,
    details: Optional[Dict[str, Any]] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> AuditEventCreate:
    """
    Turn an access decision into an audit event.

    Allowed decisions are recorded as success, denials as denied with the
    reason and the required roles/permissions in the details.
    """
    event_details: Dict[str, Any] = dict(details or {})
    if not decision.allowed:
        event_details["reason"] = decision.reason.value if decision.reason else None
        event_details["message"] = decision.message
        if decision.required_roles:
            event_details["required_roles"] = list(decision.required_roles)
        if decision.required_permissions:
            event_details["required_permissions"] = list(decision.required_permissions)
        if decision.missing_permissions:
            event_details["missing_permissions"] = list(decision.missing_permissions)

    return _event(
        user_id,
        action,
        resource,
        AuditStatus.SUCCESS if decision.allowed else AuditStatus.DENIED,
        event_details,
        ip_address,
        user_agent,
    )


def build_scope_event(
    user_id: Optional[int],
    scope: Scope,
    visible_user_ids: Optional[set[int]],
    action: str,
    resource: str,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> AuditEventCreate:
    """
    Turn a scoped data access into an audit event.

    A resolved access is a success carrying the scope and the number of
    visible users; an anonymous caller is denied.
    """
    details: Dict[str, Any] = {"scope": scope.value}
    if user_id is None:
        status = AuditStatus.DENIED
        details["reason"] = DenyReason.UNAUTHENTICATED.value
    else:
        status = AuditStatus.SUCCESS
        details["visible_users"] = len(visible_user_ids or ())

    return _event(user_id, action, resource, status, details, ip_address, user_agent)


async def create_audit_log(db: AsyncSession, event: AuditEventCreate) -> AuditLog:
    """
    Add an audit log entry to the session.

    The entry is flushed, not committed: it is written together with the
    rest of the caller's unit of work.

    Args:
        db: Database session
        event: Event to record

    Returns:
        Created AuditLog object
    """
    audit_log = AuditLog(**event.model_dump(exclude={"actor"}))

    db.add(audit_log)
    await db.flush()
    await db.refresh(audit_log)

    log.info(
        f"Audit: user={event.actor} action={event.action} "
        f"resource={event.resource} status={event.status.value}"
    )

    return audit_log


async def get_audit_logs(db: AsyncSession, limit: Optional[int] = None) -> list[AuditLogRead]:
    """Most recent audit entries, newest first."""
    stmt = (
        select(AuditLog)
        .order_by(AuditLog.id.desc())
        .limit(limit if limit is not None else config.AUDIT_LOG_LIMIT)
    )
    result = await db.execute(stmt)
    return [AuditLogRead.model_validate(entry) for entry in result.scalars().all()]


async def clear_audit_logs(db: AsyncSession) -> int:
    """Delete every audit entry; returns the number removed."""
    result = await db.execute(delete(AuditLog))
    await db.commit()
    log.info(f"Audit logs cleared ({result.rowcount} entries)")
    return result.rowcount
