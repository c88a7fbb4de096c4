"""
Access decision point.

Combines role membership (any of the required roles) with permission
checks (every required permission) into a single allow/deny decision.
Logging the decision is left to the caller.
"""
from collections.abc import Iterable
from typing import Optional

from authz.features.permissions.schemas import AccessDecision, DenyReason
from authz.features.permissions.service import RbacService
from authz.utils import get_logger


log = get_logger(__name__)


async def authorize(
    service: RbacService,
    user_id: Optional[int],
    required_roles: Optional[Iterable[str]] = None,
    required_permissions: Optional[Iterable[str]] = None,
) -> AccessDecision:
    """
    Decide whether a user may perform a protected action.

    Args:
        service: RBAC service bound to a directory store
        user_id: Authenticated principal, or None if authentication failed upstream
        required_roles: User must hold at least one of these
        required_permissions: User must hold all of these

    Returns:
        AccessDecision; denials carry a reason and a message naming the required set
    """
    roles = tuple(required_roles or ())
    permissions = tuple(required_permissions or ())

    if not roles and not permissions:
        return AccessDecision.allow()

    if user_id is None:
        return AccessDecision.deny(
            DenyReason.UNAUTHENTICATED,
            "User not authenticated",
            required_roles=roles,
            required_permissions=permissions,
        )

    if roles and not await service.has_any_role(user_id, roles):
        log.debug(f"User {user_id} denied: missing any of roles {roles}")
        return AccessDecision.deny(
            DenyReason.MISSING_ROLE,
            f"Access denied. Required roles: {', '.join(roles)}",
            required_roles=roles,
            required_permissions=permissions,
        )

    if permissions:
        missing = tuple([
            permission for permission in permissions
            if not await service.has_permission(user_id, permission)
        ])
        if missing:
            log.debug(f"User {user_id} denied: missing permissions {missing}")
            return AccessDecision.deny(
                DenyReason.MISSING_PERMISSION,
                f"Access denied. Required permissions: {', '.join(permissions)}",
                required_roles=roles,
                required_permissions=permissions,
                missing_permissions=missing,
            )

    return AccessDecision.allow(required_roles=roles, required_permissions=permissions)
