"""
FastAPI dependencies for route protection.

Authentication is external: it is expected to put the authenticated user's
id on `request.state.user_id`. These dependencies turn that principal into
access decisions and scoped user id sets, and record both in the audit
trail.
"""
from collections.abc import Iterable
from typing import Annotated, Optional
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from authz.core.database.engine import get_db
from authz.features.audit.schemas import AuditEventCreate
from authz.features.audit.service import build_audit_event, build_scope_event, create_audit_log
from authz.features.directory.store import SqlAlchemyDirectoryStore
from authz.features.permissions.decisions import authorize
from authz.features.permissions.schemas import DenyReason
from authz.features.permissions.scopes import Scope
from authz.features.permissions.service import RbacService
from authz.utils import get_logger


log = get_logger(__name__)


def get_directory_store(db: Annotated[AsyncSession, Depends(get_db)]) -> SqlAlchemyDirectoryStore:
    return SqlAlchemyDirectoryStore(db)


def get_rbac_service(
    store: Annotated[SqlAlchemyDirectoryStore, Depends(get_directory_store)]
) -> RbacService:
    return RbacService(store)


def get_principal_id(request: Request) -> Optional[int]:
    """Authenticated user id set by the authentication layer, if any."""
    return getattr(request.state, "user_id", None)


def _client_context(request: Request) -> dict[str, Optional[str]]:
    return {
        "ip_address": request.client.host if request.client else None,
        "user_agent": request.headers.get("user-agent"),
    }


async def _record(db: AsyncSession, event: AuditEventCreate, commit: bool = False) -> None:
    """
    Write an audit event without affecting the decision it records.

    Denials commit immediately: get_db rolls the request session back when
    the HTTPException propagates. Allowed events are committed by get_db
    together with the route's own work.
    """
    try:
        await create_audit_log(db, event)
        if commit:
            await db.commit()
    except SQLAlchemyError as e:
        log.error(f"Audit write failed: user={event.actor} action={event.action} status={event.status.value}: {e}")
        await db.rollback()


def require_access(
    roles: Optional[Iterable[str]] = None,
    permissions: Optional[Iterable[str]] = None,
    action: Optional[str] = None,
    resource: str = "api",
):
    """
    FastAPI dependency to require roles and/or permissions.

    The user needs ANY of `roles` and ALL of `permissions`.

    Usage:
        @router.get("/tasks/organization/all")
        async def list_all_tasks(
            user_id: int = Depends(require_access(roles=["owner"], permissions=["read_task"]))
        ):
            ...

    Args:
        roles: Roles of which the user must hold at least one
        permissions: Permissions the user must all hold
        action: Audit action name (defaults to the route path)
        resource: Audit resource name

    Returns:
        Dependency returning the principal id when access is allowed

    Raises:
        HTTPException: 401 if unauthenticated, 403 if a role or permission is missing
    """
    required_roles = tuple(roles or ())
    required_permissions = tuple(permissions or ())

    async def access_dependency(
        request: Request,
        db: Annotated[AsyncSession, Depends(get_db)],
        service: Annotated[RbacService, Depends(get_rbac_service)],
        user_id: Annotated[Optional[int], Depends(get_principal_id)],
    ) -> Optional[int]:
        decision = await authorize(service, user_id, required_roles, required_permissions)

        event = build_audit_event(
            decision,
            user_id,
            action=action or request.url.path,
            resource=resource,
            **_client_context(request),
        )
        await _record(db, event, commit=not decision.allowed)

        if decision.allowed:
            return user_id

        if decision.reason is DenyReason.UNAUTHENTICATED:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=decision.message
            )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=decision.message
        )

    return access_dependency


def require_scope(scope: Scope, action: Optional[str] = None, resource: str = "api"):
    """
    FastAPI dependency resolving the user ids visible under `scope`.

    Every resolution is audited with the scope and the number of visible
    users; anonymous callers are recorded as denied and get a 401.

    Usage:
        @router.get("/tasks")
        async def list_tasks(
            visible_user_ids: set[int] = Depends(require_scope(Scope.SUB, resource="tasks"))
        ):
            # filter the task query by owner in visible_user_ids
            ...
    """
    async def scope_dependency(
        request: Request,
        db: Annotated[AsyncSession, Depends(get_db)],
        service: Annotated[RbacService, Depends(get_rbac_service)],
        user_id: Annotated[Optional[int], Depends(get_principal_id)],
    ) -> set[int]:
        visible_user_ids = None
        if user_id is not None:
            visible_user_ids = await service.get_accessible_user_ids(user_id, scope)

        event = build_scope_event(
            user_id,
            scope,
            visible_user_ids,
            action=action or request.url.path,
            resource=resource,
            **_client_context(request),
        )
        await _record(db, event, commit=user_id is None)

        if visible_user_ids is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="User not authenticated"
            )
        return visible_user_ids

    return scope_dependency
