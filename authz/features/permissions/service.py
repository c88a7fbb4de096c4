"""
RBAC service: permission resolution, role membership and organization scoping.

Implements:
- Permission Resolver (get_user_permissions, has_permission)
- Role Membership Checker (has_any_role)
- Organization Scope Resolver (can_access_organization, get_accessible_user_ids,
  get_organization_hierarchy)
- Management Authorization (can_manage_user, get_assignable_users)

The service is stateless: every call re-queries the directory store.
Store failures during resolution are logged and resolved fail-closed
(empty set, False, or the user's own id). Only the record fetch in
get_assignable_users propagates failures.
"""
from collections.abc import Callable, Iterable
from functools import wraps
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from authz.core import config
from authz.core.exceptions import DirectoryStoreError
from authz.features.directory.models import Organization, User
from authz.features.directory.schemas import (
    AssignableUser,
    OrganizationHierarchy,
    OrganizationRead,
    OrganizationSummary,
)
from authz.features.directory.store import DirectoryStore
from authz.features.organizations.hierarchy import violates_two_level
from authz.features.permissions.scopes import (
    ADMIN_ROLE,
    DEFAULT_ROLE_SCOPE_POLICY,
    OWNER_ROLE,
    PRIVILEGED_ROLES,
    RoleScopeRule,
    Scope,
    resolve_effective_scope,
)
from authz.utils import get_logger


log = get_logger(__name__)

STORE_ERRORS = (SQLAlchemyError, DirectoryStoreError)


def fail_closed(fallback: Callable[..., object]):
    """
    Resolve directory store failures to `fallback(*args, **kwargs)`.

    The fallback receives the wrapped method's arguments (without self).
    """
    def decorator(func):
        @wraps(func)
        async def wrapper(self, *args, **kwargs):
            try:
                return await func(self, *args, **kwargs)
            except STORE_ERRORS as e:
                log.warning(f"{func.__name__}{args} failed, resolving fail-closed: {e}")
                return fallback(*args, **kwargs)
        return wrapper
    return decorator


def _self_only(user_id: int, *args, **kwargs) -> set[int]:
    return {user_id}


class RbacService:
    """
    Authorization queries over a directory store.

    Usage:
        service = RbacService(SqlAlchemyDirectoryStore(db))
        if await service.has_permission(user_id, "create_task"):
            ...
        visible = await service.get_accessible_user_ids(user_id, Scope.SUB)
    """

    def __init__(
        self,
        store: DirectoryStore,
        scope_policy: Iterable[RoleScopeRule] = DEFAULT_ROLE_SCOPE_POLICY,
        privileged_roles: Iterable[str] = PRIVILEGED_ROLES,
        strict_hierarchy: Optional[bool] = None,
    ):
        self.store = store
        self.scope_policy = tuple(scope_policy)
        self.privileged_roles = frozenset(privileged_roles)
        self.strict_hierarchy = config.STRICT_HIERARCHY if strict_hierarchy is None else strict_hierarchy

    # ========================================================================
    # Permission Resolver
    # ========================================================================

    @fail_closed(lambda *args, **kwargs: set())
    async def get_user_permissions(self, user_id: int) -> set[str]:
        """
        Get every permission name granted to a user through any role.

        Returns:
            Set of permission names; empty for unknown users or users without roles
        """
        user = await self.store.get_user_with_roles(user_id)
        if user is None:
            return set()

        permissions: set[str] = set()
        for role in user.roles:
            permissions.update(permission.name for permission in role.permissions)
        return permissions

    @fail_closed(lambda *args, **kwargs: False)
    async def has_permission(self, user_id: int, permission_name: str) -> bool:
        return permission_name in await self.get_user_permissions(user_id)

    # ========================================================================
    # Role Membership Checker
    # ========================================================================

    @fail_closed(lambda *args, **kwargs: set())
    async def get_user_role_names(self, user_id: int) -> set[str]:
        user = await self.store.get_user_with_roles(user_id)
        if user is None:
            return set()
        return user.role_names

    async def has_any_role(self, user_id: int, role_names: Iterable[str]) -> bool:
        """True iff the user holds at least one of `role_names` (empty -> False)."""
        required = set(role_names)
        if not required:
            return False
        return not required.isdisjoint(await self.get_user_role_names(user_id))

    # ========================================================================
    # Organization Scope Resolver
    # ========================================================================

    @fail_closed(lambda *args, **kwargs: False)
    async def can_access_organization(self, user_id: int, target_org_id: int, scope: Scope | str) -> bool:
        """
        Check whether a user may access an organization under a scope.

        - own: target is the user's organization
        - sub: target's parent is the user's organization (one level)
        - all: user holds a privileged role
        """
        resolved = Scope.parse(scope)
        if resolved is Scope.ALL:
            return await self.has_any_role(user_id, self.privileged_roles)
        if resolved is None:
            return False

        user = await self.store.get_user_with_organization(user_id)
        if user is None or user.organization_id is None:
            return False

        if resolved is Scope.OWN:
            return user.organization_id == target_org_id

        target = await self.store.find_organization_by_id(target_org_id, with_parent=True)
        return target is not None and target.parent_id == user.organization_id

    @fail_closed(_self_only)
    async def get_accessible_user_ids(self, user_id: int, scope: Scope | str) -> set[int]:
        """
        Get the ids of users whose resources `user_id` may access.

        A user outside any organization only ever sees themselves. A
        non-privileged user asking for "all" is downgraded to "own".
        Unknown scopes resolve to the user's own id.
        """
        user = await self.store.get_user_with_organization(user_id)
        if user is None or user.organization is None:
            return {user_id}

        resolved = Scope.parse(scope)
        if resolved is Scope.OWN:
            return await self._own_org_user_ids(user.organization)
        if resolved is Scope.SUB:
            own = await self._own_org_user_ids(user.organization)
            return own | await self._child_org_user_ids(user.organization)
        if resolved is Scope.ALL:
            if await self.has_any_role(user_id, self.privileged_roles):
                return set(await self.store.find_all_user_ids())
            log.debug(f"User {user_id} lacks a privileged role, downgrading 'all' to 'own'")
            return await self._own_org_user_ids(user.organization)

        log.debug(f"Unknown scope {scope!r} for user {user_id}, resolving to self only")
        return {user_id}

    async def _own_org_user_ids(self, organization: Organization) -> set[int]:
        users = await self.store.find_users_by_organization_ids({organization.id})
        return {user.id for user in users}

    async def _child_org_user_ids(self, organization: Organization) -> set[int]:
        children = await self.store.find_organizations_by_parent_id(organization.id)
        if not children:
            return set()

        if violates_two_level(organization, children):
            if self.strict_hierarchy:
                log.error(
                    f"Organization {organization.id} is a sub-organization with children; "
                    f"refusing to expand 'sub' scope"
                )
                return set()
            log.warning(
                f"Organization {organization.id} is a sub-organization with children; "
                f"expanding 'sub' scope one level only"
            )

        users = await self.store.find_users_by_organization_ids(child.id for child in children)
        return {user.id for user in users}

    @fail_closed(lambda *args, **kwargs: OrganizationHierarchy())
    async def get_organization_hierarchy(self, user_id: int) -> OrganizationHierarchy:
        """Get the user's organization with its parent and direct children."""
        user = await self.store.get_user_with_org_and_parent_and_children(user_id)
        if user is None or user.organization is None:
            return OrganizationHierarchy()

        organization = user.organization
        return OrganizationHierarchy(
            own_org=OrganizationRead.model_validate(organization),
            sub_orgs=[OrganizationRead.model_validate(child) for child in organization.children],
            parent_org=OrganizationRead.model_validate(organization.parent) if organization.parent else None,
        )

    # ========================================================================
    # Management Authorization
    # ========================================================================

    @fail_closed(lambda *args, **kwargs: False)
    async def can_manage_user(self, acting_user_id: int, target_user_id: int) -> bool:
        """
        Check whether one user may administratively manage another.

        Owners manage everyone, admins manage users in their organization
        and its sub-organizations, everyone else only themselves.
        """
        acting_user = await self.store.get_user_with_roles(acting_user_id)
        target_user = await self.store.get_user_with_organization(target_user_id)
        if acting_user is None or target_user is None:
            return False

        roles = acting_user.role_names
        if OWNER_ROLE in roles:
            return True
        if ADMIN_ROLE in roles:
            return target_user_id in await self.get_accessible_user_ids(acting_user_id, Scope.SUB)
        return acting_user_id == target_user_id

    async def get_effective_scope(self, user_id: int) -> Scope:
        """Scope granted by the role-to-scope policy."""
        return resolve_effective_scope(await self.get_user_role_names(user_id), self.scope_policy)

    async def get_assignable_users(self, user_id: int) -> list[AssignableUser]:
        """
        List users the acting user may assign work to.

        Raises:
            SQLAlchemyError / DirectoryStoreError: if the user records cannot be fetched
        """
        scope = await self.get_effective_scope(user_id)
        user_ids = await self.get_accessible_user_ids(user_id, scope)
        if not user_ids:
            return []

        users = await self.store.find_users_with_organization_by_ids(user_ids)
        log.debug(f"User {user_id} can assign {len(users)} users (scope={scope.value})")
        return [self._to_assignable_user(user) for user in users]

    @staticmethod
    def _to_assignable_user(user: User) -> AssignableUser:
        if user.organization is None:
            organization = OrganizationSummary(name=config.NO_ORGANIZATION_LABEL)
        else:
            organization = OrganizationSummary(id=user.organization.id, name=user.organization.name)
        return AssignableUser(id=user.id, name=user.name, email=user.email, organization=organization)
