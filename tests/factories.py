"""Test data factories and directory store doubles."""

from typing import Iterable, Optional

from sqlalchemy import select

from authz.core.exceptions import DirectoryStoreError
from authz.features.directory.models import Organization, Permission, Role, User
from authz.features.directory.store import SqlAlchemyDirectoryStore


# Ids assigned by seed_directory on an empty database
ACME_ID = 1
ENGINEERING_ID = 2
OWNER_ID = 1
ADMIN_ID = 2
VIEWER_ID = 3


async def get_role(db, name: str) -> Role:
    result = await db.execute(select(Role).where(Role.name == name))
    return result.scalars().one()


async def create_role(db, name: str, permissions: Iterable[str] = ()) -> Role:
    """Create a role, reusing existing permissions by name."""
    role_permissions = []
    for permission_name in permissions:
        result = await db.execute(select(Permission).where(Permission.name == permission_name))
        permission = result.scalars().first() or Permission(name=permission_name)
        role_permissions.append(permission)

    role = Role(name=name, permissions=role_permissions)
    db.add(role)
    await db.flush()
    return role


async def create_user(
    db,
    name: str,
    organization: Optional[Organization] = None,
    roles: Iterable[Role] = (),
    email: Optional[str] = None,
) -> User:
    user = User(
        name=name,
        email=email or f"{name.lower().replace(' ', '.')}@example.com",
        organization_id=organization.id if organization else None,
        roles=list(roles),
    )
    db.add(user)
    await db.flush()
    return user


async def create_unchecked_organization(db, name: str, parent_id: Optional[int] = None) -> Organization:
    """Create an organization without the two-level hierarchy check."""
    organization = Organization(name=name, parent_id=parent_id)
    db.add(organization)
    await db.flush()
    return organization


class FailingDirectoryStore:
    """Directory store whose every query fails."""

    async def _fail(self, *args, **kwargs):
        raise DirectoryStoreError("directory unavailable")

    get_user_with_roles = _fail
    get_user_with_organization = _fail
    find_users_by_organization_ids = _fail
    find_organizations_by_parent_id = _fail
    find_organization_by_id = _fail
    find_all_user_ids = _fail
    get_user_with_org_and_parent_and_children = _fail
    find_users_with_organization_by_ids = _fail


class FailingQueryStore(SqlAlchemyDirectoryStore):
    """Real store with selected queries failing."""

    def __init__(self, db, failing: Iterable[str]):
        super().__init__(db)
        for name in failing:
            setattr(self, name, self._fail)

    async def _fail(self, *args, **kwargs):
        raise DirectoryStoreError("query failed")
