"""
Directory store: read-only query contract consumed by the authorization engine.

DirectoryStore is the contract; SqlAlchemyDirectoryStore implements it on an
AsyncSession with explicit eager loading, so the engine never triggers lazy
loads. Every call re-queries current state; nothing is cached.
"""
from collections.abc import Iterable
from typing import Optional, Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from authz.features.directory.models import Organization, Role, User


class DirectoryStore(Protocol):
    """Read access to users, organizations, roles and permissions."""

    async def get_user_with_roles(self, user_id: int) -> Optional[User]:
        """User with roles and each role's permissions loaded."""
        ...

    async def get_user_with_organization(self, user_id: int) -> Optional[User]:
        """User with its organization loaded."""
        ...

    async def find_users_by_organization_ids(self, organization_ids: Iterable[int]) -> list[User]:
        ...

    async def find_organizations_by_parent_id(self, parent_id: int) -> list[Organization]:
        ...

    async def find_organization_by_id(self, organization_id: int, with_parent: bool = False) -> Optional[Organization]:
        ...

    async def find_all_user_ids(self) -> list[int]:
        ...

    async def get_user_with_org_and_parent_and_children(self, user_id: int) -> Optional[User]:
        ...

    async def find_users_with_organization_by_ids(self, user_ids: Iterable[int]) -> list[User]:
        """Full user records (with organization) for the given ids."""
        ...


class SqlAlchemyDirectoryStore:
    """
    DirectoryStore backed by the SQLAlchemy directory models.

    Usage:
        async with AsyncSessionLocal() as db:
            store = SqlAlchemyDirectoryStore(db)
            user = await store.get_user_with_roles(1)
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user_with_roles(self, user_id: int) -> Optional[User]:
        stmt = (
            select(User)
            .where(User.id == user_id)
            .options(selectinload(User.roles).selectinload(Role.permissions))
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_user_with_organization(self, user_id: int) -> Optional[User]:
        stmt = (
            select(User)
            .where(User.id == user_id)
            .options(selectinload(User.organization))
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def find_users_by_organization_ids(self, organization_ids: Iterable[int]) -> list[User]:
        ids = set(organization_ids)
        if not ids:
            return []
        result = await self.db.execute(
            select(User).where(User.organization_id.in_(ids)).order_by(User.id)
        )
        return list(result.scalars().all())

    async def find_organizations_by_parent_id(self, parent_id: int) -> list[Organization]:
        result = await self.db.execute(
            select(Organization)
            .where(Organization.parent_id == parent_id)
            .order_by(Organization.id)
        )
        return list(result.scalars().all())

    async def find_organization_by_id(self, organization_id: int, with_parent: bool = False) -> Optional[Organization]:
        stmt = select(Organization).where(Organization.id == organization_id)
        if with_parent:
            stmt = stmt.options(selectinload(Organization.parent))
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def find_all_user_ids(self) -> list[int]:
        result = await self.db.execute(select(User.id).order_by(User.id))
        return list(result.scalars().all())

    async def get_user_with_org_and_parent_and_children(self, user_id: int) -> Optional[User]:
        stmt = (
            select(User)
            .where(User.id == user_id)
            .options(
                selectinload(User.organization).selectinload(Organization.parent),
                selectinload(User.organization).selectinload(Organization.children),
            )
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def find_users_with_organization_by_ids(self, user_ids: Iterable[int]) -> list[User]:
        ids = set(user_ids)
        if not ids:
            return []
        stmt = (
            select(User)
            .where(User.id.in_(ids))
            .options(selectinload(User.organization))
            .order_by(User.id)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
