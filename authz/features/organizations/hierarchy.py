"""
Two-level organization hierarchy checks.

Root organizations have no parent; sub-organizations have a root parent and
no children. Scope resolution looks exactly one level down, so deeper
nesting would silently under-authorize. These helpers reject it on write
and flag it on read.
"""
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from authz.core.exceptions import HierarchyDepthError, OrganizationNotFound
from authz.features.directory.models import Organization
from authz.features.directory.store import DirectoryStore, SqlAlchemyDirectoryStore
from authz.utils import get_logger


log = get_logger(__name__)


def violates_two_level(organization: Organization, children: Optional[list[Organization]] = None) -> bool:
    """
    True when an organization is both a sub-organization and a parent.

    Args:
        organization: Organization to check
        children: Its direct children; defaults to the loaded `children` collection
    """
    if children is None:
        children = organization.children
    return organization.parent_id is not None and len(children) > 0


async def ensure_parent_is_root(store: DirectoryStore, parent_id: int) -> Organization:
    """
    Verify an organization may become a parent.

    Raises:
        OrganizationNotFound: parent does not exist
        HierarchyDepthError: parent is itself a sub-organization
    """
    parent = await store.find_organization_by_id(parent_id, with_parent=True)
    if parent is None:
        raise OrganizationNotFound(parent_id)
    if parent.parent_id is not None:
        raise HierarchyDepthError(parent.id, parent.parent_id)
    return parent


async def create_organization(
    db: AsyncSession,
    name: str,
    description: Optional[str] = None,
    parent_id: Optional[int] = None,
) -> Organization:
    """
    Create an organization, enforcing the two-level invariant.

    The organization is flushed (so it has an id) but not committed.
    """
    if parent_id is not None:
        await ensure_parent_is_root(SqlAlchemyDirectoryStore(db), parent_id)

    organization = Organization(name=name, description=description, parent_id=parent_id)
    db.add(organization)
    await db.flush()

    log.info(f"Created organization {organization.id} ({name!r}) parent={parent_id}")
    return organization


async def find_hierarchy_violations(db: AsyncSession) -> list[Organization]:
    """Organizations whose parent itself has a parent."""
    parent = aliased(Organization)
    stmt = (
        select(Organization)
        .join(parent, Organization.parent_id == parent.id)
        .where(parent.parent_id.is_not(None))
        .order_by(Organization.id)
    )
    result = await db.execute(stmt)
    violations = list(result.scalars().all())
    for organization in violations:
        log.warning(f"Organization {organization.id} is nested deeper than two levels")
    return violations
