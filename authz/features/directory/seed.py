"""
Default directory data.

Creates:
- Default task permissions
- owner / admin / viewer roles
- Acme Corp (root) with its Engineering Team sub-organization
- One user per role

Every step skips records that already exist, so seeding is idempotent.
"""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from authz.features.directory.models import Organization, Permission, Role, User
from authz.features.organizations.hierarchy import create_organization
from authz.features.permissions.scopes import ADMIN_ROLE, OWNER_ROLE, VIEWER_ROLE
from authz.utils import get_logger


log = get_logger(__name__)


DEFAULT_PERMISSIONS = [
    ("create_task", "Create new tasks"),
    ("read_task", "View tasks"),
    ("update_task", "Edit tasks"),
    ("delete_task", "Delete tasks"),
    ("view_audit_log", "View audit logs"),
]


DEFAULT_ROLES = {
    OWNER_ROLE: {
        "description": "Organization owner with full access",
        "permissions": "ALL"  # Special case - gets all permissions
    },
    ADMIN_ROLE: {
        "description": "Administrator with task management access",
        "permissions": ["create_task", "read_task", "update_task", "delete_task"],
    },
    VIEWER_ROLE: {
        "description": "View-only access to tasks",
        "permissions": ["read_task"],
    },
}


ROOT_ORGANIZATION = ("Acme Corp", "Main organization")
SUB_ORGANIZATION = ("Engineering Team", "Engineering department")

# (name, email, role, belongs to sub-organization)
DEFAULT_USERS = [
    ("John Owner", "owner@example.com", OWNER_ROLE, False),
    ("Jane Admin", "admin@example.com", ADMIN_ROLE, False),
    ("Bob Viewer", "viewer@example.com", VIEWER_ROLE, True),
]


async def seed_permissions(db: AsyncSession) -> dict[str, Permission]:
    """
    Create default permissions.

    Returns:
        Dictionary mapping permission names to Permission objects
    """
    log.info("Creating default permissions...")
    permissions_map = {}

    for name, description in DEFAULT_PERMISSIONS:
        result = await db.execute(select(Permission).where(Permission.name == name))
        existing = result.scalars().first()

        if existing:
            log.debug(f"Permission '{name}' already exists, skipping")
            permissions_map[name] = existing
            continue

        permission = Permission(name=name, description=description)
        db.add(permission)
        permissions_map[name] = permission
        log.info(f"Created permission: {name}")

    await db.flush()
    return permissions_map


async def seed_roles(db: AsyncSession, permissions_map: dict[str, Permission]) -> dict[str, Role]:
    """
    Create default roles and assign permissions.

    Returns:
        Dictionary mapping role names to Role objects
    """
    log.info("Creating default roles...")
    roles_map = {}

    for role_name, role_config in DEFAULT_ROLES.items():
        result = await db.execute(select(Role).where(Role.name == role_name))
        existing = result.scalars().first()

        if existing:
            log.debug(f"Role '{role_name}' already exists, skipping")
            roles_map[role_name] = existing
            continue

        role = Role(name=role_name, description=role_config["description"])

        if role_config["permissions"] == "ALL":
            role.permissions = list(permissions_map.values())
        else:
            role_permissions = []
            for perm_name in role_config["permissions"]:
                if perm_name in permissions_map:
                    role_permissions.append(permissions_map[perm_name])
                else:
                    log.warning(f"Permission '{perm_name}' not found for role '{role_name}'")
            role.permissions = role_permissions

        db.add(role)
        roles_map[role_name] = role
        log.info(f"Created role '{role_name}' with {len(role.permissions)} permissions")

    await db.flush()
    return roles_map


async def _get_or_create_organization(
    db: AsyncSession,
    name: str,
    description: str,
    parent_id: int | None = None,
) -> Organization:
    result = await db.execute(select(Organization).where(Organization.name == name))
    existing = result.scalars().first()
    if existing:
        log.debug(f"Organization '{name}' already exists, skipping")
        return existing
    return await create_organization(db, name, description=description, parent_id=parent_id)


async def seed_organizations(db: AsyncSession) -> tuple[Organization, Organization]:
    """Create the root organization and its sub-organization."""
    log.info("Creating organizations...")
    root = await _get_or_create_organization(db, *ROOT_ORGANIZATION)
    sub = await _get_or_create_organization(db, *SUB_ORGANIZATION, parent_id=root.id)
    return root, sub


async def seed_users(
    db: AsyncSession,
    roles_map: dict[str, Role],
    root: Organization,
    sub: Organization,
) -> dict[str, User]:
    """
    Create one user per default role.

    Returns:
        Dictionary mapping emails to User objects
    """
    log.info("Creating users...")
    users_map = {}

    for name, email, role_name, in_sub_organization in DEFAULT_USERS:
        result = await db.execute(select(User).where(User.email == email))
        existing = result.scalars().first()

        if existing:
            log.debug(f"User '{email}' already exists, skipping")
            users_map[email] = existing
            continue

        user = User(
            name=name,
            email=email,
            organization_id=sub.id if in_sub_organization else root.id,
            roles=[roles_map[role_name]],
        )
        db.add(user)
        users_map[email] = user
        log.info(f"Created user: {email}")

    await db.flush()
    return users_map


async def seed_directory(db: AsyncSession) -> dict[str, User]:
    """
    Seed permissions, roles, organizations and users, then commit.

    Returns:
        Dictionary mapping emails to the seeded users
    """
    permissions_map = await seed_permissions(db)
    roles_map = await seed_roles(db, permissions_map)
    root, sub = await seed_organizations(db)
    users_map = await seed_users(db, roles_map, root, sub)
    await db.commit()
    log.info("Directory seeding completed successfully")
    return users_map
