"""
Seed script to populate the default directory.

Run this script to create the tables and:
- Default task permissions
- owner / admin / viewer roles
- Acme Corp with its Engineering Team sub-organization
- One user per role

Usage:
    python -m scripts.seed_directory
"""
import asyncio

from authz.core.database.engine import get_db, init_db
from authz.features.directory.seed import DEFAULT_ROLES, seed_directory
from authz.features.organizations.hierarchy import find_hierarchy_violations
from authz.utils import get_logger


log = get_logger(__name__)


async def main():
    """Main function to seed the directory."""
    log.info("Starting directory seeding...")

    log.info("Initializing database tables...")
    await init_db()

    async for db in get_db():
        try:
            users_map = await seed_directory(db)

            violations = await find_hierarchy_violations(db)
            if violations:
                log.warning(f"{len(violations)} organizations violate the two-level hierarchy")

            log.info("")
            log.info("Default roles:")
            for role_name, role_config in DEFAULT_ROLES.items():
                log.info(f"  - {role_name}: {role_config['description']}")
            log.info("Users:")
            for email, user in users_map.items():
                log.info(f"  - {email} (id={user.id}, organization={user.organization_id})")

        except Exception as e:
            log.error(f"Error seeding directory: {e}", exc_info=True)
            await db.rollback()
            raise

        break  # Only use first session


if __name__ == "__main__":
    asyncio.run(main())
