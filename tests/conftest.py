"""Pytest configuration and shared fixtures."""

import pytest
import pytest_asyncio

from authz.core.database.engine import build_engine, build_session_factory, init_db
from authz.features.directory.seed import seed_directory
from authz.features.directory.store import SqlAlchemyDirectoryStore
from authz.features.permissions.service import RbacService


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def engine():
    """Fresh in-memory database per test."""
    engine = build_engine(TEST_DATABASE_URL)
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db(engine):
    """Database session bound to the test engine."""
    async with build_session_factory(engine)() as session:
        yield session


@pytest_asyncio.fixture
async def scenario(db):
    """
    Default directory.

    Acme Corp (1) is the root of Engineering Team (2).
    John Owner (1, owner) and Jane Admin (2, admin) belong to Acme,
    Bob Viewer (3, viewer) belongs to Engineering.
    """
    return await seed_directory(db)


@pytest.fixture
def store(db):
    return SqlAlchemyDirectoryStore(db)


@pytest.fixture
def service(store):
    return RbacService(store, strict_hierarchy=False)
