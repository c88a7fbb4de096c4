"""
Async engine and session management.

The directory is read through the session handed to SqlAlchemyDirectoryStore;
writes only happen in seeding, organization creation and the audit trail.
"""
from collections.abc import AsyncGenerator
from typing import Any
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool, StaticPool

from authz.core import config
from authz.utils import get_logger


log = get_logger(__name__)


def build_engine(url: str, **kwargs: Any) -> AsyncEngine:
    """
    Create an async engine for a database URL.

    File-backed SQLite gets NullPool; in-memory SQLite gets StaticPool so
    every session sees the same database.
    """
    if url.startswith("sqlite"):
        if ":memory:" in url:
            kwargs.setdefault("poolclass", StaticPool)
            kwargs.setdefault("connect_args", {"check_same_thread": False})
        else:
            kwargs.setdefault("poolclass", NullPool)
    return create_async_engine(url, echo=False, **kwargs)


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


engine = build_engine(config.SQLALCHEMY_DATABASE_URL)
AsyncSessionLocal = build_session_factory(engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency yielding one session per request.

    Commits when the request succeeds and rolls back on any error.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db(bind: AsyncEngine | None = None):
    """Create every directory and audit table (on the configured engine by default)."""
    from authz.core.database.base import Base

    # Register models with the metadata
    from authz.features.directory.models import User, Organization, Role, Permission  # noqa: F401
    from authz.features.audit.models import AuditLog  # noqa: F401

    bind = bind or engine
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    log.info(f"Database tables ready ({bind.url.render_as_string(hide_password=True)})")
