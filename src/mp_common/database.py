"""Async engine, session factory and FastAPI session dependency.

Sessions run at PostgreSQL's default READ COMMITTED isolation. Every state change
in this codebase is a status-guarded ``UPDATE ... WHERE status = ... RETURNING``,
which PostgreSQL re-evaluates against the latest committed row after waiting on a
row lock, so two racing writers can never both observe the old status.
"""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from config.settings import settings


class Base(DeclarativeBase):
    """Shared declarative base for ORM mappings (users only; everything else is raw SQL)."""

    pass


engine: AsyncEngine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_size=20,
    max_overflow=10,
    pool_pre_ping=True,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: yields an AsyncSession, auto-closes after request.

    The application service that mutates state owns commit/rollback.
    """
    async with async_session_factory() as session:
        yield session
