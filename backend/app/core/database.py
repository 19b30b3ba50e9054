"""Async SQLAlchemy engines and session dependencies.

Two credential tiers are exposed:
- get_db: service-role connection, used by the dashboard and booking writes
- get_public_db: restricted connection, used by public fleet reads
"""

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import get_settings
from app.models.base import Base  # noqa: F401

settings = get_settings()

engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_pre_ping=True,
)

public_engine = (
    create_async_engine(settings.public_db_url, echo=settings.debug, pool_pre_ping=True)
    if settings.public_database_url
    else engine
)

SessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
PublicSessionLocal = async_sessionmaker(public_engine, class_=AsyncSession, expire_on_commit=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Service-role session dependency."""
    async with SessionLocal() as session:
        yield session


async def get_public_db() -> AsyncGenerator[AsyncSession, None]:
    """Restricted (public) session dependency."""
    async with PublicSessionLocal() as session:
        yield session
