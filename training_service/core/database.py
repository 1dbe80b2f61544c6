"""Database engine and session management."""

from typing import AsyncGenerator, Dict, Any

from sqlalchemy.ext.asyncio import AsyncSession, AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
import structlog

from training_service.core.config import settings

logger = structlog.get_logger()


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""


def build_engine(url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine; pool sizing only applies to server databases."""
    options: Dict[str, Any] = {"echo": echo, "pool_pre_ping": True}
    if not url.startswith("sqlite"):
        options["pool_size"] = settings.DATABASE_POOL_SIZE
        options["max_overflow"] = settings.DATABASE_MAX_OVERFLOW
    return create_async_engine(url, **options)


engine = build_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
SessionLocal = async_sessionmaker(engine, expire_on_commit=False)


async def init_db(bind: AsyncEngine = None):
    """Create tables for all registered models."""
    # Register models on the metadata
    from training_service import models  # noqa: F401

    bind = bind or engine
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database initialized", tables=sorted(Base.metadata.tables))


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield a request-scoped database session."""
    async with SessionLocal() as session:
        yield session
