"""
Async SQLAlchemy engine + session factory.

The store speaks the MySQL protocol (TiDB / MySQL), so we use the aiomysql
driver. The engine is created once at startup and reused across requests.
"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from tickerfeed.config import settings

logger = logging.getLogger(__name__)

_pool_options = (
    {"pool_pre_ping": True, "pool_size": 20, "max_overflow": 10}
    if settings.database_url.startswith("mysql")
    else {}
)

engine = create_async_engine(settings.database_url, echo=False, **_pool_options)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    pass


async def init_db() -> None:
    """Create all tables if they don't exist (idempotent)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialised")


async def get_db():
    """FastAPI dependency that yields an async DB session."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
