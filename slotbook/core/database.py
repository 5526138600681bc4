import structlog
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from slotbook.core.config import settings

logger = structlog.get_logger(__name__)

Base = declarative_base()


def build_engine(database_url: str) -> AsyncEngine:
    """Create an async engine; pool tuning only applies to server databases."""
    options = {"echo": False, "future": True}  # echo off to keep engine logs quiet
    if not database_url.startswith("sqlite"):
        options.update(pool_pre_ping=True, pool_recycle=300)
    return create_async_engine(database_url, **options)


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


engine = build_engine(settings.DATABASE_URL)

AsyncSessionLocal = build_session_factory(engine)


async def init_db():
    """Check the database connection at startup."""
    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))

        logger.info("Database connection initialized successfully")
    except Exception as e:
        logger.error("Failed to initialize database", exc_info=e)
        raise


def get_session_factory() -> async_sessionmaker:
    """Dependency returning the session factory.

    Availability reads fan out across employees, so each read opens its own
    session instead of sharing a request-scoped one.
    """
    return AsyncSessionLocal
