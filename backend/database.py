# ============================================================
# database.py — Async Engine & Session Factory
# ============================================================

import logging
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession
from sqlalchemy.orm import sessionmaker

from config import normalize_database_url
from db_models import Base

logger = logging.getLogger(__name__)


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def create_engine_from_url(url: str, pool_size: int = 3, max_overflow: int = 2) -> AsyncEngine:
    """Create the async engine; pool sizing only applies to server databases"""
    url = normalize_database_url(url)

    if _is_sqlite(url):
        engine = create_async_engine(url, echo=False)

        @event.listens_for(engine.sync_engine, "connect")
        def _sqlite_pragmas(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.execute("PRAGMA busy_timeout=5000")
            cursor.close()

        return engine

    return create_async_engine(
        url,
        pool_size=pool_size,
        max_overflow=max_overflow,
        echo=False
    )


def create_session_factory(engine: AsyncEngine):
    return sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False
    )


async def init_schema(engine: AsyncEngine):
    """
    Create any missing tables.
    Safe to run on every startup.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("✅ Schema ready")


async def check_connection(engine: AsyncEngine) -> bool:
    async with engine.connect() as conn:
        result = await conn.execute(text("SELECT 1"))
        return result.scalar() == 1
