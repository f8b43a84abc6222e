"""
Async database engine and session factory for the indexer tables.

PostgreSQL (asyncpg) in production, SQLite (aiosqlite) in tests. Both
dialects support the ``ON CONFLICT`` upserts the handlers rely on.
"""

from typing import AsyncGenerator, Optional
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from .config import settings, DatabaseConfig
from .exceptions import DatabaseError
from .logging import get_logger

logger = get_logger(__name__)

UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}

async_engine: Optional[AsyncEngine] = None
async_session_maker: Optional[async_sessionmaker[AsyncSession]] = None


async def init_database(database_url: Optional[str] = None) -> None:
    """Create the engine and session factory; replaces any previous ones."""
    global async_engine, async_session_maker

    url = DatabaseConfig.get_database_url(database_url)
    if async_engine is not None:
        await async_engine.dispose()

    async_engine = create_async_engine(
        url,
        **DatabaseConfig.get_engine_config(url),
        echo=settings.debug,
    )
    async_session_maker = async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    logger.info(
        "Database initialized",
        url=make_url(url).render_as_string(hide_password=True),
    )


async def close_database() -> None:
    """Dispose of the engine and forget the session factory."""
    global async_engine, async_session_maker

    if async_engine is not None:
        await async_engine.dispose()
        logger.info("Database connections closed")

    async_engine = None
    async_session_maker = None


def _require_engine() -> AsyncEngine:
    if async_engine is None:
        raise DatabaseError("Database not initialized. Call init_database() first.")
    return async_engine


def get_session_maker() -> async_sessionmaker[AsyncSession]:
    """Return the initialized session factory."""
    if async_session_maker is None:
        raise DatabaseError("Database not initialized. Call init_database() first.")
    return async_session_maker


@asynccontextmanager
async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Session that commits on success and rolls back on error."""
    async with get_session_maker()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def dialect_insert(session: AsyncSession, target):
    """
    INSERT into ``target`` (model or table) with ``on_conflict_do_*``
    support for the dialect the session is bound to.

    Raises:
        DatabaseError: For dialects without ``ON CONFLICT`` support here
    """
    dialect = session.get_bind().dialect.name
    insert = UPSERT_DIALECTS.get(dialect)
    if insert is None:
        raise DatabaseError(
            f"Upserts are not supported for dialect {dialect}",
            {"dialect": dialect, "supported": sorted(UPSERT_DIALECTS)},
        )
    return insert(target)


class DatabaseManager:
    """Schema and connectivity helpers used by the CLI and the API."""

    @staticmethod
    async def create_tables(reset: bool = False) -> None:
        """Create the indexer tables, dropping them first when ``reset``."""
        from charity_indexer.models import Base

        engine = _require_engine()
        async with engine.begin() as conn:
            if reset:
                logger.warning("Dropping indexer tables", tables=sorted(Base.metadata.tables))
                await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)

        logger.info("Indexer tables ready", tables=sorted(Base.metadata.tables))

    @staticmethod
    async def health_check() -> bool:
        """True if a trivial query succeeds."""
        try:
            async with get_async_session() as session:
                await session.execute(text("SELECT 1"))
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return False
        return True
