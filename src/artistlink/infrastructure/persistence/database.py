"""Async engine and transactional session scope."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from artistlink.config import Settings
from artistlink.config.settings import DatabaseSettings

logger = logging.getLogger(__name__)


def engine_options(db: DatabaseSettings) -> dict[str, Any]:
    """Dialect-specific create_async_engine kwargs."""
    options: dict[str, Any] = {"echo": db.echo, "pool_pre_ping": db.pool_pre_ping}
    url = make_url(db.url)

    if url.get_backend_name() == "sqlite":
        options["connect_args"] = {"check_same_thread": False, "timeout": 30}
        # Hey future me - an in-memory SQLite DB lives and dies with ONE connection.
        # StaticPool pins it so every session sees the same tables (tests rely on this).
        if url.database in (None, "", ":memory:"):
            options["poolclass"] = StaticPool
    else:
        options.update(
            pool_size=db.pool_size,
            max_overflow=db.max_overflow,
            pool_timeout=db.pool_timeout,
            pool_recycle=db.pool_recycle,
        )
    return options


class Database:
    """Owns the engine; hands out one transaction per session_scope()."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self._engine = create_async_engine(
            settings.database.url, **engine_options(settings.database)
        )
        if self._engine.dialect.name == "sqlite":
            event.listen(self._engine.sync_engine, "connect", _sqlite_foreign_keys)

        self._session_factory = async_sessionmaker(
            self._engine, class_=AsyncSession, expire_on_commit=False
        )
        logger.debug("Database engine created for %s", self._engine.url.render_as_string())

    @asynccontextmanager
    async def session_scope(self) -> AsyncGenerator[AsyncSession, None]:
        """Commit when the block exits cleanly, roll back and re-raise otherwise."""
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def create_tables(self) -> None:
        """Create missing tables (outside production; production runs Alembic)."""
        from artistlink.infrastructure.persistence.models import Base

        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        await self._engine.dispose()


def _sqlite_foreign_keys(dbapi_conn: Any, _connection_record: Any) -> None:
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
