"""
TIPSTREAM - Database
Async engine, sessions and the single-transaction boundary used for
snapshot replacement of the match cache and prediction pools.
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool

from tipstream.core.config import settings

logger = logging.getLogger(__name__)

Base = declarative_base()


class DatabaseManager:
    """
    Owns the async engine and hands out sessions.

    ``session()`` commits on success and rolls back on error.
    ``transaction()`` wraps its block in one BEGIN ... COMMIT so readers on
    other connections see either the whole write or none of it.
    """

    def __init__(self, database_url: Optional[str] = None, echo: Optional[bool] = None):
        self.database_url = database_url or settings.DATABASE_URL
        self.echo = settings.DATABASE_ECHO if echo is None else echo
        self._engine: Optional[AsyncEngine] = None
        self._sessions: Optional[async_sessionmaker] = None
        self._stats: Dict[str, int] = {
            "sessions_opened": 0,
            "transactions_committed": 0,
            "rollbacks": 0,
        }

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("DatabaseManager is not initialized")
        return self._engine

    async def initialize(self) -> None:
        if self._engine is not None:
            return

        engine_kwargs: Dict[str, Any] = {"echo": self.echo}
        if self.database_url.startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            # One shared connection, otherwise every checkout sees a new empty database
            if ":memory:" in self.database_url:
                engine_kwargs["poolclass"] = StaticPool
        else:
            engine_kwargs["pool_pre_ping"] = True

        self._engine = create_async_engine(self.database_url, **engine_kwargs)
        self._sessions = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        logger.info(f"[Database] Engine ready ({self._engine.url.get_backend_name()})")

    async def create_all(self) -> None:
        """Create the cache, pool and source tables if missing."""
        await self.initialize()
        import tipstream.models.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("[Database] Tables ensured")

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._sessions = None
            logger.info("[Database] Engine disposed")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        await self.initialize()
        self._stats["sessions_opened"] += 1

        async with self._sessions() as session:
            try:
                yield session
                await session.commit()
            except Exception as e:
                await session.rollback()
                self._stats["rollbacks"] += 1
                logger.error(f"[Database] Session rolled back: {e}")
                raise

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[AsyncSession, None]:
        await self.initialize()
        self._stats["sessions_opened"] += 1

        async with self._sessions() as session:
            try:
                async with session.begin():
                    yield session
            except Exception as e:
                self._stats["rollbacks"] += 1
                logger.error(f"[Database] Transaction rolled back: {e}")
                raise
            self._stats["transactions_committed"] += 1

    async def health_check(self) -> Dict[str, Any]:
        started = time.perf_counter()
        try:
            async with self.session() as session:
                await session.execute(text("SELECT 1"))
        except Exception as e:
            logger.error(f"[Database] Health check failed: {e}")
            return {"status": "unhealthy", "error": str(e), "stats": self.get_stats()}

        return {
            "status": "healthy",
            "latency_ms": round((time.perf_counter() - started) * 1000, 2),
            "stats": self.get_stats(),
        }

    def get_stats(self) -> Dict[str, int]:
        return dict(self._stats)


db_manager = DatabaseManager()


async def init_db() -> None:
    await db_manager.create_all()


async def close_db() -> None:
    await db_manager.close()


def get_database_manager() -> DatabaseManager:
    return db_manager
