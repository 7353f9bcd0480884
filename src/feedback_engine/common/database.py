"""Async database manager for Feedback-Engine (single-DB)."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from feedback_engine.common.config import FeedbackSettings, get_settings
from feedback_engine.common.models import Base

# Import all model modules so Base.metadata is complete for create_all().
import feedback_engine.accounts.models  # noqa: F401
import feedback_engine.games.models  # noqa: F401
import feedback_engine.feedback.models  # noqa: F401
import feedback_engine.beta.models  # noqa: F401


class DatabaseManager:
    """Manages a single async database engine.

    Without a configured ``db_url`` the engine points at an in-memory SQLite
    database that lives as long as the process.
    """

    def __init__(self, settings: FeedbackSettings | None = None):
        self._settings = settings or get_settings()
        self.engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def persistent(self) -> bool:
        return self._settings.storage_configured

    async def init(self) -> None:
        if self.persistent:
            self.engine = create_async_engine(self._settings.db_url, echo=False)
        else:
            # One shared connection, or each session would see an empty database
            self.engine = create_async_engine(
                self._settings.effective_db_url, echo=False, poolclass=StaticPool
            )
        self._session_factory = async_sessionmaker(
            self.engine, expire_on_commit=False
        )

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        if self._session_factory is None:
            raise RuntimeError("DatabaseManager not initialized; call init() first")
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def create_all(self) -> None:
        if self.engine is None:
            raise RuntimeError("DatabaseManager not initialized; call init() first")
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def ping(self) -> bool:
        if self.engine is None:
            return False
        async with self.engine.connect() as conn:
            result = await conn.execute(text("SELECT 1"))
            return result.scalar() == 1

    async def close(self) -> None:
        if self.engine:
            await self.engine.dispose()
            self.engine = None
            self._session_factory = None
