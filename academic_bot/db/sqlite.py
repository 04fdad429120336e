"""
Async engine for the SQL history store.

SQLite through aiosqlite by default; any async SQLAlchemy URL works.
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from academic_bot.config import Settings
from academic_bot.db.models import Base

logger = logging.getLogger(__name__)


class Database:
    """Engine and session factory for the chats, history and feedback tables."""

    def __init__(self, url: str, echo: bool = False):
        self.url = make_url(url)
        self.echo = echo
        self._engine = None
        self._session_factory = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(settings.db_url, echo=settings.debug)

    @property
    def initialized(self) -> bool:
        return self._engine is not None

    def _ensure_sqlite_dir(self) -> None:
        database = self.url.database
        if self.url.get_backend_name() != "sqlite" or not database or database == ":memory:":
            return
        Path(database).parent.mkdir(parents=True, exist_ok=True)

    async def init(self) -> None:
        """Connect and create missing tables. Safe to call twice."""
        if self.initialized:
            return

        self._ensure_sqlite_dir()
        self._engine = create_async_engine(self.url, echo=self.echo)
        self._session_factory = async_sessionmaker(
            bind=self._engine,
            expire_on_commit=False,
            autoflush=False,
        )

        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        logger.info(f"History database ready: {self.url.render_as_string(hide_password=True)}")

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Session that commits on success and rolls back on any error."""
        if not self.initialized:
            await self.init()

        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
