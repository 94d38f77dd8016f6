# backend/cla_backend/services/database_service.py
"""
Engine and session ownership for the CLA backend.

One ``DatabaseService`` wraps one async SQLAlchemy engine. SQLite (aiosqlite)
serves development and tests; any other URL is treated as PostgreSQL
(asyncpg) and gets a connection pool sized from settings.

Repositories never share a session: each public repository method enters
``get_session()`` itself, which commits when the block exits normally and
rolls back when it raises.

Usage:
    from cla_backend.services.database_service import database_service

    async with database_service.get_session() as session:
        row = await session.get(Signature, signature_id)

    await database_service.init_db()
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Dict, Optional

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from ..config import settings
from ..database.base import Base

logger = logging.getLogger("cla.database")


def _engine_options(database_url: str) -> Dict[str, Any]:
    """Driver specific ``create_async_engine`` keyword arguments."""
    options: Dict[str, Any] = {"pool_pre_ping": True, "echo": settings.debug}
    if database_url.startswith("sqlite"):
        options["connect_args"] = {"check_same_thread": False}
    else:
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_recycle=settings.db_pool_recycle,
        )
    return options


def _ensure_sqlite_directory(database_url: str) -> None:
    database = make_url(database_url).database
    if not database or database == ":memory:":
        return
    directory = Path(database).parent
    if not directory.exists():
        directory.mkdir(parents=True, exist_ok=True)
        logger.info(f"Created SQLite directory {directory}")


class DatabaseService:
    """
    Owner of the async engine and its session factory.

    Attributes:
        database_type: ``sqlite`` or ``postgresql``
    """

    def __init__(self, database_url: Optional[str] = None):
        self._database_url = database_url or settings.database_url
        self.database_type = "sqlite" if self._database_url.startswith("sqlite") else "postgresql"

        if self.database_type == "sqlite":
            _ensure_sqlite_directory(self._database_url)

        self._engine: Optional[AsyncEngine] = create_async_engine(
            self._database_url, **_engine_options(self._database_url)
        )
        self._session_factory: Optional[async_sessionmaker] = async_sessionmaker(
            self._engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
        )
        # Hide credentials; keep host and database name
        logger.info(f"Database engine ready ({self.database_type}): {self._database_url.rsplit('@', 1)[-1]}")

    @property
    def database_url(self) -> str:
        return self._database_url

    @asynccontextmanager
    async def get_session(self) -> AsyncIterator[AsyncSession]:
        """
        Transactional session scope.

        Raises:
            RuntimeError: If the service has no session factory
        """
        if self._session_factory is None:
            raise RuntimeError("Database not initialized")

        async with self._session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise
            await session.commit()

    async def init_db(self) -> None:
        """Create any missing tables for the ORM models."""
        from ..database import models  # noqa: F401

        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info(f"Schema ready ({len(Base.metadata.tables)} tables)")

    async def drop_db(self) -> None:
        """Drop every table. Tests only."""
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def health_check(self) -> Dict[str, Any]:
        """
        Round-trip a ``SELECT 1``.

        Returns:
            ``status``, ``connected`` and ``database_type``, plus ``error``
            when the database cannot be reached
        """
        try:
            async with self.get_session() as session:
                await session.execute(text("SELECT 1"))
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return {"status": "unhealthy", "connected": False, "database_type": self.database_type, "error": str(e)}
        return {"status": "healthy", "connected": True, "database_type": self.database_type}

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            logger.info("Database engine disposed")


# Global singleton instance
database_service = DatabaseService()
