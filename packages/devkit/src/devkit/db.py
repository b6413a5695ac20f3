from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
import logging
from typing import TypeVar

from sqlalchemy import MetaData, text
from sqlalchemy.exc import DBAPIError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Base(DeclarativeBase):
    """Declarative base shared by every campus table."""


def normalize_postgres_dsn(dsn: str) -> str:
    if dsn.startswith("postgresql://"):
        return dsn.replace("postgresql://", "postgresql+psycopg://", 1)
    return dsn


def is_postgres_url(dsn: str | None) -> bool:
    return bool(dsn and dsn.startswith("postgresql"))


def is_transient_db_error(exc: Exception) -> bool:
    if isinstance(exc, OperationalError):
        return True
    if isinstance(exc, DBAPIError):
        return bool(getattr(exc, "connection_invalidated", False))
    return False


class AsyncDatabaseManager:
    """Owns one async engine and retries units of work on dropped connections."""

    def __init__(
        self,
        dsn: str,
        *,
        max_retries: int = 3,
        base_delay_seconds: float = 0.2,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._dsn = normalize_postgres_dsn(dsn)
        self._max_retries = max_retries
        self._base_delay_seconds = base_delay_seconds
        self._sleep = sleep
        self._engine: AsyncEngine | None = None
        self._sessions: async_sessionmaker[AsyncSession] | None = None

    def _open(self) -> AsyncEngine:
        if self._engine is None:
            self._engine = create_async_engine(self._dsn, pool_pre_ping=True, pool_recycle=1800)
            self._sessions = async_sessionmaker(self._engine, expire_on_commit=False)
        return self._engine

    async def connect(self) -> None:
        async with self._open().connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def disconnect(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._sessions = None

    async def bootstrap(self, metadata: MetaData, schema_name: str | None = None) -> None:
        """Create ``schema_name`` (when given) and every table in ``metadata``."""
        async with self._open().begin() as conn:
            if schema_name:
                await conn.execute(text(f'CREATE SCHEMA IF NOT EXISTS "{schema_name}"'))
            await conn.run_sync(metadata.create_all)

    async def is_healthy(self) -> bool:
        try:
            await self.connect()
        except SQLAlchemyError as exc:
            logger.warning("db_health_check_failed", extra={"error": str(exc)})
            return False
        return True

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        self._open()
        assert self._sessions is not None
        session = self._sessions()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def run_with_session(self, fn: Callable[[AsyncSession], Awaitable[T]]) -> T:
        attempt = 0
        while True:
            try:
                async with self.session() as session:
                    return await fn(session)
            except Exception as exc:
                attempt += 1
                if attempt >= self._max_retries or not is_transient_db_error(exc):
                    raise
                delay = self._base_delay_seconds * (2 ** (attempt - 1))
                logger.warning(
                    "db_transient_error_retry",
                    extra={"attempt": attempt, "delay_seconds": delay, "error": str(exc)},
                )
                await self.disconnect()
                await self._sleep(delay)
