# This project was developed with assistance from AI tools.
"""
Database handle with an explicit lifecycle.

The application constructs one ``DatabaseService`` at startup, stores it on
``app.state`` and disposes it at shutdown. Request handlers receive sessions
through the ``get_db`` dependency; nothing in the service layer imports an
engine or pool as ambient module state.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from starlette.requests import Request

from .config import db_settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class DatabaseService:
    """Owns the async engine and session factory for one process."""

    def __init__(
        self,
        url: str | None = None,
        *,
        echo: bool | None = None,
        engine: AsyncEngine | None = None,
        **engine_kwargs,
    ):
        self.url = url or db_settings.DATABASE_URL
        self.engine = engine or create_async_engine(
            self.url,
            echo=db_settings.SQL_ECHO if echo is None else echo,
            **engine_kwargs,
        )
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Yield a session; roll back whatever is uncommitted on error."""
        async with self.session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    async def create_all(self) -> None:
        """Create every mapped table (dev / test convenience)."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def health_check(self) -> bool:
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception:
            logger.warning("Database health check failed", exc_info=True)
            return False

    async def dispose(self) -> None:
        await self.engine.dispose()
        logger.info("Database engine disposed")


def get_db_service(request: Request) -> DatabaseService:
    """FastAPI dependency: return the DatabaseService opened at startup."""
    service = getattr(request.app.state, "db_service", None)
    if service is None:
        raise RuntimeError("DatabaseService not initialised -- lifespan has not run")
    return service


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """FastAPI dependency: one session per request."""
    async with get_db_service(request).session() as session:
        yield session


def dialect_insert(session: AsyncSession, model):
    """Return an INSERT supporting ``on_conflict_do_*`` for the session's dialect."""
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return pg_insert(model)
    if dialect == "sqlite":
        return sqlite_insert(model)
    raise NotImplementedError(f"Upsert is not supported on the '{dialect}' dialect")
