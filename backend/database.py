# database.py — Async database handle
#
# One Database instance is built in the FastAPI lifespan, stored on
# app.state.database and disposed on shutdown. Request handlers receive
# sessions through get_db_session; nothing here is a module-level global.
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

import config

logger = logging.getLogger("devthon.database")


class Database:
    """Owns the async engine and session factory for one process."""

    def __init__(
        self,
        url: str,
        *,
        echo: bool = False,
        pool_size: int = config.DB_POOL_SIZE,
        pool_timeout: int = config.DB_POOL_TIMEOUT_SECONDS,
        socket_timeout: int = config.DB_SOCKET_TIMEOUT_SECONDS,
    ):
        self.url = url
        engine_kwargs = {"echo": echo, "future": True, "pool_pre_ping": True}

        backend = make_url(url).get_backend_name()
        if backend != "sqlite":
            engine_kwargs.update(
                pool_size=pool_size,
                max_overflow=0,
                pool_timeout=pool_timeout,
                pool_recycle=3600,
            )
        if backend == "postgresql":
            engine_kwargs["connect_args"] = {
                "timeout": pool_timeout,
                "command_timeout": socket_timeout,
            }

        self.engine = create_async_engine(url, **engine_kwargs)
        self.session_maker = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    async def create_all(self) -> None:
        """Create tables that do not exist yet."""
        from models import Base

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database schema ensured")

    async def drop_all(self) -> None:
        from models import Base

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def ping(self) -> bool:
        async with self.session_maker() as session:
            await session.execute(text("SELECT 1"))
        return True

    async def dispose(self) -> None:
        """Close the connection pool."""
        await self.engine.dispose()
        logger.info("Database connection pool closed")

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Session for work outside the request cycle (seed, scripts)."""
        async with self.session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise


async def get_db_session(request: Request) -> AsyncIterator[AsyncSession]:
    """Dependency for getting a database session (FastAPI Depends)"""
    database: Database = request.app.state.database
    async with database.session_maker() as session:
        yield session
