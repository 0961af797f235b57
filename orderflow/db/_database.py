"""
Database — engine, session factory and the atomic-unit primitive.

Every multi-row mutation in orderflow runs inside `Database.unit()`:

    async with db.unit() as session:
        ...  # all statements commit together, or none do

An exception raised inside the block rolls the whole unit back before it
leaves the `async with`.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from orderflow.db._tables import Base


class Database:
    """Owns the async engine and hands out sessions and atomic units."""

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine
        self._session_factory = async_sessionmaker(engine, expire_on_commit=False)

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        return self._session_factory

    @property
    def dialect(self) -> str:
        return self._engine.dialect.name

    @asynccontextmanager
    async def unit(self) -> AsyncIterator[AsyncSession]:
        """Scoped atomic unit: commit on clean exit, rollback on exception."""
        async with self._session_factory() as session:
            async with session.begin():
                yield session

    @asynccontextmanager
    async def reader(self) -> AsyncIterator[AsyncSession]:
        """Session for read paths; nothing is committed."""
        async with self._session_factory() as session:
            yield session

    async def create_schema(self) -> None:
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self._engine.dispose()


async def create_database(
    url: str = "sqlite+aiosqlite:///:memory:",
    *,
    create_schema: bool = True,
) -> Database:
    """Create database (and schema) for the given async URL."""
    engine = create_async_engine(url, echo=False)
    db = Database(engine)
    if create_schema:
        await db.create_schema()
    return db


__all__ = ("Database", "create_database")
