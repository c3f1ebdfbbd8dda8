"""
Database engine and session factory.

The engine is created lazily from ``settings.database_url`` so that tests
and scripts can point the engine at another database before first use.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from invoice_engine.config import settings
from invoice_engine.models import Base

# One engine and session factory per database URL, created on first use.
_engines: dict[str, AsyncEngine] = {}
_session_factories: dict[str, async_sessionmaker[AsyncSession]] = {}


def make_engine(url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine; in-memory SQLite shares one connection."""
    if url.startswith("sqlite") and ":memory:" in url:
        return create_async_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_async_engine(url, echo=echo, pool_pre_ping=True)


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


def get_engine(url: Optional[str] = None) -> AsyncEngine:
    """Engine for ``url``, the configured database if None."""
    url = url or settings.db_url
    if url not in _engines:
        _engines[url] = make_engine(url, echo=settings.database_echo)
    return _engines[url]


def get_session_factory(url: Optional[str] = None) -> async_sessionmaker[AsyncSession]:
    url = url or settings.db_url
    if url not in _session_factories:
        _session_factories[url] = make_session_factory(get_engine(url))
    return _session_factories[url]


async def create_tables(engine: Optional[AsyncEngine] = None) -> None:
    """Create every table registered on ``Base.metadata``."""
    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_tables(engine: Optional[AsyncEngine] = None) -> None:
    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def dispose_engine() -> None:
    """Dispose every engine opened through :func:`get_engine`."""
    engines = list(_engines.values())
    _engines.clear()
    _session_factories.clear()
    for engine in engines:
        await engine.dispose()
