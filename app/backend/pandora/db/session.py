"""Async SQLAlchemy engine, session factory and declarative base."""

from functools import lru_cache

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from pandora.core.config import get_settings


class Base(DeclarativeBase):
    pass


@lru_cache
def get_engine(database_url: str | None = None) -> AsyncEngine:
    """Return the cached engine for `database_url` (defaults to settings)."""
    return create_async_engine(database_url or get_settings().DATABASE_URL, pool_pre_ping=True)


@lru_cache
def get_async_sessionmaker(database_url: str | None = None) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(get_engine(database_url), expire_on_commit=False)

