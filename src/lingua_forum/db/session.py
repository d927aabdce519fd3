"""Database session configuration."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from lingua_forum.core.errors import RemoteFailure
from lingua_forum.core.settings import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base shared by all ORM models."""


# Ensure model modules are imported so that metadata is populated when create_all runs.
import lingua_forum.models  # noqa: E402,F401

engine = create_async_engine(
    settings.effective_database_url,
    pool_pre_ping=True,
    echo=settings.sql_debug,
)

SessionLocal = async_sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


async def get_db() -> AsyncIterator[AsyncSession]:
    """Yield a database session for dependency injection."""
    async with SessionLocal() as db:
        yield db


@asynccontextmanager
async def unit_of_work(
    action: str,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> AsyncIterator[AsyncSession]:
    """Run one remote call in its own session.

    Commits when the block exits cleanly and rolls back otherwise. Driver
    and database errors surface as ``RemoteFailure``; any other exception
    raised inside the block propagates unchanged.
    """
    session = (session_factory or SessionLocal)()
    try:
        yield session
        await session.commit()
    except SQLAlchemyError as err:
        await session.rollback()
        logger.warning("Store call %s failed: %s", action, err)
        raise RemoteFailure(f"{action} failed") from err
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


async def create_tables(bind: AsyncEngine | None = None) -> None:
    """Create all database tables."""
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_tables(bind: AsyncEngine | None = None) -> None:
    """Drop all database tables."""
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
