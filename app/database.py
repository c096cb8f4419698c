"""
SGI Compliance Tracker - Database Configuration

This module handles database connection setup using SQLAlchemy 2.0 async.
Engines and session factories are built from settings by the caller
(application lifespan, scripts, tests) instead of at import time.
"""

from typing import Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy import MetaData

from app.config import Settings, settings as default_settings


# Naming convention for constraints (helps with migrations)
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s"
}


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    metadata = MetaData(naming_convention=convention)


def create_engine(
    config: Optional[Settings] = None,
    url: Optional[str] = None,
    **engine_kwargs,
) -> AsyncEngine:
    """Create an async engine from settings (or an explicit URL)."""
    config = config or default_settings
    url = url or config.database_url_async

    kwargs = {
        "echo": config.debug,  # Log SQL queries in debug mode
        "pool_pre_ping": True,  # Verify connections before use
    }
    if not url.startswith("sqlite"):
        kwargs["pool_size"] = config.db_pool_size
        kwargs["max_overflow"] = config.db_max_overflow
    kwargs.update(engine_kwargs)

    return create_async_engine(url, **kwargs)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory bound to the engine."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


async def init_db(engine: AsyncEngine):
    """
    Initialize database - create all tables.
    """
    # Register all models on the metadata before create_all
    import app.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db(engine: AsyncEngine):
    """Close database connections."""
    await engine.dispose()
