"""
3sConnect Backend — Database Session Management
===============================================

What:  Async SQLAlchemy engine, session factory, declarative base and the
       FastAPI session dependency.
How:   One session per request. The dependency commits once when the route
       returns and rolls back on any exception, so every interaction
       operation (including cascades) is a single transaction. Routes
       declare it with `scope="function"`: the commit finishes before the
       response is sent, and a failed commit is answered with a 500.
Who:   Used by route handlers via FastAPI's dependency injection system and
       by services through the session they receive.

Connection Pooling Strategy:
    pool_size=20, max_overflow=10 for PostgreSQL (at most 30 connections).
    SQLite URLs (development, tests) use SQLAlchemy's default pool instead.
"""

import logging
from datetime import datetime, timezone
from typing import Any, AsyncGenerator, Dict

from sqlalchemy import DateTime
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from threesconnect.config import settings
from threesconnect.exceptions import InternalError

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _engine_options(url: str) -> Dict[str, Any]:
    options: Dict[str, Any] = {"echo": settings.log_level == "DEBUG"}
    if not url.startswith("sqlite"):
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_recycle=3600,
        )
    return options


# ── Engine Configuration ──────────────────────────────────────────────────
engine = create_async_engine(settings.database_url, **_engine_options(settings.database_url))

# expire_on_commit=False: response models are built from instances after
# flush/commit without triggering lazy loads outside the greenlet.
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ── Base Model ────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models (shared metadata for Alembic)."""
    pass


class TimestampMixin:
    """
    Creation and last-modification timestamps assigned at write time.

    Both are set by the ORM on INSERT; `updated_at` is refreshed on every
    UPDATE issued through the unit of work.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        index=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )


# ── Dialect helpers ───────────────────────────────────────────────────────
def insert_ignore(db: AsyncSession, model, **values):
    """
    Build an INSERT that silently skips rows violating a unique/primary key.

    What:  Add-to-set write used for likes and follow edges.
    Why:   Two concurrent "add" calls for the same pair must converge to a
           single row instead of failing the second request.
    How:   ON CONFLICT DO NOTHING on PostgreSQL and SQLite.
    """
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        stmt = postgresql.insert(model).values(**values)
    elif dialect == "sqlite":
        stmt = sqlite.insert(model).values(**values)
    else:
        raise NotImplementedError(f"insert_ignore is not supported for dialect '{dialect}'")
    return stmt.on_conflict_do_nothing()


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the factory
        2. Yields it to the route handler
        3. On error: rolls back so no partial write survives
        4. On success: commits the transaction; a failed commit is rolled
           back and raised as InternalError
        5. Always: closes the session (returns connection to pool)

    Usage:
        db: AsyncSession = Depends(get_db_session, scope="function")
    """
    async with async_session_factory() as session:
        try:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise
            try:
                await session.commit()
            except SQLAlchemyError as e:
                logger.error("Commit failed: %s", str(e), exc_info=True)
                await session.rollback()
                raise InternalError(message="Could not save your changes. Please try again.") from e
        finally:
            await session.close()


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def create_all() -> None:
    """Create tables directly from metadata (development and tests; production uses Alembic)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    """Gracefully closes all connections in the pool on shutdown."""
    await engine.dispose()
