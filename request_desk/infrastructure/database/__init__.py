"""
Database Infrastructure
=======================

Engine, sessions and change capture for the request desk schema.

Uses SQLAlchemy 2.0 async sessions (asyncpg in production, aiosqlite in
tests). Row changes flushed by any session are captured here and published
to the change feed once the transaction commits.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, List, Optional

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Session, object_session

from request_desk.config import settings
from request_desk.core import ConfigurationException
from request_desk.shared.infrastructure.change_feed import ChangeEvent, ChangeFeed
from request_desk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

_FEED_KEY = "change_feed"
_PENDING_KEY = "pending_changes"
_NOT_INITIALIZED = "Database not initialized. Call init_database() first."


class Base(DeclarativeBase):
    """
    Declarative base for the requests, comments and roles tables.

    Models list the columns a change notification should carry in
    ``__feed_columns__``; subscribers filter on those values.
    """
    __feed_columns__ = ("id",)


# Process-wide state, set by init_database()
_engine: AsyncEngine | None = None
_session_maker: async_sessionmaker[AsyncSession] | None = None
_change_feed: ChangeFeed | None = None


def get_engine() -> AsyncEngine:
    if _engine is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _engine


def _require_session_maker() -> async_sessionmaker[AsyncSession]:
    if _session_maker is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _session_maker


def get_change_feed() -> ChangeFeed:
    """Get the change feed bound to the current session maker."""
    if _change_feed is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _change_feed


def init_database(
    database_url: Optional[str] = None,
    change_feed: Optional[ChangeFeed] = None,
) -> AsyncEngine:
    """
    Build the engine and the session maker, and bind the change feed.

    Called from the application lifespan, and per test with a temporary
    SQLite file.

    Args:
        database_url: Overrides ``settings.database_url``
        change_feed: Feed that receives post-commit change events

    Returns:
        AsyncEngine: The initialized engine
    """
    global _engine, _session_maker, _change_feed

    url = database_url or settings.database_url
    if not url:
        raise ConfigurationException("DATABASE_URL is not configured")

    # asyncpg takes ssl= rather than libpq's sslmode=
    url = url.replace("sslmode=", "ssl=")

    engine_kwargs: dict[str, Any] = {"echo": settings.debug, "pool_pre_ping": True}
    if not url.startswith("sqlite"):
        engine_kwargs.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
        )

    _engine = create_async_engine(url, **engine_kwargs)

    if url.startswith("sqlite"):
        event.listen(_engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

    _change_feed = change_feed or ChangeFeed()
    _session_maker = async_sessionmaker(
        bind=_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
        info={_FEED_KEY: _change_feed},
    )

    return _engine


async def close_database() -> None:
    """Dispose of pooled connections and forget the change feed."""
    global _engine, _session_maker, _change_feed

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_maker = None
        _change_feed = None


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped session for FastAPI dependencies.

    Controllers commit explicitly; anything raised before that rolls the
    whole unit of work back.
    """
    async with _require_session_maker()() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def get_session_context() -> AsyncGenerator[AsyncSession, None]:
    """
    Session that commits on clean exit and rolls back on error.

    Used by live streams, which refetch outside any request scope.

    Usage:
        async with get_session_context() as session:
            rows = await repo.list(...)
    """
    async with _require_session_maker()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def create_tables() -> None:
    """Create any missing tables, indexes and constraints."""
    # Register every model on Base.metadata before create_all
    import request_desk.accounts.infrastructure.models  # noqa: F401
    import request_desk.requests.infrastructure.models  # noqa: F401

    engine = get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


# ========== Change capture ==========

def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _record_change(operation: str):
    def listener(mapper, connection, target) -> None:
        session = object_session(target)
        if session is None or _FEED_KEY not in session.info:
            return
        row = {name: getattr(target, name, None) for name in target.__feed_columns__}
        pending: List[ChangeEvent] = session.info.setdefault(_PENDING_KEY, [])
        pending.append(ChangeEvent(table=mapper.local_table.name, operation=operation, row=row))
    return listener


event.listen(Base, "after_insert", _record_change("insert"), propagate=True)
event.listen(Base, "after_update", _record_change("update"), propagate=True)
event.listen(Base, "after_delete", _record_change("delete"), propagate=True)


@event.listens_for(Session, "after_commit")
def _publish_committed_changes(session: Session) -> None:
    pending = session.info.pop(_PENDING_KEY, None)
    feed = session.info.get(_FEED_KEY)
    if not pending or feed is None:
        return
    for change in pending:
        feed.publish(change)
    logger.debug("Published change events", extra={"count": len(pending)})


@event.listens_for(Session, "after_rollback")
def _discard_rolled_back_changes(session: Session) -> None:
    session.info.pop(_PENDING_KEY, None)
