"""
A+ Marketplace Backend — Database Session Management
======================================================

What:  Async SQLAlchemy engine, session factory, FastAPI session dependency,
       and the transaction helpers the settlement services rely on.
How:   One session per request; commit on success, rollback on any error.
       Services register coroutines to run after a successful commit
       (notifications), and convert unique-constraint violations into
       `DuplicateRecordError` through `flush_or_conflict`.
Who:   Route handlers via Depends(get_db_session); services; Alembic; tests.

Connection Pooling (PostgreSQL):
    pool_size=20, max_overflow=10, pool_pre_ping, pool_recycle=3600.
    SQLite URLs (tests) get the driver's default pool.
"""

import logging
from typing import Any, AsyncGenerator, Awaitable, Callable, Dict

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from aplus.config import settings
from aplus.exceptions import DuplicateRecordError

logger = logging.getLogger(__name__)

AfterCommitHook = Callable[[], Awaitable[Any]]

_AFTER_COMMIT_KEY = "after_commit"


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

# ── Session Factory ───────────────────────────────────────────────────────
# expire_on_commit=False: response models read attributes after commit
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ── Base Model ────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """Base class for all ORM models; its metadata drives Alembic."""
    pass


# ── After-Commit Hooks ────────────────────────────────────────────────────
def register_after_commit(session: AsyncSession, hook: AfterCommitHook) -> None:
    """
    Queue a coroutine function to run once the session's transaction commits.

    Hooks are discarded if the transaction rolls back.
    """
    session.info.setdefault(_AFTER_COMMIT_KEY, []).append(hook)


def discard_after_commit(session: AsyncSession) -> None:
    session.info.pop(_AFTER_COMMIT_KEY, None)


async def commit_session(session: AsyncSession) -> None:
    """
    Commit the session, then run its after-commit hooks.

    Hook failures are logged and swallowed: the transaction is already
    durable, and side effects such as notifications must never undo it.
    """
    await session.commit()
    hooks = session.info.pop(_AFTER_COMMIT_KEY, [])
    for hook in hooks:
        try:
            await hook()
        except Exception:
            logger.warning("After-commit hook %r failed", hook, exc_info=True)


async def rollback_session(session: AsyncSession) -> None:
    discard_after_commit(session)
    await session.rollback()


async def flush_or_conflict(session: AsyncSession, code: str = "record.duplicate", **params: Any) -> None:
    """
    Flush pending writes, translating a unique-constraint violation into
    `DuplicateRecordError(code)`.

    The session is unusable after an IntegrityError until rolled back; the
    request dependency takes care of that when the error propagates.
    """
    try:
        await session.flush()
    except IntegrityError as e:
        logger.info("Unique constraint rejected write (%s): %s", code, e.orig)
        raise DuplicateRecordError(code=code, context={"statement": str(e.statement)}, **params) from e


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    1. Creates a new session from the factory
    2. Yields it to the route handler
    3. On success: commits, then runs after-commit hooks
    4. On error: rolls back and discards the hooks
    5. Always: closes the session
    """
    async with async_session_factory() as session:
        try:
            yield session
            await commit_session(session)
        except Exception:
            await rollback_session(session)
            raise
        finally:
            await session.close()


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def dispose_engine() -> None:
    """Close all pooled connections; called from the app lifespan on shutdown."""
    await engine.dispose()
