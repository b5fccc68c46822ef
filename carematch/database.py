"""Database configuration and connection management."""

import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncGenerator, AsyncIterator

from dotenv import load_dotenv
from sqlalchemy import event
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from carematch.exceptions import CarematchError, ConflictError, PersistenceError

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""

    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def create_engine_for_url(url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine with the transaction semantics the engine relies on.

    SQLite connections start every transaction with ``BEGIN IMMEDIATE`` so
    writers are serialised at BEGIN instead of failing on lock upgrade.
    """
    if url.startswith("sqlite"):
        engine = create_async_engine(
            url, echo=echo, future=True, connect_args={"timeout": 30}
        )

        @event.listens_for(engine.sync_engine, "connect")
        def _disable_driver_begin(dbapi_connection: Any, connection_record: Any) -> None:
            dbapi_connection.isolation_level = None

        @event.listens_for(engine.sync_engine, "begin")
        def _begin_immediate(conn: Any) -> None:
            conn.exec_driver_sql("BEGIN IMMEDIATE")

        return engine

    return create_async_engine(url, echo=echo, future=True, pool_pre_ping=True)


# Database configuration from environment variables
DATABASE_URL = os.getenv("DATABASE_URL")
if not DATABASE_URL:
    raise ValueError("DATABASE_URL environment variable is required")

# Create async engine
engine = create_engine_for_url(
    DATABASE_URL, echo=os.getenv("SQL_DEBUG", "false").lower() == "true"
)

# Create session factory
AsyncSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency to get database session."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


@asynccontextmanager
async def transaction(db: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Run one unit of work: commit on success, roll back on any failure.

    Integrity violations surface as ConflictError, other storage failures as
    PersistenceError.
    """
    try:
        yield db
        await db.commit()
    except CarematchError:
        await db.rollback()
        raise
    except IntegrityError as e:
        await db.rollback()
        raise ConflictError(
            ConflictError.INTEGRITY_VIOLATION, f"Integrity violation: {e.orig}"
        ) from e
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Storage failure, transaction rolled back: %s", e)
        raise PersistenceError(f"Storage failure: {e}") from e
    except BaseException:
        await db.rollback()
        raise


async def init_db(create_schema: bool = False) -> None:
    """Initialize database connection on startup."""
    if create_schema:
        # Import models so they register on Base.metadata
        import carematch.models.db  # noqa: F401

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables ensured.")


async def close_db() -> None:
    """Close database connections on shutdown."""
    await engine.dispose()
