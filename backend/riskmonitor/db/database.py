"""
Database connection and session management.

Uses SQLite with aiosqlite for async support.

Two session factories share one engine:
- AsyncSessionLocal: reads and ordinary writes.
- WriteSessionLocal: transactions that must be serialized against other
  writers (incident creation). On SQLite they open with BEGIN IMMEDIATE so the
  database write lock is held before the duplicate re-check runs; other
  backends run them at SERIALIZABLE isolation.
"""

import os
import logging
from typing import AsyncGenerator, Optional
from contextlib import asynccontextmanager

from sqlalchemy import event, select, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from riskmonitor.db.models import Base, Trade
from riskmonitor.core.config import settings
from riskmonitor.services.base import TradeAlreadyClosedError

logger = logging.getLogger(__name__)

# Database path - create data directory if needed
DATA_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(__file__))), "data")

# Execution option read by the "begin" listener
IMMEDIATE_OPTION = "sqlite_begin_immediate"


def get_database_url() -> str:
    """Resolve the database URL from settings."""
    if settings.database_url:
        return settings.database_url
    if settings.sqlite_path:
        return f"sqlite+aiosqlite:///{settings.sqlite_path}"
    os.makedirs(DATA_DIR, exist_ok=True)
    return f"sqlite+aiosqlite:///{os.path.join(DATA_DIR, 'riskmonitor.db')}"


def create_engine(database_url: Optional[str] = None, echo: bool = False) -> AsyncEngine:
    """
    Create an async engine.

    For SQLite the driver's own transaction handling is switched off and
    BEGIN is emitted by SQLAlchemy, so write transactions can start with
    BEGIN IMMEDIATE. WAL journal mode keeps readers unblocked while a writer
    holds the lock.
    """
    url = database_url or get_database_url()
    is_sqlite = url.startswith("sqlite")

    connect_args = {}
    if is_sqlite:
        # Note: SQLite requires check_same_thread=False for async
        connect_args = {
            "check_same_thread": False,
            "timeout": settings.sqlite_busy_timeout,
        }

    engine = create_async_engine(url, echo=echo, connect_args=connect_args)

    if is_sqlite:
        @event.listens_for(engine.sync_engine, "connect")
        def _on_connect(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            if ":memory:" not in url:
                cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(engine.sync_engine, "begin")
        def _on_begin(conn):
            if conn.get_execution_options().get(IMMEDIATE_OPTION):
                conn.exec_driver_sql("BEGIN IMMEDIATE")
            else:
                conn.exec_driver_sql("BEGIN")

    return engine


def create_session_factory(engine: AsyncEngine, serializable: bool = False) -> async_sessionmaker:
    """
    Session factory bound to ``engine``.
    With ``serializable=True`` every transaction is serialized against other writers.
    """
    bind = engine
    if serializable:
        if engine.dialect.name == "sqlite":
            bind = engine.execution_options(**{IMMEDIATE_OPTION: True})
        else:
            bind = engine.execution_options(isolation_level="SERIALIZABLE")

    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


# Create async engine
engine = create_engine()

# Session factories
AsyncSessionLocal = create_session_factory(engine)
WriteSessionLocal = create_session_factory(engine, serializable=True)


async def init_db(target: Optional[AsyncEngine] = None) -> None:
    """
    Initialize the database - create all tables.
    Called on application startup.
    """
    target = target or engine
    try:
        async with target.begin() as conn:
            # Create all tables
            await conn.run_sync(Base.metadata.create_all)
        logger.info(f"Database initialized at: {target.url}")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise


async def close_db() -> None:
    """
    Close database connections.
    Called on application shutdown.
    """
    await engine.dispose()
    logger.info("Database connections closed")


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency that provides a database session.
    Use with FastAPI Depends().
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


@asynccontextmanager
async def get_db_context() -> AsyncGenerator[AsyncSession, None]:
    """
    Context manager for database sessions.
    Use when not in a FastAPI route.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def ping(session: AsyncSession) -> bool:
    """Round-trip a trivial query."""
    result = await session.execute(text("SELECT 1"))
    return result.scalar() == 1


# CRUD helper functions

async def get_trade(session: AsyncSession, trade_id: int) -> Optional[Trade]:
    """Get a trade by id."""
    result = await session.execute(select(Trade).where(Trade.id == trade_id))
    return result.scalar_one_or_none()


async def close_trade(session: AsyncSession, trade: Trade, close_price: float) -> Trade:
    """Mark an open trade as closed at ``close_price``."""
    if not trade.is_open:
        raise TradeAlreadyClosedError("TradeStore", f"Trade {trade.id} is already closed", {"trade_id": trade.id})
    trade.close(close_price)
    await session.flush()
    logger.info(f"Trade {trade.id} closed at {close_price} (duration {trade.duration_seconds}s)")
    return trade
