# asset_ledger/core/db.py

import asyncio
import logging
import ssl
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from asset_ledger.constants.error_codes import ErrorCode
from asset_ledger.core.config import Settings
from asset_ledger.core.exceptions import InternalError

logger = logging.getLogger(__name__)

# =====================================================
# BASE
# =====================================================
Base = declarative_base()


# =====================================================
# CONNECTION CONFIG
# =====================================================
def _engine_args(settings: Settings) -> tuple[dict, dict]:
    connect_args = {}
    pool_args = {}

    if settings.db_type == "postgres":
        ssl_ctx = ssl.create_default_context()

        if not settings.db_ssl_verify:
            ssl_ctx.check_hostname = False
            ssl_ctx.verify_mode = ssl.CERT_NONE

        connect_args = {
            "ssl": ssl_ctx,
            # Disable prepared statements (asyncpg + pgbouncer stability)
            "statement_cache_size": 0,
            "prepared_statement_cache_size": 0,
        }

        pool_args = {
            "pool_size": settings.db_pool_size,
            "max_overflow": settings.db_max_overflow,
            "pool_timeout": settings.db_pool_timeout,
            "pool_pre_ping": True,
        }

    elif settings.db_type == "sqlite":
        connect_args = {
            "check_same_thread": False,
            "timeout": settings.sqlite_busy_timeout,
        }

    return connect_args, pool_args


# =====================================================
# SQLITE: FK ENFORCEMENT + WRITE INTENT
# =====================================================
def _install_sqlite_listeners(engine) -> None:
    # SQLite has no SELECT ... FOR UPDATE. Opening every transaction with
    # BEGIN IMMEDIATE takes the write lock before the first read, so two
    # ledger transactions can never both read pre-decrement stock.
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, _):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


# =====================================================
# DATABASE HANDLE
# =====================================================
class Database:
    """Engine and session factory built from one ``Settings`` object."""

    def __init__(self, settings: Settings):
        self.settings = settings

        connect_args, pool_args = _engine_args(settings)

        self.engine = create_async_engine(
            settings.database_url,
            echo=False,  # NEVER enable in prod
            echo_pool=settings.db_echo_pool,
            connect_args=connect_args,
            **pool_args,
        )

        if settings.db_type == "sqlite":
            _install_sqlite_listeners(self.engine)

        self.session_factory = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            autoflush=False,
            expire_on_commit=False,
        )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        async with self.session_factory() as session:
            yield session

    # DEV ONLY: AUTO CREATE TABLES
    async def init_models(self) -> None:
        if not self.settings.is_development:
            raise RuntimeError("init_models() is forbidden outside development")

        import asset_ledger.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()


# =====================================================
# DEPENDENCY
# =====================================================
async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    database: Database = request.app.state.database
    async with database.session() as session:
        yield session


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


# =====================================================
# TRANSACTION DEADLINE
# =====================================================
@asynccontextmanager
async def ledger_deadline(db: AsyncSession, seconds: float):
    """Bound a ledger transaction; roll back if it runs out of time or is cancelled."""
    try:
        async with asyncio.timeout(seconds):
            yield
    except TimeoutError:
        await db.rollback()
        logger.warning("Ledger transaction exceeded %.1fs deadline", seconds)
        raise InternalError(
            "Ledger transaction deadline exceeded",
            ErrorCode.DEADLINE_EXCEEDED,
        )
    except asyncio.CancelledError:
        await asyncio.shield(db.rollback())
        raise
