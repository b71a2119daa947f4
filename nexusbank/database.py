# database.py
# Establishes connection to the SQL database and ORM setup.

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool

from .config import settings
from .exceptions import BankingError, StoreOperationFailed, StoreTimeout

log = logging.getLogger(__name__)

T = TypeVar("T")

SQLALCHEMY_DATABASE_URL = settings.DATABASE_URL


def _engine_kwargs() -> dict:
    # asyncpg-only connect args; other drivers (aiosqlite in tests) take none
    if not settings.is_postgres:
        return {}
    return {
        "poolclass": NullPool,
        "connect_args": {
            "timeout": settings.DATABASE_CONNECT_TIMEOUT,
            "command_timeout": settings.STORE_TIMEOUT_SECONDS,
            "server_settings": {"application_name": "nexusbank"},
        },
    }


engine = create_async_engine(SQLALCHEMY_DATABASE_URL, echo=False, **_engine_kwargs())

SessionLocal = async_sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
)

Base = declarative_base()


@asynccontextmanager
async def unit_of_work(db: AsyncSession) -> AsyncIterator[AsyncSession]:
    """
    Commit everything staged in the block exactly once, or nothing.

    Banking errors roll back and propagate unchanged; driver errors roll back
    and surface as StoreOperationFailed.
    """
    try:
        yield db
        await db.commit()
    except BankingError:
        await db.rollback()
        raise
    except SQLAlchemyError as exc:
        await db.rollback()
        log.exception("Store operation failed; unit of work rolled back")
        raise StoreOperationFailed() from exc


async def with_store_timeout(operation: Awaitable[T], seconds: Optional[float] = None) -> T:
    """Await a store-backed operation, failing with StoreTimeout instead of hanging."""
    timeout = seconds if seconds is not None else settings.STORE_TIMEOUT_SECONDS
    try:
        return await asyncio.wait_for(operation, timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise StoreTimeout() from exc
