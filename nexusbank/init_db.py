"""Create all tables and the admin user. Run with ``python -m nexusbank.init_db``."""

import asyncio
import logging

from .database import Base, SessionLocal, engine
from .auth_service import AuthService
from . import models  # noqa: F401  registers tables on Base.metadata

log = logging.getLogger(__name__)


async def init_db():
    """Initialize database tables"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async with SessionLocal() as db:
        await AuthService.ensure_admin_user(db)
    log.info("Database tables created")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(init_db())
