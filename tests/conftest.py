import os
import tempfile

# Configure before nexusbank is imported: settings and the engine are built at import time
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CREATE_TABLES_ON_STARTUP"] = "false"
os.environ["LOG_DIR"] = tempfile.mkdtemp(prefix="nexusbank-logs-")
os.environ["SECRET_KEY"] = "test-secret"

import uuid
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy import update
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from nexusbank import crud
from nexusbank.database import Base
from nexusbank.models import Customer


@pytest_asyncio.fixture
async def engine(tmp_path):
    # File-backed so separate sessions get separate connections
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'nexusbank.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_customer(db):
    counter = {"n": 0}

    async def _make(name=None, balance="0.00", email=None, role="customer"):
        counter["n"] += 1
        n = counter["n"]
        user, customer = await crud.create_user_with_customer(
            db,
            email=email or f"customer{n}@example.com",
            password="password123",
            name=name or f"Customer {n}",
            role=role,
        )
        if Decimal(balance):
            await set_balance(db, customer.id, balance)
        # Detached so a rolled-back unit of work in a test does not expire it
        db.expunge(customer)
        return customer

    return _make


@pytest_asyncio.fixture
async def admin(db):
    user, _ = await crud.create_user_with_customer(
        db, email="admin@nexusbank.com", password="admin12345", name="Admin", role="admin"
    )
    db.expunge(user)
    return user


async def set_balance(db, customer_id, amount):
    await db.execute(
        update(Customer)
        .where(Customer.id == customer_id)
        .values(balance=Decimal(amount))
        .execution_options(synchronize_session=False)
    )
    await db.commit()


async def balance_of(db, customer_id) -> Decimal:
    return await crud.get_customer_balance(db, uuid.UUID(str(customer_id)))
