import asyncio
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy import event, func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from conftest import balance_of
from nexusbank import balance_service, crud
from nexusbank.exceptions import IdempotencyConflict, StoreOperationFailed
from nexusbank.models import Transaction
from nexusbank.reference_service import MAX_ATTEMPTS, ReferenceService
from nexusbank.schemas import DomesticRecipient, TransferRequest
from nexusbank.transfer_service import TransferService


def to(recipient, amount="25.00", key=None):
    return TransferRequest(
        transfer_type="domestic",
        amount=amount,
        idempotency_key=key,
        domestic=DomesticRecipient(customer_id=recipient.id),
    )


async def count_transactions(db):
    result = await db.execute(select(func.count()).select_from(Transaction))
    return result.scalar_one()


@pytest_asyncio.fixture
async def serialized_sessions(engine):
    # SQLite allows one writer; take the write lock at BEGIN so concurrent
    # submissions queue on the busy timeout instead of failing mid-transaction
    writer = create_async_engine(engine.url, connect_args={"timeout": 30})

    @event.listens_for(writer.sync_engine, "connect")
    def _no_implicit_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(writer.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    yield async_sessionmaker(bind=writer, autoflush=False, expire_on_commit=False)
    await writer.dispose()


# -----------------------
#  REFERENCES
# -----------------------
def test_generated_references_are_distinct():
    references = {ReferenceService.generate_reference() for _ in range(5000)}
    assert len(references) == 5000


async def test_concurrent_submissions_store_distinct_references(serialized_sessions, db, make_customer):
    sender = await make_customer(balance="1000.00")
    recipients = [await make_customer() for _ in range(4)]
    submissions = 20

    async def submit(n):
        async with serialized_sessions() as session:
            return await TransferService.submit_transfer(session, sender.id, to(recipients[n % 4], amount="10.00"))

    results = await asyncio.gather(*(submit(n) for n in range(submissions)))

    stored = (await db.execute(select(Transaction.reference))).scalars().all()
    assert len(stored) == submissions
    assert len(set(stored)) == submissions
    assert {r.transaction.reference for r in results} == set(stored)
    assert await balance_of(db, sender.id) == Decimal("800.00")


def test_funding_prefix():
    assert ReferenceService.generate_reference("FUND").startswith("FUND-")


async def test_allocator_redraws_on_collision(db, make_customer, monkeypatch):
    sender = await make_customer(balance="100.00")
    recipient = await make_customer()
    first = await TransferService.submit_transfer(db, sender.id, to(recipient))

    draws = iter([first.transaction.reference, "TXN-1-FRESHREF0"])
    monkeypatch.setattr(ReferenceService, "generate_reference", staticmethod(lambda prefix="TXN": next(draws)))

    assert await ReferenceService.allocate_reference(db) == "TXN-1-FRESHREF0"


async def test_allocator_gives_up(db, make_customer, monkeypatch):
    sender = await make_customer(balance="100.00")
    recipient = await make_customer()
    first = await TransferService.submit_transfer(db, sender.id, to(recipient))
    calls = []

    def same(prefix="TXN"):
        calls.append(prefix)
        return first.transaction.reference

    monkeypatch.setattr(ReferenceService, "generate_reference", staticmethod(same))

    with pytest.raises(StoreOperationFailed):
        await ReferenceService.allocate_reference(db)
    assert len(calls) == MAX_ATTEMPTS


# -----------------------
#  IDEMPOTENT SUBMISSION
# -----------------------
async def test_resubmission_is_replayed_not_reapplied(db, make_customer):
    sender = await make_customer(balance="100.00")
    recipient = await make_customer()

    first = await TransferService.submit_transfer(db, sender.id, to(recipient, key="abc-123"))
    second = await TransferService.submit_transfer(db, sender.id, to(recipient, key="abc-123"))

    assert first.replayed is False
    assert second.replayed is True
    assert second.transaction.id == first.transaction.id
    assert second.classification == "internal"
    assert await count_transactions(db) == 1
    assert await balance_of(db, sender.id) == Decimal("75.00")
    assert await balance_of(db, recipient.id) == Decimal("25.00")


async def test_header_key_is_used_when_body_has_none(db, make_customer):
    sender = await make_customer(balance="100.00")
    recipient = await make_customer()

    await TransferService.submit_transfer(db, sender.id, to(recipient), idempotency_key="hdr-1")
    replay = await TransferService.submit_transfer(db, sender.id, to(recipient), idempotency_key="hdr-1")

    assert replay.replayed is True
    assert await balance_of(db, sender.id) == Decimal("75.00")


async def test_key_of_another_customer_conflicts(db, make_customer):
    alice = await make_customer(balance="100.00")
    bob = await make_customer(balance="100.00")

    await TransferService.submit_transfer(db, alice.id, to(bob, key="shared"))

    with pytest.raises(IdempotencyConflict):
        await TransferService.submit_transfer(db, bob.id, to(alice, key="shared"))
    assert await balance_of(db, bob.id) == Decimal("125.00")


async def test_retry_after_failure_applies_once(db, make_customer, monkeypatch):
    """A failed attempt leaves nothing behind, so the retry with the same key runs once."""
    sender = await make_customer(balance="100.00")
    recipient = await make_customer()
    real_credit = balance_service.BalanceService.credit

    async def failing_credit(*args, **kwargs):
        raise OperationalError("UPDATE customers", {}, Exception("connection reset"))

    monkeypatch.setattr(balance_service.BalanceService, "credit", staticmethod(failing_credit))
    with pytest.raises(StoreOperationFailed):
        await TransferService.submit_transfer(db, sender.id, to(recipient, key="retry-1"))

    # Debit was rolled back with the failed credit
    assert await balance_of(db, sender.id) == Decimal("100.00")
    assert await crud.get_transaction_by_idempotency_key(db, "retry-1") is None

    monkeypatch.setattr(balance_service.BalanceService, "credit", real_credit)
    result = await TransferService.submit_transfer(db, sender.id, to(recipient, key="retry-1"))
    again = await TransferService.submit_transfer(db, sender.id, to(recipient, key="retry-1"))

    assert result.replayed is False
    assert again.replayed is True
    assert await balance_of(db, sender.id) == Decimal("75.00")
    assert await balance_of(db, recipient.id) == Decimal("25.00")
    assert await count_transactions(db) == 1


async def test_losing_a_key_race_is_answered_as_replay(db, session_factory, make_customer, monkeypatch):
    sender = await make_customer(balance="100.00")
    recipient = await make_customer()

    # The first lookup misses because the other request has not committed yet
    real_replay = TransferService._replay
    calls = {"n": 0}

    async def racing_replay(session, sender_id, key):
        calls["n"] += 1
        if calls["n"] == 1:
            async with session_factory() as other:
                await TransferService.submit_transfer(other, sender_id, to(recipient, key=key))
            return None
        return await real_replay(session, sender_id, key)

    monkeypatch.setattr(TransferService, "_replay", staticmethod(racing_replay))

    result = await TransferService.submit_transfer(db, sender.id, to(recipient, key="race-1"))

    assert result.replayed is True
    assert await count_transactions(db) == 1
    assert await balance_of(db, sender.id) == Decimal("75.00")
