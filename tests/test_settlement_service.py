import uuid
from decimal import Decimal

import pytest

from conftest import balance_of
from nexusbank import crud
from nexusbank.exceptions import TransactionAlreadySettled, TransactionNotFound, TransactionPendingSettlement
from nexusbank.funding_service import FundingService
from nexusbank.schemas import EditTransactionRequest, InternationalRecipient, TransferRequest
from nexusbank.settlement_service import SettlementService
from nexusbank.transfer_service import TransferService


async def pending_transfer(db, sender, amount="300.00"):
    request = TransferRequest(
        transfer_type="international",
        amount=amount,
        international=InternationalRecipient(
            recipient_name="Jane Doe",
            account_number="GB29NWBK60161331926819",
            swift_code="NWBKGB2L",
            bank_name="NatWest",
            country="United Kingdom",
        ),
    )
    result = await TransferService.submit_transfer(db, sender.id, request)
    return result.transaction


async def test_pending_queue_lists_external_transfers_with_customer(db, make_customer):
    sender = await make_customer(name="Alice", balance="1000.00")
    first = await pending_transfer(db, sender, "100.00")
    second = await pending_transfer(db, sender, "200.00")

    pending = await SettlementService.list_pending_transfers(db)

    assert [p.id for p in pending] == [second.id, first.id]
    assert pending[0].customer_name == "Alice"
    assert pending[0].customer_account == sender.account_number


async def test_approve_completes_without_balance_change(db, make_customer, admin):
    sender = await make_customer(balance="1000.00")
    txn = await pending_transfer(db, sender)

    result = await SettlementService.approve_transfer(db, txn.id, admin)

    assert result.transaction.status == "completed"
    assert result.transaction.settled_at is not None
    assert await balance_of(db, sender.id) == Decimal("700.00")
    logs = await crud.get_audit_logs(db)
    assert logs[0].action == "APPROVE_TRANSFER"
    assert logs[0].admin_id == admin.id
    assert logs[0].details == f"Approved transfer of $300.00 to Jane Doe. Ref: {txn.reference}"


async def test_reject_refunds_sender_exactly(db, make_customer, admin):
    sender = await make_customer(balance="1000.00")
    txn = await pending_transfer(db, sender)
    assert await balance_of(db, sender.id) == Decimal("700.00")

    result = await SettlementService.reject_transfer(db, txn.id, admin)

    assert result.transaction.status == "rejected"
    assert result.sender_balance == Decimal("1000.00")
    assert await balance_of(db, sender.id) == Decimal("1000.00")
    logs = await crud.get_audit_logs(db)
    assert logs[0].action == "REJECT_TRANSFER"
    assert logs[0].details.startswith("Rejected transfer of $300.00 to Jane Doe.")


async def test_refund_uses_current_balance(db, make_customer, admin):
    sender = await make_customer(balance="1000.00")
    txn = await pending_transfer(db, sender)
    # Balance moves again before the admin gets to the queue
    await pending_transfer(db, sender, "50.00")

    await SettlementService.reject_transfer(db, txn.id, admin)

    assert await balance_of(db, sender.id) == Decimal("950.00")


async def test_pending_transfer_cannot_be_edited_before_reject(db, make_customer, admin):
    sender = await make_customer(balance="0.00")
    await FundingService.fund_account(db, sender.id, "1000.00", None, admin)
    txn = await pending_transfer(db, sender)

    with pytest.raises(TransactionPendingSettlement):
        await FundingService.edit_transaction(db, txn.id, EditTransactionRequest(amount="5000.00"), admin)

    result = await SettlementService.reject_transfer(db, txn.id, admin)

    assert result.transaction.amount == Decimal("300.00")
    assert await balance_of(db, sender.id) == Decimal("1000.00")
    assert sorted(log.action for log in await crud.get_audit_logs(db)) == ["FUND_ACCOUNT", "REJECT_TRANSFER"]


async def test_settled_transfer_can_be_edited_without_moving_money(db, make_customer, admin):
    sender = await make_customer(balance="1000.00")
    txn = await pending_transfer(db, sender)
    await SettlementService.reject_transfer(db, txn.id, admin)

    edited = await FundingService.edit_transaction(db, txn.id, EditTransactionRequest(amount="5000.00"), admin)

    assert edited.amount == Decimal("5000.00")
    assert edited.status == "rejected"
    assert await balance_of(db, sender.id) == Decimal("1000.00")


@pytest.mark.parametrize("first,second", [
    ("approve", "approve"),
    ("approve", "reject"),
    ("reject", "reject"),
    ("reject", "approve"),
])
async def test_settlement_happens_exactly_once(db, make_customer, admin, first, second):
    sender = await make_customer(balance="1000.00")
    txn = await pending_transfer(db, sender)
    settle = {"approve": SettlementService.approve_transfer, "reject": SettlementService.reject_transfer}

    await settle[first](db, txn.id, admin)
    balance_after_first = await balance_of(db, sender.id)

    with pytest.raises(TransactionAlreadySettled):
        await settle[second](db, txn.id, admin)

    assert await balance_of(db, sender.id) == balance_after_first
    logs = await crud.get_audit_logs(db)
    assert len(logs) == 1


async def test_second_session_cannot_settle_again(db, session_factory, make_customer, admin):
    sender = await make_customer(balance="1000.00")
    txn = await pending_transfer(db, sender)

    async with session_factory() as other:
        # Loaded while still pending
        stale = await crud.get_transaction(other, txn.id)
        assert stale.status == "pending"

        await SettlementService.reject_transfer(db, txn.id, admin)

        with pytest.raises(TransactionAlreadySettled):
            await SettlementService.reject_transfer(other, txn.id, admin)

    assert await balance_of(db, sender.id) == Decimal("1000.00")


async def test_internal_transfer_is_not_pending(db, make_customer, admin):
    sender = await make_customer(balance="100.00")
    recipient = await make_customer()
    request = TransferRequest(transfer_type="domestic", amount="10", domestic={"customer_id": recipient.id})
    result = await TransferService.submit_transfer(db, sender.id, request)

    with pytest.raises(TransactionAlreadySettled):
        await SettlementService.approve_transfer(db, result.transaction.id, admin)


async def test_unknown_transaction(db, admin):
    with pytest.raises(TransactionNotFound):
        await SettlementService.approve_transfer(db, uuid.uuid4(), admin)
