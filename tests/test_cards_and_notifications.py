import uuid

import pytest

from nexusbank import crud
from nexusbank.card_service import CardService
from nexusbank.exceptions import CardRequestAlreadyProcessed, CardRequestNotAllowed, CardRequestNotFound, NotificationNotFound
from nexusbank.funding_service import FundingService
from nexusbank.notification_service import NotificationService


async def test_request_card_is_pending_and_leaves_card_status(db, make_customer):
    customer = await make_customer()

    card_request = await CardService.request_card(db, customer, "debit")

    assert card_request.status == "pending"
    assert card_request.card_type == "debit"
    fresh = await crud.get_customer(db, customer.id)
    assert fresh.card_status == "none"


async def test_approve_sets_card_status(db, make_customer, admin):
    customer = await make_customer()
    card_request = await CardService.request_card(db, customer, "credit")

    decided = await CardService.approve_request(db, card_request.id, admin)

    assert decided.status == "approved"
    assert decided.processed_at is not None
    refreshed = await crud.get_customer_with_profile(db, customer.id)
    assert refreshed.card_status == "approved"
    logs = await crud.get_audit_logs(db)
    assert logs[0].action == "APPROVE_CARD"
    assert logs[0].details == "credit card request approved"


async def test_reject_leaves_card_status_alone(db, make_customer, admin):
    customer = await make_customer()
    card_request = await CardService.request_card(db, customer, "debit")

    decided = await CardService.reject_request(db, card_request.id, admin)

    assert decided.status == "rejected"
    refreshed = await crud.get_customer_with_profile(db, customer.id)
    assert refreshed.card_status == "none"
    logs = await crud.get_audit_logs(db)
    assert logs[0].action == "REJECT_CARD"
    assert logs[0].details == "debit card request rejected"


async def test_card_request_decided_once(db, make_customer, admin):
    customer = await make_customer()
    card_request = await CardService.request_card(db, customer, "debit")
    request_id = card_request.id
    await CardService.reject_request(db, request_id, admin)

    with pytest.raises(CardRequestAlreadyProcessed):
        await CardService.approve_request(db, request_id, admin)

    refreshed = await crud.get_customer_with_profile(db, customer.id)
    assert refreshed.card_status == "none"


async def test_second_request_while_pending_is_refused(db, make_customer):
    customer = await make_customer()
    await CardService.request_card(db, customer, "debit")

    with pytest.raises(CardRequestNotAllowed) as exc_info:
        await CardService.request_card(db, customer, "credit")

    assert exc_info.value.reason == "pending"
    assert len(await crud.get_customer_card_requests(db, customer.id)) == 1


async def test_no_request_after_card_approved(db, make_customer, admin):
    customer = await make_customer()
    card_request = await CardService.request_card(db, customer, "debit")
    await CardService.approve_request(db, card_request.id, admin)

    with pytest.raises(CardRequestNotAllowed) as exc_info:
        await CardService.request_card(db, customer, "credit")

    assert exc_info.value.reason == "approved"


async def test_can_request_again_after_rejection(db, make_customer, admin):
    customer = await make_customer()
    first = await CardService.request_card(db, customer, "debit")
    await CardService.reject_request(db, first.id, admin)

    second = await CardService.request_card(db, customer, "credit")

    assert second.status == "pending"
    assert len(await crud.get_customer_card_requests(db, customer.id)) == 2


async def test_unknown_card_request(db, admin):
    with pytest.raises(CardRequestNotFound):
        await CardService.approve_request(db, uuid.uuid4(), admin)


async def test_admin_card_queue_joins_customer(db, make_customer):
    customer = await make_customer(name="Card Holder")
    await CardService.request_card(db, customer, "debit")

    queue = await crud.get_card_requests_with_customers(db, status="pending")

    assert len(queue) == 1
    assert queue[0].customer_name == "Card Holder"
    assert queue[0].account_number == customer.account_number


async def test_notifications_unread_count_and_mark_read(db, make_customer, admin):
    customer = await make_customer()
    await FundingService.fund_account(db, customer.id, "10", None, admin)
    await FundingService.fund_account(db, customer.id, "20", None, admin)

    assert await crud.get_unread_notifications_count(db, customer.user_id) == 2
    newest = (await crud.get_user_notifications(db, customer.user_id))[0]
    assert "$20.00" in newest.message

    await NotificationService.mark_read(db, customer.user_id, newest.id)

    assert await crud.get_unread_notifications_count(db, customer.user_id) == 1


async def test_cannot_mark_someone_elses_notification(db, make_customer, admin):
    owner = await make_customer()
    intruder = await make_customer()
    await FundingService.fund_account(db, owner.id, "10", None, admin)
    notification = (await crud.get_user_notifications(db, owner.user_id))[0]

    with pytest.raises(NotificationNotFound):
        await NotificationService.mark_read(db, intruder.user_id, notification.id)
