import uuid

import pytest

from nexusbank import crud
from nexusbank.account_status_service import AccountStatusService
from nexusbank.exceptions import CustomerNotFound


async def test_block_disables_everything(db, make_customer, admin):
    customer = await make_customer()

    result = await AccountStatusService.change_status(db, customer.id, "blocked", admin)

    assert result.status == "blocked"
    assert result.can_send_money is False
    assert result.can_login is False
    logs = await crud.get_audit_logs(db)
    assert logs[0].action == "BLOCK_CUSTOMER"
    assert logs[0].details == "Account blocked by admin"


async def test_freeze_keeps_login_setting(db, make_customer, admin):
    customer = await make_customer()

    result = await AccountStatusService.change_status(db, customer.id, "frozen", admin)
    assert result.can_send_money is False
    assert result.can_login is True

    await AccountStatusService.set_permission(db, customer.id, "can_login", False, admin)
    result = await AccountStatusService.change_status(db, customer.id, "frozen", admin)
    assert result.can_login is False

    logs = await crud.get_audit_logs(db)
    assert logs[0].action == "FREEZE_ACCOUNT"
    assert logs[0].details == "Account frozen by admin"


async def test_activate_restores_both_flags(db, make_customer, admin):
    customer = await make_customer()
    await AccountStatusService.change_status(db, customer.id, "blocked", admin)

    result = await AccountStatusService.change_status(db, customer.id, "active", admin)

    assert result.status == "active"
    assert result.can_send_money is True
    assert result.can_login is True
    logs = await crud.get_audit_logs(db)
    assert logs[0].action == "UNBLOCK_CUSTOMER"
    assert logs[0].details == "Account activated by admin"


async def test_every_state_reachable_from_every_other(db, make_customer, admin):
    customer = await make_customer()
    for target in ["frozen", "blocked", "frozen", "active", "blocked", "active"]:
        result = await AccountStatusService.change_status(db, customer.id, target, admin)
        assert result.status == target


@pytest.mark.parametrize("field,enabled,action,details", [
    ("can_send_money", False, "DISABLE_TRANSFERS", "Transfer permission disabled"),
    ("can_send_money", True, "ENABLE_TRANSFERS", "Transfer permission enabled"),
    ("can_login", False, "DISABLE_LOGIN", "Login permission disabled"),
    ("can_login", True, "ENABLE_LOGIN", "Login permission enabled"),
])
async def test_permission_toggles(db, make_customer, admin, field, enabled, action, details):
    customer = await make_customer()

    result = await AccountStatusService.set_permission(db, customer.id, field, enabled, admin)

    assert getattr(result, field) is enabled
    assert result.status == "active"
    logs = await crud.get_audit_logs(db)
    assert logs[0].action == action
    assert logs[0].details == details


async def test_unknown_customer(db, admin):
    with pytest.raises(CustomerNotFound):
        await AccountStatusService.change_status(db, uuid.uuid4(), "frozen", admin)
