"""
Account status and permission changes (admin only).

Status transitions set the permission flags as a bundle:

    blocked -> can_send_money = False, can_login = False
    frozen  -> can_send_money = False, can_login unchanged
    active  -> can_send_money = True,  can_login = True

Every state is reachable from every other. The flags can also be toggled
on their own.
"""

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from . import crud, schemas
from .audit_service import AuditService
from .database import unit_of_work
from .exceptions import CustomerNotFound
from .models import User

log = logging.getLogger(__name__)

STATUS_AUDIT = {
    "blocked": ("BLOCK_CUSTOMER", "Account blocked by admin"),
    "frozen": ("FREEZE_ACCOUNT", "Account frozen by admin"),
    "active": ("UNBLOCK_CUSTOMER", "Account activated by admin"),
}

PERMISSION_AUDIT = {
    "can_send_money": ("TRANSFERS", "Transfer"),
    "can_login": ("LOGIN", "Login"),
}


class AccountStatusService:

    @staticmethod
    async def change_status(
        db: AsyncSession, customer_id: uuid.UUID, new_status: str, admin: User
    ) -> schemas.Customer:
        customer = await crud.get_customer(db, customer_id)
        if customer is None:
            raise CustomerNotFound()

        customer.status = new_status
        if new_status == "blocked":
            customer.can_send_money = False
            customer.can_login = False
        elif new_status == "frozen":
            customer.can_send_money = False
        else:
            customer.can_send_money = True
            customer.can_login = True

        action, details = STATUS_AUDIT[new_status]
        admin_id = admin.id
        async with unit_of_work(db):
            db.add(customer)
            AuditService.record(db, action=action, admin_id=admin_id, target_customer_id=customer_id, details=details)

        await db.refresh(customer)
        log.info("Customer %s status set to %s by admin %s", customer_id, new_status, admin_id)
        return schemas.Customer.model_validate(customer)

    @staticmethod
    async def set_permission(
        db: AsyncSession, customer_id: uuid.UUID, field: str, enabled: bool, admin: User
    ) -> schemas.Customer:
        customer = await crud.get_customer(db, customer_id)
        if customer is None:
            raise CustomerNotFound()

        setattr(customer, field, enabled)
        tag, label = PERMISSION_AUDIT[field]
        admin_id = admin.id
        async with unit_of_work(db):
            db.add(customer)
            AuditService.record(
                db,
                action=f"{'ENABLE' if enabled else 'DISABLE'}_{tag}",
                admin_id=admin_id,
                target_customer_id=customer_id,
                details=f"{label} permission {'enabled' if enabled else 'disabled'}",
            )

        await db.refresh(customer)
        return schemas.Customer.model_validate(customer)
