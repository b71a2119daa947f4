"""
Settlement Service

Administrators resolve externally pending transfers:
- approve: pending -> completed, no balance change
- reject:  pending -> rejected, sender refunded

The status flip is conditional on the row still being pending, so each
transfer is decided exactly once no matter how many requests race for it.
Status flip, refund and audit entry share one commit.
"""

import logging
import uuid
from typing import List

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from . import crud, schemas
from .audit_service import AuditService
from .balance_service import BalanceService
from .database import unit_of_work
from .exceptions import TransactionAlreadySettled, TransactionNotFound
from .models import Customer, Profile, Transaction, User, utcnow

log = logging.getLogger(__name__)


class SettlementService:

    @staticmethod
    async def list_pending_transfers(db: AsyncSession) -> List[schemas.PendingTransfer]:
        result = await db.execute(
            select(Transaction, Customer.account_number, Profile.name)
            .join(Customer, Customer.id == Transaction.customer_id)
            .outerjoin(Profile, Profile.user_id == Customer.user_id)
            .where(Transaction.status == "pending")
            .order_by(Transaction.created_at.desc())
        )
        pending = []
        for txn, account_number, name in result.all():
            data = schemas.Transaction.model_validate(txn).model_dump()
            pending.append(
                schemas.PendingTransfer(**data, customer_name=name or "Unknown", customer_account=account_number or "")
            )
        return pending

    @staticmethod
    async def approve_transfer(db: AsyncSession, transaction_id: uuid.UUID, admin: User) -> schemas.SettlementResult:
        return await SettlementService._settle(db, transaction_id, admin, "approve")

    @staticmethod
    async def reject_transfer(db: AsyncSession, transaction_id: uuid.UUID, admin: User) -> schemas.SettlementResult:
        return await SettlementService._settle(db, transaction_id, admin, "reject")

    @staticmethod
    async def _settle(db: AsyncSession, transaction_id: uuid.UUID, admin: User, action: str) -> schemas.SettlementResult:
        txn = await crud.get_transaction(db, transaction_id)
        if txn is None:
            raise TransactionNotFound()

        new_status = "completed" if action == "approve" else "rejected"
        admin_id = admin.id

        async with unit_of_work(db):
            result = await db.execute(
                update(Transaction)
                .where(Transaction.id == transaction_id, Transaction.status == "pending")
                .values(status=new_status, settled_at=utcnow(), settled_by=admin_id)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                log.warning("Settlement %s of %s refused: no longer pending", action, txn.reference)
                raise TransactionAlreadySettled()

            if action == "reject":
                sender_balance = await BalanceService.credit(db, txn.customer_id, txn.amount)
            else:
                sender_balance = await crud.get_customer_balance(db, txn.customer_id)

            verb = "Approved" if action == "approve" else "Rejected"
            AuditService.record(
                db,
                action="APPROVE_TRANSFER" if action == "approve" else "REJECT_TRANSFER",
                admin_id=admin_id,
                target_customer_id=txn.customer_id,
                details=f"{verb} transfer of ${txn.amount:,.2f} to {txn.recipient_name or 'Unknown'}. Ref: {txn.reference}",
            )

        await db.refresh(txn)
        log.info("Transfer %s %s by admin %s", txn.reference, new_status, admin_id)
        return schemas.SettlementResult(
            transaction=schemas.Transaction.model_validate(txn),
            action=action,
            sender_balance=sender_balance,
        )
