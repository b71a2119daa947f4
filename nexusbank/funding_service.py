"""
Funding / Adjustment Service

Administrator-initiated changes to customer accounts:
- fund_account:       credit a balance, with a matching transaction row
- add_transaction:    insert a historical record, balance untouched
- edit_transaction:   overwrite amount or date, balance untouched
- edit_customer_profile: profile fields and account currency label

Every operation writes its audit entry in the same commit as its effect.
"""

import logging
import uuid
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from . import crud, schemas
from .audit_service import AuditService
from .balance_service import BalanceService
from .config import settings
from .database import unit_of_work
from .exceptions import CustomerNotFound, ProfileNotFound, TransactionNotFound, TransactionPendingSettlement
from .models import Transaction, User
from .notification_service import NotificationService
from .reference_service import FUNDING_PREFIX, ReferenceService

log = logging.getLogger(__name__)

PROFILE_FIELDS = ("name", "email", "phone", "date_of_birth", "nationality", "home_address")


class FundingService:

    @staticmethod
    async def fund_account(
        db: AsyncSession,
        customer_id: uuid.UUID,
        amount: Any,
        description: Optional[str],
        admin: User,
    ) -> schemas.FundAccountResult:
        """
        Credit a customer's balance.

        Effects, committed as one unit:
        1. balance += amount (atomic increment)
        2. completed credit row, sender "<Institution> Admin", FUND- reference
        3. FUND_ACCOUNT audit entry
        4. "Account Credited" notification to the customer
        """
        value = BalanceService.parse_amount(amount)
        customer = await crud.get_customer(db, customer_id)
        if customer is None:
            raise CustomerNotFound()

        note = description.strip() if description and description.strip() else "Account funding"
        admin_id = admin.id
        user_id = customer.user_id

        txn = Transaction(
            customer_id=customer_id,
            type="credit",
            amount=value,
            description=note,
            sender_name=settings.FUNDING_SENDER_NAME,
            recipient_account=customer.account_number,
            status="completed",
        )

        async with unit_of_work(db):
            txn.reference = await ReferenceService.allocate_reference(db, FUNDING_PREFIX)
            balance = await BalanceService.credit(db, customer_id, value)
            db.add(txn)
            AuditService.record(
                db,
                action="FUND_ACCOUNT",
                admin_id=admin_id,
                target_customer_id=customer_id,
                details=f"Funded account with ${value:,.2f}. Ref: {txn.reference}",
            )
            NotificationService.notify(
                db,
                user_id,
                title="Account Credited",
                message=f"Your account has been credited with ${value:,.2f}. {note}",
            )

        await db.refresh(txn)
        log.info("Customer %s funded with %s by admin %s (%s)", customer_id, value, admin_id, txn.reference)
        return schemas.FundAccountResult(transaction=schemas.Transaction.model_validate(txn), balance=balance)

    @staticmethod
    async def add_transaction_record(
        db: AsyncSession,
        customer_id: uuid.UUID,
        request: schemas.AddTransactionRequest,
        admin: User,
    ) -> Transaction:
        """Insert a completed historical row. The balance is deliberately left alone."""
        value = BalanceService.parse_amount(request.amount)
        customer = await crud.get_customer(db, customer_id)
        if customer is None:
            raise CustomerNotFound()

        counterparty = request.counterparty_name.strip() if request.counterparty_name else None
        admin_id = admin.id
        txn = Transaction(
            customer_id=customer_id,
            type=request.type,
            amount=value,
            description=request.description,
            sender_name=counterparty if request.type == "credit" else None,
            recipient_name=counterparty if request.type == "debit" else None,
            status="completed",
            created_at=request.created_at,
        )

        async with unit_of_work(db):
            txn.reference = await ReferenceService.allocate_reference(db)
            db.add(txn)
            AuditService.record(
                db,
                action="ADD_TRANSACTION",
                admin_id=admin_id,
                target_customer_id=customer_id,
                details=f"Added {request.type} of ${value:,.2f}: {request.description}. Ref: {txn.reference}",
            )

        await db.refresh(txn)
        log.info("Transaction %s added for customer %s by admin %s", txn.reference, customer_id, admin_id)
        return txn

    @staticmethod
    async def edit_transaction(
        db: AsyncSession,
        transaction_id: uuid.UUID,
        request: schemas.EditTransactionRequest,
        admin: User,
    ) -> Transaction:
        """Overwrite amount and/or date of an existing row. The balance is deliberately left alone."""
        txn = await crud.get_transaction(db, transaction_id)
        if txn is None:
            raise TransactionNotFound()
        # A pending row still backs a refund on reject; settle it first
        if txn.status == "pending":
            raise TransactionPendingSettlement()

        changes = []
        if request.amount is not None:
            value = BalanceService.parse_amount(request.amount)
            changes.append(f"amount ${txn.amount:,.2f} -> ${value:,.2f}")
            txn.amount = value
        if request.created_at is not None:
            changes.append(f"date {_fmt_date(txn.created_at)} -> {_fmt_date(request.created_at)}")
            txn.created_at = request.created_at
        if not changes:
            return txn

        admin_id = admin.id
        async with unit_of_work(db):
            db.add(txn)
            AuditService.record(
                db,
                action="EDIT_TRANSACTION",
                admin_id=admin_id,
                target_customer_id=txn.customer_id,
                details=f"Edited transaction {txn.reference}: {'; '.join(changes)}",
            )

        await db.refresh(txn)
        return txn

    @staticmethod
    async def edit_customer_profile(
        db: AsyncSession,
        customer_id: uuid.UUID,
        update: schemas.ProfileUpdate,
        admin: User,
    ) -> schemas.CustomerWithProfile:
        customer = await crud.get_customer(db, customer_id)
        if customer is None:
            raise CustomerNotFound()
        profile = await crud.get_profile_by_user(db, customer.user_id)

        values = update.model_dump(exclude_unset=True)
        requested = [field for field in PROFILE_FIELDS if values.get(field) is not None]
        if requested and profile is None:
            raise ProfileNotFound()

        changed = []
        for field in requested:
            setattr(profile, field, values[field])
            changed.append(field)
        if values.get("currency"):
            # Relabel only; the stored balance is not converted
            customer.currency = values["currency"].upper()
            changed.append("currency")
        if not changed:
            return await crud.get_customer_with_profile(db, customer_id)

        admin_id = admin.id
        async with unit_of_work(db):
            AuditService.record(
                db,
                action="EDIT_CUSTOMER_PROFILE",
                admin_id=admin_id,
                target_customer_id=customer_id,
                details=f"Updated {', '.join(changed)}",
            )

        return await crud.get_customer_with_profile(db, customer_id)


def _fmt_date(value: datetime) -> str:
    return value.strftime("%Y-%m-%d %H:%M")
