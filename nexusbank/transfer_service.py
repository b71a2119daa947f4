"""
Transfer Service
================

Moves money out of an authenticated customer's account.

Checks run in a fixed order before anything is written:
1. sender eligibility (status active, transfers enabled)
2. amount validity
3. sufficient funds against the freshly loaded balance
4. recipient validity

Classification:
- domestic, recipient is an existing customer  -> internal, completed,
  sender debited and recipient credited
- domestic free-text recipient, international  -> external, pending,
  sender debited only; an administrator settles it later

The debit, the credit and the transaction row commit together or not at all.
"""

import logging
import uuid
from decimal import Decimal
from typing import Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from . import crud, schemas
from .balance_service import BalanceService
from .database import unit_of_work
from .exceptions import IdempotencyConflict, InsufficientFunds, InvalidRecipient, StoreOperationFailed
from .models import Customer, Transaction
from .recipient_service import RecipientService
from .reference_service import ReferenceService

log = logging.getLogger(__name__)

MIN_SWIFT_LENGTH = 8


class TransferService:

    @staticmethod
    async def submit_transfer(
        db: AsyncSession,
        sender_id: uuid.UUID,
        request: schemas.TransferRequest,
        idempotency_key: Optional[str] = None,
    ) -> schemas.TransferResult:
        key = request.idempotency_key or idempotency_key

        if key:
            replay = await TransferService._replay(db, sender_id, key)
            if replay is not None:
                return replay

        sender = await BalanceService.load_customer(db, sender_id)
        BalanceService.check_eligibility(sender)
        amount = BalanceService.parse_amount(request.amount)
        if amount > sender.balance:
            log.warning("Transfer of %s refused for customer %s: insufficient funds", amount, sender_id)
            raise InsufficientFunds()

        recipient: Optional[Customer] = None
        if request.transfer_type == "international":
            recipient_name, recipient_account, default_description = TransferService._validate_international(
                request.international
            )
        else:
            recipient = await RecipientService.resolve_domestic_recipient(db, sender, request.domestic)
            if recipient is not None:
                recipient_profile = await crud.get_profile_by_user(db, recipient.user_id)
                recipient_name = recipient_profile.name if recipient_profile else (request.domestic.name or "Unknown")
                recipient_account = recipient.account_number
            else:
                recipient_name = request.domestic.name.strip()
                recipient_account = request.domestic.account_number.strip()
            default_description = f"Transfer to {recipient_name}"

        internal = recipient is not None
        sender_profile = await crud.get_profile_by_user(db, sender.user_id)
        note = request.note.strip() if request.note and request.note.strip() else None

        txn = Transaction(
            customer_id=sender_id,
            type="debit",
            amount=amount,
            description=note or default_description,
            recipient_name=recipient_name,
            recipient_account=recipient_account,
            sender_name=sender_profile.name if sender_profile else "Unknown",
            sender_account=sender.account_number,
            status="completed" if internal else "pending",
            transfer_type=request.transfer_type,
            idempotency_key=key,
        )
        recipient_id = recipient.id if internal else None

        try:
            async with unit_of_work(db):
                txn.reference = await ReferenceService.allocate_reference(db)
                sender_balance = await BalanceService.debit(db, sender_id, amount)
                if internal:
                    await BalanceService.credit(db, recipient_id, amount)
                db.add(txn)
        except StoreOperationFailed as exc:
            # Lost a race on the idempotency key: answer with the winner's result
            if key and isinstance(exc.__cause__, IntegrityError):
                replay = await TransferService._replay(db, sender_id, key)
                if replay is not None:
                    return replay
            raise

        await db.refresh(txn)
        log.info(
            "Transfer %s submitted: %s %s from customer %s (%s)",
            txn.reference, request.transfer_type, amount, sender_id, "internal" if internal else "external",
        )
        return schemas.TransferResult(
            transaction=schemas.Transaction.model_validate(txn),
            classification="internal" if internal else "external",
            sender_balance=sender_balance,
            recipient_credited=internal,
        )

    @staticmethod
    def _validate_international(form: Optional[schemas.InternationalRecipient]) -> Tuple[str, str, str]:
        if form is None:
            raise InvalidRecipient("Please fill in all required fields")
        name = form.recipient_name.strip()
        account = form.account_number.strip()
        bank = form.bank_name.strip()
        country = form.country.strip()
        swift = form.swift_code.strip().upper()
        if not (name and account and bank and country):
            raise InvalidRecipient("Please fill in all required fields")
        if len(swift) < MIN_SWIFT_LENGTH:
            raise InvalidRecipient("Please enter a valid SWIFT/BIC code")
        description = f"Transfer to {name} - {bank}, {country} (SWIFT {swift})"
        return name, account, description

    @staticmethod
    async def _replay(db: AsyncSession, sender_id: uuid.UUID, key: str) -> Optional[schemas.TransferResult]:
        """Result of an earlier submission with the same key, or None if the key is unused."""
        txn = await crud.get_transaction_by_idempotency_key(db, key)
        if txn is None:
            return None
        if txn.customer_id != sender_id:
            raise IdempotencyConflict()
        internal = txn.transfer_type == "domestic" and txn.status == "completed" and txn.settled_at is None
        balance: Decimal = await crud.get_customer_balance(db, sender_id)
        log.info("Transfer %s replayed for idempotency key %s", txn.reference, key)
        return schemas.TransferResult(
            transaction=schemas.Transaction.model_validate(txn),
            classification="internal" if internal else "external",
            sender_balance=balance,
            recipient_credited=internal,
            replayed=True,
        )
