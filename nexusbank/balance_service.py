"""
Balance Service
===============

The only place customer balances are written.

PRINCIPLE: a balance is never recomputed in Python from a value read earlier.
Every change is a single conditional UPDATE (balance = balance +/- amount),
so two concurrent writers can never overwrite each other's effect.

Debits re-check the full transfer precondition inside the UPDATE itself:
status active, transfers enabled and enough funds. If no row matches, the
row is re-read to tell the caller exactly which precondition failed.

None of these helpers commit; callers own the unit of work.
"""

import logging
import uuid
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from . import crud
from .exceptions import CustomerNotFound, InsufficientFunds, InvalidAmount, TransferForbidden
from .models import Customer

log = logging.getLogger(__name__)

CENT = Decimal("0.01")


class BalanceService:

    @staticmethod
    def parse_amount(raw: Any) -> Decimal:
        """
        Parse a user-supplied amount.

        Accepts Decimal, int or numeric strings. The result must be finite,
        strictly positive and have at most two decimal places.
        """
        if raw is None or isinstance(raw, (bool, float)):
            raise InvalidAmount()
        try:
            amount = Decimal(str(raw).strip())
            if not amount.is_finite() or amount <= 0:
                raise InvalidAmount()
            quantized = amount.quantize(CENT)
        except (InvalidOperation, ValueError):
            raise InvalidAmount()
        if amount != quantized:
            raise InvalidAmount("Amount cannot have more than 2 decimal places")
        return quantized

    @staticmethod
    def check_eligibility(customer: Customer) -> None:
        """Raise TransferForbidden unless the customer may send money."""
        if customer.status == "frozen":
            raise TransferForbidden("frozen")
        if customer.status == "blocked":
            raise TransferForbidden("blocked")
        if not customer.can_send_money:
            raise TransferForbidden("disabled")

    @staticmethod
    async def debit(db: AsyncSession, customer_id: uuid.UUID, amount: Decimal) -> Decimal:
        """Atomically take `amount` from an eligible customer; returns the new balance."""
        result = await db.execute(
            update(Customer)
            .where(
                Customer.id == customer_id,
                Customer.status == "active",
                Customer.can_send_money.is_(True),
                Customer.balance >= amount,
            )
            .values(balance=Customer.balance - amount)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            # Precondition failed at write time; find out which one
            current = await BalanceService.load_customer(db, customer_id)
            BalanceService.check_eligibility(current)
            log.warning("Debit of %s refused for customer %s: insufficient funds", amount, customer_id)
            raise InsufficientFunds()
        return await crud.get_customer_balance(db, customer_id)

    @staticmethod
    async def credit(db: AsyncSession, customer_id: uuid.UUID, amount: Decimal) -> Decimal:
        """Atomically add `amount` to a customer; returns the new balance."""
        result = await db.execute(
            update(Customer)
            .where(Customer.id == customer_id)
            .values(balance=Customer.balance + amount)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise CustomerNotFound()
        return await crud.get_customer_balance(db, customer_id)

    @staticmethod
    async def load_customer(db: AsyncSession, customer_id: uuid.UUID) -> Customer:
        result = await db.execute(
            select(Customer).where(Customer.id == customer_id).execution_options(populate_existing=True)
        )
        customer = result.scalar_one_or_none()
        if customer is None:
            raise CustomerNotFound()
        return customer
