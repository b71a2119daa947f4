"""
Recipient lookup for domestic transfers.

Search tries account numbers first and falls back to profile names; both
passes exclude the sender and are capped at RECIPIENT_SEARCH_LIMIT.
"""

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from . import crud, schemas
from .config import settings
from .exceptions import InvalidRecipient
from .models import Customer, Profile

log = logging.getLogger(__name__)


class RecipientService:

    @staticmethod
    async def search_recipients(db: AsyncSession, query: str, sender: Customer) -> List[schemas.RecipientCandidate]:
        term = (query or "").strip()
        if len(term) < settings.RECIPIENT_SEARCH_MIN_CHARS:
            return []
        pattern = f"%{_escape_like(term)}%"

        by_account = await db.execute(
            select(Customer.id, Customer.account_number, Profile.name)
            .outerjoin(Profile, Profile.user_id == Customer.user_id)
            .where(Customer.account_number.ilike(pattern, escape="\\"), Customer.user_id != sender.user_id)
            .limit(settings.RECIPIENT_SEARCH_LIMIT)
        )
        rows = by_account.all()

        if not rows:
            # Name match; profiles without a customer account drop out of the join
            by_name = await db.execute(
                select(Customer.id, Customer.account_number, Profile.name)
                .join(Customer, Customer.user_id == Profile.user_id)
                .where(Profile.name.ilike(pattern, escape="\\"), Profile.user_id != sender.user_id)
                .limit(settings.RECIPIENT_SEARCH_LIMIT)
            )
            rows = by_name.all()

        return [
            schemas.RecipientCandidate(customer_id=customer_id, account_number=account_number, name=name or "Unknown")
            for customer_id, account_number, name in rows
        ]

    @staticmethod
    async def resolve_domestic_recipient(
        db: AsyncSession, sender: Customer, descriptor: Optional[schemas.DomesticRecipient]
    ) -> Optional[Customer]:
        """
        Find the internal customer a domestic transfer is aimed at.

        Returns None when the descriptor names no existing customer but carries
        a free-text name and account (an external recipient).
        """
        if descriptor is None:
            raise InvalidRecipient("Please select a recipient")

        recipient = None
        if descriptor.customer_id is not None:
            recipient = await crud.get_customer(db, descriptor.customer_id)
            if recipient is None:
                raise InvalidRecipient("Recipient not found")
        elif descriptor.account_number and descriptor.account_number.strip():
            recipient = await crud.get_customer_by_account_number(db, descriptor.account_number)

        if recipient is not None:
            if recipient.id == sender.id:
                raise InvalidRecipient("You cannot transfer money to your own account")
            return recipient

        if not (descriptor.name and descriptor.name.strip() and descriptor.account_number and descriptor.account_number.strip()):
            raise InvalidRecipient("Please select a recipient")
        log.info("Domestic recipient %s not found internally; treating as external", descriptor.account_number)
        return None


def _escape_like(term: str) -> str:
    # User text is matched literally; % and _ are not wildcards here
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
