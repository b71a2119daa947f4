"""
Card requests: customers ask for a debit or credit card, an admin decides once.
"""

import logging
import uuid

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from . import crud
from .audit_service import AuditService
from .database import unit_of_work
from .exceptions import CardRequestAlreadyProcessed, CardRequestNotAllowed, CardRequestNotFound
from .models import CardRequest, Customer, User, utcnow

log = logging.getLogger(__name__)


class CardService:

    @staticmethod
    async def request_card(db: AsyncSession, customer: Customer, card_type: str) -> CardRequest:
        """One open request at a time, and none once a card has been approved."""
        customer_id = customer.id
        if await crud.get_customer_card_status(db, customer_id) == "approved":
            raise CardRequestNotAllowed("approved")
        if await crud.has_pending_card_request(db, customer_id):
            raise CardRequestNotAllowed("pending")

        card_request = CardRequest(customer_id=customer_id, card_type=card_type, status="pending")
        async with unit_of_work(db):
            db.add(card_request)
        await db.refresh(card_request)
        log.info("Customer %s requested a %s card", card_request.customer_id, card_type)
        return card_request

    @staticmethod
    async def approve_request(db: AsyncSession, request_id: uuid.UUID, admin: User) -> CardRequest:
        return await CardService._decide(db, request_id, admin, approve=True)

    @staticmethod
    async def reject_request(db: AsyncSession, request_id: uuid.UUID, admin: User) -> CardRequest:
        return await CardService._decide(db, request_id, admin, approve=False)

    @staticmethod
    async def _decide(db: AsyncSession, request_id: uuid.UUID, admin: User, approve: bool) -> CardRequest:
        card_request = await crud.get_card_request(db, request_id)
        if card_request is None:
            raise CardRequestNotFound()

        new_status = "approved" if approve else "rejected"
        admin_id = admin.id
        customer_id = card_request.customer_id
        card_type = card_request.card_type

        async with unit_of_work(db):
            result = await db.execute(
                update(CardRequest)
                .where(CardRequest.id == request_id, CardRequest.status == "pending")
                .values(status=new_status, processed_at=utcnow(), processed_by=admin_id)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise CardRequestAlreadyProcessed()
            # A rejection leaves the customer's card status as it was
            if approve:
                await db.execute(
                    update(Customer)
                    .where(Customer.id == customer_id)
                    .values(card_status="approved")
                    .execution_options(synchronize_session=False)
                )
            AuditService.record(
                db,
                action="APPROVE_CARD" if approve else "REJECT_CARD",
                admin_id=admin_id,
                target_customer_id=customer_id,
                details=f"{card_type} card request {new_status}",
            )

        await db.refresh(card_request)
        return card_request
