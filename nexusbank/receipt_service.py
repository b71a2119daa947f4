"""Receipt data for a customer's transfer. Rendering to PDF happens client side."""

from sqlalchemy.ext.asyncio import AsyncSession

from . import crud, schemas
from .exceptions import TransactionNotFound
from .models import Customer


class ReceiptService:

    @staticmethod
    async def build_receipt(db: AsyncSession, customer: Customer, reference: str) -> schemas.ReceiptData:
        txn = await crud.get_transaction_by_reference(db, reference, customer_id=customer.id)
        if txn is None:
            raise TransactionNotFound()
        profile = await crud.get_profile_by_user(db, customer.user_id)
        return schemas.ReceiptData(
            sender_name=txn.sender_name or (profile.name if profile else "Unknown"),
            sender_account=txn.sender_account or customer.account_number,
            recipient_name=txn.recipient_name or "Unknown",
            recipient_account=txn.recipient_account or "",
            amount=txn.amount,
            note=txn.description,
            reference=txn.reference,
            transfer_type=txn.transfer_type or "domestic",
            routing_number=customer.routing_number or "",
            date=txn.created_at,
            status=txn.status,
        )
