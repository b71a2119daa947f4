"""Authenticated customer's own account, history and receipts."""

from typing import List

from fastapi import APIRouter, Depends

from .. import crud, schemas
from ..database import with_store_timeout
from ..deps import CurrentCustomerDep, SessionDep, get_current_user
from ..receipt_service import ReceiptService

router = APIRouter(prefix="/api/customer", tags=["customer"], dependencies=[Depends(get_current_user)])


@router.get("/me", response_model=schemas.CustomerMe)
async def read_me(customer: CurrentCustomerDep, db_session: SessionDep):
    profile = await crud.get_profile_by_user(db_session, customer.user_id)
    return schemas.CustomerMe(
        customer=schemas.Customer.model_validate(customer),
        profile=schemas.Profile.model_validate(profile) if profile else None,
    )


@router.get("/transactions", response_model=List[schemas.Transaction])
async def read_my_transactions(
    customer: CurrentCustomerDep,
    db_session: SessionDep,
    skip: int = 0,
    limit: int = 100,
):
    """Transaction history, newest first."""
    return await crud.get_customer_transactions(db_session, customer.id, skip=skip, limit=limit)


@router.get("/transactions/{reference}/receipt", response_model=schemas.ReceiptData)
async def read_receipt(reference: str, customer: CurrentCustomerDep, db_session: SessionDep):
    return await with_store_timeout(ReceiptService.build_receipt(db_session, customer, reference))
