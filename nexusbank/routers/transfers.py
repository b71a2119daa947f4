"""Money transfers submitted by customers."""

from fastapi import APIRouter, Depends, status

from .. import schemas
from ..database import with_store_timeout
from ..deps import CurrentCustomerDep, IdempotencyKeyDep, SessionDep, get_current_user
from ..transfer_service import TransferService

router = APIRouter(prefix="/api/transfers", tags=["transfers"], dependencies=[Depends(get_current_user)])


@router.post("", response_model=schemas.TransferResult, status_code=status.HTTP_201_CREATED)
async def submit_transfer(
    request: schemas.TransferRequest,
    customer: CurrentCustomerDep,
    db_session: SessionDep,
    idempotency_key: IdempotencyKeyDep,
):
    """
    Submit a domestic or international transfer.

    Internal recipients are credited immediately (status completed); anything
    else is debited and left pending for an administrator. Resending the same
    Idempotency-Key returns the first result without moving money again.
    """
    return await with_store_timeout(
        TransferService.submit_transfer(db_session, customer.id, request, idempotency_key=idempotency_key)
    )
