"""Admin settlement of externally pending transfers."""

import uuid
from typing import List

from fastapi import APIRouter, Depends

from .. import schemas
from ..database import with_store_timeout
from ..deps import CurrentAdminUserDep, SessionDep, get_current_admin_user
from ..settlement_service import SettlementService

router = APIRouter(
    prefix="/api/admin/transfers",
    tags=["admin", "settlement"],
    dependencies=[Depends(get_current_admin_user)],
)


@router.get("/pending", response_model=List[schemas.PendingTransfer])
async def list_pending_transfers(db_session: SessionDep):
    return await SettlementService.list_pending_transfers(db_session)


@router.post("/{transaction_id}/approve", response_model=schemas.SettlementResult)
async def approve_transfer(transaction_id: uuid.UUID, admin: CurrentAdminUserDep, db_session: SessionDep):
    return await with_store_timeout(SettlementService.approve_transfer(db_session, transaction_id, admin))


@router.post("/{transaction_id}/reject", response_model=schemas.SettlementResult)
async def reject_transfer(transaction_id: uuid.UUID, admin: CurrentAdminUserDep, db_session: SessionDep):
    """Reject and refund the sender. A transfer can only be decided once."""
    return await with_store_timeout(SettlementService.reject_transfer(db_session, transaction_id, admin))
