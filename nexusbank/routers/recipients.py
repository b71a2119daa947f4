"""Recipient lookup for domestic transfers."""

from typing import List

from fastapi import APIRouter, Depends, Query

from .. import schemas
from ..database import with_store_timeout
from ..deps import CurrentCustomerDep, SessionDep, get_current_user
from ..recipient_service import RecipientService

router = APIRouter(prefix="/api/recipients", tags=["recipients"], dependencies=[Depends(get_current_user)])


@router.get("/search", response_model=List[schemas.RecipientCandidate])
async def search_recipients(
    customer: CurrentCustomerDep,
    db_session: SessionDep,
    q: str = Query("", max_length=100),
):
    """Up to five customers matching an account number fragment, or else a name."""
    return await with_store_timeout(RecipientService.search_recipients(db_session, q, customer))
