"""Card requests made by customers."""

from typing import List

from fastapi import APIRouter, Depends, status

from .. import crud, schemas
from ..card_service import CardService
from ..database import with_store_timeout
from ..deps import CurrentCustomerDep, SessionDep, get_current_user

router = APIRouter(prefix="/api/cards", tags=["cards"], dependencies=[Depends(get_current_user)])


@router.get("/requests", response_model=List[schemas.CardRequest])
async def list_my_card_requests(customer: CurrentCustomerDep, db_session: SessionDep):
    return await crud.get_customer_card_requests(db_session, customer.id)


@router.post("/requests", response_model=schemas.CardRequest, status_code=status.HTTP_201_CREATED)
async def request_card(request: schemas.CardRequestCreate, customer: CurrentCustomerDep, db_session: SessionDep):
    return await with_store_timeout(CardService.request_card(db_session, customer, request.card_type))
