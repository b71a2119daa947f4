"""
Admin console endpoints: customer management, funding and adjustments,
card decisions, audit log and dashboard metrics.
"""

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from .. import crud, schemas
from ..account_status_service import AccountStatusService
from ..card_service import CardService
from ..database import with_store_timeout
from ..deps import CurrentAdminUserDep, SessionDep, get_current_admin_user
from ..exceptions import CustomerNotFound
from ..funding_service import FundingService

# Use the callable `get_current_admin_user` in Depends to avoid wrapping an Annotated type
router = APIRouter(prefix="/api/admin", tags=["admin"], dependencies=[Depends(get_current_admin_user)])


# -----------------------
#  CUSTOMERS
# -----------------------
@router.get("/customers", response_model=List[schemas.CustomerWithProfile])
async def list_customers(db_session: SessionDep, skip: int = 0, limit: int = 100):
    return await crud.list_customers_with_profiles(db_session, skip=skip, limit=limit)


@router.get("/customers/{customer_id}", response_model=schemas.CustomerDetail)
async def read_customer(customer_id: uuid.UUID, db_session: SessionDep):
    customer = await crud.get_customer_with_profile(db_session, customer_id)
    if customer is None:
        raise CustomerNotFound()
    recent = await crud.get_customer_transactions(db_session, customer_id, limit=10)
    return schemas.CustomerDetail(
        customer=customer,
        recent_transactions=[schemas.Transaction.model_validate(txn) for txn in recent],
    )


@router.post("/customers/{customer_id}/status", response_model=schemas.Customer)
async def change_customer_status(
    customer_id: uuid.UUID,
    request: schemas.StatusChangeRequest,
    admin: CurrentAdminUserDep,
    db_session: SessionDep,
):
    return await with_store_timeout(
        AccountStatusService.change_status(db_session, customer_id, request.status, admin)
    )


@router.post("/customers/{customer_id}/permissions", response_model=schemas.Customer)
async def change_customer_permission(
    customer_id: uuid.UUID,
    request: schemas.PermissionChangeRequest,
    admin: CurrentAdminUserDep,
    db_session: SessionDep,
):
    return await with_store_timeout(
        AccountStatusService.set_permission(db_session, customer_id, request.field, request.enabled, admin)
    )


@router.put("/customers/{customer_id}/profile", response_model=schemas.CustomerWithProfile)
async def edit_customer_profile(
    customer_id: uuid.UUID,
    request: schemas.ProfileUpdate,
    admin: CurrentAdminUserDep,
    db_session: SessionDep,
):
    return await with_store_timeout(
        FundingService.edit_customer_profile(db_session, customer_id, request, admin)
    )


# -----------------------
#  FUNDING & ADJUSTMENTS
# -----------------------
@router.post("/customers/{customer_id}/fund", response_model=schemas.FundAccountResult)
async def fund_customer(
    customer_id: uuid.UUID,
    request: schemas.FundAccountRequest,
    admin: CurrentAdminUserDep,
    db_session: SessionDep,
):
    return await with_store_timeout(
        FundingService.fund_account(db_session, customer_id, request.amount, request.description, admin)
    )


@router.post(
    "/customers/{customer_id}/transactions",
    response_model=schemas.Transaction,
    status_code=status.HTTP_201_CREATED,
)
async def add_customer_transaction(
    customer_id: uuid.UUID,
    request: schemas.AddTransactionRequest,
    admin: CurrentAdminUserDep,
    db_session: SessionDep,
):
    """Record a historical transaction. The customer's balance is not changed."""
    return await with_store_timeout(
        FundingService.add_transaction_record(db_session, customer_id, request, admin)
    )


@router.patch("/transactions/{transaction_id}", response_model=schemas.Transaction)
async def edit_transaction(
    transaction_id: uuid.UUID,
    request: schemas.EditTransactionRequest,
    admin: CurrentAdminUserDep,
    db_session: SessionDep,
):
    """Overwrite amount and/or date. The customer's balance is not changed."""
    return await with_store_timeout(
        FundingService.edit_transaction(db_session, transaction_id, request, admin)
    )


# -----------------------
#  CARD REQUESTS
# -----------------------
@router.get("/card-requests", response_model=List[schemas.AdminCardRequest])
async def list_card_requests(
    db_session: SessionDep,
    status_filter: Optional[str] = Query(None, alias="status", pattern="^(pending|approved|rejected)$"),
):
    return await crud.get_card_requests_with_customers(db_session, status=status_filter)


@router.post("/card-requests/{request_id}/approve", response_model=schemas.CardRequest)
async def approve_card_request(request_id: uuid.UUID, admin: CurrentAdminUserDep, db_session: SessionDep):
    return await with_store_timeout(CardService.approve_request(db_session, request_id, admin))


@router.post("/card-requests/{request_id}/reject", response_model=schemas.CardRequest)
async def reject_card_request(request_id: uuid.UUID, admin: CurrentAdminUserDep, db_session: SessionDep):
    return await with_store_timeout(CardService.reject_request(db_session, request_id, admin))


# -----------------------
#  AUDIT & METRICS
# -----------------------
@router.get("/audit-logs", response_model=List[schemas.AuditLog])
async def read_audit_logs(
    db_session: SessionDep,
    limit: int = Query(100, ge=1, le=500),
    customer_id: Optional[uuid.UUID] = None,
):
    return await crud.get_audit_logs(db_session, limit=limit, target_customer_id=customer_id)


@router.get("/metrics", response_model=schemas.AdminDashboardMetrics)
async def read_dashboard_metrics(db_session: SessionDep):
    return await crud.get_dashboard_metrics(db_session)
