# crud.py
# Read helpers and simple writes shared by services and routers.
# Money-moving writes live in the *_service modules, never here.

import secrets
import uuid
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from . import models, schemas
from .auth_utils import hash_password
from .config import settings


# ===== USERS =====

async def get_user(db: AsyncSession, user_id: uuid.UUID):
    result = await db.execute(select(models.User).filter(models.User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_email(db: AsyncSession, email: str):
    result = await db.execute(select(models.User).filter(models.User.email == email.strip().lower()))
    return result.scalar_one_or_none()


async def get_profile_by_user(db: AsyncSession, user_id: uuid.UUID):
    result = await db.execute(select(models.Profile).filter(models.Profile.user_id == user_id))
    return result.scalar_one_or_none()


async def _unique_number(db: AsyncSession, column, digits: int) -> str:
    while True:
        candidate = "".join(secrets.choice("0123456789") for _ in range(digits))
        if candidate[0] == "0":
            continue
        exists = await db.execute(select(func.count()).select_from(models.Customer).where(column == candidate))
        if not exists.scalar_one():
            return candidate


async def generate_account_number(db: AsyncSession) -> str:
    """10-digit account number, unique across customers."""
    return await _unique_number(db, models.Customer.account_number, 10)


def generate_routing_number() -> str:
    return "".join(secrets.choice("0123456789") for _ in range(9))


async def create_user_with_customer(
    db: AsyncSession,
    *,
    email: str,
    password: str,
    name: str,
    phone: Optional[str] = None,
    role: str = "customer",
):
    """
    Create a User together with its Profile and Customer account in one commit.

    Every user gets a customer record on creation: balance 0, default currency,
    status active, generated account and routing numbers.
    """
    db_user = models.User(
        email=email.strip().lower(),
        hashed_password=hash_password(password),
        role=role,
    )
    db.add(db_user)
    await db.flush()  # Get the user ID without committing yet

    db.add(models.Profile(user_id=db_user.id, name=name, email=db_user.email, phone=phone))
    db_customer = models.Customer(
        user_id=db_user.id,
        account_number=await generate_account_number(db),
        routing_number=generate_routing_number(),
        balance=0,
        currency=settings.DEFAULT_CURRENCY,
        status="active",
        card_status="none",
        can_send_money=True,
        can_login=True,
    )
    db.add(db_customer)
    await db.commit()
    await db.refresh(db_user)
    await db.refresh(db_customer)
    return db_user, db_customer


# ===== CUSTOMERS =====

async def get_customer(db: AsyncSession, customer_id: uuid.UUID):
    result = await db.execute(select(models.Customer).filter(models.Customer.id == customer_id))
    return result.scalar_one_or_none()


async def get_customer_by_user(db: AsyncSession, user_id: uuid.UUID):
    result = await db.execute(select(models.Customer).filter(models.Customer.user_id == user_id))
    return result.scalar_one_or_none()


async def get_customer_by_account_number(db: AsyncSession, account_number: str):
    result = await db.execute(
        select(models.Customer).filter(models.Customer.account_number == account_number.strip())
    )
    return result.scalar_one_or_none()


async def get_customer_balance(db: AsyncSession, customer_id: uuid.UUID):
    """Current stored balance, read straight from the row."""
    result = await db.execute(select(models.Customer.balance).where(models.Customer.id == customer_id))
    return result.scalar_one()


def _customer_with_profile(customer: models.Customer, profile: Optional[models.Profile]) -> schemas.CustomerWithProfile:
    data = schemas.Customer.model_validate(customer).model_dump()
    data["profile"] = schemas.ProfileSummary.model_validate(profile) if profile is not None else None
    return schemas.CustomerWithProfile(**data)


async def list_customers_with_profiles(db: AsyncSession, skip: int = 0, limit: int = 100) -> List[schemas.CustomerWithProfile]:
    """All customers newest first, each joined to its (nullable) profile in one query."""
    result = await db.execute(
        select(models.Customer, models.Profile)
        .outerjoin(models.Profile, models.Profile.user_id == models.Customer.user_id)
        .order_by(models.Customer.created_at.desc())
        .offset(skip)
        .limit(limit)
    )
    return [_customer_with_profile(customer, profile) for customer, profile in result.all()]


async def get_customer_with_profile(db: AsyncSession, customer_id: uuid.UUID) -> Optional[schemas.CustomerWithProfile]:
    result = await db.execute(
        select(models.Customer, models.Profile)
        .outerjoin(models.Profile, models.Profile.user_id == models.Customer.user_id)
        .where(models.Customer.id == customer_id)
    )
    row = result.first()
    if row is None:
        return None
    return _customer_with_profile(row[0], row[1])


# ===== TRANSACTIONS =====

async def get_transaction(db: AsyncSession, transaction_id: uuid.UUID):
    result = await db.execute(select(models.Transaction).filter(models.Transaction.id == transaction_id))
    return result.scalar_one_or_none()


async def get_transaction_by_reference(db: AsyncSession, reference: str, customer_id: Optional[uuid.UUID] = None):
    query = select(models.Transaction).filter(models.Transaction.reference == reference)
    if customer_id is not None:
        query = query.filter(models.Transaction.customer_id == customer_id)
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def get_transaction_by_idempotency_key(db: AsyncSession, idempotency_key: str):
    result = await db.execute(
        select(models.Transaction).filter(models.Transaction.idempotency_key == idempotency_key)
    )
    return result.scalar_one_or_none()


async def reference_exists(db: AsyncSession, reference: str) -> bool:
    result = await db.execute(
        select(func.count()).select_from(models.Transaction).where(models.Transaction.reference == reference)
    )
    return bool(result.scalar_one())


async def get_customer_transactions(db: AsyncSession, customer_id: uuid.UUID, skip: int = 0, limit: Optional[int] = None):
    query = (
        select(models.Transaction)
        .filter(models.Transaction.customer_id == customer_id)
        .order_by(models.Transaction.created_at.desc())
        .offset(skip)
    )
    if limit is not None:
        query = query.limit(limit)
    result = await db.execute(query)
    return result.scalars().all()


# ===== AUDIT LOGS =====

async def get_audit_logs(db: AsyncSession, limit: int = 100, target_customer_id: Optional[uuid.UUID] = None):
    query = select(models.AuditLog).order_by(models.AuditLog.created_at.desc()).limit(limit)
    if target_customer_id is not None:
        query = query.filter(models.AuditLog.target_customer_id == target_customer_id)
    result = await db.execute(query)
    return result.scalars().all()


# ===== NOTIFICATIONS =====

async def get_user_notifications(db: AsyncSession, user_id: uuid.UUID, skip: int = 0, limit: int = 50):
    result = await db.execute(
        select(models.Notification)
        .filter(models.Notification.user_id == user_id)
        .order_by(models.Notification.created_at.desc())
        .offset(skip)
        .limit(limit)
    )
    return result.scalars().all()


async def get_unread_notifications_count(db: AsyncSession, user_id: uuid.UUID) -> int:
    result = await db.execute(
        select(func.count())
        .select_from(models.Notification)
        .where(models.Notification.user_id == user_id, models.Notification.read.is_(False))
    )
    return result.scalar_one()


async def get_notification(db: AsyncSession, notification_id: uuid.UUID):
    result = await db.execute(select(models.Notification).filter(models.Notification.id == notification_id))
    return result.scalar_one_or_none()


async def mark_notification_as_read(db: AsyncSession, notification: models.Notification):
    notification.read = True
    db.add(notification)
    await db.commit()
    await db.refresh(notification)
    return notification


# ===== CARD REQUESTS =====

async def get_card_request(db: AsyncSession, request_id: uuid.UUID):
    result = await db.execute(select(models.CardRequest).filter(models.CardRequest.id == request_id))
    return result.scalar_one_or_none()


async def get_customer_card_requests(db: AsyncSession, customer_id: uuid.UUID):
    result = await db.execute(
        select(models.CardRequest)
        .filter(models.CardRequest.customer_id == customer_id)
        .order_by(models.CardRequest.requested_at.desc())
    )
    return result.scalars().all()


async def has_pending_card_request(db: AsyncSession, customer_id: uuid.UUID) -> bool:
    result = await db.execute(
        select(models.CardRequest.id)
        .filter(models.CardRequest.customer_id == customer_id, models.CardRequest.status == "pending")
        .limit(1)
    )
    return result.first() is not None


async def get_customer_card_status(db: AsyncSession, customer_id: uuid.UUID) -> Optional[str]:
    result = await db.execute(select(models.Customer.card_status).filter(models.Customer.id == customer_id))
    return result.scalar_one_or_none()


async def get_card_requests_with_customers(db: AsyncSession, status: Optional[str] = None) -> List[schemas.AdminCardRequest]:
    query = (
        select(models.CardRequest, models.Customer.account_number, models.Profile.name, models.Profile.email)
        .join(models.Customer, models.Customer.id == models.CardRequest.customer_id)
        .outerjoin(models.Profile, models.Profile.user_id == models.Customer.user_id)
        .order_by(models.CardRequest.requested_at.desc())
    )
    if status is not None:
        query = query.filter(models.CardRequest.status == status)
    result = await db.execute(query)
    requests = []
    for card_request, account_number, name, email in result.all():
        data = schemas.CardRequest.model_validate(card_request).model_dump()
        requests.append(
            schemas.AdminCardRequest(**data, account_number=account_number, customer_name=name, customer_email=email)
        )
    return requests


# ===== METRICS =====

async def get_dashboard_metrics(db: AsyncSession) -> schemas.AdminDashboardMetrics:
    status_rows = await db.execute(
        select(models.Customer.status, func.count()).group_by(models.Customer.status)
    )
    by_status = {status: count for status, count in status_rows.all()}

    pending_transfers = await db.execute(
        select(func.count()).select_from(models.Transaction).where(models.Transaction.status == "pending")
    )
    pending_cards = await db.execute(
        select(func.count()).select_from(models.CardRequest).where(models.CardRequest.status == "pending")
    )
    total_deposits = await db.execute(select(func.coalesce(func.sum(models.Customer.balance), 0)))

    return schemas.AdminDashboardMetrics(
        total_customers=sum(by_status.values()),
        active_customers=by_status.get("active", 0),
        blocked_customers=by_status.get("blocked", 0),
        frozen_customers=by_status.get("frozen", 0),
        pending_transfers=pending_transfers.scalar_one(),
        pending_card_requests=pending_cards.scalar_one(),
        total_deposits=total_deposits.scalar_one() or 0,
    )
