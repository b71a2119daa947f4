# models.py
# SQLAlchemy models for the ledger store: users, profiles, customers, transactions,
# audit logs, notifications and card requests.

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Numeric, String, Text, Uuid
from sqlalchemy.sql import func

from .database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Account status: active, blocked, frozen
ACCOUNT_STATUSES = ("active", "blocked", "frozen")
# Card status on the customer row: none, pending, approved, rejected
CARD_STATUSES = ("none", "pending", "approved", "rejected")
# Transaction type is relative to the owning customer
TRANSACTION_TYPES = ("credit", "debit")
TRANSACTION_STATUSES = ("pending", "completed", "rejected")


class User(Base):
    """Authentication identity. `role` is the claim issued in access tokens."""
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    role = Column(String(20), default="customer", nullable=False)  # admin, customer
    created_at = Column(DateTime(timezone=True), server_default=func.now(), default=utcnow, nullable=False)

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id"), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(32), nullable=True)
    # Optional KYC fields
    date_of_birth = Column(Date, nullable=True)
    nationality = Column(String(64), nullable=True)
    home_address = Column(String(512), nullable=True)
    avatar_url = Column(String(512), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), default=utcnow, onupdate=utcnow, nullable=False)


class Customer(Base):
    """
    Customer account.

    `balance` is only ever changed through atomic UPDATE statements issued by
    balance_service; never assign it from a previously read value.
    """
    __tablename__ = "customers"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id"), unique=True, index=True, nullable=False)
    account_number = Column(String(20), unique=True, index=True, nullable=False)
    routing_number = Column(String(20), nullable=True)
    balance = Column(Numeric(15, 2), default=0, nullable=False)
    currency = Column(String(3), default="USD", nullable=False)
    status = Column(String(20), default="active", nullable=False)
    card_status = Column(String(20), default="none", nullable=False)
    can_send_money = Column(Boolean, default=True, nullable=False)
    can_login = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), default=utcnow, onupdate=utcnow, nullable=False)


class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    customer_id = Column(Uuid, ForeignKey("customers.id"), index=True, nullable=False)
    type = Column(String(10), nullable=False)  # credit, debit
    amount = Column(Numeric(15, 2), nullable=False)
    description = Column(String(512), nullable=False, default="")
    recipient_name = Column(String(255), nullable=True)
    recipient_account = Column(String(64), nullable=True)
    sender_name = Column(String(255), nullable=True)
    sender_account = Column(String(64), nullable=True)
    reference = Column(String(64), unique=True, index=True, nullable=False)
    status = Column(String(20), default="completed", nullable=False, index=True)  # pending, completed, rejected
    transfer_type = Column(String(20), nullable=True)  # domestic, international
    idempotency_key = Column(String(128), unique=True, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), default=utcnow, index=True, nullable=False)
    settled_at = Column(DateTime(timezone=True), nullable=True)
    settled_by = Column(Uuid, ForeignKey("users.id"), nullable=True)


class AuditLog(Base):
    """
    Append-only trail of administrative actions. Rows are never updated or deleted.
    admin_id is NULL for system actions.
    """
    __tablename__ = "audit_logs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    admin_id = Column(Uuid, ForeignKey("users.id"), nullable=True, index=True)
    action = Column(String(64), nullable=False, index=True)
    target_customer_id = Column(Uuid, ForeignKey("customers.id"), nullable=True, index=True)
    details = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), default=utcnow, index=True, nullable=False)

    def __repr__(self):
        return f"<AuditLog {self.action} by {self.admin_id} on {self.target_customer_id} at {self.created_at}>"


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id"), index=True, nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), default=utcnow, nullable=False)


class CardRequest(Base):
    __tablename__ = "card_requests"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    customer_id = Column(Uuid, ForeignKey("customers.id"), index=True, nullable=False)
    card_type = Column(String(10), nullable=False)  # debit, credit
    status = Column(String(20), default="pending", nullable=False)  # pending, approved, rejected
    requested_at = Column(DateTime(timezone=True), server_default=func.now(), default=utcnow, nullable=False)
    processed_at = Column(DateTime(timezone=True), nullable=True)
    processed_by = Column(Uuid, ForeignKey("users.id"), nullable=True)
