# schemas.py
# Pydantic models for request/response validation and serialization.

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, EmailStr, Field, constr

# Amounts are accepted loosely and validated by the services so that a bad
# amount always surfaces as InvalidAmount rather than a generic 422.
AmountInput = Union[Decimal, str]

AccountStatus = Literal["active", "blocked", "frozen"]
CardStatus = Literal["none", "pending", "approved", "rejected"]
TransactionType = Literal["credit", "debit"]
TransactionStatus = Literal["pending", "completed", "rejected"]
TransferType = Literal["domestic", "international"]
CardType = Literal["debit", "credit"]


# -----------------------
#  AUTH
# -----------------------
class Token(BaseModel):
    access_token: str
    token_type: str
    role: str
    user_id: uuid.UUID
    email: str


class RegisterRequest(BaseModel):
    name: constr(strip_whitespace=True, min_length=2, max_length=255)
    email: EmailStr
    phone: Optional[str] = None
    password: constr(min_length=8)


# -----------------------
#  CUSTOMERS & PROFILES
# -----------------------
class ProfileSummary(BaseModel):
    name: str
    email: str
    phone: Optional[str] = None

    class Config:
        from_attributes = True


class Profile(ProfileSummary):
    id: uuid.UUID
    user_id: uuid.UUID
    date_of_birth: Optional[date] = None
    nationality: Optional[str] = None
    home_address: Optional[str] = None
    avatar_url: Optional[str] = None


class Customer(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    account_number: str
    routing_number: Optional[str] = None
    balance: Decimal
    currency: str
    status: AccountStatus
    card_status: CardStatus
    can_send_money: bool
    can_login: bool
    created_at: datetime

    class Config:
        from_attributes = True


class CustomerWithProfile(Customer):
    """Customer row joined to its profile; `profile` is None when no profile row exists."""
    profile: Optional[ProfileSummary] = None


class CustomerMe(BaseModel):
    customer: Customer
    profile: Optional[Profile] = None


class ProfileUpdate(BaseModel):
    name: Optional[constr(strip_whitespace=True, min_length=1)] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    date_of_birth: Optional[date] = None
    nationality: Optional[str] = None
    home_address: Optional[str] = None
    currency: Optional[constr(pattern=r"^[A-Za-z]{3}$")] = None


class StatusChangeRequest(BaseModel):
    status: AccountStatus


class PermissionChangeRequest(BaseModel):
    field: Literal["can_send_money", "can_login"]
    enabled: bool


# -----------------------
#  TRANSACTIONS
# -----------------------
class Transaction(BaseModel):
    id: uuid.UUID
    customer_id: uuid.UUID
    type: TransactionType
    amount: Decimal
    description: str
    recipient_name: Optional[str] = None
    recipient_account: Optional[str] = None
    sender_name: Optional[str] = None
    sender_account: Optional[str] = None
    reference: str
    status: TransactionStatus
    transfer_type: Optional[TransferType] = None
    created_at: datetime
    settled_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CustomerDetail(BaseModel):
    customer: CustomerWithProfile
    recent_transactions: List[Transaction]


class DomesticRecipient(BaseModel):
    customer_id: Optional[uuid.UUID] = None
    account_number: Optional[str] = None
    name: Optional[str] = None


class InternationalRecipient(BaseModel):
    recipient_name: str = ""
    account_number: str = ""
    swift_code: str = ""
    bank_name: str = ""
    bank_routing_number: Optional[str] = None
    bank_address: Optional[str] = None
    country: str = ""


class TransferRequest(BaseModel):
    transfer_type: TransferType
    amount: AmountInput
    note: Optional[str] = None
    idempotency_key: Optional[constr(min_length=1, max_length=128)] = None
    domestic: Optional[DomesticRecipient] = None
    international: Optional[InternationalRecipient] = None


class TransferResult(BaseModel):
    transaction: Transaction
    classification: Literal["internal", "external"]
    sender_balance: Decimal
    recipient_credited: bool
    replayed: bool = False


class RecipientCandidate(BaseModel):
    customer_id: uuid.UUID
    name: str
    account_number: str


class PendingTransfer(Transaction):
    customer_name: str = "Unknown"
    customer_account: str = ""


class SettlementResult(BaseModel):
    transaction: Transaction
    action: Literal["approve", "reject"]
    sender_balance: Decimal


class ReceiptData(BaseModel):
    sender_name: str
    sender_account: str
    recipient_name: str
    recipient_account: str
    amount: Decimal
    note: Optional[str] = None
    reference: str
    transfer_type: TransferType
    routing_number: str
    date: datetime
    status: TransactionStatus


# -----------------------
#  FUNDING / ADJUSTMENT
# -----------------------
class FundAccountRequest(BaseModel):
    amount: AmountInput
    description: Optional[str] = None


class FundAccountResult(BaseModel):
    transaction: Transaction
    balance: Decimal


class AddTransactionRequest(BaseModel):
    type: TransactionType
    amount: AmountInput
    description: constr(strip_whitespace=True, min_length=1)
    counterparty_name: Optional[str] = None
    created_at: datetime


class EditTransactionRequest(BaseModel):
    amount: Optional[AmountInput] = None
    created_at: Optional[datetime] = None


# -----------------------
#  AUDIT / NOTIFICATIONS / CARDS
# -----------------------
class AuditLog(BaseModel):
    id: uuid.UUID
    admin_id: Optional[uuid.UUID] = None
    action: str
    target_customer_id: Optional[uuid.UUID] = None
    details: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class Notification(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    title: str
    message: str
    read: bool
    created_at: datetime

    class Config:
        from_attributes = True


class CardRequestCreate(BaseModel):
    card_type: CardType


class CardRequest(BaseModel):
    id: uuid.UUID
    customer_id: uuid.UUID
    card_type: CardType
    status: Literal["pending", "approved", "rejected"]
    requested_at: datetime
    processed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AdminCardRequest(CardRequest):
    account_number: Optional[str] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None


class AdminDashboardMetrics(BaseModel):
    total_customers: int
    active_customers: int
    blocked_customers: int
    frozen_customers: int
    pending_transfers: int
    pending_card_requests: int
    total_deposits: Decimal = Field(default=Decimal("0"))
