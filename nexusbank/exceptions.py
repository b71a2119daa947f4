"""
Banking error taxonomy.

Services raise these; the app-level exception handler in ``main`` turns
them into ``{"detail": ..., "error": ...}`` JSON responses. Store errors
are always wrapped in StoreOperationFailed so driver messages never reach
end users.
"""

from typing import Optional


class BankingError(Exception):
    status_code = 400
    code = "banking_error"
    message = "Request could not be completed"

    def __init__(self, message: Optional[str] = None, reason: Optional[str] = None):
        self.message = message or self.message
        self.reason = reason
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body = {"detail": self.message, "error": self.code}
        if self.reason:
            body["reason"] = self.reason
        return body


# -----------------------
#  TRANSFER VALIDATION
# -----------------------
class TransferForbidden(BankingError):
    status_code = 403
    code = "transfer_forbidden"

    MESSAGES = {
        "frozen": "Your account is frozen. Please contact support.",
        "blocked": "Your account is blocked. Please contact support.",
        "disabled": "Money transfers have been disabled on your account.",
    }

    def __init__(self, reason: str):
        super().__init__(self.MESSAGES.get(reason, self.MESSAGES["disabled"]), reason=reason)


class InvalidAmount(BankingError):
    status_code = 422
    code = "invalid_amount"
    message = "Please enter a valid amount"


class InsufficientFunds(BankingError):
    status_code = 400
    code = "insufficient_funds"
    message = "Insufficient balance"


class InvalidRecipient(BankingError):
    status_code = 422
    code = "invalid_recipient"
    message = "Recipient details are invalid"


class IdempotencyConflict(BankingError):
    status_code = 409
    code = "idempotency_conflict"
    message = "Idempotency key has already been used"


# -----------------------
#  LOOKUPS
# -----------------------
class CustomerNotFound(BankingError):
    status_code = 404
    code = "customer_not_found"
    message = "Customer not found"


class TransactionNotFound(BankingError):
    status_code = 404
    code = "transaction_not_found"
    message = "Transaction not found"


class CardRequestNotFound(BankingError):
    status_code = 404
    code = "card_request_not_found"
    message = "Card request not found"


class NotificationNotFound(BankingError):
    status_code = 404
    code = "notification_not_found"
    message = "Notification not found"


class ProfileNotFound(BankingError):
    status_code = 404
    code = "profile_not_found"
    message = "Customer profile not found"


# -----------------------
#  EXACTLY-ONCE DECISIONS
# -----------------------
class TransactionAlreadySettled(BankingError):
    status_code = 409
    code = "transaction_already_settled"
    message = "Transaction is no longer pending"


class CardRequestAlreadyProcessed(BankingError):
    status_code = 409
    code = "card_request_already_processed"
    message = "Card request has already been processed"


class TransactionPendingSettlement(BankingError):
    status_code = 409
    code = "transaction_pending"
    message = "Pending transactions cannot be edited until they are approved or rejected"


class CardRequestNotAllowed(BankingError):
    status_code = 409
    code = "card_request_not_allowed"

    MESSAGES = {
        "pending": "You already have a card request awaiting review.",
        "approved": "You already have an approved card.",
    }

    def __init__(self, reason: str):
        super().__init__(self.MESSAGES[reason], reason=reason)


# -----------------------
#  AUTH
# -----------------------
class LoginForbidden(BankingError):
    status_code = 403
    code = "login_forbidden"

    MESSAGES = {
        "disabled": "Your account has been disabled. Please contact support.",
        "blocked": "Your account has been blocked. Please contact support.",
    }

    def __init__(self, reason: str):
        super().__init__(self.MESSAGES[reason], reason=reason)


class EmailAlreadyRegistered(BankingError):
    status_code = 409
    code = "email_already_registered"
    message = "An account with this email already exists. Please sign in instead."


# -----------------------
#  STORE
# -----------------------
class StoreOperationFailed(BankingError):
    status_code = 503
    code = "store_operation_failed"
    message = "The operation failed. Please try again."


class StoreTimeout(StoreOperationFailed):
    status_code = 504
    code = "store_timeout"
    message = "The operation timed out. Please try again."
