"""Domain-specific exceptions"""

from typing import Any, Dict, Optional


class DomainException(Exception):
    """Base exception for domain layer, rendered as a status/code pair by the API"""

    status_code = 400
    code = "DOMAIN_ERROR"

    def __init__(self, message: str, payload: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.payload = payload or {}


class CardNotFoundError(DomainException):
    """Card does not exist or belongs to another user"""

    status_code = 404
    code = "CARD_NOT_FOUND"


class InvoiceNotFoundError(DomainException):
    """Invoice does not exist or belongs to another user"""

    status_code = 404
    code = "INVOICE_NOT_FOUND"


class AccountNotFoundError(DomainException):
    """Bank account does not exist or belongs to another user"""

    status_code = 404
    code = "ACCOUNT_NOT_FOUND"


class BudgetNotFoundError(DomainException):
    status_code = 404
    code = "BUDGET_NOT_FOUND"


class AlreadyPaidError(DomainException):
    """Payment attempted on an invoice with nothing remaining"""

    code = "INVOICE_ALREADY_PAID"


class InvalidAmountError(DomainException):
    code = "INVALID_PAYMENT_AMOUNT"


class ExceedsRemainingError(DomainException):
    code = "PAYMENT_EXCEEDS_REMAINING"


class NoAmountDueError(DomainException):
    """Advance payment requested on an invoice with a zero total"""

    code = "NO_AMOUNT_TO_PAY"


class InvalidPercentagesError(DomainException):
    """Allocation percentages don't sum to 100, or invest + emergency exceed 100"""

    code = "INVALID_PERCENTAGES"


class BudgetExceededError(DomainException):
    """Expense would push its envelope over budget; payload carries the override data"""

    code = "BUDGET_EXCEEDED"


class ConcurrentModificationError(DomainException):
    """Invoice row changed between read and write"""

    status_code = 409
    code = "CONCURRENT_MODIFICATION"
