"""Invoice payment rules - amount resolution and status transitions"""

from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from finance_tracker.domain.exceptions import AlreadyPaidError, ExceedsRemainingError, InvalidAmountError
from finance_tracker.domain.models import InvoiceStatus, PaymentType

CENTS = Decimal("0.01")
ZERO = Decimal("0")

# Statuses still expecting money
UNPAID_STATUSES = (InvoiceStatus.OPEN, InvoiceStatus.CLOSED, InvoiceStatus.PARTIAL)


def to_money(value) -> Decimal:
    """Coerce to a Decimal rounded to cents"""
    if value is None:
        return ZERO.quantize(CENTS)
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


def calculate_minimum_payment(total_amount: Decimal, rate: Decimal) -> Decimal:
    """Minimum payment as a share of the invoice total (15% by default)"""
    return to_money(to_money(total_amount) * rate)


def remaining_amount(total_amount: Decimal, paid_amount: Decimal) -> Decimal:
    return to_money(total_amount) - to_money(paid_amount)


def resolve_payment_amount(
    payment_type: PaymentType,
    remaining: Decimal,
    minimum_payment: Decimal,
    amount: Optional[Decimal] = None,
) -> Decimal:
    """
    Decide how much a payment moves, before anything is persisted.

    - FULL pays whatever remains.
    - MINIMUM pays the minimum payment, capped at what remains.
    - PARTIAL and ADVANCE pay the caller's amount, which must be positive
      and no larger than what remains.

    Raises:
        AlreadyPaidError: nothing remains on the invoice
        InvalidAmountError: missing or non-positive custom amount
        ExceedsRemainingError: custom amount larger than the remaining balance
    """
    remaining = to_money(remaining)
    if remaining <= ZERO:
        raise AlreadyPaidError("Invoice is already fully paid")

    if payment_type == PaymentType.FULL:
        return remaining

    if payment_type == PaymentType.MINIMUM:
        return min(to_money(minimum_payment), remaining)

    if amount is None or to_money(amount) <= ZERO:
        raise InvalidAmountError("Payment amount must be greater than zero")

    amount = to_money(amount)
    if amount > remaining:
        raise ExceedsRemainingError(
            "Payment amount exceeds the remaining invoice balance",
            payload={"remaining_amount": float(remaining)},
        )
    return amount


def status_after_payment(current: InvoiceStatus, total_amount: Decimal, paid_amount: Decimal) -> InvoiceStatus:
    """Re-evaluate status from amounts alone, whatever the previous status was"""
    if remaining_amount(total_amount, paid_amount) <= ZERO:
        return InvoiceStatus.PAID
    if to_money(paid_amount) > ZERO:
        return InvoiceStatus.PARTIAL
    return current


def should_close(status: InvoiceStatus, closing_date: date, due_date: date, today: date) -> bool:
    """Open invoice past its closing date but not yet due"""
    return status == InvoiceStatus.OPEN and closing_date < today <= due_date


def is_overdue(status: InvoiceStatus, due_date: date, remaining: Decimal, today: date) -> bool:
    return status in UNPAID_STATUSES and due_date < today and to_money(remaining) > ZERO
