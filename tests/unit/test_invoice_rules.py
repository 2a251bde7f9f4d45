"""Unit tests for payment amount resolution and invoice status rules"""

import pytest
from datetime import date
from decimal import Decimal
from finance_tracker.domain.exceptions import AlreadyPaidError, ExceedsRemainingError, InvalidAmountError
from finance_tracker.domain.invoices import (
    calculate_minimum_payment,
    is_overdue,
    resolve_payment_amount,
    should_close,
    status_after_payment,
)
from finance_tracker.domain.models import InvoiceStatus, PaymentType


def test_minimum_payment_is_fifteen_percent():
    assert calculate_minimum_payment(Decimal("350"), Decimal("0.15")) == Decimal("52.50")
    assert calculate_minimum_payment(Decimal("1000"), Decimal("0.15")) == Decimal("150.00")
    assert calculate_minimum_payment(Decimal("0"), Decimal("0.15")) == Decimal("0")


def test_full_payment_pays_remaining():
    amount = resolve_payment_amount(PaymentType.FULL, Decimal("620.40"), Decimal("150"))
    assert amount == Decimal("620.40")


def test_minimum_payment_when_remaining_covers_it():
    amount = resolve_payment_amount(PaymentType.MINIMUM, Decimal("1000"), Decimal("150"))
    assert amount == Decimal("150")


def test_minimum_payment_capped_at_remaining():
    amount = resolve_payment_amount(PaymentType.MINIMUM, Decimal("90"), Decimal("150"))
    assert amount == Decimal("90")


@pytest.mark.parametrize("payment_type", [PaymentType.PARTIAL, PaymentType.ADVANCE])
def test_custom_amount_payments_use_caller_amount(payment_type: PaymentType):
    amount = resolve_payment_amount(payment_type, Decimal("500"), Decimal("75"), Decimal("120.50"))
    assert amount == Decimal("120.50")


@pytest.mark.parametrize("amount", [None, Decimal("0"), Decimal("-10")])
def test_custom_amount_must_be_positive(amount):
    with pytest.raises(InvalidAmountError):
        resolve_payment_amount(PaymentType.PARTIAL, Decimal("500"), Decimal("75"), amount)


def test_custom_amount_cannot_exceed_remaining():
    with pytest.raises(ExceedsRemainingError) as exc_info:
        resolve_payment_amount(PaymentType.ADVANCE, Decimal("500"), Decimal("75"), Decimal("500.01"))

    assert exc_info.value.payload["remaining_amount"] == 500.0


@pytest.mark.parametrize("payment_type", list(PaymentType))
def test_any_payment_on_settled_invoice_is_rejected(payment_type: PaymentType):
    with pytest.raises(AlreadyPaidError):
        resolve_payment_amount(payment_type, Decimal("0"), Decimal("0"), Decimal("10"))


def test_status_after_payment_reaches_paid_from_any_status():
    """Payment re-evaluates status from amounts, even for overdue invoices"""
    for current in (InvoiceStatus.OPEN, InvoiceStatus.CLOSED, InvoiceStatus.OVERDUE, InvoiceStatus.PARTIAL):
        assert status_after_payment(current, Decimal("350"), Decimal("350")) == InvoiceStatus.PAID


def test_status_after_partial_payment():
    assert status_after_payment(InvoiceStatus.OPEN, Decimal("350"), Decimal("100")) == InvoiceStatus.PARTIAL
    assert status_after_payment(InvoiceStatus.OVERDUE, Decimal("350"), Decimal("100")) == InvoiceStatus.PARTIAL


def test_should_close_only_open_invoices_between_closing_and_due():
    closing, due = date(2024, 3, 25), date(2024, 4, 10)

    assert should_close(InvoiceStatus.OPEN, closing, due, date(2024, 3, 26))
    assert should_close(InvoiceStatus.OPEN, closing, due, date(2024, 4, 10))
    assert not should_close(InvoiceStatus.OPEN, closing, due, date(2024, 3, 25))
    assert not should_close(InvoiceStatus.OPEN, closing, due, date(2024, 4, 11))
    assert not should_close(InvoiceStatus.PARTIAL, closing, due, date(2024, 3, 30))


def test_is_overdue_requires_money_remaining_after_due_date():
    due = date(2024, 4, 10)

    assert is_overdue(InvoiceStatus.CLOSED, due, Decimal("10"), date(2024, 4, 11))
    assert not is_overdue(InvoiceStatus.CLOSED, due, Decimal("10"), date(2024, 4, 10))
    assert not is_overdue(InvoiceStatus.CLOSED, due, Decimal("0"), date(2024, 4, 11))
    assert not is_overdue(InvoiceStatus.PAID, due, Decimal("10"), date(2024, 4, 11))
