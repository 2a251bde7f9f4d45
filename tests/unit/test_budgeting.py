"""Unit tests for envelope budgeting rules"""

import pytest
import uuid
from datetime import date
from decimal import Decimal
from finance_tracker.domain.budgeting import (
    BUDGET_EXCEEDED,
    DEFAULT_ALLOCATIONS,
    allocation_amount,
    compute_progress,
    evaluate_health,
    reference_income,
    sum_spending,
    validate_allocation_percentages,
    validate_budget_percentages,
)
from finance_tracker.domain.exceptions import InvalidPercentagesError
from finance_tracker.domain.models import AllocationInput, TransactionRef, TransactionSource

TOLERANCE = Decimal("0.01")


def _split(*percentages: str) -> list[AllocationInput]:
    return [AllocationInput(name=f"Envelope {i}", percentage=Decimal(p)) for i, p in enumerate(percentages)]


def test_default_allocations_add_up_to_hundred():
    assert [a.name for a in DEFAULT_ALLOCATIONS] == ["Essentials", "Personal", "Investments", "Emergency", "Leisure"]
    assert sum(a.percentage for a in DEFAULT_ALLOCATIONS) == Decimal("100")


@pytest.mark.parametrize("percentages", [("50", "30", "20"), ("49.995", "50")])
def test_percentages_within_tolerance_accepted(percentages):
    validate_allocation_percentages(_split(*percentages), TOLERANCE)


@pytest.mark.parametrize("percentages", [("50", "29.9", "20"), ("50.02", "50")])
def test_percentages_off_by_more_than_tolerance_rejected(percentages):
    with pytest.raises(InvalidPercentagesError):
        validate_allocation_percentages(_split(*percentages), TOLERANCE)


def test_negative_envelope_percentage_rejected():
    with pytest.raises(InvalidPercentagesError):
        validate_allocation_percentages(_split("110", "-10"), TOLERANCE)


def test_budget_percentages_cannot_exceed_hundred():
    validate_budget_percentages(Decimal("60"), Decimal("40"))
    with pytest.raises(InvalidPercentagesError):
        validate_budget_percentages(Decimal("70"), Decimal("31"))


def test_reference_income_falls_back_when_not_configured():
    assert reference_income(None, Decimal("3000")) == Decimal("3000")
    assert reference_income(Decimal("0"), Decimal("3000")) == Decimal("3000")
    assert reference_income(Decimal("8000"), Decimal("3000")) == Decimal("8000")


def test_allocation_amount_scales_income():
    assert allocation_amount(Decimal("3000"), Decimal("50")) == Decimal("1500.00")
    assert allocation_amount(Decimal("4321"), Decimal("15")) == Decimal("648.15")


def test_progress_capped_at_hundred():
    assert compute_progress(Decimal("50"), Decimal("200")) == 25.0
    assert compute_progress(Decimal("500"), Decimal("200")) == 100.0


def test_progress_of_empty_envelope_is_zero():
    assert compute_progress(Decimal("50"), Decimal("0")) == 0.0


def test_sum_spending_over_mixed_sources():
    refs = [
        TransactionRef(TransactionSource.MANUAL, uuid.uuid4(), Decimal("10.10"), date(2024, 3, 1)),
        TransactionRef(TransactionSource.CARD, uuid.uuid4(), Decimal("20.20"), date(2024, 3, 2)),
        TransactionRef(TransactionSource.GOAL_CONTRIBUTION, uuid.uuid4(), Decimal("30.30"), date(2024, 3, 3)),
    ]
    assert sum_spending(refs) == Decimal("60.60")
    assert sum_spending([]) == Decimal("0")


def test_evaluate_health_within_limit():
    result = evaluate_health({"name": "Leisure", "limit": 150.0}, Decimal("100"), Decimal("50"))

    assert result.allowed is True
    assert result.linked is True
    assert result.warning is None


def test_evaluate_health_over_limit():
    result = evaluate_health({"name": "Leisure", "limit": 150.0}, Decimal("100"), Decimal("80"))

    assert result.allowed is False
    assert result.warning == BUDGET_EXCEEDED
    assert result.new_total == Decimal("180")
    assert result.over_amount == Decimal("30")
    assert result.to_payload()["over_amount"] == 30.0
