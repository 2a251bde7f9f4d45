"""Envelope budgeting rules - defaults, percentage gates, progress and health decisions"""

from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from finance_tracker.domain.exceptions import InvalidPercentagesError
from finance_tracker.domain.invoices import ZERO, to_money
from finance_tracker.domain.models import AllocationInput, HealthCheckResult, TransactionRef

BUDGET_EXCEEDED = "BUDGET_EXCEEDED"
HUNDRED = Decimal("100")

# System envelopes materialized for a month with no allocations
DEFAULT_ALLOCATIONS: List[AllocationInput] = [
    AllocationInput(name="Essentials", percentage=Decimal("50"), color="#3b82f6", icon="home"),
    AllocationInput(name="Personal", percentage=Decimal("20"), color="#8b5cf6", icon="user"),
    AllocationInput(name="Investments", percentage=Decimal("15"), color="#10b981", icon="trending-up"),
    AllocationInput(name="Emergency", percentage=Decimal("10"), color="#f59e0b", icon="shield"),
    AllocationInput(name="Leisure", percentage=Decimal("5"), color="#ec4899", icon="smile"),
]


def reference_income(income_expected: Optional[Decimal], fallback: Decimal) -> Decimal:
    """Income used to scale default envelopes; the fallback applies when no income is configured"""
    if income_expected is not None and to_money(income_expected) > ZERO:
        return to_money(income_expected)
    return to_money(fallback)


def allocation_amount(income: Decimal, percentage: Decimal) -> Decimal:
    return to_money(Decimal(income) * Decimal(percentage) / HUNDRED)


def validate_allocation_percentages(allocations: Iterable[AllocationInput], tolerance: Decimal) -> None:
    """
    Envelope percentages must add up to 100 within the tolerance.

    Raises:
        InvalidPercentagesError: sum is off by more than the tolerance,
            or an envelope is outside 0-100
    """
    allocations = list(allocations)
    for allocation in allocations:
        if not ZERO <= Decimal(allocation.percentage) <= HUNDRED:
            raise InvalidPercentagesError(
                f"Allocation '{allocation.name}' percentage must be between 0 and 100"
            )

    total = sum((Decimal(a.percentage) for a in allocations), ZERO)
    if abs(total - HUNDRED) > tolerance:
        raise InvalidPercentagesError(
            "Allocation percentages must add up to 100%",
            payload={"total_percentage": float(total)},
        )


def validate_budget_percentages(invest_percent: Decimal, emergency_percent: Decimal) -> None:
    if Decimal(invest_percent) + Decimal(emergency_percent) > HUNDRED:
        raise InvalidPercentagesError("Investment and emergency percentages cannot exceed 100%")


def sum_spending(refs: Iterable[TransactionRef]) -> Decimal:
    return to_money(sum((Decimal(ref.amount) for ref in refs), ZERO))


def compute_progress(spent: Decimal, amount: Decimal) -> float:
    """Percent of the envelope used, capped at 100; empty envelopes report 0"""
    if to_money(amount) <= ZERO:
        return 0.0
    return float(min(HUNDRED, Decimal(spent) / Decimal(amount) * HUNDRED))


def evaluate_health(allocation: Dict[str, Any], spent: Decimal, amount: Decimal) -> HealthCheckResult:
    """
    Decide whether a prospective expense fits its envelope.

    Args:
        allocation: snapshot with at least "limit" (the envelope amount)
        spent: what the envelope already consumed this month
        amount: the prospective expense
    """
    limit = to_money(allocation["limit"])
    spent = to_money(spent)
    new_total = spent + to_money(amount)

    if new_total > limit:
        return HealthCheckResult(
            allowed=False,
            linked=True,
            warning=BUDGET_EXCEEDED,
            allocation=allocation,
            spent=spent,
            new_total=new_total,
            over_amount=new_total - limit,
        )

    return HealthCheckResult(
        allowed=True,
        linked=True,
        allocation=allocation,
        spent=spent,
        new_total=new_total,
    )
