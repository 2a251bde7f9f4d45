"""Percentage-based spending envelopes per user and month"""

import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from finance_tracker.config import settings
from finance_tracker.domain.budgeting import (
    DEFAULT_ALLOCATIONS,
    allocation_amount,
    compute_progress,
    reference_income,
    sum_spending,
    validate_allocation_percentages,
)
from finance_tracker.domain.invoices import to_money
from finance_tracker.domain.models import AllocationInput, AllocationProgress, TransactionRef
from finance_tracker.infrastructure.database.models import BudgetAllocation
from finance_tracker.infrastructure.database.repositories import (
    AllocationRepository,
    BudgetRepository,
    TransactionRepository,
)

logger = logging.getLogger(__name__)


class BudgetAllocationEngine:
    """Materializes, recomputes and replaces a month's envelopes"""

    def __init__(self, db: Session, fallback_income: Optional[Decimal] = None):
        self.db = db
        self.allocations = AllocationRepository(db)
        self.budgets = BudgetRepository(db)
        self.transactions = TransactionRepository(db)
        self.fallback_income = fallback_income or settings.default_reference_income

    def ensure_allocations(
        self, user_id: str, profile_id: Optional[str], month: int, year: int
    ) -> List[AllocationProgress]:
        """
        Envelopes of a month with their current spending.

        An empty month gets the five system defaults, scaled by the month's
        expected income or, when none is configured, the fallback income.
        Calling it again returns the same envelopes.
        """
        allocations = self.allocations.list_for_period(user_id, profile_id, month, year)

        if not allocations:
            budget = self.budgets.get_for_period(user_id, profile_id, month, year)
            income = reference_income(budget.income_expected if budget else None, self.fallback_income)
            allocations = self.allocations.create_many(
                user_id,
                profile_id,
                month,
                year,
                [(entry, allocation_amount(income, entry.percentage)) for entry in DEFAULT_ALLOCATIONS],
            )
            logger.info(
                "Default allocations created",
                extra={"user_id": user_id, "month": month, "year": year, "income": float(income)},
            )

        return [self.progress(allocation) for allocation in allocations]

    def spending_refs(self, allocation: BudgetAllocation) -> List[TransactionRef]:
        """Every spending record counted against an envelope in its month"""
        refs: List[TransactionRef] = []
        for category in self.transactions.linked_categories(allocation.id):
            refs.extend(
                self.transactions.list_by_category_and_period(
                    category, allocation.user_id, allocation.month, allocation.year
                )
            )
        refs.extend(self.transactions.list_goal_contributions(allocation.id, allocation.month, allocation.year))
        return refs

    def compute_spent(self, allocation: BudgetAllocation) -> Decimal:
        """Always aggregated from source transactions, never stored"""
        return sum_spending(self.spending_refs(allocation))

    def progress(self, allocation: BudgetAllocation) -> AllocationProgress:
        spent = self.compute_spent(allocation)
        amount = to_money(allocation.amount)
        return AllocationProgress(
            id=allocation.id,
            name=allocation.name,
            percentage=Decimal(allocation.percentage),
            amount=amount,
            color=allocation.color,
            icon=allocation.icon,
            spent=spent,
            remaining=amount - spent,
            progress=compute_progress(spent, amount),
        )

    def replace_allocations(
        self,
        user_id: str,
        profile_id: Optional[str],
        income: Decimal,
        allocations: List[AllocationInput],
        month: int,
        year: int,
    ) -> List[AllocationProgress]:
        """
        Replace a month's envelopes wholesale.

        Percentages must add up to 100 within the configured tolerance.
        Existing envelopes are deleted (their ids are not kept) and the new
        ones are sized as income * percentage / 100.

        Raises:
            InvalidPercentagesError: percentages off by more than the tolerance
        """
        validate_allocation_percentages(allocations, settings.allocation_percent_tolerance)

        removed = self.allocations.delete_for_period(user_id, profile_id, month, year)
        created = self.allocations.create_many(
            user_id,
            profile_id,
            month,
            year,
            [(entry, allocation_amount(income, entry.percentage)) for entry in allocations],
        )

        logger.info(
            "Allocations replaced",
            extra={"user_id": user_id, "month": month, "year": year, "removed": removed, "created_count": len(created)},
        )
        return [self.progress(allocation) for allocation in created]
