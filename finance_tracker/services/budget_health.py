"""Pre-transaction budget health check"""

import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from finance_tracker.domain.budgeting import evaluate_health
from finance_tracker.domain.exceptions import BudgetExceededError
from finance_tracker.domain.invoices import to_money
from finance_tracker.domain.models import HealthCheckResult
from finance_tracker.infrastructure.database.repositories import (
    AllocationRepository,
    ProfileRepository,
    TransactionRepository,
)
from finance_tracker.infrastructure.observability.logging import log_budget_override
from finance_tracker.infrastructure.observability.metrics import budget_override_counter, record_health_check
from finance_tracker.services.budget_allocations import BudgetAllocationEngine


class BudgetHealthGate:
    """Decides whether a prospective expense fits the envelope its category is linked to"""

    def __init__(self, db: Session, engine: Optional[BudgetAllocationEngine] = None):
        self.db = db
        self.engine = engine or BudgetAllocationEngine(db)
        self.allocations = AllocationRepository(db)
        self.transactions = TransactionRepository(db)
        self.profiles = ProfileRepository(db)

    def check_health(
        self,
        user_id: str,
        profile_id: Optional[str],
        category_id: uuid.UUID,
        amount: Decimal,
    ) -> HealthCheckResult:
        """
        Pure decision: never blocks or writes anything itself.

        Unlinked categories, missing envelopes and envelopes of another
        user or profile always pass as {allowed: True, linked: False}.
        """
        result = self._evaluate(user_id, profile_id, category_id, amount)
        record_health_check(result.linked, result.allowed)
        return result

    def _evaluate(
        self, user_id: str, profile_id: Optional[str], category_id: uuid.UUID, amount: Decimal
    ) -> HealthCheckResult:
        category = self.transactions.get_category(category_id)
        if not category or not category.budget_allocation_id:
            return HealthCheckResult(allowed=True, linked=False)

        allocation = self.allocations.get(category.budget_allocation_id)
        if not allocation or allocation.user_id != user_id:
            return HealthCheckResult(allowed=True, linked=False)
        if profile_id and allocation.profile_id != profile_id:
            return HealthCheckResult(allowed=True, linked=False)

        spent = self.engine.compute_spent(allocation)
        snapshot = {
            "id": str(allocation.id),
            "name": allocation.name,
            "limit": float(to_money(allocation.amount)),
            "percentage": float(allocation.percentage),
        }
        return evaluate_health(snapshot, spent, amount)

    def authorize_expense(
        self,
        user_id: str,
        profile_id: Optional[str],
        category_id: uuid.UUID,
        amount: Decimal,
        force_overbudget: bool = False,
    ) -> HealthCheckResult:
        """
        Gate used by the transaction-creation path before persisting an expense.

        Raises:
            BudgetExceededError: the expense overflows its envelope and the
                user did not confirm; payload carries the health check
        """
        result = self.check_health(user_id, profile_id, category_id, amount)
        if result.allowed:
            return result

        if not force_overbudget:
            raise BudgetExceededError(
                f"This expense exceeds the \"{result.allocation['name']}\" budget",
                payload={"budget_data": result.to_payload()},
            )

        # Forcing past the envelope costs the user their streak
        self.profiles.reset_streak(user_id)
        budget_override_counter.inc()
        log_budget_override(user_id, result.allocation, result.new_total)
        return result
