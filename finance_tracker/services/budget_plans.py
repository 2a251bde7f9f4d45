"""Monthly budget plans - income, savings targets and spending limit"""

from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from finance_tracker.config import settings
from finance_tracker.domain.budgeting import validate_budget_percentages
from finance_tracker.domain.exceptions import BudgetNotFoundError
from finance_tracker.domain.invoices import to_money
from finance_tracker.infrastructure.database.models import Budget
from finance_tracker.infrastructure.database.repositories import BudgetRepository, TransactionRepository


@dataclass
class BudgetOverview:
    """Plan compared with what actually happened in the month"""

    budget: Budget
    income_actual: Decimal
    actual_expenses: Decimal
    spending_limit: Decimal
    remaining_budget: Decimal
    status: str  # ON_TRACK | OVER_BUDGET


class BudgetPlanner:
    def __init__(self, db: Session):
        self.db = db
        self.budgets = BudgetRepository(db)
        self.transactions = TransactionRepository(db)

    def upsert_budget(
        self,
        user_id: str,
        profile_id: Optional[str],
        month: int,
        year: int,
        income_expected: Optional[Decimal] = None,
        invest_percent: Optional[Decimal] = None,
        emergency_percent: Optional[Decimal] = None,
        notes: Optional[str] = None,
    ) -> tuple[Budget, bool]:
        """
        Create or update the plan of a month.

        Fields left as None keep their stored value (or the defaults on
        creation). Returns the budget and whether it was created.

        Raises:
            InvalidPercentagesError: invest + emergency above 100
        """
        budget = self.budgets.get_for_period(user_id, profile_id, month, year)

        invest = invest_percent if invest_percent is not None else (
            budget.invest_percent if budget else settings.default_invest_percent
        )
        emergency = emergency_percent if emergency_percent is not None else (
            budget.emergency_percent if budget else settings.default_emergency_percent
        )
        validate_budget_percentages(invest, emergency)

        if budget is None:
            budget = self.budgets.create(
                user_id=user_id,
                profile_id=profile_id,
                month=month,
                year=year,
                income_expected=to_money(income_expected),
                invest_percent=Decimal(invest),
                emergency_percent=Decimal(emergency),
                notes=notes,
            )
            return budget, True

        if income_expected is not None:
            budget.income_expected = to_money(income_expected)
        budget.invest_percent = Decimal(invest)
        budget.emergency_percent = Decimal(emergency)
        if notes is not None:
            budget.notes = notes
        self.db.flush()
        return budget, False

    def list_budgets(self, user_id: str, year: Optional[int] = None, page: int = 1, limit: int = 12) -> List[Budget]:
        return self.budgets.list_for_user(user_id, year=year, page=page, limit=limit)

    def get_overview(self, user_id: str, profile_id: Optional[str], month: int, year: int) -> BudgetOverview:
        budget = self.budgets.get_for_period(user_id, profile_id, month, year)
        if not budget:
            raise BudgetNotFoundError("No budget defined for this month")

        expenses, income = self.transactions.sum_month(user_id, profile_id, month, year)
        limit = to_money(budget.spending_limit)
        return BudgetOverview(
            budget=budget,
            income_actual=income,
            actual_expenses=expenses,
            spending_limit=limit,
            remaining_budget=limit - expenses,
            status="ON_TRACK" if expenses <= limit else "OVER_BUDGET",
        )
