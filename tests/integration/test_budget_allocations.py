"""Integration tests for budget envelopes, health checks and monthly plans"""

import logging
import pytest
import uuid
from datetime import date
from decimal import Decimal
from sqlalchemy.orm import Session
from finance_tracker.domain.budgeting import BUDGET_EXCEEDED
from finance_tracker.domain.exceptions import BudgetExceededError, BudgetNotFoundError, InvalidPercentagesError
from finance_tracker.domain.models import AllocationInput
from finance_tracker.infrastructure.database.models import (
    BudgetAllocation,
    Category,
    Goal,
    GoalContribution,
    ManualTransaction,
    UserProfile,
)
from finance_tracker.services.budget_allocations import BudgetAllocationEngine
from finance_tracker.services.budget_health import BudgetHealthGate
from finance_tracker.services.budget_plans import BudgetPlanner
from conftest import USER_ID

pytestmark = pytest.mark.integration


def _envelope(db: Session, name: str, month: int = 3, year: int = 2024) -> BudgetAllocation:
    return (
        db.query(BudgetAllocation)
        .filter(BudgetAllocation.name == name, BudgetAllocation.month == month, BudgetAllocation.year == year)
        .one()
    )


def _link(db: Session, category: Category, allocation: BudgetAllocation) -> None:
    category.budget_allocation_id = allocation.id
    db.commit()


def _expense(db: Session, category: Category, amount: str, day: date, kind: str = "EXPENSE") -> None:
    db.add(
        ManualTransaction(
            user_id=USER_ID,
            type=kind,
            description="Manual entry",
            amount=Decimal(amount),
            date=day,
            category_id=category.id,
        )
    )
    db.commit()


@pytest.fixture
def envelopes(db: Session):
    """Default envelopes of March 2024 on the fallback income"""
    allocations = BudgetAllocationEngine(db).ensure_allocations(USER_ID, None, 3, 2024)
    db.commit()
    return allocations


def test_default_envelopes_use_fallback_income(envelopes):
    amounts = {a.name: a.amount for a in envelopes}

    assert amounts == {
        "Essentials": Decimal("1500.00"),
        "Personal": Decimal("600.00"),
        "Investments": Decimal("450.00"),
        "Emergency": Decimal("300.00"),
        "Leisure": Decimal("150.00"),
    }
    assert all(a.spent == Decimal("0") and a.progress == 0.0 for a in envelopes)


def test_default_envelopes_use_budget_income(db: Session):
    BudgetPlanner(db).upsert_budget(USER_ID, None, 3, 2024, income_expected=Decimal("5000"))
    db.commit()

    allocations = BudgetAllocationEngine(db).ensure_allocations(USER_ID, None, 3, 2024)

    assert allocations[0].name == "Essentials"
    assert allocations[0].amount == Decimal("2500.00")


def test_ensure_allocations_is_idempotent(db: Session, envelopes):
    again = BudgetAllocationEngine(db).ensure_allocations(USER_ID, None, 3, 2024)

    assert {a.id for a in again} == {a.id for a in envelopes}
    assert db.query(BudgetAllocation).count() == 5


def test_profiles_get_their_own_envelopes(db: Session, envelopes):
    BudgetAllocationEngine(db).ensure_allocations(USER_ID, "business", 3, 2024)

    assert db.query(BudgetAllocation).count() == 10


def test_spent_aggregates_every_source(db: Session, envelopes, category, card, add_card_transaction):
    """Manual expenses, card purchases by category name and goal deposits all count"""
    essentials = _envelope(db, "Essentials")
    _link(db, category, essentials)

    _expense(db, category, "100.00", date(2024, 3, 5))
    _expense(db, category, "999.00", date(2024, 3, 6), kind="INCOME")
    _expense(db, category, "777.00", date(2024, 4, 1))
    add_card_transaction(card, "50.00", date(2024, 3, 7), category="Groceries")
    add_card_transaction(card, "40.00", date(2024, 3, 8), category="Travel")

    goal = Goal(user_id=USER_ID, name="House", budget_allocation_id=essentials.id)
    db.add(goal)
    db.flush()
    db.add_all(
        [
            GoalContribution(goal_id=goal.id, type="DEPOSIT", amount=Decimal("25.00"), date=date(2024, 3, 9)),
            GoalContribution(goal_id=goal.id, type="WITHDRAW", amount=Decimal("10.00"), date=date(2024, 3, 9)),
        ]
    )
    db.commit()

    engine = BudgetAllocationEngine(db)
    progress = engine.progress(essentials)

    assert engine.compute_spent(essentials) == Decimal("175.00")
    assert progress.remaining == Decimal("1325.00")
    assert progress.progress == pytest.approx(175 / 1500 * 100)


def test_replace_allocations_swaps_envelopes(db: Session, envelopes, category):
    old_ids = {a.id for a in envelopes}
    _link(db, category, _envelope(db, "Essentials"))

    replaced = BudgetAllocationEngine(db).replace_allocations(
        USER_ID,
        None,
        Decimal("4000"),
        [
            AllocationInput(name="Needs", percentage=Decimal("60"), category_ids=[category.id]),
            AllocationInput(name="Wants", percentage=Decimal("40")),
        ],
        3,
        2024,
    )
    db.commit()

    assert {a.name: a.amount for a in replaced} == {"Needs": Decimal("2400.00"), "Wants": Decimal("1600.00")}
    assert not old_ids & {a.id for a in replaced}
    assert db.query(BudgetAllocation).count() == 2
    db.refresh(category)
    assert category.budget_allocation_id == _envelope(db, "Needs").id


def test_replace_unlinks_categories_of_removed_envelopes(db: Session, envelopes, category):
    _link(db, category, _envelope(db, "Leisure"))

    BudgetAllocationEngine(db).replace_allocations(
        USER_ID, None, Decimal("1000"), [AllocationInput(name="Everything", percentage=Decimal("100"))], 3, 2024
    )
    db.commit()

    db.refresh(category)
    assert category.budget_allocation_id is None


def test_replace_allocations_logs_counts(db: Session, envelopes, caplog):
    caplog.set_level(logging.INFO, logger="finance_tracker.services.budget_allocations")

    BudgetAllocationEngine(db).replace_allocations(
        USER_ID,
        None,
        Decimal("1000"),
        [AllocationInput(name="Needs", percentage=Decimal("70")), AllocationInput(name="Wants", percentage=Decimal("30"))],
        3,
        2024,
    )

    record = next(r for r in caplog.records if r.getMessage() == "Allocations replaced")
    assert record.removed == 5
    assert record.created_count == 2


def test_replace_links_only_own_categories(db: Session, envelopes, category):
    """Ids of another user's category or of a system category are not moved onto the caller's envelope"""
    foreign = Category(user_id="someone_else", name="Food", type="EXPENSE")
    system = Category(user_id=None, name="Transport", type="EXPENSE")
    db.add_all([foreign, system])
    db.commit()
    BudgetAllocationEngine(db).ensure_allocations("someone_else", None, 3, 2024)
    db.commit()
    owner_envelope = (
        db.query(BudgetAllocation)
        .filter(BudgetAllocation.user_id == "someone_else", BudgetAllocation.name == "Essentials")
        .one()
    )
    _link(db, foreign, owner_envelope)

    BudgetAllocationEngine(db).replace_allocations(
        USER_ID,
        None,
        Decimal("1000"),
        [AllocationInput(name="Everything", percentage=Decimal("100"), category_ids=[category.id, foreign.id, system.id])],
        3,
        2024,
    )
    db.commit()

    mine = db.query(BudgetAllocation).filter(BudgetAllocation.user_id == USER_ID).one()
    db.refresh(category)
    db.refresh(foreign)
    db.refresh(system)
    assert category.budget_allocation_id == mine.id
    assert foreign.budget_allocation_id == owner_envelope.id
    assert system.budget_allocation_id is None

    owner_check = BudgetHealthGate(db).check_health("someone_else", None, foreign.id, Decimal("5000"))
    assert owner_check.linked is True
    assert owner_check.allowed is False


def test_replace_rejects_bad_percentages_and_keeps_envelopes(db: Session, envelopes):
    with pytest.raises(InvalidPercentagesError):
        BudgetAllocationEngine(db).replace_allocations(
            USER_ID,
            None,
            Decimal("4000"),
            [AllocationInput(name="Needs", percentage=Decimal("60")), AllocationInput(name="Wants", percentage=Decimal("39.9"))],
            3,
            2024,
        )

    assert db.query(BudgetAllocation).count() == 5


def test_health_check_unlinked_category_passes(db: Session, category):
    result = BudgetHealthGate(db).check_health(USER_ID, None, category.id, Decimal("10000"))

    assert result.allowed is True
    assert result.linked is False


def test_health_check_unknown_category_passes(db: Session):
    result = BudgetHealthGate(db).check_health(USER_ID, None, uuid.uuid4(), Decimal("10"))

    assert (result.allowed, result.linked) == (True, False)


def test_health_check_over_envelope(db: Session, envelopes, category):
    _link(db, category, _envelope(db, "Leisure"))
    _expense(db, category, "100.00", date(2024, 3, 10))

    result = BudgetHealthGate(db).check_health(USER_ID, None, category.id, Decimal("80"))

    assert result.allowed is False
    assert result.warning == BUDGET_EXCEEDED
    assert result.allocation["name"] == "Leisure"
    assert result.allocation["limit"] == 150.0
    assert result.spent == Decimal("100.00")
    assert result.over_amount == Decimal("30.00")


def test_health_check_within_envelope(db: Session, envelopes, category):
    _link(db, category, _envelope(db, "Leisure"))

    result = BudgetHealthGate(db).check_health(USER_ID, None, category.id, Decimal("150"))

    assert result.allowed is True
    assert result.linked is True
    assert result.new_total == Decimal("150.00")


def test_health_check_ignores_other_users_and_profiles(db: Session, envelopes, category):
    _link(db, category, _envelope(db, "Leisure"))
    gate = BudgetHealthGate(db)

    assert gate.check_health("someone_else", None, category.id, Decimal("1000")).linked is False
    assert gate.check_health(USER_ID, "business", category.id, Decimal("1000")).linked is False


def test_authorize_expense_raises_with_override_data(db: Session, envelopes, category):
    _link(db, category, _envelope(db, "Leisure"))

    with pytest.raises(BudgetExceededError) as exc_info:
        BudgetHealthGate(db).authorize_expense(USER_ID, None, category.id, Decimal("200"))

    budget_data = exc_info.value.payload["budget_data"]
    assert budget_data["allowed"] is False
    assert budget_data["over_amount"] == 50.0
    assert "Leisure" in exc_info.value.message


def test_forced_overbudget_expense_resets_streak(db: Session, envelopes, category):
    _link(db, category, _envelope(db, "Leisure"))
    profile = UserProfile(user_id=USER_ID, streak=7)
    db.add(profile)
    db.commit()

    result = BudgetHealthGate(db).authorize_expense(
        USER_ID, None, category.id, Decimal("200"), force_overbudget=True
    )
    db.commit()

    assert result.allowed is False
    db.refresh(profile)
    assert profile.streak == 0


def test_authorized_expense_keeps_streak(db: Session, envelopes, category):
    _link(db, category, _envelope(db, "Leisure"))
    profile = UserProfile(user_id=USER_ID, streak=7)
    db.add(profile)
    db.commit()

    BudgetHealthGate(db).authorize_expense(USER_ID, None, category.id, Decimal("20"), force_overbudget=True)
    db.commit()

    db.refresh(profile)
    assert profile.streak == 7


def test_upsert_budget_creates_then_updates(db: Session):
    planner = BudgetPlanner(db)

    budget, created = planner.upsert_budget(USER_ID, None, 3, 2024, income_expected=Decimal("5000"))
    db.commit()
    assert created is True
    assert budget.invest_percent == Decimal("30")
    assert budget.emergency_percent == Decimal("10")
    assert budget.spending_limit == Decimal("3000.00")

    same, created = planner.upsert_budget(USER_ID, None, 3, 2024, invest_percent=Decimal("20"))
    db.commit()
    assert created is False
    assert same.id == budget.id
    assert same.income_expected == Decimal("5000.00")
    assert same.invest_percent == Decimal("20")


def test_upsert_budget_rejects_percentages_over_hundred(db: Session):
    with pytest.raises(InvalidPercentagesError):
        BudgetPlanner(db).upsert_budget(
            USER_ID, None, 3, 2024, invest_percent=Decimal("80"), emergency_percent=Decimal("30")
        )


def test_budget_overview_compares_plan_with_actuals(db: Session, category, card, add_card_transaction):
    planner = BudgetPlanner(db)
    planner.upsert_budget(USER_ID, None, 3, 2024, income_expected=Decimal("5000"))
    db.commit()

    _expense(db, category, "2000.00", date(2024, 3, 5))
    _expense(db, category, "5200.00", date(2024, 3, 1), kind="INCOME")
    add_card_transaction(card, "1500.00", date(2024, 3, 20))

    overview = planner.get_overview(USER_ID, None, 3, 2024)

    assert overview.income_actual == Decimal("5200.00")
    assert overview.actual_expenses == Decimal("3500.00")
    assert overview.remaining_budget == Decimal("-500.00")
    assert overview.status == "OVER_BUDGET"


def test_budget_overview_without_plan_raises(db: Session):
    with pytest.raises(BudgetNotFoundError):
        BudgetPlanner(db).get_overview(USER_ID, None, 3, 2024)
