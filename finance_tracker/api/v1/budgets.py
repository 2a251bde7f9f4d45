"""Budget endpoints - envelopes, health checks and monthly plans"""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from finance_tracker.api.dependencies import get_profile_id, get_user_id
from finance_tracker.api.v1.schemas import (
    AllocationListResponse,
    AllocationSchema,
    BudgetOverviewResponse,
    BudgetRequest,
    BudgetResponse,
    HealthCheckRequest,
    HealthCheckResponse,
    ReplaceAllocationsRequest,
)
from finance_tracker.domain.models import AllocationInput, AllocationProgress
from finance_tracker.infrastructure.database.models import Budget
from finance_tracker.infrastructure.database.session import get_db
from finance_tracker.services.budget_allocations import BudgetAllocationEngine
from finance_tracker.services.budget_health import BudgetHealthGate
from finance_tracker.services.budget_plans import BudgetPlanner

router = APIRouter()


def _allocation_schema(progress: AllocationProgress) -> AllocationSchema:
    return AllocationSchema(
        id=str(progress.id),
        name=progress.name,
        percentage=float(progress.percentage),
        amount=float(progress.amount),
        color=progress.color,
        icon=progress.icon,
        spent=float(progress.spent),
        remaining=float(progress.remaining),
        progress=progress.progress,
    )


def _budget_fields(budget: Budget) -> dict:
    return {
        "id": str(budget.id),
        "month": budget.month,
        "year": budget.year,
        "income_expected": float(budget.income_expected),
        "invest_percent": float(budget.invest_percent),
        "emergency_percent": float(budget.emergency_percent),
        "recommended_investment": float(budget.recommended_investment),
        "recommended_emergency_fund": float(budget.recommended_emergency_fund),
        "spending_limit": float(budget.spending_limit),
    }


@router.get("/budgets/allocations", response_model=AllocationListResponse)
def get_allocations(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    user_id: str = Depends(get_user_id),
    profile_id: Optional[str] = Depends(get_profile_id),
    db: Session = Depends(get_db),
):
    """Envelopes of a month (defaults to the current one), created on first read"""
    today = date.today()
    month = month or today.month
    year = year or today.year

    allocations = BudgetAllocationEngine(db).ensure_allocations(user_id, profile_id, month, year)
    db.commit()
    return AllocationListResponse(month=month, year=year, allocations=[_allocation_schema(a) for a in allocations])


@router.put("/budgets/allocations", response_model=AllocationListResponse)
def replace_allocations(
    body: ReplaceAllocationsRequest,
    user_id: str = Depends(get_user_id),
    profile_id: Optional[str] = Depends(get_profile_id),
    db: Session = Depends(get_db),
):
    """Replace all envelopes of a month; percentages must add up to 100"""
    entries = [
        AllocationInput(
            name=a.name,
            percentage=a.percentage,
            color=a.color,
            icon=a.icon,
            category_ids=list(a.category_ids),
        )
        for a in body.allocations
    ]
    allocations = BudgetAllocationEngine(db).replace_allocations(
        user_id, profile_id, body.income, entries, body.month, body.year
    )
    db.commit()
    return AllocationListResponse(
        month=body.month, year=body.year, allocations=[_allocation_schema(a) for a in allocations]
    )


@router.post("/budgets/health-check", response_model=HealthCheckResponse)
def check_budget_health(
    body: HealthCheckRequest,
    user_id: str = Depends(get_user_id),
    profile_id: Optional[str] = Depends(get_profile_id),
    db: Session = Depends(get_db),
):
    """Would this expense overflow its envelope? Advisory only"""
    result = BudgetHealthGate(db).check_health(user_id, profile_id, body.category_id, body.amount)
    return HealthCheckResponse(**result.to_payload())


@router.put("/budgets", response_model=BudgetResponse)
def upsert_budget(
    body: BudgetRequest,
    response: Response,
    user_id: str = Depends(get_user_id),
    profile_id: Optional[str] = Depends(get_profile_id),
    db: Session = Depends(get_db),
):
    budget, created = BudgetPlanner(db).upsert_budget(
        user_id,
        profile_id,
        body.month,
        body.year,
        income_expected=body.income_expected,
        invest_percent=body.invest_percent,
        emergency_percent=body.emergency_percent,
        notes=body.notes,
    )
    db.commit()
    response.status_code = 201 if created else 200
    return BudgetResponse(**_budget_fields(budget), created=created)


@router.get("/budgets", response_model=List[BudgetResponse])
def list_budgets(
    year: Optional[int] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=100),
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    budgets = BudgetPlanner(db).list_budgets(user_id, year=year, page=page, limit=limit)
    return [BudgetResponse(**_budget_fields(b)) for b in budgets]


@router.get("/budgets/overview", response_model=BudgetOverviewResponse)
def get_budget_overview(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    user_id: str = Depends(get_user_id),
    profile_id: Optional[str] = Depends(get_profile_id),
    db: Session = Depends(get_db),
):
    """Plan versus actual income and expenses of a month"""
    today = date.today()
    overview = BudgetPlanner(db).get_overview(user_id, profile_id, month or today.month, year or today.year)
    return BudgetOverviewResponse(
        **_budget_fields(overview.budget),
        income_actual=float(overview.income_actual),
        actual_expenses=float(overview.actual_expenses),
        remaining_budget=float(overview.remaining_budget),
        budget_status=overview.status,
    )
