"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, Field, UUID4
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from finance_tracker.domain.models import PaymentMethod, PaymentType


# Invoices

class GenerateInvoiceRequest(BaseModel):
    """Request body for POST /v1/cards/{card_id}/invoices"""

    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2000, le=2100)


class PaymentRequest(BaseModel):
    """Request body for POST /v1/invoices/{invoice_id}/payments"""

    payment_type: PaymentType
    amount: Optional[Decimal] = Field(None, description="Required for PARTIAL and ADVANCE payments")
    payment_method: Optional[PaymentMethod] = None
    bank_account_id: Optional[UUID4] = None
    notes: Optional[str] = Field(None, max_length=2000)


class AdvancePaymentRequest(BaseModel):
    amount: Decimal = Field(..., description="Amount paid ahead on the current invoice")
    bank_account_id: Optional[UUID4] = None


class InvoiceResponse(BaseModel):
    id: str
    card_id: str
    reference_month: int
    reference_year: int
    closing_date: date
    due_date: date
    total_amount: float
    paid_amount: float
    remaining_amount: float
    minimum_payment: float
    status: str
    paid_at: Optional[datetime] = None
    payments_count: int = 0


class PaginationSchema(BaseModel):
    page: int
    limit: int
    total: int


class InvoiceListResponse(BaseModel):
    invoices: List[InvoiceResponse]
    pagination: PaginationSchema


class PaymentSchema(BaseModel):
    id: str
    amount: float
    payment_date: date
    payment_type: str
    payment_method: str
    bank_account_id: Optional[str] = None
    notes: Optional[str] = None


class CardTransactionSchema(BaseModel):
    id: str
    description: str
    amount: float
    date: date
    category: Optional[str] = None
    is_installment: bool = False
    installment_number: Optional[int] = None
    total_installments: Optional[int] = None


class PeriodSchema(BaseModel):
    start_date: date
    end_date: date


class InvoiceDetailResponse(InvoiceResponse):
    card_name: str
    payments: List[PaymentSchema]
    transactions: List[CardTransactionSchema]
    period: PeriodSchema


class InvoiceSummarySchema(BaseModel):
    id: str
    total_amount: float
    paid_amount: float
    remaining_amount: float
    status: str


class PaymentResponse(BaseModel):
    payment: PaymentSchema
    invoice: InvoiceSummarySchema


# Budgets

class AllocationSchema(BaseModel):
    id: str
    name: str
    percentage: float
    amount: float
    color: str
    icon: str
    spent: float
    remaining: float
    progress: float


class AllocationListResponse(BaseModel):
    month: int
    year: int
    allocations: List[AllocationSchema]


class AllocationInputSchema(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    percentage: Decimal = Field(..., ge=0, le=100)
    color: str = Field("#3b82f6", max_length=7)
    icon: str = Field("dollar", max_length=50)
    category_ids: List[UUID4] = Field(default_factory=list)


class ReplaceAllocationsRequest(BaseModel):
    """Request body for PUT /v1/budgets/allocations"""

    income: Decimal = Field(..., ge=0)
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2000, le=2100)
    allocations: List[AllocationInputSchema]


class HealthCheckRequest(BaseModel):
    category_id: UUID4
    amount: Decimal = Field(..., gt=0)


class HealthCheckResponse(BaseModel):
    allowed: bool
    linked: bool
    warning: Optional[str] = None
    allocation: Optional[Dict[str, Any]] = None
    spent: Optional[float] = None
    new_total: Optional[float] = None
    over_amount: Optional[float] = None


class BudgetRequest(BaseModel):
    """Request body for PUT /v1/budgets"""

    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2000, le=2100)
    income_expected: Optional[Decimal] = Field(None, ge=0)
    invest_percent: Optional[Decimal] = Field(None, ge=0, le=100)
    emergency_percent: Optional[Decimal] = Field(None, ge=0, le=100)
    notes: Optional[str] = None


class BudgetResponse(BaseModel):
    id: str
    month: int
    year: int
    income_expected: float
    invest_percent: float
    emergency_percent: float
    recommended_investment: float
    recommended_emergency_fund: float
    spending_limit: float
    created: Optional[bool] = None


class BudgetOverviewResponse(BudgetResponse):
    income_actual: float
    actual_expenses: float
    remaining_budget: float
    budget_status: str


# Jobs

class JobResponse(BaseModel):
    job: str
    processed: int
    failed: int
    counts: Dict[str, int]
