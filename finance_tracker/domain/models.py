"""Domain models - pure Python dataclasses representing business entities"""

import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional


class InvoiceStatus(str, Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"
    PAID = "PAID"
    PARTIAL = "PARTIAL"
    OVERDUE = "OVERDUE"


class PaymentType(str, Enum):
    FULL = "FULL"
    PARTIAL = "PARTIAL"
    MINIMUM = "MINIMUM"
    ADVANCE = "ADVANCE"


class PaymentMethod(str, Enum):
    PIX = "PIX"
    BOLETO = "BOLETO"
    DEBIT = "DEBIT"
    TRANSFER = "TRANSFER"
    CASH = "CASH"
    OTHER = "OTHER"


class NotificationType(str, Enum):
    PAYMENT_REMINDER_5D = "PAYMENT_REMINDER_5D"
    PAYMENT_REMINDER_1D = "PAYMENT_REMINDER_1D"
    PAYMENT_DUE = "PAYMENT_DUE"


class TransactionSource(str, Enum):
    """Which table a spending record came from"""

    MANUAL = "MANUAL"
    CARD = "CARD"
    GOAL_CONTRIBUTION = "GOAL_CONTRIBUTION"


@dataclass
class BillingCycleConfig:
    """Card billing cycle, read from the card record"""

    closing_day: int
    due_day: int
    credit_limit: Decimal = Decimal("0")
    available_limit: Decimal = Decimal("0")


@dataclass
class CycleDates:
    closing_date: date
    due_date: date


@dataclass
class TransactionWindow:
    """Inclusive date range of transactions belonging to one invoice"""

    start_date: date
    end_date: date

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


@dataclass
class TransactionRef:
    """Uniform view over manual, card and goal-contribution records"""

    source: TransactionSource
    id: uuid.UUID
    amount: Decimal
    date: date
    category_id: Optional[uuid.UUID] = None


@dataclass
class InvoiceSummary:
    """Totals reported after a payment"""

    id: uuid.UUID
    total_amount: Decimal
    paid_amount: Decimal
    remaining_amount: Decimal
    status: InvoiceStatus


@dataclass
class AllocationProgress:
    """Envelope with its recomputed spending"""

    id: uuid.UUID
    name: str
    percentage: Decimal
    amount: Decimal
    color: str
    icon: str
    spent: Decimal
    remaining: Decimal
    progress: float


@dataclass
class AllocationInput:
    """One envelope in a full-replace request"""

    name: str
    percentage: Decimal
    color: str = "#3b82f6"
    icon: str = "dollar"
    category_ids: List[uuid.UUID] = field(default_factory=list)


@dataclass
class HealthCheckResult:
    """Outcome of the pre-transaction budget check"""

    allowed: bool
    linked: bool
    warning: Optional[str] = None
    allocation: Optional[Dict[str, Any]] = None
    spent: Optional[Decimal] = None
    new_total: Optional[Decimal] = None
    over_amount: Optional[Decimal] = None

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"allowed": self.allowed, "linked": self.linked}
        if self.warning:
            payload["warning"] = self.warning
        if self.allocation is not None:
            payload["allocation"] = self.allocation
        for key, value in (
            ("spent", self.spent),
            ("new_total", self.new_total),
            ("over_amount", self.over_amount),
        ):
            if value is not None:
                payload[key] = float(value)
        return payload


@dataclass
class BatchResult:
    """Progress report of a scan over many independent invoices"""

    processed: int = 0
    failed: int = 0
    counts: Dict[str, int] = field(default_factory=dict)

    def bump(self, key: str) -> None:
        self.counts[key] = self.counts.get(key, 0) + 1
