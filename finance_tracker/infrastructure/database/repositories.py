"""Data access layer for cards, invoices, budgets and notifications"""

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session, Query

from finance_tracker.config import settings
from finance_tracker.domain.invoices import UNPAID_STATUSES, to_money
from finance_tracker.domain.models import (
    AllocationInput,
    BillingCycleConfig,
    InvoiceStatus,
    NotificationType,
    PaymentMethod,
    PaymentType,
    TransactionRef,
    TransactionSource,
    TransactionWindow,
)
from finance_tracker.infrastructure.database.models import (
    BankAccount,
    Budget,
    BudgetAllocation,
    CardInvoice,
    CardTransaction,
    Category,
    CreditCard,
    Goal,
    GoalContribution,
    InvoicePayment,
    ManualTransaction,
    Notification,
    UserProfile,
)
from finance_tracker.utils.date_utils import month_bounds


def _scoped(query: Query, column, profile_id: Optional[str]) -> Query:
    """Restrict to a profile when one is active"""
    if profile_id:
        return query.filter(column == profile_id)
    return query


def _same_profile(column, profile_id: Optional[str]):
    """Exact profile match, treating None as 'no profile'"""
    return column.is_(None) if profile_id is None else column == profile_id


class CardRepository:
    """Cards and bank accounts owned by a user"""

    def __init__(self, db: Session):
        self.db = db

    def get_card(self, card_id: uuid.UUID, user_id: str, profile_id: Optional[str] = None) -> Optional[CreditCard]:
        query = self.db.query(CreditCard).filter(CreditCard.id == card_id, CreditCard.user_id == user_id)
        return _scoped(query, CreditCard.profile_id, profile_id).first()

    def billing_cycle(self, card: CreditCard) -> BillingCycleConfig:
        """Cycle configuration, falling back to the default closing/due days"""
        return BillingCycleConfig(
            closing_day=card.closing_day or settings.default_closing_day,
            due_day=card.due_day or settings.default_due_day,
            credit_limit=to_money(card.credit_limit),
            available_limit=to_money(card.available_limit),
        )

    def adjust_available_limit(self, card: CreditCard, delta: Decimal) -> Decimal:
        """Move the available limit by delta, never above the credit limit"""
        new_limit = to_money(card.available_limit) + to_money(delta)
        card.available_limit = min(new_limit, to_money(card.credit_limit))
        self.db.flush()
        return card.available_limit

    def get_account(self, account_id: uuid.UUID, user_id: str) -> Optional[BankAccount]:
        return (
            self.db.query(BankAccount)
            .filter(BankAccount.id == account_id, BankAccount.user_id == user_id)
            .first()
        )


class TransactionRepository:
    """Read side over manual, card and goal transactions"""

    def __init__(self, db: Session):
        self.db = db

    def sum_amount_in_window(self, card_id: uuid.UUID, window: TransactionWindow) -> Decimal:
        total = (
            self.db.query(func.sum(CardTransaction.amount))
            .filter(
                CardTransaction.card_id == card_id,
                CardTransaction.date.between(window.start_date, window.end_date),
            )
            .scalar()
        )
        return to_money(total)

    def list_card_transactions(self, card_id: uuid.UUID, window: TransactionWindow) -> List[CardTransaction]:
        return (
            self.db.query(CardTransaction)
            .filter(
                CardTransaction.card_id == card_id,
                CardTransaction.date.between(window.start_date, window.end_date),
            )
            .order_by(CardTransaction.date.asc())
            .all()
        )

    def linked_categories(self, allocation_id: uuid.UUID) -> List[Category]:
        return self.db.query(Category).filter(Category.budget_allocation_id == allocation_id).all()

    def get_category(self, category_id: uuid.UUID) -> Optional[Category]:
        return self.db.query(Category).filter(Category.id == category_id).first()

    def list_by_category_and_period(
        self, category: Category, user_id: str, month: int, year: int
    ) -> List[TransactionRef]:
        """
        Expenses tagged to a category within a calendar month.

        Manual transactions match on category id; card transactions carry the
        category name they were imported with, so they match on name.
        """
        start, end = month_bounds(month, year)

        manual = (
            self.db.query(ManualTransaction)
            .filter(
                ManualTransaction.user_id == user_id,
                ManualTransaction.type == "EXPENSE",
                ManualTransaction.category_id == category.id,
                ManualTransaction.date.between(start, end),
            )
            .all()
        )
        card = (
            self.db.query(CardTransaction)
            .filter(
                CardTransaction.user_id == user_id,
                CardTransaction.category == category.name,
                CardTransaction.date.between(start, end),
            )
            .all()
        )

        refs = [
            TransactionRef(TransactionSource.MANUAL, t.id, t.amount, t.date, t.category_id)
            for t in manual
        ]
        refs.extend(
            TransactionRef(TransactionSource.CARD, t.id, t.amount, t.date, category.id)
            for t in card
        )
        return refs

    def list_goal_contributions(self, allocation_id: uuid.UUID, month: int, year: int) -> List[TransactionRef]:
        """Deposits into goals linked to an envelope within a calendar month"""
        start, end = month_bounds(month, year)
        contributions = (
            self.db.query(GoalContribution)
            .join(Goal, Goal.id == GoalContribution.goal_id)
            .filter(
                Goal.budget_allocation_id == allocation_id,
                GoalContribution.type == "DEPOSIT",
                GoalContribution.date.between(start, end),
            )
            .all()
        )
        return [
            TransactionRef(TransactionSource.GOAL_CONTRIBUTION, c.id, c.amount, c.date)
            for c in contributions
        ]

    def sum_month(self, user_id: str, profile_id: Optional[str], month: int, year: int) -> Tuple[Decimal, Decimal]:
        """(expenses, income) of a calendar month; card purchases count as expenses"""
        start, end = month_bounds(month, year)

        def manual_sum(kind: str):
            query = self.db.query(func.sum(ManualTransaction.amount)).filter(
                ManualTransaction.user_id == user_id,
                ManualTransaction.type == kind,
                ManualTransaction.date.between(start, end),
            )
            return _scoped(query, ManualTransaction.profile_id, profile_id).scalar()

        card_query = (
            self.db.query(func.sum(CardTransaction.amount))
            .select_from(CardTransaction)
            .join(CreditCard, CreditCard.id == CardTransaction.card_id)
            .filter(CardTransaction.user_id == user_id, CardTransaction.date.between(start, end))
        )
        card_total = _scoped(card_query, CreditCard.profile_id, profile_id).scalar()

        expenses = to_money(manual_sum("EXPENSE")) + to_money(card_total)
        return expenses, to_money(manual_sum("INCOME"))


class InvoiceRepository:
    """Repository for card invoices"""

    def __init__(self, db: Session):
        self.db = db

    def get_for_cycle(self, card_id: uuid.UUID, month: int, year: int) -> Optional[CardInvoice]:
        return (
            self.db.query(CardInvoice)
            .filter(
                CardInvoice.card_id == card_id,
                CardInvoice.reference_month == month,
                CardInvoice.reference_year == year,
            )
            .first()
        )

    def get_owned(self, invoice_id: uuid.UUID, user_id: str, profile_id: Optional[str] = None) -> Optional[CardInvoice]:
        query = self.db.query(CardInvoice).filter(CardInvoice.id == invoice_id, CardInvoice.user_id == user_id)
        return _scoped(query, CardInvoice.profile_id, profile_id).first()

    def get_for_update(self, invoice_id: uuid.UUID, user_id: str, profile_id: Optional[str] = None) -> Optional[CardInvoice]:
        """Row-locked, freshly loaded invoice for a payment read-modify-write"""
        query = (
            self.db.query(CardInvoice)
            .filter(CardInvoice.id == invoice_id, CardInvoice.user_id == user_id)
            .with_for_update()
            .populate_existing()
        )
        return _scoped(query, CardInvoice.profile_id, profile_id).first()

    def create(self, card: CreditCard, month: int, year: int, **fields) -> CardInvoice:
        invoice = CardInvoice(
            user_id=card.user_id,
            profile_id=card.profile_id,
            card_id=card.id,
            reference_month=month,
            reference_year=year,
            paid_amount=Decimal("0"),
            status=InvoiceStatus.OPEN.value,
            **fields,
        )
        self.db.add(invoice)
        self.db.flush()
        return invoice

    def list_for_card(
        self,
        user_id: str,
        profile_id: Optional[str],
        card_id: uuid.UUID,
        page: int = 1,
        limit: int = 12,
    ) -> Tuple[List[CardInvoice], int]:
        """Page of invoices, newest cycle first, plus the total count"""
        query = _scoped(
            self.db.query(CardInvoice).filter(CardInvoice.user_id == user_id, CardInvoice.card_id == card_id),
            CardInvoice.profile_id,
            profile_id,
        )
        total = query.count()
        invoices = (
            query.order_by(CardInvoice.reference_year.desc(), CardInvoice.reference_month.desc())
            .limit(limit)
            .offset((page - 1) * limit)
            .all()
        )
        return invoices, total

    def list_closable(self, today: date) -> List[CardInvoice]:
        return (
            self.db.query(CardInvoice)
            .filter(
                CardInvoice.status == InvoiceStatus.OPEN.value,
                CardInvoice.closing_date < today,
                CardInvoice.due_date >= today,
            )
            .all()
        )

    def list_past_due(self, today: date) -> List[CardInvoice]:
        return (
            self.db.query(CardInvoice)
            .filter(
                CardInvoice.status.in_([s.value for s in UNPAID_STATUSES]),
                CardInvoice.due_date < today,
            )
            .all()
        )

    def list_due_on(self, day: date) -> List[CardInvoice]:
        return (
            self.db.query(CardInvoice)
            .filter(CardInvoice.status != InvoiceStatus.PAID.value, CardInvoice.due_date == day)
            .all()
        )


class PaymentRepository:
    """Append-only store of invoice payments"""

    def __init__(self, db: Session):
        self.db = db

    def create_payment(
        self,
        invoice: CardInvoice,
        amount: Decimal,
        payment_type: PaymentType,
        payment_date: date,
        payment_method: Optional[PaymentMethod] = None,
        bank_account_id: Optional[uuid.UUID] = None,
        notes: Optional[str] = None,
    ) -> InvoicePayment:
        payment = InvoicePayment(
            invoice_id=invoice.id,
            user_id=invoice.user_id,
            bank_account_id=bank_account_id,
            amount=amount,
            payment_date=payment_date,
            payment_type=payment_type.value,
            payment_method=(payment_method or PaymentMethod.PIX).value,
            notes=notes,
        )
        self.db.add(payment)
        self.db.flush()
        return payment


class AllocationRepository:
    """Repository for budget envelopes"""

    def __init__(self, db: Session):
        self.db = db

    def list_for_period(self, user_id: str, profile_id: Optional[str], month: int, year: int) -> List[BudgetAllocation]:
        return (
            self.db.query(BudgetAllocation)
            .filter(
                BudgetAllocation.user_id == user_id,
                _same_profile(BudgetAllocation.profile_id, profile_id),
                BudgetAllocation.month == month,
                BudgetAllocation.year == year,
            )
            .order_by(BudgetAllocation.percentage.desc(), BudgetAllocation.name)
            .all()
        )

    def get(self, allocation_id: uuid.UUID) -> Optional[BudgetAllocation]:
        return self.db.query(BudgetAllocation).filter(BudgetAllocation.id == allocation_id).first()

    def create_many(
        self,
        user_id: str,
        profile_id: Optional[str],
        month: int,
        year: int,
        entries: Sequence[Tuple[AllocationInput, Decimal]],
    ) -> List[BudgetAllocation]:
        """
        Create envelopes from (input, amount) pairs and link their categories.

        Only categories owned by user_id are linked; ids of other users'
        categories and of shared system categories are ignored.
        """
        created = []
        for entry, amount in entries:
            allocation = BudgetAllocation(
                user_id=user_id,
                profile_id=profile_id,
                name=entry.name,
                percentage=entry.percentage,
                amount=amount,
                color=entry.color,
                icon=entry.icon,
                month=month,
                year=year,
            )
            self.db.add(allocation)
            created.append(allocation)
        self.db.flush()

        for entry, allocation in zip((e for e, _ in entries), created):
            if entry.category_ids:
                self.db.query(Category).filter(
                    Category.id.in_(entry.category_ids),
                    Category.user_id == user_id,
                ).update({Category.budget_allocation_id: allocation.id})
        self.db.flush()
        return created

    def delete_for_period(self, user_id: str, profile_id: Optional[str], month: int, year: int) -> int:
        """Drop a month's envelopes, clearing category and goal links first"""
        ids = [a.id for a in self.list_for_period(user_id, profile_id, month, year)]
        if not ids:
            return 0

        self.db.query(Category).filter(Category.budget_allocation_id.in_(ids)).update(
            {Category.budget_allocation_id: None}
        )
        self.db.query(Goal).filter(Goal.budget_allocation_id.in_(ids)).update(
            {Goal.budget_allocation_id: None}
        )
        self.db.query(BudgetAllocation).filter(BudgetAllocation.id.in_(ids)).delete()
        self.db.flush()
        return len(ids)


class BudgetRepository:
    """Repository for monthly budget plans"""

    def __init__(self, db: Session):
        self.db = db

    def get_for_period(self, user_id: str, profile_id: Optional[str], month: int, year: int) -> Optional[Budget]:
        return (
            self.db.query(Budget)
            .filter(
                Budget.user_id == user_id,
                _same_profile(Budget.profile_id, profile_id),
                Budget.month == month,
                Budget.year == year,
            )
            .first()
        )

    def create(self, **fields) -> Budget:
        budget = Budget(**fields)
        self.db.add(budget)
        self.db.flush()
        return budget

    def list_for_user(self, user_id: str, year: Optional[int] = None, page: int = 1, limit: int = 12) -> List[Budget]:
        query = self.db.query(Budget).filter(Budget.user_id == user_id)
        if year:
            query = query.filter(Budget.year == year)
        return (
            query.order_by(Budget.year.desc(), Budget.month.desc())
            .limit(limit)
            .offset((page - 1) * limit)
            .all()
        )


class NotificationRepository:
    """Notification outbox; rows are delivered later by the dispatcher"""

    def __init__(self, db: Session):
        self.db = db

    def emit(
        self,
        user_id: str,
        type: NotificationType,
        title: str,
        message: str,
        related_amount: Optional[Decimal] = None,
        scheduled_for: Optional[datetime] = None,
    ) -> Notification:
        notification = Notification(
            user_id=user_id,
            type=type.value,
            title=title,
            message=message,
            related_amount=related_amount,
            scheduled_for=scheduled_for or datetime.now(timezone.utc),
            is_displayed=False,
            delivery_attempts=0,
        )
        self.db.add(notification)
        self.db.flush()
        return notification

    def list_pending(self, limit: int, max_attempts: int) -> List[Notification]:
        """Undelivered rows still under the attempt cap, least-tried first"""
        return (
            self.db.query(Notification)
            .filter(Notification.delivered_at.is_(None), Notification.delivery_attempts < max_attempts)
            .order_by(Notification.delivery_attempts.asc(), Notification.created_at.asc())
            .limit(limit)
            .all()
        )

    def mark_delivered(self, notification: Notification) -> None:
        notification.delivery_attempts += 1
        notification.delivered_at = datetime.now(timezone.utc)
        self.db.flush()

    def mark_failed(self, notification: Notification) -> None:
        notification.delivery_attempts += 1
        self.db.flush()


class ProfileRepository:
    """Gamification state per user"""

    def __init__(self, db: Session):
        self.db = db

    def reset_streak(self, user_id: str) -> None:
        self.db.query(UserProfile).filter(UserProfile.user_id == user_id).update(
            {UserProfile.streak: 0}
        )
        self.db.flush()
