"""SQLAlchemy ORM models for cards, invoices, budgets and the notification outbox"""

import uuid
from sqlalchemy import (
    Column,
    String,
    Boolean,
    DateTime,
    Date,
    Integer,
    ForeignKey,
    Text,
    Numeric,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

from finance_tracker.domain.models import InvoiceStatus, PaymentMethod

Base = declarative_base()

Money = Numeric(15, 2)


class CreditCard(Base):
    """Credit card owning a billing cycle and a limit"""

    __tablename__ = "credit_cards"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    profile_id = Column(Text, nullable=True, index=True)
    name = Column(String(100), nullable=False)
    bank_name = Column(String(100), nullable=True)
    last_four_digits = Column(String(4), nullable=True)
    closing_day = Column(Integer, nullable=True)
    due_day = Column(Integer, nullable=True)
    credit_limit = Column(Money, nullable=False, default=0)
    available_limit = Column(Money, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    invoices = relationship("CardInvoice", back_populates="card")


class BankAccount(Base):
    __tablename__ = "bank_accounts"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    profile_id = Column(Text, nullable=True)
    name = Column(String(100), nullable=False)
    bank_name = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Category(Base):
    """Transaction category, optionally linked to a budget envelope"""

    __tablename__ = "categories"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=True, index=True)  # NULL = system category
    name = Column(String(100), nullable=False)
    type = Column(String(10), nullable=False, default="EXPENSE")
    budget_allocation_id = Column(
        Uuid, ForeignKey("budget_allocations.id", ondelete="SET NULL"), nullable=True, index=True
    )

    allocation = relationship("BudgetAllocation", back_populates="categories")


class CardTransaction(Base):
    """Purchase on a credit card; category is the category name, as imported from statements"""

    __tablename__ = "card_transactions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    card_id = Column(Uuid, ForeignKey("credit_cards.id", ondelete="CASCADE"), nullable=False, index=True)
    description = Column(Text, nullable=False)
    amount = Column(Money, nullable=False)
    date = Column(Date, nullable=False, index=True)
    category = Column(String(100), nullable=True)
    is_installment = Column(Boolean, nullable=False, default=False)
    installment_number = Column(Integer, nullable=True)
    total_installments = Column(Integer, nullable=True)


class ManualTransaction(Base):
    __tablename__ = "manual_transactions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    profile_id = Column(Text, nullable=True)
    type = Column(String(10), nullable=False)  # INCOME | EXPENSE
    description = Column(Text, nullable=True)
    amount = Column(Money, nullable=False)
    date = Column(Date, nullable=False, index=True)
    category_id = Column(Uuid, ForeignKey("categories.id"), nullable=True, index=True)


class Goal(Base):
    __tablename__ = "goals"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    name = Column(String(100), nullable=False)
    budget_allocation_id = Column(
        Uuid, ForeignKey("budget_allocations.id", ondelete="SET NULL"), nullable=True
    )


class GoalContribution(Base):
    """Deposit into or withdrawal from a savings goal"""

    __tablename__ = "goal_contributions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    goal_id = Column(Uuid, ForeignKey("goals.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(10), nullable=False, default="DEPOSIT")  # DEPOSIT | WITHDRAW
    amount = Column(Money, nullable=False)
    date = Column(Date, nullable=False)


class UserProfile(Base):
    """Gamification state"""

    __tablename__ = "user_profiles"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, unique=True)
    streak = Column(Integer, nullable=False, default=0)


class CardInvoice(Base):
    """One card statement per (card, month, year)"""

    __tablename__ = "card_invoices"
    __table_args__ = (
        UniqueConstraint("card_id", "reference_month", "reference_year", name="uq_invoice_card_cycle"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    profile_id = Column(Text, nullable=True, index=True)
    card_id = Column(Uuid, ForeignKey("credit_cards.id"), nullable=False, index=True)
    reference_month = Column(Integer, nullable=False)
    reference_year = Column(Integer, nullable=False)
    closing_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False, index=True)
    total_amount = Column(Money, nullable=False, default=0)
    paid_amount = Column(Money, nullable=False, default=0)
    minimum_payment = Column(Money, nullable=True)
    status = Column(String(10), nullable=False, default=InvoiceStatus.OPEN.value, index=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)
    version_id = Column(Integer, nullable=False)  # Optimistic lock for payment read-modify-write
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=func.now())

    card = relationship("CreditCard", back_populates="invoices")
    payments = relationship(
        "InvoicePayment",
        back_populates="invoice",
        order_by="InvoicePayment.created_at.desc()",
    )

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def remaining_amount(self):
        return (self.total_amount or 0) - (self.paid_amount or 0)


class InvoicePayment(Base):
    """Append-only payment record"""

    __tablename__ = "invoice_payments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    invoice_id = Column(Uuid, ForeignKey("card_invoices.id"), nullable=False, index=True)
    user_id = Column(Text, nullable=False, index=True)
    bank_account_id = Column(Uuid, ForeignKey("bank_accounts.id"), nullable=True)
    amount = Column(Money, nullable=False)
    payment_date = Column(Date, nullable=False, index=True)
    payment_type = Column(String(10), nullable=False)
    payment_method = Column(String(15), nullable=False, default=PaymentMethod.PIX.value)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    invoice = relationship("CardInvoice", back_populates="payments")
    bank_account = relationship("BankAccount")


class BudgetAllocation(Base):
    """Percentage-of-income spending envelope for one month"""

    __tablename__ = "budget_allocations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    profile_id = Column(Text, nullable=True)
    name = Column(String(100), nullable=False)
    percentage = Column(Numeric(5, 2), nullable=False, default=0)
    amount = Column(Money, nullable=False, default=0)
    color = Column(String(7), nullable=False, default="#3b82f6")
    icon = Column(String(50), nullable=False, default="dollar")
    month = Column(Integer, nullable=False)
    year = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    categories = relationship("Category", back_populates="allocation")


class Budget(Base):
    """Monthly savings plan"""

    __tablename__ = "budgets"
    __table_args__ = (
        UniqueConstraint("user_id", "profile_id", "month", "year", name="uq_budget_period"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    profile_id = Column(Text, nullable=True)
    month = Column(Integer, nullable=False)
    year = Column(Integer, nullable=False)
    income_expected = Column(Money, nullable=False, default=0)
    invest_percent = Column(Numeric(5, 2), nullable=False, default=30)
    emergency_percent = Column(Numeric(5, 2), nullable=False, default=10)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    @property
    def recommended_investment(self):
        return self.income_expected * self.invest_percent / 100

    @property
    def recommended_emergency_fund(self):
        return self.income_expected * self.emergency_percent / 100

    @property
    def spending_limit(self):
        return self.income_expected - self.recommended_investment - self.recommended_emergency_fund


class Notification(Base):
    """Outbox of user notifications, mirrored to the chat channel by the dispatcher"""

    __tablename__ = "notifications"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    type = Column(String(30), nullable=False)
    title = Column(Text, nullable=False)
    message = Column(Text, nullable=False)
    related_amount = Column(Money, nullable=True)
    scheduled_for = Column(DateTime(timezone=True), nullable=False)
    is_displayed = Column(Boolean, nullable=False, default=False)
    delivered_at = Column(DateTime(timezone=True), nullable=True, index=True)
    delivery_attempts = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
