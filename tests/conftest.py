"""Pytest fixtures for testing"""

import pytest
from datetime import date
from decimal import Decimal
from typing import Callable, Generator
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker, Session
from finance_tracker.api.main import create_app
from finance_tracker.infrastructure.database.models import (
    Base,
    BankAccount,
    CardTransaction,
    Category,
    CreditCard,
)
from finance_tracker.infrastructure.database.session import build_engine, get_db


USER_ID = "user_1"

# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = build_engine(TEST_DATABASE_URL)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app, headers={"X-User-ID": USER_ID})


@pytest.fixture
def card(db: Session) -> CreditCard:
    """Card closing on the 25th, due on the 10th of the following month"""
    card = CreditCard(
        user_id=USER_ID,
        name="Nubank",
        bank_name="Nu",
        closing_day=25,
        due_day=10,
        credit_limit=Decimal("5000"),
        available_limit=Decimal("4000"),
    )
    db.add(card)
    db.commit()
    return card


@pytest.fixture
def second_card(db: Session) -> CreditCard:
    """Another card of the same user on the same cycle"""
    card = CreditCard(
        user_id=USER_ID,
        name="Inter",
        bank_name="Inter",
        closing_day=25,
        due_day=10,
        credit_limit=Decimal("3000"),
        available_limit=Decimal("3000"),
    )
    db.add(card)
    db.commit()
    return card


@pytest.fixture
def bank_account(db: Session) -> BankAccount:
    account = BankAccount(user_id=USER_ID, name="Checking", bank_name="Itau")
    db.add(account)
    db.commit()
    return account


@pytest.fixture
def add_card_transaction(db: Session) -> Callable[..., CardTransaction]:
    """Factory adding a purchase to a card"""

    def _add(card: CreditCard, amount: str, day: date, category: str | None = None) -> CardTransaction:
        txn = CardTransaction(
            user_id=card.user_id,
            card_id=card.id,
            description="Purchase",
            amount=Decimal(amount),
            date=day,
            category=category,
        )
        db.add(txn)
        db.commit()
        return txn

    return _add


@pytest.fixture
def category(db: Session) -> Category:
    category = Category(user_id=USER_ID, name="Groceries", type="EXPENSE")
    db.add(category)
    db.commit()
    return category
