"""Pytest fixtures for testing"""

import pytest
from datetime import date
from typing import Callable, Dict, Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from finance_tracker.api.main import create_app
from finance_tracker.api.v1.auth import hash_password
from finance_tracker.domain.currency import RateTable
from finance_tracker.infrastructure.database.models import Account, Base, User
from finance_tracker.infrastructure.database.repositories import UserRepository
from finance_tracker.infrastructure.database.session import get_db
from finance_tracker.services.ledger import LedgerService


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Inside the built-in snapshot range, nearest snapshot 2025-08-19 (EUR 0.92, AZN 1.7015)
LEDGER_DATE = date(2025, 8, 20)


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
def rate_table() -> RateTable:
    return RateTable.default()


@pytest.fixture
def client(db: Session, rate_table: RateTable) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()
    app.state.rate_table = rate_table

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


@pytest.fixture
def user(db: Session) -> User:
    user = UserRepository(db).create_user("alice@example.com", hash_password("Secret123"), "Alice")
    db.commit()
    return user


@pytest.fixture
def auth_headers(user: User) -> Dict[str, str]:
    return {"X-User-ID": str(user.id)}


@pytest.fixture
def ledger(db: Session, rate_table: RateTable) -> LedgerService:
    return LedgerService(db, rate_table)


@pytest.fixture
def make_account(db: Session, user: User) -> Callable[..., Account]:
    """Insert an account directly, bypassing the ledger"""

    def _make(
        name: str = "Checking",
        balance_minor: int = 0,
        currency: str = "USD",
        account_type: str = "checking",
        is_active: bool = True,
    ) -> Account:
        account = Account(
            owner_id=user.id,
            name=name,
            account_type=account_type,
            balance_minor=balance_minor,
            currency=currency,
            institution="",
            is_active=is_active,
        )
        db.add(account)
        db.commit()
        return account

    return _make
