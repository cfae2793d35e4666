"""Pytest fixtures for testing"""

import uuid
import pytest
from datetime import date
from decimal import Decimal
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from billpay_engine.api.main import create_app
from billpay_engine.infrastructure.database.models import Base
from billpay_engine.infrastructure.database.session import get_db
from billpay_engine.domain.models import Account, AccountKind, FixedBiller, Period
from billpay_engine.services.events import InvalidationBus
from billpay_engine.services.reconciliation import ReconciliationService


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Fixed "today" for status derivation in service tests
TODAY = date(2026, 2, 20)


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
    return TestClient(app)


@pytest.fixture
def bus() -> InvalidationBus:
    return InvalidationBus()


@pytest.fixture
def service(db: Session, bus: InvalidationBus) -> ReconciliationService:
    """Service over the test session with a pinned clock"""
    return ReconciliationService(db, bus=bus, clock=lambda: TODAY)


@pytest.fixture
def checking(service: ReconciliationService) -> Account:
    """Debit account opened with 10000"""
    return service.register_account("Checking", AccountKind.DEBIT, Decimal("10000"))


@pytest.fixture
def card(service: ReconciliationService) -> Account:
    """Revolving-credit account with statements anchored on the 10th"""
    return service.register_account(
        "Visa",
        AccountKind.REVOLVING,
        Decimal("0"),
        billing_anchor_day=10,
        credit_limit=Decimal("5000"),
    )


@pytest.fixture
def internet_bill() -> FixedBiller:
    """Unlinked biller of 60 a month due on the 15th, active from January 2026"""
    return FixedBiller(
        id=uuid.uuid4(),
        name="Internet",
        nominal_amount=Decimal("60"),
        due_day=15,
        activation=Period(2026, 1),
    )
