"""Pytest fixtures for testing"""

import pytest
from datetime import date
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from pressing_gateway.api.main import create_app
from pressing_gateway.infrastructure.database.models import Base
from pressing_gateway.infrastructure.database.session import get_db
from pressing_gateway.domain.models import DepositForm, DepositItem, ItemCategory, PaymentMethod


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
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
    return TestClient(app)


@pytest.fixture
def sample_items() -> list[DepositItem]:
    """Two shirts to wash and a suit to dry clean: 2 x 1500 + 1 x 800"""
    return [
        DepositItem(name="Chemise", category=ItemCategory.WASHING, quantity=2, unit_price_cents=1500),
        DepositItem(
            name="Costume",
            category=ItemCategory.DRY_CLEANING,
            quantity=1,
            unit_price_cents=800,
            special_instructions="Ne pas plier",
        ),
    ]


@pytest.fixture
def sample_form(sample_items: list[DepositItem]) -> DepositForm:
    """Intake form paid in full later, no discount"""
    return DepositForm(
        customer_name="Awa Ndiaye",
        customer_phone="+237 6 99 12 34 56",
        customer_email="awa@example.com",
        collection_address="12 rue des Palmiers, Douala",
        collection_date=date(2026, 3, 2),
        collection_time="10:00",
        items=sample_items,
        tenant_name="E6 Wash",
        agency_name="Agence Akwa",
        created_by_name="Jean Operateur",
        payment_method=PaymentMethod.CASH,
    )


@pytest.fixture
def deposit_payload() -> dict:
    """JSON body for POST /v1/deposits matching sample_form"""
    return {
        "tenant_name": "E6 Wash",
        "agency_name": "Agence Akwa",
        "created_by_name": "Jean Operateur",
        "customer_name": "Awa Ndiaye",
        "customer_phone": "+237 6 99 12 34 56",
        "customer_email": "awa@example.com",
        "collection_address": "12 rue des Palmiers, Douala",
        "collection_date": "2026-03-02",
        "collection_time": "10:00",
        "items": [
            {"name": "Chemise", "category": "WASHING", "quantity": 2, "unit_price_cents": 1500},
            {"name": "Costume", "category": "DRY_CLEANING", "quantity": 1, "unit_price_cents": 800},
        ],
        "payment_method": "CASH",
    }
