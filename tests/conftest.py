"""
Test Configuration and Fixtures
Shared testing infrastructure for the stock ledger
"""

import os

os.environ.setdefault("LOG_TO_FILE", "false")

from decimal import Decimal
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from stockledger.core.database import Base, get_db
from stockledger.main import app
from stockledger.models.inventory import Sku

from tests.helpers import COMPANY

# In-memory SQLite shared across the session by StaticPool
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Create a fresh database for each test"""
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database dependency override"""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    # Not entered as a context manager: startup would connect to the real database
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_sku(db_session: Session):
    """Factory for SKUs with a starting stock level"""
    counter = {"n": 0}

    def _make(current_stock: int = 0, company_id: str = COMPANY, sku_code: str = None,
              item_name: str = "Widget") -> Sku:
        counter["n"] += 1
        sku = Sku(
            company_id=company_id,
            sku_code=sku_code or f"SKU-{counter['n']:03d}",
            item_name=item_name,
            unit_price=Decimal("10.00"),
            current_stock=current_stock,
        )
        db_session.add(sku)
        db_session.commit()
        return sku

    return _make


@pytest.fixture
def sku(make_sku) -> Sku:
    return make_sku()
