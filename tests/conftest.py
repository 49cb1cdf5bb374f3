"""Pytest fixtures for testing"""

from datetime import date
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from sofloan_gateway.api.dependencies import get_zumrails_client
from sofloan_gateway.api.main import create_app
from sofloan_gateway.domain.models import Transaction
from sofloan_gateway.infrastructure.database.models import Base
from sofloan_gateway.infrastructure.database.session import get_db

# Single shared in-memory database
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

AS_OF = date(2024, 6, 30)


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
def app(db: Session):
    app = create_app()

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    return app


@pytest.fixture
def client(app) -> TestClient:
    """FastAPI test client bound to the test database"""
    return TestClient(app)


class StubZumrailsClient:
    """Returns a canned aggregation payload or raises a canned error"""

    def __init__(self, payload=None, error=None):
        self.payload = payload
        self.error = error
        self.requested = []

    async def get_aggregation(self, request_id: str) -> dict:
        self.requested.append(request_id)
        if self.error is not None:
            raise self.error
        return self.payload


@pytest.fixture
def stub_zumrails(app, zumrails_payload):
    stub = StubZumrailsClient(payload=zumrails_payload)
    app.dependency_overrides[get_zumrails_client] = lambda: stub
    return stub


def make_transaction(
    transaction_id: str,
    posted: str,
    description: str,
    credit: float | None = None,
    debit: float | None = None,
) -> Transaction:
    return Transaction(
        transaction_id=transaction_id,
        date=posted,
        description=description,
        credit=credit,
        debit=debit,
    )


@pytest.fixture
def biweekly_salary() -> list[Transaction]:
    """Three pay deposits 14 days apart with an opaque description"""
    return [
        make_transaction("pay_1", "2024-05-03", "DEPOSIT ABC", credit=610.0),
        make_transaction("pay_2", "2024-05-17", "DEPOSIT ABC", credit=620.0),
        make_transaction("pay_3", "2024-05-31", "DEPOSIT ABC", credit=640.0),
    ]


@pytest.fixture
def zumrails_payload() -> dict:
    """Aggregation result in the shape returned by GetInformationByRequestId"""
    return {
        "RequestId": "req-123",
        "Card": {
            "Id": "card-1",
            "InstitutionName": "Desjardins",
            "Accounts": [
                {
                    "Id": "acc-1",
                    "InstitutionNumber": "815",
                    "TransitNumber": "30001",
                    "AccountNumber": "1234567",
                    "Title": "Chequing",
                    "AccountCategory": "Operations",
                    "Transactions": [
                        {"Id": "t1", "Date": "2024-05-03", "Description": "PAYROLL ACME CORP", "Credit": 1500.0, "Balance": 1800.0},
                        {"Id": "t2", "Date": "2024-05-17", "Description": "PAYROLL ACME CORP", "Credit": 1500.0, "Balance": 2100.0},
                        {"Id": "t3", "Date": "2024-05-31", "Description": "PAYROLL ACME CORP", "Credit": 1500.0, "Balance": 2500.0},
                        {"Id": "t4", "Date": "2024-06-01", "Description": "RENT PAYMENT", "Debit": 1100.0, "Balance": 1400.0},
                        {"Id": "t5", "Date": "2024-06-10", "Description": "NSF FEE", "Debit": 48.0, "Balance": -20.0},
                        {
                            "Date": "2024-02-12",
                            "Description": None,
                            "Debit": 45.0,
                            "Balance": 10.0,
                            "Category": {"Id": "c9", "Name": "NSF", "InsightsType": "Fees"},
                        },
                    ],
                },
                {
                    "Id": "acc-2",
                    "InstitutionNumber": "815",
                    "TransitNumber": "30001",
                    "AccountNumber": "7654321",
                    "Title": "Savings",
                    "AccountSubCategory": "Savings",
                    "Transactions": [],
                },
            ],
        },
    }
