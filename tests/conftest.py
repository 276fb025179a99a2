"""
Pytest fixtures for the ledger posting service.

Provides:
- An in-memory SQLite database shared by every connection (StaticPool)
- A chart of accounts, fiscal periods and a draft-entry factory
- A FastAPI TestClient bound to the test session
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ledger_app.config import Settings
from ledger_app.db.base import Base
from ledger_app.db.session import get_db
from ledger_app.models import (
    Account,
    AccountType,
    EntryStatus,
    FiscalPeriod,
    FiscalYear,
    JournalEntry,
    JournalEntryItem,
    Organization,
)

ACTING_USER_ID = 7


engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@event.listens_for(engine, "connect")
def _set_sqlite_pragma(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db() -> Session:
    Base.metadata.create_all(engine)
    session = TestingSessionLocal()
    yield session
    session.close()
    Base.metadata.drop_all(engine)


@pytest.fixture
def settings() -> Settings:
    """Default posting settings without retry backoff."""
    return Settings(database_url="sqlite://", posting_retry_backoff_ms=0)


@pytest.fixture
def books(db):
    """
    One organization with a small chart of accounts and two January/February
    periods, February closed. A second organization owns its own cash account.
    """
    org = Organization(name="Acme Ltd", base_currency="USD")
    other_org = Organization(name="Other Co", base_currency="EUR")
    db.add_all([org, other_org])

    asset = AccountType(name="Asset", normal_balance="debit")
    liability = AccountType(name="Liability", normal_balance="credit")
    revenue = AccountType(name="Revenue", normal_balance="credit")
    expense = AccountType(name="Expense", normal_balance="debit")
    db.add_all([asset, liability, revenue, expense])
    db.flush()

    accounts = {
        "cash": Account(organization_id=org.id, account_type=asset, code="1000", name="Cash"),
        "payables": Account(organization_id=org.id, account_type=liability, code="2000", name="Accounts Payable"),
        "revenue": Account(organization_id=org.id, account_type=revenue, code="4000", name="Sales Revenue"),
        "rent": Account(organization_id=org.id, account_type=expense, code="5000", name="Rent Expense"),
        "legacy": Account(
            organization_id=org.id, account_type=expense, code="5999", name="Legacy Expense", is_active=False
        ),
        "other_cash": Account(organization_id=other_org.id, account_type=asset, code="1000", name="Cash"),
    }
    db.add_all(accounts.values())

    year = FiscalYear(
        organization_id=org.id, name="FY2025", start_date=date(2025, 1, 1), end_date=date(2025, 12, 31)
    )
    other_year = FiscalYear(
        organization_id=other_org.id, name="FY2025", start_date=date(2025, 1, 1), end_date=date(2025, 12, 31)
    )
    db.add_all([year, other_year])
    db.flush()

    january = FiscalPeriod(
        fiscal_year_id=year.id, name="2025-01", start_date=date(2025, 1, 1), end_date=date(2025, 1, 31)
    )
    february = FiscalPeriod(
        fiscal_year_id=year.id,
        name="2025-02",
        start_date=date(2025, 2, 1),
        end_date=date(2025, 2, 28),
        is_closed=True,
    )
    other_january = FiscalPeriod(
        fiscal_year_id=other_year.id, name="2025-01", start_date=date(2025, 1, 1), end_date=date(2025, 1, 31)
    )
    db.add_all([january, february, other_january])
    db.commit()

    return {
        "org": org,
        "other_org": other_org,
        "accounts": accounts,
        "january": january,
        "february": february,
        "other_january": other_january,
    }


@pytest.fixture
def make_entry(db, books):
    """
    Insert a journal entry directly, bypassing authoring validation.

    lines: list of (account key, debit, credit[, description])
    """
    counter = {"n": 0}

    def _make(
        lines,
        status=EntryStatus.DRAFT.value,
        period=None,
        exchange_rate="1",
        description="Test entry",
        entry_date=date(2025, 1, 15),
    ):
        counter["n"] += 1
        rate = Decimal(exchange_rate)
        period = period or books["january"]
        entry = JournalEntry(
            organization_id=books["org"].id,
            entry_no=f"JE-2025-T{counter['n']:03d}",
            entry_date=entry_date,
            fiscal_period_id=period.id,
            description=description,
            status=status,
            currency_code="USD",
            exchange_rate=rate,
            created_by=ACTING_USER_ID,
        )
        for line in lines:
            key, debit, credit = line[:3]
            debit, credit = Decimal(str(debit)), Decimal(str(credit))
            entry.items.append(
                JournalEntryItem(
                    account_id=books["accounts"][key].id,
                    description=line[3] if len(line) > 3 else None,
                    debit_amount=debit,
                    credit_amount=credit,
                    base_debit_amount=debit * rate,
                    base_credit_amount=credit * rate,
                    dimensions={"department": "sales"},
                )
            )
        db.add(entry)
        db.commit()
        return entry

    return _make


@pytest.fixture
def client(db):
    from ledger_app.main import app

    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
