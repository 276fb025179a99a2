"""Pydantic schemas for journal entry endpoints."""

from datetime import date, datetime
from decimal import Decimal
from pydantic import BaseModel, Field


class JournalEntryItemCreate(BaseModel):
    """One debit-or-credit line of a new entry."""
    account_id: int
    description: str | None = None
    debit_amount: Decimal = Field(default=Decimal("0"), ge=0)
    credit_amount: Decimal = Field(default=Decimal("0"), ge=0)
    memo: str | None = None
    dimensions: dict | None = None


class JournalEntryCreate(BaseModel):
    """Request body for creating a draft entry."""
    entry_date: date
    fiscal_period_id: int
    description: str | None = None
    reference: str | None = None
    currency_code: str | None = Field(default=None, min_length=3, max_length=3)
    exchange_rate: Decimal = Field(default=Decimal("1"), gt=0)
    items: list[JournalEntryItemCreate] = Field(min_length=2)


class JournalEntryItemResponse(BaseModel):
    id: int
    account_id: int
    account_code: str | None = None
    account_name: str | None = None
    description: str | None = None
    debit_amount: Decimal
    credit_amount: Decimal
    base_debit_amount: Decimal
    base_credit_amount: Decimal
    memo: str | None = None
    dimensions: dict | None = None


class JournalEntrySummary(BaseModel):
    """Journal entry without its items, as listed."""
    id: int
    entry_no: str
    entry_date: date
    description: str | None = None
    reference: str | None = None
    status: str
    currency_code: str
    created_at: datetime
    posted_at: datetime | None = None


class JournalEntryResponse(JournalEntrySummary):
    """Single journal entry with items."""
    fiscal_period_id: int
    source: str | None = None
    exchange_rate: Decimal
    created_by: int | None = None
    approved_by: int | None = None
    updated_at: datetime | None = None
    items: list[JournalEntryItemResponse]


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    pages: int


class JournalListResponse(BaseModel):
    """Page of journal entries."""
    entries: list[JournalEntrySummary]
    pagination: Pagination


class PostEntryResponse(BaseModel):
    """Result of posting a draft."""
    id: int
    entry_no: str
    status: str
    posted_at: datetime
    ledger_rows: int
