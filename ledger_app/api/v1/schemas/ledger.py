"""Pydantic schemas for general ledger and reporting endpoints."""

from datetime import date, datetime
from decimal import Decimal
from pydantic import BaseModel

from ledger_app.api.v1.schemas.journal import Pagination


class LedgerRowResponse(BaseModel):
    id: int
    account_id: int
    fiscal_period_id: int
    journal_entry_id: int
    sequence: int
    transaction_date: date
    description: str | None = None
    debit_amount: Decimal
    credit_amount: Decimal
    balance: Decimal
    currency_code: str
    base_debit_amount: Decimal
    base_credit_amount: Decimal
    base_balance: Decimal
    dimensions: dict | None = None
    created_at: datetime


class AccountSummary(BaseModel):
    id: int
    code: str
    name: str
    normal_balance: str


class LedgerListResponse(BaseModel):
    account: AccountSummary | None = None
    entries: list[LedgerRowResponse]
    pagination: Pagination


class AccountBalanceResponse(BaseModel):
    id: int
    fiscal_period_id: int
    account_id: int
    account_code: str
    account_name: str
    account_type: str
    normal_balance: str
    opening_balance: Decimal
    debit_amount: Decimal
    credit_amount: Decimal
    closing_balance: Decimal
    currency_code: str | None = None
    base_opening_balance: Decimal
    base_debit_amount: Decimal
    base_credit_amount: Decimal
    base_closing_balance: Decimal
    last_updated_at: datetime | None = None


class AccountTypeTotalsResponse(BaseModel):
    id: int
    name: str
    normal_balance: str
    total_debit: Decimal
    total_credit: Decimal
    total_base_debit: Decimal
    total_base_credit: Decimal


class FiscalPeriodSummary(BaseModel):
    id: int
    name: str
    start_date: date
    end_date: date
    is_closed: bool
    fiscal_year_name: str


class TrialBalanceResponse(BaseModel):
    fiscal_period: FiscalPeriodSummary
    base_currency: str
    balances: list[AccountBalanceResponse]
    account_types: list[AccountTypeTotalsResponse]
    total_debit: Decimal
    total_credit: Decimal
    total_base_debit: Decimal
    total_base_credit: Decimal
    difference: Decimal
    is_balanced: bool


class ReconciliationResponse(BaseModel):
    account_id: int
    rows_checked: int
    expected_balance: Decimal
    first_mismatch_sequence: int | None = None
    is_consistent: bool
