"""General ledger and reporting endpoints."""

import math
from datetime import date

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from ledger_app.api.deps import ledger_http_error
from ledger_app.db.session import get_db
from ledger_app.models.account_balance import AccountBalance
from ledger_app.models.general_ledger import GeneralLedgerEntry
from ledger_app.posting.errors import LedgerError
from ledger_app.reporting import ledger as ledger_reports
from ledger_app.reporting.export import trial_balance_to_excel
from ledger_app.api.v1.schemas.journal import Pagination
from ledger_app.api.v1.schemas.ledger import (
    AccountBalanceResponse,
    AccountSummary,
    AccountTypeTotalsResponse,
    FiscalPeriodSummary,
    LedgerListResponse,
    LedgerRowResponse,
    ReconciliationResponse,
    TrialBalanceResponse,
)

router = APIRouter(prefix="/organizations/{organization_id}", tags=["General Ledger"])


def _row_to_response(row: GeneralLedgerEntry) -> LedgerRowResponse:
    return LedgerRowResponse(
        id=row.id,
        account_id=row.account_id,
        fiscal_period_id=row.fiscal_period_id,
        journal_entry_id=row.journal_entry_id,
        sequence=row.sequence,
        transaction_date=row.transaction_date,
        description=row.description,
        debit_amount=row.debit_amount,
        credit_amount=row.credit_amount,
        balance=row.balance,
        currency_code=row.currency_code,
        base_debit_amount=row.base_debit_amount,
        base_credit_amount=row.base_credit_amount,
        base_balance=row.base_balance,
        dimensions=row.dimensions,
        created_at=row.created_at,
    )


def _balance_to_response(balance: AccountBalance) -> AccountBalanceResponse:
    account = balance.account
    return AccountBalanceResponse(
        id=balance.id,
        fiscal_period_id=balance.fiscal_period_id,
        account_id=account.id,
        account_code=account.code,
        account_name=account.name,
        account_type=account.account_type.name,
        normal_balance=account.account_type.normal_balance,
        opening_balance=balance.opening_balance,
        debit_amount=balance.debit_amount,
        credit_amount=balance.credit_amount,
        closing_balance=balance.closing_balance,
        currency_code=balance.currency_code,
        base_opening_balance=balance.base_opening_balance,
        base_debit_amount=balance.base_debit_amount,
        base_credit_amount=balance.base_credit_amount,
        base_closing_balance=balance.base_closing_balance,
        last_updated_at=balance.last_updated_at,
    )


def _pagination(total: int, page: int, limit: int) -> Pagination:
    return Pagination(total=total, page=page, limit=limit, pages=math.ceil(total / limit))


@router.get("/general-ledger", response_model=LedgerListResponse)
def list_general_ledger(
    organization_id: int,
    account_id: int | None = Query(None),
    fiscal_period_id: int | None = Query(None),
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
):
    """List ledger rows in transaction-date order."""
    total, rows = ledger_reports.list_ledger_rows(
        db,
        organization_id,
        account_id=account_id,
        fiscal_period_id=fiscal_period_id,
        start_date=start_date,
        end_date=end_date,
        page=page,
        limit=limit,
    )
    return LedgerListResponse(
        entries=[_row_to_response(r) for r in rows],
        pagination=_pagination(total, page, limit),
    )


@router.get("/general-ledger/accounts/{account_id}", response_model=LedgerListResponse)
def get_account_ledger(
    organization_id: int,
    account_id: int,
    fiscal_period_id: int | None = Query(None),
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
):
    """Ledger of a single account with its running balance."""
    try:
        account = ledger_reports.get_account(db, organization_id, account_id)
    except LedgerError as e:
        raise ledger_http_error(e) from e

    total, rows = ledger_reports.list_ledger_rows(
        db,
        organization_id,
        account_id=account_id,
        fiscal_period_id=fiscal_period_id,
        start_date=start_date,
        end_date=end_date,
        page=page,
        limit=limit,
    )
    return LedgerListResponse(
        account=AccountSummary(
            id=account.id,
            code=account.code,
            name=account.name,
            normal_balance=account.normal_balance.value,
        ),
        entries=[_row_to_response(r) for r in rows],
        pagination=_pagination(total, page, limit),
    )


@router.get(
    "/general-ledger/accounts/{account_id}/reconcile",
    response_model=ReconciliationResponse,
)
def reconcile_account_ledger(
    organization_id: int,
    account_id: int,
    db: Session = Depends(get_db),
):
    """Replay the account's ledger and report the first row whose running balance drifted."""
    try:
        result = ledger_reports.reconcile_account(db, organization_id, account_id)
    except LedgerError as e:
        raise ledger_http_error(e) from e

    return ReconciliationResponse(
        account_id=result.account_id,
        rows_checked=result.rows_checked,
        expected_balance=result.expected_balance,
        first_mismatch_sequence=result.first_mismatch_sequence,
        is_consistent=result.is_consistent,
    )


@router.get("/account-balances", response_model=list[AccountBalanceResponse])
def list_account_balances(
    organization_id: int,
    fiscal_period_id: int | None = Query(None),
    db: Session = Depends(get_db),
):
    """Period balances per account."""
    balances = ledger_reports.list_account_balances(db, organization_id, fiscal_period_id)
    return [_balance_to_response(b) for b in balances]


@router.get("/trial-balance", response_model=TrialBalanceResponse)
def get_trial_balance(
    organization_id: int,
    fiscal_period_id: int = Query(..., description="Fiscal period to report on"),
    db: Session = Depends(get_db),
):
    """Trial balance of active accounts for one fiscal period."""
    try:
        report = ledger_reports.build_trial_balance(db, organization_id, fiscal_period_id)
    except LedgerError as e:
        raise ledger_http_error(e) from e

    period = report.fiscal_period
    return TrialBalanceResponse(
        fiscal_period=FiscalPeriodSummary(
            id=period.id,
            name=period.name,
            start_date=period.start_date,
            end_date=period.end_date,
            is_closed=period.is_closed,
            fiscal_year_name=report.fiscal_year_name,
        ),
        base_currency=report.base_currency,
        balances=[_balance_to_response(b) for b in report.balances],
        account_types=[
            AccountTypeTotalsResponse(
                id=t.id,
                name=t.name,
                normal_balance=t.normal_balance,
                total_debit=t.total_debit,
                total_credit=t.total_credit,
                total_base_debit=t.total_base_debit,
                total_base_credit=t.total_base_credit,
            )
            for t in report.account_types
        ],
        total_debit=report.total_debit,
        total_credit=report.total_credit,
        total_base_debit=report.total_base_debit,
        total_base_credit=report.total_base_credit,
        difference=report.difference,
        is_balanced=report.is_balanced,
    )


@router.get("/trial-balance/export")
def export_trial_balance(
    organization_id: int,
    fiscal_period_id: int = Query(..., description="Fiscal period to report on"),
    db: Session = Depends(get_db),
):
    """Export the trial balance as an .xlsx workbook."""
    try:
        report = ledger_reports.build_trial_balance(db, organization_id, fiscal_period_id)
    except LedgerError as e:
        raise ledger_http_error(e) from e

    buffer = trial_balance_to_excel(report)

    return StreamingResponse(
        buffer,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={
            "Content-Disposition": f"attachment; filename=trial_balance_{fiscal_period_id}.xlsx"
        },
    )
