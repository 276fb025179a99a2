"""
Read side of the ledger: ledger listings, period balances, trial balance,
and a replay check of an account's running balances.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from sqlalchemy.orm import Session, joinedload

from ledger_app.config import Settings, get_settings
from ledger_app.models.account import Account, AccountType
from ledger_app.models.account_balance import AccountBalance
from ledger_app.models.fiscal_period import FiscalPeriod, FiscalYear
from ledger_app.models.general_ledger import GeneralLedgerEntry
from ledger_app.models.organization import Organization
from ledger_app.posting.balances import ZERO, allowed_difference, signed_delta, to_amount
from ledger_app.posting.errors import NotFoundError

logger = logging.getLogger(__name__)


def list_ledger_rows(
    db: Session,
    organization_id: int,
    account_id: int | None = None,
    fiscal_period_id: int | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    page: int = 1,
    limit: int = 50,
) -> tuple[int, list[GeneralLedgerEntry]]:
    """Ledger rows in transaction-date order, then account sequence."""
    query = db.query(GeneralLedgerEntry).filter(
        GeneralLedgerEntry.organization_id == organization_id
    )

    if account_id:
        query = query.filter(GeneralLedgerEntry.account_id == account_id)
    if fiscal_period_id:
        query = query.filter(GeneralLedgerEntry.fiscal_period_id == fiscal_period_id)
    if start_date:
        query = query.filter(GeneralLedgerEntry.transaction_date >= start_date)
    if end_date:
        query = query.filter(GeneralLedgerEntry.transaction_date <= end_date)

    total = query.count()
    rows = (
        query.order_by(
            GeneralLedgerEntry.transaction_date,
            GeneralLedgerEntry.account_id,
            GeneralLedgerEntry.sequence,
        )
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return total, rows


def get_account(db: Session, organization_id: int, account_id: int) -> Account:
    account = (
        db.query(Account)
        .options(joinedload(Account.account_type))
        .filter(Account.id == account_id, Account.organization_id == organization_id)
        .first()
    )
    if not account:
        raise NotFoundError(f"Account {account_id} not found")
    return account


def list_account_balances(
    db: Session,
    organization_id: int,
    fiscal_period_id: int | None = None,
) -> list[AccountBalance]:
    query = (
        db.query(AccountBalance)
        .join(Account, AccountBalance.account_id == Account.id)
        .options(joinedload(AccountBalance.account).joinedload(Account.account_type))
        .filter(AccountBalance.organization_id == organization_id)
    )
    if fiscal_period_id:
        query = query.filter(AccountBalance.fiscal_period_id == fiscal_period_id)
    return query.order_by(AccountBalance.fiscal_period_id, Account.code).all()


@dataclass
class AccountTypeTotals:
    id: int
    name: str
    normal_balance: str
    total_debit: Decimal = ZERO
    total_credit: Decimal = ZERO
    total_base_debit: Decimal = ZERO
    total_base_credit: Decimal = ZERO


@dataclass
class TrialBalance:
    """Period balances of active accounts with grand and per-type totals."""

    fiscal_period: FiscalPeriod
    fiscal_year_name: str
    base_currency: str
    balances: list[AccountBalance] = field(default_factory=list)
    total_debit: Decimal = ZERO
    total_credit: Decimal = ZERO
    total_base_debit: Decimal = ZERO
    total_base_credit: Decimal = ZERO
    account_types: list[AccountTypeTotals] = field(default_factory=list)
    # Difference accepted as balanced, from the posting tolerance
    tolerance: Decimal = ZERO

    @property
    def difference(self) -> Decimal:
        return self.total_base_debit - self.total_base_credit

    @property
    def is_balanced(self) -> bool:
        return abs(self.difference) <= self.tolerance


def build_trial_balance(
    db: Session,
    organization_id: int,
    fiscal_period_id: int,
    settings: Settings | None = None,
) -> TrialBalance:
    settings = settings or get_settings()
    period, fiscal_year = (
        db.query(FiscalPeriod, FiscalYear)
        .join(FiscalYear, FiscalPeriod.fiscal_year_id == FiscalYear.id)
        .filter(
            FiscalPeriod.id == fiscal_period_id,
            FiscalYear.organization_id == organization_id,
        )
        .first()
        or (None, None)
    )
    if period is None:
        raise NotFoundError(
            "The specified fiscal period does not exist or does not belong to this organization"
        )

    organization = db.get(Organization, organization_id)

    balances = (
        db.query(AccountBalance)
        .join(Account, AccountBalance.account_id == Account.id)
        .join(AccountType, Account.account_type_id == AccountType.id)
        .options(joinedload(AccountBalance.account).joinedload(Account.account_type))
        .filter(
            AccountBalance.organization_id == organization_id,
            AccountBalance.fiscal_period_id == fiscal_period_id,
            Account.is_active.is_(True),
        )
        .order_by(AccountType.id, Account.code)
        .all()
    )

    report = TrialBalance(
        fiscal_period=period,
        fiscal_year_name=fiscal_year.name,
        base_currency=organization.base_currency if organization else "",
        balances=balances,
    )
    by_type: dict[int, AccountTypeTotals] = {}

    for balance in balances:
        account_type = balance.account.account_type
        totals = by_type.setdefault(
            account_type.id,
            AccountTypeTotals(
                id=account_type.id,
                name=account_type.name,
                normal_balance=account_type.normal_balance,
            ),
        )
        debit, credit = to_amount(balance.debit_amount), to_amount(balance.credit_amount)
        base_debit = to_amount(balance.base_debit_amount)
        base_credit = to_amount(balance.base_credit_amount)

        totals.total_debit += debit
        totals.total_credit += credit
        totals.total_base_debit += base_debit
        totals.total_base_credit += base_credit

        report.total_debit += debit
        report.total_credit += credit
        report.total_base_debit += base_debit
        report.total_base_credit += base_credit

    report.account_types = list(by_type.values())
    report.tolerance = allowed_difference(
        report.total_base_debit,
        report.total_base_credit,
        settings.balance_tolerance,
        settings.balance_tolerance_mode,
    )
    return report


@dataclass
class ReconciliationResult:
    account_id: int
    rows_checked: int
    expected_balance: Decimal
    first_mismatch_sequence: int | None = None

    @property
    def is_consistent(self) -> bool:
        return self.first_mismatch_sequence is None


def reconcile_account(db: Session, organization_id: int, account_id: int) -> ReconciliationResult:
    """
    Replay an account's ledger in sequence order and compare every stored
    running balance with the replayed one.
    """
    account = get_account(db, organization_id, account_id)
    rows = (
        db.query(GeneralLedgerEntry)
        .filter(
            GeneralLedgerEntry.organization_id == organization_id,
            GeneralLedgerEntry.account_id == account_id,
        )
        .order_by(GeneralLedgerEntry.sequence)
        .all()
    )

    running = ZERO
    result = ReconciliationResult(account_id=account_id, rows_checked=0, expected_balance=ZERO)
    for row in rows:
        running += signed_delta(account.normal_balance, row.base_debit_amount, row.base_credit_amount)
        result.rows_checked += 1
        if to_amount(row.base_balance) != running:
            result.first_mismatch_sequence = row.sequence
            logger.error(
                "Ledger drift on account %s at sequence %d: stored %s, replayed %s",
                account.code,
                row.sequence,
                row.base_balance,
                running,
            )
            break

    result.expected_balance = running
    return result
