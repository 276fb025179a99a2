"""
Entry authoring: create, void, fetch and list journal entries.

Drafts are validated the same way the posting engine validates them, so a
draft that saves cleanly only fails to post if something changed in between
(period closed, account removed, concurrent posting).
"""

import logging
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from ledger_app.config import Settings, get_settings
from ledger_app.models.account import Account
from ledger_app.models.fiscal_period import FiscalPeriod, FiscalYear
from ledger_app.models.journal_entry import EntryStatus, JournalEntry, JournalEntryItem
from ledger_app.posting.balances import AMOUNT_QUANTUM, check_balance, item_side_error, to_amount
from ledger_app.posting.errors import (
    AlreadyPostedError,
    EntryVoidedError,
    FiscalPeriodClosedError,
    InvalidEntryError,
    NotFoundError,
    StorageError,
    UnbalancedEntryError,
)

logger = logging.getLogger(__name__)

ENTRY_NUMBER_ATTEMPTS = 3

# journal_entries.exchange_rate is Numeric(19, 6)
RATE_QUANTUM = Decimal("0.000001")


def create_draft_entry(
    db: Session,
    organization_id: int,
    acting_user_id: int,
    *,
    entry_date: date,
    fiscal_period_id: int,
    items: list,
    description: str | None = None,
    reference: str | None = None,
    currency_code: str | None = None,
    exchange_rate: Decimal = Decimal("1"),
    source: str = "manual",
    settings: Settings | None = None,
) -> JournalEntry:
    """
    Validate and save a new draft journal entry.

    `items` is any sequence of objects exposing account_id, debit_amount,
    credit_amount, description, memo and dimensions.
    """
    settings = settings or get_settings()
    currency_code = currency_code or settings.default_currency
    exchange_rate = Decimal(str(exchange_rate)).quantize(RATE_QUANTUM, rounding=ROUND_HALF_UP)

    if exchange_rate <= 0:
        raise InvalidEntryError("Exchange rate must be positive")

    _check_fiscal_period(db, organization_id, fiscal_period_id)

    if len(items) < 2:
        raise InvalidEntryError("A journal entry needs at least two items")
    for position, item in enumerate(items, start=1):
        problem = item_side_error(item)
        if problem:
            raise InvalidEntryError(f"Item {position}: {problem}")

    _check_accounts(db, organization_id, {item.account_id for item in items})

    check = check_balance(items, settings.balance_tolerance, settings.balance_tolerance_mode)
    if not check.is_balanced:
        raise UnbalancedEntryError(check.total_debit, check.total_credit, check.difference)

    for attempt in range(1, ENTRY_NUMBER_ATTEMPTS + 1):
        entry = JournalEntry(
            organization_id=organization_id,
            entry_no=next_entry_number(db, organization_id, entry_date, settings.entry_number_prefix),
            entry_date=entry_date,
            fiscal_period_id=fiscal_period_id,
            description=description,
            reference=reference,
            source=source,
            status=EntryStatus.DRAFT.value,
            currency_code=currency_code,
            exchange_rate=exchange_rate,
            created_by=acting_user_id,
            items=[_build_item(item, exchange_rate) for item in items],
        )
        db.add(entry)
        try:
            db.commit()
        except IntegrityError as e:
            # Another draft took the same number between our read and insert
            db.rollback()
            logger.warning("Entry number %s taken (attempt %d): %s", entry.entry_no, attempt, e)
            continue
        db.refresh(entry)
        logger.info(
            "Created draft %s with %d items for organization %s",
            entry.entry_no,
            len(entry.items),
            organization_id,
        )
        return entry

    raise StorageError("Could not allocate a journal entry number", retryable=True)


def next_entry_number(db: Session, organization_id: int, entry_date: date, prefix: str = "JE") -> str:
    """Next number in the organization's sequence for the entry's year: JE-2025-0042."""
    year_prefix = f"{prefix}-{entry_date.year}-"
    last = (
        db.query(JournalEntry.entry_no)
        .filter(
            JournalEntry.organization_id == organization_id,
            JournalEntry.entry_no.like(f"{year_prefix}%"),
        )
        .order_by(func.length(JournalEntry.entry_no).desc(), JournalEntry.entry_no.desc())
        .first()
    )

    next_num = 1
    if last:
        try:
            next_num = int(last.entry_no.rsplit("-", 1)[-1]) + 1
        except ValueError:
            logger.warning("Unparseable entry number %s, restarting sequence", last.entry_no)

    return f"{year_prefix}{next_num:04d}"


def void_entry(db: Session, organization_id: int, journal_entry_id: int, acting_user_id: int) -> JournalEntry:
    """Void a draft. Posted entries stay in the ledger and cannot be voided here."""
    entry = (
        db.query(JournalEntry)
        .filter(
            JournalEntry.id == journal_entry_id,
            JournalEntry.organization_id == organization_id,
        )
        .with_for_update()
        .first()
    )
    if not entry:
        raise NotFoundError(f"Journal entry {journal_entry_id} not found")
    if entry.status == EntryStatus.POSTED:
        raise AlreadyPostedError("Cannot void a posted journal entry")
    if entry.status == EntryStatus.VOIDED:
        raise EntryVoidedError("Journal entry is already voided")

    entry.status = EntryStatus.VOIDED.value
    entry.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(entry)

    logger.info("Voided %s by user %s", entry.entry_no, acting_user_id)
    return entry


def get_entry(db: Session, organization_id: int, journal_entry_id: int) -> JournalEntry:
    entry = (
        db.query(JournalEntry)
        .options(joinedload(JournalEntry.items).joinedload(JournalEntryItem.account))
        .filter(
            JournalEntry.id == journal_entry_id,
            JournalEntry.organization_id == organization_id,
        )
        .first()
    )
    if not entry:
        raise NotFoundError(f"Journal entry {journal_entry_id} not found")
    return entry


def list_entries(
    db: Session,
    organization_id: int,
    status: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    reference: str | None = None,
    search: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[int, list[JournalEntry]]:
    """Filtered, newest-first page of entries plus the total matching count."""
    query = db.query(JournalEntry).filter(JournalEntry.organization_id == organization_id)

    if status:
        query = query.filter(JournalEntry.status == status)
    if start_date:
        query = query.filter(JournalEntry.entry_date >= start_date)
    if end_date:
        query = query.filter(JournalEntry.entry_date <= end_date)
    if reference:
        query = query.filter(JournalEntry.reference.like(f"%{reference}%"))
    if search:
        pattern = f"%{search}%"
        query = query.filter(
            or_(
                JournalEntry.entry_no.like(pattern),
                JournalEntry.description.like(pattern),
                JournalEntry.reference.like(pattern),
            )
        )

    total = query.count()
    entries = (
        query.order_by(JournalEntry.entry_date.desc(), JournalEntry.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return total, entries


def _check_fiscal_period(db: Session, organization_id: int, fiscal_period_id: int) -> FiscalPeriod:
    period = (
        db.query(FiscalPeriod)
        .join(FiscalYear, FiscalPeriod.fiscal_year_id == FiscalYear.id)
        .filter(
            FiscalPeriod.id == fiscal_period_id,
            FiscalYear.organization_id == organization_id,
        )
        .first()
    )
    if not period:
        raise InvalidEntryError(
            "The specified fiscal period does not exist or does not belong to this organization"
        )
    if period.is_closed:
        raise FiscalPeriodClosedError("Cannot create journal entries in a closed fiscal period")
    return period


def _check_accounts(db: Session, organization_id: int, account_ids: set[int]) -> None:
    accounts = (
        db.query(Account)
        .filter(Account.id.in_(account_ids), Account.organization_id == organization_id)
        .all()
    )
    if len(accounts) != len(account_ids):
        raise InvalidEntryError(
            "One or more specified accounts do not exist or do not belong to this organization"
        )

    inactive = [a.name for a in accounts if not a.is_active]
    if inactive:
        raise InvalidEntryError(f"Cannot use inactive accounts: {', '.join(inactive)}")


def _build_item(item, exchange_rate: Decimal) -> JournalEntryItem:
    debit = to_amount(item.debit_amount)
    credit = to_amount(item.credit_amount)
    return JournalEntryItem(
        account_id=item.account_id,
        description=item.description,
        debit_amount=debit,
        credit_amount=credit,
        base_debit_amount=(debit * exchange_rate).quantize(AMOUNT_QUANTUM, rounding=ROUND_HALF_UP),
        base_credit_amount=(credit * exchange_rate).quantize(AMOUNT_QUANTUM, rounding=ROUND_HALF_UP),
        memo=item.memo,
        dimensions=item.dimensions,
    )
