"""
Posting engine.

Moves a draft journal entry to `posted` inside one database transaction:

  1. Load the entry (row-locked) and check it belongs to the organization
  2. Refuse posted / voided entries
  3. Refuse entries whose fiscal period is closed
  4. Validate items and the debit/credit balance
  5. Lock the touched accounts, read each account's ledger head and derive
     one ledger row per item, in item order
  6. Insert the ledger rows
  7. Create or increment the (organization, period, account) balances
  8. Mark the entry posted
  9. Commit

Steps 1-4 write nothing. Steps 5-8 commit together or not at all: any
failure rolls the session back before an error leaves this module.
Transient failures (lock timeouts, deadlocks, a concurrent writer winning a
unique or version check) are retried from step 1.

Per-account serialization comes from two places: the account rows are locked
FOR UPDATE in id order, and ledger rows carry a per-account sequence with a
unique constraint, so two writers that read the same head cannot both commit
on stores without row locks.
"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ledger_app.config import Settings, get_settings
from ledger_app.models.account import Account
from ledger_app.models.account_balance import AccountBalance
from ledger_app.models.fiscal_period import FiscalPeriod
from ledger_app.models.general_ledger import GeneralLedgerEntry
from ledger_app.models.journal_entry import EntryStatus, JournalEntry, JournalEntryItem
from ledger_app.posting.balances import (
    LedgerHead,
    check_balance,
    derive_ledger_rows,
    item_side_error,
    signed_delta,
    to_amount,
)
from ledger_app.posting.errors import (
    AlreadyPostedError,
    EntryVoidedError,
    FiscalPeriodClosedError,
    InvalidEntryError,
    LedgerError,
    NotFoundError,
    StorageError,
    UnbalancedEntryError,
)

logger = logging.getLogger(__name__)

TRANSIENT_ERRORS = (OperationalError, StaleDataError)

# Unique keys a concurrent posting can collide on. PostgreSQL reports the
# constraint name, SQLite the constrained columns.
RACE_CONSTRAINTS = (
    "uq_general_ledger_account_sequence",
    "uq_account_balance_period_account",
    "general_ledger.sequence",
    "account_balances.account_id",
)


@dataclass
class PostingResult:
    """Outcome of a successful posting."""

    id: int
    entry_no: str
    status: str
    posted_at: datetime
    ledger_rows: int

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "entry_no": self.entry_no,
            "status": self.status,
            "posted_at": self.posted_at.isoformat(),
            "ledger_rows": self.ledger_rows,
        }


def post_journal_entry(
    db: Session,
    organization_id: int,
    journal_entry_id: int,
    acting_user_id: int,
    settings: Settings | None = None,
) -> PostingResult:
    """
    Post a draft journal entry to the general ledger.

    Args:
        db: SQLAlchemy session; committed on success, rolled back on failure
        organization_id: Tenant the entry must belong to
        journal_entry_id: Entry to post
        acting_user_id: Recorded as the entry's approver

    Returns:
        PostingResult with the new status and the number of ledger rows written.

    Raises:
        LedgerError subclasses for validation failures, StorageError when the
        store fails (after rollback).
    """
    settings = settings or get_settings()
    attempts = settings.posting_max_retries + 1

    for attempt in range(1, attempts + 1):
        try:
            result = _post_once(db, organization_id, journal_entry_id, acting_user_id, settings)
        except LedgerError as e:
            db.rollback()
            logger.info(
                "Journal entry %s not posted: %s (%s)", journal_entry_id, e.code, e.message
            )
            raise
        except (OperationalError, StaleDataError, IntegrityError) as e:
            db.rollback()
            if not _is_transient(e):
                logger.exception("Posting journal entry %s hit a constraint violation", journal_entry_id)
                raise StorageError(
                    f"Posting journal entry {journal_entry_id} violated a database constraint: {e.orig}"
                ) from e
            if attempt < attempts:
                logger.warning(
                    "Transient failure posting journal entry %s (attempt %d/%d): %s",
                    journal_entry_id,
                    attempt,
                    attempts,
                    e,
                )
                time.sleep(settings.posting_retry_backoff_ms * attempt / 1000)
                continue
            logger.error(
                "Giving up on journal entry %s after %d attempts: %s",
                journal_entry_id,
                attempts,
                e,
            )
            raise StorageError(
                f"Posting journal entry {journal_entry_id} failed after {attempts} attempts",
                retryable=True,
            ) from e
        except Exception as e:
            db.rollback()
            logger.exception("Posting journal entry %s failed", journal_entry_id)
            raise StorageError(f"Posting journal entry {journal_entry_id} failed: {e}") from e

        logger.info(
            "Posted journal entry %s (%d ledger rows) for organization %s",
            result.entry_no,
            result.ledger_rows,
            organization_id,
        )
        return result


def _post_once(
    db: Session,
    organization_id: int,
    journal_entry_id: int,
    acting_user_id: int,
    settings: Settings,
) -> PostingResult:
    _apply_timeouts(db, settings)

    # ─── Steps 1-4: validation, no writes ───────────────────────────────
    entry = (
        db.query(JournalEntry)
        .filter(
            JournalEntry.id == journal_entry_id,
            JournalEntry.organization_id == organization_id,
        )
        .with_for_update()
        .populate_existing()
        .first()
    )
    if not entry:
        raise NotFoundError(f"Journal entry {journal_entry_id} not found")

    if entry.status == EntryStatus.POSTED:
        raise AlreadyPostedError("Journal entry is already posted")
    if entry.status == EntryStatus.VOIDED:
        raise EntryVoidedError("Cannot post a voided journal entry")

    period = db.get(FiscalPeriod, entry.fiscal_period_id)
    if period is None:
        raise NotFoundError(f"Fiscal period {entry.fiscal_period_id} not found")
    if period.is_closed:
        raise FiscalPeriodClosedError("Cannot post journal entries to a closed fiscal period")

    items = (
        db.query(JournalEntryItem)
        .filter(JournalEntryItem.journal_entry_id == entry.id)
        .order_by(JournalEntryItem.id)
        .all()
    )
    _validate_items(items)

    check = check_balance(items, settings.balance_tolerance, settings.balance_tolerance_mode)
    if not check.is_balanced:
        raise UnbalancedEntryError(check.total_debit, check.total_credit, check.difference)

    accounts = _lock_accounts(db, organization_id, {item.account_id for item in items})
    normal_balances = {account_id: a.normal_balance for account_id, a in accounts.items()}

    # ─── Steps 5-8: writes ──────────────────────────────────────────────
    heads = {
        account_id: _ledger_head(db, organization_id, account_id)
        for account_id in sorted(accounts)
    }
    rows = derive_ledger_rows(entry, items, normal_balances, heads)
    db.add_all(rows)
    db.flush()

    _apply_to_balances(db, entry, items, normal_balances)

    now = datetime.utcnow()
    entry.status = EntryStatus.POSTED.value
    entry.posted_at = now
    entry.approved_by = acting_user_id
    entry.updated_at = now
    db.flush()

    db.commit()

    return PostingResult(
        id=entry.id,
        entry_no=entry.entry_no,
        status=EntryStatus.POSTED.value,
        posted_at=now,
        ledger_rows=len(rows),
    )


def _is_transient(error: Exception) -> bool:
    """Lock/timeout failures and lost races on the ledger's unique keys can succeed on retry."""
    if isinstance(error, TRANSIENT_ERRORS):
        return True
    message = str(getattr(error, "orig", error))
    return any(marker in message for marker in RACE_CONSTRAINTS)


def _apply_timeouts(db: Session, settings: Settings) -> None:
    """Bound the posting transaction on PostgreSQL; other stores rely on their own limits."""
    if db.get_bind().dialect.name != "postgresql":
        return
    db.execute(text(f"SET LOCAL statement_timeout = {int(settings.posting_statement_timeout_ms)}"))
    db.execute(text(f"SET LOCAL lock_timeout = {int(settings.posting_lock_timeout_ms)}"))


def _validate_items(items: list[JournalEntryItem]) -> None:
    if len(items) < 2:
        raise InvalidEntryError("A journal entry needs at least two items")
    for position, item in enumerate(items, start=1):
        problem = item_side_error(item)
        if problem:
            raise InvalidEntryError(
                f"Item {position}: {problem}",
                details={"item_id": item.id},
            )


def _lock_accounts(db: Session, organization_id: int, account_ids: set[int]) -> dict[int, Account]:
    """Lock the touched accounts in id order so concurrent postings queue instead of deadlocking."""
    accounts = (
        db.query(Account)
        .filter(
            Account.id.in_(account_ids),
            Account.organization_id == organization_id,
        )
        .order_by(Account.id)
        .with_for_update()
        .all()
    )
    found = {account.id: account for account in accounts}
    missing = sorted(account_ids - found.keys())
    if missing:
        raise InvalidEntryError(
            "One or more accounts do not exist in this organization",
            details={"account_ids": missing},
        )
    return found


def _ledger_head(db: Session, organization_id: int, account_id: int) -> LedgerHead:
    last = (
        db.query(GeneralLedgerEntry.base_balance, GeneralLedgerEntry.sequence)
        .filter(
            GeneralLedgerEntry.organization_id == organization_id,
            GeneralLedgerEntry.account_id == account_id,
        )
        .order_by(GeneralLedgerEntry.sequence.desc())
        .first()
    )
    if last is None:
        return LedgerHead()
    return LedgerHead(balance=to_amount(last.base_balance), sequence=last.sequence)


def _apply_to_balances(db: Session, entry: JournalEntry, items, normal_balances: dict) -> None:
    """Create or increment the period balance of every touched account, item by item."""
    now = datetime.utcnow()
    balances: dict[int, AccountBalance] = {}

    for item in items:
        balance = balances.get(item.account_id)
        if balance is None:
            balance = (
                db.query(AccountBalance)
                .filter(
                    AccountBalance.organization_id == entry.organization_id,
                    AccountBalance.fiscal_period_id == entry.fiscal_period_id,
                    AccountBalance.account_id == item.account_id,
                )
                .with_for_update()
                .populate_existing()
                .first()
            )
        if balance is None:
            balance = AccountBalance(
                organization_id=entry.organization_id,
                fiscal_period_id=entry.fiscal_period_id,
                account_id=item.account_id,
                currency_code=entry.currency_code,
                opening_balance=to_amount(0),
                debit_amount=to_amount(0),
                credit_amount=to_amount(0),
                base_opening_balance=to_amount(0),
                base_debit_amount=to_amount(0),
                base_credit_amount=to_amount(0),
            )
            db.add(balance)
        balances[item.account_id] = balance

        normal_balance = normal_balances[item.account_id]

        balance.debit_amount = to_amount(balance.debit_amount) + to_amount(item.debit_amount)
        balance.credit_amount = to_amount(balance.credit_amount) + to_amount(item.credit_amount)
        balance.closing_balance = to_amount(balance.opening_balance) + signed_delta(
            normal_balance, balance.debit_amount, balance.credit_amount
        )

        balance.base_debit_amount = to_amount(balance.base_debit_amount) + to_amount(
            item.base_debit_amount
        )
        balance.base_credit_amount = to_amount(balance.base_credit_amount) + to_amount(
            item.base_credit_amount
        )
        balance.base_closing_balance = to_amount(balance.base_opening_balance) + signed_delta(
            normal_balance, balance.base_debit_amount, balance.base_credit_amount
        )
        balance.last_updated_at = now

    db.flush()
