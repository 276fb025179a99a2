"""Journal entry endpoints: create, list, fetch, post and void entries."""

import math
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ledger_app.api.deps import get_acting_user_id, ledger_http_error
from ledger_app.db.session import get_db
from ledger_app.models.journal_entry import EntryStatus, JournalEntry
from ledger_app.posting import post_journal_entry
from ledger_app.posting.errors import LedgerError
from ledger_app.services import entry_service
from ledger_app.api.v1.schemas.journal import (
    JournalEntryCreate,
    JournalEntryItemResponse,
    JournalEntryResponse,
    JournalEntrySummary,
    JournalListResponse,
    Pagination,
    PostEntryResponse,
)

router = APIRouter(
    prefix="/organizations/{organization_id}/journal-entries",
    tags=["Journal Entries"],
)


def _entry_to_summary(entry: JournalEntry) -> JournalEntrySummary:
    return JournalEntrySummary(
        id=entry.id,
        entry_no=entry.entry_no,
        entry_date=entry.entry_date,
        description=entry.description,
        reference=entry.reference,
        status=entry.status,
        currency_code=entry.currency_code,
        created_at=entry.created_at,
        posted_at=entry.posted_at,
    )


def _entry_to_response(entry: JournalEntry) -> JournalEntryResponse:
    """Convert a JournalEntry ORM object (items loaded) to a response schema."""
    return JournalEntryResponse(
        **_entry_to_summary(entry).model_dump(),
        fiscal_period_id=entry.fiscal_period_id,
        source=entry.source,
        exchange_rate=entry.exchange_rate,
        created_by=entry.created_by,
        approved_by=entry.approved_by,
        updated_at=entry.updated_at,
        items=[
            JournalEntryItemResponse(
                id=item.id,
                account_id=item.account_id,
                account_code=item.account.code if item.account else None,
                account_name=item.account.name if item.account else None,
                description=item.description,
                debit_amount=item.debit_amount,
                credit_amount=item.credit_amount,
                base_debit_amount=item.base_debit_amount,
                base_credit_amount=item.base_credit_amount,
                memo=item.memo,
                dimensions=item.dimensions,
            )
            for item in entry.items
        ],
    )


@router.get("", response_model=JournalListResponse)
def list_journal_entries(
    organization_id: int,
    status: str | None = Query(None, description="Filter by status: draft, posted, voided"),
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    reference: str | None = Query(None),
    search: str | None = Query(None, description="Match entry number, description or reference"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    db: Session = Depends(get_db),
):
    """List journal entries for an organization, newest first."""
    if status:
        try:
            EntryStatus(status)
        except ValueError:
            raise HTTPException(
                status_code=400,
                detail=f"Invalid status '{status}'. Use: draft, posted, voided",
            )

    total, entries = entry_service.list_entries(
        db,
        organization_id,
        status=status,
        start_date=start_date,
        end_date=end_date,
        reference=reference,
        search=search,
        page=page,
        limit=limit,
    )

    return JournalListResponse(
        entries=[_entry_to_summary(e) for e in entries],
        pagination=Pagination(
            total=total,
            page=page,
            limit=limit,
            pages=math.ceil(total / limit),
        ),
    )


@router.post("", response_model=JournalEntryResponse, status_code=201)
def create_journal_entry(
    organization_id: int,
    request: JournalEntryCreate,
    acting_user_id: int = Depends(get_acting_user_id),
    db: Session = Depends(get_db),
):
    """
    Create a draft journal entry.

    The entry must balance and reference active accounts in an open fiscal
    period of this organization. It is numbered JE-<year>-<sequence>.
    """
    try:
        entry = entry_service.create_draft_entry(
            db,
            organization_id,
            acting_user_id,
            entry_date=request.entry_date,
            fiscal_period_id=request.fiscal_period_id,
            items=request.items,
            description=request.description,
            reference=request.reference,
            currency_code=request.currency_code,
            exchange_rate=request.exchange_rate,
        )
        entry = entry_service.get_entry(db, organization_id, entry.id)
    except LedgerError as e:
        raise ledger_http_error(e) from e

    return _entry_to_response(entry)


@router.get("/{journal_entry_id}", response_model=JournalEntryResponse)
def get_journal_entry(
    organization_id: int,
    journal_entry_id: int,
    db: Session = Depends(get_db),
):
    """Get a single journal entry with its items."""
    try:
        entry = entry_service.get_entry(db, organization_id, journal_entry_id)
    except LedgerError as e:
        raise ledger_http_error(e) from e

    return _entry_to_response(entry)


@router.post("/{journal_entry_id}/post", response_model=PostEntryResponse)
def post_entry(
    organization_id: int,
    journal_entry_id: int,
    acting_user_id: int = Depends(get_acting_user_id),
    db: Session = Depends(get_db),
):
    """
    Post a draft entry to the general ledger.

    Writes one ledger row per item and updates the period balances of every
    touched account in a single transaction. Failed postings leave the entry
    in draft; a STORAGE_ERROR with retryable=true can simply be retried.
    """
    try:
        result = post_journal_entry(db, organization_id, journal_entry_id, acting_user_id)
    except LedgerError as e:
        raise ledger_http_error(e) from e

    return PostEntryResponse(
        id=result.id,
        entry_no=result.entry_no,
        status=result.status,
        posted_at=result.posted_at,
        ledger_rows=result.ledger_rows,
    )


@router.post("/{journal_entry_id}/void", response_model=JournalEntrySummary)
def void_journal_entry(
    organization_id: int,
    journal_entry_id: int,
    acting_user_id: int = Depends(get_acting_user_id),
    db: Session = Depends(get_db),
):
    """Void a draft entry. Posted entries cannot be voided."""
    try:
        entry = entry_service.void_entry(db, organization_id, journal_entry_id, acting_user_id)
    except LedgerError as e:
        raise ledger_http_error(e) from e

    return _entry_to_summary(entry)
