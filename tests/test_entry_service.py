"""Tests for creating, voiding and listing journal entries."""

from datetime import date
from decimal import Decimal

import pytest

from ledger_app.api.v1.schemas.journal import JournalEntryItemCreate
from ledger_app.models import EntryStatus, JournalEntry
from ledger_app.posting import post_journal_entry
from ledger_app.posting.errors import (
    AlreadyPostedError,
    EntryVoidedError,
    FiscalPeriodClosedError,
    InvalidEntryError,
    NotFoundError,
    UnbalancedEntryError,
)
from ledger_app.services import entry_service

from tests.conftest import ACTING_USER_ID


def _items(books, *lines):
    return [
        JournalEntryItemCreate(
            account_id=books["accounts"][key].id,
            debit_amount=Decimal(str(debit)),
            credit_amount=Decimal(str(credit)),
        )
        for key, debit, credit in lines
    ]


def _create(db, books, items, **kwargs):
    params = {
        "entry_date": date(2025, 1, 10),
        "fiscal_period_id": books["january"].id,
        "items": items,
        "description": "Cash sale",
    }
    params.update(kwargs)
    return entry_service.create_draft_entry(db, books["org"].id, ACTING_USER_ID, **params)


class TestCreateDraft:
    def test_creates_numbered_draft(self, db, books):
        entry = _create(db, books, _items(books, ("cash", 100, 0), ("revenue", 0, 100)))

        assert entry.entry_no == "JE-2025-0001"
        assert entry.status == EntryStatus.DRAFT
        assert entry.created_by == ACTING_USER_ID
        assert entry.currency_code == "USD"
        assert len(entry.items) == 2

    def test_numbers_are_sequential_per_year(self, db, books):
        first = _create(db, books, _items(books, ("cash", 1, 0), ("revenue", 0, 1)))
        second = _create(db, books, _items(books, ("cash", 2, 0), ("revenue", 0, 2)))
        next_year = _create(
            db, books, _items(books, ("cash", 3, 0), ("revenue", 0, 3)), entry_date=date(2026, 1, 2)
        )

        assert [first.entry_no, second.entry_no, next_year.entry_no] == [
            "JE-2025-0001",
            "JE-2025-0002",
            "JE-2026-0001",
        ]

    def test_numbering_past_four_digits(self, db, books, make_entry):
        for entry_no in ("JE-2025-9999", "JE-2025-10000"):
            entry = make_entry([("cash", 1, 0), ("revenue", 0, 1)])
            entry.entry_no = entry_no
            db.commit()

        assert entry_service.next_entry_number(db, books["org"].id, date(2025, 6, 1)) == "JE-2025-10001"

    def test_base_amounts_use_exchange_rate(self, db, books):
        entry = _create(
            db,
            books,
            _items(books, ("cash", "100.00", 0), ("revenue", 0, "100.00")),
            currency_code="EUR",
            exchange_rate=Decimal("1.0845"),
        )

        cash_item = entry.items[0]
        assert cash_item.base_debit_amount == Decimal("108.45")
        assert cash_item.base_credit_amount == Decimal("0")
        assert entry.currency_code == "EUR"

    def test_exchange_rate_stored_at_six_places(self, db, books):
        entry = _create(
            db,
            books,
            _items(books, ("cash", "1000.00", 0), ("revenue", 0, "1000.00")),
            currency_code="EUR",
            exchange_rate=Decimal("1.2345678"),
        )

        db.refresh(entry)
        assert entry.exchange_rate == Decimal("1.234568")
        cash_item = entry.items[0]
        # stored rate times the amount reproduces the stored base amount
        assert cash_item.base_debit_amount == Decimal("1234.5680")
        assert cash_item.base_debit_amount == (
            cash_item.debit_amount * entry.exchange_rate
        ).quantize(Decimal("0.0001"))

    def test_unbalanced_draft_rejected(self, db, books):
        with pytest.raises(UnbalancedEntryError) as exc_info:
            _create(db, books, _items(books, ("cash", "100.00", 0), ("revenue", 0, "99.98")))

        assert exc_info.value.difference == Decimal("0.02")
        assert db.query(JournalEntry).count() == 0

    def test_inactive_account_rejected(self, db, books):
        with pytest.raises(InvalidEntryError, match="Legacy Expense"):
            _create(db, books, _items(books, ("legacy", 10, 0), ("cash", 0, 10)))

    def test_foreign_account_rejected(self, db, books):
        with pytest.raises(InvalidEntryError):
            _create(db, books, _items(books, ("other_cash", 10, 0), ("revenue", 0, 10)))

    def test_closed_period_rejected(self, db, books):
        with pytest.raises(FiscalPeriodClosedError):
            _create(
                db,
                books,
                _items(books, ("cash", 10, 0), ("revenue", 0, 10)),
                fiscal_period_id=books["february"].id,
            )

    def test_period_of_other_organization_rejected(self, db, books):
        with pytest.raises(InvalidEntryError):
            _create(
                db,
                books,
                _items(books, ("cash", 10, 0), ("revenue", 0, 10)),
                fiscal_period_id=books["other_january"].id,
            )

    def test_two_sided_item_rejected(self, db, books):
        with pytest.raises(InvalidEntryError, match="both"):
            _create(db, books, _items(books, ("cash", 10, 10), ("revenue", 0, 0)))

    def test_single_item_rejected(self, db, books):
        with pytest.raises(InvalidEntryError):
            _create(db, books, _items(books, ("cash", 10, 0)))

    def test_non_positive_exchange_rate_rejected(self, db, books):
        with pytest.raises(InvalidEntryError):
            _create(
                db,
                books,
                _items(books, ("cash", 10, 0), ("revenue", 0, 10)),
                exchange_rate=Decimal("0"),
            )


class TestVoid:
    def test_void_draft(self, db, books, make_entry):
        entry = make_entry([("cash", 10, 0), ("revenue", 0, 10)])

        voided = entry_service.void_entry(db, books["org"].id, entry.id, ACTING_USER_ID)

        assert voided.status == EntryStatus.VOIDED

    def test_void_posted_rejected(self, db, books, make_entry, settings):
        entry = make_entry([("cash", 10, 0), ("revenue", 0, 10)])
        post_journal_entry(db, books["org"].id, entry.id, ACTING_USER_ID, settings=settings)

        with pytest.raises(AlreadyPostedError):
            entry_service.void_entry(db, books["org"].id, entry.id, ACTING_USER_ID)

    def test_void_twice_rejected(self, db, books, make_entry):
        entry = make_entry([("cash", 10, 0), ("revenue", 0, 10)], status="voided")

        with pytest.raises(EntryVoidedError):
            entry_service.void_entry(db, books["org"].id, entry.id, ACTING_USER_ID)

    def test_void_unknown_entry(self, db, books):
        with pytest.raises(NotFoundError):
            entry_service.void_entry(db, books["org"].id, 404, ACTING_USER_ID)


class TestListAndGet:
    def test_filters_and_pagination(self, db, books, make_entry):
        make_entry([("cash", 1, 0), ("revenue", 0, 1)], description="Coffee sale", entry_date=date(2025, 1, 3))
        make_entry([("cash", 2, 0), ("revenue", 0, 2)], description="Tea sale", entry_date=date(2025, 1, 20))
        make_entry(
            [("cash", 3, 0), ("revenue", 0, 3)],
            description="Old sale",
            status="voided",
            entry_date=date(2025, 1, 25),
        )
        org_id = books["org"].id

        total, entries = entry_service.list_entries(db, org_id)
        assert total == 3
        assert [e.description for e in entries] == ["Old sale", "Tea sale", "Coffee sale"]

        total, entries = entry_service.list_entries(db, org_id, status="draft")
        assert total == 2

        total, entries = entry_service.list_entries(db, org_id, search="Coffee")
        assert [e.description for e in entries] == ["Coffee sale"]

        total, entries = entry_service.list_entries(db, org_id, start_date=date(2025, 1, 10), end_date=date(2025, 1, 21))
        assert [e.description for e in entries] == ["Tea sale"]

        total, entries = entry_service.list_entries(db, org_id, page=2, limit=2)
        assert total == 3
        assert [e.description for e in entries] == ["Coffee sale"]

    def test_get_entry_scoped_to_organization(self, db, books, make_entry):
        entry = make_entry([("cash", 1, 0), ("revenue", 0, 1)])

        assert entry_service.get_entry(db, books["org"].id, entry.id).id == entry.id
        with pytest.raises(NotFoundError):
            entry_service.get_entry(db, books["other_org"].id, entry.id)
