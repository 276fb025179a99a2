import enum
from datetime import date, datetime
from decimal import Decimal
from sqlalchemy import (
    String, Text, Date, DateTime, Numeric, ForeignKey,
    CheckConstraint, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_app.db.base import Base
from ledger_app.db.types import Dimensions


class EntryStatus(str, enum.Enum):
    DRAFT = "draft"
    POSTED = "posted"
    VOIDED = "voided"


class JournalEntry(Base):
    """A balanced transaction proposal. Only the posting engine moves it to posted."""

    __tablename__ = "journal_entries"
    __table_args__ = (UniqueConstraint("organization_id", "entry_no"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    organization_id: Mapped[int] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    entry_no: Mapped[str] = mapped_column(String(50), nullable=False)
    entry_date: Mapped[date] = mapped_column(Date, nullable=False)
    fiscal_period_id: Mapped[int] = mapped_column(
        ForeignKey("fiscal_periods.id"), nullable=False
    )
    description: Mapped[str] = mapped_column(Text, nullable=True)
    reference: Mapped[str] = mapped_column(String(100), nullable=True)
    source: Mapped[str] = mapped_column(String(50), default="manual")
    status: Mapped[str] = mapped_column(String(20), default=EntryStatus.DRAFT.value)
    currency_code: Mapped[str] = mapped_column(String(3), default="USD")
    exchange_rate: Mapped[Decimal] = mapped_column(Numeric(19, 6), default=Decimal("1"))

    # Audit attribution (user ids come from the identity layer)
    created_by: Mapped[int] = mapped_column(nullable=True)
    approved_by: Mapped[int] = mapped_column(nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )
    posted_at: Mapped[datetime] = mapped_column(DateTime, nullable=True)

    items: Mapped[list["JournalEntryItem"]] = relationship(
        "JournalEntryItem",
        back_populates="journal_entry",
        cascade="all, delete-orphan",
        order_by="JournalEntryItem.id",
    )
    fiscal_period: Mapped["FiscalPeriod"] = relationship("FiscalPeriod")

    def __repr__(self) -> str:
        return f"<JournalEntry {self.entry_no} ({self.status})>"


class JournalEntryItem(Base):
    """One debit-or-credit line of a journal entry."""

    __tablename__ = "journal_entry_items"
    __table_args__ = (
        CheckConstraint(
            "debit_amount >= 0 AND credit_amount >= 0", name="ck_item_amounts_non_negative"
        ),
        CheckConstraint(
            "debit_amount = 0 OR credit_amount = 0", name="ck_item_one_sided"
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    journal_entry_id: Mapped[int] = mapped_column(
        ForeignKey("journal_entries.id", ondelete="CASCADE"), nullable=False, index=True
    )
    account_id: Mapped[int] = mapped_column(ForeignKey("accounts.id"), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=True)
    debit_amount: Mapped[Decimal] = mapped_column(Numeric(19, 4), default=Decimal("0"))
    credit_amount: Mapped[Decimal] = mapped_column(Numeric(19, 4), default=Decimal("0"))
    base_debit_amount: Mapped[Decimal] = mapped_column(Numeric(19, 4), default=Decimal("0"))
    base_credit_amount: Mapped[Decimal] = mapped_column(Numeric(19, 4), default=Decimal("0"))
    memo: Mapped[str] = mapped_column(Text, nullable=True)
    dimensions: Mapped[dict] = mapped_column(Dimensions, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    journal_entry: Mapped["JournalEntry"] = relationship(
        "JournalEntry", back_populates="items"
    )
    account: Mapped["Account"] = relationship("Account")

    def __repr__(self) -> str:
        side = "DR" if self.debit_amount else "CR"
        amount = self.debit_amount or self.credit_amount
        return f"<JournalEntryItem {self.account_id}: {side} {amount}>"
