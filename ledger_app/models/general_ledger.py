from datetime import date, datetime
from decimal import Decimal
from sqlalchemy import String, Text, Date, DateTime, Numeric, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_app.db.base import Base
from ledger_app.db.types import Dimensions


class GeneralLedgerEntry(Base):
    """
    Append-only ledger row derived from one posted journal entry item.

    `sequence` numbers the rows of one (organization, account) pair; the
    running balance of row n equals the balance of row n-1 plus this row's
    signed amount. Rows are never updated or deleted.
    """

    __tablename__ = "general_ledger"
    __table_args__ = (
        UniqueConstraint(
            "organization_id", "account_id", "sequence", name="uq_general_ledger_account_sequence"
        ),
        Index("general_ledger_organization_account_idx", "organization_id", "account_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    organization_id: Mapped[int] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    fiscal_period_id: Mapped[int] = mapped_column(
        ForeignKey("fiscal_periods.id"), nullable=False, index=True
    )
    account_id: Mapped[int] = mapped_column(ForeignKey("accounts.id"), nullable=False)
    journal_entry_id: Mapped[int] = mapped_column(
        ForeignKey("journal_entries.id"), nullable=False, index=True
    )
    journal_entry_item_id: Mapped[int] = mapped_column(
        ForeignKey("journal_entry_items.id"), nullable=False
    )
    sequence: Mapped[int] = mapped_column(nullable=False)

    transaction_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=True)
    debit_amount: Mapped[Decimal] = mapped_column(Numeric(19, 4), default=Decimal("0"))
    credit_amount: Mapped[Decimal] = mapped_column(Numeric(19, 4), default=Decimal("0"))
    balance: Mapped[Decimal] = mapped_column(Numeric(19, 4), nullable=False)
    currency_code: Mapped[str] = mapped_column(String(3), nullable=False)
    base_debit_amount: Mapped[Decimal] = mapped_column(Numeric(19, 4), default=Decimal("0"))
    base_credit_amount: Mapped[Decimal] = mapped_column(Numeric(19, 4), default=Decimal("0"))
    base_balance: Mapped[Decimal] = mapped_column(Numeric(19, 4), nullable=False)
    dimensions: Mapped[dict] = mapped_column(Dimensions, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<GeneralLedgerEntry {self.account_id}#{self.sequence}: {self.balance}>"
