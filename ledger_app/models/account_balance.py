from datetime import datetime
from decimal import Decimal
from sqlalchemy import String, DateTime, Numeric, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_app.db.base import Base


class AccountBalance(Base):
    """
    Per (organization, fiscal period, account) aggregate of the ledger.

    closing = opening + debits - credits for debit-normal accounts and
    opening + credits - debits for credit-normal ones. `version` is bumped on
    every update; a concurrent writer holding a stale copy gets StaleDataError.
    """

    __tablename__ = "account_balances"
    __table_args__ = (
        UniqueConstraint(
            "organization_id", "fiscal_period_id", "account_id",
            name="uq_account_balance_period_account",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    organization_id: Mapped[int] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    fiscal_period_id: Mapped[int] = mapped_column(
        ForeignKey("fiscal_periods.id"), nullable=False
    )
    account_id: Mapped[int] = mapped_column(ForeignKey("accounts.id"), nullable=False)
    currency_code: Mapped[str] = mapped_column(String(3), nullable=True)

    opening_balance: Mapped[Decimal] = mapped_column(Numeric(19, 4), default=Decimal("0"))
    debit_amount: Mapped[Decimal] = mapped_column(Numeric(19, 4), default=Decimal("0"))
    credit_amount: Mapped[Decimal] = mapped_column(Numeric(19, 4), default=Decimal("0"))
    closing_balance: Mapped[Decimal] = mapped_column(Numeric(19, 4), default=Decimal("0"))
    base_opening_balance: Mapped[Decimal] = mapped_column(Numeric(19, 4), default=Decimal("0"))
    base_debit_amount: Mapped[Decimal] = mapped_column(Numeric(19, 4), default=Decimal("0"))
    base_credit_amount: Mapped[Decimal] = mapped_column(Numeric(19, 4), default=Decimal("0"))
    base_closing_balance: Mapped[Decimal] = mapped_column(Numeric(19, 4), default=Decimal("0"))

    version: Mapped[int] = mapped_column(nullable=False)
    last_updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    account: Mapped["Account"] = relationship("Account")

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return (
            f"<AccountBalance period={self.fiscal_period_id} "
            f"account={self.account_id}: {self.closing_balance}>"
        )
