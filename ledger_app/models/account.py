import enum
from datetime import datetime
from sqlalchemy import String, Text, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_app.db.base import Base


class NormalBalance(str, enum.Enum):
    DEBIT = "debit"
    CREDIT = "credit"


class AccountType(Base):
    """Asset, liability, equity, revenue, expense."""

    __tablename__ = "account_types"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    normal_balance: Mapped[str] = mapped_column(String(6), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=True)

    accounts: Mapped[list["Account"]] = relationship(
        "Account", back_populates="account_type"
    )

    def __repr__(self) -> str:
        return f"<AccountType {self.name} ({self.normal_balance})>"


class Account(Base):
    """Chart of accounts entry. Read-only to the posting engine."""

    __tablename__ = "accounts"
    __table_args__ = (UniqueConstraint("code", "organization_id"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    organization_id: Mapped[int] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    account_type_id: Mapped[int] = mapped_column(
        ForeignKey("account_types.id"), nullable=False
    )
    code: Mapped[str] = mapped_column(String(20), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    account_type: Mapped["AccountType"] = relationship(
        "AccountType", back_populates="accounts"
    )

    @property
    def normal_balance(self) -> NormalBalance:
        return NormalBalance(self.account_type.normal_balance)

    def __repr__(self) -> str:
        return f"<Account {self.code}: {self.name}>"
