"""
Balance arithmetic for posting.

Pure functions only: no session, no I/O. The engine feeds them loaded rows
and persists what they return.

Sign convention:
  - debit-normal account (asset, expense):    delta = debit - credit
  - credit-normal account (liability, equity, revenue): delta = credit - debit
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

from ledger_app.models.account import NormalBalance
from ledger_app.models.general_ledger import GeneralLedgerEntry

AMOUNT_QUANTUM = Decimal("0.0001")
ZERO = Decimal("0")

TOLERANCE_ABSOLUTE = "absolute"
TOLERANCE_RELATIVE = "relative"


def to_amount(value) -> Decimal:
    """Coerce a stored or submitted amount to a 4-place Decimal. None counts as zero."""
    if value is None:
        return ZERO.quantize(AMOUNT_QUANTUM)
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(AMOUNT_QUANTUM, rounding=ROUND_HALF_UP)


def signed_delta(normal_balance: NormalBalance | str, debit, credit) -> Decimal:
    """Amount by which a debit/credit pair moves an account's balance."""
    debit, credit = to_amount(debit), to_amount(credit)
    if NormalBalance(normal_balance) == NormalBalance.DEBIT:
        return debit - credit
    return credit - debit


@dataclass
class BalanceCheck:
    total_debit: Decimal
    total_credit: Decimal
    difference: Decimal
    allowed: Decimal

    @property
    def is_balanced(self) -> bool:
        return abs(self.difference) <= self.allowed


def check_balance(
    items: Iterable,
    tolerance: Decimal = Decimal("0.01"),
    mode: str = TOLERANCE_ABSOLUTE,
) -> BalanceCheck:
    """
    Sum native debit and credit amounts and compare the difference to the tolerance.

    In absolute mode the allowed difference is the tolerance itself. In
    relative mode it is the tolerance times the larger side, floored at one
    unit of the last stored decimal place.
    """
    total_debit = ZERO
    total_credit = ZERO
    for item in items:
        total_debit += to_amount(item.debit_amount)
        total_credit += to_amount(item.credit_amount)

    return BalanceCheck(
        total_debit=total_debit,
        total_credit=total_credit,
        difference=total_debit - total_credit,
        allowed=allowed_difference(total_debit, total_credit, tolerance, mode),
    )


def allowed_difference(
    total_debit: Decimal,
    total_credit: Decimal,
    tolerance: Decimal,
    mode: str = TOLERANCE_ABSOLUTE,
) -> Decimal:
    """Largest debit/credit difference still accepted as balanced."""
    if mode == TOLERANCE_RELATIVE:
        return max(tolerance * max(total_debit, total_credit), AMOUNT_QUANTUM)
    if mode == TOLERANCE_ABSOLUTE:
        return tolerance
    raise ValueError(f"Unknown balance tolerance mode '{mode}'")


def item_side_error(item) -> str | None:
    """Describe why an item is not a valid one-sided line, or None if it is."""
    debit, credit = to_amount(item.debit_amount), to_amount(item.credit_amount)
    if debit < 0 or credit < 0:
        return "amounts must not be negative"
    if debit and credit:
        return "an item cannot carry both a debit and a credit"
    if not debit and not credit:
        return "an item must carry a debit or a credit"
    return None


@dataclass
class LedgerHead:
    """Latest running balance of one account, as seen inside the posting transaction."""

    balance: Decimal = ZERO
    sequence: int = 0


def derive_ledger_rows(entry, items, normal_balances: dict, heads: dict) -> list[GeneralLedgerEntry]:
    """
    Build one ledger row per item, in item order.

    `normal_balances` maps account id to its normal side; `heads` maps account
    id to its LedgerHead and is advanced in place, so two items on the same
    account chain their running balances.
    """
    rows = []
    for item in items:
        head = heads.setdefault(item.account_id, LedgerHead())
        delta = signed_delta(
            normal_balances[item.account_id],
            item.base_debit_amount,
            item.base_credit_amount,
        )
        head.balance = head.balance + delta
        head.sequence += 1

        rows.append(
            GeneralLedgerEntry(
                organization_id=entry.organization_id,
                fiscal_period_id=entry.fiscal_period_id,
                account_id=item.account_id,
                journal_entry_id=entry.id,
                journal_entry_item_id=item.id,
                sequence=head.sequence,
                transaction_date=entry.entry_date,
                description=item.description or entry.description,
                debit_amount=to_amount(item.debit_amount),
                credit_amount=to_amount(item.credit_amount),
                balance=head.balance,
                currency_code=entry.currency_code,
                base_debit_amount=to_amount(item.base_debit_amount),
                base_credit_amount=to_amount(item.base_credit_amount),
                base_balance=head.balance,
                dimensions=item.dimensions,
            )
        )
    return rows
