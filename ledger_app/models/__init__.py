from ledger_app.models.organization import Organization
from ledger_app.models.account import Account, AccountType, NormalBalance
from ledger_app.models.fiscal_period import FiscalYear, FiscalPeriod
from ledger_app.models.journal_entry import JournalEntry, JournalEntryItem, EntryStatus
from ledger_app.models.general_ledger import GeneralLedgerEntry
from ledger_app.models.account_balance import AccountBalance

__all__ = [
    "Organization",
    "Account",
    "AccountType",
    "NormalBalance",
    "FiscalYear",
    "FiscalPeriod",
    "JournalEntry",
    "JournalEntryItem",
    "EntryStatus",
    "GeneralLedgerEntry",
    "AccountBalance",
]
