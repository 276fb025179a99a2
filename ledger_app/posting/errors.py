"""
Errors raised by the posting engine and entry authoring.

Each error carries a stable `code` and the HTTP status the API layer should
answer with. `to_dict()` is the payload handed to HTTPException; Decimal
details are rendered as strings so the payload stays JSON-serializable.
"""

from decimal import Decimal


class LedgerError(Exception):
    code = "LEDGER_ERROR"
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        payload = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = {
                key: str(value) if isinstance(value, Decimal) else value
                for key, value in self.details.items()
            }
        return payload


class NotFoundError(LedgerError):
    code = "NOT_FOUND"
    status_code = 404


class AlreadyPostedError(LedgerError):
    code = "ALREADY_POSTED"


class EntryVoidedError(LedgerError):
    code = "ENTRY_VOIDED"


class FiscalPeriodClosedError(LedgerError):
    code = "FISCAL_PERIOD_CLOSED"


class InvalidEntryError(LedgerError):
    code = "INVALID_ENTRY"


class UnbalancedEntryError(LedgerError):
    code = "UNBALANCED_ENTRY"

    def __init__(self, total_debit: Decimal, total_credit: Decimal, difference: Decimal):
        super().__init__(
            "Journal entry must balance (total debits must equal total credits)",
            details={
                "total_debit": total_debit,
                "total_credit": total_credit,
                "difference": difference,
            },
        )
        self.total_debit = total_debit
        self.total_credit = total_credit
        self.difference = difference


class StorageError(LedgerError):
    """The store failed mid-posting. Raised only after the transaction was rolled back."""

    code = "STORAGE_ERROR"

    def __init__(self, message: str, retryable: bool = False):
        super().__init__(message, details={"retryable": retryable})
        self.retryable = retryable
        self.status_code = 503 if retryable else 500
