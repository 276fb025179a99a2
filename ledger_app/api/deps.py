"""Shared endpoint dependencies."""

from fastapi import Header, HTTPException

from ledger_app.posting.errors import LedgerError


def get_acting_user_id(x_user_id: int | None = Header(None)) -> int:
    """
    Acting user for audit attribution, supplied by the identity layer in front
    of this service as the X-User-Id header.
    """
    if x_user_id is None:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return x_user_id


def ledger_http_error(error: LedgerError) -> HTTPException:
    """Translate a ledger error into the HTTP error the client sees."""
    return HTTPException(status_code=error.status_code, detail=error.to_dict())
