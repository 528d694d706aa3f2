# Overview: Service-layer sequential document numbering; atomic per-user counters and number formatting.

"""
Sequential document numbers: FAC-2025-0001, DEV-2025-0001, DEP-2025-0001, REC-2025-0001.

Counters live on the users row, one column per document type. Allocation
is a single UPDATE ... SET n = n + 1 followed by a read-back, so two
concurrent requests can never receive the same value; the issued number is
the incremented value minus one. Deleting a document never rewinds a
counter, so numbers are strictly increasing and never reused.
"""

from __future__ import annotations

from sqlalchemy import update

from ..extensions import db
from ..models import User
from .concurrency import run_with_retry
from facturflow.time_utils import utcnow


COUNTER_COLUMNS = {
    "INVOICE": "next_invoice_number",
    "QUOTE": "next_quote_number",
    "DEPOSIT": "next_deposit_number",
    "RECEIPT": "next_receipt_number",
}

# Deposits and receipts use fixed prefixes; invoice and quote prefixes are per user
FIXED_PREFIXES = {
    "DEPOSIT": "DEP",
    "RECEIPT": "REC",
}

DRAFT_PREFIX = "DRAFT"


class NumberingError(Exception):
    """Raised when a number cannot be allocated."""
    pass


def format_number(prefix: str, year: int, value: int, pad: int = 4) -> str:
    return f"{prefix}-{year}-{value:0{pad}d}"


def prefix_for(user: User, doc_type: str) -> str:
    if doc_type == "INVOICE":
        return user.invoice_prefix or "FAC"
    if doc_type == "QUOTE":
        return user.quote_prefix or "DEV"
    if doc_type in FIXED_PREFIXES:
        return FIXED_PREFIXES[doc_type]
    raise NumberingError(f"Unknown document type: {doc_type}")


def _counter_column(doc_type: str):
    try:
        return getattr(User, COUNTER_COLUMNS[doc_type])
    except KeyError:
        raise NumberingError(f"Unknown document type: {doc_type}")


def allocate_number(user_id: int, doc_type: str, *, year: int | None = None) -> str:
    """
    Atomically consume the next number of doc_type for user_id.

    The counter update joins the caller's transaction; it is committed with
    the document that carries the number.
    """
    column = _counter_column(doc_type)
    year = year or utcnow().year

    def _op() -> str:
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values({column: column + 1})
        )
        result = db.session.execute(stmt)
        if not result.rowcount:
            raise NumberingError(f"User {user_id} not found")
        db.session.flush()

        user = db.session.get(User, user_id)
        current = db.session.query(column).filter(User.id == user_id).scalar()
        return format_number(prefix_for(user, doc_type), year, current - 1)

    return run_with_retry(_op)


def preview_next_number(user_id: int, doc_type: str, *, year: int | None = None) -> str:
    """Next number of doc_type without consuming it."""
    column = _counter_column(doc_type)
    user = db.session.get(User, user_id)
    if user is None:
        raise NumberingError(f"User {user_id} not found")
    current = db.session.query(column).filter(User.id == user_id).scalar()
    return format_number(prefix_for(user, doc_type), year or utcnow().year, current)


def preview_all(user_id: int) -> dict:
    return {doc_type.lower(): preview_next_number(user_id, doc_type) for doc_type in COUNTER_COLUMNS}


def draft_number() -> str:
    """Temporary number for drafts saved before official numbering."""
    return f"{DRAFT_PREFIX}-{utcnow().strftime('%Y%m%d%H%M%S%f')}"


def is_draft_number(number: str | None) -> bool:
    return bool(number) and number.startswith(f"{DRAFT_PREFIX}-")
