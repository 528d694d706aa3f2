# Overview: Service-layer status workflows for invoices, quotes and deposits; transition tables and guarded writes.

"""
FacturFlow Document Status Workflows

================================================================================
PURPOSE: Enforce the legal status transitions of each document type
================================================================================

STATE MACHINES (static lookup tables):

    INVOICE:  DRAFT    -> SENT, PAID
              SENT     -> PAID, OVERDUE
              OVERDUE  -> PAID, REMINDED
              REMINDED -> PAID
              PAID     -> SENT, OVERDUE        (payment cancelled)

    QUOTE:    DRAFT     -> SENT
              SENT      -> ACCEPTED, REJECTED
              ACCEPTED  -> SENT                (re-sent after changes)
              REJECTED  -> SENT
              CANCELLED -> SENT                (expired quote re-sent)

    DEPOSIT:  DRAFT   -> SENT
              SENT    -> PAID, OVERDUE
              OVERDUE -> PAID, SENT
              PAID    -> SENT

    RECEIPT:  always PAID, no transitions.

RULES:
1. A transition is checked against the table before any database write.
2. A rejected transition leaves the stored status unchanged.
3. Same-status "transitions" are not in the tables and are rejected.
4. Unknown statuses raise LifecycleError (programming or payload error).

================================================================================
"""

from __future__ import annotations

from ..extensions import db
from ..models import Document
from facturflow.time_utils import utcnow


TRANSITIONS: dict[str, dict[str, tuple[str, ...]]] = {
    "INVOICE": {
        "DRAFT": ("SENT", "PAID"),
        "SENT": ("PAID", "OVERDUE"),
        "OVERDUE": ("PAID", "REMINDED"),
        "REMINDED": ("PAID",),
        "PAID": ("SENT", "OVERDUE"),
    },
    "QUOTE": {
        "DRAFT": ("SENT",),
        "SENT": ("ACCEPTED", "REJECTED"),
        "ACCEPTED": ("SENT",),
        "REJECTED": ("SENT",),
        "CANCELLED": ("SENT",),
    },
    "DEPOSIT": {
        "DRAFT": ("SENT",),
        "SENT": ("PAID", "OVERDUE"),
        "OVERDUE": ("PAID", "SENT"),
        "PAID": ("SENT",),
    },
    "RECEIPT": {
        "PAID": (),
    },
}

VALID_STATUSES: dict[str, frozenset[str]] = {
    doc_type: frozenset(table) | frozenset(s for targets in table.values() for s in targets)
    for doc_type, table in TRANSITIONS.items()
}


class LifecycleError(ValueError):
    """
    Raised for an unknown document type or status.

    This is a domain error, not a technical error.
    """
    pass


class TransitionError(LifecycleError):
    """Raised when a status change is not in the transition table."""

    def __init__(self, from_status: str, to_status: str):
        super().__init__(f"Transition not allowed: {from_status} -> {to_status}")
        self.from_status = from_status
        self.to_status = to_status
        self.details = {"from": from_status, "to": to_status}


def validate_status(doc_type: str, status: str) -> None:
    """
    Validate that a status value is one of the states of doc_type.

    Raises:
        LifecycleError: If doc_type or status is unknown
    """
    if doc_type not in VALID_STATUSES:
        raise LifecycleError(f"Unknown document type '{doc_type}'")
    allowed = VALID_STATUSES[doc_type]
    if status not in allowed:
        raise LifecycleError(
            f"Invalid status '{status}'. Must be one of: {', '.join(sorted(allowed))}"
        )


def allowed_transitions(doc_type: str, status: str) -> list[str]:
    validate_status(doc_type, status)
    return list(TRANSITIONS[doc_type].get(status, ()))


def can_transition(doc_type: str, from_status: str, to_status: str) -> bool:
    validate_status(doc_type, from_status)
    validate_status(doc_type, to_status)
    return to_status in TRANSITIONS[doc_type].get(from_status, ())


def require_transition(doc_type: str, from_status: str, to_status: str) -> None:
    if not can_transition(doc_type, from_status, to_status):
        raise TransitionError(from_status, to_status)


def transition_document(document: Document, to_status: str) -> Document:
    """
    Move a document to to_status after checking the table.

    Stamps sent_at on the first SENT and paid_at on PAID (cleared when a
    payment is cancelled). Does not commit.

    Raises:
        TransitionError: if the move is not allowed; document is untouched
    """
    to_status = (to_status or "").strip().upper()
    require_transition(document.doc_type, document.status, to_status)

    now = utcnow()
    previous = document.status
    document.status = to_status

    if to_status == "SENT" and document.sent_at is None:
        document.sent_at = now
    if to_status == "PAID":
        document.paid_at = now
    elif previous == "PAID":
        document.paid_at = None

    db.session.flush()
    return document
