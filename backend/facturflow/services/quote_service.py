# Overview: Service-layer operations for quotes; numbering, public accept/refuse tokens, acceptance side effects.

"""
Quotes (devis).

A quote gets its official DEV-YYYY-NNNN number at creation and two random
tokens. The tokens back the public accept/refuse links sent to the client
by email; they only work while the quote is SENT, so a quote is answered
at most once per sending.

ACCEPTANCE: when a quote carrying a deposit amount is accepted, either by
the client through the public link or by the user from the dashboard, a
deposit invoice is generated for it (see deposit_service).
"""

from __future__ import annotations

import uuid
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import Document
from . import deposit_service, document_service, numbering_service
from .concurrency import lock_for_update, run_with_retry
from .document_service import DocumentError
from .lifecycle_service import transition_document
from facturflow.time_utils import utcnow, utctoday


DOC_TYPE = "QUOTE"
DEFAULT_VALIDITY_DAYS = 30

# Reasons reported to the public response pages
REASON_INVALID_TOKEN = "token_invalide"
REASON_ALREADY_ACCEPTED = "deja_accepte"
REASON_ALREADY_REFUSED = "deja_refuse"
REASON_INVALID_STATUS = "statut_invalide"


def new_token() -> str:
    return str(uuid.uuid4())


def parse_quote_payload(payload: dict) -> dict:
    return document_service.parse_priced_form(
        payload,
        kind_field="quote_type",
        end_field="valid_until",
        end_label="Validity date",
    )


def _fill(document: Document, user_id: int, data: dict) -> Document:
    return document_service.fill_priced_document(document, user_id, data, end_field="valid_until")


def get_quote(user_id: int, quote_id: int) -> Document:
    return document_service.get_document(user_id, DOC_TYPE, quote_id)


def list_quotes(user_id: int, month: str | None = None, status: str | None = None) -> list[Document]:
    return document_service.list_documents(user_id, DOC_TYPE, month=month, status=status)


def preview_next_number(user_id: int) -> str:
    return numbering_service.preview_next_number(user_id, DOC_TYPE)


def create_quote(user_id: int, payload: dict) -> Document:
    data = parse_quote_payload(payload)

    def _op() -> Document:
        document = Document(
            user_id=user_id,
            doc_type=DOC_TYPE,
            status="DRAFT",
            number=numbering_service.allocate_number(user_id, DOC_TYPE),
            accept_token=new_token(),
            refuse_token=new_token(),
        )
        _fill(document, user_id, data)
        db.session.add(document)
        db.session.commit()
        return document

    return run_with_retry(_op)


def update_quote(user_id: int, quote_id: int, payload: dict) -> Document:
    data = parse_quote_payload(payload)

    def _op() -> Document:
        document = document_service.get_document(user_id, DOC_TYPE, quote_id, for_update=True)
        if document.status != "DRAFT":
            raise DocumentError("Only draft quotes can be edited", {"status": document.status})
        _fill(document, user_id, data)
        db.session.commit()
        return document

    return run_with_retry(_op)


def delete_quote(user_id: int, quote_id: int) -> bool:
    return document_service.delete_document(user_id, DOC_TYPE, quote_id)


def duplicate_quote(user_id: int, quote_id: int) -> Document:
    """New number, new tokens, DRAFT, validity period kept from today."""
    def _op() -> Document:
        original = get_quote(user_id, quote_id)
        today = utctoday()
        if original.valid_until and original.issue_date and original.valid_until >= original.issue_date:
            validity = original.valid_until - original.issue_date
        else:
            validity = timedelta(days=DEFAULT_VALIDITY_DAYS)
        copy = document_service.copy_document(
            original,
            numbering_service.allocate_number(user_id, DOC_TYPE),
            valid_until=today + validity,
            accept_token=new_token(),
            refuse_token=new_token(),
        )
        db.session.add(copy)
        db.session.commit()
        return copy

    return run_with_retry(_op)


def send_quote(user_id: int, quote_id: int) -> Document:
    """Mark a draft quote as sent. Only DRAFT quotes can be sent this way."""
    document = document_service.get_document(user_id, DOC_TYPE, quote_id, for_update=True)
    if document.status != "DRAFT":
        raise DocumentError("Only draft quotes can be sent", {"status": document.status})
    transition_document(document, "SENT")
    db.session.commit()
    return document


def _after_acceptance(document: Document) -> Document | None:
    """Generate the deposit of an accepted quote, once."""
    if document.deposit_cents <= 0:
        return None
    if deposit_service.deposit_for_quote(document.id) is not None:
        return None
    return deposit_service.create_deposit_from_quote(document.id, document.user_id)


def change_quote_status(user_id: int, quote_id: int, status: str) -> Document:
    document = document_service.change_status(user_id, DOC_TYPE, quote_id, status)
    if document.status == "ACCEPTED":
        _after_acceptance(document)
    return document


def respond_by_token(token: str, accept: bool) -> tuple[Document | None, str | None]:
    """
    Public response to a quote link.

    Returns (quote, None) on success or (quote_or_None, reason) when the
    link cannot be used: unknown token, quote already answered, or quote
    not in SENT status.
    """
    column = Document.accept_token if accept else Document.refuse_token
    document = lock_for_update(
        db.session.query(Document).filter(column == token, Document.doc_type == DOC_TYPE)
    ).first()

    if document is None:
        return None, REASON_INVALID_TOKEN

    if document.status != "SENT":
        if document.status == "ACCEPTED":
            reason = REASON_ALREADY_ACCEPTED
        elif document.status == "REJECTED":
            reason = REASON_ALREADY_REFUSED
        else:
            reason = REASON_INVALID_STATUS
        current_app.logger.warning(
            "Refused public quote response quote_id=%s status=%s reason=%s",
            document.id, document.status, reason,
        )
        return document, reason

    transition_document(document, "ACCEPTED" if accept else "REJECTED")
    document.responded_at = utcnow()
    db.session.commit()

    if accept:
        _after_acceptance(document)
    return document, None


def quote_links(document: Document, app_url: str) -> dict:
    base = app_url.rstrip("/")
    return {
        "accept": f"{base}/api/public/quotes/accept/{document.accept_token}",
        "refuse": f"{base}/api/public/quotes/refuse/{document.refuse_token}",
    }
