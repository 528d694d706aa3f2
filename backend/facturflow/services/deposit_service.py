# Overview: Service-layer operations for deposit invoices (acomptes); manual creation and generation from accepted quotes.

"""
Deposits.

A deposit is a single-amount invoice: one line "Acompte" for the HT
amount, VAT on top. It may be linked to the quote it secures through
related_document_id; at most one deposit exists per quote.
"""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..models import Document
from ..validation import (
    ConflictError,
    FieldErrors,
    coerce_int,
    ensure_dict,
    optional_str,
    require_cents,
    require_date,
    require_vat_rate,
)
from . import client_service, document_service, numbering_service
from .concurrency import run_with_retry
from .document_service import DocumentError, ParsedLine
from facturflow.time_utils import utcnow, utctoday


DOC_TYPE = "DEPOSIT"
DEFAULT_DUE_DAYS = 30
AUTO_NOTE = "Acompte automatique suite à l'acceptation du devis"


def _deposit_line(amount_cents: int, quote_number: str | None = None) -> ParsedLine:
    description = f"Acompte sur devis {quote_number}" if quote_number else "Acompte"
    return ParsedLine(
        description=description,
        quantity=Decimal("1"),
        unit=document_service.DEFAULT_UNIT,
        unit_price_cents=amount_cents,
    )


def deposit_for_quote(quote_id: int) -> Document | None:
    return (
        db.session.query(Document)
        .filter(Document.related_document_id == quote_id, Document.doc_type == DOC_TYPE)
        .first()
    )


def _related_quote(user_id: int, raw_id, errors: FieldErrors) -> Document | None:
    if raw_id in (None, ""):
        return None
    try:
        quote_id = coerce_int(raw_id)
    except ValueError:
        errors.add("related_quote_id", "Invalid quote id")
        return None
    quote = (
        db.session.query(Document)
        .filter_by(id=quote_id, user_id=user_id, doc_type="QUOTE")
        .first()
    )
    if quote is None:
        errors.add("related_quote_id", "Quote not found")
    return quote


def create_deposit(user_id: int, payload: dict) -> Document:
    payload = ensure_dict(payload)
    errors = FieldErrors()

    if payload.get("client_id") in (None, ""):
        errors.add("client_id", "Client is required")
    amount_cents = require_cents(payload, "amount_cents", errors, minimum=1)
    vat_rate_bps = require_vat_rate(payload, "vat_rate", errors)
    due_date = require_date(payload, "due_date", errors, label="Due date")
    notes = optional_str(payload, "notes", errors, max_len=5000)
    quote = _related_quote(user_id, payload.get("related_quote_id"), errors)
    errors.raise_if_any()

    client = client_service.resolve_client(user_id, payload.get("client_id"))

    def _op() -> Document:
        document = Document(
            user_id=user_id,
            doc_type=DOC_TYPE,
            status="DRAFT",
            number=numbering_service.allocate_number(user_id, DOC_TYPE),
            client=client,
            issue_date=utctoday(),
            due_date=due_date,
            related_document=quote,
            notes=notes,
            business_metadata={"amount_cents": amount_cents},
        )
        document_service.apply_lines_and_totals(
            document,
            [_deposit_line(amount_cents, quote.number if quote else None)],
            vat_rate_bps=vat_rate_bps,
        )
        db.session.add(document)
        db.session.commit()
        return document

    return run_with_retry(_op)


def create_deposit_from_quote(quote_id: int, user_id: int) -> Document:
    """
    Deposit for an accepted quote: SENT immediately, quote's VAT rate,
    amount = the quote's requested deposit (HT).

    Raises DocumentError when the quote requests no deposit and
    ConflictError when one already exists.
    """
    quote = document_service.get_document(user_id, "QUOTE", quote_id)
    if quote.deposit_cents <= 0:
        raise DocumentError("No deposit is defined on this quote", {"quote_id": quote.id})
    if deposit_for_quote(quote.id) is not None:
        raise ConflictError("A deposit already exists for this quote", {"quote_id": quote.id})

    def _op() -> Document:
        document = Document(
            user_id=user_id,
            doc_type=DOC_TYPE,
            status="SENT",
            number=numbering_service.allocate_number(user_id, DOC_TYPE),
            sent_at=utcnow(),
            client_id=quote.client_id,
            issue_date=utctoday(),
            due_date=utctoday() + timedelta(days=DEFAULT_DUE_DAYS),
            related_document_id=quote.id,
            notes=AUTO_NOTE,
            business_metadata={"amount_cents": quote.deposit_cents, "auto_generated": True},
        )
        document_service.apply_lines_and_totals(
            document,
            [_deposit_line(quote.deposit_cents, quote.number)],
            vat_rate_bps=quote.vat_rate_bps,
        )
        db.session.add(document)
        db.session.commit()
        return document

    document = run_with_retry(_op)
    current_app.logger.info(
        "Deposit generated from accepted quote quote_id=%s deposit=%s total_cents=%s",
        quote.id, document.number, document.total_cents,
    )
    return document


def get_deposit(user_id: int, deposit_id: int) -> Document:
    return document_service.get_document(user_id, DOC_TYPE, deposit_id)


def list_deposits(user_id: int, month: str | None = None, status: str | None = None) -> list[Document]:
    return document_service.list_documents(user_id, DOC_TYPE, month=month, status=status)


def change_deposit_status(user_id: int, deposit_id: int, status: str) -> Document:
    return document_service.change_status(user_id, DOC_TYPE, deposit_id, status)


def delete_deposit(user_id: int, deposit_id: int) -> bool:
    return document_service.delete_document(user_id, DOC_TYPE, deposit_id)


def deposit_detail(document: Document) -> dict:
    data = document_service.document_detail(document)
    related = document.related_document
    data["related_quote_number"] = related.number if related is not None else None
    return data
