# Overview: Service-layer operations for invoices; drafts, official numbering, edits, duplication, status.

"""
Invoices.

LIFECYCLE OF A NUMBER:
- save_draft() stores the form under a temporary DRAFT-<timestamp> number,
  consuming nothing.
- create_invoice() allocates the official FAC-YYYY-NNNN number (promoting a
  saved draft when draft_id is given). The invoice stays in DRAFT status
  until it is sent or marked paid.
- duplicate_invoice() allocates a fresh official number.

Only DRAFT invoices can be edited; once sent, an invoice is a legal
document and changes go through a new invoice.
"""

from __future__ import annotations

from ..extensions import db
from ..models import Document
from . import document_service, numbering_service
from .concurrency import run_with_retry
from .document_service import DocumentError


DOC_TYPE = "INVOICE"


def parse_invoice_payload(payload: dict) -> dict:
    return document_service.parse_priced_form(
        payload,
        kind_field="invoice_type",
        end_field="due_date",
        end_label="Due date",
    )


def _fill(document: Document, user_id: int, data: dict) -> Document:
    return document_service.fill_priced_document(document, user_id, data, end_field="due_date")


def _editable_draft(user_id: int, draft_id: int) -> Document:
    document = document_service.get_document(user_id, DOC_TYPE, draft_id, for_update=True)
    if document.status != "DRAFT":
        raise DocumentError(
            "Only draft invoices can be edited",
            {"status": document.status},
        )
    return document


def get_invoice(user_id: int, invoice_id: int) -> Document:
    return document_service.get_document(user_id, DOC_TYPE, invoice_id)


def list_invoices(user_id: int, month: str | None = None, status: str | None = None) -> list[Document]:
    return document_service.list_documents(user_id, DOC_TYPE, month=month, status=status)


def preview_next_number(user_id: int) -> str:
    return numbering_service.preview_next_number(user_id, DOC_TYPE)


def save_draft(user_id: int, payload: dict, draft_id: int | None = None) -> Document:
    """Create or overwrite a draft without consuming an official number."""
    data = parse_invoice_payload(payload)

    def _op() -> Document:
        if draft_id:
            document = _editable_draft(user_id, draft_id)
        else:
            document = Document(
                user_id=user_id,
                doc_type=DOC_TYPE,
                status="DRAFT",
                number=numbering_service.draft_number(),
            )
        _fill(document, user_id, data)
        db.session.add(document)
        db.session.commit()
        return document

    return run_with_retry(_op)


def create_invoice(user_id: int, payload: dict, draft_id: int | None = None) -> Document:
    """
    Create an invoice with its official number.

    With draft_id, the saved draft is promoted in place. A draft that
    already has an official number keeps it.
    """
    data = parse_invoice_payload(payload)

    def _op() -> Document:
        if draft_id:
            document = _editable_draft(user_id, draft_id)
            if numbering_service.is_draft_number(document.number):
                document.number = numbering_service.allocate_number(user_id, DOC_TYPE)
        else:
            number = numbering_service.allocate_number(user_id, DOC_TYPE)
            document = Document(user_id=user_id, doc_type=DOC_TYPE, status="DRAFT", number=number)
        _fill(document, user_id, data)
        db.session.add(document)
        db.session.commit()
        return document

    return run_with_retry(_op)


def update_invoice(user_id: int, invoice_id: int, payload: dict) -> Document:
    data = parse_invoice_payload(payload)

    def _op() -> Document:
        document = _editable_draft(user_id, invoice_id)
        _fill(document, user_id, data)
        db.session.commit()
        return document

    return run_with_retry(_op)


def delete_invoice(user_id: int, invoice_id: int) -> bool:
    return document_service.delete_document(user_id, DOC_TYPE, invoice_id)


def duplicate_invoice(user_id: int, invoice_id: int) -> Document:
    """Copy with a new official number, DRAFT status and today's issue date."""
    def _op() -> Document:
        original = get_invoice(user_id, invoice_id)
        number = numbering_service.allocate_number(user_id, DOC_TYPE)
        copy = document_service.copy_document(original, number)
        db.session.add(copy)
        db.session.commit()
        return copy

    return run_with_retry(_op)


def change_invoice_status(user_id: int, invoice_id: int, status: str) -> Document:
    return document_service.change_status(user_id, DOC_TYPE, invoice_id, status)


def invoice_summary(user_id: int, month: str | None = None) -> dict:
    return document_service.month_summary(user_id, DOC_TYPE, month)
