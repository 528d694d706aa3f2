# Overview: Service-layer operations for payment receipts (reçus); always paid, no VAT.

from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from ..models import Document
from ..validation import (
    FieldErrors,
    ensure_dict,
    optional_str,
    require_cents,
    require_choice,
    require_date,
    require_str,
)
from . import client_service, document_service, numbering_service
from .concurrency import run_with_retry
from .document_service import ParsedLine
from facturflow.time_utils import utcnow, utctoday


DOC_TYPE = "RECEIPT"

PAYMENT_METHODS = {
    "CASH": "Espèces",
    "CHECK": "Chèque",
    "CARD": "Carte bancaire",
    "TRANSFER": "Virement",
}
DEFAULT_DESCRIPTION = "Paiement reçu"


def payment_method_label(method: str | None) -> str:
    return PAYMENT_METHODS.get(method or "", PAYMENT_METHODS["CASH"])


def create_receipt(user_id: int, payload: dict) -> Document:
    payload = ensure_dict(payload)
    errors = FieldErrors()

    if payload.get("client_id") in (None, ""):
        errors.add("client_id", "Client is required")
    amount_cents = require_cents(payload, "amount_cents", errors, minimum=1)
    description = require_str(payload, "description", errors, min_len=1, max_len=500, label="Description")
    method = require_choice(payload, "payment_method", errors, PAYMENT_METHODS)
    receipt_date = require_date(payload, "date", errors, required=False, label="Date") or utctoday()
    notes = optional_str(payload, "notes", errors, max_len=5000)
    errors.raise_if_any()

    client = client_service.resolve_client(user_id, payload.get("client_id"))

    def _op() -> Document:
        document = Document(
            user_id=user_id,
            doc_type=DOC_TYPE,
            status="PAID",
            number=numbering_service.allocate_number(user_id, DOC_TYPE),
            client=client,
            issue_date=receipt_date,
            paid_at=utcnow(),
            notes=notes,
            business_metadata={
                "description": description,
                "payment_method": method,
                "amount_cents": amount_cents,
            },
        )
        line = ParsedLine(
            description=description,
            quantity=Decimal("1"),
            unit=document_service.DEFAULT_UNIT,
            unit_price_cents=amount_cents,
        )
        document_service.apply_lines_and_totals(document, [line], vat_rate_bps=0)
        db.session.add(document)
        db.session.commit()
        return document

    return run_with_retry(_op)


def get_receipt(user_id: int, receipt_id: int) -> Document:
    return document_service.get_document(user_id, DOC_TYPE, receipt_id)


def list_receipts(user_id: int, month: str | None = None) -> list[Document]:
    return document_service.list_documents(user_id, DOC_TYPE, month=month)


def preview_next_number(user_id: int) -> str:
    return numbering_service.preview_next_number(user_id, DOC_TYPE)


def delete_receipt(user_id: int, receipt_id: int) -> bool:
    return document_service.delete_document(user_id, DOC_TYPE, receipt_id)


def receipt_detail(document: Document) -> dict:
    data = document_service.document_detail(document)
    metadata = document.metadata_dict
    data["description"] = metadata.get("description") or DEFAULT_DESCRIPTION
    data["payment_method"] = metadata.get("payment_method") or "CASH"
    data["payment_method_label"] = payment_method_label(data["payment_method"])
    return data
