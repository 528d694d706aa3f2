# Overview: Service-layer operations shared by all document types; form parsing, totals, scoped lookups, listing.

"""
Shared document plumbing for invoices, quotes, deposits and receipts.

WHY a shared module: the four document types are one table (documents)
with the same line items and totals. Type-specific rules live in
invoice_service, quote_service, deposit_service and receipt_service.

TOTALS INVARIANT: apply_lines_and_totals() is the only writer of the
*_cents columns and of the line items. It recomputes everything from the
validated lines, so totals sent by a client never reach the database.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import func, update

from ..extensions import db
from ..models import Document, DocumentLineItem
from ..validation import (
    FieldErrors,
    NotFoundError,
    clean_str,
    coerce_int,
    ensure_dict,
    optional_str,
    optional_url,
    parse_decimal,
    require_cents,
    require_choice,
    require_date,
    require_quantity,
    require_vat_rate,
)
from . import client_service, totals_service
from .concurrency import lock_for_update
from .lifecycle_service import can_transition, transition_document
from .totals_service import LineInput
from facturflow.time_utils import month_bounds, utcnow, utctoday


DOCUMENT_KINDS = ("basic", "freelance_hours", "freelance_task", "artisan", "ecommerce")
LINE_CATEGORIES = ("LABOR", "MATERIAL")
PAYMENT_LINK_PROVIDERS = ("stripe", "paypal", "gocardless")
DEFAULT_UNIT = "unité"


class DocumentError(Exception):
    """Raised for document business rule violations (e.g., editing a sent invoice)."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


@dataclass
class ParsedLine:
    description: str
    quantity: Decimal
    unit: str
    unit_price_cents: int
    category: str | None = None


@dataclass
class DiscountInput:
    discount_type: str | None = None
    percent: Decimal | None = None
    amount_cents: int | None = None


# =============================================================================
# Form parsing
# =============================================================================

def parse_lines(raw_lines, errors: FieldErrors, *, allow_category: bool = False) -> list[ParsedLine]:
    """At least one line; description non-empty, quantity >= 0.01, unit price >= 0."""
    if not isinstance(raw_lines, list) or not raw_lines:
        errors.add("lines", "At least one line is required")
        return []

    parsed: list[ParsedLine] = []
    for idx, raw in enumerate(raw_lines):
        line_errors = FieldErrors(prefix=f"lines[{idx}].")
        if not isinstance(raw, dict):
            line_errors.add("description", "Invalid line")
            errors.extend(line_errors)
            continue

        description = clean_str(raw.get("description"))
        if description is None:
            line_errors.add("description", "Description is required")
        quantity = require_quantity(raw, "quantity", line_errors)
        unit_price = require_cents(raw, "unit_price_cents", line_errors, minimum=0)
        unit = optional_str(raw, "unit", line_errors, max_len=32) or DEFAULT_UNIT

        category = None
        if allow_category and clean_str(raw.get("category")) is not None:
            category = require_choice(raw, "category", line_errors, LINE_CATEGORIES)

        errors.extend(line_errors)
        if not line_errors:
            parsed.append(ParsedLine(
                description=description,
                quantity=quantity,
                unit=unit,
                unit_price_cents=unit_price,
                category=category,
            ))
    return parsed


def parse_discount(payload: dict, errors: FieldErrors) -> DiscountInput:
    discount_type = clean_str(payload.get("discount_type"))
    raw_value = payload.get("discount_value")
    if discount_type is None or raw_value in (None, "", 0, "0"):
        return DiscountInput()

    discount_type = discount_type.upper()
    if discount_type == "PERCENT":
        try:
            pct = parse_decimal(raw_value)
        except ValueError:
            errors.add("discount_value", "Discount must be a number")
            return DiscountInput()
        if pct < 0 or pct > 100:
            errors.add("discount_value", "Discount percentage must be between 0 and 100")
            return DiscountInput()
        return DiscountInput("PERCENT", pct.quantize(Decimal("0.01")), None)

    if discount_type == "AMOUNT":
        try:
            amount = coerce_int(raw_value)
        except ValueError:
            errors.add("discount_value", "Discount amount must be an integer amount in cents")
            return DiscountInput()
        if amount < 0:
            errors.add("discount_value", "Discount amount must be >= 0")
            return DiscountInput()
        return DiscountInput("AMOUNT", None, amount)

    errors.add("discount_type", f"discount_type must be one of: {', '.join(totals_service.DISCOUNT_TYPES)}")
    return DiscountInput()


def parse_payment_links(payload: dict, errors: FieldErrors) -> dict:
    raw = payload.get("payment_links") or {}
    if not isinstance(raw, dict):
        errors.add("payment_links", "Invalid payment links")
        return {}
    link_errors = FieldErrors(prefix="payment_links.")
    links = {}
    for provider in PAYMENT_LINK_PROVIDERS:
        url = optional_url(raw, provider, link_errors)
        if url:
            links[provider] = url
    errors.extend(link_errors)
    return links


# =============================================================================
# Totals
# =============================================================================

def apply_lines_and_totals(
    document: Document,
    lines: list[ParsedLine],
    *,
    vat_rate_bps: int,
    discount: DiscountInput | None = None,
    deposit_cents: int = 0,
) -> Document:
    """Replace the document lines and recompute every total from them."""
    discount = discount or DiscountInput()
    inputs = [LineInput(l.quantity, l.unit_price_cents, vat_rate_bps) for l in lines]

    document.lines.clear()
    for position, (line, line_input) in enumerate(zip(lines, inputs)):
        amounts = totals_service.compute_line(line_input)
        document.lines.append(DocumentLineItem(
            position=position,
            description=line.description,
            quantity=line.quantity,
            unit=line.unit,
            unit_price_cents=line.unit_price_cents,
            vat_rate_bps=vat_rate_bps,
            subtotal_cents=amounts.subtotal_cents,
            tax_cents=amounts.tax_cents,
            total_cents=amounts.total_cents,
            category=line.category,
        ))

    totals = totals_service.compute_document_totals(
        inputs,
        vat_rate_bps,
        discount_type=discount.discount_type,
        discount_percent=discount.percent,
        discount_amount_cents=discount.amount_cents,
        deposit_cents=deposit_cents,
    )

    document.vat_rate_bps = vat_rate_bps
    document.discount_type = discount.discount_type
    document.discount_percent = discount.percent
    document.discount_amount_cents = discount.amount_cents
    for field, value in totals.to_dict().items():
        setattr(document, field, value)
    return document


def lines_of(document: Document) -> list[ParsedLine]:
    return [
        ParsedLine(
            description=l.description,
            quantity=Decimal(l.quantity),
            unit=l.unit,
            unit_price_cents=l.unit_price_cents,
            category=l.category,
        )
        for l in document.lines
    ]


def discount_of(document: Document) -> DiscountInput:
    return DiscountInput(
        document.discount_type,
        Decimal(document.discount_percent) if document.discount_percent is not None else None,
        document.discount_amount_cents,
    )


# =============================================================================
# Scoped access
# =============================================================================

def get_document(user_id: int, doc_type: str, document_id: int, *, for_update: bool = False) -> Document:
    """Document of doc_type owned by user_id; other users' documents are not found."""
    q = db.session.query(Document).filter(
        Document.id == document_id,
        Document.user_id == user_id,
        Document.doc_type == doc_type,
    )
    if for_update:
        q = lock_for_update(q)
    document = q.first()
    if document is None:
        raise NotFoundError(f"{doc_type.capitalize()} not found")
    return document


def list_documents(
    user_id: int,
    doc_type: str,
    *,
    month: str | None = None,
    status: str | None = None,
) -> list[Document]:
    """Newest first; month is "YYYY-MM" on creation date."""
    q = db.session.query(Document).filter(
        Document.user_id == user_id,
        Document.doc_type == doc_type,
    )
    if month:
        start, end = month_bounds(month)
        q = q.filter(Document.created_at >= start, Document.created_at < end)
    if status:
        q = q.filter(Document.status == status.upper())
    return q.order_by(Document.created_at.desc(), Document.id.desc()).all()


def delete_document(user_id: int, doc_type: str, document_id: int) -> bool:
    """
    Idempotent delete. Returns False when nothing matched.

    Documents generated from this one (deposits of a quote) are detached,
    not deleted. Numbering counters are never rewound.
    """
    document = (
        db.session.query(Document)
        .filter_by(id=document_id, user_id=user_id, doc_type=doc_type)
        .first()
    )
    if document is None:
        return False
    db.session.execute(
        update(Document)
        .where(Document.related_document_id == document.id)
        .values(related_document_id=None)
        .execution_options(synchronize_session="fetch")
    )
    db.session.delete(document)
    db.session.commit()
    return True


def change_status(user_id: int, doc_type: str, document_id: int, status: str) -> Document:
    document = get_document(user_id, doc_type, document_id, for_update=True)
    transition_document(document, status)
    db.session.commit()
    return document


def mark_sent_if_draft(document: Document) -> bool:
    """
    After an email: DRAFT -> SENT. Any other status is kept, so emailing a
    paid invoice or an answered quote again changes nothing. Returns True if
    the status changed.
    """
    if document.status == "DRAFT" and can_transition(document.doc_type, "DRAFT", "SENT"):
        transition_document(document, "SENT")
        return True
    return False


# =============================================================================
# Serialization & reporting
# =============================================================================

def issuer_block(user) -> dict:
    return {
        "name": user.company_name or user.name,
        "siren": user.company_siren,
        "siret": user.company_siret,
        "vat_number": user.company_vat_number,
        "address": user.company_address,
        "postal_code": user.company_postal_code,
        "city": user.company_city,
        "email": user.company_email or user.email,
        "phone": user.company_phone,
        "iban": user.iban,
        "bic": user.bic,
    }


def document_detail(document: Document) -> dict:
    data = document.to_dict(include_lines=True)
    data["client"] = document.client.to_dict() if document.client else None
    data["issuer"] = issuer_block(document.user)
    return data


def month_summary(user_id: int, doc_type: str, month: str | None = None) -> dict:
    """
    KPI block of the list pages: counts and TTC amounts per status, plus
    paid / pending (SENT, DRAFT) / unpaid (OVERDUE, REMINDED) groupings.
    """
    q = db.session.query(
        Document.status,
        func.count(Document.id),
        func.coalesce(func.sum(Document.total_cents), 0),
    ).filter(Document.user_id == user_id, Document.doc_type == doc_type)
    if month:
        start, end = month_bounds(month)
        q = q.filter(Document.created_at >= start, Document.created_at < end)
    rows = q.group_by(Document.status).all()

    by_status = {status: {"count": int(count), "total_cents": int(total)} for status, count, total in rows}

    def _group(*statuses):
        return {
            "count": sum(by_status.get(s, {}).get("count", 0) for s in statuses),
            "total_cents": sum(by_status.get(s, {}).get("total_cents", 0) for s in statuses),
        }

    return {
        "month": month,
        "total": {
            "count": sum(v["count"] for v in by_status.values()),
            "total_cents": sum(v["total_cents"] for v in by_status.values()),
        },
        "paid": _group("PAID"),
        "pending": _group("DRAFT", "SENT"),
        "unpaid": _group("OVERDUE", "REMINDED"),
        "by_status": by_status,
        "generated_at": utcnow().isoformat() + "Z",
    }


# =============================================================================
# Priced forms (invoices and quotes)
# =============================================================================

def parse_priced_form(
    payload: dict,
    *,
    kind_field: str,
    end_field: str,
    end_label: str,
) -> dict:
    """
    Validate an invoice or quote form; raises ValidationError listing every
    field problem. end_field is the due date of an invoice or the validity
    date of a quote.
    """
    payload = ensure_dict(payload)
    errors = FieldErrors()

    new_client = payload.get("new_client")
    if new_client:
        quick_errors = FieldErrors(prefix="new_client.")
        client_service.validate_client_payload(new_client, quick_errors, quick=True)
        errors.extend(quick_errors)
    elif payload.get("client_id") in (None, ""):
        errors.add("client_id", "Select a client or create a new one")

    kind = require_choice(payload, kind_field, errors, DOCUMENT_KINDS, default="basic", upper=False)
    issue_date = require_date(payload, "issue_date", errors, required=False, label="Issue date") or utctoday()
    end_date = require_date(payload, end_field, errors, label=end_label)
    vat_rate_bps = require_vat_rate(payload, "vat_rate", errors, default=2000)
    lines = parse_lines(payload.get("lines"), errors, allow_category=(kind == "artisan"))
    discount = parse_discount(payload, errors)
    deposit_cents = require_cents(payload, "deposit_cents", errors, required=False, default=0)
    notes = optional_str(payload, "notes", errors, max_len=5000)
    payment_links = parse_payment_links(payload, errors)

    if issue_date and end_date and end_date < issue_date:
        errors.add(end_field, f"{end_label} cannot be before the issue date")
    errors.raise_if_any()

    return {
        "client_id": payload.get("client_id"),
        "new_client": new_client,
        "kind": kind,
        "issue_date": issue_date,
        "end_date": end_date,
        "vat_rate_bps": vat_rate_bps,
        "lines": lines,
        "discount": discount,
        "deposit_cents": deposit_cents or 0,
        "notes": notes,
        "payment_links": payment_links,
    }


def fill_priced_document(document: Document, user_id: int, data: dict, *, end_field: str) -> Document:
    """Apply a parsed priced form to document (transient or persistent). Does not add or commit."""
    document.client = client_service.resolve_client(user_id, data["client_id"], data["new_client"])
    document.kind = data["kind"]
    document.issue_date = data["issue_date"]
    setattr(document, end_field, data["end_date"])
    document.notes = data["notes"]
    metadata = document.metadata_dict
    metadata["payment_links"] = data["payment_links"]
    document.business_metadata = metadata
    apply_lines_and_totals(
        document,
        data["lines"],
        vat_rate_bps=data["vat_rate_bps"],
        discount=data["discount"],
        deposit_cents=data["deposit_cents"],
    )
    return document


def copy_document(original: Document, number: str, **overrides) -> Document:
    """Transient copy of original with fresh lines and recomputed totals."""
    fields = dict(
        user_id=original.user_id,
        doc_type=original.doc_type,
        status="DRAFT",
        number=number,
        client_id=original.client_id,
        kind=original.kind,
        issue_date=utctoday(),
        due_date=original.due_date,
        valid_until=original.valid_until,
        notes=original.notes,
        business_metadata=original.metadata_dict,
    )
    fields.update(overrides)
    copy = Document(**fields)
    apply_lines_and_totals(
        copy,
        lines_of(original),
        vat_rate_bps=original.vat_rate_bps,
        discount=discount_of(original),
        deposit_cents=original.deposit_cents,
    )
    return copy
