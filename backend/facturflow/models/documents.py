from __future__ import annotations

from ..extensions import db
from facturflow.time_utils import to_utc_z, to_iso_date


DOC_TYPES = ("INVOICE", "QUOTE", "DEPOSIT", "RECEIPT")


def _decimal_str(value) -> str | None:
    if value is None:
        return None
    return format(value, "f")


class Document(db.Model):
    """
    Generic commercial document: invoice, quote, deposit (acompte) or receipt.

    DOCUMENT TYPE drives which fields are meaningful:
    - INVOICE: due_date, kind (invoice type), discount, deposit deducted
    - QUOTE:   valid_until, accept/refuse tokens, deposit requested on acceptance
    - DEPOSIT: due_date, related_document_id -> quote it was generated from
    - RECEIPT: always PAID, no VAT, payment method in business_metadata

    TOTALS: every *_cents column is recomputed by totals_service from the
    line items before each write. Values sent by clients are ignored.

    NUMBERING: number is unique per (user, doc_type). Drafts saved before
    official numbering carry a temporary DRAFT-<timestamp> number.
    """
    __tablename__ = "documents"
    __table_args__ = (
        db.UniqueConstraint("user_id", "doc_type", "number", name="uq_documents_user_type_number"),
        db.Index("ix_documents_user_type_created", "user_id", "doc_type", "created_at"),
        db.Index("ix_documents_client", "client_id"),
        db.Index("ix_documents_status_due", "doc_type", "status", "due_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    client_id = db.Column(db.Integer, db.ForeignKey("clients.id"), nullable=False)

    doc_type = db.Column(db.String(16), nullable=False)
    status = db.Column(db.String(16), nullable=False, default="DRAFT")
    number = db.Column(db.String(64), nullable=False)

    # Invoice / quote type: basic, freelance_hours, freelance_task, artisan, ecommerce
    kind = db.Column(db.String(32), nullable=True)

    issue_date = db.Column(db.Date, nullable=False)
    due_date = db.Column(db.Date, nullable=True)
    valid_until = db.Column(db.Date, nullable=True)

    vat_rate_bps = db.Column(db.Integer, nullable=False, default=2000)

    # PERCENT uses discount_percent, AMOUNT uses discount_amount_cents
    discount_type = db.Column(db.String(16), nullable=True)
    discount_percent = db.Column(db.Numeric(5, 2), nullable=True)
    discount_amount_cents = db.Column(db.Integer, nullable=True)

    subtotal_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    net_cents = db.Column(db.Integer, nullable=False, default=0)
    tax_total_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False, default=0)
    deposit_cents = db.Column(db.Integer, nullable=False, default=0)
    net_to_pay_cents = db.Column(db.Integer, nullable=False, default=0)

    notes = db.Column(db.Text, nullable=True)
    # Payment links, payment method, receipt description, auto-generation flags
    business_metadata = db.Column(db.JSON, nullable=True)

    related_document_id = db.Column(db.Integer, db.ForeignKey("documents.id"), nullable=True, index=True)

    # Quote public response links
    accept_token = db.Column(db.String(64), nullable=True, unique=True)
    refuse_token = db.Column(db.String(64), nullable=True, unique=True)
    responded_at = db.Column(db.DateTime(timezone=True), nullable=True)

    sent_at = db.Column(db.DateTime(timezone=True), nullable=True)
    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # E-invoicing gateway tracking
    einvoice_ref = db.Column(db.String(64), nullable=True, index=True)
    einvoice_status = db.Column(db.String(32), nullable=True)
    einvoice_sent_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    user = db.relationship("User", backref=db.backref("documents", lazy=True))
    client = db.relationship("Client", backref=db.backref("documents", lazy=True))
    related_document = db.relationship("Document", remote_side=[id])
    lines = db.relationship(
        "DocumentLineItem",
        back_populates="document",
        cascade="all, delete-orphan",
        order_by="DocumentLineItem.position",
        lazy=True,
    )
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def metadata_dict(self) -> dict:
        return dict(self.business_metadata or {})

    def to_dict(self, include_lines: bool = False) -> dict:
        data = {
            "id": self.id,
            "user_id": self.user_id,
            "client_id": self.client_id,
            "client_name": self.client.display_name if self.client else None,
            "doc_type": self.doc_type,
            "status": self.status,
            "number": self.number,
            "kind": self.kind,
            "issue_date": to_iso_date(self.issue_date),
            "due_date": to_iso_date(self.due_date),
            "valid_until": to_iso_date(self.valid_until),
            "vat_rate_bps": self.vat_rate_bps,
            "discount_type": self.discount_type,
            "discount_percent": _decimal_str(self.discount_percent),
            "discount_amount_cents": self.discount_amount_cents,
            "subtotal_cents": self.subtotal_cents,
            "discount_cents": self.discount_cents,
            "net_cents": self.net_cents,
            "tax_total_cents": self.tax_total_cents,
            "total_cents": self.total_cents,
            "deposit_cents": self.deposit_cents,
            "net_to_pay_cents": self.net_to_pay_cents,
            "notes": self.notes,
            "metadata": self.metadata_dict,
            "related_document_id": self.related_document_id,
            "responded_at": to_utc_z(self.responded_at),
            "sent_at": to_utc_z(self.sent_at),
            "paid_at": to_utc_z(self.paid_at),
            "einvoice_ref": self.einvoice_ref,
            "einvoice_status": self.einvoice_status,
            "einvoice_sent_at": to_utc_z(self.einvoice_sent_at),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class DocumentLineItem(db.Model):
    """One priced line of a document. Amounts are computed, never client-supplied."""
    __tablename__ = "document_line_items"
    __table_args__ = (
        db.Index("ix_document_line_items_document", "document_id", "position"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    document_id = db.Column(db.Integer, db.ForeignKey("documents.id", ondelete="CASCADE"), nullable=False)
    position = db.Column(db.Integer, nullable=False, default=0)

    description = db.Column(db.Text, nullable=False)
    quantity = db.Column(db.Numeric(12, 2), nullable=False)
    unit = db.Column(db.String(32), nullable=False, default="unité")
    unit_price_cents = db.Column(db.Integer, nullable=False)
    vat_rate_bps = db.Column(db.Integer, nullable=False)

    subtotal_cents = db.Column(db.Integer, nullable=False)
    tax_cents = db.Column(db.Integer, nullable=False)
    total_cents = db.Column(db.Integer, nullable=False)

    # Artisan invoices only: LABOR or MATERIAL
    category = db.Column(db.String(16), nullable=True)

    document = db.relationship("Document", back_populates="lines")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "document_id": self.document_id,
            "position": self.position,
            "description": self.description,
            "quantity": _decimal_str(self.quantity),
            "unit": self.unit,
            "unit_price_cents": self.unit_price_cents,
            "vat_rate_bps": self.vat_rate_bps,
            "subtotal_cents": self.subtotal_cents,
            "tax_cents": self.tax_cents,
            "total_cents": self.total_cents,
            "category": self.category,
        }


class EInvoiceSyncState(db.Model):
    """
    Singleton cursor (id=1) of the last e-invoicing gateway event processed.

    WHY: the gateway event feed is paged by id; persisting the cursor lets
    the sync job resume without replaying events.
    """
    __tablename__ = "einvoice_sync_state"

    id = db.Column(db.Integer, primary_key=True)
    last_event_id = db.Column(db.Integer, nullable=False, default=0)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "last_event_id": self.last_event_id,
            "updated_at": to_utc_z(self.updated_at),
        }
