# Overview: Flask API routes for invoices; parses input and returns JSON responses.

# backend/facturflow/routes/invoices.py
"""
Invoice API routes

- Drafts (temporary number) and official creation (FAC-YYYY-NNNN)
- Edits limited to DRAFT invoices
- Status changes through the invoice transition table
- PDF, email and e-invoice transmission
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..extensions import db
from ..services import (
    document_service,
    einvoice_service,
    email_service,
    invoice_service,
    pdf_service,
)
from .responses import DOMAIN_ERRORS, error_response, pdf_response


invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/invoices")


def _draft_id(data: dict):
    raw = request.args.get("draft_id") or (data or {}).get("draft_id")
    try:
        return int(raw) if raw not in (None, "") else None
    except (TypeError, ValueError):
        return None


@invoices_bp.get("")
@require_auth
def list_invoices_route():
    try:
        invoices = invoice_service.list_invoices(
            g.current_user.id,
            month=request.args.get("month"),
            status=request.args.get("status"),
        )
        return jsonify({"items": [i.to_dict() for i in invoices], "count": len(invoices)}), 200
    except ValueError as e:
        return jsonify({"error": str(e)}), 400


@invoices_bp.get("/summary")
@require_auth
def summary_route():
    try:
        return jsonify(invoice_service.invoice_summary(g.current_user.id, request.args.get("month"))), 200
    except ValueError as e:
        return jsonify({"error": str(e)}), 400


@invoices_bp.get("/next-number")
@require_auth
def next_number_route():
    return jsonify({"next_number": invoice_service.preview_next_number(g.current_user.id)}), 200


@invoices_bp.get("/<int:invoice_id>")
@require_auth
def get_invoice_route(invoice_id: int):
    try:
        invoice = invoice_service.get_invoice(g.current_user.id, invoice_id)
        return jsonify({"invoice": document_service.document_detail(invoice)}), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)


@invoices_bp.post("/drafts")
@require_auth
def save_draft_route():
    """Save the form as a draft (temporary DRAFT-<timestamp> number)."""
    try:
        data = request.get_json(silent=True)
        invoice = invoice_service.save_draft(g.current_user.id, data, draft_id=_draft_id(data))
        return jsonify({"invoice": document_service.document_detail(invoice)}), 201
    except DOMAIN_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to save invoice draft")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.post("")
@require_auth
def create_invoice_route():
    """
    Create an invoice with its official number.

    Body: client_id | new_client, issue_date, due_date, invoice_type, lines,
    vat_rate, discount_type, discount_value, deposit_cents, notes,
    payment_links, optional draft_id (promote a saved draft)
    """
    try:
        data = request.get_json(silent=True)
        invoice = invoice_service.create_invoice(g.current_user.id, data, draft_id=_draft_id(data))
        return jsonify({"invoice": document_service.document_detail(invoice)}), 201
    except DOMAIN_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create invoice")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.put("/<int:invoice_id>")
@require_auth
def update_invoice_route(invoice_id: int):
    try:
        invoice = invoice_service.update_invoice(g.current_user.id, invoice_id, request.get_json(silent=True))
        return jsonify({"invoice": document_service.document_detail(invoice)}), 200
    except DOMAIN_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update invoice")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.delete("/<int:invoice_id>")
@require_auth
def delete_invoice_route(invoice_id: int):
    try:
        deleted = invoice_service.delete_invoice(g.current_user.id, invoice_id)
        return jsonify({"deleted": deleted}), 200
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to delete invoice")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.post("/<int:invoice_id>/duplicate")
@require_auth
def duplicate_invoice_route(invoice_id: int):
    try:
        invoice = invoice_service.duplicate_invoice(g.current_user.id, invoice_id)
        return jsonify({"invoice": document_service.document_detail(invoice)}), 201
    except DOMAIN_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to duplicate invoice")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.post("/<int:invoice_id>/status")
@require_auth
def change_status_route(invoice_id: int):
    """Body: {"status": "SENT" | "PAID" | "OVERDUE" | "REMINDED"}"""
    try:
        data = request.get_json(silent=True) or {}
        invoice = invoice_service.change_invoice_status(g.current_user.id, invoice_id, data.get("status"))
        return jsonify({"invoice": invoice.to_dict()}), 200
    except DOMAIN_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to change invoice status")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.get("/<int:invoice_id>/pdf")
@require_auth
def invoice_pdf_route(invoice_id: int):
    try:
        invoice = invoice_service.get_invoice(g.current_user.id, invoice_id)
        pdf = pdf_service.render_document_pdf(invoice)
        return pdf_response(pdf, pdf_service.pdf_filename(invoice), download=request.args.get("download") == "1")
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to render invoice PDF")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.post("/<int:invoice_id>/email")
@require_auth
def email_invoice_route(invoice_id: int):
    try:
        invoice = invoice_service.get_invoice(g.current_user.id, invoice_id)
        status_changed = email_service.email_document(invoice)
        return jsonify({"invoice": invoice.to_dict(), "status_changed": status_changed}), 200
    except DOMAIN_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to email invoice")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.post("/<int:invoice_id>/einvoice")
@require_auth
def send_einvoice_route(invoice_id: int):
    try:
        invoice = einvoice_service.send_einvoice(g.current_user.id, invoice_id)
        return jsonify(einvoice_service.einvoice_info(invoice)), 200
    except DOMAIN_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to send e-invoice")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.get("/<int:invoice_id>/einvoice")
@require_auth
def einvoice_status_route(invoice_id: int):
    try:
        invoice = invoice_service.get_invoice(g.current_user.id, invoice_id)
        return jsonify(einvoice_service.einvoice_info(invoice)), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)
