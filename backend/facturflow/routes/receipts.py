# Overview: Flask API routes for payment receipts; parses input and returns JSON responses.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..extensions import db
from ..services import email_service, pdf_service, receipt_service
from .responses import DOMAIN_ERRORS, error_response, pdf_response


receipts_bp = Blueprint("receipts", __name__, url_prefix="/api/receipts")


@receipts_bp.get("")
@require_auth
def list_receipts_route():
    try:
        receipts = receipt_service.list_receipts(g.current_user.id, month=request.args.get("month"))
        return jsonify({"items": [receipt_service.receipt_detail(r) for r in receipts], "count": len(receipts)}), 200
    except ValueError as e:
        return jsonify({"error": str(e)}), 400


@receipts_bp.get("/next-number")
@require_auth
def next_number_route():
    return jsonify({"next_number": receipt_service.preview_next_number(g.current_user.id)}), 200


@receipts_bp.get("/<int:receipt_id>")
@require_auth
def get_receipt_route(receipt_id: int):
    try:
        receipt = receipt_service.get_receipt(g.current_user.id, receipt_id)
        return jsonify({"receipt": receipt_service.receipt_detail(receipt)}), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)


@receipts_bp.post("")
@require_auth
def create_receipt_route():
    """Body: client_id, amount_cents, description, payment_method, date, notes"""
    try:
        receipt = receipt_service.create_receipt(g.current_user.id, request.get_json(silent=True))
        return jsonify({"receipt": receipt_service.receipt_detail(receipt)}), 201
    except DOMAIN_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create receipt")
        return jsonify({"error": "Internal server error"}), 500


@receipts_bp.delete("/<int:receipt_id>")
@require_auth
def delete_receipt_route(receipt_id: int):
    try:
        deleted = receipt_service.delete_receipt(g.current_user.id, receipt_id)
        return jsonify({"deleted": deleted}), 200
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to delete receipt")
        return jsonify({"error": "Internal server error"}), 500


@receipts_bp.get("/<int:receipt_id>/pdf")
@require_auth
def receipt_pdf_route(receipt_id: int):
    try:
        receipt = receipt_service.get_receipt(g.current_user.id, receipt_id)
        pdf = pdf_service.render_document_pdf(receipt)
        return pdf_response(pdf, pdf_service.pdf_filename(receipt), download=request.args.get("download") == "1")
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to render receipt PDF")
        return jsonify({"error": "Internal server error"}), 500


@receipts_bp.post("/<int:receipt_id>/email")
@require_auth
def email_receipt_route(receipt_id: int):
    try:
        receipt = receipt_service.get_receipt(g.current_user.id, receipt_id)
        email_service.send_document_email(receipt)
        return jsonify({"receipt": receipt.to_dict(), "status_changed": False}), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to email receipt")
        return jsonify({"error": "Internal server error"}), 500
