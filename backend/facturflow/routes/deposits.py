# Overview: Flask API routes for deposit invoices; parses input and returns JSON responses.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..extensions import db
from ..services import deposit_service, email_service, numbering_service, pdf_service
from .responses import DOMAIN_ERRORS, error_response, pdf_response


deposits_bp = Blueprint("deposits", __name__, url_prefix="/api/deposits")


@deposits_bp.get("")
@require_auth
def list_deposits_route():
    try:
        deposits = deposit_service.list_deposits(
            g.current_user.id,
            month=request.args.get("month"),
            status=request.args.get("status"),
        )
        return jsonify({"items": [d.to_dict() for d in deposits], "count": len(deposits)}), 200
    except ValueError as e:
        return jsonify({"error": str(e)}), 400


@deposits_bp.get("/next-number")
@require_auth
def next_number_route():
    number = numbering_service.preview_next_number(g.current_user.id, deposit_service.DOC_TYPE)
    return jsonify({"next_number": number}), 200


@deposits_bp.get("/<int:deposit_id>")
@require_auth
def get_deposit_route(deposit_id: int):
    try:
        deposit = deposit_service.get_deposit(g.current_user.id, deposit_id)
        return jsonify({"deposit": deposit_service.deposit_detail(deposit)}), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)


@deposits_bp.post("")
@require_auth
def create_deposit_route():
    """Body: client_id, amount_cents (HT), vat_rate, due_date, notes, related_quote_id"""
    try:
        deposit = deposit_service.create_deposit(g.current_user.id, request.get_json(silent=True))
        return jsonify({"deposit": deposit_service.deposit_detail(deposit)}), 201
    except DOMAIN_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create deposit")
        return jsonify({"error": "Internal server error"}), 500


@deposits_bp.post("/from-quote/<int:quote_id>")
@require_auth
def create_from_quote_route(quote_id: int):
    try:
        deposit = deposit_service.create_deposit_from_quote(quote_id, g.current_user.id)
        return jsonify({"deposit": deposit_service.deposit_detail(deposit)}), 201
    except DOMAIN_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create deposit from quote")
        return jsonify({"error": "Internal server error"}), 500


@deposits_bp.delete("/<int:deposit_id>")
@require_auth
def delete_deposit_route(deposit_id: int):
    try:
        deleted = deposit_service.delete_deposit(g.current_user.id, deposit_id)
        return jsonify({"deleted": deleted}), 200
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to delete deposit")
        return jsonify({"error": "Internal server error"}), 500


@deposits_bp.post("/<int:deposit_id>/status")
@require_auth
def change_status_route(deposit_id: int):
    """Body: {"status": "SENT" | "PAID" | "OVERDUE"}"""
    try:
        data = request.get_json(silent=True) or {}
        deposit = deposit_service.change_deposit_status(g.current_user.id, deposit_id, data.get("status"))
        return jsonify({"deposit": deposit.to_dict()}), 200
    except DOMAIN_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to change deposit status")
        return jsonify({"error": "Internal server error"}), 500


@deposits_bp.get("/<int:deposit_id>/pdf")
@require_auth
def deposit_pdf_route(deposit_id: int):
    try:
        deposit = deposit_service.get_deposit(g.current_user.id, deposit_id)
        pdf = pdf_service.render_document_pdf(deposit)
        return pdf_response(pdf, pdf_service.pdf_filename(deposit), download=request.args.get("download") == "1")
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to render deposit PDF")
        return jsonify({"error": "Internal server error"}), 500


@deposits_bp.post("/<int:deposit_id>/email")
@require_auth
def email_deposit_route(deposit_id: int):
    try:
        deposit = deposit_service.get_deposit(g.current_user.id, deposit_id)
        status_changed = email_service.email_document(deposit)
        return jsonify({"deposit": deposit.to_dict(), "status_changed": status_changed}), 200
    except DOMAIN_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to email deposit")
        return jsonify({"error": "Internal server error"}), 500
