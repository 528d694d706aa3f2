# Overview: Flask API routes for quotes; parses input and returns JSON responses.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..extensions import db
from ..services import document_service, email_service, pdf_service, quote_service
from .responses import DOMAIN_ERRORS, error_response, pdf_response


quotes_bp = Blueprint("quotes", __name__, url_prefix="/api/quotes")


def _quote_payload(quote) -> dict:
    data = document_service.document_detail(quote)
    data["links"] = quote_service.quote_links(quote, current_app.config["APP_URL"])
    return data


@quotes_bp.get("")
@require_auth
def list_quotes_route():
    try:
        quotes = quote_service.list_quotes(
            g.current_user.id,
            month=request.args.get("month"),
            status=request.args.get("status"),
        )
        return jsonify({"items": [q.to_dict() for q in quotes], "count": len(quotes)}), 200
    except ValueError as e:
        return jsonify({"error": str(e)}), 400


@quotes_bp.get("/summary")
@require_auth
def summary_route():
    try:
        summary = document_service.month_summary(g.current_user.id, quote_service.DOC_TYPE, request.args.get("month"))
        return jsonify(summary), 200
    except ValueError as e:
        return jsonify({"error": str(e)}), 400


@quotes_bp.get("/next-number")
@require_auth
def next_number_route():
    return jsonify({"next_number": quote_service.preview_next_number(g.current_user.id)}), 200


@quotes_bp.get("/<int:quote_id>")
@require_auth
def get_quote_route(quote_id: int):
    try:
        quote = quote_service.get_quote(g.current_user.id, quote_id)
        return jsonify({"quote": _quote_payload(quote)}), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)


@quotes_bp.post("")
@require_auth
def create_quote_route():
    """
    Body: client_id | new_client, issue_date, valid_until, quote_type, lines,
    vat_rate, discount_type, discount_value, deposit_cents, notes, payment_links
    """
    try:
        quote = quote_service.create_quote(g.current_user.id, request.get_json(silent=True))
        return jsonify({"quote": _quote_payload(quote)}), 201
    except DOMAIN_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create quote")
        return jsonify({"error": "Internal server error"}), 500


@quotes_bp.put("/<int:quote_id>")
@require_auth
def update_quote_route(quote_id: int):
    try:
        quote = quote_service.update_quote(g.current_user.id, quote_id, request.get_json(silent=True))
        return jsonify({"quote": _quote_payload(quote)}), 200
    except DOMAIN_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update quote")
        return jsonify({"error": "Internal server error"}), 500


@quotes_bp.delete("/<int:quote_id>")
@require_auth
def delete_quote_route(quote_id: int):
    try:
        deleted = quote_service.delete_quote(g.current_user.id, quote_id)
        return jsonify({"deleted": deleted}), 200
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to delete quote")
        return jsonify({"error": "Internal server error"}), 500


@quotes_bp.post("/<int:quote_id>/duplicate")
@require_auth
def duplicate_quote_route(quote_id: int):
    try:
        quote = quote_service.duplicate_quote(g.current_user.id, quote_id)
        return jsonify({"quote": _quote_payload(quote)}), 201
    except DOMAIN_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to duplicate quote")
        return jsonify({"error": "Internal server error"}), 500


@quotes_bp.post("/<int:quote_id>/send")
@require_auth
def send_quote_route(quote_id: int):
    try:
        quote = quote_service.send_quote(g.current_user.id, quote_id)
        return jsonify({"quote": quote.to_dict()}), 200
    except DOMAIN_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to send quote")
        return jsonify({"error": "Internal server error"}), 500


@quotes_bp.post("/<int:quote_id>/status")
@require_auth
def change_status_route(quote_id: int):
    """Body: {"status": "SENT" | "ACCEPTED" | "REJECTED" | "CANCELLED"}"""
    try:
        data = request.get_json(silent=True) or {}
        quote = quote_service.change_quote_status(g.current_user.id, quote_id, data.get("status"))
        return jsonify({"quote": quote.to_dict()}), 200
    except DOMAIN_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to change quote status")
        return jsonify({"error": "Internal server error"}), 500


@quotes_bp.get("/<int:quote_id>/pdf")
@require_auth
def quote_pdf_route(quote_id: int):
    try:
        quote = quote_service.get_quote(g.current_user.id, quote_id)
        pdf = pdf_service.render_document_pdf(quote)
        return pdf_response(pdf, pdf_service.pdf_filename(quote), download=request.args.get("download") == "1")
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to render quote PDF")
        return jsonify({"error": "Internal server error"}), 500


@quotes_bp.post("/<int:quote_id>/email")
@require_auth
def email_quote_route(quote_id: int):
    try:
        quote = quote_service.get_quote(g.current_user.id, quote_id)
        status_changed = email_service.email_document(quote)
        return jsonify({"quote": quote.to_dict(), "status_changed": status_changed}), 200
    except DOMAIN_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to email quote")
        return jsonify({"error": "Internal server error"}), 500
