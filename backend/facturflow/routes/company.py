# Overview: Flask API routes for the issuer company profile; parses input and returns JSON responses.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..extensions import db
from ..services import company_service
from .responses import DOMAIN_ERRORS, error_response


company_bp = Blueprint("company", __name__, url_prefix="/api/company")


@company_bp.get("")
@require_auth
def get_company_route():
    return jsonify({"company": company_service.get_company(g.current_user)}), 200


@company_bp.put("")
@require_auth
def update_company_route():
    try:
        user = company_service.update_company(g.current_user, request.get_json(silent=True))
        return jsonify({"company": user.company_dict()}), 200
    except DOMAIN_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update company profile")
        return jsonify({"error": "Internal server error"}), 500


@company_bp.get("/next-numbers")
@require_auth
def next_numbers_route():
    return jsonify({"next_numbers": company_service.next_numbers(g.current_user)}), 200
