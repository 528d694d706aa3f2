# Overview: Company lookup routes backed by the public French company registry.

from flask import Blueprint, current_app, jsonify, request

from ..decorators import require_auth
from ..services import siret_service
from ..services.siret_service import SiretLookupError


siret_bp = Blueprint("siret", __name__, url_prefix="/api/siret")


@siret_bp.get("/search")
@require_auth
def search_route():
    """Query: q (name or SIREN, 3 characters minimum)"""
    try:
        results = siret_service.search_companies(request.args.get("q", ""))
        return jsonify({"items": results, "count": len(results)}), 200
    except SiretLookupError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to search companies")
        return jsonify({"error": "Internal server error"}), 500


@siret_bp.get("/<siret>")
@require_auth
def lookup_route(siret: str):
    try:
        return jsonify({"company": siret_service.lookup_siret(siret)}), 200
    except SiretLookupError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to look up SIRET")
        return jsonify({"error": "Internal server error"}), 500
