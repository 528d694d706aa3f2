# Overview: Flask API routes for clients; parses input and returns JSON responses.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..extensions import db
from ..services import client_service
from .responses import DOMAIN_ERRORS, error_response


clients_bp = Blueprint("clients", __name__, url_prefix="/api/clients")


@clients_bp.get("")
@require_auth
def list_clients_route():
    clients = client_service.list_clients(g.current_user.id, search=request.args.get("search"))
    return jsonify({"items": clients, "count": len(clients)}), 200


@clients_bp.get("/<int:client_id>")
@require_auth
def get_client_route(client_id: int):
    try:
        client = client_service.get_client(g.current_user.id, client_id)
        return jsonify({"client": client_service.client_to_dict(client)}), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)


@clients_bp.post("")
@require_auth
def create_client_route():
    """
    Body: type (COMPANY | INDIVIDUAL), name, email, siret, vat_number,
    phone, address, postal_code, city, notes
    """
    try:
        client = client_service.create_client(g.current_user.id, request.get_json(silent=True))
        return jsonify({"client": client_service.client_to_dict(client)}), 201
    except DOMAIN_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create client")
        return jsonify({"error": "Internal server error"}), 500


@clients_bp.put("/<int:client_id>")
@require_auth
def update_client_route(client_id: int):
    try:
        client = client_service.update_client(g.current_user.id, client_id, request.get_json(silent=True))
        return jsonify({"client": client_service.client_to_dict(client)}), 200
    except DOMAIN_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update client")
        return jsonify({"error": "Internal server error"}), 500


@clients_bp.delete("/<int:client_id>")
@require_auth
def delete_client_route(client_id: int):
    try:
        client_service.delete_client(g.current_user.id, client_id)
        return jsonify({"message": "Client deleted"}), 200
    except DOMAIN_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to delete client")
        return jsonify({"error": "Internal server error"}), 500
