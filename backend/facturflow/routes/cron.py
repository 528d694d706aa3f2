# Overview: Scheduled job endpoints, called by the platform scheduler with the cron secret.

from flask import Blueprint, current_app, jsonify

from ..decorators import require_cron_secret
from ..extensions import db
from ..services import einvoice_service, jobs_service
from ..services.superpdp_client import EInvoiceError
from facturflow.time_utils import utcnow


cron_bp = Blueprint("cron", __name__, url_prefix="/api/cron")


@cron_bp.route("/update-overdue", methods=["GET", "POST"])
@require_cron_secret
def update_overdue_route():
    try:
        updated = jobs_service.update_overdue()
        return jsonify({"success": True, "updated": updated, "timestamp": utcnow().isoformat() + "Z"}), 200
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update overdue documents")
        return jsonify({"error": "Internal server error"}), 500


@cron_bp.route("/expire-quotes", methods=["GET", "POST"])
@require_cron_secret
def expire_quotes_route():
    try:
        updated = jobs_service.expire_quotes()
        return jsonify({"success": True, "updated": updated, "timestamp": utcnow().isoformat() + "Z"}), 200
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to expire quotes")
        return jsonify({"error": "Internal server error"}), 500


@cron_bp.route("/sync-einvoice-events", methods=["GET", "POST"])
@require_cron_secret
def sync_einvoice_events_route():
    try:
        result = einvoice_service.sync_einvoice_events()
        return jsonify({"success": True, **result}), 200
    except EInvoiceError as e:
        db.session.rollback()
        current_app.logger.warning("E-invoice event sync failed: %s", e)
        return jsonify({"error": str(e), "details": e.details}), 502
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to sync e-invoice events")
        return jsonify({"error": "Internal server error"}), 500
