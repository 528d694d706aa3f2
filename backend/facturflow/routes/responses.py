# Overview: JSON error responses shared by the API routes; maps service exceptions to HTTP status codes.

from flask import Response, jsonify

from ..services.auth_service import PasswordValidationError
from ..services.document_service import DocumentError
from ..services.email_service import EmailError
from ..services.lifecycle_service import LifecycleError
from ..services.siret_service import SiretLookupError
from ..services.superpdp_client import EInvoiceError
from ..validation import ConflictError, NotFoundError, ValidationError


# Exceptions a route answers with a 4xx/5xx JSON body instead of a logged 500
DOMAIN_ERRORS = (
    ValidationError,
    ConflictError,
    NotFoundError,
    LifecycleError,
    DocumentError,
    PasswordValidationError,
    EInvoiceError,
    SiretLookupError,
    EmailError,
)


def error_response(e: Exception):
    if isinstance(e, ValidationError):
        return jsonify({"error": str(e), "details": e.details}), 400
    if isinstance(e, ConflictError):
        return jsonify({"error": str(e), "details": e.details}), 409
    if isinstance(e, NotFoundError):
        return jsonify({"error": str(e)}), 404
    if isinstance(e, LifecycleError):
        return jsonify({"error": str(e), "details": getattr(e, "details", {})}), 400
    if isinstance(e, DocumentError):
        return jsonify({"error": str(e), "details": e.details}), 400
    if isinstance(e, PasswordValidationError):
        return jsonify({"error": str(e), "details": [{"field": "password", "message": str(e)}]}), 400
    if isinstance(e, EInvoiceError):
        # Gateway answered with an HTTP error: upstream failure
        status = 502 if "status_code" in e.details else 400
        return jsonify({"error": str(e), "details": e.details}), status
    if isinstance(e, SiretLookupError):
        return jsonify({"error": str(e)}), e.status_code
    if isinstance(e, EmailError):
        return jsonify({"error": str(e)}), 502
    raise e


def pdf_response(pdf: bytes, filename: str, download: bool = False) -> Response:
    disposition = "attachment" if download else "inline"
    return Response(
        pdf,
        mimetype="application/pdf",
        headers={"Content-Disposition": f'{disposition}; filename="{filename}"'},
    )
