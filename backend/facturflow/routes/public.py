# Overview: Public quote response links; no authentication, the token is the credential.

"""
Public quote responses.

The links sent in quote emails land here. Each request redirects the
browser to the frontend result page:

    {APP_URL}/public/devis/accepte?ref=<quote id>
    {APP_URL}/public/devis/refuse?ref=<quote id>
    {APP_URL}/public/devis/erreur?raison=<code>
"""

from urllib.parse import urlencode

from flask import Blueprint, current_app, redirect

from ..extensions import db
from ..services import quote_service


public_bp = Blueprint("public", __name__, url_prefix="/api/public")

REASON_SERVER_ERROR = "erreur_serveur"


def _result_url(page: str, **params) -> str:
    url = f"{current_app.config['APP_URL'].rstrip('/')}/public/devis/{page}"
    query = {k: v for k, v in params.items() if v is not None}
    if query:
        url += "?" + urlencode(query)
    return url


def _respond(token: str, accept: bool):
    try:
        quote, reason = quote_service.respond_by_token(token, accept)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to record public quote response")
        return redirect(_result_url("erreur", raison=REASON_SERVER_ERROR))

    if reason:
        return redirect(_result_url("erreur", raison=reason))
    return redirect(_result_url("accepte" if accept else "refuse", ref=quote.id))


@public_bp.get("/quotes/accept/<token>")
def accept_quote_route(token: str):
    return _respond(token, accept=True)


@public_bp.get("/quotes/refuse/<token>")
def refuse_quote_route(token: str):
    return _respond(token, accept=False)
