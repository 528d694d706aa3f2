# Overview: HTTP client for the SuperPDP e-invoicing gateway (OAuth2 client credentials, EN16931 conversion, Peppol sending, events).

"""
SuperPDP gateway client.

AUTH: OAuth 2.0 client credentials against {SUPERPDP_BASE_URL}/oauth2/token.
The access token is cached in process and renewed 5 minutes before it
expires; tokens last one hour by default.

ENDPOINTS USED:
- POST /v1.beta/invoices/convert?from=en16931&to=cii  EN16931 JSON -> CII XML
- POST /v1.beta/invoices                               send XML on Peppol
- GET  /v1.beta/invoice_events?starting_after_id=N     lifecycle events, paged
"""

from __future__ import annotations

import threading
import time

import httpx
from flask import current_app

from .http_client import build_client


TOKEN_MARGIN_SECONDS = 300
DEFAULT_TOKEN_TTL_SECONDS = 3600

EINVOICE_STATUS_LABELS = {
    "api:uploaded": "Transmise à SuperPDP",
    "fr:204": "Mise à disposition",
    "fr:205": "Prise en charge",
    "fr:206": "Reçue par le destinataire",
    "fr:207": "Refusée par le destinataire",
    "fr:208": "Acceptée par le destinataire",
    "fr:209": "Litige ouvert",
    "fr:210": "Litige résolu",
    "fr:211": "Annulée",
    "fr:212": "Paiement reçu",
}

_token_lock = threading.Lock()
_token_cache: dict = {"value": None, "expires_at": 0.0}


class EInvoiceError(Exception):
    """E-invoicing failure (configuration, business precondition or gateway error)."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def status_label(code: str | None) -> str | None:
    if code is None:
        return None
    return EINVOICE_STATUS_LABELS.get(code, code)


def reset_token_cache() -> None:
    with _token_lock:
        _token_cache["value"] = None
        _token_cache["expires_at"] = 0.0


def _gateway_error(action: str, response: httpx.Response) -> EInvoiceError:
    current_app.logger.warning(
        "SuperPDP %s failed status=%s body=%s", action, response.status_code, response.text[:500]
    )
    return EInvoiceError(
        f"SuperPDP {action} failed ({response.status_code})",
        {"status_code": response.status_code, "body": response.text[:500]},
    )


def get_access_token() -> str:
    with _token_lock:
        if _token_cache["value"] and time.monotonic() < _token_cache["expires_at"]:
            return _token_cache["value"]

        client_id = current_app.config.get("SUPERPDP_CLIENT_ID")
        client_secret = current_app.config.get("SUPERPDP_CLIENT_SECRET")
        if not client_id or not client_secret:
            raise EInvoiceError("SUPERPDP_CLIENT_ID / SUPERPDP_CLIENT_SECRET are not configured")

        try:
            with build_client(current_app.config["SUPERPDP_BASE_URL"]) as client:
                response = client.post(
                    "/oauth2/token",
                    data={
                        "grant_type": "client_credentials",
                        "client_id": client_id,
                        "client_secret": client_secret,
                    },
                )
        except httpx.RequestError as exc:
            raise EInvoiceError(f"SuperPDP is unreachable: {exc}")

        if response.status_code != 200:
            raise _gateway_error("auth", response)

        data = response.json()
        ttl = int(data.get("expires_in") or DEFAULT_TOKEN_TTL_SECONDS) - TOKEN_MARGIN_SECONDS
        _token_cache["value"] = data["access_token"]
        _token_cache["expires_at"] = time.monotonic() + max(ttl, 0)
        return _token_cache["value"]


def _request(method: str, path: str, action: str, **kwargs) -> httpx.Response:
    token = get_access_token()
    headers = {"Authorization": f"Bearer {token}", **kwargs.pop("headers", {})}
    try:
        with build_client(current_app.config["SUPERPDP_BASE_URL"]) as client:
            response = client.request(method, path, headers=headers, **kwargs)
    except httpx.RequestError as exc:
        raise EInvoiceError(f"SuperPDP is unreachable: {exc}")
    if response.status_code >= 400:
        raise _gateway_error(action, response)
    return response


def convert_to_cii(invoice: dict) -> str:
    """EN16931 JSON -> CII XML, generated by the gateway."""
    response = _request(
        "POST",
        "/v1.beta/invoices/convert",
        "convert",
        params={"from": "en16931", "to": "cii"},
        json=invoice,
    )
    return response.text


def send_invoice_xml(xml: str) -> dict:
    response = _request(
        "POST",
        "/v1.beta/invoices",
        "send",
        content=xml.encode("utf-8"),
        headers={"Content-Type": "application/xml"},
    )
    return response.json()


def get_invoice_events(starting_after_id: int = 0) -> dict:
    """{"data": [events], "has_after": bool}"""
    params = {"starting_after_id": starting_after_id} if starting_after_id > 0 else None
    response = _request("GET", "/v1.beta/invoice_events", "events", params=params)
    return response.json()

