# Overview: Service-layer operations for clients; encapsulates business logic and database work.

"""
Clients of a FacturFlow account.

All queries are scoped by user_id: a client owned by another account is
reported as not found, never as forbidden, so ids do not leak.

A client is either a COMPANY (company_name, SIREN derived from the first
nine digits of the SIRET) or an INDIVIDUAL (first/last name split from the
form's single name field). Email is unique per user.
"""

from __future__ import annotations

from sqlalchemy import case, func, or_

from ..extensions import db
from ..models import Client, Document
from ..models.clients import CLIENT_TYPES
from ..validation import (
    ConflictError,
    FieldErrors,
    NotFoundError,
    ensure_dict,
    optional_digits,
    optional_str,
    require_choice,
    require_email,
    require_str,
)
from .concurrency import run_with_retry


def split_name(name: str) -> tuple[str, str | None]:
    parts = name.split()
    if not parts:
        return name, None
    return parts[0], (" ".join(parts[1:]) or None)


def validate_client_payload(payload: dict, errors: FieldErrors, *, quick: bool = False) -> dict:
    """
    Validate a client form. quick=True is the inline "new client" block of
    the document forms: no type (derived from the SIRET) and no notes.
    """
    payload = ensure_dict(payload)
    if quick:
        siret_present = bool((payload.get("siret") or "").strip())
        client_type = "COMPANY" if siret_present else "INDIVIDUAL"
    else:
        client_type = require_choice(payload, "type", errors, CLIENT_TYPES, default="COMPANY")

    cleaned = {
        "client_type": client_type,
        "name": require_str(payload, "name", errors, min_len=2, label="Name"),
        "email": require_email(payload, "email", errors),
        "siret": optional_digits(payload, "siret", errors, length=14, label="SIRET"),
        "vat_number": optional_str(payload, "vat_number", errors, max_len=32),
        "phone": optional_str(payload, "phone", errors, max_len=32),
        "address": require_str(payload, "address", errors, min_len=5, label="Address"),
        "postal_code": optional_digits(payload, "postal_code", errors, length=5, label="Postal code"),
        "city": require_str(payload, "city", errors, min_len=2, max_len=128, label="City"),
        "notes": None if quick else optional_str(payload, "notes", errors, max_len=5000),
    }
    return cleaned


def _apply(client: Client, data: dict) -> None:
    client.client_type = data["client_type"]
    if data["client_type"] == "COMPANY":
        client.company_name = data["name"]
        client.first_name = None
        client.last_name = None
    else:
        client.company_name = None
        client.first_name, client.last_name = split_name(data["name"])
    client.siret = data["siret"]
    client.siren = data["siret"][:9] if data["siret"] else None
    client.vat_number = data["vat_number"]
    client.email = data["email"]
    client.phone = data["phone"]
    client.address = data["address"]
    client.postal_code = data["postal_code"]
    client.city = data["city"]
    client.notes = data["notes"]


def _email_taken(user_id: int, email: str, exclude_id: int | None = None) -> bool:
    q = db.session.query(Client.id).filter(Client.user_id == user_id, Client.email == email)
    if exclude_id is not None:
        q = q.filter(Client.id != exclude_id)
    return q.first() is not None


def get_client(user_id: int, client_id: int) -> Client:
    client = db.session.query(Client).filter_by(id=client_id, user_id=user_id).first()
    if client is None:
        raise NotFoundError("Client not found")
    return client


def client_stats(user_id: int, client_ids: list[int]) -> dict[int, dict]:
    """document_count, total_invoiced_cents and total_paid_cents per client."""
    if not client_ids:
        return {}
    is_invoice = Document.doc_type == "INVOICE"
    rows = (
        db.session.query(
            Document.client_id,
            func.count(Document.id),
            func.coalesce(func.sum(case((is_invoice & (Document.status != "DRAFT"), Document.total_cents), else_=0)), 0),
            func.coalesce(func.sum(case((is_invoice & (Document.status == "PAID"), Document.total_cents), else_=0)), 0),
        )
        .filter(Document.user_id == user_id, Document.client_id.in_(client_ids))
        .group_by(Document.client_id)
        .all()
    )
    stats = {
        cid: {"document_count": 0, "total_invoiced_cents": 0, "total_paid_cents": 0}
        for cid in client_ids
    }
    for client_id, count, invoiced, paid in rows:
        stats[client_id] = {
            "document_count": int(count),
            "total_invoiced_cents": int(invoiced),
            "total_paid_cents": int(paid),
        }
    return stats


def client_to_dict(client: Client, stats: dict | None = None) -> dict:
    data = client.to_dict()
    if stats is None:
        stats = client_stats(client.user_id, [client.id])[client.id]
    data.update(stats)
    return data


def list_clients(user_id: int, search: str | None = None) -> list[dict]:
    q = db.session.query(Client).filter(Client.user_id == user_id)
    term = (search or "").strip()
    if term:
        pattern = f"%{term.lower()}%"
        q = q.filter(or_(
            func.lower(Client.company_name).like(pattern),
            func.lower(Client.first_name).like(pattern),
            func.lower(Client.last_name).like(pattern),
            func.lower(Client.email).like(pattern),
            func.lower(Client.city).like(pattern),
        ))
    clients = q.order_by(Client.created_at.desc(), Client.id.desc()).all()
    stats = client_stats(user_id, [c.id for c in clients])
    return [client_to_dict(c, stats[c.id]) for c in clients]


def create_client(user_id: int, payload: dict) -> Client:
    errors = FieldErrors()
    data = validate_client_payload(payload, errors)
    errors.raise_if_any()

    if _email_taken(user_id, data["email"]):
        raise ConflictError("A client with this email already exists", {"field": "email"})

    client = Client(user_id=user_id)
    _apply(client, data)
    db.session.add(client)
    db.session.commit()
    return client


def update_client(user_id: int, client_id: int, payload: dict) -> Client:
    def _op() -> Client:
        client = get_client(user_id, client_id)
        errors = FieldErrors()
        data = validate_client_payload(payload, errors)
        errors.raise_if_any()

        if _email_taken(user_id, data["email"], exclude_id=client.id):
            raise ConflictError("A client with this email already exists", {"field": "email"})

        _apply(client, data)
        db.session.commit()
        return client

    return run_with_retry(_op)


def delete_client(user_id: int, client_id: int) -> None:
    """Refused while any document references the client."""
    client = get_client(user_id, client_id)
    count = db.session.query(func.count(Document.id)).filter(Document.client_id == client.id).scalar()
    if count:
        raise ConflictError(
            f"This client is linked to {count} document(s). Delete those documents first.",
            {"document_count": int(count)},
        )
    db.session.delete(client)
    db.session.commit()


def resolve_client(user_id: int, client_id=None, new_client: dict | None = None) -> Client:
    """
    Client for a document form: an existing client_id, or an inline quick
    client. A quick client whose email is already known is reused; if it
    brings a SIRET the stored client lacks, the stored client becomes a
    COMPANY with that SIRET.

    Does not commit; the caller commits with the document.
    """
    if new_client:
        errors = FieldErrors(prefix="new_client.")
        data = validate_client_payload(new_client, errors, quick=True)
        errors.raise_if_any()

        existing = db.session.query(Client).filter_by(user_id=user_id, email=data["email"]).first()
        if existing is not None:
            if data["siret"] and not existing.siret:
                existing.client_type = "COMPANY"
                existing.company_name = data["name"]
                existing.siret = data["siret"]
                existing.siren = data["siret"][:9]
                db.session.flush()
            return existing

        client = Client(user_id=user_id)
        _apply(client, data)
        db.session.add(client)
        db.session.flush()
        return client

    if client_id in (None, ""):
        errors = FieldErrors()
        errors.add("client_id", "Select a client or create a new one")
        errors.raise_if_any()
    try:
        client_id = int(client_id)
    except (TypeError, ValueError):
        raise NotFoundError("Client not found")
    return get_client(user_id, client_id)
