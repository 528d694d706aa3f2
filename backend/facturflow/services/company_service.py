# Overview: Service-layer operations for the issuer company profile stored on the user account.

from __future__ import annotations

import re

from ..extensions import db
from ..models import User
from ..validation import (
    FieldErrors,
    ensure_dict,
    optional_digits,
    optional_str,
    require_digits,
    require_email,
    require_str,
)
from . import numbering_service


IBAN_RE = re.compile(r"^[A-Z]{2}\d{2}[A-Z0-9]{11,30}$")
BIC_RE = re.compile(r"^[A-Z]{6}[A-Z0-9]{2}([A-Z0-9]{3})?$")
PREFIX_RE = re.compile(r"^[A-Z0-9]{1,10}$")


def get_company(user: User) -> dict:
    return user.company_dict()


def _optional_pattern(payload: dict, field: str, errors: FieldErrors, pattern, message: str) -> str | None:
    value = optional_str(payload, field, errors, max_len=64)
    if value is None:
        return None
    value = value.replace(" ", "").upper()
    if not pattern.match(value):
        errors.add(field, message)
        return None
    return value


def update_company(user: User, payload: dict) -> User:
    """
    Validate and store the company profile.

    SIREN is mandatory (it identifies the seller on e-invoices); a SIRET,
    when given, must belong to that SIREN.
    """
    payload = ensure_dict(payload)
    errors = FieldErrors()

    name = require_str(payload, "company_name", errors, min_len=2, label="Company name")
    siren = require_digits(payload, "company_siren", errors, length=9, label="SIREN")
    siret = optional_digits(payload, "company_siret", errors, length=14, label="SIRET")
    vat_number = optional_str(payload, "company_vat_number", errors, max_len=32)
    address = require_str(payload, "company_address", errors, min_len=5, label="Address")
    postal_code = require_digits(payload, "company_postal_code", errors, length=5, label="Postal code")
    city = require_str(payload, "company_city", errors, min_len=2, max_len=128, label="City")
    email = require_email(payload, "company_email", errors)
    phone = optional_str(payload, "company_phone", errors, max_len=32)
    iban = _optional_pattern(payload, "iban", errors, IBAN_RE, "Invalid IBAN")
    bic = _optional_pattern(payload, "bic", errors, BIC_RE, "Invalid BIC")
    invoice_prefix = _optional_pattern(payload, "invoice_prefix", errors, PREFIX_RE, "Prefix must be 1-10 letters or digits")
    quote_prefix = _optional_pattern(payload, "quote_prefix", errors, PREFIX_RE, "Prefix must be 1-10 letters or digits")

    if siren and siret and not siret.startswith(siren):
        errors.add("company_siret", "SIRET must start with the SIREN")
    errors.raise_if_any()

    user.company_name = name
    user.company_siren = siren
    user.company_siret = siret
    user.company_vat_number = vat_number.replace(" ", "").upper() if vat_number else None
    user.company_address = address
    user.company_postal_code = postal_code
    user.company_city = city
    user.company_email = email
    user.company_phone = phone
    user.iban = iban
    user.bic = bic
    if invoice_prefix:
        user.invoice_prefix = invoice_prefix
    if quote_prefix:
        user.quote_prefix = quote_prefix

    db.session.commit()
    return user


def next_numbers(user: User) -> dict:
    return numbering_service.preview_all(user.id)
