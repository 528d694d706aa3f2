# Overview: Request payload validation helpers and the domain error types routes translate to HTTP.

"""
Payload validation for the dashboard forms.

Every form endpoint collects field problems into a FieldErrors instance and
raises a single ValidationError carrying all of them, so the frontend can
show each message next to its input:

    {"error": "Invalid data", "details": [{"field": "email", "message": "..."}]}

Money is always integer cents, quantities are Decimals with two places and
VAT rates are stored as basis points (20 % -> 2000).
"""

from __future__ import annotations

import re
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable

from facturflow.time_utils import parse_iso_date


# Maximum amount: 9,999,999.99 EUR (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999

# Allowed French VAT rates, in basis points
VAT_RATES_BPS = (0, 550, 1000, 2000)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_QUANTITY = Decimal("0.01")
MAX_QUANTITY = Decimal("9999999999.99")


class ValidationError(ValueError):
    """400-level input problem."""

    def __init__(self, message: str, details: list[dict] | None = None):
        super().__init__(message)
        self.details = details or []


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate client email)."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class NotFoundError(LookupError):
    """404-level: resource missing or owned by another user."""


class FieldErrors:
    """Accumulates per-field messages for a single payload."""

    def __init__(self, prefix: str = ""):
        self.prefix = prefix
        self.items: list[dict] = []

    def add(self, field: str, message: str) -> None:
        self.items.append({"field": f"{self.prefix}{field}", "message": message})

    def extend(self, other: "FieldErrors") -> None:
        self.items.extend(other.items)

    def __bool__(self) -> bool:
        return bool(self.items)

    def raise_if_any(self) -> None:
        if self.items:
            raise ValidationError("Invalid data", self.items)


def ensure_dict(payload: Any) -> dict:
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload


def clean_str(value: Any) -> str | None:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def require_str(
    data: dict,
    field: str,
    errors: FieldErrors,
    *,
    min_len: int = 1,
    max_len: int = 255,
    label: str | None = None,
) -> str | None:
    label = label or field
    value = clean_str(data.get(field))
    if value is None:
        errors.add(field, f"{label} is required")
        return None
    if len(value) < min_len:
        errors.add(field, f"{label} must be at least {min_len} characters")
        return None
    if len(value) > max_len:
        errors.add(field, f"{label} exceeds max length {max_len}")
        return None
    return value


def optional_str(data: dict, field: str, errors: FieldErrors, *, max_len: int = 255) -> str | None:
    value = clean_str(data.get(field))
    if value is not None and len(value) > max_len:
        errors.add(field, f"{field} exceeds max length {max_len}")
        return None
    return value


def require_email(data: dict, field: str, errors: FieldErrors, *, required: bool = True) -> str | None:
    value = clean_str(data.get(field))
    if value is None:
        if required:
            errors.add(field, "Email is required")
        return None
    if not EMAIL_RE.match(value) or len(value) > 255:
        errors.add(field, "Invalid email address")
        return None
    return value.lower()


def optional_digits(data: dict, field: str, errors: FieldErrors, *, length: int, label: str) -> str | None:
    """Digit-only identifier (SIREN 9, SIRET 14, postal code 5); spaces are ignored."""
    value = clean_str(data.get(field))
    if value is None:
        return None
    value = value.replace(" ", "")
    if not value.isdigit() or len(value) != length:
        errors.add(field, f"{label} must be exactly {length} digits")
        return None
    return value


def require_digits(data: dict, field: str, errors: FieldErrors, *, length: int, label: str) -> str | None:
    if clean_str(data.get(field)) is None:
        errors.add(field, f"{label} is required")
        return None
    return optional_digits(data, field, errors, length=length, label=label)


def optional_url(data: dict, field: str, errors: FieldErrors) -> str | None:
    value = clean_str(data.get(field))
    if value is None:
        return None
    if not (value.startswith("https://") or value.startswith("http://")):
        errors.add(field, "Invalid URL")
        return None
    return value


def coerce_int(value: Any) -> int:
    """
    Strict integer coercion: rejects floats, booleans, decimals and
    scientific notation. Raises ValueError.
    """
    if isinstance(value, bool):
        raise ValueError("must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped or "e" in stripped.lower() or "." in stripped:
            raise ValueError("must be an integer")
        return int(stripped)
    raise ValueError("must be an integer")


def require_cents(
    data: dict,
    field: str,
    errors: FieldErrors,
    *,
    minimum: int = 0,
    required: bool = True,
    default: int | None = None,
) -> int | None:
    raw = data.get(field)
    if raw is None or raw == "":
        if required:
            errors.add(field, f"{field} is required")
        return default
    try:
        value = coerce_int(raw)
    except ValueError:
        errors.add(field, f"{field} must be an integer amount in cents")
        return default
    if value < minimum:
        errors.add(field, f"{field} must be >= {minimum}")
        return default
    if value > MAX_PRICE_CENTS:
        errors.add(field, f"{field} cannot exceed {MAX_PRICE_CENTS}")
        return default
    return value


def parse_decimal(value: Any) -> Decimal:
    if isinstance(value, bool):
        raise ValueError("must be a number")
    try:
        result = Decimal(str(value).strip().replace(",", "."))
    except InvalidOperation:
        raise ValueError("must be a number")
    if not result.is_finite():
        raise ValueError("must be a number")
    return result


def require_quantity(data: dict, field: str, errors: FieldErrors) -> Decimal | None:
    raw = data.get(field)
    if raw is None or raw == "":
        errors.add(field, "Quantity is required")
        return None
    try:
        qty = parse_decimal(raw)
    except ValueError:
        errors.add(field, "Quantity must be a number")
        return None
    if qty < MIN_QUANTITY:
        errors.add(field, "Quantity must be at least 0.01")
        return None
    if qty > MAX_QUANTITY:
        errors.add(field, "Quantity is too large")
        return None
    if qty != qty.quantize(Decimal("0.01")):
        errors.add(field, "Quantity allows at most 2 decimals")
        return None
    return qty


def vat_rate_to_bps(value: Any) -> int:
    """
    "20", 20, 5.5 -> basis points. Raises ValueError for rates outside
    the French VAT grid (0, 5.5, 10, 20).
    """
    rate = parse_decimal(value)
    bps = rate * 100
    if bps != bps.to_integral_value() or int(bps) not in VAT_RATES_BPS:
        raise ValueError("VAT rate must be one of 0, 5.5, 10, 20")
    return int(bps)


def require_vat_rate(data: dict, field: str, errors: FieldErrors, *, default: int | None = None) -> int | None:
    raw = data.get(field)
    if raw is None or raw == "":
        if default is not None:
            return default
        errors.add(field, "VAT rate is required")
        return None
    try:
        return vat_rate_to_bps(raw)
    except ValueError as exc:
        errors.add(field, str(exc))
        return None


def require_date(data: dict, field: str, errors: FieldErrors, *, required: bool = True, label: str | None = None) -> date | None:
    label = label or field
    raw = data.get(field)
    if raw is None or raw == "":
        if required:
            errors.add(field, f"{label} is required")
        return None
    try:
        return parse_iso_date(raw)
    except (TypeError, ValueError):
        errors.add(field, f"{label} must be a date (YYYY-MM-DD)")
        return None


def require_choice(
    data: dict,
    field: str,
    errors: FieldErrors,
    choices: Iterable[str],
    *,
    default: str | None = None,
    upper: bool = True,
) -> str | None:
    raw = clean_str(data.get(field))
    if raw is None:
        if default is not None:
            return default
        errors.add(field, f"{field} is required")
        return None
    value = raw.upper() if upper else raw
    allowed = list(choices)
    if value not in allowed:
        errors.add(field, f"{field} must be one of: {', '.join(allowed)}")
        return None
    return value
